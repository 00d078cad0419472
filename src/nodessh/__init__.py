"""nodessh - run a shell command on many inventory hosts over SSH.

Hosts are resolved from an inventory search (or given by hand), one SSH
channel is opened per host, the command runs everywhere at once and the
highest exit status becomes the exit status of the process.

Quick Start:
    from nodessh import SSHCommand, ToolConfig

    SSHCommand(ToolConfig(manual=True), "web01 web02", "uptime").run()
"""

__version__ = "0.1.0"

from nodessh.command import SSHCommand
from nodessh.config import ToolConfig

__all__ = ["__version__", "SSHCommand", "ToolConfig"]
