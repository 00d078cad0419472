"""User-facing output for nodessh.

Provides the diagnostic sink (fatal/error/warn messages and the password
prompt) and the reporters that render remote command output, in either
human-readable text or NDJSON form.
"""

import json
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import click
from rich.console import Console
from rich.text import Text

# Colours assigned to hosts in turn
HOST_COLORS = ["cyan", "magenta", "red", "green", "yellow", "blue"]


class UI:
    """Diagnostic messages and prompts shown to the user.

    Messages go to stderr so they never mix with remote command output.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True, highlight=False)

    def warn(self, message: str) -> None:
        """Show a warning."""
        self.console.print(Text.assemble(("WARNING: ", "bold yellow"), message))

    def fatal(self, message: str) -> None:
        """Show a fatal error. The caller decides how to exit."""
        self.console.print(Text.assemble(("FATAL: ", "bold red"), message))

    def prompt_password(self) -> str:
        """Ask the user for the ssh password without echoing it."""
        return click.prompt("Enter your password", hide_input=True, err=True)


@dataclass
class OutputEvent:
    """An output event during command execution.

    Attributes:
        event_type: Type of event (session_start, connect_error, host_data,
            host_error, host_complete, execution_complete)
        host: Host the event belongs to, ``*`` for session-wide events
        timestamp: When the event occurred
        details: Additional event-specific details
    """

    event_type: str
    host: str
    timestamp: str
    details: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "event": self.event_type,
            "host": self.host,
            "timestamp": self.timestamp,
        }
        result.update(self.details)
        return result

    def to_json(self) -> str:
        """Convert to JSON string (NDJSON format)."""
        return json.dumps(self.to_dict())


class OutputReporter(ABC):
    """Base class for command output reporters."""

    @abstractmethod
    def on_session_start(self, hosts: list[str]) -> None:
        """Called with every resolved host before any channel is opened."""
        pass

    @abstractmethod
    def on_host_data(self, host: str, line: str) -> None:
        """Called for each line of output from a host."""
        pass

    @abstractmethod
    def on_connect_error(self, host: str, error: str) -> None:
        """Called when a channel to a host cannot be opened."""
        pass

    @abstractmethod
    def on_host_error(self, host: str, error: str) -> None:
        """Called when running the command fails on an open channel."""
        pass

    @abstractmethod
    def on_host_complete(self, host: str, exit_status: int, duration: float) -> None:
        """Called when the command finishes on a host."""
        pass

    @abstractmethod
    def on_execution_complete(
        self,
        total: int,
        failed: int,
        exit_code: int,
        duration: float,
    ) -> None:
        """Called when every host has finished."""
        pass


class TextOutputReporter(OutputReporter):
    """Prints each output line prefixed with its colour-coded host."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize text output reporter.

        Args:
            console: Rich console for command output (defaults to stdout)
        """
        self.console = console or Console(highlight=False)
        self.width = 0
        self._colors: dict[str, str] = {}

    def _style(self, host: str) -> str:
        if host not in self._colors:
            self._colors[host] = HOST_COLORS[len(self._colors) % len(HOST_COLORS)]
        return self._colors[host]

    def _prefix(self, host: str) -> Text:
        return Text(host.ljust(self.width), style=self._style(host))

    def on_session_start(self, hosts: list[str]) -> None:
        self.width = max((len(h) for h in hosts), default=0)
        for host in hosts:
            self._style(host)

    def on_host_data(self, host: str, line: str) -> None:
        self.console.print(
            Text.assemble(self._prefix(host), " ", line.rstrip("\r\n")),
            soft_wrap=True,
        )

    def on_connect_error(self, host: str, error: str) -> None:
        self.console.print(
            Text.assemble(self._prefix(host), " ", (f"Failed to connect: {error}", "bold red")),
            soft_wrap=True,
        )

    def on_host_error(self, host: str, error: str) -> None:
        self.console.print(
            Text.assemble(self._prefix(host), " ", (f"Command failed: {error}", "bold red")),
            soft_wrap=True,
        )

    def on_host_complete(self, host: str, exit_status: int, duration: float) -> None:
        # Successful hosts stay quiet in text mode to reduce noise
        if exit_status != 0:
            self.console.print(
                Text.assemble(
                    self._prefix(host), " ", (f"exited with status {exit_status}", "bold red")
                ),
                soft_wrap=True,
            )

    def on_execution_complete(
        self,
        total: int,
        failed: int,
        exit_code: int,
        duration: float,
    ) -> None:
        pass


class JsonOutputReporter(OutputReporter):
    """Reports output as NDJSON (newline-delimited JSON) events."""

    def __init__(self, output: Any = None) -> None:
        """Initialize JSON output reporter.

        Args:
            output: Output stream (defaults to sys.stdout)
        """
        self.output = output or sys.stdout

    def _emit(self, event: OutputEvent) -> None:
        print(event.to_json(), file=self.output, flush=True)

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def on_session_start(self, hosts: list[str]) -> None:
        self._emit(OutputEvent("session_start", "*", self._now(), {"hosts": hosts}))

    def on_host_data(self, host: str, line: str) -> None:
        self._emit(OutputEvent("host_data", host, self._now(), {"data": line.rstrip("\r\n")}))

    def on_connect_error(self, host: str, error: str) -> None:
        self._emit(OutputEvent("connect_error", host, self._now(), {"error": error}))

    def on_host_error(self, host: str, error: str) -> None:
        self._emit(OutputEvent("host_error", host, self._now(), {"error": error}))

    def on_host_complete(self, host: str, exit_status: int, duration: float) -> None:
        self._emit(OutputEvent(
            "host_complete",
            host,
            self._now(),
            {"exit_status": exit_status, "duration": round(duration, 3)},
        ))

    def on_execution_complete(
        self,
        total: int,
        failed: int,
        exit_code: int,
        duration: float,
    ) -> None:
        self._emit(OutputEvent(
            "execution_complete",
            "*",
            self._now(),
            {
                "total": total,
                "failed": failed,
                "exit_code": exit_code,
                "duration": round(duration, 3),
            },
        ))


class NullOutputReporter(OutputReporter):
    """No-op reporter that discards all output."""

    def on_session_start(self, hosts: list[str]) -> None:
        pass

    def on_host_data(self, host: str, line: str) -> None:
        pass

    def on_connect_error(self, host: str, error: str) -> None:
        pass

    def on_host_error(self, host: str, error: str) -> None:
        pass

    def on_host_complete(self, host: str, exit_status: int, duration: float) -> None:
        pass

    def on_execution_complete(
        self,
        total: int,
        failed: int,
        exit_code: int,
        duration: float,
    ) -> None:
        pass


def create_output_reporter(output_format: str = "text", output: Any = None) -> OutputReporter:
    """Create an output reporter.

    Args:
        output_format: "text", "json" or "none"
        output: Output stream (defaults to stdout)

    Returns:
        OutputReporter instance
    """
    if output_format == "json":
        return JsonOutputReporter(output)
    if output_format == "none":
        return NullOutputReporter()
    console = Console(file=output, highlight=False) if output is not None else None
    return TextOutputReporter(console)
