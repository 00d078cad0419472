"""Configuration for nodessh.

Two layers feed the tool configuration:

- A YAML config file holding tool-wide defaults (ssh attribute, password,
  user, port, identity file and so on).
- Command-line values, which override the file for connection settings.

The attribute and password inputs are kept apart instead of merged, because
the attribute selector and the password resolver apply their own
precedence rules to them.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .types import UNSET

logger = logging.getLogger(__name__)

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".nodessh"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yml"

# Environment variable overriding the config file location
CONFIG_ENV_VAR = "NODESSH_CONFIG"

# Node attribute holding a per-node ssh port
DEFAULT_PORT_ATTRIBUTE = "cloud.public_ssh_port"

# OpenSSH client configuration files consulted for host defaults
DEFAULT_SSH_CONFIG_FILES = (
    str(Path.home() / ".ssh" / "config"),
    "/etc/ssh/ssh_config",
)


@dataclass(frozen=True)
class FileConfig:
    """Tool-wide defaults read from the config file.

    Attributes:
        ssh_attribute: Default node attribute used as the ssh endpoint
        ssh_password: Default ssh password
        ssh_user: Default ssh user
        ssh_port: Default ssh port
        identity_file: Default private key file
        ssh_gateway: Default jump host
        forward_agent: Forward the ssh agent by default
        host_key_verify: Verify host keys by default
        concurrency: Default connection concurrency limit
        inventory: Default inventory path
    """

    ssh_attribute: str | None = None
    ssh_password: str | None = None
    ssh_user: str | None = None
    ssh_port: int | None = None
    identity_file: str | None = None
    ssh_gateway: str | None = None
    forward_agent: bool | None = None
    host_key_verify: bool | None = None
    concurrency: int | None = None
    inventory: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileConfig":
        """Create from a parsed config mapping, validating value types.

        Raises:
            ConfigurationError: If a value has the wrong type
        """
        expected = {
            "ssh_attribute": str,
            "ssh_password": str,
            "ssh_user": str,
            "ssh_port": int,
            "identity_file": str,
            "ssh_gateway": str,
            "forward_agent": bool,
            "host_key_verify": bool,
            "concurrency": int,
            "inventory": str,
        }
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in expected:
                logger.warning(f"Ignoring unknown config key: {key}")
                continue
            if value is None:
                continue
            kind = expected[key]
            # bool is an int subclass; reject it where a number is expected
            if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
                raise ConfigurationError(
                    f"Config key '{key}' must be of type {kind.__name__}, "
                    f"got {type(value).__name__}"
                )
            values[key] = value
        return cls(**values)


@dataclass(frozen=True)
class ToolConfig:
    """Explicit configuration passed into every nodessh component.

    Password inputs use the UNSET marker for "not provided", None for
    "provided without a value" (prompt) and False for "explicitly no
    password".

    Attributes:
        manual: Treat the query as a whitespace separated host list
        attribute: Endpoint attribute given on the command line
        config_attribute: Endpoint attribute from the config file
        ssh_user: User override
        ssh_port: Port override
        identity_file: Private key file, implies key-only auth
        ssh_gateway: Jump host for all connections
        forward_agent: Forward the ssh agent
        host_key_verify: Verify host keys
        ssh_password: Legacy password input, and the resolved password
        ssh_password_ng: Password input from the command line
        config_password: Default password from the config file
        concurrency: Maximum simultaneous connection attempts and running commands
            (None = unlimited)
        exit_on_error: Abort when any host fails to connect
        inventory: Inventory path for query mode
        ssh_config_files: OpenSSH config files consulted for host defaults
        port_attribute: Node attribute holding a per-node ssh port
    """

    manual: bool = False
    attribute: str | None = None
    config_attribute: str | None = None
    ssh_user: str | None = None
    ssh_port: int | None = None
    identity_file: str | None = None
    ssh_gateway: str | None = None
    forward_agent: bool = False
    host_key_verify: bool = True
    ssh_password: Any = UNSET
    ssh_password_ng: Any = UNSET
    config_password: str | None = None
    concurrency: int | None = None
    exit_on_error: bool = False
    inventory: str | None = None
    ssh_config_files: tuple[str, ...] = DEFAULT_SSH_CONFIG_FILES
    port_attribute: str = DEFAULT_PORT_ATTRIBUTE

    def __post_init__(self) -> None:
        """Validate numeric settings."""
        if self.ssh_port is not None and not 0 < self.ssh_port < 65536:
            raise ConfigurationError(f"Invalid ssh port: {self.ssh_port}")
        if self.concurrency is not None and self.concurrency < 1:
            raise ConfigurationError(
                f"Concurrency must be at least 1, got {self.concurrency}"
            )

    def with_password(self, password: Any) -> "ToolConfig":
        """Return a copy carrying the resolved password."""
        return replace(self, ssh_password=password)


def resolve_config_path(path: str | Path | None = None) -> Path | None:
    """Find the config file to load.

    Args:
        path: Explicit path, takes precedence over everything else

    Returns:
        Path to load, or None when no config file is in use

    Raises:
        ConfigurationError: If an explicitly requested file does not exist
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            path = env_path

    if path is not None:
        explicit = Path(path).expanduser()
        if not explicit.is_file():
            raise ConfigurationError(f"Config file not found: {explicit}")
        return explicit

    if DEFAULT_CONFIG_FILE.is_file():
        return DEFAULT_CONFIG_FILE

    return None


def load_file_config(path: str | Path | None = None) -> FileConfig:
    """Load tool-wide defaults from the YAML config file.

    Args:
        path: Optional explicit config file path

    Returns:
        FileConfig (empty when no config file exists)

    Raises:
        ConfigurationError: If the file cannot be parsed or has bad values
    """
    config_path = resolve_config_path(path)
    if config_path is None:
        logger.debug("No config file found, using built-in defaults")
        return FileConfig()

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e

    if data is None:
        return FileConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    logger.debug(f"Loaded config from {config_path}")
    return FileConfig.from_dict(data)


def build_tool_config(
    file_config: FileConfig | None = None,
    *,
    manual: bool = False,
    attribute: str | None = None,
    ssh_user: str | None = None,
    ssh_port: int | None = None,
    identity_file: str | None = None,
    ssh_gateway: str | None = None,
    forward_agent: bool | None = None,
    host_key_verify: bool | None = None,
    ssh_password: Any = UNSET,
    ssh_password_ng: Any = UNSET,
    concurrency: int | None = None,
    exit_on_error: bool = False,
    inventory: str | None = None,
) -> ToolConfig:
    """Merge command-line values over config file defaults.

    Connection settings given on the command line win over the file. The
    endpoint attribute and password inputs are carried separately.

    Example:
        >>> file_config = FileConfig(ssh_user="deploy", ssh_attribute="ipaddress")
        >>> config = build_tool_config(file_config, ssh_user="admin")
        >>> config.ssh_user, config.config_attribute
        ('admin', 'ipaddress')
    """
    file_config = file_config or FileConfig()

    def pick(cli_value: Any, file_value: Any, default: Any = None) -> Any:
        if cli_value is not None:
            return cli_value
        if file_value is not None:
            return file_value
        return default

    return ToolConfig(
        manual=manual,
        attribute=attribute,
        config_attribute=file_config.ssh_attribute,
        ssh_user=pick(ssh_user, file_config.ssh_user),
        ssh_port=pick(ssh_port, file_config.ssh_port),
        identity_file=pick(identity_file, file_config.identity_file),
        ssh_gateway=pick(ssh_gateway, file_config.ssh_gateway),
        forward_agent=pick(forward_agent, file_config.forward_agent, False),
        host_key_verify=pick(host_key_verify, file_config.host_key_verify, True),
        ssh_password=ssh_password,
        ssh_password_ng=ssh_password_ng,
        config_password=file_config.ssh_password,
        concurrency=pick(concurrency, file_config.concurrency),
        exit_on_error=exit_on_error,
        inventory=pick(inventory, file_config.inventory),
    )
