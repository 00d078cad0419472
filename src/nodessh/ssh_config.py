"""Per-host connection configuration for nodessh.

``ConnectionConfigBuilder`` merges, in order:

1. OpenSSH ``ssh_config`` defaults for the literal endpoint
2. tool-wide user and port overrides
3. the per-target port found during resolution
4. identity file (key-only auth) or password
5. the host key verification toggle

into one immutable ``SessionConfig`` per host.
"""

import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Protocol

import paramiko
from paramiko.ssh_exception import ConfigParseError

from .config import ToolConfig
from .exceptions import ConfigurationError
from .types import SessionConfig

logger = logging.getLogger(__name__)

# Directives the session layer cannot honour; dropped before use
UNSUPPORTED_DIRECTIVES = ("send_env",)


def _yes_no(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("yes", "true"):
        return True
    if lowered in ("no", "false"):
        return False
    raise ValueError(f"expected yes or no, got {value!r}")


def _as_list(value: Any) -> list[str]:
    return list(value) if isinstance(value, (list, tuple)) else [value]


# ssh_config keyword -> (option name, converter)
_DIRECTIVES: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "hostname": ("host_name", str),
    "user": ("user", str),
    "port": ("port", int),
    "compression": ("compression", _yes_no),
    "compressionlevel": ("compression_level", int),
    "connecttimeout": ("timeout", float),
    "sendenv": ("send_env", lambda v: " ".join(_as_list(v)).split()),
    "forwardagent": ("forward_agent", _yes_no),
    "identityfile": ("keys", _as_list),
    "proxyjump": ("proxy_jump", str),
}


class HostConfigLookup(Protocol):
    """Source of host defaults keyed by the literal host name."""

    def lookup(self, host: str) -> dict[str, Any]:
        """Return option defaults for a host."""
        ...


class HostFileLookup:
    """Reads host defaults from OpenSSH client config files.

    Files are parsed once, on first lookup. Missing files are skipped.

    Example:
        >>> lookup = HostFileLookup(["~/.ssh/config"])
        >>> lookup.lookup("web01.example.org")
        {'user': 'deploy', 'port': 2222}
    """

    def __init__(self, paths: Iterable[str | Path]) -> None:
        self.paths = [Path(p).expanduser() for p in paths]
        self._config: paramiko.SSHConfig | None = None

    def _load(self) -> paramiko.SSHConfig:
        if self._config is not None:
            return self._config

        ssh_config = paramiko.SSHConfig()
        for path in self.paths:
            if not path.is_file():
                continue
            try:
                with path.open() as f:
                    ssh_config.parse(f)
            except (OSError, ConfigParseError) as e:
                raise ConfigurationError(f"Cannot parse ssh config {path}: {e}") from e
            logger.debug(f"Parsed ssh config {path}")

        self._config = ssh_config
        return ssh_config

    def lookup(self, host: str) -> dict[str, Any]:
        """Return the translated directives that apply to ``host``.

        Raises:
            ConfigurationError: If a directive value is malformed
        """
        try:
            raw = self._load().lookup(host)
        except ConfigParseError as e:
            raise ConfigurationError(f"Cannot evaluate ssh config for {host}: {e}") from e

        options: dict[str, Any] = {}
        for keyword, value in raw.items():
            if keyword not in _DIRECTIVES:
                continue
            name, convert = _DIRECTIVES[keyword]
            try:
                options[name] = convert(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid ssh config value for {keyword} ({host}): {value!r}"
                ) from e

        # paramiko always reports a hostname; only keep a real alias
        if options.get("host_name") == host:
            del options["host_name"]

        return options


class ConnectionConfigBuilder:
    """Builds the SessionConfig for each resolved host.

    Attributes:
        config: Tool configuration
        host_lookup: Source of ssh_config defaults
    """

    def __init__(
        self,
        config: ToolConfig,
        host_lookup: HostConfigLookup | None = None,
    ) -> None:
        self.config = config
        self.host_lookup = host_lookup or HostFileLookup(config.ssh_config_files)

    def session_options(self, endpoint: str, port: int | None = None) -> dict[str, Any]:
        """Merge every configuration source into an option mapping."""
        options = dict(self.host_lookup.lookup(endpoint))

        for directive in UNSUPPORTED_DIRECTIVES:
            if options.pop(directive, None) is not None:
                logger.debug(f"Dropped unsupported ssh config directive {directive} for {endpoint}")

        proxy_jump = options.pop("proxy_jump", None)
        if proxy_jump and proxy_jump.lower() != "none":
            options["gateway"] = proxy_jump

        config = self.config
        if config.ssh_user:
            options["user"] = config.ssh_user
        if config.ssh_port:
            options["port"] = config.ssh_port
        if port:
            options["port"] = port

        # An identity file takes precedence over any password
        if config.identity_file:
            options["keys"] = [config.identity_file]
            options["keys_only"] = True
            options.pop("password", None)
        elif isinstance(config.ssh_password, str) and config.ssh_password:
            options["password"] = config.ssh_password

        if not config.host_key_verify:
            options["paranoid"] = False
            options["user_known_hosts_file"] = os.devnull

        if config.ssh_gateway:
            options["gateway"] = config.ssh_gateway
        if config.forward_agent:
            options["forward_agent"] = True

        return options

    def build(self, endpoint: str, port: int | None = None) -> SessionConfig:
        """Build the immutable session configuration for one host."""
        return SessionConfig.from_options(endpoint, self.session_options(endpoint, port))
