"""Type definitions for nodessh.

Inventory records, resolved host targets and the per-host session
configuration are all modelled here as small immutable types so they can be
shared freely between concurrently running channels.
"""

import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from typing import Any, NamedTuple

DEFAULT_SSH_PORT = 22

# Compression algorithms offered when the ssh config enables Compression
COMPRESSION_ALGS = ["zlib@openssh.com", "zlib", "none"]


class _Unset:
    """Marker for a configuration input that was never provided.

    Distinct from None, which for password inputs means "provided
    without a value" and triggers a prompt.
    """

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class Node:
    """A record returned by an inventory search.

    Attributes are a loosely typed, possibly nested mapping. Nested values
    are addressed with dotted paths such as ``cloud.public_hostname``.

    Example:
        >>> node = Node("web01", {"fqdn": "web01.example.org",
        ...                       "cloud": {"public_hostname": "ec2-1.aws.com"}})
        >>> node.get_string("cloud.public_hostname")
        'ec2-1.aws.com'
        >>> node.get_string("cloud.missing") is None
        True
    """

    name: str
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def lookup(self, path: str) -> Any:
        """Return the raw value at a dotted attribute path, or None."""
        if path in self.attributes:
            return self.attributes[path]

        value: Any = self.attributes
        for part in path.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return None
            value = value[part]
        return value

    def get_string(self, path: str) -> str | None:
        """Return a scalar attribute as a string.

        Missing attributes, nulls and container values all read as None.
        The empty string is returned as is; callers decide whether it
        counts as a value.
        """
        value = self.lookup(path)
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)):
            return str(value)
        return None

    def get_port(self, path: str) -> int | None:
        """Return an attribute as a port number, or None if not usable."""
        value = self.lookup(path)
        if value is None or isinstance(value, bool):
            return None
        try:
            port = int(value)
        except (TypeError, ValueError):
            return None
        return port if port > 0 else None


class HostTarget(NamedTuple):
    """A resolved connection target: endpoint plus optional port."""

    endpoint: str
    port: int | None = None


@dataclass(frozen=True)
class SessionConfig:
    """Connection parameters for one host, merged from all config sources.

    Attributes:
        endpoint: Endpoint string the host was resolved to
        host_name: Real host to connect to when ssh_config maps the endpoint
        user: SSH username (None lets the transport pick the local user)
        port: SSH port
        password: Password for authentication (never set with keys_only)
        keys: Private key paths
        keys_only: Only use the given keys, no agent and no password
        compression: Whether to negotiate compression
        compression_level: Compression level from ssh_config
        timeout: Connection timeout in seconds
        paranoid: Strict host key verification
        user_known_hosts_file: Known hosts file to verify against
        forward_agent: Forward the local ssh agent
        gateway: Jump host as ``[user@]host[:port]``
    """

    endpoint: str
    host_name: str | None = None
    user: str | None = None
    port: int = DEFAULT_SSH_PORT
    password: str | None = None
    keys: tuple[str, ...] = ()
    keys_only: bool = False
    compression: bool | None = None
    compression_level: int | None = None
    timeout: float | None = None
    paranoid: bool = True
    user_known_hosts_file: str | None = None
    forward_agent: bool = False
    gateway: str | None = None

    @classmethod
    def from_options(cls, endpoint: str, options: Mapping[str, Any]) -> "SessionConfig":
        """Create a config from a merged option mapping.

        Keys that are not SessionConfig fields are ignored.
        """
        known = {f.name for f in fields(cls)} - {"endpoint"}
        values = {k: v for k, v in options.items() if k in known and v is not None}
        if "keys" in values:
            keys = values["keys"]
            values["keys"] = (keys,) if isinstance(keys, str) else tuple(keys)
        return cls(endpoint=endpoint, **values)

    @property
    def connect_host(self) -> str:
        """Host actually dialled by the transport."""
        return self.host_name or self.endpoint

    def as_dict(self) -> dict[str, Any]:
        """Return the options that are set, as a plain dictionary.

        Unset optional values are omitted entirely, so a config without a
        password has no ``password`` key at all.
        """
        result: dict[str, Any] = {}
        for key, value in asdict(self).items():
            if value is None or value == ():
                continue
            if key in ("keys_only", "forward_agent") and not value:
                continue
            result[key] = value
        return result

    def to_asyncssh_options(self) -> dict[str, Any]:
        """Convert to asyncssh.connect() kwargs."""
        options: dict[str, Any] = {
            "host": self.connect_host,
            "port": self.port,
        }

        if self.user:
            options["username"] = self.user
        if self.timeout is not None:
            options["connect_timeout"] = self.timeout
        if self.keys:
            options["client_keys"] = list(self.keys)
        if self.keys_only:
            options["agent_path"] = None
            options["preferred_auth"] = "publickey"
        elif self.password:
            options["password"] = self.password
        if not self.paranoid:
            options["known_hosts"] = None  # Disable host key checking
        elif self.user_known_hosts_file and self.user_known_hosts_file != os.devnull:
            options["known_hosts"] = self.user_known_hosts_file
        if self.compression:
            options["compression_algs"] = COMPRESSION_ALGS
        elif self.compression is False:
            options["compression_algs"] = "none"
        if self.forward_agent:
            options["agent_forwarding"] = True
        if self.gateway:
            options["tunnel"] = self.gateway

        return options
