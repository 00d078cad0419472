"""Exceptions raised by nodessh.

Each exception carries the process exit code the command line uses when
the error reaches the top level.
"""

# Exit code used when no usable host could be resolved
RESOLUTION_EXIT_CODE = 10

# Exit code used for configuration problems (same as click usage errors)
CONFIGURATION_EXIT_CODE = 2

# Exit status recorded for a host whose connection could not be opened
CONNECTION_FAILED_EXIT_CODE = 255


class NodeSSHError(Exception):
    """Base class for nodessh errors.

    Attributes:
        msg: Human-readable error message
        exit_code: Process exit code to use when this error is fatal
    """

    exit_code = 1

    def __init__(self, msg: str, exit_code: int | None = None) -> None:
        super().__init__(msg)
        self.msg = msg
        if exit_code is not None:
            self.exit_code = exit_code

    def __str__(self) -> str:
        return self.msg


class ResolutionError(NodeSSHError):
    """Raised when an inventory query yields no usable host.

    Example:
        raise ResolutionError("No nodes returned from search", query="role:web")
    """

    exit_code = RESOLUTION_EXIT_CODE

    def __init__(self, msg: str, query: str | None = None) -> None:
        super().__init__(msg)
        self.query = query


class ConfigurationError(NodeSSHError):
    """Raised when a configuration value is missing or malformed."""

    exit_code = CONFIGURATION_EXIT_CODE


class InventoryError(ConfigurationError):
    """Raised when an inventory source cannot be read or parsed."""


class ConnectionFailedError(NodeSSHError):
    """Raised when a host connection fails and exit_on_error is set."""

    exit_code = CONNECTION_FAILED_EXIT_CODE

    def __init__(self, host: str, reason: str) -> None:
        super().__init__(f"Failed to connect to {host} -- {reason}")
        self.host = host
        self.reason = reason


class QuerySyntaxError(ConfigurationError):
    """Raised when a search query cannot be parsed."""
