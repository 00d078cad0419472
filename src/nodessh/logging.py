"""Logging setup for nodessh.

Log records go to stderr (and optionally a file) so they never interleave
with remote command output on stdout. Verbosity maps onto levels:

    (none)  WARNING
    -v      INFO    connections opened, per-run summary
    -vv     DEBUG   per-host resolution, merged session options
    -vvv    TRACE   asyncssh protocol debugging as well
"""

import logging
import sys
import time
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import asyncssh

CONSOLE_FORMAT = "%(levelname)s [%(name)s] %(message)s"
DETAILED_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG, TRACE)

LEVEL_NAMES = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# asyncssh debug level used at TRACE (3 would dump raw packets)
ASYNCSSH_TRACE_DEBUG_LEVEL = 2


def get_level_from_verbosity(verbosity: int) -> int:
    """Map the number of -v flags to a logging level."""
    return VERBOSITY_LEVELS[max(0, min(verbosity, len(VERBOSITY_LEVELS) - 1))]


def get_level_from_name(level_name: str) -> int:
    """Map a --log-level name to a logging level.

    Raises:
        ValueError: If the name is not a known level
    """
    try:
        return LEVEL_NAMES[level_name.lower()]
    except KeyError:
        valid = ", ".join(LEVEL_NAMES)
        raise ValueError(f"Invalid log level: {level_name}. Valid levels: {valid}") from None


def configure_logging(level: int = logging.WARNING, log_file: str | Path | None = None) -> None:
    """Install the nodessh handlers on the root logger.

    Calling it again replaces the previous handlers. The asyncssh logger,
    which reports every connection at INFO, is held at WARNING unless TRACE
    is requested.

    Args:
        level: Level for stderr output
        log_file: Also write DEBUG-and-above records, detailed, to this file
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(
        logging.Formatter(DETAILED_FORMAT if level <= logging.DEBUG else CONSOLE_FORMAT)
    )
    root.addHandler(console)

    root_level = level
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setLevel(min(level, logging.DEBUG))
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        root.addHandler(file_handler)
        root_level = min(level, logging.DEBUG)

    root.setLevel(root_level)

    asyncssh_logger = logging.getLogger("asyncssh")
    if level <= TRACE:
        asyncssh_logger.setLevel(logging.DEBUG)
        asyncssh.set_debug_level(ASYNCSSH_TRACE_DEBUG_LEVEL)
    else:
        asyncssh_logger.setLevel(logging.WARNING)


@contextmanager
def log_performance(
    logger: logging.Logger,
    operation: str,
    level: int = logging.INFO,
    threshold: float | None = None,
    **context: Any,
) -> Iterator[None]:
    """Log how long the enclosed block took, even if it raises.

    Example:
        with log_performance(logger, "Remote command", hosts=12):
            exit_code = await self.ssh_command(command, session)
        # INFO [nodessh.command] Remote command completed in 1.204s (hosts=12)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - start
        if threshold is None or duration >= threshold:
            message = f"{operation} completed in {duration:.3f}s"
            if context:
                message += " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"
            logger.log(level, message)


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter that appends ``key=value`` context to messages.

    Keyword arguments that are not logging parameters are treated as
    context for that one call.
    """

    _LOGGING_KWARGS = ("exc_info", "stack_info", "stacklevel", "extra")

    def __init__(self, name: str, **context: Any) -> None:
        super().__init__(logging.getLogger(name), {})
        self.context: dict[str, Any] = dict(context)

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        call_context = {k: kwargs.pop(k) for k in list(kwargs) if k not in self._LOGGING_KWARGS}
        combined = {**self.context, **call_context}
        if combined:
            msg = f"{msg} (" + ", ".join(f"{k}={v}" for k, v in combined.items()) + ")"
        return msg, kwargs


def get_logger(name: str, **context: Any) -> StructuredLogger:
    """Get a StructuredLogger for ``name`` with initial context."""
    return StructuredLogger(name, **context)
