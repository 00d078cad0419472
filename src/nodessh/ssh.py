"""Async SSH sessions for nodessh.

A ``Session`` groups one ``SSHChannel`` per resolved host. The
``SessionOrchestrator`` builds the session from the resolved targets and
opens every channel before any command runs.

Features:
- Async SSH connections with asyncssh
- Pseudo-terminal per command, output streamed line by line
- Optional bound on simultaneous connection attempts
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import asyncssh

from .exceptions import CONNECTION_FAILED_EXIT_CODE, ConnectionFailedError
from .ssh_config import ConnectionConfigBuilder
from .types import HostTarget, SessionConfig
from .ui import NullOutputReporter, OutputReporter

logger = logging.getLogger(__name__)

DataCallback = Callable[[str, str], None]

DEFAULT_TERM_TYPE = "xterm"


class SessionState(Enum):
    """Lifecycle of a Session."""

    IDLE = "idle"
    BUILT = "built"
    CHANNELS_OPENING = "channels_opening"
    CHANNELS_OPEN = "channels_open"
    EXECUTING = "executing"
    COMPLETED = "completed"


class Channel(Protocol):
    """One remote command stream, as used by the session and runner."""

    name: str
    config: SessionConfig

    async def open(self) -> None: ...

    async def exec(self, command: str, on_data: DataCallback) -> int: ...

    async def close(self) -> None: ...


class SSHChannel:
    """An SSH connection to one host running a single command.

    Example:
        channel = SSHChannel(SessionConfig(endpoint="web01.example.org"))
        await channel.open()
        status = await channel.exec("uptime", lambda host, line: print(host, line))
        await channel.close()
    """

    def __init__(self, config: SessionConfig, term_type: str = DEFAULT_TERM_TYPE) -> None:
        """Initialize SSH channel.

        Args:
            config: Merged session configuration for the host
            term_type: Terminal type requested for the pseudo-terminal
        """
        self.config = config
        self.name = config.endpoint
        self.term_type = term_type
        self._conn: asyncssh.SSHClientConnection | None = None

    @property
    def is_open(self) -> bool:
        """Whether the connection is established."""
        return self._conn is not None and not self._conn.is_closed()

    async def open(self) -> None:
        """Establish the SSH connection."""
        if self.is_open:
            return
        logger.debug(f"Connecting to {self.config.connect_host}:{self.config.port}")
        self._conn = await asyncssh.connect(**self.config.to_asyncssh_options())
        logger.info(f"Connected to {self.name}")

    async def exec(self, command: str, on_data: DataCallback) -> int:
        """Run a command with a pseudo-terminal and stream its output.

        Args:
            command: Shell command to run
            on_data: Called with (host, line) for every line of output

        Returns:
            The remote exit status (255 when none was reported)
        """
        if self._conn is None:
            raise RuntimeError(f"Channel to {self.name} is not open")

        logger.debug(f"Running on {self.name}: {command[:100]}")

        async with self._conn.create_process(
            command,
            term_type=self.term_type,
            request_pty=True,
            stderr=asyncssh.STDOUT,
            encoding="utf-8",
            errors="replace",
        ) as process:
            async for line in process.stdout:
                on_data(self.name, line)
            completed = await process.wait()

        if completed.exit_status is None:
            logger.debug(f"{self.name} reported no exit status (signal {completed.exit_signal})")
            return CONNECTION_FAILED_EXIT_CODE

        logger.debug(f"Command completed on {self.name}: rc={completed.exit_status}")
        return completed.exit_status

    async def close(self) -> None:
        """Close the SSH connection."""
        if self._conn is not None and not self._conn.is_closed():
            self._conn.close()
            await self._conn.wait_closed()
            logger.debug(f"Disconnected from {self.name}")
        self._conn = None


@dataclass
class Session:
    """All channels taking part in one command execution.

    Attributes:
        channels: One channel per resolved host, in resolution order
        state: Current lifecycle state
        failures: (channel, error message) for channels that did not open
    """

    channels: list[Channel] = field(default_factory=list)
    state: SessionState = SessionState.IDLE
    failures: list[tuple[Channel, str]] = field(default_factory=list)

    @property
    def hosts(self) -> list[str]:
        """Host names of every channel, in resolution order."""
        return [channel.name for channel in self.channels]

    @property
    def failed(self) -> dict[str, str]:
        """Host name to error message for channels that did not open."""
        return {channel.name: reason for channel, reason in self.failures}

    @property
    def open_channels(self) -> list[Channel]:
        """Channels that opened successfully."""
        failed_ids = {id(channel) for channel, _ in self.failures}
        return [c for c in self.channels if id(c) not in failed_ids]

    async def close(self) -> None:
        """Close every channel."""
        await asyncio.gather(*(channel.close() for channel in self.channels))

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class SessionOrchestrator:
    """Builds a Session from resolved hosts and opens its channels.

    Attributes:
        config_builder: Produces the SessionConfig for each host
        channel_factory: Creates a channel from a SessionConfig
        concurrency: Maximum simultaneous connection attempts (None = all).
            Opened connections stay open until the session is closed.
            CommandRunner bounds running commands separately.
        exit_on_error: Raise instead of skipping hosts that fail to connect
        reporter: Receives the host list and connection errors

    Example:
        orchestrator = SessionOrchestrator(ConnectionConfigBuilder(config))
        session = orchestrator.build([HostTarget("web01", None)])
        await orchestrator.open(session)
    """

    def __init__(
        self,
        config_builder: ConnectionConfigBuilder,
        channel_factory: Callable[[SessionConfig], Channel] = SSHChannel,
        concurrency: int | None = None,
        exit_on_error: bool = False,
        reporter: OutputReporter | None = None,
    ) -> None:
        self.config_builder = config_builder
        self.channel_factory = channel_factory
        self.concurrency = concurrency
        self.exit_on_error = exit_on_error
        self.reporter = reporter or NullOutputReporter()

    def build(self, targets: Sequence[HostTarget]) -> Session:
        """Compute every host's SessionConfig and build the Session."""
        channels = []
        for target in targets:
            session_config = self.config_builder.build(target.endpoint, target.port)
            channels.append(self.channel_factory(session_config))
        logger.debug(f"Built session with {len(channels)} channel(s)")
        return Session(channels=channels, state=SessionState.BUILT)

    async def open(self, session: Session) -> Session:
        """Open one channel per host before any command is run.

        Open requests are issued in resolution order. Hosts that fail to
        connect are reported and recorded in ``session.failed``.

        Raises:
            ConnectionFailedError: If exit_on_error is set and a host failed
        """
        if session.state is not SessionState.BUILT:
            raise RuntimeError(f"Cannot open channels of a session in state {session.state.value}")

        session.state = SessionState.CHANNELS_OPENING
        self.reporter.on_session_start(session.hosts)
        limit = asyncio.Semaphore(self.concurrency) if self.concurrency else None

        async def open_one(channel: Channel) -> None:
            if limit is None:
                await channel.open()
                return
            async with limit:
                await channel.open()

        results = await asyncio.gather(
            *(open_one(channel) for channel in session.channels),
            return_exceptions=True,
        )

        for channel, result in zip(session.channels, results):
            if isinstance(result, Exception):
                reason = str(result) or type(result).__name__
                logger.error(f"Failed to connect to {channel.name}: {reason}")
                session.failures.append((channel, reason))
                self.reporter.on_connect_error(channel.name, reason)
            elif isinstance(result, BaseException):
                raise result

        if session.failures and self.exit_on_error:
            await session.close()
            channel, reason = session.failures[0]
            raise ConnectionFailedError(channel.name, reason)

        session.state = SessionState.CHANNELS_OPEN
        logger.info(
            f"Opened {len(session.open_channels)}/{len(session.channels)} channel(s)"
        )
        return session
