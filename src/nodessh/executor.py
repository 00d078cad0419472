"""Command execution across a session for nodessh.

Runs one command on every open channel concurrently and combines the
per-host exit statuses into the single exit code of the process.
"""

import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from .exceptions import CONNECTION_FAILED_EXIT_CODE
from .ssh import Channel, Session, SessionState
from .ui import NullOutputReporter, OutputReporter

logger = logging.getLogger(__name__)


def aggregate_exit_status(statuses: Iterable[int]) -> int:
    """Combine per-host exit statuses into one exit code.

    The largest status wins, so success never hides a failure and the
    result does not depend on the order hosts finished in.

    Example:
        >>> aggregate_exit_status([1, 0])
        1
        >>> aggregate_exit_status([1, 2])
        2
    """
    return max(statuses, default=0)


@dataclass(frozen=True)
class ExitOutcome:
    """Exit status of the command on one host."""

    host: str
    exit_status: int

    @property
    def success(self) -> bool:
        return self.exit_status == 0


@dataclass
class CommandResults:
    """Results from running a command across a session.

    Attributes:
        outcomes: One outcome per host, in completion order
        duration: Wall clock time of the execution in seconds
    """

    outcomes: list[ExitOutcome] = field(default_factory=list)
    duration: float = 0.0

    @property
    def exit_code(self) -> int:
        """Aggregate exit code of the whole run."""
        return aggregate_exit_status(o.exit_status for o in self.outcomes)

    @property
    def total_hosts(self) -> int:
        return len(self.outcomes)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)


class CommandRunner:
    """Runs a command on every open channel of a session.

    Every channel runs to completion; a failing host never stops its
    siblings. Hosts whose channel could not be opened count as exit status
    255.

    Attributes:
        reporter: Receives output lines and per-host completion
        concurrency: Maximum simultaneous running commands (None = all)

    Example:
        runner = CommandRunner(reporter=TextOutputReporter())
        results = await runner.run(session, "uptime")
        print(results.exit_code)
    """

    def __init__(
        self,
        reporter: OutputReporter | None = None,
        concurrency: int | None = None,
    ) -> None:
        self.reporter = reporter or NullOutputReporter()
        self.concurrency = concurrency

    async def run(self, session: Session, command: str) -> CommandResults:
        """Execute the command on all open channels and wait for all of them.

        Args:
            session: Session whose channels are open
            command: Shell command to run on every host

        Returns:
            CommandResults with one outcome per host
        """
        if session.state is not SessionState.CHANNELS_OPEN:
            raise RuntimeError(f"Cannot execute on a session in state {session.state.value}")

        start_time = time.perf_counter()
        session.state = SessionState.EXECUTING

        outcomes = [
            ExitOutcome(channel.name, CONNECTION_FAILED_EXIT_CODE)
            for channel, _ in session.failures
        ]
        limit = asyncio.Semaphore(self.concurrency) if self.concurrency else None

        async def run_one(channel: Channel) -> ExitOutcome:
            host_start = time.perf_counter()
            try:
                if limit is None:
                    status = await channel.exec(command, self.reporter.on_host_data)
                else:
                    async with limit:
                        status = await channel.exec(command, self.reporter.on_host_data)
            except Exception as e:
                logger.error(f"Command failed on {channel.name}: {e}")
                self.reporter.on_host_error(channel.name, str(e) or type(e).__name__)
                status = CONNECTION_FAILED_EXIT_CODE
            self.reporter.on_host_complete(
                channel.name, status, time.perf_counter() - host_start
            )
            return ExitOutcome(channel.name, status)

        tasks = [asyncio.create_task(run_one(channel)) for channel in session.open_channels]
        logger.debug(f"Started command on {len(tasks)} channel(s)")

        # Completion order is arbitrary
        for finished in asyncio.as_completed(tasks):
            outcome = await finished
            logger.debug(f"{outcome.host} finished with status {outcome.exit_status}")
            outcomes.append(outcome)

        session.state = SessionState.COMPLETED
        results = CommandResults(outcomes=outcomes, duration=time.perf_counter() - start_time)
        self.reporter.on_execution_complete(
            results.total_hosts, results.failed, results.exit_code, results.duration
        )
        logger.info(
            f"Command finished on {results.total_hosts} host(s), "
            f"{results.failed} failed, exit code {results.exit_code}"
        )
        return results
