"""Top-level ``nodessh`` command.

Ties the pieces together: resolve the password, resolve hosts, build and
open the session, run the command and turn the aggregate exit status into
the process exit code.
"""

import asyncio
import logging
import sys
from collections.abc import Callable, Sequence

from .config import ToolConfig
from .exceptions import ConnectionFailedError, ResolutionError
from .executor import CommandResults, CommandRunner
from .inventory import InventoryQuery
from .logging import log_performance
from .password import PasswordResolver
from .resolver import InventoryResolver
from .ssh import Channel, Session, SessionOrchestrator, SSHChannel
from .ssh_config import ConnectionConfigBuilder, HostConfigLookup
from .types import HostTarget, SessionConfig
from .ui import UI, OutputReporter, TextOutputReporter

logger = logging.getLogger(__name__)


class SSHCommand:
    """Run one shell command on every host matching a query.

    Attributes:
        config: Tool configuration (password is resolved in place)
        query: Search query, or host list in manual mode
        command: Shell command to run
        inventory: Search service used in query mode
        ui: Diagnostic sink and password prompt
        reporter: Receives remote command output

    Example:
        command = SSHCommand(ToolConfig(manual=True), "web01 web02", "uptime")
        command.run()
    """

    def __init__(
        self,
        config: ToolConfig,
        query: str,
        command: str,
        inventory: InventoryQuery | None = None,
        ui: UI | None = None,
        reporter: OutputReporter | None = None,
        host_lookup: HostConfigLookup | None = None,
        channel_factory: Callable[[SessionConfig], Channel] = SSHChannel,
    ) -> None:
        self.config = config
        self.query = query
        self.command = command
        self.inventory = inventory
        self.ui = ui or UI()
        self.reporter = reporter or TextOutputReporter()
        self.host_lookup = host_lookup
        self.channel_factory = channel_factory

    def configure_password(self) -> None:
        """Resolve the effective password, prompting if needed."""
        self.config = PasswordResolver(self.ui.prompt_password).configure(self.config)

    def configure_session(self) -> list[HostTarget]:
        """Resolve the hosts to connect to.

        Exits the process with status 10 when no usable host is found.
        """
        resolver = InventoryResolver(self.config, self.inventory, warn=self.ui.warn)
        try:
            return resolver.resolve(self.query)
        except ResolutionError as e:
            self.ui.fatal(str(e))
            sys.exit(e.exit_code)

    async def session_from_list(self, targets: Sequence[HostTarget]) -> Session:
        """Build a session for the targets and open all its channels."""
        orchestrator = SessionOrchestrator(
            ConnectionConfigBuilder(self.config, self.host_lookup),
            channel_factory=self.channel_factory,
            concurrency=self.config.concurrency,
            exit_on_error=self.config.exit_on_error,
            reporter=self.reporter,
        )
        session = orchestrator.build(targets)
        return await orchestrator.open(session)

    async def ssh_command(self, command: str, session: Session) -> int:
        """Run the command across the session and return the aggregate status."""
        runner = CommandRunner(reporter=self.reporter, concurrency=self.config.concurrency)
        results: CommandResults = await runner.run(session, command)
        return results.exit_code

    async def execute(self, targets: Sequence[HostTarget]) -> int:
        """Open the session, run the command and always close the channels."""
        session = await self.session_from_list(targets)
        try:
            with log_performance(logger, "Remote command", hosts=len(targets)):
                return await self.ssh_command(self.command, session)
        finally:
            await session.close()

    def run(self) -> None:
        """Run the command; exit the process when it failed anywhere.

        A zero aggregate status returns normally without exiting.
        """
        self.configure_password()
        targets = self.configure_session()

        try:
            exit_code = asyncio.run(self.execute(targets))
        except ConnectionFailedError as e:
            self.ui.fatal(str(e))
            sys.exit(e.exit_code)

        if exit_code != 0:
            sys.exit(exit_code)
