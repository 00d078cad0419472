"""Command-line interface for nodessh."""

import click

from nodessh import __version__
from nodessh.command import SSHCommand
from nodessh.config import build_tool_config, load_file_config
from nodessh.exceptions import ConfigurationError
from nodessh.inventory import load_inventory
from nodessh.logging import (
    configure_logging,
    get_level_from_name,
    get_level_from_verbosity,
    get_logger,
)
from nodessh.ui import create_output_reporter

logger = get_logger("nodessh.cli")


def password_inputs(ssh_password: str | None) -> bool | str | None:
    """Translate the -P option into the new-style password input.

    Not given means explicitly no password (False); given without a value
    means prompt (None); anything else is the password itself.
    """
    if ssh_password is None:
        return False
    if ssh_password == "":
        return None
    return ssh_password


def _fail(error: ConfigurationError) -> click.ClickException:
    exc = click.ClickException(str(error))
    exc.exit_code = error.exit_code
    return exc


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("query")
@click.argument("command", nargs=-1, required=True)
@click.option("--manual-list", "-m", "manual", is_flag=True,
              help="QUERY is a space separated list of hosts, not a search")
@click.option("--attribute", "-a", help="Node attribute to use as the ssh hostname")
@click.option("--identity-file", "-i", type=click.Path(dir_okay=False),
              help="SSH identity file used for authentication (disables password auth)")
@click.option("--ssh-password", "-P", is_flag=False, flag_value="", default=None,
              help="SSH password. A bare -P prompts and must follow QUERY and COMMAND "
                   "or come right before --")
@click.option("--host-key-verify/--no-host-key-verify", "host_key_verify", default=None,
              help="Verify host keys (default: on)")
@click.option("--ssh-user", "-x", help="SSH username")
@click.option("--ssh-port", "-p", type=click.IntRange(1, 65535), help="SSH port")
@click.option("--ssh-gateway", "-G", help="SSH gateway, as [user@]host[:port]")
@click.option("--forward-agent", "-A", is_flag=True, help="Enable SSH agent forwarding")
@click.option("--concurrency", "-C", type=click.IntRange(min=1),
              help="Maximum simultaneous connection attempts and running commands")
@click.option("--exit-on-error", "-e", is_flag=True,
              help="Abort if any host cannot be reached")
@click.option("--inventory", "-I", help="Inventory file or executable script")
@click.option("--config", "-c", "config_file", type=click.Path(dir_okay=False),
              help="Config file (default ~/.nodessh/config.yml)")
@click.option("--format", "-F", "output_format", type=click.Choice(["text", "json"]),
              default="text", help="Output format")
@click.option("--verbose", "-v", count=True, help="Increase verbosity (-v, -vv, -vvv)")
@click.option("--log-level",
              type=click.Choice(["trace", "debug", "info", "warning", "error", "critical"],
                                case_sensitive=False),
              help="Log level (overrides -v)")
@click.option("--log-file", type=click.Path(dir_okay=False), help="Also write logs to this file")
@click.version_option(__version__, prog_name="nodessh")
def cli(
    query: str,
    command: tuple[str, ...],
    manual: bool,
    attribute: str | None,
    identity_file: str | None,
    ssh_password: str | None,
    host_key_verify: bool | None,
    ssh_user: str | None,
    ssh_port: int | None,
    ssh_gateway: str | None,
    forward_agent: bool,
    concurrency: int | None,
    exit_on_error: bool,
    inventory: str | None,
    config_file: str | None,
    output_format: str,
    verbose: int,
    log_level: str | None,
    log_file: str | None,
) -> None:
    """nodessh - run a command on many hosts over SSH.

    QUERY is an inventory search (for example 'roles:web') or, with
    --manual-list, a space separated list of hosts. COMMAND is run on every
    host; the exit status is the highest status any host returned.
    """
    level = get_level_from_name(log_level) if log_level else get_level_from_verbosity(verbose)
    configure_logging(level=level, log_file=log_file)

    try:
        file_config = load_file_config(config_file)
        config = build_tool_config(
            file_config,
            manual=manual,
            attribute=attribute,
            ssh_user=ssh_user,
            ssh_port=ssh_port,
            identity_file=identity_file,
            ssh_gateway=ssh_gateway,
            forward_agent=forward_agent or None,
            host_key_verify=host_key_verify,
            ssh_password_ng=password_inputs(ssh_password),
            concurrency=concurrency,
            exit_on_error=exit_on_error,
            inventory=inventory,
        )
        node_inventory = None
        if not config.manual and config.inventory:
            node_inventory = load_inventory(config.inventory)
    except ConfigurationError as e:
        raise _fail(e) from e

    command_str = " ".join(command)
    logger.debug("Starting", query=query, manual=config.manual, command=command_str)

    ssh_command = SSHCommand(
        config,
        query,
        command_str,
        inventory=node_inventory,
        reporter=create_output_reporter(output_format),
    )
    try:
        ssh_command.run()
    except ConfigurationError as e:
        raise _fail(e) from e


def main() -> None:
    """Entry point for the console script."""
    cli()
