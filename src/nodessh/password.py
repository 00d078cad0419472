"""Password resolution for nodessh.

Two password inputs exist. ``ssh_password_ng`` comes from the command line
(``-P`` with an optional value); ``ssh_password`` is the legacy input set by
callers that embed nodessh. A default may also come from the config file.

Each input is either UNSET (not provided), None (provided without a value),
False (explicitly no password) or a string.
"""

import logging
from collections.abc import Callable
from typing import Any

from .config import ToolConfig
from .types import UNSET

logger = logging.getLogger(__name__)

PasswordPrompt = Callable[[], str]


class PasswordResolver:
    """Decides which password, if any, a session uses.

    The new-style input is used when it was provided at all; otherwise the
    legacy input is evaluated the same way:

    - a string is used verbatim
    - False resolves to the configured default, else False
    - None resolves to the configured default, else to the prompt's answer

    The prompt runs at most once, and only when there is neither an
    explicit value nor a configured default.

    Example:
        >>> resolver = PasswordResolver(prompt=lambda: "typed")
        >>> resolver.resolve(ToolConfig(ssh_password_ng=None))
        'typed'
    """

    def __init__(self, prompt: PasswordPrompt) -> None:
        self.prompt = prompt

    def resolve(self, config: ToolConfig) -> Any:
        """Return the effective password for this invocation."""
        if config.ssh_password_ng is not UNSET:
            source, value = "ssh_password_ng", config.ssh_password_ng
        elif config.ssh_password is not UNSET:
            source, value = "ssh_password", config.ssh_password
        else:
            # Neither input was provided: use the configured default, never prompt
            logger.debug("No password input given, using configured default if any")
            return config.config_password

        if isinstance(value, str):
            logger.debug(f"Using password from {source}")
            return value

        if config.config_password:
            logger.debug(f"{source} is {value!r}, using configured default password")
            return config.config_password

        if value is None:
            logger.debug(f"{source} given without a value, prompting")
            return self.prompt()

        return False

    def configure(self, config: ToolConfig) -> ToolConfig:
        """Return a copy of the config with ``ssh_password`` resolved."""
        return config.with_password(self.resolve(config))
