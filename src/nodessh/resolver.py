"""Host resolution for nodessh.

Turns the user's search query (or manual host list) into the list of
``HostTarget`` endpoints that sessions are opened against.
"""

import logging
from collections.abc import Callable

from .config import ToolConfig
from .exceptions import ConfigurationError, ResolutionError
from .inventory import InventoryQuery
from .types import HostTarget, Node

logger = logging.getLogger(__name__)

CLOUD_HOSTNAME_ATTRIBUTE = "cloud.public_hostname"
DEFAULT_ATTRIBUTE = "fqdn"


class HostAttributeSelector:
    """Decides which node attribute names a node's ssh endpoint.

    Order of precedence:
        1. attribute given on the command line
        2. attribute from the config file
        3. ``cloud.public_hostname`` when the node has a non-empty one
        4. ``fqdn``

    Example:
        >>> selector = HostAttributeSelector(attribute_from_config="ipaddress")
        >>> selector.select(Node("web01", {"ipaddress": "10.0.0.1"}))
        'ipaddress'
    """

    def __init__(
        self,
        attribute_from_cli: str | None = None,
        attribute_from_config: str | None = None,
    ) -> None:
        self.attribute_from_cli = attribute_from_cli
        self.attribute_from_config = attribute_from_config

    @classmethod
    def from_config(cls, config: ToolConfig) -> "HostAttributeSelector":
        """Create a selector from the tool configuration."""
        return cls(config.attribute, config.config_attribute)

    def select(self, node: Node) -> str:
        """Return the attribute name to use for this node."""
        if self.attribute_from_cli:
            return self.attribute_from_cli
        if self.attribute_from_config:
            return self.attribute_from_config
        # An empty cloud hostname counts as absent
        if node.get_string(CLOUD_HOSTNAME_ATTRIBUTE):
            return CLOUD_HOSTNAME_ATTRIBUTE
        return DEFAULT_ATTRIBUTE


class InventoryResolver:
    """Resolves the hosts a command will run on.

    In manual mode the raw argument is a whitespace separated host list.
    Otherwise the inventory is searched and each matching node is mapped
    to its endpoint through the HostAttributeSelector.

    Attributes:
        config: Tool configuration
        inventory: Search service (required in query mode)
        selector: Endpoint attribute selector
        warn: Shows the user a warning about skipped nodes (logged if None)
    """

    def __init__(
        self,
        config: ToolConfig,
        inventory: InventoryQuery | None = None,
        selector: HostAttributeSelector | None = None,
        warn: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config
        self.inventory = inventory
        self.selector = selector or HostAttributeSelector.from_config(config)
        self.warn = warn

    def resolve(self, query: str) -> list[HostTarget]:
        """Resolve a query or host list to a non-empty list of targets.

        Raises:
            ResolutionError: If no usable host remains
            ConfigurationError: If query mode is used without an inventory
        """
        if self.config.manual:
            return self.resolve_manual(query)
        return self.resolve_query(query)

    def resolve_manual(self, host_list: str) -> list[HostTarget]:
        """Map a whitespace separated host list to targets without ports."""
        targets = [HostTarget(name, None) for name in host_list.split()]
        if not targets:
            raise ResolutionError("No hosts given in manual host list", query=host_list)
        logger.debug(f"Manual host list resolved to {len(targets)} host(s)")
        return targets

    def resolve_query(self, query: str) -> list[HostTarget]:
        """Search the inventory and map every match to a target."""
        if self.inventory is None:
            raise ConfigurationError(
                "No inventory configured; pass --inventory or use --manual-list"
            )

        nodes = self.inventory.search(query)
        if not nodes:
            raise ResolutionError(f"No nodes returned from search: {query}", query=query)

        targets: list[HostTarget] = []
        for node in nodes:
            target = self.target_for(node)
            if target is None:
                continue
            targets.append(target)

        if not targets:
            count = len(nodes)
            noun = "node" if count == 1 else "nodes"
            raise ResolutionError(
                f"{count} {noun} found, but does not have the required attribute "
                "to establish the connection. Try setting another attribute to "
                "open the connection using --attribute.",
                query=query,
            )

        skipped = len(nodes) - len(targets)
        if skipped:
            message = f"Skipping {skipped} node(s) without a value for the ssh attribute"
            if self.warn is None:
                logger.warning(message)
            else:
                self.warn(message)

        return targets

    def target_for(self, node: Node) -> HostTarget | None:
        """Build the target for one node, or None if it has no endpoint."""
        attribute = self.selector.select(node)
        endpoint = node.get_string(attribute)
        if not endpoint:
            logger.debug(f"Node {node.name} has no value for attribute '{attribute}'")
            return None
        port = node.get_port(self.config.port_attribute)
        logger.debug(f"Node {node.name} resolved to {endpoint} via '{attribute}'")
        return HostTarget(endpoint, port)
