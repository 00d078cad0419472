"""Node inventory for nodessh.

The inventory is the search service the resolver queries. Nodes are loaded
from a file and searched with the query language in ``nodessh.query``.
"""

import json
import logging
import os
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml

from .exceptions import InventoryError
from .query import filter_nodes, format_search_summary
from .types import Node

logger = logging.getLogger(__name__)


class InventoryQuery(Protocol):
    """Anything that can answer a node search."""

    def search(self, query: str) -> list[Node]:
        """Return the nodes matching a query."""
        ...


@dataclass
class NodeInventory:
    """An in-memory collection of nodes.

    Example:
        >>> inventory = NodeInventory()
        >>> inventory.add_node(Node("web01", {"fqdn": "web01.example.org"}))
        >>> [n.name for n in inventory.search("fqdn:web*")]
        ['web01']
    """

    nodes: dict[str, Node] = field(default_factory=dict)

    @classmethod
    def from_nodes(cls, nodes: Iterable[Node]) -> "NodeInventory":
        """Build an inventory from an iterable of nodes."""
        inventory = cls()
        for node in nodes:
            inventory.add_node(node)
        return inventory

    def add_node(self, node: Node) -> None:
        """Add a node, replacing any node with the same name."""
        self.nodes[node.name] = node

    def list_nodes(self) -> list[Node]:
        """Get all nodes in insertion order."""
        return list(self.nodes.values())

    def search(self, query: str) -> list[Node]:
        """Return the nodes matching a search query."""
        all_nodes = self.list_nodes()
        matched = filter_nodes(all_nodes, query)
        logger.info(format_search_summary(len(all_nodes), len(matched), query))
        return matched


def load_inventory(inventory_file: str | Path) -> NodeInventory:
    """Load a node inventory, auto-detecting the format.

    Supports three formats:
    - Executable scripts: run with --list, parse JSON output
    - JSON files
    - YAML files

    Both file formats hold either a top-level ``nodes`` key or the node
    map directly. Nodes are a mapping of name to attributes, or a list of
    attribute mappings that each carry a ``name``.

    Args:
        inventory_file: Path to inventory file or executable script

    Returns:
        NodeInventory (possibly empty)

    Raises:
        InventoryError: If the file is missing, unreadable or malformed

    Example:
        >>> inventory = load_inventory("nodes.yml")
        >>> inventory = load_inventory("./cmdb_inventory.py")
    """
    path = Path(inventory_file).expanduser()
    if not path.exists():
        raise InventoryError(f"Inventory not found: {path}")

    # Executable script — run with --list
    if os.access(path, os.X_OK) and path.suffix not in (".yml", ".yaml", ".json"):
        return load_inventory_script(path)

    try:
        content = path.read_text()
    except OSError as e:
        raise InventoryError(f"Cannot read inventory {path}: {e}") from e

    stripped = content.lstrip()
    try:
        if stripped.startswith("{") or stripped.startswith("["):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise InventoryError(f"Invalid inventory {path}: {e}") from e

    return load_inventory_data(data)


def load_inventory_script(script_path: str | Path) -> NodeInventory:
    """Run an inventory script and load its JSON output.

    Raises:
        InventoryError: If the script fails or prints invalid JSON
    """
    path = Path(script_path)
    try:
        result = subprocess.run(
            [str(path), "--list"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise InventoryError(f"Inventory script {path} failed: {e}") from e

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise InventoryError(f"Inventory script {path} printed invalid JSON: {e}") from e

    return load_inventory_data(data)


def load_inventory_data(data: Any) -> NodeInventory:
    """Build an inventory from parsed JSON or YAML data.

    Note:
        Accepted structures:

            nodes:
              web01:
                fqdn: web01.example.org
                ipaddress: 10.0.0.1
                cloud:
                  public_hostname: ec2-10-0-0-1.compute-1.amazonaws.com

            nodes:
              - name: web01
                fqdn: web01.example.org

        The ``nodes`` wrapper is optional.

    Raises:
        InventoryError: If the structure is not one of the above
    """
    if data is None:
        return NodeInventory()

    if isinstance(data, Mapping) and "nodes" in data:
        data = data["nodes"]
        if data is None:
            return NodeInventory()

    inventory = NodeInventory()

    if isinstance(data, Mapping):
        for name, attributes in data.items():
            inventory.add_node(_node_from_attributes(str(name), attributes))
    elif isinstance(data, list):
        for entry in data:
            if not isinstance(entry, Mapping) or "name" not in entry:
                raise InventoryError(f"Inventory list entries need a 'name': {entry!r}")
            attributes = {k: v for k, v in entry.items() if k != "name"}
            inventory.add_node(_node_from_attributes(str(entry["name"]), attributes))
    else:
        raise InventoryError(
            f"Inventory must be a mapping or a list of nodes, got {type(data).__name__}"
        )

    logger.debug(f"Loaded {len(inventory.nodes)} node(s) from inventory")
    return inventory


def _node_from_attributes(name: str, attributes: Any) -> Node:
    if attributes is None:
        attributes = {}
    if not isinstance(attributes, Mapping):
        raise InventoryError(f"Attributes of node '{name}' must be a mapping")
    return Node(name=name, attributes=dict(attributes))
