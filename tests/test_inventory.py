"""Tests for node inventory loading and search."""

import json
import stat

import pytest

from nodessh.exceptions import InventoryError
from nodessh.inventory import (
    NodeInventory,
    load_inventory,
    load_inventory_data,
)
from nodessh.types import Node


class TestNodeInventory:
    """Tests for the NodeInventory container."""

    def test_add_node(self):
        inventory = NodeInventory()
        inventory.add_node(Node("web01", {"fqdn": "web01.example.org"}))
        assert inventory.nodes["web01"].lookup("fqdn") == "web01.example.org"
        assert "missing" not in inventory.nodes

    def test_search_preserves_order(self):
        inventory = NodeInventory.from_nodes(
            [Node("b", {"role": "web"}), Node("a", {"role": "web"}), Node("c", {"role": "db"})]
        )
        assert [n.name for n in inventory.search("role:web")] == ["b", "a"]

    def test_search_no_match(self):
        inventory = NodeInventory.from_nodes([Node("a", {"role": "db"})])
        assert inventory.search("role:web") == []


class TestLoadInventoryData:
    """Tests for the accepted inventory structures."""

    def test_mapping_under_nodes_key(self):
        inventory = load_inventory_data(
            {"nodes": {"web01": {"fqdn": "web01.example.org"}, "web02": None}}
        )
        assert [n.name for n in inventory.list_nodes()] == ["web01", "web02"]
        assert inventory.nodes["web02"].attributes == {}

    def test_top_level_mapping(self):
        inventory = load_inventory_data({"web01": {"ipaddress": "10.0.0.1"}})
        assert inventory.nodes["web01"].lookup("ipaddress") == "10.0.0.1"

    def test_list_of_nodes(self):
        inventory = load_inventory_data(
            {"nodes": [{"name": "web01", "fqdn": "web01.example.org"}]}
        )
        node = inventory.nodes["web01"]
        assert node.attributes == {"fqdn": "web01.example.org"}

    def test_empty(self):
        assert load_inventory_data(None).list_nodes() == []
        assert load_inventory_data({"nodes": None}).list_nodes() == []

    def test_list_entry_without_name(self):
        with pytest.raises(InventoryError):
            load_inventory_data([{"fqdn": "web01.example.org"}])

    def test_non_mapping_attributes(self):
        with pytest.raises(InventoryError):
            load_inventory_data({"web01": "10.0.0.1"})

    def test_wrong_top_level_type(self):
        with pytest.raises(InventoryError):
            load_inventory_data("web01")


class TestLoadInventory:
    """Tests for loading inventories from disk."""

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "nodes.yml"
        path.write_text(
            "nodes:\n"
            "  web01:\n"
            "    fqdn: web01.example.org\n"
            "    cloud:\n"
            "      public_hostname: ec2-10-0-0-1.compute-1.amazonaws.com\n"
        )
        inventory = load_inventory(path)
        node = inventory.nodes["web01"]
        assert node.lookup("cloud.public_hostname") == "ec2-10-0-0-1.compute-1.amazonaws.com"

    def test_json_file(self, tmp_path):
        path = tmp_path / "nodes.json"
        path.write_text(json.dumps({"nodes": {"db01": {"ipaddress": "10.0.0.3"}}}))
        inventory = load_inventory(str(path))
        assert inventory.nodes["db01"].lookup("ipaddress") == "10.0.0.3"

    def test_executable_script(self, tmp_path):
        script = tmp_path / "inventory_script"
        script.write_text(
            "#!/bin/sh\n"
            "echo '{\"nodes\": {\"app01\": {\"fqdn\": \"app01.example.org\"}}}'\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR)
        inventory = load_inventory(script)
        assert inventory.nodes["app01"].lookup("fqdn") == "app01.example.org"

    def test_failing_script(self, tmp_path):
        script = tmp_path / "broken_script"
        script.write_text("#!/bin/sh\nexit 3\n")
        script.chmod(script.stat().st_mode | stat.S_IXUSR)
        with pytest.raises(InventoryError):
            load_inventory(script)

    def test_missing_file(self, tmp_path):
        with pytest.raises(InventoryError, match="not found"):
            load_inventory(tmp_path / "missing.yml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "nodes.yml"
        path.write_text("nodes: [unclosed\n")
        with pytest.raises(InventoryError, match="Invalid inventory"):
            load_inventory(path)
