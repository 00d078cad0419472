"""Tests for search query matching."""

import pytest

from nodessh.exceptions import QuerySyntaxError
from nodessh.query import (
    Term,
    filter_nodes,
    format_search_summary,
    match_node,
    parse_query,
)
from nodessh.types import Node


@pytest.fixture
def nodes():
    return [
        Node("web01", {"fqdn": "web01.example.org", "roles": ["web", "base"],
                       "chef_environment": "prod"}),
        Node("web02", {"fqdn": "web02.example.org", "roles": ["web"],
                       "chef_environment": "staging"}),
        Node("db01", {"fqdn": "db01.example.org", "roles": ["db"],
                      "chef_environment": "prod",
                      "cloud": {"provider": "ec2", "public_ipv4": "54.1.2.3"}}),
    ]


def names(nodes):
    return [n.name for n in nodes]


class TestParseQuery:
    """Tests for parse_query."""

    def test_empty_query(self):
        assert parse_query("") == []

    def test_single_term(self):
        assert parse_query("roles:web") == [[Term("roles", "web")]]

    def test_bare_name(self):
        assert parse_query("web*") == [[Term(None, "web*")]]

    def test_negation_forms(self):
        assert parse_query("-roles:db") == [[Term("roles", "db", negated=True)]]
        assert parse_query("NOT roles:db") == [[Term("roles", "db", negated=True)]]

    def test_or_groups(self):
        groups = parse_query("roles:web AND chef_environment:prod OR roles:db")
        assert groups == [
            [Term("roles", "web"), Term("chef_environment", "prod")],
            [Term("roles", "db")],
        ]

    def test_quoted_value(self):
        assert parse_query('name:"web 01"') == [[Term("name", "web 01")]]

    @pytest.mark.parametrize("query", ["roles:", "OR roles:web", "roles:web OR",
                                       "roles:web NOT", "AND roles:web", "'unterminated"])
    def test_invalid(self, query):
        with pytest.raises(QuerySyntaxError):
            parse_query(query)


class TestFilterNodes:
    """Tests for filter_nodes."""

    def test_match_all(self, nodes):
        assert names(filter_nodes(nodes, "*:*")) == ["web01", "web02", "db01"]
        assert names(filter_nodes(nodes, "")) == ["web01", "web02", "db01"]

    def test_list_attribute(self, nodes):
        assert names(filter_nodes(nodes, "roles:web")) == ["web01", "web02"]

    def test_glob_and_case_insensitive(self, nodes):
        assert names(filter_nodes(nodes, "fqdn:WEB*")) == ["web01", "web02"]

    def test_nested_attribute(self, nodes):
        assert names(filter_nodes(nodes, "cloud.provider:ec2")) == ["db01"]

    def test_and_by_default(self, nodes):
        assert names(filter_nodes(nodes, "roles:web chef_environment:prod")) == ["web01"]

    def test_negation(self, nodes):
        assert names(filter_nodes(nodes, "roles:web -chef_environment:staging")) == ["web01"]

    def test_or(self, nodes):
        assert names(filter_nodes(nodes, "name:nothing OR roles:db")) == ["db01"]
        assert names(filter_nodes(nodes, "web02 OR roles:db")) == ["web02", "db01"]

    def test_any_attribute(self, nodes):
        assert names(filter_nodes(nodes, "*:54.1.2.*")) == ["db01"]

    def test_attribute_exists(self, nodes):
        assert names(filter_nodes(nodes, "cloud:*")) == ["db01"]

    def test_missing_attribute_never_matches(self, nodes):
        assert filter_nodes(nodes, "platform:ubuntu") == []

    def test_match_node_with_no_groups(self):
        assert match_node(Node("x"), []) is True


def test_format_search_summary():
    assert format_search_summary(3, 3, "*:*") == "All 3 node(s) matched search: *:*"
    assert format_search_summary(3, 1, "roles:db") == "Search 'roles:db': 1/3 nodes matched"
