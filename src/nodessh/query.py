"""Search query matching for node inventories.

Supports a small subset of the usual inventory search syntax:

- Match everything: ``*:*`` (or an empty query)
- Attribute globs: ``roles:web*``, ``cloud.provider:ec2``
- Any attribute: ``*:10.0.0.*``
- Node name globs: ``web0?`` (no colon)
- Negation: ``-platform:windows`` or ``NOT platform:windows``
- Boolean operators: ``role:web AND env:prod OR role:db``

Terms next to each other are AND-ed; AND binds tighter than OR.
Matching is case-insensitive.
"""

import fnmatch
import shlex
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import QuerySyntaxError
from .types import Node

MATCH_ALL = "*:*"


@dataclass(frozen=True)
class Term:
    """A single ``attribute:pattern`` term.

    Attributes:
        attribute: Dotted attribute path, ``*`` for any, None for node name
        pattern: Glob pattern matched against the attribute value
        negated: Whether the term excludes matching nodes
    """

    attribute: str | None
    pattern: str
    negated: bool = False


def parse_query(query: str) -> list[list[Term]]:
    """Parse a query into OR-ed groups of AND-ed terms.

    Args:
        query: Search query string

    Returns:
        List of term groups. An empty list matches every node.

    Raises:
        QuerySyntaxError: On unbalanced quotes, dangling operators or
            empty attribute patterns
    """
    try:
        tokens = shlex.split(query or "")
    except ValueError as e:
        raise QuerySyntaxError(f"Invalid search query {query!r}: {e}") from e

    if not tokens:
        return []

    groups: list[list[Term]] = [[]]
    negate_next = False

    for token in tokens:
        keyword = token.upper()
        if keyword == "AND":
            if not groups[-1] or negate_next:
                raise QuerySyntaxError(f"Misplaced AND in search query {query!r}")
            continue
        if keyword == "OR":
            if not groups[-1] or negate_next:
                raise QuerySyntaxError(f"Misplaced OR in search query {query!r}")
            groups.append([])
            continue
        if keyword == "NOT":
            negate_next = not negate_next
            continue

        negated = negate_next
        negate_next = False
        if token.startswith("-") and len(token) > 1:
            negated = not negated
            token = token[1:]

        if ":" in token:
            attribute, _, pattern = token.partition(":")
            if not pattern:
                raise QuerySyntaxError(f"Missing value for '{attribute}' in search query {query!r}")
            groups[-1].append(Term(attribute or "*", pattern, negated))
        else:
            groups[-1].append(Term(None, token, negated))

    if negate_next or not groups[-1]:
        raise QuerySyntaxError(f"Search query {query!r} ends with an operator")

    return groups


def _leaf_values(value: Any) -> Iterable[Any]:
    """Yield every scalar value inside a nested attribute structure."""
    if isinstance(value, Mapping):
        for item in value.values():
            yield from _leaf_values(item)
    elif isinstance(value, (list, tuple, set)):
        for item in value:
            yield from _leaf_values(item)
    elif value is not None:
        yield value


def _glob(value: Any, pattern: str) -> bool:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return fnmatch.fnmatchcase(str(value).lower(), pattern.lower())


def match_term(node: Node, term: Term) -> bool:
    """Check a single term against a node, honouring negation."""
    if term.attribute is None:
        matched = _glob(node.name, term.pattern)
    elif term.attribute == "*":
        if term.pattern == "*":
            matched = True
        else:
            candidates = [node.name, *_leaf_values(node.attributes)]
            matched = any(_glob(v, term.pattern) for v in candidates)
    else:
        value = node.lookup(term.attribute)
        if value is None:
            matched = False
        elif term.pattern == "*":
            matched = True
        else:
            matched = any(_glob(v, term.pattern) for v in _leaf_values(value))

    return matched != term.negated


def match_node(node: Node, groups: list[list[Term]]) -> bool:
    """Check whether a node satisfies a parsed query."""
    if not groups:
        return True
    return any(all(match_term(node, term) for term in group) for group in groups)


def filter_nodes(nodes: Iterable[Node], query: str) -> list[Node]:
    """Return the nodes matching a query, preserving their order.

    Examples:
        # Everything
        filter_nodes(nodes, "*:*")

        # Web servers that are not in staging
        filter_nodes(nodes, "roles:web -chef_environment:staging")

        # Either role
        filter_nodes(nodes, "roles:web OR roles:db")
    """
    groups = parse_query(query)
    return [node for node in nodes if match_node(node, groups)]


def format_search_summary(total: int, matched: int, query: str) -> str:
    """Format a one-line summary of a search.

    Args:
        total: Number of nodes in the inventory
        matched: Number of nodes matching the query
        query: The query that was run

    Returns:
        Human-readable summary string
    """
    if matched == total:
        return f"All {total} node(s) matched search: {query}"
    return f"Search '{query}': {matched}/{total} nodes matched"
