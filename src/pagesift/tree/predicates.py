"""
Composable node predicates used by filter rules and stage selectors.
"""

from __future__ import annotations

import re
from typing import Optional

from .node import ContentNode, NodePredicate


def tag_in(*tags: str) -> NodePredicate:
    wanted = frozenset(tag.lower() for tag in tags)
    return lambda node: node.tag in wanted


def has_class(*names: str) -> NodePredicate:
    wanted = frozenset(names)
    return lambda node: any(cls in wanted for cls in node.classes)


def class_prefix(*prefixes: str) -> NodePredicate:
    return lambda node: any(cls.startswith(prefixes) for cls in node.classes)


def id_in(*ids: str) -> NodePredicate:
    wanted = frozenset(ids)
    return lambda node: node.id in wanted


def id_prefix(*prefixes: str) -> NodePredicate:
    return lambda node: bool(node.id) and node.id.startswith(prefixes)


def has_attr(name: str) -> NodePredicate:
    return lambda node: name in node.attributes


def attr_equals(name: str, *values: str) -> NodePredicate:
    wanted = frozenset(value.lower() for value in values)
    return lambda node: (node.attributes.get(name) or "").lower() in wanted


def attr_contains(name: str, fragment: str) -> NodePredicate:
    return lambda node: fragment in (node.attributes.get(name) or "")


def token_pattern(*words: str) -> re.Pattern[str]:
    """Regex matching any of ``words`` as a whole class/id token segment."""
    alternatives = "|".join(re.escape(word) for word in words)
    return re.compile(rf"(?:^|[\s_-])(?:{alternatives})(?:$|[\s_-])", re.IGNORECASE)


def class_or_id_matches(pattern: re.Pattern[str]) -> NodePredicate:
    return lambda node: bool(pattern.search(f"{node.attributes.get('class', '')} {node.id}"))


def within(ancestor: NodePredicate, max_depth: Optional[int] = None) -> NodePredicate:
    """Node has an ancestor matching ``ancestor`` (optionally within ``max_depth`` levels)."""

    def _predicate(node: ContentNode) -> bool:
        for depth, parent in enumerate(node.ancestors(), start=1):
            if max_depth is not None and depth > max_depth:
                return False
            if parent.is_element and ancestor(parent):
                return True
        return False

    return _predicate


def any_of(*predicates: NodePredicate) -> NodePredicate:
    return lambda node: any(predicate(node) for predicate in predicates)


def all_of(*predicates: NodePredicate) -> NodePredicate:
    return lambda node: all(predicate(node) for predicate in predicates)


def negate(predicate: NodePredicate) -> NodePredicate:
    return lambda node: not predicate(node)


SEMANTIC_CONTAINER = any_of(tag_in("article", "main", "section"), attr_equals("role", "main", "article"))


def link_density(node: ContentNode) -> float:
    """Anchor text length over total text length (0.0 for empty nodes)."""
    total = len(node.text_content())
    if total == 0:
        return 0.0
    linked = sum(len(anchor.text_content()) for anchor in node.find_all("a"))
    return min(1.0, linked / total)
