"""
PageSift content tree.

A small, platform-neutral tree (kind, tag, attributes, text, children) built
from captured markup, plus composable predicates for selecting nodes.
"""

from .builder import build_tree, find_body, parse_fragment
from .node import ContentNode, NodeKind, NodePredicate

__all__ = ["ContentNode", "NodeKind", "NodePredicate", "build_tree", "find_body", "parse_fragment"]
