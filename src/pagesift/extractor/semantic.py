"""
Semantic-container lookup used by the first extraction stage and by the
selector-based recovery strategy.
"""

from __future__ import annotations

from typing import Optional, Tuple

from pagesift.tree.node import ContentNode, NodePredicate
from pagesift.tree.predicates import attr_equals, tag_in

SEMANTIC_SELECTORS: Tuple[Tuple[str, NodePredicate], ...] = (
    ("article", tag_in("article")),
    ("main", tag_in("main")),
    ('[role="main"]', attr_equals("role", "main")),
    ('[role="article"]', attr_equals("role", "article")),
)


def _text_length(node: ContentNode) -> int:
    return len(node.text_content().strip())


def semantic_query(root: ContentNode, min_length: int = 0) -> Optional[ContentNode]:
    """Clone of the largest element matching the first selector that matches.

    Selectors are tried in order; within one selector the match with the most
    text wins, earliest in document order on ties.
    """
    for _, predicate in SEMANTIC_SELECTORS:
        matches = [node for node in root.select(predicate) if _text_length(node) > min_length]
        if matches:
            return max(matches, key=_text_length).clone()
    return None
