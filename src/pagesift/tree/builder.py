"""
Builds a :class:`ContentNode` tree from captured markup using BeautifulSoup.
"""

from __future__ import annotations

import re
from typing import Dict, Iterator, List, Tuple

from bs4 import BeautifulSoup
from bs4.element import CData, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from .node import ContentNode

DEFAULT_PARSER = "html.parser"

SKIPPED_TAGS = frozenset({"script", "style", "noscript", "template"})
PREFORMATTED_TAGS = frozenset({"pre", "textarea"})
_NON_CONTENT_STRINGS = (Comment, CData, Declaration, Doctype, ProcessingInstruction)

_WHITESPACE = re.compile(r"\s+")
_HIDDEN_STYLE = re.compile(
    r"(?:display\s*:\s*none|visibility\s*:\s*hidden|opacity\s*:\s*0+(?:\.0+)?\s*(?:;|!|$))",
    re.IGNORECASE,
)


def is_hidden(attributes: Dict[str, str]) -> bool:
    """Whether an element is hidden by its own attributes or inline style."""
    if "hidden" in attributes:
        return True
    return bool(_HIDDEN_STYLE.search(attributes.get("style", "")))


def _normalize_attributes(tag: Tag) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    for name, value in tag.attrs.items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        attrs[name.lower()] = "" if value is None else str(value)
    return attrs


def build_tree(markup: str, parser: str = DEFAULT_PARSER) -> ContentNode:
    """Parse ``markup`` into a document-rooted content tree.

    Scripts, styles, comments and inert templates are dropped. Declarative
    shadow roots (``<template shadowrootmode=...>``) are attached to their host
    element as ``shadow_root`` instead.
    """
    soup = BeautifulSoup(markup, parser)
    root = ContentNode.document()

    # Explicit stack of child iterators so deeply nested markup cannot hit the
    # interpreter recursion limit.
    stack: List[Tuple[Iterator, ContentNode, bool]] = [(iter(soup.children), root, False)]
    while stack:
        children, parent, preformatted = stack[-1]
        child = next(children, None)
        if child is None:
            stack.pop()
            continue

        if isinstance(child, Tag):
            name = (child.name or "").lower()
            if name == "template":
                if child.get("shadowrootmode") is not None and not parent.is_fragment_root:
                    shadow = ContentNode.element("#shadow-root")
                    parent.shadow_root = shadow
                    stack.append((iter(child.children), shadow, preformatted))
                continue
            if name in SKIPPED_TAGS:
                continue
            attrs = _normalize_attributes(child)
            node = parent.append(ContentNode.element(name, attrs, hidden=is_hidden(attrs)))
            stack.append((iter(child.children), node, preformatted or name in PREFORMATTED_TAGS))
        elif isinstance(child, NavigableString):
            if isinstance(child, _NON_CONTENT_STRINGS):
                continue
            text = str(child)
            if not preformatted:
                text = _WHITESPACE.sub(" ", text)
            if text:
                parent.append(ContentNode.text_node(text))

    return root


def find_body(root: ContentNode) -> ContentNode:
    """Return the ``<body>`` element, or ``root`` itself for fragments."""
    if root.tag == "body":
        return root
    for node in root.iter_elements():
        if node.tag == "body":
            return node
    return root


def parse_fragment(markup: str, parser: str = DEFAULT_PARSER) -> ContentNode:
    """Parse a fragment such as an extractor's HTML output and return its body."""
    return find_body(build_tree(markup, parser))
