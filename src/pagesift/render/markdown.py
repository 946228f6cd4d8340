"""
Content-tree to markdown conversion.

``MarkdownifyRenderer`` is the default rendering collaborator. ``simple_markdown``
is a dependency-free walker over the content tree used when the renderer
itself faults.
"""

from __future__ import annotations

import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from markdownify import MarkdownConverter

from pagesift.tree.node import ContentNode

HEADING_LEVELS = {f"h{level}": level for level in range(1, 7)}
BLOCK_TAGS = frozenset(
    {
        "#document",
        "address",
        "article",
        "aside",
        "blockquote",
        "body",
        "details",
        "dl",
        "div",
        "figure",
        "footer",
        "header",
        "hr",
        "html",
        "li",
        "main",
        "nav",
        "ol",
        "p",
        "pre",
        "section",
        "table",
        "ul",
        *HEADING_LEVELS,
    }
)

_LANGUAGE_CLASS = re.compile(r"(?:language|lang)-([\w+#.-]+)")
_WHITESPACE = re.compile(r"\s+")


def _code_language(el) -> str:
    """Fence language for a ``<pre>`` from its own or its ``<code>`` child's class."""
    candidates = [el] + list(el.find_all("code", limit=1))
    for candidate in candidates:
        classes = candidate.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        for cls in classes:
            match = _LANGUAGE_CLASS.match(cls)
            if match:
                return match.group(1)
    return ""


def absolutize_urls(node: ContentNode, base_url: Optional[str]) -> ContentNode:
    """Resolve relative ``href``/``src`` attributes in place (callers pass a clone)."""
    if not base_url or not urlparse(base_url).scheme:
        return node
    for element in node.iter_elements(include_self=True):
        for attr in ("href", "src"):
            value = element.attributes.get(attr)
            if value and not value.startswith(("#", "data:", "mailto:", "javascript:")) and not urlparse(value).netloc:
                element.attributes[attr] = urljoin(base_url, value)
    return node


class MarkdownifyRenderer:
    """Renders a content tree with markdownify (ATX headings, ``-`` bullets, fenced code)."""

    name = "markdownify"

    def __init__(self, escape_underscores: bool = False) -> None:
        self._options = {
            "heading_style": "atx",
            "bullets": "-",
            "code_language_callback": _code_language,
            "escape_underscores": escape_underscores,
        }

    def render(self, node: ContentNode, base_url: Optional[str] = None) -> str:
        prepared = absolutize_urls(node.clone(), base_url)
        markdown = MarkdownConverter(**self._options).convert(prepared.outer_html())
        return markdown.strip() + "\n" if markdown.strip() else ""


# --- built-in fallback ---


def simple_markdown(node: ContentNode) -> str:
    """Plain tree walk producing headings, paragraphs, lists, code and tables."""
    blocks: List[str] = []
    _render_blocks(node, blocks)
    text = "\n\n".join(block for block in blocks if block.strip())
    return text.strip() + "\n" if text.strip() else ""


def _render_blocks(node: ContentNode, blocks: List[str]) -> None:
    inline_run: List[str] = []

    def flush() -> None:
        paragraph = _WHITESPACE.sub(" ", "".join(inline_run)).strip()
        if paragraph:
            blocks.append(paragraph)
        inline_run.clear()

    for child in node.children:
        if child.is_text or child.tag not in BLOCK_TAGS:
            inline_run.append(_inline(child))
            continue
        flush()
        tag = child.tag
        if tag in HEADING_LEVELS:
            blocks.append("#" * HEADING_LEVELS[tag] + " " + _inline_text(child))
        elif tag == "p":
            blocks.append(_inline_text(child))
        elif tag == "pre":
            blocks.append("```\n" + child.text_content().strip("\n") + "\n```")
        elif tag in ("ul", "ol"):
            items = [li for li in child.element_children if li.tag == "li"]
            lines = [
                ("- " if tag == "ul" else f"{index}. ") + _inline_text(item)
                for index, item in enumerate(items, start=1)
            ]
            blocks.append("\n".join(lines))
        elif tag == "blockquote":
            quoted = simple_markdown(child).strip()
            blocks.append("\n".join(f"> {line}" if line else ">" for line in quoted.splitlines()))
        elif tag == "table":
            blocks.append(_table(child))
        elif tag == "hr":
            blocks.append("---")
        else:
            _render_blocks(child, blocks)
    flush()


def _inline_text(node: ContentNode) -> str:
    return _WHITESPACE.sub(" ", "".join(_inline(child) for child in node.children)).strip()


def _inline(node: ContentNode) -> str:
    if node.is_text:
        return node.text
    tag = node.tag
    if tag == "br":
        return " "
    if tag == "img":
        src = node.get("src", "")
        return f"![{node.get('alt', '')}]({src})" if src else ""
    text = _inline_text(node)
    if not text:
        return ""
    if tag == "a" and node.get("href"):
        return f"[{text}]({node.get('href')})"
    if tag in ("strong", "b"):
        return f"**{text}**"
    if tag in ("em", "i"):
        return f"*{text}*"
    if tag == "code":
        return f"`{text}`"
    return text


def _table(table: ContentNode) -> str:
    rows = [row for row in table.iter_elements() if row.tag == "tr"]
    lines = []
    for index, row in enumerate(rows):
        cells = [_inline_text(cell).replace("|", "\\|") for cell in row.element_children if cell.tag in ("td", "th")]
        lines.append("| " + " | ".join(cells) + " |")
        if index == 0:
            lines.append("|" + "|".join(" --- " for _ in cells) + "|")
    return "\n".join(lines)
