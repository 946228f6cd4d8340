"""
Final quality assessment of rendered markdown against its source tree.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from pagesift.tree.node import ContentNode

from .metrics import HEADING_TAGS

ERROR_PENALTY = 20
WARNING_PENALTY = 5

_MARKDOWN_HEADING = re.compile(r"^#{1,6}\s", re.MULTILINE)
_HTML_TAG = re.compile(r"</?[a-zA-Z][a-zA-Z0-9-]*(?:\s[^<>]*)?>")
_EXCESSIVE_NEWLINES = re.compile(r"\n{4,}")


def assess_output_quality(
    markdown: str,
    source: Optional[ContentNode],
    errors: Sequence[str] = (),
    warnings: Sequence[str] = (),
) -> int:
    """Score 0-100 for the final markdown.

    Starts at 100 and subtracts for accumulated errors and warnings, extreme
    reduction from the source text, lost headings, leaked HTML tags and runs of
    blank lines.
    """
    score = 100
    score -= ERROR_PENALTY * len(errors)
    score -= WARNING_PENALTY * len(warnings)

    source_length = len(source.text_content()) if source is not None else 0
    if source_length:
        ratio = len(markdown) / source_length
        if ratio < 0.1:
            score -= 30
        elif ratio < 0.3:
            score -= 15

    source_headings = sum(1 for node in source.iter_elements() if node.tag in HEADING_TAGS) if source else 0
    if source_headings:
        kept = len(_MARKDOWN_HEADING.findall(markdown))
        if kept < source_headings * 0.5:
            score -= 20

    if _HTML_TAG.search(markdown):
        score -= 15
    if _EXCESSIVE_NEWLINES.search(markdown):
        score -= 10

    return max(0, min(100, score))
