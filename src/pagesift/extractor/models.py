"""
Data models for extractor and site-plugin outputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pagesift.tree.node import ContentNode


@dataclass(slots=True, frozen=True)
class ExtractorOutput:
    """Result of a general-purpose extractor run. ``content`` is an HTML fragment."""

    content: str | None
    title: str | None = None
    excerpt: str | None = None
    byline: str | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.content and self.content.strip())


@dataclass(slots=True, frozen=True)
class PluginResult:
    """Stage-0 plugin output sharing the scoring engine's ``{score, content}`` contract."""

    score: int
    content: ContentNode
    strategy: str = ""
    metadata: Any = None

    def __post_init__(self) -> None:
        """Validate the result."""
        if not (0 <= self.score <= 100):
            raise ValueError("Score must be between 0 and 100")

    @property
    def text_length(self) -> int:
        return len(self.content.text_content().strip())
