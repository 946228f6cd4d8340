"""
Collaborator interfaces consumed by the extraction pipeline.

The pipeline ships default implementations for each of these, but only ever
talks to them through the protocols below.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pagesift.extractor.models import ExtractorOutput, PluginResult
    from pagesift.models import ProcessingResult
    from pagesift.tree.node import ContentNode


@runtime_checkable
class MarkdownRenderer(Protocol):
    """Cleaned content tree to markdown text."""

    name: str

    def render(self, node: ContentNode, base_url: Optional[str] = None) -> str: ...


@runtime_checkable
class ContentExtractor(Protocol):
    """General-purpose main-content extractor."""

    name: str

    async def extract(self, html: str, *, url: str | None = None) -> ExtractorOutput:
        """Extract content from HTML string.

        Args:
            html: HTML content to extract from
            url: Optional URL used to select extractor presets

        Returns:
            ExtractorOutput whose ``content`` is an HTML fragment, or empty
        """
        ...


@runtime_checkable
class ResultCache(Protocol):
    """Persistent cache of processing results keyed by content+config fingerprint."""

    async def get(self, key: str) -> Optional[ProcessingResult]: ...

    async def set(self, key: str, result: ProcessingResult) -> None: ...

    async def clear(self) -> None: ...


@runtime_checkable
class SiteExtractor(Protocol):
    """Optional Stage-0 plugin for sites the general pipeline handles poorly."""

    name: str

    def can_handle(self, url: str) -> bool: ...

    async def extract(self, tree: ContentNode, url: str) -> Optional[PluginResult]:
        """Return a scored result, or ``None`` when the page is not recognised."""
        ...
