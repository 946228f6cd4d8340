"""
Readability-based HTML content extractor.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

import structlog
from lxml import etree
from lxml import html as lxml_html
from readability import Document

from .models import ExtractorOutput
from .presets import ExtractorPreset, preset_for_url

logger = structlog.get_logger(__name__)

EXCERPT_LENGTH = 200


class ReadabilityExtractor:
    """Extractor using readability-lxml, tuned per URL through presets."""

    name = "readability"

    def __init__(self) -> None:
        self.config = {
            "min_text_length": 25,
            "positive_keywords": [
                "article",
                "body",
                "content",
                "entry",
                "hentry",
                "main",
                "page",
                "post",
                "text",
                "blog",
                "story",
            ],
            "negative_keywords": [
                "combx",
                "comment",
                "com-",
                "contact",
                "foot",
                "footer",
                "footnote",
                "masthead",
                "media",
                "meta",
                "outbrain",
                "promo",
                "related",
                "scroll",
                "shoutbox",
                "sidebar",
                "sponsor",
                "shopping",
                "tags",
                "tool",
                "widget",
            ],
        }
        self.logger = logger.bind(component="readability_extractor")

    async def extract(self, html: str, *, url: str | None = None) -> ExtractorOutput:
        """Extract content using readability-lxml.

        Args:
            html: HTML content to extract from
            url: Optional URL used to select a preset

        Returns:
            ExtractorOutput with an HTML fragment, empty when nothing was found
        """
        if not html.strip():
            return ExtractorOutput(content=None)

        try:
            # readability is CPU-bound
            loop = asyncio.get_event_loop()
            return await loop.run_in_executor(None, self._extract_sync, html, url)
        except Exception as e:
            self.logger.warning("readability_extraction_failed", error=str(e), url=url)
            return ExtractorOutput(content=None)

    def _extract_sync(self, html: str, url: Optional[str]) -> ExtractorOutput:
        preset = preset_for_url(url)
        output = self._run(html, url, preset)
        if len(self._html_to_text(output.content or "")) > preset.char_threshold:
            return output

        lenient = preset.lenient()
        self.logger.debug(
            "readability_lenient_retry",
            preset=preset.name,
            threshold=preset.char_threshold,
            lenient_threshold=lenient.char_threshold,
        )
        retried = self._run(html, url, lenient)
        return retried if not retried.is_empty else output

    def _run(self, html: str, url: Optional[str], preset: ExtractorPreset) -> ExtractorOutput:
        doc = Document(
            html,
            url=url,
            min_text_length=self.config["min_text_length"],
            retry_length=preset.char_threshold,
            positive_keywords=self._positive_keywords(preset),
            negative_keywords=self._negative_keywords(preset),
        )
        content_html = doc.summary(html_partial=True)
        text = self._html_to_text(content_html)
        title = doc.short_title() or doc.title()
        return ExtractorOutput(
            content=content_html if text else None,
            title=title or None,
            excerpt=text[:EXCERPT_LENGTH] or None,
            byline=self._byline(html),
        )

    def _positive_keywords(self, preset: ExtractorPreset) -> List[str]:
        keywords = list(self.config["positive_keywords"])
        keywords.extend(cls for cls in preset.classes_to_preserve if cls not in keywords)
        return keywords

    def _negative_keywords(self, preset: ExtractorPreset) -> List[str]:
        preserved = {cls.lower() for cls in preset.classes_to_preserve}
        return [keyword for keyword in self.config["negative_keywords"] if keyword not in preserved]

    @staticmethod
    def _byline(html: str) -> Optional[str]:
        try:
            doc = lxml_html.fromstring(html)
        except (etree.ParserError, ValueError):
            return None
        for value in doc.xpath("//meta[@name='author']/@content"):
            if value.strip():
                return value.strip()
        return None

    @staticmethod
    def _html_to_text(html: str) -> str:
        """Convert HTML to plain text."""
        if not html or not html.strip():
            return ""
        try:
            doc = lxml_html.fromstring(html)
        except (etree.ParserError, ValueError):
            return ""
        text = etree.tostring(doc, method="text", encoding="unicode")
        return " ".join(text.split())
