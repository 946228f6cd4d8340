"""
Markdown clean-up applied after rendering.

Every prose transformation skips fenced code blocks; code is only re-spaced
so that fences sit on their own paragraphs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Tuple

import structlog

from pagesift.config.config import PostProcessingConfig

logger = structlog.get_logger(__name__)

_FENCE = re.compile(r"^\s{0,3}(```|~~~)")
_HEADING = re.compile(r"^(#{1,6})[ \t]*(\S.*?)(?:[ \t]+#+)?[ \t]*$")
_RULE = re.compile(r"^\s*([*_-])(?:\s*\1){2,}\s*$")
_BULLET = re.compile(r"^(\s*)[*+-][ \t]+(?=\S)")
_NUMBERED = re.compile(r"^(\s*)(\d+)\.[ \t]+(?=\S)")
_PROTOCOL_RELATIVE = re.compile(r"\]\(//")
_EMPTY_LINK = re.compile(r"(?<!!)\[([^\]]*)\]\(\s*\)")
_EMPTY_IMAGE = re.compile(r"!\[[^\]]*\]\(\s*\)")
_IMAGE_NO_ALT = re.compile(r"!\[\]\(([^)\s]+)")
_NON_PRINTABLE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\x7f\u200b\ufeff]")
_SLUG_STRIP = re.compile(r"[^\w\- ]")

Segment = Tuple[bool, List[str]]


@dataclass
class PostProcessResult:
    markdown: str
    improvements: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def split_fenced(markdown: str) -> List[Segment]:
    """Split into ``(is_code, lines)`` segments. An unterminated fence runs to the end."""
    segments: List[Segment] = []
    buffer: List[str] = []
    fence = ""
    for line in markdown.split("\n"):
        match = _FENCE.match(line)
        if not fence and match:
            if buffer:
                segments.append((False, buffer))
            buffer = [line]
            fence = match.group(1)
        elif fence and line.strip().startswith(fence):
            buffer.append(line)
            segments.append((True, buffer))
            buffer = []
            fence = ""
        else:
            buffer.append(line)
    if buffer:
        segments.append((bool(fence), buffer))
    return segments


def join_segments(segments: List[Segment]) -> str:
    """Re-join segments, keeping code fences on their own paragraphs."""
    lines: List[str] = []
    after_code = False
    for is_code, segment in segments:
        if is_code and lines and lines[-1].strip():
            lines.append("")
        elif after_code and segment and segment[0].strip():
            lines.append("")
        lines.extend(segment)
        after_code = is_code
    return "\n".join(lines)


def slugify(text: str) -> str:
    return _SLUG_STRIP.sub("", text.lower()).strip().replace(" ", "-")


class MarkdownPostProcessor:
    """Normalizes whitespace, headings, lists, links and images in rendered markdown."""

    def __init__(self, config: Optional[PostProcessingConfig] = None) -> None:
        self.config = config or PostProcessingConfig()
        self.logger = logger.bind(component="post_processor")

    def process(self, markdown: str, title: Optional[str] = None, url: Optional[str] = None) -> PostProcessResult:
        result = PostProcessResult(markdown=markdown)
        if not markdown.strip():
            result.markdown = ""
            return result

        text = markdown.replace("\r\n", "\n").replace("\r", "\n")
        segments = split_fenced(text)

        self._map_prose(segments, self._clean_whitespace, result, "Cleaned whitespace")
        self._fix_headings(segments, result)
        self._map_prose(segments, self._normalize_lists, result, "Normalized list markers")
        self._map_prose(segments, self._upgrade_protocol_relative, result, "Upgraded protocol-relative links")
        self._fix_links_and_images(segments, result)

        text = join_segments(segments)
        text = self._limit_blank_lines(text)

        if self.config.generate_toc:
            text = self._add_table_of_contents(text, result)
        if self.config.include_citation and url:
            text = text.rstrip("\n") + self._citation(title or url, url)
            result.improvements.append("Added citation")

        text = _NON_PRINTABLE.sub("", text).strip()
        result.markdown = text + "\n" if text else ""
        self.logger.debug("post_processed", improvements=len(result.improvements), warnings=len(result.warnings))
        return result

    # --- steps ---

    @staticmethod
    def _map_prose(
        segments: List[Segment], transform: Callable[[str], str], result: PostProcessResult, improvement: str
    ) -> None:
        changed = False
        for index, (is_code, lines) in enumerate(segments):
            if is_code:
                continue
            updated = [transform(line) for line in lines]
            if updated != lines:
                changed = True
                segments[index] = (False, updated)
        if changed:
            result.improvements.append(improvement)

    @staticmethod
    def _clean_whitespace(line: str) -> str:
        return line.replace("\t", "    ").rstrip()

    @staticmethod
    def _upgrade_protocol_relative(line: str) -> str:
        return _PROTOCOL_RELATIVE.sub("](https://", line)

    @staticmethod
    def _normalize_lists(line: str) -> str:
        if _RULE.match(line):
            return line
        line = _BULLET.sub(r"\1- ", line)
        return _NUMBERED.sub(r"\1\2. ", line)

    def _fix_headings(self, segments: List[Segment], result: PostProcessResult) -> None:
        current_level = 0
        fixed_hierarchy = False
        for index, (is_code, lines) in enumerate(segments):
            if is_code:
                continue
            output: List[str] = []
            for line in lines:
                match = _HEADING.match(line)
                if not match:
                    output.append(line)
                    continue
                level = len(match.group(1))
                if level > current_level + 1:
                    level = current_level + 1
                    fixed_hierarchy = True
                current_level = level
                if output and output[-1].strip():
                    output.append("")
                output.append("#" * level + " " + match.group(2))
                output.append("")
            segments[index] = (False, output)
        if fixed_hierarchy:
            result.improvements.append("Fixed heading hierarchy")

    def _fix_links_and_images(self, segments: List[Segment], result: PostProcessResult) -> None:
        empty_links = 0
        empty_images = 0
        for index, (is_code, lines) in enumerate(segments):
            if is_code:
                continue
            output = []
            for line in lines:
                line, images = _EMPTY_IMAGE.subn("", line)
                line, links = _EMPTY_LINK.subn(r"\1", line)
                line = _IMAGE_NO_ALT.sub(r"![Image](\1", line)
                empty_images += images
                empty_links += links
                output.append(line)
            segments[index] = (False, output)
        if empty_links:
            result.warnings.append(f"Found {empty_links} links with empty URLs")
        if empty_images:
            result.improvements.append(f"Removed {empty_images} images without a source")

    def _limit_blank_lines(self, text: str) -> str:
        limit = self.config.max_consecutive_newlines
        pattern = re.compile(r"\n{%d,}" % (limit + 1))
        segments = split_fenced(text)
        for index, (is_code, lines) in enumerate(segments):
            if not is_code:
                segments[index] = (False, pattern.sub("\n" * limit, "\n".join(lines)).split("\n"))
        return join_segments(segments)

    def _add_table_of_contents(self, text: str, result: PostProcessResult) -> str:
        headings = []
        for is_code, lines in split_fenced(text):
            if is_code:
                continue
            for line in lines:
                match = _HEADING.match(line)
                if match:
                    headings.append((len(match.group(1)), match.group(2)))
        if len(headings) < self.config.toc_min_headings:
            return text

        top = min(level for level, _ in headings)
        entries = [f"{'  ' * (level - top)}- [{heading}](#{slugify(heading)})" for level, heading in headings]
        toc = "## Table of Contents\n\n" + "\n".join(entries) + "\n\n"
        result.improvements.append("Added table of contents")

        lines = text.split("\n")
        if lines and lines[0].startswith("# "):
            return "\n".join(lines[:1]) + "\n\n" + toc + "\n".join(lines[1:]).lstrip("\n")
        return toc + text

    @staticmethod
    def _citation(title: str, url: str) -> str:
        return f"\n\n---\n*Cleaned from: [{title}]({url}) on {date.today().isoformat()}*\n"
