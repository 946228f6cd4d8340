"""
URL-selected tuning presets for the readability extractor.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import List, Optional, Pattern, Tuple

DEFAULT_CLASSES_TO_PRESERVE: Tuple[str, ...] = (
    "highlight",
    "code",
    "pre",
    "math",
    "equation",
    "formula",
    "syntax",
    "language-",
    "hljs",
    "codehilite",
    "sourceCode",
    "code-block",
)

LENIENT_MIN_THRESHOLD = 200


@dataclass(frozen=True)
class ExtractorPreset:
    """Named extractor settings applied when the source URL matches a pattern."""

    name: str
    char_threshold: int
    classes_to_preserve: Tuple[str, ...] = DEFAULT_CLASSES_TO_PRESERVE
    url_patterns: Tuple[Pattern[str], ...] = field(default=(), repr=False)

    def matches(self, url: str) -> bool:
        return any(pattern.search(url) for pattern in self.url_patterns)

    def lenient(self) -> "ExtractorPreset":
        """Relaxed copy used for the single retry after an undersized first attempt."""
        return replace(
            self,
            char_threshold=max(LENIENT_MIN_THRESHOLD, self.char_threshold // 2),
        )


def _patterns(*expressions: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(expression) for expression in expressions)


DEFAULT_PRESET = ExtractorPreset(name="default", char_threshold=500)

PRESETS: List[ExtractorPreset] = [
    ExtractorPreset(
        name="technical-documentation",
        char_threshold=300,
        classes_to_preserve=DEFAULT_CLASSES_TO_PRESERVE
        + ("api-", "method-", "parameter-", "example-", "snippet-", "terminal", "console", "output"),
        url_patterns=_patterns(
            r"docs?\.", r"api\.", r"developer\.", r"github\.com", r"stackoverflow\.com", r"\.readthedocs\."
        ),
    ),
    ExtractorPreset(
        name="blog-article",
        char_threshold=800,
        classes_to_preserve=DEFAULT_CLASSES_TO_PRESERVE
        + ("quote", "blockquote", "pullquote", "caption", "author", "byline"),
        url_patterns=_patterns(r"blog", r"article", r"post", r"medium\.com", r"substack\.com"),
    ),
    ExtractorPreset(
        name="news-article",
        char_threshold=600,
        classes_to_preserve=DEFAULT_CLASSES_TO_PRESERVE + ("dateline", "byline", "lead", "summary", "excerpt"),
        url_patterns=_patterns(
            r"news",
            r"\.com/\d{4}/\d{2}/\d{2}",
            r"reuters\.com",
            r"bbc\.com",
            r"cnn\.com",
            r"nytimes\.com",
        ),
    ),
    ExtractorPreset(
        name="academic-paper",
        char_threshold=400,
        classes_to_preserve=DEFAULT_CLASSES_TO_PRESERVE
        + ("abstract", "citation", "reference", "footnote", "figure", "table", "theorem", "proof", "definition"),
        url_patterns=_patterns(r"arxiv\.org", r"\.edu", r"researchgate\.net", r"scholar\.google", r"pubmed"),
    ),
    ExtractorPreset(
        name="forum-discussion",
        char_threshold=200,
        classes_to_preserve=DEFAULT_CLASSES_TO_PRESERVE
        + ("post", "comment", "reply", "thread", "user", "username", "timestamp"),
        url_patterns=_patterns(r"reddit\.com", r"discourse\.", r"forum", r"community", r"discuss"),
    ),
    ExtractorPreset(
        name="wiki-content",
        char_threshold=500,
        classes_to_preserve=DEFAULT_CLASSES_TO_PRESERVE
        + ("infobox", "navbox", "sidebar", "toc", "references", "external", "citation"),
        url_patterns=_patterns(r"wikipedia\.org", r"wiki", r"fandom\.com", r"wikia\.com"),
    ),
]


def preset_for_url(url: Optional[str]) -> ExtractorPreset:
    """First preset whose URL patterns match, in declaration order; default otherwise."""
    if url:
        for preset in PRESETS:
            if preset.matches(url):
                return preset
    return DEFAULT_PRESET


def get_preset(name: str) -> Optional[ExtractorPreset]:
    if name == DEFAULT_PRESET.name:
        return DEFAULT_PRESET
    return next((preset for preset in PRESETS if preset.name == name), None)
