"""
Shared fixtures for the PageSift test suite.

Pages are built from paragraphs long enough to survive scoring and pruning
(each paragraph is well over 100 characters), so the branch a test expects
is decided by structure rather than by accident of length.
"""

import logging
from typing import List

import pytest
import structlog

from pagesift.config import Config, RecoveryConfig
from pagesift.extractor.models import ExtractorOutput
from pagesift.tree import ContentNode, build_tree


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


PARAGRAPHS: List[str] = [
    "Structured extraction starts from the captured markup of a page and keeps only the parts a reader came for, "
    "which usually means the article body and its headings.",
    "Navigation bars, footers and sidebars are flattened first so that no sentence of real content is lost while "
    "the structural wrappers around it are discarded.",
    "Each stage produces a candidate that is measured against a quality gate before the next, more expensive "
    "stage is even considered by the pipeline.",
    "When the semantic containers are missing or too thin, a general purpose extractor gets a chance, and after "
    "that the heuristic scorer looks for the densest island of prose.",
    "Whatever wins is rendered to markdown, tidied by the post processor and scored once more so that callers "
    "can decide how much to trust the output.",
]


def paragraphs_html(count: int = 5) -> str:
    return "".join(f"<p>{PARAGRAPHS[i % len(PARAGRAPHS)]}</p>" for i in range(count))


class StaticExtractor:
    """General-purpose extractor stand-in returning a fixed output."""

    name = "static"

    def __init__(self, content=None, title=None) -> None:
        self.output = ExtractorOutput(content=content, title=title)
        self.calls = 0

    async def extract(self, html, *, url=None):
        self.calls += 1
        return self.output


@pytest.fixture
def config() -> Config:
    """Default configuration without retry delays."""
    return Config(recovery=RecoveryConfig(retry_delay_seconds=0, strategy_timeout_seconds=5))


@pytest.fixture
def article_html() -> str:
    """A page whose <article> clears Gate A."""
    return (
        "<html><head><title>Extraction notes</title></head><body>"
        '<nav class="navbar"><a href="/">Home</a> <a href="/docs">Docs</a></nav>'
        f"<article><h1>Extraction notes</h1>{paragraphs_html(5)}</article>"
        '<footer class="site-footer"><p>Copyright notice</p></footer>'
        "</body></html>"
    )


@pytest.fixture
def div_soup_html() -> str:
    """A page with no semantic containers: only a div.content island and link-heavy chrome."""
    links = " ".join(f'<a href="/section/{i}">Section {i}</a>' for i in range(12))
    return (
        "<html><body>"
        f'<div class="menu-bar">{links}</div>'
        f'<div class="content">{paragraphs_html(4)}</div>'
        '<div class="promo">Short promo</div>'
        "</body></html>"
    )


@pytest.fixture
def technical_html() -> str:
    """Documentation page with enough code blocks to bypass the general extractor."""
    return (
        "<html><body><div class='doc'>"
        "<h2>Installation</h2>"
        f"<p>{PARAGRAPHS[0]}</p>"
        "<pre><code class='language-bash'>pip install pagesift</code></pre>"
        "<h2>Usage</h2>"
        f"<p>{PARAGRAPHS[1]}</p>"
        "<pre><code class='language-python'>from pagesift import ExtractionPipeline</code></pre>"
        "<pre><code class='language-python'>result = await pipeline.process(html)</code></pre>"
        "</div></body></html>"
    )


@pytest.fixture
def article_tree(article_html) -> ContentNode:
    return build_tree(article_html)


@pytest.fixture
def static_extractor():
    """Factory for extractor stand-ins: ``static_extractor(content=..., title=...)``."""
    return StaticExtractor


@pytest.fixture
def make_paragraphs():
    return paragraphs_html


@pytest.fixture
def restore_logging():
    """Put root logging and structlog back the way a test found them."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()
