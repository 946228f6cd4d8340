"""
Markdown rendering (markdownify, plus a built-in fallback walker) and
post-processing of the rendered text.
"""

from .markdown import MarkdownifyRenderer, absolutize_urls, simple_markdown
from .postprocess import MarkdownPostProcessor, PostProcessResult

__all__ = ["MarkdownPostProcessor", "MarkdownifyRenderer", "PostProcessResult", "absolutize_urls", "simple_markdown"]
