"""
Unit tests for markdown rendering and post-processing.
"""

import pytest

from pagesift.config import PostProcessingConfig
from pagesift.render import MarkdownifyRenderer, MarkdownPostProcessor, absolutize_urls, simple_markdown
from pagesift.render.postprocess import slugify, split_fenced
from pagesift.tree import build_tree, find_body


def body_of(markup):
    return find_body(build_tree(markup))


@pytest.mark.unit
class TestMarkdownifyRenderer:
    """Test the default renderer."""

    def test_headings_lists_and_emphasis(self):
        body = body_of("<body><h2>Setup</h2><p>Run <strong>this</strong> now.</p><ul><li>one</li><li>two</li></ul>")
        markdown = MarkdownifyRenderer().render(body)
        assert "## Setup" in markdown
        assert "**this**" in markdown
        assert "- one" in markdown
        assert markdown.endswith("\n")

    def test_code_blocks_are_fenced_with_language(self):
        body = body_of('<body><pre><code class="language-python">print("hi")</code></pre></body>')
        markdown = MarkdownifyRenderer().render(body)
        assert '```python\nprint("hi")\n```' in markdown

    def test_relative_links_resolve_against_base_url(self):
        body = body_of('<body><p><a href="/docs/intro">Intro</a> <img src="img/a.png" alt="A"></p></body>')
        markdown = MarkdownifyRenderer().render(body, base_url="https://example.com/guide/")
        assert "[Intro](https://example.com/docs/intro)" in markdown
        assert "![A](https://example.com/guide/img/a.png)" in markdown

    def test_render_does_not_mutate_the_tree(self):
        body = body_of('<body><a href="/x">x</a></body>')
        MarkdownifyRenderer().render(body, base_url="https://example.com/")
        assert body.find_all("a")[0].get("href") == "/x"

    def test_empty_tree_renders_empty_string(self):
        assert MarkdownifyRenderer().render(body_of("<body></body>")) == ""


@pytest.mark.unit
class TestSimpleMarkdown:
    """Test the built-in fallback renderer."""

    def test_blocks(self):
        body = body_of(
            "<body><h1>Title</h1><p>Text with <a href='/l'>link</a> and <code>code</code>.</p>"
            "<ol><li>first</li><li>second</li></ol><pre>x = 1\ny = 2</pre>"
            "<table><tr><th>k</th><th>v</th></tr><tr><td>a</td><td>1</td></tr></table></body>"
        )
        assert simple_markdown(body) == (
            "# Title\n\n"
            "Text with [link](/l) and `code`.\n\n"
            "1. first\n2. second\n\n"
            "```\nx = 1\ny = 2\n```\n\n"
            "| k | v |\n| --- | --- |\n| a | 1 |\n"
        )

    def test_blockquote_and_loose_text(self):
        body = body_of("<body>Loose <em>text</em><blockquote><p>Quoted</p></blockquote></body>")
        assert simple_markdown(body) == "Loose *text*\n\n> Quoted\n"

    def test_absolutize_ignores_fragments_and_missing_base(self):
        body = body_of('<body><a href="#top">Top</a><a href="/p">P</a></body>')
        absolutize_urls(body, None)
        assert [a.get("href") for a in body.find_all("a")] == ["#top", "/p"]
        absolutize_urls(body, "https://example.com")
        assert [a.get("href") for a in body.find_all("a")] == ["#top", "https://example.com/p"]


@pytest.mark.unit
class TestPostProcessor:
    """Test markdown clean-up."""

    def test_heading_levels_never_skip(self):
        result = MarkdownPostProcessor().process("# Title\n#### Deep\ntext")
        assert result.markdown == "# Title\n\n## Deep\n\ntext\n"
        assert "Fixed heading hierarchy" in result.improvements

    def test_code_fences_are_left_alone(self):
        markdown = "Intro\n```\n#### not a heading\n*   not a list\n\n\n\nend\n```\nAfter"
        result = MarkdownPostProcessor().process(markdown)
        assert "#### not a heading\n*   not a list\n\n\n\nend" in result.markdown
        assert result.markdown.startswith("Intro\n\n```")
        assert "```\n\nAfter" in result.markdown

    def test_list_markers_are_normalized(self):
        result = MarkdownPostProcessor().process("*   one\n+ two\n1.    three\n* * *")
        assert result.markdown == "- one\n- two\n1. three\n* * *\n"

    def test_links_and_images(self):
        result = MarkdownPostProcessor().process("[empty]() ![]() ![](//cdn.example.com/a.png) [p](//example.com)")
        assert result.markdown == "empty  ![Image](https://cdn.example.com/a.png) [p](https://example.com)\n"
        assert result.warnings == ["Found 1 links with empty URLs"]

    def test_blank_lines_are_limited(self):
        result = MarkdownPostProcessor().process("a\n\n\n\n\nb")
        assert result.markdown == "a\n\nb\n"

    def test_table_of_contents(self):
        config = PostProcessingConfig(generate_toc=True, toc_min_headings=2)
        result = MarkdownPostProcessor(config).process("# Guide\n\n## First Step\n\ntext\n\n## Second Step\n")
        assert "## Table of Contents" in result.markdown
        assert "- [First Step](#first-step)" in result.markdown
        assert result.markdown.startswith("# Guide\n\n## Table of Contents")

    def test_citation(self):
        config = PostProcessingConfig(include_citation=True)
        result = MarkdownPostProcessor(config).process("Body", title="Page", url="https://example.com")
        assert "*Cleaned from: [Page](https://example.com) on " in result.markdown

    def test_non_printable_characters_are_stripped(self):
        assert MarkdownPostProcessor().process("a\u200bb\x07c").markdown == "abc\n"

    def test_empty_input(self):
        assert MarkdownPostProcessor().process("  \n").markdown == ""

    def test_split_fenced_unterminated_fence_runs_to_end(self):
        segments = split_fenced("text\n```\ncode")
        assert segments == [(False, ["text"]), (True, ["```", "code"])]

    def test_slugify(self):
        assert slugify("Hello, World!") == "hello-world"
