"""
Unit tests for the Reddit Stage-0 extractor.
"""

import pytest

from pagesift.sites import RedditExtractor, aggressive_noise_filter, calculate_quality_score
from pagesift.sites.reddit import extract_text, is_noise_element, is_reddit_url, lines_to_tree
from pagesift.tree import ContentNode, build_tree

from conftest import PARAGRAPHS, paragraphs_html


@pytest.mark.unit
class TestNoiseFilter:
    """Test line-level noise removal."""

    def test_strips_counters_and_action_labels(self):
        content = (
            "Great post about parsing\n42 upvotes\n5 comments\nShare\n"
            "This line stays because it is long\nThis line stays because it is long\nok"
        )
        assert aggressive_noise_filter(content) == "Great post about parsing\n\nThis line stays because it is long"

    def test_short_headings_survive(self):
        assert aggressive_noise_filter("## Hi\nabc") == "## Hi"

    def test_long_repeated_lines_are_kept(self):
        line = "A sentence that is comfortably longer than fifty characters in total."
        assert aggressive_noise_filter(f"{line}\n{line}") == f"{line}\n\n{line}"


@pytest.mark.unit
class TestQualityScore:
    """Test the plugin's own quality score."""

    def test_empty_raw_text(self):
        assert calculate_quality_score("", "") == 0

    def test_unfiltered_text_loses_low_reduction_points(self):
        text = " ".join(["paragraph"] * 60)
        assert calculate_quality_score(text, text) == 80

    def test_heavily_reduced_thin_text(self):
        assert calculate_quality_score("tiny bit", "x" * 100) == 50


@pytest.mark.unit
class TestHelpers:
    """Test element classification and text helpers."""

    def test_reddit_urls(self):
        assert is_reddit_url("https://www.reddit.com/r/python/")
        assert is_reddit_url("https://redd.it/abc")
        assert not is_reddit_url("https://example.com/")
        assert not is_reddit_url("https://notreddit.com/r/python/")
        assert not is_reddit_url("https://example.com/?ref=reddit.com")
        assert not is_reddit_url("reddit.com/r/python")

    @pytest.mark.parametrize(
        "node,expected",
        [
            (ContentNode.element("button", children=["Vote"]), True),
            (ContentNode.element("span", children=["Share"]), True),
            (ContentNode.element("div", {"aria-hidden": "true"}), True),
            (ContentNode.element("a", children=["Read the full thread"]), False),
            (ContentNode.element("p", children=["Share"]), False),
        ],
    )
    def test_is_noise_element(self, node, expected):
        assert is_noise_element(node) is expected

    def test_extract_text_skips_noise_and_fragments(self):
        tree = build_tree("<div><p>Real words here</p><button>Reply</button><span>ok</span></div>")
        assert extract_text(tree) == "Real words here"

    def test_lines_to_tree(self):
        tree = lines_to_tree("# Title\n\nFirst block\n\n### Sub\n\nSecond block")
        assert [node.tag for node in tree.element_children] == ["h1", "p", "h3", "p"]
        assert tree.element_children[2].text_content() == "Sub"


@pytest.mark.unit
class TestRedditExtractor:
    """Test the extraction strategies."""

    def test_can_handle(self):
        extractor = RedditExtractor()
        assert extractor.can_handle("https://old.reddit.com/r/python/comments/x/y/")
        assert not extractor.can_handle("")
        assert not extractor.can_handle("https://example.com/")

    @pytest.mark.asyncio
    async def test_other_sites_are_skipped(self):
        tree = build_tree(f"<body><shreddit-post>{paragraphs_html(3)}</shreddit-post></body>")
        assert await RedditExtractor().extract(tree, "https://example.com/") is None

    @pytest.mark.asyncio
    async def test_shadow_dom_traversal(self):
        html = (
            "<body><shreddit-post><template shadowrootmode='open'>"
            "<div slot='title'>Parsing shadow roots</div><button>Share</button>"
            f"{paragraphs_html(3)}"
            "</template></shreddit-post></body>"
        )
        result = await RedditExtractor().extract(build_tree(html), "https://www.reddit.com/r/python/comments/x/y/")

        assert result.strategy == "shadow-dom-traversal"
        assert result.score == 80
        text = result.content.text_content()
        assert "Parsing shadow roots" in text
        assert PARAGRAPHS[1] in text
        assert "Share" not in text

    def test_nested_shadow_roots_report_depth(self):
        html = (
            "<body><shreddit-post><template shadowrootmode='open'>"
            "<post-body><template shadowrootmode='open'>"
            f"{paragraphs_html(3)}"
            "</template></post-body>"
            "</template></shreddit-post></body>"
        )
        result = RedditExtractor()._shadow_dom_traversal(build_tree(html))
        assert result.metadata == {"shadow_dom_depth": 1, "noise_filtered": True}
        assert PARAGRAPHS[2] in result.content.text_content()

    def test_shadow_traversal_needs_posts(self):
        assert RedditExtractor()._shadow_dom_traversal(build_tree("<body><p>nothing</p></body>")) is None

    def test_semantic_elements(self):
        html = (
            "<body>"
            '<shreddit-post author="alice"></shreddit-post>'
            "<shreddit-title><h1>How do I parse shadow roots</h1></shreddit-title>"
            '<a href="/r/python/">r/python</a>'
            "<shreddit-post-text-body>"
            f'<div id="t3_x-post-rtjson-content"><p>{PARAGRAPHS[0]}</p></div>'
            "</shreddit-post-text-body>"
            '<shreddit-comment><a href="/user/alice/">alice</a>'
            f'<div slot="comment"><p>{PARAGRAPHS[1]}</p></div></shreddit-comment>'
            '<shreddit-comment><a href="/user/bob/">u/bob</a>'
            '<div slot="comment"><p>Thanks for this</p></div></shreddit-comment>'
            "</body>"
        )
        result = RedditExtractor()._semantic_elements(build_tree(html))

        assert result.strategy == "semantic-elements"
        children = result.content.element_children
        assert children[0].tag == "h1"
        assert children[0].text_content() == "How do I parse shadow roots"
        # the "## 2 Comments" heading is stripped as a comment counter
        assert [node.text_content() for node in children[1:]] == [
            "r/python | Author: u/alice (OP)",
            PARAGRAPHS[0],
            f"u/alice (OP): {PARAGRAPHS[1]}",
            "u/bob: Thanks for this",
        ]

    @pytest.mark.asyncio
    async def test_below_threshold_returns_best_attempt(self):
        html = "<body><shreddit-post>A short post body here</shreddit-post></body>"
        result = await RedditExtractor().extract(build_tree(html), "https://www.reddit.com/r/x/")
        assert result is not None
        assert result.score < 60
