"""
Unit tests for the heuristic scoring engine.
"""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

import pytest

from pagesift.config import ScoringConfig
from pagesift.scoring.engine import ScoringEngine
from pagesift.tree import ContentNode, build_tree
from pagesift.tree.predicates import attr_equals, has_class, tag_in

LONG_TEXT = "Scoring looks at container type, keywords, link density and the amount of prose. " * 3


def element(tag, text=LONG_TEXT, **attrs):
    return ContentNode.element(tag, attrs, children=[text])


@st.composite
def content_trees(draw):
    tags = st.sampled_from(["div", "section", "article", "p", "nav", "aside", "span", "a"])
    classes = st.sampled_from(["", "content", "sidebar", "main-body", "comment-list", "widget"])
    words = st.text(alphabet=st.characters(whitelist_categories=("Ll", "Zs")), min_size=0, max_size=120)

    root = ContentNode.element("body")
    parents = [root]
    for _ in range(draw(st.integers(min_value=1, max_value=12))):
        parent = draw(st.sampled_from(parents))
        node = ContentNode.element(draw(tags), {"class": draw(classes)}, children=[draw(words)])
        parent.append(node)
        parents.append(node)
    return root


@pytest.mark.unit
class TestScoreNode:
    """Test single-node scoring."""

    def test_text_nodes_and_short_nodes_score_zero(self):
        engine = ScoringEngine()
        assert engine.score_node(ContentNode.text_node(LONG_TEXT)) == 0
        assert engine.score_node(element("div", text="too short")) == 0

    def test_hidden_nodes_score_zero(self):
        engine = ScoringEngine()
        node = element("article")
        node.hidden = True
        assert engine.score_node(node) == 0

    def test_keywords_and_tags_shift_the_score(self):
        engine = ScoringEngine()
        plain = engine.score_node(element("div"))
        positive = engine.score_node(element("div", **{"class": "article-content"}))
        negative = engine.score_node(element("div", **{"class": "sidebar"}))
        assert positive == plain + 25
        assert negative == plain - 50
        assert engine.score_node(element("article")) > engine.score_node(element("span"))
        assert engine.score_node(element("nav")) < 0

    def test_link_density_penalty(self):
        engine = ScoringEngine()
        prose = ContentNode.element("div", children=[LONG_TEXT])
        links = ContentNode.element("div", children=[ContentNode.element("a", {"href": "#"}, children=[LONG_TEXT])])
        assert engine.score_node(links) < engine.score_node(prose)

    def test_explain_reports_contributions(self):
        engine = ScoringEngine()
        node = ContentNode.element(
            "article",
            {"class": "story"},
            children=[ContentNode.element("h2", children=["Heading"]), ContentNode.element("p", children=[LONG_TEXT])],
        )
        rationale = engine.explain(node)
        assert rationale["keyword_weight"] == 25
        assert rationale["tag_weight"] == 20
        assert rationale["link_penalty"] == 0
        assert rationale["total"] == engine.score_node(node)

    def test_min_text_length_zero_scores_any_element(self):
        engine = ScoringEngine(ScoringConfig(min_text_length=0))
        assert engine.score_node(ContentNode.element("article")) == 20

    def test_scoring_fault_becomes_warning(self, monkeypatch):
        engine = ScoringEngine()

        def broken(node):
            raise RuntimeError("bad node")

        monkeypatch.setattr(engine, "explain", broken)
        assert engine.score_node(element("div")) == 0
        assert len(engine.warnings) == 1
        assert "bad node" in engine.warnings[0]

    @given(content_trees())
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_scoring_is_deterministic(self, tree):
        first = [ScoringEngine().score_node(node) for node in tree.iter_elements(include_self=True)]
        second = [ScoringEngine().score_node(node) for node in tree.clone().iter_elements(include_self=True)]
        assert first == second


@pytest.mark.unit
class TestCandidates:
    """Test best-candidate selection and pruning."""

    def test_find_best_candidate_prefers_content_island(self, div_soup_html):
        tree = build_tree(div_soup_html)
        best = ScoringEngine().find_best_candidate(tree)
        assert best is not None
        assert best.node.matches(has_class("content"))
        assert best.score > 0
        assert best.rationale["total"] == best.score

    def test_find_best_candidate_none_when_nothing_positive(self):
        tree = build_tree("<body><nav><div class='sidebar'>tiny</div></nav></body>")
        assert ScoringEngine().find_best_candidate(tree) is None

    def test_ties_go_to_first_in_document_order(self):
        tree = build_tree(
            f'<body><section id="one">{LONG_TEXT}</section><section id="two">{LONG_TEXT}</section></body>'
        )
        best = ScoringEngine().find_best_candidate(tree)
        assert best.node.matches(attr_equals("id", "one"))

    def test_prune_removes_non_positive_children_from_a_clone(self):
        tree = build_tree(
            f'<body><div class="content"><p>{LONG_TEXT}</p><div class="share-widget">Share this</div>'
            f'<aside>{LONG_TEXT}</aside></div></body>'
        )
        winner = tree.find(has_class("content"))
        pruned = ScoringEngine().prune_node(winner)

        assert [child.tag for child in pruned.element_children] == ["p"]
        # the source tree keeps everything
        assert len(winner.element_children) == 3

    def test_prune_threshold_is_configurable(self):
        tree = build_tree(f'<body><div class="content"><p>{LONG_TEXT}</p></div></body>')
        winner = tree.find(has_class("content"))
        strict = ScoringEngine(ScoringConfig(prune_threshold=1000)).prune_node(winner)
        assert strict.element_children == []

    @given(content_trees())
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_pruned_children_all_score_above_threshold(self, tree):
        engine = ScoringEngine()
        pruned = engine.prune_node(tree)
        assert all(engine.score_node(child) > engine.prune_threshold for child in pruned.element_children)
        assert len(pruned.element_children) <= len(tree.element_children)

    def test_candidate_islands_exclude_inline_tags(self):
        tree = build_tree(f"<body><span>{LONG_TEXT}</span></body>")
        assert ScoringEngine().find_best_candidate(tree) is None
        assert tree.find(tag_in("span")) is not None
