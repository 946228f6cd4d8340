"""
Unit tests for rule sets and the boilerplate filter.
"""

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

import pytest

from pagesift.config import FilterConfig
from pagesift.exceptions import ConfigurationError
from pagesift.filters import AGGRESSIVE, SAFE, BoilerplateFilter, FilterRule, RuleAction, RuleRegistry, RuleSet
from pagesift.tree import ContentNode, build_tree, find_body
from pagesift.tree.predicates import attr_equals, has_class, tag_in


def body_of(markup):
    return find_body(build_tree(markup))


def tags(node):
    return [element.tag for element in node.iter_elements()]


PRESERVED_BLOCKS = [
    ContentNode.element("div", {"id": "keep", "class": "comments highlight"}, children=["print(1)"]),
    ContentNode.element("div", {"id": "keep", "class": "related", "data-preserve": ""}, children=["Related reading"]),
]


@st.composite
def page_bodies(draw):
    """Random nested chrome and prose, with one preserved block directly under <body>."""
    tag_names = st.sampled_from(["div", "section", "nav", "aside", "footer", "p", "ul", "li", "a", "pre", "h2", "span"])
    classes = st.sampled_from(["", "ad", "comments", "sidebar", "highlight", "content", "related", "share"])
    texts = st.sampled_from(["API usage", "Install", "Home", "Read more", "Prose that carries the article along."])

    root = ContentNode.element("body")
    parents = [root]
    for _ in range(draw(st.integers(min_value=1, max_value=15))):
        tag = draw(tag_names)
        attributes = {"class": draw(classes)}
        if tag == "a":
            attributes["href"] = "/elsewhere"
        node = ContentNode.element(tag, attributes, children=[draw(texts)])
        draw(st.sampled_from(parents)).append(node)
        parents.append(node)
    root.append(draw(st.sampled_from(PRESERVED_BLOCKS)).clone())
    return root


@pytest.mark.unit
class TestRuleRegistry:
    """Test named rule set lookup."""

    def test_default_registry_has_both_rule_sets(self):
        registry = RuleRegistry.default()
        assert registry.names() == [SAFE, AGGRESSIVE]
        assert len(registry.get(SAFE)) > 0
        assert SAFE in registry

    def test_unknown_rule_set_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError, match="Unknown rule set: strict"):
            RuleRegistry.default().get("strict")

    def test_site_rules_only_apply_to_their_domain(self):
        rules = RuleRegistry.default().get(SAFE)
        generic = rules.for_url("https://example.com/post")
        github = rules.for_url("https://github.com/org/repo")
        assert len(github) > len(generic)
        assert all(not rule.domains for rule in generic)

    def test_subdomains_match_site_rules(self):
        rule = FilterRule("x", tag_in("x"), RuleAction.REMOVE, "x", domains=("wikipedia.org",))
        assert rule.applies_to("https://en.wikipedia.org/wiki/Python")
        assert not rule.applies_to("https://notwikipedia.org/")
        assert not rule.applies_to(None)

    def test_registries_are_independent(self):
        first = RuleRegistry.default()
        second = RuleRegistry.default()
        first.add_rule(SAFE, FilterRule("blink", tag_in("blink"), RuleAction.REMOVE, "Remove blink"))
        assert len(first.get(SAFE)) == len(second.get(SAFE)) + 1


@pytest.mark.unit
class TestApplyRules:
    """Test rule application on cloned trees."""

    def test_safe_unwraps_structure_and_keeps_text(self):
        body = body_of(
            "<body><nav><a href='/'>Home</a></nav><header><h1>Title</h1></header>"
            "<p>Body text</p><footer><p>Footer text</p></footer></body>"
        )
        result = BoilerplateFilter().apply_rules(body, SAFE)

        assert "nav" not in tags(result.tree)
        assert "header" not in tags(result.tree)
        assert "footer" not in tags(result.tree)
        assert result.tree.text_content() == body.text_content()
        assert result.unwrapped == 3
        assert result.removed == 0

    def test_safe_removes_ads_and_hidden_elements(self):
        body = body_of(
            '<body><div class="ad-banner">Buy now</div><ins>Sponsored</ins>'
            '<div style="display:none">Hidden</div><p>Kept</p></body>'
        )
        result = BoilerplateFilter().apply_rules(body, SAFE)
        assert result.tree.text_content() == "Kept"
        assert result.removed == 3

    def test_input_tree_is_not_mutated(self):
        body = body_of('<body><nav><a href="/">Home</a></nav><div class="ad">x</div><p>y</p></body>')
        before = body.outer_html()
        BoilerplateFilter().apply_rules(body, SAFE)
        BoilerplateFilter().apply_rules(body, AGGRESSIVE)
        assert body.outer_html() == before

    def test_safe_is_idempotent(self, article_html):
        engine = BoilerplateFilter()
        once = engine.apply_rules(body_of(article_html), SAFE)
        twice = engine.apply_rules(once.tree, SAFE)
        assert twice.tree.outer_html() == once.tree.outer_html()
        assert not twice.changed

    def test_nested_wrappers_reach_a_fixed_point(self):
        body = body_of("<body><nav><nav><nav><p>Deep link list</p></nav></nav></nav></body>")
        result = BoilerplateFilter().apply_rules(body, SAFE)
        assert tags(result.tree) == ["p"]
        assert result.unwrapped == 3

    def test_pass_limit_is_reported(self):
        body = body_of("<body><div><div><div><p>text</p></div></div></div></body>")
        rules = RuleSet("flatten", [FilterRule("div", tag_in("div"), RuleAction.UNWRAP, "Unwrap divs")])
        result = BoilerplateFilter(max_passes=1).apply_rules(body, rules)
        # the queue follows lifted children, so a single pass flattens everything
        assert tags(result.tree) == ["p"]
        assert result.warnings == ["Rule set 'flatten' still changing after 1 passes"]

    def test_aggressive_only_removes_text(self):
        body = body_of(
            '<body><div class="content"><p>Article text that stays.</p></div>'
            '<div id="comments"><p>First!</p></div>'
            '<ul><li><a href="/a">A</a></li><li><a href="/b">B</a></li></ul>'
            "<form><input name='q'></form><p></p></body>"
        )
        result = BoilerplateFilter().apply_rules(body, AGGRESSIVE)
        assert result.tree.text_content() == "Article text that stays."
        assert result.unwrapped == 0
        assert len(result.tree.text_content()) <= len(body.text_content())

    def test_link_dense_list_with_media_is_kept(self):
        body = body_of('<body><ul><li><a href="/a"><img src="a.png">Gallery</a></li></ul></body>')
        result = BoilerplateFilter().apply_rules(body, AGGRESSIVE)
        assert "ul" in tags(result.tree)

    def test_link_dense_threshold_is_configurable(self):
        body = body_of('<body><ul><li>Plain words here <a href="/a">one link</a></li></ul></body>')
        lenient = BoilerplateFilter(config=FilterConfig(link_dense_list_threshold=0.9))
        strict = BoilerplateFilter(config=FilterConfig(link_dense_list_threshold=0.1))
        assert "ul" in tags(lenient.apply_rules(body, AGGRESSIVE).tree)
        assert "ul" not in tags(strict.apply_rules(body, AGGRESSIVE).tree)

    def test_site_rules_follow_the_url(self):
        markup = '<body><div class="infobox">Born 1956</div><p>Biography</p></body>'
        engine = BoilerplateFilter()
        on_wiki = engine.apply_rules(body_of(markup), SAFE, url="https://en.wikipedia.org/wiki/X")
        elsewhere = engine.apply_rules(body_of(markup), SAFE, url="https://example.com/x")
        assert on_wiki.tree.text_content() == "Biography"
        assert "Born 1956" in elsewhere.tree.text_content()

    def test_broken_rule_becomes_warning(self):
        def explode(node):
            raise RuntimeError("selector exploded")

        rules = RuleSet(
            "mixed",
            [
                FilterRule("broken", explode, RuleAction.REMOVE, "Broken rule"),
                FilterRule("aside", tag_in("aside"), RuleAction.REMOVE, "Remove asides"),
            ],
        )
        result = BoilerplateFilter().apply_rules(body_of("<body><aside>x</aside><p>y</p></body>"), rules)
        assert result.tree.text_content() == "y"
        assert any("selector exploded" in warning for warning in result.warnings)


@pytest.mark.unit
class TestPreservation:
    """Test the content-preservation heuristic and its precedence."""

    def test_code_and_markers_are_preserved(self):
        engine = BoilerplateFilter()
        assert engine.should_preserve_element(ContentNode.element("pre"))
        assert engine.should_preserve_element(ContentNode.element("div", {"class": "highlight"}))
        assert engine.should_preserve_element(ContentNode.element("div", {"data-preserve": ""}))
        assert engine.should_preserve_element(ContentNode.element("div", {"itemprop": "articleBody"}))
        assert not engine.should_preserve_element(ContentNode.element("div", {"class": "ad"}))
        assert not engine.should_preserve_element(ContentNode.text_node("pre"))

    def test_near_technical_heading(self):
        body = body_of('<body><section><h2>Installation</h2><div class="ad" id="target">pip</div></section></body>')
        engine = BoilerplateFilter()
        assert engine.should_preserve_element(body.find(attr_equals("id", "target")))

    def test_preserved_node_survives_matching_rule(self):
        body = body_of('<body><div class="sidebar highlight"><p>code sample</p></div></body>')
        result = BoilerplateFilter().apply_rules(body, SAFE)
        assert result.tree.find(has_class("highlight")) is not None
        assert result.preserved == 1

    def test_removed_ancestor_wins_over_preserved_descendant(self):
        body = body_of('<body><div class="modal"><pre>print("hi")</pre></div><p>Rest</p></body>')
        result = BoilerplateFilter().apply_rules(body, SAFE)
        assert "pre" not in tags(result.tree)
        assert result.tree.text_content() == "Rest"


@pytest.mark.unit
class TestRuleSetProperties:
    """Properties of SAFE and AGGRESSIVE over generated pages."""

    @given(page_bodies())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_safe_is_idempotent(self, body):
        engine = BoilerplateFilter()
        once = engine.apply_rules(body, SAFE)
        twice = engine.apply_rules(once.tree, SAFE)
        assert twice.tree.outer_html() == once.tree.outer_html()

    @given(page_bodies())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_aggressive_after_safe_never_adds_text(self, body):
        engine = BoilerplateFilter()
        safe = engine.apply_rules(body, SAFE).tree
        both = engine.apply_rules(safe, AGGRESSIVE).tree
        assert len(both.text_content()) <= len(safe.text_content())

    @given(page_bodies())
    @settings(max_examples=100, suppress_health_check=[HealthCheck.too_slow])
    def test_preserved_block_survives_both_passes(self, body):
        engine = BoilerplateFilter()
        both = engine.apply_rules(engine.apply_rules(body, SAFE).tree, AGGRESSIVE).tree
        kept = both.find(attr_equals("id", "keep"))
        assert kept is not None
        assert kept.text_content() in ("print(1)", "Related reading")

    def test_preserved_comments_block_survives_both_passes(self):
        body = body_of(
            '<body><div class="comments highlight"><p>x = 1</p></div>'
            '<div id="related" class="related" data-preserve><p>Further reading</p></div></body>'
        )
        engine = BoilerplateFilter()
        both = engine.apply_rules(engine.apply_rules(body, SAFE).tree, AGGRESSIVE).tree
        assert both.find(has_class("highlight")) is not None
        assert both.find(attr_equals("id", "related")) is not None
        assert both.text_content() == "x = 1Further reading"


@pytest.mark.unit
class TestBypassDecision:
    """Test the readability bypass for technical documents."""

    def test_technical_page_bypasses(self, technical_html):
        engine = BoilerplateFilter()
        body = body_of(technical_html)
        assert engine.technical_signals(body) == {"code_blocks": 3, "technical_headings": 2}
        assert engine.should_bypass_readability(body)

    def test_single_code_block_with_technical_headings_bypasses(self):
        body = body_of("<body><h2>API reference</h2><h3>Parameters</h3><pre>f(x)</pre></body>")
        assert BoilerplateFilter().should_bypass_readability(body)

    def test_article_does_not_bypass(self, article_html):
        assert not BoilerplateFilter().should_bypass_readability(body_of(article_html))

    def test_threshold_is_configurable(self):
        body = body_of("<body><pre>a</pre><pre>b</pre></body>")
        assert not BoilerplateFilter().should_bypass_readability(body)
        assert BoilerplateFilter(config=FilterConfig(bypass_code_block_threshold=2)).should_bypass_readability(body)
