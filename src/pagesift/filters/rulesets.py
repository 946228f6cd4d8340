"""
The built-in SAFE and AGGRESSIVE rule sets.

SAFE runs on every input and prefers unwrapping structural containers so no
text is lost by accident. AGGRESSIVE only removes, and only runs after SAFE on
the scoring branch of the pipeline.
"""

from __future__ import annotations

from pagesift.tree.node import ContentNode, NodePredicate
from pagesift.tree.predicates import (
    all_of,
    any_of,
    attr_contains,
    attr_equals,
    class_or_id_matches,
    class_prefix,
    has_attr,
    has_class,
    id_in,
    id_prefix,
    link_density,
    tag_in,
    token_pattern,
    within,
)

from .rules import FilterRule, RuleAction, RuleSet

SAFE = "safe"
AGGRESSIVE = "aggressive"

_MEDIA_TAGS = ("img", "picture", "video", "audio", "iframe", "table", "pre", "code", "svg", "math", "canvas")


def is_empty_container(node: ContentNode) -> bool:
    if node.tag not in ("p", "div", "span", "section", "article"):
        return False
    if node.element_children:
        return False
    return not node.text_content().strip()


def link_dense_list(threshold: float) -> NodePredicate:
    def _predicate(node: ContentNode) -> bool:
        if node.tag not in ("ul", "ol", "dl", "menu"):
            return False
        if any(child.tag in _MEDIA_TAGS for child in node.iter_elements()):
            return False
        return link_density(node) > threshold

    return _predicate


def build_safe_rules() -> RuleSet:
    rules = RuleSet(SAFE)

    # Structural containers: flatten, never delete.
    rules.add(
        FilterRule(
            selector='nav, [role="navigation"], .navigation, .nav, .navbar, .menu, .main-menu',
            predicate=any_of(
                tag_in("nav"),
                attr_equals("role", "navigation"),
                has_class("navigation", "nav", "navbar", "menu", "main-menu"),
            ),
            action=RuleAction.UNWRAP,
            description="Unwrap navigation bars and menus",
        )
    )
    rules.add(
        FilterRule(
            selector='header, [role="banner"], .page-header, .site-header',
            predicate=any_of(tag_in("header"), attr_equals("role", "banner"), has_class("page-header", "site-header")),
            action=RuleAction.UNWRAP,
            description="Unwrap page headers",
        )
    )
    rules.add(
        FilterRule(
            selector='footer, [role="contentinfo"], .page-footer, .site-footer',
            predicate=any_of(
                tag_in("footer"), attr_equals("role", "contentinfo"), has_class("page-footer", "site-footer")
            ),
            action=RuleAction.UNWRAP,
            description="Unwrap page footers",
        )
    )
    rules.add(
        FilterRule(
            selector='aside, [role="complementary"], .sidebar, .side-bar',
            predicate=any_of(tag_in("aside"), attr_equals("role", "complementary"), has_class("sidebar", "side-bar")),
            action=RuleAction.UNWRAP,
            description="Unwrap sidebars and complementary content",
        )
    )

    # Decorative and interruptive content: delete.
    rules.add(
        FilterRule(
            selector='.ad, .ads, .advert, .advertisement, .adsbygoogle, .sponsored, [class^="ad-"], [id^="ad-"], ins',
            predicate=any_of(
                has_class("ad", "ads", "advert", "advertisement", "adsbygoogle", "sponsored"),
                class_prefix("ad-"),
                id_prefix("ad-"),
                tag_in("ins"),
            ),
            action=RuleAction.REMOVE,
            description="Remove advertisements",
        )
    )
    rules.add(
        FilterRule(
            selector=".social, .share, .sharing, .social-share, .follow-us, .twitter-tweet, .fb-post",
            predicate=has_class(
                "social", "share", "sharing", "social-share", "social-media", "follow-us", "twitter-tweet", "fb-post"
            ),
            action=RuleAction.REMOVE,
            description="Remove social sharing widgets",
        )
    )
    rules.add(
        FilterRule(
            selector='.cookie, .consent, .privacy-notice, .gdpr, [id*="cookie"]',
            predicate=any_of(
                has_class("cookie", "consent", "privacy-notice", "gdpr"),
                class_or_id_matches(token_pattern("cookie", "cookies", "cookie-banner", "cookie-consent")),
            ),
            action=RuleAction.REMOVE,
            description="Remove cookie and consent banners",
        )
    )
    rules.add(
        FilterRule(
            selector='.popup, .modal, .overlay, .lightbox, [aria-hidden="true"]',
            predicate=any_of(has_class("popup", "modal", "overlay", "lightbox"), attr_equals("aria-hidden", "true")),
            action=RuleAction.REMOVE,
            description="Remove popups, modals and aria-hidden decorations",
        )
    )
    rules.add(
        FilterRule(
            selector=".skip-link, .skip-nav, .screen-reader-text, .sr-only, .visually-hidden",
            predicate=has_class("skip-link", "skip-nav", "screen-reader-text", "sr-only", "visually-hidden"),
            action=RuleAction.REMOVE,
            description="Remove skip links and screen-reader-only text",
        )
    )
    rules.add(
        FilterRule(
            selector='[hidden], [style*="display: none"]',
            predicate=lambda node: node.hidden,
            action=RuleAction.REMOVE,
            description="Remove hidden elements",
        )
    )

    # Site-specific rules.
    rules.add(
        FilterRule(
            selector=".u-marginTop30, .js-postMetaLockup, .u-paddingBottom10",
            predicate=has_class("u-marginTop30", "js-postMetaLockup", "u-paddingBottom10"),
            action=RuleAction.REMOVE,
            description="Remove Medium post chrome",
            domains=("medium.com",),
        )
    )
    rules.add(
        FilterRule(
            selector=".gh-header, .js-navigation-container, .repository-lang-stats, .pagehead, .UnderlineNav, "
            ".flash, .file-navigation, .Box-header, .Layout-sidebar, .BorderGrid, .header-search",
            predicate=has_class(
                "gh-header",
                "js-navigation-container",
                "repository-lang-stats",
                "Header",
                "pagehead",
                "hx_pagehead",
                "UnderlineNav",
                "flash",
                "file-navigation",
                "Box-header",
                "js-sticky",
                "Layout-sidebar",
                "gisthead",
                "BorderGrid",
                "header-search",
                "js-pinned-items-reorder-container",
            ),
            action=RuleAction.REMOVE,
            description="Remove GitHub interface chrome",
            domains=("github.com",),
        )
    )
    rules.add(
        FilterRule(
            selector="#readme .markdown-body",
            predicate=all_of(has_class("markdown-body"), within(id_in("readme"))),
            action=RuleAction.UNWRAP,
            description="Promote GitHub README content",
            domains=("github.com",),
        )
    )
    rules.add(
        FilterRule(
            selector='shreddit-ad, faceplate-tracker, faceplate-iframe, shreddit-comment-tree, shreddit-comment, '
            '[slot="sidebar"], [data-testid="post-sidebar"], [data-adclicklocation], [promoted]',
            predicate=any_of(
                tag_in(
                    "shreddit-ad",
                    "faceplate-tracker",
                    "faceplate-iframe",
                    "shreddit-comment-tree",
                    "shreddit-comment",
                ),
                attr_equals("slot", "sidebar"),
                attr_equals("data-testid", "post-sidebar", "content-gate", "left-sidebar"),
                has_attr("data-adclicklocation"),
                has_attr("promoted"),
            ),
            action=RuleAction.REMOVE,
            description="Remove Reddit sidebars, promotions and comment widgets",
            domains=("reddit.com", "redd.it"),
        )
    )
    rules.add(
        FilterRule(
            selector='[data-test-id="post-content"], shreddit-post, [data-testid="post-container"]',
            predicate=any_of(
                attr_equals("data-test-id", "post-content"),
                tag_in("shreddit-post"),
                attr_equals("data-testid", "post-container"),
            ),
            action=RuleAction.UNWRAP,
            description="Unwrap Reddit post containers",
            domains=("reddit.com", "redd.it"),
        )
    )
    rules.add(
        FilterRule(
            selector=".navbox, .infobox, .metadata, .navigation-not-searchable",
            predicate=has_class("navbox", "infobox", "metadata", "navigation-not-searchable"),
            action=RuleAction.REMOVE,
            description="Remove Wikipedia navigation and info boxes",
            domains=("wikipedia.org",),
        )
    )
    return rules


def build_aggressive_rules(link_dense_threshold: float = 0.5) -> RuleSet:
    rules = RuleSet(AGGRESSIVE)
    rules.add(
        FilterRule(
            selector=".comments, .comment-section, #comments, .disqus, .livefyre",
            predicate=any_of(
                has_class("comments", "comment-section", "comment-list", "disqus", "livefyre"),
                id_in("comments", "disqus_thread"),
            ),
            action=RuleAction.REMOVE,
            description="Remove comment sections",
        )
    )
    rules.add(
        FilterRule(
            selector=".related, .suggestions, .recommended, .more-articles, .you-might-like",
            predicate=has_class(
                "related", "related-posts", "suggestions", "recommended", "more-articles", "you-might-like"
            ),
            action=RuleAction.REMOVE,
            description="Remove related and recommended content",
        )
    )
    rules.add(
        FilterRule(
            selector=".newsletter, .signup, .subscribe, .email-signup, .cta, .call-to-action",
            predicate=has_class("newsletter", "signup", "subscribe", "email-signup", "cta", "call-to-action"),
            action=RuleAction.REMOVE,
            description="Remove newsletter signups and calls to action",
        )
    )
    rules.add(
        FilterRule(
            selector='.search, .search-form, .search-box, [role="search"]',
            predicate=any_of(has_class("search", "search-form", "search-box"), attr_equals("role", "search")),
            action=RuleAction.REMOVE,
            description="Remove search widgets",
        )
    )
    rules.add(
        FilterRule(
            selector='.breadcrumb, .breadcrumbs, [aria-label="breadcrumb"]',
            predicate=any_of(has_class("breadcrumb", "breadcrumbs"), attr_equals("aria-label", "breadcrumb")),
            action=RuleAction.REMOVE,
            description="Remove breadcrumbs",
        )
    )
    rules.add(
        FilterRule(
            selector=".pagination, .pager, .page-numbers",
            predicate=any_of(
                has_class("pagination", "pager", "page-numbers"), attr_contains("aria-label", "pagination")
            ),
            action=RuleAction.REMOVE,
            description="Remove pagination controls",
        )
    )
    rules.add(
        FilterRule(
            selector="form, button, input, select, textarea",
            predicate=tag_in("form", "button", "input", "select", "textarea"),
            action=RuleAction.REMOVE,
            description="Remove form controls",
        )
    )
    rules.add(
        FilterRule(
            selector=f"ul, ol (link density > {link_dense_threshold})",
            predicate=link_dense_list(link_dense_threshold),
            action=RuleAction.REMOVE,
            description="Remove link-dense lists",
        )
    )
    rules.add(
        FilterRule(
            selector="p, div, span, section, article (empty)",
            predicate=is_empty_container,
            action=RuleAction.REMOVE,
            description="Remove empty containers",
        )
    )
    return rules


__all__ = ["AGGRESSIVE", "SAFE", "build_aggressive_rules", "build_safe_rules", "is_empty_container", "link_dense_list"]
