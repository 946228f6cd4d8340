"""
Reddit Stage-0 extractor.

New Reddit renders posts as web components whose content sits behind
declarative shadow roots and named slots. The general pipeline sees little
more than chrome there, so this plugin walks the components directly:

1. shadow-root traversal of every ``shreddit-post`` (plus the comment tree),
2. a semantic-element pass over ``shreddit-title``, the post body and
   ``shreddit-comment`` slots.

Both produce line-oriented text that is run through a noise filter and
scored; the first result that clears the plugin's own thresholds wins.
"""

from __future__ import annotations

import re
from typing import Iterator, List, Optional, Tuple

import structlog

from pagesift.extractor.models import PluginResult
from pagesift.filters.rules import host_matches
from pagesift.tree.node import ContentNode
from pagesift.tree.predicates import all_of, attr_contains, attr_equals, has_attr, tag_in, within

logger = structlog.get_logger(__name__)

NOISE_TAGS = frozenset({"button", "nav", "header", "footer", "aside", "form", "input", "svg"})
NOISE_ATTRIBUTES = ("data-click", "data-adunit", "hidden", "aria-hidden")
BUTTON_TEXTS = frozenset({"share", "save", "hide", "report", "reply", "edit", "delete", "award"})
CONTENT_SLOTS = frozenset({"text-body", "title"})

NOISE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE | re.MULTILINE)
    for pattern in (
        r"\b\d+\s*upvotes?\b",
        r"\b\d+\s*downvotes?\b",
        r"\b\d+\s*comments?\b",
        r"\bshare\s*$",
        r"\breport\s*$",
        r"\bsave\s*$",
        r"\b\d+\s*points?\b",
        r"\b\d+\s*karma\b",
        r"posted by u/\w+",
        r"\b\d+\s*(?:hours?|days?|months?|years?)\s*ago\b",
        r"\bawards?\s*$",
        r"\breply\s*$",
        r"\bpermalink\s*$",
        r"\bedit\s*$",
        r"\bdelete\s*$",
        r"\bgive\s+award\b",
        r"\bhide\s*$",
        r"\bcollapse\s*$",
        r"\bsort by:?\s*\w+",
        r"\bvote\s*$",
    )
]
_HEADING_LINE = re.compile(r"^(#{1,6})\s+(.*)$")
_USER_PREFIX = re.compile(r"^u/")

_POST = tag_in("shreddit-post")
_AUTHOR_LINK = all_of(tag_in("a"), lambda node: (node.get("href") or "").startswith(("/user/", "/u/")))
REDDIT_DOMAINS = ("reddit.com", "redd.it")


def is_reddit_url(url: str) -> bool:
    return host_matches(url, REDDIT_DOMAINS)


def is_noise_element(node: ContentNode) -> bool:
    """UI chrome inside Reddit components: buttons, forms, hidden or tracking-only elements."""
    if node.tag in NOISE_TAGS or node.hidden:
        return True
    if any(name in node.attributes for name in NOISE_ATTRIBUTES):
        return True
    if node.tag in ("a", "button", "span"):
        text = node.text_content().strip()
        if 0 < len(text) < 20 and " " not in text and text.lower() in BUTTON_TEXTS:
            return True
    return False


def _walk(root: ContentNode) -> Iterator[ContentNode]:
    """Document-order walk that does not descend into noise elements."""
    stack = list(reversed(root.children))
    while stack:
        node = stack.pop()
        if node.is_element and is_noise_element(node):
            continue
        yield node
        stack.extend(reversed(node.children))


def extract_text(node: ContentNode) -> str:
    """Visible text of ``node`` with noise subtrees and tiny fragments dropped."""
    parts = [child.text.strip() for child in _walk(node) if child.is_text]
    return " ".join(part for part in parts if len(part) > 3)


def aggressive_noise_filter(content: str) -> str:
    """Strip vote counts, timestamps and action labels; drop short and repeated lines."""
    cleaned = content
    for pattern in NOISE_PATTERNS:
        cleaned = pattern.sub("", cleaned)

    kept = [line.strip() for line in cleaned.split("\n")]
    kept = [line for line in kept if len(line) > 5 or _HEADING_LINE.match(line)]

    deduped: List[str] = []
    previous = ""
    for line in kept:
        # long lines may legitimately repeat
        if line != previous or len(line) > 50:
            deduped.append(line)
            previous = line
    return "\n\n".join(deduped).strip()


def calculate_quality_score(cleaned: str, raw: str) -> int:
    """100 minus penalties for extreme noise ratios, thin content and fragmented text."""
    if not raw:
        return 0
    reduction = 1 - (len(cleaned) / len(raw))
    word_count = len(cleaned.split())
    avg_word_length = len(cleaned) / (word_count or 1)

    score = 100
    if reduction > 0.8:
        score -= 20
    if reduction < 0.3:
        score -= 20
    if word_count < 50:
        score -= 30
    if avg_word_length < 4:
        score -= 10
    return max(0, min(100, score))


def lines_to_tree(content: str) -> ContentNode:
    """Turn filtered lines into a document of headings and paragraphs."""
    root = ContentNode.document()
    for block in content.split("\n\n"):
        block = block.strip()
        if not block:
            continue
        heading = _HEADING_LINE.match(block)
        if heading:
            root.append(ContentNode.element(f"h{len(heading.group(1))}", children=[heading.group(2)]))
        else:
            root.append(ContentNode.element("p", children=[block]))
    return root


class RedditExtractor:
    """Stage-0 plugin for reddit.com posts and comment threads."""

    name = "reddit"

    def __init__(self, min_score: int = 60, min_length: int = 100, max_shadow_depth: int = 5) -> None:
        self.min_score = min_score
        self.min_length = min_length
        self.max_shadow_depth = max_shadow_depth
        self.logger = logger.bind(component="reddit_extractor")

    def can_handle(self, url: str) -> bool:
        return bool(url) and is_reddit_url(url)

    async def extract(self, tree: ContentNode, url: str) -> Optional[PluginResult]:
        if not self.can_handle(url):
            return None

        best: Optional[PluginResult] = None
        for strategy in (self._shadow_dom_traversal, self._semantic_elements):
            result = strategy(tree)
            if result is None:
                continue
            if self._acceptable(result):
                self.logger.info(
                    "reddit_strategy_succeeded",
                    strategy=result.strategy,
                    score=result.score,
                    length=result.text_length,
                )
                return result
            self.logger.debug("reddit_strategy_below_threshold", strategy=result.strategy, score=result.score)
            if best is None or result.score > best.score:
                best = result
        return best

    def _acceptable(self, result: PluginResult) -> bool:
        return result.score >= self.min_score and result.text_length >= self.min_length

    def _finish(self, raw: str, strategy: str, shadow_depth: int = 0) -> Optional[PluginResult]:
        cleaned = aggressive_noise_filter(raw)
        if not cleaned:
            return None
        return PluginResult(
            score=calculate_quality_score(cleaned, raw),
            content=lines_to_tree(cleaned),
            strategy=strategy,
            metadata={"shadow_dom_depth": shadow_depth, "noise_filtered": True},
        )

    # --- strategy 1 ---

    def _shadow_dom_traversal(self, tree: ContentNode) -> Optional[PluginResult]:
        posts = tree.select(_POST)
        if not posts:
            return None

        content: List[str] = []
        depth = 0
        for post in posts:
            text, post_depth = self._traverse_shadow(post, 0)
            if text:
                content.append(text)
                depth = max(depth, post_depth)

        comment_tree = tree.find(tag_in("shreddit-comment-tree"))
        if comment_tree is not None:
            comments, _ = self._traverse_shadow(comment_tree, 0)
            if comments:
                content.append("## Comments")
                content.append(comments)

        if not content:
            return None
        return self._finish("\n\n".join(content), "shadow-dom-traversal", depth)

    def _traverse_shadow(self, element: ContentNode, depth: int) -> Tuple[str, int]:
        if depth > self.max_shadow_depth:
            return "", depth
        if element.shadow_root is None:
            return extract_text(element), depth

        parts: List[str] = []
        max_depth = depth
        for node in _walk(element.shadow_root):
            if node.is_text:
                text = node.text.strip()
                if len(text) > 3:
                    parts.append(text + " ")
                continue
            if node.shadow_root is not None:
                nested, nested_depth = self._traverse_shadow(node, depth + 1)
                parts.append(nested + "\n")
                max_depth = max(max_depth, nested_depth)
            if node.get("slot") in CONTENT_SLOTS:
                parts.append(node.text_content().strip() + "\n\n")
        return "".join(parts).strip(), max_depth

    # --- strategy 2 ---

    def _semantic_elements(self, tree: ContentNode) -> Optional[PluginResult]:
        content: List[str] = []
        post_author = self._post_author(tree)

        title = tree.find(all_of(tag_in("h1"), within(tag_in("shreddit-title"))))
        if title is not None and title.text_content().strip():
            content.append(f"# {title.text_content().strip()}")

        meta = []
        subreddit = self._subreddit(tree)
        if subreddit:
            meta.append(f"r/{subreddit}")
        if post_author:
            meta.append(f"Author: u/{post_author} (OP)")
        if meta:
            content.append(" | ".join(meta))

        body = tree.find(
            all_of(
                tag_in("div"),
                attr_contains("id", "-post-rtjson-content"),
                within(tag_in("shreddit-post-text-body")),
            )
        ) or tree.find(all_of(attr_equals("slot", "text-body"), within(tag_in("shreddit-post-text-body"))))
        if body is not None:
            body_text = extract_text(body)
            if len(body_text) > 20:
                content.append(body_text)

        comments = self._comments(tree, post_author)
        if comments:
            plural = "s" if len(comments) > 1 else ""
            content.append(f"## {len(comments)} Comment{plural}")
            content.extend(comments)

        if len("".join(content)) < 100:
            post = tree.find(_POST)
            if post is not None:
                post_text = extract_text(post)
                if len(post_text) > 50:
                    content.append(post_text)

        if not content:
            return None
        return self._finish("\n".join(content), "semantic-elements")

    def _comments(self, tree: ContentNode, post_author: Optional[str]) -> List[str]:
        comments = []
        for container in tree.select(tag_in("shreddit-comment")):
            slot = container.find(attr_equals("slot", "comment"))
            if slot is None:
                continue
            text = extract_text(slot)
            if len(text) < 10:
                continue
            author = self._author_name(container) or "Unknown"
            marker = " (OP)" if post_author and author == post_author else ""
            comments.append(f"u/{author}{marker}: {text}")
        return comments

    @staticmethod
    def _author_name(scope: ContentNode) -> Optional[str]:
        link = scope.find(_AUTHOR_LINK)
        if link is None:
            return None
        text = link.text_content().strip()
        return _USER_PREFIX.sub("", text) or None

    def _post_author(self, tree: ContentNode) -> Optional[str]:
        slot_link = tree.find(all_of(tag_in("a"), within(attr_equals("slot", "authorname")), within(_POST)))
        if slot_link is not None and slot_link.text_content().strip():
            return _USER_PREFIX.sub("", slot_link.text_content().strip())
        post = tree.find(_POST)
        if post is not None:
            return post.get("author") or self._author_name(post)
        return None

    @staticmethod
    def _subreddit(tree: ContentNode) -> Optional[str]:
        link = tree.find(all_of(tag_in("a"), has_attr("href"), lambda node: node.get("href", "").startswith("/r/")))
        if link is not None:
            match = re.match(r"/r/([^/]+)", link.get("href", ""))
            if match:
                return match.group(1)
        return None
