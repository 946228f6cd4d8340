"""
Rule-driven boilerplate filter with a content-preservation seam.

``apply_rules`` never touches its input: it clones the tree, then applies the
rule set pass after pass until no rule fires (bounded by ``max_passes``), so a
rule set applied to its own output is a no-op.

Precedence: preservation only shields the node that matched a rule. A Remove
rule matching an *ancestor* of a preserved node deletes the whole subtree,
preserved node included.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Union

import structlog

from pagesift.tree.node import ContentNode
from pagesift.tree.predicates import any_of, attr_equals, has_attr, tag_in, within

from .rules import FilterRule, RuleAction, RuleRegistry, RuleSet

if TYPE_CHECKING:
    from pagesift.config.config import FilterConfig

logger = structlog.get_logger(__name__)

DEFAULT_MAX_PASSES = 8
DEFAULT_HEADING_PROXIMITY = 3
DEFAULT_BYPASS_CODE_BLOCKS = 3
BYPASS_TECHNICAL_HEADINGS = 2

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

CODE_CLASS_PATTERN = re.compile(
    r"(highlight|hljs|codehilite|sourcecode|code-block|syntax|language-|lang-|prism|math|equation|formula)",
    re.IGNORECASE,
)
TECHNICAL_HEADING_PATTERN = re.compile(
    r"\b(api|usage|examples?|install(?:ation|ing)?|config(?:uration)?|parameters?|options|reference|code|snippets?"
    r"|specification|syntax|methods?|functions?|returns|arguments|quick ?start|getting started)\b",
    re.IGNORECASE,
)

has_content_marker = any_of(
    has_attr("data-preserve"),
    has_attr("data-content"),
    has_attr("data-keep"),
    attr_equals("itemprop", "articleBody"),
    attr_equals("role", "main", "article"),
)
inside_code = within(tag_in("pre", "code"))


@dataclass
class FilterResult:
    """Outcome of applying one rule set."""

    tree: ContentNode
    removed: int = 0
    unwrapped: int = 0
    preserved: int = 0
    passes: int = 0
    warnings: List[str] = field(default_factory=list)
    _preserved_ids: Set[int] = field(default_factory=set, repr=False)

    @property
    def changed(self) -> bool:
        return bool(self.removed or self.unwrapped)


class BoilerplateFilter:
    """Applies SAFE/AGGRESSIVE rule sets and owns the preservation heuristic."""

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        config: Optional[FilterConfig] = None,
        max_passes: int = DEFAULT_MAX_PASSES,
    ) -> None:
        self.registry = registry or RuleRegistry.default(config.link_dense_list_threshold if config else 0.5)
        self.max_passes = max_passes
        self.heading_proximity = config.heading_proximity_depth if config else DEFAULT_HEADING_PROXIMITY
        self.bypass_code_blocks = config.bypass_code_block_threshold if config else DEFAULT_BYPASS_CODE_BLOCKS
        self.logger = logger.bind(component="boilerplate_filter")

    # --- rule application ---

    def apply_rules(
        self, tree: ContentNode, ruleset: Union[str, RuleSet], url: Optional[str] = None
    ) -> FilterResult:
        rule_set = self.registry.get(ruleset) if isinstance(ruleset, str) else ruleset
        rules = rule_set.for_url(url)
        result = FilterResult(tree=tree.clone())

        while result.passes < self.max_passes:
            result.passes += 1
            if not self._apply_once(result, rules):
                break
        else:
            self.logger.warning("filter_pass_limit_reached", ruleset=rule_set.name, passes=result.passes)
            result.warnings.append(f"Rule set '{rule_set.name}' still changing after {result.passes} passes")

        self.logger.debug(
            "ruleset_applied",
            ruleset=rule_set.name,
            removed=result.removed,
            unwrapped=result.unwrapped,
            preserved=result.preserved,
            passes=result.passes,
        )
        return result

    def _apply_once(self, result: FilterResult, rules: List[FilterRule]) -> bool:
        changed = False
        queue = deque(result.tree.element_children)
        while queue:
            node = queue.popleft()
            rule = self._first_match(node, rules, result)
            if rule is None:
                queue.extend(node.element_children)
                continue
            if self.should_preserve_element(node):
                if id(node) not in result._preserved_ids:
                    result._preserved_ids.add(id(node))
                    result.preserved += 1
                queue.extend(node.element_children)
                continue
            changed = True
            if rule.action is RuleAction.REMOVE:
                node.remove()
                result.removed += 1
            else:
                lifted = node.unwrap()
                result.unwrapped += 1
                queue.extend(child for child in lifted if child.is_element)
        return changed

    def _first_match(self, node: ContentNode, rules: List[FilterRule], result: FilterResult) -> Optional[FilterRule]:
        for rule in rules:
            try:
                if rule.matches(node):
                    return rule
            except Exception as e:
                # A broken rule must not stop the others.
                self.logger.warning("filter_rule_failed", rule=rule.description, error=str(e))
                result.warnings.append(f"Filter rule '{rule.description}' failed: {e}")
        return None

    # --- preservation ---

    def should_preserve_element(self, node: ContentNode) -> bool:
        if not node.is_element:
            return False
        if has_content_marker(node):
            return True
        if self._is_code_like(node):
            return True
        return self._near_technical_heading(node)

    def _is_code_like(self, node: ContentNode) -> bool:
        if node.tag in ("pre", "code"):
            return True
        if CODE_CLASS_PATTERN.search(node.attributes.get("class", "")):
            return True
        return inside_code(node)

    def _near_technical_heading(self, node: ContentNode) -> bool:
        for depth, ancestor in enumerate(node.ancestors(), start=1):
            if depth > self.heading_proximity:
                break
            for sibling in ancestor.element_children:
                if sibling.tag in HEADING_TAGS and TECHNICAL_HEADING_PATTERN.search(sibling.text_content()):
                    return True
        return False

    # --- bypass decision ---

    def technical_signals(self, tree: ContentNode) -> Dict[str, int]:
        code_blocks = 0
        technical_headings = 0
        for node in tree.iter_elements():
            if node.tag == "pre":
                code_blocks += 1
            elif node.tag == "code" and CODE_CLASS_PATTERN.search(node.attributes.get("class", "")):
                if not inside_code(node):
                    code_blocks += 1
            elif node.tag in HEADING_TAGS and TECHNICAL_HEADING_PATTERN.search(node.text_content()):
                technical_headings += 1
        return {"code_blocks": code_blocks, "technical_headings": technical_headings}

    def should_bypass_readability(self, tree: ContentNode) -> bool:
        """Whether the general-purpose extractor should be skipped for this document."""
        signals = self.technical_signals(tree)
        bypass = signals["code_blocks"] >= self.bypass_code_blocks or (
            signals["code_blocks"] >= 1 and signals["technical_headings"] >= BYPASS_TECHNICAL_HEADINGS
        )
        self.logger.debug("bypass_decision", bypass=bypass, **signals)
        return bypass
