"""
Filter rule model and the registry that holds named rule sets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import urlparse

from pagesift.exceptions import ConfigurationError
from pagesift.tree.node import ContentNode, NodePredicate


class RuleAction(str, Enum):
    REMOVE = "remove"
    UNWRAP = "unwrap"


def host_of(url: Optional[str]) -> str:
    if not url:
        return ""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def host_matches(url: Optional[str], domains: Iterable[str]) -> bool:
    """Whether the host of ``url`` is, or is a subdomain of, one of ``domains``."""
    host = host_of(url)
    return bool(host) and any(host == domain or host.endswith("." + domain) for domain in domains)


@dataclass(frozen=True)
class FilterRule:
    """One cleaning rule.

    ``selector`` is the human-readable form of ``predicate`` and is only used
    for listings and logs. ``domains`` limits a site-specific rule to pages
    whose host is, or is a subdomain of, one of the listed domains.
    """

    selector: str
    predicate: NodePredicate
    action: RuleAction
    description: str
    domains: Tuple[str, ...] = ()

    def applies_to(self, url: Optional[str]) -> bool:
        if not self.domains:
            return True
        return host_matches(url, self.domains)

    def matches(self, node: ContentNode) -> bool:
        return node.matches(self.predicate)


@dataclass
class RuleSet:
    name: str
    rules: List[FilterRule] = field(default_factory=list)

    def add(self, rule: FilterRule) -> None:
        self.rules.append(rule)

    def for_url(self, url: Optional[str]) -> List[FilterRule]:
        return [rule for rule in self.rules if rule.applies_to(url)]

    def __len__(self) -> int:
        return len(self.rules)


class RuleRegistry:
    """Named rule sets handed to the filter engine at construction.

    Registries are plain objects: each pipeline (or test) may own its own.
    """

    def __init__(self, rule_sets: Optional[Iterable[RuleSet]] = None) -> None:
        self._rule_sets: Dict[str, RuleSet] = {}
        for rule_set in rule_sets or ():
            self.register(rule_set)

    def register(self, rule_set: RuleSet) -> None:
        self._rule_sets[rule_set.name] = rule_set

    def add_rule(self, set_name: str, rule: FilterRule) -> None:
        self.get(set_name).add(rule)

    def get(self, name: str) -> RuleSet:
        try:
            return self._rule_sets[name]
        except KeyError:
            raise ConfigurationError(f"Unknown rule set: {name}") from None

    def names(self) -> List[str]:
        return list(self._rule_sets)

    def __contains__(self, name: object) -> bool:
        return name in self._rule_sets

    @classmethod
    def default(cls, link_dense_threshold: float = 0.5) -> RuleRegistry:
        from .rulesets import build_aggressive_rules, build_safe_rules

        return cls([build_safe_rules(), build_aggressive_rules(link_dense_threshold)])
