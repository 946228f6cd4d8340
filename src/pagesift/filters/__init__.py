"""
Boilerplate filtering: named rule sets (SAFE, AGGRESSIVE) applied to clones of
the content tree, guarded by a content-preservation heuristic.
"""

from .boilerplate import BoilerplateFilter, FilterResult
from .rules import FilterRule, RuleAction, RuleRegistry, RuleSet
from .rulesets import AGGRESSIVE, SAFE, build_aggressive_rules, build_safe_rules

__all__ = [
    "AGGRESSIVE",
    "SAFE",
    "BoilerplateFilter",
    "FilterResult",
    "FilterRule",
    "RuleAction",
    "RuleRegistry",
    "RuleSet",
    "build_aggressive_rules",
    "build_safe_rules",
]
