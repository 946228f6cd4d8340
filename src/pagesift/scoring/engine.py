"""
Heuristic content scoring and pruning.

Scores are deterministic functions of a node's subtree: container type,
class/id keywords, link density and content characteristics.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

import structlog

from pagesift.config.config import PRUNE_SCORE_THRESHOLD
from pagesift.tree.node import ContentNode
from pagesift.tree.predicates import any_of, attr_equals, tag_in

if TYPE_CHECKING:
    from pagesift.config.config import ScoringConfig

logger = structlog.get_logger(__name__)

POSITIVE_KEYWORDS = re.compile(r"(content|article|body|main|story|product|detail|overview|spec|datasheet)", re.I)
NEGATIVE_KEYWORDS = re.compile(
    r"(nav|menu|header|footer|sidebar|breadcrumb|social|comment|ad|promo|widget|popup)", re.I
)

NEGATIVE_KEYWORD_WEIGHT = -50
POSITIVE_KEYWORD_WEIGHT = 25

TAG_WEIGHTS: Dict[str, int] = {
    "main": 20,
    "article": 20,
    "section": 10,
    "div": 5,
    "nav": -50,
    "header": -50,
    "footer": -50,
    "aside": -50,
}

MIN_TEXT_LENGTH = 50
LINK_DENSITY_LIMIT = 0.3
TABLE_BONUS = 30
PARAGRAPH_BONUS = 2
HEADING_BONUS = 3
HEADING_BONUS_CAP = 10

is_content_island = any_of(tag_in("article", "main", "section", "div", "td"), attr_equals("role", "main", "article"))


@dataclass(slots=True, frozen=True)
class ExtractionCandidate:
    """A node picked as likely main content, with the reasoning behind its score."""

    node: ContentNode
    score: int
    rationale: Dict[str, float] = field(default_factory=dict)


class ScoringEngine:
    """Scores and prunes content-tree nodes.

    Scoring faults never propagate: the node scores 0 and the fault is kept in
    :attr:`warnings`. One engine is meant to serve a single pipeline run.
    """

    def __init__(self, config: Optional[ScoringConfig] = None) -> None:
        self.prune_threshold = config.prune_threshold if config else PRUNE_SCORE_THRESHOLD
        self.min_text_length = config.min_text_length if config else MIN_TEXT_LENGTH
        self.link_density_limit = config.link_density_limit if config else LINK_DENSITY_LIMIT
        self.warnings: List[str] = []
        self.logger = logger.bind(component="scoring_engine")

    def score_node(self, node: ContentNode) -> int:
        return int(self._safe_explain(node)["total"])

    def _safe_explain(self, node: ContentNode) -> Dict[str, float]:
        try:
            return self.explain(node)
        except Exception as e:
            self.logger.warning("score_node_failed", node=str(node), error=str(e))
            self.warnings.append(f"Scoring failed for {node}: {e}")
            return {"total": 0}

    def explain(self, node: ContentNode) -> Dict[str, float]:
        """Per-heuristic contributions for ``node``; ``total`` is the integer score."""
        if not node.is_element or not node.visible:
            return {"total": 0}
        text = node.text_content().strip()
        if len(text) < self.min_text_length:
            return {"total": 0}

        keyword_weight = self._keyword_weight(node)
        tag_weight = TAG_WEIGHTS.get(node.tag, 0)
        link_penalty = self._link_density_penalty(node, text)
        content_bonus = self._content_bonus(node, text)
        total = keyword_weight + tag_weight - link_penalty + content_bonus
        return {
            "keyword_weight": keyword_weight,
            "tag_weight": tag_weight,
            "link_penalty": link_penalty,
            "content_bonus": content_bonus,
            "total": math.floor(total),
        }

    def _keyword_weight(self, node: ContentNode) -> int:
        class_and_id = f"{node.attributes.get('class', '')} {node.id}".lower()
        weight = 0
        if NEGATIVE_KEYWORDS.search(class_and_id):
            weight += NEGATIVE_KEYWORD_WEIGHT
        if POSITIVE_KEYWORDS.search(class_and_id):
            weight += POSITIVE_KEYWORD_WEIGHT
        return weight

    def _link_density_penalty(self, node: ContentNode, text: str) -> float:
        text_length = max(1, len(text))
        link_text = sum(len(anchor.text_content()) for anchor in node.find_all("a"))
        density = link_text / text_length
        if density > self.link_density_limit:
            return density**2 * text_length * 0.5
        return 0.0

    def _content_bonus(self, node: ContentNode, text: str) -> int:
        bonus = len(text) // 100
        descendants = [child.tag for child in node.iter_elements()]
        if "table" in descendants:
            bonus += TABLE_BONUS
        bonus += descendants.count("p") * PARAGRAPH_BONUS
        headings = sum(1 for tag in descendants if tag in ("h1", "h2", "h3"))
        bonus += min(HEADING_BONUS_CAP, headings * HEADING_BONUS)
        return bonus

    def find_best_candidate(self, root: ContentNode) -> Optional[ExtractionCandidate]:
        """Highest-scoring content island under ``root``; first in document order wins ties."""
        best: Optional[ExtractionCandidate] = None
        for node in root.iter_elements():
            if not is_content_island(node):
                continue
            rationale = self._safe_explain(node)
            score = int(rationale["total"])
            if score <= 0:
                continue
            if best is None or score > best.score:
                best = ExtractionCandidate(node=node, score=score, rationale=rationale)
        if best is not None:
            self.logger.debug("best_candidate_found", node=str(best.node), score=best.score)
        return best

    def prune_node(self, winner: ContentNode) -> ContentNode:
        """Clone ``winner`` and drop direct element children scoring at or below the threshold."""
        pruned = winner.clone()
        for child in pruned.element_children:
            score = self.score_node(child)
            if score <= self.prune_threshold:
                self.logger.debug("pruned_child", node=str(child), score=score)
                child.remove()
        return pruned
