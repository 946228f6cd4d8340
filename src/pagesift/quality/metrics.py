"""
Content quality metrics, recomputed for every candidate.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from pagesift.tree.node import ContentNode
from pagesift.tree.predicates import SEMANTIC_CONTAINER, link_density

HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})

SEMANTIC_WEIGHT = 20
HEADING_WEIGHT = 5
MAX_STRUCTURE_SCORE = 100


@dataclass(slots=True, frozen=True)
class QualityMetrics:
    character_count: int = 0
    paragraph_count: int = 0
    link_density: float = 0.0
    avg_paragraph_length: float = 0.0
    heading_count: int = 0
    signal_to_noise_ratio: float = 0.0
    structure_score: int = 0

    @property
    def is_empty(self) -> bool:
        return self.character_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_metrics(node: Optional[ContentNode]) -> QualityMetrics:
    """Metrics for ``node``; ``None`` yields all-zero metrics."""
    if node is None or not node.is_element:
        return QualityMetrics()

    text = node.text_content()
    character_count = len(text)
    if character_count == 0:
        return QualityMetrics()

    paragraphs = node.find_all("p")
    paragraph_lengths = [len(p.text_content()) for p in paragraphs]
    avg_paragraph_length = sum(paragraph_lengths) / len(paragraphs) if paragraphs else 0.0

    heading_count = 0
    semantic_count = 1 if SEMANTIC_CONTAINER(node) else 0
    for element in node.iter_elements():
        if element.tag in HEADING_TAGS:
            heading_count += 1
        if SEMANTIC_CONTAINER(element):
            semantic_count += 1

    signal_to_noise = character_count / max(1, len(node.inner_html()))

    return QualityMetrics(
        character_count=character_count,
        paragraph_count=len(paragraphs),
        link_density=link_density(node),
        avg_paragraph_length=avg_paragraph_length,
        heading_count=heading_count,
        signal_to_noise_ratio=min(1.0, signal_to_noise),
        structure_score=min(MAX_STRUCTURE_SCORE, semantic_count * SEMANTIC_WEIGHT + heading_count * HEADING_WEIGHT),
    )
