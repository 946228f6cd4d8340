"""
Quality gates between pipeline stages.

A gate failure is an expected outcome that moves the pipeline on to its next
stage; it is never reported to the caller as an error.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import structlog

from pagesift.config.config import GateConfig, GateThresholds
from pagesift.exceptions import QualityGateFailure
from pagesift.tree.node import ContentNode

from .metrics import QualityMetrics, compute_metrics

logger = structlog.get_logger(__name__)

GATE_A = "gate_a"
GATE_B = "gate_b"
GATE_C = "gate_c"

# (upper bound exclusive, points)
CHARACTER_BANDS: Tuple[Tuple[float, int], ...] = ((300, 0), (1000, 15), (5000, 25))
MAX_CHARACTER_POINTS = 30
PARAGRAPH_BANDS: Tuple[Tuple[int, int], ...] = ((5, 20), (3, 15), (1, 10))
LINK_DENSITY_BANDS: Tuple[Tuple[float, int], ...] = ((0.1, 20), (0.2, 15), (0.4, 10), (0.6, 5))
SIGNAL_TO_NOISE_BANDS: Tuple[Tuple[float, int], ...] = ((0.5, 15), (0.3, 10), (0.1, 5))
MAX_STRUCTURE_POINTS = 15


@dataclass(slots=True, frozen=True)
class GateVerdict:
    gate: str
    passed: bool
    score: int
    failure_reasons: Tuple[str, ...] = ()
    metrics: QualityMetrics = field(default_factory=QualityMetrics)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_score(metrics: QualityMetrics) -> int:
    """Weighted 0-100 quality score."""
    score = 0.0

    for upper, points in CHARACTER_BANDS:
        if metrics.character_count < upper:
            score += points
            break
    else:
        score += MAX_CHARACTER_POINTS

    for lower, points in PARAGRAPH_BANDS:
        if metrics.paragraph_count >= lower:
            score += points
            break

    for upper, points in LINK_DENSITY_BANDS:
        if metrics.link_density < upper:
            score += points
            break

    for lower, points in SIGNAL_TO_NOISE_BANDS:
        if metrics.signal_to_noise_ratio > lower:
            score += points
            break

    score += min(MAX_STRUCTURE_POINTS, metrics.structure_score / 10)
    return max(0, min(100, _round_half_up(score)))


class QualityGateValidator:
    """Scores stage candidates and decides whether each gate passes.

    By default a gate passes on its score threshold alone and the remaining
    criteria are reported as ``failure_reasons`` of failed verdicts. With
    ``strict_criteria`` every criterion must hold.
    """

    def __init__(self, config: Optional[GateConfig] = None) -> None:
        self.config = config or GateConfig()
        self.logger = logger.bind(component="quality_gates")

    def gate_a(self, node: Optional[ContentNode]) -> GateVerdict:
        """Semantic-query candidate gate."""
        return self._evaluate(GATE_A, node, self.config.semantic)

    def gate_b(self, node: Optional[ContentNode]) -> GateVerdict:
        """General-purpose extractor output gate. Missing output scores 0."""
        if node is None or not node.text_content().strip():
            return GateVerdict(
                gate=GATE_B, passed=False, score=0, failure_reasons=("No content extracted by readability extractor",)
            )
        return self._evaluate(GATE_B, node, self.config.readability)

    def gate_c(self, node: Optional[ContentNode]) -> GateVerdict:
        """Heuristic fallback gate: always passes, score kept for diagnostics."""
        metrics = compute_metrics(node)
        verdict = GateVerdict(gate=GATE_C, passed=True, score=compute_score(metrics), metrics=metrics)
        self.logger.debug("gate_evaluated", gate=GATE_C, passed=True, score=verdict.score)
        return verdict

    def _evaluate(self, gate: str, node: Optional[ContentNode], thresholds: GateThresholds) -> GateVerdict:
        metrics = compute_metrics(node)
        score = compute_score(metrics)
        reasons = self._criteria_failures(metrics, thresholds)
        passed = score >= thresholds.min_score
        if self.config.strict_criteria and reasons:
            passed = False
        if not passed and score < thresholds.min_score:
            reasons.insert(0, f"Quality score too low: {score} < {thresholds.min_score}")

        self.logger.debug("gate_evaluated", gate=gate, passed=passed, score=score)
        return GateVerdict(
            gate=gate,
            passed=passed,
            score=score,
            failure_reasons=() if passed else tuple(reasons),
            metrics=metrics,
        )

    @staticmethod
    def _criteria_failures(metrics: QualityMetrics, thresholds: GateThresholds) -> List[str]:
        reasons: List[str] = []
        if metrics.character_count < thresholds.min_characters:
            reasons.append(f"Low character count: {metrics.character_count} < {thresholds.min_characters}")
        if metrics.paragraph_count < thresholds.min_paragraphs:
            reasons.append(f"Insufficient paragraphs: {metrics.paragraph_count} < {thresholds.min_paragraphs}")
        if metrics.link_density > thresholds.max_link_density:
            reasons.append(
                f"High link density: {metrics.link_density * 100:.1f}% > {thresholds.max_link_density * 100:.0f}%"
            )
        if metrics.structure_score < thresholds.min_structure_score:
            reasons.append(f"Poor structure score: {metrics.structure_score} < {thresholds.min_structure_score}")
        return reasons

    @staticmethod
    def ensure_passed(verdict: GateVerdict) -> GateVerdict:
        if not verdict.passed:
            raise QualityGateFailure(verdict)
        return verdict


def generate_report(verdict: GateVerdict) -> str:
    """Human-readable summary of a gate verdict."""
    metrics = verdict.metrics
    lines = [
        f"Quality Gate Report ({verdict.gate})",
        f"Status: {'PASSED' if verdict.passed else 'FAILED'}",
        f"Score: {verdict.score}/100",
        "",
        "Metrics:",
        f"  - Characters: {metrics.character_count}",
        f"  - Paragraphs: {metrics.paragraph_count}",
        f"  - Link Density: {metrics.link_density * 100:.1f}%",
        f"  - Avg Paragraph Length: {metrics.avg_paragraph_length:.0f}",
        f"  - Headings: {metrics.heading_count}",
        f"  - Signal-to-Noise: {metrics.signal_to_noise_ratio * 100:.1f}%",
        f"  - Structure Score: {metrics.structure_score:.1f}",
    ]
    if verdict.failure_reasons:
        lines.extend(["", "Failure Reasons:"])
        lines.extend(f"  - {reason}" for reason in verdict.failure_reasons)
    return "\n".join(lines)
