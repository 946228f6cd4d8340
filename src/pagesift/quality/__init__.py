"""
Quality measurement: per-candidate metrics, the A/B/C stage gates and the
final markdown assessment.
"""

from .assessor import assess_output_quality
from .gates import GATE_A, GATE_B, GATE_C, GateVerdict, QualityGateValidator, compute_score, generate_report
from .metrics import QualityMetrics, compute_metrics

__all__ = [
    "GATE_A",
    "GATE_B",
    "GATE_C",
    "GateVerdict",
    "QualityGateValidator",
    "QualityMetrics",
    "assess_output_quality",
    "compute_metrics",
    "compute_score",
    "generate_report",
]
