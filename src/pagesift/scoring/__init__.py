"""
Heuristic scoring engine: picks the most content-like subtree and prunes its
boilerplate children.
"""

from .engine import ExtractionCandidate, ScoringEngine, is_content_island

__all__ = ["ExtractionCandidate", "ScoringEngine", "is_content_island"]
