"""
Site-specific Stage-0 extractors.
"""

from .reddit import RedditExtractor, aggressive_noise_filter, calculate_quality_score

__all__ = ["RedditExtractor", "aggressive_noise_filter", "calculate_quality_score"]
