"""
Content extractors: the semantic-container query, the readability-based
general-purpose extractor and its URL presets.
"""

from .models import ExtractorOutput, PluginResult
from .presets import DEFAULT_PRESET, PRESETS, ExtractorPreset, get_preset, preset_for_url
from .readability_extractor import ReadabilityExtractor
from .semantic import SEMANTIC_SELECTORS, semantic_query

__all__ = [
    "DEFAULT_PRESET",
    "PRESETS",
    "SEMANTIC_SELECTORS",
    "ExtractorOutput",
    "ExtractorPreset",
    "PluginResult",
    "ReadabilityExtractor",
    "get_preset",
    "preset_for_url",
    "semantic_query",
]
