"""
PageSift - main-content extraction from captured web pages.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .container import DependencyContainer
from .models import ProcessingResult, ProcessingStats
from .pipeline import ExtractionPipeline

__all__ = ["__version__", "Config", "DependencyContainer", "ExtractionPipeline", "ProcessingResult", "ProcessingStats"]
