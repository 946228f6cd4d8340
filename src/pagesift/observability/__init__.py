"""
Observability for PageSift: structlog configuration and run correlation.
"""

from .logging import add_run_id, configure_logging

__all__ = ["add_run_id", "configure_logging"]
