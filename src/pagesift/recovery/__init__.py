"""
Fault recovery: transient retry, the prioritized strategy registry, the
built-in strategies and the bounded diagnostic log.
"""

from .diagnostics import DiagnosticEntry, DiagnosticLog
from .registry import DEFAULT_STRATEGY_TIMEOUT, FallbackResult, RecoveryRegistry, RecoveryStrategy
from .retry import call_with_retry, is_transient
from .strategies import build_default_registry, stage_in

__all__ = [
    "DEFAULT_STRATEGY_TIMEOUT",
    "DiagnosticEntry",
    "DiagnosticLog",
    "FallbackResult",
    "RecoveryRegistry",
    "RecoveryStrategy",
    "build_default_registry",
    "call_with_retry",
    "is_transient",
    "stage_in",
]
