"""Exceptions raised inside the extraction pipeline.

None of these escape :meth:`pagesift.pipeline.ExtractionPipeline.process`;
the orchestrator classifies and converts them into ``ProcessingResult`` fields.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from pagesift.quality.gates import GateVerdict


class PageSiftError(Exception):
    """Base exception for extraction errors."""

    pass


class ConfigurationError(PageSiftError):
    """Configuration could not be loaded or is inconsistent."""

    pass


class ValidationFault(PageSiftError):
    """Captured input is empty or not tree-buildable."""

    pass


class StageFault(PageSiftError):
    """Unexpected failure inside a pipeline stage."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage}: {cause}")
        self.stage = stage
        self.cause = cause


class TransientFault(PageSiftError):
    """Failure that is expected to clear up on retry (network, rate limit)."""

    pass


class QualityGateFailure(PageSiftError):
    """A stage's candidate did not pass its quality gate."""

    def __init__(self, verdict: GateVerdict) -> None:
        super().__init__(f"{verdict.gate} failed with score {verdict.score}")
        self.verdict = verdict


class RecoveryExhaustedError(PageSiftError):
    """No recovery strategy could stand in for a faulted stage."""

    def __init__(
        self,
        original: BaseException,
        warnings: Optional[List[str]] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(str(original))
        self.original = original
        self.warnings = list(warnings or [])
        self.errors = list(errors or [])
