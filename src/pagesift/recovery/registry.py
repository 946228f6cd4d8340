"""
Prioritized, timeout-bounded recovery strategies for unexpected stage faults.

Strategies are tried in ascending priority (ties keep registration order).
Each one races a hard timeout; a strategy that fails, reports failure or times
out is logged and the next one is tried. The first success wins.

Timeouts bound *waiting* only. Async strategies are cancelled cooperatively;
synchronous strategies run in a worker thread that is abandoned, not killed,
when it loses the race. Strategies must therefore only read the pipeline
context and return fresh values.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union

import structlog

from pagesift.exceptions import RecoveryExhaustedError
from pagesift.models import PipelineContext

from .diagnostics import DiagnosticLog

logger = structlog.get_logger(__name__)

DEFAULT_STRATEGY_TIMEOUT = 30.0


@dataclass
class FallbackResult:
    success: bool
    result: Any = None
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    strategy_name: str = ""


StrategyPredicate = Callable[[PipelineContext], bool]
StrategyHandler = Callable[[PipelineContext], Union[FallbackResult, Awaitable[FallbackResult]]]


@dataclass(frozen=True)
class RecoveryStrategy:
    name: str
    priority: int
    can_handle: StrategyPredicate
    execute: StrategyHandler
    description: str = ""


class RecoveryRegistry:
    """Holds recovery strategies and runs them against a faulted context."""

    def __init__(
        self,
        timeout: float = DEFAULT_STRATEGY_TIMEOUT,
        diagnostics: Optional[DiagnosticLog] = None,
    ) -> None:
        self.timeout = timeout
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self._strategies: List[Tuple[int, int, RecoveryStrategy]] = []
        self._sequence = itertools.count()
        self.logger = logger.bind(component="recovery_registry")

    def register(self, strategy: RecoveryStrategy) -> None:
        if any(existing.name == strategy.name for _, _, existing in self._strategies):
            raise ValueError(f"Recovery strategy already registered: {strategy.name}")
        self._strategies.append((strategy.priority, next(self._sequence), strategy))
        self._strategies.sort(key=lambda entry: (entry[0], entry[1]))

    def unregister(self, name: str) -> bool:
        before = len(self._strategies)
        self._strategies = [entry for entry in self._strategies if entry[2].name != name]
        return len(self._strategies) != before

    @property
    def strategies(self) -> List[RecoveryStrategy]:
        return [strategy for _, _, strategy in self._strategies]

    def applicable(self, context: PipelineContext) -> List[RecoveryStrategy]:
        selected = []
        for strategy in self.strategies:
            try:
                if strategy.can_handle(context):
                    selected.append(strategy)
            except Exception as e:
                self.logger.warning("strategy_predicate_failed", strategy=strategy.name, error=str(e))
        return selected

    async def recover(self, context: PipelineContext) -> FallbackResult:
        """Run applicable strategies until one succeeds.

        Raises:
            RecoveryExhaustedError: no strategy succeeded; carries the original
                fault plus every warning and error collected on the way.
        """
        fault = context.fault or RuntimeError(f"Unknown fault in stage {context.stage.value}")
        stage = context.stage.value
        warnings: List[str] = []
        errors: List[str] = []

        candidates = self.applicable(context)
        self.logger.info("recovery_started", stage=stage, error=str(fault), candidates=[s.name for s in candidates])

        for strategy in candidates:
            try:
                outcome = await asyncio.wait_for(self._execute(strategy, context), timeout=self.timeout)
            except asyncio.TimeoutError:
                message = f"Recovery strategy '{strategy.name}' timed out after {self.timeout:g}s"
                self._strategy_failed(context, strategy, message, warnings)
                continue
            except Exception as e:
                message = f"Recovery strategy '{strategy.name}' failed: {e}"
                self._strategy_failed(context, strategy, message, warnings)
                continue

            if not isinstance(outcome, FallbackResult):
                outcome = FallbackResult(success=outcome is not None, result=outcome)
            warnings.extend(outcome.warnings)
            if outcome.success:
                outcome.strategy_name = outcome.strategy_name or strategy.name
                outcome.warnings = warnings
                self.diagnostics.record(
                    stage, fault, url=context.url, run_id=context.run_id, strategy=strategy.name, recovered=True
                )
                self.logger.info("recovery_succeeded", stage=stage, strategy=strategy.name)
                return outcome
            errors.extend(outcome.errors or [f"Recovery strategy '{strategy.name}' reported failure"])

        self.diagnostics.record(stage, fault, url=context.url, run_id=context.run_id)
        self.logger.error("recovery_exhausted", stage=stage, error=str(fault), attempted=len(candidates))
        raise RecoveryExhaustedError(fault, warnings=warnings, errors=errors)

    async def _execute(self, strategy: RecoveryStrategy, context: PipelineContext) -> Any:
        if inspect.iscoroutinefunction(strategy.execute):
            return await strategy.execute(context)
        result = await asyncio.to_thread(strategy.execute, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _strategy_failed(
        self, context: PipelineContext, strategy: RecoveryStrategy, message: str, warnings: List[str]
    ) -> None:
        self.logger.warning("recovery_strategy_failed", strategy=strategy.name, detail=message)
        self.diagnostics.record(
            context.stage.value, message, url=context.url, run_id=context.run_id, strategy=strategy.name
        )
        warnings.append(message)
