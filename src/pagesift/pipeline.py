"""
Graceful-degradation extraction pipeline.

One run walks a fixed state machine::

    init -> stage0 -> safe_filter -> semantic_query -> gate_a
         -> (fail) readability_extract -> gate_b
         -> (fail) heuristic_score_prune -> gate_c
         -> convert -> post_process -> quality_assess -> done

A Stage-0 plugin with a good enough result jumps straight to ``convert``.
Technical pages (code blocks near technical headings) skip the semantic and
readability stages once, in favor of ``aggressive_filter`` followed by
scoring and pruning.

Gate failures raise ``QualityGateFailure``, which only moves the run on to the
next stage. Unexpected exceptions are retried when transient and otherwise
handed to the recovery registry; if no strategy can stand in, the run ends in
``fatal_error`` with whatever partial content exists. ``process`` never raises.
"""

from __future__ import annotations

import time
from typing import Any, Callable, List, Optional, Sequence, Tuple

import structlog
from structlog.contextvars import bound_contextvars

from pagesift.cache import fingerprint
from pagesift.config.config import Config
from pagesift.exceptions import QualityGateFailure, RecoveryExhaustedError, StageFault, ValidationFault
from pagesift.extractor.models import PluginResult
from pagesift.extractor.readability_extractor import ReadabilityExtractor
from pagesift.extractor.semantic import semantic_query
from pagesift.filters.boilerplate import BoilerplateFilter
from pagesift.filters.rules import RuleRegistry
from pagesift.filters.rulesets import AGGRESSIVE, SAFE
from pagesift.models import PipelineContext, PipelineStage, ProcessingResult, ProcessingStats
from pagesift.protocols import ContentExtractor, MarkdownRenderer, ResultCache, SiteExtractor
from pagesift.quality.assessor import assess_output_quality
from pagesift.quality.gates import GateVerdict, QualityGateValidator
from pagesift.recovery.diagnostics import DiagnosticLog
from pagesift.recovery.registry import RecoveryRegistry
from pagesift.recovery.retry import call_with_retry
from pagesift.recovery.strategies import build_default_registry
from pagesift.render.markdown import MarkdownifyRenderer
from pagesift.render.postprocess import MarkdownPostProcessor
from pagesift.scoring.engine import ScoringEngine
from pagesift.sites.reddit import RedditExtractor
from pagesift.tree.builder import build_tree, find_body, parse_fragment
from pagesift.tree.node import ContentNode

logger = structlog.get_logger(__name__)


class ExtractionPipeline:
    """Runs captured markup through the staged extraction state machine.

    Registries and collaborators are injected once and shared read-only by
    every run; each run owns its context and works on cloned trees only, so
    independent captures can be processed concurrently.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        rules: Optional[RuleRegistry] = None,
        recovery: Optional[RecoveryRegistry] = None,
        renderer: Optional[MarkdownRenderer] = None,
        extractor: Optional[ContentExtractor] = None,
        plugins: Optional[Sequence[SiteExtractor]] = None,
        cache: Optional[ResultCache] = None,
        diagnostics: Optional[DiagnosticLog] = None,
    ) -> None:
        self.config = config or Config()
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self.rules = rules or RuleRegistry.default(self.config.filters.link_dense_list_threshold)
        self.filter = BoilerplateFilter(
            registry=self.rules,
            config=self.config.filters,
            max_passes=self.config.limits.max_filter_passes,
        )
        self.gates = QualityGateValidator(self.config.gates)
        self.recovery = recovery or build_default_registry(self.config, self.diagnostics, self.rules)
        self.renderer = renderer or MarkdownifyRenderer()
        self.extractor = extractor if extractor is not None else ReadabilityExtractor()
        if plugins is None:
            plugins = [
                RedditExtractor(
                    min_score=self.config.stages.stage0_min_score,
                    min_length=self.config.stages.stage0_min_length,
                )
            ]
        self.plugins: List[SiteExtractor] = list(plugins)
        self.cache = cache
        self.post_processor = MarkdownPostProcessor(self.config.post_processing)
        self.logger = logger.bind(component="pipeline")

    # --- public entry point ---

    async def process(self, html: str, url: str = "", title: str = "") -> ProcessingResult:
        """Extract the main content of ``html`` as markdown.

        Args:
            html: Captured markup
            url: Source URL, used only to select rules, presets and plugins
            title: Passthrough title metadata

        Returns:
            ProcessingResult; ``success`` is False only for invalid input or
            when recovery was exhausted
        """
        context = PipelineContext(html=html if isinstance(html, str) else "", url=url or "", title=title or "")

        with bound_contextvars(run_id=context.run_id):
            try:
                return await self._run(context)
            except RecoveryExhaustedError as e:
                return self._fatal(context, e)
            except Exception as e:
                self.logger.exception("pipeline_internal_error", stage=context.stage.value)
                return self._fatal(context, RecoveryExhaustedError(e))

    # --- state machine ---

    async def _run(self, context: PipelineContext) -> ProcessingResult:
        if not context.html.strip():
            fault = ValidationFault("Input markup is empty")
            self.logger.warning("invalid_input", error=str(fault), url=context.url)
            context.errors.append(str(fault))
            context.enter(PipelineStage.FATAL_ERROR)
            return self._build_result(context, success=False)

        cache_key = None
        if self.cache is not None:
            cache_key = fingerprint(context.html, context.url, self.config)
            cached = await self._cache_get(context, cache_key)
            if cached is not None:
                return cached

        self._truncate(context)
        self.logger.info("pipeline_started", url=context.url, length=len(context.html))

        context.document = await self._run_stage(context, PipelineStage.INIT, build_tree, context.html)

        plugin_hit = await self._stage0(context)
        if plugin_hit is not None:
            plugin, result = plugin_hit
            context.candidate = result.content
            context.strategy = f"stage0:{plugin.name}"
        else:
            await self._extract(context)

        await self._finish(context)
        result = self._build_result(context, success=True)
        if cache_key is not None:
            await self._cache_set(context, cache_key, result)
        return result

    async def _extract(self, context: PipelineContext) -> None:
        enabled = self.config.filters.enabled_rule_sets
        if SAFE in enabled:
            context.working = await self._run_stage(context, PipelineStage.SAFE_FILTER, self._filter, context, SAFE)
        else:
            context.working = find_body(context.document).clone()

        if self._should_bypass(context):
            self.logger.info("readability_bypassed", url=context.url)
            source = context.working
            if AGGRESSIVE in enabled:
                source = await self._run_stage(
                    context, PipelineStage.AGGRESSIVE_FILTER, self._filter, context, AGGRESSIVE
                )
                context.working = source
            candidate = await self._run_stage(context, PipelineStage.HEURISTIC_SCORE_PRUNE, self._heuristic, context)
            self._gate(context, PipelineStage.GATE_C, self.gates.gate_c, candidate)
            context.candidate = candidate
            context.strategy = PipelineStage.HEURISTIC_SCORE_PRUNE.value
            return

        candidate = await self._run_stage(context, PipelineStage.SEMANTIC_QUERY, semantic_query, context.working)
        try:
            self._accept(context, PipelineStage.GATE_A, self.gates.gate_a, candidate, PipelineStage.SEMANTIC_QUERY)
            return
        except QualityGateFailure:
            context.add_fallback(PipelineStage.SEMANTIC_QUERY.value)

        if self.config.stages.enable_readability and self.extractor is not None:
            context.add_fallback(PipelineStage.READABILITY_EXTRACT.value)
            candidate = await self._run_stage(context, PipelineStage.READABILITY_EXTRACT, self._readability, context)
            try:
                self._accept(
                    context, PipelineStage.GATE_B, self.gates.gate_b, candidate, PipelineStage.READABILITY_EXTRACT
                )
                return
            except QualityGateFailure:
                pass

        context.add_fallback(PipelineStage.HEURISTIC_SCORE_PRUNE.value)
        candidate = await self._run_stage(context, PipelineStage.HEURISTIC_SCORE_PRUNE, self._heuristic, context)
        self._gate(context, PipelineStage.GATE_C, self.gates.gate_c, candidate)
        context.candidate = candidate
        context.strategy = PipelineStage.HEURISTIC_SCORE_PRUNE.value

    async def _finish(self, context: PipelineContext) -> None:
        base_url = context.url or None
        context.markdown = await self._run_stage(
            context, PipelineStage.CONVERT, self.renderer.render, context.candidate, base_url
        )
        context.markdown = await self._run_stage(context, PipelineStage.POST_PROCESS, self._post_process, context)
        if not context.markdown.strip():
            context.warnings.append("Extraction produced no content")

        quality = await self._run_stage(
            context,
            PipelineStage.QUALITY_ASSESS,
            assess_output_quality,
            context.markdown,
            find_body(context.document) if context.document is not None else None,
            list(context.errors),
            list(context.warnings),
        )
        context.quality_score = int(quality or 0)
        context.enter(PipelineStage.DONE)
        self.logger.info(
            "pipeline_completed",
            strategy=context.strategy,
            fallbacks=context.fallbacks_used,
            quality_score=context.quality_score,
            length=len(context.markdown),
        )

    # --- stage runner ---

    async def _run_stage(
        self, context: PipelineContext, stage: PipelineStage, func: Callable[..., Any], *args: Any
    ) -> Any:
        """Run one stage with transient retry, falling back to recovery on faults.

        Raises:
            RecoveryExhaustedError: no recovery strategy could replace the output
        """
        context.enter(stage)
        started = time.perf_counter()

        def _on_retry(state: Any) -> None:
            context.retry_count += 1

        try:
            return await call_with_retry(
                func,
                *args,
                attempts=self.config.recovery.retry_attempts,
                delay=self.config.recovery.retry_delay_seconds,
                on_retry=_on_retry,
            )
        except Exception as e:
            self.logger.warning("stage_fault", stage=stage.value, error=str(e), error_type=type(e).__name__)
            context.fault = e
            outcome = await self.recovery.recover(context)
            context.fault = None
            context.warnings.append(f"Recovered from {StageFault(stage.value, e)} using '{outcome.strategy_name}'")
            context.warnings.extend(outcome.warnings)
            context.add_fallback(f"recovery:{outcome.strategy_name}")
            return outcome.result
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            context.record_duration(stage, duration_ms)
            self.logger.debug("stage_completed", stage=stage.value, duration_ms=round(duration_ms, 3))

    def _gate(
        self,
        context: PipelineContext,
        gate: PipelineStage,
        check: Callable[[Optional[ContentNode]], GateVerdict],
        candidate: Optional[ContentNode],
    ) -> GateVerdict:
        context.enter(gate)
        started = time.perf_counter()
        verdict = check(candidate)
        context.record_duration(gate, (time.perf_counter() - started) * 1000)
        context.gate_scores[verdict.gate] = verdict.score
        self.logger.info(
            "gate_evaluated",
            gate=verdict.gate,
            passed=verdict.passed,
            score=verdict.score,
            reasons=list(verdict.failure_reasons),
        )
        return verdict

    def _accept(
        self,
        context: PipelineContext,
        gate: PipelineStage,
        check: Callable[[Optional[ContentNode]], GateVerdict],
        candidate: Optional[ContentNode],
        producer: PipelineStage,
    ) -> None:
        """Take ``candidate`` as the run's output.

        Raises:
            QualityGateFailure: the candidate did not pass ``gate``
        """
        self.gates.ensure_passed(self._gate(context, gate, check, candidate))
        context.candidate = candidate
        context.strategy = producer.value

    # --- stages ---

    async def _stage0(self, context: PipelineContext) -> Optional[Tuple[SiteExtractor, PluginResult]]:
        if not self.config.stages.enable_stage0 or not context.url or not self.plugins:
            return None
        context.enter(PipelineStage.STAGE0)
        started = time.perf_counter()
        try:
            for plugin in self.plugins:
                if not plugin.can_handle(context.url):
                    continue
                try:
                    result = await plugin.extract(context.document.clone(), context.url)
                except Exception as e:
                    self.logger.warning("stage0_plugin_failed", plugin=plugin.name, error=str(e))
                    context.warnings.append(f"Stage-0 plugin '{plugin.name}' failed: {e}")
                    continue
                if result is None:
                    continue
                if (
                    result.score >= self.config.stages.stage0_min_score
                    and result.text_length >= self.config.stages.stage0_min_length
                ):
                    self.logger.info("stage0_short_circuit", plugin=plugin.name, score=result.score)
                    return plugin, result
                self.logger.info(
                    "stage0_below_threshold", plugin=plugin.name, score=result.score, length=result.text_length
                )
                context.add_fallback(f"stage0:{plugin.name}")
            return None
        finally:
            context.record_duration(PipelineStage.STAGE0, (time.perf_counter() - started) * 1000)

    def _filter(self, context: PipelineContext, ruleset: str) -> ContentNode:
        source = context.working if context.working is not None else find_body(context.document)
        result = self.filter.apply_rules(source, ruleset, url=context.url or None)
        context.warnings.extend(w for w in result.warnings if w not in context.warnings)
        return result.tree

    def _should_bypass(self, context: PipelineContext) -> bool:
        try:
            return self.filter.should_bypass_readability(context.working)
        except Exception as e:
            self.logger.warning("bypass_check_failed", error=str(e))
            context.warnings.append(f"Bypass check failed: {e}")
            return False

    async def _readability(self, context: PipelineContext) -> Optional[ContentNode]:
        source = context.working.outer_html() if context.working is not None else context.html
        output = await self.extractor.extract(source, url=context.url or None)
        if output is None or output.is_empty:
            return None
        if output.title and not context.title:
            context.title = output.title
        return parse_fragment(output.content)

    def _heuristic(self, context: PipelineContext) -> ContentNode:
        source = context.working if context.working is not None else find_body(context.document)
        # per-run engine; its warning list is not shared between runs
        engine = ScoringEngine(self.config.scoring)
        best = engine.find_best_candidate(source)
        if best is None:
            context.warnings.append("No content island scored above zero; using the whole document")
            winner = source
        else:
            winner = best.node
        pruned = engine.prune_node(winner)
        if not pruned.text_content().strip() and winner.text_content().strip():
            context.warnings.append("Pruning removed all text; keeping the unpruned candidate")
            pruned = winner.clone()
        context.warnings.extend(engine.warnings)
        return pruned

    def _post_process(self, context: PipelineContext) -> str:
        processed = self.post_processor.process(context.markdown, title=context.title or None, url=context.url or None)
        context.warnings.extend(processed.warnings)
        return processed.markdown

    # --- helpers ---

    def _truncate(self, context: PipelineContext) -> None:
        limit = self.config.limits.max_content_length
        if len(context.html) > limit:
            original = len(context.html)
            context.html = context.html[:limit]
            context.warnings.append(f"Input truncated from {original} to {limit} characters")
            self.logger.warning("input_truncated", original=original, limit=limit)

    async def _cache_get(self, context: PipelineContext, key: str) -> Optional[ProcessingResult]:
        try:
            cached = await self.cache.get(key)
        except Exception as e:
            self.logger.warning("cache_read_failed", error=str(e))
            context.warnings.append(f"Cache read failed: {e}")
            return None
        if cached is not None:
            self.logger.info("cache_hit", key=key)
            cached.stats.cached = True
        return cached

    async def _cache_set(self, context: PipelineContext, key: str, result: ProcessingResult) -> None:
        try:
            await self.cache.set(key, result)
        except Exception as e:
            self.logger.warning("cache_write_failed", error=str(e))
            result.warnings.append(f"Cache write failed: {e}")

    def _build_result(self, context: PipelineContext, success: bool, content: Optional[str] = None) -> ProcessingResult:
        stats = ProcessingStats(
            per_stage_duration_ms=dict(context.stage_durations_ms),
            fallbacks_used=list(context.fallbacks_used),
            quality_score=context.quality_score,
            gate_scores=dict(context.gate_scores),
            final_stage=context.stage.value,
            strategy=context.strategy,
            retry_count=context.retry_count,
        )
        return ProcessingResult(
            success=success,
            content=context.markdown if content is None else content,
            stats=stats,
            warnings=list(context.warnings),
            errors=list(context.errors),
            title=context.title,
            url=context.url,
        )

    def _fatal(self, context: PipelineContext, error: RecoveryExhaustedError) -> ProcessingResult:
        failed_stage = context.stage
        context.warnings.extend(error.warnings)
        context.errors.extend(error.errors)
        context.errors.append(str(StageFault(failed_stage.value, error.original)))
        context.enter(PipelineStage.FATAL_ERROR)
        self.logger.error("pipeline_failed", stage=failed_stage.value, error=str(error.original))
        return self._build_result(context, success=False, content=context.partial_content())
