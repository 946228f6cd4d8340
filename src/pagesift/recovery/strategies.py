"""
Default recovery strategies.

Each strategy reads the faulted context and returns a fresh value standing in
for the faulted stage's output: a content tree for tree stages, text for the
convert/post-process stages and a score for quality assessment.
"""

from __future__ import annotations

import re
from typing import List, Optional

from pagesift.config.config import Config
from pagesift.extractor.semantic import semantic_query
from pagesift.filters.boilerplate import BoilerplateFilter
from pagesift.filters.rules import RuleRegistry
from pagesift.filters.rulesets import SAFE
from pagesift.models import TEXT_STAGES, TREE_STAGES, PipelineContext, PipelineStage
from pagesift.render.markdown import simple_markdown
from pagesift.tree.builder import build_tree, find_body
from pagesift.tree.node import ContentNode

from .diagnostics import DiagnosticLog
from .registry import FallbackResult, RecoveryRegistry, RecoveryStrategy, StrategyPredicate

SEMANTIC_FALLBACK_MIN_LENGTH = 500

EXTRACTION_STAGES = frozenset(
    {
        PipelineStage.SEMANTIC_QUERY,
        PipelineStage.READABILITY_EXTRACT,
        PipelineStage.HEURISTIC_SCORE_PRUNE,
    }
)
FILTER_STAGES = frozenset({PipelineStage.SAFE_FILTER, PipelineStage.AGGRESSIVE_FILTER})

_TAG = re.compile(r"<[^>]+>")
_INVISIBLE_BLOCK = re.compile(r"<(script|style|noscript|template)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_BLANK_RUN = re.compile(r"\n\s*\n+")
_SPACES = re.compile(r"[ \t\f\v]+")
TEXT_BLOCK_TAGS = frozenset({"p", "li", "pre", "blockquote", "td", "th", "h1", "h2", "h3", "h4", "h5", "h6"})


def _source_tree(context: PipelineContext) -> Optional[ContentNode]:
    return context.working if context.working is not None else context.document


def stage_in(*stages: PipelineStage) -> StrategyPredicate:
    wanted = frozenset(stages)
    return lambda context: context.stage in wanted


def unfiltered_passthrough(context: PipelineContext) -> FallbackResult:
    tree = _source_tree(context)
    if tree is None:
        return FallbackResult(success=False, errors=["No tree available to pass through"])
    return FallbackResult(
        success=True,
        result=tree.clone(),
        warnings=[f"Skipped {context.stage.value} after a fault; content is unfiltered"],
    )


def make_semantic_selector_fallback(filter_engine: BoilerplateFilter):
    def semantic_selector_fallback(context: PipelineContext) -> FallbackResult:
        tree = _source_tree(context)
        if tree is None:
            return FallbackResult(success=False, errors=["No tree available for selector fallback"])
        node = semantic_query(tree, min_length=SEMANTIC_FALLBACK_MIN_LENGTH)
        if node is not None:
            return FallbackResult(success=True, result=node, warnings=["Used semantic selector fallback"])
        body = filter_engine.apply_rules(find_body(tree), SAFE, url=context.url).tree
        if not body.text_content().strip():
            return FallbackResult(success=False, errors=["Document body has no text"])
        return FallbackResult(success=True, result=body, warnings=["Used cleaned document body as fallback"])

    return semantic_selector_fallback


def simple_markdown_fallback(context: PipelineContext) -> FallbackResult:
    if context.candidate is None:
        return FallbackResult(success=False, errors=["No candidate to convert"])
    return FallbackResult(
        success=True,
        result=simple_markdown(context.candidate),
        warnings=["Used built-in markdown conversion"],
    )


def raw_markdown_passthrough(context: PipelineContext) -> FallbackResult:
    if not context.markdown.strip():
        return FallbackResult(success=False, errors=["No markdown to pass through"])
    return FallbackResult(success=True, result=context.markdown, warnings=["Skipped markdown post-processing"])


def tree_rebuild_fallback(context: PipelineContext) -> FallbackResult:
    return FallbackResult(
        success=True,
        result=build_tree(context.html, "lxml"),
        warnings=["Re-parsed document with the lxml parser"],
    )


def neutral_quality_score(context: PipelineContext) -> FallbackResult:
    return FallbackResult(success=True, result=0, warnings=["Quality assessment failed; reporting score 0"])


def html_to_plain_text(html: str) -> str:
    text = _INVISIBLE_BLOCK.sub(" ", html)
    text = re.sub(r"(?i)<\s*(br|/p|/div|/h[1-6]|/li|/tr)\b[^>]*>", "\n", text)
    text = _TAG.sub(" ", text)
    lines = [_SPACES.sub(" ", line).strip() for line in text.splitlines()]
    return _BLANK_RUN.sub("\n\n", "\n".join(lines)).strip()


def block_texts(tree: ContentNode) -> List[str]:
    """Whitespace-normalized text of each outermost text block, or of the whole tree."""
    blocks = []
    for node in tree.iter_elements():
        if node.tag in TEXT_BLOCK_TAGS and not any(a.tag in TEXT_BLOCK_TAGS for a in node.ancestors()):
            text = " ".join(node.text_content().split())
            if text:
                blocks.append(text)
    if not blocks:
        text = " ".join(tree.text_content().split())
        blocks = [text] if text else []
    return blocks


def text_only_extraction(context: PipelineContext) -> FallbackResult:
    """Last resort: the plain text of the capture, as a paragraph tree or as text."""
    tree = context.candidate if context.candidate is not None else _source_tree(context)
    text = "\n\n".join(block_texts(tree)) if tree is not None else ""
    if not text:
        text = html_to_plain_text(context.html)
    if not text:
        return FallbackResult(success=False, errors=["No text could be recovered"])

    warnings = ["Used text-only extraction"]
    if context.stage in TEXT_STAGES:
        return FallbackResult(success=True, result=text + "\n", warnings=warnings)
    paragraphs = [ContentNode.element("p", children=[block]) for block in text.split("\n\n") if block.strip()]
    return FallbackResult(success=True, result=ContentNode.document(paragraphs), warnings=warnings)


def build_default_registry(
    config: Optional[Config] = None,
    diagnostics: Optional[DiagnosticLog] = None,
    rules: Optional[RuleRegistry] = None,
) -> RecoveryRegistry:
    """Registry pre-loaded with the built-in strategies."""
    config = config or Config()
    registry = RecoveryRegistry(timeout=config.recovery.strategy_timeout_seconds, diagnostics=diagnostics)
    filter_engine = BoilerplateFilter(
        registry=rules,
        config=config.filters,
        max_passes=config.limits.max_filter_passes,
    )

    registry.register(
        RecoveryStrategy(
            name="unfiltered-passthrough",
            priority=1,
            can_handle=stage_in(*FILTER_STAGES),
            execute=unfiltered_passthrough,
            description="Continue with the unfiltered tree when a filter pass faults",
        )
    )
    registry.register(
        RecoveryStrategy(
            name="semantic-selector-fallback",
            priority=1,
            can_handle=stage_in(*EXTRACTION_STAGES),
            execute=make_semantic_selector_fallback(filter_engine),
            description="Largest semantic container, else the SAFE-cleaned body",
        )
    )
    registry.register(
        RecoveryStrategy(
            name="simple-markdown-fallback",
            priority=1,
            can_handle=stage_in(PipelineStage.CONVERT),
            execute=simple_markdown_fallback,
            description="Built-in tree-to-markdown conversion",
        )
    )
    registry.register(
        RecoveryStrategy(
            name="raw-markdown-passthrough",
            priority=1,
            can_handle=stage_in(PipelineStage.POST_PROCESS),
            execute=raw_markdown_passthrough,
            description="Keep the rendered markdown without post-processing",
        )
    )
    registry.register(
        RecoveryStrategy(
            name="tree-rebuild-fallback",
            priority=2,
            can_handle=stage_in(PipelineStage.INIT),
            execute=tree_rebuild_fallback,
            description="Re-parse the capture with the lxml parser",
        )
    )
    registry.register(
        RecoveryStrategy(
            name="neutral-quality-score",
            priority=5,
            can_handle=stage_in(PipelineStage.QUALITY_ASSESS),
            execute=neutral_quality_score,
            description="Report a zero quality score instead of failing the run",
        )
    )
    registry.register(
        RecoveryStrategy(
            name="text-only-extraction",
            priority=10,
            can_handle=stage_in(*(TREE_STAGES | TEXT_STAGES)),
            execute=text_only_extraction,
            description="Plain text of the capture",
        )
    )
    return registry
