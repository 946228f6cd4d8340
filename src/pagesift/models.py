"""
Pipeline state and result types.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pagesift.tree.node import ContentNode


class PipelineStage(str, Enum):
    INIT = "init"
    STAGE0 = "stage0"
    SAFE_FILTER = "safe_filter"
    SEMANTIC_QUERY = "semantic_query"
    GATE_A = "gate_a"
    READABILITY_EXTRACT = "readability_extract"
    GATE_B = "gate_b"
    AGGRESSIVE_FILTER = "aggressive_filter"
    HEURISTIC_SCORE_PRUNE = "heuristic_score_prune"
    GATE_C = "gate_c"
    CONVERT = "convert"
    POST_PROCESS = "post_process"
    QUALITY_ASSESS = "quality_assess"
    DONE = "done"
    FATAL_ERROR = "fatal_error"


# Stages whose output is a content tree; the rest produce text.
TREE_STAGES = frozenset(
    {
        PipelineStage.INIT,
        PipelineStage.STAGE0,
        PipelineStage.SAFE_FILTER,
        PipelineStage.SEMANTIC_QUERY,
        PipelineStage.READABILITY_EXTRACT,
        PipelineStage.AGGRESSIVE_FILTER,
        PipelineStage.HEURISTIC_SCORE_PRUNE,
    }
)
TEXT_STAGES = frozenset({PipelineStage.CONVERT, PipelineStage.POST_PROCESS})


@dataclass
class PipelineContext:
    """Mutable state of one pipeline run.

    ``document`` is the tree parsed from the capture and is never mutated;
    every stage stores its own output in ``working``/``candidate``/``markdown``.
    """

    html: str
    url: str = ""
    title: str = ""
    run_id: str = field(default_factory=lambda: uuid4().hex[:12])
    stage: PipelineStage = PipelineStage.INIT
    document: Optional[ContentNode] = None
    working: Optional[ContentNode] = None
    candidate: Optional[ContentNode] = None
    markdown: str = ""
    strategy: str = ""
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    fallbacks_used: List[str] = field(default_factory=list)
    gate_scores: Dict[str, int] = field(default_factory=dict)
    stage_durations_ms: Dict[str, float] = field(default_factory=dict)
    timestamps: Dict[str, float] = field(default_factory=dict)
    retry_count: int = 0
    quality_score: int = 0
    fault: Optional[BaseException] = None
    started_at: float = field(default_factory=time.time)

    def enter(self, stage: PipelineStage) -> None:
        self.stage = stage
        self.timestamps.setdefault(stage.value, time.time())

    def record_duration(self, stage: PipelineStage, duration_ms: float) -> None:
        key = stage.value
        self.stage_durations_ms[key] = round(self.stage_durations_ms.get(key, 0.0) + duration_ms, 3)

    def add_fallback(self, name: str) -> None:
        if name not in self.fallbacks_used:
            self.fallbacks_used.append(name)

    def partial_content(self) -> str:
        """Best-effort output from whatever the run produced so far."""
        if self.markdown.strip():
            return self.markdown
        for node in (self.candidate, self.working, self.document):
            if node is not None:
                text = " ".join(node.text_content().split())
                if text:
                    return text
        return ""


@dataclass
class ProcessingStats:
    per_stage_duration_ms: Dict[str, float] = field(default_factory=dict)
    fallbacks_used: List[str] = field(default_factory=list)
    quality_score: int = 0
    gate_scores: Dict[str, int] = field(default_factory=dict)
    final_stage: str = PipelineStage.INIT.value
    strategy: str = ""
    retry_count: int = 0
    cached: bool = False


@dataclass
class ProcessingResult:
    """What the caller gets back from a pipeline run. Never raised, always returned."""

    success: bool
    content: str = ""
    stats: ProcessingStats = field(default_factory=ProcessingStats)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    title: str = ""
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ProcessingResult:
        """Create from dictionary."""
        stats = ProcessingStats(**data.get("stats", {}))
        return cls(
            success=bool(data["success"]),
            content=data.get("content", ""),
            stats=stats,
            warnings=list(data.get("warnings", [])),
            errors=list(data.get("errors", [])),
            title=data.get("title", ""),
            url=data.get("url", ""),
        )
