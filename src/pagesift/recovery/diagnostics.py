"""
Bounded, append-only log of pipeline faults shared across runs.
"""

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from typing import Any, Deque, Dict, List, Union

DEFAULT_CAPACITY = 100
RECENT_ENTRIES = 10


@dataclass(frozen=True)
class DiagnosticEntry:
    stage: str
    error: str
    error_type: str
    url: str = ""
    run_id: str = ""
    strategy: str = ""
    recovered: bool = False
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DiagnosticLog:
    """Thread-safe ring buffer of :class:`DiagnosticEntry`; oldest entries are evicted first."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = capacity
        self._entries: Deque[DiagnosticEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(
        self,
        stage: str,
        error: Union[BaseException, str],
        *,
        url: str = "",
        run_id: str = "",
        strategy: str = "",
        recovered: bool = False,
    ) -> DiagnosticEntry:
        entry = DiagnosticEntry(
            stage=stage,
            error=str(error),
            error_type=type(error).__name__ if isinstance(error, BaseException) else "message",
            url=url,
            run_id=run_id,
            strategy=strategy,
            recovered=recovered,
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> List[DiagnosticEntry]:
        with self._lock:
            return list(self._entries)

    def get_error_stats(self) -> Dict[str, Any]:
        entries = self.entries()
        return {
            "total": len(entries),
            "by_stage": dict(Counter(entry.stage for entry in entries)),
            "recent": [entry.to_dict() for entry in entries[-RECENT_ENTRIES:]],
        }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
