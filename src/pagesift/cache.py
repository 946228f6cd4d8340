"""
Result caches keyed by a fingerprint of the capture and the extraction config.

Cache faults never fail a run; the pipeline turns them into warnings.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import time
from collections import OrderedDict
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import structlog

from pagesift.config.config import CacheConfig, Config
from pagesift.models import ProcessingResult
from pagesift.utils.atomic import atomic_write_json

logger = structlog.get_logger(__name__)


def fingerprint(html: str, url: str, config: Config) -> str:
    """``sha256(html)[:16]`` followed by ``sha256(url + canonical config)[:16]``."""
    content_hash = hashlib.sha256(html.encode("utf-8", "replace")).hexdigest()[:16]
    settings = url + "\n" + config.extraction_fingerprint()
    settings_hash = hashlib.sha256(settings.encode("utf-8")).hexdigest()[:16]
    return content_hash + settings_hash


def _copy(result: ProcessingResult) -> ProcessingResult:
    return ProcessingResult.from_dict(result.to_dict())


class MemoryResultCache:
    """In-process LRU cache with a per-entry TTL."""

    def __init__(self, ttl_seconds: float = 86400, max_entries: int = 256) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: OrderedDict[str, Tuple[float, ProcessingResult]] = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[ProcessingResult]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, result = entry
            if time.monotonic() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return _copy(result)

    async def set(self, key: str, result: ProcessingResult) -> None:
        async with self._lock:
            self._entries[key] = (time.monotonic(), _copy(result))
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class JsonFileResultCache:
    """One JSON document per key under ``directory``, written atomically."""

    def __init__(self, directory: Path, ttl_seconds: float = 86400) -> None:
        self.directory = Path(directory)
        self.ttl_seconds = ttl_seconds
        self.logger = logger.bind(component="file_cache", directory=str(self.directory))

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    async def get(self, key: str) -> Optional[ProcessingResult]:
        path = self._path(key)
        if not path.exists():
            return None
        async with aiofiles.open(path, "r", encoding="utf-8") as f:
            content = await f.read()
        payload = json.loads(content)
        if time.time() - float(payload.get("stored_at", 0)) > self.ttl_seconds:
            self.logger.debug("cache_entry_expired", key=key)
            await asyncio.to_thread(path.unlink, True)
            return None
        return ProcessingResult.from_dict(payload["result"])

    async def set(self, key: str, result: ProcessingResult) -> None:
        payload = {"stored_at": time.time(), "result": result.to_dict()}
        await asyncio.to_thread(atomic_write_json, self._path(key), payload)

    async def clear(self) -> None:
        def _clear() -> int:
            removed = 0
            if self.directory.is_dir():
                for path in self.directory.glob("*.json"):
                    path.unlink(missing_ok=True)
                    removed += 1
            return removed

        removed = await asyncio.to_thread(_clear)
        self.logger.info("cache_cleared", removed=removed)


def build_cache(config: CacheConfig) -> Optional[MemoryResultCache | JsonFileResultCache]:
    """Cache described by ``config``, or ``None`` when caching is disabled."""
    if not config.enabled:
        return None
    if config.backend == "file":
        return JsonFileResultCache(config.directory, ttl_seconds=config.ttl_seconds)
    return MemoryResultCache(ttl_seconds=config.ttl_seconds, max_entries=config.max_entries)
