"""
Dependency injection container for the extraction pipeline.

The container owns the shared, read-mostly pieces (rule registry, recovery
registry, diagnostic log, collaborators, result cache) and hands them to
``ExtractionPipeline`` so that concurrent runs share them instead of each
building its own.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Dict, Generic, Optional, TypeVar
from uuid import uuid4

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from pagesift.config.config import Config, load_config

if TYPE_CHECKING:
    from pagesift.filters.rules import RuleRegistry
    from pagesift.pipeline import ExtractionPipeline
    from pagesift.recovery.diagnostics import DiagnosticLog
    from pagesift.recovery.registry import RecoveryRegistry

T = TypeVar("T")


class LazyInstance(Generic[T]):
    """Lazy-loaded instance with lifecycle management."""

    def __init__(self, factory: Callable[..., T], *args: Any, **kwargs: Any) -> None:
        self._factory = factory
        self._args = args
        self._kwargs = kwargs
        self._instance: Optional[T] = None
        self._initialized = False

    def get(self) -> T:
        """Get or create the instance."""
        if not self._initialized:
            self._instance = self._factory(*self._args, **self._kwargs)
            self._initialized = True
        return self._instance  # type: ignore[return-value]

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def cleanup(self) -> None:
        """Clean up the instance."""
        close = getattr(self._instance, "close", None)
        if callable(close):
            result = close()
            if asyncio.iscoroutine(result):
                await result
        self._instance = None
        self._initialized = False


class ConfigWatcher(FileSystemEventHandler):
    """Watches the configuration file and schedules a reload on the container's loop."""

    def __init__(self, container: DependencyContainer, loop: asyncio.AbstractEventLoop) -> None:
        self.container = container
        self.loop = loop
        self.logger = structlog.get_logger(self.__class__.__name__)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory or self.container.config_path is None:
            return
        if Path(str(event.src_path)).name == self.container.config_path.name:
            self.logger.info("Configuration file changed, reloading", path=str(event.src_path))
            asyncio.run_coroutine_threadsafe(self.container.reload_config(), self.loop)


class DependencyContainer:
    """
    Central container building the pipeline and its shared registries.
    Provides lazy initialization, lifecycle management and optional
    configuration hot-reloading.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[Config] = None,
        watch: bool = False,
    ) -> None:
        self.config_path = config_path
        self.config: Optional[Config] = config
        self.watch = watch
        self.logger = structlog.get_logger(self.__class__.__name__)

        self._instances: Dict[str, LazyInstance[Any]] = {}
        self._instances_lock = asyncio.Lock()
        self._observer: Optional[Any] = None

        self.container_id = str(uuid4())
        self.is_running = False

    async def initialize(self) -> None:
        """Load configuration (unless given) and prepare lazy instances."""
        if self.config is None:
            await self.load_config()
        else:
            await self._create_instances()

        if self.watch:
            self._setup_config_watching()

        self.is_running = True
        self.logger.info(
            "Dependency container initialized",
            container_id=self.container_id,
            config_path=str(self.config_path) if self.config_path else "default",
        )

    async def load_config(self) -> None:
        """Load or reload configuration."""
        self.config = load_config(self.config_path)
        await self._create_instances()

    async def _create_instances(self) -> None:
        """Create lazy instances with current configuration."""
        if self.config is None:
            raise RuntimeError("Configuration must be loaded before creating instances")

        await self._cleanup_instances()
        config = self.config

        # Import modules only when needed to avoid circular imports
        from pagesift.cache import build_cache
        from pagesift.filters.rules import RuleRegistry
        from pagesift.pipeline import ExtractionPipeline
        from pagesift.recovery.diagnostics import DiagnosticLog
        from pagesift.recovery.strategies import build_default_registry

        diagnostics = LazyInstance(DiagnosticLog)
        rules = LazyInstance(RuleRegistry.default, config.filters.link_dense_list_threshold)
        recovery = LazyInstance(lambda: build_default_registry(config, diagnostics.get(), rules.get()))
        cache = LazyInstance(build_cache, config.cache)

        self._instances = {
            "diagnostics": diagnostics,
            "rules": rules,
            "recovery": recovery,
            "cache": cache,
            "pipeline": LazyInstance(
                lambda: ExtractionPipeline(
                    config,
                    rules=rules.get(),
                    recovery=recovery.get(),
                    cache=cache.get(),
                    diagnostics=diagnostics.get(),
                )
            ),
        }

    async def reload_config(self) -> None:
        """Hot-reload configuration and rebuild the pipeline."""
        old_config = self.config
        async with self._instances_lock:
            await self.load_config()
        self.logger.info(
            "Configuration reloaded",
            container_id=self.container_id,
            changes_detected=old_config != self.config,
        )

    async def _get(self, name: str) -> Any:
        async with self._instances_lock:
            if not self._instances:
                raise RuntimeError("Container is not initialized")
            return self._instances[name].get()

    async def get_pipeline(self) -> ExtractionPipeline:
        """Get the extraction pipeline instance."""
        return await self._get("pipeline")

    async def get_rules(self) -> RuleRegistry:
        """Get the filter rule registry."""
        return await self._get("rules")

    async def get_recovery(self) -> RecoveryRegistry:
        """Get the recovery strategy registry."""
        return await self._get("recovery")

    async def get_diagnostics(self) -> DiagnosticLog:
        """Get the shared diagnostic log."""
        return await self._get("diagnostics")

    @asynccontextmanager
    async def lifecycle(self) -> AsyncIterator[DependencyContainer]:
        """Context manager for proper lifecycle management."""
        try:
            await self.initialize()
            yield self
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Stop config watching and release managed instances."""
        if not self.is_running:
            return

        self.logger.info("Shutting down dependency container", container_id=self.container_id)
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

        await self._cleanup_instances()
        self.is_running = False

    def _setup_config_watching(self) -> None:
        """Set up file system watching for configuration changes."""
        if not self.config_path:
            return
        self._observer = Observer()
        handler = ConfigWatcher(self, asyncio.get_running_loop())
        self._observer.schedule(handler, str(self.config_path.resolve().parent), recursive=False)
        self._observer.start()

    async def _cleanup_instances(self) -> None:
        """Clean up all managed instances."""
        for name, instance in self._instances.items():
            try:
                await instance.cleanup()
            except Exception as e:
                self.logger.error(f"Error cleaning up {name}", error=str(e))
        self._instances = {}

    def get_health_status(self) -> Dict[str, Any]:
        """Get health status of the container and the shared diagnostics."""
        status: Dict[str, Any] = {
            "container_id": self.container_id,
            "is_running": self.is_running,
            "config_loaded": self.config is not None,
            "instances_created": sorted(name for name, lazy in self._instances.items() if lazy.initialized),
            "config_path": str(self.config_path) if self.config_path else None,
        }
        diagnostics = self._instances.get("diagnostics")
        if diagnostics is not None and diagnostics.initialized:
            status["errors"] = diagnostics.get().get_error_stats()
        return status
