"""
RunnerEngine for the orchestration module.

This module contains the RunnerEngine class that coordinates a complete
run: target discovery and scheme listing to assemble a request, then the
build, then the deploy of the built bundle. The specific work is delegated
to the component classes; the engine owns their construction and the
persisted scheme cache lifecycle.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from ..config import get_config
from ..discovery import TargetDiscovery
from ..models.build import BuildPhase, BuildProgressEvent, BuildRequest, BuildResult, XcodeProject
from ..models.config import AppConfig
from ..models.run import RunProgressEvent
from ..models.targets import Target
from ..schemes import SchemeCacheStore, SchemeLister
from ..storage import KeyValueStore, create_store
from ..validation import (
    ArtifactMissingError,
    BuildFailedError,
    ErrorSeverity,
    OperationCancelledError,
    RunnerError,
    handle_error,
)
from .build import BuildOrchestrator
from .console import OutputSink, print_output
from .deploy import DeployOrchestrator

logger = logging.getLogger(__name__)

# Error lines carried in a BuildFailedError's detail text.
MAX_DETAIL_ERRORS = 20


class RunnerEngine:
    """
    Coordinates discovery, build and deploy for one invocation.

    Args:
        config: Application configuration (defaults to the loaded one)
        store: Key-value store for persisted state; a JSON file store in
            ``paths.state_dir`` when omitted
        output_sink: Receives raw build lines in verbose mode
        console_sink: Receives app console lines in streaming mode
        sleep: Coroutine used for deploy delays and lock polling
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[KeyValueStore] = None,
        output_sink: Callable[[str], None] = print,
        console_sink: OutputSink = print_output,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config or get_config()
        cache_settings = self.config.scheme_cache
        self.store = store or create_store(
            "json", state_dir=self.config.paths.state_dir, suite=cache_settings.suite_name
        )

        self.scheme_cache = SchemeCacheStore(
            self.store,
            suite=cache_settings.suite_name,
            max_entries=cache_settings.max_entries,
            fallback_ttl=cache_settings.fallback_ttl_seconds,
            tolerance=cache_settings.signature_tolerance_seconds,
        )
        self.schemes = SchemeLister(self.scheme_cache, self.config.tools)
        self.discovery = TargetDiscovery(self.config.tools)
        self.builder = BuildOrchestrator(self.config, output_sink=output_sink)
        self.deployer = DeployOrchestrator(self.config, sleep=sleep, output_sink=console_sink)

        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def load(self) -> None:
        """Load persisted state (the scheme cache)."""
        self.scheme_cache.load()

    def flush(self) -> bool:
        """Persist state; failures are logged and reported as False."""
        return self.scheme_cache.flush()

    async def discover_targets(self) -> List[Target]:
        return await self.discovery.discover()

    async def list_schemes(self, project: XcodeProject) -> List[str]:
        return await self.schemes.list_schemes(project)

    async def build(self, request: BuildRequest,
                    on_progress: Optional[Callable[[BuildProgressEvent], None]] = None) -> BuildResult:
        return await self.builder.build(request, on_progress)

    async def build_and_run(
        self,
        request: BuildRequest,
        on_build_progress: Optional[Callable[[BuildProgressEvent], None]] = None,
        on_run_progress: Optional[Callable[[RunProgressEvent], None]] = None,
        console: bool = False,
    ) -> BuildResult:
        """
        Build the request and deploy the result to the request's target.

        Returns:
            The successful BuildResult

        Raises:
            OperationCancelledError: If cancel() was called
            BuildFailedError: If the build tool failed
            ArtifactMissingError: If the build succeeded without a bundle
            RunnerError: Any deploy failure
        """
        self._cancelled = False
        try:
            result = await self.builder.build(request, on_build_progress)
            if result.cancelled or self._cancelled:
                raise OperationCancelledError(phase="build")
            if not result.success:
                raise BuildFailedError(
                    errors=result.errors,
                    warnings=result.warnings,
                    phase=BuildPhase.FAILED.label,
                    detail="\n".join(result.errors[-MAX_DETAIL_ERRORS:]),
                )
            if result.artifact_path is None:
                raise ArtifactMissingError(phase=BuildPhase.SUCCEEDED.label)

            logger.info(f"Built {Path(result.artifact_path).name} in {result.duration:.1f}s")
            if self._cancelled:
                raise OperationCancelledError(phase="deploy")
            await self.deployer.deploy(request.target, result.artifact_path, on_run_progress, console)
            return result
        except RunnerError as e:
            handle_error(
                error=e,
                context=f"running {request.scheme} on {request.target.display_name}",
                severity=ErrorSeverity.WARNING if isinstance(e, OperationCancelledError) else ErrorSeverity.ERROR,
                reraise=False,
                logger=logger
            )
            await self._terminate_children()
            raise

    def cancel(self) -> None:
        """Cancel whatever is in flight; safe to call from a signal handler."""
        self._cancelled = True
        self.builder.cancel()
        self.deployer.cancel()

    async def _terminate_children(self) -> None:
        process = self.builder.process
        if process is not None and process.is_running:
            await process.terminate()
        streamer = self.deployer.streamer
        if streamer is not None and not streamer.stopped:
            await streamer.stop()
