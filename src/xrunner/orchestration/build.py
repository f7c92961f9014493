"""
Build orchestration.

This module provides the BuildOrchestrator, which resolves the build cache
directory, runs the build tool as a streamed subprocess, turns its output into
progress events and resolves the produced app bundle.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional

from ..classification import BuildOutputClassifier
from ..config import get_config
from ..executor import StreamingProcess
from ..models.build import (
    BuildCacheLocation,
    BuildPhase,
    BuildProgressEvent,
    BuildRequest,
    BuildResult,
    XcodeProject,
)
from ..models.config import AppConfig
from .artifacts import find_built_product
from .build_cache import BuildCacheResolver
from .package_resolution import should_disable_automatic_resolution

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BuildProgressEvent], None]


class BuildOrchestrator:
    """
    Runs one build at a time and reports its progress.

    ``cancel()`` may be called while ``build()`` is awaiting the subprocess;
    the process tree is terminated and the build returns a cancelled result.
    """

    def __init__(self, config: Optional[AppConfig] = None,
                 output_sink: Callable[[str], None] = print):
        self.config = config or get_config()
        self.output_sink = output_sink
        self.cache_resolver = BuildCacheResolver(
            self.config.paths.cache_root, self.config.paths.derived_data_root
        )

        self.process: Optional[StreamingProcess] = None
        self._cancelled = False
        self._cancel_event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def build_command(self, request: BuildRequest, cache_dir: Path,
                      disable_resolution: bool = False) -> List[str]:
        """Assemble the build tool arguments for a request."""
        command = [
            self.config.tools.build_tool,
            request.project_kind.flag, str(request.project_path),
            "-scheme", request.scheme,
            "-configuration", request.configuration,
            "-derivedDataPath", str(cache_dir),
            "-parallelizeTargets",
            "-allowProvisioningUpdates",
        ]
        if disable_resolution:
            command.append("-disableAutomaticPackageResolution")
        command.extend(["-destination", request.target.destination, "build"])
        return command

    def cancel(self) -> None:
        """Request termination of the build in progress."""
        logger.info("Build cancellation requested")
        self._cancelled = True
        if self._cancel_event is not None:
            self._cancel_event.set()

    async def build(self, request: BuildRequest,
                    on_progress: Optional[ProgressCallback] = None) -> BuildResult:
        """
        Build the requested scheme for the requested target.

        Args:
            request: What to build and where it will run
            on_progress: Called once per recognized phase transition

        Returns:
            BuildResult; a failed or cancelled build never carries an artifact.
        """
        self._cancelled = False
        self._cancel_event = asyncio.Event()
        start_time = time.time()

        def notify(event: BuildProgressEvent) -> None:
            if on_progress is not None:
                on_progress(event)

        classifier = BuildOutputClassifier(on_progress=on_progress)
        notify(BuildProgressEvent(BuildPhase.PREPARING, 0.0, "Preparing build..."))

        try:
            location = self.cache_resolver.resolve(
                request.project_path,
                on_advisory=lambda message: notify(
                    BuildProgressEvent(BuildPhase.PREPARING, 0.0, message)
                ),
            )
        except OSError as e:
            logger.error(f"Could not prepare build cache: {e}")
            classifier.finish(False, f"Could not prepare build cache: {e}")
            return self._result(classifier, start_time, errors=[str(e)])

        disable_resolution = (
            self.config.build.disable_package_resolution_when_fresh
            and should_disable_automatic_resolution(
                XcodeProject(Path(request.project_path), request.project_kind), location.path
            )
        )
        command = self.build_command(request, location.path, disable_resolution)
        logger.info(f"Building {request.scheme} for {request.target.display_name}")

        if self._cancelled:
            classifier.finish(False, "Build cancelled")
            return self._result(classifier, start_time, cancelled=True)

        self.process = StreamingProcess(
            command,
            cwd=Path(request.project_path).absolute().parent,
            name=f"build of {request.scheme}",
            queue_size=self.config.build.stream_queue_size,
            termination_timeout=self.config.build.termination_timeout,
        )
        try:
            try:
                await self.process.start()
            except OSError as e:
                classifier.finish(False, f"Could not start build tool: {e}")
                return self._result(classifier, start_time, errors=[str(e)])

            consume_task = asyncio.create_task(self._consume(classifier, request.verbose))
            cancel_task = asyncio.create_task(self._cancel_event.wait())
            done, pending = await asyncio.wait(
                [consume_task, cancel_task],
                return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

            if consume_task not in done:
                await self.process.terminate()
                classifier.finish(False, "Build cancelled")
                return self._result(classifier, start_time, cancelled=True)

            return_code = consume_task.result()
            success = return_code == 0
            classifier.finish(success)
            artifact = self._resolve_artifact(classifier, location, request) if success else None
            return self._result(classifier, start_time, success=success,
                                artifact=artifact, return_code=return_code)
        finally:
            if self.process.is_running:
                await self.process.terminate()

    async def _consume(self, classifier: BuildOutputClassifier, verbose: bool) -> int:
        async for source, line in self.process.lines():
            if verbose:
                self.output_sink(line)
            classifier.feed(line, source)
        return await self.process.wait()

    def _resolve_artifact(self, classifier: BuildOutputClassifier, location: BuildCacheLocation,
                          request: BuildRequest) -> Optional[Path]:
        captured = classifier.artifact_path
        if captured and Path(captured).is_dir():
            return Path(captured)
        if captured:
            logger.debug(f"Captured artifact {captured} does not exist; scanning products")

        artifact = find_built_product(
            location.products_dir, request.scheme, request.target.platform, request.configuration
        )
        if artifact is None:
            logger.warning(f"No app bundle found under {location.products_dir}")
        return artifact

    def _result(self, classifier: BuildOutputClassifier, start_time: float, *,
                success: bool = False, artifact: Optional[Path] = None,
                return_code: Optional[int] = None, cancelled: bool = False,
                errors: Optional[List[str]] = None) -> BuildResult:
        duration = time.time() - start_time
        logger.info(f"Build {'succeeded' if success else 'cancelled' if cancelled else 'failed'} "
                    f"in {duration:.1f}s")
        return BuildResult(
            success=success,
            artifact_path=artifact,
            errors=list(classifier.errors) + list(errors or []),
            warnings=list(classifier.warnings),
            duration=duration,
            return_code=return_code,
            cancelled=cancelled,
        )
