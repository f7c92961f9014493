"""
Deploy orchestration.

This module provides the DeployOrchestrator, which installs a built app
bundle on a target and launches it, with a strategy per target kind:

- Simulators are booted when needed, then installed to and launched with
  ``simctl``.
- Physical devices install through ``devicectl`` with streamed progress;
  a launch refused because the device is locked is retried exactly once
  after polling the lock state until the device is ready.
- The local host opens the bundle in place.

Progress is reported as RunProgressEvent values. With console streaming the
launch is replaced by a ConsoleStreamer session that lasts until the app
exits or the deploy is cancelled.
"""

import asyncio
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..classification import (
    classify_install_failure,
    classify_install_line,
    is_device_locked_error,
)
from ..config import get_config
from ..executor import StreamingProcess
from ..models.config import AppConfig
from ..models.run import OutputSource, RunPhase, RunProgressEvent
from ..models.targets import Target, TargetKind
from ..system.commands import run_command_async
from ..validation import (
    DeviceNotReadyError,
    InstallFailedError,
    LaunchFailedError,
    OperationCancelledError,
    RunnerError,
)
from .artifacts import extract_bundle_id
from .console import ConsoleStreamer, OutputSink, print_output

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[RunProgressEvent], None]

READY_STATES = ("ready", "unlocked")


def parse_lock_state(document: Any) -> bool:
    """
    Decide whether a lock-state document reports a usable device.

    The ``result`` object may carry ``passcodeRequired`` or ``locked``
    booleans, or a ``state`` / ``status`` string; the first one present
    decides. Anything else counts as not ready.
    """
    if not isinstance(document, dict):
        return False
    result = document.get("result")
    if not isinstance(result, dict):
        return False

    for key in ("passcodeRequired", "locked"):
        value = result.get(key)
        if isinstance(value, bool):
            return not value
    for key in ("state", "status"):
        value = result.get(key)
        if isinstance(value, str):
            return value.lower() in READY_STATES
    return False


def _diagnostic(stderr: str, stdout: str = "") -> str:
    return (stderr or stdout).strip() or "Unknown error"


class DeployOrchestrator:
    """
    Installs and launches a built bundle on a target.

    Args:
        config: Application configuration (defaults to the loaded one)
        sleep: Coroutine used for settle delays and lock polling
        output_sink: Receives console lines in streaming mode
    """

    def __init__(self, config: Optional[AppConfig] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 output_sink: OutputSink = print_output):
        self.config = config or get_config()
        self.tools = self.config.tools
        self.settings = self.config.deploy
        self.sleep = sleep
        self.output_sink = output_sink

        self.streamer: Optional[ConsoleStreamer] = None
        self._cancelled = False
        self._cancel_event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the deploy in progress at its next suspension point."""
        logger.info("Deploy cancellation requested")
        self._cancelled = True
        self._cancel_event.set()

    async def deploy(self, target: Target, artifact_path: Path,
                     on_progress: Optional[ProgressCallback] = None,
                     console: bool = False) -> None:
        """
        Install (when needed) and launch ``artifact_path`` on ``target``.

        Raises:
            BundleIdMissingError: If the bundle has no readable identifier
            DeviceNotReadyError: If the device is locked, untrusted or not
                in developer mode
            InstallFailedError: If the install command fails
            LaunchFailedError: If the launch command fails
            OperationCancelledError: If cancel() was called
        """
        self._cancelled = False
        self._cancel_event.clear()
        artifact_path = Path(artifact_path)

        def notify(phase: RunPhase, message: str) -> None:
            logger.debug(f"Run phase -> {phase.value}: {message}")
            if on_progress is not None:
                on_progress(RunProgressEvent(phase, message))

        try:
            bundle_id = extract_bundle_id(artifact_path)
            logger.info(f"Deploying {bundle_id} to {target.display_name}")
            if target.kind is TargetKind.SIMULATED:
                await self.run_on_simulator(target, artifact_path, bundle_id, notify, console)
            elif target.kind is TargetKind.PHYSICAL:
                await self.run_on_physical_device(target, artifact_path, bundle_id, notify, console)
            else:
                await self.run_on_local_host(artifact_path, notify, console)
        except OperationCancelledError:
            raise
        except RunnerError as e:
            notify(RunPhase.FAILED, e.describe())
            raise

    # --- Simulator ---

    async def run_on_simulator(self, target: Target, app_path: Path, bundle_id: str,
                               notify: Callable[[RunPhase, str], None], console: bool = False) -> None:
        if not target.is_running:
            notify(RunPhase.BOOTING, f"Booting {target.name}...")
            await self.boot_simulator(target.identifier)

        self._check_cancelled()
        notify(RunPhase.INSTALLING, "Installing app...")
        rc, stdout, stderr = await run_command_async(
            [self.tools.device_tool, "simctl", "install", target.identifier, str(app_path)]
        )
        if rc != 0:
            text = _diagnostic(stderr, stdout)
            raise InstallFailedError(f"Installation failed: {text}", phase=RunPhase.INSTALLING.value,
                                     detail=text)

        self._check_cancelled()
        if console:
            notify(RunPhase.STREAMING, f"Streaming logs from {target.name}... (Press Ctrl+C to stop)")
            await self._stream(lambda s: s.stream_simulator(target.identifier, bundle_id, app_path.stem))
            return

        notify(RunPhase.LAUNCHING, "Launching app...")
        rc, stdout, stderr = await run_command_async(
            [self.tools.device_tool, "simctl", "launch", target.identifier, bundle_id]
        )
        if rc != 0:
            text = _diagnostic(stderr)
            raise LaunchFailedError(f"Launch failed: {text}", phase=RunPhase.LAUNCHING.value, detail=text)
        notify(RunPhase.RUNNING, f"App is running on {target.name}")

    async def boot_simulator(self, device_id: str) -> None:
        """Boot a simulator and bring the simulator app to the front."""
        rc, _, stderr = await run_command_async([self.tools.device_tool, "simctl", "boot", device_id])
        if rc != 0:
            # An already booted device also exits non-zero here.
            logger.warning(f"simctl boot {device_id} exited with {rc}: {stderr.strip()}")
        await self.sleep(self.settings.boot_settle_seconds)
        self._check_cancelled()

        rc, _, stderr = await run_command_async([self.tools.open_tool, "-a", self.settings.simulator_app])
        if rc != 0:
            logger.warning(f"Could not open {self.settings.simulator_app}: {stderr.strip()}")
        await self.sleep(self.settings.viewer_settle_seconds)

    # --- Physical device ---

    async def run_on_physical_device(self, target: Target, app_path: Path, bundle_id: str,
                                     notify: Callable[[RunPhase, str], None],
                                     console: bool = False) -> None:
        notify(RunPhase.CHECKING_DEVICE, "Checking device connection...")
        notify(RunPhase.INSTALLING, f"Installing app on {target.name}...")
        await self.install_on_physical_device(target.identifier, app_path, notify)

        self._check_cancelled()
        if console:
            notify(RunPhase.STREAMING, f"Streaming logs from {target.name}... (Press Ctrl+C to stop)")
            await self._stream(lambda s: s.stream_physical_device(target.identifier, bundle_id))
            return

        notify(RunPhase.LAUNCHING, "Launching app...")
        await self.launch_on_physical_device(target.identifier, bundle_id, notify)
        notify(RunPhase.RUNNING, f"App is running on {target.name}")

    async def install_on_physical_device(self, device_id: str, app_path: Path,
                                         notify: Callable[[RunPhase, str], None]) -> None:
        """
        Install with streamed progress.

        Repeated progress lines for the same phase are reported once.
        """
        process = StreamingProcess(
            [self.tools.device_tool, "devicectl", "device", "install", "app",
             "--device", device_id, str(app_path)],
            name="device install",
            queue_size=self.config.build.stream_queue_size,
            termination_timeout=self.config.build.termination_timeout,
        )
        stderr_lines: List[str] = []
        last_phase = RunPhase.INSTALLING

        async def consume() -> int:
            nonlocal last_phase
            async for source, line in process.lines():
                if source is OutputSource.STDERR:
                    stderr_lines.append(line)
                event = classify_install_line(line)
                if event is not None and event.phase is not last_phase:
                    last_phase = event.phase
                    notify(event.phase, event.message)
            return await process.wait()

        try:
            await process.start()
        except OSError as e:
            raise InstallFailedError(f"Installation failed: {e}", phase=RunPhase.INSTALLING.value) from e

        try:
            rc = await self._until_cancelled(asyncio.create_task(consume()), process.terminate)
        finally:
            if process.is_running:
                await process.terminate()

        if rc != 0:
            raise classify_install_failure("\n".join(stderr_lines))

    async def launch_on_physical_device(self, device_id: str, bundle_id: str,
                                        notify: Callable[[RunPhase, str], None]) -> None:
        """Launch, retrying exactly once after waiting out a device lock."""
        error = await self._attempt_launch(device_id, bundle_id)
        if error is None:
            return
        if not is_device_locked_error(error):
            raise LaunchFailedError(f"Launch failed: {error}", phase=RunPhase.LAUNCHING.value, detail=error)

        logger.info(f"Launch refused because {device_id} is locked")
        await self.wait_for_device_ready(device_id, notify)
        notify(RunPhase.LAUNCHING, "Retrying launch...")

        retry_error = await self._attempt_launch(device_id, bundle_id)
        if retry_error is None:
            return
        if is_device_locked_error(retry_error):
            raise DeviceNotReadyError(phase=RunPhase.LAUNCHING.value, detail=retry_error,
                                      hint="Please unlock your device to launch the app")
        raise LaunchFailedError(f"Launch failed: {retry_error}", phase=RunPhase.LAUNCHING.value,
                                detail=retry_error)

    async def _attempt_launch(self, device_id: str, bundle_id: str) -> Optional[str]:
        rc, _, stderr = await run_command_async(
            [self.tools.device_tool, "devicectl", "device", "process", "launch",
             "--device", device_id, bundle_id]
        )
        if rc == 0:
            return None
        return _diagnostic(stderr)

    async def wait_for_device_ready(self, device_id: str,
                                    notify: Callable[[RunPhase, str], None]) -> None:
        """
        Poll the device lock state until it is ready.

        Raises:
            OperationCancelledError: If cancel() is called while polling
            DeviceNotReadyError: If ``unlock_timeout_seconds`` (when non-zero)
                elapses first
        """
        notify(RunPhase.WAITING_FOR_UNLOCK, "Waiting for device to be unlocked...")
        timeout = self.settings.unlock_timeout_seconds
        deadline = time.monotonic() + timeout if timeout > 0 else None

        while True:
            self._check_cancelled()
            if await self.is_device_ready(device_id):
                logger.info(f"{device_id} is unlocked")
                return
            if deadline is not None and time.monotonic() >= deadline:
                raise DeviceNotReadyError(
                    f"Device still locked after {timeout:.0f}s",
                    phase=RunPhase.WAITING_FOR_UNLOCK.value,
                    hint="Please unlock your device and try again",
                )
            await self.sleep(self.settings.lock_poll_interval)

    async def is_device_ready(self, device_id: str) -> bool:
        """Query the lock state once; any failure counts as not ready."""
        fd, path = tempfile.mkstemp(prefix="devicectl-lockstate-", suffix=".json")
        os.close(fd)
        try:
            rc, _, _ = await run_command_async(
                [self.tools.device_tool, "devicectl", "device", "info", "lockState",
                 "--device", device_id, "--json-output", path]
            )
            if rc != 0:
                return False
            try:
                with open(path, "r", encoding="utf-8") as f:
                    document: Dict[str, Any] = json.load(f)
            except (OSError, ValueError) as e:
                logger.debug(f"Unreadable lock state for {device_id}: {e}")
                return False
            return parse_lock_state(document)
        finally:
            try:
                os.unlink(path)
            except OSError:
                pass

    # --- Local host ---

    async def run_on_local_host(self, app_path: Path, notify: Callable[[RunPhase, str], None],
                                console: bool = False) -> None:
        if console:
            notify(RunPhase.STREAMING, "Streaming logs... (Press Ctrl+C to stop)")
            await self._stream(lambda s: s.stream_local_app(app_path))
            return

        notify(RunPhase.LAUNCHING, "Launching app...")
        rc, stdout, stderr = await run_command_async([self.tools.open_tool, str(app_path)])
        if rc != 0:
            text = _diagnostic(stderr, stdout)
            raise LaunchFailedError(f"Launch failed: {text}", phase=RunPhase.LAUNCHING.value, detail=text)
        notify(RunPhase.RUNNING, "App is running")

    # --- Helpers ---

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError()

    async def _stream(self, start: Callable[[ConsoleStreamer], Awaitable[None]]) -> None:
        self.streamer = ConsoleStreamer(
            tools=self.tools,
            sink=self.output_sink,
            queue_size=self.config.build.stream_queue_size,
            termination_timeout=self.config.build.termination_timeout,
        )
        await self._until_cancelled(asyncio.create_task(start(self.streamer)), self.streamer.stop)

    async def _until_cancelled(self, task: asyncio.Task,
                               on_cancel: Callable[[], Awaitable[None]]) -> Any:
        """
        Await ``task`` unless cancel() comes first.

        On cancellation ``on_cancel`` runs before the task is cancelled, and
        OperationCancelledError is raised.
        """
        cancel_task = asyncio.create_task(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait([task, cancel_task], return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_task.cancel()
        if task in done:
            return task.result()

        await on_cancel()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        raise OperationCancelledError()
