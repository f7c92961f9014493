"""
Build and install output classification.

This module turns the unstructured, line-oriented output of the build tool
and the device tool into progress events, using the ordered rule tables in
``rules``. Classification is best-effort: lines no rule recognizes are kept
in the transcript and otherwise ignored.
"""

import logging
import threading
from typing import Callable, List, Optional

from ..models.build import BuildPhase, BuildProgressEvent
from ..models.run import OutputSource, RunPhase, RunProgressEvent
from ..validation import DeviceNotReadyError, InstallFailedError, RunnerError
from .rules import (
    APP_PATH_PATTERN,
    BUILD_PHASE_RULES,
    COMPILE_MAX_PERCENTAGE,
    COMPILE_MIDPOINT_PERCENTAGE,
    DEVICE_LOCKED_PATTERNS,
    DEVICE_PHASE_RULES,
    ERROR_MARKER,
    INSTALL_FAILURE_RULES,
    INSTALL_PROGRESS_RULES,
    PRODUCTS_MARKER,
    SOURCE_FILE_PATTERN,
    WARNING_MARKER,
    first_match,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BuildProgressEvent], None]


class BuildOutputClassifier:
    """
    Progress state machine fed with build tool output lines.

    Main phases only move forward (by rank), with two exceptions: compiling
    emits one event per compiled file, and package phases may cycle among
    themselves. A terminal line always applies, but repeating the current
    terminal phase emits nothing. Device phases are advisory: they are
    reported when they change and never move the main phase.

    ``feed`` may be called from any thread; callbacks run outside the lock,
    in the order the lines were fed.

    Args:
        on_progress: Receives each progress event
        total_sources: Number of source files the build will compile, when the
            caller knows it. Compile progress is then interpolated from the
            compiled count; otherwise every compile line reports the midpoint.
    """

    def __init__(self, on_progress: Optional[ProgressCallback] = None,
                 total_sources: Optional[int] = None):
        self._lock = threading.Lock()
        self._on_progress = on_progress

        self.phase = BuildPhase.PREPARING
        self.device_phase: Optional[BuildPhase] = None
        self.percentage = 0.0
        self.total_sources = total_sources
        self.compiled_files = 0

        self.transcript: List[str] = []
        self.errors: List[str] = []
        self.warnings: List[str] = []

        self._artifact_path: Optional[str] = None
        self._artifact_from_products = False

    @property
    def artifact_path(self) -> Optional[str]:
        with self._lock:
            return self._artifact_path

    def feed(self, line: str, source: OutputSource = OutputSource.STDOUT) -> List[BuildProgressEvent]:
        """
        Classify one output line.

        Returns:
            The progress events the line produced (usually zero or one).
        """
        with self._lock:
            events = self._process(line)
        self._emit(events)
        return events

    def finish(self, success: bool, message: Optional[str] = None) -> Optional[BuildProgressEvent]:
        """
        Force a terminal phase after the process exited.

        Used when the tool exited (or was cancelled) without printing its
        own summary line. Does nothing if the matching terminal phase was
        already reached.
        """
        target = BuildPhase.SUCCEEDED if success else BuildPhase.FAILED
        with self._lock:
            if self.phase is target:
                return None
            event = self._transition(
                target, 100.0, message or ("Build succeeded" if success else "Build failed"), None
            )
        self._emit([event])
        return event

    def _emit(self, events: List[BuildProgressEvent]) -> None:
        if self._on_progress is None:
            return
        for event in events:
            self._on_progress(event)

    def _process(self, line: str) -> List[BuildProgressEvent]:
        line = line.rstrip()
        if not line.strip():
            return []
        self.transcript.append(line)

        if ERROR_MARKER in line:
            self.errors.append(line)
        elif WARNING_MARKER in line:
            self.warnings.append(line)

        self._capture_artifact(line)

        rule = first_match(BUILD_PHASE_RULES, line)
        if rule is not None:
            event = self._apply_rule(rule, line)
            if event is not None:
                return [event]

        if self.phase.is_terminal:
            return []
        device_rule = first_match(DEVICE_PHASE_RULES, line.lower())
        if device_rule is not None and device_rule.phase is not self.device_phase:
            self.device_phase = device_rule.phase
            return [BuildProgressEvent(device_rule.phase, self.percentage, device_rule.message, line)]
        return []

    def _apply_rule(self, rule, line: str) -> Optional[BuildProgressEvent]:
        new_phase: BuildPhase = rule.phase
        current = self.phase

        if new_phase.is_terminal:
            if new_phase is current:
                return None
            return self._transition(new_phase, rule.percentage, rule.message, None)
        if current.is_terminal:
            return None

        if new_phase is BuildPhase.COMPILING:
            if current.rank > new_phase.rank:
                return None
            self.compiled_files += 1
            if self.total_sources:
                percentage = min(self.compiled_files / self.total_sources * COMPILE_MAX_PERCENTAGE,
                                 COMPILE_MAX_PERCENTAGE)
            else:
                percentage = COMPILE_MIDPOINT_PERCENTAGE
            match = SOURCE_FILE_PATTERN.search(line)
            filename = match.group(0) if match else "source files"
            return self._transition(new_phase, percentage, f"Compiling {filename}", line)

        cycling_packages = new_phase.is_package_phase and current.is_package_phase and new_phase is not current
        if new_phase.rank > current.rank or cycling_packages:
            return self._transition(new_phase, rule.percentage, rule.message, line)
        return None

    def _transition(self, phase: BuildPhase, percentage: Optional[float], message: str,
                    detail: Optional[str]) -> BuildProgressEvent:
        if percentage is not None:
            self.percentage = max(self.percentage, percentage)
        self.phase = phase
        logger.debug(f"Build phase -> {phase.label} ({self.percentage:.0f}%)")
        return BuildProgressEvent(phase, self.percentage, message, detail)

    def _capture_artifact(self, line: str) -> None:
        if ".app" not in line or self._artifact_from_products:
            return
        candidates = [m for m in APP_PATH_PATTERN.findall(line) if "/" in m]
        for candidate in candidates:
            if PRODUCTS_MARKER.lstrip("/") in candidate:
                self._artifact_path = candidate
                self._artifact_from_products = True
                return
        if candidates and self._artifact_path is None:
            self._artifact_path = candidates[0]


def classify_install_line(line: str) -> Optional[RunProgressEvent]:
    """Map one line of device install output to a progress event, if any."""
    rule = first_match(INSTALL_PROGRESS_RULES, line)
    if rule is None:
        return None
    return RunProgressEvent(rule.phase, rule.message)


def is_device_locked_error(message: str) -> bool:
    lowered = message.lower()
    return any(pattern in lowered for pattern in DEVICE_LOCKED_PATTERNS)


def classify_install_failure(diagnostic: str) -> RunnerError:
    """
    Build the error to raise for a failed physical-device install.

    Args:
        diagnostic: Captured error output of the install command.

    Returns:
        A DeviceNotReadyError or InstallFailedError carrying a remediation
        hint when the output is recognized, otherwise a generic
        InstallFailedError with the trimmed diagnostic text.
    """
    for rule in INSTALL_FAILURE_RULES:
        if any(pattern in diagnostic for pattern in rule.patterns):
            error_type = DeviceNotReadyError if rule.category == "device-not-ready" else InstallFailedError
            return error_type(phase=RunPhase.INSTALLING.value, detail=diagnostic, hint=rule.hint)

    text = diagnostic.strip() or "Unknown error"
    return InstallFailedError(f"Installation failed: {text}", phase=RunPhase.INSTALLING.value, detail=diagnostic)
