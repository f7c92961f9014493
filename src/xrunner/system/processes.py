"""
Process tree termination and lookup.

Builds and console streams spawn helper processes of their own, so
cancellation must take down the whole tree and not only the direct child.
"""

import logging
import os
import signal
import threading
import time
from typing import List, Optional

import psutil

logger = logging.getLogger(__name__)

# Seconds to wait in each termination phase after the graceful one.
INTERRUPT_TIMEOUT = 1.0
FORCE_KILL_TIMEOUT = 1.0


def is_process_alive(process: psutil.Process) -> bool:
    """Safely check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in [psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def _get_process_children(parent: psutil.Process) -> List[psutil.Process]:
    """Get all live descendants of a process, tolerating races."""
    try:
        return [child for child in parent.children(recursive=True) if is_process_alive(child)]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return []


def _signal_processes(processes: List[psutil.Process], signal_name: str) -> List[psutil.Process]:
    signaled = []
    for process in processes:
        if not is_process_alive(process):
            continue
        try:
            if signal_name == "SIGKILL":
                process.kill()
            elif signal_name == "SIGINT":
                process.send_signal(signal.SIGINT)
            else:
                process.terminate()
            signaled.append(process)
            logger.debug(f"Sent {signal_name} to PID {process.pid}")
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending {signal_name} to PID {process.pid}")
    return signaled


def _wait_for_termination(processes: List[psutil.Process], timeout: float) -> List[psutil.Process]:
    if not processes:
        return []
    _, still_alive = psutil.wait_procs(processes, timeout=timeout)
    return [p for p in still_alive if is_process_alive(p)]


def terminate_process_tree(pid: int, name: str, timeout: float = 3.0) -> None:
    """
    Terminate a process and all its descendants with escalating force.

    Phases are SIGTERM (waiting ``timeout`` seconds), SIGINT and finally
    SIGKILL. Children are re-enumerated before every phase because a build
    keeps spawning compiler processes while it is being shut down.

    Args:
        pid: PID of the root process.
        name: Human-readable name used in log messages.
        timeout: Grace period for the first phase.
    """
    if pid <= 0:
        logger.warning(f"Invalid PID {pid} for {name}, skipping termination")
        return

    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        logger.debug(f"Process {name} (PID: {pid}) already terminated")
        return
    except psutil.AccessDenied:
        logger.warning(f"Access denied to process {name} (PID: {pid}), attempting force kill")
        _force_kill_process(pid)
        return

    logger.info(f"Terminating {name} (PID: {pid}) and its process tree")
    phases = [
        ("SIGTERM", timeout),
        ("SIGINT", INTERRUPT_TIMEOUT),
        ("SIGKILL", FORCE_KILL_TIMEOUT),
    ]
    for signal_name, phase_timeout in phases:
        children = _get_process_children(parent)
        targets = ([parent] if is_process_alive(parent) else []) + children
        if not targets:
            break
        remaining = _wait_for_termination(_signal_processes(targets, signal_name), phase_timeout)
        if not remaining:
            logger.debug(f"{name} terminated after {signal_name}")
            break
        logger.warning(f"{len(remaining)} processes of {name} still alive after {signal_name}")
    else:
        logger.error(f"Failed to terminate every process of {name}")


def _force_kill_process(pid: int) -> None:
    try:
        os.kill(pid, signal.SIGKILL)
        logger.warning(f"Force killed process PID {pid}")
    except ProcessLookupError:
        pass
    except PermissionError as e:
        logger.error(f"Failed to force kill PID {pid}: {e}")


def find_pid_by_name(process_name: str, timeout: float = 5.0, interval: float = 0.25) -> Optional[int]:
    """
    Poll the process table until a process with the given name appears.

    Returns:
        The PID of the newest matching process, or None if none appeared
        within ``timeout`` seconds.
    """
    deadline = time.monotonic() + timeout
    while True:
        matches = []
        for proc in psutil.process_iter(["pid", "name", "create_time"]):
            try:
                if proc.info["name"] == process_name:
                    matches.append(proc.info)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        if matches:
            newest = max(matches, key=lambda info: info["create_time"] or 0.0)
            return newest["pid"]
        if time.monotonic() >= deadline:
            return None
        time.sleep(interval)


def wait_for_process_exit(pid: int, stop_event: Optional[threading.Event] = None,
                          interval: float = 0.5) -> bool:
    """
    Block until a process exits or ``stop_event`` is set.

    Returns:
        True if the process exited (or never existed), False if stopped first.
    """
    try:
        process = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return True
    while stop_event is None or not stop_event.is_set():
        try:
            process.wait(timeout=interval)
            return True
        except psutil.TimeoutExpired:
            continue
        except psutil.NoSuchProcess:
            return True
    return False
