"""
Deploy (install and launch) progress models.
"""

from dataclasses import dataclass
from enum import Enum


class RunPhase(Enum):
    CHECKING_DEVICE = "checking-device"
    WAITING_FOR_UNLOCK = "waiting-for-unlock"
    PREPARING = "preparing"
    BOOTING = "booting"
    INSTALLING = "installing"
    COPYING = "copying"
    VERIFYING = "verifying"
    LAUNCHING = "launching"
    RUNNING = "running"
    STREAMING = "streaming"
    FAILED = "failed"


@dataclass(frozen=True)
class RunProgressEvent:
    phase: RunPhase
    message: str


class OutputSource(Enum):
    """Where a relayed console line came from."""
    STDOUT = "stdout"
    STDERR = "stderr"
    SYSTEM_LOG = "system-log"
