"""
Ordered output classification rules.

Each table is evaluated top to bottom and the first matching rule wins, so
more specific rules must come before broader ones. A rule matches a single
line of tool output.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Pattern, Tuple

from ..models.build import BuildPhase
from ..models.run import RunPhase


@dataclass(frozen=True)
class OutputRule:
    """
    One pattern -> phase mapping.

    match_type is one of:
        contains: any pattern is a substring of the line
        prefix: the line starts with any pattern
        regex: any pattern matches somewhere in the line (re.search)
    """

    phase: Any
    patterns: Tuple[str, ...]
    match_type: str = "contains"
    case_sensitive: bool = True
    percentage: Optional[float] = None
    message: str = ""
    _compiled: Tuple[Pattern, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.match_type not in ("contains", "prefix", "regex"):
            raise ValueError(f"Unknown match_type: {self.match_type}")
        if self.match_type == "regex":
            flags = 0 if self.case_sensitive else re.IGNORECASE
            object.__setattr__(self, "_compiled", tuple(re.compile(p, flags) for p in self.patterns))

    def matches(self, line: str) -> bool:
        if self.match_type == "regex":
            return any(p.search(line) for p in self._compiled)

        target = line if self.case_sensitive else line.lower()
        patterns = self.patterns if self.case_sensitive else tuple(p.lower() for p in self.patterns)
        if self.match_type == "prefix":
            return target.startswith(patterns)
        return any(p in target for p in patterns)


def first_match(rules, line: str) -> Optional[OutputRule]:
    for rule in rules:
        if rule.matches(line):
            return rule
    return None


# --- Build tool output ---

# Compile percentage when the number of sources is unknown.
COMPILE_MIDPOINT_PERCENTAGE = 50.0
COMPILE_MAX_PERCENTAGE = 80.0

BUILD_PHASE_RULES = (
    OutputRule(BuildPhase.SUCCEEDED, ("BUILD SUCCEEDED",), percentage=100.0, message="Build succeeded"),
    OutputRule(BuildPhase.FAILED, ("BUILD FAILED",), percentage=100.0, message="Build failed"),
    OutputRule(
        BuildPhase.RESOLVING_PACKAGES,
        ("Resolve Package Graph", "Resolving package", "Resolving dependencies"),
        percentage=5.0,
        message="Resolving packages...",
    ),
    OutputRule(BuildPhase.FETCHING_PACKAGES, ("Fetching ",), percentage=8.0, message="Fetching packages..."),
    OutputRule(BuildPhase.UPDATING_PACKAGES, ("Updating ",), match_type="prefix", percentage=10.0,
               message="Updating packages..."),
    OutputRule(BuildPhase.CHECKING_OUT_PACKAGES, ("Checking out", "Cloning "), percentage=12.0,
               message="Checking out packages..."),
    OutputRule(BuildPhase.COMPILING, ("CompileC ", "CompileSwift", "SwiftCompile "), match_type="prefix",
               message="Compiling"),
    OutputRule(BuildPhase.COMPILING, ("Compiling",), message="Compiling"),
    OutputRule(BuildPhase.LINKING, ("Ld ",), match_type="prefix", percentage=85.0, message="Linking..."),
    OutputRule(BuildPhase.LINKING, ("Linking",), percentage=85.0, message="Linking..."),
    OutputRule(BuildPhase.SIGNING, ("CodeSign", "Signing"), percentage=90.0, message="Signing..."),
    OutputRule(BuildPhase.COPYING, ("CopySwiftLibs",), percentage=95.0, message="Copying resources..."),
    OutputRule(BuildPhase.COPYING, ("Copy",), match_type="prefix", percentage=95.0,
               message="Copying resources..."),
    OutputRule(
        BuildPhase.PROCESSING,
        ("ProcessInfoPlistFile", "ProcessProductPackaging", "CreateBuildDirectory", "WriteAuxiliaryFile",
         "ProcessAssetCatalog", "CompileAssetCatalog", "CompileStoryboard"),
        match_type="prefix",
        percentage=15.0,
        message="Processing resources...",
    ),
)

# Device readiness hints emitted by the build tool for physical targets.
# Matched against the lowercased line.
DEVICE_PHASE_RULES = (
    OutputRule(BuildPhase.WAITING_FOR_DEVICE, ("passcode protected", "device is locked"),
               message="Device is locked - please unlock your device"),
    OutputRule(BuildPhase.WAITING_FOR_DEVICE, (r"(?=.*waiting)(?=.*(?:device|unlock))",), match_type="regex",
               message="Waiting for device - please unlock if needed"),
    OutputRule(BuildPhase.PREPARING_DEVICE, (r"(?=.*preparing)(?=.*device)",), match_type="regex",
               message="Preparing device for development..."),
    OutputRule(BuildPhase.REGISTERING_DEVICE, (r"(?=.*register)(?=.*device)",), match_type="regex",
               message="Registering device..."),
)

ERROR_MARKER = "error:"
WARNING_MARKER = "warning:"
PRODUCTS_MARKER = "/Build/Products/"

# A bundle path: no whitespace or quoting characters, ending in ".app" at a
# path-component boundary.
APP_PATH_PATTERN = re.compile(r"""[^\s"'()]*\.app(?=[/\s"')]|$)""")
SOURCE_FILE_PATTERN = re.compile(r"\w+\.(?:swift|mm|m|cpp|c)\b")


# --- Device install/launch output ---

INSTALL_PROGRESS_RULES = (
    OutputRule(RunPhase.WAITING_FOR_UNLOCK, ("unlock", "passcode", "locked"), case_sensitive=False,
               message="Waiting for device to be unlocked..."),
    OutputRule(RunPhase.PREPARING, ("preparing", "prepare"), case_sensitive=False,
               message="Preparing device..."),
    OutputRule(RunPhase.COPYING, ("copying", "transferring"), case_sensitive=False,
               message="Copying app to device..."),
    OutputRule(RunPhase.VERIFYING, ("verifying", "verify"), case_sensitive=False,
               message="Verifying installation..."),
    OutputRule(RunPhase.INSTALLING, ("installing",), case_sensitive=False,
               message="Installing app..."),
)

DEVICE_LOCKED_PATTERNS = ("passcode", "locked", "unlock")


@dataclass(frozen=True)
class FailureRule:
    """Maps failing install output to an error category and remediation hint."""

    patterns: Tuple[str, ...]
    # "device-not-ready" or "install-failed"
    category: str
    hint: str


# Patterns are matched case-sensitively, except where both spellings are listed.
INSTALL_FAILURE_RULES = (
    FailureRule(("passcode", "locked", "unlock"), "device-not-ready",
                "Please unlock your device and try again"),
    FailureRule(("trust", "Trust"), "device-not-ready",
                "Please trust this computer on your device"),
    FailureRule(("Developer Mode", "developer mode"), "device-not-ready",
                "Please enable Developer Mode in Settings > Privacy & Security"),
    FailureRule(("provision", "signing"), "install-failed",
                "Code signing error - check your provisioning profile"),
)
