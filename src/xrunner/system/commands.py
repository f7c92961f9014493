"""
Command execution utilities.

This module provides the one-shot command runner used for every short-lived
external tool invocation (simulator listing, install, launch, lock-state
queries) plus an asyncio wrapper that keeps the event loop responsive.
"""

import asyncio
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Tuple

from ..validation import ErrorSeverity, handle_subprocess_error

logger = logging.getLogger(__name__)


def run_command(
    args: Sequence[str],
    cwd: Optional[Path] = None,
    strict_decoding: bool = False,
    timeout: Optional[float] = None,
) -> Tuple[int, str, str]:
    """Execute a command and capture its output with robust error handling.

    Args:
        args: Program and arguments; never passed through a shell.
        cwd: Working directory for the command, or None for the current one.
        strict_decoding: When True, output that is not valid UTF-8 is treated
            as an execution error instead of being decoded with replacement
            characters.
        timeout: Optional timeout in seconds.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 for execution errors.
    """
    args = [str(a) for a in args]
    logger.debug(f"Executing command: {' '.join(args)}")
    try:
        process = subprocess.run(
            args,
            cwd=cwd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="strict" if strict_decoding else "replace",
            timeout=timeout,
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        logger.error(f"Command not found: {args[0]}: {type(e).__name__}: {e}")
        return -1, "", f"Error: Command not found '{args[0]}'"
    except UnicodeDecodeError as e:
        logger.warning(f"Output of '{args[0]}' is not valid UTF-8: {e}")
        return -1, "", f"Error: undecodable output from '{args[0]}'"
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: {' '.join(args)}")
        return -1, "", f"Error: '{args[0]}' timed out"
    except Exception as e:
        handle_subprocess_error(e, " ".join(args), severity=ErrorSeverity.ERROR, reraise=False, logger=logger)
        return -1, "", f"An unexpected error occurred: {e}"


async def run_command_async(
    args: Sequence[str],
    cwd: Optional[Path] = None,
    strict_decoding: bool = False,
    timeout: Optional[float] = None,
) -> Tuple[int, str, str]:
    """Run :func:`run_command` in the default executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, lambda: run_command(args, cwd=cwd, strict_decoding=strict_decoding, timeout=timeout)
    )


def check_tool_installed(tool: str) -> bool:
    """Check whether a tool is an existing path or found on PATH."""
    if Path(tool).is_absolute():
        return Path(tool).exists()
    return shutil.which(tool) is not None
