"""
System interaction utilities.

This module provides the process-level functionality used by the
orchestrators:

- One-shot command execution with captured output and error handling
- An asyncio wrapper that runs commands in the default executor
- Process tree termination with escalating signals (via psutil)
- Process lookup by name for attaching log streams to launched apps
"""

# Command execution
from .commands import (
    check_tool_installed,
    run_command,
    run_command_async,
)

# Process management
from .processes import (
    find_pid_by_name,
    is_process_alive,
    terminate_process_tree,
    wait_for_process_exit,
)

__all__ = [
    # Commands
    "check_tool_installed",
    "run_command",
    "run_command_async",
    # Processes
    "find_pid_by_name",
    "is_process_alive",
    "terminate_process_tree",
    "wait_for_process_exit",
]
