"""
Command-line interface for the xrunner build and run tool.

This module provides the main CLI entry point: it loads the configuration,
selects the project, scheme and target without prompting, then builds the
app and runs it on the target while printing progress.

Usage:
    xrunner [--project PATH] [--scheme NAME] [--device ID|NAME] [--auto]
            [--verbose] [--console] [--config FILE]

Exit codes: 0 on success, 1 on any failure, 130 when interrupted.
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

from ..config import get_config, set_config_path
from ..models.build import BuildProgressEvent, BuildRequest
from ..models.config import AppConfig
from ..models.run import RunProgressEvent
from ..orchestration import RunnerEngine
from ..system.commands import check_tool_installed
from ..validation import (
    BuildFailedError,
    OperationCancelledError,
    RunnerError,
    ValidationError,
    handle_cli_error,
)
from .selection import select_project, select_scheme, select_target

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Error lines echoed after a failed build.
MAX_REPORTED_ERRORS = 10


class ProgressPrinter:
    """Prints one line per build or run progress change."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._last: Optional[str] = None

    def _write(self, text: str) -> None:
        if text == self._last:
            return
        self._last = text
        print(text, file=self.stream, flush=True)

    def on_build(self, event: BuildProgressEvent) -> None:
        self._write(f"[{event.percentage:3.0f}%] {event.message}")

    def on_run(self, event: RunProgressEvent) -> None:
        self._write(f"[{event.phase.value}] {event.message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xrunner",
        description="Build an app and run it on a simulator, a device or this Mac.",
    )
    parser.add_argument("-p", "--project", type=str,
                        help="Path to the project or workspace (default: the one in the current directory).")
    parser.add_argument("-s", "--scheme", type=str, help="The scheme to build.")
    parser.add_argument("-d", "--device", type=str, help="Identifier or name of the target to run on.")
    parser.add_argument("-a", "--auto", action="store_true",
                        help="Pick the first running target (or the first available) without asking.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show the full build output.")
    parser.add_argument("-c", "--console", action="store_true",
                        help="Stream the app's console output until it exits or Ctrl+C is pressed.")
    parser.add_argument("--config", type=str, help="Path to an alternative config.toml.")
    return parser


async def run(args: argparse.Namespace, app_config: AppConfig) -> int:
    """Run one build-and-deploy cycle and return the process exit code."""
    engine = RunnerEngine(app_config)
    engine.load()

    shutdown_requested = False

    def request_shutdown() -> None:
        nonlocal shutdown_requested
        if shutdown_requested:
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        logger.info("Interrupt received. Cancelling...")
        shutdown_requested = True
        engine.cancel()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, request_shutdown)

    try:
        project = select_project(args.project, Path.cwd())
        logger.info(f"Using {project.path.name}")
        scheme = select_scheme(await engine.list_schemes(project), args.scheme)

        targets = await engine.discover_targets()
        supported = await engine.schemes.supported_platforms(project, scheme)
        compatible = [t for t in targets if t.platform in supported] or targets
        target = select_target(compatible, args.device, args.auto)
        logger.info(f"Running {scheme} on {target.display_name}")

        if shutdown_requested:
            raise OperationCancelledError()

        request = BuildRequest.for_project(
            project, scheme, target,
            configuration=app_config.build.default_configuration,
            verbose=args.verbose,
        )
        printer = ProgressPrinter()
        result = await engine.build_and_run(
            request, printer.on_build, printer.on_run, console=args.console
        )
        print(f"Done in {result.duration:.1f}s: {scheme} is running on {target.name}.")
        return EXIT_OK
    except OperationCancelledError:
        print("Cancelled.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except ValidationError as e:
        logger.error(str(e))
        return EXIT_FAILURE
    except BuildFailedError as e:
        for line in e.errors[-MAX_REPORTED_ERRORS:]:
            print(line, file=sys.stderr)
        logger.error(f"{e.describe()} ({len(e.errors)} errors, {len(e.warnings)} warnings)")
        return EXIT_FAILURE
    except RunnerError as e:
        logger.error(e.describe())
        if e.detail and e.detail not in e.message:
            logger.error(e.detail)
        return EXIT_FAILURE
    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)
        engine.flush()


def main_cli() -> None:
    """
    Main command-line interface for xrunner.

    Raises:
        SystemExit: Always, with the exit code of the run.
    """
    args = build_parser().parse_args()

    try:
        if args.config:
            set_config_path(Path(args.config))
        app_config = get_config()
    except (FileNotFoundError, ValueError, ValidationError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=EXIT_FAILURE,
            logger=logger,
        )

    logging.getLogger().setLevel(app_config.general.log_level)

    for tool in (app_config.tools.build_tool, app_config.tools.device_tool):
        if not check_tool_installed(tool):
            logger.error(f"Required tool not found: {tool}. Install the Xcode command line tools.")
            sys.exit(EXIT_FAILURE)

    sys.exit(asyncio.run(run(args, app_config)))


if __name__ == "__main__":
    main_cli()
