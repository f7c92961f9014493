"""
Live console streaming for a launched app.

The ConsoleStreamer launches an already-installed app with console
attachment and relays its output, together with the system log of the app's
process, to an output sink until the app exits or ``stop()`` is called.
"""

import asyncio
import logging
import sys
import threading
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..executor import StreamingProcess
from ..models.config import ToolsConfig
from ..models.run import OutputSource
from ..system.commands import run_command_async
from ..system.processes import find_pid_by_name, wait_for_process_exit
from ..validation import LaunchFailedError

logger = logging.getLogger(__name__)

OutputSink = Callable[[OutputSource, str], None]

# Delay between `open` returning and the app showing up in the process table.
APP_START_DELAY = 0.5
PID_LOOKUP_TIMEOUT = 5.0


def is_pid_line(line: str) -> bool:
    """True for the ``<pid>: <bundle id>`` line printed by the launch command."""
    if ": " not in line:
        return False
    head = line.split(":", 1)[0]
    return head == "" or head.isdigit()


def print_output(source: OutputSource, line: str) -> None:
    """Default sink: app stderr goes to stderr, everything else to stdout."""
    stream = sys.stderr if source is OutputSource.STDERR else sys.stdout
    print(line, file=stream, flush=True)


class ConsoleStreamer:
    """
    Relays console output from a running app.

    Each ``stream_*`` coroutine returns once the app exits or the streamer
    is stopped; every subprocess it started is terminated on return. A
    streamer is used for a single app session.
    """

    def __init__(self, tools: Optional[ToolsConfig] = None, sink: OutputSink = print_output,
                 queue_size: int = 1000, termination_timeout: float = 3.0):
        self.tools = tools or ToolsConfig()
        self.sink = sink
        self.queue_size = queue_size
        self.termination_timeout = termination_timeout

        self._processes: List[StreamingProcess] = []
        self._relays: List[asyncio.Task] = []
        self._stop_event = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def stream_simulator(self, device_id: str, bundle_id: str, app_name: str) -> None:
        """Launch on a simulator with ``--console-pty`` plus its log stream."""
        try:
            await self._start(
                [self.tools.device_tool, "simctl", "spawn", device_id, "log", "stream",
                 "--level", "debug", "--style", "compact", "--process", app_name],
                name="simulator log stream",
                source=OutputSource.SYSTEM_LOG,
            )
            app = await self._start(
                [self.tools.device_tool, "simctl", "launch", "--console-pty", device_id, bundle_id],
                name=f"{app_name} console",
            )
        except OSError:
            await self.stop()
            raise
        await self._follow(app)

    async def stream_physical_device(self, device_id: str, bundle_id: str) -> None:
        """Launch on a physical device with ``--console``."""
        app = await self._start(
            [self.tools.device_tool, "devicectl", "device", "process", "launch",
             "--console", "--device", device_id, bundle_id],
            name=f"{bundle_id} console",
        )
        await self._follow(app)

    async def stream_local_app(self, app_path: Path) -> None:
        """
        Open a local app and follow the system log of its process.

        Raises:
            LaunchFailedError: If the app cannot be opened.
        """
        app_path = Path(app_path)
        rc, stdout, stderr = await run_command_async([self.tools.open_tool, str(app_path)])
        if rc != 0:
            raise LaunchFailedError(phase="launching", detail=stderr or stdout)

        await asyncio.sleep(APP_START_DELAY)
        loop = asyncio.get_running_loop()
        pid = await loop.run_in_executor(None, find_pid_by_name, app_path.stem, PID_LOOKUP_TIMEOUT)
        if pid is None:
            logger.warning(f"{app_path.stem} was launched but its PID could not be found; "
                           f"no log stream attached")
            return

        await self._start(
            [self.tools.log_tool, "stream", "--level", "info", "--style", "compact",
             "--predicate", f"processIdentifier == {pid}"],
            name="system log stream",
            source=OutputSource.SYSTEM_LOG,
        )
        try:
            exited = await loop.run_in_executor(None, wait_for_process_exit, pid, self._stop_event)
            if exited:
                logger.info(f"{app_path.stem} (PID {pid}) exited")
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Terminate every subprocess started by this streamer."""
        self._stop_event.set()
        processes, self._processes = self._processes, []
        relays, self._relays = self._relays, []
        for process in processes:
            await process.terminate()
        for relay in relays:
            relay.cancel()
        if relays:
            await asyncio.gather(*relays, return_exceptions=True)

    async def _start(self, args: Sequence[str], name: str,
                     source: Optional[OutputSource] = None) -> asyncio.Task:
        process = StreamingProcess(
            args, name=name, queue_size=self.queue_size,
            termination_timeout=self.termination_timeout,
        )
        await process.start()
        self._processes.append(process)
        relay = asyncio.create_task(self._relay(process, source))
        self._relays.append(relay)
        return relay

    async def _relay(self, process: StreamingProcess, source: Optional[OutputSource]) -> None:
        async for origin, line in process.lines():
            if not line.strip() or is_pid_line(line):
                continue
            self.sink(source or origin, line)
        rc = await process.wait()
        logger.debug(f"{process.name} finished with return code {rc}")

    async def _follow(self, app_relay: asyncio.Task) -> None:
        try:
            await asyncio.gather(app_relay, return_exceptions=True)
        finally:
            await self.stop()
