"""
Line-streaming subprocess runner.

This module provides a StreamingProcess that runs a long-lived external tool
(the build tool, a device log stream) and delivers its stdout and stderr
lines, tagged by source, to an asyncio consumer while the process is still
running.

Blocking pipe reads happen in executor threads. Each reader pushes lines into
a bounded asyncio.Queue, so a slow consumer applies back-pressure to the
readers instead of letting memory grow without limit.
"""

import asyncio
import logging
import subprocess
import time
from pathlib import Path
from typing import IO, AsyncIterator, List, Optional, Sequence, Tuple

from ..models.run import OutputSource
from ..system.processes import terminate_process_tree
from ..validation import handle_error, ErrorSeverity

logger = logging.getLogger(__name__)

_EOF = object()


class StreamingProcess:
    """
    A subprocess whose output is consumed line by line while it runs.

    Typical use::

        proc = StreamingProcess(["xcodebuild", ...], name="build")
        await proc.start()
        async for source, line in proc.lines():
            ...
        rc = await proc.wait()
    """

    def __init__(
        self,
        args: Sequence[str],
        cwd: Optional[Path] = None,
        name: str = "process",
        queue_size: int = 1000,
        termination_timeout: float = 3.0,
    ):
        self.args = [str(a) for a in args]
        self.cwd = cwd
        self.name = name
        self.queue_size = queue_size
        self.termination_timeout = termination_timeout

        self.process: Optional[subprocess.Popen] = None
        self.return_code: Optional[int] = None
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        self._queue: Optional[asyncio.Queue] = None
        self._readers: List[asyncio.Future] = []
        self._discard = False
        self._terminated = False

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    @property
    def terminated(self) -> bool:
        """True once terminate() has been called."""
        return self._terminated

    @property
    def duration(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else time.time()
        return end - self.start_time

    async def start(self) -> int:
        """
        Launch the process and its reader threads.

        Returns:
            PID of the started process

        Raises:
            RuntimeError: If the process was already started
            OSError: If the executable cannot be launched
        """
        if self.process is not None:
            raise RuntimeError(f"{self.name} is already started")

        loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=self.queue_size)
        self.start_time = time.time()
        try:
            self.process = await loop.run_in_executor(None, self._spawn)
        except OSError as e:
            handle_error(
                error=e,
                context=f"starting {self.name}",
                severity=ErrorSeverity.ERROR,
                reraise=True,
                logger=logger
            )

        self._readers = [
            loop.run_in_executor(None, self._pump, self.process.stdout, OutputSource.STDOUT, loop),
            loop.run_in_executor(None, self._pump, self.process.stderr, OutputSource.STDERR, loop),
        ]
        logger.info(f"{self.name} started with PID {self.process.pid}")
        return self.process.pid

    def _spawn(self) -> subprocess.Popen:
        logger.debug(f"Spawning {self.name}: {' '.join(self.args)}")
        return subprocess.Popen(
            self.args,
            cwd=self.cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )

    def _pump(self, stream: IO[str], source: OutputSource, loop: asyncio.AbstractEventLoop) -> None:
        """Reader thread body: forward each line, then one end-of-stream marker."""
        try:
            for raw in iter(stream.readline, ""):
                if self._discard:
                    continue
                line = raw.rstrip("\r\n")
                asyncio.run_coroutine_threadsafe(self._queue.put((source, line)), loop).result()
        except ValueError:
            # Pipe closed underneath us during termination.
            pass
        finally:
            stream.close()
            if not self._discard and not loop.is_closed():
                asyncio.run_coroutine_threadsafe(self._queue.put(_EOF), loop).result()

    async def lines(self) -> AsyncIterator[Tuple[OutputSource, str]]:
        """Yield (source, line) pairs until both streams reach end of file."""
        if self._queue is None:
            raise RuntimeError(f"{self.name} was not started")
        finished = 0
        while finished < 2:
            item = await self._queue.get()
            if item is _EOF:
                finished += 1
                continue
            yield item

    async def wait(self) -> int:
        """Wait for the process to exit and the readers to finish."""
        if self.process is None:
            raise RuntimeError(f"{self.name} was not started")
        loop = asyncio.get_running_loop()
        self.return_code = await loop.run_in_executor(None, self.process.wait)
        if not self._discard:
            await asyncio.gather(*self._readers)
        self.end_time = time.time()
        logger.info(f"{self.name} exited with return code {self.return_code} after {self.duration:.1f}s")
        return self.return_code

    async def terminate(self) -> None:
        """Terminate the whole process tree and stop delivering output."""
        if self.process is None or self._terminated:
            return
        self._terminated = True
        self._discard = True
        # Unblock readers waiting on a full queue.
        while self._queue is not None and not self._queue.empty():
            self._queue.get_nowait()
        if self.process.poll() is None:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                None, terminate_process_tree, self.process.pid, self.name, self.termination_timeout
            )
        self.end_time = time.time()
