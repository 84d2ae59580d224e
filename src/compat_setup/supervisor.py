"""Child process output supervision.

A dedicated thread owns the child's stdout and performs the blocking line
reads, handing each line to the event loop through an ``asyncio.Queue``. The
loop runs until the stream closes; there is no line limit. Cancelling the
``supervise`` task stops forwarding: the thread keeps reading and discarding
output so the child never blocks on a full pipe, and exits when the stream
closes. Terminating the process is left to the caller.
"""

import asyncio
import logging
import subprocess
import threading
from typing import IO

from .exceptions import CompatRuntimeError

logger = logging.getLogger(__name__)

_EOF = object()


class OutputDrain:
    """Worker thread forwarding lines from ``stream`` into ``queue``.

    Args:
        stream: Child output stream (text or bytes); owned exclusively by the worker
        loop: Event loop that owns ``queue``
        queue: Receives one str per line, then a sentinel at end of stream
    """

    def __init__(self, stream: IO, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        self.stream = stream
        self.loop = loop
        self.queue = queue
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="compat-setup-output-drain", daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        """Stop forwarding; remaining output is read and discarded."""
        self._stopped.set()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _forward(self, item: object) -> None:
        if self._stopped.is_set():
            return
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, item)
        except RuntimeError:
            # Event loop closed; nobody is listening anymore.
            logger.debug("Output drain stopped forwarding: event loop closed")
            self._stopped.set()

    def _run(self) -> None:
        try:
            for raw in self.stream:
                line = raw.decode(errors="replace") if isinstance(raw, bytes) else raw
                self._forward(line.rstrip("\r\n"))
        finally:
            self._forward(_EOF)


async def supervise(process: subprocess.Popen) -> int:
    """
    Forward every output line of ``process`` to the log until its stream closes.

    Args:
        process: Child started with ``stdout=subprocess.PIPE``

    Returns:
        The child's exit code

    Raises:
        CompatRuntimeError: If the process has no output stream
    """
    if process.stdout is None:
        raise CompatRuntimeError("Process has no output stream to supervise", context={"pid": process.pid})

    queue: asyncio.Queue = asyncio.Queue()
    drain = OutputDrain(process.stdout, asyncio.get_running_loop(), queue)
    drain.start()

    try:
        while True:
            line = await queue.get()
            if line is _EOF:
                break
            if line:
                logger.info(line)
    finally:
        drain.stop()

    returncode = await asyncio.to_thread(process.wait)
    logger.info(f"Process {process.pid} exited with code {returncode}")
    return returncode
