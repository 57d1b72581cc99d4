"""
Console commands while the server runs.

``l`` forces a lineup (and guide) refresh, ``x`` stops the schedulers and
shuts the server down. Commands are read a line at a time from stdin.
"""

import asyncio
import logging
import signal
import sys
import threading
from typing import AsyncIterator, Callable, Sequence, TextIO

from tablo2plex.tasks.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

EXIT_KEY = "x"
REFRESH_KEY = "l"


def request_shutdown() -> None:
    """Ask uvicorn for a graceful shutdown, as Ctrl+C would."""
    signal.raise_signal(signal.SIGINT)


async def stream_lines(stream: TextIO = sys.stdin) -> AsyncIterator[str]:
    """
    Yield lines typed on ``stream`` without blocking the event loop.

    The blocking reads happen on a daemon thread so an idle prompt never
    holds up interpreter exit.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def reader() -> None:
        for line in stream:
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, None)

    threading.Thread(target=reader, name="console-reader", daemon=True).start()

    while True:
        line = await queue.get()
        if line is None:
            return
        yield line


class ConsoleCommands:
    """Dispatches console keys to the refresh schedulers."""

    def __init__(
        self,
        schedulers: Sequence[RefreshScheduler],
        shutdown: Callable[[], None] = request_shutdown,
    ):
        self.schedulers = schedulers
        self.shutdown = shutdown

    def announce(self) -> None:
        logger.info(f"-- Press '{EXIT_KEY}' then Enter at anytime to exit.")
        logger.info(f"-- Press '{REFRESH_KEY}' then Enter at anytime to request a new channel lineup / guide.")

    async def handle(self, line: str) -> bool:
        """Run one command. Returns False once the exit command was given."""
        key = line.strip().lower()[:1]

        if key == EXIT_KEY:
            for scheduler in self.schedulers:
                await scheduler.cancel()
            logger.info("Exiting Process...")
            self.shutdown()
            return False

        if key == REFRESH_KEY:
            for scheduler in self.schedulers:
                await scheduler.run_now()

        return True

    async def run(self, lines: AsyncIterator[str]) -> None:
        self.announce()
        async for line in lines:
            if not await self.handle(line):
                return
