"""
Persisted refresh scheduler.

Each refresh task (lineup, guide) keeps a small JSON state file with its
interval and next due time, so a restart does not re-run work that is not
due yet. The host polls once at startup and then once a day.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from tablo2plex.utils.dates import parse_rfc1123, rfc1123_date, utc_now
from tablo2plex.utils.paths import atomic_write_text

logger = logging.getLogger(__name__)

DAY = timedelta(days=1)


class SchedulerState(str, Enum):
    """Scheduler lifecycle states."""
    IDLE = "idle"
    DUE = "due"
    RUNNING = "running"


class RefreshScheduler:
    """
    Runs ``task`` at most once per ``interval``.

    Args:
        state_file: JSON file holding ``{"interval": ms, "nextCheck": RFC-1123}``.
        label: Name used in log messages.
        interval: Time between successful runs. A value already persisted in
            ``state_file`` takes precedence.
        task: Async callable doing the refresh work.
        poll_period: How often the background loop checks for due work.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        state_file: Path,
        label: str,
        interval: timedelta,
        task: Callable[[], Awaitable[None]],
        poll_period: timedelta = DAY,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.state_file = Path(state_file)
        self.label = label
        self.interval = interval
        self.task = task
        self.poll_period = poll_period
        self._clock = clock

        self._lock = asyncio.Lock()
        self._loop_task: Optional[asyncio.Task] = None
        self._running = False
        self.last_run: Optional[datetime] = None
        self.next_run: datetime = clock()

        self._load_state()

    def _load_state(self) -> None:
        if not self.state_file.exists():
            self.next_run = self._clock()
            self._write_state()
            return

        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Invalid scheduler file {self.state_file}: {e}")
            self.next_run = self._clock()
            return
        if not isinstance(data, dict):
            data = {}

        interval_ms = data.get("interval")
        if isinstance(interval_ms, (int, float)) and interval_ms > 0:
            self.interval = timedelta(milliseconds=interval_ms)

        try:
            self.next_run = parse_rfc1123(data.get("nextCheck"))
        except ValueError:
            logger.error(f"Invalid Scheduler time string: {data.get('nextCheck')!r}")
            self.next_run = self._clock()

    def _state_json(self) -> str:
        return json.dumps({
            "interval": int(self.interval.total_seconds() * 1000),
            "nextCheck": rfc1123_date(self.next_run),
        })

    def _write_state(self) -> None:
        """Persist the schedule. A write failure is logged and the in-memory schedule kept."""
        try:
            atomic_write_text(self.state_file, self._state_json())
        except OSError as e:
            logger.error(f"Could not save scheduler file {self.state_file}: {e}")

    @property
    def state(self) -> SchedulerState:
        if self._lock.locked():
            return SchedulerState.RUNNING
        if self._clock() >= self.next_run:
            return SchedulerState.DUE
        return SchedulerState.IDLE

    async def poll(self) -> bool:
        """Run the task if it is due. Returns True when a run succeeded."""
        return await self._run(force=False)

    async def run_now(self) -> bool:
        """
        Run the task regardless of the due time.

        Failures are logged and leave the schedule unchanged, so the same run
        is retried at the next poll.
        """
        return await self._run(force=True)

    async def _run(self, force: bool) -> bool:
        async with self._lock:
            # Checked under the lock: a run that just finished moves next_run.
            if not force and self._clock() < self.next_run:
                return False

            logger.info(f"{self.label} running.")
            try:
                await self.task()
            except Exception as e:
                logger.error(f"{self.label} failed: {e}", exc_info=True)
                return False

            now = self._clock()
            self.last_run = now
            self.next_run = now + self.interval
            await asyncio.to_thread(self._write_state)

            logger.info(f"{self.label} finished running. Next run scheduled for {rfc1123_date(self.next_run)}")
            return True

    async def start(self) -> None:
        """Poll once now, then keep polling every ``poll_period`` in the background."""
        if self._running:
            return
        self._running = True
        await self.poll()
        self._loop_task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.poll_period.total_seconds())
            await self.poll()

    async def cancel(self) -> None:
        """Stop background polling. Safe to call more than once."""
        self._running = False
        task, self._loop_task = self._loop_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
