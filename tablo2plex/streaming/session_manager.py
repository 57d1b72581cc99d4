"""
Tuner admission and stream session tracking.

Device-backed streams each hold one tuner lease. Checking capacity and
taking a lease happen in one synchronous step, so on a single event loop two
requests can never both take the last tuner.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from tablo2plex.streaming.transcoder import FFmpegTranscoder

logger = logging.getLogger(__name__)


class TunerLease:
    """One reserved tuner. Releasing it more than once has no effect."""

    def __init__(self, pool: "TunerPool"):
        self._pool = pool
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._pool._release()


class TunerPool:
    """Counts device tuners in use against the device's capacity."""

    def __init__(self, capacity: int):
        self._capacity = capacity
        self._in_use = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        return self._in_use

    @property
    def available(self) -> int:
        return max(self._capacity - self._in_use, 0)

    def resize(self, capacity: int) -> None:
        """Change capacity. Sessions already admitted keep their tuners."""
        self._capacity = capacity

    def try_acquire(self) -> Optional[TunerLease]:
        """Reserve a tuner, or return None when all are in use."""
        if self._in_use >= self._capacity:
            return None
        self._in_use += 1
        return TunerLease(self)

    def _release(self) -> None:
        self._in_use -= 1


class SessionState(str, Enum):
    """Stream session states."""
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class StreamSession:
    """
    One client watching one channel.

    Tracks the transcoder feeding the client and, for device-backed
    channels, the tuner lease.
    """

    channel_id: str
    client: str
    transcoder: FFmpegTranscoder
    lease: Optional[TunerLease] = None
    pool: Optional[TunerPool] = None
    session_id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: SessionState = SessionState.ACTIVE
    bytes_sent: int = 0

    @property
    def is_device_backed(self) -> bool:
        return self.lease is not None

    @property
    def duration_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.created_at).total_seconds()

    def record_data(self, bytes_count: int) -> None:
        self.bytes_sent += bytes_count

    async def close(self, reason: str = "unknown") -> None:
        """
        Kill the transcoder and release the tuner.

        Runs once; later calls return immediately whichever termination
        signal (client disconnect, transcoder exit, error) arrives first.
        """
        if self.state == SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED

        try:
            await self.transcoder.kill()
        finally:
            if self.lease is not None:
                self.lease.release()
                if self.pool is not None:
                    logger.info(
                        f"[{self.pool.in_use}/{self.pool.capacity}] Client {self.client} "
                        f"disconnected from {self.channel_id} ({reason}), killed ffmpeg"
                    )
            else:
                logger.info(f"Client {self.client} disconnected from {self.channel_id} ({reason}), killed ffmpeg")
            logger.debug(
                f"Session {self.session_id} closed "
                f"(duration: {self.duration_seconds:.1f}s, bytes: {self.bytes_sent})"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "channel_id": self.channel_id,
            "client": self.client,
            "state": self.state.value,
            "device_backed": self.is_device_backed,
            "created_at": self.created_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "bytes_sent": self.bytes_sent,
        }


class SessionManager:
    """Registry of open stream sessions."""

    def __init__(self):
        self._sessions: dict[str, StreamSession] = {}

    @property
    def active_sessions(self) -> list[StreamSession]:
        return list(self._sessions.values())

    def register(self, session: StreamSession) -> StreamSession:
        self._sessions[session.session_id] = session
        return session

    async def end_session(self, session: StreamSession, reason: str = "unknown") -> None:
        self._sessions.pop(session.session_id, None)
        await session.close(reason)

    async def close_all(self) -> None:
        """Close every session, used on shutdown."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.close("server shutdown")
        if sessions:
            logger.info(f"Closed {len(sessions)} stream sessions")
