"""
Server context shared by request handlers.

Everything a handler needs (lineup, tuner pool, sessions, credentials and
the device client) hangs off one object stored on ``app.state.context``.
"""

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request

from tablo2plex.config import Tablo2PlexConfig
from tablo2plex.credentials import CredentialRecord
from tablo2plex.lineup import ChannelLineup
from tablo2plex.streaming.session_manager import SessionManager, TunerPool
from tablo2plex.streaming.transcoder import TranscoderFactory, ffmpeg_factory
from tablo2plex.tablo.device import TabloDeviceClient
from tablo2plex.tasks.scheduler import RefreshScheduler


@dataclass
class GatewayContext:
    """State for one running gateway."""

    config: Tablo2PlexConfig
    base_url: str
    lineup: ChannelLineup
    tuner_pool: TunerPool
    device: Optional[TabloDeviceClient] = None
    record: Optional[CredentialRecord] = None
    sessions: SessionManager = field(default_factory=SessionManager)
    transcoder_factory: TranscoderFactory = field(default_factory=ffmpeg_factory)
    schedulers: list[RefreshScheduler] = field(default_factory=list)
    console: bool = False

    @property
    def tuner_count(self) -> int:
        return self.tuner_pool.capacity


async def get_context(request: Request) -> GatewayContext:
    """FastAPI dependency returning the app's context."""
    return request.app.state.context
