"""Tuner admission, stream sessions and ffmpeg supervision."""

from tablo2plex.streaming.response import TransportStreamResponse
from tablo2plex.streaming.session_manager import (
    SessionManager,
    StreamSession,
    TunerLease,
    TunerPool,
)
from tablo2plex.streaming.transcoder import FFmpegTranscoder, TranscoderError, ffmpeg_factory

__all__ = [
    "FFmpegTranscoder",
    "SessionManager",
    "StreamSession",
    "TranscoderError",
    "TransportStreamResponse",
    "TunerLease",
    "TunerPool",
    "ffmpeg_factory",
]
