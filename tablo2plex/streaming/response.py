"""
MPEG-TS streaming response tied to a stream session.
"""

import logging
from typing import AsyncIterator

from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from tablo2plex.streaming.session_manager import SessionManager, StreamSession

logger = logging.getLogger(__name__)

MEDIA_TYPE = "video/mp2t"


class TransportStreamResponse(StreamingResponse):
    """
    Streams transcoder output to the client.

    The session is closed when the ASGI call ends for any reason: client
    disconnect, transcoder exit, an error, or cancellation before the body
    iterator ever started.
    """

    def __init__(self, session: StreamSession, manager: SessionManager):
        self.session = session
        self.manager = manager
        self._end_reason = "client disconnected"
        super().__init__(self._body(), media_type=MEDIA_TYPE)

    async def _body(self) -> AsyncIterator[bytes]:
        async for chunk in self.session.transcoder.iter_chunks():
            self.session.record_data(len(chunk))
            yield chunk
        self._end_reason = "transcoder exited"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except Exception as e:
            self._end_reason = f"error: {e}"
            raise
        finally:
            await self.manager.end_session(self.session, self._end_reason)
