"""
Permissive CORS and request logging.

Written as plain ASGI middleware so MPEG-TS responses pass through
unbuffered and client disconnects reach the streaming response directly.
"""

import logging

from starlette.datastructures import MutableHeaders
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
}

# HDHomeRun clients poll these constantly
QUIET_PATHS = {"/discover.json", "/lineup_status.json"}


class CORSMiddleware:
    """Adds CORS headers to every response and answers OPTIONS with 204."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        if path not in QUIET_PATHS:
            client = scope.get("client")
            client_host = client[0] if client else "unknown"
            logger.debug(f"{scope['method']} {path} from {client_host}")

        if scope["method"] == "OPTIONS":
            response = Response(status_code=204, headers=CORS_HEADERS)
            await response(scope, receive, send)
            return

        async def send_with_cors(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = MutableHeaders(scope=message)
                for name, value in CORS_HEADERS.items():
                    headers[name] = value
            await send(message)

        await self.app(scope, receive, send_with_cors)
