"""
Tablo device local API client.

Every request is signed with :class:`DeviceSigner`; the ``Date`` header sent
is the exact string that was signed.
"""

import json
import logging
from typing import Any, Callable, Optional

import httpx

from tablo2plex.security.signer import DeviceSigner
from tablo2plex.utils.dates import rfc1123_date

logger = logging.getLogger(__name__)

NULL_DEVICE_ID = "00000000-0000-0000-0000-000000000000"


class DeviceError(Exception):
    """The device could not be reached or returned something unusable."""


def watch_request_body(client_uuid: str) -> str:
    """Body of a channel watch request, serialized the way the device signs it."""
    payload = {
        "bandwidth": None,
        "device_id": client_uuid,
        "extra": {
            "deviceId": NULL_DEVICE_ID,
            "deviceOS": "iOS",
            "deviceMake": "Apple",
            "height": 1080,
            "deviceOSVersion": "16.6",
            "width": 1920,
            "lang": "en_US",
            "limitedAdTracking": 1,
            "deviceModel": "iPhone10,1",
        },
        "platform": "ios",
    }
    return json.dumps(payload, separators=(",", ":"))


class TabloDeviceClient:
    """Async client for one Tablo device on the local network."""

    def __init__(
        self,
        base_url: str,
        client_uuid: str,
        signer: Optional[DeviceSigner] = None,
        user_agent: str = "Tablo-FAST/1.7.0 (Mobile; iPhone; iOS 18.4)",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        date_source: Callable[[], str] = rfc1123_date,
    ):
        self.base_url = base_url.rstrip("/")
        self.client_uuid = client_uuid
        self.signer = signer or DeviceSigner()
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client
        self._date_source = date_source

    def build_headers(self, method: str, path: str, body: str) -> dict[str, str]:
        date = self._date_source()
        headers = {
            "Connection": "keep-alive",
            "Date": date,
            "Accept": "*/*",
            "User-Agent": self.user_agent,
            "Authorization": self.signer.sign(method, path, body, date),
        }
        if method == "POST":
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        return headers

    async def _request(self, method: str, path: str, body: str = "") -> dict[str, Any]:
        url = self.base_url + path
        headers = self.build_headers(method, path, body)
        content = body.encode("utf-8") if method == "POST" and body else None

        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, content=content)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as e:
            raise DeviceError(f"Fetching device {url} failed: {e}") from e

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise DeviceError(f"Invalid JSON from device {path} (HTTP {response.status_code})") from e
        if not isinstance(data, dict):
            raise DeviceError(f"Unexpected response from device {path}")
        return data

    async def server_info(self) -> dict[str, Any]:
        return await self._request("GET", "/server/info")

    async def watch_channel(self, channel_id: str) -> str:
        """
        Ask the device to tune a channel.

        Returns:
            The short-lived playlist URL to hand to the transcoder.
        """
        data = await self._request(
            "POST",
            f"/guide/channels/{channel_id}/watch",
            watch_request_body(self.client_uuid),
        )
        playlist_url = data.get("playlist_url")
        if not playlist_url:
            raise DeviceError(f"Device did not return a playlist for channel {channel_id}")
        return playlist_url
