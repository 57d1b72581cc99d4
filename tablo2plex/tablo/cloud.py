"""
Tablo cloud account API client.

Login, account lookup, profile/device selection and the guide endpoints
all live on the Lighthouse TV cloud host.
"""

import json
import logging
from typing import Any, Optional

import httpx

from tablo2plex.credentials import CredentialRecord

logger = logging.getLogger(__name__)


class CloudError(Exception):
    """Transport or protocol failure talking to the cloud API."""


class CloudAuthError(CloudError):
    """Login was rejected; trying again with other credentials may help."""


class CloudAccountError(CloudError):
    """The account response is unusable; retrying will not fix it."""


class TabloCloudClient:
    """Async client for ``https://lighthousetv.ewscloud.com``.

    Args:
        host: Cloud API host name.
        user_agent: User-Agent sent with every request.
        timeout: Request timeout in seconds.
        client: Optional shared ``httpx.AsyncClient`` (tests pass one with a
            mock transport). When omitted a client is opened per request.
    """

    def __init__(
        self,
        host: str = "lighthousetv.ewscloud.com",
        user_agent: str = "Tablo-FAST/1.7.0 (Mobile; iPhone; iOS 16.6)",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = f"https://{host}"
        self.user_agent = user_agent
        self.timeout = timeout
        self._client = client

    def _headers(
        self,
        authorization: Optional[str] = None,
        lighthouse: Optional[str] = None,
    ) -> dict[str, str]:
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "*/*",
        }
        if authorization:
            headers["Authorization"] = authorization
        if lighthouse:
            headers["Lighthouse"] = lighthouse
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        json_data: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Make a request and decode the JSON body."""
        url = self.base_url + path
        try:
            if self._client is not None:
                response = await self._client.request(method, url, headers=headers, json=json_data)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=headers, json=json_data)
        except httpx.TimeoutException as e:
            raise CloudError(f"Connection timeout to {self.base_url}") from e
        except httpx.HTTPError as e:
            raise CloudError(f"Request to {url} failed: {e}") from e

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise CloudError(f"Invalid JSON from {path} (HTTP {response.status_code})") from e

    async def login(self, email: str, password: str) -> str:
        """
        Log in and return the ``Authorization`` header value.

        Raises:
            CloudAuthError: If the credentials were rejected or the response
                did not contain a token.
        """
        try:
            data = await self._request(
                "POST",
                "/api/v2/login/",
                self._headers(),
                {"password": password, "email": email},
            )
        except CloudError as e:
            raise CloudAuthError(f"Login was not accepted or had issues: {e}") from e

        if not isinstance(data, dict):
            raise CloudAuthError("Login response was not an object")
        if data.get("code") is not None:
            raise CloudAuthError(f"Login was not accepted: {data.get('message')}")

        if data.get("is_verified") is not True:
            logger.info(
                "NOTE: While password was accepted, account is not verified. "
                "Please check email to make sure your account is fully set up. "
                "There may be issues later."
            )

        token_type = data.get("token_type")
        access_token = data.get("access_token")
        if token_type is None or access_token is None:
            raise CloudAuthError("Login response did not include an access token")

        logger.info("Login was accepted!")
        return f"{token_type} {access_token}"

    async def get_account(self, authorization: str) -> dict[str, Any]:
        try:
            data = await self._request("GET", "/api/v2/account/", self._headers(authorization))
        except CloudError as e:
            raise CloudAccountError(f"Account lookup failed: {e}") from e

        if not isinstance(data, dict):
            raise CloudAccountError("Account response was not an object")
        if data.get("code") is not None:
            raise CloudAccountError(f"Account login was not accepted: {data.get('message')}")
        return data

    async def select_device(self, authorization: str, profile_id: str, server_id: str) -> str:
        """Select a profile and device, returning the Lighthouse session token."""
        try:
            data = await self._request(
                "POST",
                "/api/v2/account/select/",
                self._headers(authorization),
                {"pid": profile_id, "sid": server_id},
            )
        except CloudError as e:
            raise CloudAccountError(f"Account token request failed: {e}") from e

        token = data.get("token") if isinstance(data, dict) else None
        if token is None:
            raise CloudAccountError("Account token was not found")

        logger.info("Account token found!")
        return token

    async def get_channels(self, record: CredentialRecord) -> list[dict[str, Any]]:
        data = await self._request(
            "GET",
            f"/api/v2/account/{record.lighthouse}/guide/channels/",
            self._headers(record.authorization, record.lighthouse),
        )
        if not isinstance(data, list):
            raise CloudError("Channel lineup response was not a list")
        return data

    async def get_airings(self, record: CredentialRecord, channel_id: str, day: str) -> list[dict[str, Any]]:
        data = await self._request(
            "GET",
            f"/api/v2/account/guide/channels/{channel_id}/airings/{day}/",
            self._headers(record.authorization, record.lighthouse),
        )
        if not isinstance(data, list):
            raise CloudError(f"Airings for {channel_id} on {day} were not a list")
        return data
