"""Request signing for the Tablo device's local API."""

import hashlib
import hmac

DEFAULT_HASH_KEY = "6l8jU5N43cEilqItmT3U2M2PFM3qPziilXqau9ys"
DEFAULT_DEVICE_KEY = "ljpg6ZkwShVv8aI12E2LP55Ep8vq1uYDPvX0DdTB"


class DeviceSigner:
    """Builds the ``Authorization`` header value the device expects."""

    def __init__(self, hash_key: str = DEFAULT_HASH_KEY, device_key: str = DEFAULT_DEVICE_KEY):
        self.hash_key = hash_key
        self.device_key = device_key

    def sign(self, method: str, path: str, body: str, date: str) -> str:
        """
        Sign a request.

        Args:
            method: HTTP method, e.g. "GET".
            path: Request path without query string.
            body: Request body, "" for none. A non-empty body is signed by
                its lowercase MD5 hex digest.
            date: The exact ``Date`` header string sent with the request.
        """
        if body:
            body = hashlib.md5(body.encode("utf-8")).hexdigest()
        message = f"{method}\n{path}\n{body}\n{date}"
        digest = hmac.new(self.hash_key.encode("utf-8"), message.encode("utf-8"), hashlib.md5)
        return f"tablo:{self.device_key}:{digest.hexdigest()}"
