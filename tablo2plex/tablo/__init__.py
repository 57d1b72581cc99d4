"""Clients for the Tablo cloud account API and the local device API."""

from tablo2plex.tablo.cloud import CloudAccountError, CloudAuthError, CloudError, TabloCloudClient
from tablo2plex.tablo.device import DeviceError, TabloDeviceClient

__all__ = [
    "CloudAccountError",
    "CloudAuthError",
    "CloudError",
    "DeviceError",
    "TabloCloudClient",
    "TabloDeviceClient",
]
