"""
tablo2plex - HDHomeRun tuner emulation for a Tablo 4th Gen device

Lets Plex, Jellyfin, Emby and other HDHomeRun clients use a cloud-gated
Tablo device:
- HDHomeRun discovery and lineup endpoints
- Tuner-limited MPEG-TS streaming through ffmpeg
- Encrypted credential storage
- Scheduled lineup and XMLTV guide refresh
"""

__version__ = "1.0.0"
__author__ = "tablo2plex Contributors"
__license__ = "MIT"

from tablo2plex.config import get_config, load_config

__all__ = [
    "__version__",
    "get_config",
    "load_config",
]
