"""
On-disk cache of per-channel, per-day airings.

Files are named ``{channelId}_{yyyy-mm-dd}.json`` and are fetched once; days
that fall out of the guide window are pruned.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from tablo2plex.utils.paths import atomic_write_text

logger = logging.getLogger(__name__)


def cache_file_name(channel_id: str, day: str) -> str:
    return f"{channel_id}_{day}.json"


class GuideCache:
    """Directory of cached airings."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, channel_id: str, day: str) -> Path:
        return self.directory / cache_file_name(channel_id, day)

    def has(self, channel_id: str, day: str) -> bool:
        return self.path_for(channel_id, day).is_file()

    def read(self, channel_id: str, day: str) -> list[dict[str, Any]]:
        with open(self.path_for(channel_id, day), encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, list) else []

    def write(self, channel_id: str, day: str, airings: list[dict[str, Any]]) -> None:
        atomic_write_text(self.path_for(channel_id, day), json.dumps(airings))

    def prune(self, keep: Iterable[str]) -> list[str]:
        """Delete cached files whose names are not in ``keep``. Returns the removed names."""
        if not self.directory.is_dir():
            return []
        keep_names = set(keep)
        removed = []
        for path in self.directory.iterdir():
            if path.is_file() and path.name not in keep_names:
                path.unlink()
                removed.append(path.name)
        if removed:
            logger.info(f"Removed {len(removed)} stale guide files")
        return removed
