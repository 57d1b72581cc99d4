"""
Channel lineup.

The cloud returns a list of channels, each either over-the-air ("ota",
tuned by the device) or streamed ("ott", a direct URL). The lineup is cached
on disk as pretty JSON and held in memory as an immutable mapping that is
swapped in one assignment.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

from tablo2plex.utils.paths import atomic_write_text

logger = logging.getLogger(__name__)

KIND_OTA = "ota"
KIND_OTT = "ott"


@dataclass(frozen=True)
class LineupEntry:
    """One tunable channel."""

    identifier: str
    name: str
    kind: str
    guide_number: str
    guide_name: str
    source_url: str
    logos: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    @property
    def is_device_backed(self) -> bool:
        return self.kind == KIND_OTA

    @property
    def icon_url(self) -> Optional[str]:
        """Preferred logo: ``lightLarge`` when present, else the first one."""
        if not self.logos:
            return None
        for logo in self.logos:
            if logo.get("kind") == "lightLarge":
                return logo.get("url")
        return self.logos[0].get("url")

    def to_hdhomerun(self, base_url: str) -> dict[str, str]:
        return {
            "GuideNumber": self.guide_number,
            "GuideName": self.guide_name,
            "URL": f"{base_url}/channel/{self.identifier}",
        }


def parse_entry(raw: dict[str, Any], device_url: str) -> Optional[LineupEntry]:
    """Build an entry from a cloud channel object, or None when it has no identifier or an unknown kind."""
    kind = raw.get("kind")
    if kind not in (KIND_OTA, KIND_OTT) or not raw.get("identifier"):
        return None

    details = raw.get(kind) or {}
    identifier = str(raw["identifier"])
    if kind == KIND_OTA:
        source_url = f"{device_url.rstrip('/')}/guide/channels/{identifier}/watch"
    else:
        source_url = details.get("streamUrl", "")

    return LineupEntry(
        identifier=identifier,
        name=raw.get("name", ""),
        kind=kind,
        guide_number=f"{details.get('major')}.{details.get('minor')}",
        guide_name=details.get("callSign", ""),
        source_url=source_url,
        logos=tuple(raw.get("logos") or ()),
    )


def parse_lineup(raw: list[dict[str, Any]], device_url: str) -> dict[str, LineupEntry]:
    entries: dict[str, LineupEntry] = {}
    for item in raw:
        if not isinstance(item, dict):
            logger.debug(f"Skipping malformed channel entry {item!r}")
            continue
        entry = parse_entry(item, device_url)
        if entry is None:
            logger.debug(f"Skipping channel {item.get('identifier')} of kind {item.get('kind')!r}")
            continue
        entries[entry.identifier] = entry
    return entries


def save_cache(path: Path, raw: list[dict[str, Any]]) -> None:
    atomic_write_text(path, json.dumps(raw, indent=4))


def load_cache(path: Path) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Lineup cache {path} is not a list")
    return data


class ChannelLineup:
    """In-memory lineup shared by request handlers and the refresh task."""

    def __init__(self, entries: Optional[Mapping[str, LineupEntry]] = None):
        self._entries: Mapping[str, LineupEntry] = MappingProxyType(dict(entries or {}))

    def replace(self, entries: Mapping[str, LineupEntry]) -> None:
        """Swap in a new lineup. Readers see the old or the new one, never a mix."""
        self._entries = MappingProxyType(dict(entries))
        logger.info(f"Lineup updated with {len(self._entries)} channels")

    def load_from(self, path: Path, device_url: str) -> None:
        self.replace(parse_lineup(load_cache(path), device_url))

    def get(self, channel_id: str) -> Optional[LineupEntry]:
        return self._entries.get(channel_id)

    def entries(self) -> list[LineupEntry]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._entries
