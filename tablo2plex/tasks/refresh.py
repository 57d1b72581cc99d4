"""
Lineup and guide refresh tasks driven by :class:`RefreshScheduler`.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from tablo2plex.credentials import CredentialRecord
from tablo2plex.guide.cache import GuideCache, cache_file_name
from tablo2plex.guide.xmltv import build_xmltv, strip_xmltv_wrapper
from tablo2plex.lineup import ChannelLineup, parse_lineup, save_cache
from tablo2plex.streaming.session_manager import TunerPool
from tablo2plex.tablo.cloud import CloudError, TabloCloudClient
from tablo2plex.tablo.device import DeviceError, TabloDeviceClient
from tablo2plex.utils.dates import guide_days
from tablo2plex.utils.paths import atomic_write_text

logger = logging.getLogger(__name__)


class LineupRefresher:
    """
    Fetches the channel list, caches it and swaps it into memory.

    When a device and tuner pool are given, the device's tuner count is read
    again afterwards and the pool resized to match.
    """

    def __init__(
        self,
        cloud: TabloCloudClient,
        record: CredentialRecord,
        lineup: ChannelLineup,
        lineup_file: Path,
        device: Optional[TabloDeviceClient] = None,
        tuner_pool: Optional[TunerPool] = None,
    ):
        self.cloud = cloud
        self.record = record
        self.lineup = lineup
        self.lineup_file = Path(lineup_file)
        self.device = device
        self.tuner_pool = tuner_pool

    async def refresh(self) -> None:
        logger.info("Requesting a new channel lineup file!")
        raw = await self.cloud.get_channels(self.record)
        await asyncio.to_thread(save_cache, self.lineup_file, raw)
        self.lineup.replace(parse_lineup(raw, self.record.device.url))
        logger.info("Successfully created new channel lineup file!")
        await self._update_tuners()

    async def _update_tuners(self) -> None:
        if self.device is None or self.tuner_pool is None:
            return
        try:
            info = await self.device.server_info()
        except DeviceError as e:
            logger.warning(f"Could not read tuner count from device: {e}")
            return

        tuners = (info.get("model") or {}).get("tuners")
        if not isinstance(tuners, int) or tuners <= 0 or tuners == self.tuner_pool.capacity:
            return
        logger.info(f"Device now reports {tuners} tuners (was {self.tuner_pool.capacity})")
        self.tuner_pool.resize(tuners)


class GuideRefresher:
    """Keeps the airing cache current and rebuilds ``guide.xml``."""

    def __init__(
        self,
        cloud: TabloCloudClient,
        record: CredentialRecord,
        lineup: ChannelLineup,
        cache: GuideCache,
        guide_file: Path,
        days: int,
        pseudotv_file: Optional[Path] = None,
        days_source: Callable[[int], list[str]] = guide_days,
    ):
        self.cloud = cloud
        self.record = record
        self.lineup = lineup
        self.cache = cache
        self.guide_file = Path(guide_file)
        self.days = days
        self.pseudotv_file = pseudotv_file
        self._days_source = days_source

    async def _fetch_missing(self, days: list[str]) -> list[str]:
        needed = []
        channels = self.lineup.entries()
        logger.info(f"Prepping {len(channels) * len(days)} needed guide files.")

        for entry in channels:
            for day in days:
                needed.append(cache_file_name(entry.identifier, day))
                if self.cache.has(entry.identifier, day):
                    continue
                try:
                    airings = await self.cloud.get_airings(self.record, entry.identifier, day)
                except CloudError as e:
                    logger.error(f"Could not fetch guide for {entry.identifier} on {day}: {e}")
                    continue
                await asyncio.to_thread(self.cache.write, entry.identifier, day, airings)
        return needed

    def _read_airings(self, days: list[str]) -> dict[str, list[dict]]:
        airings_by_channel: dict[str, list[dict]] = {}
        for entry in self.lineup.entries():
            airings: list[dict] = []
            for day in days:
                if self.cache.has(entry.identifier, day):
                    airings.extend(self.cache.read(entry.identifier, day))
            airings_by_channel[entry.identifier] = airings
        return airings_by_channel

    def _read_pseudotv(self) -> Optional[str]:
        if self.pseudotv_file is None or not self.pseudotv_file.is_file():
            return None
        return strip_xmltv_wrapper(self.pseudotv_file.read_text(encoding="utf-8"))

    async def refresh(self) -> None:
        days = self._days_source(self.days)
        needed = await self._fetch_missing(days)
        await asyncio.to_thread(self.cache.prune, needed)

        airings_by_channel = await asyncio.to_thread(self._read_airings, days)
        extra_xml = await asyncio.to_thread(self._read_pseudotv)
        document = build_xmltv(self.lineup.entries(), airings_by_channel, extra_xml=extra_xml)

        await asyncio.to_thread(atomic_write_text, self.guide_file, document)
        logger.info("Finished creating guide data.")
