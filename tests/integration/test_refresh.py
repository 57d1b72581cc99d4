"""
Integration tests for the lineup and guide refresh tasks.
"""

import json
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

from tablo2plex.credentials import CredentialRecord
from tablo2plex.guide.cache import GuideCache
from tablo2plex.lineup import ChannelLineup
from tablo2plex.streaming.session_manager import TunerPool
from tablo2plex.tablo.cloud import CloudError
from tablo2plex.tasks.refresh import GuideRefresher, LineupRefresher

from tests.fixtures.fakes import FakeCloud, FakeDevice
from tests.fixtures.sample_data import DEVICE_URL, sample_airing, sample_channels

DAYS = ["2030-05-01", "2030-05-02"]


@pytest.mark.integration
class TestLineupRefresher:
    """Tests for LineupRefresher."""

    @pytest.mark.asyncio
    async def test_refresh_writes_cache_and_swaps_lineup(self, temp_dir: Path, sample_record: CredentialRecord):
        lineup = ChannelLineup()
        lineup_file = temp_dir / "lineup.json"
        refresher = LineupRefresher(FakeCloud(channels=sample_channels()), sample_record, lineup, lineup_file)

        await refresher.refresh()

        assert len(lineup) == 3
        assert lineup.get("S122912_503_01").source_url == f"{DEVICE_URL}/guide/channels/S122912_503_01/watch"
        assert json.loads(lineup_file.read_text()) == sample_channels()

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_lineup(
        self, temp_dir: Path, sample_record: CredentialRecord, sample_lineup: ChannelLineup
    ):
        cloud = FakeCloud()
        cloud.fail_channels = True
        lineup_file = temp_dir / "lineup.json"
        refresher = LineupRefresher(cloud, sample_record, sample_lineup, lineup_file)

        with pytest.raises(CloudError):
            await refresher.refresh()

        assert len(sample_lineup) == 3
        assert not lineup_file.exists()

    @pytest.mark.asyncio
    async def test_refresh_resizes_tuner_pool(self, temp_dir: Path, sample_record: CredentialRecord):
        """The device's current tuner count is applied after a refresh."""
        pool = TunerPool(2)
        refresher = LineupRefresher(
            FakeCloud(channels=sample_channels()),
            sample_record,
            ChannelLineup(),
            temp_dir / "lineup.json",
            device=FakeDevice(tuners=4),
            tuner_pool=pool,
        )

        await refresher.refresh()

        assert pool.capacity == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("device", [FakeDevice(tuners=None), FakeDevice(fail=True)])
    async def test_tuner_count_unavailable_keeps_pool(
        self, temp_dir: Path, sample_record: CredentialRecord, device: FakeDevice
    ):
        pool = TunerPool(2)
        lineup = ChannelLineup()
        refresher = LineupRefresher(
            FakeCloud(channels=sample_channels()),
            sample_record,
            lineup,
            temp_dir / "lineup.json",
            device=device,
            tuner_pool=pool,
        )

        await refresher.refresh()

        assert pool.capacity == 2
        assert len(lineup) == 3

    @pytest.mark.asyncio
    async def test_entries_without_identifier_skipped(self, temp_dir: Path, sample_record: CredentialRecord):
        lineup = ChannelLineup()
        channels = [{"kind": "ota", "name": "No id"}] + sample_channels()
        refresher = LineupRefresher(FakeCloud(channels=channels), sample_record, lineup, temp_dir / "lineup.json")

        await refresher.refresh()

        assert len(lineup) == 3


@pytest.mark.integration
class TestGuideRefresher:
    """Tests for GuideRefresher."""

    def make_refresher(self, temp_dir, record, lineup, cloud, pseudotv_file=None):
        return GuideRefresher(
            cloud,
            record,
            lineup,
            GuideCache(temp_dir / "tempGuide"),
            temp_dir / "guide.xml",
            days=len(DAYS),
            pseudotv_file=pseudotv_file,
            days_source=lambda days: DAYS[:days],
        )

    @pytest.mark.asyncio
    async def test_builds_guide(self, temp_dir: Path, sample_record: CredentialRecord, sample_lineup: ChannelLineup):
        cloud = FakeCloud(airings={("S122912_503_01", "2030-05-01"): [sample_airing()]})
        refresher = self.make_refresher(temp_dir, sample_record, sample_lineup, cloud)

        await refresher.refresh()

        assert len(cloud.airing_calls) == 6
        root = ET.fromstring((temp_dir / "guide.xml").read_bytes())
        assert [c.get("id") for c in root.findall("channel")] == ["4.1", "5.1", "1000.1"]
        programmes = root.findall("programme")
        assert len(programmes) == 1
        assert programmes[0].get("channel") == "4.1"
        assert len(list((temp_dir / "tempGuide").iterdir())) == 6

    @pytest.mark.asyncio
    async def test_cached_days_not_refetched(
        self, temp_dir: Path, sample_record: CredentialRecord, sample_lineup: ChannelLineup
    ):
        cache = GuideCache(temp_dir / "tempGuide")
        cache.write("S122912_503_01", "2030-05-01", [sample_airing(title="Cached")])
        cloud = FakeCloud()
        refresher = self.make_refresher(temp_dir, sample_record, sample_lineup, cloud)

        await refresher.refresh()

        assert ("S122912_503_01", "2030-05-01") not in cloud.airing_calls
        assert len(cloud.airing_calls) == 5
        assert "Cached" in (temp_dir / "guide.xml").read_text()

    @pytest.mark.asyncio
    async def test_stale_files_pruned(self, temp_dir: Path, sample_record: CredentialRecord, sample_lineup: ChannelLineup):
        cache = GuideCache(temp_dir / "tempGuide")
        cache.write("S122912_503_01", "2030-04-30", [])
        cache.write("GONE_CHANNEL", "2030-05-01", [])
        refresher = self.make_refresher(temp_dir, sample_record, sample_lineup, FakeCloud())

        await refresher.refresh()

        assert not cache.has("S122912_503_01", "2030-04-30")
        assert not cache.has("GONE_CHANNEL", "2030-05-01")
        assert cache.has("S122912_503_01", "2030-05-01")

    @pytest.mark.asyncio
    async def test_failed_day_skipped_and_retried(
        self, temp_dir: Path, sample_record: CredentialRecord, sample_lineup: ChannelLineup
    ):
        """A day that cannot be fetched is left out and fetched again next time."""
        cloud = FakeCloud(failing=[("S122913_503_02", "2030-05-02")])
        refresher = self.make_refresher(temp_dir, sample_record, sample_lineup, cloud)

        await refresher.refresh()

        cache = GuideCache(temp_dir / "tempGuide")
        assert not cache.has("S122913_503_02", "2030-05-02")
        assert (temp_dir / "guide.xml").exists()

        cloud.failing.clear()
        cloud.airing_calls.clear()
        await refresher.refresh()

        assert cloud.airing_calls == [("S122913_503_02", "2030-05-02")]

    @pytest.mark.asyncio
    async def test_pseudotv_guide_included(
        self, temp_dir: Path, sample_record: CredentialRecord, sample_lineup: ChannelLineup
    ):
        pseudotv_file = temp_dir / ".pseudotv" / "xmltv.xml"
        pseudotv_file.parent.mkdir()
        pseudotv_file.write_text("\n".join([
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<tv generator-info-name="PseudoTV">',
            '  <channel id="pseudo.7"><display-name>Retro</display-name></channel>',
            "</tv>",
        ]))
        refresher = self.make_refresher(temp_dir, sample_record, sample_lineup, FakeCloud(), pseudotv_file)

        await refresher.refresh()

        root = ET.fromstring((temp_dir / "guide.xml").read_bytes())
        assert root.findall("channel")[-1].get("id") == "pseudo.7"

    @pytest.mark.asyncio
    async def test_missing_pseudotv_guide_ignored(
        self, temp_dir: Path, sample_record: CredentialRecord, sample_lineup: ChannelLineup
    ):
        refresher = self.make_refresher(
            temp_dir, sample_record, sample_lineup, FakeCloud(), temp_dir / ".pseudotv" / "xmltv.xml"
        )

        await refresher.refresh()

        root = ET.fromstring((temp_dir / "guide.xml").read_bytes())
        assert len(root.findall("channel")) == 3
