"""XMLTV document assembly from the lineup and cached airings"""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional
from xml.sax.saxutils import escape as xml_escape

from tablo2plex.lineup import LineupEntry
from tablo2plex.utils.dates import parse_iso8601, utc_now, xmltv_date

logger = logging.getLogger(__name__)

GENERATOR_NAME = "Tablo 4th Gen Proxy"

_NEWLINES = re.compile(r"[\n\r]+")


def _text(value: Any) -> str:
    return xml_escape(_NEWLINES.sub(" ", str(value)))


def _attr(value: Any) -> str:
    return xml_escape(str(value), {'"': "&quot;"})


def episode_number(airing: dict[str, Any]) -> Optional[str]:
    """``xmltv_ns`` episode number for episodic airings, else None."""
    if airing.get("kind") != "episode":
        return None
    episode = airing.get("episode") or {}
    number = episode.get("episodeNumber")
    if number is None:
        return None

    season = 1
    season_info = episode.get("season") or {}
    if season_info.get("kind") != "none" and season_info.get("number") is not None:
        season = int(season_info["number"])
    return f"{season - 1} . {int(number) - 1} . 0/1"


def _rating(airing: dict[str, Any]) -> Optional[str]:
    kind = airing.get("kind")
    if kind == "episode":
        return (airing.get("episode") or {}).get("rating")
    if kind == "movieAiring":
        return (airing.get("movieAiring") or {}).get("filmRating")
    return None


def channel_xml(entry: LineupEntry) -> str:
    xml_parts = [
        f'  <channel id="{_attr(entry.guide_number)}">',
        f'    <display-name lang="en">{_text(entry.guide_name)}</display-name>',
    ]
    icon_url = entry.icon_url
    if icon_url:
        xml_parts.append(f'    <icon src="{_attr(icon_url)}" />')
    xml_parts.append("  </channel>")
    return "\n".join(xml_parts)


def programme_xml(channel_id: str, airing: dict[str, Any], now: datetime) -> Optional[str]:
    """
    Build one ``<programme>`` element.

    Returns None for airings that have already ended or lack a start time.
    """
    try:
        start = parse_iso8601(airing["datetime"])
    except (KeyError, TypeError, ValueError):
        logger.debug(f"Skipping airing without a usable start: {airing.get('identifier')}")
        return None
    stop = start + timedelta(seconds=airing.get("duration") or 0)
    if stop <= now:
        return None

    xml_parts = [
        f'  <programme start="{_attr(xmltv_date(start))}" stop="{_attr(xmltv_date(stop))}" '
        f'channel="{_attr(channel_id)}">',
    ]

    episode_num = episode_number(airing)
    if episode_num is not None:
        show_title = (airing.get("show") or {}).get("title") or airing.get("title", "")
        xml_parts.append(f'    <title lang="en">{_text(show_title)}</title>')
        xml_parts.append("    <previously-shown/>")
        xml_parts.append(f'    <sub-title lang="en">{_text(airing.get("title", ""))}</sub-title>')
        xml_parts.append(f'    <episode-num system="xmltv_ns">{episode_num}</episode-num>')
    else:
        xml_parts.append(f'    <title lang="en">{_text(airing.get("title", ""))}</title>')

    images = airing.get("images") or []
    if images and images[0].get("url"):
        xml_parts.append(f'    <icon src="{_attr(images[0]["url"])}" />')

    if airing.get("description") is not None:
        xml_parts.append(f'    <desc lang="en">{_text(airing["description"])}</desc>')

    rating = _rating(airing)
    if rating is not None:
        xml_parts.append('    <rating system="MPAA">')
        xml_parts.append(f"      <value>{_text(rating)}</value>")
        xml_parts.append("    </rating>")

    xml_parts.append("  </programme>")
    return "\n".join(xml_parts)


def strip_xmltv_wrapper(document: str) -> str:
    """Body of another XMLTV file without its declaration, ``<tv>`` line and closing line."""
    return "\n".join(document.split("\n")[2:-1])


def build_xmltv(
    channels: Iterable[LineupEntry],
    airings_by_channel: dict[str, list[dict[str, Any]]],
    now: Optional[datetime] = None,
    extra_xml: Optional[str] = None,
) -> str:
    """
    Generate the XMLTV guide.

    Args:
        channels: Lineup entries, in output order.
        airings_by_channel: Airings keyed by channel identifier.
        now: Airings that ended before this moment are left out.
        extra_xml: Pre-rendered elements appended before ``</tv>``.

    Returns:
        XMLTV XML string
    """
    now = now or utc_now()
    xml_parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<tv generator-info-name="{GENERATOR_NAME}">',
    ]

    for entry in channels:
        xml_parts.append(channel_xml(entry))
        airings = airings_by_channel.get(entry.identifier, [])
        logger.info(f"Creating {entry.name} - {entry.guide_number} guide data.")
        for airing in airings:
            programme = programme_xml(entry.guide_number, airing, now)
            if programme:
                xml_parts.append(programme)

    if extra_xml:
        xml_parts.append(extra_xml)

    xml_parts.append("</tv>")
    return "\n".join(xml_parts)
