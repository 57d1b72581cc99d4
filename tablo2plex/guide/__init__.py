"""XMLTV guide generation."""

from tablo2plex.guide.cache import GuideCache
from tablo2plex.guide.xmltv import build_xmltv
from tablo2plex.utils.dates import guide_days

__all__ = ["GuideCache", "build_xmltv", "guide_days"]
