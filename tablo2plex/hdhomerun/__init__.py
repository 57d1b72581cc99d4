"""HDHomeRun emulation endpoints."""

from tablo2plex.hdhomerun.api import guide_router, hdhomerun_router

__all__ = ["guide_router", "hdhomerun_router"]
