"""Scheduled refresh of the channel lineup and guide."""

from tablo2plex.tasks.refresh import GuideRefresher, LineupRefresher
from tablo2plex.tasks.scheduler import RefreshScheduler, SchedulerState

__all__ = [
    "GuideRefresher",
    "LineupRefresher",
    "RefreshScheduler",
    "SchedulerState",
]
