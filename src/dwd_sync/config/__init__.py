"""Configuration: settings, feed descriptors and the station table."""

from dwd_sync.config.feeds import FEED_IDS, FEEDS, FeedDescriptor, IdentityKind, get_feed
from dwd_sync.config.settings import Settings, get_settings
from dwd_sync.config.stations import load_stations

__all__ = [
    "FEED_IDS",
    "FEEDS",
    "FeedDescriptor",
    "IdentityKind",
    "get_feed",
    "Settings",
    "get_settings",
    "load_stations",
]
