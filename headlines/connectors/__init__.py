"""Feed sources for the headlines digest.

Supported types: announcements, playlist, local_blog, blog, release.
"""

from headlines.connectors.base import FeedSource
from headlines.connectors.factory import build_source, build_sources
from headlines.connectors.rss import FeedFetcher, FeedResult
from headlines.connectors.sources import (
    AnnouncementSource,
    BlogSource,
    LocalizedBlogSource,
    PlaylistSource,
    ReleaseSource,
)

__all__ = [
    "FeedSource",
    "build_source",
    "build_sources",
    "FeedFetcher",
    "FeedResult",
    "AnnouncementSource",
    "PlaylistSource",
    "LocalizedBlogSource",
    "BlogSource",
    "ReleaseSource",
]
