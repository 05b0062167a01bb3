"""Source factory: build the right FeedSource from a config.yaml entry."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from headlines.connectors.base import FeedSource
from headlines.connectors.sources import (
    AnnouncementSource,
    BlogSource,
    LocalizedBlogSource,
    PlaylistSource,
    ReleaseSource,
)

SOURCE_TYPES = {
    "announcements": AnnouncementSource,
    "playlist": PlaylistSource,
    "local_blog": LocalizedBlogSource,
    "blog": BlogSource,
    "release": ReleaseSource,
}


def build_source(config: Dict[str, Any]) -> FeedSource:
    """Return a source for the given config.

    config must have 'type' (one of SOURCE_TYPES) and type-specific fields
    (url, playlist_id, category, repo).
    """
    source_type = (config.get("type") or "").lower().strip()
    try:
        cls = SOURCE_TYPES[source_type]
    except KeyError:
        raise ValueError(f"Unknown source type {source_type!r} for source {config.get('id')!r}")
    return cls(config)


def build_sources(configs: Iterable[Dict[str, Any]]) -> List[FeedSource]:
    return [build_source(cfg) for cfg in configs]
