"""Feed source kinds: announcements, video playlists, blogs, and release feeds."""

from __future__ import annotations

from typing import List

from headlines.connectors.base import FeedSource
from headlines.storage.models import (
    SECTION_BLOGS,
    SECTION_PROJECTS,
    SECTION_VIDEO,
    FeedGroup,
    FeedItem,
)

SECTION_ANNOUNCEMENTS = "announcements"


class AnnouncementSource(FeedSource):
    """The "What's New" feed. Summaries are translated and categories become tags."""

    section = SECTION_ANNOUNCEMENTS
    translate_field = "summary"

    @property
    def url(self) -> str:
        return self.config.get("url") or "https://aws.amazon.com/new/feed/"


class PlaylistSource(FeedSource):
    """A YouTube playlist, labelled per language."""

    section = SECTION_VIDEO
    default_lang = "ja"

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/feeds/videos.xml?playlist_id={self.config['playlist_id']}"


class LocalizedBlogSource(FeedSource):
    """A category of the Japanese blog, labelled per language."""

    section = SECTION_BLOGS
    default_lang = "ja"

    @property
    def url(self) -> str:
        return f"https://aws.amazon.com/jp/blogs/{self.config['category']}/feed/"


class BlogSource(FeedSource):
    """A category of the global blog; the label is the feed's own title."""

    section = SECTION_BLOGS

    @property
    def url(self) -> str:
        return f"https://aws.amazon.com/blogs/{self.config['category']}/feed/"

    def label(self, lang: str, feed_title: str) -> str:
        return feed_title or self.id


class ReleaseSource(FeedSource):
    """GitHub releases of one repository. Never translated; the group links to the repo."""

    section = SECTION_PROJECTS
    translate_field = None
    default_lang = None

    @property
    def repo_url(self) -> str:
        return f"https://github.com/{self.config['repo']}/"

    @property
    def url(self) -> str:
        return f"https://github.com/{self.config['repo']}/releases.atom"

    def label(self, lang: str, feed_title: str) -> str:
        return self.config.get("title") or self.config["repo"]

    def make_group(self, lang: str, feed_title: str, items: List[FeedItem]) -> FeedGroup:
        return FeedGroup(label=self.label(lang, feed_title), items=list(items), link=self.repo_url)
