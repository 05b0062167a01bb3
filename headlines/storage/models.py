"""Data models shared by the connectors, digest pipeline, and renderer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


class DigestInvariantError(RuntimeError):
    """A digest broke one of its own contracts (window ordering, item outside the window).

    Raised instead of publishing; indicates a logic defect rather than an
    unavailable source.
    """


@dataclass(frozen=True)
class DigestRequest:
    """One trigger invocation: build the digest for *language* at *execution_time*."""

    execution_time: datetime
    language: str
    is_draft: bool = False


@dataclass(frozen=True)
class PublicationWindow:
    """Half-open interval ``(oldest, latest]`` used to filter feed items."""

    oldest: datetime
    latest: datetime
    display_text: str

    def contains(self, moment: datetime) -> bool:
        return self.oldest < moment <= self.latest

    @property
    def article_title(self) -> str:
        """Article title: the UTC calendar date of the window start."""
        return self.oldest.date().isoformat()

    @property
    def url_path(self) -> str:
        return f"headlines/{self.article_title.replace('-', '')}"

    def object_key(self, content_path: str, lang: str) -> str:
        return f"{content_path}/{self.url_path}/index.{lang}.md"


@dataclass(frozen=True)
class FeedItem:
    """A single feed entry normalized across source kinds."""

    title: str
    link: str
    published_at: datetime
    summary: Optional[str] = None
    categories: Tuple[str, ...] = ()


@dataclass
class FeedGroup:
    """Items from one named source, in source feed order.

    ``link`` carries the canonical project URL for release feeds.
    """

    label: str
    items: List[FeedItem] = field(default_factory=list)
    link: Optional[str] = None


@dataclass(frozen=True)
class FrontMatter:
    """Hugo front matter for one digest article."""

    draft: bool
    is_cjk: bool
    title: str
    description: str
    date: str
    lastmod: str
    categories: Tuple[str, ...] = ()
    series: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "draft": self.draft,
            "isCJKLanguage": self.is_cjk,
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "lastmod": self.lastmod,
            "categories": list(self.categories),
            "series": list(self.series),
            "tags": list(self.tags),
        }


SECTION_VIDEO = "video"
SECTION_BLOGS = "blogs"
SECTION_PROJECTS = "projects"
SECTION_ORDER = (SECTION_VIDEO, SECTION_BLOGS, SECTION_PROJECTS)


@dataclass
class DigestDocument:
    """The assembled digest, ready to render."""

    language: str
    front_matter: FrontMatter
    window: PublicationWindow
    announcements: List[FeedItem] = field(default_factory=list)
    sections: List[Tuple[str, List[FeedGroup]]] = field(default_factory=list)

    def iter_items(self):
        yield from self.announcements
        for _, groups in self.sections:
            for group in groups:
                yield from group.items

    def section(self, name: str) -> List[FeedGroup]:
        for label, groups in self.sections:
            if label == name:
                return groups
        return []


@dataclass(frozen=True)
class ThumbnailPayload:
    """Summary handed to the thumbnail generator after publishing."""

    lang: str
    title: str
    description: str
    pub_date_range: str
    url_path: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "lang": self.lang,
            "title": self.title,
            "description": self.description,
            "pubDateRange": self.pub_date_range,
            "urlPath": self.url_path,
        }


@dataclass
class PublishSummary:
    """Aggregate result from running several language requests."""

    payloads: List[ThumbnailPayload] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.errors
