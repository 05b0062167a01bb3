"""Base feed source interface for the headlines digest."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from headlines.storage.models import FeedGroup, FeedItem


class FeedSource(ABC):
    """One configured feed and how its entries appear in the digest.

    Subclasses provide the feed URL and the group label. ``lang`` is the
    feed's native language; ``translate_field`` names the FeedItem field that
    is translated when the digest language differs (None: never translate).
    """

    section: str = ""
    translate_field: Optional[str] = "title"
    default_lang: Optional[str] = "en"

    def __init__(self, config: Dict[str, Any]) -> None:
        self.config = config
        self.id: str = config.get("id", "")
        self.lang: Optional[str] = config.get("lang", self.default_lang)

    @property
    @abstractmethod
    def url(self) -> str:
        """Feed endpoint."""
        ...

    def label(self, lang: str, feed_title: str) -> str:
        """Heading for the group in a digest written in *lang*."""
        title = self.config.get("title")
        if isinstance(title, dict):
            return title.get(lang) or next(iter(title.values()), self.id)
        return title or feed_title or self.id

    def needs_translation(self, target_lang: str) -> bool:
        return bool(self.translate_field and self.lang and self.lang != target_lang)

    def make_group(self, lang: str, feed_title: str, items: List[FeedItem]) -> FeedGroup:
        return FeedGroup(label=self.label(lang, feed_title), items=list(items))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.id!r})"
