"""RSS/Atom retrieval with aiohttp + feedparser, filtered to a publication window."""

from __future__ import annotations

import asyncio
import logging
from calendar import timegm
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

import aiohttp
import feedparser
from bs4 import BeautifulSoup
from dateutil.parser import parse as parse_date

from headlines.storage.models import FeedItem, PublicationWindow

logger = logging.getLogger(__name__)

# Browser-like UA; some feed hosts reject the aiohttp default
DEFAULT_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
DEFAULT_TIMEOUT = 20.0


@dataclass
class FeedResult:
    """Feed title plus the entries that fell inside the window."""

    title: str
    items: List[FeedItem] = field(default_factory=list)


def _published_at(entry: Any) -> Optional[datetime]:
    """Publish (or update) time of a feedparser entry as an aware UTC datetime."""
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            return datetime.fromtimestamp(timegm(parsed), tz=timezone.utc)
    raw = entry.get("published") or entry.get("updated")
    if not raw:
        return None
    try:
        dt = parse_date(str(raw))
    except (ValueError, OverflowError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _snippet(html: str) -> str:
    """Plain-text snippet of an HTML summary."""
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)


def parse_entry(entry: Any) -> Optional[FeedItem]:
    """Convert a feedparser entry to a FeedItem; None when it has no link or date."""
    link = entry.get("link") or (entry.get("links") or [{}])[0].get("href")
    if not link:
        return None
    published = _published_at(entry)
    if published is None:
        logger.debug("Skipping entry without a publish date: %s", link)
        return None
    summary = entry.get("summary") or entry.get("description")
    categories = tuple(t.get("term") for t in entry.get("tags", []) if t.get("term"))
    return FeedItem(
        title=entry.get("title") or "Untitled",
        link=link,
        published_at=published,
        summary=_snippet(summary) if summary else None,
        categories=categories,
    )


def parse_feed(content: bytes) -> FeedResult:
    """Parse raw feed bytes. Raises the parser's exception when nothing usable came back."""
    feed = feedparser.parse(content)
    entries = getattr(feed, "entries", [])
    # Minor bozo with entries is OK
    if getattr(feed, "bozo", False) and feed.get("bozo_exception") and not entries:
        raise feed.bozo_exception
    items: List[FeedItem] = []
    for entry in entries:
        item = parse_entry(entry)
        if item:
            items.append(item)
    return FeedResult(title=feed.feed.get("title", ""), items=items)


class FeedFetcher:
    """Fetch feeds over HTTP. Each call is bounded by ``timeout`` seconds."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent

    async def fetch(self, url: str) -> FeedResult:
        """Download and parse *url*. Raises on HTTP, network, timeout, or parse errors."""
        headers = {"User-Agent": self.user_agent}
        async with aiohttp.ClientSession() as session:
            async with session.get(
                url, headers=headers, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as resp:
                resp.raise_for_status()
                content = await resp.read()
        return parse_feed(content)

    async def fetch_window(self, url: str, window: PublicationWindow) -> FeedResult:
        """Fetch *url* and keep entries with ``oldest < published_at <= latest``.

        Never raises for an unavailable source: logs and returns an empty
        result titled ``"error"``.
        """
        try:
            feed = await asyncio.wait_for(self.fetch(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error("Feed %s timed out after %ss", url, self.timeout)
            return FeedResult(title="error")
        except Exception as e:
            logger.error("Feed %s unavailable: %s", url, e)
            return FeedResult(title="error")

        items = [item for item in feed.items if window.contains(item.published_at)]
        logger.debug("Feed %s: %d entries, %d in window", url, len(feed.items), len(items))
        return FeedResult(title=feed.title, items=items)
