"""Product tags from announcement categories."""

from __future__ import annotations

from typing import Iterable, List

from headlines.config import DEFAULT_PRODUCT_TAG_PREFIX
from headlines.storage.models import FeedItem


def extract_tags(items: Iterable[FeedItem], prefix: str = DEFAULT_PRODUCT_TAG_PREFIX) -> List[str]:
    """Collect product tags from item categories, without duplicates.

    A category value may hold several comma-separated entries, e.g.
    ``"general:products/amazon-ec2,marketing:marchitecture/compute"``; only
    entries starting with *prefix* are kept, with the prefix removed.
    """
    seen = {}
    for item in items:
        for category in item.categories:
            for entry in category.split(","):
                entry = entry.strip()
                if entry.startswith(prefix):
                    tag = entry[len(prefix):]
                    if tag:
                        seen.setdefault(tag, None)
    return list(seen)


def merge_tags(*tag_lists: Iterable[str]) -> List[str]:
    """Union of tag lists, first occurrence wins."""
    return list(dict.fromkeys(tag for tags in tag_lists for tag in tags))
