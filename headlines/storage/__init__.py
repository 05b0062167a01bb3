"""Storage layer: shared data models and the article object store."""

from headlines.storage.models import (
    DigestDocument,
    DigestInvariantError,
    DigestRequest,
    FeedGroup,
    FeedItem,
    FrontMatter,
    PublicationWindow,
    ThumbnailPayload,
)
from headlines.storage.object_store import LocalObjectStore, ObjectStore, S3ObjectStore, build_store

__all__ = [
    "DigestDocument",
    "DigestInvariantError",
    "DigestRequest",
    "FeedGroup",
    "FeedItem",
    "FrontMatter",
    "PublicationWindow",
    "ThumbnailPayload",
    "ObjectStore",
    "S3ObjectStore",
    "LocalObjectStore",
    "build_store",
]
