"""Object storage for rendered articles: S3 in production, local files for development."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)

MARKDOWN_CONTENT_TYPE = "text/markdown; charset=UTF-8"


class ObjectStore(Protocol):
    """Narrow storage contract used by the digest pipeline."""

    async def get_metadata(self, key: str, name: str) -> Optional[str]:
        """Return one user-metadata value of the object at *key*, or None."""
        ...

    async def put(
        self,
        key: str,
        body: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None:
        ...


class S3ObjectStore:
    """Bucket-backed store. boto3 calls are blocking and run in the default executor."""

    def __init__(self, bucket: str, client: Any = None) -> None:
        if not bucket:
            raise ValueError("S3ObjectStore requires a bucket name (set BUCKET_NAME)")
        self.bucket = bucket
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("s3")
        return self._client

    async def get_metadata(self, key: str, name: str) -> Optional[str]:
        def _head() -> Optional[str]:
            try:
                head = self.client.head_object(Bucket=self.bucket, Key=key)
            except (ClientError, BotoCoreError) as e:
                logger.info("No prior metadata for s3://%s/%s: %s", self.bucket, key, e)
                return None
            return (head.get("Metadata") or {}).get(name)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _head)

    async def put(
        self,
        key: str,
        body: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None:
        def _put() -> None:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                Metadata=metadata,
            )

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _put)
        logger.info("Uploaded s3://%s/%s (%d bytes)", self.bucket, key, len(body))


class LocalObjectStore:
    """Write objects under a base directory with a ``.meta.json`` sidecar per object."""

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)

    def _paths(self, key: str) -> tuple:
        path = self.base_dir / key
        return path, path.with_name(path.name + ".meta.json")

    async def get_metadata(self, key: str, name: str) -> Optional[str]:
        _, meta_path = self._paths(key)
        if not meta_path.exists():
            return None
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable metadata for %s: %s", key, e)
            return None
        return meta.get("metadata", {}).get(name)

    async def put(
        self,
        key: str,
        body: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None:
        path, meta_path = self._paths(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(body)
        meta_path.write_text(
            json.dumps({"content_type": content_type, "metadata": metadata}, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Wrote %s (%d bytes)", path, len(body))


def build_store(storage_type: str, bucket: str = "", local_dir: str = "data/site") -> ObjectStore:
    """Return a store for the configured storage type (s3 | local)."""
    if storage_type == "local":
        return LocalObjectStore(local_dir)
    if storage_type == "s3":
        return S3ObjectStore(bucket)
    raise ValueError(f"Unknown storage type: {storage_type!r}")
