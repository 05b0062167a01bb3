"""Digest pipeline: assemble, render, publish, and hand off the thumbnail payload.

One ``run`` call is one trigger invocation for one language. ``run_languages``
runs both configured languages as independent concurrent requests.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Iterable, Optional, Union

from headlines.config import DigestConfig
from headlines.connectors.factory import build_sources
from headlines.connectors.rss import FeedFetcher
from headlines.digest.assembler import DigestAssembler
from headlines.digest.renderer import object_metadata, render_document
from headlines.digest.translator import Translator
from headlines.digest.window import parse_execution_time
from headlines.storage.models import DigestRequest, PublishSummary, ThumbnailPayload
from headlines.storage.object_store import MARKDOWN_CONTENT_TYPE, ObjectStore, build_store

logger = logging.getLogger(__name__)


class DigestPipeline:
    """Build and publish digests for the configured sources.

    Usage:
        pipeline = DigestPipeline.from_config(load_config())
        payload = await pipeline.run(DigestRequest(executed_at, "ja"))
    """

    def __init__(
        self,
        config: DigestConfig,
        store: ObjectStore,
        fetcher: Optional[FeedFetcher] = None,
        translator: Optional[Translator] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.fetcher = fetcher or FeedFetcher(timeout=config.request_timeout)
        self.translator = translator or Translator(
            provider=config.translation_provider,
            concurrency=config.translate_concurrency,
            timeout=config.translate_timeout,
        )
        self.assembler = DigestAssembler(
            config,
            build_sources(config.sources),
            self.fetcher,
            self.translator,
            store,
        )

    @classmethod
    def from_config(cls, config: DigestConfig) -> DigestPipeline:
        store = build_store(config.storage_type, bucket=config.bucket, local_dir=config.local_dir)
        return cls(config, store)

    async def run(self, request: DigestRequest) -> ThumbnailPayload:
        """Assemble, render and store one digest; return the thumbnail payload."""
        t0 = time.monotonic()
        document = await self.assembler.assemble(request)
        body = render_document(document).encode("utf-8")

        key = document.window.object_key(self.config.content_path, request.language)
        await self.store.put(key, body, MARKDOWN_CONTENT_TYPE, object_metadata(document.front_matter))

        payload = ThumbnailPayload(
            lang=request.language,
            title=document.front_matter.title,
            description=document.front_matter.description,
            pub_date_range=document.window.display_text,
            url_path=document.window.url_path,
        )
        logger.info(
            "Published %s (draft=%s) in %.1fs",
            key,
            request.is_draft,
            time.monotonic() - t0,
        )
        return payload

    async def run_languages(
        self,
        execution_time: Union[str, datetime],
        is_draft: bool = False,
        languages: Optional[Iterable[str]] = None,
    ) -> PublishSummary:
        """Run one independent request per language; one failing does not stop the others."""
        executed = parse_execution_time(execution_time)
        langs = list(languages or self.config.languages)
        results = await asyncio.gather(
            *[self.run(DigestRequest(executed, lang, is_draft)) for lang in langs],
            return_exceptions=True,
        )

        summary = PublishSummary()
        for lang, result in zip(langs, results):
            if isinstance(result, BaseException):
                logger.error("Digest for %s failed: %s", lang, result)
                summary.errors[lang] = str(result) or type(result).__name__
            else:
                summary.payloads.append(result)
        return summary
