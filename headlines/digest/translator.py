"""Machine translation of feed text with bounded concurrency (Amazon Translate, mock)."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, List, Optional, Sequence

import boto3

from headlines.storage.models import FeedItem

logger = logging.getLogger(__name__)

MAX_CONCURRENT_TRANSLATIONS = 5


class Translator:
    """Translate batches of text; a failed call keeps the original text."""

    def __init__(
        self,
        provider: str = "aws",
        concurrency: int = MAX_CONCURRENT_TRANSLATIONS,
        timeout: float = 10.0,
        client: Any = None,
    ) -> None:
        self.provider = provider
        self.concurrency = max(1, min(concurrency, MAX_CONCURRENT_TRANSLATIONS))
        self.timeout = timeout
        self._client = client

    async def translate_batch(
        self,
        texts: Sequence[str],
        source_lang: str,
        target_lang: str,
    ) -> List[str]:
        """Translate *texts*; ``result[i]`` is always the translation of (or equal to) ``texts[i]``."""
        if source_lang == target_lang or not texts:
            return list(texts)

        sem = asyncio.Semaphore(self.concurrency)

        async def _one(text: str) -> str:
            if not text:
                return text
            async with sem:
                return await asyncio.wait_for(
                    self.translate(text, source_lang, target_lang),
                    timeout=self.timeout,
                )

        results = await asyncio.gather(*[_one(t) for t in texts], return_exceptions=True)

        out: List[str] = []
        for text, result in zip(texts, results):
            if isinstance(result, BaseException):
                logger.warning("Translation %s->%s failed, keeping original: %r", source_lang, target_lang, result)
                out.append(text)
            else:
                out.append(result or text)
        return out

    async def translate_items(
        self,
        items: Sequence[FeedItem],
        field: str,
        source_lang: str,
        target_lang: str,
    ) -> List[FeedItem]:
        """Return new items with *field* translated. Items without the field are unchanged."""
        if source_lang == target_lang:
            return list(items)
        texts = [getattr(item, field) or "" for item in items]
        translated = await self.translate_batch(texts, source_lang, target_lang)
        return [
            dataclasses.replace(item, **{field: text}) if getattr(item, field) else item
            for item, text in zip(items, translated)
        ]

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        """Dispatch one call to the configured provider."""
        if self.provider == "aws":
            return await self._call_aws(text, source_lang, target_lang)
        elif self.provider == "mock":
            return self._mock_translation(text, target_lang)
        else:
            raise ValueError(f"Unknown translation provider {self.provider!r}")

    # ------------------------------------------------------------------
    # Provider implementations
    # ------------------------------------------------------------------

    async def _call_aws(self, text: str, source_lang: str, target_lang: str) -> str:
        if self._client is None:
            self._client = boto3.client("translate")
        client = self._client

        def _translate() -> Optional[str]:
            resp = client.translate_text(
                Text=text,
                SourceLanguageCode=source_lang,
                TargetLanguageCode=target_lang,
            )
            return resp.get("TranslatedText")

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _translate) or text

    @staticmethod
    def _mock_translation(text: str, target_lang: str) -> str:
        """Deterministic stand-in for local runs (no API calls)."""
        return f"[{target_lang}] {text}"
