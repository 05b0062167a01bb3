"""Configuration loading: config.yaml plus environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_PRODUCT_TAG_PREFIX = "general:products/"
DEFAULT_TRANSLATE_CONCURRENCY = 5
DEFAULT_TRANSLATE_TIMEOUT = 10.0
DEFAULT_MAX_CONCURRENT = 4
DEFAULT_TIMEOUT = 20.0


@dataclass(frozen=True)
class DigestConfig:
    """Everything a digest request needs besides the request itself.

    Built once (from YAML or a dict) and handed to the assembler and pipeline,
    so two requests with the same config and inputs behave identically.
    """

    primary_language: str = "ja"
    secondary_language: str = "en"
    storage_type: str = "s3"
    bucket: str = ""
    content_path: str = "hugo/content"
    local_dir: str = "data/site"
    translation_provider: str = "aws"
    translate_concurrency: int = DEFAULT_TRANSLATE_CONCURRENCY
    translate_timeout: float = DEFAULT_TRANSLATE_TIMEOUT
    max_concurrent_sources: int = DEFAULT_MAX_CONCURRENT
    request_timeout: float = DEFAULT_TIMEOUT
    categories: tuple = ("news",)
    series: tuple = ("daily-aws",)
    descriptions: Dict[str, str] = field(default_factory=dict)
    product_tag_prefix: str = DEFAULT_PRODUCT_TAG_PREFIX
    sources: tuple = ()

    @property
    def languages(self) -> tuple:
        return (self.primary_language, self.secondary_language)

    def is_primary(self, lang: str) -> bool:
        return lang == self.primary_language

    def description_for(self, lang: str) -> str:
        return self.descriptions.get(lang, "")

    @classmethod
    def from_dict(
        cls,
        raw: Optional[Mapping[str, Any]],
        environ: Optional[Mapping[str, str]] = None,
    ) -> DigestConfig:
        """Build a config from a parsed config.yaml mapping.

        ``BUCKET_NAME`` and ``HUGO_CONTENT_PATH`` in *environ* take precedence
        over the ``storage`` section.
        """
        raw = raw or {}
        env = os.environ if environ is None else environ

        langs = raw.get("languages", {})
        storage = raw.get("storage", {})
        translation = raw.get("translation", {})
        perf = raw.get("performance", {})
        article = raw.get("article", {})

        config = cls(
            primary_language=langs.get("primary", "ja"),
            secondary_language=langs.get("secondary", "en"),
            storage_type=(storage.get("type") or "s3").lower().strip(),
            bucket=env.get("BUCKET_NAME") or storage.get("bucket", ""),
            content_path=env.get("HUGO_CONTENT_PATH") or storage.get("content_path", "hugo/content"),
            local_dir=storage.get("local_dir", "data/site"),
            translation_provider=translation.get("provider", "aws"),
            translate_concurrency=int(translation.get("concurrent_requests", DEFAULT_TRANSLATE_CONCURRENCY)),
            translate_timeout=float(translation.get("timeout_seconds", DEFAULT_TRANSLATE_TIMEOUT)),
            max_concurrent_sources=int(perf.get("max_concurrent_sources", DEFAULT_MAX_CONCURRENT)),
            request_timeout=float(perf.get("request_timeout_seconds", DEFAULT_TIMEOUT)),
            categories=tuple(article.get("categories", ["news"])),
            series=tuple(article.get("series", ["daily-aws"])),
            descriptions=dict(article.get("description", {})),
            product_tag_prefix=article.get("product_tag_prefix", DEFAULT_PRODUCT_TAG_PREFIX),
            sources=tuple(raw.get("sources", [])),
        )
        if config.primary_language == config.secondary_language:
            raise ValueError("primary and secondary languages must differ")
        return config


def load_config(path: str = DEFAULT_CONFIG_PATH) -> DigestConfig:
    """Load and validate config.yaml."""
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    config = DigestConfig.from_dict(raw)
    logger.debug("Loaded %d sources from %s", len(config.sources), path)
    return config
