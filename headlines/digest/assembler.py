"""Digest assembler: window → fetch → translate → tags → document."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from headlines.config import DigestConfig
from headlines.connectors.base import FeedSource
from headlines.connectors.rss import FeedFetcher
from headlines.connectors.sources import SECTION_ANNOUNCEMENTS
from headlines.digest.tags import extract_tags, merge_tags
from headlines.digest.translator import Translator
from headlines.digest.window import compute_window, parse_execution_time, to_iso
from headlines.storage.models import (
    SECTION_ORDER,
    DigestDocument,
    DigestInvariantError,
    DigestRequest,
    FeedGroup,
    FrontMatter,
    PublicationWindow,
)
from headlines.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


class DigestAssembler:
    """Build one DigestDocument per request from the configured sources.

    Usage:
        assembler = DigestAssembler(config, build_sources(config.sources), fetcher, translator, store)
        document = await assembler.assemble(request)
    """

    def __init__(
        self,
        config: DigestConfig,
        sources: Sequence[FeedSource],
        fetcher: FeedFetcher,
        translator: Translator,
        store: Optional[ObjectStore] = None,
    ) -> None:
        self.config = config
        self.sources = list(sources)
        self.fetcher = fetcher
        self.translator = translator
        self.store = store

    async def assemble(self, request: DigestRequest) -> DigestDocument:
        """Run the full pipeline for one language.

        A source that cannot be fetched or translated only loses its own
        section; a broken window or an out-of-window item raises
        DigestInvariantError.
        """
        lang = request.language
        if lang not in self.config.languages:
            raise ValueError(f"Unsupported language {lang!r}; expected one of {self.config.languages}")

        window = compute_window(request.execution_time, primary=self.config.is_primary(lang))
        logger.info("Assembling %s digest for %s", lang, window.display_text)

        sem = asyncio.Semaphore(self.config.max_concurrent_sources)
        groups = await asyncio.gather(
            *[self._collect(source, window, lang, sem) for source in self.sources]
        )

        announcements = []
        announcement_groups: List[FeedGroup] = []
        by_section: Dict[str, List[FeedGroup]] = {name: [] for name in SECTION_ORDER}
        for source, group in zip(self.sources, groups):
            if group is None:
                continue
            if source.section == SECTION_ANNOUNCEMENTS:
                announcement_groups.append(group)
                announcements.extend(group.items)
            elif group.items:
                by_section.setdefault(source.section, []).append(group)
            else:
                logger.debug("Source %s has no items in window; section skipped", source.id)

        tags = merge_tags(
            *(extract_tags(g.items, self.config.product_tag_prefix) for g in announcement_groups)
        )
        object_key = window.object_key(self.config.content_path, lang)
        executed = to_iso(parse_execution_time(request.execution_time))

        front_matter = FrontMatter(
            draft=request.is_draft,
            is_cjk=self.config.is_primary(lang),
            title=window.article_title,
            description=self.config.description_for(lang),
            date=await self._prior_date(object_key) or executed,
            lastmod=executed,
            categories=self.config.categories,
            series=self.config.series,
            tags=tuple(tags),
        )

        document = DigestDocument(
            language=lang,
            front_matter=front_matter,
            window=window,
            announcements=announcements,
            sections=[(name, by_section[name]) for name in SECTION_ORDER if by_section.get(name)],
        )
        check_document(document)

        logger.info(
            "Digest %s/%s: %d announcements, %d tags, sections=%s",
            lang,
            window.article_title,
            len(announcements),
            len(tags),
            [name for name, _ in document.sections],
        )
        return document

    async def _collect(
        self,
        source: FeedSource,
        window: PublicationWindow,
        lang: str,
        sem: asyncio.Semaphore,
    ) -> Optional[FeedGroup]:
        """Fetch one source and translate it into *lang*. Returns None if the source failed."""
        async with sem:
            try:
                result = await self.fetcher.fetch_window(source.url, window)
                items = result.items
                if items and source.needs_translation(lang):
                    items = await self.translator.translate_items(
                        items, source.translate_field, source.lang, lang
                    )
                return source.make_group(lang, result.title, items)
            except Exception as e:
                logger.error("Source %s failed, section dropped: %s", source.id, e)
                return None

    async def _prior_date(self, object_key: str) -> Optional[str]:
        """``date`` of an article already stored under *object_key*, if any."""
        if self.store is None:
            return None
        try:
            return await self.store.get_metadata(object_key, "date")
        except Exception as e:
            logger.warning("Metadata lookup for %s failed: %s", object_key, e)
            return None


def check_document(document: DigestDocument) -> None:
    """Raise DigestInvariantError if the document breaks its window or tag contracts."""
    window = document.window
    if not window.oldest < window.latest:
        raise DigestInvariantError(f"window start {window.oldest} is not before end {window.latest}")
    for item in document.iter_items():
        if not window.contains(item.published_at):
            raise DigestInvariantError(
                f"{item.link} published {item.published_at} outside ({window.oldest}, {window.latest}]"
            )
    tags = document.front_matter.tags
    if len(set(tags)) != len(tags):
        raise DigestInvariantError(f"duplicate tags: {tags}")
