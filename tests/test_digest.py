"""Tests for translation, tags, assembly, and rendering."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from headlines.config import DigestConfig
from headlines.connectors.factory import build_sources
from headlines.connectors.rss import FeedFetcher, FeedResult
from headlines.digest.assembler import DigestAssembler, check_document
from headlines.digest.renderer import object_metadata, render_document
from headlines.digest.tags import extract_tags, merge_tags
from headlines.digest.translator import Translator
from headlines.digest.window import compute_window
from headlines.storage.models import DigestInvariantError, DigestRequest, FeedItem

EXECUTED = datetime(2022, 6, 1, tzinfo=timezone.utc)
WINDOW = compute_window(EXECUTED)

ANNOUNCEMENTS_URL = "https://aws.amazon.com/new/feed/"
PLAYLIST_URL = "https://www.youtube.com/feeds/videos.xml?playlist_id=PL1"
JP_BLOG_URL = "https://aws.amazon.com/jp/blogs/news/feed/"
BLOG_URL = "https://aws.amazon.com/blogs/containers/feed/"
RELEASE_URL = "https://github.com/aws/aws-cdk/releases.atom"

RAW_CONFIG = {
    "storage": {"type": "local", "content_path": "content"},
    "translation": {"provider": "mock"},
    "article": {"description": {"ja": "AWS関連のニュースヘッドライン", "en": "AWS News Headlines"}},
    "sources": [
        {"id": "whats_new", "type": "announcements", "url": ANNOUNCEMENTS_URL, "lang": "en"},
        {"id": "videos", "type": "playlist", "playlist_id": "PL1", "lang": "ja",
         "title": {"ja": "セミナー", "en": "Seminar"}},
        {"id": "jp_news", "type": "local_blog", "category": "news", "lang": "ja",
         "title": {"ja": "ニュース", "en": "News"}},
        {"id": "containers", "type": "blog", "category": "containers", "lang": "en"},
        {"id": "cdk", "type": "release", "repo": "aws/aws-cdk", "title": "AWS CDK"},
    ],
}


def make_config() -> DigestConfig:
    return DigestConfig.from_dict(RAW_CONFIG, environ={})


def item(
    title: str,
    published: datetime = WINDOW.latest,
    summary: Optional[str] = None,
    categories: tuple = (),
) -> FeedItem:
    return FeedItem(
        title=title,
        link=f"https://example.com/{title.replace(' ', '-')}",
        published_at=published,
        summary=summary,
        categories=categories,
    )


class FakeFetcher(FeedFetcher):
    """Serve canned feeds; unknown URLs fail like an unreachable host."""

    def __init__(self, feeds: Dict[str, FeedResult]) -> None:
        super().__init__(timeout=1.0)
        self.feeds = feeds

    async def fetch(self, url: str) -> FeedResult:
        if url not in self.feeds:
            raise ConnectionError(f"unreachable: {url}")
        return self.feeds[url]


class UpperTranslator(Translator):
    """Translator whose "translation" is upper-casing; texts containing FAIL error out."""

    def __init__(self, delay: float = 0.0, **kwargs) -> None:
        super().__init__(provider="fake", **kwargs)
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: List[str] = []

    async def translate(self, text: str, source_lang: str, target_lang: str) -> str:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # vary completion order
            await asyncio.sleep(self.delay * (len(text) % 3))
            if "FAIL" in text:
                raise RuntimeError("service error")
            return text.upper()
        finally:
            self.in_flight -= 1


def make_assembler(feeds: Dict[str, FeedResult], translator: Optional[Translator] = None, store=None):
    config = make_config()
    return DigestAssembler(
        config,
        build_sources(config.sources),
        FakeFetcher(feeds),
        translator or UpperTranslator(),
        store,
    )


# --- Translator ---

class TestTranslator:
    @pytest.mark.asyncio
    async def test_same_language_is_noop(self):
        t = UpperTranslator()
        out = await t.translate_batch(["a", "b"], "en", "en")
        assert out == ["a", "b"]
        assert t.calls == []

    @pytest.mark.asyncio
    async def test_positional_integrity(self):
        t = UpperTranslator(delay=0.01)
        texts = [f"text {i}" for i in range(12)]
        out = await t.translate_batch(texts, "en", "ja")
        assert out == [s.upper() for s in texts]

    @pytest.mark.asyncio
    async def test_failures_keep_original(self):
        t = UpperTranslator()
        out = await t.translate_batch(["ok", "FAIL me", "fine"], "en", "ja")
        assert out == ["OK", "FAIL me", "FINE"]

    @pytest.mark.asyncio
    async def test_concurrency_ceiling(self):
        t = UpperTranslator(delay=0.01, concurrency=50)
        texts = [f"t{i:02d}x" for i in range(20)]
        out = await t.translate_batch(texts, "ja", "en")
        assert len(out) == 20
        assert t.max_in_flight <= 5

    @pytest.mark.asyncio
    async def test_timeout_keeps_original(self):
        t = UpperTranslator(delay=1.0, timeout=0.05)
        # len 4 % 3 == 1 -> sleeps for a full delay
        out = await t.translate_batch(["slow"], "en", "ja")
        assert out == ["slow"]

    @pytest.mark.asyncio
    async def test_translate_items_returns_new_items(self):
        t = UpperTranslator()
        original = [item("a", summary="hello"), item("b", summary=None)]
        out = await t.translate_items(original, "summary", "en", "ja")
        assert out[0].summary == "HELLO"
        assert out[0] is not original[0]
        assert original[0].summary == "hello"
        assert out[1] is original[1]

    @pytest.mark.asyncio
    async def test_mock_provider(self):
        t = Translator(provider="mock")
        assert await t.translate_batch(["hi"], "en", "ja") == ["[ja] hi"]

    @pytest.mark.asyncio
    async def test_aws_provider_uses_client(self):
        class FakeClient:
            def translate_text(self, Text, SourceLanguageCode, TargetLanguageCode):
                return {"TranslatedText": f"{Text}:{SourceLanguageCode}>{TargetLanguageCode}"}

        t = Translator(provider="aws", client=FakeClient())
        assert await t.translate_batch(["hi"], "en", "ja") == ["hi:en>ja"]


# --- Tags ---

class TestTags:
    def test_extract_splits_filters_and_strips(self):
        items = [
            item("a", categories=("general:products/amazon-ec2,marketing:marchitecture/compute",)),
            item("b", categories=("general:products/amazon-s3", "general:products/amazon-ec2")),
        ]
        assert sorted(extract_tags(items)) == ["amazon-ec2", "amazon-s3"]

    def test_idempotent(self):
        items = [item("a", categories=("general:products/aws-lambda,general:products/aws-lambda",))]
        assert set(extract_tags(items)) == set(extract_tags(items)) == {"aws-lambda"}

    def test_no_categories(self):
        assert extract_tags([item("a")]) == []

    def test_custom_prefix(self):
        items = [item("a", categories=("product:x,general:products/y",))]
        assert extract_tags(items, prefix="product:") == ["x"]

    def test_merge_is_duplicate_free(self):
        assert merge_tags(["a", "b"], ["b", "c"]) == ["a", "b", "c"]


# --- Assembler ---

class TestAssembler:
    @pytest.mark.asyncio
    async def test_announcement_at_latest_is_included_unchanged(self):
        feeds = {
            ANNOUNCEMENTS_URL: FeedResult("What's New", [
                item("EC2 news", WINDOW.latest, "summary text",
                     ("general:products/amazon-ec2,marketing:marchitecture/compute",)),
                item("too old", WINDOW.oldest, "old"),
            ]),
        }
        translator = UpperTranslator()
        doc = await make_assembler(feeds, translator).assemble(DigestRequest(EXECUTED, "en"))

        assert [a.title for a in doc.announcements] == ["EC2 news"]
        assert doc.announcements[0].summary == "summary text"
        assert "amazon-ec2" in doc.front_matter.tags
        assert translator.calls == []

    @pytest.mark.asyncio
    async def test_empty_groups_are_omitted(self):
        feeds = {
            ANNOUNCEMENTS_URL: FeedResult("What's New", [item("EC2 news")]),
            PLAYLIST_URL: FeedResult("playlist", []),
            JP_BLOG_URL: FeedResult("jp", [item("stale", WINDOW.oldest - timedelta(days=1))]),
            BLOG_URL: FeedResult("Containers", []),
            RELEASE_URL: FeedResult("releases", []),
        }
        doc = await make_assembler(feeds).assemble(DigestRequest(EXECUTED, "en"))
        assert doc.sections == []
        body = render_document(doc)
        assert "### Recent Announcements" in body
        assert "YouTube" not in body
        assert "AWS Blogs" not in body
        assert "Open Source Project" not in body

    @pytest.mark.asyncio
    async def test_sections_in_fixed_order(self):
        feeds = {
            ANNOUNCEMENTS_URL: FeedResult("What's New", []),
            RELEASE_URL: FeedResult("releases", [item("v2.0.0")]),
            BLOG_URL: FeedResult("Containers", [item("eks post")]),
            PLAYLIST_URL: FeedResult("playlist", [item("video one")]),
            JP_BLOG_URL: FeedResult("jp", [item("jp post")]),
        }
        doc = await make_assembler(feeds).assemble(DigestRequest(EXECUTED, "en"))
        assert [name for name, _ in doc.sections] == ["video", "blogs", "projects"]
        assert [g.label for g in doc.section("blogs")] == ["News", "Containers"]
        assert doc.section("projects")[0].link == "https://github.com/aws/aws-cdk/"

    @pytest.mark.asyncio
    async def test_translation_follows_native_language(self):
        feeds = {
            ANNOUNCEMENTS_URL: FeedResult("What's New", [item("launch", summary="new thing")]),
            PLAYLIST_URL: FeedResult("playlist", [item("video one")]),
            BLOG_URL: FeedResult("Containers", [item("eks post")]),
            RELEASE_URL: FeedResult("releases", [item("v2.0.0")]),
        }
        doc = await make_assembler(feeds).assemble(DigestRequest(EXECUTED, "ja"))

        assert doc.announcements[0].summary == "NEW THING"
        assert doc.announcements[0].title == "launch"
        assert doc.section("video")[0].items[0].title == "video one"
        assert doc.section("video")[0].label == "セミナー"
        assert doc.section("blogs")[0].items[0].title == "EKS POST"
        assert doc.section("projects")[0].items[0].title == "v2.0.0"

    @pytest.mark.asyncio
    async def test_unreachable_sources_degrade(self):
        feeds = {
            ANNOUNCEMENTS_URL: FeedResult("What's New", [item("launch", summary="s")]),
            BLOG_URL: FeedResult("Containers", [item("eks post")]),
        }
        doc = await make_assembler(feeds).assemble(DigestRequest(EXECUTED, "en"))
        assert len(doc.announcements) == 1
        assert [name for name, _ in doc.sections] == ["blogs"]

    @pytest.mark.asyncio
    async def test_front_matter(self):
        doc = await make_assembler({}).assemble(DigestRequest(EXECUTED, "ja", is_draft=True))
        fm = doc.front_matter
        assert fm.draft is True
        assert fm.is_cjk is True
        assert fm.title == "2022-05-31"
        assert fm.description == "AWS関連のニュースヘッドライン"
        assert fm.date == "2022-06-01T00:00:00.000Z"
        assert fm.lastmod == fm.date
        assert fm.categories == ("news",)
        assert fm.series == ("daily-aws",)
        assert doc.window.display_text.endswith("(JST)")

    @pytest.mark.asyncio
    async def test_prior_date_preserved(self):
        class Store:
            async def get_metadata(self, key, name):
                assert key == "content/headlines/20220531/index.en.md"
                return "2022-05-31T22:00:00.000Z" if name == "date" else None

        doc = await make_assembler({}, store=Store()).assemble(DigestRequest(EXECUTED, "en"))
        assert doc.front_matter.date == "2022-05-31T22:00:00.000Z"
        assert doc.front_matter.lastmod == "2022-06-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_metadata_lookup_failure_falls_back(self):
        class BrokenStore:
            async def get_metadata(self, key, name):
                raise OSError("storage down")

        doc = await make_assembler({}, store=BrokenStore()).assemble(DigestRequest(EXECUTED, "en"))
        assert doc.front_matter.date == "2022-06-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_unsupported_language(self):
        with pytest.raises(ValueError):
            await make_assembler({}).assemble(DigestRequest(EXECUTED, "fr"))

    @pytest.mark.asyncio
    async def test_out_of_window_item_is_invariant_violation(self):
        doc = await make_assembler({}).assemble(DigestRequest(EXECUTED, "en"))
        doc.announcements.append(item("rogue", WINDOW.oldest))
        with pytest.raises(DigestInvariantError):
            check_document(doc)


# --- Renderer ---

class TestRenderer:
    @pytest.mark.asyncio
    async def test_full_document(self):
        feeds = {
            ANNOUNCEMENTS_URL: FeedResult("What's New", [
                item("EC2 news", summary="Faster.", categories=("general:products/amazon-ec2",)),
            ]),
            PLAYLIST_URL: FeedResult("playlist", [item("video one")]),
            RELEASE_URL: FeedResult("releases", [item("v2.0.0")]),
        }
        doc = await make_assembler(feeds).assemble(DigestRequest(EXECUTED, "en"))
        lines = render_document(doc).split("\n")

        front = json.loads(lines[0])
        assert front["isCJKLanguage"] is False
        assert front["tags"] == ["amazon-ec2"]
        assert lines[2] == doc.window.display_text
        assert "### Recent Announcements" in lines
        assert "**[EC2 news](https://example.com/EC2-news)**" in lines
        assert "> Faster." in lines
        assert lines.index("### YouTube") < lines.index("### Open Source Project")
        assert "#### Seminar" in lines
        assert "- [VIDEO ONE](https://example.com/video-one)" in lines
        assert "#### AWS CDK" in lines

    @pytest.mark.asyncio
    async def test_no_announcements(self):
        doc = await make_assembler({}).assemble(DigestRequest(EXECUTED, "ja"))
        body = render_document(doc)
        assert "### 最近の発表" in body
        assert "No updates." in body

    @pytest.mark.asyncio
    async def test_render_is_pure(self):
        doc = await make_assembler({ANNOUNCEMENTS_URL: FeedResult("n", [item("a", summary="s")])}).assemble(
            DigestRequest(EXECUTED, "en")
        )
        assert render_document(doc) == render_document(doc)

    @pytest.mark.asyncio
    async def test_object_metadata(self):
        feeds = {
            ANNOUNCEMENTS_URL: FeedResult("n", [
                item("a", categories=("general:products/amazon-s3,general:products/aws-lambda",)),
            ]),
        }
        doc = await make_assembler(feeds).assemble(DigestRequest(EXECUTED, "en", is_draft=True))
        meta = object_metadata(doc.front_matter)
        assert meta == {
            "draft": "true",
            "date": "2022-06-01T00:00:00.000Z",
            "lastmod": "2022-06-01T00:00:00.000Z",
            "categories": "news",
            "series": "daily-aws",
            "tags": "amazon-s3,aws-lambda",
        }
