from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import pytest

from enrichment.client.openai_client import OpenAIClient, TransientLLMError
from enrichment.models import EnrichmentResult
from enrichment.settings import EnrichmentSettings
from feedsync.connectors.base import TransientError
from feedsync.models.domain import RawFeedItem, SourceCategory, SourceDescriptor
from feedsync.repositories.articles import ArticleRepository
from feedsync.services.document_store import InMemoryDocumentStore, StoreError, StoreUnavailableError
from feedsync.services.orchestrator import SyncOrchestrator
from feedsync.services.rate_limiter import RateGovernor

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _source(name: str, url: Optional[str] = None) -> SourceDescriptor:
    return SourceDescriptor(name=name, url=url or f"https://{name.lower()}.test/feed", category=SourceCategory.RELIABLE)


class FakeConnector:
    def __init__(self, feeds: Dict[str, Union[List[RawFeedItem], Exception]]) -> None:
        self.feeds = feeds
        self.calls: List[str] = []

    def fetch(self, source: SourceDescriptor) -> List[RawFeedItem]:
        self.calls.append(source.name)
        feed = self.feeds[source.url]
        if isinstance(feed, Exception):
            raise feed
        return list(feed)


class FakeEnricher:
    def __init__(self, translations: Optional[Dict[str, tuple[str, str]]] = None, fail: bool = False) -> None:
        self.translations = translations or {}
        self.fail = fail
        self.calls: List[str] = []

    def enrich(self, title: str, content: str, *, source_name: Optional[str] = None) -> EnrichmentResult:
        self.calls.append(title)
        if self.fail:
            raise TransientLLMError("service down")
        translated, summary = self.translations.get(title, (f"{title}の訳", "要約"))
        return EnrichmentResult(
            translated_title=translated,
            summary=summary,
            tags=[],
            llm_model="fake",
            llm_tokens_prompt=0,
            llm_tokens_completion=0,
            llm_cost=0.0,
        )


class _Harness:
    def __init__(self, connector, enricher, store=None) -> None:
        self.store = store or InMemoryDocumentStore()
        self.sleeps: List[float] = []
        self.governor = RateGovernor(2.0, sleep=self.sleeps.append)
        self.connector = connector
        self.enricher = enricher
        self.orchestrator = SyncOrchestrator(
            connector,
            enricher,
            ArticleRepository(self.store, clock=lambda: NOW),
            self.governor,
            clock=lambda: NOW,
        )

    def run(self, sources):
        return self.orchestrator.run(sources, requester="tester@example.com")

    def articles(self) -> List[Dict[str, Any]]:
        return self.store.documents("articles")


def test_end_to_end_single_new_item():
    source = SourceDescriptor(name="X", url="https://x.test/feed", category="Reliable")
    connector = FakeConnector({source.url: [RawFeedItem(title="Model Update", link="https://x.test/a1")]})
    enricher = FakeEnricher({"Model Update": ("モデル更新", "要約文")})
    h = _Harness(connector, enricher)

    result = h.run([source])

    assert result.model_dump(by_alias=True) == {
        "addedCount": 1,
        "updatedCount": 0,
        "errors": [],
        "processedSources": 1,
    }
    [record] = h.articles()
    assert record["dedup_key"] == "https://x.test/a1"
    assert record["title"] == "モデル更新"
    assert record["summary"] == "要約文"
    assert record["original_title"] == "Model Update"
    assert record["category"] == "Reliable"
    assert record["source_name"] == "X"
    assert record["published_at"] == NOW
    assert h.sleeps == [2.0]


def test_second_run_is_idempotent():
    source = _source("X")
    items = [
        RawFeedItem(title="Model Update", link="https://x.test/a1"),
        RawFeedItem(title="Eval Results", link="https://x.test/a2"),
    ]
    connector = FakeConnector({source.url: items})
    enricher = FakeEnricher({"Model Update": ("モデル更新", "要約1"), "Eval Results": ("評価結果", "要約2")})
    h = _Harness(connector, enricher)

    first = h.run([source])
    second = h.run([source])

    assert (first.added_count, first.updated_count) == (2, 0)
    assert (second.added_count, second.updated_count) == (0, 0)
    assert second.processed_sources == 1
    assert len(enricher.calls) == 2
    assert len(h.sleeps) == 2


def test_same_link_across_runs_and_sources_keeps_one_record():
    a, b = _source("A"), _source("B")
    item = RawFeedItem(title="Shared Story", link="https://shared.test/story")
    connector = FakeConnector({a.url: [item], b.url: [item]})
    # ASCII translation keeps the record stale, forcing re-enrichment every time
    enricher = FakeEnricher({"Shared Story": ("Shared Story", "summary")})
    h = _Harness(connector, enricher)

    h.run([a, b])
    h.run([a, b])

    assert len(h.articles()) == 1


def test_source_failure_is_isolated():
    a, b, c = _source("A"), _source("B"), _source("C")
    connector = FakeConnector(
        {
            a.url: [RawFeedItem(title="Alpha", link="https://a.test/1")],
            b.url: TransientError("피드 요청 타임아웃 (15s)"),
            c.url: [RawFeedItem(title="Gamma", link="https://c.test/1")],
        }
    )
    h = _Harness(connector, FakeEnricher())

    result = h.run([a, b, c])

    assert connector.calls == ["A", "B", "C"]
    assert result.added_count == 2
    assert result.processed_sources == 2
    assert result.errors == ["B: 피드 요청 타임아웃 (15s)"]


def test_unexpected_fetch_exception_is_source_level():
    a, b = _source("A"), _source("B")
    connector = FakeConnector({a.url: RuntimeError("boom"), b.url: [RawFeedItem(title="Beta", link="https://b.test/1")]})
    h = _Harness(connector, FakeEnricher())

    result = h.run([a, b])

    assert result.errors == ["A: boom"]
    assert result.added_count == 1


def test_non_http_source_skipped_silently():
    ftp = _source("F", url="ftp://f.test/feed")
    blank = SourceDescriptor(name="Blank", url="   ")
    connector = FakeConnector({})
    h = _Harness(connector, FakeEnricher())

    result = h.run([ftp, blank])

    assert connector.calls == []
    assert result.errors == []
    assert result.processed_sources == 0


def test_items_missing_title_or_link_are_ignored():
    source = _source("X")
    connector = FakeConnector(
        {
            source.url: [
                RawFeedItem(title="", link="https://x.test/a1"),
                RawFeedItem(title="No link"),
                RawFeedItem(title="Guid only", guid="tag:x.test,2025:1"),
            ]
        }
    )
    enricher = FakeEnricher()
    h = _Harness(connector, enricher)

    result = h.run([source])

    assert result.added_count == 1
    assert result.errors == []
    assert enricher.calls == ["Guid only"]
    assert h.articles()[0]["dedup_key"] == "tag:x.test,2025:1"


def test_enrichment_failure_skips_item_and_heals_next_run():
    source = _source("X")
    connector = FakeConnector({source.url: [RawFeedItem(title="Model Update", link="https://x.test/a1")]})
    enricher = FakeEnricher({"Model Update": ("モデル更新", "要約文")}, fail=True)
    h = _Harness(connector, enricher)

    first = h.run([source])

    assert (first.added_count, first.updated_count, first.errors) == (0, 0, [])
    assert h.articles() == []
    assert h.sleeps == [2.0]

    enricher.fail = False
    second = h.run([source])

    assert second.added_count == 1
    assert h.articles()[0]["title"] == "モデル更新"


def test_stale_records_are_updated_in_place():
    source = _source("X")
    store = InMemoryDocumentStore()
    store.insert("articles", {"dedup_key": "https://x.test/a1", "title": "New GPT Release", "summary": "done"})
    store.insert("articles", {"dedup_key": "https://x.test/a2", "title": "Old", "summary": ""})
    store.insert("articles", {"dedup_key": "https://x.test/a3", "title": "新型GPTリリース", "summary": "要約"})
    connector = FakeConnector(
        {
            source.url: [
                RawFeedItem(title="New GPT Release", link="https://x.test/a1"),
                RawFeedItem(title="Old", link="https://x.test/a2"),
                RawFeedItem(title="New GPT Release 2", link="https://x.test/a3"),
            ]
        }
    )
    enricher = FakeEnricher()
    h = _Harness(connector, enricher, store=store)

    result = h.run([source])

    assert (result.added_count, result.updated_count) == (0, 2)
    assert enricher.calls == ["New GPT Release", "Old"]
    assert len(h.sleeps) == 2
    titles = {doc["dedup_key"]: doc["title"] for doc in h.articles()}
    assert titles["https://x.test/a3"] == "新型GPTリリース"


def test_incomplete_enrichment_response_is_rejected():
    def provider(_: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "choices": [{"message": {"content": json.dumps({"translatedTitle": "", "summary": "ok"})}}],
            "usage": {"prompt_tokens": 100, "completion_tokens": 20},
            "model": "gpt-4o-mini",
        }

    client = OpenAIClient(EnrichmentSettings(openai_api_key="sk-test-123"), provider=provider)
    source = _source("X")
    store = InMemoryDocumentStore()
    store.insert("articles", {"dedup_key": "https://x.test/a2", "title": "Stale", "summary": ""})
    connector = FakeConnector(
        {
            source.url: [
                RawFeedItem(title="Model Update", link="https://x.test/a1"),
                RawFeedItem(title="Stale", link="https://x.test/a2"),
            ]
        }
    )
    h = _Harness(connector, client, store=store)

    result = h.run([source])

    assert (result.added_count, result.updated_count) == (0, 0)
    docs = h.articles()
    assert len(docs) == 1
    assert docs[0]["summary"] == ""


class _FailingWriteStore(InMemoryDocumentStore):
    def __init__(self, failing_key: str) -> None:
        super().__init__()
        self.failing_key = failing_key

    def insert(self, collection, fields):
        if fields.get("dedup_key") == self.failing_key:
            raise StoreError("disk full")
        return super().insert(collection, fields)


def test_store_write_failure_is_reported_per_source():
    a, b = _source("A"), _source("B")
    connector = FakeConnector(
        {
            a.url: [
                RawFeedItem(title="First", link="https://a.test/1"),
                RawFeedItem(title="Broken", link="https://a.test/2"),
                RawFeedItem(title="Never", link="https://a.test/3"),
            ],
            b.url: [RawFeedItem(title="Beta", link="https://b.test/1")],
        }
    )
    h = _Harness(connector, FakeEnricher(), store=_FailingWriteStore("https://a.test/2"))

    result = h.run([a, b])

    assert result.errors == ["A: disk full"]
    assert result.added_count == 2
    assert result.processed_sources == 2
    assert {doc["dedup_key"] for doc in h.articles()} == {"https://a.test/1", "https://b.test/1"}


class _UnreachableStore(InMemoryDocumentStore):
    def ping(self) -> None:
        raise StoreUnavailableError("connection refused")


def test_unreachable_store_aborts_run():
    source = _source("X")
    connector = FakeConnector({source.url: [RawFeedItem(title="Model Update", link="https://x.test/a1")]})
    h = _Harness(connector, FakeEnricher(), store=_UnreachableStore())

    with pytest.raises(StoreUnavailableError):
        h.run([source])
    assert connector.calls == []


def test_stored_content_is_capped():
    source = _source("X")
    snippet = "<p>" + "x" * 5000 + "</p>"
    connector = FakeConnector(
        {source.url: [RawFeedItem(title="Long Read", link="https://x.test/long", content_snippet=snippet)]}
    )
    enricher = FakeEnricher()
    h = _Harness(connector, enricher)

    result = h.run([source])

    assert result.added_count == 1
    assert enricher.calls == ["Long Read"]
    [record] = h.articles()
    assert len(record["content"]) == 2000
    assert record["content"] == "x" * 2000
