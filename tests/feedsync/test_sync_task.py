from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from enrichment.models import EnrichmentResult
from feedsync.db.models import Article, JobRun, JobStatus
from feedsync.db.session import get_engine
from feedsync.models.domain import RawFeedItem, SourceDescriptor
from feedsync.services.document_store import InMemoryDocumentStore, StoreUnavailableError
from feedsync.services.rate_limiter import RateGovernor
from feedsync.tasks import sync as sync_mod


@pytest.fixture(autouse=True)
def _set_env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("DATABASE_DSN", f"sqlite:///{tmp_path / 'sync.db'}")
    monkeypatch.setenv("FEEDSYNC_REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv(
        "SYNC_SOURCES",
        json.dumps([{"name": "X", "url": "https://x.test/feed", "category": "Reliable"}]),
    )


class _Connector:
    def __init__(self, items: List[RawFeedItem]) -> None:
        self.items = items

    def fetch(self, source: SourceDescriptor) -> List[RawFeedItem]:
        return list(self.items)


class _Enricher:
    def enrich(self, title: str, content: str, *, source_name: Optional[str] = None) -> EnrichmentResult:
        return EnrichmentResult(
            translated_title="モデル更新",
            summary="要約文",
            tags=["新モデル", "unknown"],
            llm_model="fake",
            llm_tokens_prompt=0,
            llm_tokens_completion=0,
            llm_cost=0.0,
        )


def _session() -> Session:
    SessionLocal = sessionmaker(bind=get_engine(), expire_on_commit=False, future=True)
    return SessionLocal()


def test_sync_core_persists_articles_and_job_run():
    connector = _Connector([RawFeedItem(title="Model Update", link="https://x.test/a1")])

    result = sync_mod.sync_core(
        connector=connector,
        enricher=_Enricher(),
        governor=RateGovernor(0),
        requester="ops@example.com",
    )

    assert result.model_dump(by_alias=True) == {
        "addedCount": 1,
        "updatedCount": 0,
        "errors": [],
        "processedSources": 1,
    }
    with _session() as session:
        rows = session.execute(select(Article)).scalars().all()
        assert len(rows) == 1
        assert rows[0].dedup_key == "https://x.test/a1"
        assert rows[0].title == "モデル更新"
        assert rows[0].tags == ["新モデル"]
        assert rows[0].source_name == "X"
        assert rows[0].image_url and rows[0].image_url.startswith("https://picsum.photos/seed/")

        jr = session.execute(select(JobRun).order_by(JobRun.started_at.desc())).scalars().first()
        assert jr is not None and jr.status == JobStatus.SUCCEEDED
        assert jr.requester == "ops@example.com"
        assert (jr.added_count, jr.processed_sources, jr.error_count) == (1, 1, 0)


def test_sync_core_second_run_changes_nothing():
    connector = _Connector([RawFeedItem(title="Model Update", link="https://x.test/a1")])

    sync_mod.sync_core(connector=connector, enricher=_Enricher(), governor=RateGovernor(0))
    second = sync_mod.sync_core(connector=connector, enricher=_Enricher(), governor=RateGovernor(0))

    assert (second.added_count, second.updated_count) == (0, 0)
    with _session() as session:
        assert len(session.execute(select(Article)).scalars().all()) == 1
        runs = session.execute(select(JobRun)).scalars().all()
        assert len(runs) == 2
        assert all(r.requester == "scheduler" for r in runs)


def test_sync_core_explicit_sources_override_configured():
    seen: List[str] = []

    class _Recording(_Connector):
        def fetch(self, source: SourceDescriptor) -> List[RawFeedItem]:
            seen.append(source.name)
            return []

    sync_mod.sync_core(
        [SourceDescriptor(name="Y", url="https://y.test/feed")],
        connector=_Recording([]),
        enricher=_Enricher(),
        governor=RateGovernor(0),
    )

    assert seen == ["Y"]


def test_sync_core_failure_records_jobrun():
    class _UnreachableStore(InMemoryDocumentStore):
        def ping(self) -> None:
            raise StoreUnavailableError("connection refused")

    with pytest.raises(StoreUnavailableError):
        sync_mod.sync_core(
            connector=_Connector([]),
            enricher=_Enricher(),
            governor=RateGovernor(0),
            store=_UnreachableStore(),
        )

    with _session() as session:
        jr = session.execute(select(JobRun).order_by(JobRun.started_at.desc())).scalars().first()
        assert jr is not None and jr.status == JobStatus.FAILED
        assert "connection refused" in (jr.error_message or "")
