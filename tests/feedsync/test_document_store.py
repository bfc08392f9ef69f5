from __future__ import annotations

from datetime import datetime, timezone
from functools import partial
from pathlib import Path

import pytest

from feedsync.db.models import Base
from feedsync.db.session import get_engine, session_scope
from feedsync.services.document_store import (
    DuplicateKeyError,
    InMemoryDocumentStore,
    SqlDocumentStore,
    StoreError,
    StoreUnavailableError,
)
from feedsync.settings import Settings


def _article(key: str = "https://x.test/a1", **overrides):
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    doc = {
        "dedup_key": key,
        "title": "モデル更新",
        "original_title": "Model Update",
        "content": "body",
        "summary": "要約文",
        "tags": ["新モデル"],
        "source_name": "X",
        "category": "Reliable",
        "published_at": now,
        "image_url": None,
        "enrichment_status": "done",
        "created_at": now,
        "updated_at": now,
    }
    doc.update(overrides)
    return doc


@pytest.fixture()
def sql_store(tmp_path: Path) -> SqlDocumentStore:
    settings = Settings(database_dsn=f"sqlite:///{tmp_path / 'store.db'}")
    Base.metadata.create_all(bind=get_engine(settings))
    return SqlDocumentStore(partial(session_scope, settings))


@pytest.fixture(params=["memory", "sql"])
def store(request, sql_store):
    if request.param == "memory":
        return InMemoryDocumentStore()
    return sql_store


def test_insert_then_find_by_field(store):
    doc_id = store.insert("articles", _article())

    found = store.find_by_field("articles", "dedup_key", "https://x.test/a1")

    assert found is not None
    assert found["id"] == doc_id
    assert found["title"] == "モデル更新"
    assert found["tags"] == ["新モデル"]
    assert store.find_by_field("articles", "dedup_key", "https://x.test/none") is None


def test_unique_dedup_key_enforced(store):
    store.insert("articles", _article())

    with pytest.raises(DuplicateKeyError):
        store.insert("articles", _article(title="別タイトル"))


def test_update_changes_only_given_fields(store):
    doc_id = store.insert("articles", _article())

    store.update("articles", doc_id, {"summary": "新しい要約"})

    found = store.find_by_field("articles", "dedup_key", "https://x.test/a1")
    assert found["summary"] == "新しい要約"
    assert found["title"] == "モデル更新"


def test_update_unknown_document_raises(store):
    missing = "00000000-0000-0000-0000-000000000000"
    with pytest.raises(StoreError):
        store.update("articles", missing, {"summary": "x"})


def test_sql_store_rejects_unknown_collection(sql_store):
    with pytest.raises(StoreError):
        sql_store.find_by_field("users", "email", "a@b.c")


def test_sql_store_ping_unreachable(tmp_path: Path):
    bad = Settings(database_dsn=f"sqlite:///{tmp_path / 'missing' / 'nested' / 'x.db'}")
    store = SqlDocumentStore(partial(session_scope, bad))

    with pytest.raises(StoreUnavailableError):
        store.ping()
