"""Record upserter: the only writer of article documents."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from feedsync.db.models import EnrichmentStatus
from feedsync.models.domain import ArticleDraft
from feedsync.services.document_store import DocumentStore, DuplicateKeyError

ARTICLES = "articles"
DEDUP_FIELD = "dedup_key"

PLACEHOLDER_IMAGE_TEMPLATE = "https://picsum.photos/seed/{seed}/800/400"


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def placeholder_image_url(title: str) -> str:
    """Deterministic placeholder keyed by the title, stable across runs."""
    seed = hashlib.sha1(title.strip().encode("utf-8")).hexdigest()[:12]
    return PLACEHOLDER_IMAGE_TEMPLATE.format(seed=seed)


class ArticleRepository:
    def __init__(self, store: DocumentStore, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._store = store
        self._clock = clock

    def ping(self) -> None:
        self._store.ping()

    def find(self, dedup_key: str) -> Optional[Dict[str, Any]]:
        return self._store.find_by_field(ARTICLES, DEDUP_FIELD, dedup_key)

    def upsert(self, dedup_key: str, draft: ArticleDraft) -> UpsertOutcome:
        """Insert when no record has ``dedup_key``, otherwise update mutable fields.

        ``created_at``, ``dedup_key`` and ``source_name`` are written once.
        """
        now = self._clock()
        existing = self.find(dedup_key)
        if existing is None:
            document = {
                DEDUP_FIELD: dedup_key,
                "source_name": draft.source_name,
                **self._mutable_fields(draft, now, None),
                "created_at": now,
            }
            try:
                self._store.insert(ARTICLES, document)
                return UpsertOutcome.CREATED
            except DuplicateKeyError:
                # a concurrent run inserted the same key between lookup and write
                existing = self.find(dedup_key)
                if existing is None:
                    raise
        self._store.update(ARTICLES, existing["id"], self._mutable_fields(draft, now, existing))
        return UpsertOutcome.UPDATED

    def _mutable_fields(
        self,
        draft: ArticleDraft,
        now: datetime,
        existing: Optional[Mapping[str, Any]],
    ) -> Dict[str, Any]:
        image_url = draft.image_url or (existing or {}).get("image_url") or placeholder_image_url(draft.original_title)
        return {
            "title": draft.title,
            "original_title": draft.original_title,
            "content": draft.content,
            "summary": draft.summary,
            "tags": list(draft.tags),
            "image_url": image_url,
            "category": draft.category,
            "published_at": draft.published_at,
            "enrichment_status": EnrichmentStatus.DONE.value,
            "updated_at": now,
        }
