"""Run orchestrator: sources → feed items → staleness → enrichment → upsert.

Sources and their items are processed strictly in order on one thread. Failures
are recovered at the narrowest scope:

- item without title/link: skipped silently
- enrichment failure: item skipped, logged, retried implicitly by the next run
- feed retrieval or store write failure: source marked failed, ``errors`` gets
  ``"<source name>: <message>"``, the run moves on to the next source
- store unreachable: the run aborts with StoreUnavailableError

Callers are expected to re-run the whole pipeline periodically; the staleness
classifier is the only recovery mechanism for failed enrichments.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, List, Optional, Protocol

from enrichment.client.openai_client import LLMError
from enrichment.models import EnrichmentResult
from feedsync.connectors.base import clean_text, is_http_url, truncate
from feedsync.models.domain import ArticleDraft, RawFeedItem, SourceDescriptor, SyncResult
from feedsync.repositories.articles import ArticleRepository, UpsertOutcome
from feedsync.services.document_store import StoreError, StoreUnavailableError
from feedsync.services.rate_limiter import Throttle
from feedsync.services.staleness import needs_enrichment
from feedsync.utils.logging import get_logger


class FeedConnector(Protocol):
    def fetch(self, source: SourceDescriptor) -> List[RawFeedItem]: ...  # noqa: D401


class Enricher(Protocol):
    def enrich(self, title: str, content: str, *, source_name: Optional[str] = None) -> EnrichmentResult: ...  # noqa: D401


class SourceState(str, Enum):
    SKIPPED = "skipped"
    FAILED = "failed"
    DONE = "done"


class ItemOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    INVALID = "invalid"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncOrchestrator:
    def __init__(
        self,
        connector: FeedConnector,
        enricher: Enricher,
        repository: ArticleRepository,
        governor: Throttle,
        *,
        content_max_chars: int = 2000,
        trace_id: Optional[str] = None,
        clock: Callable[[], datetime] = _utcnow,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._connector = connector
        self._enricher = enricher
        self._repository = repository
        self._governor = governor
        self._content_max_chars = content_max_chars
        self._trace_id = trace_id or uuid.uuid4().hex
        self._clock = clock
        self._logger = logger or get_logger(__name__)

    @property
    def trace_id(self) -> str:
        return self._trace_id

    def run(self, sources: Iterable[SourceDescriptor], *, requester: Optional[str] = None) -> SyncResult:
        sources = list(sources)
        result = SyncResult()
        self._logger.info(
            "sync.start",
            extra={"trace_id": self._trace_id, "requester": requester, "sources": len(sources)},
        )
        self._repository.ping()

        for source in sources:
            state = self._run_source(source, result)
            self._logger.info(
                "sync.source.finished",
                extra={"trace_id": self._trace_id, "source": source.name, "state": state.value},
            )

        self._logger.info(
            "sync.done",
            extra={
                "trace_id": self._trace_id,
                "requester": requester,
                "added": result.added_count,
                "updated": result.updated_count,
                "errors": len(result.errors),
                "processed_sources": result.processed_sources,
            },
        )
        return result

    def _run_source(self, source: SourceDescriptor, result: SyncResult) -> SourceState:
        extra = {"trace_id": self._trace_id, "source": source.name}
        if not is_http_url(source.url):
            self._logger.info("sync.source.skipped", extra={**extra, "url": source.url})
            return SourceState.SKIPPED

        try:
            items = self._connector.fetch(source)
        except Exception as exc:  # noqa: BLE001 - any retrieval failure is source-scoped
            self._fail_source(source, exc, result)
            return SourceState.FAILED
        result.processed_sources += 1

        try:
            for item in items:
                outcome = self._process_item(source, item)
                if outcome is ItemOutcome.CREATED:
                    result.added_count += 1
                elif outcome is ItemOutcome.UPDATED:
                    result.updated_count += 1
        except StoreUnavailableError:
            raise
        except StoreError as exc:
            self._fail_source(source, exc, result)
            return SourceState.FAILED
        return SourceState.DONE

    def _fail_source(self, source: SourceDescriptor, exc: Exception, result: SyncResult) -> None:
        message = str(exc) or exc.__class__.__name__
        result.errors.append(f"{source.name}: {message}")
        self._logger.warning(
            "sync.source.failed",
            extra={"trace_id": self._trace_id, "source": source.name, "error": message},
        )

    def _process_item(self, source: SourceDescriptor, item: RawFeedItem) -> ItemOutcome:
        dedup_key = item.dedup_key
        if not dedup_key or not item.title.strip():
            return ItemOutcome.INVALID

        existing = self._repository.find(dedup_key)
        if not needs_enrichment(item, existing):
            return ItemOutcome.UNCHANGED

        content = truncate(clean_text(item.content_snippet), self._content_max_chars)
        extra = {"trace_id": self._trace_id, "source": source.name, "dedup_key": dedup_key}
        try:
            enriched = self._enricher.enrich(item.title, content, source_name=source.name)
        except LLMError as exc:
            self._logger.warning("sync.item.enrichment_failed", extra={**extra, "error": str(exc)})
            return ItemOutcome.SKIPPED
        finally:
            self._governor.throttle()

        draft = ArticleDraft(
            title=enriched.translated_title,
            original_title=item.title,
            content=content,
            summary=enriched.summary,
            tags=enriched.tags,
            source_name=source.name,
            category=source.category.value,
            published_at=item.published_at or self._clock(),
            image_url=item.image_url,
        )
        outcome = self._repository.upsert(dedup_key, draft)
        self._logger.info("sync.item.saved", extra={**extra, "outcome": outcome.value})
        return ItemOutcome.CREATED if outcome is UpsertOutcome.CREATED else ItemOutcome.UPDATED
