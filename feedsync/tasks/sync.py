"""Celery task and core entry point for one feed synchronization run."""

from __future__ import annotations

import uuid
from functools import partial
from typing import Any, Dict, Iterable, Optional

import httpx
from celery import shared_task

from enrichment.client.openai_client import OpenAIClient
from feedsync.connectors.rss import RSSConnector
from feedsync.db.models import Base
from feedsync.db.session import get_engine, session_scope
from feedsync.models.domain import SourceDescriptor, SyncResult
from feedsync.repositories.articles import ArticleRepository
from feedsync.repositories.job_runs import JobRunRecorder
from feedsync.services.document_store import DocumentStore, SqlDocumentStore
from feedsync.services.orchestrator import Enricher, FeedConnector, SyncOrchestrator
from feedsync.services.rate_limiter import RateGovernor, Throttle
from feedsync.settings import get_settings
from feedsync.utils.logging import get_logger


def _ensure_schema() -> None:
    # For local runs/tests, ensure schema exists (idempotent)
    engine = get_engine()
    Base.metadata.create_all(bind=engine)


def sync_core(
    sources: Optional[Iterable[SourceDescriptor]] = None,
    *,
    requester: Optional[str] = None,
    connector: Optional[FeedConnector] = None,
    enricher: Optional[Enricher] = None,
    governor: Optional[Throttle] = None,
    store: Optional[DocumentStore] = None,
) -> SyncResult:
    """Run the pipeline once over ``sources`` (configured sources by default).

    Collaborators default to the production wiring built from settings; tests
    inject fakes. Raises only for systemic failures (store unreachable).
    """
    settings = get_settings()
    _ensure_schema()
    logger = get_logger(__name__)
    trace_id = uuid.uuid4().hex
    run_sources = list(sources) if sources is not None else list(settings.sync_sources)
    run_requester = requester or settings.sync_requester

    http_client: Optional[httpx.Client] = None
    if connector is None:
        http_client = httpx.Client(timeout=float(settings.feed_timeout_seconds), follow_redirects=True)
        connector = RSSConnector.from_settings(settings, client=http_client)
    if enricher is None:
        enricher = OpenAIClient.from_env()
    if governor is None:
        governor = RateGovernor(float(settings.enrichment_delay_seconds))
    if store is None:
        store = SqlDocumentStore(partial(session_scope, settings))

    orchestrator = SyncOrchestrator(
        connector,
        enricher,
        ArticleRepository(store),
        governor,
        content_max_chars=int(settings.article_content_max_chars),
        trace_id=trace_id,
        logger=logger,
    )
    try:
        with session_scope(settings) as session, JobRunRecorder(
            session, task_name="sync_feeds", requester=run_requester, trace_id=trace_id
        ) as recorder:
            result = orchestrator.run(run_sources, requester=run_requester)
            recorder.record_result(result)
            return result
    finally:
        if http_client is not None:
            http_client.close()


@shared_task(name="feedsync.tasks.sync.sync_feeds", queue="feedsync.sync")
def sync_feeds(requester: Optional[str] = None) -> Dict[str, Any]:  # pragma: no cover - thin Celery wrapper
    return sync_core(requester=requester).model_dump(by_alias=True)
