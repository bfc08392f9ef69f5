"""Celery 애플리케이션 부트스트랩."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict

from celery import Celery
from celery.schedules import schedule as celery_schedule

from .settings import Settings, get_settings
from .utils.logging import configure_logging

_CELERY_APP: Celery | None = None

SYNC_TASK_NAME = "feedsync.tasks.sync.sync_feeds"


def create_celery_app(settings: Settings | None = None) -> Celery:
    """설정을 기반으로 Celery 인스턴스를 생성한다."""
    config = settings or get_settings()
    configure_logging(config.structlog_level, json_enabled=config.log_json)

    app = Celery("feedsync", broker=config.redis_url, backend=config.redis_url)
    app.conf.update(
        task_default_queue="feedsync.default",
        task_default_exchange="feedsync",
        task_default_routing_key="feedsync.default",
        task_soft_time_limit=config.celery_task_soft_time_limit,
        # one run at a time per worker; the pipeline itself is sequential
        worker_concurrency=1,
        beat_schedule=_build_beat_schedule(config),
        timezone="UTC",
        enable_utc=True,
        worker_send_task_events=True,
        task_send_sent_event=True,
    )

    app.autodiscover_tasks(["feedsync.tasks"], related_name="sync")
    _install_signal_handlers(app)
    return app


def get_celery_app() -> Celery:
    """싱글톤 Celery 인스턴스를 반환한다."""
    global _CELERY_APP
    if _CELERY_APP is None:
        _CELERY_APP = create_celery_app()
    return _CELERY_APP


def _build_beat_schedule(settings: Settings) -> Dict[str, Dict[str, Any]]:
    if not settings.sync_schedule_enabled:
        return {}
    return {
        "sync.feeds.periodic": {
            "task": SYNC_TASK_NAME,
            "schedule": celery_schedule(timedelta(minutes=settings.sync_interval_minutes)),
            "args": (settings.sync_requester,),
            "options": {"queue": "feedsync.sync"},
        }
    }


def _install_signal_handlers(app: Celery) -> None:
    from celery import signals

    logger = logging.getLogger("feedsync.worker")

    @signals.worker_shutdown.connect  # type: ignore[attr-defined]
    def _on_worker_shutdown(sender=None, **kwargs):  # noqa: ANN001
        logger.info("Celery worker shutdown detected", extra={"sender": str(sender)})
