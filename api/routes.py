from __future__ import annotations

import hmac
from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from feedsync.models.domain import SourceDescriptor
from feedsync.settings import get_settings
from feedsync.tasks.sync import sync_core
from feedsync.utils.logging import get_logger

from .models import SyncRequest, SyncResponse

router = APIRouter(prefix="/api")
logger = get_logger(__name__)


def _secret_matches(given: Optional[str], expected: Optional[str]) -> bool:
    if not given or not expected:
        return False
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def _run(sources: Optional[List[SourceDescriptor]], requester: Optional[str], message: Optional[str]) -> Any:
    try:
        result = sync_core(sources, requester=requester)
    except Exception as exc:  # noqa: BLE001 - the trigger reports any run failure as 500
        logger.exception("sync.trigger.failed", extra={"requester": requester})
        return JSONResponse(status_code=500, content={"error": str(exc)})
    payload: Dict[str, Any] = result.model_dump()
    return SyncResponse(message=message, **payload).model_dump(by_alias=True, exclude_none=True)


# Scheduler entry point; secret is passed as ?secret=... by the external timer.
@router.get("/cron/sync", tags=["sync"])
def cron_sync_route(secret: Annotated[Optional[str], Query()] = None) -> Any:
    try:
        settings = get_settings()
    except RuntimeError as exc:
        logger.error("cron.settings_invalid", extra={"error": str(exc)})
        return JSONResponse(status_code=500, content={"error": str(exc)})

    expected = settings.cron_secret.get_secret_value() if settings.cron_secret else None
    if not _secret_matches(secret, expected):
        logger.error("cron.unauthorized")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    logger.info("cron.sync.start", extra={"sources": len(settings.sync_sources)})
    return _run(list(settings.sync_sources), settings.sync_requester, "Automated sync completed")


@router.post("/sync", tags=["sync"])
def manual_sync_route(payload: SyncRequest) -> Any:
    sources = list(payload.sources) or None
    return _run(sources, payload.requester, None)
