"""Bookkeeping for triggered sync runs."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from feedsync.db.models import JobRun, JobStage, JobStatus
from feedsync.models.domain import SyncResult


class JobRunRecorder:
    """Context manager to record job run lifecycle."""

    def __init__(
        self,
        session: Session,
        *,
        stage: JobStage = JobStage.SYNC,
        task_name: str,
        requester: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        self._session = session
        self._job = JobRun(
            stage=stage,
            status=JobStatus.RUNNING,
            task_name=task_name,
            requester=requester,
            trace_id=trace_id,
            started_at=datetime.now(timezone.utc),
        )

    def __enter__(self) -> "JobRunRecorder":
        self._session.add(self._job)
        # RUNNING is committed up front so a crashed run still leaves a record
        self._session.commit()
        return self

    @property
    def job(self) -> JobRun:
        return self._job

    def record_result(self, result: SyncResult) -> None:
        self._job.added_count = result.added_count
        self._job.updated_count = result.updated_count
        self._job.error_count = len(result.errors)
        self._job.processed_sources = result.processed_sources
        if result.errors:
            self._job.error_message = "; ".join(result.errors)[:512]

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        if exc is None:
            self._job.status = JobStatus.SUCCEEDED
        else:
            self._job.status = JobStatus.FAILED
            self._job.error_message = str(exc)[:512]
        self._job.finished_at = datetime.now(timezone.utc)
        self._session.add(self._job)
        try:
            self._session.commit()
        except Exception:  # pragma: no cover - do not mask original error
            self._session.rollback()
