"""Database utilities for the feed sync service."""

from .models import Article, Base, EnrichmentStatus, JobRun, JobStage, JobStatus  # noqa: F401
from .session import get_engine, get_sessionmaker, session_scope  # noqa: F401

__all__ = [
    "Article",
    "Base",
    "EnrichmentStatus",
    "JobRun",
    "JobStage",
    "JobStatus",
    "get_engine",
    "get_sessionmaker",
    "session_scope",
]
