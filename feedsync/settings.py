"""Configuration models for the feed synchronization service."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, List, Optional, Set

from pydantic import (
    Field,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from feedsync.models.domain import SourceDescriptor
from feedsync.sources import DEFAULT_SOURCES

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    """Feed sync 환경 설정."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    database_dsn: str = Field(..., alias="DATABASE_DSN", description="기사 저장소 SQLAlchemy 연결 문자열.")
    redis_url: str = Field(
        "redis://localhost:6379/0",
        alias="FEEDSYNC_REDIS_URL",
        description="Celery 브로커/백엔드 Redis DSN.",
    )
    feed_timeout_seconds: PositiveFloat = Field(15.0, alias="FEED_TIMEOUT_SECONDS", description="피드 요청 타임아웃(초)")
    feed_max_items: PositiveInt = Field(3, alias="FEED_MAX_ITEMS", description="소스당 처리할 최대 항목 수")
    feed_max_attempts: PositiveInt = Field(1, alias="FEED_MAX_ATTEMPTS", description="일시 오류 시 피드 요청 시도 횟수")
    feed_user_agent: str = Field(DEFAULT_USER_AGENT, alias="FEED_USER_AGENT", description="피드 요청 User-Agent")
    article_content_max_chars: PositiveInt = Field(
        2000,
        alias="ARTICLE_CONTENT_MAX_CHARS",
        description="저장할 본문 스니펫 최대 길이",
    )
    enrichment_delay_seconds: float = Field(
        2.0,
        ge=0.0,
        alias="ENRICHMENT_DELAY_SECONDS",
        description="보강 호출 사이 최소 대기 시간(초)",
    )
    sync_sources: List[SourceDescriptor] = Field(
        default_factory=lambda: list(DEFAULT_SOURCES),
        alias="SYNC_SOURCES",
        description="JSON 배열 형태의 피드 소스 목록.",
    )
    sync_requester: str = Field("scheduler", alias="SYNC_REQUESTER", description="예약 실행 시 요청자 식별자.")
    sync_interval_minutes: PositiveInt = Field(60, alias="SYNC_INTERVAL_MINUTES", description="동기화 주기 (분 단위).")
    sync_schedule_enabled: bool = Field(True, alias="SYNC_SCHEDULE_ENABLED", description="예약 실행 사용 여부.")
    cron_secret: Optional[SecretStr] = Field(None, alias="CRON_SECRET", description="cron 엔드포인트 공유 비밀값.")
    structlog_level: str = Field("INFO", alias="STRUCTLOG_LEVEL", description="구조화 로그 레벨.")
    log_json: bool = Field(False, alias="LOG_JSON", description="로그를 JSON 형식으로 출력할지 여부.")
    celery_task_soft_time_limit: PositiveInt = Field(
        900,
        alias="CELERY_TASK_SOFT_TIME_LIMIT",
        description="Celery 태스크 소프트 타임아웃 (초).",
    )

    @field_validator("sync_sources", mode="before")
    @classmethod
    def _parse_sync_sources(cls, value: Any) -> List[Any]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("SYNC_SOURCES는 JSON 배열이어야 합니다.") from exc
            return parsed
        if isinstance(value, (list, tuple)):
            return list(value)
        raise ValueError("SYNC_SOURCES는 리스트 형태여야 합니다.")

    @field_validator("sync_sources")
    @classmethod
    def _validate_unique_sources(cls, value: List[SourceDescriptor]) -> List[SourceDescriptor]:
        seen: Set[str] = set()
        for source in value:
            if source.url in seen:
                raise ValueError(f"중복된 소스 URL이 존재합니다: {source.url}")
            seen.add(source.url)
        return value

    @field_validator("database_dsn")
    @classmethod
    def _validate_database_dsn(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("DATABASE_DSN은 유효한 DSN 문자열이어야 합니다.")
        return value

    @field_validator("sync_requester")
    @classmethod
    def _validate_requester(cls, value: str) -> str:
        requester = value.strip()
        if not requester:
            raise ValueError("SYNC_REQUESTER는 공백일 수 없습니다.")
        return requester


@lru_cache()
def get_settings() -> Settings:
    """환경 변수를 기준으로 Settings 인스턴스를 반환한다."""
    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"환경 변수 검증에 실패했습니다: {exc}") from exc


def reset_settings_cache() -> None:
    """Settings LRU 캐시를 초기화한다 (테스트 용도)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
