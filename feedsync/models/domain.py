"""Domain DTOs for the feed synchronization pipeline."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class SourceCategory(str, Enum):
    RELIABLE = "Reliable"
    DISCOVERY = "Discovery"
    CUSTOM = "Custom"


class SourceDescriptor(BaseModel):
    """Feed source supplied by the caller for one run."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="소스 표시 이름")
    url: str = Field(..., description="RSS/Atom 피드 URL")
    category: SourceCategory = Field(SourceCategory.CUSTOM, description="소스 분류")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name은 공백일 수 없습니다.")
        return name

    @field_validator("url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        # scheme is checked by the orchestrator, which skips non-HTTP sources silently
        return value.strip()


class RawFeedItem(BaseModel):
    """Single parsed feed entry; never persisted directly."""

    title: str = ""
    link: str = ""
    guid: str = ""
    content_snippet: str = ""
    published_at: Optional[datetime] = None
    image_url: Optional[str] = None

    @property
    def dedup_key(self) -> str:
        return self.link.strip() or self.guid.strip()


class ArticleDraft(BaseModel):
    """Enriched, normalized fields handed to the record upserter."""

    title: str
    original_title: str
    content: str
    summary: str
    tags: List[str] = Field(default_factory=list)
    source_name: str
    category: str
    published_at: datetime
    image_url: Optional[str] = None


class SyncResult(BaseModel):
    """Run summary returned to the trigger."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    added_count: int = 0
    updated_count: int = 0
    errors: List[str] = Field(default_factory=list)
    processed_sources: int = 0
