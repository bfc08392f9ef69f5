from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from feedsync.models.domain import SourceDescriptor


class SyncRequest(BaseModel):
    """Manual sync action; the requester identity is trusted as given."""

    sources: List[SourceDescriptor] = Field(default_factory=list)
    requester: Optional[str] = Field(None, max_length=320)

    @field_validator("requester")
    @classmethod
    def _strip_requester(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class SyncResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: Optional[str] = None
    added_count: int
    updated_count: int
    errors: List[str]
    processed_sources: int
