"""DTO/스키마: 보강(번역+요약) 입력/출력 정의.

Pydantic v2 스키마로 LLM 입/출력을 정규화한다. 결과 스키마 검증을 통과하지
못한 응답은 실패로 취급한다.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

# Fixed tag vocabulary; the model may only choose from these.
CONTENT_TAGS = ("新モデル", "ツール", "研究・論文", "ビジネス", "規制・政策", "セキュリティ")
COMPANY_TAGS = ("OpenAI", "Anthropic", "Google", "Meta", "Microsoft", "その他企業")
EVENT_TAGS = ("新リリース", "資金調達", "提携", "障害")
ALLOWED_TAGS = CONTENT_TAGS + COMPANY_TAGS + EVENT_TAGS
MAX_TAGS = 4


class EnrichmentInput(BaseModel):
    """LLM 호출 입력 (이미 잘라낸 제목/본문)."""

    title: str
    content: str = ""
    source_name: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("title은 공백일 수 없습니다.")
        return s


class EnrichmentResult(BaseModel):
    """검증된 보강 결과. 번역 제목과 요약은 모두 필수."""

    translated_title: str = Field(..., max_length=512)
    summary: str = Field(..., max_length=4000)
    tags: List[str] = Field(default_factory=list)

    # LLM 메타
    llm_model: str
    llm_tokens_prompt: int = Field(..., ge=0)
    llm_tokens_completion: int = Field(..., ge=0)
    llm_cost: float = Field(..., ge=0.0)

    @field_validator("translated_title", "summary")
    @classmethod
    def _strip_nonempty(cls, v: str) -> str:
        s = (v or "").strip()
        if not s:
            raise ValueError("필드는 공백일 수 없습니다.")
        return s

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_cleanup(cls, v: object) -> List[str]:
        if not isinstance(v, (list, tuple)):
            return []
        cleaned: List[str] = []
        for tag in v:
            s = str(tag or "").strip()
            if s not in ALLOWED_TAGS or s in cleaned:
                continue
            cleaned.append(s)
            if len(cleaned) >= MAX_TAGS:
                break
        return cleaned
