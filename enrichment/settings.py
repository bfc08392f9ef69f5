"""Settings for the enrichment (OpenAI LLM) client."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, PositiveFloat, PositiveInt, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnrichmentSettings(BaseSettings):
    """Environment-driven configuration for title translation and summarization."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    openai_api_key: str = Field(..., alias="OPENAI_API_KEY", description="OpenAI API key")
    enrichment_model: str = Field("gpt-4o-mini", alias="ENRICHMENT_MODEL", description="OpenAI model name")
    enrichment_max_tokens: PositiveInt = Field(512, alias="ENRICHMENT_MAX_TOKENS", description="Max completion tokens")
    enrichment_temperature: PositiveFloat = Field(0.3, alias="ENRICHMENT_TEMPERATURE", description="Sampling temperature")
    enrichment_cost_limit_usd: PositiveFloat = Field(
        0.02,
        alias="ENRICHMENT_COST_LIMIT_USD",
        description="Per-request cost cap (USD)",
    )
    enrichment_request_timeout_seconds: PositiveInt = Field(
        30,
        alias="ENRICHMENT_REQUEST_TIMEOUT_SECONDS",
        description="HTTP request timeout in seconds",
    )
    target_language: str = Field("Japanese", alias="ENRICHMENT_TARGET_LANGUAGE", description="Output language")
    content_max_chars: PositiveInt = Field(
        1500,
        alias="ENRICHMENT_CONTENT_MAX_CHARS",
        description="Content prefix submitted to the model",
    )
    title_max_chars: PositiveInt = Field(300, alias="ENRICHMENT_TITLE_MAX_CHARS", description="Title prefix submitted")

    @field_validator("openai_api_key")
    @classmethod
    def _non_empty_api_key(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("OPENAI_API_KEY는 공백일 수 없습니다.")
        return s

    @field_validator("target_language")
    @classmethod
    def _non_empty_language(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("ENRICHMENT_TARGET_LANGUAGE는 공백일 수 없습니다.")
        return s


@lru_cache()
def get_enrichment_settings() -> EnrichmentSettings:
    try:
        return EnrichmentSettings()
    except ValidationError as exc:
        raise RuntimeError(f"보강 설정 검증 실패: {exc}") from exc


def reset_enrichment_settings_cache() -> None:
    get_enrichment_settings.cache_clear()  # type: ignore[attr-defined]
