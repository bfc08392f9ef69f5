"""OpenAI LLM 클라이언트 래퍼 (제목 번역 + 요약).

특징
- 구조화(JSON) 출력 강제 및 파싱 → EnrichmentResult 스키마로 검증
- 타임아웃/비용 상한(요청당) 적용, 재시도 없음 (다음 실행에서 다시 처리)
- 네트워크 오류, 잘못된 JSON, 필수 필드 누락은 모두 LLMError로 귀결
- Provider 주입으로 테스트 시 네트워크/실제 의존성 제거
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from enrichment.models import EnrichmentInput, EnrichmentResult
from enrichment.prompts.templates import build_enrichment_messages
from enrichment.settings import EnrichmentSettings, get_enrichment_settings


class LLMError(Exception):
    """LLM 호출 관련 기본 오류 (보강 실패)."""


class TransientLLMError(LLMError):
    """일시 오류 (네트워크/타임아웃). 다음 실행에서 자연 복구된다."""


class PermanentLLMError(LLMError):
    """응답 자체가 잘못된 경우 (JSON 파싱 실패, 필드 누락, 비용 초과)."""


ProviderFn = Callable[[Dict[str, Any]], Dict[str, Any]]


_PRICE_PER_1K_TOKENS_USD: Dict[str, Dict[str, float]] = {
    # 샘플 단가; 운영 시 최신 단가로 갱신
    "gpt-4o-mini": {"prompt": 0.00015, "completion": 0.0006},
    "gpt-4o": {"prompt": 0.0025, "completion": 0.0100},
    "gpt-4.1-mini": {"prompt": 0.0004, "completion": 0.0016},
}


def _estimate_cost_usd(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    price = _PRICE_PER_1K_TOKENS_USD.get(model, _PRICE_PER_1K_TOKENS_USD["gpt-4o-mini"])
    return (
        (prompt_tokens / 1000.0) * price["prompt"]
        + (completion_tokens / 1000.0) * price["completion"]
    )


def _truncate(value: str, limit: int) -> str:
    value = (value or "").strip()
    return value if len(value) <= limit else value[:limit]


def _load_structured_content(content: Any) -> Dict[str, Any]:
    try:
        data = json.loads(content or "")
    except (TypeError, json.JSONDecodeError) as exc:
        raise PermanentLLMError("LLM 응답 JSON 파싱 실패") from exc
    if not isinstance(data, dict):
        raise PermanentLLMError("LLM 응답이 JSON 객체가 아닙니다")
    return data


@dataclass(frozen=True)
class OpenAIClient:
    settings: EnrichmentSettings
    provider: Optional[ProviderFn] = None

    @classmethod
    def from_env(cls, provider: Optional[ProviderFn] = None) -> "OpenAIClient":
        return cls(get_enrichment_settings(), provider=provider)

    def _get_provider(self) -> ProviderFn:
        if self.provider is not None:
            return self.provider
        try:
            from openai import OpenAI  # type: ignore
        except ImportError as exc:  # pragma: no cover - 테스트에선 provider 주입
            raise PermanentLLMError("openai 라이브러리를 찾을 수 없습니다.") from exc

        client = OpenAI(
            api_key=self.settings.openai_api_key,
            timeout=float(self.settings.enrichment_request_timeout_seconds),
            max_retries=0,
        )

        def _call(payload: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - 네트워크 미사용
            resp = client.chat.completions.create(**payload)
            return {
                "choices": [
                    {
                        "message": {"content": resp.choices[0].message.content},
                    }
                ],
                "usage": {
                    "prompt_tokens": getattr(resp.usage, "prompt_tokens", 0),
                    "completion_tokens": getattr(resp.usage, "completion_tokens", 0),
                },
                "model": resp.model,
            }

        return _call

    def build_input(self, title: str, content: str, source_name: Optional[str] = None) -> EnrichmentInput:
        return EnrichmentInput(
            title=_truncate(title, int(self.settings.title_max_chars)),
            content=_truncate(content, int(self.settings.content_max_chars)),
            source_name=source_name,
        )

    def _build_payload(self, inp: EnrichmentInput) -> Dict[str, Any]:
        return {
            "model": self.settings.enrichment_model,
            "messages": build_enrichment_messages(inp, target_language=self.settings.target_language),
            "temperature": float(self.settings.enrichment_temperature),
            "max_tokens": int(self.settings.enrichment_max_tokens),
            "response_format": {"type": "json_object"},
        }

    def enrich(self, title: str, content: str, *, source_name: Optional[str] = None) -> EnrichmentResult:
        """Translate ``title`` and summarize ``content`` in one call.

        Raises LLMError for every failure mode; never retries.
        """
        try:
            inp = self.build_input(title, content, source_name)
        except ValidationError as exc:
            raise PermanentLLMError("보강 입력이 유효하지 않습니다") from exc
        payload = self._build_payload(inp)
        provider = self._get_provider()

        start = time.monotonic()
        try:
            resp = provider(payload)
        except LLMError:
            raise
        except Exception as exc:
            raise TransientLLMError(f"LLM 호출 실패: {exc}") from exc
        if time.monotonic() - start > float(self.settings.enrichment_request_timeout_seconds):
            raise TransientLLMError("LLM 요청 타임아웃 초과")

        model = resp.get("model") or self.settings.enrichment_model
        usage = resp.get("usage") or {}
        prompt_tokens = int(usage.get("prompt_tokens", 0) or 0)
        completion_tokens = int(usage.get("completion_tokens", 0) or 0)
        cost = _estimate_cost_usd(model, prompt_tokens, completion_tokens)
        if cost > float(self.settings.enrichment_cost_limit_usd):
            raise PermanentLLMError("LLM 비용 상한 초과")

        choices = resp.get("choices") or [{}]
        content_text = (choices[0].get("message") or {}).get("content", "")
        data = _load_structured_content(content_text)
        try:
            return EnrichmentResult(
                translated_title=data.get("translatedTitle"),
                summary=data.get("summary"),
                tags=data.get("tags") or [],
                llm_model=model,
                llm_tokens_prompt=prompt_tokens,
                llm_tokens_completion=completion_tokens,
                llm_cost=cost,
            )
        except ValidationError as exc:
            raise PermanentLLMError("LLM 응답 필수 필드 누락") from exc
