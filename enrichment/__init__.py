"""Enrichment module - OpenAI client and settings."""

from enrichment.client.openai_client import (
    LLMError,
    OpenAIClient,
    PermanentLLMError,
    ProviderFn,
    TransientLLMError,
)
from enrichment.models import EnrichmentInput, EnrichmentResult
from enrichment.settings import EnrichmentSettings, get_enrichment_settings

__all__ = [
    "LLMError",
    "OpenAIClient",
    "PermanentLLMError",
    "ProviderFn",
    "TransientLLMError",
    "EnrichmentInput",
    "EnrichmentResult",
    "EnrichmentSettings",
    "get_enrichment_settings",
]
