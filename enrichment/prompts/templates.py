"""프롬프트 템플릿/빌더.

제목 번역·요약·태그를 구조화(JSON)로 요청하는 시스템/유저 메시지를 생성한다.
"""

from __future__ import annotations

from typing import List

from enrichment.models import COMPANY_TAGS, CONTENT_TAGS, EVENT_TAGS, MAX_TAGS, EnrichmentInput


JSON_SCHEMA_SNIPPET = (
    "{"
    '"translatedTitle": string (natural headline in the target language), '
    '"summary": string (3 bullet points, each starting with "・", about 50 characters in total), '
    f'"tags": array<string> (1-{MAX_TAGS} items, chosen only from the tag list)'
    "}"
)


def _tag_lines() -> str:
    return (
        f"- content: {', '.join(CONTENT_TAGS)}\n"
        f"- company: {', '.join(COMPANY_TAGS)}\n"
        f"- event: {', '.join(EVENT_TAGS)}\n"
    )


def build_enrichment_messages(inp: EnrichmentInput, *, target_language: str = "Japanese") -> List[dict]:
    """Build chat messages asking for a translated title, summary and tags as JSON.

    Title and content are expected to be truncated by the caller.
    """
    system = (
        "Role: you are a senior tech-news editor localizing articles for readers "
        f"who read {target_language}.\n"
        "Output: JSON ONLY (no prose, no code fences). Schema: "
        f"{JSON_SCHEMA_SNIPPET}.\n\n"
        "Rules:\n"
        f"1) translatedTitle: translate and lightly rewrite the original title into natural {target_language}, "
        "the way a tech news site would headline it.\n"
        f"2) summary: extract the three most important points of the article, in {target_language}.\n"
        "3) Only state facts present in the article; never invent numbers or claims.\n"
        "4) tags: pick from this fixed list only; inventing tags is forbidden. "
        "Company tags only when the article mentions that company directly.\n"
        f"{_tag_lines()}"
    )

    lines: List[str] = [
        f"[Title] {inp.title}",
        f"[Source] {inp.source_name or 'unknown'}",
        "[Content]",
        inp.content or "(no content)",
    ]
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": "\n".join(lines)},
    ]
