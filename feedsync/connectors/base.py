"""Connector abstraction, errors, and normalization helpers."""

from __future__ import annotations

import html
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional
from urllib.parse import urlsplit

from feedsync.models.domain import RawFeedItem, SourceDescriptor


class ConnectorError(Exception):
    """Base connector error; always scoped to a single source."""


class TransientError(ConnectorError):
    """Retryable error (e.g., timeout, rate limit, network hiccup)."""


class PermanentError(ConnectorError):
    """Non-retryable error (e.g., 4xx, unparseable feed)."""


# matches the articles.title / original_title column width
TITLE_MAX_CHARS = 512

_TAG_RE = re.compile(r"<[^>]*>?")
_WS_RE = re.compile(r"\s+")


def is_http_url(url: str | None) -> bool:
    """True only for absolute http(s) URLs with a host."""
    if not url:
        return False
    parts = urlsplit(url.strip())
    return parts.scheme.lower() in ("http", "https") and bool(parts.netloc)


def clean_text(value: str | None) -> str:
    """Strip HTML tags, unescape entities and collapse whitespace."""
    if not value:
        return ""
    text = _TAG_RE.sub("", value)
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def truncate(value: str, limit: int) -> str:
    return value if len(value) <= limit else value[:limit]


def struct_time_to_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


class BaseConnector(ABC):
    """Fetch a source, cap the entries and normalize them into RawFeedItems."""

    def __init__(self, *, max_items: int = 3, max_attempts: int = 1) -> None:
        self.max_items = max_items
        self.max_attempts = max_attempts

    def fetch(self, source: SourceDescriptor) -> List[RawFeedItem]:
        if not is_http_url(source.url):
            return []
        attempts = 0
        last_error: Optional[Exception] = None
        while attempts < self.max_attempts:
            attempts += 1
            try:
                entries = self._fetch_raw(source)
                return self._normalize_and_dedupe(entries[: self.max_items])
            except TransientError as exc:
                last_error = exc
                if attempts >= self.max_attempts:
                    raise
            except PermanentError:
                raise
        assert last_error is not None
        raise last_error

    @abstractmethod
    def _fetch_raw(self, source: SourceDescriptor) -> List[Mapping[str, Any]]:
        """Return the upstream entries in feed order."""

    def _normalize_and_dedupe(self, entries: Iterable[Mapping[str, Any]]) -> List[RawFeedItem]:
        seen: set[str] = set()
        normalized: List[RawFeedItem] = []
        for entry in entries:
            item = self._normalize_item(entry)
            key = item.dedup_key
            if key and key in seen:
                continue
            if key:
                seen.add(key)
            normalized.append(item)
        return normalized

    def _normalize_item(self, entry: Mapping[str, Any]) -> RawFeedItem:
        title = truncate(clean_text(str(entry.get("title") or "")), TITLE_MAX_CHARS)
        link = str(entry.get("link") or "").strip()
        guid = str(entry.get("id") or entry.get("guid") or "").strip()
        snippet = entry.get("summary") or entry.get("description") or _first_content_value(entry)
        published = struct_time_to_datetime(entry.get("published_parsed")) or struct_time_to_datetime(
            entry.get("updated_parsed")
        )
        return RawFeedItem(
            title=title,
            link=link,
            guid=guid,
            content_snippet=clean_text(str(snippet or "")),
            published_at=published,
            image_url=extract_image_url(entry),
        )


def _first_content_value(entry: Mapping[str, Any]) -> str:
    content = entry.get("content") or []
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, Mapping):
            return str(first.get("value") or "")
    return ""


def extract_image_url(entry: Mapping[str, Any]) -> Optional[str]:
    """Image the feed supplies: enclosure, then media:content, then media:thumbnail."""
    for enclosure in entry.get("enclosures") or []:
        href = enclosure.get("href") or enclosure.get("url")
        kind = str(enclosure.get("type") or "")
        if href and (not kind or kind.startswith("image/")):
            return str(href)
    for key in ("media_content", "media_thumbnail"):
        for media in entry.get(key) or []:
            url = media.get("url")
            if url:
                return str(url)
    return None
