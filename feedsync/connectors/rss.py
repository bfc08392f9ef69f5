"""RSS/Atom connector backed by an injected httpx client and feedparser."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

import feedparser
import httpx

from feedsync.models.domain import SourceDescriptor
from feedsync.settings import DEFAULT_USER_AGENT, Settings

from .base import BaseConnector, PermanentError, TransientError


FetcherFn = Callable[[str], bytes]

DEFAULT_HEADERS: Dict[str, str] = {
    "Accept": "application/rss+xml, application/xml, text/xml, */*",
    "User-Agent": DEFAULT_USER_AGENT,
}


class RSSConnector(BaseConnector):
    """Connector that downloads a feed and parses it into RawFeedItems.

    - fetcher 주입 시: 오프라인 모드 (URL → bytes)
    - fetcher 미주입 시: 주입된(또는 자체 생성한) httpx.Client로 실제 HTTP 호출
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        *,
        fetcher: Optional[FetcherFn] = None,
        timeout_seconds: float = 15.0,
        max_items: int = 3,
        max_attempts: int = 1,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(max_items=max_items, max_attempts=max_attempts)
        self._fetcher = fetcher
        self._timeout = float(timeout_seconds)
        self._headers = dict(headers or DEFAULT_HEADERS)
        self._owns_client = client is None and fetcher is None
        if self._owns_client:
            client = httpx.Client(timeout=self._timeout, follow_redirects=True)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[httpx.Client] = None) -> "RSSConnector":
        headers = {**DEFAULT_HEADERS, "User-Agent": settings.feed_user_agent}
        return cls(
            client,
            timeout_seconds=float(settings.feed_timeout_seconds),
            max_items=int(settings.feed_max_items),
            max_attempts=int(settings.feed_max_attempts),
            headers=headers,
        )

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()

    def __enter__(self) -> "RSSConnector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def _fetch_raw(self, source: SourceDescriptor) -> List[Mapping[str, Any]]:
        content = self._download(source.url)
        parsed = feedparser.parse(content)
        entries = list(parsed.get("entries") or [])
        if parsed.get("bozo") and not entries:
            reason = parsed.get("bozo_exception") or "unknown parse error"
            raise PermanentError(f"피드 파싱 실패: {reason}")
        return entries

    def _download(self, url: str) -> bytes:
        if self._fetcher is not None:
            return self._fetcher(url)

        assert self._client is not None
        try:
            resp = self._client.get(url, headers=self._headers, timeout=self._timeout)
        except httpx.TimeoutException as exc:
            raise TransientError(f"피드 요청 타임아웃 ({self._timeout:g}s)") from exc
        except httpx.HTTPError as exc:
            raise TransientError(f"피드 요청 오류: {exc}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientError(f"피드 서버 일시 오류: {resp.status_code}")
        if resp.status_code >= 400:
            raise PermanentError(f"피드 요청 실패: {resp.status_code}")
        return resp.content
