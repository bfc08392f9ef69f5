"""Built-in feed sources used when SYNC_SOURCES is not configured."""

from __future__ import annotations

from typing import Tuple

from feedsync.models.domain import SourceCategory, SourceDescriptor

DEFAULT_SOURCES: Tuple[SourceDescriptor, ...] = (
    SourceDescriptor(name="Anthropic News", url="https://www.anthropic.com/news/rss.xml", category=SourceCategory.RELIABLE),
    SourceDescriptor(name="OpenAI Blog", url="https://openai.com/news/rss.xml", category=SourceCategory.RELIABLE),
    SourceDescriptor(name="Google DeepMind", url="https://deepmind.google/blog/feed/basic/", category=SourceCategory.RELIABLE),
    SourceDescriptor(name="Meta AI", url="https://ai.meta.com/blog/rss/", category=SourceCategory.RELIABLE),
    SourceDescriptor(name="Product Hunt AI", url="https://www.producthunt.com/feed", category=SourceCategory.DISCOVERY),
    SourceDescriptor(name="Hacker News (AI)", url="https://news.ycombinator.com/rss", category=SourceCategory.DISCOVERY),
)
