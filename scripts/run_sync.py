"""Run one feed synchronization pass by hand.

Usage:
  uv run -- python scripts/run_sync.py                      # configured sources
  uv run -- python scripts/run_sync.py -s "OpenAI Blog=https://openai.com/news/rss.xml"
  uv run -- python scripts/run_sync.py --requester ops@example.com --delay 0

Reads configuration from .env via pydantic settings. Requires DATABASE_DSN and
OPENAI_API_KEY. Prints the run summary as JSON.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List

from feedsync.models.domain import SourceCategory, SourceDescriptor
from feedsync.services.rate_limiter import RateGovernor
from feedsync.settings import get_settings
from feedsync.tasks.sync import sync_core
from feedsync.utils.logging import configure_logging


def _parse_source(raw: str, category: str) -> SourceDescriptor:
    name, sep, url = raw.partition("=")
    if not sep:
        raise argparse.ArgumentTypeError(f"NAME=URL 형식이어야 합니다: {raw}")
    return SourceDescriptor(name=name, url=url, category=SourceCategory(category))


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Feed sync manual run")
    parser.add_argument("-s", "--source", action="append", default=[], help="NAME=URL (repeatable)")
    parser.add_argument(
        "-c",
        "--category",
        default=SourceCategory.CUSTOM.value,
        choices=[c.value for c in SourceCategory],
        help="Category for --source entries (default: Custom)",
    )
    parser.add_argument("--requester", default=None, help="Requester identity recorded on the run")
    parser.add_argument("--delay", type=float, default=None, help="Override delay between enrichment calls")
    args = parser.parse_args(argv)

    cfg = get_settings()
    configure_logging(cfg.structlog_level, json_enabled=cfg.log_json)

    sources = [_parse_source(raw, args.category) for raw in args.source] or None
    governor = RateGovernor(args.delay) if args.delay is not None else None
    try:
        result = sync_core(sources, requester=args.requester, governor=governor)
    except Exception as exc:  # noqa: BLE001
        print(f"Sync failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(result.model_dump(by_alias=True), ensure_ascii=False, indent=2))
    return 0 if not result.errors else 2


if __name__ == "__main__":
    raise SystemExit(main())
