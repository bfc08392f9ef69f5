"""Decides whether a feed item has to go through enrichment again."""

from __future__ import annotations

import re
from typing import Any, Mapping, Optional

from feedsync.db.models import EnrichmentStatus
from feedsync.models.domain import RawFeedItem

# Printable ASCII plus whitespace: a title made only of these was never localized.
_UNTRANSLATED_RE = re.compile(r"[\x20-\x7E\t\r\n]+")


def looks_untranslated(title: Optional[str]) -> bool:
    text = (title or "").strip()
    if not text:
        return True
    return _UNTRANSLATED_RE.fullmatch(text) is not None


def needs_enrichment(item: RawFeedItem, existing: Optional[Mapping[str, Any]]) -> bool:
    """Return True when ``item`` must be (re-)enriched.

    Order matters:
    1. no stored record for the dedup key → new article
    2. stored summary empty → earlier enrichment failed or never ran
    3. stored status explicitly ``pending``
    4. stored title still in the source alphabet → not localized yet
    Otherwise the stored record is complete and left untouched.
    """
    if existing is None:
        return True
    if not str(existing.get("summary") or "").strip():
        return True
    if existing.get("enrichment_status") == EnrichmentStatus.PENDING.value:
        return True
    if looks_untranslated(existing.get("title")):
        return True
    return False
