"""
Fixed-interval governor for calls against the enrichment quota.
"""
from __future__ import annotations

import time
from typing import Callable, Protocol


class Throttle(Protocol):
    def throttle(self) -> None: ...  # noqa: D401


class RateGovernor:
    """Blocks for ``min_interval`` seconds after every enrichment attempt.

    Successful and failed attempts pay the same delay; items that never reach
    the enrichment service must not call ``throttle()``.
    """

    def __init__(self, min_interval: float = 2.0, *, sleep: Callable[[float], None] = time.sleep) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = float(min_interval)
        self._sleep = sleep
        self.calls = 0

    def throttle(self) -> None:
        self.calls += 1
        if self.min_interval > 0:
            self._sleep(self.min_interval)
