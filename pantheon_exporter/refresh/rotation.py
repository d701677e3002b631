"""Round-robin cursor that spreads site refreshes over the refresh interval."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def sites_per_tick(total_sites: int, refresh_interval_minutes: float) -> int:
    """Batch size so every site is touched once per refresh interval.

    ``ceil(N / D)`` with D in minutes, one tick per minute.
    """
    if total_sites <= 0:
        return 0
    if refresh_interval_minutes <= 0:
        return total_sites
    return int(math.ceil(total_sites / refresh_interval_minutes))


@dataclass
class Batch:
    start: int
    end: int
    total: int
    wrapped: bool


class SiteRotation:
    """Tracks where the next metrics batch starts.

    The site list may shrink or grow between ticks; a cursor beyond the end
    restarts at 0 instead of producing an empty or dangling slice.
    """

    def __init__(self) -> None:
        self.index = 0
        self.cycles_completed = 0

    def next_batch(self, sites: Sequence[T], batch_size: int) -> Tuple[List[T], Batch]:
        total = len(sites)
        if total == 0 or batch_size <= 0:
            return [], Batch(start=0, end=0, total=total, wrapped=False)

        if self.index >= total:
            self.index = 0

        start = self.index
        end = min(start + batch_size, total)
        batch = list(sites[start:end])

        wrapped = False
        self.index = end
        if self.index >= total:
            self.index = 0
            self.cycles_completed += 1
            wrapped = True
            logger.info("[REFRESH] Completed full metrics refresh cycle, starting over cycles=%d",
                        self.cycles_completed)

        return batch, Batch(start=start, end=end, total=total, wrapped=wrapped)
