"""Conversion of a store snapshot into timestamped metric points.

Every sample except the most recent is emitted at its own timestamp. The
most recent one is emitted at the time of the export call: upstream data
comes in coarse (daily) buckets, and republishing the current bucket "now"
keeps a "latest value" query from seeing a gap between refreshes. Consumers
must read the series as a step function.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, NamedTuple, Tuple

from ..core.domain import NO_DATA_RATIO, MetricSample, SiteRecord
from .store import MetricsStore

logger = logging.getLogger(__name__)

LABEL_NAMES: Tuple[str, ...] = ("site_id", "site_name", "plan", "account")


@dataclass(frozen=True)
class MetricKind:
    name: str
    documentation: str
    value: Callable[[MetricSample], float]


def parse_cache_hit_ratio(ratio: str) -> float:
    """Percentage string (``"3.86%"`` or ``"3.86"``) to a 0-1 ratio.

    ``"--"`` is the documented no-data marker (nothing served) and maps to 0
    silently; anything else that does not parse maps to 0 with a warning.
    """
    if ratio == NO_DATA_RATIO:
        return 0.0
    text = ratio[:-1] if ratio.endswith("%") else ratio
    try:
        value = float(text)
    except (TypeError, ValueError):
        logger.warning("[EXPORT] Error parsing cache hit ratio value=%r", ratio)
        return 0.0
    return value / 100


METRIC_KINDS: Tuple[MetricKind, ...] = (
    MetricKind(
        "pantheon_visits_total",
        "Total number of visits to a Pantheon site",
        lambda s: float(s.visits),
    ),
    MetricKind(
        "pantheon_pages_served_total",
        "Total number of pages served by a Pantheon site",
        lambda s: float(s.pages_served),
    ),
    MetricKind(
        "pantheon_cache_hits_total",
        "Total number of cache hits for a Pantheon site",
        lambda s: float(s.cache_hits),
    ),
    MetricKind(
        "pantheon_cache_misses_total",
        "Total number of cache misses for a Pantheon site",
        lambda s: float(s.cache_misses),
    ),
    MetricKind(
        "pantheon_cache_hit_ratio",
        "Cache hit ratio for a Pantheon site (0-1)",
        lambda s: parse_cache_hit_ratio(s.cache_hit_ratio),
    ),
)


class MetricPoint(NamedTuple):
    name: str
    labels: Tuple[str, ...]
    value: float
    timestamp: float


def site_labels(site: SiteRecord) -> Tuple[str, ...]:
    # site_id carries the machine name: it is stable for dashboards, the
    # platform uuid is not meaningful to a reader.
    return (site.site_name, site.display_label, site.plan_name, site.account_id)


def sorted_samples(site: SiteRecord) -> List[Tuple[int, MetricSample]]:
    """Samples in ascending timestamp order; unparsable keys are logged and skipped."""
    parsed: List[Tuple[int, MetricSample]] = []
    for key, sample in site.samples.items():
        try:
            ts = int(key)
        except (TypeError, ValueError):
            logger.warning("[EXPORT] Error parsing timestamp site=%s key=%r", site.key, key)
            continue
        parsed.append((ts, sample))
    parsed.sort(key=lambda item: item[0])
    return parsed


class SiteExporter:
    """Reads the store and yields one point per (kind, site, sample)."""

    def __init__(self, store: MetricsStore, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock

    def export(self) -> List[MetricPoint]:
        points: List[MetricPoint] = []
        now = self._clock()
        for site in self._store.snapshot():
            try:
                points.extend(self._export_site(site, now))
            except Exception:
                logger.exception("[EXPORT] Failed exporting site=%s", site.key)
        return points

    def export_by_kind(self) -> Dict[str, List[MetricPoint]]:
        grouped: Dict[str, List[MetricPoint]] = {kind.name: [] for kind in METRIC_KINDS}
        for point in self.export():
            grouped[point.name].append(point)
        return grouped

    def _export_site(self, site: SiteRecord, now: float) -> List[MetricPoint]:
        samples = sorted_samples(site)
        if not samples:
            return []

        labels = site_labels(site)
        last = len(samples) - 1
        points: List[MetricPoint] = []
        for i, (ts, sample) in enumerate(samples):
            emitted_at = now if i == last else float(ts)
            for kind in METRIC_KINDS:
                points.append(MetricPoint(kind.name, labels, kind.value(sample), emitted_at))
        return points
