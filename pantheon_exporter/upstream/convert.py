"""Conversion of raw Pantheon payloads into domain objects."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from ..core.domain import NO_DATA_RATIO, MetricSample, SiteInfo
from .fetcher import UpstreamError

logger = logging.getLogger(__name__)


def _as_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    return int(value)


def compute_cache_hit_ratio(cache_hits: int, pages_served: int) -> str:
    """Percentage string as terminus prints it, ``--`` when nothing was served."""
    if pages_served <= 0:
        return NO_DATA_RATIO
    return f"{round(cache_hits / pages_served * 100, 2)}%"


def convert_site(raw: Mapping[str, Any]) -> SiteInfo:
    # Memberships wrap the site object; plain site:list entries do not.
    site = raw.get("site", raw)
    if not isinstance(site, Mapping):
        raise UpstreamError(f"unexpected site entry: {raw!r}")

    name = str(site.get("name") or "")
    return SiteInfo(
        id=str(site.get("id") or raw.get("id") or ""),
        name=name,
        label=str(site.get("label") or name),
        plan_name=str(site.get("plan_name") or ""),
        framework=str(site.get("framework") or ""),
        region=str(site.get("preferred_zone_label") or site.get("region") or ""),
        owner=str(site.get("owner") or ""),
        created=_as_int(site.get("created")),
        frozen=bool(site.get("frozen") or site.get("is_frozen")),
    )


def convert_site_list(entries: Iterable[Mapping[str, Any]]) -> Dict[str, SiteInfo]:
    result: Dict[str, SiteInfo] = {}
    for entry in entries:
        site = convert_site(entry)
        if not site.id or not site.name:
            logger.warning("[PANTHEON] Skipping site entry without id/name entry=%r", entry)
            continue
        result[site.id] = site
    return result


def convert_sample(raw: Mapping[str, Any], timestamp: Optional[int] = None) -> MetricSample:
    if not isinstance(raw, Mapping):
        raise UpstreamError(f"malformed metrics entry: {raw!r}")
    try:
        ts = _as_int(raw.get("timestamp")) if timestamp is None else timestamp
        visits = _as_int(raw.get("visits"))
        pages_served = _as_int(raw.get("pages_served"))
        cache_hits = _as_int(raw.get("cache_hits"))
        cache_misses = _as_int(raw.get("cache_misses"))
    except (TypeError, ValueError) as e:
        raise UpstreamError(f"malformed metrics entry: {raw!r}") from e

    ratio = raw.get("cache_hit_ratio")
    if ratio is None:
        ratio = compute_cache_hit_ratio(cache_hits, pages_served)

    return MetricSample(
        timestamp=ts,
        visits=visits,
        pages_served=pages_served,
        cache_hits=cache_hits,
        cache_misses=cache_misses,
        cache_hit_ratio=str(ratio),
        datetime=str(raw.get("datetime") or ""),
    )


def convert_timeseries(timeseries: Any) -> Dict[str, MetricSample]:
    """Timeseries as a list (API) or a ``{timestamp: entry}`` map (terminus JSON)."""
    # A malformed entry is logged and skipped; the rest of the series is kept.
    result: Dict[str, MetricSample] = {}
    if isinstance(timeseries, Mapping):
        for key, entry in timeseries.items():
            try:
                # Keys stay as received; the exporter validates them.
                sample = convert_sample(entry, timestamp=_safe_int(key))
            except UpstreamError as e:
                logger.warning("[PANTHEON] Skipping metrics entry key=%r err=%s", key, e)
                continue
            result[str(key)] = sample
        return result

    if isinstance(timeseries, list):
        for entry in timeseries:
            try:
                sample = convert_sample(entry)
            except UpstreamError as e:
                logger.warning("[PANTHEON] Skipping metrics entry err=%s", e)
                continue
            result[str(sample.timestamp)] = sample
        return result

    raise UpstreamError(f"unexpected timeseries payload type={type(timeseries).__name__}")


def _safe_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0
