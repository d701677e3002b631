"""Fetcher backed by JSON files, for offline runs and tests.

Layout of the fixtures directory:

    sites.json    {"<site id>": {"name": ..., "plan_name": ..., ...}, ...}
    metrics.json  {"timeseries": {"<unix ts>": {"visits": ..., ...}, ...}}

Every site serves the same metrics file. Any token authenticates; the
account id is derived from the token.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Union

from ..core.domain import MetricSample, SiteInfo
from .convert import convert_site, convert_timeseries
from .fetcher import FetchWindow, UpstreamError, account_id_from_token

logger = logging.getLogger(__name__)


def _load_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise UpstreamError(f"error reading file {path}: {e}") from e
    except ValueError as e:
        raise UpstreamError(f"error parsing JSON {path}: {e}") from e


def load_site_list(path: Union[str, Path]) -> Dict[str, SiteInfo]:
    raw = _load_json(Path(path))
    if not isinstance(raw, dict):
        raise UpstreamError(f"site list {path} must be an object keyed by site id")

    sites: Dict[str, SiteInfo] = {}
    for site_id, entry in raw.items():
        site = convert_site(entry)
        if not site.id:
            site = replace(site, id=str(site_id))
        sites[str(site_id)] = site
    return sites


def load_metrics(path: Union[str, Path]) -> Dict[str, MetricSample]:
    raw = _load_json(Path(path))
    if not isinstance(raw, dict) or "timeseries" not in raw:
        raise UpstreamError(f"metrics file {path} has no timeseries")
    return convert_timeseries(raw["timeseries"])


class FixtureFetcher:
    def __init__(self, fixtures_dir: Union[str, Path]) -> None:
        self._dir = Path(fixtures_dir)

    def authenticate(self, token: str) -> str:
        return account_id_from_token(token)

    def list_sites(self, token: str, org_id: str = "") -> Dict[str, SiteInfo]:
        return load_site_list(self._dir / "sites.json")

    def fetch_metrics(
        self,
        token: str,
        site_id: str,
        environment: str,
        window: FetchWindow,
    ) -> Dict[str, MetricSample]:
        logger.debug("[FIXTURES] metrics site=%s env=%s window=%s", site_id, environment, window.value)
        return load_metrics(self._dir / "metrics.json")

    def invalidate_session(self, token: str) -> None:
        return None
