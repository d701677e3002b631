"""Fixtures compartidos: muestras, sitios y un Fetcher en memoria."""

from __future__ import annotations

import threading
from typing import Dict, List, Tuple, Union

import pytest

from pantheon_exporter.core.domain import MetricSample, SiteInfo, SiteRecord
from pantheon_exporter.metrics import MetricsStore
from pantheon_exporter.refresh import RefreshConfig, RefreshScheduler
from pantheon_exporter.upstream import FetchWindow


def make_sample(timestamp: int, visits: int = 10, ratio: str = "50%") -> MetricSample:
    return MetricSample(
        timestamp=timestamp,
        visits=visits,
        pages_served=visits * 2,
        cache_hits=visits,
        cache_misses=visits,
        cache_hit_ratio=ratio,
    )


def make_site(account: str, name: str, samples=None, site_id: str = "") -> SiteRecord:
    return SiteRecord(
        site_id=site_id or f"uuid-{name}",
        site_name=name,
        display_label=name.title(),
        plan_name="Basic",
        account_id=account,
        samples=samples or {},
    )


class FakeFetcher:
    """Fetcher en memoria. Un valor Exception en los mapas se lanza al llamar."""

    def __init__(self) -> None:
        self.accounts: Dict[str, Union[str, Exception]] = {}
        self.sites: Dict[str, Union[Dict[str, SiteInfo], Exception]] = {}
        self.metrics: Dict[str, Union[Dict[str, MetricSample], Exception]] = {}
        self.fetch_calls: List[Tuple[str, str, str, FetchWindow]] = []
        self.invalidated: List[str] = []
        self._lock = threading.Lock()

    def add_account(self, token: str, account_id: str, site_names: List[str]) -> None:
        self.accounts[token] = account_id
        self.sites[token] = {
            f"uuid-{name}": SiteInfo(id=f"uuid-{name}", name=name, label=name.title(), plan_name="Basic")
            for name in site_names
        }

    def authenticate(self, token: str) -> str:
        result = self.accounts[token]
        if isinstance(result, Exception):
            raise result
        return result

    def list_sites(self, token: str, org_id: str = "") -> Dict[str, SiteInfo]:
        result = self.sites[token]
        if isinstance(result, Exception):
            raise result
        return dict(result)

    def fetch_metrics(self, token, site_id, environment, window):
        with self._lock:
            self.fetch_calls.append((token, site_id, environment, window))
        result = self.metrics.get(site_id, {})
        if isinstance(result, Exception):
            raise result
        return dict(result)

    def invalidate_session(self, token: str) -> None:
        self.invalidated.append(token)

    def windows_for(self, site_id: str) -> List[FetchWindow]:
        with self._lock:
            return [call[3] for call in self.fetch_calls if call[1] == site_id]


@pytest.fixture
def store() -> MetricsStore:
    return MetricsStore()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def make_scheduler(fetcher, store):
    """Factory de schedulers; se detienen al terminar el test."""
    created: List[RefreshScheduler] = []

    def _make(tokens=("token-aaaaaaaa",), **overrides) -> RefreshScheduler:
        params = dict(tokens=tuple(tokens), warm_up=False, max_workers=4)
        params.update(overrides)
        scheduler = RefreshScheduler(fetcher, store, RefreshConfig(**params))
        created.append(scheduler)
        return scheduler

    yield _make

    for scheduler in created:
        scheduler.stop(timeout=1.0)
