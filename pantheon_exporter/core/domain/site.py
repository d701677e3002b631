"""Modelos de dominio para sitios y muestras de tráfico."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping


NO_DATA_RATIO = "--"


def site_key(account_id: str, site_name: str) -> str:
    """Identity key of a site inside the store: ``account:site``."""
    return f"{account_id}:{site_name}"


@dataclass(frozen=True)
class MetricSample:
    """One traffic bucket for one site.

    ``cache_hit_ratio`` keeps the upstream representation (``"3.86%"``) or the
    no-data marker ``"--"``; conversion to a 0-1 ratio happens at export time.
    """

    timestamp: int
    visits: int = 0
    pages_served: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    cache_hit_ratio: str = NO_DATA_RATIO
    datetime: str = ""


@dataclass(frozen=True)
class SiteInfo:
    """Entrada del listado de sitios de una cuenta."""

    id: str
    name: str
    label: str = ""
    plan_name: str = ""
    framework: str = ""
    region: str = ""
    owner: str = ""
    created: int = 0
    frozen: bool = False


@dataclass(frozen=True)
class SiteRecord:
    """A monitored site plus every sample accumulated for it.

    Records are published immutably: merging samples produces a new record
    with a new ``samples`` mapping, so a snapshot can be read without a lock.
    """

    site_id: str
    site_name: str
    display_label: str
    plan_name: str
    account_id: str
    samples: Mapping[str, MetricSample] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return site_key(self.account_id, self.site_name)

    def with_merged_samples(self, samples: Mapping[str, MetricSample]) -> "SiteRecord":
        merged: Dict[str, MetricSample] = dict(self.samples)
        merged.update(samples)
        return replace(self, samples=merged)

    def with_samples(self, samples: Mapping[str, MetricSample]) -> "SiteRecord":
        return replace(self, samples=samples)
