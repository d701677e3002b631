"""Site set bookkeeping between discovery cycles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Iterable, List, Set

from ..core.domain import SiteRecord


def site_key_set(sites: Iterable[SiteRecord]) -> Set[str]:
    return {site.key for site in sites}


def find_added_sites(
    current: AbstractSet[str],
    new: AbstractSet[str],
    discovered: AbstractSet[str],
) -> List[str]:
    """Keys listed now, absent before, and never seen since process start.

    A key that is back after being missing from one snapshot (for instance
    after a transient fetch failure for its account) is not reported.
    """
    return sorted(key for key in new if key not in current and key not in discovered)


def find_removed_sites(current: AbstractSet[str], new: AbstractSet[str]) -> List[str]:
    return sorted(key for key in current if key not in new)


@dataclass
class DiscoveryResult:
    """Outcome of one discovery cycle."""

    sites: List[SiteRecord] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    sites_found: int = 0
    accounts_ok: int = 0
    accounts_failed: int = 0
    limit_reached: bool = False
    store_updated: bool = False
