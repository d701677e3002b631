"""Store en memoria de sitios y muestras.

Thread-safe: el scheduler escribe (replace_all / merge_site_samples) mientras
cualquier número de exports leen con snapshot(). El lock solo se mantiene
durante operaciones en memoria, nunca durante I/O de red.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping

from ..core.domain import MetricSample, SiteRecord
from .rwlock import ReadWriteLock

logger = logging.getLogger(__name__)


class MetricsStore:
    """Current site set and the samples accumulated per site.

    Usage:
        store = MetricsStore()
        store.replace_all(records)
        store.merge_site_samples("me@example.com", "site1", samples)
        for record in store.snapshot():
            ...
    """

    def __init__(self, records: Iterable[SiteRecord] = ()) -> None:
        self._sites: List[SiteRecord] = list(records)
        self._lock = ReadWriteLock()

    def replace_all(self, records: Iterable[SiteRecord], carry_over: bool = False) -> None:
        """Swap the whole site set atomically.

        Sites missing from ``records`` are dropped with their history. With
        ``carry_over`` the samples currently held for a key are merged into the
        incoming record under the same write lock as the swap, so a merge
        published just before the swap is never lost.
        """
        new_sites = list(records)
        with self._lock.write_locked():
            if carry_over:
                current = {site.key: site.samples for site in self._sites}
                new_sites = [
                    site.with_merged_samples(current[site.key]) if current.get(site.key) else site
                    for site in new_sites
                ]
            self._sites = new_sites

    def snapshot(self) -> List[SiteRecord]:
        """Independent list of the current records.

        Records and their sample maps are immutable once published, so the
        caller may iterate them without holding any lock.
        """
        with self._lock.read_locked():
            return list(self._sites)

    def merge_site_samples(
        self,
        account_id: str,
        site_name: str,
        samples: Mapping[str, MetricSample],
    ) -> bool:
        """Union ``samples`` into the matching site (last write wins per timestamp).

        Returns False, without error, when the site is no longer in the store.
        """
        with self._lock.write_locked():
            for i, record in enumerate(self._sites):
                if record.account_id == account_id and record.site_name == site_name:
                    self._sites[i] = record.with_merged_samples(samples)
                    return True

        logger.debug("[STORE] merge skipped, site not found account=%s site=%s", account_id, site_name)
        return False

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._sites)
