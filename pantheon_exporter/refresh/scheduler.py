"""Refresh scheduler - descubrimiento de sitios y refresco de métricas.

Dos loops independientes comparten el store y el mapa cuenta→token:

- discovery: cada ``refresh_interval_minutes`` re-enumera los sitios de
  todas las cuentas y reemplaza el set completo del store.
- metrics: cada ``tick_seconds`` toma el siguiente lote round-robin de
  ``ceil(N / D)`` sitios y lanza un fetch por sitio en el thread pool, sin
  esperar a que termine el lote (el ritmo del tick no depende de la latencia
  de la API).

Flujo:
  Fetcher → RefreshScheduler → MetricsStore → SiteExporter → /metrics
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, FrozenSet, List, Optional, Set

from ..core.domain import SiteRecord, site_key
from ..metrics.self_metrics import SchedulerMetrics
from ..metrics.store import MetricsStore
from ..upstream.fetcher import (
    AuthenticationError,
    Fetcher,
    FetchWindow,
    PantheonAPIError,
    account_id_from_token,
)
from .config import RefreshConfig
from .discovery import DiscoveryResult, find_added_sites, find_removed_sites, site_key_set
from .rotation import SiteRotation, sites_per_tick

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Owns the discovery set, the account-token map and both refresh loops.

    Usage:
        scheduler = RefreshScheduler(fetcher, store, config)
        scheduler.start()      # bootstrap discovery + background loops
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        fetcher: Fetcher,
        store: MetricsStore,
        config: RefreshConfig,
        *,
        metrics: Optional[SchedulerMetrics] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._config = config
        self._metrics = metrics or SchedulerMetrics()
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.max_workers,
            thread_name_prefix="site-refresh",
        )

        # Keys "account:site" seen since process start; never shrinks.
        self._discovered: Set[str] = set()
        # Keys whose first (backfill) fetch has succeeded. Kept apart from
        # _discovered: a failed first fetch must retry with the 28d window,
        # otherwise the site would only ever hold the last day.
        self._backfilled: Set[str] = set()
        # Keys with a fetch running (tick task or warm-up).
        self._in_flight: Set[str] = set()
        self._account_tokens: Dict[str, str] = {}
        self._state_lock = threading.Lock()

        self._rotation = SiteRotation()
        self._last_batch_size = 0
        self._tick_count = 0
        self._discovery_count = 0

        self._stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, bootstrap: bool = True) -> None:
        """Run the initial discovery cycle, then start the background loops."""
        self._stop_event.clear()

        if bootstrap:
            logger.info("[DISCOVERY] Loading site lists accounts=%d", len(self._config.tokens))
            try:
                result = self.run_discovery_cycle()
                logger.info(
                    "[DISCOVERY] Initialized with %d discovered sites across %d accounts",
                    len(result.sites), result.accounts_ok,
                )
            except Exception:
                logger.exception("[DISCOVERY] Initial site discovery failed")

        self._spawn("discovery-loop", self._discovery_loop)
        self._spawn("metrics-loop", self._metrics_loop)
        if self._config.warm_up:
            self._spawn("metrics-warm-up", self.warm_up)

        logger.info(
            "[REFRESH] Scheduler started refresh_interval_min=%d tick_s=%.1f workers=%d",
            self._config.refresh_interval_minutes, self._config.tick_seconds, self._config.max_workers,
        )

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        for t in self._threads:
            t.join(timeout=timeout)
        self._threads.clear()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info("[REFRESH] Scheduler stopped ticks=%d discovery_cycles=%d",
                    self._tick_count, self._discovery_count)

    def _spawn(self, name: str, target) -> None:
        t = threading.Thread(target=target, daemon=True, name=name)
        t.start()
        self._threads.append(t)

    def _discovery_loop(self) -> None:
        interval = self._config.refresh_interval_seconds
        while not self._stop_event.wait(interval):
            logger.info("[DISCOVERY] Starting site list refresh...")
            try:
                self.run_discovery_cycle()
            except Exception:
                logger.exception("[DISCOVERY] Site list refresh failed")

    def _metrics_loop(self) -> None:
        tick = self._config.tick_seconds
        next_tick = time.monotonic() + tick
        while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
            next_tick += tick
            try:
                self.run_metrics_tick()
            except Exception:
                logger.exception("[REFRESH] Metrics tick failed")

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def run_discovery_cycle(self) -> DiscoveryResult:
        """Re-enumerate sites for every token and replace the store contents."""
        previous = self._store.snapshot()
        current_keys = site_key_set(previous)
        with self._state_lock:
            discovered_before = set(self._discovered)

        result = DiscoveryResult()
        new_keys: Set[str] = set()
        limit = self._config.site_limit

        for token in self._config.tokens:
            if limit > 0 and len(result.sites) >= limit:
                result.limit_reached = True
                break
            self._discover_account(token, result, new_keys)

        self._discovery_count += 1
        self._metrics.discovery_cycles.inc()

        if not result.sites:
            logger.warning(
                "[DISCOVERY] No sites found, keeping previous site list sites=%d failed_accounts=%d",
                len(previous), result.accounts_failed,
            )
            return result

        result.added = find_added_sites(current_keys, new_keys, discovered_before)
        result.removed = find_removed_sites(current_keys, new_keys)
        with self._state_lock:
            self._discovered.update(new_keys)
            accounts = len(self._account_tokens)

        # Samples of persisting keys are carried over inside the swap; a merge
        # from an in-flight fetch cannot slip between read and replace.
        self._store.replace_all(result.sites, carry_over=True)
        result.store_updated = True

        self._metrics.sites_monitored.set(len(result.sites))
        self._metrics.accounts_authenticated.set(accounts)

        logger.info("[DISCOVERY] Site list updated sites=%d found=%d accounts_ok=%d accounts_failed=%d",
                    len(result.sites), result.sites_found, result.accounts_ok, result.accounts_failed)
        if result.added:
            logger.info("[DISCOVERY] Sites added: %s", result.added)
        if result.removed:
            logger.info("[DISCOVERY] Sites removed: %s", result.removed)
        return result

    def _discover_account(self, token: str, result: DiscoveryResult, new_keys: Set[str]) -> None:
        limit = self._config.site_limit
        try:
            account_id = self._fetcher.authenticate(token)
        except PantheonAPIError as e:
            # Entry in the token map (if any) is left as is until a later login succeeds.
            result.accounts_failed += 1
            self._metrics.account_failures.labels(stage="authenticate").inc()
            logger.warning("[DISCOVERY] Failed to authenticate account=%s err=%s",
                           account_id_from_token(token), e)
            return
        except Exception:
            result.accounts_failed += 1
            self._metrics.account_failures.labels(stage="authenticate").inc()
            logger.exception("[DISCOVERY] Unexpected error authenticating account=%s",
                             account_id_from_token(token))
            return

        with self._state_lock:
            self._account_tokens[account_id] = token

        logger.info("[DISCOVERY] Refreshing site list account=%s", account_id)
        try:
            site_list = self._fetcher.list_sites(token, self._config.org_id)
        except PantheonAPIError as e:
            result.accounts_failed += 1
            self._metrics.account_failures.labels(stage="list_sites").inc()
            logger.warning("[DISCOVERY] Failed to fetch site list account=%s err=%s", account_id, e)
            return
        except Exception:
            result.accounts_failed += 1
            self._metrics.account_failures.labels(stage="list_sites").inc()
            logger.exception("[DISCOVERY] Unexpected error fetching site list account=%s", account_id)
            return

        result.accounts_ok += 1
        result.sites_found += len(site_list)
        logger.info("[DISCOVERY] Account %s: Found %d sites", account_id, len(site_list))

        for site_id, info in site_list.items():
            if limit > 0 and len(result.sites) >= limit:
                result.limit_reached = True
                logger.info("[DISCOVERY] Site limit reached (%d sites), stopping refresh", limit)
                break

            key = site_key(account_id, info.name)
            if key in new_keys:
                logger.warning("[DISCOVERY] Duplicate site name ignored key=%s site_id=%s", key, site_id)
                continue
            new_keys.add(key)

            result.sites.append(SiteRecord(
                site_id=site_id,
                site_name=info.name,
                display_label=info.label or info.name,
                plan_name=info.plan_name,
                account_id=account_id,
            ))

    # ------------------------------------------------------------------
    # Metrics refresh
    # ------------------------------------------------------------------

    def run_metrics_tick(self) -> List[Future]:
        """Dispatch the next round-robin batch; does not wait for the fetches."""
        self._tick_count += 1
        self._metrics.metrics_ticks.inc()

        sites = self._store.snapshot()
        if not sites:
            logger.info("[REFRESH] Waiting for sites to be populated before starting metrics refresh...")
            return []

        batch_size = sites_per_tick(len(sites), self._config.refresh_interval_minutes)
        if batch_size != self._last_batch_size:
            logger.info(
                "[REFRESH] Metrics refresh: processing %d sites per tick (%d sites total, %d minute interval)",
                batch_size, len(sites), self._config.refresh_interval_minutes,
            )
            self._last_batch_size = batch_size

        batch, info = self._rotation.next_batch(sites, batch_size)
        logger.info("[REFRESH] Refreshing metrics for %d sites (sites %d-%d of %d)",
                    len(batch), info.start + 1, info.end, info.total)

        return [self._executor.submit(self.refresh_site, site) for site in batch]

    def refresh_site(self, site: SiteRecord) -> bool:
        """Fetch and merge one site. Every error is logged and contained."""
        try:
            return self._refresh_site(site)
        except Exception:
            self._metrics.site_fetches.labels(status="error").inc()
            logger.exception("[REFRESH] Unexpected error refreshing site=%s", site.key)
            return False

    def _refresh_site(self, site: SiteRecord) -> bool:
        key = site.key
        with self._state_lock:
            if key in self._in_flight:
                busy = True
            else:
                busy = False
                self._in_flight.add(key)

        if busy:
            self._metrics.site_fetches.labels(status="in_flight").inc()
            logger.debug("[REFRESH] Fetch already running, skipping site=%s", key)
            return False

        try:
            return self._fetch_and_merge(site)
        finally:
            with self._state_lock:
                self._in_flight.discard(key)

    def _fetch_and_merge(self, site: SiteRecord) -> bool:
        key = site.key
        with self._state_lock:
            token = self._account_tokens.get(site.account_id)
            first_fetch = key not in self._backfilled

        if token is None:
            self._metrics.site_fetches.labels(status="no_token").inc()
            logger.warning("[REFRESH] No token found for account=%s site=%s", site.account_id, site.site_name)
            return False

        window = FetchWindow.BACKFILL if first_fetch else FetchWindow.INCREMENTAL
        try:
            samples = self._fetcher.fetch_metrics(token, site.site_id, self._config.environment, window)
        except AuthenticationError as e:
            self._metrics.site_fetches.labels(status="error").inc()
            logger.warning("[REFRESH] Credential rejected account=%s site=%s err=%s",
                           site.account_id, site.site_name, e)
            self.invalidate_account(site.account_id, token)
            return False
        except PantheonAPIError as e:
            self._metrics.site_fetches.labels(status="error").inc()
            logger.warning("[REFRESH] Failed to refresh metrics for %s.%s err=%s",
                           site.account_id, site.site_name, e)
            return False

        with self._state_lock:
            self._backfilled.add(key)

        merged = self._store.merge_site_samples(site.account_id, site.site_name, samples)
        self._metrics.site_fetches.labels(status="success").inc()
        logger.info("[REFRESH] Updated metrics for site %s.%s window=%s samples=%d in_store=%s",
                    site.account_id, site.site_name, window.value, len(samples), merged)
        return True

    def warm_up(self) -> None:
        """Backfill every site once, one at a time, right after startup."""
        sites = self._store.snapshot()
        logger.info("[REFRESH] Starting initial metrics collection in background sites=%d", len(sites))
        ok = 0
        for site in sites:
            if self._stop_event.is_set():
                break
            with self._state_lock:
                done = site.key in self._backfilled
            if done:
                continue
            if self.refresh_site(site):
                ok += 1
        logger.info("[REFRESH] Initial metrics collection complete: %d of %d sites with metrics", ok, len(sites))

    # ------------------------------------------------------------------
    # Account-token map
    # ------------------------------------------------------------------

    def invalidate_account(self, account_id: str, token: str) -> None:
        """Drop the token of an account whose credential was rejected."""
        with self._state_lock:
            if self._account_tokens.get(account_id) == token:
                del self._account_tokens[account_id]
            accounts = len(self._account_tokens)
        self._fetcher.invalidate_session(token)
        self._metrics.accounts_authenticated.set(accounts)
        logger.warning("[REFRESH] Token invalidated account=%s until next discovery", account_id)

    def token_for(self, account_id: str) -> Optional[str]:
        with self._state_lock:
            return self._account_tokens.get(account_id)

    @property
    def discovered_sites(self) -> FrozenSet[str]:
        with self._state_lock:
            return frozenset(self._discovered)

    @property
    def account_ids(self) -> List[str]:
        with self._state_lock:
            return sorted(self._account_tokens)

    @property
    def rotation(self) -> SiteRotation:
        return self._rotation

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def discovery_count(self) -> int:
        return self._discovery_count

    @property
    def config(self) -> RefreshConfig:
        return self._config
