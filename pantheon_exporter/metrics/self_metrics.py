"""Métricas Prometheus del propio exporter (salud del scheduler)."""

from __future__ import annotations

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge


class SchedulerMetrics:
    """Counters and gauges describing the refresh scheduler.

    With ``registry=None`` the metrics are tracked but not registered
    anywhere, which keeps tests and ad-hoc schedulers isolated.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.discovery_cycles = Counter(
            "pantheon_exporter_discovery_cycles_total",
            "Completed site discovery cycles",
            registry=registry,
        )
        self.metrics_ticks = Counter(
            "pantheon_exporter_metrics_ticks_total",
            "Metrics refresh ticks fired",
            registry=registry,
        )
        self.site_fetches = Counter(
            "pantheon_exporter_site_fetches_total",
            "Per-site metrics fetches by outcome",
            ["status"],  # success, error, no_token, in_flight
            registry=registry,
        )
        self.account_failures = Counter(
            "pantheon_exporter_account_failures_total",
            "Account level failures during discovery",
            ["stage"],  # authenticate, list_sites
            registry=registry,
        )
        self.sites_monitored = Gauge(
            "pantheon_exporter_sites_monitored",
            "Sites currently held in the store",
            registry=registry,
        )
        self.accounts_authenticated = Gauge(
            "pantheon_exporter_accounts_authenticated",
            "Accounts with a usable token",
            registry=registry,
        )
