"""Tests del PantheonCollector sobre un registry Prometheus aislado."""

from prometheus_client import CollectorRegistry, generate_latest

from pantheon_exporter.metrics import METRIC_KINDS, PantheonCollector, SchedulerMetrics, SiteExporter

from conftest import make_sample, make_site

NOW = 1_800_000_000.0


def _collector(store):
    return PantheonCollector(SiteExporter(store, clock=lambda: NOW))


class TestPantheonCollector:

    def test_describe_lists_all_families(self, store):
        names = [family.name for family in _collector(store).describe()]

        assert names == [kind.name for kind in METRIC_KINDS]

    def test_collect_carries_timestamps(self, store):
        store.replace_all([make_site("acct", "site1", {
            "1000": make_sample(1000, visits=1),
            "2000": make_sample(2000, visits=2),
        })])

        families = {f.name: f for f in _collector(store).collect()}
        visits = families["pantheon_visits_total"]

        assert [(s.value, s.timestamp) for s in visits.samples] == [(1.0, 1000.0), (2.0, NOW)]
        assert visits.samples[0].labels == {
            "site_id": "site1",
            "site_name": "Site1",
            "plan": "Basic",
            "account": "acct",
        }
        assert visits.type == "gauge"

    def test_empty_store_yields_empty_families(self, store):
        families = list(_collector(store).collect())

        assert len(families) == len(METRIC_KINDS)
        assert all(f.samples == [] for f in families)

    def test_registry_exposition(self, store):
        registry = CollectorRegistry()
        registry.register(_collector(store))
        store.replace_all([make_site("acct", "site1", {"1000": make_sample(1000, visits=5)})])

        body = generate_latest(registry).decode()

        lines = [line for line in body.splitlines() if line.startswith("pantheon_visits_total{")]
        assert len(lines) == 1
        assert 'site_id="site1"' in lines[0]
        assert lines[0].endswith(" 5.0 %d" % int(NOW * 1000))

    def test_scheduler_metrics_share_registry(self, store):
        registry = CollectorRegistry()
        registry.register(_collector(store))
        metrics = SchedulerMetrics(registry)
        metrics.metrics_ticks.inc()

        body = generate_latest(registry).decode()

        assert "pantheon_exporter_metrics_ticks_total 1.0" in body
        assert "# TYPE pantheon_cache_hit_ratio gauge" in body
