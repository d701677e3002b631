"""Metrics module: store, exporter and Prometheus collectors."""

from .collector import PantheonCollector
from .exporter import METRIC_KINDS, MetricPoint, SiteExporter, parse_cache_hit_ratio
from .self_metrics import SchedulerMetrics
from .store import MetricsStore

__all__ = [
    "METRIC_KINDS",
    "MetricPoint",
    "MetricsStore",
    "PantheonCollector",
    "SchedulerMetrics",
    "SiteExporter",
    "parse_cache_hit_ratio",
]
