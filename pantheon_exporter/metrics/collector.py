"""Prometheus collector over ``SiteExporter``."""

from __future__ import annotations

from typing import Iterator

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from .exporter import LABEL_NAMES, METRIC_KINDS, SiteExporter


class PantheonCollector(Collector):
    """Exposes every site sample as a gauge with an explicit timestamp."""

    def __init__(self, exporter: SiteExporter) -> None:
        self._exporter = exporter

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for kind in METRIC_KINDS:
            yield GaugeMetricFamily(kind.name, kind.documentation, labels=LABEL_NAMES)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        grouped = self._exporter.export_by_kind()
        for kind in METRIC_KINDS:
            family = GaugeMetricFamily(kind.name, kind.documentation, labels=LABEL_NAMES)
            for point in grouped[kind.name]:
                family.add_metric(list(point.labels), point.value, timestamp=point.timestamp)
            yield family
