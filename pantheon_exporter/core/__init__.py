"""Core module - modelos compartidos por el scheduler y el exporter.

Estructura:
- domain/  → SiteRecord, MetricSample, SiteInfo
"""
