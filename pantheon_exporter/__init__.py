"""Pantheon metrics exporter.

Estructura:
- core/       → modelos de dominio (SiteRecord, MetricSample)
- upstream/   → acceso a la API de Pantheon (Fetcher)
- metrics/    → store thread-safe, exporter y collectors Prometheus
- refresh/    → scheduler de descubrimiento y refresco
- endpoints/  → rutas HTTP (/metrics, /health)
"""

from .version import __version__

__all__ = ["__version__"]
