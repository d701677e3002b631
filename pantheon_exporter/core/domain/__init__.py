"""Domain layer - sitios y muestras."""

from .site import NO_DATA_RATIO, MetricSample, SiteInfo, SiteRecord, site_key

__all__ = ["NO_DATA_RATIO", "MetricSample", "SiteInfo", "SiteRecord", "site_key"]
