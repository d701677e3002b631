"""Refresh module: discovery cycles and rate-limited metrics refresh."""

from .config import RefreshConfig
from .discovery import DiscoveryResult, find_added_sites, find_removed_sites
from .rotation import SiteRotation, sites_per_tick
from .scheduler import RefreshScheduler

__all__ = [
    "DiscoveryResult",
    "RefreshConfig",
    "RefreshScheduler",
    "SiteRotation",
    "find_added_sites",
    "find_removed_sites",
    "sites_per_tick",
]
