"""Refresh scheduler configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from common.config import Settings


@dataclass(frozen=True)
class RefreshConfig:
    """Configuración del scheduler de refresco."""
    tokens: Tuple[str, ...]
    environment: str = "live"
    refresh_interval_minutes: int = 60
    tick_seconds: float = 60.0
    site_limit: int = 0      # 0 = sin límite
    org_id: str = ""         # vacío = todos los sitios
    max_workers: int = 8
    warm_up: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "RefreshConfig":
        return cls(
            tokens=settings.machine_tokens,
            environment=settings.environment,
            refresh_interval_minutes=settings.refresh_interval_minutes,
            tick_seconds=settings.metrics_tick_seconds,
            site_limit=settings.site_limit,
            org_id=settings.org_id,
            max_workers=settings.fetch_max_workers,
            warm_up=settings.warm_up,
        )

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_minutes * 60.0
