from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import CollectorRegistry

from .endpoints import health_router, metrics_router
from .metrics import MetricsStore
from .refresh import RefreshScheduler
from .version import version_string

logger = logging.getLogger(__name__)


def create_app(
    store: MetricsStore,
    registry: CollectorRegistry,
    *,
    environment: str = "live",
    accounts: int = 0,
    scheduler: Optional[RefreshScheduler] = None,
) -> FastAPI:
    """Build the HTTP surface.

    The scheduler (if any) is started on application startup and stopped on
    shutdown; without one the app only serves whatever the store holds.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scheduler is not None:
            # Bootstrap discovery does network I/O; keep it off the event loop.
            await asyncio.to_thread(scheduler.start)
        try:
            yield
        finally:
            if scheduler is not None:
                await asyncio.to_thread(scheduler.stop)

    app = FastAPI(title="Pantheon Metrics Exporter", version=version_string(), lifespan=lifespan)
    app.state.store = store
    app.state.registry = registry
    app.state.environment = environment
    app.state.accounts = accounts

    app.include_router(health_router)
    app.include_router(metrics_router)
    return app
