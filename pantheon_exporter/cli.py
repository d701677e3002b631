"""CLI entry point for the Pantheon metrics exporter."""

from __future__ import annotations

import argparse
import logging
from dataclasses import replace
from typing import List, Optional

import uvicorn
from prometheus_client import CollectorRegistry

from common.config import Settings, get_settings

from .main import create_app
from .metrics import MetricsStore, PantheonCollector, SchedulerMetrics, SiteExporter
from .refresh import RefreshConfig, RefreshScheduler
from .upstream import Fetcher, FixtureFetcher, PantheonClient
from .version import version_string

logger = logging.getLogger(__name__)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Pantheon metrics exporter for Prometheus")
    p.add_argument("--env", default=settings.environment, help="Pantheon environment (default: live)")
    p.add_argument("--port", type=int, default=settings.port, help="HTTP server port (default: 8080)")
    p.add_argument("--refreshInterval", dest="refresh_interval", type=int,
                   default=settings.refresh_interval_minutes, help="Refresh interval in minutes (default: 60)")
    p.add_argument("--siteLimit", dest="site_limit", type=int, default=settings.site_limit,
                   help="Maximum number of sites to query (0 = no limit)")
    p.add_argument("--orgID", dest="org_id", default=settings.org_id,
                   help="Limit metrics to sites from this organization ID (optional)")
    p.add_argument("--debug", action="store_true", default=settings.debug,
                   help="Enable debug logging of HTTP requests and responses")
    p.add_argument("--fixtures-dir", dest="fixtures_dir", default=settings.fixtures_dir,
                   help="Serve site lists and metrics from JSON files instead of the API")
    p.add_argument("--no-warm-up", dest="warm_up", action="store_false", default=settings.warm_up,
                   help="Skip the sequential backfill right after startup")
    return p


def build_fetcher(settings: Settings, fixtures_dir: str) -> Fetcher:
    if fixtures_dir:
        logger.info("Using JSON fixtures from %s", fixtures_dir)
        return FixtureFetcher(fixtures_dir)
    return PantheonClient(settings.api_url, timeout=settings.request_timeout)


def main(argv: Optional[List[str]] = None) -> None:
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    if not settings.machine_tokens:
        raise SystemExit("PANTHEON_MACHINE_TOKENS environment variable is not set")

    logger.info("Pantheon metrics exporter %s", version_string())
    logger.info("Found %d Pantheon account(s) to process", len(settings.machine_tokens))
    if args.org_id:
        logger.info("Filtering sites to organization: %s", args.org_id)

    config = replace(
        RefreshConfig.from_settings(settings),
        environment=args.env,
        refresh_interval_minutes=args.refresh_interval,
        site_limit=args.site_limit,
        org_id=args.org_id,
        warm_up=args.warm_up,
    )

    store = MetricsStore()
    registry = CollectorRegistry()
    registry.register(PantheonCollector(SiteExporter(store)))

    scheduler = RefreshScheduler(
        build_fetcher(settings, args.fixtures_dir),
        store,
        config,
        metrics=SchedulerMetrics(registry),
    )

    app = create_app(
        store,
        registry,
        environment=args.env,
        accounts=len(settings.machine_tokens),
        scheduler=scheduler,
    )

    logger.info("Starting Pantheon metrics exporter on :%d", args.port)
    logger.info("Metrics available at http://localhost:%d/metrics", args.port)
    uvicorn.run(app, host="0.0.0.0", port=args.port, log_level="debug" if args.debug else "info")


if __name__ == "__main__":
    main()
