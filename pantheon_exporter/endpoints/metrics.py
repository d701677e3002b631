"""Prometheus scrape endpoint and the HTML landing page."""

from __future__ import annotations

from html import escape

from fastapi import APIRouter, Request, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics(request: Request) -> Response:
    body = generate_latest(request.app.state.registry)
    return Response(content=body, media_type=CONTENT_TYPE_LATEST)


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    state = request.app.state
    sites = state.store.snapshot()

    items = "\n".join(
        "<li>[%s] %s (plan: %s, %d metrics)</li>" % (
            escape(site.account_id),
            escape(site.site_name),
            escape(site.plan_name),
            len(site.samples),
        )
        for site in sites
    )
    page = f"""
<html>
<head><title>Pantheon Metrics Exporter</title></head>
<body>
<h1>Pantheon Metrics Exporter</h1>
<p><strong>Environment:</strong> {escape(state.environment)}</p>
<p><strong>Accounts monitored:</strong> {state.accounts}</p>
<p><strong>Sites monitored:</strong> {len(sites)}</p>
<ul>
{items}
</ul>
<p>Metrics are available at <a href="/metrics">/metrics</a></p>
</body>
</html>
"""
    return HTMLResponse(content=page)
