"""Health and readiness endpoints."""

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: ok while the process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready(request: Request):
    """Readiness probe: at least one site has been discovered."""
    sites = len(request.app.state.store)
    if sites == 0:
        raise HTTPException(status_code=503, detail="no sites discovered yet")
    return {"status": "ready", "sites": sites}
