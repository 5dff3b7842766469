"""Forced refresh route."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from backend.dependencies import get_coordinator
from backend.schemas import RefreshResponse
from flare_validators.coordinator import CacheCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["refresh"])


@router.post("/refresh", response_model=RefreshResponse)
async def force_refresh(coordinator: CacheCoordinator = Depends(get_coordinator)):
    """Refresh now, or wait on the refresh already running, and report the outcome."""
    outcome = await coordinator.refresh(reason="api")
    timestamp = outcome.snapshot.taken_at.isoformat() if outcome.snapshot else None

    if outcome.ok:
        return RefreshResponse(
            success=True,
            message="Cache refreshed successfully",
            timestamp=timestamp,
        )

    if outcome.snapshot is not None:
        message = f"Refresh failed; serving stale data from {timestamp}"
    else:
        message = "Refresh failed; no validator data is available yet"
    logger.warning("Forced refresh failed: %s", outcome.error)

    body = RefreshResponse(
        success=False,
        message=message,
        timestamp=timestamp,
        error=str(outcome.error) if outcome.error else None,
    )
    return JSONResponse(status_code=502, content=body.model_dump())
