"""Health, usage and cache status routes."""
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from backend.config import API_NAME
from backend.dependencies import get_coordinator
from backend.schemas import HealthResponse, StatusResponse, UsageResponse
from flare_validators import __version__
from flare_validators.coordinator import CacheCoordinator

router = APIRouter(tags=["health"])

ENDPOINTS = [
    "/health",
    "/api/status",
    "/api/validators",
    "/api/validators/eligible",
    "/api/validators/ineligible",
    "/api/validators/top?limit=N",
    "/api/validators/{id}",
    "/api/refresh",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/", response_model=UsageResponse)
def usage() -> UsageResponse:
    """List the available endpoints."""
    return UsageResponse(api_name=API_NAME, version=__version__, endpoints=ENDPOINTS, timestamp=_now())


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness only; does not depend on validator data being loaded."""
    return HealthResponse(status="ok", timestamp=_now())


@router.get("/api/status", response_model=StatusResponse)
def cache_status(coordinator: CacheCoordinator = Depends(get_coordinator)) -> StatusResponse:
    """Report refresh state and how old the served snapshot is."""
    return StatusResponse(**asdict(coordinator.status()))
