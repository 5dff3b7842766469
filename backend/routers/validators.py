"""Validator listing routes, all answered from the current snapshot."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from backend.dependencies import get_coordinator, get_settings
from backend.schemas import ValidatorListResponse
from flare_validators import query
from flare_validators.config import ValidatorSettings
from flare_validators.coordinator import CacheCoordinator, SnapshotReading
from flare_validators.models import ValidatorView

router = APIRouter(prefix="/api/validators", tags=["validators"])


def _envelope(reading: SnapshotReading, validators: list[ValidatorView]) -> ValidatorListResponse:
    return ValidatorListResponse(
        timestamp=reading.snapshot.taken_at.isoformat(),
        count=len(validators),
        validators=validators,
        age_seconds=reading.age_seconds,
        stale=reading.stale,
    )


@router.get("", response_model=ValidatorListResponse)
def list_validators(coordinator: CacheCoordinator = Depends(get_coordinator)) -> ValidatorListResponse:
    """Every validator in upstream order."""
    reading = coordinator.read_snapshot()
    return _envelope(reading, query.all_validators(reading.snapshot))


@router.get("/eligible", response_model=ValidatorListResponse)
def list_eligible(coordinator: CacheCoordinator = Depends(get_coordinator)) -> ValidatorListResponse:
    reading = coordinator.read_snapshot()
    return _envelope(reading, query.eligible(reading.snapshot))


@router.get("/ineligible", response_model=ValidatorListResponse)
def list_ineligible(coordinator: CacheCoordinator = Depends(get_coordinator)) -> ValidatorListResponse:
    reading = coordinator.read_snapshot()
    return _envelope(reading, query.ineligible(reading.snapshot))


@router.get("/top", response_model=ValidatorListResponse)
def list_top(
    limit: int | None = Query(default=None, ge=0, description="Number of validators to return"),
    eligible_only: bool = Query(default=False, description="Rank eligible validators only"),
    coordinator: CacheCoordinator = Depends(get_coordinator),
    settings: ValidatorSettings = Depends(get_settings),
) -> ValidatorListResponse:
    """Validators ranked by combined reward rate, highest first."""
    n = settings.DEFAULT_TOP_LIMIT if limit is None else limit
    reading = coordinator.read_snapshot()
    return _envelope(reading, query.top_n(reading.snapshot, n, eligible_only=eligible_only))


@router.get("/{validator_id}", response_model=ValidatorView)
def get_validator(
    validator_id: int,
    coordinator: CacheCoordinator = Depends(get_coordinator),
) -> ValidatorView:
    return query.by_id(coordinator.current_snapshot(), validator_id)
