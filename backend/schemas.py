"""Pydantic v2 response models for the Flare Validator API."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from flare_validators.coordinator import CoordinatorState
from flare_validators.models import ValidatorView


# ---------------------------------------------------------------------------
# Meta
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str
    timestamp: str


class UsageResponse(BaseModel):
    api_name: str
    version: str
    endpoints: list[str]
    timestamp: str


class StatusResponse(BaseModel):
    """Cache coordinator state and snapshot staleness."""

    model_config = ConfigDict(use_enum_values=True)

    state: CoordinatorState
    taken_at: datetime | None
    age_seconds: float | None
    stale: bool
    last_error: str | None
    last_attempt_at: datetime | None
    last_success_at: datetime | None
    consecutive_failures: int
    refresh_count: int
    validator_count: int


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------

class ValidatorListResponse(BaseModel):
    """Envelope shared by every listing endpoint.

    ``timestamp`` is when the served snapshot was taken, not when the
    request was answered.
    """

    timestamp: str
    count: int
    validators: list[ValidatorView]
    age_seconds: float
    stale: bool


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------

class RefreshResponse(BaseModel):
    success: bool
    message: str
    timestamp: str | None
    error: str | None = None
