"""FastAPI dependency injection helpers."""
from __future__ import annotations

from fastapi import Request

from flare_validators.config import ValidatorSettings
from flare_validators.coordinator import CacheCoordinator


def get_coordinator(request: Request) -> CacheCoordinator:
    """Return the shared CacheCoordinator from app state."""
    return request.app.state.coordinator


def get_settings(request: Request) -> ValidatorSettings:
    """Return the ValidatorSettings the app was started with."""
    return request.app.state.settings
