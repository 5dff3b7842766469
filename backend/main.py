"""Flare Validator FastAPI application."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.config import ALLOWED_ORIGINS, API_NAME
from backend.routers import health, refresh, validators
from flare_validators import __version__
from flare_validators.config import ValidatorSettings
from flare_validators.coordinator import CacheCoordinator
from flare_validators.flare_client import FlareClient
from flare_validators.query import SnapshotUnavailableError, ValidatorNotFoundError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown resources."""
    # --- startup ---
    logger.info("Starting %s...", API_NAME)

    settings = ValidatorSettings()
    app.state.settings = settings

    flare_client = FlareClient(settings)
    app.state.flare_client = flare_client

    coordinator = CacheCoordinator(
        flare_client,
        refresh_interval=settings.REFRESH_INTERVAL_SECONDS,
        fetch_timeout=settings.FETCH_TIMEOUT_SECONDS,
    )
    app.state.coordinator = coordinator

    # Background refresh timer (skip in test mode)
    if os.getenv("TESTING") != "1":
        coordinator.start()

    logger.info(
        "%s ready (upstream=%s, refresh every %.0fs, fetch timeout %.1fs).",
        API_NAME,
        settings.API_BASE_URL,
        settings.REFRESH_INTERVAL_SECONDS,
        settings.FETCH_TIMEOUT_SECONDS,
    )
    yield

    # --- shutdown ---
    logger.info("Shutting down %s...", API_NAME)
    await coordinator.stop()
    await flare_client.close()
    logger.info("%s stopped.", API_NAME)


app = FastAPI(
    title=API_NAME,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(validators.router)
app.include_router(refresh.router)


@app.exception_handler(SnapshotUnavailableError)
async def snapshot_unavailable_handler(request: Request, exc: SnapshotUnavailableError):
    return JSONResponse(
        status_code=503,
        content={"detail": exc.detail},
        headers={"Retry-After": "30"},
    )


@app.exception_handler(ValidatorNotFoundError)
async def validator_not_found_handler(request: Request, exc: ValidatorNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"detail": str(exc)},
    )
