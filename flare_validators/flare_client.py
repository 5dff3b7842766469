"""Async client for the Flare systems explorer ``/entity`` endpoint.

Fetches every entity page, validates the payload against the upstream
models and flattens each entity into a ``RawValidatorRecord``.  The client
never retries: each call is one bounded attempt, and retry policy belongs to
the cache coordinator.

Usage::

    async with FlareClient() as client:
        records = await client.fetch()
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from flare_validators.config import ValidatorSettings
from flare_validators.models import FlareEntityList, RawValidatorRecord

logger = logging.getLogger(__name__)

_ENTITY_ENDPOINT = "/entity"


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------


class FetchError(Exception):
    """Raised when a fetch from upstream does not yield usable records."""

    retryable: bool = False

    def __init__(self, detail: str, status_code: int | None = None) -> None:
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail if status_code is None else f"{detail} (status {status_code})")


class TransientFetchError(FetchError):
    """Network failure, timeout, 429 or 5xx.  Worth trying again next cycle."""

    retryable = True


class MalformedUpstreamData(FetchError):
    """Upstream answered, but with a payload or status we cannot use."""

    retryable = False


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class FlareClient:
    """Async wrapper around the explorer's paginated entity listing.

    Parameters
    ----------
    settings:
        Source of base URL, page size, page cap and timeout.  Defaults to a
        fresh ``ValidatorSettings()`` read from the environment.
    http_client:
        Pre-built ``httpx.AsyncClient``.  When given, the caller owns it and
        ``close()`` leaves it open.
    """

    def __init__(
        self,
        settings: ValidatorSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or ValidatorSettings()
        self.base_url = self.settings.API_BASE_URL.rstrip("/")
        self.page_size = self.settings.ENTITY_PAGE_SIZE
        self.max_pages = self.settings.MAX_PAGES

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.settings.FETCH_TIMEOUT_SECONDS),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
        )

    # ------------------------------------------------------------------
    # Context-manager protocol
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FlareClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Single page
    # ------------------------------------------------------------------

    async def _get_page(self, offset: int) -> FlareEntityList:
        """Fetch and validate one page of entities starting at *offset*.

        Raises
        ------
        TransientFetchError
            On transport errors, timeouts, 429 and 5xx.
        MalformedUpstreamData
            On other non-success statuses, non-JSON bodies and payloads that
            fail validation.
        """
        params = {"limit": self.page_size, "offset": offset}
        try:
            response = await self._client.get(_ENTITY_ENDPOINT, params=params)
        except httpx.TimeoutException as exc:
            raise TransientFetchError(f"Timed out fetching entities at offset {offset}: {exc!r}") from exc
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"Network error fetching entities at offset {offset}: {exc!r}") from exc

        status = response.status_code
        if status == 429 or status >= 500:
            raise TransientFetchError("Upstream unavailable", status_code=status)
        if not 200 <= status < 300:
            raise MalformedUpstreamData("Upstream rejected entity request", status_code=status)

        try:
            body = response.json()
        except ValueError as exc:
            raise MalformedUpstreamData(f"Entity response at offset {offset} is not JSON") from exc

        try:
            return FlareEntityList.model_validate(body)
        except ValidationError as exc:
            raise MalformedUpstreamData(
                f"Entity response at offset {offset} failed validation: "
                f"{exc.error_count()} error(s), first: {exc.errors()[0]['loc']}"
            ) from exc

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch(self) -> list[RawValidatorRecord]:
        """Fetch all validator records in upstream order.

        Pages are requested until one comes back short or ``max_pages`` is
        reached.
        """
        records: list[RawValidatorRecord] = []

        for page in range(self.max_pages):
            offset = page * self.page_size
            logger.debug("Fetching entities offset=%d limit=%d", offset, self.page_size)
            entity_list = await self._get_page(offset)
            records.extend(entity.to_record() for entity in entity_list.results)
            if len(entity_list.results) < self.page_size:
                break
        else:
            logger.warning(
                "Stopped after %d pages (%d records); more entities may exist upstream",
                self.max_pages,
                len(records),
            )

        logger.info("Fetched %d validator records from %s", len(records), self.base_url)
        return records
