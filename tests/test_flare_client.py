"""Unit tests for the Flare explorer client.

All HTTP traffic goes through ``httpx.MockTransport``; no real requests are
made.
"""

from __future__ import annotations

import httpx
import pytest

from flare_validators.config import ValidatorSettings
from flare_validators.flare_client import (
    FetchError,
    FlareClient,
    MalformedUpstreamData,
    TransientFetchError,
)
from tests.conftest import make_entity

BASE_URL = "https://explorer.test/api/v0"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_client(handler, page_size: int = 2, max_pages: int = 3) -> FlareClient:
    settings = ValidatorSettings(
        API_BASE_URL=BASE_URL,
        ENTITY_PAGE_SIZE=page_size,
        MAX_PAGES=max_pages,
        FETCH_TIMEOUT_SECONDS=1.0,
    )
    http_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return FlareClient(settings, http_client=http_client)


def _pages(*pages: list[dict]):
    """Handler serving *pages* by offset and recording each request."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        limit = int(request.url.params["limit"])
        offset = int(request.url.params["offset"])
        index = offset // limit
        results = pages[index] if index < len(pages) else []
        return httpx.Response(200, json={"count": sum(len(p) for p in pages), "results": results})

    return handler, requests


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class TestExceptionHierarchy:
    def test_transient_is_retryable(self):
        exc = TransientFetchError("boom", status_code=503)
        assert isinstance(exc, FetchError)
        assert exc.retryable is True
        assert exc.status_code == 503
        assert "503" in str(exc)

    def test_malformed_is_not_retryable(self):
        exc = MalformedUpstreamData("bad payload")
        assert isinstance(exc, FetchError)
        assert exc.retryable is False
        assert exc.status_code is None
        assert str(exc) == "bad payload"


# ---------------------------------------------------------------------------
# Successful fetches
# ---------------------------------------------------------------------------


class TestFetch:
    async def test_single_short_page(self):
        handler, requests = _pages([make_entity(3)])
        client = _make_client(handler)

        records = await client.fetch()

        assert [r.id for r in records] == [3]
        assert len(requests) == 1
        assert requests[0].url.path == "/api/v0/entity"
        assert requests[0].url.params["offset"] == "0"
        assert requests[0].url.params["limit"] == "2"

    async def test_paginates_until_short_page(self):
        handler, requests = _pages(
            [make_entity(1), make_entity(2)],
            [make_entity(3), make_entity(4)],
            [make_entity(5)],
        )
        client = _make_client(handler)

        records = await client.fetch()

        assert [r.id for r in records] == [1, 2, 3, 4, 5]
        assert [r.url.params["offset"] for r in requests] == ["0", "2", "4"]

    async def test_stops_at_max_pages(self, caplog):
        handler, requests = _pages(
            [make_entity(1), make_entity(2)],
            [make_entity(3), make_entity(4)],
        )
        client = _make_client(handler, max_pages=1)

        records = await client.fetch()

        assert [r.id for r in records] == [1, 2]
        assert len(requests) == 1
        assert "Stopped after 1 pages" in caplog.text

    async def test_empty_results(self):
        handler, _ = _pages([])
        client = _make_client(handler)
        assert await client.fetch() == []

    async def test_records_are_flattened(self):
        handler, _ = _pages([make_entity(8)])
        client = _make_client(handler)

        (record,) = await client.fetch()

        assert record.node_id == "NodeID-0008"
        assert record.passes == 3
        assert record.reward_rate_wnat == 0.001


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFetchFailures:
    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    async def test_retryable_statuses_are_transient(self, status):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(status, text="unavailable")

        client = _make_client(handler)
        with pytest.raises(TransientFetchError) as exc_info:
            await client.fetch()

        assert exc_info.value.status_code == status
        # No internal retries.
        assert len(calls) == 1

    @pytest.mark.parametrize("status", [400, 403, 404])
    async def test_client_error_statuses_are_malformed(self, status):
        client = _make_client(lambda request: httpx.Response(status, text="nope"))
        with pytest.raises(MalformedUpstreamData) as exc_info:
            await client.fetch()
        assert exc_info.value.status_code == status

    async def test_timeout_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = _make_client(handler)
        with pytest.raises(TransientFetchError, match="Timed out"):
            await client.fetch()

    async def test_connection_error_is_transient(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _make_client(handler)
        with pytest.raises(TransientFetchError, match="Network error"):
            await client.fetch()

    async def test_non_json_body_is_malformed(self):
        client = _make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(MalformedUpstreamData, match="not JSON"):
            await client.fetch()

    async def test_missing_results_is_malformed(self):
        client = _make_client(lambda request: httpx.Response(200, json={"count": 0}))
        with pytest.raises(MalformedUpstreamData, match="failed validation"):
            await client.fetch()

    async def test_entity_without_id_is_malformed(self):
        entity = make_entity(1)
        del entity["id"]
        client = _make_client(lambda request: httpx.Response(200, json={"results": [entity]}))
        with pytest.raises(MalformedUpstreamData):
            await client.fetch()

    async def test_failure_on_later_page_discards_partial_results(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params["offset"] == "0":
                return httpx.Response(200, json={"results": [make_entity(1), make_entity(2)]})
            return httpx.Response(503)

        client = _make_client(handler)
        with pytest.raises(TransientFetchError):
            await client.fetch()


class TestLifecycle:
    async def test_borrowed_http_client_left_open(self):
        handler, _ = _pages([])
        http_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
        client = FlareClient(ValidatorSettings(API_BASE_URL=BASE_URL), http_client=http_client)

        await client.close()

        assert http_client.is_closed is False
        await http_client.aclose()

    async def test_owned_http_client_closed(self):
        async with FlareClient(ValidatorSettings(API_BASE_URL=BASE_URL)) as client:
            inner = client._client
        assert inner.is_closed is True
