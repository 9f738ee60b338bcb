"""
FastAPI endpoint tests for the switch server.

Tests both endpoints using httpx AsyncClient with proper
lifespan management via asgi-lifespan.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request
from starlette.responses import Response

from hotswap import StatefulDispatcher
from switch_server import create_app
from variants import build_registry


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def dispatcher() -> StatefulDispatcher:
    return StatefulDispatcher("quiet", build_registry())


@pytest_asyncio.fixture
async def client(dispatcher: StatefulDispatcher) -> AsyncIterator[AsyncClient]:
    """
    Create async test client with proper lifespan management.

    Uses LifespanManager so the dispatcher is attached to request state.
    """
    app = create_app(dispatcher)

    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


def variant_messages(caplog: pytest.LogCaptureFixture) -> list[tuple[str, str]]:
    return [
        (record.name, record.getMessage())
        for record in caplog.records
        if record.name.startswith("variants.")
    ]


# =============================================================================
# Status Endpoint Tests
# =============================================================================


class TestStatusEndpoint:
    """Tests for / endpoint."""

    @pytest.mark.asyncio
    async def test_status_returns_ok(self, client: AsyncClient) -> None:
        response = await client.get("/")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.text == '{"ok":true}'

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method", ["POST", "PUT", "PATCH", "DELETE", "TRACE", "PROPFIND", "REPORT"]
    )
    async def test_status_accepts_any_method_and_ignores_body(
        self, client: AsyncClient, method: str
    ) -> None:
        response = await client.request(method, "/", content=b"not-json")

        assert response.status_code == 200
        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_status_ok_under_verbose(
        self, client: AsyncClient, dispatcher: StatefulDispatcher
    ) -> None:
        dispatcher.update("verbose")

        response = await client.get("/")

        assert response.status_code == 200
        assert response.json() == {"ok": True}


# =============================================================================
# Config Endpoint Tests
# =============================================================================


class TestConfigEndpoint:
    """Tests for /config endpoint."""

    @pytest.mark.asyncio
    async def test_switch_to_verbose(
        self, client: AsyncClient, dispatcher: StatefulDispatcher
    ) -> None:
        response = await client.post("/config", json={"option": "verbose"})

        assert response.status_code == 200
        assert response.text == '{"changed":true}'
        assert dispatcher.active_name == "verbose"

    @pytest.mark.asyncio
    async def test_switch_back_to_quiet(
        self, client: AsyncClient, dispatcher: StatefulDispatcher
    ) -> None:
        await client.post("/config", json={"option": "verbose"})
        response = await client.put("/config", json={"option": "quiet"})

        assert response.status_code == 200
        assert response.json() == {"changed": True}
        assert dispatcher.active_name == "quiet"

    @pytest.mark.asyncio
    async def test_unknown_option_rejected(
        self, client: AsyncClient, dispatcher: StatefulDispatcher
    ) -> None:
        response = await client.post("/config", json={"option": "bogus"})

        assert response.status_code == 400
        assert response.text == "invalid middleware name"
        assert response.headers["content-type"].startswith("text/plain")
        assert dispatcher.active_name == "quiet"

    @pytest.mark.asyncio
    async def test_invalid_json_rejected(
        self, client: AsyncClient, dispatcher: StatefulDispatcher
    ) -> None:
        response = await client.post("/config", content=b"not-json")

        assert response.status_code == 400
        assert response.text.startswith("invalid request body: ")
        assert "JSON" in response.text
        assert dispatcher.active_name == "quiet"

    @pytest.mark.asyncio
    async def test_empty_body_rejected(self, client: AsyncClient) -> None:
        response = await client.get("/config")

        assert response.status_code == 400
        assert response.text.startswith("invalid request body: ")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"[]", b'"verbose"', b'{"option": 1}'])
    async def test_non_object_or_non_string_option_rejected(
        self, client: AsyncClient, dispatcher: StatefulDispatcher, body: bytes
    ) -> None:
        response = await client.post("/config", content=body)

        assert response.status_code == 400
        assert response.text.startswith("invalid request body: ")
        assert dispatcher.active_name == "quiet"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["TRACE", "PROPFIND", "REPORT"])
    async def test_switch_accepts_any_method(
        self, client: AsyncClient, dispatcher: StatefulDispatcher, method: str
    ) -> None:
        response = await client.request(
            method, "/config", content=b'{"option":"verbose"}'
        )

        assert response.status_code == 200
        assert response.json() == {"changed": True}
        assert dispatcher.active_name == "verbose"

    @pytest.mark.asyncio
    async def test_missing_option_rejected(
        self, client: AsyncClient, dispatcher: StatefulDispatcher
    ) -> None:
        response = await client.post("/config", json={"mode": "verbose"})

        assert response.status_code == 400
        assert response.text == 'missing "option" field'
        assert dispatcher.active_name == "quiet"


# =============================================================================
# Middleware Integration Tests
# =============================================================================


class TestSwitchableMiddleware:
    """The active variant wraps every request."""

    @pytest.mark.asyncio
    async def test_quiet_logs_one_record(
        self, client: AsyncClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.INFO, logger="variants")

        await client.get("/")

        assert variant_messages(caplog) == [("variants.quiet", "/")]

    @pytest.mark.asyncio
    async def test_verbose_after_switch_logs_start_and_elapsed(
        self, client: AsyncClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.INFO, logger="variants")

        switch = await client.post("/config", json={"option": "verbose"})
        assert switch.status_code == 200
        caplog.clear()

        await client.get("/")

        messages = variant_messages(caplog)
        assert len(messages) == 2
        assert messages[0] == ("variants.verbose", "/")
        assert messages[1][0] == "variants.verbose"
        assert messages[1][1].startswith("/ ")

    @pytest.mark.asyncio
    async def test_config_request_itself_runs_under_previous_variant(
        self, client: AsyncClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.INFO, logger="variants")

        await client.post("/config", json={"option": "verbose"})

        assert variant_messages(caplog) == [("variants.quiet", "/config")]

    @pytest.mark.asyncio
    async def test_rejected_config_is_still_wrapped(
        self, client: AsyncClient, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.INFO, logger="variants")

        response = await client.post("/config?source=test", content=b"not-json")

        assert response.status_code == 400
        assert variant_messages(caplog) == [("variants.quiet", "/config?source=test")]

    @pytest.mark.asyncio
    async def test_concurrent_requests_while_switching(
        self, client: AsyncClient, dispatcher: StatefulDispatcher
    ) -> None:
        status_calls = [client.get("/") for _ in range(50)]
        switch_calls = [
            client.post("/config", json={"option": name})
            for name in ("verbose", "quiet") * 10
        ]

        responses = await asyncio.gather(*status_calls, *switch_calls)

        assert all(response.status_code == 200 for response in responses)
        assert all(response.json() == {"ok": True} for response in responses[:50])
        assert dispatcher.active_name in {"quiet", "verbose"}


# =============================================================================
# Unhandled Error Tests
# =============================================================================


async def exploding_handler(request: Request) -> Response:
    raise RuntimeError("handler exploded")


@pytest_asyncio.fixture
async def faulty_client(dispatcher: StatefulDispatcher) -> AsyncIterator[AsyncClient]:
    """Client for an app with an extra route that always raises."""
    app = create_app(dispatcher)
    app.add_route("/boom", exploding_handler)

    async with LifespanManager(app) as manager:
        transport = ASGITransport(app=manager.app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac


class TestUnhandledErrors:
    """Unexpected handler failures become a 500 JSON error."""

    @pytest.mark.asyncio
    async def test_unhandled_exception_returns_internal_error(
        self, faulty_client: AsyncClient
    ) -> None:
        response = await faulty_client.get("/boom")

        assert response.status_code == 500
        assert response.json() == {
            "ok": False,
            "error": "Internal server error",
            "error_code": "INTERNAL_ERROR",
        }

    @pytest.mark.asyncio
    async def test_verbose_logs_elapsed_when_handler_fails(
        self,
        faulty_client: AsyncClient,
        dispatcher: StatefulDispatcher,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        dispatcher.update("verbose")
        caplog.set_level(logging.INFO, logger="variants")

        response = await faulty_client.get("/boom")

        assert response.status_code == 500
        messages = variant_messages(caplog)
        assert len(messages) == 2
        assert messages[0] == ("variants.verbose", "/boom")
        assert messages[1][1].startswith("/boom ")
