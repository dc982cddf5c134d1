"""Tests for the execution endpoint auth middleware."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from src.models import AuditEventType
from src.server.auth_middleware import AuthMiddleware

TOKEN = "test-node-token-12345"


def _create_app(audit_logger: MagicMock | None = None) -> AuthMiddleware:
    async def execute(request):  # noqa: ANN001
        return PlainTextResponse("OK")

    async def health(request):  # noqa: ANN001
        return PlainTextResponse("healthy")

    app = Starlette(routes=[Route("/execute", execute), Route("/health", health)])
    return AuthMiddleware(app, token=TOKEN, audit_logger=audit_logger)


@pytest.mark.asyncio
async def test_valid_token_passes() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/execute", headers={"Authorization": f"Bearer {TOKEN}"})
        assert resp.status_code == 200
        assert resp.text == "OK"


@pytest.mark.asyncio
async def test_missing_token_returns_401() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/execute")
        assert resp.status_code == 401


@pytest.mark.asyncio
async def test_wrong_scheme_returns_401() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/execute", headers={"Authorization": f"Basic {TOKEN}"})
        assert resp.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_returns_403_without_leaking() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/execute", headers={"Authorization": "Bearer wrong"})
        assert resp.status_code == 403
        assert "wrong" not in resp.text
        assert TOKEN not in resp.text


@pytest.mark.asyncio
async def test_health_endpoint_no_auth() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/health")
        assert resp.status_code == 200


@pytest.mark.asyncio
async def test_auth_failure_logged() -> None:
    mock_logger = MagicMock()
    app = _create_app(audit_logger=mock_logger)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.get("/execute", headers={"Authorization": "Bearer wrong"})

    event = mock_logger.log.call_args[0][0]
    assert event.event_type == AuditEventType.AUTH_FAILURE
    assert event.details == {"reason": "invalid_token"}
