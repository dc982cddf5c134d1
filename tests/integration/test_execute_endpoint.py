"""Integration tests for the node execution endpoint."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.attachment.errors import UpstreamError
from src.attachment.relay import AttachmentRelay
from src.models import AuditEventType
from src.server.app import create_app
from tests.conftest import FakeTransport, make_asset, make_credentials, make_resolver

TOKEN = "node-token"
AUTH = {"Authorization": f"Bearer {TOKEN}"}
SOURCE_URL = "https://files.example.test/a.png"


def _item(url: str = SOURCE_URL, **extra: Any) -> dict[str, Any]:
    item: dict[str, Any] = {
        "accountId": 1,
        "conversationId": 2,
        "attachmentUrl": url,
        "additionalFields": {"content": "pic", "private": False},
    }
    item.update(extra)
    return item


def _make_app(transport: FakeTransport, **kwargs: Any) -> Any:
    relay = AttachmentRelay(
        transport,
        kwargs.pop("resolver", make_resolver()),
        audit_logger=kwargs.get("audit_logger"),
    )
    return create_app(relay, TOKEN, **kwargs)


@pytest.mark.asyncio
async def test_health_needs_no_auth() -> None:
    app = _make_app(FakeTransport())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/health")
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_node_description_served() -> None:
    app = _make_app(FakeTransport())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/node")
    assert resp.json()["name"] == "chatWootAttachment"


@pytest.mark.asyncio
async def test_execute_requires_token() -> None:
    app = _make_app(FakeTransport())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/execute", json={"items": [_item()]})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_execute_sends_attachment() -> None:
    transport = FakeTransport(
        {SOURCE_URL: make_asset(b"\x89PNG", {"content-type": "image/png"})},
        responses=[{"id": 99, "attachments": [{"file_type": "image"}]}],
    )
    app = _make_app(transport)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/execute", json={"items": [_item()]}, headers=AUTH)

    assert resp.status_code == 200
    assert resp.json() == {"items": [
        {"json": {"id": 99, "attachments": [{"file_type": "image"}]}, "pairedItem": {"item": 0}},
    ]}
    _, form, _ = transport.posts[0]
    assert form.get("private") == "false"
    assert form.files[0][1].file_name == "a.png"


@pytest.mark.asyncio
async def test_continue_on_fail_keeps_order() -> None:
    transport = FakeTransport({SOURCE_URL: make_asset()})
    app = _make_app(transport)
    body = {
        "items": [_item("https://gone.example.test/x"), _item()],
        "continueOnFail": True,
    }
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/execute", json=body, headers=AUTH)

    items = resp.json()["items"]
    assert resp.status_code == 200
    assert [i["pairedItem"]["item"] for i in items] == [0, 1]
    assert "error" in items[0]["json"]
    assert items[1]["json"] == {"id": 1}


@pytest.mark.asyncio
async def test_fail_fast_validation_error_returns_422() -> None:
    app = _make_app(FakeTransport({SOURCE_URL: make_asset()}))
    bad = _item(additionalFields={"templateParams": "{oops"})
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/execute", json={"items": [bad]}, headers=AUTH)

    assert resp.status_code == 422
    assert resp.json() == {"error": "Cannot parse Template Params as JSON.", "item": 0}


@pytest.mark.asyncio
async def test_fail_fast_upstream_error_returns_502() -> None:
    transport = FakeTransport(
        {SOURCE_URL: make_asset()}, responses=[UpstreamError(401, "Invalid access token")],
    )
    app = _make_app(transport)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/execute", json={"items": [_item()]}, headers=AUTH)

    assert resp.status_code == 502
    assert "Invalid access token" in resp.json()["error"]


@pytest.mark.asyncio
async def test_missing_credentials_url_returns_500() -> None:
    app = _make_app(FakeTransport(), resolver=make_resolver(make_credentials(url="")))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/execute", json={"items": [_item()]}, headers=AUTH)

    assert resp.status_code == 500
    assert "URL is missing" in resp.json()["error"]


@pytest.mark.asyncio
async def test_deliveries_audited() -> None:
    audit = MagicMock()
    app = _make_app(FakeTransport({SOURCE_URL: make_asset()}), audit_logger=audit)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.post("/execute", json={"items": [_item()]}, headers=AUTH)

    event = audit.log.call_args[0][0]
    assert event.event_type == AuditEventType.ATTACHMENT_SENT
    assert event.conversation_id == 2
