"""Shared test fixtures for chatwoot-nodes."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.attachment.errors import TransportError
from src.attachment.form import MultipartForm
from src.attachment.models import DownloadedAsset
from src.audit.logger import AuditLogger
from src.models import (
    AdditionalFields,
    AttachmentRequest,
    AuditEvent,
    AuditEventType,
    Credentials,
    RiskLevel,
)

BASE_URL = "https://chat.example.test"
TOKEN = "cw-token"


class FakeTransport:
    """In-memory HttpTransport recording every call.

    ``downloads`` maps URL -> DownloadedAsset or an exception to raise.
    ``responses`` is consumed in order for each submission.
    """

    def __init__(
        self,
        downloads: Mapping[str, DownloadedAsset | Exception] | None = None,
        responses: list[Any] | None = None,
    ) -> None:
        self.downloads = dict(downloads or {})
        self.responses = list(responses or [])
        self.gets: list[str] = []
        self.posts: list[tuple[str, MultipartForm, Credentials]] = []

    async def get(self, url: str) -> DownloadedAsset:
        self.gets.append(url)
        asset = self.downloads.get(url)
        if asset is None:
            raise TransportError(f"Failed to download {url}: connection refused")
        if isinstance(asset, Exception):
            raise asset
        return asset

    async def post_multipart(
        self, url: str, form: MultipartForm, credentials: Credentials,
    ) -> Any:
        self.posts.append((url, form, credentials))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return {"id": len(self.posts)}


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def audit_log_path(tmp_path: Path) -> Path:
    return tmp_path / "audit" / "deliveries.jsonl"


# --- Factory functions for test data ---


def make_credentials(**kwargs: Any) -> Credentials:
    defaults: dict[str, Any] = {"url": BASE_URL, "access_token": TOKEN}
    defaults.update(kwargs)
    return Credentials(**defaults)


def make_resolver(credentials: Credentials | None = None):
    creds = credentials or make_credentials()

    def _resolve(name: str) -> Credentials:
        return creds

    return _resolve


def make_asset(
    content: bytes = b"%PDF-1.4 data",
    headers: dict[str, Any] | None = None,
) -> DownloadedAsset:
    return DownloadedAsset(content=content, headers=headers or {})


def make_request(**kwargs: Any) -> AttachmentRequest:
    """Factory for AttachmentRequest with sensible defaults."""
    defaults: dict[str, Any] = {
        "account_id": 1,
        "conversation_id": 42,
        "attachment_url": "https://files.example.test/docs/report.pdf",
    }
    additional = kwargs.pop("additional_fields", None)
    defaults.update(kwargs)
    if isinstance(additional, dict):
        defaults["additional_fields"] = AdditionalFields(**additional)
    elif additional is not None:
        defaults["additional_fields"] = additional
    return AttachmentRequest(**defaults)


def make_audit_event(**kwargs: Any) -> AuditEvent:
    """Factory for AuditEvent with sensible defaults."""
    defaults: dict[str, Any] = {
        "event_type": AuditEventType.ATTACHMENT_SENT,
        "action": "send_attachment",
        "result": "success",
        "risk_level": RiskLevel.INFO,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)
