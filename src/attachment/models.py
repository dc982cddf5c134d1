"""Data models for the attachment relay pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DownloadedAsset:
    """Raw bytes and response headers of a fetched attachment source."""

    content: bytes
    headers: Mapping[str, Any] = field(default_factory=dict)
    status_code: int = 200


@dataclass(frozen=True)
class DerivedMetadata:
    file_name: str
    mime_type: str


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of one item: the created message, or an error message."""

    paired_item: int
    json: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_item(self) -> dict[str, Any]:
        """Render as a host output record tagged with its input index."""
        payload = self.json if self.error is None else {"error": self.error}
        return {"json": payload, "pairedItem": {"item": self.paired_item}}
