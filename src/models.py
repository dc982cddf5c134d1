"""Shared Pydantic data models for chatwoot-nodes."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Enums ---


class AuditEventType(str, Enum):
    AUTH_FAILURE = "auth_failure"
    ATTACHMENT_SENT = "attachment_sent"
    ATTACHMENT_FAILED = "attachment_failed"
    BATCH_ABORTED = "batch_aborted"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


MessageType = Literal["incoming", "outgoing"]
ContentType = Literal["article", "cards", "form", "input_email", "input_select"]


# --- Attachment request models ---


class AdditionalFields(BaseModel):
    """Optional message fields sent alongside an attachment.

    Accepts both the host's camelCase parameter names and snake_case.
    Key presence is tracked through ``model_fields_set``: a field that was
    given (even as ``False`` or ``""``) is distinguishable from one that was
    left out.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    content: str | None = None
    message_type: MessageType | None = Field(default=None, alias="messageType")
    private: bool | None = None
    content_type: ContentType | None = Field(default=None, alias="contentType")
    # Left untyped: JSON strings and structured values are both valid input
    content_attributes: Any = Field(default=None, alias="contentAttributes")
    template_params: Any = Field(default=None, alias="templateParams")
    attachment_mime_type: str | None = Field(default=None, alias="attachmentMimeType")

    @field_validator("message_type", "content_type", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        return None if value == "" else value

    def is_set(self, name: str) -> bool:
        return name in self.model_fields_set


class AttachmentRequest(BaseModel):
    """One item of work: send ``attachment_url`` into a conversation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    account_id: int = Field(alias="accountId")
    conversation_id: int = Field(alias="conversationId")
    attachment_url: str = Field(alias="attachmentUrl")
    file_name_override: str | None = Field(default=None, alias="fileName")
    additional_fields: AdditionalFields = Field(
        default_factory=AdditionalFields, alias="additionalFields",
    )


# --- Credential models ---


class Credentials(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = ""
    access_token: str | None = Field(default=None, alias="accessToken")


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    action: str
    result: str  # "success" | "failure" | "aborted"
    risk_level: RiskLevel
    item_index: int | None = None
    account_id: int | None = None
    conversation_id: int | None = None
    details: dict[str, object] | None = None
