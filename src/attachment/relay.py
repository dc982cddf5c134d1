"""Attachment relay pipeline.

Downloads a remote file and re-uploads it as a ChatWoot message attachment,
one item at a time.

Pipeline stages per item:
1. Fetch the source bytes
2. Derive file name and MIME type
3. Assemble the multipart form
4. Submit to the message-creation endpoint
5. Normalize the response

Credentials are checked once before the loop. Every other failure is
item-level: recorded as an error result, or raised in fail-fast mode.
Each call creates new messages; re-running a batch sends duplicates.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from src.attachment.errors import (
    ConfigurationError,
    ItemProcessingError,
    TransportError,
    ValidationError,
)
from src.attachment.form import build_message_form
from src.attachment.metadata import derive_metadata, normalize_body, sanitize_base_url
from src.attachment.models import SubmissionResult
from src.models import (
    AttachmentRequest,
    AuditEvent,
    AuditEventType,
    Credentials,
    RiskLevel,
)

if TYPE_CHECKING:
    from src.attachment.transport import HttpTransport
    from src.audit.logger import AuditLogger

logger = logging.getLogger(__name__)

CREDENTIAL_NAME = "chatwootApi"

CredentialResolver = Callable[[str], Credentials]


def messages_url(base_url: str, account_id: int, conversation_id: int) -> str:
    return (
        f"{base_url}/api/v1/accounts/{account_id}"
        f"/conversations/{conversation_id}/messages"
    )


def parse_request(record: AttachmentRequest | Mapping[str, Any]) -> AttachmentRequest:
    """Build an AttachmentRequest from host node parameters."""
    if isinstance(record, AttachmentRequest):
        return record
    try:
        return AttachmentRequest.model_validate(record)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"Invalid parameter '{field}': {first['msg']}", field=field) from exc


def normalize_response(response: Any) -> Any:
    if isinstance(response, str | bytes):
        try:
            return json.loads(response)
        except json.JSONDecodeError as exc:
            raise TransportError("Cannot parse API response as JSON.") from exc
    return response


class AttachmentRelay:
    """Sends attachments fetched from URLs into ChatWoot conversations."""

    def __init__(
        self,
        transport: HttpTransport,
        resolve_credentials: CredentialResolver,
        credential_name: str = CREDENTIAL_NAME,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._transport = transport
        self._resolve_credentials = resolve_credentials
        self._credential_name = credential_name
        self._audit = audit_logger

    def load_credentials(self) -> tuple[Credentials, str]:
        """Resolve credentials and return them with the sanitized base URL."""
        credentials = self._resolve_credentials(self._credential_name)
        if not credentials.url:
            raise ConfigurationError("ChatWoot API URL is missing in credentials.")
        return credentials, sanitize_base_url(credentials.url)

    async def process(
        self,
        items: Sequence[AttachmentRequest | Mapping[str, Any]],
        fail_fast: bool = False,
    ) -> list[SubmissionResult]:
        """Run the pipeline for every item, in order.

        Items may be AttachmentRequest instances or raw parameter mappings;
        a mapping that fails to parse is an item-level ValidationError.
        """
        credentials, base_url = self.load_credentials()

        results: list[SubmissionResult] = []
        for index, record in enumerate(items):
            request: AttachmentRequest | None = None
            try:
                request = parse_request(record)
                response = await self._process_item(request, credentials, base_url)
            except ConfigurationError:
                raise
            except Exception as exc:
                self._log_failure(index, request, exc, aborted=fail_fast)
                if fail_fast:
                    raise ItemProcessingError(index, exc) from exc
                results.append(SubmissionResult(paired_item=index, error=str(exc)))
                continue

            self._log_success(index, request)
            results.append(SubmissionResult(paired_item=index, json=response))
        return results

    async def _process_item(
        self,
        request: AttachmentRequest,
        credentials: Credentials,
        base_url: str,
    ) -> Any:
        asset = await self._transport.get(request.attachment_url)
        content = normalize_body(asset.content)

        fields = request.additional_fields
        metadata = derive_metadata(
            request.file_name_override,
            fields.attachment_mime_type,
            asset.headers,
            request.attachment_url,
        )
        form = build_message_form(content, metadata.file_name, metadata.mime_type, fields)

        url = messages_url(base_url, request.account_id, request.conversation_id)
        logger.debug(
            "Uploading %s (%s, %d bytes) to %s",
            metadata.file_name, metadata.mime_type, len(content), url,
        )
        response = await self._transport.post_multipart(url, form, credentials)
        return normalize_response(response)

    def _log_success(self, index: int, request: AttachmentRequest) -> None:
        logger.info(
            "Attachment sent to account %s conversation %s (item %d)",
            request.account_id, request.conversation_id, index,
        )
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.ATTACHMENT_SENT,
                action="send_attachment",
                result="success",
                risk_level=RiskLevel.INFO,
                item_index=index,
                account_id=request.account_id,
                conversation_id=request.conversation_id,
                details={"attachment_url": request.attachment_url},
            ))

    def _log_failure(
        self,
        index: int,
        request: AttachmentRequest | None,
        exc: Exception,
        aborted: bool,
    ) -> None:
        logger.warning("Attachment item %d failed: %s", index, exc)
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=(
                    AuditEventType.BATCH_ABORTED if aborted
                    else AuditEventType.ATTACHMENT_FAILED
                ),
                action="send_attachment",
                result="aborted" if aborted else "failure",
                risk_level=RiskLevel.MEDIUM,
                item_index=index,
                account_id=request.account_id if request else None,
                conversation_id=request.conversation_id if request else None,
                details={"error": str(exc), "error_type": type(exc).__name__},
            ))
