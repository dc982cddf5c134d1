"""ChatWoot Attachment node — description and host execution adapter."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from src.attachment.relay import CREDENTIAL_NAME, AttachmentRelay


def _option(name: str, value: str) -> dict[str, str]:
    return {"name": name, "value": value}


NODE_DESCRIPTION: dict[str, Any] = {
    "displayName": "ChatWoot Attachment",
    "name": "chatWootAttachment",
    "icon": "file:chatwoot.svg",
    "group": ["transform"],
    "version": 1,
    "subtitle": "Send attachment from URL",
    "description": "Send ChatWoot message attachments by fetching a public URL.",
    "defaults": {"name": "ChatWoot Attachment"},
    "inputs": ["main"],
    "outputs": ["main"],
    "credentials": [{"name": CREDENTIAL_NAME, "required": True}],
    "properties": [
        {
            "displayName": "Account ID",
            "name": "accountId",
            "type": "number",
            "default": 0,
            "required": True,
            "description": "ChatWoot account identifier",
        },
        {
            "displayName": "Conversation ID",
            "name": "conversationId",
            "type": "number",
            "default": 0,
            "required": True,
            "description": "Target conversation identifier",
        },
        {
            "displayName": "Attachment URL",
            "name": "attachmentUrl",
            "type": "string",
            "default": "",
            "required": True,
            "description": "Public link to the file that should be sent to ChatWoot",
        },
        {
            "displayName": "File Name",
            "name": "fileName",
            "type": "string",
            "default": "",
            "description": "Optional file name override; leave empty to reuse the original name",
        },
        {
            "displayName": "Additional Fields",
            "name": "additionalFields",
            "type": "collection",
            "default": {},
            "options": [
                {
                    "displayName": "Message Content",
                    "name": "content",
                    "type": "string",
                    "default": "",
                    "description": "Optional text to send with the attachment",
                },
                {
                    "displayName": "Message Type",
                    "name": "messageType",
                    "type": "options",
                    "default": "outgoing",
                    "options": [
                        _option("Incoming", "incoming"),
                        _option("Outgoing", "outgoing"),
                    ],
                },
                {
                    "displayName": "Private",
                    "name": "private",
                    "type": "boolean",
                    "default": False,
                    "description": "Whether to send the attachment as a private note",
                },
                {
                    "displayName": "Content Type",
                    "name": "contentType",
                    "type": "options",
                    "default": "cards",
                    "options": [
                        _option("Article", "article"),
                        _option("Cards", "cards"),
                        _option("Form", "form"),
                        _option("Input Email", "input_email"),
                        _option("Input Select", "input_select"),
                    ],
                },
                {
                    "displayName": "Content Attributes",
                    "name": "contentAttributes",
                    "type": "json",
                    "default": "",
                    "description": "JSON string with custom content attributes",
                },
                {
                    "displayName": "Template Params",
                    "name": "templateParams",
                    "type": "json",
                    "default": "",
                    "description": "JSON string with template parameters for WhatsApp flows",
                },
                {
                    "displayName": "Attachment MIME Type",
                    "name": "attachmentMimeType",
                    "type": "string",
                    "default": "",
                    "description": (
                        "Override detected MIME type when the source URL does not provide one"
                    ),
                },
            ],
        },
    ],
}


def property_names() -> list[str]:
    return [prop["name"] for prop in NODE_DESCRIPTION["properties"]]


async def execute_node(
    relay: AttachmentRelay,
    items: Sequence[Mapping[str, Any]],
    continue_on_fail: bool = False,
) -> list[dict[str, Any]]:
    """Run the node for host items and return host output records.

    Each item is the node's resolved parameters for that input record.
    """
    results = await relay.process(items, fail_fast=not continue_on_fail)
    return [result.to_item() for result in results]
