"""Multipart form assembly for the message-creation endpoint."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from src.attachment.metadata import parse_json_field
from src.models import AdditionalFields

ATTACHMENT_FIELD = "attachments[]"


@dataclass(frozen=True)
class FilePart:
    file_name: str
    content: bytes
    mime_type: str


@dataclass
class MultipartForm:
    """Ordered file and text parts of a multipart/form-data submission."""

    files: list[tuple[str, FilePart]] = field(default_factory=list)
    fields: list[tuple[str, str]] = field(default_factory=list)

    def append(self, name: str, value: str) -> None:
        self.fields.append((name, value))

    def append_file(self, name: str, part: FilePart) -> None:
        self.files.append((name, part))

    def get(self, name: str) -> str | None:
        for key, value in self.fields:
            if key == name:
                return value
        return None

    def field_names(self) -> list[str]:
        return [key for key, _ in self.fields]

    def to_httpx(self) -> dict[str, Any]:
        """Keyword arguments for ``httpx.AsyncClient.post``.

        httpx generates the boundary and the matching Content-Type header.
        """
        return {
            "data": dict(self.fields),
            "files": [
                (name, (part.file_name, part.content, part.mime_type))
                for name, part in self.files
            ],
        }


def _should_send(value: Any) -> bool:
    # Objects and arrays go out even when empty; false, 0 and "" do not
    return value is not None and (isinstance(value, dict | list) or bool(value))


def _to_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def build_message_form(
    content: bytes,
    file_name: str,
    mime_type: str,
    additional: AdditionalFields,
) -> MultipartForm:
    """Build the attachment form.

    Text fields are appended only when present. ``private`` is appended
    whenever the key was given, including when it is false.
    """
    form = MultipartForm()
    form.append_file(ATTACHMENT_FIELD, FilePart(file_name, content, mime_type))

    if additional.content is not None and additional.content != "":
        form.append("content", str(additional.content))
    if additional.message_type:
        form.append("message_type", str(additional.message_type))
    if additional.is_set("private"):
        form.append("private", "true" if additional.private else "false")
    if additional.content_type:
        form.append("content_type", str(additional.content_type))

    content_attributes = parse_json_field(additional.content_attributes, "Content Attributes")
    if _should_send(content_attributes):
        form.append("content_attributes", _to_json(content_attributes))
    template_params = parse_json_field(additional.template_params, "Template Params")
    if _should_send(template_params):
        form.append("template_params", _to_json(template_params))

    return form
