"""Pure helpers that derive delivery metadata from a downloaded attachment.

Each function is side-effect free so the header grammar and URL edge cases
can be pinned down in isolation.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, unquote, urlsplit

from src.attachment.errors import TransportError, ValidationError
from src.attachment.models import DerivedMetadata

DEFAULT_FILE_NAME = "attachment"
DEFAULT_MIME_TYPE = "application/octet-stream"

_FILENAME_PATTERN = re.compile(r"filename\*?=(?:UTF-8''|\")?([^\";]+)", re.IGNORECASE)
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
# Characters URL parsers leave unescaped in a path
_PATH_SAFE = "/%!$&'()*+,;=:@[]^|"


def get_header_value(headers: Mapping[str, Any] | None, name: str) -> str | None:
    """Case-insensitive header lookup. List values yield their first entry."""
    if not headers:
        return None
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() != wanted:
            continue
        if isinstance(value, list | tuple):
            return str(value[0]) if value else None
        if value is None:
            return None
        return str(value)
    return None


def parse_content_disposition_filename(header: str | None) -> str | None:
    """Extract the file name from a Content-Disposition header.

    Handles plain, quoted and ``UTF-8''``-prefixed tokens. A token that
    cannot be percent-decoded is returned as-is.
    """
    if not header:
        return None
    match = _FILENAME_PATTERN.search(header)
    if not match:
        return None
    raw = match.group(1)
    if _MALFORMED_ESCAPE.search(raw):
        return raw
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw


def file_name_from_url(url: str) -> str | None:
    """Last non-empty path segment of an absolute URL, or None.

    The segment is returned percent-encoded, the way URL parsers normalize
    a path: spaces and non-ASCII characters are escaped, existing escapes kept.
    """
    try:
        parsed = urlsplit(url)
    except ValueError:
        return None
    if not parsed.scheme:
        return None
    path = quote(parsed.path, safe=_PATH_SAFE)
    segments = [segment for segment in path.split("/") if segment]
    return segments[-1] if segments else None


def derive_file_name(
    override: str | None, headers: Mapping[str, Any] | None, url: str,
) -> str:
    return (
        override
        or parse_content_disposition_filename(get_header_value(headers, "content-disposition"))
        or file_name_from_url(url)
        or DEFAULT_FILE_NAME
    )


def derive_mime_type(override: str | None, headers: Mapping[str, Any] | None) -> str:
    return override or get_header_value(headers, "content-type") or DEFAULT_MIME_TYPE


def derive_metadata(
    override_name: str | None,
    override_mime: str | None,
    headers: Mapping[str, Any] | None,
    url: str,
) -> DerivedMetadata:
    return DerivedMetadata(
        file_name=derive_file_name(override_name, headers, url),
        mime_type=derive_mime_type(override_mime, headers),
    )


def parse_json_field(value: Any, label: str) -> Any:
    """Parse an optional JSON field given either as a string or a structure.

    Returns None when the field should be left out of the submission.
    """
    if value is None or value == "":
        return None
    if isinstance(value, dict | list):
        return value
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        try:
            return json.loads(trimmed)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Cannot parse {label} as JSON.", field=label) from exc
    raise ValidationError(f"Unsupported {label} value type.", field=label)


def normalize_body(body: Any) -> bytes:
    """Coerce whatever the transport returned into a byte buffer."""
    if isinstance(body, bytes):
        return body
    if isinstance(body, bytearray | memoryview):
        return bytes(body)
    if isinstance(body, str):
        return body.encode()
    raise TransportError(f"Unsupported download body type: {type(body).__name__}")


def sanitize_base_url(url: str) -> str:
    return url.rstrip("/")
