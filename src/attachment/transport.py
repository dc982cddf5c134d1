"""HTTP transport used by the attachment relay.

The relay depends only on the ``HttpTransport`` protocol; ``HttpxTransport``
is the production implementation on top of httpx.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import httpx

from src.attachment.errors import TransportError, UpstreamError
from src.attachment.form import MultipartForm
from src.attachment.models import DownloadedAsset
from src.models import Credentials

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 30.0
_AUTH_HEADER = "api_access_token"


class HttpTransport(Protocol):
    async def get(self, url: str) -> DownloadedAsset:
        """Fetch ``url`` and return the raw body with its response headers."""
        ...

    async def post_multipart(
        self, url: str, form: MultipartForm, credentials: Credentials,
    ) -> Any:
        """POST ``form`` to ``url`` authenticated with ``credentials``."""
        ...


class HttpxTransport:
    """httpx-backed transport. Binary bodies are never decoded as text."""

    def __init__(
        self,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._client = client

    async def get(self, url: str) -> DownloadedAsset:
        try:
            resp = await self._request("GET", url, follow_redirects=True)
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to download {url}: {exc}") from exc
        if resp.status_code >= 400:
            raise TransportError(
                f"Failed to download {url}: HTTP {resp.status_code}",
            )
        return DownloadedAsset(
            content=resp.content,
            headers=resp.headers,
            status_code=resp.status_code,
        )

    async def post_multipart(
        self, url: str, form: MultipartForm, credentials: Credentials,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if credentials.access_token:
            headers[_AUTH_HEADER] = credentials.access_token
        try:
            resp = await self._request("POST", url, headers=headers, **form.to_httpx())
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise UpstreamError(resp.status_code, _error_detail(resp), url=url)

        content_type = resp.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return resp.json()
            except json.JSONDecodeError:
                logger.debug("Response from %s claimed JSON but did not parse", url)
        return resp.text

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, timeout=self._timeout, **kwargs)
        async with httpx.AsyncClient(verify=True) as client:
            return await client.request(method, url, timeout=self._timeout, **kwargs)


def _error_detail(resp: httpx.Response) -> str | None:
    """Pull a human-readable message out of an API error response."""
    try:
        body = resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        text = resp.text.strip()
        return text[:500] or None

    if isinstance(body, dict):
        for key in ("message", "error", "errors"):
            value = body.get(key)
            if not value:
                continue
            if isinstance(value, list):
                return "; ".join(str(v) for v in value)
            return str(value)
    return None
