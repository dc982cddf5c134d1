"""Error taxonomy for the attachment relay."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for attachment relay failures."""


class ConfigurationError(RelayError):
    """Credentials are missing or unusable. Fatal for the whole batch."""


class ValidationError(RelayError):
    """An item carries malformed input."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class TransportError(RelayError):
    """The download or upload request failed on the network or with an HTTP error."""


class UpstreamError(TransportError):
    """The messaging API answered with a non-success status."""

    def __init__(self, status_code: int, detail: str | None = None, url: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        self.url = url
        message = f"Upstream API returned HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ItemProcessingError(RelayError):
    """Raised in fail-fast mode; the original failure is chained as ``__cause__``."""

    def __init__(self, index: int, cause: Exception) -> None:
        self.index = index
        self.cause = cause
        super().__init__(f"Item {index} failed: {cause}")
