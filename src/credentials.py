"""Credential store — resolves named credential profiles for the relay."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from src.attachment.errors import ConfigurationError
from src.attachment.relay import CREDENTIAL_NAME
from src.models import Credentials


class CredentialStore:
    """Maps credential profile names to ChatWoot API credentials."""

    def __init__(self, profiles: Mapping[str, Credentials] | None = None) -> None:
        self._profiles: dict[str, Credentials] = dict(profiles or {})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CredentialStore:
        """Load profiles from ``CHATWOOT_CREDENTIALS_PATH`` or the API env vars.

        ``CHATWOOT_API_URL`` / ``CHATWOOT_API_TOKEN`` populate the default
        profile and take precedence over the same profile in the file.
        """
        env = os.environ if environ is None else environ
        store = cls()
        path = env.get("CHATWOOT_CREDENTIALS_PATH")
        if path:
            store = cls.from_file(path)
        url = env.get("CHATWOOT_API_URL")
        if url:
            store.add(CREDENTIAL_NAME, Credentials(
                url=url, access_token=env.get("CHATWOOT_API_TOKEN") or None,
            ))
        return store

    @classmethod
    def from_file(cls, path: str) -> CredentialStore:
        """Load profiles from a JSON object of ``{name: {url, accessToken}}``."""
        file_path = Path(path)
        if not file_path.exists():
            raise ConfigurationError(f"Credentials file not found: {path}")
        try:
            raw = json.loads(file_path.read_text())
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Credentials file is not valid JSON: {path}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Credentials file must contain an object: {path}")

        profiles: dict[str, Credentials] = {}
        for name, data in raw.items():
            try:
                profiles[name] = Credentials.model_validate(data)
            except PydanticValidationError as exc:
                raise ConfigurationError(f"Invalid credentials profile '{name}'") from exc
        return cls(profiles)

    def add(self, name: str, credentials: Credentials) -> None:
        self._profiles[name] = credentials

    def names(self) -> list[str]:
        return sorted(self._profiles)

    def resolve(self, name: str) -> Credentials:
        try:
            return self._profiles[name]
        except KeyError:
            raise ConfigurationError(f"No credentials configured for '{name}'") from None
