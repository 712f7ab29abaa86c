"""Credential providers for the Gemini API key.

A provider hands the key to :class:`~monumentmixer.core.generation.GenerationClient`
for exactly one call at a time.  Nothing else in the application reads the
key, and providers never log it.

Two providers exist:

- :class:`EnvironmentCredentialProvider` reads the server-held key from
  :class:`~monumentmixer.core.config.MonumentConfig`.
- :class:`SessionCredentialProvider` holds a key typed into the UI for the
  lifetime of one session, in memory only.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from pydantic import SecretStr

from .config import MonumentConfig
from .generation import MissingCredentialError

logger = logging.getLogger(__name__)


class CredentialProvider(ABC):
    """Source of the API key used to authorize generation calls.

    Attributes:
        client_supplied: True when the key comes from the end user rather
            than the server environment.
    """

    client_supplied: bool = False

    @abstractmethod
    def get_api_key(self) -> str:
        """Return the key for a single call.

        Raises:
            MissingCredentialError: If no key is available.
        """

    def forget(self) -> None:
        """Drop the key after it was rejected.  No-op for server keys."""


class EnvironmentCredentialProvider(CredentialProvider):
    """Server-held key from configuration."""

    client_supplied = False

    def __init__(self, config: MonumentConfig) -> None:
        self._config = config

    def get_api_key(self) -> str:
        key = self._config.gemini_api_key
        if key is None or not key.get_secret_value().strip():
            raise MissingCredentialError(
                "API key is not configured. Set MONUMENT_GEMINI_API_KEY on the server."
            )
        return key.get_secret_value().strip()


class SessionCredentialProvider(CredentialProvider):
    """Key typed into the UI, kept in memory for one session and never persisted."""

    client_supplied = True

    def __init__(self) -> None:
        self._key: SecretStr | None = None

    @property
    def has_key(self) -> bool:
        return self._key is not None

    def set_api_key(self, key: str) -> None:
        key = (key or "").strip()
        self._key = SecretStr(key) if key else None
        logger.info("Session API key %s", "set" if self._key else "cleared")

    def get_api_key(self) -> str:
        if self._key is None:
            raise MissingCredentialError("API key is not set. Enter your Gemini API key.")
        return self._key.get_secret_value()

    def forget(self) -> None:
        self._key = None
        logger.info("Session API key forgotten")

    def __repr__(self) -> str:
        return f"SessionCredentialProvider(has_key={self.has_key})"
