"""API key storage in a per-user file with owner-only permissions."""

from __future__ import annotations

import logging
from pathlib import Path

from gb9k.core.fileutil import atomic_write

log = logging.getLogger(__name__)


class CredentialError(Exception):
    """Raised when the credential file exists but cannot be read or written."""


class CredentialStore:
    """Read and write the OpenRouter API key.

    A missing file means no key is configured; any other read failure
    raises CredentialError.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def get(self) -> str | None:
        try:
            key = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CredentialError(f"Failed to read API key at {self.path}: {e}") from e
        return key or None

    def set(self, key: str) -> None:
        key = (key or "").strip()
        if not key:
            raise ValueError("API key must not be empty")
        try:
            atomic_write(self.path, key)
        except OSError as e:
            raise CredentialError(f"Failed to write API key at {self.path}: {e}") from e
        log.debug("Stored API key at %s", self.path)


def mask_key(key: str) -> str:
    """Return the last four characters of a key for display (e.g. '-a1b2')."""
    return f"-{key[-4:]}" if key else ""
