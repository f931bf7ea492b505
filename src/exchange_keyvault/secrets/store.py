"""Abstract interface for low-level secret storage."""

from __future__ import annotations

from abc import ABC, abstractmethod


class SecretStore(ABC):
    """Abstract secret store. Implementations provide platform-specific storage.

    All methods are async to support both I/O-bound backends (file) and
    subprocess-based backends (macOS Keychain CLI). Backend failures raise
    ``SecretStoreError``; a missing key is not a failure.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Retrieve a secret by key. Returns None if not found."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store or update a secret."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete a secret. Does not raise if the key does not exist."""
