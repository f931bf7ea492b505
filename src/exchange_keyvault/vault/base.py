"""Key vault capability shared by the secure and disabled variants."""

from __future__ import annotations

from abc import ABC, abstractmethod

from exchange_keyvault.models import SecretPair


def access_key_slot(account_id: str) -> str:
    """Secret store key holding the access key of *account_id*."""
    return f"exchange.{account_id}.access_key"


def secret_key_slot(account_id: str) -> str:
    """Secret store key holding the secret key of *account_id*."""
    return f"exchange.{account_id}.secret_key"


class KeyVault(ABC):
    """Stores and retrieves the API key pair attached to an account id.

    Implementations must never pass a key value to a logger or embed one in
    an exception message.
    """

    @property
    @abstractmethod
    def supported(self) -> bool:
        """True when this vault can actually persist secrets."""

    @abstractmethod
    async def save(self, account_id: str, access_key: str, secret_key: str) -> None:
        """Persist the key pair for *account_id*, replacing any existing pair."""

    @abstractmethod
    async def read(self, account_id: str) -> SecretPair | None:
        """Return the key pair for *account_id*, or None if none is stored."""
