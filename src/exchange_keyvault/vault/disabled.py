"""Key vault used where no secure secret store exists."""

from __future__ import annotations

from exchange_keyvault.errors import UnsupportedOperationError
from exchange_keyvault.models import SecretPair
from exchange_keyvault.vault.base import KeyVault


class DisabledKeyVault(KeyVault):
    """Refuses every write and never finds a key pair."""

    @property
    def supported(self) -> bool:
        return False

    async def save(self, account_id: str, access_key: str, secret_key: str) -> None:
        raise UnsupportedOperationError(
            "Secure key storage is not available on this platform",
            account_id=account_id,
        )

    async def read(self, account_id: str) -> SecretPair | None:
        return None
