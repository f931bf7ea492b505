"""Key vault backed by a platform secret store."""

from __future__ import annotations

import logging

from exchange_keyvault.errors import SecretStoreError, VaultReadError, VaultWriteError
from exchange_keyvault.models import SecretPair
from exchange_keyvault.secrets.store import SecretStore
from exchange_keyvault.vault.base import KeyVault, access_key_slot, secret_key_slot

logger = logging.getLogger(__name__)


class SecureKeyVault(KeyVault):
    """Stores each key pair as two slots in a :class:`SecretStore`.

    The access key is written first, then the secret key. If the second
    write fails both slots are cleared before the error surfaces, so a
    failed save never leaves half a pair behind. When the save was
    replacing an existing pair, that pair is gone too. A process crash
    between the two writes can still leave half a pair; :meth:`read` treats
    it as absent.

    Parameters
    ----------
    secret_store:
        The backend holding the slots.
    """

    def __init__(self, secret_store: SecretStore) -> None:
        self._store = secret_store

    @property
    def supported(self) -> bool:
        return True

    async def save(self, account_id: str, access_key: str, secret_key: str) -> None:
        try:
            await self._store.set(access_key_slot(account_id), access_key)
        except SecretStoreError as exc:
            logger.warning("Access key write rejected for account %s: %s", account_id, exc)
            raise VaultWriteError(
                f"Secure storage rejected the access key for account {account_id}",
                account_id=account_id,
            ) from exc

        try:
            await self._store.set(secret_key_slot(account_id), secret_key)
        except SecretStoreError as exc:
            logger.warning("Secret key write rejected for account %s: %s", account_id, exc)
            await self._discard_pair(account_id)
            raise VaultWriteError(
                f"Secure storage rejected the secret key for account {account_id}",
                account_id=account_id,
            ) from exc

        logger.info("Stored API key pair for account %s", account_id)

    async def _discard_pair(self, account_id: str) -> None:
        for slot in (access_key_slot(account_id), secret_key_slot(account_id)):
            try:
                await self._store.delete(slot)
            except SecretStoreError:
                logger.exception("Could not clear slot %s for account %s", slot, account_id)

    async def read(self, account_id: str) -> SecretPair | None:
        try:
            access_key = await self._store.get(access_key_slot(account_id))
            secret_key = await self._store.get(secret_key_slot(account_id))
        except SecretStoreError as exc:
            logger.warning("Key pair read failed for account %s: %s", account_id, exc)
            raise VaultReadError(
                f"Secure storage read failed for account {account_id}",
                account_id=account_id,
            ) from exc

        if access_key is None and secret_key is None:
            return None
        if access_key is None or secret_key is None:
            logger.warning("Incomplete key pair stored for account %s, treating as absent", account_id)
            return None
        return SecretPair(access_key=access_key, secret_key=secret_key)
