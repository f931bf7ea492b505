"""Add / Check orchestration over the metadata store and the key vault.

Each operation reports the metadata outcome and the vault outcome
separately. The metadata step always runs first; a failure in one step
never rolls back the other. Every message here is safe to display or log:
key material only ever appears in masked form.
"""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum
from typing import Callable

from exchange_keyvault.errors import (
    PersistenceError,
    UnsupportedOperationError,
    VaultReadError,
    VaultWriteError,
)
from exchange_keyvault.masking import mask
from exchange_keyvault.models import Account, new_account_id, now_millis
from exchange_keyvault.store.metadata import MetadataStore
from exchange_keyvault.vault.base import KeyVault

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Outcome messages
# ---------------------------------------------------------------------------

MSG_ACCOUNT_CREATED = "Account '{label}' created."
MSG_ACCOUNT_SAVE_FAILED = "Could not save the account. Please try again."
MSG_ACCOUNT_LOAD_FAILED = "Could not load saved accounts."
MSG_KEYS_SAVED = "API keys saved to secure storage."
MSG_KEYS_SKIPPED = "No API keys provided; nothing was stored."
MSG_KEYS_SAVE_FAILED = "Could not save API keys to secure storage."
MSG_KEYS_READ_FAILED = "Could not read API keys from secure storage."
MSG_KEYS_NOT_FOUND = "No keys found for this account."
MSG_UNSUPPORTED = "Secure key storage is not supported on this platform."
MSG_NO_ACCOUNT = "No account has been added yet."
MSG_KEYS_FOUND = "{label}: {masked}"


class AccountStatus(str, Enum):
    CREATED = "created"
    FAILED = "failed"


class VaultStatus(str, Enum):
    SAVED = "saved"
    SKIPPED = "skipped"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


class CheckStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"
    NO_ACCOUNT = "no_account"
    FAILED = "failed"


@dataclasses.dataclass(frozen=True)
class AddResult:
    """Outcome of :meth:`AccountService.add`.

    ``account`` is set even when the metadata write failed, so the caller
    can still refer to the id that was generated.
    """

    account: Account
    account_status: AccountStatus
    account_message: str
    vault_status: VaultStatus
    vault_message: str

    @property
    def ok(self) -> bool:
        return (
            self.account_status is AccountStatus.CREATED
            and self.vault_status is not VaultStatus.FAILED
        )


@dataclasses.dataclass(frozen=True)
class CheckResult:
    """Outcome of :meth:`AccountService.check`."""

    status: CheckStatus
    message: str
    account: Account | None = None

    @property
    def ok(self) -> bool:
        return self.status is not CheckStatus.FAILED


class AccountService:
    """Registers exchange accounts and reports on their stored keys.

    Parameters
    ----------
    store:
        Metadata store for account records.
    vault:
        The process-wide key vault, chosen once at startup.
    id_factory:
        Generator for new account ids.
    clock:
        Source of creation timestamps in epoch milliseconds.
    """

    def __init__(
        self,
        store: MetadataStore,
        vault: KeyVault,
        id_factory: Callable[[], str] = new_account_id,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self._store = store
        self._vault = vault
        self._id_factory = id_factory
        self._clock = clock

    async def list_accounts(self) -> list[Account]:
        return await self._store.get_all()

    async def add(self, label: str, access_key: str = "", secret_key: str = "") -> AddResult:
        """Create an account and store its key pair when possible.

        Raises ValidationError for an empty label, before anything is
        written. Store and vault failures are reported in the result.
        """
        account = Account.create(label, id_factory=self._id_factory, clock=self._clock)

        try:
            await self._store.add(account)
        except PersistenceError as exc:
            logger.error("Account %s was not saved: %s", account.id, exc)
            account_status = AccountStatus.FAILED
            account_message = MSG_ACCOUNT_SAVE_FAILED
        else:
            account_status = AccountStatus.CREATED
            account_message = MSG_ACCOUNT_CREATED.format(label=account.label)

        vault_status, vault_message = await self._save_keys(account, access_key, secret_key)
        return AddResult(
            account=account,
            account_status=account_status,
            account_message=account_message,
            vault_status=vault_status,
            vault_message=vault_message,
        )

    async def _save_keys(
        self, account: Account, access_key: str, secret_key: str
    ) -> tuple[VaultStatus, str]:
        if not self._vault.supported:
            if access_key or secret_key:
                return VaultStatus.UNSUPPORTED, MSG_UNSUPPORTED
            return VaultStatus.SKIPPED, MSG_KEYS_SKIPPED
        if not access_key or not secret_key:
            return VaultStatus.SKIPPED, MSG_KEYS_SKIPPED

        try:
            await self._vault.save(account.id, access_key, secret_key)
        except UnsupportedOperationError:
            return VaultStatus.UNSUPPORTED, MSG_UNSUPPORTED
        except VaultWriteError as exc:
            logger.error("API keys for account %s were not saved: %s", account.id, exc)
            return VaultStatus.FAILED, MSG_KEYS_SAVE_FAILED
        return VaultStatus.SAVED, MSG_KEYS_SAVED

    async def check(self, account_id: str | None = None) -> CheckResult:
        """Report whether keys are stored for an account, in masked form.

        Defaults to the most recently added account.
        """
        if not self._vault.supported:
            return CheckResult(CheckStatus.UNSUPPORTED, MSG_UNSUPPORTED)

        try:
            accounts = await self._store.get_all()
        except PersistenceError as exc:
            logger.error("Could not load accounts: %s", exc)
            return CheckResult(CheckStatus.FAILED, MSG_ACCOUNT_LOAD_FAILED)

        account = _find_account(accounts, account_id)
        if account is None:
            return CheckResult(CheckStatus.NO_ACCOUNT, MSG_NO_ACCOUNT)

        try:
            pair = await self._vault.read(account.id)
        except VaultReadError as exc:
            logger.error("Could not read API keys for account %s: %s", account.id, exc)
            return CheckResult(CheckStatus.FAILED, MSG_KEYS_READ_FAILED, account)

        if pair is None:
            return CheckResult(CheckStatus.NOT_FOUND, MSG_KEYS_NOT_FOUND, account)
        return CheckResult(
            CheckStatus.FOUND,
            MSG_KEYS_FOUND.format(label=account.label, masked=mask(pair.access_key)),
            account,
        )


def _find_account(accounts: list[Account], account_id: str | None) -> Account | None:
    if account_id is None:
        return accounts[-1] if accounts else None
    for account in accounts:
        if account.id == account_id:
            return account
    return None
