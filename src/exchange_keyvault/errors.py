"""Error taxonomy for the key vault and the account metadata store.

Errors carry account identifiers and field names only. No error message is
ever built from key material, so any of them can be logged or shown as-is.
"""

from __future__ import annotations


class KeyVaultError(Exception):
    """Base class for all errors raised by exchange_keyvault."""


class ValidationError(KeyVaultError, ValueError):
    """Bad caller input, e.g. an empty account label.

    Attributes:
        field: Name of the offending field, if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class PersistenceError(KeyVaultError):
    """The metadata store could not read or durably write its slot."""


class SecretStoreError(KeyVaultError):
    """A low-level secret backend rejected a read or write."""


class VaultError(KeyVaultError):
    """Base class for key vault failures tied to an account."""

    def __init__(self, message: str, account_id: str | None = None) -> None:
        super().__init__(message)
        self.account_id = account_id


class VaultWriteError(VaultError):
    """The secure store rejected a key pair write."""


class VaultReadError(VaultError):
    """The secure store failed while reading a key pair."""


class UnsupportedOperationError(VaultError):
    """Secure key storage is not available on this platform.

    This is an expected outcome on platforms without a secret store, not a
    fault.
    """
