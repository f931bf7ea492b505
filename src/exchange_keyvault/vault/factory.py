"""Vault selection by platform capability.

The capability is detected once at startup and the resulting vault instance
is reused for the life of the process; a capability that changes mid-session
is not picked up.
"""

from __future__ import annotations

import logging
import pathlib
import shutil
import sys

from exchange_keyvault.config import Settings
from exchange_keyvault.secrets.store import SecretStore
from exchange_keyvault.vault.base import KeyVault
from exchange_keyvault.vault.disabled import DisabledKeyVault
from exchange_keyvault.vault.secure import SecureKeyVault

logger = logging.getLogger(__name__)


def _keychain_available() -> bool:
    return sys.platform == "darwin" and shutil.which("security") is not None


def _resolve_backend(settings: Settings) -> str:
    """Map ``vault.backend`` to a concrete backend name, resolving ``auto``."""
    backend = settings.vault.backend
    if backend != "auto":
        return backend
    if _keychain_available():
        return "keychain"
    if settings.vault.passphrase:
        return "encrypted_file"
    return "disabled"


def detect_secure_storage(settings: Settings) -> bool:
    """Return True when a secure secret store is usable on this platform."""
    backend = _resolve_backend(settings)
    if backend == "encrypted_file":
        return bool(settings.vault.passphrase)
    return backend == "keychain"


def create_secret_store(settings: Settings) -> SecretStore:
    """Create the platform-appropriate secret store."""
    backend = _resolve_backend(settings)
    if backend == "keychain":
        from exchange_keyvault.secrets.keychain import KeychainStore

        return KeychainStore(service_name=settings.vault.service_name)
    if backend == "encrypted_file":
        if not settings.vault.passphrase:
            raise ValueError("The encrypted_file backend requires vault.passphrase")
        from exchange_keyvault.secrets.encrypted_file import EncryptedFileStore

        return EncryptedFileStore(
            file_path=pathlib.Path(settings.app.data_dir) / settings.vault.secrets_filename,
            master_password=settings.vault.passphrase,
        )
    raise ValueError(f"No secret store for vault backend {backend!r}")


def create_vault(
    secure_storage_available: bool,
    secret_store: SecretStore | None = None,
) -> KeyVault:
    """Select the vault variant for the given capability flag.

    Parameters
    ----------
    secure_storage_available:
        The platform capability signal.
    secret_store:
        Backend for the secure variant. Required when the flag is True,
        ignored otherwise.
    """
    if not secure_storage_available:
        return DisabledKeyVault()
    if secret_store is None:
        raise ValueError("A secret store is required when secure storage is available")
    return SecureKeyVault(secret_store)


def build_vault(settings: Settings) -> KeyVault:
    """Detect the capability and build the process-wide vault."""
    available = detect_secure_storage(settings)
    if not available:
        logger.info("Secure key storage unavailable, API keys will not be stored")
        return create_vault(False)
    store = create_secret_store(settings)
    logger.info("Secure key storage enabled (%s)", type(store).__name__)
    return create_vault(True, store)
