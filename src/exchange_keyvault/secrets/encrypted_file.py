"""Fernet-encrypted JSON file backend for secret storage.

Used on Linux where macOS Keychain is not available and a passphrase has
been configured. Derives an encryption key from the passphrase using
PBKDF2-HMAC-SHA256, then encrypts the entire JSON secrets blob with Fernet.
Writes go to a sibling temp file which then replaces the original, so a
failed write never truncates existing secrets.
"""

from __future__ import annotations

import base64
import json
import os
import pathlib

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from exchange_keyvault.errors import SecretStoreError
from exchange_keyvault.secrets.store import SecretStore

# Fixed salt -- acceptable for a local-only file where the threat model is
# casual disk access, not offline brute-force against a leaked database.
_SALT = b"exchange-keyvault-secrets-v1"
_ITERATIONS = 480_000


def _derive_key(master_password: str) -> bytes:
    """Derive a 32-byte Fernet key from the master password via PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_SALT,
        iterations=_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(master_password.encode("utf-8")))


class EncryptedFileStore(SecretStore):
    """Stores secrets as a Fernet-encrypted JSON file on disk.

    Parameters
    ----------
    file_path:
        Path to the encrypted secrets file. Created on first write.
    master_password:
        Password used to derive the Fernet encryption key via PBKDF2.
    """

    def __init__(self, file_path: pathlib.Path, master_password: str) -> None:
        self._path = file_path
        self._fernet = Fernet(_derive_key(master_password))

    def _read_store(self) -> dict[str, str]:
        """Read and decrypt the secrets file. Returns empty dict if missing."""
        if not self._path.exists():
            return {}
        try:
            ciphertext = self._path.read_bytes()
            plaintext = self._fernet.decrypt(ciphertext)
            data = json.loads(plaintext)
        except InvalidToken:
            raise SecretStoreError(
                f"Cannot decrypt {self._path.name}: wrong passphrase or corrupted file"
            ) from None
        except (OSError, ValueError) as exc:
            raise SecretStoreError(f"Cannot read {self._path.name}: {type(exc).__name__}") from None
        if not isinstance(data, dict):
            raise SecretStoreError(f"{self._path.name} does not hold a secrets mapping")
        return data

    def _write_store(self, data: dict[str, str]) -> None:
        """Encrypt and atomically replace the secrets file."""
        plaintext = json.dumps(data, sort_keys=True).encode("utf-8")
        ciphertext = self._fernet.encrypt(plaintext)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(ciphertext)
            tmp_path.chmod(0o600)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise SecretStoreError(f"Cannot write {self._path.name}: {exc.strerror}") from None

    async def get(self, key: str) -> str | None:
        store = self._read_store()
        return store.get(key)

    async def set(self, key: str, value: str) -> None:
        store = self._read_store()
        store[key] = value
        self._write_store(store)

    async def delete(self, key: str) -> None:
        store = self._read_store()
        if store.pop(key, None) is not None:
            self._write_store(store)
