"""Tests for vault selection and platform capability detection."""

from __future__ import annotations

import pathlib
from unittest.mock import patch

import pytest

from exchange_keyvault.config import Settings
from exchange_keyvault.secrets.encrypted_file import EncryptedFileStore
from exchange_keyvault.secrets.keychain import KeychainStore
from exchange_keyvault.vault.disabled import DisabledKeyVault
from exchange_keyvault.vault.factory import (
    build_vault,
    create_secret_store,
    create_vault,
    detect_secure_storage,
)
from exchange_keyvault.vault.secure import SecureKeyVault

_KEYCHAIN_CHECK = "exchange_keyvault.vault.factory._keychain_available"


def _settings(tmp_path: pathlib.Path, **vault) -> Settings:
    return Settings(app={"data_dir": str(tmp_path)}, vault=vault)


class TestCreateVault:
    def test_true_selects_secure_vault(self, memory_store) -> None:
        vault = create_vault(True, memory_store)
        assert isinstance(vault, SecureKeyVault)
        assert vault.supported is True

    def test_false_selects_disabled_vault(self) -> None:
        vault = create_vault(False)
        assert isinstance(vault, DisabledKeyVault)
        assert vault.supported is False

    def test_false_ignores_store(self, memory_store) -> None:
        assert isinstance(create_vault(False, memory_store), DisabledKeyVault)

    def test_true_without_store_rejected(self) -> None:
        with pytest.raises(ValueError):
            create_vault(True)


class TestDetectSecureStorage:
    def test_disabled_backend(self, tmp_path: pathlib.Path) -> None:
        assert detect_secure_storage(_settings(tmp_path, backend="disabled")) is False

    def test_keychain_backend(self, tmp_path: pathlib.Path) -> None:
        assert detect_secure_storage(_settings(tmp_path, backend="keychain")) is True

    def test_encrypted_file_needs_passphrase(self, tmp_path: pathlib.Path) -> None:
        assert detect_secure_storage(_settings(tmp_path, backend="encrypted_file")) is False
        assert detect_secure_storage(
            _settings(tmp_path, backend="encrypted_file", passphrase="pw")
        ) is True

    def test_auto_prefers_keychain(self, tmp_path: pathlib.Path) -> None:
        with patch(_KEYCHAIN_CHECK, return_value=True):
            settings = _settings(tmp_path, backend="auto")
            assert detect_secure_storage(settings) is True
            assert isinstance(create_secret_store(settings), KeychainStore)

    def test_auto_falls_back_to_encrypted_file(self, tmp_path: pathlib.Path) -> None:
        with patch(_KEYCHAIN_CHECK, return_value=False):
            settings = _settings(tmp_path, backend="auto", passphrase="pw")
            assert detect_secure_storage(settings) is True
            assert isinstance(create_secret_store(settings), EncryptedFileStore)

    def test_auto_without_keychain_or_passphrase_is_unavailable(
        self, tmp_path: pathlib.Path
    ) -> None:
        with patch(_KEYCHAIN_CHECK, return_value=False):
            assert detect_secure_storage(_settings(tmp_path, backend="auto")) is False


class TestCreateSecretStore:
    def test_disabled_has_no_store(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError):
            create_secret_store(_settings(tmp_path, backend="disabled"))

    def test_encrypted_file_without_passphrase_rejected(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError):
            create_secret_store(_settings(tmp_path, backend="encrypted_file"))


class TestBuildVault:
    def test_unavailable_builds_disabled_vault(self, tmp_path: pathlib.Path) -> None:
        assert isinstance(build_vault(_settings(tmp_path, backend="disabled")), DisabledKeyVault)

    @pytest.mark.asyncio
    async def test_encrypted_file_builds_working_vault(self, tmp_path: pathlib.Path) -> None:
        vault = build_vault(_settings(tmp_path, backend="encrypted_file", passphrase="pw"))
        assert isinstance(vault, SecureKeyVault)
        await vault.save("acc-1", "AKEY12345678", "SKEY12345678")
        assert (tmp_path / "secrets.enc").exists()
        pair = await vault.read("acc-1")
        assert pair is not None
        assert pair.access_key == "AKEY12345678"
