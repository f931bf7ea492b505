"""macOS Keychain backend for secret storage.

Wraps the macOS ``security`` CLI tool to store secrets as generic passwords
in the user's login keychain.
"""

from __future__ import annotations

import asyncio
import re

from exchange_keyvault.errors import SecretStoreError
from exchange_keyvault.secrets.store import SecretStore

# Exit code when a duplicate item already exists in Keychain
_ERR_DUPLICATE_ITEM = 45
# Exit code when an item is not found in Keychain
_ERR_ITEM_NOT_FOUND = 44

_QUOTED_PASSWORD = re.compile(r'password:\s*"(.*)"')
_HEX_PASSWORD = re.compile(r"password:\s*0x([0-9A-Fa-f]+)")


class KeychainStore(SecretStore):
    """Stores secrets in macOS Keychain via the ``security`` CLI.

    Parameters
    ----------
    service_name:
        The service name used to namespace secrets in Keychain.
        Defaults to ``com.exchange-keyvault``.
    """

    def __init__(self, service_name: str = "com.exchange-keyvault") -> None:
        self._service = service_name

    async def _run(self, *args: str) -> tuple[int, bytes, bytes]:
        """Run a ``security`` subcommand and return (returncode, stdout, stderr)."""
        try:
            proc = await asyncio.create_subprocess_exec(
                "security",
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise SecretStoreError(f"Cannot run the security tool: {exc.strerror}") from None
        stdout, stderr = await proc.communicate()
        return proc.returncode or 0, stdout, stderr

    async def get(self, key: str) -> str | None:
        returncode, _stdout, stderr = await self._run(
            "find-generic-password",
            "-s", self._service,
            "-a", key,
            "-g",
        )
        if returncode == _ERR_ITEM_NOT_FOUND:
            return None
        if returncode != 0:
            raise SecretStoreError(
                f"Keychain lookup for {key!r} failed with exit code {returncode}"
            )

        # The security CLI prints the password to stderr in the form:
        #   password: "thevalue"
        # or, when it is not plain ASCII:
        #   password: 0x<hex>  "<escaped>"
        stderr_str = stderr.decode("utf-8", errors="replace")
        hex_match = _HEX_PASSWORD.search(stderr_str)
        if hex_match is not None:
            try:
                return bytes.fromhex(hex_match.group(1)).decode("utf-8")
            except ValueError:
                raise SecretStoreError(
                    f"Keychain item {key!r} has an unreadable password"
                ) from None
        match = _QUOTED_PASSWORD.search(stderr_str)
        if match is None:
            raise SecretStoreError(f"Keychain item {key!r} has an unreadable password")
        return match.group(1)

    async def set(self, key: str, value: str) -> None:
        returncode, _, _ = await self._run(
            "add-generic-password",
            "-s", self._service,
            "-a", key,
            "-w", value,
            "-U",
        )
        if returncode == _ERR_DUPLICATE_ITEM:
            # Delete existing and re-add
            await self.delete(key)
            returncode, _, _ = await self._run(
                "add-generic-password",
                "-s", self._service,
                "-a", key,
                "-w", value,
            )
        if returncode != 0:
            raise SecretStoreError(
                f"Keychain write for {key!r} failed with exit code {returncode}"
            )

    async def delete(self, key: str) -> None:
        returncode, _, _ = await self._run(
            "delete-generic-password",
            "-s", self._service,
            "-a", key,
        )
        if returncode not in (0, _ERR_ITEM_NOT_FOUND):
            raise SecretStoreError(
                f"Keychain delete for {key!r} failed with exit code {returncode}"
            )
