"""Shared test fixtures for exchange-keyvault tests."""

from __future__ import annotations

import itertools

import pytest

from exchange_keyvault.errors import SecretStoreError
from exchange_keyvault.secrets.store import SecretStore


class MemorySecretStore(SecretStore):
    """In-memory SecretStore with switchable failures per key."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.fail_set: set[str] = set()
        self.fail_get: set[str] = set()
        self.calls: list[tuple[str, str]] = []

    async def get(self, key: str) -> str | None:
        self.calls.append(("get", key))
        if key in self.fail_get:
            raise SecretStoreError(f"read of {key!r} denied")
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.calls.append(("set", key))
        if key in self.fail_set:
            raise SecretStoreError(f"write of {key!r} denied")
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        self.data.pop(key, None)


@pytest.fixture
def memory_store() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture
def id_factory():
    """Deterministic account id generator: acc-1, acc-2, ..."""
    counter = itertools.count(1)
    return lambda: f"acc-{next(counter)}"


@pytest.fixture
def clock():
    """Fixed clock returning 2026-01-01T00:00:00Z in epoch milliseconds."""
    return lambda: 1_767_225_600_000
