"""Integration tests for the append-only account metadata store."""

from __future__ import annotations

import json
from unittest.mock import patch

import aiosqlite
import pytest

from exchange_keyvault.db.migrations import apply_migrations
from exchange_keyvault.errors import PersistenceError, ValidationError
from exchange_keyvault.models import EXCHANGE, Account
from exchange_keyvault.store.metadata import SLOT_NAME, SLOT_SCHEMA, MetadataStore


def _account(n: int, label: str | None = None) -> Account:
    return Account(
        id=f"acc-{n}",
        label=label or f"Account {n}",
        exchange=EXCHANGE,
        created_at=1_767_225_600_000 + n,
    )


async def _slot_value(db) -> str:
    cursor = await db.execute("SELECT value FROM slots WHERE name = ?", (SLOT_NAME,))
    row = await cursor.fetchone()
    return row[0]


class TestReadPath:
    @pytest.mark.asyncio
    async def test_absent_slot_is_empty(self, metadata_store: MetadataStore) -> None:
        assert await metadata_store.get_all() == []

    @pytest.mark.asyncio
    async def test_empty_value_is_empty(self, db, metadata_store: MetadataStore) -> None:
        await db.execute(
            "INSERT INTO slots (name, schema, value, updated_at) VALUES (?, ?, '', 'now')",
            (SLOT_NAME, SLOT_SCHEMA),
        )
        assert await metadata_store.get_all() == []

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, db, metadata_store: MetadataStore) -> None:
        await db.execute(
            "INSERT INTO slots (name, schema, value, updated_at) VALUES (?, ?, '{oops', 'now')",
            (SLOT_NAME, SLOT_SCHEMA),
        )
        with pytest.raises(PersistenceError):
            await metadata_store.get_all()

    @pytest.mark.asyncio
    async def test_unknown_schema_token_raises(self, db, metadata_store: MetadataStore) -> None:
        await db.execute(
            "INSERT INTO slots (name, schema, value, updated_at) VALUES (?, 'exchange_accounts.v0', '[]', 'now')",
            (SLOT_NAME,),
        )
        with pytest.raises(PersistenceError):
            await metadata_store.get_all()

    @pytest.mark.asyncio
    async def test_invalid_record_raises(self, db, metadata_store: MetadataStore) -> None:
        await db.execute(
            "INSERT INTO slots (name, schema, value, updated_at) VALUES (?, ?, ?, 'now')",
            (SLOT_NAME, SLOT_SCHEMA, json.dumps([{"id": "acc-1", "label": ""}])),
        )
        with pytest.raises(PersistenceError):
            await metadata_store.get_all()


class TestAdd:
    @pytest.mark.asyncio
    async def test_add_returns_account_unchanged(self, metadata_store: MetadataStore) -> None:
        account = _account(1)
        assert await metadata_store.add(account) is account

    @pytest.mark.asyncio
    async def test_get_all_preserves_call_order(self, metadata_store: MetadataStore) -> None:
        accounts = [_account(n) for n in (3, 1, 2, 5, 4)]
        for account in accounts:
            await metadata_store.add(account)

        stored = await metadata_store.get_all()
        assert stored == accounts
        assert len({a.id for a in stored}) == len(stored)

    @pytest.mark.asyncio
    async def test_add_never_mutates_existing_entries(self, metadata_store: MetadataStore) -> None:
        first = _account(1, "first")
        await metadata_store.add(first)
        await metadata_store.add(_account(2, "second"))
        stored = await metadata_store.get_all()
        assert stored[0] == first

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, metadata_store: MetadataStore) -> None:
        await metadata_store.add(_account(1, "original"))
        with pytest.raises(ValidationError):
            await metadata_store.add(_account(1, "impostor"))
        assert await metadata_store.get_all() == [_account(1, "original")]

    @pytest.mark.asyncio
    async def test_persisted_format(self, db, metadata_store: MetadataStore) -> None:
        await metadata_store.add(_account(1, "HTX – Personal"))
        records = json.loads(await _slot_value(db))
        assert records == [
            {
                "id": "acc-1",
                "label": "HTX – Personal",
                "exchange": "htx",
                "createdAt": 1_767_225_600_001,
            }
        ]

    @pytest.mark.asyncio
    async def test_failed_write_leaves_previous_state(self, db, metadata_store: MetadataStore) -> None:
        await metadata_store.add(_account(1))
        before = await _slot_value(db)

        await db.execute(
            "CREATE TRIGGER reject_slot_update BEFORE UPDATE ON slots "
            "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
        )
        await db.commit()

        with pytest.raises(PersistenceError):
            await metadata_store.add(_account(2))

        assert await _slot_value(db) == before
        assert await metadata_store.get_all() == [_account(1)]

    @pytest.mark.asyncio
    async def test_failed_rollback_still_raises_persistence_error(
        self, db, metadata_store: MetadataStore
    ) -> None:
        await metadata_store.add(_account(1))
        await db.execute(
            "CREATE TRIGGER reject_slot_update BEFORE UPDATE ON slots "
            "BEGIN SELECT RAISE(ABORT, 'disk full'); END"
        )
        await db.commit()

        with patch.object(db, "rollback", side_effect=aiosqlite.OperationalError("no transaction")):
            with pytest.raises(PersistenceError):
                await metadata_store.add(_account(2))


class TestDurability:
    @pytest.mark.asyncio
    async def test_accounts_survive_reconnect(self, tmp_path) -> None:
        path = str(tmp_path / "keyvault.db")

        db = await aiosqlite.connect(path)
        await apply_migrations(db)
        await MetadataStore(db).add(_account(1))
        await MetadataStore(db).add(_account(2))
        await db.close()

        db = await aiosqlite.connect(path)
        try:
            assert await MetadataStore(db).get_all() == [_account(1), _account(2)]
        finally:
            await db.close()
