"""Append-only account metadata store backed by a SQLite slot.

All accounts live in a single row of the ``slots`` table as a JSON list of
account records, in insertion order. Every ``add`` rewrites that row in one
statement and one commit, so a write either lands completely or leaves the
previous list untouched.

Only a single in-process writer is supported. Two concurrent ``add`` calls
can read the same list and the later commit wins; callers that need
multi-writer use must serialize access themselves.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import aiosqlite

from exchange_keyvault.errors import PersistenceError, ValidationError
from exchange_keyvault.models import Account

logger = logging.getLogger(__name__)

SLOT_NAME = "exchange_accounts"
SLOT_SCHEMA = "exchange_accounts.v1"


class MetadataStore:
    """Persistent, append-only list of :class:`Account` records.

    Parameters
    ----------
    db:
        An open ``aiosqlite.Connection`` with the schema already applied.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def get_all(self) -> list[Account]:
        """Return every stored account in insertion order.

        A missing slot or an empty value yields an empty list.
        """
        try:
            cursor = await self._db.execute(
                "SELECT schema, value FROM slots WHERE name = ?",
                (SLOT_NAME,),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Cannot read the {SLOT_NAME} slot: {exc}") from exc

        if row is None or not row[1]:
            return []
        schema, value = row[0], row[1]
        if schema != SLOT_SCHEMA:
            raise PersistenceError(
                f"Slot {SLOT_NAME} has schema {schema!r}, expected {SLOT_SCHEMA!r}"
            )

        try:
            records = json.loads(value)
        except ValueError as exc:
            raise PersistenceError(f"Slot {SLOT_NAME} does not hold valid JSON") from exc
        if not isinstance(records, list):
            raise PersistenceError(f"Slot {SLOT_NAME} does not hold a list")

        try:
            return [Account.from_record(record) for record in records]
        except ValidationError as exc:
            raise PersistenceError(f"Slot {SLOT_NAME} holds an invalid account: {exc}") from exc

    async def add(self, account: Account) -> Account:
        """Append *account* and return it unchanged.

        Raises ValidationError if an account with the same id is already
        stored, and PersistenceError if the write fails. In both cases the
        stored list is unchanged.
        """
        accounts = await self.get_all()
        if any(existing.id == account.id for existing in accounts):
            raise ValidationError(f"Account {account.id} already exists", field="id")

        accounts.append(account)
        value = json.dumps([a.to_record() for a in accounts], ensure_ascii=False)
        now = datetime.now(timezone.utc).isoformat()
        try:
            await self._db.execute(
                "INSERT INTO slots (name, schema, value, updated_at) VALUES (?, ?, ?, ?) "
                "ON CONFLICT(name) DO UPDATE SET "
                "schema = excluded.schema, value = excluded.value, updated_at = excluded.updated_at",
                (SLOT_NAME, SLOT_SCHEMA, value, now),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            try:
                await self._db.rollback()
            except aiosqlite.Error:
                logger.exception("Rollback of the %s slot failed", SLOT_NAME)
            raise PersistenceError(f"Cannot write the {SLOT_NAME} slot: {exc}") from exc

        logger.info("Stored account %s (%r), %d total", account.id, account.label, len(accounts))
        return account
