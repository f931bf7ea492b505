"""Domain records: exchange accounts and the API key pairs attached to them.

``Account`` is the non-secret metadata persisted by the metadata store.
``SecretPair`` only ever lives in a key vault; it is never serialized into an
account record.
"""

from __future__ import annotations

import dataclasses
import time
import uuid
from typing import Any, Callable, Mapping

from exchange_keyvault.errors import ValidationError
from exchange_keyvault.masking import mask

# Single supported exchange
EXCHANGE = "htx"

# Field names of a serialized account record
_RECORD_FIELDS = ("id", "label", "exchange", "createdAt")


def new_account_id() -> str:
    """Default identifier generator: a random UUID4 string."""
    return str(uuid.uuid4())


def now_millis() -> int:
    """Default clock: milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


@dataclasses.dataclass(frozen=True)
class Account:
    """A user-configured exchange profile.

    Attributes:
        id: Opaque unique identifier supplied by the caller's generator.
        label: Display name, stored trimmed. Never empty.
        exchange: Exchange identifier; always ``EXCHANGE`` for now.
        created_at: Creation time in milliseconds since the epoch.
    """

    id: str
    label: str
    exchange: str
    created_at: int

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValidationError("Account id must be a non-empty string", field="id")
        if not isinstance(self.label, str):
            raise ValidationError("Account label must be a string", field="label")
        label = self.label.strip()
        if not label:
            raise ValidationError("Account label must not be empty", field="label")
        # Frozen dataclass: write the trimmed label through object.__setattr__
        object.__setattr__(self, "label", label)
        if not isinstance(self.exchange, str) or not self.exchange:
            raise ValidationError("Account exchange must be a non-empty string", field="exchange")
        if isinstance(self.created_at, bool) or not isinstance(self.created_at, int):
            raise ValidationError("Account createdAt must be an integer", field="createdAt")

    @classmethod
    def create(
        cls,
        label: str,
        id_factory: Callable[[], str] = new_account_id,
        clock: Callable[[], int] = now_millis,
    ) -> Account:
        """Build a new account, drawing its id and timestamp from the injected sources."""
        # Validate the label before consuming an id from the generator
        if not isinstance(label, str) or not label.strip():
            raise ValidationError("Account label must not be empty", field="label")
        return cls(id=id_factory(), label=label, exchange=EXCHANGE, created_at=clock())

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted record shape."""
        return {
            "id": self.id,
            "label": self.label,
            "exchange": self.exchange,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> Account:
        """Inverse of :meth:`to_record`.

        Raises ValidationError when the record is not a mapping, lacks a
        field, or holds an invalid value.
        """
        if not isinstance(record, Mapping):
            raise ValidationError("Account record must be a mapping")
        missing = [name for name in _RECORD_FIELDS if name not in record]
        if missing:
            raise ValidationError(
                f"Account record is missing fields: {', '.join(missing)}",
                field=missing[0],
            )
        return cls(
            id=record["id"],
            label=record["label"],
            exchange=record["exchange"],
            created_at=record["createdAt"],
        )


@dataclasses.dataclass(frozen=True)
class SecretPair:
    """An exchange API key pair. The repr only ever shows masked values."""

    access_key: str
    secret_key: str

    def __repr__(self) -> str:
        return (
            f"SecretPair(access_key={mask(self.access_key)!r}, "
            f"secret_key={mask(self.secret_key)!r})"
        )
