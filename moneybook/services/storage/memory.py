"""
In-Memory Storage Implementation

A process-local record store with the same contract as the remote one.
Used by the test suite, for local development, and as the fallback when
no backend is configured.

Every call completes without yielding to the event loop, so each single
operation (including a conditional update/delete) is atomic.
"""

from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError

from moneybook.models.records import (
    MODEL_BY_KIND,
    SERVER_FIELDS,
    RecordKind,
    StoredRecord,
    sort_records,
    utc_now,
)
from moneybook.services.storage.interface import (
    RecordStoreInterface,
    StorageError,
    record_matches,
)


class InMemoryRecordStore(RecordStoreInterface):
    """
    Record store backed by dictionaries.

    Records handed out are copies; mutating them never changes the store.
    """

    def __init__(self):
        self._rows: dict[RecordKind, dict[str, StoredRecord]] = {
            kind: {} for kind in RecordKind
        }
        self._last_timestamp: Optional[datetime] = None

    def _now(self) -> datetime:
        """UTC now, strictly increasing across calls so ordering is stable."""
        now = utc_now()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def count(self, kind: RecordKind, owner_id: Optional[str] = None) -> int:
        """Number of stored records of a kind, optionally for one owner."""
        rows = self._rows[kind].values()
        if owner_id is None:
            return len(rows)
        return sum(1 for row in rows if row.user_id == owner_id)

    async def query(
        self,
        kind: RecordKind,
        owner_id: str,
        order_by: str = "created_at",
        descending: bool = False,
    ) -> list[StoredRecord]:
        owned = [
            row.model_copy(deep=True)
            for row in self._rows[kind].values()
            if row.user_id == owner_id
        ]
        return sort_records(owned, order_by, descending)

    async def get(
        self,
        kind: RecordKind,
        record_id: str,
    ) -> Optional[StoredRecord]:
        row = self._rows[kind].get(record_id)
        return row.model_copy(deep=True) if row else None

    async def insert(
        self,
        kind: RecordKind,
        owner_id: str,
        values: dict[str, Any],
    ) -> StoredRecord:
        now = self._now()
        payload = {k: v for k, v in values.items() if k not in SERVER_FIELDS}
        try:
            record = MODEL_BY_KIND[kind](
                id=str(uuid4()),
                user_id=owner_id,
                created_at=now,
                updated_at=now,
                **payload,
            )
        except ValidationError as e:
            raise StorageError(f"Failed to insert {kind.value} record: {e}")

        self._rows[kind][record.id] = record
        return record.model_copy(deep=True)

    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        owner_id: str,
        changes: dict[str, Any],
        where: Optional[dict[str, Any]] = None,
    ) -> Optional[StoredRecord]:
        current = self._rows[kind].get(record_id)
        if current is None or not record_matches(current, owner_id, where):
            return None

        merged = current.model_dump()
        merged.update({k: v for k, v in changes.items() if k not in SERVER_FIELDS})
        merged["updated_at"] = self._now()
        try:
            record = MODEL_BY_KIND[kind].model_validate(merged)
        except ValidationError as e:
            raise StorageError(f"Failed to update {kind.value} record: {e}")

        self._rows[kind][record_id] = record
        return record.model_copy(deep=True)

    async def delete(
        self,
        kind: RecordKind,
        record_id: str,
        owner_id: str,
        where: Optional[dict[str, Any]] = None,
    ) -> bool:
        current = self._rows[kind].get(record_id)
        if current is None or not record_matches(current, owner_id, where):
            return False
        del self._rows[kind][record_id]
        return True
