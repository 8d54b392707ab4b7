"""
Shared fixtures for the moneybook test suite.

No external services are touched: the record store is the in-memory one,
and image/audit storage are replaced by small fakes defined here.
"""

import asyncio
from datetime import date
from decimal import Decimal
from io import BytesIO
from typing import Any, Optional

import pytest
from PIL import Image

from moneybook.audit import AuditLogger
from moneybook.models.audit import AuditEvent, AuditEventType
from moneybook.models.records import RecordKind
from moneybook.services.image import ImageStorageInterface
from moneybook.services.storage import (
    AuditStorageInterface,
    InMemoryRecordStore,
    StorageError,
)
from moneybook.sync import DataSync, IdentityProvider


class MemoryAuditStorage(AuditStorageInterface):
    """Collects audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if user_id is None or e.user_id == user_id]
        return list(reversed(events))[:limit]

    def of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]


class FakeImageStorage(ImageStorageInterface):
    """Returns a predictable URL per upload, or raises if told to."""

    def __init__(self):
        self.uploads: list[tuple[str, str]] = []
        self.error: Optional[Exception] = None

    async def upload_image(self, image_bytes: bytes, filename: str, owner_id: str) -> str:
        if self.error is not None:
            raise self.error
        self.uploads.append((owner_id, filename))
        return f"https://images.example.com/{owner_id}/{len(self.uploads)}.png"


class FailingRecordStore(InMemoryRecordStore):
    """
    In-memory store whose listed operations raise StorageError.

    inserts_before_failure lets that many inserts through, then fails
    every insert after them.
    """

    def __init__(self):
        super().__init__()
        self.fail_on: set[str] = set()
        self.inserts_before_failure: Optional[int] = None

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageError(f"{operation} failed: permission denied")

    async def query(self, kind, owner_id, order_by="created_at", descending=False):
        self._check("query")
        return await super().query(kind, owner_id, order_by, descending)

    async def insert(self, kind, owner_id, values):
        self._check("insert")
        if self.inserts_before_failure is not None:
            if self.inserts_before_failure == 0:
                raise StorageError("insert failed: connection reset")
            self.inserts_before_failure -= 1
        return await super().insert(kind, owner_id, values)

    async def update(self, kind, record_id, owner_id, changes, where=None):
        self._check("update")
        return await super().update(kind, record_id, owner_id, changes, where)

    async def delete(self, kind, record_id, owner_id, where=None):
        self._check("delete")
        return await super().delete(kind, record_id, owner_id, where)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the Sheets-backed stores."""

    def __init__(self, header: list[str]):
        self.rows: list[list[str]] = [list(header)]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def row_values(self, row: int) -> list[str]:
        return list(self.rows[row - 1])

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def update(self, range_name, values, value_input_option=None):
        row_number = int(range_name[1:])
        self.rows[row_number - 1] = list(values[0])

    def delete_rows(self, row_number: int):
        del self.rows[row_number - 1]


class GatedRecordStore(InMemoryRecordStore):
    """
    In-memory store whose queries for gated owners wait for release().

    Lets a test hold one identity's bootstrap in flight while another runs.
    """

    def __init__(self):
        super().__init__()
        self._gates: dict[str, asyncio.Event] = {}

    def gate(self, owner_id: str) -> None:
        self._gates[owner_id] = asyncio.Event()

    def release(self, owner_id: str) -> None:
        self._gates.pop(owner_id).set()

    async def query(self, kind, owner_id, order_by="created_at", descending=False):
        gate = self._gates.get(owner_id)
        if gate is not None:
            await gate.wait()
        return await super().query(kind, owner_id, order_by, descending)


def make_transaction(**overrides: Any) -> dict[str, Any]:
    """Transaction input payload with sensible defaults."""
    data: dict[str, Any] = {
        "kind": "expense",
        "amount": Decimal("150.00"),
        "date": date(2024, 3, 1),
    }
    data.update(overrides)
    return data


def png_bytes(size: tuple[int, int] = (4, 4), image_format: str = "PNG") -> bytes:
    buffer = BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format=image_format)
    return buffer.getvalue()


async def seed(store: InMemoryRecordStore, kind: RecordKind, owner_id: str, /, **values: Any):
    return await store.insert(kind, owner_id, values)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def identity() -> IdentityProvider:
    return IdentityProvider()


@pytest.fixture
def audit_storage() -> MemoryAuditStorage:
    return MemoryAuditStorage()


@pytest.fixture
def image_storage() -> FakeImageStorage:
    return FakeImageStorage()


@pytest.fixture
def sync(store, identity, image_storage, audit_storage) -> DataSync:
    return DataSync(
        store,
        identity=identity,
        image_storage=image_storage,
        audit_logger=AuditLogger(audit_storage),
    )
