"""
Tests for the record store implementations.

The in-memory store is exercised directly. The Google Sheets store runs
against a fake worksheet, so no network or credentials are needed.
"""

from datetime import date
from decimal import Decimal

import pytest

from moneybook.models.records import Category, RecordKind, Transaction
from moneybook.services.storage import (
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    StorageError,
    record_matches,
)
from moneybook.services.storage.google_sheets import columns_for, to_cell

from tests.conftest import FakeWorksheet


class TestInMemoryRecordStore:
    """Tests for the in-memory store contract."""

    @pytest.mark.asyncio
    async def test_insert_assigns_server_fields(self, store):
        record = await store.insert(
            RecordKind.ACCOUNTS, "u1", {"name": "Wallet", "id": "forged", "user_id": "u2"}
        )
        assert record.id != "forged"
        assert record.user_id == "u1"
        assert record.created_at == record.updated_at

    @pytest.mark.asyncio
    async def test_query_scoped_to_owner(self, store):
        await store.insert(RecordKind.ACCOUNTS, "u1", {"name": "Mine"})
        await store.insert(RecordKind.ACCOUNTS, "u2", {"name": "Theirs"})

        records = await store.query(RecordKind.ACCOUNTS, "u1")

        assert [r.name for r in records] == ["Mine"]

    @pytest.mark.asyncio
    async def test_query_orders_by_requested_field(self, store):
        for day in (5, 20, 1):
            await store.insert(
                RecordKind.TRANSACTIONS,
                "u1",
                {"kind": "expense", "amount": Decimal("1"), "date": date(2024, 3, day)},
            )

        records = await store.query(RecordKind.TRANSACTIONS, "u1", "date", descending=True)

        assert [r.date.day for r in records] == [20, 5, 1]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store):
        record = await store.insert(RecordKind.ACCOUNTS, "u1", {"name": "Wallet"})
        record.name = "Changed"

        stored = await store.get(RecordKind.ACCOUNTS, record.id)

        assert stored.name == "Wallet"

    @pytest.mark.asyncio
    async def test_invalid_values_raise_storage_error(self, store):
        with pytest.raises(StorageError):
            await store.insert(RecordKind.ACCOUNTS, "u1", {"name": "A"})

    @pytest.mark.asyncio
    async def test_update_keeps_server_fields(self, store):
        record = await store.insert(RecordKind.ACCOUNTS, "u1", {"name": "Wallet"})

        updated = await store.update(
            RecordKind.ACCOUNTS, record.id, "u1", {"name": "Bank", "user_id": "u2"}
        )

        assert updated.name == "Bank"
        assert updated.user_id == "u1"
        assert updated.created_at == record.created_at
        assert updated.updated_at > record.updated_at

    @pytest.mark.asyncio
    async def test_update_other_owner_matches_nothing(self, store):
        record = await store.insert(RecordKind.ACCOUNTS, "u1", {"name": "Wallet"})

        assert await store.update(RecordKind.ACCOUNTS, record.id, "u2", {"name": "Bank"}) is None
        assert (await store.get(RecordKind.ACCOUNTS, record.id)).name == "Wallet"

    @pytest.mark.asyncio
    async def test_conditional_delete(self, store):
        protected = await store.insert(
            RecordKind.CATEGORIES, "u1",
            {"name": "Food", "icon": "🍔", "color": "#fff", "is_default": True},
        )

        removed = await store.delete(
            RecordKind.CATEGORIES, protected.id, "u1", where={"is_default": False}
        )

        assert removed is False
        assert store.count(RecordKind.CATEGORIES, "u1") == 1

    @pytest.mark.asyncio
    async def test_delete_missing_record(self, store):
        assert await store.delete(RecordKind.ACCOUNTS, "nope", "u1") is False


class TestRecordMatches:
    """Tests for the owner/predicate filter shared by both stores."""

    def _category(self, **overrides) -> Category:
        data = {"id": "c1", "user_id": "u1", "name": "Food", "icon": "x", "color": "#000"}
        data.update(overrides)
        return Category(**data)

    def test_owner_must_match(self):
        assert record_matches(self._category(), "u1")
        assert not record_matches(self._category(), "u2")

    def test_predicates_must_all_match(self):
        assert record_matches(self._category(), "u1", {"is_default": False})
        assert not record_matches(self._category(is_default=True), "u1", {"is_default": False})


class FakeSheetsClient:
    """Hands out one FakeWorksheet per record kind."""

    def __init__(self):
        self.sheets = {kind: FakeWorksheet(columns_for(kind)) for kind in RecordKind}

    def get_records_sheet(self, kind: RecordKind) -> FakeWorksheet:
        return self.sheets[kind]


class TestGoogleSheetsRecordStore:
    """Tests for the Sheets store against a fake worksheet."""

    @pytest.fixture
    def client(self) -> FakeSheetsClient:
        return FakeSheetsClient()

    @pytest.fixture
    def sheets_store(self, client) -> GoogleSheetsRecordStore:
        return GoogleSheetsRecordStore(client)

    def test_to_cell(self):
        assert to_cell(None) == ""
        assert to_cell(True) == "true"
        assert to_cell(date(2024, 3, 1)) == "2024-03-01"
        assert to_cell(Decimal("150.00")) == "150.00"

    @pytest.mark.asyncio
    async def test_insert_then_query_round_trip(self, sheets_store):
        inserted = await sheets_store.insert(
            RecordKind.TRANSACTIONS, "u1",
            {"kind": "expense", "amount": Decimal("150.00"), "date": date(2024, 3, 1)},
        )

        records = await sheets_store.query(RecordKind.TRANSACTIONS, "u1")

        assert len(records) == 1
        assert isinstance(records[0], Transaction)
        assert records[0].id == inserted.id
        assert records[0].amount == Decimal("150.00")
        assert records[0].category_id is None

    @pytest.mark.asyncio
    async def test_rows_follow_sheet_header_order(self, client, sheets_store):
        """Test that a user-reordered sheet is still read and written by name."""
        header = list(reversed(columns_for(RecordKind.ACCOUNTS)))
        client.sheets[RecordKind.ACCOUNTS] = FakeWorksheet(header)

        record = await sheets_store.insert(RecordKind.ACCOUNTS, "u1", {"name": "Wallet"})

        row = client.sheets[RecordKind.ACCOUNTS].rows[1]
        assert row[header.index("name")] == "Wallet"
        assert (await sheets_store.get(RecordKind.ACCOUNTS, record.id)).name == "Wallet"

    @pytest.mark.asyncio
    async def test_query_skips_other_owners_and_malformed_rows(self, client, sheets_store):
        await sheets_store.insert(RecordKind.ACCOUNTS, "u1", {"name": "Wallet"})
        await sheets_store.insert(RecordKind.ACCOUNTS, "u2", {"name": "Other"})
        header = client.sheets[RecordKind.ACCOUNTS].rows[0]
        broken = [""] * len(header)
        broken[header.index("id")] = "broken"
        broken[header.index("user_id")] = "u1"
        client.sheets[RecordKind.ACCOUNTS].rows.append(broken)

        records = await sheets_store.query(RecordKind.ACCOUNTS, "u1")

        assert [r.name for r in records] == ["Wallet"]

    @pytest.mark.asyncio
    async def test_update_rewrites_row(self, client, sheets_store):
        record = await sheets_store.insert(RecordKind.ACCOUNTS, "u1", {"name": "Wallet"})

        updated = await sheets_store.update(
            RecordKind.ACCOUNTS, record.id, "u1", {"name": "Bank"}
        )

        assert updated.name == "Bank"
        assert len(client.sheets[RecordKind.ACCOUNTS].rows) == 2
        assert (await sheets_store.get(RecordKind.ACCOUNTS, record.id)).name == "Bank"

    @pytest.mark.asyncio
    async def test_protected_category_survives_conditional_delete(self, sheets_store):
        category = await sheets_store.insert(
            RecordKind.CATEGORIES, "u1",
            {"name": "Food", "icon": "🍔", "color": "#fff", "is_default": True},
        )

        removed = await sheets_store.delete(
            RecordKind.CATEGORIES, category.id, "u1", where={"is_default": False}
        )

        assert removed is False
        stored = await sheets_store.get(RecordKind.CATEGORIES, category.id)
        assert stored.is_default is True

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, client, sheets_store):
        record = await sheets_store.insert(RecordKind.ACCOUNTS, "u1", {"name": "Wallet"})

        assert await sheets_store.delete(RecordKind.ACCOUNTS, record.id, "u1") is True
        assert client.sheets[RecordKind.ACCOUNTS].rows == [columns_for(RecordKind.ACCOUNTS)]
