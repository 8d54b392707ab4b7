"""
Entity Mirror

The in-memory copy of one user's records that presentation code reads.

Only DataSync mutates the mirror, always after a completed read or a
confirmed write. Readers get tuples, so they cannot change it in place.
"""

from typing import Iterable, Optional

from moneybook.models.records import (
    SORT_ORDER_BY_KIND,
    Account,
    Category,
    RecordKind,
    StoredRecord,
    Transaction,
    sort_records,
)


class EntityMirror:
    """
    Three ordered collections plus the identity they belong to.

    loading starts True and only the identity lifecycle (begin_loading)
    sets it again; refreshes never do.
    """

    def __init__(self):
        self._owner_id: Optional[str] = None
        self._loading = True
        self._collections: dict[RecordKind, list[StoredRecord]] = {
            kind: [] for kind in RecordKind
        }

    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._collections[RecordKind.TRANSACTIONS])

    @property
    def categories(self) -> tuple[Category, ...]:
        return tuple(self._collections[RecordKind.CATEGORIES])

    @property
    def accounts(self) -> tuple[Account, ...]:
        return tuple(self._collections[RecordKind.ACCOUNTS])

    def get(self, kind: RecordKind) -> tuple[StoredRecord, ...]:
        return tuple(self._collections[kind])

    def find(self, kind: RecordKind, record_id: str) -> Optional[StoredRecord]:
        for record in self._collections[kind]:
            if record.id == record_id:
                return record
        return None

    def begin_loading(self) -> None:
        """Forget the previous identity's data and enter the loading state."""
        self._owner_id = None
        self._loading = True
        for kind in RecordKind:
            self._collections[kind] = []

    def swap(
        self,
        owner_id: str,
        transactions: Iterable[Transaction],
        categories: Iterable[Category],
        accounts: Iterable[Account],
    ) -> None:
        """Install a complete new state in one step."""
        self._collections = {
            RecordKind.TRANSACTIONS: self._ordered(RecordKind.TRANSACTIONS, transactions),
            RecordKind.CATEGORIES: self._ordered(RecordKind.CATEGORIES, categories),
            RecordKind.ACCOUNTS: self._ordered(RecordKind.ACCOUNTS, accounts),
        }
        self._owner_id = owner_id
        self._loading = False

    def reset_guest(self, categories: Iterable[Category]) -> None:
        """No identity: empty data, built-in categories only."""
        self._collections = {
            RecordKind.TRANSACTIONS: [],
            RecordKind.CATEGORIES: self._ordered(RecordKind.CATEGORIES, categories),
            RecordKind.ACCOUNTS: [],
        }
        self._owner_id = None
        self._loading = False

    def replace(self, kind: RecordKind, records: Iterable[StoredRecord]) -> None:
        """Full replace of one collection (no delta merge)."""
        self._collections[kind] = self._ordered(kind, records)

    def upsert(self, kind: RecordKind, record: StoredRecord) -> None:
        """Merge one record by id, keeping the collection's order."""
        others = [r for r in self._collections[kind] if r.id != record.id]
        others.append(record)
        self._collections[kind] = self._ordered(kind, others)

    def remove(self, kind: RecordKind, record_id: str) -> bool:
        before = len(self._collections[kind])
        self._collections[kind] = [
            r for r in self._collections[kind] if r.id != record_id
        ]
        return len(self._collections[kind]) != before

    @staticmethod
    def _ordered(kind: RecordKind, records: Iterable[StoredRecord]) -> list[StoredRecord]:
        order_by, descending = SORT_ORDER_BY_KIND[kind]
        return sort_records(records, order_by, descending)
