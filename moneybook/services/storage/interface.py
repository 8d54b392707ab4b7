"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the remote record store.
This allows us to:
1. Swap Google Sheets for a hosted relational database later
2. Use in-memory storage for testing
3. Keep the data-sync layer decoupled from storage implementation

The interface mirrors what a backend-as-a-service offers a client:
owner-scoped query, insert, update and delete. Every write re-asserts the
owning identity, and update/delete accept extra equality predicates so an
invariant ("not a default category") is checked by the write itself
instead of by a separate read.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from moneybook.models.audit import AuditEvent
from moneybook.models.records import RecordKind, StoredRecord


class RecordStoreInterface(ABC):
    """
    Abstract interface for record storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def query(
        self,
        kind: RecordKind,
        owner_id: str,
        order_by: str = "created_at",
        descending: bool = False,
    ) -> list[StoredRecord]:
        """
        Read all records of a kind owned by one identity.

        Args:
            kind: Record collection to read
            owner_id: Only records with this user_id are returned
            order_by: Field to sort on (ties broken by created_at)
            descending: Sort direction

        Returns:
            Ordered list of records

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def get(
        self,
        kind: RecordKind,
        record_id: str,
    ) -> Optional[StoredRecord]:
        """
        Retrieve a record by its ID, whoever owns it.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def insert(
        self,
        kind: RecordKind,
        owner_id: str,
        values: dict[str, Any],
    ) -> StoredRecord:
        """
        Store a new record.

        The store assigns id, user_id (= owner_id), created_at and updated_at;
        any such keys in values are ignored.

        Returns:
            The canonical stored record

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        owner_id: str,
        changes: dict[str, Any],
        where: Optional[dict[str, Any]] = None,
    ) -> Optional[StoredRecord]:
        """
        Patch an existing record.

        The row must match record_id, owner_id and every field/value pair
        in where. id, user_id and created_at are never changed;
        updated_at is set by the store.

        Returns:
            The canonical updated record, or None if no row matched

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(
        self,
        kind: RecordKind,
        record_id: str,
        owner_id: str,
        where: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Permanently remove a record (no soft delete).

        Matching rules are the same as update().

        Returns:
            True if a row was removed, False if nothing matched
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events, newest first.

        Args:
            limit: Maximum number of events to return
            user_id: Only events recorded under this identity
        """
        pass


def record_matches(
    record: StoredRecord,
    owner_id: str,
    where: Optional[dict[str, Any]] = None,
) -> bool:
    """True if record belongs to owner_id and equals every predicate in where."""
    if record.user_id != owner_id:
        return False
    for field, value in (where or {}).items():
        if getattr(record, field, None) != value:
            return False
    return True


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
