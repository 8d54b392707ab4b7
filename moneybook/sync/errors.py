"""
Data-sync error taxonomy.

Store failures are NOT wrapped: whatever the store raised reaches the
caller unchanged. The classes here cover what the data-sync layer itself
rejects.
"""

from typing import Optional


class DataSyncError(Exception):
    """Base exception for errors raised by the data-sync layer."""
    pass


class NotAuthenticatedError(DataSyncError):
    """A mutation was attempted with no current identity."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"User not authenticated: cannot {operation.replace('_', ' ')}")


class DomainError(DataSyncError):
    """A rule of the data model forbids the requested change."""
    pass


class ProtectedCategoryError(DomainError):
    """Default categories cannot be edited or deleted."""

    def __init__(self, category_id: str, name: Optional[str] = None):
        self.category_id = category_id
        label = f"'{name}'" if name else category_id
        super().__init__(f"Category {label} is a default category and cannot be changed")


class RecordNotFoundError(DomainError):
    """The record does not exist or belongs to another user."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"No {kind} record {record_id} for the current user")
