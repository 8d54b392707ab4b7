"""
Data-sync package.

The in-memory mirror of the current user's records and the operations
that keep it consistent with the remote store.
"""

from moneybook.sync.data_sync import DataSync
from moneybook.sync.errors import (
    DataSyncError,
    DomainError,
    NotAuthenticatedError,
    ProtectedCategoryError,
    RecordNotFoundError,
)
from moneybook.sync.identity import IdentityProvider
from moneybook.sync.mirror import EntityMirror

__all__ = [
    "DataSync",
    "DataSyncError",
    "DomainError",
    "EntityMirror",
    "IdentityProvider",
    "NotAuthenticatedError",
    "ProtectedCategoryError",
    "RecordNotFoundError",
]
