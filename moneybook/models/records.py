"""
Core Data Models for moneybook

These models define the schemas of the three record kinds a user owns:
transactions, categories and accounts (wallets).

Two families of models exist:
1. Stored records (Transaction, Category, Account) - what the remote
   store returns, including server-assigned id, owner and timestamps
2. Inputs (TransactionInput, CategoryInput, AccountInput) - what callers
   submit; server-assigned fields are deliberately absent

DESIGN DECISION: Hard invariants (amount > 0, non-empty names) live here,
so an invalid record is rejected before any store round-trip.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of money flow."""
    INCOME = "income"
    EXPENSE = "expense"


class RecordKind(str, Enum):
    """
    The three record collections.

    Values double as table/worksheet names in the remote store.
    """
    TRANSACTIONS = "transactions"
    CATEGORIES = "categories"
    ACCOUNTS = "accounts"


Amount = Annotated[
    Decimal,
    Field(gt=0, decimal_places=2, description="Positive amount, currency-agnostic unit")
]


# =============================================================================
# STORED RECORDS
# =============================================================================

class StoredRecord(BaseModel):
    """Fields every stored record carries. All are assigned by the store."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1, description="Store-assigned identifier")
    user_id: str = Field(..., min_length=1, description="Owning user identity")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Transaction(StoredRecord):
    """
    A single income or expense entry.

    category_id and account_id are plain references: the referenced
    record may have been deleted since (orphans are tolerated).
    """
    kind: TransactionKind
    amount: Amount
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    image_url: Optional[str] = Field(
        default=None,
        description="Public URL of an uploaded receipt image"
    )
    date: date


class Category(StoredRecord):
    """
    A label for transactions, with display metadata for charts.

    user_id is None only for the built-in categories shown to a guest
    (no identity); every stored category has an owner.
    """
    user_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(..., min_length=1, max_length=20)
    color: str = Field(..., min_length=1, max_length=20)
    kind: Optional[TransactionKind] = Field(
        default=None,
        description="Restricts the category to one kind; None means usable for both"
    )
    is_default: bool = Field(
        default=False,
        description="Seeded default category, protected from edit and delete"
    )


class Account(StoredRecord):
    """
    A wallet or bank account.

    There is no stored balance: it is always derived from transactions
    (see moneybook.reports.account_balance).
    """
    name: str = Field(..., min_length=2, max_length=100)
    account_type: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)


# =============================================================================
# INPUTS
# =============================================================================

class TransactionInput(BaseModel):
    """Fields a caller supplies to create or fully update a transaction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: TransactionKind
    amount: Amount
    category_id: Optional[str] = None
    account_id: Optional[str] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    image_url: Optional[str] = None
    # Future dates are allowed; see moneybook.validation for the warning
    date: date


class CategoryInput(BaseModel):
    """Fields a caller supplies to create or update a category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(..., min_length=1, max_length=20)
    color: str = Field(..., min_length=1, max_length=20)
    kind: Optional[TransactionKind] = None


class AccountInput(BaseModel):
    """Fields a caller supplies to create or update an account."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        description="Account name must be at least 2 characters"
    )
    account_type: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)


# =============================================================================
# KIND REGISTRY & ORDERING
# =============================================================================

MODEL_BY_KIND: dict[RecordKind, type[StoredRecord]] = {
    RecordKind.TRANSACTIONS: Transaction,
    RecordKind.CATEGORIES: Category,
    RecordKind.ACCOUNTS: Account,
}

# (field, descending) - the deterministic order of every collection
SORT_ORDER_BY_KIND: dict[RecordKind, tuple[str, bool]] = {
    RecordKind.TRANSACTIONS: ("date", True),
    RecordKind.CATEGORIES: ("name", False),
    RecordKind.ACCOUNTS: ("created_at", False),
}

# Fields a store assigns and an update must never overwrite
SERVER_FIELDS = frozenset({"id", "user_id", "created_at", "updated_at"})


def _sort_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.casefold()
    return value


def sort_records(
    records: Iterable[StoredRecord],
    order_by: str,
    descending: bool = False,
) -> list:
    """
    Sort records by one field, ties broken by created_at then id
    in the same direction.
    """
    return sorted(
        records,
        key=lambda r: (_sort_value(getattr(r, order_by)), r.created_at, r.id),
        reverse=descending,
    )
