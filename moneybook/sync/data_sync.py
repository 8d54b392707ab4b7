"""
Data-Sync Layer

Owns the entity mirror for the current identity and exposes the
operations presentation code calls to read and change data.

FLOW OF A MUTATION:
1. Require an identity (NotAuthenticatedError otherwise)
2. Write to the remote store, scoped to that identity
   (store errors propagate unchanged)
3. Merge the store's canonical record into the mirror by id
4. Optionally re-fetch the whole collection (reconcile_after_write);
   a failed re-fetch is logged, the write still counts

FLOW OF AN IDENTITY CHANGE:
- Logout: mirror holds only the built-in categories, loading is False
- Login: mirror is cleared and loading, the three collections are read
  in parallel, default categories are seeded for a user who has none
  (or who has only part of the set after an interrupted seed),
  and the new state is swapped in at once

DESIGN DECISION: The store's write response is authoritative. A full
re-fetch after every write is off by default; call refresh() for an
explicit reconcile.
"""

import asyncio
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar, Union
from uuid import UUID

import structlog
from pydantic import BaseModel

from moneybook.audit import AuditLogger
from moneybook.config.defaults import DEFAULT_CATEGORIES
from moneybook.models.records import (
    SORT_ORDER_BY_KIND,
    Account,
    AccountInput,
    Category,
    CategoryInput,
    RecordKind,
    StoredRecord,
    Transaction,
    TransactionInput,
)
from moneybook.services.image import ImageStorageInterface, ImageUploadError
from moneybook.services.storage import RecordStoreInterface
from moneybook.sync.errors import (
    DomainError,
    NotAuthenticatedError,
    ProtectedCategoryError,
    RecordNotFoundError,
)
from moneybook.sync.identity import IdentityProvider
from moneybook.sync.mirror import EntityMirror


logger = structlog.get_logger(__name__)

T = TypeVar("T")
InputT = TypeVar("InputT", bound=BaseModel)

# Predicate that makes a category write fail on protected rows
NOT_DEFAULT = {"is_default": False}


def _coerce(model: type[InputT], data: Union[InputT, Mapping[str, Any]]) -> InputT:
    if isinstance(data, model):
        return data
    return model.model_validate(data)


class DataSync:
    """
    The data-sync layer for one client session.

    Usage:
        sync = DataSync(store, identity=identity)
        await sync.attach()
        await identity.set_user("user-123")
        tx = await sync.add_transaction({...})
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        identity: Optional[IdentityProvider] = None,
        image_storage: Optional[ImageStorageInterface] = None,
        default_categories: Optional[Mapping[str, CategoryInput]] = None,
        audit_logger: Optional[AuditLogger] = None,
        reconcile_after_write: bool = False,
        seed_default_categories: bool = True,
    ):
        """
        Args:
            store: Remote record store
            identity: Source of the current user id; a fresh provider
                      with no user if omitted
            image_storage: Object storage for transaction images
            default_categories: key -> category table seeded for new users
                      and shown to guests (DEFAULT_CATEGORIES if None)
            audit_logger: Where audit events go; none are emitted if None
            reconcile_after_write: Re-fetch the affected collection after
                      every successful write
            seed_default_categories: Create defaults for users with none
        """
        self._store = store
        self._identity = identity or IdentityProvider()
        self._image_storage = image_storage
        self._default_categories = dict(
            DEFAULT_CATEGORIES if default_categories is None else default_categories
        )
        self._audit = audit_logger
        self._reconcile_after_write = reconcile_after_write
        self._seed_defaults = seed_default_categories

        self._mirror = EntityMirror()
        self._generation = 0
        self._seed_lock = asyncio.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def store(self) -> RecordStoreInterface:
        return self._store

    @property
    def identity(self) -> IdentityProvider:
        return self._identity

    @property
    def mirror(self) -> EntityMirror:
        return self._mirror

    @property
    def user_id(self) -> Optional[str]:
        return self._identity.current_user_id

    @property
    def loading(self) -> bool:
        return self._mirror.loading

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._mirror.transactions

    @property
    def categories(self) -> tuple[Category, ...]:
        return self._mirror.categories

    @property
    def accounts(self) -> tuple[Account, ...]:
        return self._mirror.accounts

    def guest_categories(self) -> list[Category]:
        """Read-only copies of the default table, keyed by their table key."""
        return [
            Category(id=key, user_id=None, is_default=True, **category.model_dump())
            for key, category in self._default_categories.items()
        ]

    # =========================================================================
    # IDENTITY LIFECYCLE
    # =========================================================================

    async def attach(self) -> None:
        """Follow the identity provider and load data for its current user."""
        if self._unsubscribe is None:
            self._unsubscribe = self._identity.subscribe(self.bootstrap)
        await self.bootstrap(self._identity.current_user_id)

    def detach(self) -> None:
        """Stop following identity changes. The mirror keeps its state."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def bootstrap(self, user_id: Optional[str]) -> None:
        """
        Rebuild the mirror for user_id (None = logged out).

        A bootstrap that is overtaken by a newer one discards its results,
        so the mirror never mixes two identities.

        Raises:
            Whatever the store raised while reading or seeding
        """
        self._generation += 1
        generation = self._generation

        if user_id is None:
            self._mirror.reset_guest(self.guest_categories())
            if self._audit:
                await self._audit.log_guest_mode(len(self._default_categories))
            return

        self._mirror.begin_loading()
        if self._audit:
            await self._audit.log_bootstrap_started(user_id, generation)

        try:
            transactions, categories, accounts = await asyncio.gather(
                self._query(RecordKind.TRANSACTIONS, user_id),
                self._query(RecordKind.CATEGORIES, user_id),
                self._query(RecordKind.ACCOUNTS, user_id),
            )
            if self._seed_defaults and self._missing_defaults(categories):
                categories = await self.ensure_default_categories(user_id)
        except Exception as e:
            if generation == self._generation:
                self._mirror.swap(user_id, [], [], [])
            if self._audit:
                await self._audit.log_store_error("bootstrap", str(e), user_id=user_id)
            raise

        if generation != self._generation:
            if self._audit:
                await self._audit.log_bootstrap_discarded(user_id, generation)
            return

        self._mirror.swap(user_id, transactions, categories, accounts)
        if self._audit:
            await self._audit.log_bootstrap_completed(
                user_id,
                generation,
                {
                    "transactions": len(transactions),
                    "categories": len(categories),
                    "accounts": len(accounts),
                },
            )

    def _missing_defaults(self, categories: list[Category]) -> list[CategoryInput]:
        """
        Default categories user_id still lacks.

        A user with no categories lacks all of them. A user with only
        their own categories was never seeded and lacks none. A user with
        some defaults lacks the rest: defaults cannot be deleted, so a gap
        means an earlier seed stopped partway.
        """
        seeded = {c.name for c in categories if c.is_default}
        if categories and not seeded:
            return []
        return [c for c in self._default_categories.values() if c.name not in seeded]

    async def ensure_default_categories(self, user_id: str) -> list[Category]:
        """
        Create whichever default categories user_id is missing.

        Check-then-write: serialized inside this process, not atomic
        against another process seeding the same user. A seed that fails
        partway is finished by the next call.

        Returns the user's categories after seeding.
        """
        async with self._seed_lock:
            existing = await self._query(RecordKind.CATEGORIES, user_id)
            missing = self._missing_defaults(existing)
            if not missing:
                return existing

            for category in missing:
                values = category.model_dump()
                values["is_default"] = True
                await self._store.insert(RecordKind.CATEGORIES, user_id, values)

            names = [c.name for c in missing]
            logger.info("default_categories_seeded", user_id=user_id, count=len(names))
            if self._audit:
                await self._audit.log_defaults_seeded(user_id, names)

            return await self._query(RecordKind.CATEGORIES, user_id)

    # =========================================================================
    # READ PATH
    # =========================================================================

    async def _query(self, kind: RecordKind, user_id: str) -> list:
        order_by, descending = SORT_ORDER_BY_KIND[kind]
        return await self._store.query(
            kind,
            user_id,
            order_by=order_by,
            descending=descending,
        )

    async def fetch(self, kind: RecordKind) -> tuple[StoredRecord, ...]:
        """
        Re-read one collection and replace it wholesale.

        No-op without an identity. The result is dropped if the identity
        changed while the read was in flight.
        """
        user_id = self.user_id
        if user_id is None:
            return self._mirror.get(kind)

        generation = self._generation
        try:
            records = await self._query(kind, user_id)
        except Exception as e:
            if self._audit:
                await self._audit.log_store_error(
                    f"fetch_{kind.value}", str(e), kind.value, user_id
                )
            raise

        if generation == self._generation and self._mirror.owner_id == user_id:
            self._mirror.replace(kind, records)
        return self._mirror.get(kind)

    async def fetch_transactions(self) -> tuple[Transaction, ...]:
        return await self.fetch(RecordKind.TRANSACTIONS)

    async def fetch_categories(self) -> tuple[Category, ...]:
        return await self.fetch(RecordKind.CATEGORIES)

    async def fetch_accounts(self) -> tuple[Account, ...]:
        return await self.fetch(RecordKind.ACCOUNTS)

    async def refresh(self) -> None:
        """Re-read all three collections in parallel. Never sets loading."""
        await asyncio.gather(
            self.fetch_transactions(),
            self.fetch_categories(),
            self.fetch_accounts(),
        )

    # =========================================================================
    # WRITE PATH - shared steps
    # =========================================================================

    async def _require_user(self, operation: str) -> str:
        user_id = self.user_id
        if user_id is None:
            if self._audit:
                await self._audit.log_not_authenticated(operation)
            raise NotAuthenticatedError(operation)
        return user_id

    async def _call_store(
        self,
        operation: str,
        kind: RecordKind,
        user_id: str,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        """Run one store call; failures are audited and re-raised as-is."""
        try:
            return await call()
        except Exception as e:
            logger.warning("store_call_failed", operation=operation, error=str(e))
            if self._audit:
                await self._audit.log_store_error(operation, str(e), kind.value, user_id)
            raise

    async def _reflect(self, kind: RecordKind, user_id: str, record: StoredRecord) -> None:
        if self._mirror.owner_id == user_id:
            self._mirror.upsert(kind, record)
        await self._reconcile(kind)

    async def _reflect_removal(self, kind: RecordKind, user_id: str, record_id: str) -> None:
        if self._mirror.owner_id == user_id:
            self._mirror.remove(kind, record_id)
        await self._reconcile(kind)

    async def _reconcile(self, kind: RecordKind) -> None:
        """
        Re-fetch kind after a confirmed write, if configured.

        The write already succeeded, so a failed re-fetch is logged and the
        merged mirror is kept rather than failing the mutation.
        """
        if not self._reconcile_after_write:
            return
        try:
            await self.fetch(kind)
        except Exception as e:
            logger.warning("reconcile_failed", kind=kind.value, error=str(e))

    async def _not_found(
        self,
        kind: RecordKind,
        record_id: str,
        user_id: str,
        operation: str,
    ) -> RecordNotFoundError:
        if self._audit:
            await self._audit.log_record_not_found(kind.value, record_id, user_id, operation)
        return RecordNotFoundError(kind.value, record_id)

    async def _create(
        self,
        operation: str,
        kind: RecordKind,
        values: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> StoredRecord:
        user_id = await self._require_user(operation)
        record = await self._call_store(
            operation, kind, user_id,
            lambda: self._store.insert(kind, user_id, values),
        )
        await self._reflect(kind, user_id, record)
        if self._audit:
            await self._audit.log_record_created(kind.value, record.id, user_id, correlation_id)
        return record

    async def _update(
        self,
        operation: str,
        kind: RecordKind,
        record_id: str,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> StoredRecord:
        user_id = await self._require_user(operation)
        record = await self._call_store(
            operation, kind, user_id,
            lambda: self._store.update(kind, record_id, user_id, changes),
        )
        if record is None:
            raise await self._not_found(kind, record_id, user_id, operation)
        await self._reflect(kind, user_id, record)
        if self._audit:
            await self._audit.log_record_updated(
                kind.value, record_id, user_id, sorted(changes), correlation_id
            )
        return record

    async def _delete(
        self,
        operation: str,
        kind: RecordKind,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        user_id = await self._require_user(operation)
        removed = await self._call_store(
            operation, kind, user_id,
            lambda: self._store.delete(kind, record_id, user_id),
        )
        if not removed:
            raise await self._not_found(kind, record_id, user_id, operation)
        await self._reflect_removal(kind, user_id, record_id)
        if self._audit:
            await self._audit.log_record_deleted(kind.value, record_id, user_id, correlation_id)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(
        self,
        data: Union[TransactionInput, Mapping[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Create a transaction.

        image_url, if any, must come from upload_transaction_image first.
        """
        tx = _coerce(TransactionInput, data)
        return await self._create(
            "add_transaction", RecordKind.TRANSACTIONS, tx.model_dump(), correlation_id
        )

    async def update_transaction(
        self,
        transaction_id: str,
        data: Union[TransactionInput, Mapping[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Replace every editable field of a transaction."""
        tx = _coerce(TransactionInput, data)
        return await self._update(
            "update_transaction",
            RecordKind.TRANSACTIONS,
            transaction_id,
            tx.model_dump(),
            correlation_id,
        )

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self._delete(
            "delete_transaction", RecordKind.TRANSACTIONS, transaction_id, correlation_id
        )

    async def upload_transaction_image(
        self,
        image_bytes: bytes,
        filename: str,
        correlation_id: Optional[UUID] = None,
    ) -> str:
        """
        Upload a receipt image and return its public URL.

        Nothing is cleaned up if the transaction that should reference the
        image is never written.
        """
        user_id = await self._require_user("upload_transaction_image")
        if self._image_storage is None:
            raise ImageUploadError("Image storage is not configured")

        try:
            url = await self._image_storage.upload_image(image_bytes, filename, user_id)
        except Exception as e:
            if self._audit:
                await self._audit.log_external_service_error("image_storage", str(e), user_id)
            raise

        if self._audit:
            await self._audit.log_image_uploaded(user_id, url, len(image_bytes), correlation_id)
        return url

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def add_category(self, data: Union[CategoryInput, Mapping[str, Any]]) -> Category:
        """Create a user category. User categories are never default."""
        category = _coerce(CategoryInput, data)
        values = category.model_dump()
        values["is_default"] = False
        return await self._create("add_category", RecordKind.CATEGORIES, values)

    async def update_category(
        self,
        category_id: str,
        data: Union[CategoryInput, Mapping[str, Any]],
    ) -> Category:
        """
        Change a category's name, icon, color or kind.

        Raises:
            ProtectedCategoryError: If it is a default category
            RecordNotFoundError: If the current user has no such category
        """
        operation = "update_category"
        changes = _coerce(CategoryInput, data).model_dump()
        user_id = await self._require_user(operation)
        record = await self._call_store(
            operation, RecordKind.CATEGORIES, user_id,
            lambda: self._store.update(
                RecordKind.CATEGORIES, category_id, user_id, changes, where=NOT_DEFAULT
            ),
        )
        if record is None:
            raise await self._category_rejection(category_id, user_id, operation)
        await self._reflect(RecordKind.CATEGORIES, user_id, record)
        if self._audit:
            await self._audit.log_record_updated(
                RecordKind.CATEGORIES.value, category_id, user_id, sorted(changes)
            )
        return record

    async def delete_category(self, category_id: str) -> None:
        """
        Delete a category. Transactions that reference it keep the
        now-orphaned reference.

        Raises:
            ProtectedCategoryError: If it is a default category
            RecordNotFoundError: If the current user has no such category
        """
        operation = "delete_category"
        user_id = await self._require_user(operation)
        removed = await self._call_store(
            operation, RecordKind.CATEGORIES, user_id,
            lambda: self._store.delete(
                RecordKind.CATEGORIES, category_id, user_id, where=NOT_DEFAULT
            ),
        )
        if not removed:
            raise await self._category_rejection(category_id, user_id, operation)
        await self._reflect_removal(RecordKind.CATEGORIES, user_id, category_id)
        if self._audit:
            await self._audit.log_record_deleted(
                RecordKind.CATEGORIES.value, category_id, user_id
            )

    async def _category_rejection(
        self,
        category_id: str,
        user_id: str,
        operation: str,
    ) -> DomainError:
        """
        Explain why a conditional category write matched nothing.

        The write already decided; this read only picks the message.
        """
        existing = await self._call_store(
            operation, RecordKind.CATEGORIES, user_id,
            lambda: self._store.get(RecordKind.CATEGORIES, category_id),
        )
        if existing is None or existing.user_id != user_id:
            return await self._not_found(RecordKind.CATEGORIES, category_id, user_id, operation)
        if existing.is_default:
            if self._audit:
                await self._audit.log_protected_category(category_id, user_id, operation)
            return ProtectedCategoryError(category_id, existing.name)
        # Matched now but not at write time: changed concurrently
        return DomainError(f"Category {category_id} changed while saving; refresh and retry")

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def add_account(self, data: Union[AccountInput, Mapping[str, Any]]) -> Account:
        account = _coerce(AccountInput, data)
        return await self._create("add_account", RecordKind.ACCOUNTS, account.model_dump())

    async def update_account(
        self,
        account_id: str,
        data: Union[AccountInput, Mapping[str, Any]],
    ) -> Account:
        account = _coerce(AccountInput, data)
        return await self._update(
            "update_account", RecordKind.ACCOUNTS, account_id, account.model_dump()
        )

    async def delete_account(self, account_id: str) -> None:
        """Delete an account; its transactions keep the orphaned reference."""
        await self._delete("delete_account", RecordKind.ACCOUNTS, account_id)
