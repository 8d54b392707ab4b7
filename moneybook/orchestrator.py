"""
Main Orchestrator for moneybook

This module ties together all the components: settings, the record
store, image storage, audit logging and the data-sync layer.

DESIGN DECISION: The orchestrator degrades instead of failing:
- No Google Sheets credentials: records live in an in-memory store
- No Cloudinary credentials: image upload is unavailable
- Audit events are always logged locally, and persisted when
  the Sheets backend is available

Everything else is decided by the data-sync layer itself.
"""

from typing import Mapping, Optional

import structlog

from moneybook.audit import AuditLogger, configure_logging
from moneybook.config import get_settings
from moneybook.models.records import CategoryInput
from moneybook.services.image import CloudinaryImageService, ImageStorageInterface
from moneybook.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    RecordStoreInterface,
)
from moneybook.sync import DataSync, IdentityProvider


logger = structlog.get_logger(__name__)


def _create_image_storage() -> Optional[ImageStorageInterface]:
    try:
        return CloudinaryImageService()
    except Exception as e:
        logger.warning("image_storage_not_configured", error=str(e))
        return None


def create_data_sync(
    use_storage: bool = True,
    identity: Optional[IdentityProvider] = None,
    default_categories: Optional[Mapping[str, CategoryInput]] = None,
) -> DataSync:
    """
    Factory function to create a wired data-sync layer.

    Args:
        use_storage: Whether to use the Google Sheets and Cloudinary backends.
                    Set to False for testing without them.
        identity: Identity provider to follow; a fresh one if None
        default_categories: Override for the default category table

    Returns:
        A DataSync that is not yet attached; call attach() to bootstrap
    """
    app_settings = get_settings().app
    configure_logging(app_settings.log_level)

    store: RecordStoreInterface
    image_storage: Optional[ImageStorageInterface] = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsRecordStore(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("record_store_not_configured", error=str(e))
            store = InMemoryRecordStore()
            audit_logger = AuditLogger()  # Local-only logging
        image_storage = _create_image_storage()
    else:
        store = InMemoryRecordStore()
        audit_logger = AuditLogger()  # Local-only logging

    return DataSync(
        store,
        identity=identity,
        image_storage=image_storage,
        default_categories=default_categories,
        audit_logger=audit_logger,
        reconcile_after_write=app_settings.reconcile_after_write,
        seed_default_categories=app_settings.seed_default_categories,
    )
