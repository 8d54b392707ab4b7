"""Services package."""

from moneybook.services.image import (
    CloudinaryImageService,
    ImageStorageInterface,
    ImageTooLargeError,
    ImageUploadError,
    UnsupportedImageError,
)
from moneybook.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordStore,
    InMemoryRecordStore,
    RecordStoreInterface,
    StorageError,
)

__all__ = [
    # Image services
    "CloudinaryImageService",
    "ImageStorageInterface",
    "ImageTooLargeError",
    "ImageUploadError",
    "UnsupportedImageError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordStore",
    "InMemoryRecordStore",
    "RecordStoreInterface",
    "StorageError",
]
