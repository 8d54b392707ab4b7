"""
Audit Models for moneybook

Every write-through mutation, bootstrap and rejection is recorded as an
audit event. This provides:
1. Traceability of what changed in a user's data and when
2. Debugging information when a store call fails
3. A record of rejected attempts (protected categories, no identity)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from moneybook.models.records import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Identity lifecycle
    BOOTSTRAP_STARTED = "bootstrap_started"
    BOOTSTRAP_COMPLETED = "bootstrap_completed"
    BOOTSTRAP_DISCARDED = "bootstrap_discarded"
    GUEST_MODE_ENTERED = "guest_mode_entered"
    DEFAULT_CATEGORIES_SEEDED = "default_categories_seeded"

    # Write-through mutations
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    IMAGE_UPLOADED = "image_uploaded"

    # Rejections
    NOT_AUTHENTICATED = "not_authenticated"
    PROTECTED_CATEGORY_REJECTED = "protected_category_rejected"
    RECORD_NOT_FOUND = "record_not_found"

    # System events
    STORE_ERROR = "store_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about, and whose is it?
    entity_type: Optional[str] = Field(
        default=None,
        description="Record kind (e.g., 'transactions', 'categories')"
    )
    entity_id: Optional[str] = None
    user_id: Optional[str] = Field(
        default=None,
        description="Owning identity the action ran under"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.user_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("transactions", tx.id, user_id)
        event = AuditEventBuilder.not_authenticated("add_transaction")
    """

    @staticmethod
    def bootstrap_started(user_id: str, generation: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BOOTSTRAP_STARTED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            description="Loading data for user",
            details={"generation": generation},
        )

    @staticmethod
    def bootstrap_completed(
        user_id: str,
        generation: int,
        counts: dict[str, int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BOOTSTRAP_COMPLETED,
            user_id=user_id,
            description="Mirror ready",
            details={"generation": generation, "counts": counts},
        )

    @staticmethod
    def bootstrap_discarded(user_id: str, generation: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BOOTSTRAP_DISCARDED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            description="Bootstrap superseded by a later identity change",
            details={"generation": generation},
        )

    @staticmethod
    def guest_mode_entered(default_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GUEST_MODE_ENTERED,
            description="No identity; showing built-in categories",
            details={"default_categories": default_count},
        )

    @staticmethod
    def default_categories_seeded(user_id: str, names: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULT_CATEGORIES_SEEDED,
            entity_type="categories",
            user_id=user_id,
            description=f"Created {len(names)} default categories",
            details={"names": names},
        )

    @staticmethod
    def record_created(
        entity_type: str,
        entity_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Created {entity_type} record",
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        entity_type: str,
        entity_id: str,
        user_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Updated {entity_type} record",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Deleted {entity_type} record",
            is_user_action=True,
        )

    @staticmethod
    def image_uploaded(
        user_id: str,
        url: str,
        size_bytes: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMAGE_UPLOADED,
            entity_type="image",
            user_id=user_id,
            correlation_id=correlation_id,
            description="Transaction image uploaded",
            details={"url": url, "size_bytes": size_bytes},
            is_user_action=True,
        )

    @staticmethod
    def not_authenticated(operation: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOT_AUTHENTICATED,
            severity=AuditSeverity.WARNING,
            description=f"Rejected {operation}: not authenticated",
            details={"operation": operation},
        )

    @staticmethod
    def protected_category_rejected(
        category_id: str,
        user_id: str,
        operation: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROTECTED_CATEGORY_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="categories",
            entity_id=category_id,
            user_id=user_id,
            description=f"Rejected {operation} of a default category",
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def record_not_found(
        entity_type: str,
        entity_id: str,
        user_id: str,
        operation: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"Rejected {operation}: no such record for this user",
            details={"operation": operation},
        )

    @staticmethod
    def store_error(
        operation: str,
        error_message: str,
        entity_type: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORE_ERROR,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            user_id=user_id,
            description=f"Store error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
        )
