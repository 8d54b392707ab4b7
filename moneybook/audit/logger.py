"""
Audit Logger

DESIGN DECISION: Every mutation and rejection in the data-sync layer is logged.
This provides:
1. Complete traceability of changes to a user's data
2. Debugging capability when the store misbehaves
3. A history the user can be shown

The audit logger:
- Is async to match the data-sync layer
- Gracefully handles failures (doesn't break a mutation if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from moneybook.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from moneybook.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through stdlib logging at the given level."""
    logging.basicConfig(format="%(message)s", level=level.upper())
    logging.getLogger("moneybook").setLevel(level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("moneybook.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_bootstrap_started(self, user_id: str, generation: int) -> None:
        await self.log(AuditEventBuilder.bootstrap_started(user_id, generation))

    async def log_bootstrap_completed(
        self,
        user_id: str,
        generation: int,
        counts: dict[str, int],
    ) -> None:
        await self.log(AuditEventBuilder.bootstrap_completed(user_id, generation, counts))

    async def log_bootstrap_discarded(self, user_id: str, generation: int) -> None:
        await self.log(AuditEventBuilder.bootstrap_discarded(user_id, generation))

    async def log_guest_mode(self, default_count: int) -> None:
        await self.log(AuditEventBuilder.guest_mode_entered(default_count))

    async def log_defaults_seeded(self, user_id: str, names: list[str]) -> None:
        """Log creation of the default category set."""
        await self.log(AuditEventBuilder.default_categories_seeded(user_id, names))

    async def log_record_created(
        self,
        entity_type: str,
        entity_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.record_created(entity_type, entity_id, user_id, correlation_id)
        )

    async def log_record_updated(
        self,
        entity_type: str,
        entity_id: str,
        user_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.record_updated(
                entity_type, entity_id, user_id, fields, correlation_id
            )
        )

    async def log_record_deleted(
        self,
        entity_type: str,
        entity_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.record_deleted(entity_type, entity_id, user_id, correlation_id)
        )

    async def log_image_uploaded(
        self,
        user_id: str,
        url: str,
        size_bytes: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.image_uploaded(user_id, url, size_bytes, correlation_id)
        )

    async def log_not_authenticated(self, operation: str) -> None:
        """Log a mutation attempted without an identity."""
        await self.log(AuditEventBuilder.not_authenticated(operation))

    async def log_protected_category(
        self,
        category_id: str,
        user_id: str,
        operation: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.protected_category_rejected(category_id, user_id, operation)
        )

    async def log_record_not_found(
        self,
        entity_type: str,
        entity_id: str,
        user_id: str,
        operation: str,
    ) -> None:
        await self.log(
            AuditEventBuilder.record_not_found(entity_type, entity_id, user_id, operation)
        )

    async def log_store_error(
        self,
        operation: str,
        error_message: str,
        entity_type: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a failed store call. The error itself still propagates."""
        await self.log(
            AuditEventBuilder.store_error(operation, error_message, entity_type, user_id)
        )

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.external_service_error(service, error_message, user_id)
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action that spans several calls
    (e.g., upload an image, then add the transaction that uses it).
    """
    return uuid4()
