"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted record store because:
1. Users can view and export their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (personal finance scale is fine)
- No transactions: a conditional write is a read-then-write, not atomic
  against another client writing the same sheet
- Limited query capabilities (we filter and sort in Python)

Each record kind lives in its own worksheet. Row 1 holds the column names,
so rows are decoded by header name rather than by position.
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from moneybook.config import get_settings
from moneybook.models.audit import AuditEvent, AuditEventType, AuditSeverity
from moneybook.models.records import (
    MODEL_BY_KIND,
    SERVER_FIELDS,
    RecordKind,
    StoredRecord,
    sort_records,
    utc_now,
)
from moneybook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    RecordStoreInterface,
    StorageError,
    record_matches,
)


logger = structlog.get_logger(__name__)


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def columns_for(kind: RecordKind) -> list[str]:
    """Column names for a record kind, in model field order."""
    return list(MODEL_BY_KIND[kind].model_fields)


def to_cell(value: Any) -> str:
    """Serialize one field value into a sheet cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_records_sheet(self, kind: RecordKind) -> gspread.Worksheet:
        """Get or create the worksheet holding one record kind."""
        titles = {
            RecordKind.TRANSACTIONS: self._settings.transactions_sheet_name,
            RecordKind.CATEGORIES: self._settings.categories_sheet_name,
            RecordKind.ACCOUNTS: self._settings.accounts_sheet_name,
        }
        return self._get_or_create_worksheet(titles[kind], columns_for(kind))

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the record store.

    Records are stored as rows, one worksheet per record kind.
    Empty cells stand for None.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _record_to_row(self, header: list[str], record: StoredRecord) -> list[str]:
        """Convert a record to a spreadsheet row laid out as header."""
        return [to_cell(getattr(record, column, None)) for column in header]

    def _row_to_record(
        self,
        kind: RecordKind,
        header: list[str],
        row: list[str],
    ) -> StoredRecord:
        """Convert a spreadsheet row to a record; pydantic parses the strings."""
        values = {
            column: row[idx]
            for idx, column in enumerate(header)
            if idx < len(row) and row[idx] != ""
        }
        return MODEL_BY_KIND[kind].model_validate(values)

    def _read_rows(
        self,
        kind: RecordKind,
    ) -> tuple[gspread.Worksheet, list[str], list[list[str]]]:
        """Return the worksheet, its header, and its data rows."""
        sheet = self._client.get_records_sheet(kind)
        all_rows = sheet.get_all_values()
        if not all_rows:
            return sheet, columns_for(kind), []
        return sheet, all_rows[0], all_rows[1:]

    def _find_row(
        self,
        kind: RecordKind,
        record_id: str,
    ) -> tuple[gspread.Worksheet, list[str], int, Optional[StoredRecord]]:
        """
        Locate a record by id.

        Returns (sheet, header, sheet_row_number, record); the row number
        is 1-based as gspread expects and the record is None if absent.
        """
        sheet, header, rows = self._read_rows(kind)
        id_index = header.index("id") if "id" in header else 0
        # Start from 2 (row 1 is header)
        for idx, row in enumerate(rows, start=2):
            if len(row) > id_index and row[id_index] == record_id:
                return sheet, header, idx, self._row_to_record(kind, header, row)
        return sheet, header, 0, None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def query(
        self,
        kind: RecordKind,
        owner_id: str,
        order_by: str = "created_at",
        descending: bool = False,
    ) -> list[StoredRecord]:
        """Read all records of a kind owned by owner_id."""
        try:
            _, header, rows = self._read_rows(kind)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {kind.value}: {e}")

        records = []
        id_index = header.index("id") if "id" in header else 0
        owner_index = header.index("user_id") if "user_id" in header else None
        for row in rows:
            if len(row) <= id_index or not row[id_index]:  # Skip empty rows
                continue
            if owner_index is not None and (
                len(row) <= owner_index or row[owner_index] != owner_id
            ):
                continue
            try:
                records.append(self._row_to_record(kind, header, row))
            except Exception:
                logger.warning("malformed_row_skipped", kind=kind.value, row_id=row[id_index])
                continue

        return sort_records(records, order_by, descending)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get(
        self,
        kind: RecordKind,
        record_id: str,
    ) -> Optional[StoredRecord]:
        """Retrieve a record by its ID."""
        try:
            _, _, _, record = self._find_row(kind, record_id)
            return record
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get {kind.value} record: {e}")

    async def insert(
        self,
        kind: RecordKind,
        owner_id: str,
        values: dict[str, Any],
    ) -> StoredRecord:
        """Append a new record. Not retried: a retry could duplicate the row."""
        now = utc_now()
        payload = {k: v for k, v in values.items() if k not in SERVER_FIELDS}
        try:
            record = MODEL_BY_KIND[kind](
                id=str(uuid4()),
                user_id=owner_id,
                created_at=now,
                updated_at=now,
                **payload,
            )
            sheet = self._client.get_records_sheet(kind)
            header = sheet.row_values(1) or columns_for(kind)
            sheet.append_row(self._record_to_row(header, record), value_input_option="RAW")
            return record
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert {kind.value} record: {e}")

    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        owner_id: str,
        changes: dict[str, Any],
        where: Optional[dict[str, Any]] = None,
    ) -> Optional[StoredRecord]:
        """Rewrite the matching row in place."""
        try:
            sheet, header, row_number, current = self._find_row(kind, record_id)
            if current is None or not record_matches(current, owner_id, where):
                return None

            merged = current.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in SERVER_FIELDS})
            merged["updated_at"] = utc_now()
            record = MODEL_BY_KIND[kind].model_validate(merged)

            sheet.update(
                range_name=f"A{row_number}",
                values=[self._record_to_row(header, record)],
                value_input_option="RAW",
            )
            return record
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {kind.value} record: {e}")

    async def delete(
        self,
        kind: RecordKind,
        record_id: str,
        owner_id: str,
        where: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Delete the matching row."""
        try:
            sheet, _, row_number, current = self._find_row(kind, record_id)
            if current is None or not record_matches(current, owner_id, where):
                return False
            sheet.delete_rows(row_number)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {kind.value} record: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            user_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]

            events = []
            for row in all_rows:
                if not row or not row[0]:
                    continue
                if user_id is not None and (len(row) <= 6 or row[6] != user_id):
                    continue
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue

            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
