"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- No transactions spanning several writes (the mutation flow orders
  writes carefully and reports partial failures)
- Limited query capabilities (we filter by user in Python)

Each record kind lives in its own worksheet with a header row. Every row
carries the owning `user_id`.

MAPPING BOUNDARY: rows are converted to typed models only through
`row_to_record`. A row that does not fit the model raises
MalformedRecordError; it is never passed inward with missing fields.
"""

import json
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Generic, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.models.ledger import (
    Expense,
    Saving,
    Transaction,
    UserProfile,
    ValidationItem,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    MalformedRecordError,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


# Column mappings, one list per worksheet
EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "title",
    "amount",
    "date",
    "category",
    "kind",
    "frequency",
    "description",
    "is_split",
    "split_with_user",
    "split_status",
    "is_validated",
]

SAVING_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "title",
    "amount",
    "date",
    "type",
    "frequency",
    "return_rate",
    "return_frequency",
    "description",
    "is_validated",
]

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "title",
    "amount",
    "date",
    "type",
    "category",
    "description",
    "related_id",
]

VALIDATION_COLUMNS = [
    "id",
    "user_id",
    "created_at",
    "title",
    "amount",
    "type",
    "date",
    "expires_at",
    "description",
    "related_id",
    "initiated_by",
]

PROFILE_COLUMNS = [
    "user_id",
    "username",
    "name",
    "email",
    "phone_number",
    "monthly_salary",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
    "is_user_action",
]


# =============================================================================
# ROW MAPPING
# =============================================================================

def _to_cell(value) -> str:
    """Serialize one field for a RAW sheet cell."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def record_to_row(record: BaseModel, columns: list[str]) -> list[str]:
    """Convert a record to a spreadsheet row in column order."""
    return [_to_cell(getattr(record, column)) for column in columns]


def row_to_record(
    model: type[RecordT],
    columns: list[str],
    row: list[str],
) -> RecordT:
    """
    Convert a spreadsheet row to a typed record.

    Empty cells become None so optional fields fall back to their defaults.

    Raises:
        MalformedRecordError: If the row has unknown trailing data or does
            not satisfy the model.
    """
    extra = [cell for cell in row[len(columns):] if cell]
    if extra:
        raise MalformedRecordError(
            f"{model.__name__} row has {len(row)} cells, expected {len(columns)}"
        )

    data = {}
    for index, column in enumerate(columns):
        cell = row[index] if index < len(row) else ""
        if cell != "":
            data[column] = cell

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise MalformedRecordError(f"Invalid {model.__name__} row: {e}") from e


# =============================================================================
# CLIENT
# =============================================================================

class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

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

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class _SheetTable(Generic[RecordT]):
    """One worksheet holding one record kind, keyed by the first column."""

    def __init__(
        self,
        client: GoogleSheetsClient,
        title: str,
        columns: list[str],
        model: type[RecordT],
    ):
        self._client = client
        self._title = title
        self._columns = columns
        self._model = model

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title, self._columns)

    def _data_rows(self) -> list[tuple[int, list[str]]]:
        """All non-empty data rows with their 1-based sheet row numbers."""
        all_rows = self._sheet().get_all_values()
        return [
            (idx, row)
            for idx, row in enumerate(all_rows[1:], start=2)  # Row 1 is header
            if row and row[0]
        ]

    def _find(self, record_id: UUID) -> Optional[tuple[int, list[str]]]:
        key = str(record_id)
        for idx, row in self._data_rows():
            if row[0] == key:
                return idx, row
        return None

    def _owned_by(self, row: list[str], user_id: UUID) -> bool:
        return len(row) > 1 and row[1] == str(user_id)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(StorageError),
        reraise=True,
    )
    def insert(self, record: RecordT) -> bool:
        if self._find(record.id) is not None:
            raise DuplicateError(f"{self._model.__name__} already exists: {record.id}")
        self._sheet().append_row(
            record_to_row(record, self._columns),
            value_input_option="RAW",
        )
        return True

    def get(self, user_id: UUID, record_id: UUID) -> Optional[RecordT]:
        found = self._find(record_id)
        if found is None or not self._owned_by(found[1], user_id):
            return None
        return row_to_record(self._model, self._columns, found[1])

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(StorageError),
        reraise=True,
    )
    def replace(self, record: RecordT) -> bool:
        found = self._find(record.id)
        if found is None or not self._owned_by(found[1], record.user_id):
            raise NotFoundError(f"{self._model.__name__} not found: {record.id}")
        idx, _ = found
        self._sheet().update(
            range_name=f"A{idx}",
            values=[record_to_row(record, self._columns)],
            value_input_option="RAW",
        )
        return True

    def delete(self, user_id: UUID, record_id: UUID) -> bool:
        found = self._find(record_id)
        if found is None or not self._owned_by(found[1], user_id):
            return False
        self._sheet().delete_rows(found[0])
        return True

    def list_for(self, user_id: UUID) -> list[RecordT]:
        records = []
        for idx, row in self._data_rows():
            if not self._owned_by(row, user_id):
                continue
            try:
                records.append(row_to_record(self._model, self._columns, row))
            except MalformedRecordError as e:
                logger.warning(
                    "malformed_row_skipped",
                    sheet=self._title,
                    row_number=idx,
                    error=str(e),
                )
        return records


def _wrap(operation: str):
    """Turn any backend failure into a StorageError, keeping our own errors."""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to {operation}: {e}") from e
        return wrapper
    return decorator


# =============================================================================
# LEDGER STORAGE
# =============================================================================

class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One worksheet per record kind; one record per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        settings = self._client.settings
        self._expenses = _SheetTable(
            self._client, settings.expenses_sheet_name, EXPENSE_COLUMNS, Expense
        )
        self._savings = _SheetTable(
            self._client, settings.savings_sheet_name, SAVING_COLUMNS, Saving
        )
        self._transactions = _SheetTable(
            self._client, settings.transactions_sheet_name, TRANSACTION_COLUMNS, Transaction
        )
        self._validations = _SheetTable(
            self._client, settings.validations_sheet_name, VALIDATION_COLUMNS, ValidationItem
        )

    @_wrap("save expense")
    async def save_expense(self, expense: Expense) -> bool:
        return self._expenses.insert(expense)

    @_wrap("get expense")
    async def get_expense(self, user_id: UUID, expense_id: UUID) -> Optional[Expense]:
        return self._expenses.get(user_id, expense_id)

    @_wrap("update expense")
    async def update_expense(self, expense: Expense) -> bool:
        return self._expenses.replace(expense)

    @_wrap("delete expense")
    async def delete_expense(self, user_id: UUID, expense_id: UUID) -> bool:
        return self._expenses.delete(user_id, expense_id)

    @_wrap("list expenses")
    async def list_expenses(self, user_id: UUID) -> list[Expense]:
        return self._expenses.list_for(user_id)

    @_wrap("save saving")
    async def save_saving(self, saving: Saving) -> bool:
        return self._savings.insert(saving)

    @_wrap("get saving")
    async def get_saving(self, user_id: UUID, saving_id: UUID) -> Optional[Saving]:
        return self._savings.get(user_id, saving_id)

    @_wrap("update saving")
    async def update_saving(self, saving: Saving) -> bool:
        return self._savings.replace(saving)

    @_wrap("delete saving")
    async def delete_saving(self, user_id: UUID, saving_id: UUID) -> bool:
        return self._savings.delete(user_id, saving_id)

    @_wrap("list savings")
    async def list_savings(self, user_id: UUID) -> list[Saving]:
        return self._savings.list_for(user_id)

    @_wrap("save transaction")
    async def save_transaction(self, transaction: Transaction) -> bool:
        return self._transactions.insert(transaction)

    @_wrap("delete transaction")
    async def delete_transaction(self, user_id: UUID, transaction_id: UUID) -> bool:
        return self._transactions.delete(user_id, transaction_id)

    @_wrap("list transactions")
    async def list_transactions(self, user_id: UUID) -> list[Transaction]:
        return self._transactions.list_for(user_id)

    @_wrap("save validation")
    async def save_validation(self, item: ValidationItem) -> bool:
        return self._validations.insert(item)

    @_wrap("get validation")
    async def get_validation(
        self,
        user_id: UUID,
        validation_id: UUID,
    ) -> Optional[ValidationItem]:
        return self._validations.get(user_id, validation_id)

    @_wrap("delete validation")
    async def delete_validation(self, user_id: UUID, validation_id: UUID) -> bool:
        return self._validations.delete(user_id, validation_id)

    @_wrap("list validations")
    async def list_validations(self, user_id: UUID) -> list[ValidationItem]:
        return self._validations.list_for(user_id)


class GoogleSheetsProfileStorage(ProfileStorageInterface):
    """Google Sheets implementation of profile storage."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.profiles_sheet_name, PROFILE_COLUMNS
        )

    def _profiles(self) -> list[tuple[int, UserProfile]]:
        profiles = []
        for idx, row in enumerate(self._sheet().get_all_values()[1:], start=2):
            if not row or not row[0]:
                continue
            try:
                profiles.append((idx, row_to_record(UserProfile, PROFILE_COLUMNS, row)))
            except MalformedRecordError as e:
                logger.warning("malformed_profile_skipped", row_number=idx, error=str(e))
        return profiles

    @_wrap("save profile")
    async def save_profile(self, profile: UserProfile) -> bool:
        """Create or replace a profile row."""
        profiles = self._profiles()
        for _, existing in profiles:
            if existing.username == profile.username and existing.user_id != profile.user_id:
                raise DuplicateError(f"Username already taken: {profile.username}")

        row = record_to_row(profile, PROFILE_COLUMNS)
        for idx, existing in profiles:
            if existing.user_id == profile.user_id:
                self._sheet().update(
                    range_name=f"A{idx}",
                    values=[row],
                    value_input_option="RAW",
                )
                return True
        self._sheet().append_row(row, value_input_option="RAW")
        return True

    @_wrap("get profile")
    async def get_profile(self, user_id: UUID) -> Optional[UserProfile]:
        for _, profile in self._profiles():
            if profile.user_id == user_id:
                return profile
        return None

    @_wrap("find profile")
    async def get_profile_by_username(self, username: str) -> Optional[UserProfile]:
        wanted = username.strip().lower()
        for _, profile in self._profiles():
            if profile.username == wanted:
                return profile
        return None


# =============================================================================
# AUDIT STORAGE
# =============================================================================

class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS
        )

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
            user_id=UUID(safe_get(4)) if safe_get(4) else None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_code=safe_get(10) or None,
            error_message=safe_get(11) or None,
            is_user_action=safe_get(12).lower() == "true",
        )

    def _events(self) -> list[AuditEvent]:
        events = []
        for row in self._sheet().get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, IndexError) as e:
                logger.warning("malformed_audit_row_skipped", error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(StorageError),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    @_wrap("read audit events")
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    @_wrap("read audit events")
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    @_wrap("read audit events")
    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
