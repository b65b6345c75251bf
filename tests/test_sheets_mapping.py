"""Tests for the spreadsheet row mapping (no network calls)."""

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_tracker.models.ledger import (
    Expense,
    Saving,
    SplitStatus,
    UserProfile,
    ValidationItem,
    ValidationType,
)
from finance_tracker.services.storage import MalformedRecordError
from finance_tracker.services.storage.google_sheets import (
    EXPENSE_COLUMNS,
    PROFILE_COLUMNS,
    SAVING_COLUMNS,
    VALIDATION_COLUMNS,
    record_to_row,
    row_to_record,
)


class TestRecordToRow:
    """Serializing records into sheet cells."""

    def test_expense_row_layout(self):
        """Test cells follow the column order."""
        expense = Expense(
            user_id=uuid4(),
            title="Dinner",
            amount=Decimal("500.00"),
            date=date(2024, 6, 15),
            category="food",
            is_split=True,
            split_with_user=uuid4(),
            split_status=SplitStatus.PENDING,
            is_validated=True,
        )
        row = record_to_row(expense, EXPENSE_COLUMNS)

        assert len(row) == len(EXPENSE_COLUMNS)
        assert row[EXPENSE_COLUMNS.index("amount")] == "500.00"
        assert row[EXPENSE_COLUMNS.index("date")] == "2024-06-15"
        assert row[EXPENSE_COLUMNS.index("category")] == "food"
        assert row[EXPENSE_COLUMNS.index("split_status")] == "pending"
        assert row[EXPENSE_COLUMNS.index("is_validated")] == "True"
        assert row[EXPENSE_COLUMNS.index("frequency")] == ""


class TestRowToRecord:
    """Parsing sheet rows back into typed records."""

    def test_expense_round_trip(self):
        """Test a written expense reads back unchanged."""
        expense = Expense(
            user_id=uuid4(),
            title="Netflix",
            amount=Decimal("649.00"),
            date=date(2024, 6, 1),
            category="subscription",
            kind="recurring",
            frequency="monthly",
            is_validated=True,
        )
        row = record_to_row(expense, EXPENSE_COLUMNS)
        assert row_to_record(Expense, EXPENSE_COLUMNS, row) == expense

    def test_validation_item_round_trip(self):
        """Test timestamps and optional ids survive the sheet."""
        item = ValidationItem(
            user_id=uuid4(),
            title="Split expense: Dinner",
            amount=Decimal("250.00"),
            type=ValidationType.EXPENSE_SPLIT,
            date=date(2024, 6, 15),
            expires_at=datetime(2024, 6, 22, 10, 30),
            related_id=uuid4(),
            initiated_by=uuid4(),
        )
        row = record_to_row(item, VALIDATION_COLUMNS)
        assert row_to_record(ValidationItem, VALIDATION_COLUMNS, row) == item

    def test_short_row_uses_defaults(self):
        """Test trailing cells left blank fall back to model defaults."""
        user_id = uuid4()
        row = [str(user_id), "asha"]
        profile = row_to_record(UserProfile, PROFILE_COLUMNS, row)
        assert profile.user_id == user_id
        assert profile.monthly_salary == Decimal("0")

    def test_trailing_empty_cells_ignored(self):
        """Test blank cells past the last column are tolerated."""
        row = [str(uuid4()), "asha", "Asha", "", "", "50000", "", ""]
        profile = row_to_record(UserProfile, PROFILE_COLUMNS, row)
        assert profile.monthly_salary == Decimal("50000")

    def test_extra_cells_rejected(self):
        """Test unknown trailing data marks the row malformed."""
        row = [str(uuid4()), "asha", "Asha", "", "", "50000", "surprise"]
        with pytest.raises(MalformedRecordError):
            row_to_record(UserProfile, PROFILE_COLUMNS, row)

    def test_missing_required_field_rejected(self):
        """Test a saving row without a frequency is malformed."""
        saving = Saving(
            user_id=uuid4(),
            title="SIP",
            amount=Decimal("2000"),
            date=date(2024, 6, 1),
            frequency="monthly",
        )
        row = record_to_row(saving, SAVING_COLUMNS)
        row[SAVING_COLUMNS.index("frequency")] = ""

        with pytest.raises(MalformedRecordError):
            row_to_record(Saving, SAVING_COLUMNS, row)

    def test_garbage_amount_rejected(self):
        """Test an unparseable amount marks the row malformed."""
        saving = Saving(
            user_id=uuid4(),
            title="SIP",
            amount=Decimal("2000"),
            date=date(2024, 6, 1),
            frequency="monthly",
        )
        row = record_to_row(saving, SAVING_COLUMNS)
        row[SAVING_COLUMNS.index("amount")] = "two thousand"

        with pytest.raises(MalformedRecordError):
            row_to_record(Saving, SAVING_COLUMNS, row)
