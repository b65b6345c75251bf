"""
Tests for the ledger mutation flow.

Each test drives a Session against in-memory storage with a fixed clock.
"""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_tracker.errors import (
    CounterpartyNotFound,
    InvalidAmount,
    InvalidInput,
    PartialSplitFailure,
    PersistenceFailure,
    ValidationNotFound,
)
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.ledger import (
    SplitStatus,
    TransactionType,
    ValidationType,
)
from finance_tracker.services.notifications import NotificationSink, OutcomeStatus

from helpers import NOW, TODAY, expense_input, saving_input


def only_validation(session, validation_type):
    items = [v for v in session.store.list_validations() if v.type == validation_type]
    assert len(items) == 1
    return items[0]


def recent_event_types(audit_storage):
    events = asyncio.run(audit_storage.get_recent_events())
    return {e.event_type for e in events}


class TestImmediateExpense:
    """Expenses dated today or earlier post straight away."""

    def test_posts_validated_expense_and_transaction(self, session):
        """Test expense and matching transaction are both written."""
        expense_id = asyncio.run(session.flow.submit_expense(expense_input()))

        expense = session.store.get_expense_by_id(expense_id)
        assert expense.is_validated is True
        assert expense.is_split is False

        transactions = session.store.list_transactions()
        assert len(transactions) == 1
        assert transactions[0].type == TransactionType.EXPENSE
        assert transactions[0].amount == Decimal("500.00")
        assert transactions[0].related_id == expense_id
        assert session.store.list_validations() == []

    def test_balance_reflects_expense(self, session):
        """Test remaining balance drops by the expense amount."""
        asyncio.run(session.flow.submit_expense(expense_input()))

        totals = session.totals()
        assert totals.total_expenses == Decimal("500")
        assert totals.remaining_balance == Decimal("49500")

    def test_past_dated_expense_is_immediate(self, session):
        """Test an expense from last week is not gated."""
        asyncio.run(session.flow.submit_expense(
            expense_input(date=TODAY - timedelta(days=7))
        ))
        assert session.store.list_validations() == []
        assert len(session.store.list_transactions()) == 1

    def test_success_outcome_reported(self, session, sink):
        """Test the sink receives a success outcome."""
        asyncio.run(session.flow.submit_expense(expense_input()))
        assert sink.outcomes[-1].status == OutcomeStatus.SUCCESS

    def test_large_amount_reports_warning_outcome(self, session, sink):
        """Test suspicious amounts still post but warn."""
        asyncio.run(session.flow.submit_expense(
            expense_input(amount=Decimal("5000000"))
        ))
        assert len(session.store.list_expenses()) == 1
        assert sink.outcomes[-1].status == OutcomeStatus.WARNING

    def test_amount_rounded_to_paisa(self, session):
        """Test amounts with more precision are rounded half up."""
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(amount=Decimal("10.005"))
        ))
        assert session.store.get_expense_by_id(expense_id).amount == Decimal("10.01")


class TestInvalidExpenseInput:
    """Rejected input never writes anything."""

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-50"), Decimal("0.001")])
    def test_non_positive_amount_rejected(self, session, amount):
        """Test zero, negative and sub-paisa amounts raise InvalidAmount."""
        with pytest.raises(InvalidAmount):
            asyncio.run(session.flow.submit_expense(expense_input(amount=amount)))
        assert session.store.list_expenses() == []
        assert session.store.list_transactions() == []

    @pytest.mark.parametrize(
        "amount",
        [Decimal("1e26"), Decimal("-1e26"), Decimal("1000000000000")],
    )
    def test_out_of_range_amount_rejected(self, session, sink, audit_storage, amount):
        """Test amounts too large to record raise InvalidAmount and are reported."""
        with pytest.raises(InvalidAmount):
            asyncio.run(session.flow.submit_expense(expense_input(amount=amount)))

        assert session.store.list_expenses() == []
        assert sink.outcomes[-1].status == OutcomeStatus.FAILURE
        assert AuditEventType.INPUT_REJECTED in recent_event_types(audit_storage)

    def test_unparseable_amount_rejected(self, session):
        """Test a non-numeric amount raises InvalidAmount."""
        with pytest.raises(InvalidAmount):
            asyncio.run(session.flow.submit_expense(expense_input(amount="lots")))

    def test_short_title_rejected(self, session):
        """Test titles below two characters raise InvalidInput."""
        with pytest.raises(InvalidInput):
            asyncio.run(session.flow.submit_expense(expense_input(title="x")))
        assert session.store.list_expenses() == []

    def test_unknown_category_rejected(self, session):
        """Test an unknown category raises InvalidInput."""
        with pytest.raises(InvalidInput):
            asyncio.run(session.flow.submit_expense(expense_input(category="yachts")))

    def test_rejection_reported(self, session, sink, audit_storage):
        """Test rejected input produces a failure outcome and audit event."""
        with pytest.raises(InvalidAmount):
            asyncio.run(session.flow.submit_expense(expense_input(amount=Decimal("0"))))

        assert sink.outcomes[-1].status == OutcomeStatus.FAILURE
        assert sink.outcomes[-1].error_code == "invalid_amount"
        assert AuditEventType.INPUT_REJECTED in recent_event_types(audit_storage)


class TestFutureExpense:
    """Future-dated expenses wait for confirmation."""

    def test_creates_unvalidated_expense_and_gate(self, session):
        """Test a future expense is gated and posts nothing."""
        due = TODAY + timedelta(days=10)
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(date=due, amount=Decimal("1200"))
        ))

        assert session.store.get_expense_by_id(expense_id).is_validated is False
        assert session.store.list_transactions() == []

        gate = only_validation(session, ValidationType.FUTURE_EXPENSE)
        assert gate.related_id == expense_id
        assert gate.amount == Decimal("1200")
        assert gate.expires_at == datetime(due.year, due.month, due.day)
        assert session.totals().total_expenses == Decimal("0")

    def test_approve_posts_expense(self, session):
        """Test approval validates the expense and posts a transaction."""
        due = TODAY + timedelta(days=10)
        expense_id = asyncio.run(session.flow.submit_expense(expense_input(date=due)))
        gate = only_validation(session, ValidationType.FUTURE_EXPENSE)

        asyncio.run(session.flow.validate_item(gate.id, approved=True))

        assert session.store.get_expense_by_id(expense_id).is_validated is True
        transactions = session.store.list_transactions()
        assert len(transactions) == 1
        assert transactions[0].date == due
        assert session.store.list_validations() == []
        assert session.totals().total_expenses == Decimal("500")

    def test_reject_deletes_expense(self, session):
        """Test rejection removes the expense with no postings."""
        due = TODAY + timedelta(days=3)
        expense_id = asyncio.run(session.flow.submit_expense(expense_input(date=due)))
        gate = only_validation(session, ValidationType.FUTURE_EXPENSE)

        asyncio.run(session.flow.validate_item(gate.id, approved=False))

        assert session.store.get_expense_by_id(expense_id) is None
        assert session.store.list_transactions() == []
        assert session.store.list_validations() == []


class TestSplitExpense:
    """Split expenses post half now and ask the counterparty for the rest."""

    def test_submitter_half_posted(self, session):
        """Test the submitter's half is validated and pending approval."""
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(title="Dinner", amount=Decimal("1000"), split_with="ravi")
        ))

        expense = session.store.get_expense_by_id(expense_id)
        assert expense.amount == Decimal("500.00")
        assert expense.is_split is True
        assert expense.split_status == SplitStatus.PENDING
        assert expense.is_validated is True
        assert [t.amount for t in session.store.list_transactions()] == [Decimal("500.00")]

    def test_counterparty_receives_gate(self, session, ravi_session, asha):
        """Test the gate lands in the counterparty's queue, not the submitter's."""
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(title="Dinner", amount=Decimal("1000"), split_with="RAVI")
        ))
        assert session.store.list_validations() == []

        asyncio.run(ravi_session.refresh())
        gate = only_validation(ravi_session, ValidationType.EXPENSE_SPLIT)
        assert gate.amount == Decimal("500.00")
        assert gate.related_id == expense_id
        assert gate.initiated_by == asha.user_id
        assert gate.expires_at == NOW + timedelta(days=7)

    def test_odd_amount_rounds_half_up(self, session):
        """Test 999.99 splits into 500.00."""
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(amount=Decimal("999.99"), split_with="ravi")
        ))
        assert session.store.get_expense_by_id(expense_id).amount == Decimal("500.00")

    def test_approve_posts_counterparty_half(self, session, ravi_session):
        """Test approval marks the split approved and posts the approver's half."""
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(title="Dinner", amount=Decimal("1000"), split_with="ravi")
        ))
        asyncio.run(ravi_session.refresh())
        gate = only_validation(ravi_session, ValidationType.EXPENSE_SPLIT)

        asyncio.run(ravi_session.flow.validate_item(gate.id, approved=True))

        ravi_expenses = ravi_session.store.list_expenses()
        assert len(ravi_expenses) == 1
        assert ravi_expenses[0].title == "Split: Dinner"
        assert ravi_expenses[0].amount == Decimal("500.00")
        assert ravi_expenses[0].is_validated is True
        assert ravi_expenses[0].category.value == "food"
        assert len(ravi_session.store.list_transactions()) == 1
        assert ravi_session.store.list_validations() == []

        asyncio.run(session.refresh())
        assert session.store.get_expense_by_id(expense_id).split_status == SplitStatus.APPROVED

    def test_reject_posts_nothing(self, session, ravi_session):
        """Test rejection marks the split rejected without postings."""
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(amount=Decimal("1000"), split_with="ravi")
        ))
        asyncio.run(ravi_session.refresh())
        gate = only_validation(ravi_session, ValidationType.EXPENSE_SPLIT)

        asyncio.run(ravi_session.flow.validate_item(gate.id, approved=False))

        assert ravi_session.store.list_expenses() == []
        assert ravi_session.store.list_transactions() == []
        asyncio.run(session.refresh())
        assert session.store.get_expense_by_id(expense_id).split_status == SplitStatus.REJECTED

    def test_unknown_counterparty_writes_nothing(self, session, sink, ledger_storage, asha):
        """Test an unknown username raises before any write."""
        with pytest.raises(CounterpartyNotFound):
            asyncio.run(session.flow.submit_expense(expense_input(split_with="nobody")))

        assert session.store.list_expenses() == []
        assert asyncio.run(ledger_storage.list_expenses(asha.user_id)) == []
        assert sink.outcomes[-1].error_code == "counterparty_not_found"

    def test_self_split_rejected(self, session):
        """Test splitting with yourself raises InvalidInput."""
        with pytest.raises(InvalidInput):
            asyncio.run(session.flow.submit_expense(expense_input(split_with="asha")))
        assert session.store.list_expenses() == []

    def test_gate_write_failure_is_partial_split(
        self, session, ledger_storage, audit_storage, sink
    ):
        """Test a failed counterparty write leaves an orphan and reports it."""
        ledger_storage.fail_on.add("save_validation")

        with pytest.raises(PartialSplitFailure) as exc_info:
            asyncio.run(session.flow.submit_expense(
                expense_input(amount=Decimal("1000"), split_with="ravi")
            ))

        orphan = session.store.get_expense_by_id(exc_info.value.expense_id)
        assert orphan is not None
        assert orphan.split_status == SplitStatus.PENDING
        assert len(session.store.list_transactions()) == 1
        assert sink.outcomes[-1].error_code == "partial_split_failure"
        assert AuditEventType.PARTIAL_SPLIT_FAILED in recent_event_types(audit_storage)

    def test_split_with_future_date_still_splits(self, session):
        """Test split takes priority over future dating."""
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(date=TODAY + timedelta(days=5), split_with="ravi")
        ))
        assert session.store.get_expense_by_id(expense_id).is_validated is True
        assert session.store.list_validations() == []


class TestSavings:
    """Savings are gated and may schedule an expected return."""

    def test_saving_is_gated(self, session):
        """Test a saving is stored unvalidated with a saving gate."""
        saving_id = asyncio.run(session.flow.submit_saving(saving_input()))

        assert session.store.get_saving_by_id(saving_id).is_validated is False
        assert session.store.list_transactions() == []
        gate = only_validation(session, ValidationType.SAVING)
        assert gate.related_id == saving_id
        assert gate.amount == Decimal("2000")
        assert gate.expires_at == datetime(2024, 7, 15, 10, 30)
        assert session.totals().total_saved == Decimal("0")

    @pytest.mark.parametrize(
        "frequency,window",
        [
            ("daily", timedelta(days=1)),
            ("weekly", timedelta(days=7)),
            ("quarterly", timedelta(days=1)),
            ("once", timedelta(days=1)),
        ],
    )
    def test_gate_expiry_by_frequency(self, session, frequency, window):
        """Test the approval window follows the contribution frequency."""
        asyncio.run(session.flow.submit_saving(saving_input(frequency=frequency)))
        gate = only_validation(session, ValidationType.SAVING)
        assert gate.expires_at == NOW + window

    def test_return_scheduled(self, session):
        """Test 2000 at 5% monthly schedules a 100 return next month."""
        saving_id = asyncio.run(session.flow.submit_saving(
            saving_input(return_rate=Decimal("5"), return_frequency="monthly")
        ))

        gate = only_validation(session, ValidationType.SAVING_RETURN)
        assert gate.amount == Decimal("100.00")
        assert gate.related_id == saving_id
        assert gate.date.isoformat() == "2024-07-15"
        assert gate.expires_at == datetime(2024, 7, 16)

    def test_quarterly_return_date(self, session):
        """Test a quarterly return lands three months later."""
        asyncio.run(session.flow.submit_saving(
            saving_input(return_rate=Decimal("2"), return_frequency="quarterly")
        ))
        gate = only_validation(session, ValidationType.SAVING_RETURN)
        assert gate.date.isoformat() == "2024-09-15"

    @pytest.mark.parametrize(
        "rate,frequency",
        [(None, None), (Decimal("0"), "monthly"), (Decimal("5"), None), (Decimal("5"), "once")],
    )
    def test_no_return_without_rate_and_period(self, session, rate, frequency):
        """Test no return gate without a positive rate and a periodic frequency."""
        asyncio.run(session.flow.submit_saving(
            saving_input(return_rate=rate, return_frequency=frequency)
        ))
        types = [v.type for v in session.store.list_validations()]
        assert types == [ValidationType.SAVING]

    def test_largest_return_scheduled(self, session):
        """Test the largest amount at the highest rate still schedules a return."""
        asyncio.run(session.flow.submit_saving(saving_input(
            amount=Decimal("999999999999.99"),
            return_rate=Decimal("1000"),
            return_frequency="monthly",
        )))
        gate = only_validation(session, ValidationType.SAVING_RETURN)
        assert gate.amount == Decimal("9999999999999.90")

    @pytest.mark.parametrize(
        "overrides,error",
        [
            ({"return_rate": Decimal("1000.01")}, InvalidInput),
            ({"amount": Decimal("1e24"), "return_rate": Decimal("1e6")}, InvalidAmount),
        ],
    )
    def test_oversized_return_writes_nothing(self, session, sink, audit_storage, overrides, error):
        """Test an out-of-range return is rejected before the saving is stored."""
        with pytest.raises(error):
            asyncio.run(session.flow.submit_saving(
                saving_input(return_frequency="monthly", **overrides)
            ))

        assert session.store.list_savings() == []
        assert session.store.list_validations() == []
        assert sink.outcomes[-1].status == OutcomeStatus.FAILURE
        assert AuditEventType.INPUT_REJECTED in recent_event_types(audit_storage)

    def test_approve_saving(self, session):
        """Test approval validates the saving and posts a transaction."""
        saving_id = asyncio.run(session.flow.submit_saving(saving_input()))
        gate = only_validation(session, ValidationType.SAVING)

        asyncio.run(session.flow.validate_item(gate.id, approved=True))

        assert session.store.get_saving_by_id(saving_id).is_validated is True
        transactions = session.store.list_transactions()
        assert [t.type for t in transactions] == [TransactionType.SAVING]
        assert transactions[0].category == "sip"
        totals = session.totals()
        assert totals.total_saved == Decimal("2000")
        assert totals.remaining_balance == Decimal("48000")

    def test_reject_saving_keeps_record(self, session):
        """Test rejection keeps the saving unvalidated."""
        saving_id = asyncio.run(session.flow.submit_saving(saving_input()))
        gate = only_validation(session, ValidationType.SAVING)

        asyncio.run(session.flow.validate_item(gate.id, approved=False))

        assert session.store.get_saving_by_id(saving_id).is_validated is False
        assert session.store.list_transactions() == []
        assert session.store.list_validations() == []

    def test_approve_return(self, session):
        """Test an approved return counts as extra income."""
        asyncio.run(session.flow.submit_saving(
            saving_input(return_rate=Decimal("5"), return_frequency="monthly")
        ))
        gate = only_validation(session, ValidationType.SAVING_RETURN)

        asyncio.run(session.flow.validate_item(gate.id, approved=True))

        returns = [t for t in session.store.list_transactions() if t.type == TransactionType.RETURN]
        assert len(returns) == 1
        assert returns[0].amount == Decimal("100.00")
        assert session.totals().extra_income == Decimal("100.00")
        # The saving's own gate is untouched
        only_validation(session, ValidationType.SAVING)

    def test_reject_return(self, session):
        """Test a rejected return posts nothing."""
        asyncio.run(session.flow.submit_saving(
            saving_input(return_rate=Decimal("5"), return_frequency="monthly")
        ))
        gate = only_validation(session, ValidationType.SAVING_RETURN)

        asyncio.run(session.flow.validate_item(gate.id, approved=False))

        assert session.store.list_transactions() == []
        assert session.totals().extra_income == Decimal("0")


class TestIncome:
    """Extra income is never gated."""

    def test_income_posted_today(self, session):
        """Test income is a transaction dated today."""
        transaction = asyncio.run(session.flow.add_income(
            Decimal("1500"), "Freelance", "Logo design"
        ))

        assert transaction.type == TransactionType.INCOME
        assert transaction.date == TODAY
        assert session.store.list_validations() == []
        totals = session.totals()
        assert totals.extra_income == Decimal("1500")
        assert totals.remaining_balance == Decimal("51500")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_non_positive_income_rejected(self, session, amount):
        """Test zero and negative income raise InvalidAmount."""
        with pytest.raises(InvalidAmount):
            asyncio.run(session.flow.add_income(amount, "Freelance"))
        assert session.store.list_transactions() == []

    def test_out_of_range_income_rejected(self, session):
        """Test income too large to round to the paisa raises InvalidAmount."""
        with pytest.raises(InvalidAmount):
            asyncio.run(session.flow.add_income(Decimal("1e30"), "Lottery"))
        assert session.store.list_transactions() == []


class TestValidationConsumption:
    """A gate is consumed exactly once."""

    def test_second_resolution_not_found(self, session):
        """Test approving twice raises and never double-posts."""
        asyncio.run(session.flow.submit_saving(saving_input()))
        gate = only_validation(session, ValidationType.SAVING)

        asyncio.run(session.flow.validate_item(gate.id, approved=True))
        with pytest.raises(ValidationNotFound):
            asyncio.run(session.flow.validate_item(gate.id, approved=True))

        assert len(session.store.list_transactions()) == 1

    def test_unknown_id_not_found(self, session, sink):
        """Test an unknown id raises ValidationNotFound."""
        with pytest.raises(ValidationNotFound):
            asyncio.run(session.flow.validate_item(uuid4(), approved=True))
        assert sink.outcomes[-1].error_code == "validation_not_found"

    def test_cannot_resolve_other_users_gate(self, session, ravi_session):
        """Test a gate in another user's queue is not found."""
        asyncio.run(session.flow.submit_expense(expense_input(split_with="ravi")))
        asyncio.run(ravi_session.refresh())
        gate = only_validation(ravi_session, ValidationType.EXPENSE_SPLIT)

        with pytest.raises(ValidationNotFound):
            asyncio.run(session.flow.validate_item(gate.id, approved=True))

    def test_failed_gate_delete_never_double_posts(self, session, ledger_storage):
        """Test a gate whose postings went through is not dispatched again."""
        asyncio.run(session.flow.submit_saving(saving_input()))
        gate = only_validation(session, ValidationType.SAVING)
        ledger_storage.fail_on.add("delete_validation")

        with pytest.raises(PersistenceFailure):
            asyncio.run(session.flow.validate_item(gate.id, approved=True))
        with pytest.raises(ValidationNotFound):
            asyncio.run(session.flow.validate_item(gate.id, approved=True))

        assert len(session.store.list_transactions()) == 1

    def test_failed_dispatch_can_be_retried(self, session, ledger_storage):
        """Test a gate whose dispatch failed stays resolvable."""
        asyncio.run(session.flow.submit_saving(saving_input()))
        gate = only_validation(session, ValidationType.SAVING)

        ledger_storage.fail_on.add("update_saving")
        with pytest.raises(PersistenceFailure):
            asyncio.run(session.flow.validate_item(gate.id, approved=True))
        assert session.store.get_validation_by_id(gate.id) is not None

        ledger_storage.fail_on.clear()
        asyncio.run(session.flow.validate_item(gate.id, approved=True))
        assert session.totals().total_saved == Decimal("2000")


class TestPersistenceFailure:
    """Storage failures leave the in-memory ledger unchanged."""

    def test_failed_expense_write(self, session, ledger_storage, sink, audit_storage):
        """Test nothing changes when the expense write fails."""
        ledger_storage.fail_on.add("save_expense")

        with pytest.raises(PersistenceFailure):
            asyncio.run(session.flow.submit_expense(expense_input()))

        assert session.store.list_expenses() == []
        assert session.store.list_transactions() == []
        assert sink.outcomes[-1].status == OutcomeStatus.FAILURE
        assert AuditEventType.PERSISTENCE_FAILED in recent_event_types(audit_storage)

    def test_no_writes_after_failed_step(self, session, ledger_storage):
        """Test a failed transaction write stops the flow."""
        ledger_storage.fail_on.add("save_transaction")

        with pytest.raises(PersistenceFailure):
            asyncio.run(session.flow.submit_expense(expense_input()))

        # The expense write succeeded before the failure; nothing is rolled back
        assert len(session.store.list_expenses()) == 1
        assert session.store.list_transactions() == []

    def test_failed_saving_gate(self, session, ledger_storage):
        """Test a saving whose gate failed has no gate in memory."""
        ledger_storage.fail_on.add("save_validation")

        with pytest.raises(PersistenceFailure):
            asyncio.run(session.flow.submit_saving(saving_input()))

        assert len(session.store.list_savings()) == 1
        assert session.store.list_validations() == []


class TestDeletion:
    """Deleting a record removes what hangs off it."""

    def test_delete_expense_cascades_transactions(self, session):
        """Test deleting an expense removes its transaction."""
        expense_id = asyncio.run(session.flow.submit_expense(expense_input()))
        asyncio.run(session.flow.delete_expense(expense_id))

        assert session.store.list_expenses() == []
        assert session.store.list_transactions() == []
        assert session.totals().remaining_balance == Decimal("50000")

    def test_delete_future_expense_removes_gate(self, session):
        """Test deleting a scheduled expense removes its gate."""
        expense_id = asyncio.run(session.flow.submit_expense(
            expense_input(date=TODAY + timedelta(days=2))
        ))
        asyncio.run(session.flow.delete_expense(expense_id))
        assert session.store.list_validations() == []

    def test_delete_saving_removes_both_gates(self, session):
        """Test deleting a saving removes its saving and return gates."""
        saving_id = asyncio.run(session.flow.submit_saving(
            saving_input(return_rate=Decimal("5"), return_frequency="monthly")
        ))
        assert len(session.store.list_validations()) == 2

        asyncio.run(session.flow.delete_saving(saving_id))

        assert session.store.list_savings() == []
        assert session.store.list_validations() == []

    def test_delete_validated_saving_drops_from_totals(self, session):
        """Test deleting a confirmed saving removes it from totals."""
        saving_id = asyncio.run(session.flow.submit_saving(saving_input()))
        gate = only_validation(session, ValidationType.SAVING)
        asyncio.run(session.flow.validate_item(gate.id, approved=True))

        asyncio.run(session.flow.delete_saving(saving_id))

        assert session.store.list_transactions() == []
        assert session.totals().total_saved == Decimal("0")

    def test_delete_unknown_expense(self, session):
        """Test deleting a missing expense raises InvalidInput."""
        with pytest.raises(InvalidInput):
            asyncio.run(session.flow.delete_expense(uuid4()))

    def test_split_gate_after_expense_deleted(self, session, ravi_session):
        """Test approving a split whose expense was deleted posts nothing."""
        expense_id = asyncio.run(session.flow.submit_expense(expense_input(split_with="ravi")))
        asyncio.run(session.flow.delete_expense(expense_id))
        asyncio.run(ravi_session.refresh())
        gate = only_validation(ravi_session, ValidationType.EXPENSE_SPLIT)

        outcome = asyncio.run(ravi_session.flow.validate_item(gate.id, approved=True))

        assert outcome.status == OutcomeStatus.WARNING
        assert ravi_session.store.list_expenses() == []
        assert ravi_session.store.list_validations() == []


class TestProfile:
    """Profile updates feed the balance."""

    def test_update_salary(self, session, profile_storage, asha):
        """Test a new salary is persisted and used for totals."""
        asyncio.run(session.flow.update_profile(monthly_salary=Decimal("60000")))

        assert session.totals().remaining_balance == Decimal("60000")
        stored = asyncio.run(profile_storage.get_profile(asha.user_id))
        assert stored.monthly_salary == Decimal("60000")

    def test_negative_salary_rejected(self, session):
        """Test a negative salary raises InvalidInput."""
        with pytest.raises(InvalidInput):
            asyncio.run(session.flow.update_profile(monthly_salary=Decimal("-1")))
        assert session.profile.monthly_salary == Decimal("50000")

    def test_username_taken(self, session):
        """Test renaming to an existing username fails in storage."""
        with pytest.raises(PersistenceFailure):
            asyncio.run(session.flow.update_profile(username="ravi"))
        assert session.profile.username == "asha"


class TestNotificationFailures:
    """A failing sink never undoes a mutation."""

    def test_broken_sink_does_not_roll_back(self, make_session, asha):
        """Test the expense survives a sink that raises."""

        class BrokenSink(NotificationSink):
            def notify(self, outcome):
                raise RuntimeError("toast service down")

        broken = make_session(asha, BrokenSink())
        asyncio.run(broken.flow.submit_expense(expense_input()))
        assert len(broken.store.list_expenses()) == 1


class TestBalanceIdentity:
    """remaining = salary + extra income - validated expenses - validated savings."""

    def test_identity_after_mixed_activity(self, session):
        """Test the identity holds after a mix of gated and ungated records."""
        flow = session.flow
        asyncio.run(flow.submit_expense(expense_input(amount=Decimal("750.50"))))
        asyncio.run(flow.submit_expense(expense_input(date=TODAY + timedelta(days=4))))
        asyncio.run(flow.submit_saving(
            saving_input(return_rate=Decimal("10"), return_frequency="yearly")
        ))
        asyncio.run(flow.add_income(Decimal("1200"), "Bonus"))
        for gate in list(session.store.list_validations()):
            if gate.type != ValidationType.FUTURE_EXPENSE:
                asyncio.run(flow.validate_item(gate.id, approved=True))

        totals = session.totals()
        assert totals.total_expenses == Decimal("750.50")
        assert totals.total_saved == Decimal("2000")
        assert totals.extra_income == Decimal("1400.00")
        assert totals.remaining_balance == (
            Decimal("50000") + Decimal("1400") - Decimal("750.50") - Decimal("2000")
        )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
