"""
Main Orchestrator for Finance Tracker

This module ties the ledger components together and defines the
mutation flow every UI action goes through:
1. Expense submission (immediate, future-dated or split)
2. Saving submission (always gated, optionally with an expected return)
3. Extra income
4. Approve / reject of a pending validation item
5. Deleting expenses and savings, updating the profile

DESIGN DECISION: The orchestrator enforces the gating rules:
- Money that has not moved yet never counts toward the balance
- Every gate is consumed exactly once
- Nothing is written after a failed step
- Every outcome is audited and reported to the notification sink

This is the only place where `is_validated` and split status change.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Optional, Union
from uuid import UUID

import structlog
from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ValidationError

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import AppSettings, get_settings
from finance_tracker.errors import (
    CounterpartyNotFound,
    InvalidAmount,
    InvalidInput,
    LedgerError,
    PartialSplitFailure,
    PersistenceFailure,
    ValidationNotFound,
)
from finance_tracker.ledger import LedgerStore
from finance_tracker.models.ledger import (
    CheckResult,
    Expense,
    ExpenseSubmission,
    Frequency,
    IncomeSubmission,
    Saving,
    SavingSubmission,
    SplitStatus,
    Transaction,
    TransactionType,
    UserProfile,
    ValidationItem,
    ValidationType,
    to_paisa,
    utc_now,
)
from finance_tracker.services.identity import IdentityProvider
from finance_tracker.services.notifications import (
    LogNotificationSink,
    NotificationSink,
    Outcome,
    OutcomeStatus,
)
from finance_tracker.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    GoogleSheetsProfileStorage,
    InMemoryLedgerStorage,
    InMemoryProfileStorage,
    LedgerStorageInterface,
    ProfileStorageInterface,
)
from finance_tracker.validation import SubmissionValidator


logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

# How long a saving waits for confirmation, by contribution frequency.
# Frequencies not listed use AppSettings.default_saving_validation_days.
SAVING_VALIDATION_WINDOWS = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
}

# One return period. "once" is not periodic, so it schedules no return.
RETURN_PERIODS = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.QUARTERLY: relativedelta(months=3),
    Frequency.YEARLY: relativedelta(years=1),
}


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "input"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


class LedgerMutationFlow:
    """
    Applies the ledger's gating rules for one signed-in user.

    Flow for every public operation:
    1. Parse → submission model (InvalidInput on malformed fields)
    2. Check → two-stage checks (InvalidAmount / InvalidInput on errors)
    3. Write → store, in order, stopping at the first failure
    4. Report → audit log and notification sink

    Failures are reported and then re-raised to the caller.
    """

    def __init__(
        self,
        store: LedgerStore,
        identity: IdentityProvider,
        notifier: Optional[NotificationSink] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[SubmissionValidator] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Clock] = None,
    ):
        self._store = store
        self._identity = identity
        self._notifier = notifier or LogNotificationSink()
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().app
        self._validator = validator or SubmissionValidator(self._settings)
        self._clock = clock or utc_now

        # Gates this session has dispatched. A claim is released when the
        # dispatch fails, so a gate whose postings went through is never
        # dispatched twice even if deleting it failed.
        self._claimed: set[UUID] = set()

        self._resolvers = {
            ValidationType.EXPENSE_SPLIT: self._resolve_split,
            ValidationType.SAVING: self._resolve_saving,
            ValidationType.FUTURE_EXPENSE: self._resolve_future_expense,
            ValidationType.SAVING_RETURN: self._resolve_saving_return,
        }

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def _user_id(self) -> UUID:
        return self._identity.current_user_id

    def _today(self) -> date:
        return self._clock().date()

    # =========================================================================
    # Reporting
    # =========================================================================

    def _notify(self, outcome: Outcome) -> None:
        try:
            self._notifier.notify(outcome)
        except Exception as e:
            logger.error(
                "notification_failed",
                error=str(e),
                outcome_title=outcome.title,
            )

    def _succeed(
        self,
        title: str,
        message: str = "",
        warnings: Optional[list[str]] = None,
    ) -> Outcome:
        status = OutcomeStatus.SUCCESS
        if warnings:
            status = OutcomeStatus.WARNING
            message = " ".join([message, *warnings]).strip()
        outcome = Outcome(status=status, title=title, message=message)
        self._notify(outcome)
        return outcome

    async def _report_failure(
        self,
        operation: str,
        error: LedgerError,
        correlation_id: UUID,
    ) -> None:
        if isinstance(error, PartialSplitFailure):
            await self._audit_logger.log_partial_split_failed(
                user_id=self._user_id,
                expense_id=error.expense_id,
                counterparty_id=error.counterparty_id,
                error_message=str(error.cause or error),
                correlation_id=correlation_id,
            )
        elif isinstance(error, PersistenceFailure):
            await self._audit_logger.log_persistence_failed(
                user_id=self._user_id,
                operation=error.operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )
        elif isinstance(error, ValidationNotFound):
            await self._audit_logger.log_validation_not_found(
                user_id=self._user_id,
                validation_id=error.validation_id,
                correlation_id=correlation_id,
            )
        else:
            await self._audit_logger.log_input_rejected(
                user_id=self._user_id,
                operation=operation,
                error_code=error.code,
                error_message=str(error),
                correlation_id=correlation_id,
            )

        self._notify(Outcome(
            status=OutcomeStatus.FAILURE,
            title=f"Could not {operation}",
            message=str(error),
            error_code=error.code,
        ))

    # =========================================================================
    # Input handling
    # =========================================================================

    @staticmethod
    def _parse(model: type[BaseModel], data: Union[BaseModel, dict[str, Any]]) -> Any:
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except ValidationError as e:
            message = _describe_validation_error(e)
            if any(err["loc"] and err["loc"][0] == "amount" for err in e.errors()):
                raise InvalidAmount(message) from e
            raise InvalidInput(message) from e

    @staticmethod
    def _enforce(result: CheckResult) -> list[str]:
        """Raise on blocking issues, return warning messages otherwise."""
        errors = [i for i in result.issues if i.severity == "error"]
        if errors:
            message = "; ".join(i.message for i in errors)
            if any(i.field == "amount" for i in errors):
                raise InvalidAmount(message)
            raise InvalidInput(message)
        return [i.message for i in result.warnings]

    def _expense_transaction(self, expense: Expense) -> Transaction:
        return Transaction(
            user_id=expense.user_id,
            title=expense.title,
            amount=expense.amount,
            date=expense.date,
            type=TransactionType.EXPENSE,
            category=expense.category.value,
            description=expense.description,
            related_id=expense.id,
        )

    # =========================================================================
    # Expenses
    # =========================================================================

    async def submit_expense(
        self,
        submission: Union[ExpenseSubmission, dict[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> UUID:
        """
        Record an expense and return its id.

        - split_with set → half is posted now, the other half waits for
          the counterparty's approval
        - dated after today → stored unvalidated behind a future_expense gate
        - otherwise → validated and posted immediately
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            parsed = self._parse(ExpenseSubmission, submission)
            warnings = self._enforce(
                self._validator.check_expense(parsed, self._today())
            )
            if parsed.split_with:
                expense = await self._submit_split(parsed, correlation_id)
                self._succeed(
                    "Split expense added",
                    f"Your half (₹{expense.amount}) is recorded. "
                    f"Waiting for {parsed.split_with} to approve theirs.",
                    warnings,
                )
            elif parsed.date > self._today():
                expense = await self._submit_future(parsed, correlation_id)
                self._succeed(
                    "Expense scheduled",
                    f"It will count once you confirm it on or after {expense.date}.",
                    warnings,
                )
            else:
                expense = await self._submit_immediate(parsed, correlation_id)
                self._succeed("Expense added", f"₹{expense.amount} for {expense.title}", warnings)
            return expense.id
        except LedgerError as e:
            await self._report_failure("add expense", e, correlation_id)
            raise

    def _new_expense(self, submission: ExpenseSubmission, **overrides: Any) -> Expense:
        fields = dict(
            user_id=self._user_id,
            title=submission.title,
            amount=submission.amount,
            date=submission.date,
            category=submission.category,
            kind=submission.kind,
            frequency=submission.frequency,
            description=submission.description,
        )
        fields.update(overrides)
        return Expense(**fields)

    async def _submit_immediate(
        self,
        submission: ExpenseSubmission,
        correlation_id: UUID,
    ) -> Expense:
        expense = self._new_expense(submission, is_validated=True)
        await self._store.add_expense(expense)
        await self._store.add_transaction(self._expense_transaction(expense))

        await self._audit_logger.log_expense_posted(
            user_id=self._user_id,
            expense_id=expense.id,
            amount=str(expense.amount),
            correlation_id=correlation_id,
        )
        return expense

    async def _submit_future(
        self,
        submission: ExpenseSubmission,
        correlation_id: UUID,
    ) -> Expense:
        expense = self._new_expense(submission, is_validated=False)
        await self._store.add_expense(expense)

        gate = ValidationItem(
            user_id=self._user_id,
            title=f"Confirm expense: {expense.title}",
            amount=expense.amount,
            type=ValidationType.FUTURE_EXPENSE,
            date=expense.date,
            expires_at=_midnight(expense.date),
            description=expense.description,
            related_id=expense.id,
        )
        await self._store.add_validation(gate)

        await self._audit_logger.log_expense_scheduled(
            user_id=self._user_id,
            expense_id=expense.id,
            validation_id=gate.id,
            due=expense.date.isoformat(),
            correlation_id=correlation_id,
        )
        return expense

    async def _submit_split(
        self,
        submission: ExpenseSubmission,
        correlation_id: UUID,
    ) -> Expense:
        try:
            counterparty_id = await self._identity.resolve_user_by_username(
                submission.split_with
            )
        except Exception as e:
            raise PersistenceFailure("look up split user", e) from e
        if counterparty_id is None:
            raise CounterpartyNotFound(submission.split_with)
        if counterparty_id == self._user_id:
            raise InvalidInput("You cannot split an expense with yourself")

        split_amount = to_paisa(submission.amount / 2)
        expense = self._new_expense(
            submission,
            amount=split_amount,
            is_split=True,
            split_with_user=counterparty_id,
            split_status=SplitStatus.PENDING,
            is_validated=True,
        )
        await self._store.add_expense(expense)
        await self._store.add_transaction(self._expense_transaction(expense))

        gate = ValidationItem(
            user_id=counterparty_id,
            title=f"Split expense: {expense.title}",
            amount=split_amount,
            type=ValidationType.EXPENSE_SPLIT,
            date=expense.date,
            expires_at=self._clock() + timedelta(days=self._settings.split_validation_days),
            description=expense.description,
            related_id=expense.id,
            initiated_by=self._user_id,
        )
        try:
            await self._store.write_foreign_validation(gate)
        except PersistenceFailure as e:
            raise PartialSplitFailure(expense.id, counterparty_id, e.cause) from e

        await self._audit_logger.log_split_requested(
            user_id=self._user_id,
            expense_id=expense.id,
            counterparty_id=counterparty_id,
            split_amount=str(split_amount),
            correlation_id=correlation_id,
        )
        return expense

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete an expense with its transactions and open gates.

        A split request already sent to another user stays in their queue;
        approving it later finds no expense and posts nothing.
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            expense = self._store.get_expense_by_id(expense_id)
            if expense is None:
                raise InvalidInput(f"Expense not found: {expense_id}")

            await self._store.delete_expense(expense_id)
            cascaded = await self._cascade_delete(expense_id)

            await self._audit_logger.log_record_deleted(
                user_id=self._user_id,
                entity_type="expense",
                entity_id=expense_id,
                cascaded=cascaded,
                correlation_id=correlation_id,
            )
            self._succeed("Expense deleted", expense.title)
        except LedgerError as e:
            await self._report_failure("delete expense", e, correlation_id)
            raise

    async def _cascade_delete(self, related_id: UUID) -> int:
        count = 0
        for transaction in self._store.transactions_for(related_id):
            await self._store.delete_transaction(transaction.id)
            count += 1
        for item in self._store.validations_for(related_id):
            await self._store.delete_validation(item.id)
            count += 1
        return count

    # =========================================================================
    # Savings
    # =========================================================================

    async def submit_saving(
        self,
        submission: Union[SavingSubmission, dict[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> UUID:
        """
        Record a saving behind an approval gate and return its id.

        With a positive return rate and a periodic return frequency, an
        expected return is queued for one period after the saving date.
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            parsed = self._parse(SavingSubmission, submission)
            warnings = self._enforce(
                self._validator.check_saving(parsed, self._today())
            )
            expected_return = self._plan_return(parsed)

            saving = Saving(
                user_id=self._user_id,
                title=parsed.title,
                amount=parsed.amount,
                date=parsed.date,
                type=parsed.type,
                frequency=parsed.frequency,
                return_rate=parsed.return_rate,
                return_frequency=parsed.return_frequency,
                description=parsed.description,
                is_validated=False,
            )
            await self._store.add_saving(saving)

            window = SAVING_VALIDATION_WINDOWS.get(
                saving.frequency,
                relativedelta(days=self._settings.default_saving_validation_days),
            )
            await self._store.add_validation(ValidationItem(
                user_id=self._user_id,
                title=f"Confirm saving: {saving.title}",
                amount=saving.amount,
                type=ValidationType.SAVING,
                date=saving.date,
                expires_at=self._clock() + window,
                description=saving.description,
                related_id=saving.id,
            ))
            await self._audit_logger.log_saving_submitted(
                user_id=self._user_id,
                saving_id=saving.id,
                amount=str(saving.amount),
                correlation_id=correlation_id,
            )

            if expected_return is not None:
                return_amount, return_date = expected_return
                await self._schedule_return(saving, return_amount, return_date, correlation_id)

            self._succeed(
                "Saving added",
                f"₹{saving.amount} will count once you confirm it.",
                warnings,
            )
            return saving.id
        except LedgerError as e:
            await self._report_failure("add saving", e, correlation_id)
            raise

    @staticmethod
    def _plan_return(submission: SavingSubmission) -> Optional[tuple[Decimal, date]]:
        """Expected return amount and date, or None when nothing is due."""
        period = RETURN_PERIODS.get(submission.return_frequency)
        if not submission.return_rate or period is None:
            return None

        try:
            return_amount = to_paisa(submission.amount * submission.return_rate / 100)
        except InvalidOperation as e:
            raise InvalidInput("Expected return is out of range") from e
        if return_amount <= 0:
            return None
        return return_amount, submission.date + period

    async def _schedule_return(
        self,
        saving: Saving,
        return_amount: Decimal,
        return_date: date,
        correlation_id: UUID,
    ) -> None:
        await self._store.add_validation(ValidationItem(
            user_id=self._user_id,
            title=f"Expected return: {saving.title}",
            amount=return_amount,
            type=ValidationType.SAVING_RETURN,
            date=return_date,
            expires_at=_midnight(return_date + timedelta(days=1)),
            description=(
                f"{saving.return_rate}% {saving.return_frequency.value} return "
                f"on {saving.title}"
            ),
            related_id=saving.id,
        ))
        await self._audit_logger.log_return_scheduled(
            user_id=self._user_id,
            saving_id=saving.id,
            return_amount=str(return_amount),
            return_date=return_date.isoformat(),
            correlation_id=correlation_id,
        )

    async def delete_saving(
        self,
        saving_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Delete a saving with its transactions and open gates."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            saving = self._store.get_saving_by_id(saving_id)
            if saving is None:
                raise InvalidInput(f"Saving not found: {saving_id}")

            await self._store.delete_saving(saving_id)
            cascaded = await self._cascade_delete(saving_id)

            await self._audit_logger.log_record_deleted(
                user_id=self._user_id,
                entity_type="saving",
                entity_id=saving_id,
                cascaded=cascaded,
                correlation_id=correlation_id,
            )
            self._succeed("Saving deleted", saving.title)
        except LedgerError as e:
            await self._report_failure("delete saving", e, correlation_id)
            raise

    # =========================================================================
    # Income
    # =========================================================================

    async def add_income(
        self,
        amount: Any,
        title: str,
        description: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Post extra income dated today. Income is never gated."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            parsed = self._parse(IncomeSubmission, {
                "amount": amount,
                "title": title,
                "description": description,
            })
            warnings = self._enforce(self._validator.check_income(parsed))

            transaction = Transaction(
                user_id=self._user_id,
                title=parsed.title,
                amount=parsed.amount,
                date=self._today(),
                type=TransactionType.INCOME,
                category="income",
                description=parsed.description,
            )
            await self._store.add_transaction(transaction)

            await self._audit_logger.log_income_added(
                user_id=self._user_id,
                transaction_id=transaction.id,
                amount=str(transaction.amount),
                correlation_id=correlation_id,
            )
            self._succeed("Income added", f"₹{transaction.amount} from {transaction.title}", warnings)
            return transaction
        except LedgerError as e:
            await self._report_failure("add income", e, correlation_id)
            raise

    # =========================================================================
    # Validation queue
    # =========================================================================

    async def validate_item(
        self,
        validation_id: UUID,
        approved: bool,
        correlation_id: Optional[UUID] = None,
    ) -> Outcome:
        """
        Approve or reject one pending validation item.

        The item is consumed exactly once. Calling again with the same id
        raises ValidationNotFound and posts nothing.
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            item = self._store.get_validation_by_id(validation_id)
            if item is None or validation_id in self._claimed:
                raise ValidationNotFound(validation_id)

            self._claimed.add(validation_id)
            try:
                outcome = await self._resolvers[item.type](item, approved)
            except Exception:
                self._claimed.discard(validation_id)
                raise
            await self._store.delete_validation(item.id)
            self._claimed.discard(validation_id)

            await self._audit_logger.log_validation_resolved(
                user_id=self._user_id,
                validation_id=item.id,
                validation_type=item.type.value,
                approved=approved,
                correlation_id=correlation_id,
            )
            self._notify(outcome)
            return outcome
        except LedgerError as e:
            action = "approve item" if approved else "reject item"
            await self._report_failure(action, e, correlation_id)
            raise

    @staticmethod
    def _related_missing(item: ValidationItem) -> Outcome:
        logger.warning(
            "validation_related_record_missing",
            validation_id=str(item.id),
            related_id=str(item.related_id),
            validation_type=item.type.value,
        )
        return Outcome(
            status=OutcomeStatus.WARNING,
            title="Linked record no longer exists",
            message=f"'{item.title}' was removed from your queue. Nothing was posted.",
        )

    async def _resolve_split(self, item: ValidationItem, approved: bool) -> Outcome:
        owner_id = item.initiated_by or item.user_id
        original = await self._store.get_foreign_expense(owner_id, item.related_id)
        if original is None:
            return self._related_missing(item)

        status = SplitStatus.APPROVED if approved else SplitStatus.REJECTED
        await self._store.update_foreign_expense(
            original.model_copy(update={"split_status": status})
        )
        if not approved:
            return Outcome(
                status=OutcomeStatus.SUCCESS,
                title="Split declined",
                message=f"You declined ₹{item.amount} for {original.title}.",
            )

        expense = Expense(
            user_id=self._user_id,
            title=f"Split: {original.title}"[:100],
            amount=item.amount,
            date=self._today(),
            category=original.category,
            description=f"Split payment for {original.title}",
            is_validated=True,
        )
        await self._store.add_expense(expense)
        await self._store.add_transaction(self._expense_transaction(expense))
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Split approved",
            message=f"₹{item.amount} added to your expenses.",
        )

    async def _resolve_saving(self, item: ValidationItem, approved: bool) -> Outcome:
        saving = self._store.get_saving_by_id(item.related_id)
        if saving is None:
            return self._related_missing(item)

        if not approved:
            return Outcome(
                status=OutcomeStatus.SUCCESS,
                title="Saving left unconfirmed",
                message=f"{saving.title} does not count toward your savings.",
            )

        await self._store.update_saving(saving.model_copy(update={"is_validated": True}))
        await self._store.add_transaction(Transaction(
            user_id=self._user_id,
            title=saving.title,
            amount=saving.amount,
            date=self._today(),
            type=TransactionType.SAVING,
            category=saving.type.value,
            description=saving.description,
            related_id=saving.id,
        ))
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Saving confirmed",
            message=f"₹{saving.amount} added to your savings.",
        )

    async def _resolve_future_expense(self, item: ValidationItem, approved: bool) -> Outcome:
        expense = self._store.get_expense_by_id(item.related_id)
        if expense is None:
            return self._related_missing(item)

        if not approved:
            await self._store.delete_expense(expense.id)
            return Outcome(
                status=OutcomeStatus.SUCCESS,
                title="Expense cancelled",
                message=f"{expense.title} was removed.",
            )

        validated = expense.model_copy(update={"is_validated": True})
        await self._store.update_expense(validated)
        await self._store.add_transaction(self._expense_transaction(validated))
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Expense confirmed",
            message=f"₹{expense.amount} for {expense.title}",
        )

    async def _resolve_saving_return(self, item: ValidationItem, approved: bool) -> Outcome:
        saving = self._store.get_saving_by_id(item.related_id)
        if saving is None:
            return self._related_missing(item)

        if not approved:
            return Outcome(
                status=OutcomeStatus.SUCCESS,
                title="Return dismissed",
                message=f"No return recorded for {saving.title}.",
            )

        await self._store.add_transaction(Transaction(
            user_id=self._user_id,
            title=f"Return: {saving.title}",
            amount=item.amount,
            date=self._today(),
            type=TransactionType.RETURN,
            category=saving.type.value,
            description=item.description,
            related_id=saving.id,
        ))
        return Outcome(
            status=OutcomeStatus.SUCCESS,
            title="Return recorded",
            message=f"₹{item.amount} added to your income.",
        )

    # =========================================================================
    # Profile
    # =========================================================================

    async def update_profile(
        self,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> UserProfile:
        """Save profile fields such as name, email or monthly salary."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            current = self._identity.profile
            profile = self._parse(
                UserProfile,
                {**current.model_dump(), **changes, "user_id": current.user_id},
            )
            try:
                await self._identity.save_profile(profile)
            except Exception as e:
                raise PersistenceFailure("save profile", e) from e

            await self._audit_logger.log_profile_updated(
                user_id=self._user_id,
                correlation_id=correlation_id,
            )
            self._succeed("Profile saved")
            return profile
        except LedgerError as e:
            await self._report_failure("save profile", e, correlation_id)
            raise


def create_app_components(
    backend: Optional[str] = None,
) -> tuple[LedgerStorageInterface, ProfileStorageInterface, AuditLogger, Optional[GoogleSheetsClient]]:
    """
    Factory function to create the shared storage components.

    Args:
        backend: "memory" or "google_sheets". Defaults to
                 AppSettings.storage_backend.

    Returns:
        (ledger_storage, profile_storage, audit_logger, sheets_client)

    Falls back to in-memory storage when Google Sheets cannot be reached.
    """
    backend = backend or get_settings().app.storage_backend

    if backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.get_spreadsheet()
            return (
                GoogleSheetsLedgerStorage(sheets_client),
                GoogleSheetsProfileStorage(sheets_client),
                AuditLogger(GoogleSheetsAuditStorage(sheets_client)),
                sheets_client,
            )
        except Exception as e:
            logger.warning("storage_not_configured", backend=backend, error=str(e))

    return (
        InMemoryLedgerStorage(),
        InMemoryProfileStorage(),
        AuditLogger(),
        None,
    )
