"""
Two-Stage Submission Checks

DESIGN DECISION: Checks happen in two distinct stages:

STAGE 1 - SCHEMA CHECKS:
- Amount must be positive
- Title length and field types are enforced earlier, by the submission models
- Errors here block the submission before any write

STAGE 2 - SEMANTIC CHECKS:
- Absurd amount detection
- Very old date detection
- Unrealistic return rates
- Frequencies that will not schedule anything
- These are warnings. The submission still goes through.

Stage 2 only runs when stage 1 passes.

IMPORTANT: Checks NEVER silently fix issues.
They report them and the mutation flow decides.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.ledger import (
    CheckResult,
    ExpenseKind,
    ExpenseSubmission,
    Frequency,
    IncomeSubmission,
    SavingSubmission,
    ValidationIssue,
)


class SubmissionValidator:
    """
    Checks expense, saving and income submissions.

    Stage 1: Schema checks (errors)
    Stage 2: Semantic checks (warnings and info)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # =========================================================================
    # Stage 1
    # =========================================================================

    def _check_amount(self, amount: Decimal) -> list[ValidationIssue]:
        if amount <= 0:
            return [ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            )]
        return []

    # =========================================================================
    # Stage 2
    # =========================================================================

    def _check_amount_sanity(self, amount: Decimal) -> list[ValidationIssue]:
        max_amount = Decimal(str(self._settings.max_amount_inr))
        if amount > max_amount:
            return [ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (₹{amount:,.2f}) seems unusually high",
                severity="warning",
            )]
        return []

    def _check_date_sanity(self, value: date, today: date) -> list[ValidationIssue]:
        oldest = today - timedelta(days=self._settings.old_date_warning_days)
        if value < oldest:
            return [ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Date ({value}) seems unusually old",
                severity="warning",
            )]
        return []

    @staticmethod
    def _result(
        schema_issues: list[ValidationIssue],
        semantic_issues: list[ValidationIssue],
    ) -> CheckResult:
        schema_valid = not any(i.severity == "error" for i in schema_issues)
        semantic_valid = schema_valid and not any(
            i.severity == "error" for i in semantic_issues
        )
        return CheckResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=schema_issues + semantic_issues,
        )

    # =========================================================================
    # Public checks
    # =========================================================================

    def check_expense(
        self,
        submission: ExpenseSubmission,
        today: date,
    ) -> CheckResult:
        schema = self._check_amount(submission.amount)
        if schema:
            return self._result(schema, [])

        semantic = self._check_amount_sanity(submission.amount)
        semantic += self._check_date_sanity(submission.date, today)

        if submission.kind == ExpenseKind.RECURRING and submission.frequency is None:
            semantic.append(ValidationIssue(
                field="frequency",
                issue_type="missing",
                message="Recurring expense has no frequency",
                severity="warning",
            ))

        if submission.date > today and not submission.split_with:
            semantic.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense will wait for your confirmation on {submission.date}",
                severity="info",
            ))

        return self._result(schema, semantic)

    def check_saving(
        self,
        submission: SavingSubmission,
        today: date,
    ) -> CheckResult:
        schema = self._check_amount(submission.amount)
        if schema:
            return self._result(schema, [])

        semantic = self._check_amount_sanity(submission.amount)
        semantic += self._check_date_sanity(submission.date, today)

        rate = submission.return_rate or Decimal("0")
        if rate > 100:
            semantic.append(ValidationIssue(
                field="return_rate",
                issue_type="suspicious_value",
                message=f"Return rate of {rate}% seems unrealistic",
                severity="warning",
            ))

        if rate > 0 and submission.return_frequency in (None, Frequency.ONCE):
            semantic.append(ValidationIssue(
                field="return_frequency",
                issue_type="missing",
                message="No periodic return frequency, so no return will be scheduled",
                severity="warning",
            ))
        elif rate == 0 and submission.return_frequency is not None:
            semantic.append(ValidationIssue(
                field="return_rate",
                issue_type="missing",
                message="Return frequency given without a return rate",
                severity="info",
            ))

        return self._result(schema, semantic)

    def check_income(self, submission: IncomeSubmission) -> CheckResult:
        schema = self._check_amount(submission.amount)
        if schema:
            return self._result(schema, [])
        return self._result(schema, self._check_amount_sanity(submission.amount))

    def get_user_friendly_summary(self, result: CheckResult) -> str:
        """
        Summarise issues for display next to the form.

        Info-level notes are left out.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []
        if not result.schema_valid:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for issue in result.warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)
