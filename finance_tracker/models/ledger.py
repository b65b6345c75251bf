"""
Core Ledger Models for Finance Tracker

These models define the strict schemas for every record the ledger holds:
expenses, savings, transactions and pending validation items, plus the
user profile that supplies the monthly salary.

DESIGN DECISION: Stored records and user submissions are separate models.
Submissions never carry `is_validated` or split status; those fields are
owned by the mutation flow and can only change through its gating rules.

Amounts are Decimal rupees with two decimal places.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


PAISA = Decimal("0.01")

# Upper bound on anything a user can submit (₹1 lakh crore).
MAX_SUBMITTED_AMOUNT = Decimal("1000000000000")

MAX_RETURN_RATE = Decimal("1000")


def utc_now() -> datetime:
    """Current time as naive UTC, the form every stored timestamp uses."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_paisa(value: Decimal) -> Decimal:
    """Round an amount to two decimal places (half up)."""
    return value.quantize(PAISA, rounding=ROUND_HALF_UP)


def _round_submitted(value: Decimal) -> Decimal:
    try:
        return to_paisa(value)
    except InvalidOperation:
        raise ValueError("Amount is out of range") from None


Amount = Annotated[
    Decimal,
    Field(gt=0, decimal_places=2, description="Amount in INR"),
]


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """Supported expense categories."""
    RENT = "rent"
    FOOD = "food"
    SUBSCRIPTION = "subscription"
    RECHARGE = "recharge"
    TRAVEL = "travel"
    BILL = "bill"
    EMI = "emi"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    OTHER = "other"


class ExpenseKind(str, Enum):
    """Whether an expense repeats or happens once."""
    RECURRING = "recurring"
    ONE_TIME = "one_time"


class Frequency(str, Enum):
    """How often an expense, saving or return recurs."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ONCE = "once"


class SavingType(str, Enum):
    """Savings vehicles."""
    SIP = "sip"
    MUTUAL_FUND = "mutual_fund"
    GULLAK = "gullak"
    FIXED_DEPOSIT = "fixed_deposit"
    OTHER = "other"


class SplitStatus(str, Enum):
    """
    Counterparty decision on a split expense.

    Only meaningful when the expense is split.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransactionType(str, Enum):
    """Kinds of money movement recorded in the ledger."""
    EXPENSE = "expense"
    INCOME = "income"
    SAVING = "saving"
    RETURN = "return"


class ValidationType(str, Enum):
    """
    Kinds of approval gates.

    Each gate type has its own approve/reject resolution in the mutation flow.
    """
    EXPENSE_SPLIT = "expense_split"
    SAVING = "saving"
    FUTURE_EXPENSE = "future_expense"
    SAVING_RETURN = "saving_return"


# =============================================================================
# STORED RECORDS
# =============================================================================

class Expense(BaseModel):
    """
    One discretionary outflow.

    CRITICAL: `is_validated` decides whether the expense counts toward
    the balance. It is set only by the mutation flow.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID = Field(..., description="Owner of this expense")
    created_at: datetime = Field(default_factory=utc_now)

    title: str = Field(..., min_length=1, max_length=100)
    amount: Amount
    date: date
    category: ExpenseCategory = ExpenseCategory.OTHER
    kind: ExpenseKind = ExpenseKind.ONE_TIME
    frequency: Optional[Frequency] = None
    description: Optional[str] = Field(default=None, max_length=500)

    # Split fields
    is_split: bool = False
    split_with_user: Optional[UUID] = None
    split_status: Optional[SplitStatus] = None

    is_validated: bool = False

    @model_validator(mode='after')
    def validate_split_fields(self) -> 'Expense':
        """Split status exists only on split expenses."""
        if self.is_split and self.split_status is None:
            raise ValueError("Split expenses must carry a split status")
        if not self.is_split and self.split_status is not None:
            raise ValueError("Split status is only allowed on split expenses")
        return self


class Saving(BaseModel):
    """
    One contribution toward a savings vehicle.

    A saving never counts toward total saved until explicitly approved.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    created_at: datetime = Field(default_factory=utc_now)

    title: str = Field(..., min_length=1, max_length=100)
    amount: Amount
    date: date
    type: SavingType = SavingType.OTHER
    frequency: Frequency
    return_rate: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Expected return as a percentage of the amount"
    )
    return_frequency: Optional[Frequency] = None
    description: Optional[str] = Field(default=None, max_length=500)

    is_validated: bool = False


class Transaction(BaseModel):
    """
    Money that has actually moved.

    Transactions are append-only. They are only removed when the
    expense or saving that produced them is deleted.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    created_at: datetime = Field(default_factory=utc_now)

    title: str = Field(..., min_length=1, max_length=120)
    amount: Amount
    date: date
    type: TransactionType
    category: Optional[str] = Field(
        default=None,
        description="Expense category or saving type that produced this entry"
    )
    description: Optional[str] = Field(default=None, max_length=500)
    related_id: Optional[UUID] = Field(
        default=None,
        description="Expense or saving this entry came from (lookup only)"
    )


class ValidationItem(BaseModel):
    """
    A pending approval gate in a user's queue.

    Created by the mutation flow, consumed exactly once by an approve or
    reject decision. Never edited in between.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID = Field(..., description="Whose queue this gate sits in")
    created_at: datetime = Field(default_factory=utc_now)

    title: str = Field(..., min_length=1, max_length=140)
    amount: Amount
    type: ValidationType
    date: date
    expires_at: datetime = Field(
        ...,
        description="Shown to the user; nothing expires automatically"
    )
    description: Optional[str] = Field(default=None, max_length=500)
    related_id: UUID = Field(..., description="Gated expense or saving")
    initiated_by: Optional[UUID] = None


class UserProfile(BaseModel):
    """Identity and salary information for one user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: UUID = Field(default_factory=uuid4)
    username: str = Field(..., min_length=1, max_length=50)
    name: str = Field(default="", max_length=100)
    email: str = Field(default="", max_length=200)
    phone_number: str = Field(default="", max_length=20)
    monthly_salary: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator('username')
    @classmethod
    def normalise_username(cls, v: str) -> str:
        """Usernames are matched case-insensitively."""
        return v.lower()

    @property
    def is_complete(self) -> bool:
        """Profile has everything the dashboard needs."""
        return bool(
            self.name
            and self.email
            and self.username
            and self.monthly_salary > 0
        )


# =============================================================================
# SUBMISSIONS (user input before the mutation flow decides on gating)
# =============================================================================

class ExpenseSubmission(BaseModel):
    """An expense as entered by the user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=2, max_length=50)
    amount: Decimal = Field(..., lt=MAX_SUBMITTED_AMOUNT)
    date: date
    kind: ExpenseKind = ExpenseKind.ONE_TIME
    category: ExpenseCategory = ExpenseCategory.OTHER
    frequency: Optional[Frequency] = None
    description: Optional[str] = Field(default=None, max_length=500)
    split_with: Optional[str] = Field(
        default=None,
        max_length=50,
        description="Username of the person to split with"
    )

    @field_validator('amount')
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        """Amounts are kept to the paisa."""
        return _round_submitted(v)

    @model_validator(mode='after')
    def drop_frequency_for_one_time(self) -> 'ExpenseSubmission':
        """Frequency only applies to recurring expenses."""
        if self.kind == ExpenseKind.ONE_TIME:
            self.frequency = None
        if self.split_with is not None and not self.split_with:
            self.split_with = None
        return self


class SavingSubmission(BaseModel):
    """A saving as entered by the user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=2, max_length=50)
    amount: Decimal = Field(..., lt=MAX_SUBMITTED_AMOUNT)
    date: date
    type: SavingType = SavingType.OTHER
    frequency: Frequency
    return_rate: Optional[Decimal] = Field(default=None, ge=0, le=MAX_RETURN_RATE)
    return_frequency: Optional[Frequency] = None
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator('amount')
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        return _round_submitted(v)


class IncomeSubmission(BaseModel):
    """Extra income outside the monthly salary."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=2, max_length=50)
    amount: Decimal = Field(..., lt=MAX_SUBMITTED_AMOUNT)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator('amount')
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        return _round_submitted(v)


# =============================================================================
# INPUT CHECK MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found while checking a submission."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class CheckResult(BaseModel):
    """
    Result of the two-stage submission check.

    Stage 1: Schema check (types, required fields, amount > 0)
    Stage 2: Semantic check (suspicious but allowed values)
    """

    checked_at: datetime = Field(default_factory=utc_now)
    schema_valid: bool
    semantic_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]
