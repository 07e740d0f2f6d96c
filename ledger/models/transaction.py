"""
Core Data Models for Household Ledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce the amount invariants (positive, multiple of 10) at runtime
2. Turn untyped store rows into typed entities at the boundary
3. Be serializable for storage, logging and the analysis prompt

DESIGN DECISION: Amounts are Decimal, never float.
Base-currency amounts are whole KRW in steps of 10, and Decimal keeps
sums and differences exact no matter how many rows are aggregated.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Smallest amount increment in the base currency
AMOUNT_STEP = Decimal("10")

DESCRIPTION_PLACEHOLDER = "No description"

DEFAULT_CATEGORIES = ("Food", "Transport", "Shopping", "Salary", "Other")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a ledger entry."""
    INCOME = "income"
    EXPENSE = "expense"


class Currency(str, Enum):
    """
    Currencies the ledger can be displayed in.

    Amounts are always STORED in KRW; USD is a display-only conversion.
    """
    KRW = "KRW"
    USD = "USD"


class CategoryManagerView(str, Enum):
    """Visibility of the category manager panel."""
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


def _check_amount(v: Decimal) -> Decimal:
    if v <= 0:
        raise ValueError("Amount must be greater than zero")
    if v % AMOUNT_STEP != 0:
        raise ValueError(f"Amount must be a multiple of {AMOUNT_STEP}")
    return v


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction as submitted by the user, before the store accepts it.

    The store assigns `id` and `created_at`; everything else is fixed here.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    amount: Decimal = Field(
        ...,
        description="Amount in KRW, positive multiple of 10"
    )
    description: str = Field(
        default=DESCRIPTION_PLACEHOLDER,
        max_length=500,
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
    )
    type: TransactionType

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return _check_amount(v)

    @field_validator('description')
    @classmethod
    def default_description(cls, v: str) -> str:
        return v or DESCRIPTION_PLACEHOLDER


class Transaction(BaseModel):
    """
    A persisted ledger entry.

    CRITICAL: Transactions are immutable once created.
    They are only ever created by the record store and deleted by id.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int = Field(
        ...,
        gt=0,
        description="Identifier assigned by the record store"
    )
    amount: Decimal = Field(
        ...,
        description="Amount in KRW, positive multiple of 10"
    )
    description: str = Field(
        default=DESCRIPTION_PLACEHOLDER,
        max_length=500,
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=50,
    )
    type: TransactionType
    created_at: datetime = Field(
        ...,
        description="Insertion time set by the store; the only temporal key"
    )

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return _check_amount(v)

    @field_validator('description')
    @classmethod
    def default_description(cls, v: str) -> str:
        return v or DESCRIPTION_PLACEHOLDER

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def signed_amount(self) -> Decimal:
        """Amount with expenses negated."""
        return self.amount if self.is_income else -self.amount


# =============================================================================
# AGGREGATES
# =============================================================================

class LedgerSummary(BaseModel):
    """Income/expense totals for a set of transactions."""

    income: Decimal = Field(default=Decimal("0"))
    expense: Decimal = Field(default=Decimal("0"))
    balance: Decimal = Field(default=Decimal("0"))

    @model_validator(mode='after')
    def validate_balance(self) -> 'LedgerSummary':
        if self.balance != self.income - self.expense:
            raise ValueError("Balance must equal income minus expense")
        return self


class MonthOverMonthDelta(BaseModel):
    """
    Change between two monthly summaries.

    Percentages are None when the previous month's value is zero.
    """

    income_delta: Decimal
    income_delta_pct: Optional[Decimal] = None
    expense_delta: Decimal
    expense_delta_pct: Optional[Decimal] = None
    balance_delta: Decimal


class DayCounts(BaseModel):
    """Number of income and expense entries on one day."""

    income_count: int = Field(default=0, ge=0)
    expense_count: int = Field(default=0, ge=0)


class DaySummary(BaseModel):
    """Aggregates for one calendar cell."""

    day: date
    income: Decimal = Field(default=Decimal("0"))
    expense: Decimal = Field(default=Decimal("0"))
    net: Decimal = Field(default=Decimal("0"))
    income_count: int = Field(default=0, ge=0)
    expense_count: int = Field(default=0, ge=0)

    # Presentation flags
    in_current_month: bool = True
    is_today: bool = False

    @property
    def has_entries(self) -> bool:
        return (self.income_count + self.expense_count) > 0


class CategoryTotal(BaseModel):
    """Total spent in one category."""

    category: str
    amount: Decimal


class SpendingSummary(BaseModel):
    """
    Input to the narrative analysis service.

    CRITICAL: The analysis is generated ONLY from these numbers.
    """

    income: Decimal
    expense: Decimal
    balance: Decimal
    top_categories: list[CategoryTotal] = Field(
        default_factory=list,
        max_length=3,
        description="Top expense categories by amount, descending"
    )
    month_label: str = Field(
        ...,
        min_length=1,
        description="Human-readable month, e.g. 'March 2024'"
    )


# =============================================================================
# EXCHANGE RATE & PREFERENCES
# =============================================================================

class ExchangeRate(BaseModel):
    """A USD->KRW rate as last seen by the application."""

    rate: float = Field(..., gt=0)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_fallback: bool = Field(
        default=False,
        description="True when the rate is the hardcoded fallback"
    )


class Preferences(BaseModel):
    """
    Display preferences persisted on this device.

    Keys match the persisted JSON: `currency` and `categories`.
    """

    currency: Currency = Currency.KRW
    categories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORIES),
        min_length=1,
    )
