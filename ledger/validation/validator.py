"""
Entry Form Validation

DESIGN DECISION: Validation runs LOCALLY and BEFORE any network call.
A rejected submission never reaches the record store, so a bad amount
cannot leave the local list and the store out of sync.

Checks:
- Amount is present, numeric, finite and positive
- Amount is rounded to the 10 KRW step right before submission
- Amount stays under a sanity ceiling
- Category belongs to the current category registry

IMPORTANT: Validation reports problems with a user-facing message.
Only the step rounding is applied silently, because the form already
shows the rounded value on blur.
"""

from decimal import Decimal
from typing import Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from ledger.config import get_settings
from ledger.models.transaction import (
    DESCRIPTION_PLACEHOLDER,
    TransactionDraft,
    TransactionType,
)
from ledger.money import round_to_step, to_decimal


class ValidationError(ValueError):
    """Local input problem; blocks the action before any network call."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message)


class TransactionValidator:
    """
    Turns raw form input into a TransactionDraft.

    The validator does not touch storage; category membership is checked
    against the list the caller passes in.
    """

    def __init__(self, max_amount: Optional[float] = None):
        if max_amount is None:
            max_amount = get_settings().app.max_amount
        self._max_amount = Decimal(str(max_amount))

    def parse_amount(self, raw) -> Decimal:
        """
        Parse and step-round the amount field.

        Raises ValidationError for blank, non-numeric, non-positive or
        oversized input, and for amounts that round down to zero.
        """
        if raw is None or not str(raw).strip():
            raise ValidationError("amount", "Please enter an amount.")

        try:
            value = to_decimal(raw)
        except ValueError:
            raise ValidationError("amount", "Please enter a valid amount.")

        if not value.is_finite() or value <= 0:
            raise ValidationError("amount", "Please enter a valid amount.")

        if value > self._max_amount:
            raise ValidationError(
                "amount",
                f"Amount is unreasonably large (limit ₩{self._max_amount:,.0f}).",
            )

        rounded = round_to_step(value)
        if rounded <= 0:
            raise ValidationError("amount", "Amount must be at least ₩10.")
        return rounded

    def build_draft(
        self,
        raw_amount,
        description: Optional[str],
        category: str,
        transaction_type: TransactionType,
        categories: Sequence[str],
    ) -> TransactionDraft:
        """Validate every field and assemble the draft sent to the store."""
        amount = self.parse_amount(raw_amount)

        category = (category or "").strip()
        if not category:
            raise ValidationError("category", "Please choose a category.")
        if category not in categories:
            raise ValidationError(
                "category",
                f'Unknown category "{category}". Add it in the category manager first.',
            )

        try:
            return TransactionDraft(
                amount=amount,
                description=(description or "").strip() or DESCRIPTION_PLACEHOLDER,
                category=category,
                type=TransactionType(transaction_type),
            )
        except (PydanticValidationError, ValueError) as e:
            raise ValidationError("transaction", str(e))
