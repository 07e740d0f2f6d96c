"""Shared fixtures: transaction factories and a fixed-UTC ledger."""

from datetime import datetime, timezone
from decimal import Decimal
from itertools import count

import pytest

from ledger.models.transaction import Transaction, TransactionType

_ids = count(1)


def make_transaction(
    amount,
    transaction_type: TransactionType = TransactionType.EXPENSE,
    category: str = "Food",
    created_at: datetime = None,
    description: str = "test",
    transaction_id: int = None,
) -> Transaction:
    return Transaction(
        id=transaction_id or next(_ids),
        amount=Decimal(str(amount)),
        description=description,
        category=category,
        type=transaction_type,
        created_at=created_at or datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc),
    )


def at(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def utc():
    return timezone.utc


@pytest.fixture
def march_ledger():
    """
    March 2024 vs February 2024.

    Feb: income 2,000,000 / expense 1,000,000
    Mar: income 3,000,000 / expense 1,500,000 (Food 900k, Transport 400k, Shopping 200k)
    """
    income, expense = TransactionType.INCOME, TransactionType.EXPENSE
    return [
        make_transaction(2_000_000, income, "Salary", at(2024, 2, 25)),
        make_transaction(1_000_000, expense, "Food", at(2024, 2, 10)),
        make_transaction(3_000_000, income, "Salary", at(2024, 3, 25)),
        make_transaction(500_000, expense, "Food", at(2024, 3, 5)),
        make_transaction(400_000, expense, "Food", at(2024, 3, 15)),
        make_transaction(400_000, expense, "Transport", at(2024, 3, 12)),
        make_transaction(200_000, expense, "Shopping", at(2024, 3, 20)),
    ]
