"""Tests for banking models."""

from __future__ import annotations

import datetime
from decimal import Decimal

import pytest

from Gordon_Worker.models import Account, BankTransaction


class TestAccount:
    """Tests for Account.is_liability."""

    @pytest.mark.parametrize(
        ("product", "expected"),
        [
            ("Private Bank Account", False),
            ("Investec Credit Card", True),
            ("Home LOAN", True),
            ("", False),
        ],
    )
    def test_is_liability(self, product: str, expected: bool) -> None:
        assert Account(account_id="a", product_name=product).is_liability is expected


class TestBankTransaction:
    """Tests for BankTransaction serialization."""

    def test_decimal_serialized_as_string(self) -> None:
        tx = BankTransaction(
            id="t1",
            account_id="a",
            transaction_date=datetime.datetime(2025, 1, 10, tzinfo=datetime.UTC),
            description="COFFEE",
            amount=Decimal("-35.10"),
        )
        dumped = tx.model_dump()
        assert dumped["amount"] == "-35.10"
        assert dumped["balance"] is None
