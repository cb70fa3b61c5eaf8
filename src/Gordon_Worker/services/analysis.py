"""Spending analysis over a tenant's stored ledger.

Transactions are loaded into a pandas DataFrame with one row per ledger
entry. Amounts are converted to float for aggregation only; everything
handed back to callers is rounded to cents.
"""

import datetime
from decimal import Decimal

import pandas as pd
from pydantic import BaseModel, ConfigDict

from Gordon_Worker.models.banking import BankTransaction

UNCATEGORISED: str = "Other"
TOP_CATEGORY_COUNT: int = 5


class SpendingSummary(BaseModel):
    """Aggregates over one analysis window."""

    model_config = ConfigDict(frozen=True)

    window_days: int
    transaction_count: int
    total_spent: Decimal
    total_received: Decimal
    average_daily_spend: Decimal
    current_balance: Decimal
    runway_days: float | None
    top_categories: list[tuple[str, Decimal]]


def transactions_frame(transactions: list[BankTransaction]) -> pd.DataFrame:
    """Build a DataFrame with columns date, description, category, amount."""
    columns = ["date", "description", "category", "amount"]
    if not transactions:
        return pd.DataFrame(columns=columns)

    frame = pd.DataFrame(
        {
            "date": [tx.transaction_date for tx in transactions],
            "description": [tx.description for tx in transactions],
            "category": [tx.category or UNCATEGORISED for tx in transactions],
            "amount": [float(tx.amount) for tx in transactions],
        },
        columns=columns,
    )
    frame["date"] = pd.to_datetime(frame["date"], utc=True)
    return frame.sort_values("date").reset_index(drop=True)


def _cents(value: float) -> Decimal:
    return Decimal(str(round(value, 2)))


def summarize_spending(
    transactions: list[BankTransaction],
    *,
    current_balance: Decimal = Decimal("0"),
    window_days: int = 60,
    top: int = TOP_CATEGORY_COUNT,
) -> SpendingSummary:
    """Summarise spend and income over ``window_days``.

    Runway is ``current_balance / average_daily_spend`` and is None when
    nothing was spent in the window.
    """
    frame = transactions_frame(transactions)
    debits = frame.loc[frame["amount"] < 0]
    credits = frame.loc[frame["amount"] > 0]

    total_spent = float(-debits["amount"].sum()) if not debits.empty else 0.0
    total_received = float(credits["amount"].sum()) if not credits.empty else 0.0
    average_daily = total_spent / window_days if window_days > 0 else 0.0

    runway: float | None = None
    if average_daily > 0:
        runway = round(max(float(current_balance), 0.0) / average_daily, 1)

    breakdown: list[tuple[str, Decimal]] = []
    if not debits.empty:
        by_category = (
            debits.assign(spent=-debits["amount"])
            .groupby("category")["spent"]
            .sum()
            .sort_values(ascending=False)
            .head(top)
        )
        breakdown = [(str(name), _cents(float(total))) for name, total in by_category.items()]

    return SpendingSummary(
        window_days=window_days,
        transaction_count=len(frame),
        total_spent=_cents(total_spent),
        total_received=_cents(total_received),
        average_daily_spend=_cents(average_daily),
        current_balance=current_balance,
        runway_days=runway,
        top_categories=breakdown,
    )


def window_start(now: datetime.datetime, days: float) -> datetime.datetime:
    """Return ``now`` minus ``days`` (fractional days allowed)."""
    return now - datetime.timedelta(days=days)
