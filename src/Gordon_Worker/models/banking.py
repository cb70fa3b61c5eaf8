"""Banking models: accounts and transactions as returned by the banking API.

Amounts are Decimal end to end. Debits (money out) are negative and
credits (money in) are positive, whatever sign the bank reported.
"""

import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, field_serializer


class Account(BaseModel):
    """A bank account visible to a tenant's credentials."""

    model_config = ConfigDict(frozen=True)

    account_id: str
    account_number: str = ""
    account_name: str = ""
    product_name: str = ""

    @property
    def is_liability(self) -> bool:
        """Credit cards and loans report the amount owed as a positive balance."""
        product = self.product_name.lower()
        return "credit card" in product or "loan" in product


class BankTransaction(BaseModel):
    """A single ledger entry for one account."""

    model_config = ConfigDict(frozen=True)

    id: str
    account_id: str
    transaction_date: datetime.datetime
    description: str
    amount: Decimal
    balance: Decimal | None = None
    category: str | None = None

    @field_serializer("amount", "balance")
    def serialize_decimal(self, value: Decimal | None) -> str | None:
        """Serialize Decimal fields as strings to preserve precision."""
        if value is None:
            return None
        return str(value)
