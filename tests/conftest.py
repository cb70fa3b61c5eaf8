"""Shared test fixtures for the Gordon Worker test suite.

Provides realistic sample models, a file-backed temporary database, and a
fake banking client so tests don't need to inline construction blocks or
reach real services.
"""

from __future__ import annotations

import datetime
from collections.abc import AsyncGenerator
from decimal import Decimal
from pathlib import Path
from types import TracebackType
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from Gordon_Worker.config import EngineConfig
from Gordon_Worker.data import Database, Repository, SettingsStore
from Gordon_Worker.models import (
    Account,
    AiProvider,
    AiSettings,
    BankingCredentials,
    BankTransaction,
    NotificationSettings,
    ProbeResult,
    TenantSettings,
)


@pytest.fixture()
def sample_credentials() -> BankingCredentials:
    """Complete banking API credentials."""
    return BankingCredentials(
        client_id="client-123",
        secret="s3cret",
        api_key="api-key-xyz",
        base_url="https://openapi.example.com/",
    )


@pytest.fixture()
def sample_settings(sample_credentials: BankingCredentials) -> TenantSettings:
    """Fully configured tenant: banking, Gemini primary with Ollama fallback, Telegram."""
    return TenantSettings(
        user_name="Thandi",
        report_day_of_week="monday",
        report_hour=8,
        banking=sample_credentials,
        ai=AiSettings(
            provider=AiProvider.GEMINI,
            gemini_api_key="gemini-key",
            enable_fallback=True,
            fallback_provider=AiProvider.OLLAMA,
        ),
        notifications=NotificationSettings(telegram_bot_token="123:abc", telegram_chat_id="42"),
    )


@pytest.fixture()
def sample_transactions() -> list[BankTransaction]:
    """A small ledger: two card spends, one salary credit, one large spend."""
    base = datetime.datetime(2025, 1, 10, 9, 30, tzinfo=datetime.UTC)
    return [
        BankTransaction(
            id="11111111-1111-1111-1111-111111111111",
            account_id="acc-1",
            transaction_date=base,
            description="WOOLWORTHS SANDTON",
            amount=Decimal("-450.25"),
            balance=Decimal("12549.75"),
            category="CardPurchases",
        ),
        BankTransaction(
            id="22222222-2222-2222-2222-222222222222",
            account_id="acc-1",
            transaction_date=base + datetime.timedelta(days=1),
            description="UBER TRIP",
            amount=Decimal("-120.00"),
            balance=Decimal("12429.75"),
            category="CardPurchases",
        ),
        BankTransaction(
            id="33333333-3333-3333-3333-333333333333",
            account_id="acc-1",
            transaction_date=base + datetime.timedelta(days=1, hours=2),
            description="SALARY ACME CORP",
            amount=Decimal("25000.00"),
            balance=Decimal("37429.75"),
            category="Deposits",
        ),
        BankTransaction(
            id="44444444-4444-4444-4444-444444444444",
            account_id="acc-1",
            transaction_date=base + datetime.timedelta(days=2),
            description="INCREDIBLE CONNECTION",
            amount=Decimal("-8999.00"),
            balance=Decimal("28430.75"),
            category=None,
        ),
    ]


@pytest.fixture()
def engine_config(tmp_path: Path) -> EngineConfig:
    """Engine config pointing at a temporary database with fast loops."""
    return EngineConfig(
        db_path=str(tmp_path / "gordon.db"),
        connectivity_interval_seconds=0.05,
        transactions_interval_seconds=0.05,
        weekly_poll_seconds=0.05,
        loop_backoff_seconds=0.01,
        shutdown_grace_seconds=0.5,
        max_concurrent_tenants=2,
    )


@pytest_asyncio.fixture()
async def db(tmp_path: Path) -> AsyncGenerator[Database]:
    """A connected, migrated database in a temporary directory."""
    database = Database(str(tmp_path / "test.db"))
    await database.connect()
    yield database
    await database.close()


@pytest.fixture()
def repository(db: Database) -> Repository:
    """Repository over the temporary database."""
    return Repository(db)


@pytest.fixture()
def settings_store(db: Database) -> SettingsStore:
    """SettingsStore over the temporary database."""
    return SettingsStore(db)


# ---------------------------------------------------------------------------
# Fake banking client
# ---------------------------------------------------------------------------


class FakeBankingClient:
    """In-memory stand-in for InvestecClient; records how it was used."""

    def __init__(
        self,
        *,
        accounts: list[Account],
        transactions: dict[str, list[BankTransaction]],
        balances: dict[str, Decimal],
        probe: ProbeResult,
    ) -> None:
        self.accounts = accounts
        self.transactions = transactions
        self.balances = balances
        self.probe = probe
        self.configured_with: BankingCredentials | None = None
        self.requested_from: list[datetime.datetime] = []
        self.closed = False
        self.test_connectivity = AsyncMock(side_effect=self._test_connectivity)

    async def __aenter__(self) -> FakeBankingClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.closed = True

    def configure(self, credentials: BankingCredentials) -> None:
        self.configured_with = credentials

    async def _test_connectivity(self) -> ProbeResult:
        return self.probe

    async def list_accounts(self) -> list[Account]:
        return list(self.accounts)

    async def get_balance(self, account_id: str) -> Decimal:
        return self.balances.get(account_id, Decimal("0"))

    async def get_transactions(
        self,
        account_id: str,
        from_date: datetime.datetime,
    ) -> list[BankTransaction]:
        self.requested_from.append(from_date)
        return list(self.transactions.get(account_id, []))


class FakeBankingFactory:
    """Callable factory handing out a new FakeBankingClient per call."""

    def __init__(self) -> None:
        self.accounts = [Account(account_id="acc-1", account_name="Private Bank Account")]
        self.transactions: dict[str, list[BankTransaction]] = {}
        self.balances: dict[str, Decimal] = {"acc-1": Decimal("15000.00")}
        self.probe = ProbeResult(online=True)
        self.instances: list[FakeBankingClient] = []

    def __call__(self) -> FakeBankingClient:
        client = FakeBankingClient(
            accounts=self.accounts,
            transactions=self.transactions,
            balances=self.balances,
            probe=self.probe,
        )
        self.instances.append(client)
        return client


@pytest.fixture()
def banking_factory() -> FakeBankingFactory:
    """Factory producing one fake banking client per tenant task."""
    return FakeBankingFactory()
