"""Shared fixtures for job tests.

Jobs run against the real temporary database and the fake banking factory;
AI, Telegram and report delivery are AsyncMocks so tests can assert on what
would have been sent.
"""

from __future__ import annotations

import datetime
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from Gordon_Worker.config import EngineConfig
from Gordon_Worker.data import Database, Repository, SettingsStore
from Gordon_Worker.jobs import JobContext
from Gordon_Worker.models import ProbeResult, StatusSnapshot
from Gordon_Worker.services.status import StatusAggregator

# 2025-01-13 is a Monday
MONDAY_0800 = datetime.datetime(2025, 1, 13, 8, 0, tzinfo=datetime.UTC)

ContextFactory = Callable[..., JobContext]


@pytest.fixture()
def context_factory(
    engine_config: EngineConfig,
    db: Database,
    repository: Repository,
    settings_store: SettingsStore,
    banking_factory: Callable[[], object],
) -> ContextFactory:
    """Build a JobContext with a fixed clock and mocked delivery collaborators."""

    def build(
        *,
        now: datetime.datetime = MONDAY_0800,
        database: object | None = None,
        status: StatusSnapshot | None = None,
        banking: Callable[[], object] | None = None,
    ) -> JobContext:
        ai_client = AsyncMock()
        ai_client.test_connection = AsyncMock(return_value=ProbeResult(online=True))
        ai_client.generate = AsyncMock(return_value="Balance looks healthy. Have a productive day.")
        notifier = AsyncMock()
        notifier.send = AsyncMock(return_value=True)
        reports = AsyncMock()
        reports.generate_and_send = AsyncMock(return_value=True)
        return JobContext(
            config=engine_config,
            database=database or db,  # type: ignore[arg-type]
            repository=repository,
            settings_store=settings_store,
            status=StatusAggregator(status),
            ai_client=ai_client,
            notifier=notifier,
            reports=reports,
            clock=lambda: now,
            banking_factory=banking or banking_factory,  # type: ignore[arg-type]
        )

    return build


@pytest.fixture()
def job_context(context_factory: ContextFactory) -> JobContext:
    """A JobContext fixed at Monday 08:00 UTC."""
    return context_factory()
