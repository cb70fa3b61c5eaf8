"""Shared fixtures for web route tests.

Provides a test FastAPI app bound to a mock Engine so route tests never
start job loops or touch a real database.
"""

from __future__ import annotations

import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from Gordon_Worker.config import EngineConfig
from Gordon_Worker.data.repository import Repository
from Gordon_Worker.engine import Engine
from Gordon_Worker.models import StatusSnapshot, Tenant, TenantRole
from Gordon_Worker.web import create_app

CHECKED_AT = datetime.datetime(2025, 1, 13, 8, 0, tzinfo=datetime.UTC)


@pytest.fixture()
def mock_repository() -> AsyncMock:
    """Mock Repository with a two-tenant directory."""
    repo = AsyncMock(spec=Repository)
    repo.list_tenants = AsyncMock(
        return_value=[
            Tenant(id=1, username="admin", role=TenantRole.ADMIN),
            Tenant(id=2, username="thandi"),
        ]
    )
    repo.select_representative_candidate = AsyncMock(return_value=1)
    repo.get_tenant = AsyncMock(return_value=Tenant(id=2, username="thandi"))
    repo.get_schedule_state = AsyncMock(return_value=None)
    return repo


@pytest.fixture()
def mock_engine(mock_repository: AsyncMock) -> MagicMock:
    """Mock Engine exposing a fixed status snapshot."""
    engine = MagicMock(spec=Engine)
    engine.repository = mock_repository
    engine.config = EngineConfig()
    engine.status.return_value = StatusSnapshot(
        database_online=True,
        primary_external_api_online=True,
        ai_primary_online=False,
        primary_ai_error="quota exceeded",
        last_external_api_check=CHECKED_AT,
        representative_tenant_id=1,
    )
    engine.start = AsyncMock()
    engine.stop = AsyncMock()
    return engine


@pytest.fixture()
def app(mock_engine: MagicMock) -> FastAPI:
    """Create a test app that does not manage the engine's lifecycle."""
    return create_app(mock_engine, manage_engine=False)


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    """Create a synchronous test client for the app."""
    return TestClient(app, raise_server_exceptions=False)
