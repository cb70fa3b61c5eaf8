"""Tests for /api/tenants routes and domain exception mapping."""

from __future__ import annotations

import datetime
from pathlib import Path
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from Gordon_Worker.config import EngineConfig
from Gordon_Worker.engine import Engine
from Gordon_Worker.models import JobName
from Gordon_Worker.utils.exceptions import SettingsNotFoundError
from Gordon_Worker.web import create_app


class TestTenantDirectory:
    """Tests for GET /api/tenants."""

    def test_lists_tenants_and_representative(self, client: TestClient) -> None:
        response = client.get("/api/tenants")
        assert response.status_code == 200
        body = response.json()
        assert [t["username"] for t in body["tenants"]] == ["admin", "thandi"]
        assert body["representative_tenant_id"] == 1

    def test_database_unavailable_is_503(self, tmp_path: Path) -> None:
        """An engine whose database was never connected answers 503, not 500."""
        engine = Engine(EngineConfig(db_path=str(tmp_path / "gordon.db")))
        client = TestClient(create_app(engine, manage_engine=False), raise_server_exceptions=False)

        response = client.get("/api/tenants")

        assert response.status_code == 503
        assert "not connected" in response.json()["detail"]


class TestTenantSchedule:
    """Tests for GET /api/tenants/{id}/schedule."""

    def test_schedule_per_job(self, client: TestClient, mock_repository: AsyncMock) -> None:
        sent = datetime.datetime(2025, 1, 13, 8, 0, tzinfo=datetime.UTC)

        async def state(tenant_id: int, job: JobName) -> datetime.datetime | None:
            return sent if job == JobName.WEEKLY_REPORT else None

        mock_repository.get_schedule_state.side_effect = state

        response = client.get("/api/tenants/2/schedule")

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {str(job) for job in JobName}
        assert body["weekly_report"] == "2025-01-13T08:00:00Z"
        assert body["daily_briefing"] is None

    def test_unknown_tenant_is_404(self, client: TestClient, mock_repository: AsyncMock) -> None:
        mock_repository.get_tenant.return_value = None
        response = client.get("/api/tenants/99/schedule")
        assert response.status_code == 404

    def test_settings_not_found_is_404(
        self,
        client: TestClient,
        mock_repository: AsyncMock,
    ) -> None:
        mock_repository.get_tenant.side_effect = SettingsNotFoundError("No settings stored for tenant 3")
        response = client.get("/api/tenants/3/schedule")
        assert response.status_code == 404
        assert response.json()["detail"] == "No settings stored for tenant 3"
