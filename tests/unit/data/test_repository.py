"""Tests for the Repository: tenant directory, schedule state, and the ledger."""

from __future__ import annotations

import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from Gordon_Worker.data import Repository, SettingsStore
from Gordon_Worker.models import (
    BankTransaction,
    JobName,
    RepresentativeCriteria,
    TenantRole,
    TenantSettings,
)

UTC = datetime.UTC


class TestTenantDirectory:
    """Tests for tenant creation and enumeration."""

    @pytest.mark.asyncio()
    async def test_add_and_get(self, repository: Repository) -> None:
        created = await repository.add_tenant("thandi", role=TenantRole.ADMIN)
        fetched = await repository.get_tenant(created.id)
        assert fetched is not None
        assert fetched.username == "thandi"
        assert fetched.role == TenantRole.ADMIN
        assert fetched.is_system is False
        assert fetched.created_at is not None

    @pytest.mark.asyncio()
    async def test_get_missing(self, repository: Repository) -> None:
        assert await repository.get_tenant(999) is None

    @pytest.mark.asyncio()
    async def test_list_tenants_ordered(self, repository: Repository) -> None:
        for name in ("a", "b", "c"):
            await repository.add_tenant(name)
        tenants = await repository.list_tenants()
        assert [t.username for t in tenants] == ["a", "b", "c"]
        assert await repository.list_tenant_ids() == {t.id for t in tenants}

    @pytest.mark.asyncio()
    async def test_configured_ids_only_include_tenants_with_settings(
        self,
        repository: Repository,
        settings_store: SettingsStore,
    ) -> None:
        first = await repository.add_tenant("first")
        await repository.add_tenant("unconfigured")
        third = await repository.add_tenant("third")
        await settings_store.save_settings(third.id, TenantSettings())
        await settings_store.save_settings(first.id, TenantSettings())

        assert await repository.list_configured_tenant_ids() == [first.id, third.id]


class TestRepresentativeCandidate:
    """Tests for select_representative_candidate()."""

    @pytest.mark.asyncio()
    async def test_role_filter(self, repository: Repository) -> None:
        await repository.add_tenant("user")
        admin = await repository.add_tenant("admin", role=TenantRole.ADMIN)
        chosen = await repository.select_representative_candidate(
            RepresentativeCriteria(role=TenantRole.ADMIN)
        )
        assert chosen == admin.id

    @pytest.mark.asyncio()
    async def test_system_preferred_over_lower_id(self, repository: Repository) -> None:
        """Among matches, system accounts sort first, then lowest id."""
        await repository.add_tenant("admin-1", role=TenantRole.ADMIN)
        system_admin = await repository.add_tenant("admin-sys", role=TenantRole.ADMIN, is_system=True)
        chosen = await repository.select_representative_candidate(
            RepresentativeCriteria(role=TenantRole.ADMIN)
        )
        assert chosen == system_admin.id

    @pytest.mark.asyncio()
    async def test_require_settings(self, repository: Repository, settings_store: SettingsStore) -> None:
        await repository.add_tenant("bare")
        configured = await repository.add_tenant("configured")
        await settings_store.save_settings(configured.id, TenantSettings())
        chosen = await repository.select_representative_candidate(
            RepresentativeCriteria(require_settings=True)
        )
        assert chosen == configured.id

    @pytest.mark.asyncio()
    async def test_no_match(self, repository: Repository) -> None:
        await repository.add_tenant("user")
        assert (
            await repository.select_representative_candidate(RepresentativeCriteria(system_only=True))
            is None
        )


class TestScheduleState:
    """Tests for per-job, per-tenant schedule state."""

    @pytest.mark.asyncio()
    async def test_unset_is_none(self, repository: Repository) -> None:
        tenant = await repository.add_tenant("t")
        assert await repository.get_schedule_state(tenant.id, JobName.WEEKLY_REPORT) is None

    @pytest.mark.asyncio()
    async def test_set_then_overwrite(self, repository: Repository) -> None:
        tenant = await repository.add_tenant("t")
        first = datetime.datetime(2025, 1, 13, 8, 0, tzinfo=UTC)
        second = datetime.datetime(2025, 1, 20, 8, 0, tzinfo=UTC)
        await repository.set_schedule_state(tenant.id, JobName.WEEKLY_REPORT, first)
        await repository.set_schedule_state(tenant.id, JobName.WEEKLY_REPORT, second)
        assert await repository.get_schedule_state(tenant.id, JobName.WEEKLY_REPORT) == second

    @pytest.mark.asyncio()
    async def test_state_is_per_job(self, repository: Repository) -> None:
        tenant = await repository.add_tenant("t")
        stamp = datetime.datetime(2025, 1, 13, 8, 0, tzinfo=UTC)
        await repository.set_schedule_state(tenant.id, JobName.DAILY_BRIEFING, stamp)
        assert await repository.get_schedule_state(tenant.id, JobName.WEEKLY_REPORT) is None
        assert await repository.get_schedule_states(JobName.DAILY_BRIEFING) == {tenant.id: stamp}

    @pytest.mark.asyncio()
    async def test_timezone_preserved(self, repository: Repository) -> None:
        tenant = await repository.add_tenant("t")
        local = datetime.datetime(2025, 1, 13, 8, 0, tzinfo=ZoneInfo("Africa/Johannesburg"))
        await repository.set_schedule_state(tenant.id, JobName.WEEKLY_REPORT, local)
        stored = await repository.get_schedule_state(tenant.id, JobName.WEEKLY_REPORT)
        assert stored == local


class TestLedger:
    """Tests for transaction storage."""

    @pytest.mark.asyncio()
    async def test_save_and_count(
        self,
        repository: Repository,
        sample_transactions: list[BankTransaction],
    ) -> None:
        tenant = await repository.add_tenant("t")
        inserted = await repository.save_transactions(tenant.id, sample_transactions)
        assert len(inserted) == 4
        assert await repository.count_transactions(tenant.id) == 4

    @pytest.mark.asyncio()
    async def test_resave_inserts_nothing(
        self,
        repository: Repository,
        sample_transactions: list[BankTransaction],
    ) -> None:
        """Overlapping sync windows do not duplicate ledger rows."""
        tenant = await repository.add_tenant("t")
        await repository.save_transactions(tenant.id, sample_transactions[:2])
        inserted = await repository.save_transactions(tenant.id, sample_transactions)
        assert [tx.id for tx in inserted] == [tx.id for tx in sample_transactions[2:]]
        assert await repository.count_transactions(tenant.id) == 4

    @pytest.mark.asyncio()
    async def test_same_id_different_tenants(
        self,
        repository: Repository,
        sample_transactions: list[BankTransaction],
    ) -> None:
        one = await repository.add_tenant("one")
        two = await repository.add_tenant("two")
        await repository.save_transactions(one.id, sample_transactions)
        inserted = await repository.save_transactions(two.id, sample_transactions)
        assert len(inserted) == 4

    @pytest.mark.asyncio()
    async def test_get_since_filters_and_orders(
        self,
        repository: Repository,
        sample_transactions: list[BankTransaction],
    ) -> None:
        tenant = await repository.add_tenant("t")
        await repository.save_transactions(tenant.id, list(reversed(sample_transactions)))
        since = datetime.datetime(2025, 1, 11, 0, 0, tzinfo=UTC)
        rows = await repository.get_transactions_since(tenant.id, since)

        assert [tx.description for tx in rows] == [
            "UBER TRIP",
            "SALARY ACME CORP",
            "INCREDIBLE CONNECTION",
        ]
        assert rows[0].amount == Decimal("-120.00")
        assert rows[-1].category is None
