"""Tests for TenantTaskRunner: failure isolation, skips, wait-for-all, bounded fan-out.

Covers:
- One tenant raising does not stop the others (isolation)
- 3 tenants, capacity 2, tenant 2 throws: 1 and 3 recorded, 2 failed
- TenantSkipped settles as skipped with its reason
- Outcomes are returned in input order after every task settles
- No more than K tenants run concurrently through the limiter
"""

from __future__ import annotations

import asyncio
import logging

import pytest

from Gordon_Worker.logging_config import LogContextFilter
from Gordon_Worker.models.enums import JobName, OutcomeStatus
from Gordon_Worker.services.fanout import TenantTaskRunner
from Gordon_Worker.services.limiter import ConcurrencyLimiter
from Gordon_Worker.utils.exceptions import TenantSkipped


class TestFailureIsolation:
    """A failing tenant never aborts its siblings or the cycle."""

    @pytest.mark.asyncio()
    async def test_three_tenants_one_throws(self, caplog: pytest.LogCaptureFixture) -> None:
        """Tenant 2 fails; tenants 1 and 3 still complete and the call returns normally."""
        runner = TenantTaskRunner(JobName.TRANSACTIONS, limiter=ConcurrencyLimiter(2))
        recorded: list[int] = []

        async def work(tenant_id: int) -> str | None:
            await asyncio.sleep(0.01)
            if tenant_id == 2:
                raise ConnectionError("bank API reset the connection")
            recorded.append(tenant_id)
            return "ok"

        with caplog.at_level(logging.ERROR):
            outcomes = await runner.run_all([1, 2, 3], work)

        assert sorted(recorded) == [1, 3]
        assert [o.tenant_id for o in outcomes] == [1, 2, 3]
        assert [o.status for o in outcomes] == [
            OutcomeStatus.SUCCEEDED,
            OutcomeStatus.FAILED,
            OutcomeStatus.SUCCEEDED,
        ]
        assert outcomes[1].detail == "bank API reset the connection"
        assert "Tenant 2 failed" in caplog.text
        assert "transactions" in caplog.text

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("failing", [1, 4, 7])
    async def test_any_single_failure_leaves_others_settled(self, failing: int) -> None:
        """Whichever tenant throws, every other tenant succeeds."""
        runner = TenantTaskRunner(JobName.CONNECTIVITY, limiter=ConcurrencyLimiter(3))

        async def work(tenant_id: int) -> str | None:
            if tenant_id == failing:
                raise ValueError("bad settings")
            return None

        outcomes = await runner.run_all(range(1, 9), work)

        assert len(outcomes) == 8
        for outcome in outcomes:
            expected = OutcomeStatus.FAILED if outcome.tenant_id == failing else OutcomeStatus.SUCCEEDED
            assert outcome.status == expected

    @pytest.mark.asyncio()
    async def test_exception_without_message_uses_type_name(self) -> None:
        """An exception with an empty message is described by its class."""
        runner = TenantTaskRunner(JobName.WEEKLY_REPORT)

        async def work(tenant_id: int) -> str | None:
            raise KeyError

        outcome = await runner.run_one(5, work)
        assert outcome.status == OutcomeStatus.FAILED
        assert outcome.detail == "KeyError"


class TestSkips:
    """Skip conditions settle without being counted as failures."""

    @pytest.mark.asyncio()
    async def test_skip_records_reason(self, caplog: pytest.LogCaptureFixture) -> None:
        """TenantSkipped becomes a skipped outcome logged at INFO."""
        runner = TenantTaskRunner(JobName.DAILY_BRIEFING)

        async def work(tenant_id: int) -> str | None:
            raise TenantSkipped("telegram not configured", tenant_id=tenant_id)

        with caplog.at_level(logging.INFO):
            outcome = await runner.run_one(9, work)

        assert outcome.status == OutcomeStatus.SKIPPED
        assert outcome.detail == "telegram not configured"
        skip_records = [r for r in caplog.records if "skipped" in r.getMessage()]
        assert skip_records
        assert all(r.levelno == logging.INFO for r in skip_records)


class TestWaitForAll:
    """The fan-out returns only after every tenant settled."""

    @pytest.mark.asyncio()
    async def test_returns_after_slowest_task(self) -> None:
        """A slow tenant is still awaited before run_all returns."""
        runner = TenantTaskRunner(JobName.TRANSACTIONS)
        finished: set[int] = set()

        async def work(tenant_id: int) -> str | None:
            await asyncio.sleep(0.05 if tenant_id == 1 else 0.0)
            finished.add(tenant_id)
            return None

        await runner.run_all([1, 2, 3], work)
        assert finished == {1, 2, 3}

    @pytest.mark.asyncio()
    async def test_empty_tenant_list(self) -> None:
        """No tenants means no outcomes and no work."""
        runner = TenantTaskRunner(JobName.TRANSACTIONS)

        async def work(tenant_id: int) -> str | None:
            raise AssertionError("should not run")

        assert await runner.run_all([], work) == []

    @pytest.mark.asyncio()
    async def test_log_context_per_tenant(self) -> None:
        """Concurrent tenants each log under their own tenant id."""
        runner = TenantTaskRunner(JobName.WEEKLY_REPORT)
        seen: dict[int, tuple[str, str]] = {}

        async def work(tenant_id: int) -> str | None:
            await asyncio.sleep(0.01 * (3 - tenant_id))
            record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
            LogContextFilter().filter(record)
            seen[tenant_id] = (record.job, record.tenant)
            return None

        await runner.run_all([1, 2], work)

        assert seen == {1: ("weekly_report", "1"), 2: ("weekly_report", "2")}


class TestBoundedFanOut:
    """At most K tenant tasks run between acquire and release."""

    @pytest.mark.asyncio()
    async def test_capacity_respected_for_many_tenants(self) -> None:
        """With 12 tenants and capacity 3, concurrency peaks at exactly 3."""
        limiter = ConcurrencyLimiter(3)
        runner = TenantTaskRunner(JobName.TRANSACTIONS, limiter=limiter)
        running = 0
        peak = 0

        async def work(tenant_id: int) -> str | None:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return None

        outcomes = await runner.run_all(range(12), work)

        assert peak == 3
        assert limiter.peak_in_flight == 3
        assert all(o.status == OutcomeStatus.SUCCEEDED for o in outcomes)

    @pytest.mark.asyncio()
    async def test_failing_tasks_release_their_slots(self) -> None:
        """Every task failing still lets the whole batch through a capacity-1 gate."""
        limiter = ConcurrencyLimiter(1)
        runner = TenantTaskRunner(JobName.TRANSACTIONS, limiter=limiter)

        async def work(tenant_id: int) -> str | None:
            raise RuntimeError("down")

        outcomes = await asyncio.wait_for(runner.run_all(range(5), work), timeout=2.0)

        assert len(outcomes) == 5
        assert limiter.in_flight == 0
