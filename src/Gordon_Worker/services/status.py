"""Process-wide system status, owned by the engine and updated through one API.

Only the connectivity cycle writes here. Database reachability is recorded
every cycle; external-API and AI fields are written once per cycle from the
representative tenant's results, all under one lock, so readers never see a
half-applied cycle. A check that was skipped leaves its fields untouched; a
check that ran and failed always overwrites a previous ``True``.
"""

from __future__ import annotations

import asyncio
import datetime
import logging

from Gordon_Worker.models.status import RepresentativeResult, StatusSnapshot

logger = logging.getLogger(__name__)


class StatusAggregator:
    """Owner of the mutable status state.

    Usage::

        status = StatusAggregator()
        await status.record_database_status(True)
        await status.apply_representative_result(result, checked_at=now)
        snapshot = status.snapshot()  # frozen copy for readers
    """

    def __init__(self, initial: StatusSnapshot | None = None) -> None:
        self._state = initial or StatusSnapshot()
        self._lock = asyncio.Lock()

    def snapshot(self) -> StatusSnapshot:
        """Return the current state. The model is frozen, so callers cannot mutate it."""
        return self._state

    async def record_database_status(self, online: bool, *, error: str | None = None) -> None:
        """Record the outcome of this cycle's database probe.

        Only ``database_online`` changes, so an aborted cycle leaves every
        other field as the previous cycle left it.
        """
        async with self._lock:
            self._state = self._state.model_copy(update={"database_online": online})
        if online:
            logger.debug("Status: database online.")
        else:
            logger.warning("Status: database OFFLINE (%s).", error or "no detail")

    async def mark_cycle_completed(self, completed_at: datetime.datetime) -> None:
        """Stamp the end of a connectivity cycle that ran past the database check."""
        async with self._lock:
            self._state = self._state.model_copy(update={"last_cycle_at": completed_at})

    async def apply_representative_result(
        self,
        result: RepresentativeResult,
        *,
        checked_at: datetime.datetime,
    ) -> None:
        """Write the representative's probe outcomes in a single update.

        Fields for checks that did not run (``None``) keep their prior value.
        """
        update: dict[str, object] = {"representative_tenant_id": result.tenant_id}
        errors: list[str] = []

        if result.banking is not None:
            update["primary_external_api_online"] = result.banking.online
            update["last_external_api_check"] = checked_at
            if not result.banking.online and result.banking.error:
                errors.append(f"Banking API: {result.banking.error}")

        if result.ai_primary is not None:
            update["ai_primary_online"] = result.ai_primary.online
            update["primary_ai_error"] = result.ai_primary.error if not result.ai_primary.online else None
            update["last_ai_check"] = checked_at
            if not result.ai_primary.online and result.ai_primary.error:
                errors.append(f"AI primary: {result.ai_primary.error}")

        if result.ai_fallback is not None:
            update["ai_fallback_online"] = result.ai_fallback.online
            update["fallback_ai_error"] = result.ai_fallback.error if not result.ai_fallback.online else None
            update["last_ai_check"] = checked_at
            if not result.ai_fallback.online and result.ai_fallback.error:
                errors.append(f"AI fallback: {result.ai_fallback.error}")

        if errors:
            update["last_error"] = "; ".join(errors)

        async with self._lock:
            self._state = self._state.model_copy(update=update)

        state = self._state
        logger.info(
            "Status updated from tenant %d: DB=%s Banking=%s AI primary=%s AI fallback=%s",
            result.tenant_id,
            state.database_online,
            state.primary_external_api_online,
            state.ai_primary_online,
            state.ai_fallback_online,
        )
