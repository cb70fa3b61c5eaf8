"""Transactions job: pull new ledger entries from the bank for every tenant.

The first sync for a tenant reaches back ``history_days_back`` days and is
silent; later syncs overlap the previous one by ``sync_buffer_days`` and
rely on insert-or-ignore for dedup. Newly inserted large spends and large
incomes raise alerts; more than two alerts in one sync collapse into a
single summary message, and any alert triggers a weekly-style report.
"""

from __future__ import annotations

import datetime
import html
import logging
from typing import Final

from Gordon_Worker.jobs.base import Job
from Gordon_Worker.models.banking import BankTransaction
from Gordon_Worker.models.enums import JobName
from Gordon_Worker.models.outcome import CycleReport
from Gordon_Worker.models.tenant import TenantSettings
from Gordon_Worker.services.reports import format_amount
from Gordon_Worker.services.scheduler import IntervalTrigger
from Gordon_Worker.utils.exceptions import TenantSkipped

logger = logging.getLogger(__name__)

# More alerts than this in one sync are sent as one summary message
MAX_INDIVIDUAL_ALERTS: Final[int] = 2


def build_alerts(
    transactions: list[BankTransaction],
    settings: TenantSettings,
) -> list[str]:
    """Return alert lines for large spends and large incomes among ``transactions``.

    Large debits matching the tenant's fixed-cost or salary keywords are expected
    and do not alert.
    """
    symbol = settings.currency_symbol
    alerts: list[str] = []
    for tx in transactions:
        description = html.escape(tx.description)
        if tx.amount <= -settings.unexpected_payment_threshold:
            if settings.is_fixed_cost(tx.description) or settings.is_salary(tx.description):
                continue
            alerts.append(f"🚨 <b>High Spend:</b> {description} ({format_amount(abs(tx.amount), symbol)})")
        elif tx.amount >= settings.income_alert_threshold:
            alerts.append(f"💰 <b>Large Income:</b> {description} ({format_amount(tx.amount, symbol)})")
    return alerts


class TransactionsJob(Job):
    """Sixty-second ledger sync, bounded by the concurrency limiter."""

    name = JobName.TRANSACTIONS

    def build_trigger(self) -> IntervalTrigger:
        return IntervalTrigger(self._context.config.transactions_interval_seconds)

    async def run_cycle(self) -> CycleReport:
        started_at = self.now()
        tenant_ids = sorted(await self._context.repository.list_tenant_ids())
        outcomes = await self._runner.run_all(tenant_ids, self.sync_tenant)
        return self.finish(started_at, outcomes)

    async def sync_tenant(self, tenant_id: int) -> str | None:
        """Sync one tenant's accounts and send any alerts it produced."""
        settings = await self.load_settings(tenant_id)
        if settings.banking.is_blank:
            raise TenantSkipped("banking credentials not configured", tenant_id=tenant_id, job=self.name)

        repository = self._context.repository
        existing = await repository.count_transactions(tenant_id)
        silent = existing == 0
        days_back = settings.history_days_back if silent else settings.sync_buffer_days
        from_date = self.now() - datetime.timedelta(days=days_back)

        inserted: list[BankTransaction] = []
        async with self._context.banking_factory() as client:
            client.configure(settings.banking)
            accounts = await client.list_accounts()
            if not accounts:
                raise TenantSkipped("no bank accounts", tenant_id=tenant_id, job=self.name)
            for account in accounts:
                fetched = await client.get_transactions(account.account_id, from_date)
                logger.info(
                    "Tenant %d: fetched %d transactions for account %s since %s",
                    tenant_id,
                    len(fetched),
                    account.account_id,
                    from_date.date(),
                )
                inserted += await repository.save_transactions(tenant_id, fetched)

        if not inserted:
            logger.info("Tenant %d: sync complete, no new transactions.", tenant_id)
            return "0 new"

        logger.info("Tenant %d: sync complete, %d new transactions.", tenant_id, len(inserted))
        if not silent:
            await self._send_alerts(tenant_id, build_alerts(inserted, settings))
        return f"{len(inserted)} new"

    async def _send_alerts(self, tenant_id: int, alerts: list[str]) -> None:
        if not alerts:
            return
        notifier = self._context.notifier
        if len(alerts) > MAX_INDIVIDUAL_ALERTS:
            await notifier.send(
                tenant_id,
                f"🔔 <b>Activity Summary</b>\nI have detected {len(alerts)} significant "
                "transactions in this sync. I am generating a full briefing for your review.",
            )
        else:
            for alert in alerts:
                await notifier.send(tenant_id, f"{alert}\n\nWhat was this for?")
        await self._context.reports.generate_and_send(tenant_id)
