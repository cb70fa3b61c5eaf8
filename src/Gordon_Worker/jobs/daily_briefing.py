"""Daily briefing job: a short AI-written morning message for each tenant.

Fires once a day at the configured hour. For each tenant with a Telegram
target it sums the current account balances, summarises the last 60 days of
stored transactions, and asks the tenant's AI provider for a two-sentence
briefing. Nothing is sent when the AI returns no text.
"""

from __future__ import annotations

import datetime
import logging
from decimal import Decimal
from typing import Final

from Gordon_Worker.jobs.base import Job
from Gordon_Worker.models.enums import JobName
from Gordon_Worker.models.outcome import CycleReport
from Gordon_Worker.models.tenant import TenantSettings
from Gordon_Worker.services.analysis import SpendingSummary, summarize_spending, window_start
from Gordon_Worker.services.reports import format_amount
from Gordon_Worker.services.scheduler import DailyTrigger, serviced_today
from Gordon_Worker.utils.exceptions import TenantSkipped

logger = logging.getLogger(__name__)

HISTORY_WINDOW_DAYS: Final[int] = 60


def build_briefing_prompt(
    settings: TenantSettings,
    summary: SpendingSummary,
    *,
    hour: int,
) -> str:
    """Compose the AI prompt for one tenant's morning briefing."""
    symbol = settings.currency_symbol
    runway = f"{summary.runway_days:.0f} days" if summary.runway_days is not None else "unknown"
    return (
        f"You are {settings.system_persona}, {settings.user_name}'s Personal CFO.\n"
        f"It is {hour:02d}:00. Provide a 2-sentence morning briefing.\n"
        f"- Current Balance: {format_amount(summary.current_balance, symbol)}\n"
        f"- Average Daily Spend: {format_amount(summary.average_daily_spend, symbol)}\n"
        f"- Runway: {runway}\n"
        "\nINSTRUCTIONS:\n"
        "- Be concise and professional.\n"
        "- If runway is short, warn them gently.\n"
        "- Otherwise, wish them a productive day.\n"
        "- Do NOT use 'Subject:' lines."
    )


class DailyBriefingJob(Job):
    """Wall-clock daily job; dedup through persisted schedule state."""

    name = JobName.DAILY_BRIEFING

    def build_trigger(self) -> DailyTrigger:
        return DailyTrigger(self._context.config.daily_briefing_hour, clock=self._context.clock)

    async def run_cycle(self) -> CycleReport:
        started_at = self.now()
        repository = self._context.repository
        tenant_ids = sorted(await repository.list_tenant_ids())
        last_sent = await repository.get_schedule_states(self.name)

        async def brief_tenant(tenant_id: int) -> str | None:
            return await self.process_tenant(tenant_id, started_at, last_sent.get(tenant_id))

        outcomes = await self._runner.run_all(tenant_ids, brief_tenant)
        return self.finish(started_at, outcomes)

    async def process_tenant(
        self,
        tenant_id: int,
        now: datetime.datetime,
        last_sent: datetime.datetime | None,
    ) -> str | None:
        """Compose and send one tenant's briefing unless it already went out today."""
        if serviced_today(last_sent, now):
            raise TenantSkipped("already sent today", tenant_id=tenant_id, job=self.name)

        settings = await self.load_settings(tenant_id)
        if settings.notifications.is_blank:
            raise TenantSkipped("telegram not configured", tenant_id=tenant_id, job=self.name)
        if settings.banking.is_blank:
            raise TenantSkipped("banking credentials not configured", tenant_id=tenant_id, job=self.name)

        balance = Decimal("0")
        async with self._context.banking_factory() as client:
            client.configure(settings.banking)
            accounts = await client.list_accounts()
            if not accounts:
                raise TenantSkipped("no bank accounts", tenant_id=tenant_id, job=self.name)
            for account in accounts:
                balance += await client.get_balance(account.account_id)

        history = await self._context.repository.get_transactions_since(
            tenant_id, window_start(now, HISTORY_WINDOW_DAYS)
        )
        summary = summarize_spending(history, current_balance=balance, window_days=HISTORY_WINDOW_DAYS)
        prompt = build_briefing_prompt(settings, summary, hour=self._context.config.daily_briefing_hour)

        briefing = await self._context.ai_client.generate(tenant_id, prompt)
        if not briefing:
            logger.warning("Skipping daily briefing for tenant %d: AI returned no text.", tenant_id)
            raise TenantSkipped("AI returned no briefing", tenant_id=tenant_id, job=self.name)

        delivered = await self._context.notifier.send(tenant_id, f"🌅 <b>Morning Briefing</b>\n\n{briefing}")
        await self._context.repository.set_schedule_state(tenant_id, self.name, now)
        return "delivered" if delivered else "not delivered"
