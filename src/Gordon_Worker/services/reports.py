"""Weekly financial report: a seven-day spending summary sent over Telegram.

The report is built from the stored ledger, so it reflects whatever the
transaction sync has already persisted. An AI commentary paragraph is added
when the tenant's provider answers; the report is still sent without it.
"""

from __future__ import annotations

import datetime
import html
import logging
from collections.abc import Callable
from decimal import Decimal

from Gordon_Worker.clients.ai import AiClient
from Gordon_Worker.clients.telegram import TelegramNotifier
from Gordon_Worker.data.repository import Repository
from Gordon_Worker.data.settings_store import SettingsStore
from Gordon_Worker.models.tenant import TenantSettings
from Gordon_Worker.services.analysis import SpendingSummary, summarize_spending, window_start

logger = logging.getLogger(__name__)

REPORT_WINDOW_DAYS: int = 7


def format_amount(value: Decimal, symbol: str) -> str:
    """Format a Decimal as ``R1,234.56`` (sign in front of the symbol)."""
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def render_report(
    summary: SpendingSummary,
    settings: TenantSettings,
    *,
    generated_at: datetime.datetime,
    commentary: str | None = None,
) -> str:
    """Render the Telegram HTML body for a weekly report."""
    symbol = settings.currency_symbol
    lines = [
        f"📊 <b>Weekly Financial Report</b> ({generated_at:%d %b %Y})",
        "",
        f"Spent: {format_amount(summary.total_spent, symbol)}",
        f"Received: {format_amount(summary.total_received, symbol)}",
        f"Average daily spend: {format_amount(summary.average_daily_spend, symbol)}",
        f"Transactions: {summary.transaction_count}",
    ]
    if summary.top_categories:
        lines += ["", "<b>Top categories</b>"]
        lines += [
            f"• {html.escape(name)}: {format_amount(total, symbol)}"
            for name, total in summary.top_categories
        ]
    if commentary:
        lines += ["", f"<i>{html.escape(commentary)}</i>"]
    return "\n".join(lines)


class ReportGenerator:
    """Build and deliver a tenant's weekly report.

    Usage::

        reports = ReportGenerator(repository, settings_store, notifier, ai_client)
        delivered = await reports.generate_and_send(tenant_id)
    """

    def __init__(
        self,
        repository: Repository,
        settings_store: SettingsStore,
        notifier: TelegramNotifier,
        ai_client: AiClient | None = None,
        *,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._settings_store = settings_store
        self._notifier = notifier
        self._ai_client = ai_client
        self._clock = clock or (lambda: datetime.datetime.now(datetime.UTC))

    async def generate_and_send(self, tenant_id: int) -> bool:
        """Summarise the last seven days and send it. Returns True when delivered."""
        settings = await self._settings_store.get_settings(tenant_id)
        now = self._clock()
        history = await self._repository.get_transactions_since(
            tenant_id, window_start(now, REPORT_WINDOW_DAYS)
        )
        summary = summarize_spending(history, window_days=REPORT_WINDOW_DAYS)

        commentary: str | None = None
        if self._ai_client is not None and summary.transaction_count > 0:
            commentary = await self._ai_client.generate(tenant_id, _commentary_prompt(summary, settings))

        message = render_report(summary, settings, generated_at=now, commentary=commentary)
        delivered = await self._notifier.send(tenant_id, message)
        if delivered:
            logger.info(
                "Weekly report delivered for tenant %d (%d transactions).",
                tenant_id,
                summary.transaction_count,
            )
        else:
            logger.warning("Weekly report for tenant %d was not delivered.", tenant_id)
        return delivered


def _commentary_prompt(summary: SpendingSummary, settings: TenantSettings) -> str:
    symbol = settings.currency_symbol
    categories = ", ".join(
        f"{name} {format_amount(total, symbol)}" for name, total in summary.top_categories
    )
    return (
        f"You are {settings.system_persona}, {settings.user_name}'s personal CFO.\n"
        f"In two sentences, comment on this week's spending.\n"
        f"- Spent: {format_amount(summary.total_spent, symbol)}\n"
        f"- Received: {format_amount(summary.total_received, symbol)}\n"
        f"- Top categories: {categories or 'none'}\n"
        "Be concise and professional. Do NOT use 'Subject:' lines."
    )
