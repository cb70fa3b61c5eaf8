"""Telegram Bot API notifier.

Messages are sent as HTML. If Telegram rejects the markup (HTTP 400), the
same text is sent once more without a parse mode. Delivery failures are
logged and reported through the return value, never raised.
"""

from __future__ import annotations

import logging
from typing import Final

import httpx

from Gordon_Worker.data.settings_store import SettingsStore

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE_URL: Final[str] = "https://api.telegram.org"
TELEGRAM_SEND_TIMEOUT: Final[float] = 15.0


class TelegramNotifier:
    """Deliver messages to a tenant's configured Telegram chat.

    Usage::

        notifier = TelegramNotifier(settings_store)
        delivered = await notifier.send(tenant_id, "<b>Hello</b>")
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings_store = settings_store
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(TELEGRAM_SEND_TIMEOUT),
        )

    async def aclose(self) -> None:
        """Close the shared httpx client."""
        await self._client.aclose()

    async def send(self, tenant_id: int, message: str) -> bool:
        """Send ``message`` to the tenant's chat. Returns True when Telegram accepted it."""
        settings = await self._settings_store.get_settings(tenant_id)
        target = settings.notifications
        if target.is_blank:
            logger.warning("Telegram is not configured for tenant %d; message dropped.", tenant_id)
            return False

        url = f"{TELEGRAM_API_BASE_URL}/bot{target.telegram_bot_token}/sendMessage"
        payload: dict[str, str] = {"chat_id": target.telegram_chat_id, "text": message}

        try:
            response = await self._client.post(url, json={**payload, "parse_mode": "HTML"})
            if response.status_code == 400:  # noqa: PLR2004
                logger.warning(
                    "Telegram rejected HTML for tenant %d; resending as plain text.",
                    tenant_id,
                )
                response = await self._client.post(url, json=payload)
        except httpx.HTTPError:
            logger.error("Telegram delivery failed for tenant %d.", tenant_id, exc_info=True)
            return False

        if response.status_code != 200:  # noqa: PLR2004
            logger.error(
                "Telegram delivery failed for tenant %d: HTTP %d",
                tenant_id,
                response.status_code,
            )
            return False

        logger.info("Telegram message delivered for tenant %d.", tenant_id)
        return True
