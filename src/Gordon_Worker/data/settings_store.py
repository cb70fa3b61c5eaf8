"""Per-tenant settings store: JSON documents in SQLite behind a short TTL cache.

Jobs read settings on every cycle; the cache keeps a busy minute of polling
from turning into one query per tenant per job. Writes invalidate the entry.
"""

from __future__ import annotations

import datetime
import logging
import time
from typing import Final

from Gordon_Worker.data.database import Database
from Gordon_Worker.models.tenant import TenantSettings
from Gordon_Worker.utils.exceptions import SettingsNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS: Final[float] = 5 * 60


class SettingsStore:
    """Load and persist TenantSettings.

    Usage::

        store = SettingsStore(db)
        try:
            settings = await store.get_settings(tenant_id)
        except SettingsNotFoundError:
            ...  # skip this tenant
    """

    def __init__(self, db: Database, *, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        self._db = db
        self._ttl_seconds = ttl_seconds
        self._cache: dict[int, tuple[TenantSettings, float]] = {}

    async def get_settings(self, tenant_id: int) -> TenantSettings:
        """Return the tenant's settings.

        Raises:
            SettingsNotFoundError: The tenant has no settings document.
        """
        cached = self._cache.get(tenant_id)
        if cached is not None:
            settings, loaded_at = cached
            if time.monotonic() - loaded_at < self._ttl_seconds:
                return settings

        async with self._db.session() as conn:
            cursor = await conn.execute(
                "SELECT config FROM tenant_settings WHERE tenant_id = ?", (tenant_id,)
            )
            row = await cursor.fetchone()

        if row is None:
            self._cache.pop(tenant_id, None)
            msg = f"No settings stored for tenant {tenant_id}"
            raise SettingsNotFoundError(msg, tenant_id=tenant_id)

        settings = TenantSettings.model_validate_json(row[0])
        self._cache[tenant_id] = (settings, time.monotonic())
        return settings

    async def save_settings(self, tenant_id: int, settings: TenantSettings) -> None:
        """Insert or replace the tenant's settings document."""
        updated_at = datetime.datetime.now(datetime.UTC).isoformat()
        async with self._db.session() as conn:
            await conn.execute(
                "INSERT INTO tenant_settings (tenant_id, config, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT (tenant_id) DO UPDATE SET config = excluded.config, "
                "updated_at = excluded.updated_at",
                (tenant_id, settings.model_dump_json(), updated_at),
            )
            await conn.commit()
        self.invalidate(tenant_id)
        logger.info("Settings saved for tenant %d", tenant_id)

    def invalidate(self, tenant_id: int) -> None:
        """Drop a cached entry so the next read hits the database."""
        self._cache.pop(tenant_id, None)
