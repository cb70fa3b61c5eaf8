"""Connectivity probes for the database, the banking API, and the AI providers.

Each probe runs with its own timeout and converts every failure into a
negative result, so a probe never raises into the connectivity cycle. The
caller decides whose result is written to the status aggregator.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Final

from Gordon_Worker.clients.ai import AiClient
from Gordon_Worker.clients.investec import InvestecClient
from Gordon_Worker.data.database import Database
from Gordon_Worker.models.status import ProbeResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Timeouts for individual probes (seconds)
DATABASE_CHECK_TIMEOUT: Final[float] = 5.0
BANKING_CHECK_TIMEOUT: Final[float] = 20.0
AI_CHECK_TIMEOUT: Final[float] = 60.0


class ConnectivityProbes:
    """Run individual availability probes.

    Usage::

        probes = ConnectivityProbes(database=db)
        if not await probes.check_database():
            ...  # abort the cycle
        result = await probes.probe_banking(client)
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    async def check_database(self) -> tuple[bool, str | None]:
        """Check that a connection can be opened and a trivial query answered.

        Returns:
            ``(online, error)``; error is None when online.
        """
        try:
            is_available = await asyncio.wait_for(
                self._database.ping(),
                timeout=DATABASE_CHECK_TIMEOUT,
            )
        except TimeoutError:
            logger.error("Database connectivity check timed out.")
            return (False, "Database check timed out.")
        except Exception as exc:
            logger.error("Database connectivity check failed.", exc_info=True)
            return (False, str(exc) or type(exc).__name__)

        if not is_available:
            return (False, "Database ping returned an unexpected result.")
        return (True, None)

    async def probe_banking(self, client: InvestecClient, *, tenant_id: int) -> ProbeResult:
        """Authenticate against the banking API with an already-configured client."""
        try:
            result = await asyncio.wait_for(
                client.test_connectivity(),
                timeout=BANKING_CHECK_TIMEOUT,
            )
        except TimeoutError:
            result = ProbeResult(online=False, error="Banking API check timed out.")
        except Exception as exc:
            result = ProbeResult(online=False, error=str(exc) or type(exc).__name__)

        if not result.online:
            logger.warning(
                "Banking API is OFFLINE for tenant %d. Error: %s",
                tenant_id,
                result.error,
            )
        return result

    async def probe_ai(
        self,
        ai_client: AiClient,
        *,
        tenant_id: int,
        use_fallback: bool,
    ) -> ProbeResult:
        """Check that the tenant's primary or fallback AI provider answers."""
        lane = "fallback" if use_fallback else "primary"
        try:
            result = await asyncio.wait_for(
                ai_client.test_connection(tenant_id, use_fallback=use_fallback),
                timeout=AI_CHECK_TIMEOUT,
            )
        except TimeoutError:
            result = ProbeResult(online=False, error=f"AI {lane} check timed out.")
        except Exception as exc:
            result = ProbeResult(online=False, error=str(exc) or type(exc).__name__)

        if not result.online:
            logger.warning(
                "AI %s provider is OFFLINE for tenant %d. Error: %s",
                lane,
                tenant_id,
                result.error,
            )
        return result
