"""Representative-tenant selection: whose results stand for global status.

The policy is an ordered chain of named rules; the first rule that yields a
tenant wins. The default chain prefers an admin with settings, then any
system account. Selection runs once at the start of every cycle and is never
cached, because tenants and their settings change between cycles.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Final

from Gordon_Worker.data.repository import Repository
from Gordon_Worker.models.enums import TenantRole
from Gordon_Worker.models.tenant import RepresentativeCriteria

logger = logging.getLogger(__name__)

RULES: Final[dict[str, RepresentativeCriteria]] = {
    # Elevated privilege and settings present; system accounts first, then lowest id
    "admin": RepresentativeCriteria(role=TenantRole.ADMIN, require_settings=True),
    # Any tenant flagged as the system/service account
    "system": RepresentativeCriteria(system_only=True),
    # Lowest-id tenant that has settings
    "first": RepresentativeCriteria(require_settings=True),
}

DEFAULT_POLICY: Final[tuple[str, ...]] = ("admin", "system")


class RepresentativeSelector:
    """Apply an ordered rule chain to pick this cycle's representative tenant."""

    def __init__(self, repository: Repository, policy: Sequence[str] = DEFAULT_POLICY) -> None:
        unknown = [name for name in policy if name not in RULES]
        if unknown:
            msg = f"Unknown representative rules: {unknown}"
            raise ValueError(msg)
        self._repository = repository
        self._policy = tuple(policy)

    @property
    def policy(self) -> tuple[str, ...]:
        return self._policy

    async def select(self) -> int | None:
        """Return the representative tenant id, or None when no rule matches."""
        for rule_name in self._policy:
            tenant_id = await self._repository.select_representative_candidate(RULES[rule_name])
            if tenant_id is not None:
                logger.debug("Representative tenant %d chosen by rule '%s'.", tenant_id, rule_name)
                return tenant_id
        logger.info("No representative tenant matched policy %s.", list(self._policy))
        return None
