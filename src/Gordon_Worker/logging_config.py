"""Centralized logging configuration for the CLI, engine and web entry points.

Every line carries the job and tenant it was logged for. Both come from
context variables bound with ``log_context()`` by the job loop and the
per-tenant runner, so asyncio tasks spawned for a tenant inherit them and
siblings never see each other's values. Lines logged outside any job show
``-`` in both slots.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token

LOG_FORMAT: str = "%(asctime)s %(levelname)-8s %(name)s [%(job)s/%(tenant)s]: %(message)s"
NO_CONTEXT: str = "-"

_MODULE_LOGGERS: dict[str, str] = {
    "JOBS": "Gordon_Worker.jobs",
    "SERVICES": "Gordon_Worker.services",
    "DATA": "Gordon_Worker.data",
    "CLIENTS": "Gordon_Worker.clients",
    "WEB": "Gordon_Worker.web",
}

_current_job: ContextVar[str] = ContextVar("gordon_job", default=NO_CONTEXT)
_current_tenant: ContextVar[str] = ContextVar("gordon_tenant", default=NO_CONTEXT)


class LogContextFilter(logging.Filter):
    """Stamp ``job`` and ``tenant`` attributes onto every record a handler emits."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.job = _current_job.get()
        record.tenant = _current_tenant.get()
        return True


@contextmanager
def log_context(*, job: str | None = None, tenant_id: int | None = None) -> Iterator[None]:
    """Bind the job and/or tenant for log lines emitted inside the block."""
    bound: list[tuple[ContextVar[str], Token[str]]] = []
    if job is not None:
        bound.append((_current_job, _current_job.set(str(job))))
    if tenant_id is not None:
        bound.append((_current_tenant, _current_tenant.set(str(tenant_id))))
    try:
        yield
    finally:
        for var, token in reversed(bound):
            var.reset(token)


def _resolve_level(level: str, *, verbose: bool, quiet: bool) -> int:
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    name = level or os.environ.get("LOG_LEVEL", "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def configure_logging(
    *,
    level: str = "",
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """Configure the root logger for the worker.

    Priority: verbose > quiet > level param > LOG_LEVEL env > INFO default.
    Uses force=True to override uvicorn's prior root logger config.
    Reads LOG_LEVEL_{JOBS,SERVICES,DATA,CLIENTS,WEB} for per-area overrides.
    """
    logging.basicConfig(
        level=_resolve_level(level, verbose=verbose, quiet=quiet),
        format=LOG_FORMAT,
        force=True,
    )
    context_filter = LogContextFilter()
    for handler in logging.getLogger().handlers:
        handler.addFilter(context_filter)

    # Request lines only at WARNING and above
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    for area, logger_name in _MODULE_LOGGERS.items():
        override = os.environ.get(f"LOG_LEVEL_{area}", "")
        resolved = getattr(logging, override.upper(), None) if override else None
        if isinstance(resolved, int):
            logging.getLogger(logger_name).setLevel(resolved)
