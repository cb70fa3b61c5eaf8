"""Engine configuration: JSON file defaults overlaid with GORDON_* environment variables.

The file is optional. A missing or unreadable file falls back to defaults;
environment variables always win so containers can override single values.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from Gordon_Worker.models.enums import AiProvider, JobName

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV: Final[str] = "GORDON_CONFIG"
DEFAULT_CONFIG_PATH: Final[Path] = Path("data/worker_settings.json")
ENV_PREFIX: Final[str] = "GORDON_"

# Names accepted in representative_policy, in default priority order
REPRESENTATIVE_RULES: Final[tuple[str, ...]] = ("admin", "system", "first")


class EngineConfig(BaseModel):
    """Static configuration for the four job loops.

    Capacities and intervals are read once at startup and never adjusted
    while the engine runs.
    """

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/gordon.db"
    timezone: str = "UTC"

    connectivity_interval_seconds: float = 300.0
    transactions_interval_seconds: float = 60.0
    weekly_poll_seconds: float = 300.0
    daily_briefing_hour: int = Field(default=8, ge=0, le=23)
    loop_backoff_seconds: float = 300.0
    shutdown_grace_seconds: float = 10.0

    max_concurrent_tenants: int = Field(default=5, ge=1)
    representative_policy: list[str] = ["admin", "system"]
    free_ai_providers: list[AiProvider] = [AiProvider.OLLAMA]
    enabled_jobs: list[JobName] = list(JobName)

    @field_validator("representative_policy")
    @classmethod
    def validate_policy(cls, value: list[str]) -> list[str]:
        """Every rule name must be known; order is priority."""
        unknown = [name for name in value if name not in REPRESENTATIVE_RULES]
        if unknown:
            msg = f"unknown representative rules {unknown}, expected any of {REPRESENTATIVE_RULES}"
            raise ValueError(msg)
        return value


_LIST_FIELDS: Final[frozenset[str]] = frozenset(
    {"representative_policy", "free_ai_providers", "enabled_jobs"}
)


def _read_file(path: Path) -> dict[str, object]:
    """Load the JSON config file, returning an empty mapping when unusable."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        logger.warning("Failed to read config file %s, using defaults", path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a JSON object, using defaults", path)
        return {}
    return data


def _read_env(environ: Mapping[str, str]) -> dict[str, object]:
    """Collect GORDON_<FIELD> overrides. List fields are comma separated."""
    overrides: dict[str, object] = {}
    for field_name in EngineConfig.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if raw is None:
            continue
        if field_name in _LIST_FIELDS:
            overrides[field_name] = [item.strip() for item in raw.split(",") if item.strip()]
        else:
            overrides[field_name] = raw
    return overrides


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EngineConfig:
    """Build the engine configuration.

    Priority: environment > JSON file > model defaults.
    """
    env = os.environ if environ is None else environ
    config_path = path or Path(env.get(CONFIG_PATH_ENV, str(DEFAULT_CONFIG_PATH)))

    values = _read_file(config_path)
    values.update(_read_env(env))
    config = EngineConfig.model_validate(values)
    logger.debug("Engine config loaded from %s: %s", config_path, config)
    return config
