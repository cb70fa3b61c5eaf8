"""Persistence layer for Gordon Worker.

Re-exports the main public API: Database for lifecycle and sessions,
Repository for the tenant directory and schedule state, SettingsStore for
per-tenant settings.
"""

from Gordon_Worker.data.database import Database
from Gordon_Worker.data.repository import Repository
from Gordon_Worker.data.settings_store import SettingsStore

__all__ = ["Database", "Repository", "SettingsStore"]
