"""Database lifecycle, migration runner, and short-lived connection sessions.

Each query opens its own aiosqlite connection through ``session()`` so that
concurrent tenant tasks never share a connection and no lock is held between
calls. Migrations are read from SQL files in the migrations/ directory and
applied in order on ``connect()``.
"""

import datetime
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from types import TracebackType

import aiosqlite

from Gordon_Worker.utils.exceptions import DatabaseUnavailableError

logger = logging.getLogger(__name__)

_MIGRATIONS_DIR = Path(__file__).parent / "migrations"


class Database:
    """Async SQLite database with migration support and per-operation connections.

    Usage::

        async with Database("data/gordon.db") as db:
            async with db.session() as conn:
                cursor = await conn.execute("SELECT id FROM tenants")
    """

    def __init__(self, db_path: str = "data/gordon.db") -> None:
        self._db_path = db_path
        self._ready = False

    @property
    def path(self) -> str:
        """Filesystem path of the SQLite database."""
        return self._db_path

    async def connect(self) -> None:
        """Create the database file if needed, enable WAL, and run migrations."""
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self._db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await self._run_migrations(conn)
        self._ready = True
        logger.info("Database ready: %s", self._db_path)

    async def close(self) -> None:
        """Mark the database closed. Sessions hold no state between calls."""
        if self._ready:
            self._ready = False
            logger.info("Database closed: %s", self._db_path)

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a fresh connection with foreign keys enforced, closed on exit.

        Raises:
            DatabaseUnavailableError: The database is not connected or the
                file cannot be opened.
        """
        if not self._ready:
            msg = "Database is not connected. Call connect() or use 'async with'."
            raise DatabaseUnavailableError(msg)
        conn: aiosqlite.Connection | None = None
        try:
            conn = await aiosqlite.connect(self._db_path)
            await conn.execute("PRAGMA foreign_keys=ON")
        except (aiosqlite.Error, OSError) as exc:
            if conn is not None:
                await conn.close()
            msg = f"Cannot open database {self._db_path}: {exc}"
            raise DatabaseUnavailableError(msg) from exc
        try:
            yield conn
        finally:
            await conn.close()

    async def ping(self) -> bool:
        """Open a connection and run a trivial query. Raises if the database is unreachable."""
        async with self.session() as conn:
            cursor = await conn.execute("SELECT 1")
            row = await cursor.fetchone()
        return row is not None and row[0] == 1

    async def _run_migrations(self, conn: aiosqlite.Connection) -> None:
        """Apply pending SQL migrations from the migrations directory.

        Each migration file is named NNN_description.sql. The schema_version
        table tracks which versions have been applied. Running twice is safe
        (idempotent).
        """
        await conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_version "
            "(version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)"
        )
        await conn.commit()

        cursor = await conn.execute("SELECT version FROM schema_version ORDER BY version")
        applied_rows = await cursor.fetchall()
        applied_versions: set[int] = {row[0] for row in applied_rows}

        for migration_file in sorted(_MIGRATIONS_DIR.glob("*.sql")):
            version = int(migration_file.name.split("_", 1)[0])
            if version in applied_versions:
                logger.debug("Migration %03d already applied, skipping.", version)
                continue

            logger.info("Applying migration %03d: %s", version, migration_file.name)
            sql = migration_file.read_text(encoding="utf-8")
            # NOTE: executescript() commits per statement. A failure mid-file leaves
            # the version unrecorded, so the migration retries on next connect.
            await conn.executescript(sql)
            applied_at = datetime.datetime.now(datetime.UTC).isoformat()
            await conn.execute(
                "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                (version, applied_at),
            )
            await conn.commit()
            logger.info("Migration %03d applied successfully.", version)
