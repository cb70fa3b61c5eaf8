"""Repository layer for tenant enumeration, schedule state, and the synced ledger.

Provides typed operations backed by a Database instance. All queries use
parameterized SQL (no value interpolation). Timestamps are stored as ISO-8601
strings with their UTC offset; Decimal amounts are stored as strings.
"""

import datetime
import logging
import sqlite3
from decimal import Decimal

from Gordon_Worker.data.database import Database
from Gordon_Worker.models.banking import BankTransaction
from Gordon_Worker.models.enums import JobName, TenantRole
from Gordon_Worker.models.tenant import RepresentativeCriteria, Tenant

logger = logging.getLogger(__name__)

_TENANT_COLUMNS = "t.id, t.username, t.role, t.is_system, t.created_at"


class Repository:
    """Query interface for the Gordon Worker persistence layer.

    Every method opens its own short-lived session on the Database.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Tenant directory
    # ------------------------------------------------------------------

    async def add_tenant(
        self,
        username: str,
        *,
        role: TenantRole = TenantRole.USER,
        is_system: bool = False,
    ) -> Tenant:
        """Create a tenant and return it with its assigned id."""
        created_at = datetime.datetime.now(datetime.UTC)
        async with self._db.session() as conn:
            cursor = await conn.execute(
                "INSERT INTO tenants (username, role, is_system, created_at) VALUES (?, ?, ?, ?)",
                (username, str(role), int(is_system), created_at.isoformat()),
            )
            await conn.commit()
            tenant_id = cursor.lastrowid
        if tenant_id is None:
            msg = f"Insert of tenant {username!r} returned no row id"
            raise RuntimeError(msg)
        logger.info("Tenant %d created: %s (role=%s, system=%s)", tenant_id, username, role, is_system)
        return Tenant(
            id=tenant_id,
            username=username,
            role=role,
            is_system=is_system,
            created_at=created_at,
        )

    async def list_tenants(self) -> list[Tenant]:
        """Return every tenant ordered by id."""
        async with self._db.session() as conn:
            cursor = await conn.execute(f"SELECT {_TENANT_COLUMNS} FROM tenants t ORDER BY t.id")  # noqa: S608
            rows = await cursor.fetchall()
        return [_row_to_tenant(row) for row in rows]

    async def get_tenant(self, tenant_id: int) -> Tenant | None:
        """Return a tenant by id, or None if it does not exist."""
        async with self._db.session() as conn:
            cursor = await conn.execute(
                f"SELECT {_TENANT_COLUMNS} FROM tenants t WHERE t.id = ?",  # noqa: S608
                (tenant_id,),
            )
            row = await cursor.fetchone()
        return _row_to_tenant(row) if row is not None else None

    async def list_tenant_ids(self) -> set[int]:
        """Return the ids of all tenants."""
        async with self._db.session() as conn:
            cursor = await conn.execute("SELECT id FROM tenants")
            rows = await cursor.fetchall()
        return {row[0] for row in rows}

    async def list_configured_tenant_ids(self) -> list[int]:
        """Return ids of tenants that have a settings document, ascending."""
        async with self._db.session() as conn:
            cursor = await conn.execute("SELECT tenant_id FROM tenant_settings ORDER BY tenant_id")
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def select_representative_candidate(self, criteria: RepresentativeCriteria) -> int | None:
        """Return the best tenant id matching ``criteria``, or None.

        Matches are ordered by the system flag (system accounts first), then
        by id ascending.
        """
        clauses: list[str] = []
        params: list[object] = []
        join = ""
        if criteria.require_settings:
            join = " JOIN tenant_settings s ON s.tenant_id = t.id"
        if criteria.role is not None:
            clauses.append("t.role = ?")
            params.append(str(criteria.role))
        if criteria.system_only:
            clauses.append("t.is_system = 1")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        sql = f"SELECT t.id FROM tenants t{join}{where} ORDER BY t.is_system DESC, t.id ASC LIMIT 1"  # noqa: S608
        async with self._db.session() as conn:
            cursor = await conn.execute(sql, params)
            row = await cursor.fetchone()
        return row[0] if row is not None else None

    # ------------------------------------------------------------------
    # Schedule state
    # ------------------------------------------------------------------

    async def get_schedule_state(self, tenant_id: int, job: JobName) -> datetime.datetime | None:
        """Return when ``job`` last serviced ``tenant_id``, or None if never."""
        async with self._db.session() as conn:
            cursor = await conn.execute(
                "SELECT last_run_at FROM schedule_state WHERE tenant_id = ? AND job = ?",
                (tenant_id, str(job)),
            )
            row = await cursor.fetchone()
        return datetime.datetime.fromisoformat(row[0]) if row is not None else None

    async def get_schedule_states(self, job: JobName) -> dict[int, datetime.datetime]:
        """Return the last-serviced timestamp for every tenant ``job`` has touched."""
        async with self._db.session() as conn:
            cursor = await conn.execute(
                "SELECT tenant_id, last_run_at FROM schedule_state WHERE job = ?",
                (str(job),),
            )
            rows = await cursor.fetchall()
        return {row[0]: datetime.datetime.fromisoformat(row[1]) for row in rows}

    async def set_schedule_state(
        self,
        tenant_id: int,
        job: JobName,
        last_run_at: datetime.datetime,
    ) -> None:
        """Record that ``job`` serviced ``tenant_id`` at ``last_run_at``."""
        async with self._db.session() as conn:
            await conn.execute(
                "INSERT INTO schedule_state (tenant_id, job, last_run_at) VALUES (?, ?, ?) "
                "ON CONFLICT (tenant_id, job) DO UPDATE SET last_run_at = excluded.last_run_at",
                (tenant_id, str(job), last_run_at.isoformat()),
            )
            await conn.commit()

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    async def count_transactions(self, tenant_id: int) -> int:
        """Return how many ledger rows a tenant has."""
        async with self._db.session() as conn:
            cursor = await conn.execute(
                "SELECT COUNT(*) FROM transactions WHERE tenant_id = ?", (tenant_id,)
            )
            row = await cursor.fetchone()
        return int(row[0]) if row is not None else 0

    async def save_transactions(
        self,
        tenant_id: int,
        transactions: list[BankTransaction],
    ) -> list[BankTransaction]:
        """Insert transactions, ignoring ones already stored. Returns the newly inserted."""
        inserted: list[BankTransaction] = []
        async with self._db.session() as conn:
            for tx in transactions:
                cursor = await conn.execute(
                    "INSERT OR IGNORE INTO transactions "
                    "(id, tenant_id, account_id, transaction_date, description, amount, "
                    "balance, category) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        tx.id,
                        tenant_id,
                        tx.account_id,
                        _to_utc(tx.transaction_date).isoformat(),
                        tx.description,
                        str(tx.amount),
                        str(tx.balance) if tx.balance is not None else None,
                        tx.category,
                    ),
                )
                if cursor.rowcount > 0:
                    inserted.append(tx)
            await conn.commit()
        return inserted

    async def get_transactions_since(
        self,
        tenant_id: int,
        since: datetime.datetime,
    ) -> list[BankTransaction]:
        """Return a tenant's ledger rows on or after ``since``, oldest first."""
        async with self._db.session() as conn:
            cursor = await conn.execute(
                "SELECT id, account_id, transaction_date, description, amount, balance, category "
                "FROM transactions WHERE tenant_id = ? AND transaction_date >= ? "
                "ORDER BY transaction_date ASC",
                (tenant_id, _to_utc(since).isoformat()),
            )
            rows = await cursor.fetchall()
        return [
            BankTransaction(
                id=row[0],
                account_id=row[1],
                transaction_date=datetime.datetime.fromisoformat(row[2]),
                description=row[3],
                amount=Decimal(row[4]),
                balance=Decimal(row[5]) if row[5] is not None else None,
                category=row[6],
            )
            for row in rows
        ]


# ---------------------------------------------------------------------------
# Row-mapping helpers
# ---------------------------------------------------------------------------


def _row_to_tenant(row: sqlite3.Row) -> Tenant:
    """Convert a tenants row tuple to a Tenant model."""
    return Tenant(
        id=row[0],
        username=row[1],
        role=TenantRole(row[2]),
        is_system=bool(row[3]),
        created_at=datetime.datetime.fromisoformat(row[4]) if row[4] else None,
    )


def _to_utc(value: datetime.datetime) -> datetime.datetime:
    """Normalise to UTC so ISO strings compare correctly as text."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value.astimezone(datetime.UTC)
