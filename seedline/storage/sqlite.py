"""
SQLite Execution Store.

Lightweight embedded storage using SQLite with async support via aiosqlite.
Ideal for local development, the CLI and single-process job runners.

Usage:
    >>> from seedline.storage.sqlite import SQLiteExecutionStore
    >>>
    >>> store = SQLiteExecutionStore("./seedline.db")
    >>> async with store:
    ...     await store.probe()
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any

try:
    import aiosqlite

    AIOSQLITE_AVAILABLE = True
except ImportError:  # pragma: no cover
    AIOSQLITE_AVAILABLE = False
    aiosqlite = None  # type: ignore[assignment]

from seedline.core.exceptions import MissingDependencyError
from seedline.core.types import (
    CleanupStatus,
    ExecutionLogEntry,
    ExecutionRecord,
    ExecutionStatus,
    StepStatus,
    TenantRecord,
)
from seedline.storage.base import ExecutionStore
from seedline.storage.errors import (
    SandboxFlagUnavailableError,
    StorageError,
    StoreUnavailableError,
)
from seedline.storage.serialization import deserialize, serialize

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS seedline_tenants (
    tenant_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    is_sandbox INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS seedline_executions (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    scenario_name TEXT NOT NULL,
    execution_hash TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'running',
    resource_count INTEGER NOT NULL DEFAULT 0,
    error_message TEXT,
    created_at TEXT NOT NULL,
    completed_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_seedline_executions_tenant ON seedline_executions(tenant_id);
CREATE INDEX IF NOT EXISTS idx_seedline_executions_hash ON seedline_executions(execution_hash);

CREATE TABLE IF NOT EXISTS seedline_execution_logs (
    id TEXT PRIMARY KEY,
    seq INTEGER NOT NULL,
    execution_id TEXT NOT NULL REFERENCES seedline_executions(id) ON DELETE CASCADE,
    step_id TEXT NOT NULL,
    integration TEXT NOT NULL,
    action_name TEXT NOT NULL,
    provider_action TEXT NOT NULL,
    external_resource_id TEXT,
    external_resource_type TEXT,
    input_payload TEXT,
    output_summary TEXT,
    status TEXT NOT NULL,
    cleanup_status TEXT NOT NULL DEFAULT 'pending',
    error_message TEXT,
    duration_ms INTEGER,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_seedline_logs_execution ON seedline_execution_logs(execution_id);
"""


class SQLiteExecutionStore(ExecutionStore):
    """
    SQLite-based execution store.

    Attributes:
        db_path: Path to SQLite database file (or ":memory:" for in-memory)
        auto_migrate: Create the schema on first connection. With False the
            store reports itself unavailable until the tables exist.
    """

    backend_name = "sqlite"

    def __init__(self, db_path: str = ":memory:", auto_migrate: bool = True):
        if not AIOSQLITE_AVAILABLE:  # pragma: no cover
            msg = "aiosqlite"
            raise MissingDependencyError(msg, "SQLite storage")

        self.db_path = db_path
        self.auto_migrate = auto_migrate
        self._conn: aiosqlite.Connection | None = None
        self._initialized = False

    async def initialize(self) -> None:
        await self._get_connection()

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = await aiosqlite.connect(self.db_path)
            self._conn.row_factory = aiosqlite.Row

        if not self._initialized:
            if self.auto_migrate:
                await self._conn.executescript(SCHEMA_SQL)
                await self._conn.commit()
            self._initialized = True

        return self._conn

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None
            self._initialized = False

    async def _execute(self, query: str, params: Sequence[Any] = ()) -> aiosqlite.Cursor:
        conn = await self._get_connection()
        try:
            return await conn.execute(query, params)
        except aiosqlite.OperationalError as e:
            raise StoreUnavailableError(str(e), backend=self.backend_name) from e
        except aiosqlite.Error as e:
            raise StorageError(f"SQLite error: {e}") from e

    async def _write(self, query: str, params: Sequence[Any] = ()) -> int:
        cursor = await self._execute(query, params)
        await self._conn.commit()
        return cursor.rowcount

    async def probe(self) -> None:
        cursor = await self._execute("SELECT id FROM seedline_executions LIMIT 1")
        await cursor.fetchone()

    # -- executions ---------------------------------------------------------

    async def create_execution(self, record: ExecutionRecord) -> None:
        await self._write(
            """
            INSERT INTO seedline_executions
                (id, tenant_id, scenario_name, execution_hash, status,
                 resource_count, error_message, created_at, completed_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.execution_id,
                record.tenant_id,
                record.scenario_name,
                record.execution_hash,
                record.status.value,
                record.resource_count,
                record.error_message,
                record.created_at.isoformat(),
                record.completed_at.isoformat() if record.completed_at else None,
            ),
        )

    def _row_to_record(self, row: aiosqlite.Row) -> ExecutionRecord:
        return ExecutionRecord(
            execution_id=row["id"],
            tenant_id=row["tenant_id"],
            scenario_name=row["scenario_name"],
            execution_hash=row["execution_hash"],
            status=ExecutionStatus(row["status"]),
            resource_count=row["resource_count"],
            error_message=row["error_message"],
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=(
                datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None
            ),
        )

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        cursor = await self._execute(
            "SELECT * FROM seedline_executions WHERE id = ?", (execution_id,)
        )
        row = await cursor.fetchone()
        return self._row_to_record(row) if row else None

    async def update_execution(
        self,
        execution_id: str,
        status: ExecutionStatus,
        resource_count: int | None = None,
        error_message: str | None = None,
        completed_at: datetime | None = None,
    ) -> None:
        await self._write(
            """
            UPDATE seedline_executions SET
                status = ?,
                resource_count = COALESCE(?, resource_count),
                error_message = COALESCE(?, error_message),
                completed_at = COALESCE(?, completed_at)
            WHERE id = ?
            """,
            (
                status.value,
                resource_count,
                error_message,
                completed_at.isoformat() if completed_at else None,
                execution_id,
            ),
        )

    async def find_execution_by_hash(
        self,
        tenant_id: str,
        execution_hash: str,
        statuses: Sequence[ExecutionStatus],
    ) -> str | None:
        status_values = [s.value for s in statuses]
        placeholders = ",".join("?" * len(status_values))
        cursor = await self._execute(
            f"""
            SELECT id FROM seedline_executions
            WHERE tenant_id = ? AND execution_hash = ? AND status IN ({placeholders})
            ORDER BY created_at DESC LIMIT 1
            """,
            (tenant_id, execution_hash, *status_values),
        )
        row = await cursor.fetchone()
        return row["id"] if row else None

    async def count_executions_since(self, tenant_id: str, since: datetime) -> int:
        cursor = await self._execute(
            "SELECT COUNT(*) FROM seedline_executions WHERE tenant_id = ? AND created_at >= ?",
            (tenant_id, since.isoformat()),
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def list_executions(self, tenant_id: str, limit: int = 10) -> list[ExecutionRecord]:
        cursor = await self._execute(
            """
            SELECT * FROM seedline_executions WHERE tenant_id = ?
            ORDER BY created_at DESC LIMIT ?
            """,
            (tenant_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(row) for row in rows]

    # -- log entries --------------------------------------------------------

    async def append_log_entry(self, entry: ExecutionLogEntry) -> None:
        await self._write(
            """
            INSERT INTO seedline_execution_logs
                (id, seq, execution_id, step_id, integration, action_name, provider_action,
                 external_resource_id, external_resource_type, input_payload, output_summary,
                 status, cleanup_status, error_message, duration_ms, created_at)
            VALUES (?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM seedline_execution_logs),
                    ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.entry_id,
                entry.execution_id,
                entry.step_id,
                entry.integration,
                entry.action_name,
                entry.provider_action,
                entry.external_resource_id,
                entry.external_resource_type,
                serialize(entry.input_payload) if entry.input_payload is not None else None,
                serialize(entry.output_summary) if entry.output_summary is not None else None,
                entry.status.value,
                entry.cleanup_status.value,
                entry.error,
                entry.duration_ms,
                entry.created_at.isoformat(),
            ),
        )

    def _row_to_entry(self, row: aiosqlite.Row) -> ExecutionLogEntry:
        return ExecutionLogEntry(
            entry_id=row["id"],
            execution_id=row["execution_id"],
            step_id=row["step_id"],
            integration=row["integration"],
            action_name=row["action_name"],
            provider_action=row["provider_action"],
            status=StepStatus(row["status"]),
            external_resource_id=row["external_resource_id"],
            external_resource_type=row["external_resource_type"],
            input_payload=deserialize(row["input_payload"]),
            output_summary=deserialize(row["output_summary"]),
            error=row["error_message"],
            duration_ms=row["duration_ms"] or 0,
            cleanup_status=CleanupStatus(row["cleanup_status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    async def list_log_entries(
        self,
        execution_id: str,
        status: StepStatus | None = None,
        cleanup_status: CleanupStatus | None = None,
    ) -> list[ExecutionLogEntry]:
        query = "SELECT * FROM seedline_execution_logs WHERE execution_id = ?"
        params: list[Any] = [execution_id]

        if status:
            query += " AND status = ?"
            params.append(status.value)

        if cleanup_status:
            query += " AND cleanup_status = ?"
            params.append(cleanup_status.value)

        query += " ORDER BY seq ASC"

        cursor = await self._execute(query, params)
        rows = await cursor.fetchall()
        return [self._row_to_entry(row) for row in rows]

    async def update_log_entry(self, entry_id: str, cleanup_status: CleanupStatus) -> None:
        await self._write(
            "UPDATE seedline_execution_logs SET cleanup_status = ? WHERE id = ?",
            (cleanup_status.value, entry_id),
        )

    # -- tenants ------------------------------------------------------------

    async def get_tenant(self, tenant_id: str) -> TenantRecord | None:
        try:
            cursor = await self._execute(
                "SELECT tenant_id, name, is_sandbox FROM seedline_tenants WHERE tenant_id = ?",
                (tenant_id,),
            )
        except StoreUnavailableError as e:
            raise SandboxFlagUnavailableError(str(e)) from e
        row = await cursor.fetchone()
        if row is None:
            return None
        return TenantRecord(
            tenant_id=row["tenant_id"], name=row["name"], is_sandbox=bool(row["is_sandbox"])
        )

    async def save_tenant(self, tenant: TenantRecord) -> None:
        await self._write(
            """
            INSERT INTO seedline_tenants (tenant_id, name, is_sandbox) VALUES (?, ?, ?)
            ON CONFLICT(tenant_id) DO UPDATE SET
                name = excluded.name,
                is_sandbox = excluded.is_sandbox
            """,
            (tenant.tenant_id, tenant.name, int(tenant.is_sandbox)),
        )

    async def health_check(self) -> dict[str, Any]:
        status = await super().health_check()
        status["db_path"] = self.db_path
        return status
