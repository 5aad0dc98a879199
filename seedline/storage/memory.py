"""
In-memory storage implementation for executions

Provides a simple in-memory backend for development and testing.
Not suitable for production use as state is lost on process restart.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime
from typing import Any

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


class InMemoryExecutionStore(ExecutionStore):
    """
    In-memory implementation of the execution store

    Args:
        available: When False the store behaves like a database whose
            tables were never migrated: every call raises StoreUnavailableError.
        sandbox_flag_provisioned: When False, get_tenant raises
            SandboxFlagUnavailableError.
    """

    backend_name = "memory"

    def __init__(self, available: bool = True, sandbox_flag_provisioned: bool = True):
        self.available = available
        self.sandbox_flag_provisioned = sandbox_flag_provisioned
        self._executions: dict[str, ExecutionRecord] = {}
        self._entries: dict[str, ExecutionLogEntry] = {}
        self._tenants: dict[str, TenantRecord] = {}
        self._lock = asyncio.Lock()
        self.probe_count = 0

    def _check_available(self) -> None:
        if not self.available:
            msg = 'relation "seedline_executions" does not exist'
            raise StoreUnavailableError(msg, backend=self.backend_name)

    async def probe(self) -> None:
        self.probe_count += 1
        self._check_available()

    async def create_execution(self, record: ExecutionRecord) -> None:
        self._check_available()
        async with self._lock:
            if record.execution_id in self._executions:
                msg = f"Execution {record.execution_id} already exists"
                raise StorageError(msg)
            self._executions[record.execution_id] = replace(record)

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        self._check_available()
        async with self._lock:
            record = self._executions.get(execution_id)
            # Return a copy to prevent external modification
            return replace(record) if record else None

    async def update_execution(
        self,
        execution_id: str,
        status: ExecutionStatus,
        resource_count: int | None = None,
        error_message: str | None = None,
        completed_at: datetime | None = None,
    ) -> None:
        self._check_available()
        async with self._lock:
            record = self._executions.get(execution_id)
            if record is None:
                msg = f"Execution {execution_id} not found"
                raise StorageError(msg)
            record.status = status
            if resource_count is not None:
                record.resource_count = resource_count
            if error_message is not None:
                record.error_message = error_message
            if completed_at is not None:
                record.completed_at = completed_at

    async def find_execution_by_hash(
        self,
        tenant_id: str,
        execution_hash: str,
        statuses: Sequence[ExecutionStatus],
    ) -> str | None:
        self._check_available()
        async with self._lock:
            matches = [
                r
                for r in self._executions.values()
                if r.tenant_id == tenant_id
                and r.execution_hash == execution_hash
                and r.status in statuses
            ]
            if not matches:
                return None
            matches.sort(key=lambda r: r.created_at, reverse=True)
            return matches[0].execution_id

    async def count_executions_since(self, tenant_id: str, since: datetime) -> int:
        self._check_available()
        async with self._lock:
            return sum(
                1
                for r in self._executions.values()
                if r.tenant_id == tenant_id and r.created_at >= since
            )

    async def list_executions(self, tenant_id: str, limit: int = 10) -> list[ExecutionRecord]:
        self._check_available()
        async with self._lock:
            records = [replace(r) for r in self._executions.values() if r.tenant_id == tenant_id]
            records.sort(key=lambda r: r.created_at, reverse=True)
            return records[:limit]

    async def append_log_entry(self, entry: ExecutionLogEntry) -> None:
        self._check_available()
        async with self._lock:
            if entry.execution_id not in self._executions:
                msg = f"Execution {entry.execution_id} not found"
                raise StorageError(msg)
            self._entries[entry.entry_id] = replace(entry)

    async def list_log_entries(
        self,
        execution_id: str,
        status: StepStatus | None = None,
        cleanup_status: CleanupStatus | None = None,
    ) -> list[ExecutionLogEntry]:
        self._check_available()
        async with self._lock:
            # dict preserves insertion order, which is chronological
            return [
                replace(e)
                for e in self._entries.values()
                if e.execution_id == execution_id
                and (status is None or e.status == status)
                and (cleanup_status is None or e.cleanup_status == cleanup_status)
            ]

    async def update_log_entry(self, entry_id: str, cleanup_status: CleanupStatus) -> None:
        self._check_available()
        async with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                msg = f"Log entry {entry_id} not found"
                raise StorageError(msg)
            entry.cleanup_status = cleanup_status

    async def get_tenant(self, tenant_id: str) -> TenantRecord | None:
        if not self.sandbox_flag_provisioned:
            msg = 'column "is_sandbox" does not exist'
            raise SandboxFlagUnavailableError(msg)
        self._check_available()
        return self._tenants.get(tenant_id)

    async def save_tenant(self, tenant: TenantRecord) -> None:
        self._check_available()
        self._tenants[tenant.tenant_id] = tenant

    async def health_check(self) -> dict[str, Any]:
        status = await super().health_check()
        status.update(
            {
                "total_executions": len(self._executions),
                "total_log_entries": len(self._entries),
            }
        )
        return status

    async def clear_all(self) -> int:
        """
        Clear all data (for testing purposes)

        Returns:
            Number of executions deleted
        """
        async with self._lock:
            count = len(self._executions)
            self._executions.clear()
            self._entries.clear()
            return count

    def get_execution_count(self) -> int:
        """Get current execution count (synchronous for testing)"""
        return len(self._executions)
