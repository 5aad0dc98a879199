"""
Execution store interface.

The persistence port behind the execution log, the idempotency tracker and
the daily quota. Backends (memory, SQLite, PostgreSQL) implement it; the
orchestrator core never talks to a database directly.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
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


class ExecutionStore(ABC):
    """
    Abstract base class for execution persistence.

    Stores execution records, their per-step log entries and the tenant
    sandbox flags, so that cleanup and history work across restarts.
    """

    backend_name = "abstract"

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    async def initialize(self) -> None:  # noqa: B027
        """Open connections and provision the schema if the backend needs it."""

    async def close(self) -> None:  # noqa: B027
        """Release connections."""

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @abstractmethod
    async def probe(self) -> None:
        """
        Run a lightweight query proving the execution tables exist.

        Raises:
            StoreUnavailableError: If the store or its schema is unavailable
        """
        ...

    # ==========================================================================
    # Execution records
    # ==========================================================================

    @abstractmethod
    async def create_execution(self, record: ExecutionRecord) -> None:
        """Insert a new execution record."""
        ...

    @abstractmethod
    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        """Load an execution record, or None if it does not exist."""
        ...

    @abstractmethod
    async def update_execution(
        self,
        execution_id: str,
        status: ExecutionStatus,
        resource_count: int | None = None,
        error_message: str | None = None,
        completed_at: datetime | None = None,
    ) -> None:
        """Transition an execution's status; other fields are updated when given."""
        ...

    @abstractmethod
    async def find_execution_by_hash(
        self,
        tenant_id: str,
        execution_hash: str,
        statuses: Sequence[ExecutionStatus],
    ) -> str | None:
        """Return the id of the newest execution matching hash and status, if any."""
        ...

    @abstractmethod
    async def count_executions_since(self, tenant_id: str, since: datetime) -> int:
        """Count executions a tenant created at or after ``since``."""
        ...

    @abstractmethod
    async def list_executions(self, tenant_id: str, limit: int = 10) -> list[ExecutionRecord]:
        """List a tenant's executions, newest first."""
        ...

    # ==========================================================================
    # Log entries
    # ==========================================================================

    @abstractmethod
    async def append_log_entry(self, entry: ExecutionLogEntry) -> None:
        """Append one step attempt to an execution's log."""
        ...

    @abstractmethod
    async def list_log_entries(
        self,
        execution_id: str,
        status: StepStatus | None = None,
        cleanup_status: CleanupStatus | None = None,
    ) -> list[ExecutionLogEntry]:
        """List an execution's log entries in chronological order."""
        ...

    @abstractmethod
    async def update_log_entry(self, entry_id: str, cleanup_status: CleanupStatus) -> None:
        """Set the cleanliness flag of one log entry."""
        ...

    # ==========================================================================
    # Tenants
    # ==========================================================================

    @abstractmethod
    async def get_tenant(self, tenant_id: str) -> TenantRecord | None:
        """
        Load a tenant's sandbox flag.

        Raises:
            SandboxFlagUnavailableError: If the flag is not provisioned
        """
        ...

    @abstractmethod
    async def save_tenant(self, tenant: TenantRecord) -> None:
        """Insert or update a tenant."""
        ...

    async def health_check(self) -> dict[str, Any]:
        """Check storage health."""
        from seedline.storage.errors import StorageError

        try:
            await self.probe()
        except StorageError as e:
            return {"status": "unhealthy", "backend": self.backend_name, "error": str(e)}
        return {"status": "healthy", "backend": self.backend_name}
