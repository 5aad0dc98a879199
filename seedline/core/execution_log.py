"""
Execution log

Append-only audit trail of every step attempt, keyed by execution id. It
is what the compensation engine walks, so entries are written as soon as a
step finishes.

The log tolerates a store whose schema was never provisioned: the first
call probes the store, the answer is cached for the lifetime of the log,
and when the store is unavailable every write becomes a no-op while
``create_execution`` hands out a local id so the run can go on.
"""

from __future__ import annotations

import random
import string
import time
import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from seedline.core.logger import get_logger
from seedline.core.types import (
    CleanupStatus,
    ExecutionLogEntry,
    ExecutionRecord,
    ExecutionStatus,
    StepResult,
    StepStatus,
    utc_now,
)
from seedline.storage.base import ExecutionStore
from seedline.storage.errors import StorageError
from seedline.storage.serialization import serialize

logger = get_logger(__name__)

DEFAULT_SUMMARY_THRESHOLD = 2000

_JSON_TYPE_NAMES = {
    dict: "object",
    str: "string",
    bool: "boolean",
    int: "number",
    float: "number",
    type(None): "null",
}


def local_execution_id() -> str:
    """Id handed out when the store cannot record the execution."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"local_{int(time.time() * 1000)}_{suffix}"


def summarize_output(data: Any, threshold: int = DEFAULT_SUMMARY_THRESHOLD) -> Any:
    """
    Bound the size of a stored output.

    Outputs whose JSON form fits in ``threshold`` characters are kept as-is.
    Larger mappings are reduced to their top-level keys, each mapped to its
    JSON type or, for lists, ``array[<length>]``.
    """
    encoded = serialize(data)
    if len(encoded) <= threshold:
        return data

    if isinstance(data, dict):
        summary: dict[str, str] = {"_truncated": "true"}
        for key, value in data.items():
            if isinstance(value, (list, tuple)):
                summary[str(key)] = f"array[{len(value)}]"
            else:
                summary[str(key)] = _JSON_TYPE_NAMES.get(type(value), type(value).__name__)
        return summary

    return {"_truncated": "true", "_length": len(encoded)}


def start_of_utc_day(now: datetime | None = None) -> datetime:
    now = now or utc_now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class ExecutionLog:
    """
    Degrading facade over an ExecutionStore.

    Args:
        store: Persistence backend
        summary_threshold: Max JSON length of an output stored verbatim
    """

    def __init__(self, store: ExecutionStore, summary_threshold: int = DEFAULT_SUMMARY_THRESHOLD):
        self.store = store
        self.summary_threshold = summary_threshold
        self._available: bool | None = None

    async def is_available(self) -> bool:
        """Probe the store once and remember the answer."""
        if self._available is None:
            try:
                await self.store.probe()
                self._available = True
            except StorageError as e:
                logger.warning(
                    f"Execution store not available ({e}). Using in-memory logging only."
                )
                self._available = False
        return self._available

    # ==========================================================================
    # Writes
    # ==========================================================================

    async def create_execution(self, tenant_id: str, scenario_name: str, execution_hash: str) -> str:
        if not await self.is_available():
            execution_id = local_execution_id()
            logger.info(f"Using local execution id {execution_id} (store not available)")
            return execution_id

        record = ExecutionRecord(
            execution_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            scenario_name=scenario_name,
            execution_hash=execution_hash,
            status=ExecutionStatus.RUNNING,
        )
        try:
            await self.store.create_execution(record)
        except StorageError as e:
            execution_id = local_execution_id()
            logger.warning(f"Failed to create execution record: {e}. Using {execution_id}")
            return execution_id

        return record.execution_id

    async def append(
        self,
        execution_id: str,
        result: StepResult,
        input_payload: dict[str, Any] | None = None,
    ) -> ExecutionLogEntry | None:
        """Record one step attempt. Returns the stored entry, or None if nothing was stored."""
        if not await self.is_available():
            return None

        try:
            entry = ExecutionLogEntry(
                entry_id=str(uuid.uuid4()),
                execution_id=execution_id,
                step_id=result.step_id,
                integration=result.integration,
                action_name=result.action_name,
                provider_action=result.provider_action,
                status=result.status,
                external_resource_id=result.external_resource_id,
                external_resource_type=result.external_resource_type,
                input_payload=input_payload,
                output_summary=(
                    summarize_output(result.data, self.summary_threshold)
                    if result.data is not None
                    else None
                ),
                error=result.error,
                duration_ms=result.duration_ms,
            )
            await self.store.append_log_entry(entry)
        except StorageError as e:
            logger.error(f"Failed to log step {result.step_id} of {execution_id}: {e}")
            return None

        return entry

    async def finalize(
        self,
        execution_id: str,
        status: ExecutionStatus,
        resource_count: int,
        error_message: str | None = None,
    ) -> None:
        if not await self.is_available():
            return
        try:
            await self.store.update_execution(
                execution_id,
                status,
                resource_count=resource_count,
                error_message=error_message,
                completed_at=utc_now(),
            )
        except StorageError as e:
            logger.error(f"Failed to finalize execution {execution_id}: {e}")

    async def mark_cleaned(self, entry_id: str) -> bool:
        """Flag one log entry as cleaned. Returns False if the write was lost."""
        if not await self.is_available():
            return False
        try:
            await self.store.update_log_entry(entry_id, CleanupStatus.CLEANED)
        except StorageError as e:
            logger.error(f"Failed to mark log entry {entry_id} cleaned: {e}")
            return False
        return True

    async def mark_execution_cleaned(self, execution_id: str) -> None:
        if not await self.is_available():
            return
        try:
            await self.store.update_execution(execution_id, ExecutionStatus.CLEANED)
        except StorageError as e:
            logger.error(f"Failed to mark execution {execution_id} cleaned: {e}")

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        if not await self.is_available():
            return None
        return await self.store.get_execution(execution_id)

    async def list_cleanable(self, execution_id: str) -> list[ExecutionLogEntry]:
        """Successful, not yet cleaned entries of an execution, oldest first."""
        if not await self.is_available():
            return []
        return await self.store.list_log_entries(
            execution_id,
            status=StepStatus.SUCCESS,
            cleanup_status=CleanupStatus.PENDING,
        )

    async def list_entries(self, execution_id: str) -> list[ExecutionLogEntry]:
        if not await self.is_available():
            return []
        return await self.store.list_log_entries(execution_id)

    async def list_recent(self, tenant_id: str, limit: int = 10) -> list[ExecutionRecord]:
        if not await self.is_available():
            return []
        return await self.store.list_executions(tenant_id, limit=limit)

    async def count_today(self, tenant_id: str) -> int:
        """Executions the tenant started since UTC midnight; 0 without a store."""
        if not await self.is_available():
            return 0
        return await self.store.count_executions_since(tenant_id, start_of_utc_day())

    async def find_by_hash(
        self,
        tenant_id: str,
        execution_hash: str,
        statuses: Sequence[ExecutionStatus],
    ) -> str | None:
        if not await self.is_available():
            return None
        return await self.store.find_execution_by_hash(tenant_id, execution_hash, statuses)
