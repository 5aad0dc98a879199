"""
Tests for InMemoryExecutionStore.
"""

from datetime import UTC, datetime, timedelta

import pytest

from seedline.core.types import (
    CleanupStatus,
    ExecutionLogEntry,
    ExecutionRecord,
    ExecutionStatus,
    StepStatus,
    TenantRecord,
)
from seedline.storage.errors import (
    SandboxFlagUnavailableError,
    StorageError,
    StoreUnavailableError,
)
from seedline.storage.memory import InMemoryExecutionStore

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _record(execution_id, tenant="org-1", hash_="h", status=ExecutionStatus.RUNNING, minutes=0):
    return ExecutionRecord(
        execution_id=execution_id,
        tenant_id=tenant,
        scenario_name="chain",
        execution_hash=hash_,
        status=status,
        created_at=T0 + timedelta(minutes=minutes),
    )


def _entry(entry_id, execution_id="x1", status=StepStatus.SUCCESS):
    return ExecutionLogEntry(
        entry_id=entry_id,
        execution_id=execution_id,
        step_id=entry_id,
        integration="alpha",
        action_name="create",
        provider_action="ALPHA_CREATE",
        status=status,
        external_resource_id=f"R-{entry_id}",
        external_resource_type="alpha_thing",
        input_payload={"title": "t"},
    )


@pytest.fixture
async def storage():
    store = InMemoryExecutionStore()
    async with store:
        yield store


class TestExecutions:
    @pytest.mark.asyncio
    async def test_create_and_get(self, storage):
        await storage.create_execution(_record("x1"))

        record = await storage.get_execution("x1")

        assert record.tenant_id == "org-1"
        assert record.status == ExecutionStatus.RUNNING
        assert await storage.get_execution("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, storage):
        await storage.create_execution(_record("x1"))

        with pytest.raises(StorageError):
            await storage.create_execution(_record("x1"))

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, storage):
        await storage.create_execution(_record("x1"))

        record = await storage.get_execution("x1")
        record.status = ExecutionStatus.FAILED

        assert (await storage.get_execution("x1")).status == ExecutionStatus.RUNNING

    @pytest.mark.asyncio
    async def test_update_sets_only_given_fields(self, storage):
        await storage.create_execution(_record("x1"))
        done = T0 + timedelta(minutes=5)

        await storage.update_execution("x1", ExecutionStatus.PARTIAL, resource_count=2, completed_at=done)
        await storage.update_execution("x1", ExecutionStatus.CLEANED)

        record = await storage.get_execution("x1")
        assert record.status == ExecutionStatus.CLEANED
        assert record.resource_count == 2
        assert record.completed_at == done
        assert record.error_message is None

    @pytest.mark.asyncio
    async def test_update_unknown_execution(self, storage):
        with pytest.raises(StorageError):
            await storage.update_execution("missing", ExecutionStatus.FAILED)

    @pytest.mark.asyncio
    async def test_find_by_hash_filters_status_and_tenant(self, storage):
        await storage.create_execution(_record("old", status=ExecutionStatus.COMPLETED, minutes=0))
        await storage.create_execution(_record("new", status=ExecutionStatus.COMPLETED, minutes=1))
        await storage.create_execution(_record("failed", status=ExecutionStatus.FAILED, minutes=2))
        await storage.create_execution(_record("other", tenant="org-2", minutes=3))

        running_or_done = [ExecutionStatus.RUNNING, ExecutionStatus.COMPLETED]
        assert await storage.find_execution_by_hash("org-1", "h", running_or_done) == "new"
        assert await storage.find_execution_by_hash("org-1", "other-hash", running_or_done) is None
        assert await storage.find_execution_by_hash("org-2", "h", [ExecutionStatus.FAILED]) is None

    @pytest.mark.asyncio
    async def test_count_since(self, storage):
        await storage.create_execution(_record("a", minutes=-60))
        await storage.create_execution(_record("b", minutes=0))
        await storage.create_execution(_record("c", minutes=10))

        assert await storage.count_executions_since("org-1", T0) == 2
        assert await storage.count_executions_since("org-2", T0) == 0

    @pytest.mark.asyncio
    async def test_list_newest_first_with_limit(self, storage):
        for i in range(5):
            await storage.create_execution(_record(f"x{i}", minutes=i))
        await storage.create_execution(_record("y", tenant="org-2"))

        records = await storage.list_executions("org-1", limit=3)

        assert [r.execution_id for r in records] == ["x4", "x3", "x2"]


class TestLogEntries:
    @pytest.mark.asyncio
    async def test_entries_in_chronological_order(self, storage):
        await storage.create_execution(_record("x1"))
        for entry_id in ("c", "a", "b"):
            await storage.append_log_entry(_entry(entry_id))

        entries = await storage.list_log_entries("x1")

        assert [e.entry_id for e in entries] == ["c", "a", "b"]
        assert entries[0].input_payload == {"title": "t"}

    @pytest.mark.asyncio
    async def test_filters(self, storage):
        await storage.create_execution(_record("x1"))
        await storage.append_log_entry(_entry("ok"))
        await storage.append_log_entry(_entry("bad", status=StepStatus.ERROR))
        await storage.append_log_entry(_entry("done"))
        await storage.update_log_entry("done", CleanupStatus.CLEANED)

        pending_success = await storage.list_log_entries(
            "x1", status=StepStatus.SUCCESS, cleanup_status=CleanupStatus.PENDING
        )

        assert [e.entry_id for e in pending_success] == ["ok"]
        errors = await storage.list_log_entries("x1", status=StepStatus.ERROR)
        assert [e.entry_id for e in errors] == ["bad"]

    @pytest.mark.asyncio
    async def test_append_to_unknown_execution(self, storage):
        with pytest.raises(StorageError):
            await storage.append_log_entry(_entry("a", execution_id="missing"))

    @pytest.mark.asyncio
    async def test_update_unknown_entry(self, storage):
        with pytest.raises(StorageError):
            await storage.update_log_entry("missing", CleanupStatus.CLEANED)


class TestTenants:
    @pytest.mark.asyncio
    async def test_save_and_get(self, storage):
        await storage.save_tenant(TenantRecord("org-1", "Acme", is_sandbox=True))

        tenant = await storage.get_tenant("org-1")

        assert tenant.is_sandbox is True
        assert await storage.get_tenant("org-9") is None

    @pytest.mark.asyncio
    async def test_unprovisioned_flag(self):
        store = InMemoryExecutionStore(sandbox_flag_provisioned=False)

        with pytest.raises(SandboxFlagUnavailableError):
            await store.get_tenant("org-1")


class TestAvailability:
    @pytest.mark.asyncio
    async def test_unavailable_store_raises_on_every_call(self):
        store = InMemoryExecutionStore(available=False)

        with pytest.raises(StoreUnavailableError):
            await store.probe()
        with pytest.raises(StoreUnavailableError):
            await store.create_execution(_record("x1"))
        with pytest.raises(StorageError):
            await store.list_executions("org-1")

    @pytest.mark.asyncio
    async def test_health_check(self, storage):
        await storage.create_execution(_record("x1"))
        await storage.append_log_entry(_entry("a"))

        health = await storage.health_check()

        assert health["status"] == "healthy"
        assert health["backend"] == "memory"
        assert health["total_executions"] == 1
        assert health["total_log_entries"] == 1

    @pytest.mark.asyncio
    async def test_health_check_unhealthy(self):
        health = await InMemoryExecutionStore(available=False).health_check()

        assert health["status"] == "unhealthy"
        assert "seedline_executions" in health["error"]

    @pytest.mark.asyncio
    async def test_clear_all(self, storage):
        await storage.create_execution(_record("x1"))
        await storage.create_execution(_record("x2"))

        assert await storage.clear_all() == 2
        assert storage.get_execution_count() == 0
