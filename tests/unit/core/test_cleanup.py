"""
Tests for the compensation engine and the built-in undo actions.
"""

import pytest

from seedline.core.cleanup import (
    CompensationEngine,
    UndoRegistry,
    archive_notion_page,
    close_github_issue,
    default_undo_registry,
    delete_slack_message,
)
from seedline.core.config import SeedlineConfig
from seedline.core.exceptions import ConfigError, DisabledError, ExecutionNotFoundError
from seedline.core.types import ExecutionLogEntry, ExecutionStatus, StepStatus
from seedline.executors.base import ActionError
from seedline.service import Seedline
from seedline.storage.errors import StoreUnavailableError

TENANT = "org-1"


def _entry(resource_type, resource_id, output=None, payload=None):
    return ExecutionLogEntry(
        entry_id="e1",
        execution_id="x1",
        step_id="s",
        integration="i",
        action_name="create",
        provider_action="P",
        status=StepStatus.SUCCESS,
        external_resource_id=resource_id,
        external_resource_type=resource_type,
        input_payload=payload,
        output_summary=output,
    )


class TestCleanupExecution:
    @pytest.mark.asyncio
    async def test_round_trip_undoes_in_reverse_order(self, service, executor, store):
        result = await service.run_scenario(TENANT, "chain")

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 3
        assert summary.failed == 0
        assert summary.errors == []
        undo_calls = [c for c in executor.calls if c[1].endswith("_DELETE")]
        assert [c[1] for c in undo_calls] == ["GAMMA_DELETE", "BETA_DELETE", "ALPHA_DELETE"]
        assert [c[2] for c in undo_calls] == [{"id": "G1"}, {"id": "B1"}, {"id": "X1"}]
        assert [c[0] for c in undo_calls] == ["conn-g", "conn-b", "conn-a"]

        record = await store.get_execution(result.execution_id)
        assert record.status == ExecutionStatus.CLEANED
        assert await service.orchestrator.log.list_cleanable(result.execution_id) == []

    @pytest.mark.asyncio
    async def test_second_cleanup_reports_already_cleaned(self, service, executor):
        result = await service.run_scenario(TENANT, "chain")
        await service.cleanup_execution(TENANT, result.execution_id)
        calls = len(executor.calls)

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.errors == ["Already cleaned"]
        assert summary.cleaned == 0
        assert len(executor.calls) == calls

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_the_sweep(self, service, executor, store):
        result = await service.run_scenario(TENANT, "chain")
        executor.responses["BETA_DELETE"] = ActionError("forbidden", status_code=403)

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 2
        assert summary.failed == 1
        assert len(summary.errors) == 1
        assert summary.errors[0].startswith("beta_thing/B1: ")
        assert executor.calls_for("ALPHA_DELETE")

        record = await store.get_execution(result.execution_id)
        assert record.status == ExecutionStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_retry_cleans_only_what_is_left(self, service, executor, store):
        result = await service.run_scenario(TENANT, "chain")
        executor.queue("BETA_DELETE", ActionError("forbidden", status_code=403))
        await service.cleanup_execution(TENANT, result.execution_id)

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 1
        assert len(executor.calls_for("ALPHA_DELETE")) == 1
        assert len(executor.calls_for("BETA_DELETE")) == 2
        record = await store.get_execution(result.execution_id)
        assert record.status == ExecutionStatus.CLEANED

    @pytest.mark.asyncio
    async def test_lost_entry_write_still_counts_as_cleaned(
        self, service, executor, store, monkeypatch
    ):
        result = await service.run_scenario(TENANT, "chain")
        update_log_entry = store.update_log_entry
        failures = [StoreUnavailableError("connection reset")]

        async def flaky_update(entry_id, cleanup_status):
            if failures:
                raise failures.pop()
            await update_log_entry(entry_id, cleanup_status)

        monkeypatch.setattr(store, "update_log_entry", flaky_update)

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 3
        assert summary.failed == 0
        assert summary.errors == []
        record = await store.get_execution(result.execution_id)
        assert record.status == ExecutionStatus.CLEANED

        again = await service.cleanup_execution(TENANT, result.execution_id)

        assert again.errors == ["Already cleaned"]
        assert len(executor.calls_for("GAMMA_DELETE")) == 1

    @pytest.mark.asyncio
    async def test_lost_execution_write_does_not_escape(
        self, service, executor, store, monkeypatch
    ):
        result = await service.run_scenario(TENANT, "chain")
        update_execution = store.update_execution

        async def broken_update(*args, **kwargs):
            raise StoreUnavailableError("connection reset")

        monkeypatch.setattr(store, "update_execution", broken_update)

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 3
        assert summary.failed == 0
        record = await store.get_execution(result.execution_id)
        assert record.status == ExecutionStatus.COMPLETED

        monkeypatch.setattr(store, "update_execution", update_execution)
        retry = await service.cleanup_execution(TENANT, result.execution_id)

        assert retry.cleaned == 0
        assert len(executor.calls_for("ALPHA_DELETE")) == 1
        record = await store.get_execution(result.execution_id)
        assert record.status == ExecutionStatus.CLEANED

    @pytest.mark.asyncio
    async def test_resource_without_undo_action_is_skipped(
        self, store, executor, connections, config, scenarios, undo_registry
    ):
        registry = UndoRegistry()
        registry.register(undo_registry.get("alpha_thing"))
        service = Seedline(
            store=store,
            executor=executor,
            connections=connections,
            config=config,
            scenarios=scenarios,
            undo_registry=registry,
        )
        result = await service.run_scenario(TENANT, "chain")

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 1
        assert summary.skipped == 2

    @pytest.mark.asyncio
    async def test_disconnected_integration_is_skipped(self, service, connections, executor):
        result = await service.run_scenario(TENANT, "chain")
        connections.disconnect(TENANT, "gamma")

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 2
        assert summary.skipped == 1
        assert executor.calls_for("GAMMA_DELETE") == []

    @pytest.mark.asyncio
    async def test_failed_steps_are_not_compensated(self, service, executor):
        executor.queue("BETA_CREATE", ActionError("bad", status_code=400))
        result = await service.run_scenario(TENANT, "chain")

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 1
        assert [c[1] for c in executor.calls if c[1].endswith("_DELETE")] == ["ALPHA_DELETE"]

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_clean(self, service):
        result = await service.run_scenario(TENANT, "chain")

        with pytest.raises(ExecutionNotFoundError):
            await service.cleanup_execution("org-2", result.execution_id)

    @pytest.mark.asyncio
    async def test_unknown_execution(self, service):
        with pytest.raises(ExecutionNotFoundError) as exc_info:
            await service.cleanup_execution(TENANT, "missing")

        assert exc_info.value.code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_disabled_service_refuses_cleanup(self, store, executor, connections, scenarios):
        service = Seedline(
            store=store,
            executor=executor,
            connections=connections,
            config=SeedlineConfig(enabled=False),
            scenarios=scenarios,
        )

        with pytest.raises(DisabledError):
            await service.cleanup_execution(TENANT, "anything")

    @pytest.mark.asyncio
    async def test_cleanup_needs_api_key_when_executor_does(self, service, executor):
        result = await service.run_scenario(TENANT, "chain")
        executor.requires_api_key = True
        calls = len(executor.calls)

        with pytest.raises(ConfigError):
            await service.cleanup_execution(TENANT, result.execution_id)

        assert len(executor.calls) == calls

    @pytest.mark.asyncio
    async def test_engine_uses_runner_retry_policy(self, service, executor):
        result = await service.run_scenario(TENANT, "chain")
        executor.queue("GAMMA_DELETE", ActionError("unavailable", status_code=503))

        summary = await service.cleanup_execution(TENANT, result.execution_id)

        assert summary.cleaned == 3
        assert len(executor.calls_for("GAMMA_DELETE")) == 2
        assert isinstance(service.compensation, CompensationEngine)


class TestBuiltinUndoActions:
    def test_registered_resource_types(self):
        assert default_undo_registry.resource_types() == [
            "github_issue",
            "hubspot_contact",
            "hubspot_deal",
            "linear_issue",
            "notion_page",
            "slack_message",
        ]

    def test_github_issue_closed_from_url(self):
        entry = _entry(
            "github_issue", "42", output={"html_url": "https://github.com/acme/api/issues/42"}
        )

        assert close_github_issue(entry) == {
            "state": "closed",
            "issue_number": 42,
            "owner": "acme",
            "repo": "api",
        }

    def test_github_issue_coordinates_from_payload(self):
        entry = _entry("github_issue", "7", output={"number": 7}, payload={"owner": "o", "repo": "r"})

        payload = close_github_issue(entry)

        assert (payload["owner"], payload["repo"], payload["issue_number"]) == ("o", "r", 7)

    def test_slack_message_carries_channel(self):
        entry = _entry("slack_message", "1.2", output={"ts": "1.2", "channel": "C1"})

        assert delete_slack_message(entry) == {"ts": "1.2", "channel": "C1"}

    def test_notion_page_archived(self):
        assert archive_notion_page(_entry("notion_page", "p1")) == {
            "page_id": "p1",
            "archived": True,
        }

    def test_undo_provider_actions(self):
        assert default_undo_registry.get("linear_issue").provider_action == "LINEAR_UPDATE_ISSUE"
        assert default_undo_registry.get("hubspot_deal").build_input(
            _entry("hubspot_deal", "d1")
        ) == {"dealId": "d1"}
        assert default_undo_registry.get(None) is None
        assert "slack_channel" not in default_undo_registry
