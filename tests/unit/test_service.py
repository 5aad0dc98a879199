"""
Tests for the Seedline facade and the static connection resolver.
"""

import pytest

from seedline.connections import StaticConnectionResolver
from seedline.core.config import SeedlineConfig
from seedline.core.types import ExecutionStatus
from seedline.scenarios import default_registry
from seedline.service import Seedline
from seedline.storage.memory import InMemoryExecutionStore

try:
    import aiohttp  # noqa: F401

    AIOHTTP_AVAILABLE = True
except ImportError:
    AIOHTTP_AVAILABLE = False


class TestStaticConnectionResolver:
    @pytest.mark.asyncio
    async def test_resolve_by_integration(self):
        resolver = StaticConnectionResolver({"org-1": {"GitHub": "ca_gh"}})

        assert await resolver.resolve("org-1", "github") == "ca_gh"
        assert await resolver.resolve("org-1", "linear") is None
        assert await resolver.resolve("org-2", "github") is None

    @pytest.mark.asyncio
    async def test_resolve_by_app_alias(self):
        resolver = StaticConnectionResolver({"org-1": {"slackbot": "ca_slack"}})

        assert await resolver.resolve("org-1", "slack") == "ca_slack"
        assert await resolver.is_connected("org-1", "slack")

    @pytest.mark.asyncio
    async def test_resolve_all_leaves_out_missing(self):
        resolver = StaticConnectionResolver({"org-1": {"slack": "a", "notion": "b"}})

        handles = await resolver.resolve_all("org-1", ["slack", "github", "notion"])

        assert handles == {"slack": "a", "notion": "b"}

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self):
        resolver = StaticConnectionResolver()
        resolver.connect("org-1", "Slack", "ca_1")

        assert await resolver.resolve("org-1", "slack") == "ca_1"

        resolver.disconnect("org-1", "slack")
        assert await resolver.resolve("org-1", "slack") is None


class TestSeedline:
    def test_defaults_to_builtin_scenarios(self, store, executor, connections, config):
        service = Seedline(store=store, executor=executor, connections=connections, config=config)

        assert [s.name for s in service.list_scenarios()] == default_registry.names()
        assert service.compensation.log is service.orchestrator.log
        assert service.compensation.runner is service.orchestrator.runner

    @pytest.mark.asyncio
    async def test_run_and_history(self, service):
        first = await service.run_scenario("org-1", "chain")
        second = await service.run_scenario("org-1", "chain", force=True)

        records = await service.list_recent_executions("org-1", limit=5)

        assert {r.execution_id for r in records} == {first.execution_id, second.execution_id}
        assert all(r.status == ExecutionStatus.COMPLETED for r in records)
        assert await service.list_recent_executions("org-1", limit=1) == records[:1]

    @pytest.mark.asyncio
    async def test_borrowed_resources_are_not_closed(self, service, executor):
        async with service:
            pass

        assert executor.closed is False

    @pytest.mark.asyncio
    async def test_owned_resources_are_closed(self, executor, connections, config):
        service = Seedline(
            store=InMemoryExecutionStore(),
            executor=executor,
            connections=connections,
            config=config,
            owns_resources=True,
        )

        async with service:
            pass

        assert executor.closed is True

    @pytest.mark.skipif(not AIOHTTP_AVAILABLE, reason="aiohttp not installed")
    def test_from_config(self):
        from seedline.executors.http import HttpActionExecutor

        config = SeedlineConfig(enabled=True, api_key="k", storage_url="memory://")

        service = Seedline.from_config(config)

        assert isinstance(service.store, InMemoryExecutionStore)
        assert isinstance(service.executor, HttpActionExecutor)
        assert service.executor.api_key == "k"
        assert isinstance(service.connections, StaticConnectionResolver)
        assert service.config is config
