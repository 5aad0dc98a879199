"""
Seedline service facade.

Bundles the orchestrator and the compensation engine behind the three
entry points callers use: run a scenario, clean up one of its executions,
and list recent executions.

Example:
    >>> from seedline import Seedline, SeedlineConfig, StaticConnectionResolver
    >>>
    >>> config = SeedlineConfig(enabled=True, sandbox_tenants=("org-demo",), api_key="...")
    >>> connections = StaticConnectionResolver({"org-demo": {"slack": "ca_123"}})
    >>> async with Seedline.from_config(config, connections=connections) as seedline:
    ...     result = await seedline.run_scenario("org-demo", "incident-response")
    ...     summary = await seedline.cleanup_execution("org-demo", result.execution_id)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

from seedline.connections import ConnectionResolver, StaticConnectionResolver
from seedline.core.cleanup import CompensationEngine, UndoRegistry
from seedline.core.config import SeedlineConfig, get_config
from seedline.core.exceptions import DisabledError
from seedline.core.logger import get_logger
from seedline.core.orchestrator import ScenarioOrchestrator
from seedline.core.types import CleanupSummary, ExecutionRecord, ExecutionResult, ScenarioDefinition
from seedline.executors.base import ActionExecutor
from seedline.storage.base import ExecutionStore

logger = get_logger(__name__)


class Seedline:
    """
    Scenario execution service.

    Args:
        store: Persistence backend shared by runs and cleanups
        executor: Action executor for provider calls and undo actions
        connections: Resolver for the tenant's connected integrations
        config: Settings; defaults to the global configuration
        scenarios: Scenario catalogue; defaults to the built-in registry
        listeners: Execution lifecycle listeners
        undo_registry: Undo actions; defaults to the built-in ones
        owns_resources: Close the store and executor on ``close()``
    """

    def __init__(
        self,
        store: ExecutionStore,
        executor: ActionExecutor,
        connections: ConnectionResolver,
        config: SeedlineConfig | None = None,
        scenarios: Any = None,
        listeners: list | None = None,
        undo_registry: UndoRegistry | None = None,
        owns_resources: bool = False,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or get_config()
        self.store = store
        self.executor = executor
        self.connections = connections
        self.orchestrator = ScenarioOrchestrator(
            store=store,
            executor=executor,
            connections=connections,
            config=self.config,
            scenarios=scenarios,
            listeners=listeners,
            sleep=sleep,
            clock=clock,
        )
        self.compensation = CompensationEngine(
            log=self.orchestrator.log,
            runner=self.orchestrator.runner,
            connections=connections,
            registry=undo_registry,
        )
        self._owns_resources = owns_resources

    @classmethod
    def from_config(
        cls,
        config: SeedlineConfig | None = None,
        connections: ConnectionResolver | None = None,
        **kwargs: Any,
    ) -> Seedline:
        """
        Build a service whose store and HTTP executor come from the configuration.

        The returned service owns both and closes them on ``close()``.
        """
        from seedline.executors.http import HttpActionExecutor
        from seedline.storage.factory import create_store

        config = config or get_config()
        store = create_store(config.storage_url)
        executor = HttpActionExecutor(api_key=config.api_key, base_url=config.executor_base_url)
        return cls(
            store=store,
            executor=executor,
            connections=connections or StaticConnectionResolver(),
            config=config,
            owns_resources=True,
            **kwargs,
        )

    @property
    def scenarios(self) -> Any:
        return self.orchestrator.scenarios

    def list_scenarios(self) -> list[ScenarioDefinition]:
        return self.scenarios.list()

    async def initialize(self) -> None:
        await self.store.initialize()

    async def close(self) -> None:
        if not self._owns_resources:
            return
        await self.executor.close()
        await self.store.close()

    async def __aenter__(self) -> Seedline:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def run_scenario(
        self, tenant_id: str, scenario_name: str, force: bool = False
    ) -> ExecutionResult:
        """Run a scenario; never raises, see ``ScenarioOrchestrator.run``."""
        return await self.orchestrator.run(tenant_id, scenario_name, force=force)

    async def cleanup_execution(self, tenant_id: str, execution_id: str) -> CleanupSummary:
        """
        Undo every resource an execution created.

        Raises:
            DisabledError: If scenario execution is switched off
            ConfigError: If the executor needs an API key and none is configured
            ExecutionNotFoundError: If the execution doesn't belong to the tenant
        """
        if not self.config.enabled:
            msg = "Scenario execution is disabled. Set SEEDLINE_ENABLED=true to enable it."
            raise DisabledError(msg)
        self.orchestrator.check_credentials()
        return await self.compensation.cleanup(tenant_id, execution_id)

    async def list_recent_executions(self, tenant_id: str, limit: int = 10) -> list[ExecutionRecord]:
        """Most recent executions of a tenant, newest first."""
        return await self.orchestrator.log.list_recent(tenant_id, limit=limit)
