"""
Scenario orchestrator - the top-level control loop.

A run goes through three phases:

1. Preconditions, each failing fast with its own error: feature enabled,
   tenant is a sandbox, daily quota left, scenario known, integrations
   connected, and (unless forced) no earlier run in the idempotency window.
   Nothing is logged while they are checked.
2. Steps, in declared order. A step whose dependencies did not all succeed
   is skipped. Every attempted step is persisted as soon as it finishes.
3. Finalization: ``failed`` when every attempted step errored, ``partial``
   when some did, ``completed`` otherwise.

``run()`` never raises. A precondition or setup failure comes back as a
``failed`` ExecutionResult carrying the exception in ``error``.

Example:
    >>> orchestrator = ScenarioOrchestrator(
    ...     config=SeedlineConfig(enabled=True, sandbox_tenants=("org-1",)),
    ...     store=InMemoryExecutionStore(),
    ...     executor=HttpActionExecutor(api_key="..."),
    ...     connections=StaticConnectionResolver({"org-1": {"slackbot": "ca_1"}}),
    ... )
    >>> result = await orchestrator.run("org-1", "incident-response")
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from typing import Any

from seedline.connections import ConnectionResolver
from seedline.core.config import SeedlineConfig, get_config
from seedline.core.exceptions import (
    ConfigError,
    DisabledError,
    DuplicateExecutionError,
    InvalidScenarioError,
    MissingIntegrationsError,
    NotSandboxedError,
    OrgNotFoundError,
    RateLimitedError,
    SeedlineError,
)
from seedline.core.execution_log import ExecutionLog
from seedline.core.idempotency import IdempotencyTracker
from seedline.core.logger import get_logger
from seedline.core.payload import PayloadResolver
from seedline.core.runner import StepRunner
from seedline.core.types import (
    ExecutionResult,
    ExecutionStatus,
    ScenarioDefinition,
    StepResult,
    StepStatus,
)
from seedline.executors.base import ActionExecutor
from seedline.monitoring.logging import bound_execution_context
from seedline.storage.base import ExecutionStore
from seedline.storage.errors import StorageError

logger = get_logger(__name__)


def aggregate_status(results: list[StepResult]) -> ExecutionStatus:
    """``failed`` if every attempted step errored, ``partial`` if some did, else ``completed``."""
    errors = sum(1 for r in results if r.status == StepStatus.ERROR)
    if errors and errors == len(results):
        return ExecutionStatus.FAILED
    if errors:
        return ExecutionStatus.PARTIAL
    return ExecutionStatus.COMPLETED


class ScenarioOrchestrator:
    """
    Runs scenarios for tenants.

    Args:
        store: Persistence backend for the execution log, quota and sandbox flags
        executor: Action executor performing provider calls
        connections: Resolver for the tenant's connected integrations
        config: Settings; defaults to the global configuration
        scenarios: Scenario catalogue; defaults to the built-in registry
        resolver: Payload resolver; defaults to one using the built-in enrichers
        listeners: Lifecycle listeners
        sleep: Awaitable sleep used for step pacing and retry backoff
        clock: UNIX time source for the idempotency window
    """

    def __init__(
        self,
        store: ExecutionStore,
        executor: ActionExecutor,
        connections: ConnectionResolver,
        config: SeedlineConfig | None = None,
        scenarios: Any = None,
        resolver: PayloadResolver | None = None,
        listeners: list | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or get_config()
        if scenarios is None:
            from seedline.scenarios import default_registry

            scenarios = default_registry

        self.store = store
        self.connections = connections
        self.scenarios = scenarios
        self.log = ExecutionLog(store, summary_threshold=self.config.summary_threshold)
        self.idempotency = IdempotencyTracker(
            self.log, window_seconds=self.config.idempotency_window, clock=clock
        )
        self.runner = StepRunner(executor, retry_delays=self.config.retry_delays, sleep=sleep)
        self.resolver = resolver or PayloadResolver(seed_tag=self.config.seed_tag)
        self.listeners = list(listeners or [])
        self._sleep = sleep

    # ==========================================================================
    # Preconditions
    # ==========================================================================

    def _check_enabled(self) -> None:
        if not self.config.enabled:
            msg = "Scenario execution is disabled. Set SEEDLINE_ENABLED=true to enable it."
            raise DisabledError(msg)
        self.check_credentials()

    def check_credentials(self) -> None:
        """
        Raise ConfigError if the executor needs an API key and none is configured.

        The key is needed when ``require_api_key`` is set or when the executor
        declares ``requires_api_key`` (the HTTP executor does).
        """
        needs_key = self.config.require_api_key or self.runner.executor.requires_api_key
        if needs_key and not self.config.api_key:
            msg = "SEEDLINE_API_KEY is required for scenario execution."
            raise ConfigError(msg)

    async def _check_sandbox(self, tenant_id: str) -> None:
        if self.config.is_sandbox_allowed(tenant_id):
            logger.info(f"Tenant {tenant_id} allowed via sandbox allow-list")
            return

        try:
            tenant = await self.store.get_tenant(tenant_id)
        except StorageError as e:
            # Flag not provisioned: the allow-list is the only authority
            msg = (
                f"Sandbox flag unavailable ({e}) and tenant {tenant_id} is not in the "
                f"allow-list. Add it to SEEDLINE_SANDBOX_TENANTS."
            )
            raise NotSandboxedError(msg) from e

        if tenant is None:
            msg = f"Tenant not found: {tenant_id}"
            raise OrgNotFoundError(msg)
        if not tenant.is_sandbox:
            msg = (
                f'Tenant "{tenant.name}" ({tenant_id}) is not a sandbox. Set is_sandbox '
                f"or add the tenant to SEEDLINE_SANDBOX_TENANTS."
            )
            raise NotSandboxedError(msg)

    async def _check_quota(self, tenant_id: str) -> None:
        count = await self.log.count_today(tenant_id)
        if count >= self.config.max_daily_executions:
            raise RateLimitedError(self.config.max_daily_executions)

    def _get_scenario(self, scenario_name: str) -> ScenarioDefinition:
        scenario = self.scenarios.get(scenario_name)
        if scenario is None:
            raise InvalidScenarioError(scenario_name, self.scenarios.names())
        return scenario

    # ==========================================================================
    # Run
    # ==========================================================================

    async def run(self, tenant_id: str, scenario_name: str, force: bool = False) -> ExecutionResult:
        """
        Run a scenario for a tenant.

        Args:
            tenant_id: Tenant to run for
            scenario_name: Registered scenario name
            force: Run even if the idempotency window already holds a run
        """
        start = time.perf_counter()

        def elapsed_ms() -> int:
            return int((time.perf_counter() - start) * 1000)

        def failed(error: Exception) -> ExecutionResult:
            return ExecutionResult(
                execution_id="",
                tenant_id=tenant_id,
                scenario_name=scenario_name,
                status=ExecutionStatus.FAILED,
                total_duration_ms=elapsed_ms(),
                error=error,
            )

        try:
            self._check_enabled()
            await self._check_sandbox(tenant_id)
            await self._check_quota(tenant_id)
            scenario = self._get_scenario(scenario_name)

            logger.info(f"Starting scenario {scenario.name}: {scenario.description}")

            handles = await self.connections.resolve_all(tenant_id, scenario.integrations)
            missing = [i for i in scenario.required_integrations if i not in handles]
            if missing:
                raise MissingIntegrationsError(missing)

            execution_hash = self.idempotency.fingerprint(tenant_id, scenario.name)
            if not force:
                existing_id = await self.idempotency.find_existing(tenant_id, execution_hash)
                if existing_id:
                    logger.warning(
                        f"Idempotency hit: execution {existing_id} already exists "
                        f"for this time window"
                    )
                    return ExecutionResult(
                        execution_id=existing_id,
                        tenant_id=tenant_id,
                        scenario_name=scenario.name,
                        status=ExecutionStatus.COMPLETED,
                        total_duration_ms=elapsed_ms(),
                        error=DuplicateExecutionError(existing_id),
                    )

            execution_id = await self.log.create_execution(tenant_id, scenario.name, execution_hash)
            logger.info(f"Created execution {execution_id}")
        except SeedlineError as e:
            logger.warning(f"Scenario {scenario_name} rejected for {tenant_id}: {e}")
            return failed(e)
        except Exception as e:
            logger.exception(f"Scenario {scenario_name} setup failed for {tenant_id}: {e}")
            return failed(e)

        with bound_execution_context(
            execution_id=execution_id, tenant_id=tenant_id, scenario_name=scenario.name
        ):
            return await self._execute(execution_id, tenant_id, scenario, handles, elapsed_ms)

    async def _execute(
        self,
        execution_id: str,
        tenant_id: str,
        scenario: ScenarioDefinition,
        handles: dict[str, str],
        elapsed_ms: Callable[[], int],
    ) -> ExecutionResult:
        results: dict[str, StepResult] = {}
        attempted: list[StepResult] = []
        skipped: list[str] = []

        await self._notify_listeners("on_execution_start", execution_id, tenant_id, scenario.name)

        try:
            for step in scenario.steps:
                # A dependency never reached counts as failed
                blocked = [
                    dep for dep in step.depends_on if dep not in results or not results[dep].succeeded
                ]
                if blocked:
                    reason = f"dependency not satisfied ({', '.join(blocked)})"
                    logger.warning(f"Skipping step {step.id}: {reason}")
                    skipped.append(step.id)
                    await self._notify_listeners(
                        "on_step_skipped", execution_id, scenario.name, step.id, reason
                    )
                    continue

                if attempted and self.config.step_delay > 0:
                    await self._sleep(self.config.step_delay)

                with bound_execution_context(step_id=step.id):
                    payload = self.resolver.resolve(step, results)
                    result = await self.runner.run_step(step, handles.get(step.integration), payload)
                    await self.log.append(execution_id, result, payload)

                results[step.id] = result
                attempted.append(result)
                await self._notify_listeners("on_step_result", execution_id, scenario.name, result)
        except Exception as e:
            logger.exception(f"Execution {execution_id} aborted: {e}")
            resource_count = sum(1 for r in attempted if r.created_resource)
            await self.log.finalize(execution_id, ExecutionStatus.FAILED, resource_count, str(e))
            result = ExecutionResult(
                execution_id=execution_id,
                tenant_id=tenant_id,
                scenario_name=scenario.name,
                status=ExecutionStatus.FAILED,
                steps=attempted,
                skipped_steps=skipped,
                resource_count=resource_count,
                total_duration_ms=elapsed_ms(),
                error=e,
            )
            await self._notify_listeners("on_execution_finish", result)
            return result

        status = aggregate_status(attempted)
        resource_count = sum(1 for r in attempted if r.created_resource)
        failed_steps = [r.step_id for r in attempted if r.status == StepStatus.ERROR]
        error_message = f"Failed steps: {', '.join(failed_steps)}" if failed_steps else None

        await self.log.finalize(execution_id, status, resource_count, error_message)

        result = ExecutionResult(
            execution_id=execution_id,
            tenant_id=tenant_id,
            scenario_name=scenario.name,
            status=status,
            steps=attempted,
            skipped_steps=skipped,
            resource_count=resource_count,
            total_duration_ms=elapsed_ms(),
        )
        logger.info(
            f"Scenario {scenario.name} {status.value}. "
            f"Resources: {resource_count}, Duration: {result.total_duration_ms}ms"
        )

        await self._notify_listeners("on_execution_finish", result)
        return result

    async def _notify_listeners(self, event_name: str, *args) -> None:
        """Notify all listeners of an event."""
        for listener in self.listeners:
            try:
                handler = getattr(listener, event_name, None)
                if handler:
                    outcome = handler(*args)
                    if inspect.iscoroutine(outcome):
                        await outcome
            except Exception as e:
                logger.warning(f"Listener {type(listener).__name__}.{event_name} error: {e}")
