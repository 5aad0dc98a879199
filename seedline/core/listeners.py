"""
Execution lifecycle listeners.

Listeners observe an orchestrator run without taking part in it: a
listener that raises is logged and ignored.

Example:
    >>> orchestrator = ScenarioOrchestrator(
    ...     ...,
    ...     listeners=[LoggingListener(), MetricsListener()],
    ... )
"""

from __future__ import annotations

import logging
from typing import Any

from seedline.core.types import ExecutionResult, ExecutionStatus, StepResult, StepStatus


class ExecutionListener:
    """Base listener; every hook is a no-op. Hooks may be sync or async."""

    async def on_execution_start(
        self, execution_id: str, tenant_id: str, scenario_name: str
    ) -> None:
        pass

    async def on_step_result(
        self, execution_id: str, scenario_name: str, result: StepResult
    ) -> None:
        pass

    async def on_step_skipped(
        self, execution_id: str, scenario_name: str, step_id: str, reason: str
    ) -> None:
        pass

    async def on_execution_finish(self, result: ExecutionResult) -> None:
        pass


class LoggingListener(ExecutionListener):
    """Logs lifecycle events at INFO, failures at WARNING."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger("seedline.executions")

    async def on_execution_start(self, execution_id, tenant_id, scenario_name) -> None:
        self.logger.info(
            f"Execution {execution_id} started: {scenario_name} for {tenant_id}",
            extra={
                "execution_id": execution_id,
                "tenant_id": tenant_id,
                "scenario_name": scenario_name,
            },
        )

    async def on_step_result(self, execution_id, scenario_name, result) -> None:
        level = logging.INFO if result.status == StepStatus.SUCCESS else logging.WARNING
        self.logger.log(
            level,
            f"Step {result.step_id} {result.status.value} in {result.duration_ms}ms",
            extra={
                "execution_id": execution_id,
                "scenario_name": scenario_name,
                "step_id": result.step_id,
                "duration_ms": result.duration_ms,
            },
        )

    async def on_step_skipped(self, execution_id, scenario_name, step_id, reason) -> None:
        self.logger.warning(
            f"Step {step_id} skipped: {reason}",
            extra={"execution_id": execution_id, "scenario_name": scenario_name, "step_id": step_id},
        )

    async def on_execution_finish(self, result: ExecutionResult) -> None:
        level = logging.INFO if result.status == ExecutionStatus.COMPLETED else logging.WARNING
        self.logger.log(
            level,
            f"Execution {result.execution_id} {result.status.value}: "
            f"{result.success_count} succeeded, {result.error_count} failed, "
            f"{len(result.skipped_steps)} skipped, {result.resource_count} resources",
            extra={
                "execution_id": result.execution_id,
                "tenant_id": result.tenant_id,
                "scenario_name": result.scenario_name,
                "duration_ms": result.total_duration_ms,
            },
        )


class MetricsListener(ExecutionListener):
    """
    Feeds a metrics collector.

    Works with ExecutionMetrics (the default) or PrometheusMetrics.
    """

    def __init__(self, metrics: Any = None):
        if metrics is None:
            from seedline.monitoring.metrics import ExecutionMetrics

            metrics = ExecutionMetrics()
        self.metrics = metrics

    async def on_execution_start(self, execution_id, tenant_id, scenario_name) -> None:
        self.metrics.execution_started(scenario_name)

    async def on_step_result(self, execution_id, scenario_name, result) -> None:
        self.metrics.record_step(
            scenario_name, result.step_id, result.status, result.duration_ms / 1000
        )

    async def on_step_skipped(self, execution_id, scenario_name, step_id, reason) -> None:
        self.metrics.record_skip(scenario_name, step_id)

    async def on_execution_finish(self, result: ExecutionResult) -> None:
        self.metrics.execution_finished(result.scenario_name)
        self.metrics.record_execution(
            result.scenario_name, result.status, result.total_duration_ms / 1000
        )
