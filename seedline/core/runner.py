"""
Step execution with bounded retry

The runner owns the retry policy: a failure the executor marks retryable
(transport failure, 5xx, 429) is retried after each delay in
``retry_delays``; anything else aborts on the first attempt.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

from seedline.core.exceptions import StepExecutionError
from seedline.core.logger import get_logger
from seedline.core.payload import UNRESOLVED, get_path
from seedline.core.types import StepDefinition, StepResult, StepStatus
from seedline.executors.base import ActionError, ActionExecutor

logger = get_logger(__name__)

DEFAULT_RETRY_DELAYS = (1.0, 2.0, 4.0)

# Identifying fields kept when a response is summarized
SUMMARY_KEYS = (
    "id",
    "key",
    "number",
    "name",
    "title",
    "url",
    "html_url",
    "ts",
    "channel",
    "channel_id",
)


def summarize_result(data: Any) -> Any:
    """Keep only the identifying fields of a response."""
    if not data:
        return None
    if not isinstance(data, Mapping):
        return data if isinstance(data, (str, int, float, bool)) else {"_type": type(data).__name__}

    summary = {key: data[key] for key in SUMMARY_KEYS if key in data}
    return summary or {"_type": type(data).__name__}


def extract_resource_id(data: Any, path: str | None) -> str | None:
    """
    Read the created resource's id at ``path``.

    A key literally named ``path`` wins over a dotted walk. Returns None
    when the path cannot be resolved or leads to an empty value.
    """
    if not path or data is None:
        return None
    if isinstance(data, Mapping) and path in data:
        value = data[path]
    else:
        value = get_path(data, path)
        if value is UNRESOLVED:
            return None
    if value is None or value == "":
        return None
    return str(value)


class StepRunner:
    """
    Executes single steps through an ActionExecutor.

    Args:
        executor: The action executor
        retry_delays: Seconds to wait before each retry; its length is the
            retry bound, so (1, 2, 4) means at most 4 calls
        sleep: Awaitable sleep, replaceable in tests
    """

    def __init__(
        self,
        executor: ActionExecutor,
        retry_delays: Sequence[float] = DEFAULT_RETRY_DELAYS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.executor = executor
        self.retry_delays = tuple(retry_delays)
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return len(self.retry_delays) + 1

    async def execute(self, connection: str, provider_action: str, payload: dict[str, Any]) -> Any:
        """
        Call the executor, retrying retryable failures.

        Raises:
            StepExecutionError: On a terminal failure or once retries run out
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                delay = self.retry_delays[attempt - 2]
                logger.warning(
                    f"Retry {attempt - 1}/{len(self.retry_delays)} for {provider_action} "
                    f"after {delay}s: {last_error}"
                )
                await self._sleep(delay)

            try:
                return await self.executor.execute(connection, provider_action, payload)
            except ActionError as e:
                last_error = e
                if not e.retryable:
                    raise StepExecutionError(
                        str(e),
                        provider_action=provider_action,
                        attempts=attempt,
                        status_code=e.status_code,
                        retryable=False,
                    ) from e
            except Exception as e:
                # Anything the executor didn't categorize is treated as a transport failure
                last_error = e

        status_code = getattr(last_error, "status_code", None)
        raise StepExecutionError(
            f"{provider_action} failed after {self.max_attempts} attempts: {last_error}",
            provider_action=provider_action,
            attempts=self.max_attempts,
            status_code=status_code,
            retryable=True,
        ) from last_error

    async def run_step(
        self,
        step: StepDefinition,
        connection: str | None,
        payload: dict[str, Any],
    ) -> StepResult:
        """
        Execute one resolved step and build its StepResult.

        Never raises: executor failures become an ``error`` result.
        """
        start = time.perf_counter()

        def elapsed_ms() -> int:
            return int((time.perf_counter() - start) * 1000)

        if connection is None:
            return StepResult(
                step_id=step.id,
                integration=step.integration,
                action_name=step.action_name,
                provider_action=step.provider_action,
                status=StepStatus.ERROR,
                error=f"No active connection for integration {step.integration}",
                duration_ms=elapsed_ms(),
            )

        logger.info(f"Step {step.id}: {step.action_name} via {step.provider_action}")

        try:
            response = await self.execute(connection, step.provider_action, payload)
        except StepExecutionError as e:
            logger.error(f"Step {step.id} failed after {e.attempts} attempt(s): {e}")
            return StepResult(
                step_id=step.id,
                integration=step.integration,
                action_name=step.action_name,
                provider_action=step.provider_action,
                status=StepStatus.ERROR,
                error=str(e),
                duration_ms=elapsed_ms(),
            )

        resource_id = extract_resource_id(response, step.resource_id_path)

        if step.is_lister:
            # Listers keep everything, later steps pick their rows from it
            data = response
        else:
            summary = summarize_result(response)
            if resource_id:
                data = {"id": resource_id, **summary} if isinstance(summary, Mapping) else {"id": resource_id}
            else:
                data = summary

        duration = elapsed_ms()
        logger.info(
            f"Step {step.id} succeeded in {duration}ms"
            + (f" (resource: {resource_id})" if resource_id else "")
        )

        return StepResult(
            step_id=step.id,
            integration=step.integration,
            action_name=step.action_name,
            provider_action=step.provider_action,
            status=StepStatus.SUCCESS,
            external_resource_id=resource_id,
            external_resource_type=step.resource_type,
            data=data,
            duration_ms=duration,
        )
