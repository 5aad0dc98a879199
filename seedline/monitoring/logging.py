"""
Structured logging for scenario execution

JSON log lines carrying the execution context (execution id, tenant,
scenario, current step), propagated through a ContextVar so that every
module logging during a run is tagged without passing ids around.
"""

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Context of the execution currently running in this task
execution_context: ContextVar[dict[str, Any]] = ContextVar("execution_context", default={})


def set_execution_context(**fields: Any) -> None:
    """Merge ``fields`` into the current execution context."""
    context = dict(execution_context.get({}))
    context.update({k: v for k, v in fields.items() if v is not None})
    execution_context.set(context)


def clear_execution_context() -> None:
    execution_context.set({})


@contextmanager
def bound_execution_context(**fields: Any):
    """Bind context fields for the duration of a block, then restore the previous context."""
    context = dict(execution_context.get({}))
    context.update({k: v for k, v in fields.items() if v is not None})
    token = execution_context.set(context)
    try:
        yield context
    finally:
        execution_context.reset(token)


class SeedlineJsonFormatter(logging.Formatter):
    """
    JSON formatter for execution logs with structured fields
    """

    _CONTEXT_FIELDS = ("execution_id", "tenant_id", "scenario_name", "step_id")

    # Fields to extract from log record if present
    _EXTRA_FIELDS = (
        "execution_id",
        "tenant_id",
        "scenario_name",
        "step_id",
        "duration_ms",
        "attempt",
        "error_type",
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry = self._build_base_entry(record)
        self._add_execution_context(log_entry)
        self._add_record_extras(log_entry, record)
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)

    def _build_base_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        return {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

    def _add_execution_context(self, log_entry: dict[str, Any]) -> None:
        context = execution_context.get({})
        for field in self._CONTEXT_FIELDS:
            if context.get(field) is not None:
                log_entry[field] = context[field]

    def _add_record_extras(self, log_entry: dict[str, Any], record: logging.LogRecord) -> None:
        for field in self._EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)


class ExecutionContextFilter(logging.Filter):
    """
    Logging filter that adds execution context to log records
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = execution_context.get({})

        record.execution_id = context.get("execution_id", "-")
        record.tenant_id = context.get("tenant_id", "-")
        record.scenario_name = context.get("scenario_name", "-")
        record.step_id = context.get("step_id", "")

        return True


def setup_logging(
    log_level: str = "INFO", json_format: bool = True, include_console: bool = True
) -> logging.Logger:
    """
    Set up structured logging for the ``seedline`` namespace

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON formatting for structured logs
        include_console: Include console handler

    Returns:
        The configured ``seedline`` logger
    """
    root_logger = logging.getLogger("seedline")
    root_logger.setLevel(getattr(logging, log_level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if include_console:
        console_handler = logging.StreamHandler()
        console_handler.addFilter(ExecutionContextFilter())

        if json_format:
            console_handler.setFormatter(SeedlineJsonFormatter())
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - "
                "[%(execution_id)s:%(step_id)s] - %(message)s"
            )
            console_handler.setFormatter(formatter)

        root_logger.addHandler(console_handler)

    return root_logger
