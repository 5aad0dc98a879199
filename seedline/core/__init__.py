"""
Core module for Seedline - contains the orchestration building blocks.
"""

from seedline.core.cleanup import (
    CompensationEngine,
    UndoAction,
    UndoRegistry,
    default_undo_registry,
)
from seedline.core.config import SeedlineConfig, configure, get_config
from seedline.core.enrichers import default_enrichment_registry
from seedline.core.exceptions import (
    ConfigError,
    DisabledError,
    DuplicateExecutionError,
    ExecutionNotFoundError,
    InvalidScenarioError,
    MissingDependencyError,
    MissingIntegrationsError,
    NotSandboxedError,
    OrgNotFoundError,
    RateLimitedError,
    ScenarioValidationError,
    SeedlineError,
    StepExecutionError,
    http_status_for,
)
from seedline.core.execution_log import ExecutionLog, summarize_output
from seedline.core.idempotency import IdempotencyTracker
from seedline.core.listeners import ExecutionListener, LoggingListener, MetricsListener
from seedline.core.logger import NullLogger, get_logger, set_logger
from seedline.core.orchestrator import ScenarioOrchestrator, aggregate_status
from seedline.core.payload import EnrichmentRegistry, PayloadResolver, tag_payload
from seedline.core.runner import StepRunner, summarize_result
from seedline.core.types import (
    CleanupStatus,
    CleanupSummary,
    ExecutionLogEntry,
    ExecutionRecord,
    ExecutionResult,
    ExecutionStatus,
    ScenarioDefinition,
    StepDefinition,
    StepResult,
    StepStatus,
    TenantRecord,
)
from seedline.core.validation import ensure_valid, validate_scenario

__all__ = [
    # Config
    "SeedlineConfig",
    "configure",
    "get_config",
    # Logging
    "NullLogger",
    "get_logger",
    "set_logger",
    # Types
    "CleanupStatus",
    "CleanupSummary",
    "ExecutionLogEntry",
    "ExecutionRecord",
    "ExecutionResult",
    "ExecutionStatus",
    "ScenarioDefinition",
    "StepDefinition",
    "StepResult",
    "StepStatus",
    "TenantRecord",
    # Exceptions
    "ConfigError",
    "DisabledError",
    "DuplicateExecutionError",
    "ExecutionNotFoundError",
    "InvalidScenarioError",
    "MissingDependencyError",
    "MissingIntegrationsError",
    "NotSandboxedError",
    "OrgNotFoundError",
    "RateLimitedError",
    "ScenarioValidationError",
    "SeedlineError",
    "StepExecutionError",
    "http_status_for",
    # Orchestration
    "CompensationEngine",
    "EnrichmentRegistry",
    "ExecutionLog",
    "IdempotencyTracker",
    "PayloadResolver",
    "ScenarioOrchestrator",
    "StepRunner",
    "UndoAction",
    "UndoRegistry",
    "aggregate_status",
    "default_enrichment_registry",
    "default_undo_registry",
    "ensure_valid",
    "summarize_output",
    "summarize_result",
    "tag_payload",
    "validate_scenario",
    # Listeners
    "ExecutionListener",
    "LoggingListener",
    "MetricsListener",
]
