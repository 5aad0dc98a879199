"""
Seedline - Scenario execution orchestrator for sandbox tenants

Runs pre-defined, cross-system scenarios ("open an incident in Linear, alert
Slack, file a GitHub issue, write a Notion postmortem") against a tenant's
connected integrations, with:
- Declared-order execution with dependency-based skipping
- Payload templating with ``{{step_id.field}}`` tokens and seed tagging
- Retry with exponential backoff on transient provider failures
- A persistent execution log with a graceful in-memory fallback
- Idempotency windows and per-tenant daily quotas
- Reverse-order cleanup of every created resource
- Multiple storage backends (Memory, SQLite, PostgreSQL)
- Prometheus metrics and lifecycle listeners

Usage:
    >>> from seedline import Seedline, SeedlineConfig, StaticConnectionResolver
    >>>
    >>> config = SeedlineConfig(enabled=True, sandbox_tenants=("org-demo",), api_key="...")
    >>> connections = StaticConnectionResolver({"org-demo": {"slack": "ca_1", "linear": "ca_2"}})
    >>> async with Seedline.from_config(config, connections=connections) as seedline:
    ...     result = await seedline.run_scenario("org-demo", "incident-response")
    ...     print(result.status, result.resource_count)

Custom scenarios:
    >>> from seedline import ScenarioDefinition, StepDefinition, default_registry
    >>>
    >>> default_registry.register(ScenarioDefinition(
    ...     name="welcome",
    ...     description="Post a welcome message",
    ...     required_integrations=("slack",),
    ...     steps=(
    ...         StepDefinition(
    ...             id="welcome",
    ...             integration="slack",
    ...             action_name="send_message",
    ...             provider_action="SLACKBOT_SEND_MESSAGE",
    ...             payload={"text": "Welcome aboard"},
    ...             resource_type="slack_message",
    ...             resource_id_path="ts",
    ...         ),
    ...     ),
    ... ), validate=True)
"""

from seedline.connections import ConnectionResolver, StaticConnectionResolver
from seedline.core import (
    CleanupSummary,
    CompensationEngine,
    ConfigError,
    DisabledError,
    DuplicateExecutionError,
    ExecutionListener,
    ExecutionNotFoundError,
    ExecutionRecord,
    ExecutionResult,
    ExecutionStatus,
    InvalidScenarioError,
    LoggingListener,
    MetricsListener,
    MissingDependencyError,
    MissingIntegrationsError,
    NotSandboxedError,
    OrgNotFoundError,
    RateLimitedError,
    ScenarioDefinition,
    ScenarioOrchestrator,
    ScenarioValidationError,
    SeedlineConfig,
    SeedlineError,
    StepDefinition,
    StepExecutionError,
    StepResult,
    StepStatus,
    configure,
    get_config,
    validate_scenario,
)
from seedline.executors import ActionError, ActionExecutor, HttpActionExecutor
from seedline.scenarios import ScenarioRegistry, default_registry, load_scenario_file
from seedline.service import Seedline
from seedline.storage import ExecutionStore, create_store

__version__ = "0.1.0"

__all__ = [
    # Primary exports
    "Seedline",
    "ScenarioOrchestrator",
    "CompensationEngine",
    # Configuration
    "SeedlineConfig",
    "configure",
    "get_config",
    # Scenarios
    "ScenarioDefinition",
    "ScenarioRegistry",
    "StepDefinition",
    "default_registry",
    "load_scenario_file",
    "validate_scenario",
    # Results
    "CleanupSummary",
    "ExecutionRecord",
    "ExecutionResult",
    "ExecutionStatus",
    "StepResult",
    "StepStatus",
    # Ports
    "ActionError",
    "ActionExecutor",
    "ConnectionResolver",
    "ExecutionStore",
    "HttpActionExecutor",
    "StaticConnectionResolver",
    "create_store",
    # Listeners
    "ExecutionListener",
    "LoggingListener",
    "MetricsListener",
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
]
