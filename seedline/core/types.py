"""
All type definitions, enums, and dataclasses

Scenario definitions are immutable and shared between runs. Step results,
execution records and log entries are produced by a single orchestration
run and only ever change status afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ExecutionStatus(Enum):
    """Overall status of one orchestrator run."""

    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"

    CLEANED = "cleaned"
    """Every resource-bearing log entry was compensated without failures."""


class StepStatus(Enum):
    """Outcome of a single step attempt."""

    SUCCESS = "success"
    ERROR = "error"


class CleanupStatus(Enum):
    """Cleanliness flag carried by each execution log entry."""

    PENDING = "pending"
    CLEANED = "cleaned"


# Executions the idempotency check treats as "already done or in flight".
IDEMPOTENT_STATUSES = (ExecutionStatus.RUNNING, ExecutionStatus.COMPLETED)


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class StepDefinition:
    """
    One unit of work targeting one integration.

    Attributes:
        id: Unique id within the scenario, referenced by ``depends_on`` and
            by ``{{id.field}}`` payload tokens
        integration: Logical system targeted (``"slack"``, ``"linear"``...)
        action_name: Human label (``"send_message"``). Steps whose label
            starts with ``list_`` are listers and keep their full output
        provider_action: Concrete action passed to the Action Executor
        payload: Template map, may contain ``{{step_id.field}}`` tokens
        depends_on: Step ids that must have succeeded first
        resource_type: Tag used for audit and cleanup classification
        resource_id_path: Dotted path into the response holding the id of
            the created resource
    """

    id: str
    integration: str
    action_name: str
    provider_action: str
    payload: dict[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    resource_type: str | None = None
    resource_id_path: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            msg = "Step id must not be empty"
            raise ValueError(msg)
        # Lists are accepted for convenience but stored as tuples
        if not isinstance(self.depends_on, tuple):
            object.__setattr__(self, "depends_on", tuple(self.depends_on))

    @property
    def is_lister(self) -> bool:
        return self.action_name.startswith("list_")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StepDefinition:
        return cls(
            id=data["id"],
            integration=data["integration"],
            action_name=data.get("action_name") or data["action"],
            provider_action=data["provider_action"],
            payload=dict(data.get("payload") or {}),
            depends_on=tuple(data.get("depends_on") or ()),
            resource_type=data.get("resource_type"),
            resource_id_path=data.get("resource_id_path"),
        )


@dataclass(frozen=True)
class ScenarioDefinition:
    """A named, ordered set of steps describing a cross-system workflow."""

    name: str
    description: str
    required_integrations: tuple[str, ...]
    steps: tuple[StepDefinition, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.required_integrations, tuple):
            object.__setattr__(self, "required_integrations", tuple(self.required_integrations))
        if not isinstance(self.steps, tuple):
            object.__setattr__(self, "steps", tuple(self.steps))

    @property
    def integrations(self) -> tuple[str, ...]:
        """Required integrations followed by any other integration a step targets."""
        seen = list(self.required_integrations)
        for step in self.steps:
            if step.integration not in seen:
                seen.append(step.integration)
        return tuple(seen)

    def get_step(self, step_id: str) -> StepDefinition | None:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScenarioDefinition:
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            required_integrations=tuple(data.get("required_integrations") or ()),
            steps=tuple(StepDefinition.from_dict(s) for s in data.get("steps") or ()),
        )


@dataclass
class StepResult:
    """Result of executing a single step."""

    step_id: str
    integration: str
    action_name: str
    provider_action: str
    status: StepStatus
    external_resource_id: str | None = None
    external_resource_type: str | None = None
    data: Any = None
    error: str | None = None
    duration_ms: int = 0

    def __post_init__(self) -> None:
        if self.status == StepStatus.ERROR:
            self.external_resource_id = None

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCESS

    @property
    def created_resource(self) -> bool:
        """True if the step succeeded and reported the id of what it created."""
        return self.succeeded and bool(self.external_resource_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "integration": self.integration,
            "action_name": self.action_name,
            "provider_action": self.provider_action,
            "status": self.status.value,
            "external_resource_id": self.external_resource_id,
            "external_resource_type": self.external_resource_type,
            "data": self.data,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


@dataclass
class ExecutionRecord:
    """Persisted record of one orchestrator run."""

    execution_id: str
    tenant_id: str
    scenario_name: str
    execution_hash: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    resource_count: int = 0
    error_message: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "tenant_id": self.tenant_id,
            "scenario_name": self.scenario_name,
            "execution_hash": self.execution_hash,
            "status": self.status.value,
            "resource_count": self.resource_count,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class ExecutionLogEntry:
    """
    Audit trail entry for one step attempt.

    Persisted independently of the in-memory StepResult so that cleanup can
    run after a process restart.
    """

    entry_id: str
    execution_id: str
    step_id: str
    integration: str
    action_name: str
    provider_action: str
    status: StepStatus
    external_resource_id: str | None = None
    external_resource_type: str | None = None
    input_payload: dict[str, Any] | None = None
    output_summary: Any = None
    error: str | None = None
    duration_ms: int = 0
    cleanup_status: CleanupStatus = CleanupStatus.PENDING
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_cleaned(self) -> bool:
        return self.cleanup_status == CleanupStatus.CLEANED


@dataclass(frozen=True)
class TenantRecord:
    """Minimal tenant view used for sandbox authorization."""

    tenant_id: str
    name: str
    is_sandbox: bool = False


@dataclass
class ExecutionResult:
    """
    Result of a complete orchestrator run.

    ``error`` holds the precondition or setup exception that stopped the
    run, or a DuplicateExecutionError when an earlier execution in the same
    idempotency window was returned instead of running again.
    """

    execution_id: str
    tenant_id: str
    scenario_name: str
    status: ExecutionStatus
    steps: list[StepResult] = field(default_factory=list)
    skipped_steps: list[str] = field(default_factory=list)
    resource_count: int = 0
    total_duration_ms: int = 0
    error: Exception | None = None

    @property
    def success_count(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.SUCCESS)

    @property
    def error_count(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.ERROR)

    @property
    def error_message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    @property
    def is_duplicate(self) -> bool:
        from seedline.core.exceptions import DuplicateExecutionError

        return isinstance(self.error, DuplicateExecutionError)

    def get_step(self, step_id: str) -> StepResult | None:
        for result in self.steps:
            if result.step_id == step_id:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "tenant_id": self.tenant_id,
            "scenario_name": self.scenario_name,
            "status": self.status.value,
            "steps": [s.to_dict() for s in self.steps],
            "skipped_steps": list(self.skipped_steps),
            "resource_count": self.resource_count,
            "total_duration_ms": self.total_duration_ms,
            "error": self.error_message,
            "error_code": getattr(self.error, "code", None),
        }


@dataclass
class CleanupSummary:
    """Outcome of a compensation sweep."""

    execution_id: str
    cleaned: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "execution_id": self.execution_id,
            "cleaned": self.cleaned,
            "failed": self.failed,
            "skipped": self.skipped,
            "errors": list(self.errors),
        }
