"""
Compensation (cleanup) of executed scenarios.

Walks an execution's successful log entries newest first and calls the
undo action registered for each resource type. Cleanup is best effort:
a resource without an undo action or without a live connection is
skipped, and a failing undo is recorded without stopping the sweep.

Example:
    >>> engine = CompensationEngine(log, runner, connections)
    >>> summary = await engine.cleanup("org-1", execution_id)
    >>> summary.failed
    0
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from seedline.connections import ConnectionResolver
from seedline.core.exceptions import ExecutionNotFoundError
from seedline.core.execution_log import ExecutionLog
from seedline.core.logger import get_logger
from seedline.core.runner import StepRunner
from seedline.core.types import CleanupSummary, ExecutionLogEntry, ExecutionStatus

logger = get_logger(__name__)

GITHUB_ISSUE_URL = re.compile(r"github\.com/([^/]+)/([^/]+)/issues/(\d+)")


@dataclass(frozen=True)
class UndoAction:
    """
    How to reverse one resource type.

    Attributes:
        resource_type: Resource type tag from the step definition
        provider_action: Action that deletes, closes or archives it
        build_input: Builds the action input from the log entry
    """

    resource_type: str
    provider_action: str
    build_input: Callable[[ExecutionLogEntry], dict[str, Any]]


class UndoRegistry:
    """Maps resource types to their undo actions."""

    def __init__(self) -> None:
        self._actions: dict[str, UndoAction] = {}

    def register(self, action: UndoAction) -> None:
        self._actions[action.resource_type] = action

    def undo(self, resource_type: str, provider_action: str):
        """Decorator registering an input builder for ``resource_type``."""

        def decorator(func: Callable[[ExecutionLogEntry], dict[str, Any]]):
            self.register(UndoAction(resource_type, provider_action, func))
            return func

        return decorator

    def get(self, resource_type: str | None) -> UndoAction | None:
        if not resource_type:
            return None
        return self._actions.get(resource_type)

    def resource_types(self) -> list[str]:
        return sorted(self._actions)

    def __contains__(self, resource_type: str) -> bool:
        return resource_type in self._actions


def _summary_field(entry: ExecutionLogEntry, *keys: str) -> Any:
    for source in (entry.output_summary, entry.input_payload):
        if isinstance(source, dict):
            for key in keys:
                if source.get(key):
                    return source[key]
    return None


default_undo_registry = UndoRegistry()
undo = default_undo_registry.undo


@undo("github_issue", "GITHUB_UPDATE_AN_ISSUE")
def close_github_issue(entry: ExecutionLogEntry) -> dict[str, Any]:
    # Issues cannot be deleted, only closed
    payload: dict[str, Any] = {"state": "closed"}
    resource_id = entry.external_resource_id or ""
    if resource_id.isdigit():
        payload["issue_number"] = int(resource_id)

    owner = _summary_field(entry, "owner")
    repo = _summary_field(entry, "repo")
    url = _summary_field(entry, "html_url", "url")
    match = GITHUB_ISSUE_URL.search(url) if isinstance(url, str) else None
    if match:
        owner = owner or match.group(1)
        repo = repo or match.group(2)
        payload.setdefault("issue_number", int(match.group(3)))
    if owner:
        payload["owner"] = owner
    if repo:
        payload["repo"] = repo
    return payload


@undo("linear_issue", "LINEAR_UPDATE_ISSUE")
def archive_linear_issue(entry: ExecutionLogEntry) -> dict[str, Any]:
    return {"issueId": entry.external_resource_id, "archived": True}


@undo("slack_message", "SLACKBOT_DELETE_A_MESSAGE")
def delete_slack_message(entry: ExecutionLogEntry) -> dict[str, Any]:
    payload: dict[str, Any] = {"ts": entry.external_resource_id}
    channel = _summary_field(entry, "channel", "channel_id")
    if channel:
        payload["channel"] = channel
    return payload


@undo("hubspot_deal", "HUBSPOT_DELETE_A_DEAL")
def delete_hubspot_deal(entry: ExecutionLogEntry) -> dict[str, Any]:
    return {"dealId": entry.external_resource_id}


@undo("hubspot_contact", "HUBSPOT_DELETE_A_CONTACT")
def delete_hubspot_contact(entry: ExecutionLogEntry) -> dict[str, Any]:
    return {"contactId": entry.external_resource_id}


@undo("notion_page", "NOTION_ARCHIVE_A_PAGE")
def archive_notion_page(entry: ExecutionLogEntry) -> dict[str, Any]:
    return {"page_id": entry.external_resource_id, "archived": True}


class CompensationEngine:
    """
    Reverses what an execution created.

    Args:
        log: Execution log holding the entries to undo
        runner: Step runner used to call undo actions (with its retry policy)
        connections: Resolver for the tenant's live connections
        registry: Undo actions; defaults to the built-in ones
    """

    def __init__(
        self,
        log: ExecutionLog,
        runner: StepRunner,
        connections: ConnectionResolver,
        registry: UndoRegistry | None = None,
    ):
        self.log = log
        self.runner = runner
        self.connections = connections
        self.registry = registry if registry is not None else default_undo_registry

    async def cleanup(self, tenant_id: str, execution_id: str) -> CleanupSummary:
        """
        Undo every resource an execution created, newest first.

        Raises:
            ExecutionNotFoundError: If the execution doesn't exist or belongs
                to another tenant
        """
        record = await self.log.get_execution(execution_id)
        if record is None or record.tenant_id != tenant_id:
            raise ExecutionNotFoundError(execution_id, tenant_id)

        summary = CleanupSummary(execution_id=execution_id)
        if record.status == ExecutionStatus.CLEANED:
            summary.errors.append("Already cleaned")
            return summary

        entries = await self.log.list_cleanable(execution_id)
        handles: dict[str, str | None] = {}

        for entry in reversed(entries):
            label = f"{entry.external_resource_type}/{entry.external_resource_id}"

            if not entry.external_resource_id or not entry.external_resource_type:
                summary.skipped += 1
                continue

            action = self.registry.get(entry.external_resource_type)
            if action is None:
                logger.info(f"No undo action for type {entry.external_resource_type}, skipping")
                summary.skipped += 1
                continue

            if entry.integration not in handles:
                handles[entry.integration] = await self.connections.resolve(
                    tenant_id, entry.integration
                )
            connection = handles[entry.integration]
            if connection is None:
                logger.info(f"No connection for {entry.integration}, skipping {label}")
                summary.skipped += 1
                continue

            try:
                payload = action.build_input(entry)
                logger.info(f"Cleanup: {action.provider_action} for {label}")
                await self.runner.execute(connection, action.provider_action, payload)
            except Exception as e:
                logger.error(f"Failed to clean {label}: {e}")
                summary.errors.append(f"{label}: {e}")
                summary.failed += 1
                continue

            # The resource is gone even if the log write is lost.
            summary.cleaned += 1
            if not await self.log.mark_cleaned(entry.entry_id):
                logger.warning(f"Cleaned {label} but could not record it in the execution log")

        if summary.failed == 0:
            await self.log.mark_execution_cleaned(execution_id)

        logger.info(
            f"Cleanup of {execution_id}: cleaned={summary.cleaned} "
            f"failed={summary.failed} skipped={summary.skipped}"
        )
        return summary
