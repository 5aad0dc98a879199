"""
Payload resolution

Turns a step's template payload into the concrete input sent to the action
executor, in three passes:

1. Tagging: text-bearing fields get the seed tag prefixed so every artifact
   the orchestrator creates can be found (and removed) later.
2. Token substitution: ``{{step_id.field.path}}`` references are replaced
   with values from already-executed steps.
3. Enrichment: strategies keyed by provider action fill required fields the
   author left out (a Linear team id, a Slack channel...) from lister steps.

Resolution never raises. Anything it cannot fill is left alone and the
provider's own validation error surfaces through the step runner.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable, Mapping
from typing import Any

from seedline.core.config import DEFAULT_SEED_TAG
from seedline.core.logger import get_logger
from seedline.core.types import StepDefinition, StepResult

logger = get_logger(__name__)

TEXT_FIELDS = ("title", "text", "body", "description", "dealname", "summary", "name")

TOKEN_PATTERN = re.compile(r"\{\{\s*([\w-]+)((?:\.[\w-]+)*)\s*\}\}")

# Keys under which list-style provider responses keep their rows
ITEM_KEYS = (
    "items",
    "data",
    "results",
    "channels",
    "teams",
    "repositories",
    "repos",
    "pages",
    "issues",
    "members",
)

Enricher = Callable[[dict[str, Any], StepDefinition, Mapping[str, StepResult]], None]


class _Unresolved:
    """Sentinel for a token path that leads nowhere."""


UNRESOLVED = _Unresolved()


def tag_payload(
    payload: dict[str, Any],
    tag: str = DEFAULT_SEED_TAG,
    fields: tuple[str, ...] = TEXT_FIELDS,
) -> dict[str, Any]:
    """Prefix ``tag`` to every string field in ``fields`` that doesn't carry it yet."""
    for key in fields:
        value = payload.get(key)
        if isinstance(value, str) and tag not in value:
            payload[key] = f"{tag} {value}"
    return payload


def get_path(data: Any, path: str | list[str]) -> Any:
    """
    Walk a dotted path through nested dicts and lists.

    Numeric segments index into lists. Returns UNRESOLVED when any segment
    is missing.
    """
    parts = path.split(".") if isinstance(path, str) else path
    current = data
    for part in parts:
        if isinstance(current, Mapping):
            if part not in current:
                return UNRESOLVED
            current = current[part]
        elif isinstance(current, list) and part.isdigit():
            index = int(part)
            if index >= len(current):
                return UNRESOLVED
            current = current[index]
        else:
            return UNRESOLVED
    return current


def extract_items(data: Any) -> list[Any]:
    """
    Pull the row list out of a lister's response.

    Accepts a bare list, or a mapping holding one under a common key
    (one level of nesting is searched). Empty lists are passed over in
    favour of a populated one.
    """
    if isinstance(data, list):
        return data
    if not isinstance(data, Mapping):
        return []

    for key in ITEM_KEYS:
        value = data.get(key)
        if isinstance(value, list) and value:
            return value

    for value in data.values():
        if isinstance(value, list) and value:
            return value

    for value in data.values():
        if isinstance(value, Mapping):
            nested = extract_items(value)
            if nested:
                return nested

    return []


class EnrichmentRegistry:
    """
    Maps provider action names to enrichment strategies.

    Each strategy receives the payload being resolved (and mutates it), the
    step definition and the prior results. Strategies for one action run in
    registration order and are independent of each other.

    Example:
        >>> registry = EnrichmentRegistry()
        >>> @registry.enricher("LINEAR_CREATE_LINEAR_ISSUE")
        ... def add_team(payload, step, prior):
        ...     payload.setdefault("team_id", "T1")
    """

    def __init__(self) -> None:
        self._registry: dict[str, list[Enricher]] = {}

    def register(self, provider_action: str, func: Enricher) -> None:
        self._registry.setdefault(provider_action, []).append(func)

    def enricher(self, provider_action: str) -> Callable[[Enricher], Enricher]:
        """Decorator form of register()."""

        def decorator(func: Enricher) -> Enricher:
            self.register(provider_action, func)
            return func

        return decorator

    def get(self, provider_action: str) -> list[Enricher]:
        return list(self._registry.get(provider_action, []))

    def actions(self) -> list[str]:
        return sorted(self._registry)

    def clear(self) -> None:
        self._registry.clear()

    def __contains__(self, provider_action: str) -> bool:
        return provider_action in self._registry


class PayloadResolver:
    """
    Resolves a step's payload against the results of earlier steps.

    Args:
        registry: Enrichment strategies; defaults to the built-in ones
        seed_tag: Marker prefixed to text-bearing fields
        text_fields: Field names treated as text-bearing
    """

    def __init__(
        self,
        registry: EnrichmentRegistry | None = None,
        seed_tag: str = DEFAULT_SEED_TAG,
        text_fields: tuple[str, ...] = TEXT_FIELDS,
    ):
        if registry is None:
            from seedline.core.enrichers import default_enrichment_registry

            registry = default_enrichment_registry
        self.registry = registry
        self.seed_tag = seed_tag
        self.text_fields = text_fields

    def resolve(
        self, step: StepDefinition, prior_results: Mapping[str, StepResult]
    ) -> dict[str, Any]:
        payload = copy.deepcopy(dict(step.payload))
        payload = tag_payload(payload, self.seed_tag, self.text_fields)
        payload = self._substitute(payload, step, prior_results)

        for func in self.registry.get(step.provider_action):
            try:
                func(payload, step, prior_results)
            except Exception as e:
                logger.warning(
                    f"Enricher {getattr(func, '__name__', func)!s} failed for step "
                    f"{step.id} ({step.provider_action}): {e}"
                )

        return payload

    def _substitute(
        self, value: Any, step: StepDefinition, prior_results: Mapping[str, StepResult]
    ) -> Any:
        if isinstance(value, str):
            return self._substitute_string(value, step, prior_results)
        if isinstance(value, dict):
            return {k: self._substitute(v, step, prior_results) for k, v in value.items()}
        if isinstance(value, list):
            return [self._substitute(v, step, prior_results) for v in value]
        return value

    def _substitute_string(
        self, text: str, step: StepDefinition, prior_results: Mapping[str, StepResult]
    ) -> Any:
        whole = TOKEN_PATTERN.fullmatch(text.strip())
        if whole:
            # A token standing alone keeps the referenced value's type
            value = self._lookup(whole.group(1), whole.group(2), step, prior_results)
            return text if value is UNRESOLVED else value

        def replace(match: re.Match) -> str:
            value = self._lookup(match.group(1), match.group(2), step, prior_results)
            if value is UNRESOLVED:
                return match.group(0)
            return "" if value is None else str(value)

        return TOKEN_PATTERN.sub(replace, text)

    def _lookup(
        self,
        step_id: str,
        dotted: str,
        step: StepDefinition,
        prior_results: Mapping[str, StepResult],
    ) -> Any:
        token = f"{{{{{step_id}{dotted}}}}}"
        result = prior_results.get(step_id)
        if result is None or not result.succeeded:
            logger.warning(f"Step {step.id}: cannot resolve {token}, step {step_id} has no result")
            return UNRESOLVED

        path = dotted.lstrip(".")
        value = resolve_result_field(result, path)
        if value is UNRESOLVED:
            logger.warning(f"Step {step.id}: cannot resolve {token}, no such field")
        return value


def resolve_result_field(result: StepResult, path: str) -> Any:
    """
    Read ``path`` from a step result.

    ``resource_id`` (or ``external_resource_id``) names the extracted resource
    id; every other path is walked through the summarized response data, with
    a bare ``id`` falling back to the resource id.
    """
    if path in ("resource_id", "external_resource_id"):
        return result.external_resource_id if result.external_resource_id else UNRESOLVED
    if not path:
        return result.data

    value = get_path(result.data, path)
    if value is UNRESOLVED and path == "id" and result.external_resource_id:
        return result.external_resource_id
    return value
