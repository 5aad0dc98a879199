"""
Structural validation of scenario definitions.

The orchestrator runs steps in the order they are declared and trusts that
order. This module checks the assumptions behind that trust so authors find
mistakes before a run: unique step ids, dependencies that exist, no
dependency on a step declared later, and no dependency cycles.
"""

from seedline.core.exceptions import ScenarioValidationError
from seedline.core.types import ScenarioDefinition


def find_cycle(deps: dict[str, set[str]]) -> list[str] | None:
    """Return one dependency cycle as a path (first node repeated at the end), or None."""
    visited: set[str] = set()
    path: list[str] = []

    def dfs(node: str) -> list[str] | None:
        if node in path:
            cycle_start = path.index(node)
            return [*path[cycle_start:], node]
        if node in visited:
            return None

        visited.add(node)
        path.append(node)

        for dep in sorted(deps.get(node, set())):
            if dep in deps:
                result = dfs(dep)
                if result:
                    return result

        path.pop()
        return None

    for node in deps:
        result = dfs(node)
        if result:
            return result
    return None


def validate_scenario(scenario: ScenarioDefinition) -> list[str]:
    """
    List the structural problems of a scenario; an empty list means valid.

    Checks:
        - scenario has a name and at least one step
        - step ids are unique
        - every ``depends_on`` id names a step of the scenario
        - no step depends on itself or on a step declared after it
        - the dependency graph has no cycle
    """
    errors: list[str] = []

    if not scenario.name:
        errors.append("Scenario name must not be empty")
    if not scenario.steps:
        errors.append("Scenario has no steps")

    seen: set[str] = set()
    declared = {step.id for step in scenario.steps}
    deps: dict[str, set[str]] = {}

    for step in scenario.steps:
        if step.id in seen:
            errors.append(f"Duplicate step id: {step.id}")
        seen.add(step.id)
        deps.setdefault(step.id, set()).update(step.depends_on)

        for dep in step.depends_on:
            if dep == step.id:
                errors.append(f"Step {step.id} depends on itself")
            elif dep not in declared:
                errors.append(f"Step {step.id} depends on unknown step {dep}")
            elif dep not in seen:
                errors.append(f"Step {step.id} depends on {dep}, which is declared after it")

    cycle = find_cycle({k: {d for d in v if d != k} for k, v in deps.items()})
    if cycle:
        errors.append(f"Dependency cycle: {' -> '.join(cycle)}")

    return errors


def ensure_valid(scenario: ScenarioDefinition) -> None:
    """
    Raises:
        ScenarioValidationError: If validate_scenario reports any problem
    """
    errors = validate_scenario(scenario)
    if errors:
        raise ScenarioValidationError(scenario.name, errors)
