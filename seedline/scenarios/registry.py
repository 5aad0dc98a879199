"""
Scenario catalogue.

Scenarios are registered by name, either as Python definitions or loaded
from YAML files:

    name: onboarding
    description: Welcome a new hire
    required_integrations: [slack]
    steps:
      - id: slack_channels
        integration: slack
        action: list_channels
        provider_action: SLACKBOT_LIST_ALL_CHANNELS
      - id: welcome
        integration: slack
        action: send_message
        provider_action: SLACKBOT_SEND_MESSAGE
        payload: {text: "Welcome aboard"}
        depends_on: [slack_channels]
        resource_type: slack_message
        resource_id_path: ts

A file may also hold several scenarios under a top-level ``scenarios:`` list.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from seedline.core.exceptions import ScenarioValidationError, SeedlineError
from seedline.core.types import ScenarioDefinition
from seedline.core.validation import ensure_valid

logger = logging.getLogger(__name__)


class ScenarioRegistry:
    """Maps scenario names to definitions, preserving registration order."""

    def __init__(self, scenarios: list[ScenarioDefinition] | None = None):
        self._scenarios: dict[str, ScenarioDefinition] = {}
        for scenario in scenarios or []:
            self.register(scenario)

    def register(
        self, scenario: ScenarioDefinition, validate: bool = False, replace: bool = False
    ) -> ScenarioDefinition:
        """
        Register a scenario.

        Args:
            scenario: Definition to register
            validate: Reject structurally invalid definitions
            replace: Overwrite an existing scenario with the same name

        Raises:
            ScenarioValidationError: If validate is set and the scenario is invalid
            SeedlineError: If the name is taken and replace is not set
        """
        if validate:
            ensure_valid(scenario)
        if scenario.name in self._scenarios and not replace:
            msg = f"Scenario already registered: {scenario.name}"
            raise SeedlineError(msg)

        self._scenarios[scenario.name] = scenario
        logger.debug(f"Registered scenario {scenario.name} ({len(scenario.steps)} steps)")
        return scenario

    def unregister(self, name: str) -> bool:
        return self._scenarios.pop(name, None) is not None

    def get(self, name: str) -> ScenarioDefinition | None:
        return self._scenarios.get(name)

    def names(self) -> list[str]:
        return list(self._scenarios)

    def list(self) -> list[ScenarioDefinition]:
        return list(self._scenarios.values())

    def __contains__(self, name: object) -> bool:
        return name in self._scenarios

    def __len__(self) -> int:
        return len(self._scenarios)


def parse_scenarios(data: Any) -> list[ScenarioDefinition]:
    """Build scenario definitions from parsed YAML/JSON data."""
    if isinstance(data, dict) and "scenarios" in data:
        items = data["scenarios"] or []
    elif isinstance(data, dict):
        items = [data]
    elif isinstance(data, list):
        items = data
    else:
        msg = f"Expected a scenario mapping or list, got {type(data).__name__}"
        raise SeedlineError(msg)

    scenarios = []
    for item in items:
        try:
            scenarios.append(ScenarioDefinition.from_dict(item))
        except (KeyError, TypeError, ValueError) as e:
            name = item.get("name", "<unnamed>") if isinstance(item, dict) else "<unnamed>"
            raise ScenarioValidationError(name, [f"Malformed definition: {e}"]) from e
    return scenarios


def load_scenario_file(path: str | Path) -> list[ScenarioDefinition]:
    """
    Load scenarios from a YAML file.

    Raises:
        SeedlineError: If the file cannot be read or parsed
        ScenarioValidationError: If an entry is missing required fields
    """
    path = Path(path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except OSError as e:
        msg = f"Cannot read scenario file {path}: {e}"
        raise SeedlineError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in {path}: {e}"
        raise SeedlineError(msg) from e

    return parse_scenarios(data)
