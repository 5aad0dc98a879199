"""
Built-in scenarios and the scenario registry.
"""

from .deal_escalation import DEAL_ESCALATION
from .incident_response import INCIDENT_RESPONSE
from .registry import ScenarioRegistry, load_scenario_file, parse_scenarios

default_registry = ScenarioRegistry([INCIDENT_RESPONSE, DEAL_ESCALATION])

__all__ = [
    "DEAL_ESCALATION",
    "INCIDENT_RESPONSE",
    "ScenarioRegistry",
    "default_registry",
    "load_scenario_file",
    "parse_scenarios",
]
