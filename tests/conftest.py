"""
Pytest configuration and shared fixtures for scenario execution tests

Every fixture runs with zero step delay and zero retry backoff so the suite
never sleeps.
"""

import copy

import pytest

from seedline.connections import StaticConnectionResolver
from seedline.core.cleanup import UndoRegistry
from seedline.core.config import SeedlineConfig
from seedline.core.orchestrator import ScenarioOrchestrator
from seedline.core.types import ScenarioDefinition, StepDefinition
from seedline.executors.base import ActionExecutor
from seedline.scenarios.registry import ScenarioRegistry
from seedline.service import Seedline
from seedline.storage.memory import InMemoryExecutionStore

TENANT = "org-1"


class FakeExecutor(ActionExecutor):
    """
    Scriptable action executor.

    ``responses`` holds the default outcome per provider action. ``queue()``
    pushes one-shot outcomes that are consumed first. An outcome that is an
    exception is raised, a callable is called with the payload, anything
    else is returned (deep-copied).
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.queues: dict[str, list] = {}
        self.calls: list[tuple[str, str, dict]] = []
        self.closed = False

    def queue(self, provider_action, *outcomes):
        self.queues.setdefault(provider_action, []).extend(outcomes)

    def calls_for(self, provider_action):
        return [c for c in self.calls if c[1] == provider_action]

    @property
    def actions(self):
        return [c[1] for c in self.calls]

    async def execute(self, connection, provider_action, payload):
        self.calls.append((connection, provider_action, copy.deepcopy(payload)))
        pending = self.queues.get(provider_action)
        outcome = pending.pop(0) if pending else self.responses.get(provider_action, {})
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return outcome(payload)
        return copy.deepcopy(outcome)

    async def close(self):
        self.closed = True


class RecordingSleep:
    """Awaitable sleep replacement that records the requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay):
        self.delays.append(delay)


# ============================================
# BUILDING BLOCKS
# ============================================


@pytest.fixture
def config():
    return SeedlineConfig(
        enabled=True,
        sandbox_tenants=(TENANT,),
        step_delay=0,
        retry_delays=(0, 0, 0),
    )


@pytest.fixture
def store():
    return InMemoryExecutionStore()


@pytest.fixture
def executor():
    return FakeExecutor(
        {
            "ALPHA_CREATE": {"id": "X1", "title": "alpha"},
            "BETA_CREATE": {"id": "B1", "url": "https://beta.example/B1"},
            "GAMMA_CREATE": {"id": "G1"},
        }
    )


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def connections():
    return StaticConnectionResolver(
        {TENANT: {"alpha": "conn-a", "beta": "conn-b", "gamma": "conn-g"}}
    )


@pytest.fixture
def chain_scenario():
    """a -> b -> c, each creating one resource; b references a's id."""
    return ScenarioDefinition(
        name="chain",
        description="Three dependent steps",
        required_integrations=("alpha", "beta", "gamma"),
        steps=(
            StepDefinition(
                id="a",
                integration="alpha",
                action_name="create_thing",
                provider_action="ALPHA_CREATE",
                payload={"title": "First"},
                resource_type="alpha_thing",
                resource_id_path="id",
            ),
            StepDefinition(
                id="b",
                integration="beta",
                action_name="create_thing",
                provider_action="BETA_CREATE",
                payload={"title": "Ref {{a.id}}", "parent": "{{a.resource_id}}"},
                depends_on=("a",),
                resource_type="beta_thing",
                resource_id_path="id",
            ),
            StepDefinition(
                id="c",
                integration="gamma",
                action_name="create_thing",
                provider_action="GAMMA_CREATE",
                payload={"text": "After {{b.id}}"},
                depends_on=("b",),
                resource_type="gamma_thing",
                resource_id_path="id",
            ),
        ),
    )


@pytest.fixture
def scenarios(chain_scenario):
    return ScenarioRegistry([chain_scenario])


@pytest.fixture
def undo_registry():
    registry = UndoRegistry()

    @registry.undo("alpha_thing", "ALPHA_DELETE")
    def delete_alpha(entry):
        return {"id": entry.external_resource_id}

    @registry.undo("beta_thing", "BETA_DELETE")
    def delete_beta(entry):
        return {"id": entry.external_resource_id}

    @registry.undo("gamma_thing", "GAMMA_DELETE")
    def delete_gamma(entry):
        return {"id": entry.external_resource_id}

    return registry


# ============================================
# ASSEMBLED SERVICES
# ============================================


@pytest.fixture
def orchestrator(store, executor, connections, config, scenarios):
    return ScenarioOrchestrator(
        store=store,
        executor=executor,
        connections=connections,
        config=config,
        scenarios=scenarios,
    )


@pytest.fixture
def service(store, executor, connections, config, scenarios, undo_registry):
    return Seedline(
        store=store,
        executor=executor,
        connections=connections,
        config=config,
        scenarios=scenarios,
        undo_registry=undo_registry,
    )


@pytest.fixture
def fake_executor_class():
    return FakeExecutor
