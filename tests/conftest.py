import threading
from typing import Any, Dict, List, Optional

import pytest

from config import (
    AISettings,
    DisasterSettings,
    EconomySettings,
    LLMSettings,
    Settings,
    SimulationSettings,
)
from src.ai_layer.channel import AdvisoryChannel
from src.data_layer.building_catalog import BuildingType
from src.data_layer.grid_store import GridStore
from src.simulation_layer.engine import CityEngine
from src.simulation_layer.exceptions import AdvisoryUnavailable
from src.simulation_layer.models import (
    ActionType,
    AIAction,
    AIGoal,
    EventChoice,
    EventEffect,
    EventType,
    GameEvent,
    GoalTargetType,
)


def make_settings(**overrides) -> Settings:
    """Quiet, deterministic settings: no random events, disasters or river unless asked for."""
    sections = {
        "simulation": SimulationSettings(grid_width=8, grid_height=8, seed=7, river=False, auto_tick=False),
        "economy": EconomySettings(event_chance=0.0),
        "disasters": DisasterSettings(base_chance=0.0),
        "ai": AISettings(event_chance=0.0, plan_interval_ticks=1, advisory_timeout_ticks=3),
        "llm": LLMSettings(provider="none"),
    }
    sections.update(overrides)
    return Settings(**sections)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def engine(settings):
    eng = CityEngine(settings, seed=7)
    yield eng
    eng.close()


@pytest.fixture
def road_grid() -> GridStore:
    """4x4, road along y=1."""
    grid = GridStore(4, 4)
    for x in range(4):
        grid.place(x, 1, BuildingType.ROAD, 10_000)
    return grid


def two_choice_event(event_id: str = "test-event", money=(100, -100)) -> GameEvent:
    return GameEvent(
        id=event_id,
        title="Test Event",
        description="Something odd happens.",
        type=EventType.WEIRD,
        choices=(
            EventChoice("Take the money", f"{money[0]:+d}", EventEffect(money=money[0])),
            EventChoice("Pay up", f"{money[1]:+d}", EventEffect(money=money[1])),
        ),
    )


class FakeAdvisor:
    """Stands in for AdvisoryService. Optionally blocks on a gate or fails every call."""

    def __init__(
        self,
        fail: bool = False,
        gate: Optional[threading.Event] = None,
        action: Optional[AIAction] = None,
    ):
        self.fail = fail
        self.gate = gate
        self.action = action or AIAction(ActionType.WAIT, reasoning="fake")
        self.calls: List[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail:
            raise AdvisoryUnavailable(f"{name} failed")

    def generate_goal(self, summary: Dict[str, Any]) -> AIGoal:
        self._enter("goal")
        return AIGoal(
            description="Reach 1000 residents",
            target_type=GoalTargetType.POPULATION,
            target_value=1000,
            reward=1234,
            source="advisory",
        )

    def generate_event(self, summary: Dict[str, Any]) -> GameEvent:
        self._enter("event")
        return two_choice_event("ai-fake")

    def propose_action(self, summary: Dict[str, Any], grid_summary: Dict[str, Any]) -> AIAction:
        self._enter("action")
        return self.action


@pytest.fixture
def channel():
    ch = AdvisoryChannel(max_workers=2, timeout_ticks=3)
    yield ch
    ch.shutdown()
