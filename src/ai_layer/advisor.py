"""
Advisory service: goal, event and action proposals from an LLM.

Each call renders a prompt template, calls the LLM client with bounded retries,
extracts the JSON object from the reply and validates it with pydantic.
Any failure surfaces as AdvisoryUnavailable; callers fall back to heuristics.
"""

import json
import logging
import time
import uuid
from typing import Any, Dict, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, Field, ValidationError

from config import AISettings, get_settings
from src.ai_layer.llm_client import LLMClient, create_llm_client
from src.ai_layer.prompts import ACTION, EVENT, GOAL, SYSTEM, load_prompt, render_prompt
from src.data_layer.building_catalog import BUILDINGS, BuildingType, placeable_types
from src.data_layer.grid_store import GridStore
from src.simulation_layer.exceptions import AdvisoryUnavailable
from src.simulation_layer.models import (
    ActionType,
    ActiveDisaster,
    AIAction,
    AIGoal,
    CityStats,
    EventChoice,
    EventEffect,
    EventType,
    GameEvent,
    GoalTargetType,
    WeatherType,
)

logger = logging.getLogger(__name__)

# One character per building type for the grid picture in the action prompt
GRID_SYMBOLS: Dict[BuildingType, str] = {
    BuildingType.NONE: ".",
    BuildingType.WATER: "~",
    BuildingType.ROAD: "#",
    BuildingType.BRIDGE: "=",
    BuildingType.RESIDENTIAL: "r",
    BuildingType.APARTMENT: "a",
    BuildingType.MANSION: "m",
    BuildingType.COMMERCIAL: "c",
    BuildingType.INDUSTRIAL: "i",
    BuildingType.PARK: "p",
    BuildingType.SCHOOL: "s",
    BuildingType.UNIVERSITY: "u",
    BuildingType.RESEARCH_CENTRE: "R",
    BuildingType.HOSPITAL: "h",
    BuildingType.POLICE: "P",
    BuildingType.FIRE_STATION: "F",
    BuildingType.STADIUM: "S",
    BuildingType.GOLD_MINE: "G",
    BuildingType.CASINO: "C",
    BuildingType.MEGA_MALL: "M",
    BuildingType.SPACE_PORT: "X",
}


# ========== Payload schemas ==========

class GoalPayload(BaseModel):
    description: str = Field(min_length=1)
    target_type: GoalTargetType
    target_value: int = Field(gt=0)
    building_type: Optional[BuildingType] = None
    reward: int = Field(ge=0, le=100_000)


class EffectPayload(BaseModel):
    money: int = Field(default=0, ge=-10_000, le=10_000)
    happiness: float = Field(default=0.0, ge=-50, le=50)
    education: float = Field(default=0.0, ge=-50, le=50)
    safety: float = Field(default=0.0, ge=-50, le=50)
    population: int = Field(default=0, ge=-500, le=500)
    shadow_economy: float = Field(default=0.0, ge=-0.5, le=0.5)
    supply_level: float = Field(default=0.0, ge=-0.5, le=0.5)
    share_price_multiplier: float = Field(default=1.0, gt=0, le=3.0)


class ChoicePayload(BaseModel):
    label: str = Field(min_length=1)
    effect_description: str = ""
    effect: EffectPayload = Field(default_factory=EffectPayload)


class EventPayload(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    type: EventType = EventType.WEIRD
    choices: List[ChoicePayload] = Field(min_length=2, max_length=2)


class ActionPayload(BaseModel):
    action: ActionType
    building_type: Optional[BuildingType] = None
    x: Optional[int] = None
    y: Optional[int] = None
    reasoning: Optional[str] = None


# ========== City summaries for prompts ==========

def summarize_city(
    stats: CityStats,
    weather: Optional[WeatherType] = None,
    disaster: Optional[ActiveDisaster] = None,
) -> Dict[str, Any]:
    return {
        "day": stats.day,
        "money": stats.money,
        "population": stats.population,
        "housing_capacity": stats.housing_capacity,
        "tax_rate": stats.tax_rate,
        "happiness": round(stats.happiness, 1),
        "education": round(stats.education, 1),
        "safety": round(stats.safety, 1),
        "unemployment": round(stats.jobs.unemployment, 3),
        "income": stats.budget.income,
        "expenses": stats.budget.expenses,
        "loan_principal": round(stats.loan_principal),
        "economic_event": stats.active_event.value,
        "weather": weather.value if weather else None,
        "disaster": f"{disaster.type.value} ({disaster.stage.value})" if disaster else None,
    }


def summarize_grid(grid: GridStore, rejected: Optional[Set[Tuple[int, int]]] = None) -> Dict[str, Any]:
    rows = ["".join(GRID_SYMBOLS[t] for t in row) for row in grid.types()]
    return {
        "width": grid.width,
        "height": grid.height,
        "grid": "\n".join(rows),
        "legend": ", ".join(f"{sym}={t.value}" for t, sym in GRID_SYMBOLS.items()),
        "frontier": grid.road_frontier()[:30],
        "counts": {t.value: n for t, n in grid.counts().items()},
        "rejected": sorted(rejected or []),
    }


class AdvisoryService:
    """
    Synchronous advisory calls, run off the tick thread by the advisory channel.
    The LLM client is created lazily so a provider-less setup never touches the network.
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        settings: Optional[AISettings] = None,
        backoff_seconds: float = 2.0,
    ):
        self.llm_client = client
        self.settings = settings or get_settings().ai
        self.backoff_seconds = backoff_seconds

    def _get_llm_client(self) -> LLMClient:
        if self.llm_client is None:
            try:
                self.llm_client = create_llm_client()
            except ValueError as e:
                raise AdvisoryUnavailable(str(e)) from e
        return self.llm_client

    def _call_llm(self, prompt: str) -> str:
        """Blocking call with retry. Raises AdvisoryUnavailable when every attempt fails."""
        client = self._get_llm_client()
        system_prompt = load_prompt(SYSTEM)
        max_retries = max(1, self.settings.max_retries)

        for attempt in range(max_retries):
            try:
                return client.generate_sync(prompt, system_prompt)
            except Exception as e:
                error_str = str(e)
                logger.warning("LLM call failed (attempt %d/%d): %s", attempt + 1, max_retries, error_str)
                if attempt == max_retries - 1:
                    raise AdvisoryUnavailable(f"LLM call failed: {e}") from e
                if "429" in error_str or "rate" in error_str.lower():
                    time.sleep((attempt + 1) * self.backoff_seconds)
        raise AdvisoryUnavailable(f"LLM call failed after {max_retries} retries")

    def _parse_json_response(self, response: str) -> Dict[str, Any]:
        """Extract the outermost JSON object from the reply."""
        start = response.find('{')
        end = response.rfind('}') + 1
        if start == -1 or end <= start:
            raise AdvisoryUnavailable("No JSON object in advisory response")
        try:
            data = json.loads(response[start:end])
        except json.JSONDecodeError as e:
            raise AdvisoryUnavailable(f"Malformed advisory JSON: {e}") from e
        if not isinstance(data, dict):
            raise AdvisoryUnavailable("Advisory JSON is not an object")
        return data

    # -------------------------
    # Requests
    # -------------------------
    def generate_goal(self, summary: Dict[str, Any]) -> AIGoal:
        prompt = render_prompt(
            GOAL,
            summary=json.dumps(summary),
            building_types=", ".join(t.value for t in placeable_types()),
        )
        data = self._parse_json_response(self._call_llm(prompt))
        try:
            payload = GoalPayload.model_validate(data)
        except ValidationError as e:
            raise AdvisoryUnavailable(f"Invalid goal payload: {e}") from e

        if payload.target_type == GoalTargetType.BUILDING_COUNT and payload.building_type is None:
            raise AdvisoryUnavailable("building_count goal without building_type")
        building_type = payload.building_type if payload.target_type == GoalTargetType.BUILDING_COUNT else None
        return AIGoal(
            description=payload.description,
            target_type=payload.target_type,
            target_value=payload.target_value,
            reward=payload.reward,
            building_type=building_type,
            source="advisory",
        )

    def generate_event(self, summary: Dict[str, Any]) -> GameEvent:
        prompt = render_prompt(EVENT, summary=json.dumps(summary))
        data = self._parse_json_response(self._call_llm(prompt))
        try:
            payload = EventPayload.model_validate(data)
        except ValidationError as e:
            raise AdvisoryUnavailable(f"Invalid event payload: {e}") from e

        first, second = (
            EventChoice(
                label=c.label,
                effect_description=c.effect_description,
                effect=EventEffect(**c.effect.model_dump()),
            )
            for c in payload.choices
        )
        return GameEvent(
            id=f"ai-{uuid.uuid4().hex[:8]}",
            title=payload.title,
            description=payload.description,
            type=payload.type,
            choices=(first, second),
            source="advisory",
        )

    def propose_action(self, summary: Dict[str, Any], grid_summary: Dict[str, Any]) -> AIAction:
        catalog = ", ".join(f"{t.value}: {BUILDINGS[t].cost}" for t in placeable_types())
        prompt = render_prompt(
            ACTION,
            summary=json.dumps(summary),
            width=grid_summary["width"],
            height=grid_summary["height"],
            legend=grid_summary["legend"],
            grid=grid_summary["grid"],
            frontier=grid_summary["frontier"],
            catalog=catalog,
            money=summary.get("money", 0),
            rejected=grid_summary.get("rejected", []),
        )
        data = self._parse_json_response(self._call_llm(prompt))
        try:
            payload = ActionPayload.model_validate(data)
        except ValidationError as e:
            raise AdvisoryUnavailable(f"Invalid action payload: {e}") from e

        if payload.action != ActionType.WAIT and (payload.x is None or payload.y is None):
            raise AdvisoryUnavailable(f"{payload.action.value} without coordinates")
        if payload.action == ActionType.BUILD and payload.building_type is None:
            raise AdvisoryUnavailable("BUILD without building_type")
        return AIAction(
            action=payload.action,
            building_type=payload.building_type,
            x=payload.x,
            y=payload.y,
            reasoning=payload.reasoning,
        )
