import json
from typing import List, Optional

import pytest

from config import AISettings, LLMSettings
from src.ai_layer.advisor import AdvisoryService, summarize_city, summarize_grid
from src.ai_layer.llm_client import (
    GroqClient,
    LLMClient,
    OllamaClient,
    OpenAIClient,
    create_llm_client,
)
from src.ai_layer.prompts import EVENT, GOAL, PROMPT_NAMES, SYSTEM, load_prompt, render_prompt
from src.data_layer.building_catalog import BuildingType
from src.data_layer.grid_store import GridStore
from src.simulation_layer.exceptions import AdvisoryUnavailable
from src.simulation_layer.models import ActionType, CityStats, EventType, GoalTargetType, WeatherType


class ScriptedLLM(LLMClient):
    """Replies from a list; an Exception entry is raised instead of returned."""

    def __init__(self, replies: List[object]):
        super().__init__(LLMSettings())
        self.replies = list(replies)
        self.prompts: List[str] = []

    def generate_sync(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def _service(*replies, retries: int = 2) -> AdvisoryService:
    return AdvisoryService(ScriptedLLM(list(replies)), AISettings(max_retries=retries), backoff_seconds=0)


SUMMARY = summarize_city(CityStats(money=1000, population=20), WeatherType.RAIN)

EVENT_REPLY = json.dumps({
    "title": "Robot Parade",
    "description": "Robots want to march down Main Street.",
    "type": "opportunity",
    "choices": [
        {"label": "Allow it", "effect_description": "+5 happiness", "effect": {"happiness": 5}},
        {"label": "Ban it", "effect_description": "+$200", "effect": {"money": 200}},
    ],
})


# -------------------------
# Prompts
# -------------------------

def test_templates_render_with_json_braces_intact():
    goal = render_prompt(GOAL, summary=json.dumps(SUMMARY), building_types="Road, Park")
    assert '"target_type"' in goal
    assert "Road, Park" in goal
    assert load_prompt(SYSTEM).strip()
    assert "{summary}" not in render_prompt(EVENT, summary="{}")


def test_every_template_ships():
    for name in PROMPT_NAMES:
        assert load_prompt(name).strip()


def test_missing_template_raises():
    with pytest.raises(FileNotFoundError):
        load_prompt("nope")


# -------------------------
# Parsing and validation
# -------------------------

def test_goal_from_reply_with_chatter():
    reply = 'Sure! {"description": "Grow to 200", "target_type": "population", "target_value": 200, "reward": 900} Done.'
    goal = _service(reply).generate_goal(SUMMARY)

    assert goal.target_type == GoalTargetType.POPULATION
    assert goal.target_value == 200
    assert goal.reward == 900
    assert goal.source == "advisory"
    assert goal.building_type is None


def test_building_goal_requires_building_type():
    reply = json.dumps({"description": "More", "target_type": "building_count", "target_value": 3, "reward": 10})
    with pytest.raises(AdvisoryUnavailable):
        _service(reply).generate_goal(SUMMARY)

    reply = json.dumps({
        "description": "Parks", "target_type": "building_count", "target_value": 3,
        "building_type": "Park", "reward": 10,
    })
    assert _service(reply).generate_goal(SUMMARY).building_type == BuildingType.PARK


def test_event_reply_becomes_two_choice_event():
    event = _service(EVENT_REPLY).generate_event(SUMMARY)

    assert event.id.startswith("ai-")
    assert event.type == EventType.OPPORTUNITY
    assert event.source == "advisory"
    assert event.choices[1].effect.money == 200
    assert event.choices[0].effect.happiness == 5


def test_event_with_three_choices_is_rejected():
    data = json.loads(EVENT_REPLY)
    data["choices"].append({"label": "Shrug"})
    with pytest.raises(AdvisoryUnavailable):
        _service(json.dumps(data)).generate_event(SUMMARY)


@pytest.mark.parametrize("reply", ["no json here", "{not json}", "[1, 2]"])
def test_unusable_replies_raise_advisory_unavailable(reply):
    with pytest.raises(AdvisoryUnavailable):
        _service(reply).generate_goal(SUMMARY)


def test_action_reply_and_coordinates():
    grid = GridStore(4, 4)
    grid_summary = summarize_grid(grid, {(1, 1)})
    reply = json.dumps({"action": "BUILD", "building_type": "Park", "x": 2, "y": 3, "reasoning": "green"})
    service = _service(reply)

    action = service.propose_action(SUMMARY, grid_summary)

    assert action.action == ActionType.BUILD
    assert (action.x, action.y) == (2, 3)
    assert "(1, 1)" in service.llm_client.prompts[0]

    missing = json.dumps({"action": "DEMOLISH"})
    with pytest.raises(AdvisoryUnavailable):
        _service(missing).propose_action(SUMMARY, grid_summary)


# -------------------------
# Retries
# -------------------------

def test_retry_then_success():
    reply = json.dumps({"action": "WAIT"})
    service = _service(RuntimeError("429 rate limited"), reply, retries=3)
    assert service.propose_action(SUMMARY, summarize_grid(GridStore(2, 2))).action == ActionType.WAIT


def test_every_attempt_failing_raises():
    service = _service(RuntimeError("boom"), RuntimeError("boom"), retries=2)
    with pytest.raises(AdvisoryUnavailable):
        service.generate_event(SUMMARY)
    assert service.llm_client.replies == []


# -------------------------
# Summaries and clients
# -------------------------

def test_grid_summary_draws_the_map():
    grid = GridStore.from_types([
        [BuildingType.ROAD, BuildingType.WATER],
        [BuildingType.RESIDENTIAL, BuildingType.NONE],
    ])
    summary = summarize_grid(grid)
    assert summary["grid"] == "#~\nr."
    assert summary["counts"] == {"Road": 1, "Residential": 1}
    assert summary["frontier"] == []


def test_client_factory():
    assert isinstance(create_llm_client(LLMSettings(provider="ollama")), OllamaClient)
    assert isinstance(create_llm_client(LLMSettings(provider="OpenAI")), OpenAIClient)
    assert isinstance(create_llm_client(LLMSettings(provider="groq", api_key="k")), GroqClient)
    with pytest.raises(ValueError):
        create_llm_client(LLMSettings(provider="groq", api_key=""))
    with pytest.raises(ValueError):
        create_llm_client(LLMSettings(provider="carrier-pigeon"))


def test_ollama_url_from_base_url():
    client = OllamaClient(LLMSettings(base_url="http://llm:11434/"))
    assert client.url == "http://llm:11434/api/generate"
