import random

import pytest

from config import AISettings
from src.simulation_layer.engine import CityEngine
from src.simulation_layer.events import EventEngine, HISTORY_BY_EVENT_TYPE, best_choice, score_effect
from src.simulation_layer.exceptions import InvalidChoice, UnknownEvent
from src.simulation_layer.models import (
    CityStats,
    EventChoice,
    EventEffect,
    EventType,
    GameEvent,
)
from src.simulation_layer.scenario.axiom_scenario import create_default_events

from tests.conftest import make_settings, two_choice_event


def test_default_pool_has_unique_ids_and_two_choices():
    pool = create_default_events()
    assert len({e.id for e in pool}) == len(pool)
    assert all(len(e.choices) == 2 for e in pool)
    assert set(HISTORY_BY_EVENT_TYPE) == set(EventType)


def test_event_needs_exactly_two_choices():
    with pytest.raises(ValueError):
        GameEvent(
            id="lonely",
            title="Lonely",
            description="Only one way out",
            type=EventType.WEIRD,
            choices=(EventChoice("Only", "nothing"),),
        )


def test_scripted_draw_respects_cooldown():
    engine = EventEngine(AISettings(event_cooldown_ticks=10), pool=[two_choice_event("solo")])
    rng = random.Random(0)

    first = engine.draw_scripted(rng, day=1)
    assert first.id == "solo-d1"
    assert first.raised_day == 1
    assert engine.draw_scripted(rng, day=5) is None
    assert engine.draw_scripted(rng, day=11).id == "solo-d11"


def test_should_raise_blocked_while_pending():
    engine = EventEngine(AISettings(event_chance=1.0))
    pending = two_choice_event()
    assert engine.should_raise(None, random.Random(0))
    assert not engine.should_raise(pending, random.Random(0))


def test_resolve_returns_effect_and_history_headline():
    engine = EventEngine()
    pending = two_choice_event("e-1", money=(500, -50))

    effect, headlines = engine.resolve(pending, "e-1", 0)

    assert effect == EventEffect(money=500)
    assert len(headlines) == 1
    assert headlines[0].history == HISTORY_BY_EVENT_TYPE[EventType.WEIRD]
    assert "Take the money" in headlines[0].text


def test_resolve_rejects_wrong_id_and_choice():
    engine = EventEngine()
    pending = two_choice_event("e-1")

    with pytest.raises(UnknownEvent):
        engine.resolve(pending, "e-2", 0)
    with pytest.raises(UnknownEvent):
        engine.resolve(None, "e-1", 0)
    with pytest.raises(InvalidChoice):
        engine.resolve(pending, "e-1", 2)


def test_fallback_draws_scripted():
    engine = EventEngine(pool=[two_choice_event("fallback")])
    event = engine.fallback(random.Random(0), day=3, reason="timed out")
    assert event.source == "scripted"
    assert event.id == "fallback-d3"


def test_accept_advisory_stamps_source_and_day():
    engine = EventEngine()
    event = engine.accept_advisory(two_choice_event("ai-123"), day=7)
    assert event.source == "advisory"
    assert event.raised_day == 7
    assert event.id == "ai-123"


def test_best_choice_prefers_better_effect():
    stats = CityStats(money=5000)
    assert best_choice(two_choice_event(money=(100, -100)), stats) == 0
    assert best_choice(two_choice_event(money=(-100, 100)), stats) == 1
    assert best_choice(two_choice_event(money=(0, 0)), stats) == 0


def test_unaffordable_choice_scores_worst():
    stats = CityStats(money=50)
    assert score_effect(EventEffect(money=-100, happiness=40), stats) == float("-inf")
    assert best_choice(two_choice_event(money=(-100, -10)), stats) == 1


def test_resolved_effect_applies_on_next_tick(engine):
    engine.ctx.pending_event = two_choice_event("windfall", money=(777, 0))

    result = engine.resolve_event("windfall", 0)
    assert result.accepted
    assert engine.ctx.pending_event is None
    assert engine.current_stats().money == engine.settings.simulation.starting_money

    stats = engine.tick()

    assert stats.budget.one_time == 777
    assert engine.ctx.queued_effect is None


def test_resolve_event_command_errors(engine):
    engine.ctx.pending_event = two_choice_event("e-1")

    with pytest.raises(UnknownEvent):
        engine.resolve_event("nope", 0)
    with pytest.raises(InvalidChoice):
        engine.resolve_event("e-1", 5)
    assert engine.ctx.pending_event is not None


def test_scripted_events_raise_without_advisory():
    settings = make_settings(ai=AISettings(event_chance=1.0))
    engine = CityEngine(settings, seed=1, event_pool=[two_choice_event("only")])
    try:
        engine.tick()
        assert engine.ctx.pending_event.id == "only-d1"
        engine.tick()
        assert engine.ctx.pending_event.id == "only-d1"
    finally:
        engine.close()
