"""
Event Engine: at most one pending GameEvent.

Scripted events come from a fixed pool with per-template cooldowns.
Advisory events arrive through the advisory channel; when that path fails or
times out the engine falls back to a scripted draw. Resolution queues the
chosen effect for the next economic tick.
"""

import logging
import random
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from config import AISettings
from src.simulation_layer.exceptions import InvalidChoice, UnknownEvent
from src.simulation_layer.models import (
    CityStats,
    EventEffect,
    EventType,
    GameEvent,
    HistoryType,
    NewsType,
)
from src.simulation_layer.news import Headline
from src.simulation_layer.scenario.axiom_scenario import create_default_events

logger = logging.getLogger(__name__)

HISTORY_BY_EVENT_TYPE: Dict[EventType, HistoryType] = {
    EventType.WEIRD: HistoryType.MINOR,
    EventType.DISASTER: HistoryType.DISASTER,
    EventType.OPPORTUNITY: HistoryType.MAJOR,
}


def score_effect(effect: EventEffect, stats: CityStats) -> float:
    """How good an effect looks for this city. Money matters more when the treasury is thin."""
    money_weight = 0.05 if stats.money < 1000 else 0.01
    if effect.money < 0 and -effect.money > stats.money:
        return float("-inf")
    return (
        effect.money * money_weight
        + effect.happiness
        + effect.education * 0.5
        + effect.safety * 0.8
        + effect.population * 0.3
        - effect.shadow_economy * 100.0
        + effect.supply_level * 40.0
        + (effect.share_price_multiplier - 1.0) * 30.0 * (stats.investment_shares > 0)
    )


def best_choice(event: GameEvent, stats: CityStats) -> int:
    """Index of the higher-scoring choice; ties go to the first."""
    scores = [score_effect(c.effect, stats) for c in event.choices]
    return 0 if scores[0] >= scores[1] else 1


class EventEngine:
    """Holds the scripted pool and cooldowns; the pending event itself lives in the city context."""

    def __init__(
        self,
        settings: Optional[AISettings] = None,
        pool: Optional[List[GameEvent]] = None,
        cooldowns: Optional[Dict[str, int]] = None,
    ):
        self.settings = settings or AISettings()
        self.pool = pool if pool is not None else create_default_events()
        # template id -> first day it may be drawn again
        self.cooldowns: Dict[str, int] = dict(cooldowns or {})

    def should_raise(self, pending: Optional[GameEvent], rng: random.Random) -> bool:
        """Per-tick roll. Always draws so the RNG stream does not depend on the pending slot."""
        roll = rng.random()
        return pending is None and roll < self.settings.event_chance

    def available(self, day: int) -> List[GameEvent]:
        return [e for e in self.pool if self.cooldowns.get(e.id, 0) <= day]

    def draw_scripted(self, rng: random.Random, day: int) -> Optional[GameEvent]:
        """Pick a template off cooldown and stamp an instance id. None when everything is cooling down."""
        candidates = self.available(day)
        if not candidates:
            logger.debug("Day %d: all scripted events on cooldown", day)
            return None
        template = rng.choice(candidates)
        self.cooldowns[template.id] = day + self.settings.event_cooldown_ticks
        event = replace(template, id=f"{template.id}-d{day}", source="scripted", raised_day=day)
        logger.info("Day %d: scripted event %s", day, event.id)
        return event

    def accept_advisory(self, event: GameEvent, day: int) -> GameEvent:
        stamped = replace(event, source="advisory", raised_day=day)
        logger.info("Day %d: advisory event %s", day, stamped.id)
        return stamped

    def fallback(self, rng: random.Random, day: int, reason: str) -> Optional[GameEvent]:
        logger.warning("Day %d: advisory event unavailable (%s), drawing a scripted one", day, reason)
        return self.draw_scripted(rng, day)

    def announce(self, event: GameEvent) -> Headline:
        kind = NewsType.NEGATIVE if event.type == EventType.DISASTER else NewsType.NEUTRAL
        return Headline(f"{event.title}: {event.description}", kind)

    def resolve(
        self,
        pending: Optional[GameEvent],
        event_id: str,
        choice_index: int,
        resolved_by: str = "mayor",
    ) -> Tuple[EventEffect, List[Headline]]:
        """Validate the choice and return the effect to queue plus news/history."""
        if pending is None or pending.id != event_id:
            raise UnknownEvent(event_id)
        if choice_index not in (0, 1):
            raise InvalidChoice(event_id, choice_index)

        choice = pending.choices[choice_index]
        logger.info("Event %s resolved by %s: %s", event_id, resolved_by, choice.label)
        text = f"{pending.title}: the {resolved_by} chose \"{choice.label}\" ({choice.effect_description})."
        kind = NewsType.POSITIVE if pending.type == EventType.OPPORTUNITY else NewsType.NEUTRAL
        return choice.effect, [Headline(text, kind, HISTORY_BY_EVENT_TYPE[pending.type])]
