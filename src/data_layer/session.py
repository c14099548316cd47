"""
Session snapshot codec.
export_session() turns a running engine into a JSON-compatible dict;
import_session() rebuilds the context so the next tick continues exactly
where the exported one left off (RNG state included).
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from src.data_layer.building_catalog import BuildingType
from src.data_layer.grid_store import GridStore
from src.simulation_layer.engine import CityContext, CityEngine
from src.simulation_layer.exceptions import InvalidSession
from src.simulation_layer.models import (
    ActiveDisaster,
    AIAction,
    AIGoal,
    CityStats,
    EventEffect,
    GameEvent,
    HistoryLogEntry,
    NewsItem,
    WeatherState,
)
from src.simulation_layer.news import NewsLog

logger = logging.getLogger(__name__)

SESSION_FORMAT = 1


@dataclass
class SessionData:
    tiles: List[List[BuildingType]]
    stats: CityStats
    weather: WeatherState
    rng_state: List[Any]
    format: int = SESSION_FORMAT
    grid_version: int = 0
    disaster: Optional[ActiveDisaster] = None
    goal: Optional[AIGoal] = None
    pending_event: Optional[GameEvent] = None
    queued_effect: Optional[EventEffect] = None
    ai_enabled: bool = False
    last_action: Optional[AIAction] = None
    last_plan_day: int = 0
    excluded_tiles: List[Tuple[int, int]] = field(default_factory=list)
    excluded_version: int = -1
    construction_spend: int = 0
    finance_cash: int = 0
    news: List[NewsItem] = field(default_factory=list)
    history: List[HistoryLogEntry] = field(default_factory=list)
    cooldowns: Dict[str, int] = field(default_factory=dict)


_adapter = TypeAdapter(SessionData)


def _rng_to_json(rng: random.Random) -> List[Any]:
    version, internal, gauss_next = rng.getstate()
    return [version, list(internal), gauss_next]


def _rng_from_json(state: List[Any]) -> random.Random:
    rng = random.Random()
    version, internal, gauss_next = state
    rng.setstate((version, tuple(internal), gauss_next))
    return rng


def export_session(engine: CityEngine) -> Dict[str, Any]:
    with engine.lock:
        ctx = engine.ctx
        data = SessionData(
            tiles=ctx.grid.types(),
            stats=ctx.stats,
            weather=ctx.weather,
            rng_state=_rng_to_json(ctx.rng),
            grid_version=ctx.grid.version,
            disaster=ctx.disaster,
            goal=ctx.goal,
            pending_event=ctx.pending_event,
            queued_effect=ctx.queued_effect,
            ai_enabled=ctx.ai_enabled,
            last_action=ctx.last_action,
            last_plan_day=ctx.last_plan_day,
            excluded_tiles=sorted(ctx.excluded_tiles),
            excluded_version=ctx.excluded_version,
            construction_spend=ctx.construction_spend,
            finance_cash=ctx.finance_cash,
            news=list(ctx.news.items),
            history=list(ctx.news.history),
            cooldowns=dict(engine.event_engine.cooldowns),
        )
    return _adapter.dump_python(data, mode="json")


def decode_session(payload: Dict[str, Any]) -> Tuple[CityContext, Dict[str, int]]:
    """Validate a payload and build (context, event cooldowns). Raises InvalidSession."""
    try:
        data = _adapter.validate_python(payload)
    except ValidationError as e:
        raise InvalidSession(f"Invalid session payload: {e}") from e
    if data.format != SESSION_FORMAT:
        raise InvalidSession(f"Unsupported session format {data.format}")

    try:
        grid = GridStore.from_types(data.tiles)
        rng = _rng_from_json(data.rng_state)
    except (ValueError, TypeError, IndexError) as e:
        raise InvalidSession(str(e)) from e
    grid.version = data.grid_version

    ctx = CityContext(
        stats=data.stats,
        grid=grid,
        weather=data.weather,
        rng=rng,
        disaster=data.disaster,
        goal=data.goal,
        pending_event=data.pending_event,
        queued_effect=data.queued_effect,
        ai_enabled=data.ai_enabled,
        last_action=data.last_action,
        last_plan_day=data.last_plan_day,
        excluded_tiles={tuple(t) for t in data.excluded_tiles},
        excluded_version=data.excluded_version,
        construction_spend=data.construction_spend,
        finance_cash=data.finance_cash,
        news=NewsLog(data.news, data.history),
    )
    return ctx, dict(data.cooldowns)


def import_session(payload: Dict[str, Any], engine: Optional[CityEngine] = None) -> CityEngine:
    """Restore a session into `engine` (or a fresh one) and return it."""
    ctx, cooldowns = decode_session(payload)
    engine = engine or CityEngine()
    engine.restore(ctx, cooldowns)
    logger.info("Session restored at day %d", ctx.stats.day)
    return engine
