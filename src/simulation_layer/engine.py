"""
City engine: owns one CityContext and serializes ticks and commands.

Tick order:
0. Validate the carried-over stats (a rejected tick changes nothing)
1. Collect advisory responses (goal / event / action) and expire stale requests
2. Weather
3. Disaster (progression, then the weather-scaled onset roll)
4. Event Engine may raise an event
5. AI mayor (claim a completed goal, auto-resolve the pending event, one action per planning interval)
6. Economic Simulator, reporting cash moved by commands since the previous tick
7. Goal Planner
8. News / history, per-tick history row

The grid is only mutated by commands and AI actions, never by the tick itself.
"""

import logging
import random
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Set, Tuple

import pandas as pd

from config import Settings, get_settings
from src.ai_layer.advisor import AdvisoryService, summarize_city, summarize_grid
from src.ai_layer.channel import AdvisoryChannel, AdvisoryResult, Purpose
from src.data_layer.building_catalog import BuildingType, get_building
from src.data_layer.grid_store import Coord, GridStore
from src.simulation_layer import finance
from src.simulation_layer.disasters import DisasterController
from src.simulation_layer.economy import EconomicSimulator, initial_stats, validate_simulation_input
from src.simulation_layer.events import EventEngine, best_choice
from src.simulation_layer.exceptions import InvalidPlacement, NothingToDemolish
from src.simulation_layer.models import (
    ActionType,
    ActiveDisaster,
    AIAction,
    AIGoal,
    CityStats,
    CommandResult,
    DisasterType,
    EventEffect,
    GameEvent,
    HistoryLogEntry,
    HistoryType,
    ModifierField,
    NewsItem,
    NewsType,
    WeatherState,
    apply_modifiers,
)
from src.simulation_layer.news import Headline, NewsLog
from src.simulation_layer.planner import ActionPlanner, GoalPlanner
from src.simulation_layer.weather import WeatherController, weather_modifier

logger = logging.getLogger(__name__)


@dataclass
class CityContext:
    """Everything a tick reads or writes. One per session."""

    stats: CityStats
    grid: GridStore
    weather: WeatherState
    rng: random.Random
    disaster: Optional[ActiveDisaster] = None
    goal: Optional[AIGoal] = None
    pending_event: Optional[GameEvent] = None
    queued_effect: Optional[EventEffect] = None
    ai_enabled: bool = False
    last_action: Optional[AIAction] = None
    last_plan_day: int = 0
    excluded_tiles: Set[Coord] = field(default_factory=set)
    excluded_version: int = -1
    construction_spend: int = 0
    finance_cash: int = 0
    news: NewsLog = field(default_factory=NewsLog)


@dataclass(frozen=True)
class CitySnapshot:
    """Read-only view handed to renderers."""

    stats: CityStats
    tiles: List[List[BuildingType]]
    weather: WeatherState
    disaster: Optional[ActiveDisaster]
    goal: Optional[AIGoal]
    pending_event: Optional[GameEvent]
    ai_enabled: bool
    last_action: Optional[AIAction]
    news: List[NewsItem]
    history: List[HistoryLogEntry]


class CityEngine:
    """
    Single source of simulation truth.
    All public methods take the engine lock, so the driving clock and UI
    commands never interleave.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        advisor: Optional[AdvisoryService] = None,
        channel: Optional[AdvisoryChannel] = None,
        seed: Optional[int] = None,
        event_pool: Optional[List[GameEvent]] = None,
    ):
        self.settings = settings or get_settings()
        s = self.settings

        self.weather_controller = WeatherController()
        self.disaster_controller = DisasterController(s.disasters)
        self.simulator = EconomicSimulator(s.economy)
        self.event_engine = EventEngine(s.ai, pool=event_pool)
        self.goal_planner = GoalPlanner()
        self.action_planner = ActionPlanner()

        if advisor is None and s.llm.provider.lower() != "none":
            advisor = AdvisoryService(settings=s.ai)
        self.advisor = advisor
        if self.advisor is not None and channel is None:
            channel = AdvisoryChannel(max_workers=s.ai.max_workers, timeout_ticks=s.ai.advisory_timeout_ticks)
        self.channel = channel

        self._lock = threading.RLock()
        self.seed = seed if seed is not None else s.simulation.seed
        self.ctx = self.new_context(self.seed)
        self.rows: Deque[Dict[str, Any]] = deque(maxlen=s.simulation.history_rows)

    @property
    def lock(self) -> threading.RLock:
        """Held while reading or swapping the context from outside the engine."""
        return self._lock

    @property
    def advisory_enabled(self) -> bool:
        return self.advisor is not None and self.channel is not None

    def new_context(self, seed: Optional[int] = None) -> CityContext:
        sim = self.settings.simulation
        rng = random.Random(seed)
        grid = GridStore.generate(sim.grid_width, sim.grid_height, rng, river=sim.river)
        return CityContext(
            stats=initial_stats(self.settings.economy, sim.starting_money),
            grid=grid,
            weather=self.weather_controller.initial_state(rng, 0),
            rng=rng,
        )

    # -------------------------
    # Read side
    # -------------------------
    def snapshot(self, news_limit: int = 20, history_limit: int = 50) -> CitySnapshot:
        with self._lock:
            ctx = self.ctx
            return CitySnapshot(
                stats=ctx.stats,
                tiles=ctx.grid.types(),
                weather=ctx.weather,
                disaster=ctx.disaster,
                goal=ctx.goal,
                pending_event=ctx.pending_event,
                ai_enabled=ctx.ai_enabled,
                last_action=ctx.last_action,
                news=ctx.news.recent(news_limit),
                history=ctx.news.recent_history(history_limit),
            )

    def current_stats(self) -> CityStats:
        with self._lock:
            return self.ctx.stats

    def history_frame(self) -> pd.DataFrame:
        with self._lock:
            return pd.DataFrame(list(self.rows))

    # -------------------------
    # Tick
    # -------------------------
    def tick(self) -> CityStats:
        with self._lock:
            ctx = self.ctx
            day = ctx.stats.day + 1
            headlines: List[Headline] = []

            # 0. Input check, before anything advances
            ctx.stats = validate_simulation_input(ctx.stats)

            # 1. Advisory responses
            if self.advisory_enabled:
                for result in self.channel.collect(day):
                    headlines.extend(self._apply_advisory(result, day))

            # 2. Weather
            ctx.weather, news = self.weather_controller.advance(ctx.weather, ctx.rng, day)
            headlines.extend(news)
            w_mod = weather_modifier(ctx.weather.weather)

            # 3. Disaster
            if ctx.disaster is None:
                chance = apply_modifiers([w_mod], ModifierField.DISASTER_CHANCE, 1.0)
                ctx.disaster, news = self.disaster_controller.roll(None, ctx.grid, ctx.rng, day, chance)
            else:
                ctx.disaster, news = self.disaster_controller.advance(ctx.disaster, day)
            headlines.extend(news)
            d_mod = self.disaster_controller.modifier(ctx.disaster, ctx.grid)

            # 4. Events
            headlines.extend(self._maybe_raise_event(day))

            # 5. AI mayor
            if ctx.ai_enabled:
                headlines.extend(self._auto_claim())
                headlines.extend(self._auto_resolve(day))
                headlines.extend(self._plan(day))

            # 6. Economy
            outcome = self.simulator.advance(
                ctx.stats,
                ctx.grid,
                weather_modifier=w_mod,
                disaster_modifier=d_mod,
                pending_effect=ctx.queued_effect,
                rng=ctx.rng,
                construction=ctx.construction_spend,
                finance=ctx.finance_cash,
            )
            ctx.stats = outcome.stats
            ctx.queued_effect = None
            ctx.construction_spend = 0
            ctx.finance_cash = 0
            headlines.extend(outcome.headlines)

            # 7. Goals
            headlines.extend(self._update_goal(day))

            # 8. News
            ctx.news.publish_all(headlines, day)
            self.rows.append(self._row())
            return ctx.stats

    def run(self, num_ticks: int) -> pd.DataFrame:
        """Advance num_ticks and return one row per tick."""
        rows = []
        for _ in range(num_ticks):
            self.tick()
            rows.append(self.rows[-1])
        return pd.DataFrame(rows)

    def _row(self) -> Dict[str, Any]:
        ctx = self.ctx
        s = ctx.stats
        return {
            "day": s.day,
            "money": s.money,
            "population": s.population,
            "housing_capacity": s.housing_capacity,
            "income": s.budget.income,
            "expenses": s.budget.expenses,
            "one_time": s.budget.one_time,
            "tax_rate": s.tax_rate,
            "happiness": round(s.happiness, 2),
            "education": round(s.education, 2),
            "safety": round(s.safety, 2),
            "unemployment": round(s.jobs.unemployment, 4),
            "share_price": round(s.share_price, 2),
            "weather": ctx.weather.weather.value,
            "wind_speed": ctx.weather.wind_speed,
            "disaster": ctx.disaster.type.value if ctx.disaster else DisasterType.NONE.value,
            "disaster_stage": ctx.disaster.stage.value if ctx.disaster else None,
            "economic_event": s.active_event.value,
            "buildings": len(ctx.grid.occupied()),
        }

    # -------------------------
    # Tick steps
    # -------------------------
    def _summary(self) -> Dict[str, Any]:
        ctx = self.ctx
        return summarize_city(ctx.stats, ctx.weather.weather, ctx.disaster)

    def _apply_advisory(self, result: AdvisoryResult, day: int) -> List[Headline]:
        ctx = self.ctx
        match result.purpose:
            case Purpose.GOAL:
                if ctx.goal is not None:
                    return []
                ctx.goal = result.value if result.ok else self.goal_planner.heuristic_goal(
                    ctx.stats, ctx.grid, ctx.rng
                )
                return [Headline(f"New goal: {ctx.goal.description} (reward ${ctx.goal.reward})")]
            case Purpose.EVENT:
                if ctx.pending_event is not None:
                    return []
                if result.ok:
                    event = self.event_engine.accept_advisory(result.value, day)
                else:
                    event = self.event_engine.fallback(ctx.rng, day, result.error)
                if event is None:
                    return []
                ctx.pending_event = event
                return [self.event_engine.announce(event)]
            case Purpose.ACTION:
                if not ctx.ai_enabled:
                    return []
                if result.ok:
                    action = result.value
                else:
                    logger.warning("Day %d: advisory action unavailable (%s), using heuristic", day, result.error)
                    action = self.action_planner.propose(ctx.stats, ctx.grid, ctx.rng, self._excluded())
                return self._execute(action)
        raise ValueError(f"Unhandled advisory purpose: {result.purpose}")

    def _maybe_raise_event(self, day: int) -> List[Headline]:
        ctx = self.ctx
        if self.advisory_enabled and self.channel.pending(Purpose.EVENT):
            return []
        if not self.event_engine.should_raise(ctx.pending_event, ctx.rng):
            return []
        if self.advisory_enabled:
            self.channel.request(Purpose.EVENT, self.advisor.generate_event, self._summary(), day=day)
            return []
        event = self.event_engine.draw_scripted(ctx.rng, day)
        if event is None:
            return []
        ctx.pending_event = event
        return [self.event_engine.announce(event)]

    def _update_goal(self, day: int) -> List[Headline]:
        ctx = self.ctx
        ctx.goal, headlines = self.goal_planner.check(ctx.goal, ctx.stats, ctx.grid)
        if ctx.goal is not None:
            return headlines
        if self.advisory_enabled:
            if not self.channel.pending(Purpose.GOAL):
                self.channel.request(Purpose.GOAL, self.advisor.generate_goal, self._summary(), day=day)
            return headlines
        ctx.goal = self.goal_planner.heuristic_goal(ctx.stats, ctx.grid, ctx.rng)
        logger.info("Day %d: new goal: %s", day, ctx.goal.description)
        headlines.append(Headline(f"New goal: {ctx.goal.description} (reward ${ctx.goal.reward})"))
        return headlines

    def _claim(self) -> Tuple[CommandResult, List[Headline]]:
        ctx = self.ctx
        before = ctx.stats.money
        ctx.goal, ctx.stats, result = self.goal_planner.claim(ctx.goal, ctx.stats)
        ctx.finance_cash += ctx.stats.money - before
        if not result.accepted:
            return result, []
        return result, [Headline(f"Goal reward paid: {result.message}", NewsType.POSITIVE)]

    def _auto_claim(self) -> List[Headline]:
        goal = self.ctx.goal
        if goal is None or not goal.completed:
            return []
        _, headlines = self._claim()
        return headlines

    def _auto_resolve(self, day: int) -> List[Headline]:
        ctx = self.ctx
        event = ctx.pending_event
        if event is None or day - event.raised_day < self.settings.ai.auto_resolve_delay_ticks:
            return []
        return self._resolve(event.id, best_choice(event, ctx.stats), "AI mayor")

    def _plan(self, day: int) -> List[Headline]:
        ctx = self.ctx
        if day - ctx.last_plan_day < self.settings.ai.plan_interval_ticks:
            return []
        ctx.last_plan_day = day
        if self.advisory_enabled:
            if not self.channel.pending(Purpose.ACTION):
                grid_summary = summarize_grid(ctx.grid, self._excluded())
                self.channel.request(
                    Purpose.ACTION, self.advisor.propose_action, self._summary(), grid_summary, day=day
                )
            return []
        action = self.action_planner.propose(ctx.stats, ctx.grid, ctx.rng, self._excluded())
        return self._execute(action)

    def _excluded(self) -> Set[Coord]:
        """Rejected tiles, forgotten as soon as the grid changes."""
        ctx = self.ctx
        if ctx.excluded_version != ctx.grid.version:
            ctx.excluded_tiles = set()
            ctx.excluded_version = ctx.grid.version
        return ctx.excluded_tiles

    def _execute(self, action: AIAction) -> List[Headline]:
        """Apply an AI action through the same validation as player commands."""
        ctx = self.ctx
        ctx.last_action = action
        match action.action:
            case ActionType.WAIT:
                logger.debug("AI mayor waits: %s", action.reasoning)
                return []
            case ActionType.BUILD:
                try:
                    self._place(action.x, action.y, action.building_type)
                except InvalidPlacement as e:
                    return self._reject(action, str(e))
                name = get_building(action.building_type).name
                return [Headline(f"AI mayor built a {name} at ({action.x}, {action.y}).")]
            case ActionType.DEMOLISH:
                try:
                    removed = ctx.grid.demolish(action.x, action.y)
                except (InvalidPlacement, NothingToDemolish) as e:
                    return self._reject(action, str(e))
                name = get_building(removed).name
                return [Headline(f"AI mayor demolished a {name} at ({action.x}, {action.y}).")]
        raise ValueError(f"Unhandled action: {action.action}")

    def _reject(self, action: AIAction, reason: str) -> List[Headline]:
        ctx = self.ctx
        failed = self.action_planner.mark_failed(action)
        ctx.last_action = failed
        if failed.failed_attempt is not None:
            self._excluded().add(failed.failed_attempt)
        logger.warning("AI %s rejected: %s", action.action.value, reason)
        return []

    def _resolve(self, event_id: str, choice_index: int, resolved_by: str) -> List[Headline]:
        ctx = self.ctx
        effect, headlines = self.event_engine.resolve(ctx.pending_event, event_id, choice_index, resolved_by)
        ctx.queued_effect = effect if ctx.queued_effect is None else ctx.queued_effect.combine(effect)
        ctx.pending_event = None
        return headlines

    def _place(self, x: int, y: int, building_type: BuildingType) -> int:
        """Grid mutation + debit. Validation runs first, so either both happen or neither."""
        ctx = self.ctx
        building_type = BuildingType(building_type)
        ctx.grid.validate_placement(x, y, building_type, ctx.stats.money)
        cost = get_building(building_type).cost
        ctx.grid.place(x, y, building_type, ctx.stats.money)
        ctx.stats = finance.debit_construction(ctx.stats, cost)
        ctx.construction_spend += cost
        return cost

    # -------------------------
    # Commands
    # -------------------------
    def place(self, x: int, y: int, building_type: BuildingType) -> CommandResult:
        """Raises InvalidPlacement / CapacityExceeded; nothing changes on failure."""
        with self._lock:
            cost = self._place(x, y, building_type)
            logger.debug("Placed %s at (%d, %d) for $%d", building_type, x, y, cost)
            return CommandResult(True, f"Built {get_building(building_type).name} for ${cost}")

    def demolish(self, x: int, y: int) -> CommandResult:
        """Raises NothingToDemolish / InvalidPlacement. No refund."""
        with self._lock:
            removed = self.ctx.grid.demolish(x, y)
            return CommandResult(True, f"Demolished {get_building(removed).name}")

    def _finance(self, command) -> CommandResult:
        with self._lock:
            ctx = self.ctx
            before = ctx.stats.money
            ctx.stats, result = command(ctx.stats, self.settings.economy)
            ctx.finance_cash += ctx.stats.money - before
            return result

    def cycle_tax(self) -> CommandResult:
        return self._finance(finance.cycle_tax)

    def take_loan(self) -> CommandResult:
        return self._finance(finance.take_loan)

    def repay_loan(self) -> CommandResult:
        return self._finance(finance.repay_loan)

    def buy_shares(self) -> CommandResult:
        return self._finance(finance.buy_shares)

    def sell_shares(self) -> CommandResult:
        return self._finance(finance.sell_shares)

    def claim_reward(self) -> CommandResult:
        with self._lock:
            result, headlines = self._claim()
            self.ctx.news.publish_all(headlines, self.ctx.stats.day)
            return result

    def resolve_event(self, event_id: str, choice_index: int) -> CommandResult:
        """Raises UnknownEvent / InvalidChoice."""
        with self._lock:
            ctx = self.ctx
            ctx.news.publish_all(self._resolve(event_id, choice_index, "mayor"), ctx.stats.day)
            return CommandResult(True, "Decision recorded")

    def trigger_disaster(self, disaster_type: Optional[DisasterType] = None) -> CommandResult:
        """No-op when a disaster is already live."""
        with self._lock:
            ctx = self.ctx
            if ctx.disaster is not None:
                return CommandResult(False, f"{ctx.disaster.type.value} already in progress")
            ctx.disaster, headlines = self.disaster_controller.trigger(
                None, ctx.grid, ctx.rng, ctx.stats.day, disaster_type
            )
            ctx.news.publish_all(headlines, ctx.stats.day)
            return CommandResult(True, f"{ctx.disaster.type.value} incoming")

    def toggle_ai(self) -> bool:
        with self._lock:
            ctx = self.ctx
            ctx.ai_enabled = not ctx.ai_enabled
            ctx.last_plan_day = ctx.stats.day
            logger.info("AI mayor %s", "enabled" if ctx.ai_enabled else "disabled")
            return ctx.ai_enabled

    def reset_city(self, seed: Optional[int] = None) -> None:
        """Atomically replace grid, stats and every pending slot; in-flight advisory work is dropped."""
        with self._lock:
            if self.channel is not None:
                self.channel.reset()
            if seed is not None:
                self.seed = seed
            self.ctx = self.new_context(self.seed)
            self.event_engine.cooldowns.clear()
            self.rows.clear()
            self.ctx.news.publish(Headline("A new city is founded.", NewsType.NEUTRAL, HistoryType.MILESTONE), 0)
            logger.info("City reset (seed=%s)", self.seed)

    def restore(self, ctx: CityContext, cooldowns: Optional[Dict[str, int]] = None) -> None:
        """Swap in a decoded session context."""
        with self._lock:
            if self.channel is not None:
                self.channel.reset()
            self.ctx = ctx
            self.event_engine.cooldowns = dict(cooldowns or {})
            self.rows.clear()

    def close(self) -> None:
        if self.channel is not None:
            self.channel.shutdown()
