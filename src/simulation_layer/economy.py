"""
Economic Simulator.
Folds the grid, weather/disaster modifiers and a resolved event effect into
the next CityStats. Deterministic given its inputs and the injected RNG.

Per tick:
1. Survey the grid (road access gates income and housing)
2. Economic event countdown / roll
3. Demographics
4. Revenue and costs, then event and weather/disaster modifiers
5. Happiness / education / safety moving averages
6. Loan accrual and share price walk
7. Threshold news
"""

import logging
import math
import random
from dataclasses import dataclass, field, fields, is_dataclass, replace
from typing import Dict, Iterable, List, Optional, Tuple

from config import EconomySettings
from src.data_layer.building_catalog import BuildingCategory, ServiceKind, get_building
from src.data_layer.grid_store import GridStore
from src.simulation_layer.exceptions import InvalidSimulationInput
from src.simulation_layer.models import (
    Budget,
    BudgetDetails,
    CityStats,
    Demographics,
    EconomicEvent,
    EventEffect,
    HistoryType,
    Jobs,
    Modifier,
    ModifierField as F,
    NO_MODIFIER,
    NewsType,
    apply_modifiers,
)
from src.simulation_layer.news import Headline

logger = logging.getLogger(__name__)

PERCENT_FIELDS = ("happiness", "education", "safety", "crime_rate", "pollution_level")
UNIT_FIELDS = ("tax_rate", "shadow_economy", "supply_level")

EVENT_DURATION_RANGE = (5, 15)
RECESSION_CRASH_FACTOR = 0.6
SHARE_DRIFT: Dict[EconomicEvent, float] = {
    EconomicEvent.NONE: 0.0005,
    EconomicEvent.BOOM: 0.01,
    EconomicEvent.RECESSION: -0.01,
    EconomicEvent.STRIKE: -0.005,
    EconomicEvent.AUDIT: -0.002,
}
EVENT_LABELS: Dict[EconomicEvent, str] = {
    EconomicEvent.NONE: "",
    EconomicEvent.BOOM: "An economic boom",
    EconomicEvent.RECESSION: "A recession",
    EconomicEvent.STRIKE: "A general strike",
    EconomicEvent.AUDIT: "A tax audit",
}

# Downward crossings worth a headline, most severe last
HAPPINESS_BANDS: Tuple[Tuple[float, str], ...] = (
    (40.0, "Grumbling in the streets: citizens are unhappy."),
    (20.0, "Citizens are furious! Protests fill the plazas."),
)
HAPPY_BAND = 80.0
UNEMPLOYMENT_SPIKE = 0.2
POPULATION_MILESTONES = (100, 500, 1000, 2500, 5000, 10000, 25000, 50000)


@dataclass
class GridSurvey:
    """Per-tick totals read off the grid."""

    housing_capacity: int = 0
    commercial_income: int = 0
    industrial_income: int = 0
    commercial_jobs: int = 0
    industrial_jobs: int = 0
    upkeep: int = 0
    pollution: int = 0
    crime: int = 0
    coverage: Dict[ServiceKind, int] = field(default_factory=dict)
    unconnected: int = 0


@dataclass(frozen=True)
class TickOutcome:
    stats: CityStats
    headlines: List[Headline]


def survey_grid(grid: GridStore, unconnected_pop_factor: float) -> GridSurvey:
    """Sum catalog contributions. Buildings without road access earn nothing and house fewer people."""
    s = GridSurvey()
    housing = 0.0
    for tile in grid.occupied():
        cfg = get_building(tile.building_type)
        connected = not cfg.needs_road or grid.has_road_access(tile.x, tile.y)
        if not connected:
            s.unconnected += 1

        housing += cfg.pop_gen if connected else cfg.pop_gen * unconnected_pop_factor
        s.upkeep += cfg.upkeep
        s.pollution += cfg.pollution
        s.crime += cfg.crime
        if not connected:
            continue

        if cfg.category == BuildingCategory.INDUSTRIAL:
            s.industrial_income += cfg.income_gen
            s.industrial_jobs += cfg.jobs
        else:
            s.commercial_income += cfg.income_gen
            s.commercial_jobs += cfg.jobs
        if cfg.service is not None:
            s.coverage[cfg.service] = s.coverage.get(cfg.service, 0) + cfg.service_capacity
    s.housing_capacity = int(housing)
    return s


def coverage_ratio(survey: GridSurvey, kind: ServiceKind, population: int) -> float:
    capacity = survey.coverage.get(kind, 0)
    if population <= 0:
        return 1.0 if capacity > 0 else 0.0
    return min(1.0, capacity / population)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _toward(current: float, target: float, weight: float) -> float:
    return current + weight * (target - current)


# -------------------------
# Validation / clamping
# -------------------------

def _numeric_items(obj, prefix: str = "") -> Iterable[Tuple[str, float]]:
    for f in fields(obj):
        value = getattr(obj, f.name)
        if is_dataclass(value):
            yield from _numeric_items(value, f"{prefix}{f.name}.")
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            yield f"{prefix}{f.name}", value


def clamp_stats(stats: CityStats) -> CityStats:
    """Pull every bounded field back into range. Never raises."""
    changes = {name: _clamp(getattr(stats, name), 0.0, 100.0) for name in PERCENT_FIELDS}
    changes.update({name: _clamp(getattr(stats, name), 0.0, 1.0) for name in UNIT_FIELDS})

    d = stats.demographics
    demo = Demographics(max(0, d.children), max(0, d.adults), max(0, d.seniors))
    return replace(
        stats,
        **changes,
        population=demo.total,
        demographics=demo,
        housing_capacity=max(0, stats.housing_capacity),
        loan_principal=max(0.0, stats.loan_principal),
        loan_interest_rate=max(0.0, stats.loan_interest_rate),
        event_duration=max(0, stats.event_duration),
        share_price=max(1.0, stats.share_price),
        investment_shares=max(0, stats.investment_shares),
        investment_average_cost=max(0.0, stats.investment_average_cost),
        jobs=replace(stats.jobs, unemployment=_clamp(stats.jobs.unemployment, 0.0, 1.0)),
    )


def validate_simulation_input(stats: CityStats) -> CityStats:
    """
    Boundary check before advance().
    NaN/inf means a bug upstream -> InvalidSimulationInput.
    Recoverable out-of-range values are clamped with a warning.
    """
    for name, value in _numeric_items(stats):
        if isinstance(value, float) and not math.isfinite(value):
            raise InvalidSimulationInput(f"{name} is not finite: {value}")

    clamped = clamp_stats(stats)
    if clamped != stats:
        diffs = [
            name for (name, before), (_, after) in zip(_numeric_items(stats), _numeric_items(clamped))
            if before != after
        ]
        logger.warning("Day %d: clamped out-of-range stats %s", stats.day, diffs)
    return clamped


def initial_stats(params: EconomySettings, money: int) -> CityStats:
    return CityStats(
        money=int(money),
        tax_rate=params.tax_steps[1] if len(params.tax_steps) > 1 else params.tax_steps[0],
        loan_interest_rate=params.loan_interest_rate,
        share_price=params.initial_share_price,
    )


# -------------------------
# Simulator
# -------------------------

class EconomicSimulator:
    """Stateless apart from its tunables; advance() is the whole API."""

    def __init__(self, params: Optional[EconomySettings] = None):
        self.params = params or EconomySettings()

    def advance(
        self,
        prev: CityStats,
        grid: GridStore,
        weather_modifier: Modifier = NO_MODIFIER,
        disaster_modifier: Modifier = NO_MODIFIER,
        pending_effect: Optional[EventEffect] = None,
        rng: Optional[random.Random] = None,
        construction: int = 0,
        finance: int = 0,
    ) -> TickOutcome:
        """
        Return next tick's stats. Assumes validate_simulation_input() already ran.

        construction and finance are cash already moved by commands since the
        previous tick; they are only reported here so the budget reconciles.
        """
        p = self.params
        rng = rng if rng is not None else random.Random(0)
        effect = pending_effect or EventEffect()
        mods = (weather_modifier, disaster_modifier)
        headlines: List[Headline] = []
        day = prev.day + 1

        # 1. Grid survey
        survey = survey_grid(grid, p.unconnected_pop_factor)

        # 2. Economic event
        event, duration, one_time, share_price = self._roll_event(prev, rng, headlines)

        # 3. Demographics
        demo = self._demographics(prev, survey.housing_capacity, mods, effect)
        population = demo.total

        total_jobs = survey.commercial_jobs + survey.industrial_jobs
        employed = min(demo.adults, total_jobs)
        unemployed = demo.adults - employed
        unemployment = unemployed / demo.adults if demo.adults else 0.0
        fill = employed / total_jobs if total_jobs else 1.0
        staffing = p.min_staffing + (1.0 - p.min_staffing) * fill

        # 4. Revenue and costs
        tax = population * p.tax_base_per_capita * prev.tax_rate * (1.0 - prev.shadow_economy)
        business = survey.commercial_income * staffing
        export = survey.industrial_income * staffing * (0.5 + prev.supply_level)

        match event:
            case EconomicEvent.BOOM:
                tax, business, export = (v * p.boom_multiplier for v in (tax, business, export))
            case EconomicEvent.RECESSION:
                tax, business, export = (v / p.recession_divisor for v in (tax, business, export))
            case EconomicEvent.STRIKE:
                business, export = 0.0, 0.0
            case EconomicEvent.AUDIT | EconomicEvent.NONE:
                pass

        tax = max(0, round(apply_modifiers(mods, F.TAX, tax)))
        business = max(0, round(apply_modifiers(mods, F.BUSINESS, business)))
        export = max(0, round(apply_modifiers(mods, F.EXPORT, export)))
        services = max(0, round(apply_modifiers(
            mods, F.SERVICES, survey.upkeep + population * p.service_cost_per_capita
        )))
        welfare = max(0, round(apply_modifiers(
            mods, F.WELFARE, demo.seniors * p.pension_per_senior + unemployed * p.benefit_per_unemployed
        )))

        income = tax + business + export
        expenses = services + welfare
        one_time += int(effect.money)
        money = prev.money + income - expenses + one_time

        budget = Budget(
            income=income,
            expenses=expenses,
            one_time=one_time,
            details=BudgetDetails(
                tax=tax,
                business=business,
                export=export,
                services=services,
                welfare=welfare,
                construction=construction,
                finance=finance,
            ),
        )

        # 5. Quality of life
        pollution = _clamp(apply_modifiers(mods, F.POLLUTION, survey.pollution), 0.0, 100.0)
        pollution = _toward(prev.pollution_level, pollution, p.safety_smoothing)

        police = coverage_ratio(survey, ServiceKind.POLICE, population)
        crime_target = survey.crime + unemployment * 40.0 + (1.0 - police) * 20.0 * (population > 0)
        crime_target = _clamp(apply_modifiers(mods, F.CRIME, crime_target), 0.0, 100.0)
        crime = _toward(prev.crime_rate, crime_target, p.safety_smoothing)

        happiness_target = (
            50.0
            + 20.0 * coverage_ratio(survey, ServiceKind.LEISURE, population)
            + 10.0 * coverage_ratio(survey, ServiceKind.HEALTH, population)
            - 40.0 * unemployment
            - 0.3 * pollution
            - 0.2 * crime
            - 100.0 * max(0.0, prev.tax_rate - 0.1)
        )
        happiness_target = apply_modifiers(mods, F.HAPPINESS, happiness_target)
        happiness = _toward(prev.happiness, happiness_target, p.happiness_smoothing) + effect.happiness

        education_target = apply_modifiers(
            mods, F.EDUCATION, 100.0 * coverage_ratio(survey, ServiceKind.EDUCATION, population)
        )
        education = _toward(prev.education, education_target, p.education_smoothing) + effect.education

        safety_target = (
            40.0
            + 40.0 * police
            + 20.0 * coverage_ratio(survey, ServiceKind.FIRE, population)
            - 0.5 * crime
        )
        safety_target = apply_modifiers(mods, F.SAFETY, safety_target)
        safety = _toward(prev.safety, safety_target, p.safety_smoothing) + effect.safety

        shadow = (
            prev.shadow_economy
            + rng.gauss(0.0, p.shadow_drift_std)
            + 0.02 * (prev.tax_rate - 0.15)
            + effect.shadow_economy
        )
        supply_target = survey.industrial_jobs / total_jobs if total_jobs else 0.5
        supply_target = apply_modifiers(mods, F.SUPPLY, supply_target)
        supply = _toward(prev.supply_level, supply_target, p.supply_smoothing) + effect.supply_level

        # 6. Loan and shares
        principal = prev.loan_principal * (1.0 + prev.loan_interest_rate / p.loan_period_days)
        share_price *= math.exp(rng.gauss(SHARE_DRIFT[event], p.share_volatility))
        share_price *= effect.share_price_multiplier

        stats = clamp_stats(replace(
            prev,
            money=money,
            day=day,
            population=population,
            housing_capacity=survey.housing_capacity,
            happiness=happiness,
            education=education,
            safety=safety,
            crime_rate=crime,
            pollution_level=pollution,
            budget=budget,
            demographics=demo,
            jobs=Jobs(
                commercial=survey.commercial_jobs,
                industrial=survey.industrial_jobs,
                total=total_jobs,
                unemployment=unemployment,
            ),
            shadow_economy=shadow,
            supply_level=supply,
            loan_principal=principal,
            active_event=event,
            event_duration=duration,
            share_price=share_price,
        ))

        # 7. Threshold news
        headlines.extend(threshold_news(prev, stats))
        return TickOutcome(stats, headlines)

    # -------------------------
    # Steps
    # -------------------------
    def _roll_event(
        self, prev: CityStats, rng: random.Random, headlines: List[Headline]
    ) -> Tuple[EconomicEvent, int, int, float]:
        """Count the active event down or roll a new one. Returns (event, duration, one_time, share_price)."""
        p = self.params
        share_price = prev.share_price
        one_time = 0

        if prev.active_event != EconomicEvent.NONE:
            remaining = prev.event_duration - 1
            if remaining > 0:
                return prev.active_event, remaining, one_time, share_price
            logger.info("Day %d: %s ended", prev.day + 1, prev.active_event.value)
            headlines.append(Headline(
                f"{EVENT_LABELS[prev.active_event]} has come to an end.", NewsType.NEUTRAL, HistoryType.MINOR
            ))
            return EconomicEvent.NONE, 0, one_time, share_price

        if rng.random() >= p.event_chance:
            return EconomicEvent.NONE, 0, one_time, share_price

        event = rng.choice([e for e in EconomicEvent if e != EconomicEvent.NONE])
        duration = rng.randint(*EVENT_DURATION_RANGE)
        logger.info("Day %d: %s started for %d days", prev.day + 1, event.value, duration)

        match event:
            case EconomicEvent.BOOM:
                headlines.append(Headline(
                    "Economic boom! Business revenue is soaring.", NewsType.POSITIVE, HistoryType.MAJOR
                ))
            case EconomicEvent.RECESSION:
                text = "Recession hits the city. Revenue is falling."
                if rng.random() < p.recession_crash_chance:
                    share_price *= RECESSION_CRASH_FACTOR
                    text = "Recession hits the city and the stock market crashes!"
                headlines.append(Headline(text, NewsType.NEGATIVE, HistoryType.MAJOR))
            case EconomicEvent.STRIKE:
                headlines.append(Headline(
                    "Workers walk out: commerce and industry shut down.", NewsType.NEGATIVE, HistoryType.MAJOR
                ))
            case EconomicEvent.AUDIT:
                fine = max(int(max(prev.money, 0) * p.audit_fine_fraction), p.audit_min_fine)
                one_time -= fine
                headlines.append(Headline(
                    f"Tax audit! The city is fined ${fine} and budget changes are frozen.",
                    NewsType.NEGATIVE,
                    HistoryType.MAJOR,
                ))
            case EconomicEvent.NONE:
                raise ValueError("NONE is never rolled")
        return event, duration, one_time, share_price

    def _demographics(
        self,
        prev: CityStats,
        capacity: int,
        mods: Tuple[Modifier, ...],
        effect: EventEffect,
    ) -> Demographics:
        p = self.params
        d = prev.demographics
        children, adults, seniors = d.children, d.adults, d.seniors

        # Aging
        grown = round(children * p.child_aging_rate)
        retired = round(adults * p.adult_aging_rate)
        deaths = round(seniors * p.senior_mortality_rate)
        children += -grown
        adults += grown - retired
        seniors += retired - deaths

        # Births and migration fill the housing surplus
        surplus = max(0, capacity - (children + adults + seniors))
        births = min(surplus, round(adults * p.birth_rate))
        children += births
        surplus -= births
        if surplus > 0:
            pull = 0.5 + prev.happiness / 100.0
            movers = min(surplus, max(1, round(surplus * p.migration_rate * pull)))
            adults += movers

        # Unhappy adults leave
        if prev.happiness < 30.0 and adults > 0:
            adults -= round(adults * p.emigration_rate * (30.0 - prev.happiness) / 100.0)

        # Disaster losses and event payloads
        total = children + adults + seniors
        if total > 0:
            scale = _clamp(apply_modifiers(mods, F.POPULATION, float(total)) / total, 0.0, 1.0)
            if scale < 1.0:
                children, adults, seniors = (round(v * scale) for v in (children, adults, seniors))
        adults += int(effect.population)

        children, adults, seniors = max(0, children), max(0, adults), max(0, seniors)

        # Over capacity: adults leave first, then children, then seniors
        excess = max(0, children + adults + seniors - capacity)
        cut = min(adults, excess)
        adults, excess = adults - cut, excess - cut
        cut = min(children, excess)
        children, excess = children - cut, excess - cut
        seniors -= min(seniors, excess)
        return Demographics(children, adults, seniors)


def threshold_news(prev: CityStats, stats: CityStats) -> List[Headline]:
    """Headlines for band crossings between two consecutive snapshots."""
    out: List[Headline] = []

    for band, text in HAPPINESS_BANDS:
        if prev.happiness >= band > stats.happiness:
            out.append(Headline(text, NewsType.NEGATIVE))
    if prev.happiness < HAPPY_BAND <= stats.happiness:
        out.append(Headline("Citizens are delighted with their city!", NewsType.POSITIVE))

    if prev.jobs.unemployment < UNEMPLOYMENT_SPIKE <= stats.jobs.unemployment:
        out.append(Headline(
            f"Unemployment spikes to {stats.jobs.unemployment:.0%}. Build more shops and factories!",
            NewsType.NEGATIVE,
        ))

    for milestone in POPULATION_MILESTONES:
        if prev.population < milestone <= stats.population:
            out.append(Headline(
                f"Population reaches {milestone}!", NewsType.POSITIVE, HistoryType.MILESTONE
            ))

    if prev.money >= 0 > stats.money:
        out.append(Headline("The city treasury is in the red!", NewsType.NEGATIVE, HistoryType.MINOR))
    return out
