"""
Shared data models for the simulation layer.

Every record that crosses a component boundary is a frozen dataclass: components
hand each other new instances (dataclasses.replace) instead of mutating shared ones.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple

from src.data_layer.building_catalog import BuildingType


# ========== Closed enumerations ==========

class EconomicEvent(str, Enum):
    NONE = "NONE"
    BOOM = "BOOM"  # high revenue, share price up
    RECESSION = "RECESSION"  # low revenue, share crash
    STRIKE = "STRIKE"  # no commercial/industrial income
    AUDIT = "AUDIT"  # one-time fine, frozen budget


class WeatherType(str, Enum):
    CLEAR = "CLEAR"
    RAIN = "RAIN"
    SNOW = "SNOW"
    ACID_RAIN = "ACID_RAIN"
    FOG = "FOG"
    THUNDERSTORM = "THUNDERSTORM"
    SANDSTORM = "SANDSTORM"
    HEATWAVE = "HEATWAVE"
    METEOR_SHOWER = "METEOR_SHOWER"
    AURORA = "AURORA"
    BLOOD_MOON = "BLOOD_MOON"
    TOXIC_SMOG = "TOXIC_SMOG"
    STARDUST = "STARDUST"


class DisasterType(str, Enum):
    NONE = "NONE"
    METEOR = "METEOR"
    ALIEN_INVASION = "ALIEN_INVASION"
    SOLAR_FLARE = "SOLAR_FLARE"


class DisasterStage(str, Enum):
    WARNING = "WARNING"
    ACTIVE = "ACTIVE"
    AFTERMATH = "AFTERMATH"


class GoalTargetType(str, Enum):
    POPULATION = "population"
    MONEY = "money"
    BUILDING_COUNT = "building_count"


class EventType(str, Enum):
    WEIRD = "weird"
    DISASTER = "disaster"
    OPPORTUNITY = "opportunity"


class NewsType(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class HistoryType(str, Enum):
    MILESTONE = "milestone"
    MAJOR = "major"
    DISASTER = "disaster"
    MINOR = "minor"


class ActionType(str, Enum):
    BUILD = "BUILD"
    DEMOLISH = "DEMOLISH"
    WAIT = "WAIT"


class ModifierField(str, Enum):
    TAX = "tax"
    BUSINESS = "business"
    EXPORT = "export"
    SERVICES = "services"
    WELFARE = "welfare"
    HAPPINESS = "happiness"
    EDUCATION = "education"
    SAFETY = "safety"
    POPULATION = "population"
    SUPPLY = "supply"
    POLLUTION = "pollution"
    CRIME = "crime"
    DISASTER_CHANCE = "disaster_chance"


# ========== City stats ==========

@dataclass(frozen=True)
class BudgetDetails:
    tax: int = 0
    business: int = 0
    export: int = 0
    services: int = 0
    welfare: int = 0
    construction: int = 0  # spent on placements since the previous tick, already debited
    finance: int = 0  # net cash from loans, shares and rewards since the previous tick, already applied


@dataclass(frozen=True)
class Budget:
    income: int = 0
    expenses: int = 0
    one_time: int = 0  # fines and event payouts applied this tick
    details: BudgetDetails = field(default_factory=BudgetDetails)


@dataclass(frozen=True)
class Demographics:
    children: int = 0
    adults: int = 0
    seniors: int = 0

    @property
    def total(self) -> int:
        return self.children + self.adults + self.seniors


@dataclass(frozen=True)
class Jobs:
    commercial: int = 0
    industrial: int = 0
    total: int = 0
    unemployment: float = 0.0  # 0~1


@dataclass(frozen=True)
class CityStats:
    """
    Authoritative per-tick snapshot. Replaced wholesale each tick by the
    Economic Simulator; commands return a new instance.
    """

    money: int
    population: int = 0
    day: int = 0
    housing_capacity: int = 0

    tax_rate: float = 0.1  # 0~1
    happiness: float = 50.0  # 0~100
    education: float = 0.0  # 0~100
    safety: float = 50.0  # 0~100
    crime_rate: float = 0.0  # 0~100
    pollution_level: float = 0.0  # 0~100

    budget: Budget = field(default_factory=Budget)
    demographics: Demographics = field(default_factory=Demographics)
    jobs: Jobs = field(default_factory=Jobs)

    shadow_economy: float = 0.05  # 0~1
    supply_level: float = 0.5  # 0~1
    loan_principal: float = 0.0
    loan_interest_rate: float = 0.05

    active_event: EconomicEvent = EconomicEvent.NONE
    event_duration: int = 0
    share_price: float = 100.0
    investment_shares: int = 0
    investment_average_cost: float = 0.0


# ========== Modifiers ==========

@dataclass(frozen=True)
class Adjustment:
    """value -> value * multiply + add for one named field."""

    field: ModifierField
    multiply: float = 1.0
    add: float = 0.0


@dataclass(frozen=True)
class Modifier:
    """Named bundle of adjustments from one weather, disaster or economic source."""

    source: str
    adjustments: Tuple[Adjustment, ...] = ()

    def for_field(self, target: ModifierField) -> Tuple[Adjustment, ...]:
        return tuple(a for a in self.adjustments if a.field == target)


NO_MODIFIER = Modifier(source="none")


def apply_modifiers(modifiers: Iterable[Modifier], target: ModifierField, value: float) -> float:
    """Apply every matching adjustment: all multipliers first, then all additions."""
    adjustments = [a for m in modifiers for a in m.for_field(target)]
    for a in adjustments:
        value *= a.multiply
    for a in adjustments:
        value += a.add
    return value


# ========== Weather & disasters ==========

@dataclass(frozen=True)
class WeatherState:
    weather: WeatherType = WeatherType.CLEAR
    remaining: int = 5
    started_day: int = 0
    wind_speed: float = 0.1  # 0..1, shown as x100 km/h
    wind_direction: int = 0  # compass heading in degrees


@dataclass(frozen=True)
class ActiveDisaster:
    type: DisasterType
    position: Optional[Tuple[int, int]]  # None for global disasters like Solar Flare
    start_time: int  # day the warning began
    duration: int  # ticks in ACTIVE
    stage: DisasterStage = DisasterStage.WARNING
    stage_started: int = 0


# ========== Events ==========

@dataclass(frozen=True)
class EventEffect:
    """Numeric payload a resolved event applies on the next tick."""

    money: int = 0
    happiness: float = 0.0
    education: float = 0.0
    safety: float = 0.0
    population: int = 0
    shadow_economy: float = 0.0
    supply_level: float = 0.0
    share_price_multiplier: float = 1.0

    def combine(self, other: "EventEffect") -> "EventEffect":
        return EventEffect(
            money=self.money + other.money,
            happiness=self.happiness + other.happiness,
            education=self.education + other.education,
            safety=self.safety + other.safety,
            population=self.population + other.population,
            shadow_economy=self.shadow_economy + other.shadow_economy,
            supply_level=self.supply_level + other.supply_level,
            share_price_multiplier=self.share_price_multiplier * other.share_price_multiplier,
        )


@dataclass(frozen=True)
class EventChoice:
    label: str
    effect_description: str
    effect: EventEffect = field(default_factory=EventEffect)


@dataclass(frozen=True)
class GameEvent:
    """Narrative decision point. Always exactly two choices."""

    id: str
    title: str
    description: str
    type: EventType
    choices: Tuple[EventChoice, EventChoice]
    source: str = "scripted"  # scripted | advisory
    raised_day: int = 0

    def __post_init__(self):
        if len(self.choices) != 2:
            raise ValueError(f"GameEvent {self.id} needs exactly two choices, got {len(self.choices)}")


# ========== Goals & actions ==========

@dataclass(frozen=True)
class AIGoal:
    description: str
    target_type: GoalTargetType
    target_value: int
    reward: int
    building_type: Optional[BuildingType] = None  # only for building_count
    completed: bool = False
    source: str = "heuristic"  # heuristic | advisory


@dataclass(frozen=True)
class AIAction:
    action: ActionType
    building_type: Optional[BuildingType] = None
    x: Optional[int] = None
    y: Optional[int] = None
    reasoning: Optional[str] = None
    failed_attempt: Optional[Tuple[int, int]] = None


# ========== News ==========

@dataclass(frozen=True)
class NewsItem:
    id: str
    text: str
    type: NewsType
    day: int = 0


@dataclass(frozen=True)
class HistoryLogEntry:
    id: str
    day: int
    text: str
    type: HistoryType


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a synchronous UI command."""

    accepted: bool
    message: str = ""
