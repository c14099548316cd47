"""
Disaster controller: one slot, NONE -> WARNING -> ACTIVE -> AFTERMATH -> NONE.

Onset by explicit trigger or a per-tick roll scaled by the weather's
disaster_chance modifier. While ACTIVE (and, lighter, during AFTERMATH) the
slot yields a Modifier for the Economic Simulator. A trigger while the slot is
live is a no-op that returns the existing ActiveDisaster unchanged.
"""

import logging
import random
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from config import DisasterSettings
from src.data_layer.building_catalog import get_building
from src.data_layer.grid_store import GridStore
from src.simulation_layer.models import (
    ActiveDisaster,
    Adjustment,
    DisasterStage,
    DisasterType,
    HistoryType,
    Modifier,
    ModifierField as F,
    NO_MODIFIER,
    NewsType,
)
from src.simulation_layer.news import Headline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DisasterProfile:
    """Probability/severity entry for one disaster type."""

    type: DisasterType
    label: str
    weight: float  # relative odds when the roll picks a type
    active_duration: int
    positional: bool
    active: Tuple[Adjustment, ...]
    aftermath: Tuple[Adjustment, ...]
    population_loss: float = 0.0  # per ACTIVE tick, scaled by housing hit near the impact


DEFAULT_PROFILES: Dict[DisasterType, DisasterProfile] = {
    DisasterType.METEOR: DisasterProfile(
        type=DisasterType.METEOR,
        label="Meteor strike",
        weight=3.0,
        active_duration=1,
        positional=True,
        active=(
            Adjustment(F.HAPPINESS, add=-15.0),
            Adjustment(F.SAFETY, add=-10.0),
        ),
        aftermath=(
            Adjustment(F.SERVICES, multiply=1.25),
            Adjustment(F.HAPPINESS, add=-5.0),
        ),
        population_loss=0.5,
    ),
    DisasterType.ALIEN_INVASION: DisasterProfile(
        type=DisasterType.ALIEN_INVASION,
        label="Alien invasion",
        weight=1.0,
        active_duration=5,
        positional=True,
        active=(
            Adjustment(F.SAFETY, add=-30.0),
            Adjustment(F.BUSINESS, multiply=0.5),
            Adjustment(F.HAPPINESS, add=-10.0),
        ),
        aftermath=(
            Adjustment(F.SERVICES, multiply=1.15),
            Adjustment(F.SAFETY, add=-5.0),
        ),
        population_loss=0.1,
    ),
    DisasterType.SOLAR_FLARE: DisasterProfile(
        type=DisasterType.SOLAR_FLARE,
        label="Solar flare",
        weight=2.0,
        active_duration=4,
        positional=False,
        active=(
            Adjustment(F.BUSINESS, multiply=0.3),
            Adjustment(F.EXPORT, multiply=0.5),
            Adjustment(F.HAPPINESS, add=-10.0),
        ),
        aftermath=(
            Adjustment(F.BUSINESS, multiply=0.9),
        ),
    ),
}


def _scale(adjustment: Adjustment, severity: float) -> Adjustment:
    return Adjustment(
        adjustment.field,
        multiply=1.0 + (adjustment.multiply - 1.0) * severity,
        add=adjustment.add * severity,
    )


class DisasterController:
    """Pure transitions over Optional[ActiveDisaster]."""

    def __init__(
        self,
        settings: Optional[DisasterSettings] = None,
        profiles: Optional[Dict[DisasterType, DisasterProfile]] = None,
    ):
        self.settings = settings or DisasterSettings()
        self.profiles = profiles or DEFAULT_PROFILES

    def profile(self, disaster_type: DisasterType) -> DisasterProfile:
        return self.profiles[disaster_type]

    # -------------------------
    # Onset
    # -------------------------
    def trigger(
        self,
        current: Optional[ActiveDisaster],
        grid: GridStore,
        rng: random.Random,
        day: int,
        disaster_type: Optional[DisasterType] = None,
    ) -> Tuple[ActiveDisaster, List[Headline]]:
        """Start a disaster in WARNING. No-op (same object back) if one is live."""
        if current is not None:
            logger.debug("Disaster trigger ignored, %s already %s", current.type.value, current.stage.value)
            return current, []

        if disaster_type is None or disaster_type == DisasterType.NONE:
            types = list(self.profiles)
            disaster_type = rng.choices(types, weights=[self.profiles[t].weight for t in types], k=1)[0]
        profile = self.profile(disaster_type)

        position = None
        if profile.positional:
            occupied = grid.occupied()
            if occupied:
                target = rng.choice(occupied)
                position = (target.x, target.y)
            else:
                position = (rng.randrange(grid.width), rng.randrange(grid.height))

        disaster = ActiveDisaster(
            type=disaster_type,
            position=position,
            start_time=day,
            duration=profile.active_duration,
            stage=DisasterStage.WARNING,
            stage_started=day,
        )
        logger.info("Day %d: %s warning at %s", day, profile.label, position)
        where = f" near ({position[0]}, {position[1]})" if position else ""
        return disaster, [
            Headline(f"WARNING: {profile.label} detected{where}! Seek shelter.", NewsType.NEGATIVE),
        ]

    def roll(
        self,
        current: Optional[ActiveDisaster],
        grid: GridStore,
        rng: random.Random,
        day: int,
        chance_multiplier: float = 1.0,
    ) -> Tuple[Optional[ActiveDisaster], List[Headline]]:
        """Low-probability spontaneous onset. Always draws once so the RNG stream stays aligned."""
        draw = rng.random()
        if current is not None:
            return current, []
        if draw < self.settings.base_chance * max(0.0, chance_multiplier):
            return self.trigger(None, grid, rng, day)
        return None, []

    # -------------------------
    # Progression
    # -------------------------
    def advance(
        self, current: Optional[ActiveDisaster], day: int
    ) -> Tuple[Optional[ActiveDisaster], List[Headline]]:
        if current is None:
            return None, []

        profile = self.profile(current.type)
        elapsed = day - current.stage_started

        match current.stage:
            case DisasterStage.WARNING:
                if elapsed >= max(1, self.settings.warning_ticks):
                    logger.info("Day %d: %s is ACTIVE", day, profile.label)
                    return replace(current, stage=DisasterStage.ACTIVE, stage_started=day), [
                        Headline(f"{profile.label} hits the city!", NewsType.NEGATIVE, HistoryType.DISASTER),
                    ]
            case DisasterStage.ACTIVE:
                if elapsed >= max(1, current.duration):
                    logger.info("Day %d: %s aftermath", day, profile.label)
                    return replace(current, stage=DisasterStage.AFTERMATH, stage_started=day), [
                        Headline(f"The {profile.label.lower()} is over. Clean-up begins.", NewsType.NEUTRAL),
                    ]
            case DisasterStage.AFTERMATH:
                if elapsed >= max(1, self.settings.aftermath_ticks):
                    logger.info("Day %d: %s cleared", day, profile.label)
                    return None, [
                        Headline(
                            f"The city has recovered from the {profile.label.lower()} of day {current.start_time}.",
                            NewsType.POSITIVE,
                            HistoryType.MAJOR,
                        ),
                    ]
        return current, []

    # -------------------------
    # Economic impact
    # -------------------------
    def modifier(self, current: Optional[ActiveDisaster], grid: GridStore) -> Modifier:
        if current is None:
            return NO_MODIFIER

        profile = self.profile(current.type)
        severity = self.settings.severity
        source = f"disaster:{current.type.value.lower()}"

        match current.stage:
            case DisasterStage.WARNING:
                return NO_MODIFIER
            case DisasterStage.AFTERMATH:
                return Modifier(source, tuple(_scale(a, severity) for a in profile.aftermath))
            case DisasterStage.ACTIVE:
                adjustments = [_scale(a, severity) for a in profile.active]
                loss = self.population_loss(current, grid)
                if loss > 0:
                    adjustments.append(Adjustment(F.POPULATION, multiply=1.0 - loss))
                return Modifier(source, tuple(adjustments))
        raise ValueError(f"Unhandled disaster stage: {current.stage}")

    def population_loss(self, current: ActiveDisaster, grid: GridStore) -> float:
        """Fraction of residents lost this tick: housing near the impact over all housing."""
        profile = self.profile(current.type)
        if current.position is None or profile.population_loss <= 0:
            return 0.0
        total_housing = sum(get_building(t.building_type).pop_gen for t in grid)
        if total_housing <= 0:
            return 0.0
        hit = sum(
            get_building(t.building_type).pop_gen
            for t in grid.tiles_within(current.position, self.settings.impact_radius)
        )
        return min(1.0, profile.population_loss * self.settings.severity * hit / total_housing)
