"""
Weather controller: Markov-style weighted choice of the next condition.

The current condition biases the next pick through AFFINITY on top of
BASE_WEIGHTS. Each condition lasts a random number of ticks from DURATIONS
and carries a Modifier for the economy and the disaster roll. Wind speed and
heading are rolled with each new condition and shown by the renderer.
"""

import logging
import random
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from src.simulation_layer.models import (
    Adjustment,
    Modifier,
    ModifierField as F,
    WeatherState,
    WeatherType as W,
)
from src.simulation_layer.news import Headline

logger = logging.getLogger(__name__)


BASE_WEIGHTS: Dict[W, float] = {
    W.CLEAR: 10.0,
    W.RAIN: 5.0,
    W.SNOW: 2.0,
    W.FOG: 3.0,
    W.ACID_RAIN: 0.8,
    W.THUNDERSTORM: 1.5,
    W.SANDSTORM: 0.8,
    W.HEATWAVE: 1.2,
    W.METEOR_SHOWER: 0.3,
    W.AURORA: 0.5,
    W.BLOOD_MOON: 0.3,
    W.TOXIC_SMOG: 0.5,
    W.STARDUST: 0.3,
}

# Extra weight added to a candidate when following the key condition
AFFINITY: Dict[W, Dict[W, float]] = {
    W.CLEAR: {W.CLEAR: 12.0, W.HEATWAVE: 1.0, W.AURORA: 0.5, W.STARDUST: 0.3},
    W.RAIN: {W.RAIN: 4.0, W.THUNDERSTORM: 3.0, W.FOG: 2.0, W.ACID_RAIN: 1.0},
    W.SNOW: {W.SNOW: 5.0, W.FOG: 1.5, W.AURORA: 1.0},
    W.FOG: {W.FOG: 2.0, W.RAIN: 2.0, W.TOXIC_SMOG: 1.0},
    W.ACID_RAIN: {W.RAIN: 3.0, W.TOXIC_SMOG: 2.0},
    W.THUNDERSTORM: {W.RAIN: 5.0, W.THUNDERSTORM: 1.0},
    W.SANDSTORM: {W.HEATWAVE: 3.0, W.CLEAR: 3.0},
    W.HEATWAVE: {W.HEATWAVE: 3.0, W.SANDSTORM: 2.0, W.THUNDERSTORM: 1.0},
    W.METEOR_SHOWER: {W.CLEAR: 4.0, W.STARDUST: 2.0},
    W.AURORA: {W.CLEAR: 3.0, W.SNOW: 2.0, W.STARDUST: 1.0},
    W.BLOOD_MOON: {W.FOG: 2.0, W.CLEAR: 2.0},
    W.TOXIC_SMOG: {W.FOG: 3.0, W.ACID_RAIN: 2.0},
    W.STARDUST: {W.CLEAR: 4.0, W.AURORA: 1.0},
}

DURATIONS: Dict[W, Tuple[int, int]] = {
    W.CLEAR: (4, 10),
    W.RAIN: (2, 6),
    W.SNOW: (3, 7),
    W.FOG: (1, 3),
    W.ACID_RAIN: (1, 3),
    W.THUNDERSTORM: (1, 2),
    W.SANDSTORM: (1, 3),
    W.HEATWAVE: (3, 6),
    W.METEOR_SHOWER: (1, 2),
    W.AURORA: (1, 3),
    W.BLOOD_MOON: (1, 1),
    W.TOXIC_SMOG: (2, 4),
    W.STARDUST: (1, 2),
}

MODIFIERS: Dict[W, Modifier] = {
    W.CLEAR: Modifier("weather:clear", (Adjustment(F.HAPPINESS, add=1.0),)),
    W.RAIN: Modifier("weather:rain", (
        Adjustment(F.BUSINESS, multiply=0.95),
        Adjustment(F.HAPPINESS, add=-1.0),
    )),
    W.SNOW: Modifier("weather:snow", (
        Adjustment(F.SERVICES, multiply=1.2),
        Adjustment(F.BUSINESS, multiply=0.9),
    )),
    W.FOG: Modifier("weather:fog", (Adjustment(F.SAFETY, add=-3.0),)),
    W.ACID_RAIN: Modifier("weather:acid_rain", (
        Adjustment(F.HAPPINESS, add=-5.0),
        Adjustment(F.POLLUTION, add=10.0),
    )),
    W.THUNDERSTORM: Modifier("weather:thunderstorm", (
        Adjustment(F.BUSINESS, multiply=0.9),
        Adjustment(F.DISASTER_CHANCE, multiply=1.5),
    )),
    W.SANDSTORM: Modifier("weather:sandstorm", (
        Adjustment(F.EXPORT, multiply=0.8),
        Adjustment(F.HAPPINESS, add=-2.0),
    )),
    W.HEATWAVE: Modifier("weather:heatwave", (
        Adjustment(F.SERVICES, multiply=1.1),
        Adjustment(F.HAPPINESS, add=-4.0),
    )),
    W.METEOR_SHOWER: Modifier("weather:meteor_shower", (
        Adjustment(F.DISASTER_CHANCE, multiply=3.0),
        Adjustment(F.HAPPINESS, add=2.0),
    )),
    W.AURORA: Modifier("weather:aurora", (
        Adjustment(F.BUSINESS, multiply=1.1),
        Adjustment(F.HAPPINESS, add=5.0),
    )),
    W.BLOOD_MOON: Modifier("weather:blood_moon", (
        Adjustment(F.CRIME, add=10.0),
        Adjustment(F.DISASTER_CHANCE, multiply=2.0),
    )),
    W.TOXIC_SMOG: Modifier("weather:toxic_smog", (
        Adjustment(F.POLLUTION, add=20.0),
        Adjustment(F.HAPPINESS, add=-6.0),
    )),
    W.STARDUST: Modifier("weather:stardust", (Adjustment(F.HAPPINESS, add=3.0),)),
}

LABELS: Dict[W, str] = {
    W.CLEAR: "Clear skies",
    W.RAIN: "Rain",
    W.SNOW: "Snow",
    W.FOG: "Thick fog",
    W.ACID_RAIN: "Acid rain",
    W.THUNDERSTORM: "Thunderstorms",
    W.SANDSTORM: "A sandstorm",
    W.HEATWAVE: "A heatwave",
    W.METEOR_SHOWER: "A meteor shower",
    W.AURORA: "An aurora",
    W.BLOOD_MOON: "A blood moon",
    W.TOXIC_SMOG: "Toxic smog",
    W.STARDUST: "Stardust",
}

# Wind speed range (0..1) while a condition lasts
WIND: Dict[W, Tuple[float, float]] = {
    W.CLEAR: (0.05, 0.2),
    W.RAIN: (0.1, 0.35),
    W.SNOW: (0.1, 0.3),
    W.FOG: (0.0, 0.05),
    W.ACID_RAIN: (0.1, 0.3),
    W.THUNDERSTORM: (0.5, 0.9),
    W.SANDSTORM: (0.6, 1.0),
    W.HEATWAVE: (0.0, 0.1),
    W.METEOR_SHOWER: (0.05, 0.2),
    W.AURORA: (0.05, 0.2),
    W.BLOOD_MOON: (0.1, 0.3),
    W.TOXIC_SMOG: (0.0, 0.05),
    W.STARDUST: (0.2, 0.4),
}
MAX_WIND_VEER = 60

# Conditions worth a headline when they start
NOTABLE = frozenset({
    W.ACID_RAIN, W.THUNDERSTORM, W.SANDSTORM, W.HEATWAVE, W.METEOR_SHOWER,
    W.AURORA, W.BLOOD_MOON, W.TOXIC_SMOG, W.STARDUST,
})


def transition_weights(current: W) -> Dict[W, float]:
    weights = dict(BASE_WEIGHTS)
    for target, bonus in AFFINITY[current].items():
        weights[target] += bonus
    return weights


def weather_modifier(weather: W) -> Modifier:
    return MODIFIERS[weather]


class WeatherController:
    """Advances WeatherState one tick at a time using the injected RNG."""

    def __init__(
        self,
        durations: Optional[Dict[W, Tuple[int, int]]] = None,
    ):
        self.durations = durations or DURATIONS

    def initial_state(self, rng: random.Random, day: int = 0) -> WeatherState:
        speed, heading = self._roll_wind(W.CLEAR, rng.randrange(360), rng)
        return WeatherState(W.CLEAR, self._roll_duration(W.CLEAR, rng), day, speed, heading)

    def _roll_duration(self, weather: W, rng: random.Random) -> int:
        low, high = self.durations[weather]
        return rng.randint(low, high)

    def _roll_wind(self, weather: W, heading: int, rng: random.Random) -> Tuple[float, int]:
        """New speed from the condition's range; the heading veers from the previous one."""
        low, high = WIND[weather]
        speed = round(rng.uniform(low, high), 2)
        heading = (heading + rng.randint(-MAX_WIND_VEER, MAX_WIND_VEER)) % 360
        return speed, heading

    def pick_next(self, current: W, rng: random.Random) -> W:
        weights = transition_weights(current)
        options: List[W] = list(weights)
        return rng.choices(options, weights=[weights[w] for w in options], k=1)[0]

    def advance(self, state: WeatherState, rng: random.Random, day: int) -> Tuple[WeatherState, List[Headline]]:
        """Count the current condition down; roll a new one and its wind when it runs out."""
        if state.remaining > 1:
            return replace(state, remaining=state.remaining - 1), []

        nxt = self.pick_next(state.weather, rng)
        duration = self._roll_duration(nxt, rng)
        speed, heading = self._roll_wind(nxt, state.wind_direction, rng)
        new_state = WeatherState(nxt, duration, day, speed, heading)
        headlines: List[Headline] = []
        if nxt != state.weather:
            logger.info("Day %d: weather %s -> %s", day, state.weather.value, nxt.value)
            if nxt in NOTABLE:
                headlines.append(Headline(f"{LABELS[nxt]} rolls over the city."))
        return new_state, headlines
