import random
from collections import Counter

from src.simulation_layer.models import ModifierField, WeatherState, WeatherType
from src.simulation_layer.weather import (
    AFFINITY,
    DURATIONS,
    LABELS,
    MODIFIERS,
    WIND,
    WeatherController,
    transition_weights,
    weather_modifier,
)


def _share(current: WeatherType, target: WeatherType) -> float:
    weights = transition_weights(current)
    return weights[target] / sum(weights.values())


def test_clear_follows_clear_more_often_than_snow():
    assert _share(WeatherType.CLEAR, WeatherType.CLEAR) > _share(WeatherType.SNOW, WeatherType.CLEAR)


def test_tables_cover_every_condition():
    for table in (AFFINITY, DURATIONS, LABELS, MODIFIERS, WIND):
        assert set(table) == set(WeatherType)
    for weather in WeatherType:
        assert all(w > 0 for w in transition_weights(weather).values())


def test_condition_counts_down_before_changing():
    controller = WeatherController()
    state = WeatherState(WeatherType.RAIN, remaining=3, started_day=0)

    state, news = controller.advance(state, random.Random(0), day=1)

    assert state == WeatherState(WeatherType.RAIN, 2, 0)
    assert news == []


def test_new_condition_gets_duration_from_its_range():
    controller = WeatherController()
    rng = random.Random(9)
    state = WeatherState(WeatherType.CLEAR, remaining=1)

    for day in range(1, 300):
        previous = state
        state, _ = controller.advance(state, rng, day)
        if previous.remaining == 1:
            low, high = DURATIONS[state.weather]
            assert low <= state.remaining <= high
            assert state.started_day == day


def test_pick_next_follows_weights():
    controller = WeatherController()
    rng = random.Random(1)
    picks = Counter(controller.pick_next(WeatherType.CLEAR, rng) for _ in range(2000))
    assert picks.most_common(1)[0][0] == WeatherType.CLEAR


def test_same_seed_same_sequence():
    controller = WeatherController()

    def run(seed):
        rng = random.Random(seed)
        state = controller.initial_state(rng)
        out = []
        for day in range(1, 100):
            state, _ = controller.advance(state, rng, day)
            out.append(state)
        return out

    assert run(4) == run(4)


def test_meteor_shower_raises_disaster_chance():
    assert [a.multiply for a in weather_modifier(WeatherType.METEOR_SHOWER).for_field(ModifierField.DISASTER_CHANCE)] == [3.0]
    assert weather_modifier(WeatherType.CLEAR).for_field(ModifierField.DISASTER_CHANCE) == ()


def test_wind_follows_the_condition():
    controller = WeatherController()
    rng = random.Random(3)
    state = controller.initial_state(rng)

    for day in range(1, 200):
        previous = state
        state, _ = controller.advance(state, rng, day)
        low, high = WIND[state.weather]
        assert low <= state.wind_speed <= high
        assert 0 <= state.wind_direction < 360
        if previous.remaining > 1:
            assert (state.wind_speed, state.wind_direction) == (previous.wind_speed, previous.wind_direction)
