import random
from dataclasses import replace

import pytest

from config import DisasterSettings
from src.data_layer.building_catalog import BuildingType
from src.data_layer.grid_store import GridStore
from src.simulation_layer.disasters import DEFAULT_PROFILES, DisasterController
from src.simulation_layer.models import (
    DisasterStage,
    DisasterType,
    HistoryType,
    ModifierField,
    NO_MODIFIER,
)


def _town() -> GridStore:
    grid = GridStore(6, 6)
    for x in range(6):
        grid.place(x, 1, BuildingType.ROAD, 10_000)
    grid.place(0, 0, BuildingType.RESIDENTIAL, 10_000)
    grid.place(5, 2, BuildingType.RESIDENTIAL, 10_000)
    return grid


def _walk(controller: DisasterController, disaster, start_day: int, days: int):
    stages, headlines = [], []
    for day in range(start_day + 1, start_day + days + 1):
        disaster, news = controller.advance(disaster, day)
        headlines.extend(news)
        stages.append((day, disaster.stage if disaster else None, disaster.stage_started if disaster else None))
    return stages, headlines


def test_profiles_cover_every_disaster():
    assert set(DEFAULT_PROFILES) == {t for t in DisasterType if t != DisasterType.NONE}


def test_stages_run_warning_active_aftermath_none():
    controller = DisasterController(DisasterSettings(warning_ticks=3, aftermath_ticks=5))
    disaster, news = controller.trigger(None, _town(), random.Random(1), day=0, disaster_type=DisasterType.METEOR)

    assert disaster.stage == DisasterStage.WARNING
    assert disaster.duration == DEFAULT_PROFILES[DisasterType.METEOR].active_duration
    assert news and "WARNING" in news[0].text

    stages, headlines = _walk(controller, disaster, 0, 12)
    order = []
    for _, stage, _ in stages:
        if not order or order[-1] != stage:
            order.append(stage)

    assert order == [DisasterStage.WARNING, DisasterStage.ACTIVE, DisasterStage.AFTERMATH, None]
    assert dict((day, stage) for day, stage, _ in stages)[3] == DisasterStage.ACTIVE
    assert dict((day, stage) for day, stage, _ in stages)[4] == DisasterStage.AFTERMATH
    assert dict((day, stage) for day, stage, _ in stages)[9] is None

    started = [s for _, stage, s in stages if stage is not None]
    assert started == sorted(started)
    assert any(h.history == HistoryType.DISASTER for h in headlines)
    assert headlines[-1].history == HistoryType.MAJOR


def test_trigger_while_live_is_a_no_op():
    controller = DisasterController()
    grid = _town()
    rng = random.Random(2)
    disaster, _ = controller.trigger(None, grid, rng, day=0, disaster_type=DisasterType.ALIEN_INVASION)
    disaster, _ = controller.advance(disaster, day=5)
    assert disaster.stage == DisasterStage.ACTIVE

    again, news = controller.trigger(disaster, grid, rng, day=5, disaster_type=DisasterType.METEOR)

    assert again is disaster
    assert news == []


def test_solar_flare_is_global_and_meteor_is_positional():
    controller = DisasterController()
    grid = _town()
    flare, _ = controller.trigger(None, grid, random.Random(3), 0, DisasterType.SOLAR_FLARE)
    meteor, _ = controller.trigger(None, grid, random.Random(3), 0, DisasterType.METEOR)

    assert flare.position is None
    assert meteor.position is not None
    assert grid.building_at(*meteor.position) != BuildingType.NONE


def test_roll_respects_chance():
    grid = _town()
    never = DisasterController(DisasterSettings(base_chance=0.0))
    always = DisasterController(DisasterSettings(base_chance=1.0))

    assert never.roll(None, grid, random.Random(0), 1, chance_multiplier=3.0) == (None, [])
    disaster, _ = always.roll(None, grid, random.Random(0), 1)
    assert disaster is not None and disaster.stage == DisasterStage.WARNING


def test_roll_always_draws_once():
    controller = DisasterController(DisasterSettings(base_chance=0.0))
    grid = _town()
    rng_idle, rng_live = random.Random(5), random.Random(5)
    live, _ = DisasterController().trigger(None, grid, random.Random(0), 0, DisasterType.SOLAR_FLARE)

    controller.roll(None, grid, rng_idle, 1)
    controller.roll(live, grid, rng_live, 1)

    assert rng_idle.random() == rng_live.random()


def test_warning_has_no_modifier():
    controller = DisasterController()
    grid = _town()
    disaster, _ = controller.trigger(None, grid, random.Random(1), 0, DisasterType.SOLAR_FLARE)
    assert controller.modifier(disaster, grid) is NO_MODIFIER
    assert controller.modifier(None, grid) is NO_MODIFIER


def test_active_meteor_on_housing_removes_population():
    controller = DisasterController(DisasterSettings(warning_ticks=1, impact_radius=0))
    grid = _town()
    disaster, _ = controller.trigger(None, grid, random.Random(1), 0, DisasterType.METEOR)
    disaster = replace(disaster, position=(0, 0))
    disaster, _ = controller.advance(disaster, 1)

    modifier = controller.modifier(disaster, grid)
    population = modifier.for_field(ModifierField.POPULATION)

    assert controller.population_loss(disaster, grid) == pytest.approx(0.5 * 10 / 20)
    assert population and population[0].multiply == pytest.approx(0.75)
    assert modifier.for_field(ModifierField.HAPPINESS)


def test_meteor_on_empty_land_spares_population():
    controller = DisasterController(DisasterSettings(warning_ticks=1, impact_radius=0))
    grid = _town()
    disaster, _ = controller.trigger(None, grid, random.Random(1), 0, DisasterType.METEOR)
    disaster = replace(disaster, position=(3, 4))
    disaster, _ = controller.advance(disaster, 1)

    assert controller.modifier(disaster, grid).for_field(ModifierField.POPULATION) == ()


def test_severity_scales_adjustments():
    grid = _town()
    mild = DisasterController(DisasterSettings(warning_ticks=1, severity=0.5))
    disaster, _ = mild.trigger(None, grid, random.Random(1), 0, DisasterType.SOLAR_FLARE)
    disaster, _ = mild.advance(disaster, 1)

    business = mild.modifier(disaster, grid).for_field(ModifierField.BUSINESS)

    assert business[0].multiply == pytest.approx(1.0 + (0.3 - 1.0) * 0.5)
