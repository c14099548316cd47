import random
from dataclasses import replace

from src.data_layer.building_catalog import BuildingType
from src.data_layer.grid_store import GridStore
from src.simulation_layer.models import (
    ActionType,
    AIAction,
    AIGoal,
    CityStats,
    GoalTargetType,
    HistoryType,
)
from src.simulation_layer.planner import ActionPlanner, GoalPlanner


def _goal_of_type(target_type: GoalTargetType, stats: CityStats, grid: GridStore) -> AIGoal:
    planner = GoalPlanner()
    for seed in range(100):
        goal = planner.heuristic_goal(stats, grid, random.Random(seed))
        if goal.target_type == target_type:
            return goal
    raise AssertionError(f"no {target_type} goal in 100 seeds")


# -------------------------
# Goals
# -------------------------

def test_heuristic_goals_cover_every_target_type():
    stats = CityStats(money=1000, population=40)
    grid = GridStore(4, 4)
    for target_type in GoalTargetType:
        goal = _goal_of_type(target_type, stats, grid)
        assert goal.target_value > 0
        assert goal.reward > 0
        assert not goal.completed
        assert (goal.building_type is not None) == (target_type == GoalTargetType.BUILDING_COUNT)


def test_heuristic_targets_are_ahead_of_the_city():
    stats = CityStats(money=1000, population=40)
    grid = GridStore(4, 4)
    planner = GoalPlanner()
    for target_type in GoalTargetType:
        goal = _goal_of_type(target_type, stats, grid)
        assert planner.progress(goal, stats, grid) < goal.target_value


def test_check_completes_once_with_milestone():
    planner = GoalPlanner()
    goal = AIGoal("Reach 50", GoalTargetType.POPULATION, 50, reward=500)
    grid = GridStore(2, 2)

    same, news = planner.check(goal, CityStats(money=0, population=49), grid)
    assert same is goal and news == []

    done, news = planner.check(goal, CityStats(money=0, population=50), grid)
    assert done.completed
    assert news[0].history == HistoryType.MILESTONE

    again, news = planner.check(done, CityStats(money=0, population=10), grid)
    assert again.completed and news == []


def test_building_count_progress_reads_grid():
    planner = GoalPlanner()
    grid = GridStore(3, 3)
    grid.place(0, 0, BuildingType.PARK, 1000)
    grid.place(1, 0, BuildingType.PARK, 1000)
    goal = AIGoal("Two parks", GoalTargetType.BUILDING_COUNT, 2, reward=100, building_type=BuildingType.PARK)

    assert planner.progress(goal, CityStats(money=0), grid) == 2


def test_claim_pays_completed_goal_and_clears_slot():
    planner = GoalPlanner()
    goal = AIGoal("Save up", GoalTargetType.MONEY, 100, reward=300, completed=True)

    after, stats, result = planner.claim(goal, CityStats(money=150))

    assert result.accepted
    assert after is None
    assert stats.money == 450


def test_claim_refused_for_unfinished_or_missing_goal():
    planner = GoalPlanner()
    goal = AIGoal("Save up", GoalTargetType.MONEY, 100, reward=300)
    stats = CityStats(money=50)

    after, same, result = planner.claim(goal, stats)
    assert not result.accepted and after is goal and same is stats

    after, same, result = planner.claim(None, stats)
    assert not result.accepted and after is None


# -------------------------
# Actions
# -------------------------

def test_empty_map_starts_with_a_road():
    action = ActionPlanner().propose(CityStats(money=1000), GridStore(4, 4), random.Random(0))
    assert action.action == ActionType.BUILD
    assert action.building_type == BuildingType.ROAD
    assert (action.x, action.y) == (1, 1)


def test_builds_housing_on_frontier_near_centre(road_grid):
    action = ActionPlanner().propose(CityStats(money=1000), road_grid, random.Random(0))

    assert action.action == ActionType.BUILD
    assert action.building_type == BuildingType.RESIDENTIAL
    assert (action.x, action.y) == (1, 0)
    assert road_grid.has_road_access(action.x, action.y)


def test_builds_along_the_largest_road_network():
    grid = GridStore(6, 6)
    for x in range(6):
        grid.place(x, 0, BuildingType.ROAD, 10_000)
        grid.place(x, 5, BuildingType.PARK, 10_000)
    grid.place(3, 4, BuildingType.ROAD, 10_000)

    action = ActionPlanner().propose(CityStats(money=5000), grid, random.Random(0))

    # (3, 3) beside the lone road is nearer the centre, but the main network wins
    assert action.building_type == BuildingType.RESIDENTIAL
    assert (action.x, action.y) == (3, 1)


def test_excluded_tiles_are_skipped(road_grid):
    action = ActionPlanner().propose(CityStats(money=1000), road_grid, random.Random(0), excluded={(1, 0)})
    assert (action.x, action.y) == (2, 0)


def test_keeps_a_cash_reserve(road_grid):
    action = ActionPlanner(cash_reserve=200).propose(CityStats(money=250), road_grid, random.Random(0))
    assert action.action == ActionType.WAIT


def test_waits_when_no_land_is_free():
    grid = GridStore(1, 1)
    grid.place(0, 0, BuildingType.ROAD, 1000)
    action = ActionPlanner().propose(CityStats(money=1000), grid, random.Random(0))
    assert action.action == ActionType.WAIT


def test_wants_jobs_when_unemployment_is_high():
    planner = ActionPlanner()
    stats = CityStats(money=5000, population=50, housing_capacity=100)
    stats = replace(stats, jobs=replace(stats.jobs, total=10, unemployment=0.4))
    assert planner.wanted_building(stats, GridStore(4, 4)) == BuildingType.INDUSTRIAL

    smoggy = replace(stats, pollution_level=50.0)
    assert planner.wanted_building(smoggy, GridStore(4, 4)) == BuildingType.COMMERCIAL


def test_demolishes_a_factory_under_heavy_pollution(road_grid):
    road_grid.place(0, 0, BuildingType.INDUSTRIAL, 10_000)
    road_grid.place(3, 0, BuildingType.INDUSTRIAL, 10_000)
    stats = CityStats(money=1000, pollution_level=70.0, happiness=30.0)

    action = ActionPlanner().propose(stats, road_grid, random.Random(0))

    assert action.action == ActionType.DEMOLISH
    assert road_grid.building_at(action.x, action.y) == BuildingType.INDUSTRIAL


def test_mark_failed_records_the_tile():
    planner = ActionPlanner()
    failed = planner.mark_failed(AIAction(ActionType.BUILD, BuildingType.PARK, 2, 3))
    assert failed.failed_attempt == (2, 3)

    wait = AIAction(ActionType.WAIT)
    assert planner.mark_failed(wait) is wait
