"""
AI Goal & Action Planner.

GoalPlanner: none -> active -> completed -> claimed -> none. Heuristic goals
when the advisory path is off or unavailable; completion checked every tick.

ActionPlanner: local heuristic mayor. Proposes one BUILD / DEMOLISH / WAIT at
a time, preferring tiles on the road frontier close to the city's centre of
mass. Tiles that were rejected since the last grid change are skipped.
"""

import logging
import random
from dataclasses import replace
from typing import List, Optional, Set, Tuple

import numpy as np

from src.data_layer.building_catalog import BuildingType, get_building
from src.data_layer.grid_store import Coord, GridStore
from src.simulation_layer.models import (
    ActionType,
    AIAction,
    AIGoal,
    CityStats,
    CommandResult,
    GoalTargetType,
    HistoryType,
    NewsType,
)
from src.simulation_layer.news import Headline

logger = logging.getLogger(__name__)

GOAL_BUILDINGS = (
    BuildingType.RESIDENTIAL,
    BuildingType.COMMERCIAL,
    BuildingType.INDUSTRIAL,
    BuildingType.PARK,
    BuildingType.SCHOOL,
    BuildingType.POLICE,
)


def _round_up(value: float, step: int) -> int:
    return int(-(-value // step) * step)


class GoalPlanner:
    """Goal lifecycle helpers. Holds no state; the active goal lives in the city context."""

    def heuristic_goal(self, stats: CityStats, grid: GridStore, rng: random.Random) -> AIGoal:
        target_type = rng.choice(list(GoalTargetType))

        match target_type:
            case GoalTargetType.POPULATION:
                target = max(50, _round_up(stats.population * 1.5, 10))
                return AIGoal(
                    description=f"Grow the city to {target} residents",
                    target_type=target_type,
                    target_value=target,
                    reward=max(500, _round_up((target - stats.population) * 10, 100)),
                )
            case GoalTargetType.MONEY:
                target = _round_up(max(stats.money, 0) + 2000, 500)
                return AIGoal(
                    description=f"Save up ${target} in the treasury",
                    target_type=target_type,
                    target_value=target,
                    reward=max(300, _round_up(target * 0.1, 100)),
                )
            case GoalTargetType.BUILDING_COUNT:
                building = rng.choice(GOAL_BUILDINGS)
                cfg = get_building(building)
                target = grid.count(building) + rng.randint(2, 4)
                return AIGoal(
                    description=f"Build up to {target} {cfg.name} buildings",
                    target_type=target_type,
                    target_value=target,
                    reward=max(200, _round_up(cfg.cost * target * 0.5, 50)),
                    building_type=building,
                )
        raise ValueError(f"Unhandled goal target: {target_type}")

    def progress(self, goal: AIGoal, stats: CityStats, grid: GridStore) -> int:
        match goal.target_type:
            case GoalTargetType.POPULATION:
                return stats.population
            case GoalTargetType.MONEY:
                return stats.money
            case GoalTargetType.BUILDING_COUNT:
                return grid.count(goal.building_type) if goal.building_type else 0
        raise ValueError(f"Unhandled goal target: {goal.target_type}")

    def check(
        self, goal: Optional[AIGoal], stats: CityStats, grid: GridStore
    ) -> Tuple[Optional[AIGoal], List[Headline]]:
        """Flip `completed` once the target is met. Completed goals stay completed."""
        if goal is None or goal.completed:
            return goal, []
        if self.progress(goal, stats, grid) >= goal.target_value:
            logger.info("Day %d: goal completed: %s", stats.day, goal.description)
            return replace(goal, completed=True), [
                Headline(
                    f"Goal complete: {goal.description}. Claim ${goal.reward}!",
                    NewsType.POSITIVE,
                    HistoryType.MILESTONE,
                )
            ]
        return goal, []

    def claim(
        self, goal: Optional[AIGoal], stats: CityStats
    ) -> Tuple[Optional[AIGoal], CityStats, CommandResult]:
        """Credit the reward and clear the slot. Returns (goal after, stats after, result)."""
        if goal is None:
            return None, stats, CommandResult(False, "No active goal")
        if not goal.completed:
            return goal, stats, CommandResult(False, "Goal not completed yet")
        logger.info("Day %d: reward $%d claimed", stats.day, goal.reward)
        return None, replace(stats, money=stats.money + goal.reward), CommandResult(
            True, f"Claimed ${goal.reward}"
        )


class ActionPlanner:
    """Heuristic mayor. propose() never mutates anything."""

    def __init__(self, cash_reserve: int = 200):
        self.cash_reserve = cash_reserve

    def wanted_building(self, stats: CityStats, grid: GridStore) -> BuildingType:
        """What the city needs most right now."""
        population = stats.population
        if stats.housing_capacity == 0 or population >= stats.housing_capacity * 0.9:
            if stats.jobs.total > 0 and stats.jobs.unemployment > 0.15:
                return self._job_building(stats)
            return BuildingType.RESIDENTIAL
        if stats.jobs.unemployment > 0.15 or (population > 0 and stats.jobs.total < population * 0.3):
            return self._job_building(stats)
        if stats.happiness < 50 and grid.count(BuildingType.PARK) * 100 < population:
            return BuildingType.PARK
        if population > 50 and stats.education < 40 and grid.count(BuildingType.SCHOOL) * 200 < population:
            return BuildingType.SCHOOL
        if population > 50 and stats.safety < 40 and grid.count(BuildingType.POLICE) * 300 < population:
            return BuildingType.POLICE
        return BuildingType.RESIDENTIAL

    def _job_building(self, stats: CityStats) -> BuildingType:
        if stats.pollution_level > 40 or stats.supply_level > 0.6:
            return BuildingType.COMMERCIAL
        return BuildingType.INDUSTRIAL

    def center(self, grid: GridStore) -> Tuple[float, float]:
        occupancy = grid.occupancy_matrix()
        if occupancy.sum() == 0:
            return (grid.width - 1) / 2, (grid.height - 1) / 2
        ys, xs = np.nonzero(occupancy)
        return float(xs.mean()), float(ys.mean())

    def closest(self, grid: GridStore, tiles: List[Coord]) -> Coord:
        cx, cy = self.center(grid)
        return min(tiles, key=lambda t: ((t[0] - cx) ** 2 + (t[1] - cy) ** 2, t[1], t[0]))

    def propose(
        self,
        stats: CityStats,
        grid: GridStore,
        rng: random.Random,
        excluded: Optional[Set[Coord]] = None,
    ) -> AIAction:
        excluded = excluded or set()

        # Heavy pollution and unhappy citizens: knock down a factory
        if stats.pollution_level > 60 and stats.happiness < 40 and grid.count(BuildingType.INDUSTRIAL) > 1:
            factories = [(t.x, t.y) for t in grid if t.building_type == BuildingType.INDUSTRIAL]
            x, y = rng.choice(factories)
            return AIAction(ActionType.DEMOLISH, BuildingType.INDUSTRIAL, x, y, "Pollution is driving people away")

        wanted = self.wanted_building(stats, grid)
        cfg = get_building(wanted)
        if cfg.max_allowed is not None and grid.count(wanted) >= cfg.max_allowed:
            return AIAction(ActionType.WAIT, reasoning=f"{cfg.name} limit reached")

        empty = [t for t in grid.empty_tiles() if t not in excluded]
        if not empty:
            return AIAction(ActionType.WAIT, reasoning="No free land")

        frontier = [t for t in grid.road_frontier() if t not in excluded]
        networks = grid.road_networks()
        if networks:
            # Grow the largest connected network before side roads
            main = [t for t in grid.road_frontier(networks[0]) if t not in excluded]
            frontier = main or frontier
        road_cost = get_building(BuildingType.ROAD).cost

        # Roads first when there is nowhere connected to build
        if len(frontier) < 2:
            if stats.money < road_cost:
                return AIAction(ActionType.WAIT, reasoning="Saving for roads")
            spot = self.closest(grid, frontier or empty)
            return AIAction(ActionType.BUILD, BuildingType.ROAD, spot[0], spot[1], "Extending the road network")

        if stats.money - self.cash_reserve < cfg.cost:
            return AIAction(ActionType.WAIT, reasoning=f"Saving for a {cfg.name}")

        x, y = self.closest(grid, frontier)
        return AIAction(ActionType.BUILD, wanted, x, y, f"The city needs a {cfg.name}")

    def mark_failed(self, action: AIAction) -> AIAction:
        if action.x is None or action.y is None:
            return action
        return replace(action, failed_attempt=(action.x, action.y))
