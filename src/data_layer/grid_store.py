"""
Grid store: owns the 2D tile array.
Place/demolish with validation, on-demand road access and road-network queries.

Money is never touched here. The caller pairs a successful place() with the
matching debit so both happen or neither does.
"""

import random
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set, Tuple

import networkx as nx
import numpy as np

from src.data_layer.building_catalog import (
    BUILDINGS,
    EMPTY_TYPES,
    ROAD_TYPES,
    BuildingType,
    get_building,
)
from src.simulation_layer.exceptions import CapacityExceeded, InvalidPlacement, NothingToDemolish

Coord = Tuple[int, int]

NEIGHBOR_OFFSETS = ((0, -1), (1, 0), (0, 1), (-1, 0))


@dataclass
class Tile:
    x: int
    y: int
    building_type: BuildingType = BuildingType.NONE


class GridStore:
    """
    Fixed-size grid of tiles, indexed [y][x].
    Mutated only through place()/demolish(); every mutation bumps `version`.
    """

    def __init__(self, width: int, height: int, tiles: Optional[List[List[Tile]]] = None):
        if width < 1 or height < 1:
            raise ValueError(f"Grid must be at least 1x1, got {width}x{height}")
        self.width = width
        self.height = height
        if tiles is None:
            tiles = [[Tile(x, y) for x in range(width)] for y in range(height)]
        self._tiles = tiles
        self._check_shape()
        self.version = 0

    def __repr__(self) -> str:
        return f"GridStore(width={self.width}, height={self.height}, version={self.version})"

    def _check_shape(self) -> None:
        if len(self._tiles) != self.height:
            raise ValueError("Tile rows do not match grid height")
        for y, row in enumerate(self._tiles):
            if len(row) != self.width:
                raise ValueError(f"Row {y} does not match grid width")
            for x, tile in enumerate(row):
                if (tile.x, tile.y) != (x, y):
                    raise ValueError(f"Tile at [{y}][{x}] carries coordinates ({tile.x}, {tile.y})")

    # -------------------------
    # Construction
    # -------------------------
    @classmethod
    def generate(cls, width: int, height: int, rng: random.Random, river: bool = True) -> "GridStore":
        """New map; optionally carves a meandering north-south river."""
        grid = cls(width, height)
        if river and width >= 4:
            x = rng.randrange(width // 4, max(width // 4 + 1, (3 * width) // 4))
            for y in range(height):
                grid._tiles[y][x].building_type = BuildingType.WATER
                x = min(width - 1, max(0, x + rng.choice((-1, 0, 0, 1))))
        return grid

    @classmethod
    def from_types(cls, rows: List[List[BuildingType]]) -> "GridStore":
        height = len(rows)
        width = len(rows[0]) if rows else 0
        tiles = [
            [Tile(x, y, BuildingType(rows[y][x])) for x in range(width)]
            for y in range(height)
        ]
        return cls(width, height, tiles)

    # -------------------------
    # Queries
    # -------------------------
    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def tile(self, x: int, y: int) -> Tile:
        if not self.in_bounds(x, y):
            raise InvalidPlacement(f"({x}, {y}) is outside the {self.width}x{self.height} grid", x, y)
        return self._tiles[y][x]

    def building_at(self, x: int, y: int) -> BuildingType:
        return self.tile(x, y).building_type

    def __iter__(self) -> Iterator[Tile]:
        for row in self._tiles:
            yield from row

    def types(self) -> List[List[BuildingType]]:
        return [[t.building_type for t in row] for row in self._tiles]

    def neighbors(self, x: int, y: int) -> List[Coord]:
        return [
            (x + dx, y + dy)
            for dx, dy in NEIGHBOR_OFFSETS
            if self.in_bounds(x + dx, y + dy)
        ]

    def has_road_access(self, x: int, y: int) -> bool:
        """True when an orthogonal neighbour is a road or bridge. Recomputed on every call."""
        return any(
            self._tiles[ny][nx_].building_type in ROAD_TYPES
            for nx_, ny in self.neighbors(x, y)
        )

    def count(self, building_type: BuildingType) -> int:
        return sum(1 for t in self if t.building_type == building_type)

    def counts(self) -> Dict[BuildingType, int]:
        return dict(Counter(t.building_type for t in self if t.building_type not in EMPTY_TYPES))

    def occupied(self) -> List[Tile]:
        return [t for t in self if t.building_type not in EMPTY_TYPES]

    def empty_tiles(self) -> List[Coord]:
        return [(t.x, t.y) for t in self if t.building_type == BuildingType.NONE]

    def occupancy_matrix(self) -> np.ndarray:
        """1 where a building (roads included) stands, 0 on land or water."""
        grid = np.zeros((self.height, self.width), dtype=int)
        for t in self:
            if t.building_type not in EMPTY_TYPES:
                grid[t.y, t.x] = 1
        return grid

    def tiles_within(self, center: Coord, radius: int) -> List[Tile]:
        cx, cy = center
        return [
            self._tiles[y][x]
            for y in range(max(0, cy - radius), min(self.height, cy + radius + 1))
            for x in range(max(0, cx - radius), min(self.width, cx + radius + 1))
        ]

    # -------------------------
    # Road network
    # -------------------------
    def road_graph(self) -> nx.Graph:
        """Road and bridge tiles as nodes, orthogonal adjacency as edges."""
        G = nx.Graph()
        for t in self:
            if t.building_type in ROAD_TYPES:
                G.add_node((t.x, t.y))
        for (x, y) in list(G.nodes):
            for nbr in self.neighbors(x, y):
                if nbr in G:
                    G.add_edge((x, y), nbr)
        return G

    def road_networks(self) -> List[Set[Coord]]:
        """Connected road components, largest first."""
        components = list(nx.connected_components(self.road_graph()))
        return sorted(components, key=len, reverse=True)

    def road_frontier(self, network: Optional[Set[Coord]] = None) -> List[Coord]:
        """Empty land tiles touching a road (or one of `network`'s tiles): the cheapest spots to build on."""
        if network is None:
            return [
                (x, y) for (x, y) in self.empty_tiles() if self.has_road_access(x, y)
            ]
        return [
            (x, y) for (x, y) in self.empty_tiles()
            if any(n in network for n in self.neighbors(x, y))
        ]

    # -------------------------
    # Mutation
    # -------------------------
    def validate_placement(self, x: int, y: int, building_type: BuildingType, money: float) -> None:
        """Raise InvalidPlacement / CapacityExceeded if place() would fail. Never mutates."""
        building_type = BuildingType(building_type)
        cfg = get_building(building_type)
        current = self.tile(x, y).building_type

        if not cfg.placeable:
            raise InvalidPlacement(f"{cfg.name} cannot be placed", x, y)
        if building_type == BuildingType.BRIDGE:
            if current != BuildingType.WATER:
                raise InvalidPlacement("Bridges must be built on water", x, y)
        elif current != BuildingType.NONE:
            raise InvalidPlacement(f"({x}, {y}) is occupied by {BUILDINGS[current].name}", x, y)
        if cfg.max_allowed is not None and self.count(building_type) >= cfg.max_allowed:
            raise CapacityExceeded(f"Only {cfg.max_allowed} {cfg.name} allowed", x, y)
        if cfg.cost > money:
            raise InvalidPlacement(f"{cfg.name} costs ${cfg.cost}, only ${int(money)} available", x, y)

    def place(self, x: int, y: int, building_type: BuildingType, money: float) -> BuildingType:
        """Place a building; returns the type that was replaced (NONE or WATER)."""
        self.validate_placement(x, y, building_type, money)
        tile = self._tiles[y][x]
        previous = tile.building_type
        tile.building_type = BuildingType(building_type)
        self.version += 1
        return previous

    def demolish(self, x: int, y: int) -> BuildingType:
        """Clear a tile; bridges fall back to water. Returns the demolished type."""
        tile = self.tile(x, y)
        current = tile.building_type
        if current == BuildingType.NONE:
            raise NothingToDemolish(x, y)
        if not BUILDINGS[current].demolishable:
            raise InvalidPlacement(f"{BUILDINGS[current].name} cannot be demolished", x, y)
        tile.building_type = BuildingType.WATER if current == BuildingType.BRIDGE else BuildingType.NONE
        self.version += 1
        return current
