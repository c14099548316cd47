"""
Building catalog: static table of every building type.
Cost, population/income coefficients, job counts, service coverage and placement caps.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class BuildingType(str, Enum):
    NONE = "None"
    ROAD = "Road"
    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"
    INDUSTRIAL = "Industrial"
    PARK = "Park"
    SCHOOL = "School"
    HOSPITAL = "Hospital"
    POLICE = "Police"
    FIRE_STATION = "FireStation"
    GOLD_MINE = "GoldMine"
    APARTMENT = "Apartment"
    MANSION = "Mansion"
    WATER = "Water"
    BRIDGE = "Bridge"
    CASINO = "Casino"
    MEGA_MALL = "MegaMall"
    SPACE_PORT = "SpacePort"
    UNIVERSITY = "University"
    STADIUM = "Stadium"
    RESEARCH_CENTRE = "ResearchCentre"


class BuildingCategory(str, Enum):
    NONE = "none"
    INFRASTRUCTURE = "infrastructure"
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    INDUSTRIAL = "industrial"
    SERVICE = "service"
    TERRAIN = "terrain"


class ServiceKind(str, Enum):
    LEISURE = "leisure"
    EDUCATION = "education"
    HEALTH = "health"
    POLICE = "police"
    FIRE = "fire"


@dataclass(frozen=True)
class BuildingConfig:
    """Immutable catalog entry for one building type."""

    type: BuildingType
    cost: int
    name: str
    description: str
    color: str
    pop_gen: int = 0  # housing slots
    income_gen: int = 0  # base income per tick
    category: BuildingCategory = BuildingCategory.NONE
    jobs: int = 0  # commercial or industrial depending on category
    upkeep: int = 0  # per-tick service cost
    service: Optional[ServiceKind] = None
    service_capacity: int = 0  # citizens covered
    pollution: int = 0
    crime: int = 0
    max_allowed: Optional[int] = None
    demolishable: bool = True
    needs_road: bool = True

    @property
    def placeable(self) -> bool:
        return self.type not in (BuildingType.NONE, BuildingType.WATER)


BUILDINGS: Dict[BuildingType, BuildingConfig] = {
    BuildingType.NONE: BuildingConfig(
        type=BuildingType.NONE, cost=0, name="Bulldoze",
        description="Clear a tile", color="#6b7280",
        needs_road=False,
    ),
    BuildingType.ROAD: BuildingConfig(
        type=BuildingType.ROAD, cost=10, name="Road",
        description="Connects buildings to the city", color="#374151",
        category=BuildingCategory.INFRASTRUCTURE, needs_road=False,
    ),
    BuildingType.BRIDGE: BuildingConfig(
        type=BuildingType.BRIDGE, cost=150, name="Bridge",
        description="A road across water", color="#9ca3af",
        category=BuildingCategory.INFRASTRUCTURE, needs_road=False,
    ),
    BuildingType.RESIDENTIAL: BuildingConfig(
        type=BuildingType.RESIDENTIAL, cost=100, name="House",
        description="Homes for 10 citizens", color="#f87171",
        pop_gen=10, category=BuildingCategory.RESIDENTIAL,
    ),
    BuildingType.APARTMENT: BuildingConfig(
        type=BuildingType.APARTMENT, cost=400, name="Apartment",
        description="Dense housing", color="#fb7185",
        pop_gen=40, upkeep=2, category=BuildingCategory.RESIDENTIAL,
    ),
    BuildingType.MANSION: BuildingConfig(
        type=BuildingType.MANSION, cost=800, name="Mansion",
        description="Few residents, deep pockets", color="#e879f9",
        pop_gen=4, income_gen=20, category=BuildingCategory.RESIDENTIAL,
    ),
    BuildingType.COMMERCIAL: BuildingConfig(
        type=BuildingType.COMMERCIAL, cost=300, name="Shop",
        description="Jobs and business income", color="#60a5fa",
        income_gen=50, jobs=10, category=BuildingCategory.COMMERCIAL,
    ),
    BuildingType.INDUSTRIAL: BuildingConfig(
        type=BuildingType.INDUSTRIAL, cost=400, name="Factory",
        description="Exports goods, pollutes", color="#facc15",
        income_gen=60, jobs=20, pollution=8, category=BuildingCategory.INDUSTRIAL,
    ),
    BuildingType.PARK: BuildingConfig(
        type=BuildingType.PARK, cost=50, name="Park",
        description="Keeps citizens happy", color="#4ade80",
        upkeep=2, service=ServiceKind.LEISURE, service_capacity=100,
        pollution=-3, category=BuildingCategory.SERVICE, needs_road=False,
    ),
    BuildingType.SCHOOL: BuildingConfig(
        type=BuildingType.SCHOOL, cost=500, name="School",
        description="Raises education", color="#fde68a",
        upkeep=10, service=ServiceKind.EDUCATION, service_capacity=200,
        category=BuildingCategory.SERVICE,
    ),
    BuildingType.UNIVERSITY: BuildingConfig(
        type=BuildingType.UNIVERSITY, cost=1500, name="University",
        description="Higher education for the whole city", color="#a78bfa",
        upkeep=30, service=ServiceKind.EDUCATION, service_capacity=800,
        max_allowed=1, category=BuildingCategory.SERVICE,
    ),
    BuildingType.RESEARCH_CENTRE: BuildingConfig(
        type=BuildingType.RESEARCH_CENTRE, cost=3500, name="Research Centre",
        description="Patents and knowledge", color="#22d3ee",
        income_gen=40, upkeep=20, service=ServiceKind.EDUCATION, service_capacity=500,
        max_allowed=1, category=BuildingCategory.SERVICE,
    ),
    BuildingType.HOSPITAL: BuildingConfig(
        type=BuildingType.HOSPITAL, cost=700, name="Hospital",
        description="Healthcare", color="#f9fafb",
        upkeep=15, service=ServiceKind.HEALTH, service_capacity=400,
        category=BuildingCategory.SERVICE,
    ),
    BuildingType.POLICE: BuildingConfig(
        type=BuildingType.POLICE, cost=400, name="Police",
        description="Fights crime", color="#1d4ed8",
        upkeep=10, service=ServiceKind.POLICE, service_capacity=300,
        category=BuildingCategory.SERVICE,
    ),
    BuildingType.FIRE_STATION: BuildingConfig(
        type=BuildingType.FIRE_STATION, cost=400, name="Fire Station",
        description="Emergency response", color="#dc2626",
        upkeep=10, service=ServiceKind.FIRE, service_capacity=300,
        category=BuildingCategory.SERVICE,
    ),
    BuildingType.STADIUM: BuildingConfig(
        type=BuildingType.STADIUM, cost=4000, name="Stadium",
        description="Big games, big crowds", color="#f97316",
        income_gen=30, upkeep=20, service=ServiceKind.LEISURE, service_capacity=1000,
        max_allowed=1, category=BuildingCategory.SERVICE,
    ),
    BuildingType.GOLD_MINE: BuildingConfig(
        type=BuildingType.GOLD_MINE, cost=2000, name="Gold Mine",
        description="Digs up money", color="#eab308",
        income_gen=150, jobs=10, pollution=10, max_allowed=1,
        category=BuildingCategory.INDUSTRIAL,
    ),
    BuildingType.CASINO: BuildingConfig(
        type=BuildingType.CASINO, cost=2500, name="Casino",
        description="The house always wins", color="#be123c",
        income_gen=120, jobs=15, crime=10, max_allowed=2,
        category=BuildingCategory.COMMERCIAL,
    ),
    BuildingType.MEGA_MALL: BuildingConfig(
        type=BuildingType.MEGA_MALL, cost=3000, name="Mega Mall",
        description="Retail at scale", color="#0ea5e9",
        income_gen=150, jobs=40, max_allowed=1,
        category=BuildingCategory.COMMERCIAL,
    ),
    BuildingType.SPACE_PORT: BuildingConfig(
        type=BuildingType.SPACE_PORT, cost=10000, name="Space Port",
        description="Exports to orbit", color="#e5e7eb",
        income_gen=500, jobs=50, pollution=5, max_allowed=1,
        category=BuildingCategory.INDUSTRIAL,
    ),
    BuildingType.WATER: BuildingConfig(
        type=BuildingType.WATER, cost=0, name="Water",
        description="Natural terrain", color="#3b82f6",
        category=BuildingCategory.TERRAIN, demolishable=False, needs_road=False,
    ),
}

ROAD_TYPES = frozenset({BuildingType.ROAD, BuildingType.BRIDGE})
EMPTY_TYPES = frozenset({BuildingType.NONE, BuildingType.WATER})


def get_building(building_type: BuildingType) -> BuildingConfig:
    """Catalog lookup. Every BuildingType has an entry."""
    return BUILDINGS[BuildingType(building_type)]


def placeable_types() -> List[BuildingType]:
    return [t for t, cfg in BUILDINGS.items() if cfg.placeable]
