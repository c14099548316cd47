"""
Data Layer - building catalog, tile grid and session snapshots.

Provides:
- BuildingType / BuildingConfig / BUILDINGS: static catalog
- GridStore / Tile: the city grid with placement validation and road queries
"""

from src.data_layer.building_catalog import (
    BUILDINGS,
    BuildingCategory,
    BuildingConfig,
    BuildingType,
    ServiceKind,
    get_building,
    placeable_types,
)
from src.data_layer.grid_store import GridStore, Tile

__all__ = [
    # Catalog
    "BUILDINGS",
    "BuildingCategory",
    "BuildingConfig",
    "BuildingType",
    "ServiceKind",
    "get_building",
    "placeable_types",
    # Grid
    "GridStore",
    "Tile",
]
