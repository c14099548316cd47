"""
FastAPI dependency injection providers.
"""

from functools import lru_cache

from config import Settings, get_settings
from src.simulation_layer.engine import CityEngine


@lru_cache
def get_cached_settings() -> Settings:
    return get_settings()


@lru_cache
def get_engine() -> CityEngine:
    """The app's one engine. Tests swap it via app.dependency_overrides."""
    return CityEngine(get_cached_settings())
