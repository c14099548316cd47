from config.settings import (
    AISettings,
    DisasterSettings,
    EconomySettings,
    LLMSettings,
    Settings,
    SimulationSettings,
    get_settings,
    reset_settings,
)

__all__ = [
    "AISettings",
    "DisasterSettings",
    "EconomySettings",
    "LLMSettings",
    "Settings",
    "SimulationSettings",
    "get_settings",
    "reset_settings",
]
