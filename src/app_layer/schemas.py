"""
Pydantic models for API request/response.
Simulation records are stdlib dataclasses; pydantic serializes them as nested objects.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from src.data_layer.building_catalog import BuildingType
from src.simulation_layer.models import (
    ActiveDisaster,
    AIAction,
    AIGoal,
    CityStats,
    DisasterType,
    GameEvent,
    HistoryLogEntry,
    NewsItem,
    WeatherState,
)


class PlaceRequest(BaseModel):
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    building_type: BuildingType


class DemolishRequest(BaseModel):
    x: int = Field(ge=0)
    y: int = Field(ge=0)


class ResolveEventRequest(BaseModel):
    event_id: str
    choice_index: int = Field(ge=0, le=1)


class TriggerDisasterRequest(BaseModel):
    disaster_type: Optional[DisasterType] = None


class ResetRequest(BaseModel):
    seed: Optional[int] = None


class TickRequest(BaseModel):
    ticks: int = Field(default=1, ge=1, le=1000)


class CommandResponse(BaseModel):
    accepted: bool
    message: str = ""
    money: int
    day: int


class ToggleAIResponse(BaseModel):
    ai_enabled: bool


class CityResponse(BaseModel):
    stats: CityStats
    tiles: List[List[BuildingType]]
    weather: WeatherState
    disaster: Optional[ActiveDisaster] = None
    goal: Optional[AIGoal] = None
    pending_event: Optional[GameEvent] = None
    ai_enabled: bool = False
    last_action: Optional[AIAction] = None
    news: List[NewsItem] = Field(default_factory=list)
    history: List[HistoryLogEntry] = Field(default_factory=list)
