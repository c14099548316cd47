"""
City API endpoints: read-only snapshot plus synchronous commands.
"""

from fastapi import APIRouter, Depends

from src.app_layer.dependencies import get_engine
from src.app_layer.schemas import (
    CityResponse,
    CommandResponse,
    DemolishRequest,
    PlaceRequest,
    ResetRequest,
    ResolveEventRequest,
    TickRequest,
    ToggleAIResponse,
    TriggerDisasterRequest,
)
from src.simulation_layer.engine import CityEngine
from src.simulation_layer.models import CommandResult

router = APIRouter()


def _respond(engine: CityEngine, result: CommandResult) -> CommandResponse:
    stats = engine.current_stats()
    return CommandResponse(accepted=result.accepted, message=result.message, money=stats.money, day=stats.day)


@router.get("", response_model=CityResponse)
def get_city(news: int = 20, history: int = 50, engine: CityEngine = Depends(get_engine)):
    """Grid, stats, weather, disaster, goal, pending event and recent news."""
    return CityResponse(**vars(engine.snapshot(news_limit=news, history_limit=history)))


@router.post("/place", response_model=CommandResponse)
def place(request: PlaceRequest, engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.place(request.x, request.y, request.building_type))


@router.post("/demolish", response_model=CommandResponse)
def demolish(request: DemolishRequest, engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.demolish(request.x, request.y))


@router.post("/commands/cycle-tax", response_model=CommandResponse)
def cycle_tax(engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.cycle_tax())


@router.post("/commands/take-loan", response_model=CommandResponse)
def take_loan(engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.take_loan())


@router.post("/commands/repay-loan", response_model=CommandResponse)
def repay_loan(engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.repay_loan())


@router.post("/commands/buy-shares", response_model=CommandResponse)
def buy_shares(engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.buy_shares())


@router.post("/commands/sell-shares", response_model=CommandResponse)
def sell_shares(engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.sell_shares())


@router.post("/commands/claim-reward", response_model=CommandResponse)
def claim_reward(engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.claim_reward())


@router.post("/commands/trigger-disaster", response_model=CommandResponse)
def trigger_disaster(request: TriggerDisasterRequest, engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.trigger_disaster(request.disaster_type))


@router.post("/commands/toggle-ai", response_model=ToggleAIResponse)
def toggle_ai(engine: CityEngine = Depends(get_engine)):
    return ToggleAIResponse(ai_enabled=engine.toggle_ai())


@router.post("/commands/reset", response_model=CommandResponse)
def reset(request: ResetRequest, engine: CityEngine = Depends(get_engine)):
    engine.reset_city(request.seed)
    return _respond(engine, CommandResult(True, "City reset"))


@router.post("/commands/tick", response_model=CommandResponse)
def tick(request: TickRequest, engine: CityEngine = Depends(get_engine)):
    """Advance the clock by hand (useful with SIM_AUTO_TICK=false)."""
    for _ in range(request.ticks):
        engine.tick()
    return _respond(engine, CommandResult(True, f"Advanced {request.ticks} day(s)"))


@router.post("/events/resolve", response_model=CommandResponse)
def resolve_event(request: ResolveEventRequest, engine: CityEngine = Depends(get_engine)):
    return _respond(engine, engine.resolve_event(request.event_id, request.choice_index))
