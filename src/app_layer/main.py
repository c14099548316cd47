"""
FastAPI application entry point.
The lifespan drives the simulation clock: one tick every tick_interval_seconds.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.app_layer.dependencies import get_cached_settings, get_engine
from src.app_layer.routers import city
from src.simulation_layer.engine import CityEngine
from src.simulation_layer.exceptions import (
    CityError,
    InvalidChoice,
    InvalidPlacement,
    NothingToDemolish,
    UnknownEvent,
)

logger = logging.getLogger(__name__)


async def run_clock(engine: CityEngine, interval: float) -> None:
    """Tick until cancelled. Any failing tick is logged with its traceback and stops the clock."""
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(engine.tick)
        except Exception:
            logger.exception("Tick failed on day %d, stopping the clock", engine.current_stats().day)
            return


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: build the engine, start the clock
    settings = get_cached_settings()
    engine = get_engine()
    clock = None
    if settings.simulation.auto_tick:
        clock = asyncio.create_task(run_clock(engine, settings.simulation.tick_interval_seconds))
        logger.info("Clock started (%.2fs per day)", settings.simulation.tick_interval_seconds)
    yield
    # Shutdown: stop the clock, drop advisory work
    if clock is not None:
        clock.cancel()
    engine.close()


app = FastAPI(
    title="Axiom City Simulation API",
    description="Tick-driven city-builder simulation core",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(
    city.router, prefix="/api/v1/city", tags=["city"]
)


@app.exception_handler(InvalidPlacement)
@app.exception_handler(NothingToDemolish)
async def placement_error(request: Request, exc: CityError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(UnknownEvent)
async def unknown_event(request: Request, exc: UnknownEvent):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidChoice)
async def invalid_choice(request: Request, exc: InvalidChoice):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    return {"status": "ok"}
