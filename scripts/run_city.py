"""
Headless CLI runner: advance a city for N days and export the per-day table.

    python scripts/run_city.py --days 365 --seed 42 --ai --out data/output/city.csv
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Ensure project root is in sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv
load_dotenv(PROJECT_ROOT / ".env")

from config import get_settings
from src.data_layer.building_catalog import BuildingType
from src.data_layer.session import export_session
from src.simulation_layer.engine import CityEngine
from src.simulation_layer.models import DisasterType


def setup_logging(log_file: Path | None = None, verbose: bool = False) -> None:
    """Console handler plus an optional file handler, same format for both."""
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if logger.handlers:
        logger.handlers.clear()

    formatter = logging.Formatter('[%(levelname)s] %(message)s')

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8', mode='w')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def lay_out_starter_town(engine: CityEngine) -> None:
    """A road through the middle of the map with a few houses and a shop along it."""
    grid = engine.ctx.grid
    row = grid.height // 2
    for x in range(grid.width):
        target = BuildingType.BRIDGE if grid.building_at(x, row) == BuildingType.WATER else BuildingType.ROAD
        engine.place(x, row, target)
    starters = [BuildingType.RESIDENTIAL] * 4 + [BuildingType.COMMERCIAL, BuildingType.PARK]
    spots = [(x, row - 1) for x in range(grid.width) if grid.building_at(x, row - 1) == BuildingType.NONE]
    for building, (x, y) in zip(starters, spots):
        engine.place(x, y, building)


def main():
    parser = argparse.ArgumentParser(description="Axiom City headless simulation")
    parser.add_argument("--days", type=int, default=180, help="Number of ticks (days) to simulate")
    parser.add_argument("--seed", type=int, default=None, help="RNG seed (default: SIM_SEED or fresh entropy)")
    parser.add_argument("--ai", action="store_true", help="Let the AI mayor build and resolve events")
    parser.add_argument("--starter", action="store_true", help="Lay out a small starter town before running")
    parser.add_argument(
        "--disaster",
        choices=[t.value for t in DisasterType if t != DisasterType.NONE],
        default=None,
        help="Trigger a disaster on day 0",
    )
    parser.add_argument("--out", type=Path, default=PROJECT_ROOT / "data" / "output" / "city.csv")
    parser.add_argument("--session", type=Path, default=None, help="Also write the final session JSON here")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.log_file, args.verbose)
    settings = get_settings()

    print("=" * 60)
    print("Axiom City Simulation")
    print("=" * 60)
    print(f"Grid: {settings.simulation.grid_width}x{settings.simulation.grid_height}")
    print(f"Days: {args.days}  Seed: {args.seed}  AI mayor: {'on' if args.ai else 'off'}")
    print(f"Advisory provider: {settings.llm.provider}")
    print()

    engine = CityEngine(settings, seed=args.seed)
    try:
        if args.starter:
            lay_out_starter_town(engine)
        if args.ai:
            engine.toggle_ai()
        if args.disaster:
            engine.trigger_disaster(DisasterType(args.disaster))

        started = datetime.now()
        results_df = engine.run(args.days)
        elapsed = (datetime.now() - started).total_seconds()

        args.out.parent.mkdir(parents=True, exist_ok=True)
        results_df.to_csv(args.out, index=False, encoding="utf-8-sig")

        if args.session is not None:
            args.session.parent.mkdir(parents=True, exist_ok=True)
            args.session.write_text(json.dumps(export_session(engine)), encoding="utf-8")
            print(f"  Session -> {args.session}")
    finally:
        engine.close()

    final = results_df.iloc[-1] if not results_df.empty else None
    print()
    print(f"Simulated {args.days} days in {elapsed:.2f}s -> {args.out}")
    if final is not None:
        print(f"  Money:      ${int(final['money'])}")
        print(f"  Population: {int(final['population'])}")
        print(f"  Happiness:  {final['happiness']:.1f}")
        print(f"  Avg income: ${results_df['income'].mean():.1f}/day")
        print(f"  Disaster days: {int(results_df['disaster_stage'].notna().sum())}")


if __name__ == "__main__":
    main()
