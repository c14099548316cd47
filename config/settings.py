"""
Centralized configuration using pydantic-settings.
Loads from .env file and provides typed access to all tunables.
"""

from typing import Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings


class SimulationSettings(BaseSettings):
    """Session and clock parameters."""

    grid_width: int = Field(default=16, ge=1)
    grid_height: int = Field(default=16, ge=1)
    starting_money: int = Field(default=5000)
    seed: Optional[int] = Field(default=None, description="None = fresh entropy per session")
    tick_interval_seconds: float = Field(default=1.0, gt=0, description="Driving clock period (1 tick = 1 day)")
    auto_tick: bool = Field(default=True, description="Start the driving clock with the API app")
    river: bool = Field(default=True, description="Carve a water channel through new maps")
    history_rows: int = Field(default=10000, ge=1, description="Per-tick rows kept for history_frame()")

    model_config = {"env_prefix": "SIM_", "env_file": ".env", "extra": "ignore"}


class EconomySettings(BaseSettings):
    """Economic Simulator tunables. Defaults are exercised by tests/test_economy.py."""

    # Revenue
    tax_base_per_capita: float = 4.0
    min_staffing: float = Field(default=0.5, description="Output share a business keeps with no workers")
    unconnected_pop_factor: float = Field(default=0.5, description="Housing share kept without road access")

    # Costs
    service_cost_per_capita: float = 0.5
    pension_per_senior: float = 0.5
    benefit_per_unemployed: float = 1.0

    # Demographics (fractions per tick)
    birth_rate: float = 0.04
    migration_rate: float = 0.25
    child_aging_rate: float = 0.05
    adult_aging_rate: float = 0.01
    senior_mortality_rate: float = 0.02
    emigration_rate: float = 0.5

    # Moving averages toward targets
    happiness_smoothing: float = 0.1
    education_smoothing: float = 0.05
    safety_smoothing: float = 0.1
    shadow_drift_std: float = 0.01
    supply_smoothing: float = 0.1

    # Economic events
    event_chance: float = Field(default=0.02, description="Per-tick chance of a new economic event")
    boom_multiplier: float = 1.5
    recession_divisor: float = 1.5
    recession_crash_chance: float = 0.5
    audit_fine_fraction: float = 0.1
    audit_min_fine: int = 250

    # Loans & shares
    loan_amount: int = 5000
    loan_cap: int = 50000
    loan_interest_rate: float = 0.05
    loan_period_days: int = 30
    repay_chunk: int = 5000
    share_lot: int = 10
    share_volatility: float = 0.03
    initial_share_price: float = 100.0

    tax_steps: Tuple[float, ...] = (0.05, 0.1, 0.15, 0.2, 0.25, 0.3)

    model_config = {"env_prefix": "ECON_", "env_file": ".env", "extra": "ignore"}


class DisasterSettings(BaseSettings):
    """Disaster Controller tunables."""

    base_chance: float = Field(default=0.004, description="Per-tick onset chance before weather scaling")
    warning_ticks: int = 3
    aftermath_ticks: int = 5
    severity: float = Field(default=1.0, description="Scales every disaster modifier")
    impact_radius: int = 1

    model_config = {"env_prefix": "DISASTER_", "env_file": ".env", "extra": "ignore"}


class AISettings(BaseSettings):
    """AI mayor, goal planner and event engine tunables."""

    plan_interval_ticks: int = Field(default=5, ge=1)
    advisory_timeout_ticks: int = Field(default=10, ge=1)
    max_retries: int = 3
    max_workers: int = 2
    event_chance: float = Field(default=0.03, description="Per-tick chance of a narrative event")
    event_cooldown_ticks: int = 30
    auto_resolve_delay_ticks: int = 2

    model_config = {"env_prefix": "AI_", "env_file": ".env", "extra": "ignore"}


class LLMSettings(BaseSettings):
    """LLM API configuration. provider="none" keeps everything on local heuristics."""

    provider: str = Field(
        default="none", description="LLM provider: none | ollama | groq | openai | anthropic"
    )
    model_name: str = Field(default="qwen2.5:7b")
    api_key: str = Field(default="")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=1024)
    timeout_seconds: float = Field(default=30.0)

    model_config = {"env_prefix": "LLM_", "env_file": ".env", "extra": "ignore"}


class Settings(BaseSettings):
    """Root settings aggregator."""

    simulation: SimulationSettings = Field(default_factory=SimulationSettings)
    economy: EconomySettings = Field(default_factory=EconomySettings)
    disasters: DisasterSettings = Field(default_factory=DisasterSettings)
    ai: AISettings = Field(default_factory=AISettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
