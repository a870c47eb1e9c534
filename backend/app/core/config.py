import os
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


def _seed_from_env() -> int | None:
    raw = os.getenv("FORECAST_RANDOM_SEED")
    return int(raw) if raw else None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Building Materials Demand Forecasting"
    api_v1_prefix: str = "/api/v1"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Forecasting defaults
    default_config_id: str = "construction_ensemble"
    forecast_ttl_hours: float = 24.0
    analysis_window_days: int = 90
    external_factor_window_days: int = 30
    comparison_days: int = 30

    # Synthetic history
    history_days: int = 730
    plants: tuple[str, ...] = ("plant001", "plant002", "plant003", "plant004")
    # Unset means a fresh, unseeded generator per process
    random_seed: int | None = _seed_from_env()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
