"""Runtime configuration, read from ``ORDERFLOW_*`` environment variables."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    ``tax_rate`` and ``flagship_token`` are passed explicitly into totals
    computation and the scheduling evaluator.
    """

    env: str = "development"
    database_uri: str = "sqlite:///orderflow.db"

    tax_rate: Decimal = Field(default=Decimal("0.16"), ge=0)
    currency: str = "MXN"
    flagship_token: str = "pollo"

    business_timezone: str = "America/Mexico_City"
    max_schedule_days: int = Field(default=30, ge=0)
    slot_minutes: int = Field(default=30, gt=0)

    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(
        env_prefix="ORDERFLOW_",
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings():
    return Settings()
