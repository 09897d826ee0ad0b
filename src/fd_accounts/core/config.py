"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding
(``FD_`` prefix, ``__`` as the nested delimiter, e.g.
``FD_CLOCK__MODE=wall``).
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .enums import ClockMode, Mode


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class ClockConfig(BaseModel):
    mode: ClockMode = ClockMode.LOGICAL
    timezone: str = "UTC"
    anchor_hour: int = 12  # set_date lands at noon


class SchedulerConfig(BaseModel):
    enabled: bool = True
    tick_seconds: float = 60.0
    interest_calculation_hour: int = 0
    interest_payout_hour: int = 0
    interest_payout_minute: int = 30  # Runs after accrual inside the same hour
    maturity_processing_hour: int = 1
    monthly_statement_day: int = 1
    monthly_statement_hour: int = 23


class BatchConfig(BaseModel):
    page_size: int = 100


class ServicesConfig(BaseModel):
    customer_base_url: str = "http://localhost:1005"
    product_base_url: str = "http://localhost:8080"
    product_path: str = "/api/products"
    calculation_base_url: str = "http://localhost:4030"
    calculation_path: str = "/api/fd/calculations"
    timeout_seconds: float = 10.0
    max_retries: int = 2
    backoff_seconds: float = 0.5


class AuthConfig(BaseModel):
    enabled: bool = True
    jwks_url: str = ""  # e.g. http://localhost:3020/api/auth/public-key
    public_key_pem: str = ""
    shared_secret: str = ""  # HS256, development only
    algorithms: list[str] = Field(default_factory=lambda: ["RS256"])
    audience: str | None = None
    issuer: str | None = None
    leeway_seconds: int = 30


class StorageConfig(BaseModel):
    backend: str = "memory"  # "memory" or "sql"
    database_url: str = "sqlite:///fd_accounts.db"
    echo: bool = False
    create_tables: bool = True


class EventsConfig(BaseModel):
    backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379/0"
    stream_prefix: str = "fd"
    max_stream_length: int = 10_000


class MaturityConfig(BaseModel):
    renewal_rate: Decimal = Decimal("6.50")  # Prevailing rate for auto-renewals
    default_term_months: int = 12
    default_rate: Decimal = Decimal("5.00")


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    metrics_port: int = 0  # 0 disables the standalone metrics server


class ApiConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    mode: Mode = Mode.DEVELOPMENT

    clock: ClockConfig = Field(default_factory=ClockConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    services: ServicesConfig = Field(default_factory=ServicesConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    maturity: MaturityConfig = Field(default_factory=MaturityConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = {"env_prefix": "FD_", "env_nested_delimiter": "__"}

    def validate_production(self) -> None:
        """Refuse a mutable clock in production."""
        from .errors import SafetyGateError

        if self.mode != Mode.PRODUCTION:
            return

        if self.clock.mode != ClockMode.WALL:
            raise SafetyGateError(
                "Production mode requires clock.mode = 'wall'; the logical "
                "clock and its admin endpoints are for development and staging."
            )


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)

    if overrides:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value

    return Settings(**data)
