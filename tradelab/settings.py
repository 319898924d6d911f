"""Centralized tradelab settings powered by Pydantic.

Environment matrix:

| Section  | Environment Variable              | Default  | Purpose                                      |
|----------|-----------------------------------|----------|----------------------------------------------|
| Backtest | `TRADELAB_INITIAL_CAPITAL`        | `1000.0` | Starting value of the equity curve           |
| Backtest | `TRADELAB_MIN_YEAR_FRACTION`      | `0.01`   | Floor on elapsed years when annualizing      |
| Backtest | `TRADELAB_DAYS_PER_YEAR`          | `365.25` | Calendar days per year for the year fraction |
| Sampling | `TRADELAB_VOLUME_MAX_BARS`        | `20`     | Target number of volume bars                 |
| Sampling | `TRADELAB_VOLUME_MIN_BARS`        | `10`     | Shorter inputs are returned unresampled      |
| Edge     | `TRADELAB_EDGE_PROBABILITY`       | `0.52`   | Probability of an "up" draw                  |
| Edge     | `TRADELAB_EDGE_TAKE_PROFIT`       | `0.05`   | Unrealized return that forces an exit        |
| Edge     | `TRADELAB_EDGE_STOP_LOSS`         | `0.03`   | Unrealized loss that forces an exit          |
| Edge     | `TRADELAB_EDGE_WARMUP`            | `20`     | First bar the edge rule evaluates            |
| Edge     | `TRADELAB_EDGE_SEED`              | `None`   | Optional RNG seed for reproducible runs      |
| Logging  | `TRADELAB_LOG_LEVEL`              | `INFO`   | Minimum level for the loguru sinks           |
| Logging  | `TRADELAB_ENV`                    | `local`  | Environment label attached to log records    |

The settings objects source environment variables when instantiated and are
frozen. Explicit function arguments always win over these defaults.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tradelab.core.exceptions import ConfigError


class _SettingsBase(BaseSettings):
    """Common configuration for BaseSettings subclasses."""

    model_config = SettingsConfigDict(
        env_prefix="",
        populate_by_name=True,
        extra="ignore",
        case_sensitive=True,
        frozen=True,
    )


class BacktestSettings(_SettingsBase):
    """Accounting constants for the backtest engine."""

    initial_capital: float = Field(default=1000.0, alias="TRADELAB_INITIAL_CAPITAL")
    min_year_fraction: float = Field(default=0.01, alias="TRADELAB_MIN_YEAR_FRACTION")
    days_per_year: float = Field(default=365.25, alias="TRADELAB_DAYS_PER_YEAR")

    @field_validator("initial_capital", "min_year_fraction", "days_per_year")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be positive")
        return value


class SamplingSettings(_SettingsBase):
    """Volume resampler bounds."""

    volume_max_bars: int = Field(default=20, alias="TRADELAB_VOLUME_MAX_BARS")
    volume_min_bars: int = Field(default=10, alias="TRADELAB_VOLUME_MIN_BARS")

    @model_validator(mode="after")
    def _check_bounds(self) -> "SamplingSettings":
        if self.volume_max_bars < 1:
            raise ValueError("volume_max_bars must be >= 1")
        if self.volume_min_bars < 0:
            raise ValueError("volume_min_bars must be >= 0")
        return self


class EdgeSettings(_SettingsBase):
    """Defaults for the edge-simulation rule."""

    edge: float = Field(default=0.52, alias="TRADELAB_EDGE_PROBABILITY")
    take_profit: float = Field(default=0.05, alias="TRADELAB_EDGE_TAKE_PROFIT")
    stop_loss: float = Field(default=0.03, alias="TRADELAB_EDGE_STOP_LOSS")
    warmup: int = Field(default=20, alias="TRADELAB_EDGE_WARMUP")
    seed: int | None = Field(default=None, alias="TRADELAB_EDGE_SEED")

    @field_validator("edge")
    @classmethod
    def _probability(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("edge must be a probability in [0, 1]")
        return value

    @field_validator("seed", mode="before")
    @classmethod
    def _blank_seed(cls, value: int | str | None) -> int | str | None:
        if value in ("", None):
            return None
        return value


class LoggingSettings(_SettingsBase):
    """Log level and environment label for the loguru sinks."""

    level: str = Field(default="INFO", alias="TRADELAB_LOG_LEVEL")
    environment: str = Field(default="local", alias="TRADELAB_ENV")

    @field_validator("level")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


class Settings(BaseModel):
    """Aggregate accessor for domain-specific settings."""

    backtest: BacktestSettings = Field(default_factory=BacktestSettings)
    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    edge: EdgeSettings = Field(default_factory=EdgeSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {
        "frozen": True,
    }


def get_settings() -> Settings:
    """Instantiate settings from the current environment."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(f"invalid tradelab settings: {exc}") from exc


def reload_settings() -> Settings:
    """Alias for get_settings to maintain a consistent API."""
    return get_settings()


def get_backtest_settings() -> BacktestSettings:
    return get_settings().backtest


def get_sampling_settings() -> SamplingSettings:
    return get_settings().sampling


def get_edge_settings() -> EdgeSettings:
    return get_settings().edge


def get_logging_settings() -> LoggingSettings:
    return get_settings().logging


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "BacktestSettings",
    "SamplingSettings",
    "EdgeSettings",
    "LoggingSettings",
    "get_backtest_settings",
    "get_sampling_settings",
    "get_edge_settings",
    "get_logging_settings",
]
