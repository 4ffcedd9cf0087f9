"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .errors import ConfigurationError


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class SamplingConfig(BaseModel):
    enabled: bool = True
    daily_trade_threshold: int = 10  # Store every trade up to this count
    sampling_rate: int = 2  # Then keep every Nth trade
    preserve_significant_trades: bool = True
    significant_profit_loss_threshold: float = 5.0  # abs(P&L %)
    preserve_high_volatility_trades: bool = True
    high_volatility_threshold: float = 2.0  # Annualized vol, percent

    def validate_values(self) -> None:
        if self.daily_trade_threshold < 0:
            raise ConfigurationError(
                f"sampling.daily_trade_threshold must be >= 0, "
                f"got {self.daily_trade_threshold}"
            )
        if self.sampling_rate < 1:
            raise ConfigurationError(
                f"sampling.sampling_rate must be >= 1, got {self.sampling_rate}"
            )
        if self.significant_profit_loss_threshold < 0:
            raise ConfigurationError(
                "sampling.significant_profit_loss_threshold must be >= 0"
            )
        if self.high_volatility_threshold < 0:
            raise ConfigurationError(
                "sampling.high_volatility_threshold must be >= 0"
            )


class ReplayConfig(BaseModel):
    annualization_factor: int = 252  # Bars per year for volatility scaling
    bar_interval: str = "60minute"
    continuous: bool = False  # Continuous futures series
    max_concurrency: int = 8

    def validate_values(self) -> None:
        if self.annualization_factor < 1:
            raise ConfigurationError(
                f"replay.annualization_factor must be >= 1, "
                f"got {self.annualization_factor}"
            )
        if not self.bar_interval:
            raise ConfigurationError("replay.bar_interval must not be empty")
        if self.max_concurrency < 1:
            raise ConfigurationError(
                f"replay.max_concurrency must be >= 1, got {self.max_concurrency}"
            )


class ProviderRetryConfig(BaseModel):
    max_attempts: int = 3
    base_backoff_seconds: float = 0.5
    max_backoff_seconds: float = 8.0
    timeout_seconds: float = 30.0  # Per attempt

    def validate_values(self) -> None:
        if self.max_attempts < 1:
            raise ConfigurationError(
                f"retry.max_attempts must be >= 1, got {self.max_attempts}"
            )
        if self.base_backoff_seconds < 0 or self.max_backoff_seconds < 0:
            raise ConfigurationError("retry backoff seconds must be >= 0")
        if self.max_backoff_seconds < self.base_backoff_seconds:
            raise ConfigurationError(
                "retry.max_backoff_seconds must be >= base_backoff_seconds"
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError("retry.timeout_seconds must be > 0")


class AggregationConfig(BaseModel):
    # Added to the cumulative P&L curve before drawdown percentages
    starting_equity: Decimal = Decimal("0")

    def validate_values(self) -> None:
        if self.starting_equity < 0:
            raise ConfigurationError("aggregation.starting_equity must be >= 0")


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "console"
    metrics_port: int = 9090

    def validate_values(self) -> None:
        if self.log_format not in ("json", "console"):
            raise ConfigurationError(
                f"observability.log_format must be 'json' or 'console', "
                f"got {self.log_format!r}"
            )


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    sampling: SamplingConfig = Field(default_factory=SamplingConfig)
    replay: ReplayConfig = Field(default_factory=ReplayConfig)
    retry: ProviderRetryConfig = Field(default_factory=ProviderRetryConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "TRADE_ANALYTICS_", "env_nested_delimiter": "__"}

    def validate_settings(self) -> None:
        """Raise ConfigurationError if any sub-config holds an invalid value."""
        self.sampling.validate_values()
        self.replay.validate_values()
        self.retry.validate_values()
        self.aggregation.validate_values()
        self.observability.validate_values()


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigurationError: if any value is out of range.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)

    if overrides:
        data.update(overrides)

    settings = Settings(**data)
    settings.validate_settings()
    return settings
