"""Shared configuration management for the query engine.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EXCHANGE_RATES: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "AUD": Decimal("0.65"),
    "EUR": Decimal("1.08"),
    "GBP": Decimal("1.27"),
    "SGD": Decimal("0.74"),
    "NZD": Decimal("0.61"),
}


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_LOG_LEVEL=debug
    Dict settings are read as JSON: APP_EXCHANGE_RATES='{"USD": 1, "AUD": 0.66}'
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="invoice-query-engine",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Reporting configuration
    reporting_currency: str = Field(
        default="USD",
        description="Currency all aggregate totals are normalized to (ISO 4217)",
    )
    exchange_rates: dict[str, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_EXCHANGE_RATES),
        description="Multiplier from each currency into the reporting currency",
    )
    cash_flow_horizon_days: int = Field(
        default=30,
        ge=0,
        description="Days ahead of today included in the cash-flow projection",
    )
    metrics_enabled: bool = Field(
        default=True,
        description="Record Prometheus metrics for query compilation",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
