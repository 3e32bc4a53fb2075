"""Application settings and configuration."""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server settings
    host: str = Field(default="0.0.0.0", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")
    debug: bool = Field(default=False, description="Enable debug mode")

    log_level: str = Field(
        default="INFO",
        description="Root log level",
        alias="LOG_LEVEL"
    )

    # Venue registry
    registry_path: Optional[str] = Field(
        default=None,
        description="Path to a JSON venue registry; built-in registry when unset",
        alias="REGISTRY_PATH"
    )

    # Solver settings
    default_min_profit: int = Field(
        default=0,
        description="Minimum profit (settlement asset units) when a request sets none",
        alias="DEFAULT_MIN_PROFIT"
    )

    svm_compute_budget: int = Field(
        default=10_000_000,
        description="Compute budget attached to compiled SVM transactions",
        alias="SVM_COMPUTE_BUDGET",
        ge=0,
        lt=2 ** 64
    )

    # Fee correction heuristic applied to the fee-free optimal trade size.
    # Ratios are price deviations scaled by 1_000_000.
    fee_correction_mild_threshold: int = Field(
        default=-10_000,
        description="Price deviation ratio at or above which the mild scale applies",
        alias="FEE_CORRECTION_MILD_THRESHOLD"
    )

    fee_correction_moderate_threshold: int = Field(
        default=-20_000,
        description="Price deviation ratio at or above which the moderate scale applies",
        alias="FEE_CORRECTION_MODERATE_THRESHOLD"
    )

    fee_correction_mild_pct: int = Field(
        default=90,
        description="Percent of the optimal size kept for mild deviations",
        alias="FEE_CORRECTION_MILD_PCT",
        ge=0,
        le=100
    )

    fee_correction_moderate_pct: int = Field(
        default=95,
        description="Percent of the optimal size kept for moderate deviations",
        alias="FEE_CORRECTION_MODERATE_PCT",
        ge=0,
        le=100
    )

    fee_correction_severe_pct: int = Field(
        default=99,
        description="Percent of the optimal size kept for severe deviations",
        alias="FEE_CORRECTION_SEVERE_PCT",
        ge=0,
        le=100
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
        "extra": "ignore"  # Ignore extra fields from .env
    }


# Global settings instance
settings = Settings()
