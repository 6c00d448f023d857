"""Configuration management for benchtrack.

This module provides configuration classes using pydantic-settings
for environment variable management and validation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from benchtrack.regression.policy import DetectionPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables with
    the BENCHTRACK_ prefix.

    Attributes:
        data_file: Path of the persisted benchmark history.
        repo_url: Repository URL written to the persisted history.
        policy_file: Optional YAML file with detection policies.
        default_direction: Direction of the fallback detection policy.
        default_threshold: Alert threshold of the fallback policy (0.5 = 50% worse).
        default_rolling_window: Number of preceding points averaged into the baseline.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).

    Example:
        >>> # export BENCHTRACK_DATA_FILE=dev/bench/data.js
        >>> # export BENCHTRACK_DEFAULT_THRESHOLD=0.2
        >>> settings = Settings()
        >>> settings.default_threshold
        0.2

    Environment Variables:
        BENCHTRACK_DATA_FILE: History file (default: benchmark-data/data.json)
        BENCHTRACK_REPO_URL: Repository URL (optional)
        BENCHTRACK_POLICY_FILE: Policy YAML file (optional)
        BENCHTRACK_DEFAULT_DIRECTION: higherIsWorse or lowerIsWorse (default: higherIsWorse)
        BENCHTRACK_DEFAULT_THRESHOLD: Fallback threshold (default: 0.5)
        BENCHTRACK_DEFAULT_ROLLING_WINDOW: Fallback rolling window (default: 1)
        BENCHTRACK_LOG_LEVEL: Logging level (default: WARNING)
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage settings
    data_file: str = Field(
        default="benchmark-data/data.json",
        description="Path of the persisted benchmark history",
    )
    repo_url: str | None = Field(
        default=None,
        description="Repository URL written to the persisted history",
    )

    # Detection settings
    policy_file: str | None = Field(
        default=None,
        description="Optional YAML file with detection policies",
    )
    default_direction: str = Field(
        default="higherIsWorse",
        description="Direction of the fallback detection policy",
    )
    default_threshold: float = Field(
        default=0.5,
        ge=0,
        description="Alert threshold of the fallback detection policy",
    )
    default_rolling_window: int = Field(
        default=1,
        ge=1,
        description="Preceding points averaged into the baseline",
    )

    # General settings
    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    def default_policy(self) -> DetectionPolicy:
        """Build the fallback detection policy from these settings.

        Raises:
            ConfigurationError: If the configured direction is unknown.
        """
        from benchtrack.regression.policy import DetectionPolicy

        return DetectionPolicy.from_dict(
            {
                "direction": self.default_direction,
                "threshold": self.default_threshold,
                "rolling_window": self.default_rolling_window,
            }
        )
