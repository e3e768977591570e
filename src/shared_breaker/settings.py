from __future__ import annotations

from pydantic import ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared_breaker.circuit_breaker.breaker import CircuitBreakerConfig

DEFAULT_ENV_PREFIX = "CIRCUIT_BREAKER_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven tuning for a ``CircuitBreaker``.

    Subclass and override ``model_config`` with ``prefixed_settings_config`` to
    read a second breaker's tuning from another prefix.
    """

    model_config = prefixed_settings_config(DEFAULT_ENV_PREFIX)

    request_count_threshold: int = 20
    error_percent_threshold: int = 50
    sleep_window_seconds: float = 5.0
    interval_seconds: float = 10.0

    @field_validator("request_count_threshold")
    @classmethod
    def _validate_request_count_threshold(cls, value: int) -> int:
        if value < 1:
            raise ValueError("request_count_threshold must be >= 1")
        return value

    @field_validator("sleep_window_seconds", "interval_seconds")
    @classmethod
    def _validate_positive_seconds(cls, value: float, info: ValidationInfo) -> float:
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @model_validator(mode="after")
    def _validate_error_percent(self) -> BreakerSettings:
        if not 0 <= self.error_percent_threshold <= 100:
            raise ValueError("error_percent_threshold must be between 0 and 100")
        return self

    def to_config(self) -> CircuitBreakerConfig:
        """Build the immutable breaker configuration from these settings."""
        return CircuitBreakerConfig(
            request_count_threshold=self.request_count_threshold,
            error_percent_threshold=self.error_percent_threshold,
            sleep_window=self.sleep_window_seconds,
            interval=self.interval_seconds,
        )
