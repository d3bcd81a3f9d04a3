"""Typed settings loader for forecast pipelines and the OpenWeather transport."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    openweather_api_base_url: AnyUrl = Field(
        default=AnyUrl("https://api.openweathermap.org/data/2.5"),
        alias="OPENWEATHER_API_BASE_URL",
    )
    openweather_api_key: str = Field(alias="OPENWEATHER_API_KEY", repr=False)
    openweather_units: Literal["metric", "imperial", "standard"] = Field(
        default="metric",
        alias="OPENWEATHER_UNITS",
    )
    weather_timeout_seconds: float = Field(default=15.0, alias="WEATHER_TIMEOUT_SECONDS")
    debounce_seconds: float = Field(default=0.5, alias="QUERY_DEBOUNCE_SECONDS")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
    )
    forecast_max_print: int = Field(default=7, alias="FORECAST_MAX_PRINT")

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value: Any) -> Any:
        """Accept lower-case level names from the environment."""
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @model_validator(mode="after")
    def validate_ranges(self) -> Settings:
        """Validate credential presence and numeric ranges."""
        if not self.openweather_api_key.strip():
            raise ValueError("OPENWEATHER_API_KEY must not be empty.")
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.debounce_seconds < 0:
            raise ValueError("QUERY_DEBOUNCE_SECONDS must be >= 0.")
        if self.forecast_max_print <= 0:
            raise ValueError("FORECAST_MAX_PRINT must be > 0.")
        return self

    @property
    def api_base_url(self) -> str:
        """Base URL without a trailing slash, ready for path joins."""
        return str(self.openweather_api_base_url).rstrip("/")

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "app_env": self.app_env,
            "base_url": self.api_base_url,
            "units": self.openweather_units,
            "timeout_seconds": self.weather_timeout_seconds,
            "debounce_seconds": self.debounce_seconds,
            "log_level": self.log_level,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc
