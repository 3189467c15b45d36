"""
Process configuration for the traffic monitor.

Centralises all environment variable names and default values.
Uses ``pydantic_settings.BaseSettings`` for automatic environment
variable binding and type coercion; ``.env`` files are loaded by
``src.app`` via ``python-dotenv`` before settings are read.
"""

from __future__ import annotations

import functools

import pydantic
import pydantic_settings

DEFAULT_PORT = 3000


class Settings(pydantic_settings.BaseSettings):
    """Runtime settings for the server and the scan pipeline.

    Attributes:
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
        environment: ``production`` disables auto-reload.
        navigation_timeout_ms: Upper bound for the top-level page load.
        drain_period_ms: Grace period after navigation so lazily
            initialised trackers can still fire.
        geo_api_url: Geolocation endpoint; ``{host}`` is replaced by
            the hostname being resolved.
        geo_timeout_seconds: Total timeout for one geolocation call.
        headless: Launch Chromium without a visible window.
        public_dir: Directory of static UI files served at ``/``.
    """

    model_config = pydantic_settings.SettingsConfigDict(populate_by_name=True)

    host: str = pydantic.Field(default="0.0.0.0", validation_alias="HOST")
    port: int = pydantic.Field(default=DEFAULT_PORT, validation_alias="PORT")
    environment: str = pydantic.Field(default="development", validation_alias="ENVIRONMENT")
    navigation_timeout_ms: int = pydantic.Field(default=60000, validation_alias="NAVIGATION_TIMEOUT_MS")
    drain_period_ms: int = pydantic.Field(default=6000, validation_alias="DRAIN_PERIOD_MS")
    geo_api_url: str = pydantic.Field(
        default="http://ip-api.com/json/{host}",
        validation_alias="GEO_API_URL",
    )
    geo_timeout_seconds: float = pydantic.Field(default=5.0, validation_alias="GEO_TIMEOUT_SECONDS")
    headless: bool = pydantic.Field(default=True, validation_alias="HEADLESS")
    public_dir: str = pydantic.Field(default="public", validation_alias="PUBLIC_DIR")

    @property
    def is_production(self) -> bool:
        """True when running with ``ENVIRONMENT=production``."""
        return self.environment == "production"


@functools.cache
def get_settings() -> Settings:
    """Return the process-wide settings (read once, then cached)."""
    return Settings()
