"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """TillHere lifetime server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: the server holds a date of birth and has no auth layer.
    tillhere_host: str = "127.0.0.1"
    tillhere_port: int = 8011
    tillhere_log_level: str = "info"
    tillhere_allow_insecure_bind: bool = False

    # Storage (key/value settings store)
    db_path: str = "~/.tillhere/settings.db"

    # Encryption of stored setting values; empty stores plaintext
    encryption_key: str = ""

    # Life expectancy dataset; empty uses the copy bundled with the package
    life_expectancy_data_path: str = ""

    # Country resolution
    default_country_code: str = ""
    locale_fallback_country: str = "US"

    # Days a projection stays fresh before refresh_if_needed recomputes it
    freshness_days: int = 30


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
