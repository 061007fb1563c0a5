"""
Configuration settings for Seedflow.

Uses Pydantic Settings to load environment variables for database connections,
logging, the active seeding environment, and seeding/batching defaults.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from seedflow.utils.logging import get_logger

log = get_logger(__name__)

STANDARD_ENVIRONMENTS = ("Development", "Staging", "Production")


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("seedflow", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(0, alias="DB_STATEMENT_TIMEOUT_MS")

    # Application
    app_env: str = Field("Development", alias="APP_ENV")
    seeding_environment: Optional[str] = Field(None, alias="SEEDING_ENVIRONMENT")
    production_environment: str = Field("Production", alias="SEEDING_PRODUCTION_ENVIRONMENT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Seeding defaults
    seeding_batch_size: int = Field(100, alias="SEEDING_BATCH_SIZE")
    seeding_batch_sizes: Dict[str, int] = Field(default_factory=dict, alias="SEEDING_BATCH_SIZES")
    seeding_enabled_seeders: Optional[List[str]] = Field(None, alias="SEEDING_ENABLED_SEEDERS")
    seeding_strict_mode: bool = Field(False, alias="SEEDING_STRICT_MODE")
    seeding_failure_policy: Literal["strict", "tolerant"] = Field(
        "strict", alias="SEEDING_FAILURE_POLICY"
    )
    seed_data_dir: str = Field("seed_data", alias="SEED_DATA_DIR")
    results_dir: str = Field("results", alias="RESULTS_DIR")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("seeding_batch_size")
    @classmethod
    def _positive_batch_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("seeding_batch_size must be >= 1")
        return value

    @field_validator("seeding_batch_sizes")
    @classmethod
    def _positive_batch_overrides(cls, value: Dict[str, int]) -> Dict[str, int]:
        bad = sorted(name for name, size in value.items() if size < 1)
        if bad:
            raise ValueError(f"batch size overrides must be >= 1 (got invalid: {', '.join(bad)})")
        return value

    def batch_size_for(self, seeder_name: str) -> int:
        """Batch size for a seeder, honoring per-seeder overrides."""
        return self.seeding_batch_sizes.get(seeder_name, self.seeding_batch_size)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


def resolve_environment(explicit: Optional[str] = None, settings: Optional[Settings] = None) -> str:
    """
    Resolve the active seeding environment name.

    Precedence: explicit value (e.g. a CLI option) > SEEDING_ENVIRONMENT > APP_ENV.
    """
    settings = settings or get_settings()
    if explicit:
        source, environment = "explicit", explicit
    elif settings.seeding_environment:
        source, environment = "SEEDING_ENVIRONMENT", settings.seeding_environment
    else:
        source, environment = "APP_ENV", settings.app_env

    if environment.lower() not in {name.lower() for name in STANDARD_ENVIRONMENTS}:
        log.warning(
            f"Non-standard environment name detected: {environment}",
            extra={"environment": environment},
        )
    log.debug("Environment resolved", extra={"environment": environment, "source": source})
    return environment


@lru_cache(maxsize=1)
def current_environment() -> str:
    """Process-lifetime cache of the environment resolved from settings."""
    return resolve_environment()


def reset_environment_cache() -> None:
    """Forget the cached environment and settings (test isolation hook)."""
    current_environment.cache_clear()
    get_settings.cache_clear()


__all__ = [
    "STANDARD_ENVIRONMENTS",
    "Settings",
    "current_environment",
    "get_settings",
    "reset_environment_cache",
    "resolve_environment",
]
