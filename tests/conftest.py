"""
Pytest configuration for Seedflow.

Provides fixtures for:
- Environment/settings isolation between tests
- A small key/value seeder family for exercising the seeding core
- In-memory stores
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generator, Hashable, Iterable, Optional, Sequence, Tuple

import psycopg
import pytest
from pydantic import BaseModel

from seedflow.config import Settings, reset_environment_cache
from seedflow.infrastructure.store import InMemorySeedStore
from seedflow.seeding.abstract import AbstractSeeder, EnvironmentPolicy

_SEEDING_ENV_VARS = (
    "APP_ENV",
    "SEEDING_ENVIRONMENT",
    "SEEDING_PRODUCTION_ENVIRONMENT",
    "SEEDING_BATCH_SIZE",
    "SEEDING_BATCH_SIZES",
    "SEEDING_ENABLED_SEEDERS",
    "SEEDING_STRICT_MODE",
    "SEEDING_FAILURE_POLICY",
)


@dataclass
class Item:
    key: str
    value: str
    id: Optional[int] = None


class ItemModel(BaseModel):
    key: str
    value: str

    model_config = {"frozen": True}


class ItemSeeder(AbstractSeeder):
    """Seeds `Item(key, value)` rows; each instance gets its own name and table."""

    entity_type = Item
    model_type = ItemModel

    def __init__(
        self,
        name: str,
        models: Optional[Sequence[ItemModel]] = (),
        dependencies: Iterable[str] = (),
        policy: EnvironmentPolicy = EnvironmentPolicy(),
        table: Optional[str] = None,
        provider=None,
    ) -> None:
        super().__init__(models=None if provider is not None else models, provider=provider)
        self.name = name
        self.table = table or name
        self.dependencies = tuple(dependencies)
        self.policy = policy

    def model_key(self, model: ItemModel) -> Hashable:
        return model.key

    def entity_key(self, entity: Item) -> Hashable:
        return entity.key

    def map_to_entity(self, model: ItemModel) -> Item:
        return Item(key=model.key, value=model.value)

    def update_entity(self, entity: Item, model: ItemModel) -> bool:
        return self._assign(entity, value=model.value)


MakeSeeder = Callable[..., ItemSeeder]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop seeding env vars and cached settings so tests never see the host's config."""
    for name in _SEEDING_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_environment_cache()
    yield
    reset_environment_cache()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        app_env="Development",
        production_environment="Production",
        seeding_batch_size=100,
        seeding_batch_sizes={},
        seeding_strict_mode=False,
        seeding_failure_policy="strict",
    )


@pytest.fixture
def store() -> InMemorySeedStore:
    return InMemorySeedStore()


@pytest.fixture
def make_seeder() -> MakeSeeder:
    """
    Build an `ItemSeeder` from `(key, value)` pairs.

    make_seeder("users", [("u1", "Ada")], dependencies=["roles"])
    """

    def _make(
        name: str,
        rows: Iterable[Tuple[str, str]] = (),
        dependencies: Iterable[str] = (),
        policy: EnvironmentPolicy = EnvironmentPolicy(),
        table: Optional[str] = None,
    ) -> ItemSeeder:
        models = [ItemModel(key=key, value=value) for key, value in rows]
        return ItemSeeder(name, models, dependencies=dependencies, policy=policy, table=table)

    return _make


def numbered_rows(count: int, prefix: str = "k", value: str = "v") -> list[Tuple[str, str]]:
    return [(f"{prefix}{i:04d}", value) for i in range(count)]


@pytest.fixture
def rows() -> Callable[..., list[Tuple[str, str]]]:
    return numbered_rows


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        _env_file=None,
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "seedflow"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_schema_initialized(test_dsn: str, db_connection_available: bool) -> bool:
    """
    Create the stress tables and seed history from db/init.sql.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with psycopg.connect(test_dsn) as conn:
        conn.execute(init_sql_path.read_text(encoding="utf-8"))
    return True


@pytest.fixture(scope="function")
def clean_tables(test_dsn: str, db_schema_initialized: bool) -> Generator[None, None, None]:
    """
    Empty the seeded tables before and after each test function.
    """
    statement = (
        "TRUNCATE TABLE test_entities, related_test_entities, seed_history RESTART IDENTITY CASCADE;"
    )
    with psycopg.connect(test_dsn) as conn:
        conn.execute(statement)
    yield
    with psycopg.connect(test_dsn) as conn:
        conn.execute(statement)
