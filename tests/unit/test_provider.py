from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import ItemModel, ItemSeeder
from pydantic import ValidationError

from seedflow.domain.errors import SeedDataError, SeedingConfigurationError
from seedflow.infrastructure.store import InMemorySeedStore
from seedflow.orchestrator import run_seeding
from seedflow.seeding.abstract import JsonFileSeedDataProvider, content_hash
from seedflow.stress.seeders import build_stress_catalog


def _write(directory: Path, name: str, records: object) -> str:
    text = json.dumps(records)
    (directory / name).write_text(text, encoding="utf-8")
    return text


def test_environment_specific_file_wins_over_fallback(tmp_path: Path) -> None:
    _write(tmp_path, "roles.json", [{"key": "admin", "value": "default"}])
    _write(tmp_path, "roles.Staging.json", [{"key": "admin", "value": "staging"}])
    provider = JsonFileSeedDataProvider(tmp_path)

    staging = provider.load("roles", "Staging")
    development = provider.load("roles", "Development")

    assert staging.records == [{"key": "admin", "value": "staging"}]
    assert staging.source.endswith("roles.Staging.json")
    assert development.records == [{"key": "admin", "value": "default"}]


def test_missing_files_yield_none(tmp_path: Path) -> None:
    assert JsonFileSeedDataProvider(tmp_path).load("roles", "Development") is None


def test_content_hash_is_base64_sha256_of_file_text(tmp_path: Path) -> None:
    text = _write(tmp_path, "roles.json", [{"key": "a", "value": "b"}])

    data = JsonFileSeedDataProvider(tmp_path).load("roles", "Development")

    assert data.content_hash == content_hash(text)
    assert content_hash(text) == content_hash(text.encode("utf-8"))
    assert len(data.content_hash) == 44


def test_non_array_file_is_rejected(tmp_path: Path) -> None:
    _write(tmp_path, "roles.json", {"key": "a"})

    with pytest.raises(SeedDataError) as excinfo:
        JsonFileSeedDataProvider(tmp_path).load("roles", "Development")

    assert excinfo.value.seeder_name == "roles"
    assert excinfo.value.index is None


def test_malformed_json_names_seeder_and_file(tmp_path: Path) -> None:
    (tmp_path / "roles.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(SeedDataError) as excinfo:
        JsonFileSeedDataProvider(tmp_path).load("roles", "Development")

    assert excinfo.value.source.endswith("roles.json")
    assert isinstance(excinfo.value.__cause__, json.JSONDecodeError)


def test_invalid_record_reports_its_index(tmp_path: Path) -> None:
    _write(tmp_path, "roles.json", [{"key": "a", "value": "1"}, {"key": "b"}])
    seeder = ItemSeeder("roles", provider=JsonFileSeedDataProvider(tmp_path))

    with pytest.raises(SeedDataError) as excinfo:
        list(seeder.load_models("Development"))

    error = excinfo.value
    assert (error.seeder_name, error.index) == ("roles", 1)
    assert isinstance(error, SeedingConfigurationError)
    assert isinstance(error.__cause__, ValidationError)


def test_invalid_seed_record_aborts_run_before_any_write(tmp_path: Path) -> None:
    records = [{"business_key": "RELATED-00000", "name": "Only", "category": "Web", "priority": 0}]
    _write(tmp_path, "related-test-entities.json", records)
    _write(tmp_path, "test-entities.json", [])
    store = InMemorySeedStore()

    with pytest.raises(SeedDataError) as excinfo:
        run_seeding(
            build_stress_catalog(provider=JsonFileSeedDataProvider(tmp_path)), "Development", store=store
        )

    assert excinfo.value.seeder_name == "related-test-entities"
    assert excinfo.value.index == 0
    assert store.commit_count == 0


def test_loaded_files_are_cached_per_provider(tmp_path: Path) -> None:
    _write(tmp_path, "roles.json", [{"key": "a", "value": "1"}])
    provider = JsonFileSeedDataProvider(tmp_path)
    first = provider.load("roles", "Development")

    _write(tmp_path, "roles.json", [{"key": "a", "value": "2"}])

    assert provider.load("roles", "Development") is first


def test_seeder_validates_provider_records_into_models(tmp_path: Path) -> None:
    text = _write(tmp_path, "roles.json", [{"key": "a", "value": "1"}, {"key": "b", "value": "2"}])
    seeder = ItemSeeder("roles", provider=JsonFileSeedDataProvider(tmp_path))

    models = list(seeder.load_models("Development"))

    assert models == [ItemModel(key="a", value="1"), ItemModel(key="b", value="2")]
    assert list(seeder.load_models("Development")) == models
    assert seeder.content_hash("Development") == content_hash(text)


def test_seeder_without_seed_file_loads_nothing(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    seeder = ItemSeeder("roles", provider=JsonFileSeedDataProvider(tmp_path))

    with caplog.at_level("WARNING", logger="seedflow.seeding.abstract"):
        assert list(seeder.load_models("Development")) == []

    assert seeder.content_hash("Development") is None
    assert any("No seed data found" in message for message in caplog.messages)


def test_in_code_models_have_no_content_hash() -> None:
    seeder = ItemSeeder("roles", [ItemModel(key="a", value="1")])

    assert seeder.content_hash("Development") is None


def test_factory_models_are_called_per_load() -> None:
    calls = []

    def _factory():
        calls.append(1)
        return (ItemModel(key=k, value="v") for k in "ab")

    seeder = ItemSeeder("roles", _factory)

    assert len(list(seeder.load_models("Development"))) == 2
    assert len(list(seeder.load_models("Development"))) == 2
    assert len(calls) == 2


def test_one_shot_iterators_are_rejected() -> None:
    with pytest.raises(TypeError):
        ItemSeeder("roles", iter([ItemModel(key="a", value="1")]))
