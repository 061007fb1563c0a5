from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from scripts.generate_data import app, generate_seed_files, write_seed_file
from seedflow.domain.models import SeederStatus
from seedflow.infrastructure.store import InMemorySeedStore
from seedflow.orchestrator import run_seeding
from seedflow.seeding.abstract import JsonFileSeedDataProvider
from seedflow.stress.generator import StressTestDataGenerator
from seedflow.stress.seeders import RELATED_SEEDER, TEST_SEEDER, build_stress_catalog

RECORDS = 120
RELATED = RECORDS // 10


def test_write_seed_file_streams_a_json_array(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "related.json"
    models = StressTestDataGenerator().generate_related_test_entities(25)

    written = write_seed_file(path, models, flush_every=7)

    records = json.loads(path.read_text(encoding="utf-8"))
    assert written == 25
    assert len(records) == 25
    assert records[0]["business_key"] == "RELATED-00000"


def test_empty_seed_file_is_still_valid_json(tmp_path: Path) -> None:
    path = tmp_path / "empty.json"

    assert write_seed_file(path, []) == 0
    assert json.loads(path.read_text(encoding="utf-8")) == []


def test_generated_files_seed_through_the_file_provider(tmp_path: Path, settings) -> None:
    counts = generate_seed_files(tmp_path, RECORDS, seed=3)
    store = InMemorySeedStore()

    def catalog():
        return build_stress_catalog(provider=JsonFileSeedDataProvider(tmp_path))

    first = run_seeding(catalog(), "Development", store=store, settings=settings)
    second = run_seeding(catalog(), "Development", store=store, settings=settings)

    assert counts == {RELATED_SEEDER: RELATED, TEST_SEEDER: RECORDS}
    assert first.outcome(TEST_SEEDER).inserted == RECORDS
    assert first.outcome(RELATED_SEEDER).inserted == RELATED
    assert second.outcome(TEST_SEEDER).status is SeederStatus.APPLIED
    assert (second.inserted, second.updated) == (0, 0)
    hashes = {record.seeder_name: record.content_hash for record in store.history()}
    assert hashes[TEST_SEEDER] is not None


def test_environment_specific_files(tmp_path: Path) -> None:
    generate_seed_files(tmp_path, 10, environment="Staging")

    assert (tmp_path / "test-entities.Staging.json").exists()
    assert not (tmp_path / "test-entities.json").exists()


def test_cli_writes_files(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["--size", "small", "--seed", "5", "--output", str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert "Generation completed" in result.output
    assert len(json.loads((tmp_path / "test-entities.json").read_text(encoding="utf-8"))) == 1_000


def test_cli_rejects_unknown_size(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["--size", "huge", "--output", str(tmp_path)])

    assert result.exit_code != 0
