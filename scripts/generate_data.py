"""
Seed data generation script for Seedflow.

Writes deterministic pseudo-random seed files for the stress seeders
(`related-test-entities.json`, `test-entities.json`) in the layout
`JsonFileSeedDataProvider` reads. Records are streamed to disk, so the
extra-large tier never sits in memory as a whole.
"""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Iterable, Optional

import typer
from pydantic import BaseModel

from seedflow.domain.models import DatasetSize
from seedflow.stress.generator import StressTestDataGenerator, related_count_for
from seedflow.stress.seeders import RELATED_SEEDER, TEST_SEEDER

app = typer.Typer(help="Generate synthetic seed JSON files for the stress seeders.")


def _seed_file(directory: Path, seeder_name: str, environment: Optional[str]) -> Path:
    suffix = f".{environment}" if environment else ""
    return directory / f"{seeder_name}{suffix}.json"


def write_seed_file(path: Path, models: Iterable[BaseModel], flush_every: int = 10_000) -> int:
    """Stream `models` as a JSON array; return how many were written."""
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    buffer: list[str] = []
    with path.open("w", encoding="utf-8") as f:
        f.write("[\n")
        for model in models:
            prefix = "  " if count == 0 else ",\n  "
            buffer.append(prefix + json.dumps(model.model_dump(mode="json"), sort_keys=True))
            count += 1
            if len(buffer) >= flush_every:
                f.write("".join(buffer))
                buffer.clear()
        if buffer:
            f.write("".join(buffer))
        f.write("\n]\n")
    return count


def generate_seed_files(
    output_dir: Path,
    size: int,
    seed: int = 42,
    environment: Optional[str] = None,
) -> dict[str, int]:
    generator = StressTestDataGenerator(seed=seed)
    related = related_count_for(size)
    return {
        RELATED_SEEDER: write_seed_file(
            _seed_file(output_dir, RELATED_SEEDER, environment),
            generator.generate_related_test_entities(related),
        ),
        TEST_SEEDER: write_seed_file(
            _seed_file(output_dir, TEST_SEEDER, environment),
            generator.generate_test_entities(size, related),
        ),
    }


@app.command()
def main(
    size: str = typer.Option(
        "small",
        "--size",
        "-s",
        help="Dataset size: small, medium, large, extra_large.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path = typer.Option(
        Path("seed_data"),
        "--output",
        "-o",
        help="Directory to write seed files into.",
    ),
    environment: Optional[str] = typer.Option(
        None,
        "--environment",
        "-e",
        help="Write environment-specific files (<seeder>.<environment>.json).",
    ),
) -> None:
    """
    Generate seed files for the stress seeders.
    """
    try:
        dataset = DatasetSize[size.strip().upper().replace("-", "_")]
    except KeyError:
        raise typer.BadParameter(f"Unknown size '{size}'.") from None

    start = time.perf_counter()
    typer.echo(f"Generating {dataset.name} dataset -> {output} (seed={seed})")
    counts = generate_seed_files(output, int(dataset), seed=seed, environment=environment)
    duration = time.perf_counter() - start
    total = sum(counts.values())
    for name, count in counts.items():
        typer.echo(f"  {name}: {count:,} records")
    typer.echo(f"Generation completed in {duration:.2f}s ({total / duration:,.0f} records/s)")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
