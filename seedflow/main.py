from __future__ import annotations

import contextlib
import signal
import sys
from pathlib import Path
from typing import Generator, Optional

import typer

from seedflow.config import get_settings, resolve_environment
from seedflow.domain.errors import SeedingError
from seedflow.domain.models import DatasetSize, ReportFormat, StressTestConfiguration
from seedflow.infrastructure.db_factory import get_sync_pool
from seedflow.infrastructure.store import InMemorySeedStore, PostgresSeedStore, SeedStore
from seedflow.orchestrator import persist_summary, preview_plan, run_seeding
from seedflow.reporter import print_plan, print_run_summary, report_stress
from seedflow.seeding.abstract import JsonFileSeedDataProvider
from seedflow.seeding.applier import CancellationToken
from seedflow.stress.runner import run_stress_test
from seedflow.stress.seeders import build_stress_catalog
from seedflow.utils.logging import configure_logging

app = typer.Typer(help="Seedflow: dependency-ordered, idempotent data seeding.")

STORES = ("memory", "postgres")


def _build_store(kind: str) -> SeedStore:
    if kind not in STORES:
        raise typer.BadParameter(f"Unknown store '{kind}'. Use one of: {', '.join(STORES)}.")
    if kind == "memory":
        return InMemorySeedStore()
    settings = get_settings()
    store = PostgresSeedStore(get_sync_pool(), statement_timeout_ms=settings.db_statement_timeout_ms)
    store.ensure_history_table()
    return store


@contextlib.contextmanager
def _cancel_on_interrupt() -> Generator[CancellationToken, None, None]:
    """First Ctrl-C cancels between chunks; a second one interrupts immediately."""
    token = CancellationToken()

    def _handler(signum, frame):  # noqa: ARG001
        if token.cancelled:
            raise KeyboardInterrupt
        typer.echo("Cancelling after the current chunk...", err=True)
        token.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"env={resolve_environment(settings=settings)} batch={settings.seeding_batch_size} "
        f"policy={settings.seeding_failure_policy} data={settings.seed_data_dir}"
    )


@app.command()
def plan(
    environment: Optional[str] = typer.Option(
        None, "--environment", "-e", help="Environment override (default from settings)."
    ),
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", "-d", help="Seed data directory (default from settings)."
    ),
) -> None:
    """
    Preview execution order and environment decisions without touching a store.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    env = resolve_environment(environment, settings)
    provider = JsonFileSeedDataProvider(data_dir or settings.seed_data_dir)
    try:
        planned = preview_plan(build_stress_catalog(provider=provider), env, settings=settings)
    except SeedingError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(f"Environment: {env}")
    print_plan(planned)


@app.command()
def seed(
    environment: Optional[str] = typer.Option(
        None, "--environment", "-e", help="Environment override (default from settings)."
    ),
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", "-d", help="Seed data directory (default from settings)."
    ),
    store: str = typer.Option("memory", "--store", help="Target store: memory or postgres."),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", "-b", min=1, help="Override batch size for every seeder."
    ),
    persist: bool = typer.Option(
        False, "--persist", help="Write the run summary as JSON under the results directory."
    ),
) -> None:
    """
    Seed from JSON files and print the run summary.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    env = resolve_environment(environment, settings)
    provider = JsonFileSeedDataProvider(data_dir or settings.seed_data_dir)
    target = _build_store(store)

    try:
        with _cancel_on_interrupt() as token:
            summary = run_seeding(
                build_stress_catalog(provider=provider),
                env,
                store=target,
                settings=settings,
                batch_size=batch_size,
                cancel=token,
            )
    except SeedingError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2)

    print_run_summary(summary)
    if persist:
        persist_summary(summary, settings.results_dir)
    if not summary.succeeded:
        raise typer.Exit(code=1)


@app.command()
def stress(
    size: str = typer.Option(
        "medium", "--size", "-s", help="Dataset size: small, medium, large, extra_large."
    ),
    batch_size: int = typer.Option(100, "--batch-size", "-b", min=1, help="Operations per commit."),
    iterations: int = typer.Option(1, "--iterations", "-i", min=1, help="Number of seeding passes."),
    no_clear: bool = typer.Option(
        False, "--no-clear", help="Keep rows between iterations (later passes become no-ops)."
    ),
    report: ReportFormat = typer.Option(
        ReportFormat.CONSOLE, "--report", "-r", help="Report destination."
    ),
    no_metrics: bool = typer.Option(
        False, "--no-metrics", help="Skip RSS/CPU sampling; wall-clock timings only."
    ),
    trace_allocations: bool = typer.Option(
        False, "--trace-allocations", help="Record peak Python allocations with tracemalloc (slower)."
    ),
    environment: str = typer.Option(
        "Development", "--environment", "-e", help="Environment the stress seeders run under."
    ),
    store: str = typer.Option("memory", "--store", help="Target store: memory or postgres."),
    seed_value: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
) -> None:
    """
    Run the stress harness and report throughput.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    try:
        dataset = DatasetSize[size.strip().upper().replace("-", "_")]
    except KeyError:
        raise typer.BadParameter(
            f"Unknown size '{size}'. Use one of: {', '.join(s.name.lower() for s in DatasetSize)}."
        ) from None

    configuration = StressTestConfiguration(
        dataset_size=dataset,
        batch_size=batch_size,
        iterations=iterations,
        enable_detailed_metrics=not no_metrics,
        trace_allocations=trace_allocations,
        report_format=report,
        clear_between_iterations=not no_clear,
        environment=environment,
        seed=seed_value,
        report_dir=settings.results_dir,
    )
    typer.echo(
        f"Running stress test size={dataset.name} ({int(dataset):,} records) "
        f"batch={batch_size} iterations={iterations} store={store}."
    )
    try:
        with _cancel_on_interrupt() as token:
            metrics = run_stress_test(
                configuration, _build_store(store), settings=settings, cancel=token
            )
    except SeedingError as exc:
        typer.echo(f"Stress test aborted: {exc}", err=True)
        raise typer.Exit(code=2)

    path = report_stress(metrics, configuration.report_format, configuration.report_dir)
    if path is not None:
        typer.echo(f"Report written to {path}")
    if not metrics.succeeded:
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
