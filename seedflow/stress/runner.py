"""
Stress harness runner: drives the orchestrator over a synthetic dataset for a
configured number of iterations and collects timing metrics.
"""

from __future__ import annotations

from typing import List, Optional

from seedflow.config import Settings, get_settings
from seedflow.domain.models import StressTestConfiguration
from seedflow.infrastructure.store import InMemorySeedStore, SeedStore, purge_tables
from seedflow.orchestrator import run_seeding
from seedflow.seeding.abstract import AbstractSeeder
from seedflow.seeding.applier import CancellationToken
from seedflow.seeding.gate import SeedingProfile
from seedflow.seeding.resolver import resolve_order
from seedflow.stress.generator import StressTestDataGenerator, related_count_for
from seedflow.stress.metrics import StressTestMetrics, StressTestMetricsCollector
from seedflow.stress.seeders import build_stress_catalog
from seedflow.utils.logging import get_logger
from seedflow.utils.profiler import profile_block

log = get_logger(__name__)


def clear_seeded_tables(
    store: SeedStore,
    catalog: List[AbstractSeeder],
    environment: str,
    production_environment: str = "Production",
) -> int:
    """Delete the catalog's rows, dependents first."""
    tables = [seeder.table for seeder in reversed(resolve_order(catalog))]
    return purge_tables(store, tables, environment, production_environment)


def run_stress_test(
    configuration: StressTestConfiguration,
    store: Optional[SeedStore] = None,
    *,
    settings: Optional[Settings] = None,
    cancel: Optional[CancellationToken] = None,
) -> StressTestMetrics:
    """
    Seed a generated dataset `configuration.iterations` times.

    Parameters
    ----------
    configuration : StressTestConfiguration
        Dataset size, batch size, iteration count and clear behavior.
    store : SeedStore, optional
        Defaults to a fresh `InMemorySeedStore`.
    settings : Settings, optional
        Supplies the production environment name. Seeding profile and batch
        size overrides from settings are deliberately not applied here.
    cancel : CancellationToken, optional
        Stops the current iteration between chunks and skips the rest.

    Raises
    ------
    PurgeNotAllowedError
        The clear step was requested while running in the production environment.
    """
    settings = settings or get_settings()
    store = store if store is not None else InMemorySeedStore()
    size = int(configuration.dataset_size)
    generator = StressTestDataGenerator(seed=configuration.seed)
    related_models, test_models = generator.for_size(size)
    catalog = build_stress_catalog(related_models=related_models, test_models=test_models)
    collector = StressTestMetricsCollector(configuration)

    log.info(
        f"[STRESS START] {configuration.dataset_size.name}",
        extra={
            "records": size,
            "related_records": related_count_for(size),
            "batch_size": configuration.batch_size,
            "iterations": configuration.iterations,
            "environment": configuration.environment,
        },
    )
    collector.start_run()
    for iteration in range(1, configuration.iterations + 1):
        if iteration > 1 and configuration.clear_between_iterations:
            clear_seeded_tables(
                store, catalog, configuration.environment, settings.production_environment
            )

        log.info(
            f"[ITERATION {iteration}/{configuration.iterations}]",
            extra={"iteration": iteration, "total_iterations": configuration.iterations},
        )
        with profile_block(
            f"iteration-{iteration}",
            enable_tracemalloc=configuration.trace_allocations,
            sample_memory=configuration.enable_detailed_metrics,
        ) as stats:
            summary = run_seeding(
                catalog,
                configuration.environment,
                store=store,
                settings=settings,
                profile=SeedingProfile(),
                batch_size=configuration.batch_size,
                batch_sizes={},
                failure_policy="strict",
                cancel=cancel,
                on_chunk=collector.record_chunk,
            )
        result = collector.record_iteration(
            iteration, summary, stats, detailed=configuration.enable_detailed_metrics
        )
        log.info(
            f"[ITERATION {iteration}/{configuration.iterations}] completed",
            extra={
                "iteration": iteration,
                "duration": round(result.duration_seconds, 4),
                "records": result.records_processed,
                "records_per_second": round(result.records_per_second, 2),
                "commits": result.commits,
            },
        )
        if not summary.succeeded:
            log.warning(
                f"[STRESS HALTED] iteration {iteration} did not complete",
                extra={"iteration": iteration, "cancelled": summary.cancelled},
            )
            break

    metrics = collector.finish_run()
    log.info(
        "[STRESS COMPLETE]",
        extra={
            "iterations": len(metrics.iterations),
            "records_per_second": round(metrics.records_per_second, 2),
            "batches": metrics.batch_count,
        },
    )
    return metrics


__all__ = ["clear_seeded_tables", "run_stress_test"]
