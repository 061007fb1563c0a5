"""
Seedflow - dependency-ordered, idempotent data seeding with a stress harness.

This package reconciles declared seed models against a persistence store:

- Seeders are ordered so dependencies run first
- Each seeder is admitted or skipped by an environment policy
- Desired models are diffed against stored rows by business key
- Inserts/updates are committed in bounded chunks, one unit of work each
- A seed history row is appended for every applied seeder

A stress harness drives the same pipeline over synthetic datasets of up to a
million records and reports per-batch latency and throughput.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from seedflow.config import Settings, current_environment, get_settings, reset_environment_cache
from seedflow.domain.errors import (
    ChunkCommitError,
    DependencyCycleError,
    DuplicateBusinessKeyError,
    SeedingConfigurationError,
    SeedingError,
    UnknownDependencyError,
)
from seedflow.domain.models import (
    DatasetSize,
    ReportFormat,
    RunSummary,
    SeederOutcome,
    SeederStatus,
    SeedHistoryRecord,
    StressTestConfiguration,
)
from seedflow.infrastructure.store import InMemorySeedStore
from seedflow.orchestrator import preview_plan, run_seeding
from seedflow.seeding import (
    AbstractSeeder,
    CancellationToken,
    EnvironmentPolicy,
    JsonFileSeedDataProvider,
    Seeder,
    SeedingProfile,
)
from seedflow.stress import StressTestMetrics, run_stress_test
from seedflow.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "current_environment",
    "get_settings",
    "reset_environment_cache",
    # Errors
    "ChunkCommitError",
    "DependencyCycleError",
    "DuplicateBusinessKeyError",
    "SeedingConfigurationError",
    "SeedingError",
    "UnknownDependencyError",
    # Models
    "DatasetSize",
    "ReportFormat",
    "RunSummary",
    "SeedHistoryRecord",
    "SeederOutcome",
    "SeederStatus",
    "StressTestConfiguration",
    # Seeding
    "AbstractSeeder",
    "CancellationToken",
    "EnvironmentPolicy",
    "InMemorySeedStore",
    "JsonFileSeedDataProvider",
    "Seeder",
    "SeedingProfile",
    "preview_plan",
    "run_seeding",
    # Stress harness
    "StressTestMetrics",
    "run_stress_test",
    # Logging
    "configure_logging",
    "get_logger",
]
