"""
Domain package for Seedflow.

Exports the run/summary models, the seed history row, the stress test
configuration and the error taxonomy. Keep this package focused on data
definitions and validation concerns.
"""

from seedflow.domain.errors import (
    ChunkCommitError,
    DependencyCycleError,
    DuplicateBusinessKeyError,
    DuplicateSeederError,
    PurgeNotAllowedError,
    SeedDataError,
    SeedingConfigurationError,
    SeedingError,
    UnknownDependencyError,
    UnknownSeederError,
)
from seedflow.domain.models import (
    DatasetSize,
    ReportFormat,
    RunSummary,
    SeedHistoryRecord,
    SeederOutcome,
    SeederStatus,
    StressTestConfiguration,
)

__all__ = [
    # Models
    "DatasetSize",
    "ReportFormat",
    "RunSummary",
    "SeedHistoryRecord",
    "SeederOutcome",
    "SeederStatus",
    "StressTestConfiguration",
    # Errors
    "ChunkCommitError",
    "DependencyCycleError",
    "DuplicateBusinessKeyError",
    "DuplicateSeederError",
    "PurgeNotAllowedError",
    "SeedDataError",
    "SeedingConfigurationError",
    "SeedingError",
    "UnknownDependencyError",
    "UnknownSeederError",
]
