"""
Seeding core: seeder contracts, dependency ordering, environment gating,
reconciliation and chunked apply.
"""

from seedflow.seeding.abstract import (
    AbstractSeeder,
    EnvironmentPolicy,
    JsonFileSeedDataProvider,
    SeedData,
    SeedDataProvider,
    Seeder,
    content_hash,
)
from seedflow.seeding.applier import (
    DEFAULT_BATCH_SIZE,
    ApplyResult,
    CancellationToken,
    ChunkTiming,
    apply_plan,
    chunked,
)
from seedflow.seeding.gate import ADMIT, GateDecision, SeedingProfile, evaluate, same_environment
from seedflow.seeding.reconcile import (
    ApplyPlan,
    Operation,
    OperationKind,
    check_desired_keys,
    reconcile,
    same_business_key,
)
from seedflow.seeding.resolver import resolve_order, transitive_dependents

__all__ = [
    "ADMIT",
    "AbstractSeeder",
    "ApplyPlan",
    "ApplyResult",
    "CancellationToken",
    "ChunkTiming",
    "DEFAULT_BATCH_SIZE",
    "EnvironmentPolicy",
    "GateDecision",
    "JsonFileSeedDataProvider",
    "Operation",
    "OperationKind",
    "SeedData",
    "SeedDataProvider",
    "Seeder",
    "SeedingProfile",
    "apply_plan",
    "check_desired_keys",
    "chunked",
    "content_hash",
    "evaluate",
    "reconcile",
    "resolve_order",
    "same_business_key",
    "same_environment",
    "transitive_dependents",
]
