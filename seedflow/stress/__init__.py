"""
Stress harness: synthetic dataset, stress seeders, metrics and runner.
"""

from seedflow.stress.generator import StressTestDataGenerator, related_count_for
from seedflow.stress.metrics import IterationMetrics, StressTestMetrics, StressTestMetricsCollector
from seedflow.stress.runner import clear_seeded_tables, run_stress_test
from seedflow.stress.seeders import (
    RELATED_SEEDER,
    TEST_SEEDER,
    RelatedTestEntitySeeder,
    TestEntitySeeder,
    build_stress_catalog,
)

__all__ = [
    "IterationMetrics",
    "RELATED_SEEDER",
    "RelatedTestEntitySeeder",
    "StressTestDataGenerator",
    "StressTestMetrics",
    "StressTestMetricsCollector",
    "TEST_SEEDER",
    "TestEntitySeeder",
    "build_stress_catalog",
    "clear_seeded_tables",
    "related_count_for",
    "run_stress_test",
]
