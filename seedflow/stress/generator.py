"""
Deterministic synthetic seed models for the stress harness.

Every generate call builds its own `random.Random` from the configured seed,
so iterating twice yields identical models; this is what makes a second
seeding pass over the same dataset a no-op. Models are yielded lazily.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator, Optional

from seedflow.domain.models import DatasetSize
from seedflow.stress.seeders import RelatedTestEntityModel, TestEntityModel

ADJECTIVES = ("Fast", "Quick", "Rapid", "Swift", "Speedy", "Hasty", "Brisk", "Fleet", "Snappy", "Zippy")
NOUNS = ("Processor", "Engine", "Machine", "Device", "System", "Unit", "Module", "Component", "Element", "Part")
CATEGORIES = (
    "Electronics",
    "Hardware",
    "Software",
    "Network",
    "Storage",
    "Security",
    "Database",
    "Cloud",
    "Mobile",
    "Web",
)
DESCRIPTIONS = (
    "High-performance component for demanding applications",
    "Reliable and efficient solution for enterprise environments",
    "Scalable architecture designed for modern workloads",
    "Optimized for maximum throughput and minimal latency",
    "Advanced technology with cutting-edge features",
    "Industry-leading performance and reliability",
    "Future-proof design with extensive compatibility",
    "Robust implementation with comprehensive error handling",
    "Lightweight yet powerful for resource-constrained environments",
    "Modular design allowing for flexible configuration",
)

# Fixed so regenerated datasets compare equal across runs and processes.
REFERENCE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def related_count_for(size: int) -> int:
    """Related rows are a tenth of the main dataset, at least one."""
    return max(1, int(size) // 10)


class StressTestDataGenerator:
    def __init__(self, seed: int = 42, reference_time: datetime = REFERENCE_TIME) -> None:
        self.seed = seed
        self.reference_time = reference_time

    def _rng(self, stream: int) -> random.Random:
        return random.Random(self.seed * 2 + stream)

    def generate_related_test_entities(self, count: int) -> Iterator[RelatedTestEntityModel]:
        rng = self._rng(0)
        for i in range(count):
            yield RelatedTestEntityModel(
                business_key=f"RELATED-{i:05d}",
                name=f"{rng.choice(NOUNS)} Category #{i}",
                category=rng.choice(CATEGORIES),
                priority=rng.randint(1, 9),
            )

    def generate_test_entities(
        self, count: int, related_count: Optional[int] = None
    ) -> Iterator[TestEntityModel]:
        related = related_count if related_count is not None else related_count_for(count)
        rng = self._rng(1)
        for i in range(count):
            yield TestEntityModel(
                business_key=f"TEST-{i:06d}",
                name=f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)} #{i}",
                description=rng.choice(DESCRIPTIONS),
                value=Decimal(rng.randint(100, 9999)).scaleb(-2),
                created_date=self.reference_time - timedelta(days=rng.randrange(365)),
                related_key=f"RELATED-{rng.randrange(related):05d}",
            )

    def for_size(self, size: DatasetSize | int):
        """Zero-argument model factories for both stress seeders."""
        count = int(size)
        related = related_count_for(count)
        return (
            lambda: self.generate_related_test_entities(related),
            lambda: self.generate_test_entities(count, related),
        )


__all__ = [
    "REFERENCE_TIME",
    "StressTestDataGenerator",
    "related_count_for",
]
