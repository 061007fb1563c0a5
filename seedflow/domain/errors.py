"""
Error taxonomy for Seedflow.

Configuration errors are detected before the store is touched and abort the
whole run. Apply failures carry the seeder name and the chunk range that
failed so callers can resume or abort explicitly.
"""

from __future__ import annotations

from typing import Hashable, Iterable, Optional, Sequence, Tuple


class SeedingError(Exception):
    """Base class for every error raised by the seeding core."""


class SeedingConfigurationError(SeedingError):
    """Invalid catalog, profile or desired data. Raised before any store mutation."""


class UnknownDependencyError(SeedingConfigurationError):
    def __init__(self, seeder_name: str, missing_name: str) -> None:
        self.seeder_name = seeder_name
        self.missing_name = missing_name
        super().__init__(
            f"Seeder '{seeder_name}' depends on '{missing_name}', which is not registered."
        )


class DependencyCycleError(SeedingConfigurationError):
    def __init__(self, involved_names: Sequence[str]) -> None:
        self.involved_names: Tuple[str, ...] = tuple(involved_names)
        super().__init__(
            "Circular dependency detected: " + " -> ".join(self.involved_names)
        )


class DuplicateSeederError(SeedingConfigurationError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"More than one seeder is registered as '{name}'.")


class UnknownSeederError(SeedingConfigurationError):
    """A seeding profile names seeders that are not in the catalog."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names: Tuple[str, ...] = tuple(sorted(names))
        super().__init__(
            "Seeding profile references unknown seeder(s): " + ", ".join(self.names)
        )


class DuplicateBusinessKeyError(SeedingConfigurationError):
    def __init__(self, seeder_name: str, key: Hashable, index: int) -> None:
        self.seeder_name = seeder_name
        self.key = key
        self.index = index
        super().__init__(
            f"Seeder '{seeder_name}' declares business key {key!r} more than once "
            f"(second occurrence at record {index})."
        )


class SeedDataError(SeedingConfigurationError):
    """A seed source is unreadable, or one of its records fails validation."""

    def __init__(
        self, seeder_name: str, source: str, detail: str, index: Optional[int] = None
    ) -> None:
        self.seeder_name = seeder_name
        self.source = source
        self.index = index
        location = f" at record {index}" if index is not None else ""
        super().__init__(f"Seed data for '{seeder_name}' in {source} is invalid{location}: {detail}")


class ChunkCommitError(SeedingError):
    """A chunk of an apply plan failed to commit; earlier chunks stay committed."""

    def __init__(self, seeder_name: str, chunk_index: int, start: int, end: int) -> None:
        self.seeder_name = seeder_name
        self.chunk_index = chunk_index
        self.start = start
        self.end = end
        super().__init__(
            f"Seeder '{seeder_name}' failed to commit chunk {chunk_index} "
            f"(operations {start}..{end - 1})."
        )


class PurgeNotAllowedError(SeedingError):
    def __init__(self, environment: str) -> None:
        self.environment = environment
        super().__init__(f"Purging seeded data is not allowed in the '{environment}' environment.")


__all__ = [
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
