"""
Dependency ordering for seeders.

Kahn's algorithm over the seeder-name graph, using registration position as
the priority among seeders that are ready at the same time, so the same
catalog always yields the same order.
"""

from __future__ import annotations

import heapq
from typing import Dict, Iterable, List, Sequence, Set, TypeVar

from seedflow.domain.errors import (
    DependencyCycleError,
    DuplicateSeederError,
    UnknownDependencyError,
)
from seedflow.seeding.abstract import Seeder

S = TypeVar("S", bound=Seeder)


def _index_by_name(seeders: Sequence[S]) -> Dict[str, int]:
    index: Dict[str, int] = {}
    for position, seeder in enumerate(seeders):
        if seeder.name in index:
            raise DuplicateSeederError(seeder.name)
        index[seeder.name] = position
    return index


def _find_cycle(seeders: Sequence[S], index: Dict[str, int], remaining: Set[int]) -> List[str]:
    """Walk dependency edges among unresolved seeders until a name repeats."""
    start = min(remaining)
    path: List[int] = []
    on_path: Dict[int, int] = {}
    current = start
    while current not in on_path:
        on_path[current] = len(path)
        path.append(current)
        # every unresolved seeder has at least one unresolved dependency
        current = next(
            index[dep] for dep in seeders[current].dependencies if index[dep] in remaining
        )
    cycle = path[on_path[current]:] + [current]
    return [seeders[pos].name for pos in cycle]


def resolve_order(seeders: Iterable[S]) -> List[S]:
    """
    Order seeders so every dependency precedes its dependents.

    Raises
    ------
    DuplicateSeederError
        Two seeders share a name.
    UnknownDependencyError
        A dependency names a seeder missing from the catalog.
    DependencyCycleError
        The dependency graph has a cycle; no partial order is returned.
    """
    catalog = list(seeders)
    index = _index_by_name(catalog)

    dependents: Dict[int, List[int]] = {pos: [] for pos in range(len(catalog))}
    indegree = [0] * len(catalog)
    for position, seeder in enumerate(catalog):
        for dependency in dict.fromkeys(seeder.dependencies):
            if dependency not in index:
                raise UnknownDependencyError(seeder.name, dependency)
            dependents[index[dependency]].append(position)
            indegree[position] += 1

    ready = [pos for pos, degree in enumerate(indegree) if degree == 0]
    heapq.heapify(ready)
    ordered: List[int] = []
    while ready:
        position = heapq.heappop(ready)
        ordered.append(position)
        for dependent in dependents[position]:
            indegree[dependent] -= 1
            if indegree[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(ordered) < len(catalog):
        remaining = set(range(len(catalog))) - set(ordered)
        raise DependencyCycleError(_find_cycle(catalog, index, remaining))

    return [catalog[pos] for pos in ordered]


def transitive_dependents(seeders: Sequence[S], root: str) -> Set[str]:
    """Names of every seeder that depends on `root`, directly or indirectly."""
    found: Set[str] = set()
    frontier = [root]
    while frontier:
        name = frontier.pop()
        for seeder in seeders:
            if name in seeder.dependencies and seeder.name not in found:
                found.add(seeder.name)
                frontier.append(seeder.name)
    return found


__all__ = ["resolve_order", "transitive_dependents"]
