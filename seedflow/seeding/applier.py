"""
Chunked application of an apply plan.

Each chunk of at most `batch_size` operations is staged in its own unit of
work and committed once. Chunks run strictly in order; a failing chunk is not
retried and leaves every earlier chunk committed.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from itertools import islice
from typing import Any, Callable, Iterable, Iterator, List, Optional, TYPE_CHECKING

from seedflow.domain.errors import ChunkCommitError
from seedflow.seeding.reconcile import ApplyPlan, OperationKind
from seedflow.utils.logging import get_logger

if TYPE_CHECKING:
    from seedflow.infrastructure.store import SeedStore

log = get_logger(__name__)

DEFAULT_BATCH_SIZE = 100


class CancellationToken:
    """Run-scoped cancellation flag, checked between chunks only."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def chunked(items: Iterable[Any], size: int) -> Iterator[List[Any]]:
    """Yield consecutive lists of at most `size` items."""
    if size < 1:
        raise ValueError("batch size must be >= 1")
    iterator = iter(items)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk


@dataclass(frozen=True)
class ChunkTiming:
    seeder_name: str
    chunk_index: int
    operations: int
    duration_seconds: float


@dataclass
class ApplyResult:
    commits: int = 0
    applied: int = 0
    cancelled: bool = False


ChunkCallback = Callable[[ChunkTiming], None]


def apply_plan(
    store: "SeedStore",
    plan: ApplyPlan,
    table: str,
    batch_size: int = DEFAULT_BATCH_SIZE,
    cancel: Optional[CancellationToken] = None,
    on_chunk: Optional[ChunkCallback] = None,
) -> ApplyResult:
    """
    Commit `plan` in chunks of `batch_size` operations.

    Parameters
    ----------
    store : SeedStore
        Persistence collaborator providing units of work.
    plan : ApplyPlan
        Operations for one seeder, in apply order.
    table : str
        Target table for every operation in the plan.
    batch_size : int
        Maximum operations per committed chunk.
    cancel : CancellationToken, optional
        Checked before each chunk starts; a chunk in flight always finishes.
    on_chunk : callable, optional
        Receives a `ChunkTiming` after each successful commit.

    Raises
    ------
    ChunkCommitError
        The store failed to stage or commit a chunk. Chunks before it remain
        committed; the failing chunk is rolled back.
    """
    result = ApplyResult()
    offset = 0

    for index, chunk in enumerate(chunked(plan.operations, batch_size)):
        if cancel is not None and cancel.cancelled:
            result.cancelled = True
            log.info(
                f"[CANCELLED] {plan.seeder_name} before chunk {index}",
                extra={"seeder": plan.seeder_name, "chunk_index": index, "applied": result.applied},
            )
            break

        start = time.perf_counter()
        try:
            with store.unit_of_work() as uow:
                for operation in chunk:
                    if operation.kind is OperationKind.INSERT:
                        uow.insert(table, operation.entity)
                    else:
                        uow.update(table, operation.entity)
                uow.commit()
        except Exception as exc:
            raise ChunkCommitError(plan.seeder_name, index, offset, offset + len(chunk)) from exc
        elapsed = time.perf_counter() - start

        result.commits += 1
        result.applied += len(chunk)
        offset += len(chunk)
        log.debug(
            f"[CHUNK COMMITTED] {plan.seeder_name} #{index}",
            extra={
                "seeder": plan.seeder_name,
                "chunk_index": index,
                "operations": len(chunk),
                "duration_ms": round(elapsed * 1000, 3),
            },
        )
        if on_chunk is not None:
            on_chunk(ChunkTiming(plan.seeder_name, index, len(chunk), elapsed))

    return result


__all__ = [
    "ApplyResult",
    "CancellationToken",
    "ChunkTiming",
    "DEFAULT_BATCH_SIZE",
    "apply_plan",
    "chunked",
]
