from __future__ import annotations

import pytest

from seedflow.domain.errors import ChunkCommitError
from seedflow.infrastructure.store import InMemorySeedStore
from seedflow.seeding.applier import CancellationToken, ChunkTiming, apply_plan, chunked
from seedflow.seeding.reconcile import reconcile

BATCH_SIZE = 10


class _FailingCommitStore(InMemorySeedStore):
    """Raises on the N-th commit (1-based)."""

    def __init__(self, fail_on: int) -> None:
        super().__init__()
        self.fail_on = fail_on
        self.attempts = 0

    def _apply(self, staged) -> None:
        self.attempts += 1
        if self.attempts == self.fail_on:
            raise RuntimeError("connection reset by peer")
        super()._apply(staged)


def test_chunked_splits_into_bounded_slices() -> None:
    assert [len(c) for c in chunked(range(7), 3)] == [3, 3, 1]
    assert list(chunked([], 3)) == []
    with pytest.raises(ValueError):
        list(chunked([1], 0))


def test_three_batches_plus_one_gives_four_commits(make_seeder, rows, store) -> None:
    seeder = make_seeder("items", rows(3 * BATCH_SIZE + 1))
    plan = reconcile(seeder, seeder.load_models("Development"), [])
    timings: list[ChunkTiming] = []

    result = apply_plan(store, plan, seeder.table, BATCH_SIZE, on_chunk=timings.append)

    assert result.commits == 4
    assert result.applied == 3 * BATCH_SIZE + 1
    assert store.commit_count == 4
    assert [t.operations for t in timings] == [BATCH_SIZE, BATCH_SIZE, BATCH_SIZE, 1]
    assert [t.chunk_index for t in timings] == [0, 1, 2, 3]
    assert all(t.duration_seconds >= 0 for t in timings)
    assert store.count("items") == 3 * BATCH_SIZE + 1


def test_empty_plan_commits_nothing(make_seeder, store) -> None:
    seeder = make_seeder("items")
    plan = reconcile(seeder, [], [])

    result = apply_plan(store, plan, seeder.table, BATCH_SIZE)

    assert result.commits == 0
    assert store.commit_count == 0


def test_failed_chunk_keeps_prior_chunks_and_reports_range(make_seeder, rows) -> None:
    store = _FailingCommitStore(fail_on=3)
    seeder = make_seeder("items", rows(5 * BATCH_SIZE))
    plan = reconcile(seeder, seeder.load_models("Development"), [])

    with pytest.raises(ChunkCommitError) as excinfo:
        apply_plan(store, plan, seeder.table, BATCH_SIZE)

    error = excinfo.value
    assert error.seeder_name == "items"
    assert error.chunk_index == 2
    assert (error.start, error.end) == (2 * BATCH_SIZE, 3 * BATCH_SIZE)
    assert isinstance(error.__cause__, RuntimeError)
    assert store.count("items") == 2 * BATCH_SIZE
    # no automatic retry
    assert store.attempts == 3


def test_cancellation_between_chunks(make_seeder, rows, store) -> None:
    seeder = make_seeder("items", rows(5 * BATCH_SIZE))
    plan = reconcile(seeder, seeder.load_models("Development"), [])
    token = CancellationToken()

    def _cancel_after_second(timing: ChunkTiming) -> None:
        if timing.chunk_index == 1:
            token.cancel()

    result = apply_plan(
        store, plan, seeder.table, BATCH_SIZE, cancel=token, on_chunk=_cancel_after_second
    )

    assert result.cancelled
    assert result.commits == 2
    assert store.count("items") == 2 * BATCH_SIZE


def test_cancel_before_start_applies_nothing(make_seeder, rows, store) -> None:
    seeder = make_seeder("items", rows(3))
    plan = reconcile(seeder, seeder.load_models("Development"), [])
    token = CancellationToken()
    token.cancel()

    result = apply_plan(store, plan, seeder.table, BATCH_SIZE, cancel=token)

    assert result.cancelled
    assert result.commits == 0
    assert store.count("items") == 0


def test_updates_are_applied_to_existing_rows(make_seeder, store) -> None:
    first = make_seeder("items", [("a", "1"), ("b", "2")])
    apply_plan(store, reconcile(first, first.load_models("Development"), []), "items")

    second = make_seeder("items", [("a", "1"), ("b", "changed")])
    plan = reconcile(second, second.load_models("Development"), store.load_all("items", object))
    apply_plan(store, plan, "items")

    assert plan.updated == 1
    assert {row.key: row.value for row in store.rows("items")} == {"a": "1", "b": "changed"}
