"""
Orchestrator for seeding runs: ordering, gating, reconciliation, chunked apply
and seed history.

Usage (example from CLI):
    from seedflow.orchestrator import run_seeding

    summary = run_seeding(catalog, "Development", store=InMemorySeedStore())
    print(summary.to_dict())

Configuration errors (unknown dependency, cycle, duplicate desired key, unknown
profile entry) raise before the store is touched. Apply failures are recorded
on the returned `RunSummary`; every registered seeder ends with a terminal
status.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from seedflow.config import Settings, get_settings
from seedflow.domain.errors import ChunkCommitError, SeedingConfigurationError
from seedflow.domain.models import (
    RunSummary,
    SeedHistoryRecord,
    SeederOutcome,
    SeederStatus,
    utc_now,
)
from seedflow.infrastructure.store import SeedStore
from seedflow.seeding.abstract import Seeder
from seedflow.seeding.applier import CancellationToken, ChunkCallback, apply_plan
from seedflow.seeding.gate import GateDecision, SeedingProfile, evaluate
from seedflow.seeding.reconcile import ApplyPlan, OperationKind, check_desired_keys, reconcile
from seedflow.seeding.resolver import resolve_order, transitive_dependents
from seedflow.utils.logging import get_logger

log = get_logger(__name__)

FailurePolicy = Literal["strict", "tolerant"]


@dataclass(frozen=True)
class PlannedSeeder:
    """One row of an execution plan preview."""

    position: int
    name: str
    dependencies: Tuple[str, ...]
    admitted: bool
    reason: Optional[str]
    batch_size: int


class _BatchSizes:
    def __init__(
        self,
        settings: Settings,
        batch_size: Optional[int],
        overrides: Optional[Mapping[str, int]],
    ) -> None:
        self._settings = settings
        self._default = batch_size
        self._overrides = dict(overrides or {})
        sizes = list(self._overrides.values()) + ([batch_size] if batch_size is not None else [])
        if any(size < 1 for size in sizes):
            raise ValueError("batch sizes must be >= 1")

    def __call__(self, name: str) -> int:
        if name in self._overrides:
            return self._overrides[name]
        if self._default is not None:
            return self._default
        return self._settings.batch_size_for(name)


def _gate_all(
    ordered: Sequence[Seeder],
    environment: str,
    settings: Settings,
    profile: SeedingProfile,
) -> Dict[str, GateDecision]:
    profile.validate(seeder.name for seeder in ordered)
    return {
        seeder.name: evaluate(seeder, environment, settings.production_environment, profile)
        for seeder in ordered
    }


def preview_plan(
    catalog: Iterable[Seeder],
    environment: str,
    *,
    settings: Optional[Settings] = None,
    profile: Optional[SeedingProfile] = None,
    batch_size: Optional[int] = None,
    batch_sizes: Optional[Mapping[str, int]] = None,
) -> List[PlannedSeeder]:
    """
    Resolve order and gate decisions without touching any store.

    Raises the same configuration errors `run_seeding` would.
    """
    settings = settings or get_settings()
    profile = profile if profile is not None else SeedingProfile.from_settings(settings)
    sizes = _BatchSizes(settings, batch_size, batch_sizes)
    ordered = resolve_order(catalog)
    decisions = _gate_all(ordered, environment, settings, profile)
    return [
        PlannedSeeder(
            position=position,
            name=seeder.name,
            dependencies=tuple(seeder.dependencies),
            admitted=decisions[seeder.name].admitted,
            reason=decisions[seeder.name].reason,
            batch_size=sizes(seeder.name),
        )
        for position, seeder in enumerate(ordered, start=1)
    ]


def _applied_counts(plan: ApplyPlan, applied: int) -> Tuple[int, int]:
    """Inserted/updated counts among the first `applied` operations."""
    if applied >= len(plan):
        return plan.inserted, plan.updated
    inserted = sum(1 for op in plan.operations[:applied] if op.kind is OperationKind.INSERT)
    return inserted, applied - inserted


def _run_seeder(
    seeder: Seeder,
    environment: str,
    store: SeedStore,
    batch_size: int,
    cancel: Optional[CancellationToken],
    on_chunk: Optional[ChunkCallback],
) -> SeederOutcome:
    log.info(
        f"[SEEDER START] {seeder.name}",
        extra={"seeder": seeder.name, "environment": environment, "batch_size": batch_size},
    )
    start = time.perf_counter()
    outcome = SeederOutcome(seeder_name=seeder.name, status=SeederStatus.APPLIED)
    plan: Optional[ApplyPlan] = None
    try:
        existing = store.load_all(seeder.table, seeder.entity_type)
        plan = reconcile(seeder, seeder.load_models(environment), existing)
        outcome.integrity_warnings = list(plan.integrity_warnings)
        outcome.unchanged = plan.unchanged

        result = apply_plan(store, plan, seeder.table, batch_size, cancel=cancel, on_chunk=on_chunk)
        outcome.commits = result.commits
        outcome.inserted, outcome.updated = _applied_counts(plan, result.applied)

        if result.cancelled:
            outcome.status = SeederStatus.CANCELLED
            outcome.reason = f"cancelled after {result.commits} committed chunk(s)"
        else:
            store.append_history(
                SeedHistoryRecord(
                    seeder_name=seeder.name,
                    environment=environment,
                    applied_at=utc_now(),
                    inserted=plan.inserted,
                    updated=plan.updated,
                    unchanged=plan.unchanged,
                    content_hash=seeder.content_hash(environment),
                )
            )
    except SeedingConfigurationError:
        raise
    except Exception as exc:  # noqa: BLE001 - intentional broad catch to record failures
        outcome.status = SeederStatus.FAILED
        outcome.error = str(exc)
        outcome.error_type = type(exc).__name__
        outcome.exception = exc
        if isinstance(exc, ChunkCommitError) and plan is not None:
            outcome.commits = exc.chunk_index
            outcome.inserted, outcome.updated = _applied_counts(plan, exc.start)
            if exc.__cause__ is not None:
                outcome.error = f"{exc} Cause: {exc.__cause__}"
        log.exception(
            f"[SEEDER FAILED] {seeder.name}",
            extra={"seeder": seeder.name, "error_type": outcome.error_type},
        )
    outcome.duration_seconds = time.perf_counter() - start

    log.info(
        f"[SEEDER {outcome.status.value.upper()}] {seeder.name}",
        extra={
            "seeder": seeder.name,
            "inserted": outcome.inserted,
            "updated": outcome.updated,
            "unchanged": outcome.unchanged,
            "commits": outcome.commits,
            "duration": round(outcome.duration_seconds, 4),
        },
    )
    return outcome


def run_seeding(
    catalog: Iterable[Seeder],
    environment: str,
    *,
    store: SeedStore,
    settings: Optional[Settings] = None,
    profile: Optional[SeedingProfile] = None,
    batch_size: Optional[int] = None,
    batch_sizes: Optional[Mapping[str, int]] = None,
    failure_policy: Optional[FailurePolicy] = None,
    cancel: Optional[CancellationToken] = None,
    on_chunk: Optional[ChunkCallback] = None,
) -> RunSummary:
    """
    Run every seeder of `catalog` against `store` under `environment`.

    Parameters
    ----------
    catalog : iterable[Seeder]
        Registered seeders; registration order breaks ordering ties.
    environment : str
        Active environment name, passed explicitly to the gate.
    store : SeedStore
        Persistence collaborator.
    settings : Settings, optional
        Defaults for production environment name, batch sizes, profile and
        failure policy. Defaults to `get_settings()`.
    profile : SeedingProfile, optional
        Overrides the profile derived from settings.
    batch_size : int, optional
        Batch size for every seeder without a per-seeder override.
    batch_sizes : mapping, optional
        Per-seeder batch size overrides.
    failure_policy : {"strict", "tolerant"}, optional
        `strict` stops at the first failed seeder and marks the rest NOT_RUN.
        `tolerant` keeps going, marking only dependents of a failed seeder NOT_RUN.
    cancel : CancellationToken, optional
        Honored between chunks and between seeders.
    on_chunk : callable, optional
        Receives a `ChunkTiming` after each committed chunk.

    Returns
    -------
    RunSummary
        One outcome per seeder, in execution order.
    """
    settings = settings or get_settings()
    profile = profile if profile is not None else SeedingProfile.from_settings(settings)
    policy = failure_policy or settings.seeding_failure_policy
    if policy not in ("strict", "tolerant"):
        raise ValueError(f"Unknown failure policy '{policy}'. Use 'strict' or 'tolerant'.")
    sizes = _BatchSizes(settings, batch_size, batch_sizes)

    ordered = resolve_order(catalog)
    decisions = _gate_all(ordered, environment, settings, profile)
    for seeder in ordered:
        if decisions[seeder.name].admitted:
            check_desired_keys(seeder, seeder.load_models(environment))

    log.info(
        f"[RUN START] {len(ordered)} seeder(s)",
        extra={"environment": environment, "order": [s.name for s in ordered], "policy": policy},
    )
    summary = RunSummary(environment=environment)
    blocked: Dict[str, str] = {}
    halt: Optional[Tuple[SeederStatus, str]] = None

    for seeder in ordered:
        if halt is None and cancel is not None and cancel.cancelled:
            halt = (SeederStatus.CANCELLED, "run cancelled")
        if halt is not None:
            status, reason = halt
            summary.outcomes.append(SeederOutcome(seeder.name, status, reason=reason))
            continue
        if seeder.name in blocked:
            summary.outcomes.append(
                SeederOutcome(seeder.name, SeederStatus.NOT_RUN, reason=blocked[seeder.name])
            )
            continue

        decision = decisions[seeder.name]
        if not decision.admitted:
            log.info(
                f"[SEEDER SKIPPED] {seeder.name}: {decision.reason}",
                extra={"seeder": seeder.name, "reason": decision.reason},
            )
            summary.outcomes.append(
                SeederOutcome(seeder.name, SeederStatus.SKIPPED, reason=decision.reason)
            )
            continue

        outcome = _run_seeder(
            seeder, environment, store, sizes(seeder.name), cancel, on_chunk
        )
        summary.outcomes.append(outcome)

        if outcome.status is SeederStatus.CANCELLED:
            summary.cancelled = True
            halt = (SeederStatus.CANCELLED, "run cancelled")
        elif outcome.status is SeederStatus.FAILED:
            if policy == "strict":
                halt = (SeederStatus.NOT_RUN, f"run aborted after '{seeder.name}' failed")
            else:
                for name in transitive_dependents(ordered, seeder.name):
                    blocked.setdefault(name, f"depends on failed seeder '{seeder.name}'")

    if halt is not None and halt[0] is SeederStatus.CANCELLED:
        summary.cancelled = True
    summary.finished_at = utc_now()
    log.info(
        "[RUN COMPLETE]",
        extra={
            "environment": environment,
            "succeeded": summary.succeeded,
            "cancelled": summary.cancelled,
            "inserted": summary.inserted,
            "updated": summary.updated,
            "unchanged": summary.unchanged,
            "commits": summary.commits,
            "duration": round(summary.duration_seconds, 4),
        },
    )
    return summary


def persist_summary(summary: RunSummary, results_dir: Path | str = "results") -> Path:
    """Write the summary to `latest-seed-run.json` plus a timestamped archive."""
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    payload = summary.to_dict()
    latest_path = results_dir / "latest-seed-run.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"seed-run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Run summary persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})
    return archive_path


__all__ = [
    "FailurePolicy",
    "PlannedSeeder",
    "persist_summary",
    "preview_plan",
    "run_seeding",
]
