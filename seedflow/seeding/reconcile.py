"""
Business-key reconciliation between desired seed models and stored entities.

Reconciliation is additive: models without a stored counterpart become
inserts, matching entities are updated only when a field actually changed,
and stored entities that no model mentions are left alone.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Tuple

from seedflow.domain.errors import DuplicateBusinessKeyError
from seedflow.seeding.abstract import Seeder
from seedflow.utils.logging import get_logger

log = get_logger(__name__)


class OperationKind(str, enum.Enum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass(frozen=True)
class Operation:
    kind: OperationKind
    key: Hashable
    entity: Any


@dataclass
class ApplyPlan:
    """Ordered inserts/updates for one seeder, plus what was left unchanged."""

    seeder_name: str
    operations: List[Operation] = field(default_factory=list)
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    integrity_warnings: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.operations)

    @property
    def is_empty(self) -> bool:
        return not self.operations


def same_business_key(seeder: Seeder, model: Any, entity: Any) -> bool:
    """Identity of a model and an entity, independent of storage ids."""
    return seeder.model_key(model) == seeder.entity_key(entity)


def check_desired_keys(seeder: Seeder, models: Iterable[Any]) -> int:
    """
    Verify desired business keys are unique; return how many models there are.

    Only keys are retained, so this can stream very large model sets.
    """
    seen = set()
    count = 0
    for index, model in enumerate(models):
        key = seeder.model_key(model)
        if key in seen:
            raise DuplicateBusinessKeyError(seeder.name, key, index)
        seen.add(key)
        count += 1
    return count


def index_existing(seeder: Seeder, entities: Iterable[Any]) -> Tuple[Dict[Hashable, Any], List[str]]:
    """
    Map business key -> stored entity.

    Duplicate keys among stored entities point at store corruption: they are
    reported as warnings and the first entity in load order wins.
    """
    by_key: Dict[Hashable, Any] = {}
    warnings: List[str] = []
    for entity in entities:
        key = seeder.entity_key(entity)
        if key in by_key:
            message = (
                f"duplicate business key {key!r} in stored '{seeder.table}' rows; "
                f"keeping the first loaded entity"
            )
            warnings.append(message)
            log.warning(
                f"[INTEGRITY] {seeder.name}: {message}",
                extra={"seeder": seeder.name, "key": repr(key)},
            )
            continue
        by_key[key] = entity
    return by_key, warnings


def reconcile(seeder: Seeder, desired: Iterable[Any], existing: Iterable[Any]) -> ApplyPlan:
    """
    Diff desired models against stored entities.

    Parameters
    ----------
    seeder : Seeder
        Supplies key extraction and mapping.
    desired : iterable
        Desired seed models, in the order operations should be applied.
    existing : iterable
        Entities currently stored for the seeder's table. Matching entities are
        mutated in place by `seeder.update_entity`.

    Returns
    -------
    ApplyPlan
        Operations in desired order with inserted/updated/unchanged counts.
    """
    by_key, warnings = index_existing(seeder, existing)
    plan = ApplyPlan(seeder_name=seeder.name, integrity_warnings=warnings)
    seen = set()

    for index, model in enumerate(desired):
        key = seeder.model_key(model)
        if key in seen:
            raise DuplicateBusinessKeyError(seeder.name, key, index)
        seen.add(key)

        entity = by_key.get(key)
        if entity is None:
            plan.operations.append(Operation(OperationKind.INSERT, key, seeder.map_to_entity(model)))
            plan.inserted += 1
        elif seeder.update_entity(entity, model):
            plan.operations.append(Operation(OperationKind.UPDATE, key, entity))
            plan.updated += 1
        else:
            plan.unchanged += 1

    log.debug(
        f"[RECONCILED] {seeder.name}",
        extra={
            "seeder": seeder.name,
            "inserted": plan.inserted,
            "updated": plan.updated,
            "unchanged": plan.unchanged,
        },
    )
    return plan


__all__ = [
    "ApplyPlan",
    "Operation",
    "OperationKind",
    "check_desired_keys",
    "index_existing",
    "reconcile",
    "same_business_key",
]
