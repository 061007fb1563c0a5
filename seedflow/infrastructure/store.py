"""
Persistence collaborators for the seeding core.

The core only needs, per table: a bulk read of stored entities, staged
inserts/updates committed as one unit of work, a bulk delete for the stress
harness's clear step, and an append-only seed history. `InMemorySeedStore`
backs tests and in-process stress runs; `PostgresSeedStore` maps entity
dataclasses onto tables of the same column names.

Entities are dataclasses with an `id` attribute the store assigns on insert.
"""

from __future__ import annotations

import copy
import dataclasses
import itertools
import threading
from contextlib import contextmanager
from typing import (
    Any,
    ContextManager,
    Dict,
    Generator,
    Iterable,
    List,
    Optional,
    Protocol,
    Tuple,
)

from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from seedflow.domain.errors import PurgeNotAllowedError
from seedflow.domain.models import SeedHistoryRecord
from seedflow.infrastructure.db_factory import apply_statement_timeout, get_sync_pool
from seedflow.seeding.gate import same_environment
from seedflow.utils.logging import get_logger

log = get_logger(__name__)

_INSERT = "insert"
_UPDATE = "update"


class UnitOfWork(Protocol):
    def insert(self, table: str, entity: Any) -> None: ...

    def update(self, table: str, entity: Any) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class SeedStore(Protocol):
    """Contract the orchestrator, applier and stress runner rely on."""

    def load_all(self, table: str, entity_type: type) -> List[Any]: ...

    def unit_of_work(self) -> ContextManager[UnitOfWork]: ...

    def delete_all(self, table: str) -> int: ...

    def append_history(self, record: SeedHistoryRecord) -> None: ...

    def history(self, seeder_name: Optional[str] = None) -> List[SeedHistoryRecord]: ...


def purge_tables(
    store: SeedStore,
    tables: Iterable[str],
    environment: str,
    production_environment: str = "Production",
) -> int:
    """Delete every row of `tables`; refused in the production environment."""
    if same_environment(environment, production_environment):
        raise PurgeNotAllowedError(environment)
    removed = 0
    for table in tables:
        count = store.delete_all(table)
        removed += count
        log.info(f"[PURGE] {table}", extra={"table": table, "rows": count})
    return removed


class _StagedUnitOfWork:
    """Collects operations until commit; shared by both stores."""

    def __init__(self, apply) -> None:
        self._apply = apply
        self.staged: List[Tuple[str, str, Any]] = []
        self.closed = False

    def insert(self, table: str, entity: Any) -> None:
        self._check_open()
        self.staged.append((_INSERT, table, entity))

    def update(self, table: str, entity: Any) -> None:
        self._check_open()
        if getattr(entity, "id", None) is None:
            raise ValueError(f"cannot update an unsaved entity in '{table}'")
        self.staged.append((_UPDATE, table, entity))

    def commit(self) -> None:
        self._check_open()
        self._apply(self.staged)
        self.closed = True

    def rollback(self) -> None:
        self.staged.clear()
        self.closed = True

    def _check_open(self) -> None:
        if self.closed:
            raise RuntimeError("unit of work is already closed")


class InMemorySeedStore:
    """
    Dictionary-backed store with copy-on-read semantics.

    Loaded entities are copies, so mutations made while reconciling only reach
    the store through a committed unit of work, as with a real database.
    """

    def __init__(self) -> None:
        self._tables: Dict[str, Dict[int, Any]] = {}
        self._ids = itertools.count(1)
        self._history: List[SeedHistoryRecord] = []
        self._lock = threading.RLock()
        self.commit_count = 0

    def load_all(self, table: str, entity_type: type) -> List[Any]:
        with self._lock:
            return [copy.copy(entity) for entity in self._tables.get(table, {}).values()]

    def rows(self, table: str) -> List[Any]:
        """Snapshot of stored entities, for inspection."""
        return self.load_all(table, object)

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._tables.get(table, {}))

    @contextmanager
    def unit_of_work(self) -> Generator[_StagedUnitOfWork, None, None]:
        uow = _StagedUnitOfWork(self._apply)
        try:
            yield uow
        except BaseException:
            uow.rollback()
            raise
        finally:
            if not uow.closed:
                uow.rollback()

    def _apply(self, staged: List[Tuple[str, str, Any]]) -> None:
        with self._lock:
            for kind, table, entity in staged:
                if kind == _UPDATE and entity.id not in self._tables.get(table, {}):
                    raise LookupError(f"row {entity.id} not found in '{table}'")
            for kind, table, entity in staged:
                rows = self._tables.setdefault(table, {})
                if kind == _INSERT:
                    entity.id = next(self._ids)
                rows[entity.id] = copy.copy(entity)
            self.commit_count += 1

    def delete_all(self, table: str) -> int:
        with self._lock:
            return len(self._tables.pop(table, {}))

    def append_history(self, record: SeedHistoryRecord) -> None:
        with self._lock:
            self._history.append(record)

    def history(self, seeder_name: Optional[str] = None) -> List[SeedHistoryRecord]:
        with self._lock:
            return [r for r in self._history if seeder_name is None or r.seeder_name == seeder_name]


HISTORY_TABLE = "seed_history"

_HISTORY_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id BIGSERIAL PRIMARY KEY,
    seeder_name TEXT NOT NULL,
    environment TEXT NOT NULL,
    applied_at TIMESTAMPTZ NOT NULL,
    inserted INTEGER NOT NULL,
    updated INTEGER NOT NULL,
    unchanged INTEGER NOT NULL,
    content_hash TEXT
)
"""


def _columns(entity: Any) -> Dict[str, Any]:
    return {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity) if f.name != "id"}


class PostgresSeedStore:
    """
    PostgreSQL store over a psycopg connection pool.

    Every read and every unit of work borrows its own pooled connection, so a
    unit of work never shares transaction state with another.
    """

    def __init__(
        self,
        pool: Optional[ConnectionPool] = None,
        statement_timeout_ms: int = 0,
        history_table: str = HISTORY_TABLE,
    ) -> None:
        self._pool = pool or get_sync_pool()
        self._timeout_ms = statement_timeout_ms
        self._history_table = sql.Identifier(history_table)

    def ensure_history_table(self) -> None:
        with self._pool.connection() as conn:
            conn.execute(sql.SQL(_HISTORY_DDL).format(table=self._history_table))

    def load_all(self, table: str, entity_type: type) -> List[Any]:
        query = sql.SQL("SELECT * FROM {} ORDER BY id").format(sql.Identifier(table))
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                apply_statement_timeout(cur, self._timeout_ms)
                cur.execute(query)
                return [entity_type(**row) for row in cur.fetchall()]

    @contextmanager
    def unit_of_work(self) -> Generator[_StagedUnitOfWork, None, None]:
        uow = _StagedUnitOfWork(self._apply)
        try:
            yield uow
        except BaseException:
            uow.rollback()
            raise
        finally:
            if not uow.closed:
                uow.rollback()

    def _apply(self, staged: List[Tuple[str, str, Any]]) -> None:
        assigned: List[Any] = []
        try:
            with self._pool.connection() as conn:
                with conn.transaction():
                    with conn.cursor() as cur:
                        apply_statement_timeout(cur, self._timeout_ms)
                        for kind, table, entity in staged:
                            values = _columns(entity)
                            if kind == _INSERT:
                                cur.execute(self._insert_sql(table, values), list(values.values()))
                                entity.id = cur.fetchone()[0]
                                assigned.append(entity)
                            else:
                                cur.execute(
                                    self._update_sql(table, values),
                                    [*values.values(), entity.id],
                                )
        except BaseException:
            for entity in assigned:
                entity.id = None
            raise

    @staticmethod
    def _insert_sql(table: str, values: Dict[str, Any]) -> sql.Composed:
        return sql.SQL("INSERT INTO {} ({}) VALUES ({}) RETURNING id").format(
            sql.Identifier(table),
            sql.SQL(", ").join(map(sql.Identifier, values)),
            sql.SQL(", ").join(sql.Placeholder() * len(values)),
        )

    @staticmethod
    def _update_sql(table: str, values: Dict[str, Any]) -> sql.Composed:
        assignments = sql.SQL(", ").join(
            sql.SQL("{} = {}").format(sql.Identifier(name), sql.Placeholder()) for name in values
        )
        return sql.SQL("UPDATE {} SET {} WHERE id = {}").format(
            sql.Identifier(table), assignments, sql.Placeholder()
        )

    def delete_all(self, table: str) -> int:
        with self._pool.connection() as conn:
            cur = conn.execute(sql.SQL("DELETE FROM {}").format(sql.Identifier(table)))
            return cur.rowcount

    def append_history(self, record: SeedHistoryRecord) -> None:
        query = sql.SQL(
            "INSERT INTO {} (seeder_name, environment, applied_at, inserted, updated, "
            "unchanged, content_hash) VALUES (%s, %s, %s, %s, %s, %s, %s)"
        ).format(self._history_table)
        with self._pool.connection() as conn:
            conn.execute(
                query,
                (
                    record.seeder_name,
                    record.environment,
                    record.applied_at,
                    record.inserted,
                    record.updated,
                    record.unchanged,
                    record.content_hash,
                ),
            )

    def history(self, seeder_name: Optional[str] = None) -> List[SeedHistoryRecord]:
        query = sql.SQL(
            "SELECT seeder_name, environment, applied_at, inserted, updated, unchanged, "
            "content_hash FROM {} WHERE (%s::text IS NULL OR seeder_name = %s) ORDER BY id"
        ).format(self._history_table)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, (seeder_name, seeder_name))
                return [SeedHistoryRecord(**row) for row in cur.fetchall()]


__all__ = [
    "HISTORY_TABLE",
    "InMemorySeedStore",
    "PostgresSeedStore",
    "SeedStore",
    "UnitOfWork",
    "purge_tables",
]
