"""
Infrastructure package for Seedflow.

Persistence collaborators (in-memory and PostgreSQL stores) and the psycopg
connection factory. Keep this layer focused on I/O and resource management,
decoupled from seeding logic.
"""

from seedflow.infrastructure.store import (
    InMemorySeedStore,
    PostgresSeedStore,
    SeedStore,
    UnitOfWork,
    purge_tables,
)

__all__ = [
    "InMemorySeedStore",
    "PostgresSeedStore",
    "SeedStore",
    "UnitOfWork",
    "purge_tables",
]
