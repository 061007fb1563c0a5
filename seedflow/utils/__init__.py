"""
Utilities package for Seedflow.

Exports shared helpers for logging, profiling, and other cross-cutting concerns.
Keep this package lightweight and free of seeding-specific logic.
"""

from seedflow.utils.logging import configure_logging, get_logger
from seedflow.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
