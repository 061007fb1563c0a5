"""
Profiling utilities for Seedflow's stress harness.

Measures, around a block of seeding work:
- Wall-clock time (perf_counter)
- CPU usage (psutil)
- Peak RSS via a background sampling thread (psutil)
- Peak Python allocations (tracemalloc), when requested

Usage:
    from seedflow.utils.profiler import profile_block

    with profile_block("iteration-1") as stats:
        run_seeding(...)

    print(stats.duration_seconds, stats.peak_rss_bytes)
"""

from __future__ import annotations

import contextlib
import threading
import time
import tracemalloc
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil


@dataclass
class ProfileStats:
    """
    Container for profiling measurements.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    peak_rss_bytes: Optional[int] = field(default=None)
    peak_traced_bytes: Optional[int] = field(default=None)
    cpu_percent: Optional[float] = field(default=None)
    extra: dict[str, Any] = field(default_factory=dict)


@contextlib.contextmanager
def profile_block(
    label: str,
    sample_interval_ms: int = 50,
    enable_tracemalloc: bool = False,
    sample_memory: bool = True,
) -> Generator[ProfileStats, None, None]:
    """
    Context manager to profile a block of code.

    Parameters
    ----------
    label : str
        Human-friendly label for the profiled block.
    sample_interval_ms : int
        Interval in milliseconds for RSS sampling. Lower = more accurate but higher overhead.
    enable_tracemalloc : bool
        Whether to enable tracemalloc for tracking Python-level allocations.
        Off by default: it slows allocation-heavy seeding noticeably.
    sample_memory : bool
        Whether to run the RSS sampler and CPU measurement at all. When False
        only wall-clock time is recorded.

    Notes
    -----
    The background sampler captures peak memory during the block, not just
    start/end snapshots; bursty chunk commits make the difference visible.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process() if sample_memory else None
    peak_rss = 0
    stop_sampling = threading.Event()

    def _sample_memory() -> None:
        nonlocal peak_rss
        while not stop_sampling.is_set():
            try:
                peak_rss = max(peak_rss, process.memory_info().rss)
            except psutil.Error:
                break
            stop_sampling.wait(timeout=sample_interval_ms / 1000.0)

    tracemalloc_was_running = tracemalloc.is_tracing()
    if enable_tracemalloc and not tracemalloc_was_running:
        tracemalloc.start()

    sampler: Optional[threading.Thread] = None
    if process is not None:
        # cpu_percent needs a priming call
        process.cpu_percent(interval=None)
        peak_rss = process.memory_info().rss
        sampler = threading.Thread(target=_sample_memory, daemon=True)
        sampler.start()

    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts

        if sampler is not None:
            stop_sampling.set()
            sampler.join(timeout=1.0)
            stats.peak_rss_bytes = peak_rss if peak_rss > 0 else None
            stats.cpu_percent = process.cpu_percent(interval=None)

        if enable_tracemalloc and tracemalloc.is_tracing():
            _, peak_traced = tracemalloc.get_traced_memory()
            stats.peak_traced_bytes = peak_traced
            if not tracemalloc_was_running:
                tracemalloc.stop()


__all__ = ["ProfileStats", "profile_block"]
