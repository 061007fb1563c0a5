"""
Metrics collection for stress runs.

The collector is fed from the same thread that commits chunks (through the
applier's `on_chunk` callback) and from the runner after each iteration. It
only appends, so no locking is needed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from seedflow.domain.models import RunSummary, StressTestConfiguration, utc_now
from seedflow.seeding.applier import ChunkTiming
from seedflow.utils.profiler import ProfileStats


@dataclass
class IterationMetrics:
    iteration: int
    duration_seconds: float
    records_processed: int
    inserted: int
    updated: int
    unchanged: int
    commits: int
    succeeded: bool
    cancelled: bool = False
    peak_rss_bytes: Optional[int] = None
    peak_traced_bytes: Optional[int] = None
    cpu_percent: Optional[float] = None

    @property
    def records_per_second(self) -> float:
        return self.records_processed / self.duration_seconds if self.duration_seconds else 0.0


@dataclass
class StressTestMetrics:
    """Accumulated timings for one harness run; read by the reporter at the end."""

    configuration: StressTestConfiguration
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    batch_durations: List[float] = field(default_factory=list)
    batch_operations: List[int] = field(default_factory=list)
    iterations: List[IterationMetrics] = field(default_factory=list)

    @property
    def total_duration_seconds(self) -> float:
        if self.finished_at is None:
            return sum(i.duration_seconds for i in self.iterations)
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def seeding_seconds(self) -> float:
        return sum(i.duration_seconds for i in self.iterations)

    @property
    def total_records(self) -> int:
        return sum(i.records_processed for i in self.iterations)

    @property
    def records_per_second(self) -> float:
        seconds = self.seeding_seconds
        return self.total_records / seconds if seconds else 0.0

    @property
    def batch_count(self) -> int:
        return len(self.batch_durations)

    @property
    def min_batch_ms(self) -> float:
        return min(self.batch_durations) * 1000 if self.batch_durations else 0.0

    @property
    def avg_batch_ms(self) -> float:
        if not self.batch_durations:
            return 0.0
        return sum(self.batch_durations) / len(self.batch_durations) * 1000

    @property
    def max_batch_ms(self) -> float:
        return max(self.batch_durations) * 1000 if self.batch_durations else 0.0

    @property
    def avg_batch_operations(self) -> float:
        if not self.batch_operations:
            return 0.0
        return sum(self.batch_operations) / len(self.batch_operations)

    @property
    def peak_rss_bytes(self) -> Optional[int]:
        samples = [i.peak_rss_bytes for i in self.iterations if i.peak_rss_bytes]
        return max(samples) if samples else None

    @property
    def peak_traced_bytes(self) -> Optional[int]:
        samples = [i.peak_traced_bytes for i in self.iterations if i.peak_traced_bytes]
        return max(samples) if samples else None

    @property
    def succeeded(self) -> bool:
        return bool(self.iterations) and all(i.succeeded for i in self.iterations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dataset_size": self.configuration.dataset_size.name,
            "records": int(self.configuration.dataset_size),
            "batch_size": self.configuration.batch_size,
            "iterations": [
                {
                    "iteration": i.iteration,
                    "duration_seconds": round(i.duration_seconds, 4),
                    "records_processed": i.records_processed,
                    "inserted": i.inserted,
                    "updated": i.updated,
                    "unchanged": i.unchanged,
                    "commits": i.commits,
                    "records_per_second": round(i.records_per_second, 2),
                    "peak_rss_bytes": i.peak_rss_bytes,
                    "peak_traced_bytes": i.peak_traced_bytes,
                    "cpu_percent": i.cpu_percent,
                    "succeeded": i.succeeded,
                    "cancelled": i.cancelled,
                }
                for i in self.iterations
            ],
            "total_duration_seconds": round(self.total_duration_seconds, 4),
            "total_records": self.total_records,
            "records_per_second": round(self.records_per_second, 2),
            "batches": {
                "count": self.batch_count,
                "min_ms": round(self.min_batch_ms, 3),
                "avg_ms": round(self.avg_batch_ms, 3),
                "max_ms": round(self.max_batch_ms, 3),
                "avg_operations": round(self.avg_batch_operations, 2),
            },
            "peak_rss_bytes": self.peak_rss_bytes,
            "peak_traced_bytes": self.peak_traced_bytes,
        }


class StressTestMetricsCollector:
    def __init__(self, configuration: StressTestConfiguration) -> None:
        self.metrics = StressTestMetrics(configuration=configuration)

    def start_run(self) -> None:
        self.metrics.started_at = utc_now()
        self.metrics.finished_at = None

    def finish_run(self) -> StressTestMetrics:
        self.metrics.finished_at = utc_now()
        return self.metrics

    def record_chunk(self, timing: ChunkTiming) -> None:
        self.metrics.batch_durations.append(timing.duration_seconds)
        self.metrics.batch_operations.append(timing.operations)

    def record_iteration(
        self,
        iteration: int,
        summary: RunSummary,
        stats: ProfileStats,
        detailed: bool = True,
    ) -> IterationMetrics:
        metrics = IterationMetrics(
            iteration=iteration,
            duration_seconds=stats.duration_seconds,
            records_processed=summary.inserted + summary.updated + summary.unchanged,
            inserted=summary.inserted,
            updated=summary.updated,
            unchanged=summary.unchanged,
            commits=summary.commits,
            succeeded=summary.succeeded,
            cancelled=summary.cancelled,
            peak_rss_bytes=stats.peak_rss_bytes if detailed else None,
            cpu_percent=stats.cpu_percent if detailed else None,
            peak_traced_bytes=stats.peak_traced_bytes,
        )
        self.metrics.iterations.append(metrics)
        return metrics


__all__ = ["IterationMetrics", "StressTestMetrics", "StressTestMetricsCollector"]
