"""
Domain models for Seedflow.

Defines the persisted seed history row, the per-run summary returned by the
orchestrator, and the immutable stress test configuration.
"""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SeedHistoryRecord(BaseModel):
    """
    One append-only audit row written after a seeder completes.
    """

    seeder_name: str = Field(..., description="Name of the seeder that ran.")
    environment: str = Field(..., description="Active environment at run time.")
    applied_at: datetime = Field(default_factory=utc_now, description="UTC completion time.")
    inserted: int = Field(0, ge=0)
    updated: int = Field(0, ge=0)
    unchanged: int = Field(0, ge=0)
    content_hash: Optional[str] = Field(None, description="Hash of the seed source, if known.")

    model_config = {
        "frozen": True,
    }


class SeederStatus(str, enum.Enum):
    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"
    NOT_RUN = "not_run"


@dataclass
class SeederOutcome:
    """Terminal status and counts for one seeder within one run."""

    seeder_name: str
    status: SeederStatus
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    commits: int = 0
    duration_seconds: float = 0.0
    reason: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    integrity_warnings: List[str] = field(default_factory=list)
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("exception")
        payload["status"] = self.status.value
        payload["duration_seconds"] = round(self.duration_seconds, 4)
        return payload


@dataclass
class RunSummary:
    """Ordered outcomes of one orchestration run, one entry per registered seeder."""

    environment: str
    outcomes: List[SeederOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    cancelled: bool = False

    def outcome(self, seeder_name: str) -> SeederOutcome:
        for outcome in self.outcomes:
            if outcome.seeder_name == seeder_name:
                return outcome
        raise KeyError(seeder_name)

    @property
    def order(self) -> List[str]:
        return [outcome.seeder_name for outcome in self.outcomes]

    @property
    def succeeded(self) -> bool:
        return not self.cancelled and all(
            o.status in (SeederStatus.APPLIED, SeederStatus.SKIPPED) for o in self.outcomes
        )

    @property
    def inserted(self) -> int:
        return sum(o.inserted for o in self.outcomes)

    @property
    def updated(self) -> int:
        return sum(o.updated for o in self.outcomes)

    @property
    def unchanged(self) -> int:
        return sum(o.unchanged for o in self.outcomes)

    @property
    def commits(self) -> int:
        return sum(o.commits for o in self.outcomes)

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def raise_for_failure(self) -> None:
        """Re-raise the first recorded apply failure, if any."""
        for outcome in self.outcomes:
            if outcome.status is SeederStatus.FAILED and outcome.exception is not None:
                raise outcome.exception

    def to_dict(self) -> Dict[str, Any]:
        return {
            "environment": self.environment,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "cancelled": self.cancelled,
            "succeeded": self.succeeded,
            "totals": {
                "inserted": self.inserted,
                "updated": self.updated,
                "unchanged": self.unchanged,
                "commits": self.commits,
            },
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


class DatasetSize(enum.IntEnum):
    """Stress test dataset tiers; the value is the number of primary records."""

    SMALL = 1_000
    MEDIUM = 10_000
    LARGE = 100_000
    EXTRA_LARGE = 1_000_000


class ReportFormat(str, enum.Enum):
    CONSOLE = "console"
    FILE = "file"
    CONSOLE_AND_FILE = "console_and_file"

    @property
    def to_console(self) -> bool:
        return self in (ReportFormat.CONSOLE, ReportFormat.CONSOLE_AND_FILE)

    @property
    def to_file(self) -> bool:
        return self in (ReportFormat.FILE, ReportFormat.CONSOLE_AND_FILE)


class StressTestConfiguration(BaseModel):
    """
    Immutable settings for one stress harness run.
    """

    dataset_size: DatasetSize = Field(DatasetSize.MEDIUM, description="Number of primary records.")
    batch_size: int = Field(100, ge=1, description="Operations per committed chunk.")
    iterations: int = Field(1, ge=1, description="Number of seeding passes.")
    enable_detailed_metrics: bool = Field(True, description="Sample RSS/CPU per iteration.")
    trace_allocations: bool = Field(
        False, description="Track peak Python allocations with tracemalloc; slows seeding."
    )
    report_format: ReportFormat = Field(ReportFormat.CONSOLE)
    clear_between_iterations: bool = Field(True)
    environment: str = Field("Development", description="Environment the seeders run under.")
    seed: int = Field(42, description="Deterministic RNG seed for the dataset generator.")
    report_dir: str = Field("results", description="Where file reports are written.")

    model_config = {
        "frozen": True,
    }

    @field_validator("dataset_size", mode="before")
    @classmethod
    def _parse_size(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.isdigit():
            return DatasetSize[value.strip().upper().replace("-", "_")]
        return value


__all__ = [
    "DatasetSize",
    "ReportFormat",
    "RunSummary",
    "SeedHistoryRecord",
    "SeederOutcome",
    "SeederStatus",
    "StressTestConfiguration",
    "utc_now",
]
