from __future__ import annotations

import io
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from rich import box
from rich.console import Console, RenderableType
from rich.table import Table

from seedflow.domain.models import ReportFormat, RunSummary, SeederStatus
from seedflow.orchestrator import PlannedSeeder
from seedflow.stress.metrics import StressTestMetrics
from seedflow.utils.logging import get_logger

log = get_logger(__name__)

_STATUS_STYLES = {
    SeederStatus.APPLIED: "green",
    SeederStatus.SKIPPED: "yellow",
    SeederStatus.FAILED: "bold red",
    SeederStatus.CANCELLED: "magenta",
    SeederStatus.NOT_RUN: "dim",
}


def _format_bytes(value: Optional[int]) -> str:
    if not value:
        return "N/A"
    mem_mb = value / (1024 * 1024)
    if mem_mb >= 1024:
        return f"{mem_mb / 1024:.2f} GB"
    return f"{mem_mb:.2f} MB"


def get_container_resources() -> Dict[str, Optional[str]]:
    """
    Get container resource constraints.

    Reads SEEDFLOW_CPU_LIMIT / SEEDFLOW_MEMORY_LIMIT first, then cgroup v2 files
    when running in a container. Returns dict with 'cpus' and 'memory' keys.
    """
    resources: Dict[str, Optional[str]] = {
        "cpus": os.environ.get("SEEDFLOW_CPU_LIMIT"),
        "memory": os.environ.get("SEEDFLOW_MEMORY_LIMIT"),
    }

    if resources["cpus"] is None:
        try:
            with open("/sys/fs/cgroup/cpu.max", "r") as f:
                parts = f.read().strip().split()
            if len(parts) == 2 and parts[0] != "max":
                resources["cpus"] = f"{int(parts[0]) / int(parts[1]):.1f}"
        except (FileNotFoundError, PermissionError, ValueError):
            pass

    if resources["memory"] is None:
        try:
            with open("/sys/fs/cgroup/memory.max", "r") as f:
                content = f.read().strip()
            if content != "max":
                resources["memory"] = _format_bytes(int(content))
        except (FileNotFoundError, PermissionError, ValueError):
            pass

    return resources


def build_run_table(summary: RunSummary) -> Table:
    title = f"Seeding Run [{summary.environment}]"
    if summary.cancelled:
        title += " (cancelled)"
    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=f"{summary.commits} commit(s) in {summary.duration_seconds:.2f}s",
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Seeder", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Inserted", justify="right", style="magenta")
    table.add_column("Updated", justify="right", style="magenta")
    table.add_column("Unchanged", justify="right")
    table.add_column("Commits", justify="right", style="blue")
    table.add_column("Duration (s)", justify="right", style="green")
    table.add_column("Notes", overflow="fold")

    for position, outcome in enumerate(summary.outcomes, start=1):
        style = _STATUS_STYLES[outcome.status]
        notes = outcome.error or outcome.reason or ""
        if outcome.integrity_warnings:
            notes = f"{notes} {len(outcome.integrity_warnings)} integrity warning(s)".strip()
        table.add_row(
            str(position),
            outcome.seeder_name,
            f"[{style}]{outcome.status.value}[/{style}]",
            f"{outcome.inserted:,}",
            f"{outcome.updated:,}",
            f"{outcome.unchanged:,}",
            str(outcome.commits),
            f"{outcome.duration_seconds:.2f}",
            notes,
        )
    return table


def print_run_summary(summary: RunSummary, console: Optional[Console] = None) -> None:
    """Render a seeding run summary as a rich table."""
    console = console or Console()
    if not summary.outcomes:
        console.print("[yellow]No seeders registered.[/yellow]")
        return
    console.print(build_run_table(summary))


def print_plan(planned: Iterable[PlannedSeeder], console: Optional[Console] = None) -> None:
    console = console or Console()
    table = Table(title="Execution Plan", box=box.ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Seeder", style="cyan", no_wrap=True)
    table.add_column("Depends on")
    table.add_column("Batch", justify="right", style="blue")
    table.add_column("Decision")
    for row in planned:
        decision = "[green]run[/green]" if row.admitted else f"[yellow]skip[/yellow] ({row.reason})"
        table.add_row(
            str(row.position),
            row.name,
            ", ".join(row.dependencies) or "-",
            str(row.batch_size),
            decision,
        )
    console.print(table)


def build_stress_tables(metrics: StressTestMetrics) -> List[RenderableType]:
    """
    Summary and per-iteration tables for a stress run.

    Handles runs stopped early: iterations that never started are simply absent.
    """
    config = metrics.configuration
    resources = get_container_resources()
    resource_parts = []
    if resources["cpus"]:
        resource_parts.append(f"CPU: {resources['cpus']} cores")
    if resources["memory"]:
        resource_parts.append(f"Memory: {resources['memory']}")

    title = f"Seedflow Stress Test Report - {metrics.started_at:%Y-%m-%d %H:%M:%S} UTC"
    if resource_parts:
        title = f"{title}\n[dim]Container Resources: {' │ '.join(resource_parts)}[/dim]"

    summary = Table(title=title, box=box.ROUNDED, show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Dataset size", f"{config.dataset_size.name} ({int(config.dataset_size):,} records)")
    summary.add_row("Batch size", str(config.batch_size))
    summary.add_row("Environment", config.environment)
    summary.add_row("Iterations", f"{len(metrics.iterations)} / {config.iterations}")
    summary.add_row("Clear between iterations", "yes" if config.clear_between_iterations else "no")
    summary.add_row("Total duration (s)", f"{metrics.total_duration_seconds:.3f}")
    summary.add_row("Records processed", f"{metrics.total_records:,}")
    summary.add_row("Throughput (records/s)", f"{metrics.records_per_second:,.2f}")
    summary.add_row("Batches committed", f"{metrics.batch_count:,}")
    summary.add_row("Operations per batch (avg)", f"{metrics.avg_batch_operations:,.1f}")
    summary.add_row(
        "Batch latency ms (min/avg/max)",
        f"{metrics.min_batch_ms:.3f} / {metrics.avg_batch_ms:.3f} / {metrics.max_batch_ms:.3f}",
    )
    summary.add_row("Peak memory", _format_bytes(metrics.peak_rss_bytes))
    if config.trace_allocations:
        summary.add_row("Peak Python allocations", _format_bytes(metrics.peak_traced_bytes))
    summary.add_row("Result", "[green]success[/green]" if metrics.succeeded else "[red]incomplete[/red]")

    iterations = Table(title="Iterations", box=box.ROUNDED)
    iterations.add_column("#", justify="right", style="dim")
    iterations.add_column("Duration (s)", justify="right", style="green")
    iterations.add_column("Inserted", justify="right", style="magenta")
    iterations.add_column("Updated", justify="right", style="magenta")
    iterations.add_column("Unchanged", justify="right")
    iterations.add_column("Commits", justify="right", style="blue")
    iterations.add_column("Records/s", justify="right", style="bold green")
    iterations.add_column("Peak Memory", justify="right", style="yellow")
    iterations.add_column("CPU %", justify="right", style="red")
    for it in metrics.iterations:
        iterations.add_row(
            str(it.iteration),
            f"{it.duration_seconds:.3f}",
            f"{it.inserted:,}",
            f"{it.updated:,}",
            f"{it.unchanged:,}",
            str(it.commits),
            f"{it.records_per_second:,.2f}",
            _format_bytes(it.peak_rss_bytes),
            f"{it.cpu_percent:.1f}" if it.cpu_percent is not None else "N/A",
        )
    return [summary, iterations]


def render_stress_report(metrics: StressTestMetrics, width: int = 120) -> str:
    """Plain-text rendering of the stress report tables."""
    console = Console(record=True, width=width, file=io.StringIO(), color_system=None)
    for renderable in build_stress_tables(metrics):
        console.print(renderable)
    return console.export_text()


def write_stress_report(metrics: StressTestMetrics, results_dir: Path | str = "results") -> Path:
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    path = results_dir / f"stress-test-report-{timestamp}.txt"
    path.write_text(render_stress_report(metrics), encoding="utf-8")
    log.info("Stress report written", extra={"path": str(path)})
    return path


def report_stress(
    metrics: StressTestMetrics,
    report_format: ReportFormat,
    results_dir: Path | str = "results",
    console: Optional[Console] = None,
) -> Optional[Path]:
    """Emit the stress report to the console, a file, or both."""
    if report_format.to_console:
        console = console or Console()
        for renderable in build_stress_tables(metrics):
            console.print(renderable)
    if report_format.to_file:
        return write_stress_report(metrics, results_dir)
    return None
