from __future__ import annotations

import math
from typing import Iterable

from rich import box
from rich.console import Console
from rich.table import Table

from cache_bench.benchmark.stats import BenchmarkReport, safe_ratio
from cache_bench.domain.models import Record
from cache_bench.errors import BenchmarkPhaseError

_VERDICTS = {
    "excellent": "[bold green]Redis shows a massive improvement; cache these reads.[/bold green]",
    "good": "[green]Redis shows a significant improvement; caching is beneficial.[/green]",
    "modest": "[yellow]Redis shows some improvement; worth it for high-traffic reads.[/yellow]",
    "slower": (
        "[red]Redis was not faster here. Network or container overhead likely "
        "dominates; production setups typically see 5-50x.[/red]"
    ),
}


def _fmt(value: float, fmt: str) -> str:
    if math.isinf(value) or math.isnan(value):
        return "undefined"
    return format(value, fmt)


def print_report(report: BenchmarkReport, console: Console | None = None) -> None:
    """
    Render a benchmark report as rich tables: per-tier metrics, then the comparison.
    """
    console = console or Console()
    pg, rd = report.postgres, report.redis

    metrics = Table(
        title=(
            "PostgreSQL vs Redis Read Latency\n"
            f"[dim]{report.records:,} users | {report.operations:,} reads per tier | "
            f"{report.warm_size:,} warmed | batch {report.batch_size:,}[/dim]"
        ),
        box=box.ROUNDED,
    )
    metrics.add_column("Metric", style="cyan", no_wrap=True)
    metrics.add_column("PostgreSQL", justify="right", style="magenta")
    metrics.add_column("Redis", justify="right", style="red")

    rows = [
        ("Average access (ms)", pg.mean_ms, rd.mean_ms, ".3f"),
        ("Median access (ms)", pg.median_ms, rd.median_ms, ".3f"),
        ("p95 access (ms)", pg.p95_ms, rd.p95_ms, ".3f"),
        ("Fastest access (ms)", pg.min_ms, rd.min_ms, ".3f"),
        ("Slowest access (ms)", pg.max_ms, rd.max_ms, ".3f"),
        ("Std deviation (ms)", pg.stddev_ms, rd.stddev_ms, ".3f"),
        ("Total access time (s)", pg.total_ms / 1000, rd.total_ms / 1000, ".2f"),
        ("Wall clock time (s)", pg.wall_clock_ms / 1000, rd.wall_clock_ms / 1000, ".2f"),
        ("Operations per second", pg.ops_per_second, rd.ops_per_second, ",.0f"),
    ]
    for label, pg_value, rd_value, fmt in rows:
        metrics.add_row(label, _fmt(pg_value, fmt), _fmt(rd_value, fmt))
    console.print(metrics)

    cmp = report.comparison
    comparison = Table(title="Comparison", box=box.ROUNDED, show_header=False)
    comparison.add_column("Metric", style="cyan", no_wrap=True)
    comparison.add_column("Value", justify="right", style="bold green")
    if cmp.speed_factor >= 1 or math.isinf(cmp.speed_factor):
        comparison.add_row("Redis speed factor", f"{_fmt(cmp.speed_factor, '.2f')}x faster")
    else:
        slower = safe_ratio(1.0, cmp.speed_factor)
        comparison.add_row("Redis speed factor", f"{_fmt(slower, '.2f')}x slower")
    comparison.add_row("Time saved per operation", f"{_fmt(cmp.time_saved_per_op_ms, '.3f')} ms")
    comparison.add_row("Total time difference", f"{_fmt(cmp.total_time_saved_ms / 1000, '.2f')} s")
    comparison.add_row("Throughput ratio", f"{_fmt(cmp.throughput_ratio, '.2f')}x")
    console.print(comparison)
    console.print(_VERDICTS.get(cmp.verdict, cmp.verdict))

    if report.cleanup_errors:
        console.print(
            f"[yellow]Cleanup reported {len(report.cleanup_errors)} error(s); "
            f"first: {report.cleanup_errors[0]}[/yellow]"
        )


def print_failure(error: BenchmarkPhaseError, console: Console | None = None) -> None:
    console = console or Console(stderr=True)
    console.print(f"[bold red]Benchmark aborted in phase '{error.phase}'[/bold red]")
    console.print(f"[red]{type(error.cause).__name__}: {error.cause}[/red]")


def print_records(records: Iterable[Record], console: Console | None = None) -> None:
    console = console or Console()
    table = Table(box=box.ROUNDED)
    table.add_column("ID", justify="right", style="magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Email")
    table.add_column("Created", style="dim")
    for record in records:
        table.add_row(str(record.id), record.name, record.email, record.created_at.isoformat())
    console.print(table)
