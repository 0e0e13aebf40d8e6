"""Result types and reporting for load runs."""
import statistics
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class WorkerResult:
    """What one worker did during a run."""

    name: str
    operations: int
    elapsed_ms: float
    latencies_ms: list[float] = field(default_factory=list)


@dataclass
class BenchmarkReport:
    """Aggregated outcome of a set of workers run together."""

    name: str
    workers: list[WorkerResult]
    wall_time_ms: float

    @property
    def total_operations(self) -> int:
        return sum(worker.operations for worker in self.workers)

    @property
    def throughput_ops(self) -> float:
        """Operations per second of wall-clock time."""
        if self.wall_time_ms <= 0:
            return 0.0
        return round(self.total_operations / (self.wall_time_ms / 1000), 1)

    @property
    def latencies_ms(self) -> list[float]:
        return [latency for worker in self.workers for latency in worker.latencies_ms]

    def percentiles(self) -> dict[str, float]:
        return calculate_percentiles(self.latencies_ms)


def calculate_percentiles(latencies: list[float]) -> dict[str, float]:
    """Calculate latency percentiles from a list of latencies."""
    if not latencies:
        return {
            "min": 0, "p50": 0, "p95": 0, "p99": 0, "max": 0,
            "mean": 0, "stddev": 0,
        }

    sorted_latencies = sorted(latencies)
    n = len(sorted_latencies)

    # Use statistics.quantiles for proper percentile calculation
    if n >= 4:
        quantiles = statistics.quantiles(sorted_latencies, n=100)
        p50 = quantiles[49]
        p95 = quantiles[94]
        p99 = quantiles[98]
    else:
        # Fallback for small sample sizes
        p50 = sorted_latencies[n // 2]
        p95 = sorted_latencies[min(int(n * 0.95), n - 1)]
        p99 = sorted_latencies[min(int(n * 0.99), n - 1)]

    return {
        "min": round(sorted_latencies[0], 2),
        "p50": round(p50, 2),
        "p95": round(p95, 2),
        "p99": round(p99, 2),
        "max": round(sorted_latencies[-1], 2),
        "mean": round(statistics.mean(sorted_latencies), 2),
        "stddev": round(statistics.stdev(sorted_latencies), 2) if n > 1 else 0,
    }


def generate_markdown_report(
    reports: list[BenchmarkReport],
    title: str = "User Service Load Report",
) -> str:
    """Generate a markdown report with one summary row per run and a per-worker breakdown."""
    lines = [
        f"# {title}",
        "",
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "## Summary",
        "",
        "| Run | Workers | Ops | Wall (ms) | Ops/s | Min | P50 | P95 | P99 | Max |",
        "|-----|---------|-----|-----------|-------|-----|-----|-----|-----|-----|",
    ]
    for report in reports:
        p = report.percentiles()
        lines.append(
            f"| {report.name} | {len(report.workers)} | {report.total_operations} | "
            f"{round(report.wall_time_ms, 1)} | {report.throughput_ops} | {p['min']} | "
            f"{p['p50']} | {p['p95']} | {p['p99']} | {p['max']} |",
        )

    for report in reports:
        lines.extend([
            "",
            f"## {report.name}",
            "",
            "| Worker | Ops | Elapsed (ms) |",
            "|--------|-----|--------------|",
        ])
        lines.extend(
            f"| {worker.name} | {worker.operations} | {round(worker.elapsed_ms, 1)} |"
            for worker in report.workers
        )

    return "\n".join(lines) + "\n"
