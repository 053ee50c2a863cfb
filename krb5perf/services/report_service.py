"""
Plain-text rendering of a run summary.
"""

from typing import List

from krb5perf.core.interfaces import BucketStats, RunSummary
from krb5perf.utils.stats import format_duration


def _bucket_line(label: str, stats: BucketStats) -> str:
    return (
        f"{label}: avg: {format_duration(stats.mean)}, "
        f"max: {format_duration(stats.max)}, "
        f"min: {format_duration(stats.min)}, "
        f"99pct: {format_duration(stats.p99)}, "
        f"95pct: {format_duration(stats.p95)}"
    )


def _detail_line(label: str, stats: BucketStats) -> str:
    return (
        f"{label}: median: {format_duration(stats.median)}, "
        f"stddev: {format_duration(stats.std_dev)}, "
        f"95% CI of avg: [{format_duration(stats.ci_low)}, {format_duration(stats.ci_high)}]"
    )


class ReportService:
    """
    Formats a RunSummary into the fixed, line-oriented report.

    Error lines are ordered by descending count, then message, so two runs
    with the same outcome print the same text.
    """

    def __init__(self, detail: bool = False):
        self.detail = detail

    def render(self, summary: RunSummary) -> str:
        lines: List[str] = [
            f"Start time: {summary.start_time.strftime('%Y-%m-%d %H:%M:%S.%f')}",
            f"Elapsed time: {format_duration(summary.elapsed_wall)}",
            f"Average req/s: {summary.throughput:.2f}",
            f"Parallelism: {summary.parallelism}, "
            f"SUCCESS/FAIL: {summary.success_count}/{summary.failure_count}",
            _bucket_line("SUCCESS", summary.success_stats),
            _bucket_line("FAIL", summary.failure_stats),
        ]

        if self.detail:
            lines.append(_detail_line("SUCCESS", summary.success_stats))
            lines.append(_detail_line("FAIL", summary.failure_stats))

        lines.append("Errors:")
        for message, count in sorted(summary.errors.items(), key=lambda e: (-e[1], e[0])):
            lines.append(f"{count}\t{message}")

        return "\n".join(lines) + "\n"
