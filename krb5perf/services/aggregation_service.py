"""
Result aggregation for a benchmark run.

Implements the collector side of the pipeline: results are partitioned into
success and failure duration sets and failures are tallied by message. The
aggregator is owned by a single thread and never shared with workers.
"""

from collections import Counter
from datetime import datetime
from typing import List

from krb5perf.core.interfaces import AuthResult, RunSummary
from krb5perf.utils.stats import summarize


class Aggregator:
    """
    Collects exactly ``iterations`` results and summarises them.

    Arrival order does not matter: every statistic is computed from the
    complete duration sets once collection is finished.

    Example:
        >>> aggregator = Aggregator(iterations=2)
        >>> aggregator.add(AuthResult(1, True, 0.010))
        >>> aggregator.add(AuthResult(2, False, 0.020, "denied"))
        >>> aggregator.errors
        Counter({'denied': 1})
    """

    def __init__(self, iterations: int, confidence: float = 0.95):
        """
        Args:
            iterations: Number of results the run will produce
            confidence: Confidence level for the interval of the mean
        """
        self.iterations = iterations
        self.confidence = confidence
        self.success_durations: List[float] = []
        self.failure_durations: List[float] = []
        self.errors: Counter = Counter()

    @property
    def received(self) -> int:
        return len(self.success_durations) + len(self.failure_durations)

    @property
    def complete(self) -> bool:
        return self.received == self.iterations

    def add(self, result: AuthResult) -> None:
        """
        Record one result.

        Raises:
            ValueError: If more results arrive than the run produces
        """
        if self.complete:
            raise ValueError(
                f"Received more than {self.iterations} results (sequence {result.sequence})"
            )

        if result.success:
            self.success_durations.append(result.elapsed)
        else:
            self.failure_durations.append(result.elapsed)
            message = result.error if result.error is not None else "unknown error"
            self.errors[message] += 1

    def summarize(
        self,
        start_time: datetime,
        elapsed_wall: float,
        parallelism: int
    ) -> RunSummary:
        """
        Build the immutable run summary.

        Raises:
            ValueError: If fewer results than ``iterations`` were received
        """
        if not self.complete:
            raise ValueError(
                f"Cannot summarize: received {self.received}/{self.iterations} results"
            )

        return RunSummary(
            start_time=start_time,
            elapsed_wall=elapsed_wall,
            iterations=self.iterations,
            parallelism=parallelism,
            success_count=len(self.success_durations),
            failure_count=len(self.failure_durations),
            success_stats=summarize(self.success_durations, self.confidence),
            failure_stats=summarize(self.failure_durations, self.confidence),
            errors=dict(self.errors),
        )
