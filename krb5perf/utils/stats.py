"""
Statistical utility functions for latency distributions.

Percentile policy: linear interpolation between the two closest ranks of
the sorted sample (NumPy's default "linear" method). For a sample of size n
sorted ascending, the p-th percentile sits at rank (n - 1) * p / 100.

Every function treats an empty sample as a regular input and returns the
zero sentinel instead of raising, since a run where every attempt succeeds
(or every attempt fails) leaves one bucket empty.
"""

import statistics
from typing import List, Sequence, Tuple

import numpy as np
from scipy import stats

from krb5perf.core.interfaces import BucketStats


def percentile(data: Sequence[float], pct: float) -> float:
    """Linear-interpolated percentile of data; [10, 20, 30, 40] at 95 is 38.5."""
    if len(data) == 0:
        return 0.0
    return float(np.percentile(np.asarray(data, dtype=float), pct))


def calculate_confidence_interval(
    data: Sequence[float],
    confidence: float = 0.95
) -> Tuple[float, float]:
    """
    Calculate confidence interval for the mean.

    Uses t-distribution, which matters for the small buckets a short run
    produces.

    Args:
        data: List of numerical values
        confidence: Confidence level (0-1)

    Returns:
        Tuple of (lower_bound, upper_bound)
    """
    if len(data) == 0:
        return (0.0, 0.0)

    mean = float(np.mean(data))
    if len(data) < 2:
        return (mean, mean)

    std_err = stats.sem(data)
    if std_err == 0:
        return (mean, mean)

    t_value = stats.t.ppf((1 + confidence) / 2, len(data) - 1)
    margin_of_error = float(t_value * std_err)

    return (mean - margin_of_error, mean + margin_of_error)


def summarize(durations: Sequence[float], confidence: float = 0.95) -> BucketStats:
    """
    Compute bucket statistics for a set of durations (seconds).

    Args:
        durations: Elapsed times of one bucket
        confidence: Confidence level for the interval of the mean

    Returns:
        BucketStats, all zero for an empty bucket
    """
    if len(durations) == 0:
        return BucketStats()

    data = np.asarray(durations, dtype=float)
    ci_low, ci_high = calculate_confidence_interval(durations, confidence)

    return BucketStats(
        count=len(durations),
        mean=float(np.mean(data)),
        max=float(np.max(data)),
        min=float(np.min(data)),
        p99=percentile(durations, 99),
        p95=percentile(durations, 95),
        median=float(statistics.median(durations)),
        std_dev=statistics.stdev(durations) if len(durations) > 1 else 0.0,
        ci_low=ci_low,
        ci_high=ci_high,
    )


_UNITS: List[Tuple[int, str]] = [
    (1_000_000, "ms"),
    (1_000, "µs"),
    (1, "ns"),
]


def _decimal(value: int, unit: int) -> str:
    """Render value/unit exactly, trimming trailing zeros."""
    whole, frac = divmod(value, unit)
    if frac == 0:
        return str(whole)
    width = len(str(unit)) - 1
    return f"{whole}.{str(frac).zfill(width).rstrip('0')}"


def format_duration(seconds: float) -> str:
    """
    Format seconds the way Go prints a time.Duration.

    Example:
        >>> format_duration(0.0385)
        '38.5ms'
        >>> format_duration(75.5)
        '1m15.5s'
    """
    ns = int(round(seconds * 1e9))
    if ns == 0:
        return "0s"

    sign = "-" if ns < 0 else ""
    ns = abs(ns)

    if ns < 1_000_000_000:
        for unit, suffix in _UNITS:
            if ns >= unit:
                return f"{sign}{_decimal(ns, unit)}{suffix}"

    total_seconds, frac_ns = divmod(ns, 1_000_000_000)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    text = f"{_decimal(secs * 1_000_000_000 + frac_ns, 1_000_000_000)}s"
    if hours:
        text = f"{hours}h{minutes}m{text}"
    elif minutes:
        text = f"{minutes}m{text}"
    return sign + text
