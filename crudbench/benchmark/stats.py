"""
Latency Statistics.

Summary statistics over one phase's latency series.
"""

import math
import statistics
from dataclasses import dataclass
from typing import Any

NAN = float("nan")


@dataclass(frozen=True)
class SummaryStatistics:
    """Read-only summary of a latency series (milliseconds)."""

    sample_count: int
    min: float = NAN
    max: float = NAN
    mean: float = NAN
    std_dev: float = NAN
    median: float = NAN
    p90: float = NAN
    p95: float = NAN
    p99: float = NAN

    @property
    def is_empty(self) -> bool:
        return self.sample_count == 0

    def to_dict(self) -> dict[str, Any]:
        def value(v: float) -> float | None:
            return None if math.isnan(v) else round(v, 6)

        return {
            "sample_count": self.sample_count,
            "min_ms": value(self.min),
            "max_ms": value(self.max),
            "mean_ms": value(self.mean),
            "std_dev_ms": value(self.std_dev),
            "median_ms": value(self.median),
            "p90_ms": value(self.p90),
            "p95_ms": value(self.p95),
            "p99_ms": value(self.p99),
        }


def _percentile(sorted_samples: list[float], p: float) -> float:
    n = len(sorted_samples)
    k = (n - 1) * (p / 100)
    f = int(k)
    c = f + 1 if f < n - 1 else f
    return sorted_samples[f] + (k - f) * (sorted_samples[c] - sorted_samples[f])


def summarize(series: list[float]) -> SummaryStatistics:
    """
    Calculate statistics from a latency series.

    An empty series yields ``sample_count == 0`` with every other field NaN.
    The standard deviation is the Bessel-corrected sample deviation, and 0.0
    for a single sample.
    """
    if not series:
        return SummaryStatistics(sample_count=0)

    sorted_samples = sorted(series)
    n = len(sorted_samples)

    return SummaryStatistics(
        sample_count=n,
        min=sorted_samples[0],
        max=sorted_samples[-1],
        mean=statistics.mean(sorted_samples),
        std_dev=statistics.stdev(sorted_samples) if n > 1 else 0.0,
        median=statistics.median(sorted_samples),
        p90=_percentile(sorted_samples, 90),
        p95=_percentile(sorted_samples, 95),
        p99=_percentile(sorted_samples, 99),
    )


def format_summary(stats: SummaryStatistics) -> str:
    """Render the one-line console summary for a phase."""
    return (
        f"numSamples: {stats.sample_count} "
        f"min: {stats.min:11.6f} max: {stats.max:11.6f} "
        f"mean: {stats.mean:11.6f} stdDev: {stats.std_dev:11.6f}"
    )
