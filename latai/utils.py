"""
Latency statistics and formatting helpers.
"""

from dataclasses import dataclass, asdict
from typing import Sequence

import numpy as np
from scipy import stats


@dataclass
class StatisticalResult:
    """Summary of a latency sample, all values in milliseconds."""

    mean: float
    median: float
    std_dev: float
    min_val: float
    max_val: float
    p95: float
    confidence_interval_95: tuple[float, float]
    sample_size: int

    @property
    def jitter(self) -> float:
        """Spread of latencies across calls (sample standard deviation)."""
        return self.std_dev

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


def calculate_statistics(values: Sequence[float]) -> StatisticalResult:
    """
    Summarize per-call latencies.

    Args:
        values: Latencies in milliseconds

    Returns:
        StatisticalResult; all zeros for an empty sample
    """
    if len(values) == 0:
        return StatisticalResult(
            mean=0.0,
            median=0.0,
            std_dev=0.0,
            min_val=0.0,
            max_val=0.0,
            p95=0.0,
            confidence_interval_95=(0.0, 0.0),
            sample_size=0,
        )

    data = np.asarray(values, dtype=float)
    n = data.size
    mean = float(data.mean())
    std_dev = float(data.std(ddof=1)) if n > 1 else 0.0

    # t-interval of the mean; degenerate for a single call or zero spread
    if n > 1 and std_dev > 0:
        ci = stats.t.interval(0.95, n - 1, loc=mean, scale=std_dev / np.sqrt(n))
        confidence_interval_95 = (float(ci[0]), float(ci[1]))
    else:
        confidence_interval_95 = (mean, mean)

    return StatisticalResult(
        mean=mean,
        median=float(np.median(data)),
        std_dev=std_dev,
        min_val=float(data.min()),
        max_val=float(data.max()),
        p95=float(np.percentile(data, 95)),
        confidence_interval_95=confidence_interval_95,
        sample_size=n,
    )


def format_duration(ms: float) -> str:
    """
    Format a latency for display.

    Args:
        ms: Duration in milliseconds

    Returns:
        e.g. "850ms", "1.25s", "2m 3.0s"
    """
    if ms < 1000:
        return f"{ms:.0f}ms"
    elif ms < 60000:
        return f"{ms / 1000:.2f}s"
    else:
        minutes = int(ms // 60000)
        seconds = (ms % 60000) / 1000
        return f"{minutes}m {seconds:.1f}s"


def truncate_text(text: str, max_length: int = 100) -> str:
    """Shorten text to `max_length` characters, marking the cut with '...'."""
    text = " ".join(text.split())
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
