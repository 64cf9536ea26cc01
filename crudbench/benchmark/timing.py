"""
Timed Call Wrapper.

Measures the elapsed time of exactly one backend invocation.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable

NANOS_PER_MILLI = 1_000_000


@dataclass(frozen=True)
class TimedResult:
    """Value returned by a timed operation and its latency."""

    value: Any
    elapsed_ms: float


class TimedCallFailed(Exception):
    """Raised when a timed operation fails; the elapsed time is still charged."""

    def __init__(self, elapsed_ms: float, error: Exception):
        super().__init__(f"Timed call failed after {elapsed_ms:.6f} ms: {error}")
        self.elapsed_ms = elapsed_ms
        self.error = error


def timed_call(operation: Callable[[], Any]) -> TimedResult:
    """
    Run a zero-argument operation once and measure it.

    The clock is read immediately before and after the invocation, so any
    bookkeeping done by the caller falls outside the measured window.

    Args:
        operation: Closure over one backend call

    Returns:
        The operation's value and elapsed milliseconds

    Raises:
        TimedCallFailed: If the operation raised; carries the elapsed time
    """
    start = time.perf_counter_ns()
    try:
        value = operation()
    except Exception as e:
        end = time.perf_counter_ns()
        raise TimedCallFailed((end - start) / NANOS_PER_MILLI, e) from e
    end = time.perf_counter_ns()

    return TimedResult(value=value, elapsed_ms=(end - start) / NANOS_PER_MILLI)
