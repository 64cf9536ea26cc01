"""
Core Infrastructure Module.

Shared error types used by the adapters and the benchmark engine.
"""

from crudbench.core.errors import (
    ArtifactWriteFailed,
    BackendError,
    BackendRejected,
    BackendUnavailable,
    BenchmarkError,
    NotFound,
    PhaseFailed,
    SetupFailed,
)

__all__ = [
    "ArtifactWriteFailed",
    "BackendError",
    "BackendRejected",
    "BackendUnavailable",
    "BenchmarkError",
    "NotFound",
    "PhaseFailed",
    "SetupFailed",
]
