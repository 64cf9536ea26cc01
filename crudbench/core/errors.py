"""
Benchmark Error Taxonomy.

Backend failures are raised by the adapters; the orchestrator wraps them
into setup/phase failures that carry the scenario, phase and operation index.
"""


class BenchmarkError(Exception):
    """Base class for all harness errors."""


class BackendError(BenchmarkError):
    """Raised when a backend adapter call fails."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message)
        self.operation = operation


class BackendUnavailable(BackendError):
    """Transport-level failure: connection refused, reset or timed out."""


class BackendRejected(BackendError):
    """The backend answered with a well-formed failure response."""

    def __init__(
        self,
        message: str,
        operation: str = "unknown",
        status_code: int | None = None,
    ):
        super().__init__(message, operation)
        self.status_code = status_code


class NotFound(BackendError):
    """An operation addressed a handle the backend no longer recognizes."""


class ArtifactWriteFailed(BenchmarkError):
    """Raised when a latency series cannot be persisted."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class SetupFailed(BenchmarkError):
    """Raised when the untimed setup of a scenario fails."""

    def __init__(self, scenario: str, cause: Exception):
        super().__init__(f"Setup of scenario '{scenario}' failed: {cause}")
        self.scenario = scenario
        self.cause = cause


class PhaseFailed(BenchmarkError):
    """Raised when a timed phase aborts at a given operation index."""

    def __init__(self, scenario: str, phase: str, index: int, cause: Exception):
        super().__init__(
            f"Scenario '{scenario}' phase '{phase}' failed at operation {index}: {cause}"
        )
        self.scenario = scenario
        self.phase = phase
        self.index = index
        self.cause = cause
