"""
Benchmark Runner.

Executes benchmark scenarios phase by phase and collects latency samples.

Each scenario runs as ``IDLE -> SETUP -> TIMING(1..P) -> TEARDOWN -> IDLE``.
Operations are issued strictly one at a time, in increasing index order.
"""

import json
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, Callable

import structlog
from structlog.contextvars import bound_contextvars

from crudbench.benchmark.recorder import LatencyRecorder
from crudbench.benchmark.stats import SummaryStatistics, summarize
from crudbench.benchmark.timing import TimedCallFailed, timed_call
from crudbench.config.settings import BenchmarkSettings
from crudbench.core.errors import (
    ArtifactWriteFailed,
    BenchmarkError,
    PhaseFailed,
    SetupFailed,
)
from crudbench.graph.adapter import BackendAdapter, EntityHandle, EntityKind

logger = structlog.get_logger(__name__)


@dataclass
class BenchmarkConfig:
    """Configuration for benchmark execution."""

    num_samples: int = 10000
    output_dir: str = "."
    save_raw_results: bool = True
    clear_before_run: bool = True
    summary_path: str | None = None

    @classmethod
    def from_settings(cls, settings: BenchmarkSettings) -> "BenchmarkConfig":
        return cls(
            num_samples=settings.num_samples,
            output_dir=settings.output_dir,
            save_raw_results=settings.save_raw_results,
            clear_before_run=settings.clear_before_run,
            summary_path=settings.summary_path,
        )


class ScenarioState(str, Enum):
    """Lifecycle states of a scenario."""

    IDLE = "idle"
    SETUP = "setup"
    TIMING = "timing"
    TEARDOWN = "teardown"


class PhaseStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScenarioContext:
    """State owned by the orchestrator for one scenario run."""

    adapter: BackendAdapter
    num_samples: int
    nodes: list[EntityHandle] = field(default_factory=list)
    edges: list[EntityHandle] = field(default_factory=list)

    def discard_handles(self) -> None:
        self.nodes.clear()
        self.edges.clear()


@dataclass(frozen=True)
class TimedPhase:
    """
    One timed step of a scenario.

    ``operation(ctx, i)`` is the single backend call measured for index ``i``.
    ``on_result(ctx, i, value)`` runs untimed after a successful call.
    """

    name: str
    operation: Callable[[ScenarioContext, int], Any]
    description: str = ""
    on_result: Callable[[ScenarioContext, int, Any], None] | None = None


class BenchmarkScenario(ABC):
    """Abstract base class for benchmark scenarios."""

    name: str = "scenario"
    description: str = ""

    # Overrides the configured sample count when set (e.g. warm-up)
    num_samples: int | None = None

    def setup(self, ctx: ScenarioContext) -> None:
        """Untimed preparation, e.g. creating the handle pools."""

    @abstractmethod
    def phases(self) -> list[TimedPhase]:
        """Ordered timed phases of the scenario."""

    def cleanup(self, ctx: ScenarioContext) -> None:
        """Scenario-specific teardown run before the store is cleared."""


def create_node_pool(
    ctx: ScenarioContext,
    count: int,
    properties: dict[str, Any] | None = None,
) -> list[EntityHandle]:
    """Create ``count`` nodes untimed, tracking handles in creation order."""
    for _ in range(count):
        ctx.nodes.append(ctx.adapter.create_entity(EntityKind.NODE, properties=properties))
    return ctx.nodes


def create_edge_pool(
    ctx: ScenarioContext,
    properties: dict[str, Any] | None = None,
) -> list[EntityHandle]:
    """
    Create the edge pool for edge scenarios.

    Materializes ``2N`` endpoint nodes, then ``N`` edges from node ``i`` to
    node ``i + N``.
    """
    n = ctx.num_samples
    create_node_pool(ctx, 2 * n)
    for i in range(n):
        ctx.edges.append(
            ctx.adapter.create_entity(
                EntityKind.EDGE,
                endpoints=(ctx.nodes[i], ctx.nodes[i + n]),
                properties=properties,
            )
        )
    return ctx.edges


@dataclass
class PhaseResult:
    """Result of one timed phase."""

    scenario: str
    phase: str
    artifact_name: str
    num_samples: int
    samples: list[float] = field(default_factory=list)
    statistics: SummaryStatistics | None = None
    status: PhaseStatus = PhaseStatus.COMPLETED
    artifact_path: Path | None = None
    error: str | None = None
    failed_index: int | None = None

    @property
    def phase_spec(self) -> str:
        return f"numSamples={self.num_samples}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "artifact_name": self.artifact_name,
            "status": self.status.value,
            "num_samples": self.num_samples,
            "recorded_samples": len(self.samples),
            "statistics": self.statistics.to_dict() if self.statistics else None,
            "artifact_path": str(self.artifact_path) if self.artifact_path else None,
            "error": self.error,
            "failed_index": self.failed_index,
        }


@dataclass
class ScenarioResult:
    """Result of a scenario run."""

    name: str
    description: str
    num_samples: int
    started_at: datetime
    completed_at: datetime | None = None
    phases: list[PhaseResult] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    error: BenchmarkError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "num_samples": self.num_samples,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": (
                (self.completed_at - self.started_at).total_seconds()
                if self.completed_at else None
            ),
            "succeeded": self.succeeded,
            "phases": [p.to_dict() for p in self.phases],
            "errors": self.errors,
        }


class BenchmarkOrchestrator:
    """
    Runs benchmark scenarios against one backend adapter.

    Features:
    - Untimed bulk setup
    - Per-operation latency capture, one request in flight
    - Per-phase statistics and artifacts
    - Unconditional teardown
    """

    def __init__(
        self,
        adapter: BackendAdapter,
        config: BenchmarkConfig | None = None,
        recorder: LatencyRecorder | None = None,
        summary_callback: Callable[[PhaseResult], None] | None = None,
    ):
        self.adapter = adapter
        self.config = config or BenchmarkConfig()
        self.recorder = recorder or LatencyRecorder(self.config.output_dir)
        self._summary_callback = summary_callback
        self._results: list[ScenarioResult] = []
        self.state = ScenarioState.IDLE

    def _transition(self, state: ScenarioState) -> None:
        logger.debug("Scenario state", previous=self.state.value, current=state.value)
        self.state = state

    def run_scenario(
        self,
        scenario: BenchmarkScenario,
        num_samples: int | None = None,
    ) -> ScenarioResult:
        """
        Run a benchmark scenario.

        Args:
            scenario: The scenario to run
            num_samples: Sample count per timed phase; defaults to the
                scenario's own count, then to the configured count

        Returns:
            Scenario result with per-phase samples and statistics
        """
        if num_samples is None:
            num_samples = scenario.num_samples
        if num_samples is None:
            num_samples = self.config.num_samples
        if num_samples < 0:
            raise ValueError(f"num_samples must be non-negative, got {num_samples}")

        ctx = ScenarioContext(adapter=self.adapter, num_samples=num_samples)
        result = ScenarioResult(
            name=scenario.name,
            description=scenario.description,
            num_samples=num_samples,
            started_at=datetime.now(timezone.utc),
        )

        with bound_contextvars(scenario=scenario.name):
            logger.info(
                "Starting benchmark",
                description=scenario.description,
                num_samples=num_samples,
            )

            try:
                self._transition(ScenarioState.SETUP)
                try:
                    scenario.setup(ctx)
                except Exception as e:
                    raise SetupFailed(scenario.name, e) from e

                self._transition(ScenarioState.TIMING)
                phases = scenario.phases()
                for phase in phases:
                    artifact_name = (
                        scenario.name if len(phases) == 1 else f"{scenario.name}_{phase.name}"
                    )
                    self._run_phase(scenario, phase, artifact_name, ctx, result)

                logger.info("Benchmark completed", phases=len(result.phases))

            except BenchmarkError as e:
                result.error = e
                result.errors.append(str(e))
                logger.error("Benchmark failed", error=str(e))

            finally:
                self._teardown(scenario, ctx, result)
                result.completed_at = datetime.now(timezone.utc)

        self._results.append(result)
        return result

    def _run_phase(
        self,
        scenario: BenchmarkScenario,
        phase: TimedPhase,
        artifact_name: str,
        ctx: ScenarioContext,
        result: ScenarioResult,
    ) -> None:
        """Run one timed phase; raises PhaseFailed on the first failing call."""
        phase_result = PhaseResult(
            scenario=scenario.name,
            phase=phase.name,
            artifact_name=artifact_name,
            num_samples=ctx.num_samples,
        )
        result.phases.append(phase_result)
        series = phase_result.samples

        with bound_contextvars(phase=phase.name):
            logger.info("Running timed phase", description=phase.description)

            for i in range(ctx.num_samples):
                call = partial(phase.operation, ctx, i)
                try:
                    timed = timed_call(call)
                except TimedCallFailed as e:
                    series.append(e.elapsed_ms)
                    self._fail_phase(phase_result, i, e.error)
                    raise PhaseFailed(scenario.name, phase.name, i, e.error) from e.error

                series.append(timed.elapsed_ms)

                if phase.on_result is not None:
                    try:
                        phase.on_result(ctx, i, timed.value)
                    except Exception as e:
                        self._fail_phase(phase_result, i, e)
                        raise PhaseFailed(scenario.name, phase.name, i, e) from e

            phase_result.statistics = summarize(series)

            if self.config.save_raw_results:
                try:
                    phase_result.artifact_path = self.recorder.persist(
                        artifact_name, phase_result.phase_spec, series
                    )
                except ArtifactWriteFailed as e:
                    phase_result.error = str(e)
                    result.errors.append(str(e))
                    logger.error("Latency artifact not written", error=str(e))

            self._report(phase_result)

    def _fail_phase(self, phase_result: PhaseResult, index: int, error: Exception) -> None:
        phase_result.status = PhaseStatus.FAILED
        phase_result.failed_index = index
        phase_result.error = str(error)
        phase_result.statistics = summarize(phase_result.samples)
        logger.error(
            "Timed operation failed",
            index=index,
            error=str(error),
            recorded_samples=len(phase_result.samples),
        )
        self._report(phase_result)

    def _report(self, phase_result: PhaseResult) -> None:
        stats = phase_result.statistics
        if stats is not None:
            logger.info(
                "Timings statistics",
                status=phase_result.status.value,
                **stats.to_dict(),
            )
        if self._summary_callback is not None:
            self._summary_callback(phase_result)

    def _teardown(
        self,
        scenario: BenchmarkScenario,
        ctx: ScenarioContext,
        result: ScenarioResult,
    ) -> None:
        """Scenario cleanup plus a full store clear; failures are only logged."""
        self._transition(ScenarioState.TEARDOWN)

        try:
            scenario.cleanup(ctx)
        except Exception as e:
            result.errors.append(f"Cleanup failed: {e}")
            logger.warning("Scenario cleanup failed", error=str(e))

        try:
            self.adapter.clear_all()
        except Exception as e:
            result.errors.append(f"Teardown failed: {e}")
            logger.warning("Teardown failed", error=str(e))

        ctx.discard_handles()
        self._transition(ScenarioState.IDLE)

    def run_batch(self, scenarios: list[BenchmarkScenario]) -> list[ScenarioResult]:
        """
        Run scenarios in order; one scenario's failure does not stop the next.

        Returns:
            Results in the order the scenarios ran
        """
        run_id = uuid.uuid4().hex[:12]
        with bound_contextvars(run_id=run_id):
            logger.info(
                "Starting benchmark run",
                backend=self.adapter.name,
                scenarios=[s.name for s in scenarios],
            )

            if self.config.clear_before_run:
                try:
                    self.adapter.clear_all()
                except Exception as e:
                    logger.error("Initial clear failed", error=str(e))

            results = [self.run_scenario(scenario) for scenario in scenarios]

            if self.config.summary_path:
                self._save_summary(results, Path(self.config.summary_path), run_id)

            logger.info(
                "Benchmark run finished",
                succeeded=sum(r.succeeded for r in results),
                failed=sum(not r.succeeded for r in results),
            )
        return results

    def _save_summary(self, results: list[ScenarioResult], path: Path, run_id: str) -> None:
        """Save the JSON run summary; failures are logged."""
        summary = {
            "backend": self.adapter.name,
            "run_id": run_id,
            "scenarios": [r.to_dict() for r in results],
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(summary, f, indent=2)
        except OSError as e:
            logger.error("Run summary not written", path=str(path), error=str(e))
            return

        logger.info("Benchmark summary saved", path=str(path))

    def get_results(self) -> list[dict[str, Any]]:
        """Get all scenario results."""
        return [r.to_dict() for r in self._results]

    def get_summary(self) -> dict[str, Any]:
        """Get summary of all scenario runs."""
        if not self._results:
            return {"message": "No benchmarks have been run"}

        return {
            "total_benchmarks": len(self._results),
            "benchmarks": [
                {
                    "name": r.name,
                    "succeeded": r.succeeded,
                    "phases": {
                        p.phase: p.statistics.to_dict()["mean_ms"] if p.statistics else None
                        for p in r.phases
                    },
                }
                for r in self._results
            ],
        }
