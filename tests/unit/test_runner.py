"""
Unit Tests for the Benchmark Orchestrator.

Runs scenarios against the in-memory backend and checks sampling,
failure propagation, teardown and artifact output.
"""

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest
import structlog

from crudbench.benchmark.recorder import LatencyRecorder, load_series
from crudbench.benchmark.runner import (
    BenchmarkConfig,
    BenchmarkOrchestrator,
    BenchmarkScenario,
    PhaseResult,
    PhaseStatus,
    ScenarioContext,
    ScenarioState,
    TimedPhase,
    create_edge_pool,
    create_node_pool,
)
from crudbench.benchmark.scenarios import (
    ReadNodesScenario,
    WarmUpScenario,
    build_catalog,
)
from crudbench.core.errors import (
    ArtifactWriteFailed,
    BackendRejected,
    BackendUnavailable,
    PhaseFailed,
    SetupFailed,
)
from crudbench.graph.adapter import BackendAdapter, EntityKind


class TwoPhaseScenario(BenchmarkScenario):
    """Reads every node, then deletes every node."""

    name = "two_phase"
    description = "Read then delete"

    def __init__(self) -> None:
        self.cleaned_up = 0

    def setup(self, ctx: ScenarioContext) -> None:
        create_node_pool(ctx, ctx.num_samples)

    def phases(self) -> list[TimedPhase]:
        return [
            TimedPhase("read", lambda ctx, i: ctx.adapter.read_entity(ctx.nodes[i])),
            TimedPhase("delete", lambda ctx, i: ctx.adapter.delete_entity(ctx.nodes[i])),
        ]

    def cleanup(self, ctx: ScenarioContext) -> None:
        self.cleaned_up += 1


def artifacts(directory: Path) -> list[Path]:
    return sorted(directory.glob("*.out"))


class TestPools:
    """Test cases for untimed pool creation."""

    def test_node_pool(self, fake_adapter: Any) -> None:
        """Test node pool size, order and properties."""
        ctx = ScenarioContext(adapter=fake_adapter, num_samples=3)

        nodes = create_node_pool(ctx, 3, {"prop": 42})

        assert len(nodes) == 3
        assert [fake_adapter.nodes[n.ref] for n in nodes] == [{"prop": 42}] * 3

    def test_edge_pool(self, fake_adapter: Any) -> None:
        """Test that edge i connects node i to node i+N."""
        ctx = ScenarioContext(adapter=fake_adapter, num_samples=3)

        edges = create_edge_pool(ctx)

        assert len(ctx.nodes) == 6
        assert len(edges) == 3
        for i, edge in enumerate(edges):
            assert edge.kind is EntityKind.EDGE
            source, target, _ = fake_adapter.edges[edge.ref]
            assert source == ctx.nodes[i].ref
            assert target == ctx.nodes[i + 3].ref


class TestBenchmarkOrchestrator:
    """Test cases for BenchmarkOrchestrator."""

    # =========================================================================
    # Successful Runs
    # =========================================================================

    def test_run_scenario_success(
        self,
        orchestrator: BenchmarkOrchestrator,
        fake_adapter: Any,
        tmp_path: Path,
    ) -> None:
        """Test one sample per operation, persisted in issue order."""
        result = orchestrator.run_scenario(ReadNodesScenario())

        assert result.succeeded
        assert result.num_samples == 5
        assert len(result.phases) == 1

        phase = result.phases[0]
        assert phase.status is PhaseStatus.COMPLETED
        assert phase.artifact_name == "read_nodes"
        assert len(phase.samples) == 5
        assert phase.statistics is not None
        assert phase.statistics.sample_count == 5
        assert phase.artifact_path is not None
        assert phase.artifact_path.name.endswith("_read_nodes_numSamples=5.out")
        assert load_series(phase.artifact_path) == pytest.approx(phase.samples, abs=1e-6)
        assert artifacts(tmp_path) == [phase.artifact_path]

    def test_operations_issued_in_index_order(
        self, orchestrator: BenchmarkOrchestrator, fake_adapter: Any
    ) -> None:
        """Test that operation i addresses pool entry i."""
        handles: list[Any] = []

        class RecordingScenario(ReadNodesScenario):
            def setup(self, ctx: ScenarioContext) -> None:
                super().setup(ctx)
                handles.extend(ctx.nodes)

        orchestrator.run_scenario(RecordingScenario())

        assert fake_adapter.read_log == handles

    def test_teardown_runs_once_on_success(
        self, orchestrator: BenchmarkOrchestrator, fake_adapter: Any
    ) -> None:
        """Test a single cleanup and store clear per scenario."""
        scenario = TwoPhaseScenario()

        result = orchestrator.run_scenario(scenario)

        assert result.succeeded
        assert scenario.cleaned_up == 1
        assert fake_adapter.calls["clear_all"] == 1
        assert fake_adapter.nodes == {}
        assert orchestrator.state is ScenarioState.IDLE

    def test_multi_phase_artifact_names(
        self, orchestrator: BenchmarkOrchestrator, tmp_path: Path
    ) -> None:
        """Test that multi-phase artifacts are named per phase."""
        result = orchestrator.run_scenario(TwoPhaseScenario())

        assert [p.artifact_name for p in result.phases] == [
            "two_phase_read",
            "two_phase_delete",
        ]
        assert len(artifacts(tmp_path)) == 2

    def test_zero_samples(
        self,
        fake_adapter: Any,
        recorder: LatencyRecorder,
        tmp_path: Path,
    ) -> None:
        """Test that N=0 runs every scenario and writes empty artifacts."""
        config = BenchmarkConfig(num_samples=0, output_dir=str(tmp_path))
        orchestrator = BenchmarkOrchestrator(fake_adapter, config, recorder=recorder)

        results = orchestrator.run_batch(build_catalog(warmup_samples=0))

        assert all(r.succeeded for r in results)
        files = artifacts(tmp_path)
        assert len(files) == 17
        assert all(f.read_text() == "" for f in files)
        for result in results:
            for phase in result.phases:
                assert phase.statistics is not None
                assert phase.statistics.sample_count == 0

    def test_scenario_sample_override(
        self, orchestrator: BenchmarkOrchestrator, fake_adapter: Any
    ) -> None:
        """Test that a scenario's own sample count wins over the config."""
        result = orchestrator.run_scenario(WarmUpScenario(num_samples=7))

        assert result.num_samples == 7
        assert len(result.phases[0].samples) == 7
        assert len(set(fake_adapter.read_log)) == 1

    def test_explicit_sample_count(self, orchestrator: BenchmarkOrchestrator) -> None:
        """Test the num_samples argument of run_scenario."""
        result = orchestrator.run_scenario(ReadNodesScenario(), num_samples=2)

        assert len(result.phases[0].samples) == 2

    def test_negative_sample_count_rejected(
        self, orchestrator: BenchmarkOrchestrator
    ) -> None:
        """Test that a negative sample count is refused."""
        with pytest.raises(ValueError):
            orchestrator.run_scenario(ReadNodesScenario(), num_samples=-1)

    def test_summary_callback_per_phase(
        self, fake_adapter: Any, recorder: LatencyRecorder
    ) -> None:
        """Test that each phase is reported once."""
        reported: list[PhaseResult] = []
        orchestrator = BenchmarkOrchestrator(
            fake_adapter,
            BenchmarkConfig(num_samples=3),
            recorder=recorder,
            summary_callback=reported.append,
        )

        orchestrator.run_scenario(TwoPhaseScenario())

        assert [p.phase for p in reported] == ["read", "delete"]
        assert all(p.statistics.sample_count == 3 for p in reported)

    def test_raw_results_disabled(
        self, fake_adapter: Any, recorder: LatencyRecorder, tmp_path: Path
    ) -> None:
        """Test that no artifact is written when raw results are off."""
        config = BenchmarkConfig(num_samples=3, save_raw_results=False)
        orchestrator = BenchmarkOrchestrator(fake_adapter, config, recorder=recorder)

        result = orchestrator.run_scenario(ReadNodesScenario())

        assert result.succeeded
        assert result.phases[0].artifact_path is None
        assert artifacts(tmp_path) == []

    # =========================================================================
    # Failure Handling
    # =========================================================================

    def test_timed_failure_aborts_phase(
        self,
        failing_adapter: Any,
        recorder: LatencyRecorder,
        tmp_path: Path,
    ) -> None:
        """Test a failure on the second of five calls."""
        adapter = failing_adapter(fail_on={"read_entity": 2})
        orchestrator = BenchmarkOrchestrator(
            adapter, BenchmarkConfig(num_samples=5), recorder=recorder
        )

        result = orchestrator.run_scenario(ReadNodesScenario())

        assert not result.succeeded
        assert isinstance(result.error, PhaseFailed)
        assert result.error.index == 1
        assert result.error.phase == "read"
        assert isinstance(result.error.cause, BackendUnavailable)
        assert "read_nodes" in str(result.error)

        phase = result.phases[0]
        assert phase.status is PhaseStatus.FAILED
        assert phase.failed_index == 1
        assert len(phase.samples) == 2
        assert phase.statistics.sample_count == 2
        assert adapter.calls["read_entity"] == 2
        assert adapter.calls["clear_all"] == 1
        assert artifacts(tmp_path) == []

    def test_failure_skips_remaining_phases(
        self, failing_adapter: Any, recorder: LatencyRecorder
    ) -> None:
        """Test that phases after a failed one do not run."""
        adapter = failing_adapter(fail_on={"read_entity": 1})
        orchestrator = BenchmarkOrchestrator(
            adapter, BenchmarkConfig(num_samples=3), recorder=recorder
        )
        scenario = TwoPhaseScenario()

        result = orchestrator.run_scenario(scenario)

        assert [p.phase for p in result.phases] == ["read"]
        assert adapter.calls["delete_entity"] == 0
        assert scenario.cleaned_up == 1

    def test_setup_failure(
        self, failing_adapter: Any, recorder: LatencyRecorder
    ) -> None:
        """Test that a failing setup skips timing but still tears down."""
        adapter = failing_adapter(
            fail_on={"create_entity": 3},
            failure=BackendRejected("bad request", "create_node", status_code=400),
        )
        orchestrator = BenchmarkOrchestrator(
            adapter, BenchmarkConfig(num_samples=5), recorder=recorder
        )

        result = orchestrator.run_scenario(ReadNodesScenario())

        assert isinstance(result.error, SetupFailed)
        assert result.phases == []
        assert adapter.calls["read_entity"] == 0
        assert adapter.calls["clear_all"] == 1

    def test_teardown_failure_is_recorded(
        self, failing_adapter: Any, recorder: LatencyRecorder
    ) -> None:
        """Test that a failing store clear is logged, not raised."""
        adapter = failing_adapter(fail_on={"clear_all": 1})
        orchestrator = BenchmarkOrchestrator(
            adapter, BenchmarkConfig(num_samples=2), recorder=recorder
        )

        result = orchestrator.run_scenario(ReadNodesScenario())

        assert result.succeeded
        assert any(e.startswith("Teardown failed") for e in result.errors)
        assert orchestrator.state is ScenarioState.IDLE

    def test_artifact_failure_keeps_statistics(self, fake_adapter: Any) -> None:
        """Test that an unwritable artifact does not fail the phase."""
        recorder = MagicMock(spec=LatencyRecorder)
        recorder.persist.side_effect = ArtifactWriteFailed("disk full", path="x.out")
        orchestrator = BenchmarkOrchestrator(
            fake_adapter, BenchmarkConfig(num_samples=3), recorder=recorder
        )

        result = orchestrator.run_scenario(ReadNodesScenario())

        assert result.succeeded
        phase = result.phases[0]
        assert phase.status is PhaseStatus.COMPLETED
        assert phase.statistics.sample_count == 3
        assert phase.error == "disk full"
        assert "disk full" in result.errors

    def test_teardown_with_mock_adapter(self, recorder: LatencyRecorder) -> None:
        """Test the teardown call against a strict mock adapter."""
        adapter = MagicMock(spec=BackendAdapter)
        adapter.name = "mock"
        adapter.read_entity.side_effect = [{}, BackendUnavailable("timeout", "read")]
        orchestrator = BenchmarkOrchestrator(
            adapter, BenchmarkConfig(num_samples=4), recorder=recorder
        )

        result = orchestrator.run_scenario(ReadNodesScenario())

        assert not result.succeeded
        assert adapter.read_entity.call_count == 2
        adapter.clear_all.assert_called_once_with()

    def test_unexpected_setup_error(
        self, failing_adapter: Any, recorder: LatencyRecorder
    ) -> None:
        """Test that a non-backend error in setup fails only its scenario."""
        adapter = failing_adapter(
            fail_on={"create_entity": 1}, failure=ValueError("bad endpoints")
        )
        orchestrator = BenchmarkOrchestrator(
            adapter, BenchmarkConfig(num_samples=2), recorder=recorder
        )

        results = orchestrator.run_batch([ReadNodesScenario(), ReadNodesScenario()])

        assert [r.succeeded for r in results] == [False, True]
        assert isinstance(results[0].error, SetupFailed)
        assert isinstance(results[0].error.cause, ValueError)
        assert results[0].phases == []
        assert adapter.calls["read_entity"] == 2
        assert adapter.calls["clear_all"] == 3

    def test_unexpected_result_hook_error(
        self, orchestrator: BenchmarkOrchestrator, fake_adapter: Any
    ) -> None:
        """Test that a failing result hook aborts the phase at that index."""

        def reject(ctx: ScenarioContext, i: int, value: Any) -> None:
            if i == 1:
                raise KeyError("self")

        class HookScenario(BenchmarkScenario):
            name = "hook"

            def phases(self) -> list[TimedPhase]:
                return [
                    TimedPhase(
                        "create",
                        lambda ctx, i: ctx.adapter.create_entity(EntityKind.NODE),
                        on_result=reject,
                    )
                ]

        result = orchestrator.run_scenario(HookScenario())

        assert isinstance(result.error, PhaseFailed)
        assert result.error.index == 1
        assert isinstance(result.error.cause, KeyError)
        assert len(result.phases[0].samples) == 2
        assert result.phases[0].status is PhaseStatus.FAILED
        assert fake_adapter.calls["clear_all"] == 1

    def test_artifact_failure_reported_to_callback(self, fake_adapter: Any) -> None:
        """Test that the callback sees the artifact outcome of a phase."""
        recorder = MagicMock(spec=LatencyRecorder)
        recorder.persist.side_effect = ArtifactWriteFailed("disk full", path="x.out")
        reported: list[tuple[PhaseStatus, str | None]] = []
        orchestrator = BenchmarkOrchestrator(
            fake_adapter,
            BenchmarkConfig(num_samples=1),
            recorder=recorder,
            summary_callback=lambda p: reported.append((p.status, p.error)),
        )

        orchestrator.run_scenario(ReadNodesScenario())

        assert reported == [(PhaseStatus.COMPLETED, "disk full")]

    # =========================================================================
    # Batches
    # =========================================================================

    def test_run_batch(
        self,
        fake_adapter: Any,
        recorder: LatencyRecorder,
        tmp_path: Path,
    ) -> None:
        """Test batch ordering, pre-clear and JSON summary."""
        summary_path = tmp_path / "summary" / "run.json"
        config = BenchmarkConfig(num_samples=2, summary_path=str(summary_path))
        orchestrator = BenchmarkOrchestrator(fake_adapter, config, recorder=recorder)

        results = orchestrator.run_batch([ReadNodesScenario(), TwoPhaseScenario()])

        assert [r.name for r in results] == ["read_nodes", "two_phase"]
        assert fake_adapter.calls["clear_all"] == 3
        assert "run_id" not in structlog.contextvars.get_contextvars()

        summary = json.loads(summary_path.read_text())
        assert summary["backend"] == "fake"
        assert summary["run_id"]
        assert [s["name"] for s in summary["scenarios"]] == ["read_nodes", "two_phase"]
        assert summary["scenarios"][0]["phases"][0]["recorded_samples"] == 2

    def test_run_batch_without_pre_clear(
        self, fake_adapter: Any, recorder: LatencyRecorder
    ) -> None:
        """Test that the initial clear can be skipped."""
        config = BenchmarkConfig(num_samples=1, clear_before_run=False)
        orchestrator = BenchmarkOrchestrator(fake_adapter, config, recorder=recorder)

        orchestrator.run_batch([ReadNodesScenario()])

        assert fake_adapter.calls["clear_all"] == 1

    def test_failed_scenario_does_not_stop_batch(
        self, failing_adapter: Any, recorder: LatencyRecorder
    ) -> None:
        """Test that scenarios in a batch are independent."""
        adapter = failing_adapter(fail_on={"read_entity": 1})
        config = BenchmarkConfig(num_samples=2, clear_before_run=False)
        orchestrator = BenchmarkOrchestrator(adapter, config, recorder=recorder)

        results = orchestrator.run_batch([ReadNodesScenario(), TwoPhaseScenario()])

        assert [r.succeeded for r in results] == [False, True]
        assert adapter.calls["clear_all"] == 2

    def test_get_summary(self, orchestrator: BenchmarkOrchestrator) -> None:
        """Test summary before and after a run."""
        assert orchestrator.get_summary() == {"message": "No benchmarks have been run"}

        orchestrator.run_scenario(TwoPhaseScenario())
        summary = orchestrator.get_summary()

        assert summary["total_benchmarks"] == 1
        assert summary["benchmarks"][0]["succeeded"] is True
        assert set(summary["benchmarks"][0]["phases"]) == {"read", "delete"}
        assert len(orchestrator.get_results()) == 1
