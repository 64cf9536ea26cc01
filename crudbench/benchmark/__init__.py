"""
Benchmark Execution Engine.

Provides per-operation latency benchmarking for:
- Node and edge reads, creates, updates and deletes
- Query-language CRUD with and without indexes
- Per-phase summary statistics and raw latency artifacts
"""

from crudbench.benchmark.recorder import LatencyRecorder, load_series
from crudbench.benchmark.runner import (
    BenchmarkConfig,
    BenchmarkOrchestrator,
    BenchmarkScenario,
    PhaseResult,
    PhaseStatus,
    ScenarioContext,
    ScenarioResult,
    ScenarioState,
    TimedPhase,
    create_edge_pool,
    create_node_pool,
)
from crudbench.benchmark.scenarios import (
    SCENARIO_NAMES,
    build_catalog,
    select_scenarios,
)
from crudbench.benchmark.stats import SummaryStatistics, format_summary, summarize
from crudbench.benchmark.timing import TimedCallFailed, TimedResult, timed_call

__all__ = [
    "BenchmarkConfig",
    "BenchmarkOrchestrator",
    "BenchmarkScenario",
    "LatencyRecorder",
    "PhaseResult",
    "PhaseStatus",
    "SCENARIO_NAMES",
    "ScenarioContext",
    "ScenarioResult",
    "ScenarioState",
    "SummaryStatistics",
    "TimedCallFailed",
    "TimedPhase",
    "TimedResult",
    "build_catalog",
    "create_edge_pool",
    "create_node_pool",
    "format_summary",
    "load_series",
    "select_scenarios",
    "summarize",
    "timed_call",
]
