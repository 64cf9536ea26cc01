"""
Entry point for the crudbench command.

Runs the scenario catalog (or a selection of it) against one backend and
prints a statistics line per timed phase.
"""

import argparse
import sys
from typing import TextIO

import structlog

from crudbench.benchmark.recorder import LatencyRecorder
from crudbench.benchmark.runner import (
    BenchmarkConfig,
    BenchmarkOrchestrator,
    PhaseResult,
    PhaseStatus,
)
from crudbench.benchmark.scenarios import SCENARIO_NAMES, build_catalog, select_scenarios
from crudbench.benchmark.stats import format_summary
from crudbench.config.settings import get_settings
from crudbench.core.errors import BackendError
from crudbench.graph import ADAPTERS, create_adapter
from crudbench.observability.logging import configure_logging

logger = structlog.get_logger(__name__)


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crudbench",
        description="Measure per-operation CRUD latency of a remote graph store",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  crudbench --list
  crudbench --backend rest --samples 10000
  crudbench --backend bolt --scenario read_nodes --scenario crud_indexed
  crudbench --samples 1000 --warmup-samples 0 --summary-json out/summary.json
        """,
    )

    parser.add_argument("--list", action="store_true",
                        help="List scenarios in run order and exit")
    parser.add_argument("--backend", choices=sorted(ADAPTERS),
                        help="Backend adapter (default: BENCHMARK_BACKEND or rest)")
    parser.add_argument("--samples", type=non_negative_int,
                        help="Samples per timed phase (default: BENCHMARK_NUM_SAMPLES)")
    parser.add_argument("--warmup-samples", type=non_negative_int,
                        help="Samples for the warm-up scenario (default: BENCHMARK_WARMUP_SAMPLES)")
    parser.add_argument("--scenario", action="append", choices=SCENARIO_NAMES,
                        dest="scenarios", metavar="NAME",
                        help="Scenario to run; repeat for several (default: all)")
    parser.add_argument("--output-dir", "-o",
                        help="Directory for latency artifacts")
    parser.add_argument("--summary-json",
                        help="Write a JSON run summary to this path")
    parser.add_argument("--no-clear", action="store_true",
                        help="Do not clear the store before the run")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level")
    parser.add_argument("--log-format", choices=["json", "console"],
                        help="Log format")

    return parser


def make_printer(out: TextIO):
    """Build the summary callback printing one statistics line per phase."""

    def print_phase(phase: PhaseResult) -> None:
        if phase.statistics is None:
            return
        failed = phase.status is PhaseStatus.FAILED
        status = f" [{phase.status.value} at operation {phase.failed_index}]" if failed else ""
        print(f"Timings statistics for {phase.artifact_name}{status}:", file=out)
        print(format_summary(phase.statistics), file=out)
        if not failed and phase.error is not None:
            print(f"Artifact not written: {phase.error}", file=out)

    return print_phase


def main(argv: list[str] | None = None, out: TextIO | None = None) -> int:
    out = out or sys.stdout
    args = build_parser().parse_args(argv)
    settings = get_settings()
    bench = settings.benchmark

    if args.list:
        for name in SCENARIO_NAMES:
            print(name, file=out)
        return 0

    configure_logging(
        level=args.log_level or settings.log_level,
        format=args.log_format or settings.observability.log_format,
        service_name=settings.app_name,
    )

    warmup_samples = (
        args.warmup_samples if args.warmup_samples is not None else bench.warmup_samples
    )
    catalog = build_catalog(
        warmup_samples=warmup_samples,
        index_await_timeout_seconds=bench.index_await_timeout_seconds,
    )
    scenarios = select_scenarios(catalog, args.scenarios)

    config = BenchmarkConfig.from_settings(bench)
    if args.samples is not None:
        config.num_samples = args.samples
    if args.output_dir:
        config.output_dir = args.output_dir
    if args.summary_json:
        config.summary_path = args.summary_json
    if args.no_clear:
        config.clear_before_run = False

    adapter = create_adapter(settings, backend=args.backend)
    print(f"Welcome to crudbench! Backend: {adapter.name}", file=out)

    try:
        with adapter:
            orchestrator = BenchmarkOrchestrator(
                adapter,
                config,
                recorder=LatencyRecorder(config.output_dir),
                summary_callback=make_printer(out),
            )
            results = orchestrator.run_batch(scenarios)
    except BackendError as e:
        logger.error("Backend unavailable", backend=adapter.name, error=str(e))
        print(f"Backend {adapter.name} unavailable: {e}", file=out)
        return 1

    failed = [r for r in results if not r.succeeded]
    for result in failed:
        print(f"FAILED {result.name}: {result.error}", file=out)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
