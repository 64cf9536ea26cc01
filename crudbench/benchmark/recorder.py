"""
Latency Recorder.

Persists the raw latency series of a phase, one sample per line, to a
timestamped ``.out`` artifact.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable

import structlog

from crudbench.core.errors import ArtifactWriteFailed

logger = structlog.get_logger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
ARTIFACT_SUFFIX = ".out"


def artifact_filename(scenario_name: str, phase_spec: str, timestamp: datetime) -> str:
    """Build ``<YYYYMMDD>_<HHMMSS>_<scenarioName>_<phaseSpec>.out``."""
    return f"{timestamp.strftime(TIMESTAMP_FORMAT)}_{scenario_name}_{phase_spec}{ARTIFACT_SUFFIX}"


def format_sample(sample: float) -> str:
    return f"{sample:.6f}"


class LatencyRecorder:
    """Writes latency series to write-once artifacts."""

    def __init__(
        self,
        output_dir: str | Path = ".",
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.output_dir = Path(output_dir)
        self._clock = clock

    def persist(self, scenario_name: str, phase_spec: str, series: list[float]) -> Path:
        """
        Persist one latency series.

        Args:
            scenario_name: Name identifying the scenario (and phase)
            phase_spec: Run parameters, e.g. ``numSamples=10000``
            series: Samples in issue order

        Returns:
            Path of the written artifact

        Raises:
            ArtifactWriteFailed: If the directory or file cannot be written,
                or the artifact already exists
        """
        filepath = self.output_dir / artifact_filename(scenario_name, phase_spec, self._clock())

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            with open(filepath, "x", encoding="utf-8") as f:
                for sample in series:
                    f.write(format_sample(sample) + "\n")
        except OSError as e:
            raise ArtifactWriteFailed(
                f"Cannot write latency artifact {filepath}: {e}", path=str(filepath)
            ) from e

        logger.info("Latency measurements dumped", path=str(filepath), samples=len(series))
        return filepath


def load_series(path: str | Path) -> list[float]:
    """Read an artifact back into a latency series."""
    with open(path, encoding="utf-8") as f:
        return [float(line) for line in f if line.strip()]
