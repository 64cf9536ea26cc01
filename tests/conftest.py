"""
Pytest Configuration and Shared Fixtures.

This module provides shared fixtures for testing the benchmark harness.
"""

from collections import Counter
from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from crudbench.benchmark.recorder import LatencyRecorder
from crudbench.benchmark.runner import BenchmarkConfig, BenchmarkOrchestrator
from crudbench.config.settings import Settings, get_settings
from crudbench.core.errors import BackendUnavailable, NotFound
from crudbench.graph.adapter import (
    BackendAdapter,
    EntityHandle,
    EntityKind,
    require_endpoints,
)


# =============================================================================
# In-Memory Backend
# =============================================================================


class FakeGraphAdapter(BackendAdapter):
    """
    In-memory graph store implementing the adapter contract.

    ``fail_on`` maps a method name to the 1-based call number that raises
    ``failure`` instead of touching the store.
    """

    name = "fake"

    def __init__(
        self,
        fail_on: dict[str, int] | None = None,
        failure: Exception | None = None,
    ) -> None:
        self.nodes: dict[str, dict[str, Any]] = {}
        self.edges: dict[str, tuple[str, str, dict[str, Any]]] = {}
        self.persons: dict[Any, dict[str, Any]] = {}
        self.indexes: set[str] = set()

        self.calls: Counter[str] = Counter()
        self.read_log: list[EntityHandle] = []
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self.awaited: list[float] = []
        self.connected = False

        self._fail_on = fail_on or {}
        self._failure = failure or BackendUnavailable("connection reset", "fake")
        self._next_id = 0

    def _track(self, method: str) -> None:
        self.calls[method] += 1
        if self._fail_on.get(method) == self.calls[method]:
            raise self._failure

    def _new_ref(self, kind: EntityKind) -> str:
        self._next_id += 1
        return f"{kind.value}/{self._next_id}"

    def _store(self, handle: EntityHandle) -> dict[str, Any]:
        return self.nodes if handle.kind is EntityKind.NODE else self.edges

    def connect(self) -> None:
        self._track("connect")
        self.connected = True

    def close(self) -> None:
        self.connected = False

    def create_entity(
        self,
        kind: EntityKind,
        endpoints: tuple[EntityHandle, EntityHandle] | None = None,
        properties: dict[str, Any] | None = None,
    ) -> EntityHandle:
        self._track("create_entity")
        ref = self._new_ref(kind)
        if kind is EntityKind.NODE:
            self.nodes[ref] = dict(properties or {})
        else:
            source, target = require_endpoints(endpoints)
            self.edges[ref] = (source.ref, target.ref, dict(properties or {}))
        return EntityHandle(kind, ref)

    def read_entity(self, handle: EntityHandle) -> dict[str, Any]:
        self._track("read_entity")
        self.read_log.append(handle)
        store = self._store(handle)
        if handle.ref not in store:
            raise NotFound(f"{handle} not found", "read")
        if handle.kind is EntityKind.NODE:
            return dict(store[handle.ref])
        return dict(store[handle.ref][2])

    def update_entity(self, handle: EntityHandle, properties: dict[str, Any]) -> None:
        self._track("update_entity")
        store = self._store(handle)
        if handle.ref not in store:
            raise NotFound(f"{handle} not found", "update")
        if handle.kind is EntityKind.NODE:
            store[handle.ref].update(properties)
        else:
            store[handle.ref][2].update(properties)

    def delete_entity(self, handle: EntityHandle) -> None:
        self._track("delete_entity")
        store = self._store(handle)
        if handle.ref not in store:
            raise NotFound(f"{handle} not found", "delete")
        del store[handle.ref]

    def run_query(
        self,
        text: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        self._track("run_query")
        params = dict(parameters or {})
        self.queries.append((text, params))

        if text.startswith("CREATE INDEX"):
            self.indexes.add(text)
        elif text.startswith("DROP INDEX"):
            self.indexes.discard(text.replace("DROP", "CREATE", 1))
        elif text.startswith("CREATE (:Person"):
            self.persons[params["id"]] = {"ID": params["id"]}
        elif "SET n.ID" in text:
            person = self.persons.pop(params["id"])
            person["ID"] = params["newId"]
            self.persons[params["newId"]] = person
        elif text.endswith("DELETE n"):
            self.persons.pop(params["id"], None)
        elif text.endswith("RETURN n"):
            person = self.persons.get(params["id"])
            return [{"n": person}] if person else []
        return []

    def clear_all(self) -> None:
        self._track("clear_all")
        self.nodes.clear()
        self.edges.clear()
        self.persons.clear()

    def await_indexes(self, timeout_seconds: float) -> None:
        self._track("await_indexes")
        self.awaited.append(timeout_seconds)


@pytest.fixture
def fake_adapter() -> FakeGraphAdapter:
    """Provide an empty in-memory backend."""
    return FakeGraphAdapter()


@pytest.fixture
def failing_adapter() -> type[FakeGraphAdapter]:
    """Provide the in-memory backend class for failure injection."""
    return FakeGraphAdapter


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Generator[Settings, None, None]:
    """Provide test settings with mock values."""
    with patch.dict(
        "os.environ",
        {
            "NEO4J_URI": "bolt://localhost:7687",
            "NEO4J_USERNAME": "neo4j",
            "NEO4J_PASSWORD": "password123",
            "NEO4J_REST_ROOT_URI": "http://localhost:7474/db/data/",
            "BENCHMARK_NUM_SAMPLES": "5",
            "BENCHMARK_WARMUP_SAMPLES": "10",
        },
    ):
        # Clear cache and get fresh settings
        get_settings.cache_clear()
        yield get_settings()
    get_settings.cache_clear()


# =============================================================================
# Orchestrator Fixtures
# =============================================================================


@pytest.fixture
def fixed_clock() -> datetime:
    return datetime(2024, 3, 1, 12, 30, 45)


@pytest.fixture
def recorder(tmp_path: Path, fixed_clock: datetime) -> LatencyRecorder:
    """Create a recorder writing into a temporary directory."""
    return LatencyRecorder(tmp_path, clock=lambda: fixed_clock)


@pytest.fixture
def orchestrator(
    fake_adapter: FakeGraphAdapter,
    recorder: LatencyRecorder,
    tmp_path: Path,
) -> BenchmarkOrchestrator:
    """Create an orchestrator over the in-memory backend."""
    config = BenchmarkConfig(num_samples=5, output_dir=str(tmp_path))
    return BenchmarkOrchestrator(fake_adapter, config, recorder=recorder)
