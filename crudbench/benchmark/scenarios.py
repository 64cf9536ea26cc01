"""
Benchmark Scenarios.

The fixed catalog of CRUD latency scenarios:
- Warm-up reads of a single node
- Node and edge reads, creates, property updates and deletes
- Declarative CRUD through the query language, without and with an index
"""

from typing import Any, Callable

import structlog

from crudbench.benchmark.runner import (
    BenchmarkScenario,
    ScenarioContext,
    TimedPhase,
    create_edge_pool,
    create_node_pool,
)
from crudbench.graph.adapter import EntityKind

logger = structlog.get_logger(__name__)

INITIAL_PROPERTY_VALUE = 42
UPDATED_PROPERTY_VALUE = 43
PROPERTY_KEY = "prop"

DEFAULT_WARMUP_SAMPLES = 100_000


def _read_node(ctx: ScenarioContext, i: int) -> Any:
    return ctx.adapter.read_entity(ctx.nodes[i])


def _read_edge(ctx: ScenarioContext, i: int) -> Any:
    return ctx.adapter.read_entity(ctx.edges[i])


def _collect_node(ctx: ScenarioContext, i: int, handle: Any) -> None:
    ctx.nodes.append(handle)


def _collect_edge(ctx: ScenarioContext, i: int, handle: Any) -> None:
    ctx.edges.append(handle)


class WarmUpScenario(BenchmarkScenario):
    """Repeatedly read a single node to warm caches and connections."""

    name = "warmup"
    description = "Warming up the database"

    def __init__(self, num_samples: int | None = DEFAULT_WARMUP_SAMPLES):
        self.num_samples = num_samples

    def setup(self, ctx: ScenarioContext) -> None:
        create_node_pool(ctx, 1)

    def phases(self) -> list[TimedPhase]:
        return [
            TimedPhase(
                "read",
                lambda ctx, i: ctx.adapter.read_entity(ctx.nodes[0]),
                "Read the same node",
            )
        ]


class ReadNodesScenario(BenchmarkScenario):
    name = "read_nodes"
    description = "Reading nodes"

    def setup(self, ctx: ScenarioContext) -> None:
        create_node_pool(ctx, ctx.num_samples)

    def phases(self) -> list[TimedPhase]:
        return [TimedPhase("read", _read_node, "Read node i")]


class ReadEdgesScenario(BenchmarkScenario):
    name = "read_edges"
    description = "Reading edges"

    def setup(self, ctx: ScenarioContext) -> None:
        create_edge_pool(ctx)

    def phases(self) -> list[TimedPhase]:
        return [TimedPhase("read", _read_edge, "Read edge i")]


class CreateNodesScenario(BenchmarkScenario):
    name = "create_nodes"
    description = "Creating nodes"

    def phases(self) -> list[TimedPhase]:
        return [
            TimedPhase(
                "create",
                lambda ctx, i: ctx.adapter.create_entity(EntityKind.NODE),
                "Create one node",
                on_result=_collect_node,
            )
        ]


class CreateEdgesScenario(BenchmarkScenario):
    name = "create_edges"
    description = "Creating edges"

    def setup(self, ctx: ScenarioContext) -> None:
        create_node_pool(ctx, 2 * ctx.num_samples)

    def phases(self) -> list[TimedPhase]:
        return [
            TimedPhase(
                "create",
                lambda ctx, i: ctx.adapter.create_entity(
                    EntityKind.EDGE,
                    endpoints=(ctx.nodes[i], ctx.nodes[i + ctx.num_samples]),
                ),
                "Create edge from node i to node i+N",
                on_result=_collect_edge,
            )
        ]


class UpdateNodePropertiesScenario(BenchmarkScenario):
    name = "update_node_properties"
    description = "Updating node properties"

    def setup(self, ctx: ScenarioContext) -> None:
        create_node_pool(ctx, ctx.num_samples, {PROPERTY_KEY: INITIAL_PROPERTY_VALUE})

    def phases(self) -> list[TimedPhase]:
        return [
            TimedPhase(
                "update",
                lambda ctx, i: ctx.adapter.update_entity(
                    ctx.nodes[i], {PROPERTY_KEY: UPDATED_PROPERTY_VALUE}
                ),
                f"Set {PROPERTY_KEY} {INITIAL_PROPERTY_VALUE} -> {UPDATED_PROPERTY_VALUE}",
            )
        ]


class UpdateEdgePropertiesScenario(BenchmarkScenario):
    name = "update_edge_properties"
    description = "Updating edge properties"

    def setup(self, ctx: ScenarioContext) -> None:
        create_edge_pool(ctx, {PROPERTY_KEY: INITIAL_PROPERTY_VALUE})

    def phases(self) -> list[TimedPhase]:
        return [
            TimedPhase(
                "update",
                lambda ctx, i: ctx.adapter.update_entity(
                    ctx.edges[i], {PROPERTY_KEY: UPDATED_PROPERTY_VALUE}
                ),
                f"Set {PROPERTY_KEY} {INITIAL_PROPERTY_VALUE} -> {UPDATED_PROPERTY_VALUE}",
            )
        ]


class DeleteNodesScenario(BenchmarkScenario):
    name = "delete_nodes"
    description = "Deleting nodes"

    def setup(self, ctx: ScenarioContext) -> None:
        create_node_pool(ctx, ctx.num_samples)

    def phases(self) -> list[TimedPhase]:
        return [
            TimedPhase(
                "delete",
                lambda ctx, i: ctx.adapter.delete_entity(ctx.nodes[i]),
                "Delete node i",
            )
        ]


class DeleteEdgesScenario(BenchmarkScenario):
    name = "delete_edges"
    description = "Deleting edges"

    def setup(self, ctx: ScenarioContext) -> None:
        create_edge_pool(ctx)

    def phases(self) -> list[TimedPhase]:
        return [
            TimedPhase(
                "delete",
                lambda ctx, i: ctx.adapter.delete_entity(ctx.edges[i]),
                "Delete edge i",
            )
        ]


class QueryCrudScenario(BenchmarkScenario):
    """
    Create, read, update and delete ``Person`` nodes through Cypher.

    Nodes are addressed by their ``ID`` property. The update moves ``ID``
    from ``i`` to ``i + N``, so the delete phase addresses the updated value.
    With ``indexed=True`` an index on ``:Person(ID)`` is created and awaited
    before the timed phases and dropped during cleanup.
    """

    CREATE_NODE = "CREATE (:Person {ID: $id})"
    READ_NODE = "MATCH (n:Person) WHERE n.ID = $id RETURN n"
    UPDATE_NODE = "MATCH (n:Person) WHERE n.ID = $id SET n.ID = $newId"
    DELETE_NODE = "MATCH (n:Person) WHERE n.ID = $id DELETE n"

    CREATE_INDEX = "CREATE INDEX ON :Person(ID)"
    DROP_INDEX = "DROP INDEX ON :Person(ID)"

    def __init__(self, indexed: bool = False, index_await_timeout_seconds: float = 300.0):
        self.indexed = indexed
        self.index_await_timeout_seconds = index_await_timeout_seconds
        self.name = "crud_indexed" if indexed else "crud_unindexed"
        self.description = (
            "Timing CRUD with indices" if indexed else "Timing CRUD without indices"
        )

    def setup(self, ctx: ScenarioContext) -> None:
        if not self.indexed:
            return
        ctx.adapter.run_query(self.CREATE_INDEX)
        ctx.adapter.await_indexes(self.index_await_timeout_seconds)
        logger.info("Index ready", label="Person", key="ID")

    def phases(self) -> list[TimedPhase]:
        def statement(
            text: str, params: Callable[[ScenarioContext, int], dict[str, Any]]
        ) -> Callable[[ScenarioContext, int], Any]:
            return lambda ctx, i: ctx.adapter.run_query(text, params(ctx, i))

        return [
            TimedPhase(
                "create",
                statement(self.CREATE_NODE, lambda ctx, i: {"id": i}),
                "Create Person with ID i",
            ),
            TimedPhase(
                "read",
                statement(self.READ_NODE, lambda ctx, i: {"id": i}),
                "Read Person by ID i",
            ),
            TimedPhase(
                "update",
                statement(
                    self.UPDATE_NODE,
                    lambda ctx, i: {"id": i, "newId": i + ctx.num_samples},
                ),
                "Set ID i -> i+N",
            ),
            TimedPhase(
                "delete",
                statement(self.DELETE_NODE, lambda ctx, i: {"id": i + ctx.num_samples}),
                "Delete Person by ID i+N",
            ),
        ]

    def cleanup(self, ctx: ScenarioContext) -> None:
        if self.indexed:
            ctx.adapter.run_query(self.DROP_INDEX)


def build_catalog(
    warmup_samples: int | None = DEFAULT_WARMUP_SAMPLES,
    index_await_timeout_seconds: float = 300.0,
) -> list[BenchmarkScenario]:
    """Build the scenario catalog in its fixed run order."""
    return [
        WarmUpScenario(num_samples=warmup_samples),
        ReadNodesScenario(),
        ReadEdgesScenario(),
        CreateNodesScenario(),
        CreateEdgesScenario(),
        UpdateNodePropertiesScenario(),
        UpdateEdgePropertiesScenario(),
        DeleteNodesScenario(),
        DeleteEdgesScenario(),
        QueryCrudScenario(indexed=False),
        QueryCrudScenario(
            indexed=True, index_await_timeout_seconds=index_await_timeout_seconds
        ),
    ]


SCENARIO_NAMES = [scenario.name for scenario in build_catalog()]


def select_scenarios(
    catalog: list[BenchmarkScenario],
    names: list[str] | None = None,
) -> list[BenchmarkScenario]:
    """
    Select scenarios by name, keeping catalog order.

    Raises:
        KeyError: If a name is not in the catalog
    """
    if not names:
        return list(catalog)

    known = {scenario.name for scenario in catalog}
    unknown = [name for name in names if name not in known]
    if unknown:
        raise KeyError(f"Unknown scenario(s): {', '.join(unknown)}")

    wanted = set(names)
    return [scenario for scenario in catalog if scenario.name in wanted]
