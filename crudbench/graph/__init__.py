"""
Graph Backend Module.

Backend adapters for the graph stores under benchmark:
- Neo4j REST API (one HTTP verb per entity operation)
- Neo4j Cypher over Bolt (one statement per entity operation)
"""

from crudbench.config.settings import Settings, get_settings
from crudbench.graph.adapter import BackendAdapter, EntityHandle, EntityKind
from crudbench.graph.bolt_client import Neo4jCypherAdapter
from crudbench.graph.rest_client import Neo4jRestAdapter

ADAPTERS: dict[str, type[BackendAdapter]] = {
    Neo4jRestAdapter.name: Neo4jRestAdapter,
    Neo4jCypherAdapter.name: Neo4jCypherAdapter,
}


def create_adapter(
    settings: Settings | None = None,
    backend: str | None = None,
) -> BackendAdapter:
    """
    Build the backend adapter selected by settings.

    Args:
        settings: Application settings (defaults to the cached settings)
        backend: Backend name overriding ``settings.benchmark.backend``

    Returns:
        An unconnected adapter instance
    """
    settings = settings or get_settings()
    backend = (backend or settings.benchmark.backend).lower()

    if backend == Neo4jRestAdapter.name:
        return Neo4jRestAdapter(settings=settings.rest)
    if backend == Neo4jCypherAdapter.name:
        return Neo4jCypherAdapter(settings=settings.neo4j)
    raise ValueError(f"Unknown backend '{backend}', expected one of {sorted(ADAPTERS)}")


__all__ = [
    "ADAPTERS",
    "BackendAdapter",
    "EntityHandle",
    "EntityKind",
    "Neo4jCypherAdapter",
    "Neo4jRestAdapter",
    "create_adapter",
]
