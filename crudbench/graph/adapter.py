"""
Backend Adapter Contract.

The benchmark engine talks to a graph store only through this interface.
Each method is exactly one network round trip; concrete adapters own the
transport, the payload encoding and the translation of transport errors
into the harness error taxonomy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class EntityKind(str, Enum):
    """Kinds of entities stored in a property graph."""

    NODE = "node"
    EDGE = "edge"


@dataclass(frozen=True)
class EntityHandle:
    """Opaque identifier of a created entity.

    ``ref`` is whatever the backend uses to address the entity later
    (a resource URI, an internal id, ...). Callers must not interpret it.
    """

    kind: EntityKind
    ref: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.ref}"


class BackendAdapter(ABC):
    """Capability set required by the benchmark engine."""

    name: str = "backend"

    def connect(self) -> None:
        """Open network resources. Safe to call more than once."""

    def close(self) -> None:
        """Release network resources."""

    def __enter__(self) -> "BackendAdapter":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

    @abstractmethod
    def create_entity(
        self,
        kind: EntityKind,
        endpoints: tuple[EntityHandle, EntityHandle] | None = None,
        properties: dict[str, Any] | None = None,
    ) -> EntityHandle:
        """
        Create a node or an edge.

        Args:
            kind: Entity kind to create
            endpoints: (source, target) node handles, required for edges
            properties: Initial properties

        Returns:
            Handle of the created entity
        """

    @abstractmethod
    def read_entity(self, handle: EntityHandle) -> dict[str, Any]:
        """Read an entity. Raises NotFound for stale handles."""

    @abstractmethod
    def update_entity(self, handle: EntityHandle, properties: dict[str, Any]) -> None:
        """Set the given properties on an entity."""

    @abstractmethod
    def delete_entity(self, handle: EntityHandle) -> None:
        """Delete an entity."""

    @abstractmethod
    def run_query(
        self,
        text: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Transport a query-language statement and return its rows."""

    @abstractmethod
    def clear_all(self) -> None:
        """Remove every edge and node from the store. Idempotent."""

    @abstractmethod
    def await_indexes(self, timeout_seconds: float) -> None:
        """Block until every index reports ready, or fail after the timeout."""


def require_endpoints(
    endpoints: tuple[EntityHandle, EntityHandle] | None,
) -> tuple[EntityHandle, EntityHandle]:
    """Validate the endpoints passed for edge creation."""
    if endpoints is None or len(endpoints) != 2:
        raise ValueError("Edge creation requires a (source, target) pair of node handles")
    source, target = endpoints
    if source.kind is not EntityKind.NODE or target.kind is not EntityKind.NODE:
        raise ValueError("Edge endpoints must be node handles")
    return source, target
