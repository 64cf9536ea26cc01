"""
Neo4j Cypher Adapter.

Query-language backend: every entity operation is one parameterised Cypher
statement sent over Bolt. Entities are addressed by their internal id.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import structlog
from neo4j import Driver, GraphDatabase, Query, Session
from neo4j.exceptions import DriverError, Neo4jError, ServiceUnavailable, SessionExpired

from crudbench.config.settings import Neo4jSettings, get_settings
from crudbench.core.errors import BackendRejected, BackendUnavailable, NotFound
from crudbench.graph.adapter import (
    BackendAdapter,
    EntityHandle,
    EntityKind,
    require_endpoints,
)

logger = structlog.get_logger(__name__)


class Neo4jCypherAdapter(BackendAdapter):
    """Backend adapter issuing Cypher statements for each entity operation."""

    name = "bolt"

    EDGE_TYPE = "KNOWS"

    CREATE_NODE = "CREATE (n) SET n = $properties RETURN id(n) AS id"
    CREATE_EDGE = f"""
    MATCH (a), (b)
    WHERE id(a) = $source AND id(b) = $target
    CREATE (a)-[r:{EDGE_TYPE}]->(b)
    SET r = $properties
    RETURN id(r) AS id
    """

    READ = {
        EntityKind.NODE: "MATCH (n) WHERE id(n) = $id RETURN properties(n) AS properties",
        EntityKind.EDGE: "MATCH ()-[r]->() WHERE id(r) = $id RETURN properties(r) AS properties",
    }
    UPDATE = {
        EntityKind.NODE: "MATCH (n) WHERE id(n) = $id SET n += $properties RETURN id(n) AS id",
        EntityKind.EDGE: "MATCH ()-[r]->() WHERE id(r) = $id SET r += $properties RETURN id(r) AS id",
    }
    DELETE = {
        EntityKind.NODE: "MATCH (n) WHERE id(n) = $id DELETE n",
        EntityKind.EDGE: "MATCH ()-[r]->() WHERE id(r) = $id DELETE r",
    }

    CLEAR = "MATCH (n) DETACH DELETE n"
    AWAIT_INDEXES = "CALL db.awaitIndexes($timeout)"

    def __init__(self, settings: Neo4jSettings | None = None) -> None:
        """Initialize the adapter with optional custom settings."""
        self._driver: Driver | None = None
        self._settings = settings or get_settings().neo4j

    def connect(self) -> None:
        """Establish connection to Neo4j."""
        if self._driver is not None:
            return

        driver = GraphDatabase.driver(
            self._settings.uri,
            auth=(self._settings.username, self._settings.password.get_secret_value()),
            max_connection_pool_size=self._settings.max_connection_pool_size,
            connection_timeout=self._settings.connection_timeout_seconds,
        )
        try:
            driver.verify_connectivity()
        except (DriverError, Neo4jError) as e:
            driver.close()
            raise BackendUnavailable(
                f"Cannot reach Neo4j at {self._settings.uri}: {e}", "connect"
            ) from e

        self._driver = driver
        logger.info("Connected to Neo4j", uri=self._settings.uri)

    def close(self) -> None:
        """Close the database connection."""
        if self._driver is not None:
            self._driver.close()
            self._driver = None
            logger.info("Disconnected from Neo4j")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Get a database session."""
        if self._driver is None:
            self.connect()

        assert self._driver is not None
        with self._driver.session(database=self._settings.database) as session:
            yield session

    # =========================================================================
    # Transport
    # =========================================================================

    def _execute(
        self,
        operation: str,
        text: str,
        parameters: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> tuple[list[dict[str, Any]], Any]:
        """Run one statement, returning its rows and summary counters."""
        query = Query(text, timeout=timeout or self._settings.query_timeout_ms / 1000)
        try:
            with self.session() as session:
                result = session.run(query, parameters or {})
                records: list[dict[str, Any]] = result.data()
                summary = result.consume()
        except (ServiceUnavailable, SessionExpired) as e:
            raise BackendUnavailable(f"{operation} failed: {e}", operation) from e
        except Neo4jError as e:
            raise BackendRejected(
                f"{operation} rejected: {e.message or e}", operation
            ) from e
        except DriverError as e:
            raise BackendUnavailable(f"{operation} failed: {e}", operation) from e

        return records, summary.counters

    @staticmethod
    def _internal_id(handle: EntityHandle, operation: str) -> int:
        try:
            return int(handle.ref)
        except ValueError as e:
            raise NotFound(f"{operation}: {handle} is not a Neo4j id", operation) from e

    @staticmethod
    def _returned_id(records: list[dict[str, Any]], operation: str) -> str:
        if not records or records[0].get("id") is None:
            raise NotFound(f"{operation}: no entity matched", operation)
        return str(records[0]["id"])

    # =========================================================================
    # Entity Operations
    # =========================================================================

    def create_entity(
        self,
        kind: EntityKind,
        endpoints: tuple[EntityHandle, EntityHandle] | None = None,
        properties: dict[str, Any] | None = None,
    ) -> EntityHandle:
        if kind is EntityKind.NODE:
            records, _ = self._execute(
                "create_node", self.CREATE_NODE, {"properties": properties or {}}
            )
            return EntityHandle(EntityKind.NODE, self._returned_id(records, "create_node"))

        source, target = require_endpoints(endpoints)
        records, _ = self._execute(
            "create_edge",
            self.CREATE_EDGE,
            {
                "source": self._internal_id(source, "create_edge"),
                "target": self._internal_id(target, "create_edge"),
                "properties": properties or {},
            },
        )
        return EntityHandle(EntityKind.EDGE, self._returned_id(records, "create_edge"))

    def read_entity(self, handle: EntityHandle) -> dict[str, Any]:
        operation = f"read_{handle.kind.value}"
        records, _ = self._execute(
            operation,
            self.READ[handle.kind],
            {"id": self._internal_id(handle, operation)},
        )
        if not records:
            raise NotFound(f"{operation}: {handle} not found", operation)
        return records[0]["properties"]

    def update_entity(self, handle: EntityHandle, properties: dict[str, Any]) -> None:
        operation = f"update_{handle.kind.value}"
        records, _ = self._execute(
            operation,
            self.UPDATE[handle.kind],
            {"id": self._internal_id(handle, operation), "properties": properties},
        )
        self._returned_id(records, operation)

    def delete_entity(self, handle: EntityHandle) -> None:
        operation = f"delete_{handle.kind.value}"
        _, counters = self._execute(
            operation,
            self.DELETE[handle.kind],
            {"id": self._internal_id(handle, operation)},
        )
        deleted = (
            counters.nodes_deleted
            if handle.kind is EntityKind.NODE
            else counters.relationships_deleted
        )
        if not deleted:
            raise NotFound(f"{operation}: {handle} not found", operation)

    # =========================================================================
    # Query Execution
    # =========================================================================

    def run_query(
        self,
        text: str,
        parameters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        records, _ = self._execute("run_query", text, parameters)
        logger.debug(
            "Cypher executed",
            query=text[:100],
            param_count=len(parameters) if parameters else 0,
            result_count=len(records),
        )
        return records

    def clear_all(self) -> None:
        self._execute("clear_all", self.CLEAR)
        logger.debug("Store cleared", backend=self.name)

    def await_indexes(self, timeout_seconds: float) -> None:
        self._execute(
            "await_indexes",
            self.AWAIT_INDEXES,
            {"timeout": int(timeout_seconds)},
            timeout=timeout_seconds + self._settings.query_timeout_ms / 1000,
        )
        logger.info("Indexes online", backend=self.name)
