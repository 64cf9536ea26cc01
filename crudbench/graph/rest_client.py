"""
Neo4j REST Adapter.

Resource-oriented backend: every entity operation is a single HTTP verb
against the Neo4j REST API (``/db/data/``). Entities are addressed by the
``self`` URI the server returns on creation.
"""

from typing import Any

import httpx
import structlog

from crudbench.config.settings import RestSettings, get_settings
from crudbench.core.errors import BackendRejected, BackendUnavailable, NotFound
from crudbench.graph.adapter import (
    BackendAdapter,
    EntityHandle,
    EntityKind,
    require_endpoints,
)

logger = structlog.get_logger(__name__)


class Neo4jRestAdapter(BackendAdapter):
    """Backend adapter issuing discrete REST calls per entity operation."""

    name = "rest"

    EDGE_TYPE = "KNOWS"

    CLEAR_STATEMENTS = [
        "MATCH ()-[r]->() DELETE r",
        "MATCH (n) DELETE n",
    ]

    def __init__(
        self,
        settings: RestSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the adapter with optional custom settings and transport."""
        self._settings = settings or get_settings().rest
        self._transport = transport
        self._client: httpx.Client | None = None

    def connect(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return

        auth = None
        if self._settings.username and self._settings.password is not None:
            auth = (self._settings.username, self._settings.password.get_secret_value())

        self._client = httpx.Client(
            base_url=self._settings.root_uri,
            timeout=httpx.Timeout(self._settings.timeout_seconds),
            headers={"Accept": "application/json"},
            auth=auth,
            transport=self._transport,
        )
        logger.info("REST client ready", root_uri=self._settings.root_uri)

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("REST client closed")

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self.connect()
        assert self._client is not None
        return self._client

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        json: Any = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Issue one request and translate failures into harness errors."""
        client = self._get_client()
        extra: dict[str, Any] = {}
        if timeout is not None:
            extra["timeout"] = timeout

        try:
            response = client.request(method, url, json=json, **extra)
        except httpx.InvalidURL as e:
            raise BackendRejected(f"{operation}: invalid URL {url}: {e}", operation) from e
        except httpx.HTTPError as e:
            raise BackendUnavailable(
                f"{operation} {method} {url} failed: {e}", operation
            ) from e

        if response.status_code == 404:
            raise NotFound(f"{operation}: {url} not found", operation)
        if response.is_error:
            raise BackendRejected(
                f"{operation} {method} {url} returned {response.status_code}: "
                f"{self._error_message(response)}",
                operation,
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(payload, dict):
            return str(payload.get("message") or payload.get("exception") or payload)
        return str(payload)[:200]

    @staticmethod
    def _payload(response: httpx.Response, operation: str) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise BackendRejected(
                f"{operation}: malformed JSON response", operation, response.status_code
            ) from e

    def _self_uri(self, response: httpx.Response, operation: str) -> str:
        payload = self._payload(response, operation)
        uri = payload.get("self") if isinstance(payload, dict) else None
        if not isinstance(uri, str):
            raise BackendRejected(
                f"{operation}: response carries no 'self' URI", operation, response.status_code
            )
        return uri

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
            response = self._request("POST", "node", "create_node", json=properties or None)
            return EntityHandle(EntityKind.NODE, self._self_uri(response, "create_node"))

        source, target = require_endpoints(endpoints)
        body: dict[str, Any] = {"to": target.ref, "type": self.EDGE_TYPE}
        if properties:
            body["data"] = properties
        response = self._request(
            "POST", f"{source.ref}/relationships", "create_edge", json=body
        )
        return EntityHandle(EntityKind.EDGE, self._self_uri(response, "create_edge"))

    def read_entity(self, handle: EntityHandle) -> dict[str, Any]:
        operation = f"read_{handle.kind.value}"
        response = self._request("GET", handle.ref, operation)
        payload = self._payload(response, operation)
        if not isinstance(payload, dict):
            raise BackendRejected(f"{operation}: unexpected payload", operation)
        return payload

    def update_entity(self, handle: EntityHandle, properties: dict[str, Any]) -> None:
        self._request(
            "PUT",
            f"{handle.ref}/properties",
            f"update_{handle.kind.value}",
            json=properties,
        )

    def delete_entity(self, handle: EntityHandle) -> None:
        self._request("DELETE", handle.ref, f"delete_{handle.kind.value}")

    # =========================================================================
    # Query Execution
    # =========================================================================

    def run_query(
        self,
        text: str,
        parameters: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """
        Execute a Cypher statement through the legacy cypher endpoint.

        The endpoint answers with ``{"columns": [...], "data": [[...], ...]}``;
        rows are reshaped into dictionaries keyed by column name.
        """
        response = self._request(
            "POST",
            "cypher",
            "run_query",
            json={"query": text, "params": parameters or {}},
            timeout=timeout,
        )
        payload = self._payload(response, "run_query")
        if not isinstance(payload, dict):
            raise BackendRejected("run_query: unexpected payload", "run_query")

        columns = payload.get("columns") or []
        return [dict(zip(columns, row)) for row in payload.get("data") or []]

    def clear_all(self) -> None:
        for statement in self.CLEAR_STATEMENTS:
            self.run_query(statement)
        logger.debug("Store cleared", backend=self.name)

    def await_indexes(self, timeout_seconds: float) -> None:
        self.run_query(
            "CALL db.awaitIndexes($timeout)",
            {"timeout": int(timeout_seconds)},
            timeout=timeout_seconds + self._settings.timeout_seconds,
        )
        logger.info("Indexes online", backend=self.name)
