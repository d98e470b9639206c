"""REST API adapter for the document store.

This module provides a FastAPI-based REST API over a DocumentStore.

Endpoints:
    GET /health - Health check
    GET /stats - Store statistics
    GET /tables - Registered table names
    POST /tables/{table}/query - Run a query (body: query options mapping)
    POST /tables/{table}/records - Save a record
    GET /tables/{table}/records/{record_id} - Fetch a record by id
    DELETE /tables/{table}/records/{record_id} - Remove a record by id
    GET /metrics - Prometheus metrics

Usage:
    from doc_store.adapters.inbound.rest_api import create_app
    from doc_store.application import DocumentStore

    db = DocumentStore(schemas, JsonFileSnapshotStore("db.json"))
    db.start()

    app = create_app(db)
    # Run with uvicorn: uvicorn app:app --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest
from pydantic import BaseModel, Field

from doc_store import __version__
from doc_store.application import DocumentStore
from doc_store.domain.errors import (
    DocStoreError,
    MissingIdentifierError,
    PersistenceError,
    QueryOptionsError,
    RecordNotFoundError,
    SchemaError,
    UniqueViolation,
    UnknownTableError,
    UnsupportedOperation,
)
from doc_store.domain.value_objects import RecordId
from doc_store.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Most specific first.
_STATUS_BY_ERROR: tuple[tuple[type[DocStoreError], int], ...] = (
    (UnknownTableError, 404),
    (RecordNotFoundError, 404),
    (UniqueViolation, 409),
    (QueryOptionsError, 422),
    (MissingIdentifierError, 400),
    (SchemaError, 400),
    (UnsupportedOperation, 400),
    (PersistenceError, 500),
)


def status_for(error: DocStoreError) -> int:
    """HTTP status code for a store error."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")


class QueryResponse(BaseModel):
    """Response model for queries."""

    rows: list[dict[str, Any]] = Field(default_factory=list, description="Result rows")
    count: int = Field(0, description="Number of rows returned")
    index_lookups: int = Field(0, description="Conditions served by an index")
    scans: int = Field(0, description="Conditions served by a full scan")


class RemoveResponse(BaseModel):
    """Response model for record removal."""

    removed: bool = Field(..., description="Whether a record was removed")


def create_app(db: DocumentStore, registry: CollectorRegistry | None = None) -> FastAPI:
    """Create a FastAPI application for the document store.

    Args:
        db: The document store to serve.
        registry: Prometheus registry exposed on /metrics (default: global).

    Returns:
        A configured FastAPI application.
    """
    app = FastAPI(
        title="Document Store API",
        description="REST API for querying and mutating document tables",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DocStoreError)
    async def handle_store_error(request: Request, exc: DocStoreError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error("request_failed", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=status,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    def require_started() -> None:
        if not db.is_started:
            raise HTTPException(status_code=503, detail="Document store not started")

    def parse_id(table: str, raw: str) -> RecordId:
        schema = db.schemas.get(table)
        if schema is None:
            raise UnknownTableError(table)
        primary = schema.require_primary_key()
        id_type = schema.column_type(primary)
        try:
            return id_type.parse_text(raw) if id_type else raw
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=f"invalid id {raw!r}: {e}") from e

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy" if db.is_started else "unhealthy",
            version=__version__,
        )

    @app.get("/stats", tags=["Stats"])
    async def get_stats() -> dict[str, Any]:
        """Get store statistics."""
        require_started()
        return db.get_stats()

    @app.get("/tables", tags=["Tables"])
    async def list_tables() -> list[str]:
        return db.tables()

    @app.post("/tables/{table}/query", response_model=QueryResponse, tags=["Query"])
    async def query_table(
        table: str, options: dict[str, Any] | None = Body(default=None)
    ) -> QueryResponse:
        """Run a query against a table.

        The body is the mapping form of query options (where, joins, groupBy,
        orderBy, pagination, select).
        """
        require_started()
        result = db.execute(table, options)
        return QueryResponse(
            rows=result.rows,
            count=len(result.rows),
            index_lookups=result.stats.index_lookups,
            scans=result.stats.scans,
        )

    @app.post("/tables/{table}/records", tags=["Records"])
    async def save_record(table: str, record: dict[str, Any] = Body(...)) -> dict[str, Any]:
        """Insert or replace a record; returns the stored record."""
        require_started()
        return db.save(table, record)

    @app.get("/tables/{table}/records/{record_id}", tags=["Records"])
    async def get_record(table: str, record_id: str) -> dict[str, Any]:
        require_started()
        record = db.find_by_id(table, parse_id(table, record_id))
        if record is None:
            raise HTTPException(status_code=404, detail=f"{table} record {record_id!r} not found")
        return record

    @app.delete("/tables/{table}/records/{record_id}", response_model=RemoveResponse, tags=["Records"])
    async def delete_record(table: str, record_id: str) -> RemoveResponse:
        require_started()
        rid = parse_id(table, record_id)
        primary = db.schemas[table].require_primary_key()
        return RemoveResponse(removed=db.remove(table, {primary: rid}))

    @app.get("/metrics", tags=["Metrics"])
    async def metrics() -> Response:
        return Response(
            content=generate_latest(registry or REGISTRY),
            media_type=CONTENT_TYPE_LATEST,
        )

    return app


def run_server(
    db: DocumentStore,
    host: str = "0.0.0.0",
    port: int = 8080,
    registry: CollectorRegistry | None = None,
) -> None:
    """Run the REST API server.

    Args:
        db: The document store.
        host: Host to bind to.
        port: Port to bind to.
        registry: Prometheus registry exposed on /metrics.
    """
    import uvicorn

    app = create_app(db, registry)
    uvicorn.run(app, host=host, port=port)
