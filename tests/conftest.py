"""Pytest configuration and fixtures for doc_store tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from doc_store.adapters.outbound import InMemorySnapshotStore
from doc_store.application import DocumentStore
from doc_store.domain.entities import SchemaMap, TableSchema, build_schema_map
from doc_store.infrastructure.config import Config, StorageConfig
from doc_store.infrastructure.container import reset_container
from doc_store.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration with a temporary data directory."""
    return Config(
        storage=StorageConfig(
            data_dir=temp_dir / "data",
            snapshot_file="test.json",
            index_max_keys=4,  # Small nodes force splits
        ),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture(autouse=True)
def _fresh_container() -> Generator[None, None, None]:
    reset_container()
    yield
    reset_container()


@pytest.fixture
def users_schema() -> TableSchema:
    return TableSchema.from_dict(
        "users",
        {
            "id": {"type": "number", "primary": True},
            "email": {"type": "string", "unique": True, "index": True},
            "role": {"type": "string", "index": True, "default": "user"},
            "age": {"type": "number", "index": True},
            "active": {"type": "boolean", "index": True},
            "tags": {"type": "array"},
            "profile": {"type": "object"},
            "created": {"type": "date"},
        },
    )


@pytest.fixture
def posts_schema() -> TableSchema:
    return TableSchema.from_dict(
        "posts",
        {
            "id": {"type": "string", "primary": True},
            "author_id": {"type": "number", "index": True},
            "title": {"type": "string"},
            "likes": {"type": "number"},
        },
    )


@pytest.fixture
def schemas(users_schema: TableSchema, posts_schema: TableSchema) -> SchemaMap:
    return build_schema_map(users_schema, posts_schema)


@pytest.fixture
def snapshot_store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def store(
    schemas: SchemaMap,
    snapshot_store: InMemorySnapshotStore,
    metrics_registry: MetricsRegistry,
) -> Generator[DocumentStore, None, None]:
    """Provide a started store backed by an in-memory snapshot."""
    db = DocumentStore(
        schemas,
        snapshot_store=snapshot_store,
        metrics=metrics_registry,
        index_max_keys=4,
    )
    db.start()
    yield db
    if db.is_started:
        db.stop()


@pytest.fixture
def populated_store(store: DocumentStore) -> DocumentStore:
    """Store holding four users and three posts."""
    store.save("users", {"id": 1, "email": "ann@example.com", "role": "admin", "age": 34})
    store.save("users", {"id": 2, "email": "bob@example.com", "role": "user", "age": 27})
    store.save("users", {"id": 3, "email": "cid@example.com", "role": "admin", "age": 41})
    store.save("users", {"id": 4, "email": "dee@example.com", "age": None})
    store.save("posts", {"id": "p1", "author_id": 1, "title": "Hello", "likes": 3})
    store.save("posts", {"id": "p2", "author_id": 1, "title": "Again", "likes": 5})
    store.save("posts", {"id": "p3", "author_id": 3, "title": "Mine", "likes": 1})
    return store


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
