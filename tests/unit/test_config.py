"""Unit tests for configuration and container wiring."""

from __future__ import annotations

from pathlib import Path

import pytest

from doc_store.adapters.outbound import JsonFileSnapshotStore
from doc_store.application import DocumentStore
from doc_store.domain.entities import SchemaMap
from doc_store.infrastructure.config import Config, StorageConfig, get_config
from doc_store.infrastructure.container import (
    Container,
    build_container,
    get_container,
    reset_container,
)
from doc_store.infrastructure.metrics import MetricsRegistry


@pytest.mark.unit
class TestConfig:
    """Tests for Config class."""

    def test_default_config(self) -> None:
        """Test default configuration values."""
        config = Config()

        assert config.storage.snapshot_file == "db.json"
        assert config.storage.auto_persist is True
        assert config.storage.index_max_keys == 32
        assert config.server.port == 8080
        assert config.observability.log_format == "json"

    def test_snapshot_path(self, temp_dir: Path) -> None:
        storage = StorageConfig(data_dir=temp_dir, snapshot_file="store.json")
        assert storage.snapshot_path == temp_dir / "store.json"

    def test_ensure_directories(self, test_config: Config) -> None:
        """Test that ensure_directories creates the data directory."""
        test_config.ensure_directories()
        assert test_config.storage.data_dir.exists()

    def test_invalid_node_size(self) -> None:
        """Test that a too-small B+Tree node size raises validation error."""
        with pytest.raises(ValueError):
            StorageConfig(index_max_keys=2)

    def test_environment_overrides(
        self, monkeypatch: pytest.MonkeyPatch, temp_dir: Path
    ) -> None:
        monkeypatch.setenv("DOC_STORE_STORAGE__DATA_DIR", str(temp_dir))
        monkeypatch.setenv("DOC_STORE_STORAGE__AUTO_PERSIST", "false")
        monkeypatch.setenv("DOC_STORE_OBSERVABILITY__LOG_LEVEL", "DEBUG")

        config = Config()

        assert config.storage.data_dir == temp_dir
        assert config.storage.auto_persist is False
        assert config.observability.log_level == "DEBUG"


@pytest.mark.unit
class TestConfigSingleton:
    """Tests for get_config singleton."""

    def test_get_config_returns_same_instance(
        self, monkeypatch: pytest.MonkeyPatch, temp_dir: Path
    ) -> None:
        monkeypatch.setenv("DOC_STORE_STORAGE__DATA_DIR", str(temp_dir / "cached"))
        get_config.cache_clear()
        try:
            config1 = get_config()
            config2 = get_config()
            assert config1 is config2
            assert (temp_dir / "cached").exists()
        finally:
            get_config.cache_clear()


@pytest.mark.unit
class TestContainer:
    """Tests for the dependency injection container."""

    def test_singleton_and_factory(self) -> None:
        container = Container()
        container.register_singleton(str, "value")
        container.register_factory(list, lambda c: [c.resolve(str)])

        assert container.resolve(str) == "value"
        first = container.resolve(list)
        assert first == ["value"]
        assert container.resolve(list) is first
        assert container.has(list)

    def test_unregistered(self) -> None:
        with pytest.raises(KeyError):
            Container().resolve(int)

    def test_global_container_reset(self) -> None:
        container = get_container()
        assert get_container() is container
        reset_container()
        assert get_container() is not container

    def test_build_container(
        self,
        schemas: SchemaMap,
        test_config: Config,
        metrics_registry: MetricsRegistry,
    ) -> None:
        container = build_container(schemas, test_config, metrics=metrics_registry)

        snapshots = container.resolve(JsonFileSnapshotStore)
        assert snapshots.path == test_config.storage.snapshot_path

        db = container.resolve(DocumentStore)
        assert container.resolve(DocumentStore) is db
        assert db.is_started is False

        with db:
            db.save("users", {"email": "a@x"})
        assert snapshots.load()["users"]["1"]["email"] == "a@x"
