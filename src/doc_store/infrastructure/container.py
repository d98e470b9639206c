"""Dependency injection container."""

from __future__ import annotations

from typing import Any, Callable, TypeVar

from doc_store.domain.entities.schema import SchemaMap
from doc_store.infrastructure.config import Config, get_config
from doc_store.infrastructure.logging import get_logger, setup_logging
from doc_store.infrastructure.metrics import MetricsRegistry, get_metrics
from doc_store.infrastructure.tracing import setup_tracing

T = TypeVar("T")


class Container:
    """
    Simple dependency injection container.

    Supports singleton and factory registrations with lazy initialization.
    """

    def __init__(self) -> None:
        self._factories: dict[type, Callable[[Container], Any]] = {}
        self._instances: dict[type, Any] = {}

    def register_singleton(self, interface: type[T], instance: T) -> None:
        """
        Register a singleton instance.

        Args:
            interface: The interface/type to register
            instance: The singleton instance
        """
        self._instances[interface] = instance

    def register_factory(
        self,
        interface: type[T],
        factory: Callable[[Container], T],
    ) -> None:
        """
        Register a factory function for lazy instantiation.

        The factory runs on first resolve; its result is cached.

        Args:
            interface: The interface/type to register
            factory: Factory function that takes the container and returns an instance
        """
        self._factories[interface] = factory

    def resolve(self, interface: type[T]) -> T:
        """
        Resolve a dependency.

        Raises:
            KeyError: If no registration exists for the interface
        """
        if interface in self._instances:
            return self._instances[interface]

        if interface in self._factories:
            instance = self._factories[interface](self)
            self._instances[interface] = instance
            return instance

        raise KeyError(f"No registration found for {interface}")

    def has(self, interface: type) -> bool:
        """Check if an interface is registered."""
        return interface in self._factories or interface in self._instances

    def clear(self) -> None:
        """Clear all registrations and instances."""
        self._factories.clear()
        self._instances.clear()


def build_container(
    schemas: SchemaMap,
    config: Config | None = None,
    metrics: MetricsRegistry | None = None,
    configure_observability: bool = False,
) -> Container:
    """
    Wire a container for one document store.

    Registers the Config, the MetricsRegistry, the JSON snapshot store at
    ``config.storage.snapshot_path`` and a DocumentStore built from them.
    The store is created lazily and is not started.

    Args:
        schemas: Table name -> schema for the store
        config: Configuration (default: the cached global one)
        metrics: Metrics registry (default: the global one)
        configure_observability: Also set up logging and tracing from config
    """
    from doc_store.adapters.outbound.json_snapshot_store import JsonFileSnapshotStore
    from doc_store.application.document_store import DocumentStore

    config = config or get_config()
    if configure_observability:
        setup_logging(config.observability.log_level, config.observability.log_format)
        setup_tracing(
            service_name=config.observability.otel_service_name,
            otlp_endpoint=config.observability.otel_endpoint,
        )

    container = Container()
    container.register_singleton(Config, config)
    container.register_singleton(MetricsRegistry, metrics or get_metrics())
    container.register_factory(
        JsonFileSnapshotStore,
        lambda c: JsonFileSnapshotStore(
            c.resolve(Config).storage.snapshot_path,
            indent=c.resolve(Config).storage.json_indent,
        ),
    )
    container.register_factory(
        DocumentStore,
        lambda c: DocumentStore(
            schemas,
            snapshot_store=c.resolve(JsonFileSnapshotStore),
            auto_persist=c.resolve(Config).storage.auto_persist,
            metrics=c.resolve(MetricsRegistry),
            index_max_keys=c.resolve(Config).storage.index_max_keys,
        ),
    )

    get_logger(__name__).debug(
        "container_built",
        tables=sorted(schemas),
        snapshot=str(config.storage.snapshot_path),
    )
    return container


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """Get the global container instance."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Reset the global container (useful for testing)."""
    global _container
    if _container is not None:
        _container.clear()
    _container = None
