"""Prometheus metrics for the document store."""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)


class MetricsRegistry:
    """Registry of all document store metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or REGISTRY

        # Query metrics
        self.queries_total = Counter(
            "docstore_queries_total",
            "Total number of queries executed",
            ["table", "status"],  # status: success, error
            registry=self._registry,
        )

        self.query_latency_seconds = Histogram(
            "docstore_query_latency_seconds",
            "Query latency in seconds",
            ["table"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
            registry=self._registry,
        )

        # Mutation metrics
        self.mutations_total = Counter(
            "docstore_mutations_total",
            "Total number of mutations",
            ["table", "kind", "status"],  # kind: save, remove
            registry=self._registry,
        )

        self.unique_violations_total = Counter(
            "docstore_unique_violations_total",
            "Writes rejected by a unique constraint",
            ["table", "column"],
            registry=self._registry,
        )

        self.records = Gauge(
            "docstore_records",
            "Number of records stored per table",
            ["table"],
            registry=self._registry,
        )

        # Index metrics
        self.index_lookups_total = Counter(
            "docstore_index_lookups_total",
            "Simple conditions answered by a secondary index",
            ["table"],
            registry=self._registry,
        )

        self.full_scans_total = Counter(
            "docstore_full_scans_total",
            "Simple conditions answered by a full table scan",
            ["table"],
            registry=self._registry,
        )

        # Snapshot metrics
        self.snapshot_flushes_total = Counter(
            "docstore_snapshot_flushes_total",
            "Total snapshot flush operations",
            ["status"],
            registry=self._registry,
        )

        self.snapshot_flush_latency_seconds = Histogram(
            "docstore_snapshot_flush_latency_seconds",
            "Snapshot flush latency in seconds",
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.5, 1.0),
            registry=self._registry,
        )

        self.snapshot_loads_total = Counter(
            "docstore_snapshot_loads_total",
            "Total snapshot load operations",
            ["status"],
            registry=self._registry,
        )

        # Server info
        self.info = Info(
            "docstore",
            "Document store information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from doc_store import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
