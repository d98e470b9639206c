"""Infrastructure layer - cross-cutting concerns."""

from doc_store.infrastructure.config import Config, get_config
from doc_store.infrastructure.logging import setup_logging, get_logger, operation_context
from doc_store.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from doc_store.infrastructure.tracing import setup_tracing, get_tracer, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "operation_context",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
