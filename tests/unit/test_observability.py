"""Unit tests for logging and tracing helpers."""

from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from typing import Generator

import pytest
import structlog
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from doc_store.infrastructure import tracing
from doc_store.infrastructure.logging import get_logger, operation_context, setup_logging
from doc_store.infrastructure.tracing import trace_span


@pytest.fixture
def log_stream() -> Generator[io.StringIO, None, None]:
    stream = io.StringIO()
    setup_logging("INFO", "json", stream=stream)
    yield stream
    structlog.reset_defaults()


@pytest.fixture
def spans(monkeypatch: pytest.MonkeyPatch) -> InMemorySpanExporter:
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(tracing, "_tracer", provider.get_tracer("test"))
    return exporter


def events(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line]


@pytest.mark.unit
class TestLogging:
    """Tests for structured logging."""

    def test_json_events(self, log_stream: io.StringIO) -> None:
        logger = get_logger("test_json_events", component="tests")
        logger.info("record_saved", id=1, created=datetime(2024, 1, 1, tzinfo=timezone.utc))
        logger.debug("hidden")

        [event] = events(log_stream)
        assert event["event"] == "record_saved"
        assert event["component"] == "tests"
        assert event["level"] == "info"
        assert event["created"].startswith("2024-01-01")

    def test_operation_context(self, log_stream: io.StringIO) -> None:
        logger = get_logger("test_operation_context")
        with operation_context("save", "users"):
            logger.info("inside", note=None)
        logger.info("outside")

        inside, outside = events(log_stream)
        assert inside["operation"] == "save"
        assert inside["table"] == "users"
        assert "note" not in inside
        assert "operation" not in outside


@pytest.mark.unit
class TestTracing:
    """Tests for trace spans."""

    def test_span_attributes(self, spans: InMemorySpanExporter) -> None:
        with trace_span("doc_store.find", {"table": "users", "alias": None, "ids": [1, 2]}) as span:
            span.set_attribute("rows", 2)

        [finished] = spans.get_finished_spans()
        assert finished.name == "doc_store.find"
        assert finished.attributes["table"] == "users"
        assert finished.attributes["ids"] == "[1, 2]"
        assert finished.attributes["rows"] == 2
        assert "alias" not in finished.attributes

    def test_store_operations_are_traced(self, populated_store, spans: InMemorySpanExporter) -> None:
        populated_store.find("users")
        populated_store.remove("users", {"id": 1})

        names = [s.name for s in spans.get_finished_spans()]
        assert names == ["doc_store.find", "doc_store.remove"]
        assert spans.get_finished_spans()[0].attributes["rows"] == 4
