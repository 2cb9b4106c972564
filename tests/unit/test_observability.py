"""Unit tests for logging setup and the tracing decorator."""

import logging
from collections.abc import Iterator
from unittest.mock import patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from pythonjsonlogger import jsonlogger

from restaurant_order_service.exceptions import NotFoundError
from restaurant_order_service.observability import configure_logging, traced


@pytest.fixture
def span_exporter() -> Iterator[InMemorySpanExporter]:
    """Route spans of newly decorated functions to an in-memory exporter."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    with patch(
        "restaurant_order_service.observability.decorators.trace.get_tracer",
        side_effect=lambda name: provider.get_tracer(name),
    ):
        yield exporter


@pytest.mark.unit
class TestTraced:
    """Test suite for the traced decorator."""

    @pytest.mark.asyncio
    async def test_async_success(self, span_exporter: InMemorySpanExporter) -> None:
        """Test that coroutines get a span marked successful."""

        @traced("orders.test")
        async def handler(value: int) -> int:
            return value * 2

        assert await handler(21) == 42

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "orders.test"
        assert span.attributes["success"] is True
        assert span.attributes["function.name"] == "handler"

    @pytest.mark.asyncio
    async def test_async_failure_records_error_code(
        self, span_exporter: InMemorySpanExporter
    ) -> None:
        """Test that order service errors are recorded with their code and re-raised."""

        @traced("orders.missing")
        async def handler() -> None:
            raise NotFoundError("Order", "ord_missing")

        with pytest.raises(NotFoundError):
            await handler()

        (span,) = span_exporter.get_finished_spans()
        assert span.attributes["success"] is False
        assert span.attributes["error.code"] == "not_found"
        assert span.attributes["error.type"] == "NotFoundError"

    def test_sync_function_defaults_span_name(self, span_exporter: InMemorySpanExporter) -> None:
        """Test that plain functions are traced under their own name."""

        @traced()
        def compute() -> str:
            return "ok"

        assert compute() == "ok"
        assert span_exporter.get_finished_spans()[0].name == "compute"


@pytest.mark.unit
class TestConfigureLogging:
    """Test suite for structured logging setup."""

    def test_installs_json_formatter(self) -> None:
        """Test that the root logger gets a single JSON handler."""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            with patch.dict("os.environ", {"LOG_LEVEL": "DEBUG"}):
                configure_logging("INFO")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, jsonlogger.JsonFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
