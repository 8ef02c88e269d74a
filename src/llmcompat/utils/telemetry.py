"""OpenTelemetry tracing helpers for llmcompat.

Provides a thin wrapper around the OpenTelemetry API so the conversion code
can call ``get_tracer()`` without caring whether the SDK is installed. When
the SDK is *not* configured the API returns no-op implementations.

Usage::

    from llmcompat.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("llmcompat.convert_request") as span:
        span.set_attribute(ATTR_DIRECTION, "a-to-b")

To activate real tracing, call :func:`configure_telemetry` once at startup,
or pass ``--trace`` / ``--otlp-endpoint`` to the CLI (requires the ``otel``
extra: ``pip install llmcompat[otel]``).
"""

from __future__ import annotations

from typing import Any, TextIO

from opentelemetry import trace

from llmcompat import __version__

# ---------------------------------------------------------------------------
# Semantic attribute keys used throughout llmcompat instrumentation
# ---------------------------------------------------------------------------

ATTR_MAPPING_TABLE = "llmcompat.mapping_table"
ATTR_TABLE_VERSION = "llmcompat.mapping_table.version"
ATTR_DIRECTION = "llmcompat.direction"
ATTR_SOURCE_FORMAT = "llmcompat.format.source"
ATTR_TARGET_FORMAT = "llmcompat.format.target"
ATTR_AGENT = "llmcompat.agent"
ATTR_REQUEST_ID = "llmcompat.request_id"
ATTR_PROVIDER = "llmcompat.provider"
ATTR_FIELD_COUNT = "llmcompat.field_count"
ATTR_WARNING_COUNT = "llmcompat.warning_count"
ATTR_MODEL = "llmcompat.model"

_INSTRUMENTATION_NAME = "llmcompat"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return a :class:`~opentelemetry.trace.Tracer` for *name*.

    If the OpenTelemetry SDK has not been configured the returned tracer
    is a no-op.
    """
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "llmcompat",
    console_stream: TextIO | None = None,
    otlp_endpoint: str | None = None,
) -> trace.TracerProvider:
    """Install an SDK tracer provider (requires ``llmcompat[otel]``).

    Spans are written as JSON to *console_stream* when given, and exported
    over OTLP/gRPC when *otlp_endpoint* is set. Returns the installed provider.

    Raises:
        ImportError: If ``opentelemetry-sdk`` (or, for OTLP, the exporter) is
            not installed. Nothing is installed in that case.
    """
    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        msg = "opentelemetry-sdk is required for tracing; install llmcompat[otel]"
        raise ImportError(msg) from exc

    processors: list[Any] = []
    if console_stream is not None:
        processors.append(SimpleSpanProcessor(ConsoleSpanExporter(out=console_stream)))
    if otlp_endpoint:
        processors.append(BatchSpanProcessor(_otlp_exporter(otlp_endpoint)))

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": __version__})
    )
    for processor in processors:
        provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)
    return provider


def _otlp_exporter(endpoint: str) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter  # pyright: ignore[reportMissingImports]
    except ImportError as exc:
        msg = "opentelemetry-exporter-otlp is required for OTLP export; install llmcompat[otel]"
        raise ImportError(msg) from exc
    return OTLPSpanExporter(endpoint=endpoint)
