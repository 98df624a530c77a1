"""
Configures logging and OpenTelemetry tracing for the Xcode Cloud MCP server.

Logs always go to stderr: with the stdio transport, stdout carries the MCP
protocol stream. Tracing is exported via OTLP (gRPC or HTTP) only when an
endpoint is configured and the optional SDK packages are installed.
"""

import logging
import os
import sys
from typing import Any, Optional, Type

# Module logger
logger: logging.Logger = logging.getLogger(__name__)

LOG_FORMAT: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Send all log records to stderr at the given level."""
    root: logging.Logger = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid stacking handlers when called more than once (tests, reloads)
    for existing in root.handlers:
        if getattr(existing, "_xcode_cloud_mcp", False):
            return

    handler: logging.Handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    setattr(handler, "_xcode_cloud_mcp", True)
    root.addHandler(handler)

    # httpx logs every request at INFO, which duplicates our own request logging
    logging.getLogger("httpx").setLevel(logging.WARNING)


def setup_observability(app: Optional[Any] = None) -> None:
    """Initializes OpenTelemetry tracing and, when given an ASGI app, instrumentation."""
    service_name: str = os.getenv("OTEL_SERVICE_NAME", "xcode-cloud-mcp")
    protocol: str = os.getenv("OTEL_EXPORTER_OTLP_PROTOCOL", "grpc")
    endpoint: Optional[str] = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if not endpoint:
        logger.info("OTel endpoint not configured. Skipping OpenTelemetry setup.")
        return

    # Lazy import of OpenTelemetry SDK components so the server runs with only
    # opentelemetry-api installed.
    try:
        from opentelemetry import trace as ot_trace
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
        from opentelemetry.sdk.resources import Resource
    except Exception as e:
        logger.debug("OpenTelemetry tracing components not available: %s", e)
        return

    OTLPSpanExporterGRPC: Optional[Type[Any]] = None
    OTLPSpanExporterHTTP: Optional[Type[Any]] = None
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter as OTLPSpanExporterGRPC,
        )
    except Exception:
        OTLPSpanExporterGRPC = None
    try:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter as OTLPSpanExporterHTTP,
        )
    except Exception:
        OTLPSpanExporterHTTP = None

    logger.info(
        "Initializing OpenTelemetry for service '%s' with %s exporter to '%s'...",
        service_name,
        protocol,
        endpoint,
    )
    resource = Resource.create(attributes={"service.name": service_name})
    tracer_provider = TracerProvider(resource=resource)
    ot_trace.set_tracer_provider(tracer_provider)

    exporter_cls: Optional[Type[Any]] = (
        OTLPSpanExporterGRPC if protocol == "grpc" else OTLPSpanExporterHTTP
    )
    span_exporter: Optional[Any] = None
    if exporter_cls is not None:
        try:
            span_exporter = exporter_cls(endpoint=endpoint)
        except Exception as e:
            logger.warning("Failed to create span exporter: %s", e)

    if span_exporter is not None:
        try:
            tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
        except Exception as e:
            logger.warning("Failed to add span processor: %s", e)
    else:
        logger.info("Span exporter not available; tracing will be partially disabled.")

    if app is not None:
        try:
            from opentelemetry.instrumentation.starlette import StarletteInstrumentor

            StarletteInstrumentor.instrument_app(app)
        except Exception:
            logger.info(
                "Starlette instrumentation not available; skipping auto-instrumentation."
            )

    logger.info("OpenTelemetry initialization complete.")
