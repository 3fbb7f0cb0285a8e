"""OpenTelemetry initialization and configuration for aisdk.

Spans are always emitted through the OpenTelemetry API; without
``init_telemetry`` they go to the no-op provider.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

if TYPE_CHECKING:
    from ..config import TelemetryConfig

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "aisdk"
DEFAULT_OTLP_ENDPOINT = "http://localhost:4317"

_provider: Optional[TracerProvider] = None


def init_telemetry(
    service_name: Optional[str] = None,
    otlp_endpoint: Optional[str] = None,
    exporter: Optional[SpanExporter] = None,
) -> TracerProvider:
    """Initialize OpenTelemetry tracing.

    Args:
        service_name: Service name for traces (default: OTEL_SERVICE_NAME env or "aisdk")
        otlp_endpoint: OTLP collector endpoint (default: OTEL_EXPORTER_OTLP_ENDPOINT env
            or http://localhost:4317)
        exporter: Span exporter to use instead of OTLP gRPC

    Returns:
        The tracer provider in use. Calling again returns the same one.
    """
    global _provider
    if _provider is not None:
        return _provider

    service_name = service_name or os.getenv("OTEL_SERVICE_NAME", DEFAULT_SERVICE_NAME)
    otlp_endpoint = otlp_endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", DEFAULT_OTLP_ENDPOINT)

    resource = Resource.create(
        {
            "service.name": service_name,
            "deployment.environment": os.getenv("DEPLOYMENT_ENV", "development"),
        }
    )
    provider = TracerProvider(resource=resource)

    if exporter is None:
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
    provider.add_span_processor(
        BatchSpanProcessor(
            exporter,
            max_queue_size=2048,
            schedule_delay_millis=1000,
            max_export_batch_size=512,
        )
    )

    trace.set_tracer_provider(provider)
    _provider = provider
    logger.info("OpenTelemetry initialized: service=%s, endpoint=%s", service_name, otlp_endpoint)
    return provider


def init_telemetry_from_config(config: TelemetryConfig) -> Optional[TracerProvider]:
    """Initialize tracing from the [telemetry] table; None when disabled."""
    if not config.enabled:
        return None
    return init_telemetry(service_name=config.service_name, otlp_endpoint=config.otlp_endpoint)


def shutdown_telemetry() -> None:
    """Shutdown OpenTelemetry gracefully, flushing pending spans."""
    global _provider
    if _provider is None:
        return

    _provider.shutdown()
    _provider = None
    logger.info("OpenTelemetry shutdown complete")
