"""OpenTelemetry initialization helpers for eventnet services."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from eventnet.core.config import settings

logger = logging.getLogger(__name__)
_TRACING_INITIALIZED = False


def setup_tracing() -> bool:
    """Install a tracer provider exporting over OTLP; a no-op without an endpoint."""

    global _TRACING_INITIALIZED
    if _TRACING_INITIALIZED:
        return True
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        logger.debug("OTEL_EXPORTER_OTLP_ENDPOINT not set; spans stay in the no-op tracer")
        return False

    resource = Resource.create(
        {
            "service.name": settings.API_TITLE.lower().replace(" ", "-"),
            "service.version": settings.API_VERSION,
            "environment": settings.ENVIRONMENT,
        }
    )
    provider = TracerProvider(resource=resource)
    headers = _parse_headers(settings.OTEL_EXPORTER_OTLP_HEADERS)
    exporter = OTLPSpanExporter(endpoint=str(settings.OTEL_EXPORTER_OTLP_ENDPOINT), headers=headers or None)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)

    _TRACING_INITIALIZED = True
    logger.info("OpenTelemetry tracing initialized with %s exporter", exporter.__class__.__name__)
    return True


def _parse_headers(raw_headers: Optional[str]) -> Dict[str, str]:
    if not raw_headers:
        return {}
    pairs = {}
    for item in raw_headers.split(","):
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        pairs[key.strip()] = value.strip()
    return pairs


__all__ = ["setup_tracing"]
