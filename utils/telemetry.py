"""Telemetry bootstrap helpers for OpenTelemetry tracing."""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SimpleSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_OFF, ALWAYS_ON, ParentBased, Sampler, TraceIdRatioBased

LOGGER = logging.getLogger("chart_query.telemetry")

_INITIALISED = False


def _parse_headers(raw: str | None) -> Dict[str, str]:
    """Parse comma-separated OTLP headers into a dictionary."""

    headers: Dict[str, str] = {}
    if not raw:
        return headers
    for fragment in raw.split(","):
        if "=" not in fragment:
            continue
        key, value = fragment.split("=", 1)
        key = key.strip()
        if key:
            headers[key] = value.strip()
    return headers


def _coerce_ratio(raw: str, *, default: float) -> float:
    """Convert ``raw`` to a float ratio within [0.0, 1.0]."""

    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Invalid OTEL_TRACES_SAMPLER_ARG '%s'; using default %.2f", raw, default)
        return default
    return max(0.0, min(1.0, value))


def _build_sampler() -> Sampler:
    """Create a sampler based on environment configuration."""

    sampler_name = os.getenv("OTEL_TRACES_SAMPLER", "").strip().lower()
    ratio = _coerce_ratio(os.getenv("OTEL_TRACES_SAMPLER_ARG", "").strip(), default=1.0)

    if sampler_name in {"", "parentbased_traceidratio"}:
        return ParentBased(TraceIdRatioBased(ratio))
    if sampler_name == "traceidratio":
        return TraceIdRatioBased(ratio)
    if sampler_name == "always_on":
        return ALWAYS_ON
    if sampler_name == "always_off":
        return ALWAYS_OFF
    LOGGER.warning("Unknown OTEL_TRACES_SAMPLER '%s'; defaulting to parentbased_traceidratio", sampler_name)
    return ParentBased(TraceIdRatioBased(ratio))


def _create_exporter() -> Optional[SpanExporter]:
    """Instantiate the OTLP HTTP exporter when an endpoint is configured."""

    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "").strip()
    if not endpoint:
        return None

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    return OTLPSpanExporter(
        endpoint=endpoint,
        headers=_parse_headers(os.getenv("OTEL_EXPORTER_OTLP_HEADERS")) or None,
    )


def setup_tracing(*, force: bool = False) -> bool:
    """Configure the global tracer provider if telemetry is enabled.

    Returns:
        ``True`` when a provider was installed by this call.
    """

    global _INITIALISED
    if _INITIALISED and not force:
        return False

    enabled_flag = os.getenv("OTEL_TRACES_ENABLED", "1").strip().lower()
    if enabled_flag in {"0", "false", "off"}:
        LOGGER.info("Telemetry disabled via OTEL_TRACES_ENABLED")
        return False

    exporter = _create_exporter()
    console = os.getenv("OTEL_CONSOLE_EXPORT", "").strip().lower() in {"1", "true", "yes", "on"}
    if exporter is None and not console:
        LOGGER.debug("No span exporter configured; skipping telemetry bootstrap")
        return False

    service_name = os.getenv("OTEL_SERVICE_NAME", "chart-query")
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}), sampler=_build_sampler())
    if exporter is not None:
        provider.add_span_processor(BatchSpanProcessor(exporter))
    if console:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)

    _INITIALISED = True
    LOGGER.info("OpenTelemetry tracing initialised for service '%s'", service_name)
    return True


__all__ = ["setup_tracing"]
