"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from view_search.observability.context import get_trace_context, set_trace_context, trace_context
from view_search.observability.logging import JsonFormatter, configure_from_settings, configure_logging
from view_search.observability.metrics import (
    FILTER_ERRORS,
    INDEXED_DOCUMENTS,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from view_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "FILTER_ERRORS",
    "INDEXED_DOCUMENTS",
    "SEARCH_LATENCY",
    "SEARCH_REQUESTS",
    "JsonFormatter",
    "configure_from_settings",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
