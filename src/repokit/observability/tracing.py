"""
OpenTelemetry detection.

This is the only module that tries to import OpenTelemetry. The rest of
repokit goes through should_trace() or create_tracer(), so installing or
removing the ``telemetry`` extra never breaks an import.
"""

from __future__ import annotations

try:
    from opentelemetry import trace  # noqa: F401

    OTEL_AVAILABLE = True
except ImportError:
    OTEL_AVAILABLE = False


def should_trace(enable_tracing: bool) -> bool:
    """True when a component asked for tracing and OpenTelemetry is present."""
    return enable_tracing and OTEL_AVAILABLE


__all__ = [
    "OTEL_AVAILABLE",
    "should_trace",
]
