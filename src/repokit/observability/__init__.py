"""
Observability utilities for repokit.

Provides the composition-based tracer used by repositories, units of work,
transaction scopes and health contributors, plus the standard span
attribute names.

Example:
    >>> from repokit.observability import create_tracer
    >>> tracer = create_tracer(__name__)
    >>> with tracer.span("repokit.unit_of_work.save_changes"):
    ...     pass

Note:
    OpenTelemetry is an optional dependency. When it is not installed,
    create_tracer() returns a NullTracer.
"""

from repokit.observability.attributes import (
    ATTR_AFFECTED_COUNT,
    ATTR_DB_OPERATION,
    ATTR_ENTITY_COUNT,
    ATTR_ENTITY_TYPE,
    ATTR_HEALTH_CONTRIBUTOR,
    ATTR_HEALTH_STATUS,
    ATTR_TRANSACTION_ID,
)
from repokit.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    SpanKindEnum,
    Tracer,
    create_tracer,
)
from repokit.observability.tracing import (
    OTEL_AVAILABLE,
    should_trace,
)

__all__ = [
    # Tracing utilities
    "OTEL_AVAILABLE",
    "should_trace",
    # Tracer protocol and implementations
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "SpanKindEnum",
    "create_tracer",
    # Attributes
    "ATTR_AFFECTED_COUNT",
    "ATTR_DB_OPERATION",
    "ATTR_ENTITY_COUNT",
    "ATTR_ENTITY_TYPE",
    "ATTR_HEALTH_CONTRIBUTOR",
    "ATTR_HEALTH_STATUS",
    "ATTR_TRANSACTION_ID",
]
