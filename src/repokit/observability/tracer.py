"""
Tracers injected into repokit components.

Repositories, units of work, transaction scopes and health contributors
never import OpenTelemetry themselves. Each takes an optional ``tracer``
argument and otherwise asks create_tracer() for one, which yields an
OpenTelemetryTracer when the ``telemetry`` extra is installed and a
NullTracer when it is not. Tests pass a MockTracer and assert on the
recorded span names and attributes.

Every implementation routes ``span()`` through ``span_with_kind()`` with
SpanKindEnum.INTERNAL.

Example:
    >>> tracer = MockTracer()
    >>> uow = SqlAlchemyUnitOfWork(session, tracer=tracer)
    >>> await uow.save_changes()
    >>> tracer.span_names
    ['repokit.unit_of_work.save_changes']
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from contextlib import AbstractContextManager
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from repokit.observability.tracing import should_trace

if TYPE_CHECKING:
    from opentelemetry.trace import Span

Attributes = dict[str, Any]


class SpanKindEnum(Enum):
    """
    Span kinds used by repokit.

    Statements sent to the database are CLIENT spans; everything else
    (saves, transaction bookkeeping, health checks) is INTERNAL.
    """

    INTERNAL = "internal"
    CLIENT = "client"


@runtime_checkable
class Tracer(Protocol):
    """What repokit components need from a tracer."""

    def span(
        self,
        name: str,
        attributes: Attributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Open an INTERNAL span around a block.

        The context manager yields the live span, or None when nothing is
        being recorded. Callers that add attributes after the fact must
        check for None.
        """
        ...

    def span_with_kind(
        self,
        name: str,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
        attributes: Attributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        """Open a span of the given kind around a block."""
        ...

    @property
    def enabled(self) -> bool:
        """True when spans are actually recorded somewhere."""
        ...


class NullTracer:
    """Tracer that records nothing. Used when tracing is off or unavailable."""

    def span(
        self,
        name: str,
        attributes: Attributes | None = None,
    ) -> AbstractContextManager[None]:
        return self.span_with_kind(name, SpanKindEnum.INTERNAL, attributes)

    @contextlib.contextmanager
    def span_with_kind(
        self,
        name: str,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
        attributes: Attributes | None = None,
    ) -> Iterator[None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


def _to_otel_kind(kind: SpanKindEnum) -> Any:
    from opentelemetry.trace import SpanKind

    if kind is SpanKindEnum.CLIENT:
        return SpanKind.CLIENT
    return SpanKind.INTERNAL


class OpenTelemetryTracer:
    """
    Tracer backed by the global OpenTelemetry tracer provider.

    Args:
        tracer_name: Instrumentation scope name, usually the module's
            ``__name__``

    Raises:
        ImportError: If opentelemetry-api is not installed
    """

    def __init__(self, tracer_name: str) -> None:
        from opentelemetry import trace

        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: Attributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self.span_with_kind(name, SpanKindEnum.INTERNAL, attributes)

    def span_with_kind(
        self,
        name: str,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
        attributes: Attributes | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(
            name,
            kind=_to_otel_kind(kind),
            attributes=attributes or {},
        )

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    Tracer that remembers every span opened through it.

    ``spans`` holds ``(name, attributes)`` pairs in opening order and
    ``kinds`` the matching span kinds. Spans are recorded when opened, so
    a block that raises still shows up.

    Example:
        >>> tracer = MockTracer()
        >>> with tracer.span("repokit.health.check", {"repokit.health.contributor": "db"}):
        ...     pass
        >>> tracer.spans
        [('repokit.health.check', {'repokit.health.contributor': 'db'})]
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, Attributes | None]] = []
        self.kinds: list[SpanKindEnum] = []

    def span(
        self,
        name: str,
        attributes: Attributes | None = None,
    ) -> AbstractContextManager[None]:
        return self.span_with_kind(name, SpanKindEnum.INTERNAL, attributes)

    @contextlib.contextmanager
    def span_with_kind(
        self,
        name: str,
        kind: SpanKindEnum = SpanKindEnum.INTERNAL,
        attributes: Attributes | None = None,
    ) -> Iterator[None]:
        self.spans.append((name, attributes))
        self.kinds.append(kind)
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        self.spans.clear()
        self.kinds.clear()


def create_tracer(name: str, enable_tracing: bool = True) -> Tracer:
    """
    Pick the tracer for a component that was not handed one.

    Args:
        name: Instrumentation scope name (typically ``__name__``)
        enable_tracing: The component's own tracing switch

    Returns:
        OpenTelemetryTracer when tracing is enabled and OpenTelemetry is
        importable, NullTracer otherwise
    """
    if should_trace(enable_tracing):
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "SpanKindEnum",
    "create_tracer",
]
