"""
Diagnostics context for the current operation.

The diagnostics context is a read-only view of the correlation id,
operation id, node id and tags of the operation in progress. Every read
is computed fresh from the OperationContext bound to the accessor; nothing
is cached or persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from repokit.context import OperationContextSource
from repokit.exceptions import InvalidArgumentError

_EMPTY_TAGS: Mapping[str, str] = MappingProxyType({})

TAG_CORRELATION_ID = "correlation.id"
TAG_OPERATION_ID = "operation.id"
TAG_NODE_ID = "node.id"
TAG_TENANT_ID = "tenant.id"


@runtime_checkable
class DiagnosticsContext(Protocol):
    """Read-only diagnostics view of the current operation."""

    @property
    def correlation_id(self) -> str | None: ...

    @property
    def operation_id(self) -> str | None: ...

    @property
    def node_id(self) -> str | None: ...

    @property
    def tags(self) -> Mapping[str, str]: ...


@dataclass(frozen=True)
class DiagnosticsSnapshot:
    """
    Point-in-time copy of a diagnostics context.

    Attributes:
        correlation_id: Correlation id, if any
        operation_id: Operation id, if any
        node_id: Node id, if any
        tags: Read-only tag map
    """

    correlation_id: str | None = None
    operation_id: str | None = None
    node_id: str | None = None
    tags: Mapping[str, str] = field(default_factory=lambda: _EMPTY_TAGS)

    @classmethod
    def of(cls, context: DiagnosticsContext) -> DiagnosticsSnapshot:
        """Capture the current values of a diagnostics context."""
        return cls(
            correlation_id=context.correlation_id,
            operation_id=context.operation_id,
            node_id=context.node_id,
            tags=MappingProxyType(dict(context.tags)),
        )


class OperationDiagnosticsContext:
    """
    Diagnostics context computed from an explicit operation context.

    Tags combine the operation's own free-form tags with well-known keys
    for the correlation, operation, node and tenant ids; the well-known
    keys win on conflict. Blank values are left out.

    Example:
        >>> from repokit.context import OperationContext, OperationContextAccessor
        >>> contexts = OperationContextAccessor(
        ...     OperationContext(correlation_id="c-1", tenant_id="acme")
        ... )
        >>> dict(OperationDiagnosticsContext(contexts).tags)
        {'correlation.id': 'c-1', 'tenant.id': 'acme'}
    """

    def __init__(self, context_accessor: OperationContextSource) -> None:
        if context_accessor is None:
            raise InvalidArgumentError("context_accessor")
        self._context_accessor = context_accessor

    @property
    def correlation_id(self) -> str | None:
        context = self._context_accessor.current
        return context.correlation_id if context else None

    @property
    def operation_id(self) -> str | None:
        context = self._context_accessor.current
        return context.operation_id if context else None

    @property
    def node_id(self) -> str | None:
        context = self._context_accessor.current
        return context.node_id if context else None

    @property
    def tags(self) -> Mapping[str, str]:
        context = self._context_accessor.current
        if context is None:
            return _EMPTY_TAGS

        tags = dict(context.tags)
        for key, value in (
            (TAG_CORRELATION_ID, context.correlation_id),
            (TAG_OPERATION_ID, context.operation_id),
            (TAG_NODE_ID, context.node_id),
            (TAG_TENANT_ID, context.tenant_id),
        ):
            if value:
                tags[key] = value
        return MappingProxyType(tags)

    def snapshot(self) -> DiagnosticsSnapshot:
        return DiagnosticsSnapshot.of(self)


__all__ = [
    "DiagnosticsContext",
    "DiagnosticsSnapshot",
    "OperationDiagnosticsContext",
    "TAG_CORRELATION_ID",
    "TAG_OPERATION_ID",
    "TAG_NODE_ID",
    "TAG_TENANT_ID",
]
