"""
Explicit operation context for tenant and diagnostics resolution.

An OperationContext describes one logical operation (a request, a job, a
message): its correlation id, operation id, node id, tenant and free-form
tags. Instead of living in ambient state, the context is held by an
OperationContextAccessor that the host creates for each logical operation
and passes to the components that need it (tenant accessors and
diagnostics contexts).

- OperationContext: immutable snapshot of the operation's identity
- OperationContextAccessor: explicit holder, optionally empty
- OperationContextAccessor.scope(): bind a context for a block and restore
  the previous one on exit

Example:
    >>> from repokit.context import OperationContext, OperationContextAccessor
    >>> from repokit.tenancy import ContextTenantAccessor
    >>>
    >>> accessor = OperationContextAccessor()
    >>> tenants = ContextTenantAccessor(accessor)
    >>> tenants.get_current_tenant_id().is_empty
    True
    >>> with accessor.scope(OperationContext(tenant_id="acme", correlation_id="c-1")):
    ...     str(tenants.get_current_tenant_id())
    'acme'
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Protocol, runtime_checkable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from collections.abc import Generator

logger = logging.getLogger(__name__)


class OperationContext(BaseModel):
    """
    Identity of one logical operation.

    All fields are optional; a context with nothing set is valid and simply
    carries no correlation or tenant information.

    Attributes:
        correlation_id: Id propagated across a distributed operation
        operation_id: Id of this particular operation
        node_id: Id of the node executing the operation
        tenant_id: Raw tenant identifier bound to the operation
        tags: Additional free-form tags
    """

    model_config = ConfigDict(frozen=True)

    correlation_id: str | None = Field(
        default=None,
        description="Correlation id propagated across a distributed operation",
    )
    operation_id: str | None = Field(
        default=None,
        description="Id of this particular operation",
    )
    node_id: str | None = Field(
        default=None,
        description="Id of the node executing the operation",
    )
    tenant_id: str | None = Field(
        default=None,
        description="Raw tenant identifier bound to the operation",
    )
    tags: dict[str, str] = Field(
        default_factory=dict,
        description="Additional free-form tags",
    )

    @classmethod
    def new(cls, **kwargs: object) -> OperationContext:
        """
        Create a context with freshly generated correlation and operation ids.

        Explicit keyword arguments win over the generated ids.
        """
        values: dict[str, object] = {
            "correlation_id": str(uuid4()),
            "operation_id": str(uuid4()),
        }
        values.update(kwargs)
        return cls.model_validate(values)


@runtime_checkable
class OperationContextSource(Protocol):
    """Anything that can report the operation context currently in effect."""

    @property
    def current(self) -> OperationContext | None:
        """The bound context, or None when no operation is in progress."""
        ...


class OperationContextAccessor:
    """
    Explicit holder for the context of one logical operation.

    Hosts create one accessor per request or job and pass it to the
    components built for that operation. The accessor is deliberately not
    shared through thread-local or context-variable state.
    """

    def __init__(self, context: OperationContext | None = None) -> None:
        self._current = context

    @property
    def current(self) -> OperationContext | None:
        return self._current

    def bind(self, context: OperationContext | None) -> OperationContext | None:
        """
        Replace the bound context.

        Returns:
            The previously bound context, so callers can restore it
        """
        previous = self._current
        self._current = context
        logger.debug(
            "Operation context bound: correlation=%s tenant=%s",
            context.correlation_id if context else None,
            context.tenant_id if context else None,
        )
        return previous

    @contextmanager
    def scope(self, context: OperationContext) -> Generator[OperationContext, None, None]:
        """
        Bind a context for the duration of a block.

        The previously bound context is restored on exit, even if the block
        raises, so scopes nest correctly.
        """
        previous = self.bind(context)
        try:
            yield context
        finally:
            self._current = previous

    def __repr__(self) -> str:
        return f"OperationContextAccessor(current={self._current!r})"


__all__ = [
    "OperationContext",
    "OperationContextSource",
    "OperationContextAccessor",
]
