"""
Tenant accessors.

A tenant accessor answers one question: which tenant is the current
operation acting for? It never raises and never enforces that a tenant is
present. Callers that require tenancy check ``TenantId.is_empty`` and
reject the operation themselves.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from repokit.context import OperationContextSource
from repokit.exceptions import InvalidArgumentError
from repokit.tenancy.tenant_id import TenantId


@runtime_checkable
class TenantAccessor(Protocol):
    """Read-only accessor for the tenant bound to the current operation."""

    def get_current_tenant_id(self) -> TenantId:
        """
        Get the tenant bound to the current operation.

        Returns:
            The bound TenantId, or an empty TenantId when none is bound
        """
        ...


class ContextTenantAccessor:
    """
    Tenant accessor backed by an explicit operation context.

    Example:
        >>> from repokit.context import OperationContext, OperationContextAccessor
        >>> contexts = OperationContextAccessor(OperationContext(tenant_id="acme"))
        >>> ContextTenantAccessor(contexts).get_current_tenant_id()
        TenantId(value='acme')
    """

    def __init__(self, context_accessor: OperationContextSource) -> None:
        if context_accessor is None:
            raise InvalidArgumentError("context_accessor")
        self._context_accessor = context_accessor

    def get_current_tenant_id(self) -> TenantId:
        context = self._context_accessor.current
        if context is None:
            return TenantId.empty()

        tenant_id = context.tenant_id
        if tenant_id is None or not tenant_id.strip():
            return TenantId.empty()
        return TenantId.from_string(tenant_id)


class StaticTenantAccessor:
    """
    Tenant accessor that always returns the same tenant.

    Useful for background jobs that process a single known tenant, and as
    a test double.
    """

    def __init__(self, tenant_id: TenantId | str | None = None) -> None:
        if not isinstance(tenant_id, TenantId):
            tenant_id = TenantId.from_string(tenant_id)
        self._tenant_id = tenant_id

    def get_current_tenant_id(self) -> TenantId:
        return self._tenant_id

    def __repr__(self) -> str:
        return f"StaticTenantAccessor({self._tenant_id.value!r})"


__all__ = [
    "TenantAccessor",
    "ContextTenantAccessor",
    "StaticTenantAccessor",
]
