"""
Tenant identity and resolution for repokit.

- **TenantId**: opaque tenant identifier with value semantics
- **TenantAccessor**: returns the tenant bound to the current operation,
  never raising (an empty TenantId means "no tenant")
- **TenantResolutionStrategy**: maps a tenant to a database URL and schema
- **Strategies**: database-per-tenant, schema-per-tenant and shared
  database (row-level) isolation models

Row-level filtering is not applied here. Applications using the shared
database model include the tenant in the predicates they pass to
repositories.

Example:
    >>> from repokit.context import OperationContext, OperationContextAccessor
    >>> from repokit.tenancy import ContextTenantAccessor, TenantId
    >>>
    >>> contexts = OperationContextAccessor(OperationContext(tenant_id="acme"))
    >>> ContextTenantAccessor(contexts).get_current_tenant_id() == TenantId("acme")
    True
"""

from repokit.tenancy.accessor import (
    ContextTenantAccessor,
    StaticTenantAccessor,
    TenantAccessor,
)
from repokit.tenancy.resolution import (
    DatabasePerTenantStrategy,
    SchemaPerTenantStrategy,
    SharedDatabaseStrategy,
    TenantResolutionStrategy,
)
from repokit.tenancy.tenant_id import TenantId

__all__ = [
    "TenantId",
    "TenantAccessor",
    "ContextTenantAccessor",
    "StaticTenantAccessor",
    "TenantResolutionStrategy",
    "DatabasePerTenantStrategy",
    "SchemaPerTenantStrategy",
    "SharedDatabaseStrategy",
]
