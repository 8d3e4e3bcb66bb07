"""
Tenant resolution strategies.

A resolution strategy maps a TenantId to the physical location of that
tenant's data: a database URL and, optionally, a schema name. Three
isolation models are expressed by composing the two functions:

- Database per tenant: the URL varies, the schema does not
  (DatabasePerTenantStrategy)
- Schema per tenant: the schema varies, the URL is constant
  (SchemaPerTenantStrategy)
- Row level: neither varies (SharedDatabaseStrategy); the application
  filters by tenant in the predicates it passes to repositories

Strategies are pure mappings. The implementations below hold only
immutable state and are safe to share across tasks and threads.

Example:
    >>> strategy = SchemaPerTenantStrategy("postgresql+asyncpg://db/app")
    >>> strategy.resolve_schema(TenantId("acme"))
    'tenant_acme'
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from repokit.exceptions import InvalidArgumentError, TenantNotResolvedError, UnknownTenantError
from repokit.tenancy.tenant_id import TenantId

# Tenant values substituted into URLs or schema names must be plain identifiers
_SAFE_TENANT_VALUE = re.compile(r"^[A-Za-z0-9_\-]+$")


@runtime_checkable
class TenantResolutionStrategy(Protocol):
    """
    Maps a tenant to a connection target and schema.

    Implementations that cache internally must be safe for concurrent use.
    """

    async def resolve_connection_string(self, tenant_id: TenantId) -> str:
        """
        Resolve the database URL for a tenant.

        Args:
            tenant_id: The tenant to resolve

        Returns:
            A SQLAlchemy database URL string
        """
        ...

    def resolve_schema(self, tenant_id: TenantId) -> str | None:
        """
        Resolve the schema for a tenant.

        Returns:
            The schema name, or None to use the connection's default schema
        """
        ...


def _require_tenant(tenant_id: TenantId, strategy: str) -> str:
    if tenant_id is None:
        raise InvalidArgumentError("tenant_id")
    if tenant_id.is_empty:
        raise TenantNotResolvedError(strategy)
    return str(tenant_id)


def _substitute(template: str, tenant_id: TenantId, strategy: str) -> str:
    value = _require_tenant(tenant_id, strategy)
    if not _SAFE_TENANT_VALUE.match(value):
        raise InvalidArgumentError(
            "tenant_id",
            f"Tenant '{value}' cannot be substituted into a {strategy} template; "
            "only letters, digits, '_' and '-' are allowed",
        )
    # other braces in the template (e.g. in a password) are literal
    return template.replace("{tenant}", value)


class DatabasePerTenantStrategy:
    """
    Each tenant has its own database.

    Explicit mappings win over the URL template. A tenant with neither a
    mapping nor a template raises UnknownTenantError.

    Example:
        >>> strategy = DatabasePerTenantStrategy(
        ...     url_template="sqlite+aiosqlite:///data/{tenant}.db",
        ...     urls={"legacy": "postgresql+asyncpg://old-host/legacy"},
        ... )
    """

    def __init__(
        self,
        url_template: str | None = None,
        urls: Mapping[str, str] | None = None,
    ) -> None:
        if url_template is None and not urls:
            raise InvalidArgumentError(
                "url_template",
                "DatabasePerTenantStrategy needs a url_template or a urls mapping",
            )
        if url_template is not None and "{tenant}" not in url_template:
            raise InvalidArgumentError(
                "url_template",
                "url_template must contain the '{tenant}' placeholder",
            )
        self._url_template = url_template
        self._urls: Mapping[str, str] = MappingProxyType(dict(urls or {}))

    async def resolve_connection_string(self, tenant_id: TenantId) -> str:
        value = _require_tenant(tenant_id, "DatabasePerTenantStrategy")
        if value in self._urls:
            return self._urls[value]
        if self._url_template is None:
            raise UnknownTenantError(value, "DatabasePerTenantStrategy")
        return _substitute(self._url_template, tenant_id, "DatabasePerTenantStrategy")

    def resolve_schema(self, tenant_id: TenantId) -> str | None:
        return None


class SchemaPerTenantStrategy:
    """
    All tenants share one database; each tenant has its own schema.

    Args:
        url: The shared database URL
        schema_template: Template producing the schema name from the tenant
        schemas: Explicit tenant-to-schema mapping, consulted first
    """

    def __init__(
        self,
        url: str,
        schema_template: str = "tenant_{tenant}",
        schemas: Mapping[str, str] | None = None,
    ) -> None:
        if not url:
            raise InvalidArgumentError("url")
        if "{tenant}" not in schema_template:
            raise InvalidArgumentError(
                "schema_template",
                "schema_template must contain the '{tenant}' placeholder",
            )
        self._url = url
        self._schema_template = schema_template
        self._schemas: Mapping[str, str] = MappingProxyType(dict(schemas or {}))

    async def resolve_connection_string(self, tenant_id: TenantId) -> str:
        _require_tenant(tenant_id, "SchemaPerTenantStrategy")
        return self._url

    def resolve_schema(self, tenant_id: TenantId) -> str | None:
        value = _require_tenant(tenant_id, "SchemaPerTenantStrategy")
        if value in self._schemas:
            return self._schemas[value]
        return _substitute(self._schema_template, tenant_id, "SchemaPerTenantStrategy")


class SharedDatabaseStrategy:
    """
    All tenants share one database and one schema.

    This is the row-level isolation model. Nothing here filters rows; the
    application includes the tenant in every predicate it passes to a
    repository.
    """

    def __init__(self, url: str, schema: str | None = None) -> None:
        if not url:
            raise InvalidArgumentError("url")
        self._url = url
        self._schema = schema

    async def resolve_connection_string(self, tenant_id: TenantId) -> str:
        return self._url

    def resolve_schema(self, tenant_id: TenantId) -> str | None:
        return self._schema


__all__ = [
    "TenantResolutionStrategy",
    "DatabasePerTenantStrategy",
    "SchemaPerTenantStrategy",
    "SharedDatabaseStrategy",
]
