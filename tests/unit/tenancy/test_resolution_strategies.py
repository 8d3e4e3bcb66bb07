"""
Unit tests for tenant resolution strategies.

Tests cover:
- Database per tenant: explicit mappings, templates and unknown tenants
- Schema per tenant: constant URL with templated or mapped schemas
- Shared database: constant URL and schema regardless of tenant
- Rejection of empty tenants and unsafe tenant values
"""

from __future__ import annotations

import pytest

from repokit.exceptions import InvalidArgumentError, TenantNotResolvedError, UnknownTenantError
from repokit.tenancy import (
    DatabasePerTenantStrategy,
    SchemaPerTenantStrategy,
    SharedDatabaseStrategy,
    TenantId,
    TenantResolutionStrategy,
)

SHARED_URL = "postgresql+asyncpg://db/app"


class TestDatabasePerTenantStrategy:
    """Tests for DatabasePerTenantStrategy."""

    @pytest.mark.asyncio
    async def test_template(self) -> None:
        strategy = DatabasePerTenantStrategy(url_template="sqlite+aiosqlite:///data/{tenant}.db")

        url = await strategy.resolve_connection_string(TenantId("acme"))

        assert url == "sqlite+aiosqlite:///data/acme.db"
        assert strategy.resolve_schema(TenantId("acme")) is None

    @pytest.mark.asyncio
    async def test_mapping_wins_over_template(self) -> None:
        strategy = DatabasePerTenantStrategy(
            url_template="sqlite+aiosqlite:///{tenant}.db",
            urls={"legacy": "postgresql+asyncpg://old-host/legacy"},
        )

        assert await strategy.resolve_connection_string(TenantId("legacy")) == (
            "postgresql+asyncpg://old-host/legacy"
        )
        assert await strategy.resolve_connection_string(TenantId("acme")) == (
            "sqlite+aiosqlite:///acme.db"
        )

    @pytest.mark.asyncio
    async def test_unknown_tenant_without_template(self) -> None:
        strategy = DatabasePerTenantStrategy(urls={"acme": "sqlite+aiosqlite:///acme.db"})

        with pytest.raises(UnknownTenantError) as exc_info:
            await strategy.resolve_connection_string(TenantId("globex"))
        assert exc_info.value.tenant_id == "globex"

    @pytest.mark.asyncio
    async def test_empty_tenant(self) -> None:
        strategy = DatabasePerTenantStrategy(url_template="sqlite+aiosqlite:///{tenant}.db")
        with pytest.raises(TenantNotResolvedError):
            await strategy.resolve_connection_string(TenantId.empty())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["../etc", "a b", "x;drop", "tenant/1"])
    async def test_unsafe_tenant_rejected(self, value: str) -> None:
        strategy = DatabasePerTenantStrategy(url_template="sqlite+aiosqlite:///{tenant}.db")
        with pytest.raises(InvalidArgumentError):
            await strategy.resolve_connection_string(TenantId(value))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("template", "expected"),
        [
            ("pg://app:p{w}d@db/{tenant}", "pg://app:p{w}d@db/acme"),
            ("pg://app:p{0}d@db/{tenant}", "pg://app:p{0}d@db/acme"),
            ("pg://app:p{}d@db/{tenant}", "pg://app:p{}d@db/acme"),
            ("sqlite+aiosqlite:///{tenant}/{tenant}.db", "sqlite+aiosqlite:///acme/acme.db"),
        ],
    )
    async def test_other_braces_kept_literally(self, template: str, expected: str) -> None:
        strategy = DatabasePerTenantStrategy(url_template=template)
        assert await strategy.resolve_connection_string(TenantId("acme")) == expected

    def test_requires_template_or_mapping(self) -> None:
        with pytest.raises(InvalidArgumentError):
            DatabasePerTenantStrategy()

    def test_template_requires_placeholder(self) -> None:
        with pytest.raises(InvalidArgumentError):
            DatabasePerTenantStrategy(url_template="sqlite+aiosqlite:///shared.db")


class TestSchemaPerTenantStrategy:
    """Tests for SchemaPerTenantStrategy."""

    @pytest.mark.asyncio
    async def test_constant_url(self) -> None:
        strategy = SchemaPerTenantStrategy(SHARED_URL)
        assert await strategy.resolve_connection_string(TenantId("acme")) == SHARED_URL
        assert await strategy.resolve_connection_string(TenantId("globex")) == SHARED_URL

    def test_default_template(self) -> None:
        assert SchemaPerTenantStrategy(SHARED_URL).resolve_schema(TenantId("acme")) == "tenant_acme"

    def test_custom_template_and_mapping(self) -> None:
        strategy = SchemaPerTenantStrategy(
            SHARED_URL, schema_template="t_{tenant}", schemas={"legacy": "public"}
        )
        assert strategy.resolve_schema(TenantId("acme")) == "t_acme"
        assert strategy.resolve_schema(TenantId("legacy")) == "public"

    def test_empty_tenant(self) -> None:
        with pytest.raises(TenantNotResolvedError):
            SchemaPerTenantStrategy(SHARED_URL).resolve_schema(TenantId(""))

    def test_unsafe_tenant_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            SchemaPerTenantStrategy(SHARED_URL).resolve_schema(TenantId('x"; DROP SCHEMA y'))

    def test_requires_url(self) -> None:
        with pytest.raises(InvalidArgumentError):
            SchemaPerTenantStrategy("")


class TestSharedDatabaseStrategy:
    """Tests for SharedDatabaseStrategy."""

    @pytest.mark.asyncio
    async def test_same_target_for_every_tenant(self) -> None:
        strategy = SharedDatabaseStrategy(SHARED_URL, schema="app")

        for tenant in (TenantId("acme"), TenantId("globex"), TenantId.empty()):
            assert await strategy.resolve_connection_string(tenant) == SHARED_URL
            assert strategy.resolve_schema(tenant) == "app"

    def test_satisfies_protocol(self) -> None:
        assert isinstance(SharedDatabaseStrategy(SHARED_URL), TenantResolutionStrategy)
