"""
Shared pytest fixtures for the repokit library tests.

This module provides:
- In-memory SQLite engines with the test schema created (engine)
- Unit of work factories and units of work (uow_factory, uow)
- Operation context, tenant and diagnostics fixtures
- A MockTracer for span assertions

Every test gets its own database; nothing is shared between tests.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from repokit.context import OperationContext, OperationContextAccessor
from repokit.observability import MockTracer
from repokit.sqlalchemy import SqlAlchemyUnitOfWork, SqlAlchemyUnitOfWorkFactory
from repokit.testing import create_memory_engine, create_schema
from tests.fixtures import Base, Customer

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Provide an in-memory SQLite engine with the test schema created.

    The engine is disposed after the test, which drops the database.
    """
    engine = create_memory_engine()
    await create_schema(engine, Base.metadata)
    yield engine
    await engine.dispose()


@pytest.fixture
def tracer() -> MockTracer:
    """Provide a MockTracer recording every span."""
    return MockTracer()


@pytest.fixture
def uow_factory(engine: AsyncEngine, tracer: MockTracer) -> SqlAlchemyUnitOfWorkFactory:
    """Provide a unit of work factory bound to the test engine."""
    return SqlAlchemyUnitOfWorkFactory.from_engine(engine, tracer=tracer)


@pytest_asyncio.fixture
async def uow(
    uow_factory: SqlAlchemyUnitOfWorkFactory,
) -> AsyncGenerator[SqlAlchemyUnitOfWork, None]:
    """Provide a unit of work that is disposed after the test."""
    unit_of_work = uow_factory.create()
    yield unit_of_work
    await unit_of_work.dispose()


@pytest_asyncio.fixture
async def seeded_customer(uow_factory: SqlAlchemyUnitOfWorkFactory) -> Customer:
    """Persist one customer through a separate unit of work and return it."""
    async with uow_factory.create() as setup:
        customer = Customer(id=1, name="Ada", email="ada@example.com")
        await setup.repository(Customer).add(customer)
        await setup.save_changes()
    return customer


# =============================================================================
# Context Fixtures
# =============================================================================


@pytest.fixture
def context_accessor() -> OperationContextAccessor:
    """Provide an accessor with no operation context bound."""
    return OperationContextAccessor()


@pytest.fixture
def operation_context() -> OperationContext:
    """Provide a fully populated operation context."""
    return OperationContext(
        correlation_id="corr-123",
        operation_id="op-456",
        node_id="node-1",
        tenant_id="acme",
        tags={"region": "eu"},
    )
