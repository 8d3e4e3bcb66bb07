"""Unit tests for the in-memory database helpers."""

from __future__ import annotations

import pytest
from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from repokit.exceptions import InvalidArgumentError
from repokit.sqlalchemy import SqlAlchemyUnitOfWork, SqlAlchemyUnitOfWorkFactory
from repokit.testing import (
    clear_data,
    create_memory_engine,
    create_schema,
    detach_all,
    memory_database,
    reset_database,
)
from tests.fixtures import Base, Customer, Order


async def _count(engine: AsyncEngine, entity_type: type) -> int:
    async with engine.connect() as connection:
        return (await connection.execute(select(func.count()).select_from(entity_type))).scalar_one()


class TestMemoryEngine:
    @pytest.mark.asyncio
    async def test_engines_are_isolated(self) -> None:
        first = create_memory_engine()
        second = create_memory_engine()
        try:
            await create_schema(first, Base.metadata)
            await create_schema(second, Base.metadata)
            async with first.begin() as connection:
                await connection.execute(
                    Customer.__table__.insert().values(id=1, name="Ada", email="a@x.io")
                )

            assert await _count(first, Customer) == 1
            assert await _count(second, Customer) == 0
        finally:
            await first.dispose()
            await second.dispose()

    @pytest.mark.asyncio
    async def test_foreign_keys_enforced(self, engine: AsyncEngine) -> None:
        with pytest.raises(IntegrityError):
            async with engine.begin() as connection:
                await connection.execute(Order.__table__.insert().values(id=1, customer_id=999))


class TestSchemaHelpers:
    @pytest.mark.asyncio
    async def test_clear_data_removes_rows_children_first(
        self, engine: AsyncEngine, seeded_customer: Customer
    ) -> None:
        async with engine.begin() as connection:
            await connection.execute(Order.__table__.insert().values(id=1, customer_id=1))

        cleared = await clear_data(engine, Base.metadata)

        assert cleared == len(Base.metadata.sorted_tables)
        assert await _count(engine, Customer) == 0
        assert await _count(engine, Order) == 0

    @pytest.mark.asyncio
    async def test_reset_database_recreates_tables(
        self, engine: AsyncEngine, seeded_customer: Customer
    ) -> None:
        await reset_database(engine, Base.metadata)
        assert await _count(engine, Customer) == 0


class TestMemoryDatabase:
    @pytest.mark.asyncio
    async def test_provides_schema_and_seed(self) -> None:
        async def seed(engine: AsyncEngine) -> None:
            async with engine.begin() as connection:
                await connection.execute(
                    Customer.__table__.insert().values(id=1, name="Ada", email="a@x.io")
                )

        async with memory_database(Base.metadata, seed=seed) as engine:
            factory = SqlAlchemyUnitOfWorkFactory.from_engine(engine, enable_tracing=False)
            async with factory.create() as uow:
                assert await uow.repository(Customer).count() == 1


class TestDetachAll:
    @pytest.mark.asyncio
    async def test_detaches_unit_of_work_entities(
        self, uow: SqlAlchemyUnitOfWork, seeded_customer: Customer
    ) -> None:
        customer = await uow.repository(Customer).find_by_id(1)

        detach_all(uow)

        assert inspect(customer).detached
        reloaded = await uow.repository(Customer).find_by_id(1)
        assert reloaded is not customer
        assert reloaded.name == "Ada"

    @pytest.mark.asyncio
    async def test_accepts_session(self, uow: SqlAlchemyUnitOfWork, seeded_customer: Customer) -> None:
        customer = await uow.repository(Customer).find_by_id(1)
        detach_all(uow.session)
        assert inspect(customer).detached

    def test_rejects_none(self) -> None:
        with pytest.raises(InvalidArgumentError):
            detach_all(None)  # type: ignore[arg-type]
