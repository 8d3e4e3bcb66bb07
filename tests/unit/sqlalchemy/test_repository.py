"""
Unit tests for SqlAlchemyRepository.

Tests cover:
- Primary key lookup and predicate queries
- Staging semantics (visible in the unit of work, durable after save)
- update / remove for tracked, detached and pending entities
- Argument validation before any I/O
- Capability protocols and tracing
"""

from __future__ import annotations

import pytest

from repokit.exceptions import InvalidArgumentError
from repokit.observability import MockTracer
from repokit.protocols import ReadOnlyRepository, Repository
from repokit.sqlalchemy import SqlAlchemyRepository, SqlAlchemyUnitOfWork, SqlAlchemyUnitOfWorkFactory
from repokit.testing import detach_all
from tests.fixtures import Customer, Order


def _customers(count: int) -> list[Customer]:
    return [
        Customer(id=i, name=f"Customer {i}", email=f"c{i}@example.com")
        for i in range(1, count + 1)
    ]


class TestReads:
    """Tests for the read capability."""

    @pytest.mark.asyncio
    async def test_find_by_id_returns_none_when_missing(self, uow: SqlAlchemyUnitOfWork) -> None:
        """find_by_id returns None for a key that does not exist."""
        assert await uow.repository(Customer).find_by_id(999) is None

    @pytest.mark.asyncio
    async def test_find_by_id_returns_persisted_entity(
        self, uow: SqlAlchemyUnitOfWork, seeded_customer: Customer
    ) -> None:
        """find_by_id loads an entity saved by another unit of work."""
        found = await uow.repository(Customer).find_by_id(seeded_customer.id)
        assert found is not None
        assert found.email == "ada@example.com"

    @pytest.mark.asyncio
    async def test_find_filters_with_predicate(self, uow: SqlAlchemyUnitOfWork) -> None:
        """find returns only entities matching the predicate."""
        customers = uow.repository(Customer)
        await customers.add_range(_customers(5))
        await uow.save_changes()

        found = await customers.find(Customer.id > 3)

        assert sorted(c.id for c in found) == [4, 5]

    @pytest.mark.asyncio
    async def test_find_returns_empty_list_when_nothing_matches(
        self, uow: SqlAlchemyUnitOfWork
    ) -> None:
        """find returns an empty list rather than None."""
        assert await uow.repository(Customer).find(Customer.name == "nobody") == []

    @pytest.mark.asyncio
    async def test_find_one_returns_first_match_or_none(self, uow: SqlAlchemyUnitOfWork) -> None:
        """find_one returns a single match, or None."""
        customers = uow.repository(Customer)
        await customers.add_range(_customers(3))
        await uow.save_changes()

        match = await customers.find_one(Customer.email == "c2@example.com")
        assert match is not None
        assert match.id == 2
        assert await customers.find_one(Customer.email == "missing@example.com") is None

    @pytest.mark.asyncio
    async def test_exists(self, uow: SqlAlchemyUnitOfWork, seeded_customer: Customer) -> None:
        """exists reports whether any entity matches."""
        customers = uow.repository(Customer)
        assert await customers.exists(Customer.name == "Ada") is True
        assert await customers.exists(Customer.name == "Grace") is False

    @pytest.mark.asyncio
    async def test_count_with_and_without_predicate(self, uow: SqlAlchemyUnitOfWork) -> None:
        """count counts everything, or only matches when given a predicate."""
        customers = uow.repository(Customer)
        assert await customers.count() == 0

        await customers.add_range(_customers(4))
        await uow.save_changes()

        assert await customers.count() == 4
        assert await customers.count(Customer.id <= 2) == 2


class TestStaging:
    """Tests for staged mutations."""

    @pytest.mark.asyncio
    async def test_added_entity_visible_before_save(self, uow: SqlAlchemyUnitOfWork) -> None:
        """An added entity is visible to reads in the same unit of work."""
        customers = uow.repository(Customer)
        await customers.add(Customer(id=1, name="Ada", email="ada@example.com"))

        assert await customers.count() == 1
        assert await customers.find_by_id(1) is not None

    @pytest.mark.asyncio
    async def test_added_entity_not_durable_without_save(
        self, uow_factory: SqlAlchemyUnitOfWorkFactory
    ) -> None:
        """Staged work that is never saved is discarded with the unit of work."""
        async with uow_factory.create() as writer:
            await writer.repository(Customer).add(Customer(id=1, name="Ada", email="a@x.io"))
            assert await writer.repository(Customer).count() == 1

        async with uow_factory.create() as reader:
            assert await reader.repository(Customer).count() == 0

    @pytest.mark.asyncio
    async def test_update_tracked_entity(
        self, uow_factory: SqlAlchemyUnitOfWorkFactory, seeded_customer: Customer
    ) -> None:
        """Changes to a tracked entity are persisted by save_changes."""
        async with uow_factory.create() as writer:
            customers = writer.repository(Customer)
            customer = await customers.find_by_id(seeded_customer.id)
            assert customer is not None
            customer.name = "Ada Lovelace"
            returned = await customers.update(customer)
            assert returned is customer
            assert await writer.save_changes() == 1

        async with uow_factory.create() as reader:
            reloaded = await reader.repository(Customer).find_by_id(seeded_customer.id)
            assert reloaded is not None
            assert reloaded.name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_update_detached_entity_merges(
        self, uow_factory: SqlAlchemyUnitOfWorkFactory, seeded_customer: Customer
    ) -> None:
        """update merges a detached entity and returns the tracked instance."""
        seeded_customer.name = "Renamed"

        async with uow_factory.create() as writer:
            merged = await writer.repository(Customer).update(seeded_customer)
            assert merged is not seeded_customer
            assert merged.name == "Renamed"
            await writer.save_changes()

        async with uow_factory.create() as reader:
            reloaded = await reader.repository(Customer).find_by_id(seeded_customer.id)
            assert reloaded is not None
            assert reloaded.name == "Renamed"

    @pytest.mark.asyncio
    async def test_update_range(self, uow: SqlAlchemyUnitOfWork) -> None:
        """update_range stages every entity and returns the tracked instances."""
        customers = uow.repository(Customer)
        await customers.add_range(_customers(2))
        await uow.save_changes()
        detach_all(uow)

        updated = await customers.update_range(
            [Customer(id=1, name="One", email="c1@example.com"),
             Customer(id=2, name="Two", email="c2@example.com")]
        )
        await uow.save_changes()

        assert [c.name for c in updated] == ["One", "Two"]
        assert await customers.count(Customer.name.in_(["One", "Two"])) == 2

    @pytest.mark.asyncio
    async def test_remove_persisted_entity(
        self, uow: SqlAlchemyUnitOfWork, seeded_customer: Customer
    ) -> None:
        """remove deletes a persisted entity on save."""
        customers = uow.repository(Customer)
        customer = await customers.find_by_id(seeded_customer.id)
        await customers.remove(customer)

        assert await uow.save_changes() == 1
        assert await customers.count() == 0

    @pytest.mark.asyncio
    async def test_remove_detached_entity(
        self, uow: SqlAlchemyUnitOfWork, seeded_customer: Customer
    ) -> None:
        """remove accepts an entity loaded by another unit of work."""
        await uow.repository(Customer).remove(seeded_customer)

        assert await uow.save_changes() == 1
        assert await uow.repository(Customer).count() == 0

    @pytest.mark.asyncio
    async def test_remove_pending_entity_unstages_it(self, uow: SqlAlchemyUnitOfWork) -> None:
        """Removing an added-but-unsaved entity simply drops it."""
        customers = uow.repository(Customer)
        customer = Customer(id=1, name="Ada", email="ada@example.com")
        await customers.add(customer)
        await customers.remove(customer)

        assert uow.has_pending_changes is False
        assert await uow.save_changes() == 0

    @pytest.mark.asyncio
    async def test_remove_range(self, uow: SqlAlchemyUnitOfWork) -> None:
        """remove_range deletes every given entity."""
        customers = uow.repository(Customer)
        await customers.add_range(_customers(3))
        await uow.save_changes()

        doomed = await customers.find(Customer.id < 3)
        await customers.remove_range(doomed)

        assert await uow.save_changes() == 2
        assert await customers.count() == 1


class TestArgumentValidation:
    """None arguments fail before any I/O."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation",
        ["find_by_id", "find", "find_one", "exists", "add", "update", "remove"],
    )
    async def test_none_argument_rejected(
        self, uow: SqlAlchemyUnitOfWork, operation: str
    ) -> None:
        """Single-argument operations reject None."""
        repository = uow.repository(Customer)
        with pytest.raises(InvalidArgumentError):
            await getattr(repository, operation)(None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", ["add_range", "update_range", "remove_range"])
    async def test_range_operations_reject_none(
        self, uow: SqlAlchemyUnitOfWork, operation: str
    ) -> None:
        """Range operations reject None and None elements."""
        repository = uow.repository(Customer)
        with pytest.raises(InvalidArgumentError):
            await getattr(repository, operation)(None)
        with pytest.raises(InvalidArgumentError):
            await getattr(repository, operation)([None])

    @pytest.mark.asyncio
    async def test_invalid_argument_is_value_error(self, uow: SqlAlchemyUnitOfWork) -> None:
        """InvalidArgumentError can be caught as ValueError."""
        with pytest.raises(ValueError):
            await uow.repository(Customer).add(None)

    @pytest.mark.asyncio
    async def test_rejected_add_leaves_nothing_staged(self, uow: SqlAlchemyUnitOfWork) -> None:
        """A rejected range call stages nothing."""
        with pytest.raises(InvalidArgumentError):
            await uow.repository(Customer).add_range(
                [Customer(id=1, name="Ada", email="a@x.io"), None]
            )
        assert uow.has_pending_changes is False


class TestCapabilities:
    """Tests for the read/write capability protocols."""

    @pytest.mark.asyncio
    async def test_repository_satisfies_both_protocols(self, uow: SqlAlchemyUnitOfWork) -> None:
        """The SQLAlchemy repository satisfies both capabilities."""
        repository = uow.repository(Customer)
        assert isinstance(repository, ReadOnlyRepository)
        assert isinstance(repository, Repository)

    @pytest.mark.asyncio
    async def test_entity_type(self, uow: SqlAlchemyUnitOfWork) -> None:
        """The repository reports the class it manages."""
        repository = uow.repository(Order)
        assert isinstance(repository, SqlAlchemyRepository)
        assert repository.entity_type is Order
        assert repr(repository) == "SqlAlchemyRepository(Order)"


class TestTracing:
    """Tests for repository spans."""

    @pytest.mark.asyncio
    async def test_operations_emit_named_spans(
        self, uow: SqlAlchemyUnitOfWork, tracer: MockTracer
    ) -> None:
        """Every operation is traced as repokit.repository.<operation>."""
        customers = uow.repository(Customer)
        await customers.add(Customer(id=1, name="Ada", email="ada@example.com"))
        await customers.count()

        assert "repokit.repository.add" in tracer.span_names
        assert "repokit.repository.count" in tracer.span_names

        name, attributes = next(s for s in tracer.spans if s[0] == "repokit.repository.add")
        assert attributes is not None
        assert attributes["repokit.entity.type"] == "Customer"
        assert attributes["db.operation"] == "add"

    @pytest.mark.asyncio
    async def test_range_spans_carry_entity_count(
        self, uow: SqlAlchemyUnitOfWork, tracer: MockTracer
    ) -> None:
        """Range operations record how many entities they staged."""
        await uow.repository(Customer).add_range(_customers(3))

        _, attributes = next(s for s in tracer.spans if s[0] == "repokit.repository.add_range")
        assert attributes is not None
        assert attributes["repokit.entity.count"] == 3
