"""
Canonical protocol definitions for the repokit library.

This module contains the contracts application code depends on. The
SQLAlchemy adapters in repokit.sqlalchemy satisfy all of them.

Protocols:
- ReadOnlyRepository: Read capability over one entity collection
- Repository: Read capability plus staged mutations
- TransactionScope: Explicit atomic boundary on a unit of work's connection
- UnitOfWork: Owns one session, hands out repositories, commits atomically
- UnitOfWorkFactory: Mints independent units of work for background work

Code that only reads should depend on ReadOnlyRepository; a type checker
will then reject any attempt to stage a mutation through it.

Example:
    >>> async def count_open_orders(orders: ReadOnlyRepository[Order]) -> int:
    ...     return await orders.count(Order.status == "open")
    >>>
    >>> async def place_order(uow: UnitOfWork, order: Order) -> None:
    ...     await uow.repository(Order).add(order)
    ...     await uow.save_changes()
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable
from uuid import UUID

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement

TEntity = TypeVar("TEntity")


class TransactionState(Enum):
    """
    States of a transaction scope.

    OPEN is the only non-terminal state. Disposing an OPEN scope moves it
    to ROLLED_BACK.
    """

    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@runtime_checkable
class ReadOnlyRepository(Protocol[TEntity]):
    """
    Read capability over one entity collection.

    Predicates are opaque boolean expressions handed to the database; the
    repository never evaluates them itself.
    """

    async def find_by_id(self, id: Any) -> TEntity | None:
        """
        Look up an entity by primary key.

        Args:
            id: Primary key value (a tuple for composite keys)

        Returns:
            The entity, or None if it does not exist
        """
        ...

    async def find(self, predicate: ColumnElement[bool]) -> list[TEntity]:
        """Return all entities matching the predicate."""
        ...

    async def find_one(self, predicate: ColumnElement[bool]) -> TEntity | None:
        """Return the first entity matching the predicate, or None."""
        ...

    async def exists(self, predicate: ColumnElement[bool]) -> bool:
        """Return True if any entity matches the predicate."""
        ...

    async def count(self, predicate: ColumnElement[bool] | None = None) -> int:
        """Count matching entities, or all entities when predicate is None."""
        ...


@runtime_checkable
class Repository(ReadOnlyRepository[TEntity], Protocol[TEntity]):
    """
    Read capability plus staged mutations.

    Staged mutations are visible to later reads through the same unit of
    work but only become durable when the unit of work saves.
    """

    async def add(self, entity: TEntity) -> None:
        """Stage an entity for insertion."""
        ...

    async def add_range(self, entities: Iterable[TEntity]) -> None:
        """Stage several entities for insertion."""
        ...

    async def update(self, entity: TEntity) -> TEntity:
        """
        Stage modifications to an entity.

        Returns:
            The instance tracked by the session (may differ from the
            argument when a detached instance is merged)
        """
        ...

    async def update_range(self, entities: Iterable[TEntity]) -> list[TEntity]:
        """Stage modifications to several entities."""
        ...

    async def remove(self, entity: TEntity) -> None:
        """Stage an entity for deletion."""
        ...

    async def remove_range(self, entities: Iterable[TEntity]) -> None:
        """Stage several entities for deletion."""
        ...


@runtime_checkable
class TransactionScope(Protocol):
    """
    Explicit atomic boundary nested inside a unit of work's connection.

    A scope that is disposed without being committed rolls back.
    """

    @property
    def transaction_id(self) -> UUID: ...

    @property
    def state(self) -> TransactionState: ...

    async def commit(self) -> None:
        """Durably apply everything saved since the scope began."""
        ...

    async def rollback(self) -> None:
        """Discard everything saved since the scope began."""
        ...

    async def dispose(self) -> None:
        """Roll back if still open, then release the scope."""
        ...


@runtime_checkable
class UnitOfWork(Protocol):
    """
    Session-scoped coordinator for repositories and atomic commits.

    One unit of work is used by one task at a time.
    """

    def repository(self, entity_type: type[TEntity]) -> Repository[TEntity]:
        """Return the cached repository for an entity class."""
        ...

    @property
    def has_pending_changes(self) -> bool: ...

    async def save_changes(self) -> int:
        """
        Flush all staged mutations atomically.

        Returns:
            Number of entities written
        """
        ...

    async def begin_transaction(self) -> TransactionScope:
        """Open an explicit transaction on this unit of work's connection."""
        ...

    async def dispose(self) -> None:
        """Release the session and invalidate all repositories."""
        ...


@runtime_checkable
class UnitOfWorkFactory(Protocol):
    """Mints independent units of work, one per task."""

    def create(self) -> UnitOfWork:
        """Create a new unit of work with its own session."""
        ...


__all__ = [
    "TEntity",
    "TransactionState",
    "ReadOnlyRepository",
    "Repository",
    "TransactionScope",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
