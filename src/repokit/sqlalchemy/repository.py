"""
SQLAlchemy implementation of the repository contracts.

One SqlAlchemyRepository wraps one mapped entity class inside one unit of
work. It owns no storage: every call goes through the unit of work's
AsyncSession, so staged mutations across different entity classes are
committed together when the unit of work saves.

Repositories coordinate, they do not enforce policy. No tenant filtering,
validation or concurrency checks are added beyond what the session does
natively. Predicates are SQLAlchemy boolean expressions and are evaluated
by the database.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import func, inspect, select

from repokit.exceptions import InvalidArgumentError
from repokit.observability import Tracer, create_tracer
from repokit.observability.attributes import (
    ATTR_DB_OPERATION,
    ATTR_ENTITY_COUNT,
    ATTR_ENTITY_TYPE,
)
from repokit.observability.tracer import SpanKindEnum
from repokit.sqlalchemy.session import SessionHandle

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.sql.elements import ColumnElement

TEntity = TypeVar("TEntity")


class SqlAlchemyRepository(Generic[TEntity]):
    """
    Repository over one mapped entity class, backed by an AsyncSession.

    Satisfies both ReadOnlyRepository and Repository. Instances are created
    and cached by SqlAlchemyUnitOfWork.repository(); constructing one
    directly is only useful in tests.

    Example:
        >>> async with factory.create() as uow:
        ...     orders = uow.repository(Order)
        ...     await orders.add(Order(id=1, status="open"))
        ...     await uow.save_changes()
        ...     open_orders = await orders.find(Order.status == "open")
    """

    def __init__(
        self,
        handle: SessionHandle,
        entity_type: type[TEntity],
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the repository.

        Args:
            handle: Session handle shared with the owning unit of work
            entity_type: The mapped class this repository manages
            tracer: Optional tracer (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        if handle is None:
            raise InvalidArgumentError("handle")
        if entity_type is None:
            raise InvalidArgumentError("entity_type")
        self._handle = handle
        self._entity_type = entity_type
        self._entity_name = entity_type.__name__
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def entity_type(self) -> type[TEntity]:
        return self._entity_type

    @property
    def _session(self) -> AsyncSession:
        return self._handle.session

    def _span(self, operation: str, count: int | None = None) -> AbstractContextManager[Any]:
        attributes: dict[str, Any] = {
            ATTR_ENTITY_TYPE: self._entity_name,
            ATTR_DB_OPERATION: operation,
        }
        if count is not None:
            attributes[ATTR_ENTITY_COUNT] = count
        return self._tracer.span_with_kind(
            f"repokit.repository.{operation}",
            SpanKindEnum.CLIENT,
            attributes,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_by_id(self, id: Any) -> TEntity | None:
        """
        Look up an entity by primary key.

        The session's identity map is consulted first, so entities staged
        or loaded earlier in the same unit of work are returned without a
        round trip.

        Args:
            id: Primary key value (a tuple for composite keys)

        Returns:
            The entity, or None if it does not exist
        """
        if id is None:
            raise InvalidArgumentError("id")
        session = self._session
        with self._span("find_by_id"):
            return await session.get(self._entity_type, id)

    async def find(self, predicate: ColumnElement[bool]) -> list[TEntity]:
        """Return all entities matching the predicate."""
        if predicate is None:
            raise InvalidArgumentError("predicate")
        session = self._session
        with self._span("find"):
            result = await session.scalars(select(self._entity_type).where(predicate))
            return list(result.all())

    async def find_one(self, predicate: ColumnElement[bool]) -> TEntity | None:
        """Return the first entity matching the predicate, or None."""
        if predicate is None:
            raise InvalidArgumentError("predicate")
        session = self._session
        with self._span("find_one"):
            result = await session.scalars(
                select(self._entity_type).where(predicate).limit(1)
            )
            return result.first()

    async def exists(self, predicate: ColumnElement[bool]) -> bool:
        """Return True if any entity matches the predicate."""
        if predicate is None:
            raise InvalidArgumentError("predicate")
        session = self._session
        with self._span("exists"):
            subquery = select(self._entity_type).where(predicate).exists()
            return bool(await session.scalar(select(subquery)))

    async def count(self, predicate: ColumnElement[bool] | None = None) -> int:
        """Count matching entities, or all entities when predicate is None."""
        session = self._session
        with self._span("count"):
            statement = select(func.count()).select_from(self._entity_type)
            if predicate is not None:
                statement = statement.where(predicate)
            return int(await session.scalar(statement) or 0)

    # ------------------------------------------------------------------
    # Staged mutations
    # ------------------------------------------------------------------

    async def add(self, entity: TEntity) -> None:
        """
        Stage an entity for insertion.

        The entity is visible to later reads in the same unit of work and
        becomes durable on save_changes().
        """
        if entity is None:
            raise InvalidArgumentError("entity")
        session = self._session
        with self._span("add"):
            session.add(entity)

    async def add_range(self, entities: Iterable[TEntity]) -> None:
        """Stage several entities for insertion."""
        items = _materialize(entities)
        session = self._session
        with self._span("add_range", len(items)):
            session.add_all(items)

    async def update(self, entity: TEntity) -> TEntity:
        """
        Stage modifications to an entity.

        Entities already tracked by the session need no extra work; their
        attribute changes are picked up on flush. Untracked entities are
        merged: an existing row with the same primary key is updated,
        otherwise the entity is staged as new.

        Returns:
            The instance tracked by the session
        """
        if entity is None:
            raise InvalidArgumentError("entity")
        session = self._session
        with self._span("update"):
            return await self._attach(session, entity)

    async def update_range(self, entities: Iterable[TEntity]) -> list[TEntity]:
        """Stage modifications to several entities."""
        items = _materialize(entities)
        session = self._session
        with self._span("update_range", len(items)):
            return [await self._attach(session, item) for item in items]

    async def remove(self, entity: TEntity) -> None:
        """
        Stage an entity for deletion.

        Removing an entity that was added but never flushed simply drops it
        from the session.
        """
        if entity is None:
            raise InvalidArgumentError("entity")
        session = self._session
        with self._span("remove"):
            await self._delete(session, entity)

    async def remove_range(self, entities: Iterable[TEntity]) -> None:
        """Stage several entities for deletion."""
        items = _materialize(entities)
        session = self._session
        with self._span("remove_range", len(items)):
            for item in items:
                await self._delete(session, item)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _attach(session: AsyncSession, entity: TEntity) -> TEntity:
        state = inspect(entity)
        if state.persistent or state.pending:
            return entity
        return await session.merge(entity)

    @staticmethod
    async def _delete(session: AsyncSession, entity: TEntity) -> None:
        state = inspect(entity)
        if state.transient or state.detached:
            entity = await session.merge(entity)
            state = inspect(entity)
        if state.pending:
            # Never written, so there is nothing to delete
            session.expunge(entity)
            return
        await session.delete(entity)

    def __repr__(self) -> str:
        return f"SqlAlchemyRepository({self._entity_name})"


def _materialize(entities: Iterable[TEntity]) -> list[TEntity]:
    if entities is None:
        raise InvalidArgumentError("entities")
    items = list(entities)
    if any(item is None for item in items):
        raise InvalidArgumentError("entities", "Argument 'entities' must not contain None")
    return items


__all__ = ["SqlAlchemyRepository"]
