"""
SQLAlchemy unit of work.

A SqlAlchemyUnitOfWork owns exactly one AsyncSession for its lifetime.
Every repository it hands out works through that session, so mutations
staged on different entity classes are written in one flush and one
commit.

Change counting:
    SQLAlchemy reports pending work through session.new, session.dirty
    and session.deleted, but autoflush empties those collections before
    the work is committed. The unit of work listens to after_flush to
    remember flushed-but-uncommitted rows, and to after_rollback to forget
    them, so has_pending_changes and the count returned by save_changes()
    stay accurate across autoflushes.

Failed saves:
    Rolling back a session turns every added entity transient again,
    reverts removals and expires modified attributes. The same after_flush
    listener keeps strong references to what was written since the last
    commit, so a failed save_changes() can stage that work again after
    its rollback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import event, inspect

from repokit.exceptions import DisposedError, InvalidArgumentError, TransactionStateError
from repokit.observability import Tracer, create_tracer
from repokit.observability.attributes import ATTR_AFFECTED_COUNT, ATTR_TRANSACTION_ID
from repokit.protocols import Repository
from repokit.sqlalchemy.repository import SqlAlchemyRepository
from repokit.sqlalchemy.session import SessionHandle
from repokit.sqlalchemy.transaction import SqlAlchemyTransactionScope

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

TEntity = TypeVar("TEntity")

RepositoryFactory = Callable[[SessionHandle, type[Any]], Repository[Any]]
"""Builds the repository for one entity class over a session handle."""


def _changed_values(entity: Any) -> dict[str, Any]:
    state = inspect(entity)
    return {attr.key: attr.value for attr in state.attrs if attr.history.has_changes()}


class _StagedWork:
    """
    Strong references to every entity staged since the last commit.

    A rolled-back transaction turns pending and flushed-new entities
    transient, restores deleted ones and expires the rest, which drops
    the caller's work. restage() puts it back on the session.
    """

    def __init__(self) -> None:
        self.new: dict[int, Any] = {}
        self.deleted: dict[int, Any] = {}
        self.changes: dict[int, tuple[Any, dict[str, Any]]] = {}

    def record(self, session: Session) -> None:
        for entity in session.new:
            self.new[id(entity)] = entity
        for entity in session.deleted:
            self.deleted[id(entity)] = entity
        for entity in session.dirty:
            values = _changed_values(entity)
            if values:
                self.changes.setdefault(id(entity), (entity, {}))[1].update(values)

    def snapshot(self, session: Session) -> _StagedWork:
        """Copy of this record plus whatever is staged on the session right now."""
        staged = _StagedWork()
        staged.new = dict(self.new)
        staged.deleted = dict(self.deleted)
        staged.changes = {
            key: (entity, dict(values)) for key, (entity, values) in self.changes.items()
        }
        staged.record(session)
        return staged

    def clear(self) -> None:
        self.new.clear()
        self.deleted.clear()
        self.changes.clear()

    async def restage(self, session: AsyncSession) -> None:
        for key, entity in self.new.items():
            # inserted then deleted before the rollback: nothing to redo
            if key not in self.deleted and inspect(entity).transient:
                session.add(entity)
        for entity in self.deleted.values():
            if inspect(entity).persistent:
                await session.delete(entity)
        for key, (entity, values) in self.changes.items():
            if key in self.new or key in self.deleted:
                continue
            if inspect(entity).persistent:
                for attribute, value in values.items():
                    setattr(entity, attribute, value)


class SqlAlchemyUnitOfWork:
    """
    UnitOfWork over a single AsyncSession.

    Not safe for concurrent use by several tasks; create one unit of work
    per task via a UnitOfWorkFactory. Supports ``async with``, which
    disposes the unit of work on exit.

    Example:
        >>> async with SqlAlchemyUnitOfWork(session_factory()) as uow:
        ...     await uow.repository(Customer).add(customer)
        ...     await uow.repository(Order).add(order)
        ...     written = await uow.save_changes()  # both rows, one commit
    """

    def __init__(
        self,
        session: AsyncSession,
        repository_factory: RepositoryFactory | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the unit of work.

        Args:
            session: Session owned by this unit of work from now on
            repository_factory: Builds repositories on first request
                (defaults to SqlAlchemyRepository)
            tracer: Optional tracer (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._handle = SessionHandle(session, type(self).__name__)
        self._session = session
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._repository_factory = repository_factory or partial(
            SqlAlchemyRepository, tracer=self._tracer
        )
        self._repositories: dict[type[Any], Repository[Any]] = {}
        self._transaction: SqlAlchemyTransactionScope | None = None
        self._flushed_count = 0
        self._staged = _StagedWork()
        self._disposed = False

        self._sync_session: Session = session.sync_session
        event.listen(self._sync_session, "after_flush", self._after_flush)
        event.listen(self._sync_session, "after_rollback", self._after_rollback)
        event.listen(self._sync_session, "after_commit", self._after_commit)

    @property
    def session(self) -> AsyncSession:
        """The session shared by every repository of this unit of work."""
        return self._handle.session

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def current_transaction(self) -> SqlAlchemyTransactionScope | None:
        """The active transaction scope, or None."""
        if self._transaction is not None and self._transaction.is_active:
            return self._transaction
        return None

    def _ensure_not_disposed(self) -> None:
        if self._disposed:
            raise DisposedError(type(self).__name__)

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def repository(self, entity_type: type[TEntity]) -> Repository[TEntity]:
        """
        Return the repository for an entity class.

        The same instance is returned for every call with the same class.

        Raises:
            InvalidArgumentError: If entity_type is None or not mapped
            DisposedError: If the unit of work has been disposed
        """
        if entity_type is None:
            raise InvalidArgumentError("entity_type")
        self._ensure_not_disposed()

        repository = self._repositories.get(entity_type)
        if repository is None:
            if inspect(entity_type, raiseerr=False) is None:
                raise InvalidArgumentError(
                    "entity_type",
                    f"{entity_type.__name__} is not a mapped class",
                )
            repository = self._repository_factory(self._handle, entity_type)
            self._repositories[entity_type] = repository
            logger.debug("Created repository for %s", entity_type.__name__)
        return repository

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------

    @property
    def has_pending_changes(self) -> bool:
        """
        True if anything staged has not yet been saved.

        Staged additions, removals and modified tracked entities count, as
        do rows already flushed (for example by autoflush) but not yet
        committed or rolled back.
        """
        self._ensure_not_disposed()
        if self._flushed_count:
            return True
        session = self._session
        if session.new or session.deleted:
            return True
        return any(session.is_modified(entity) for entity in session.dirty)

    def _after_flush(self, session: Session, flush_context: Any) -> None:
        # new/dirty/deleted still hold the pre-flush state here
        modified = sum(1 for entity in session.dirty if session.is_modified(entity))
        self._flushed_count += len(session.new) + len(session.deleted) + modified
        self._staged.record(session)

    def _after_rollback(self, session: Session) -> None:
        self._flushed_count = 0
        self._staged.clear()

    def _after_commit(self, session: Session) -> None:
        self._staged.clear()

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    async def save_changes(self) -> int:
        """
        Write every staged mutation atomically.

        Outside a transaction scope the work is flushed and committed. On
        any failure, cancellation included, the session transaction is
        rolled back and nothing is persisted. Everything staged since the
        last commit is then staged again: added entities are re-added,
        removed ones removed again and modified attributes set back to
        the values the caller gave them. The caller can correct the
        offending entity and retry, or dispose. Inside a scope the work is
        only flushed and becomes durable when the scope commits; a failure
        is left for the scope to roll back.

        Returns:
            Number of entities written

        Raises:
            DisposedError: If the unit of work has been disposed
        """
        self._ensure_not_disposed()
        session = self._session
        scope = self.current_transaction

        attributes: dict[str, Any] = {}
        if scope is not None:
            attributes[ATTR_TRANSACTION_ID] = str(scope.transaction_id)

        with self._tracer.span("repokit.unit_of_work.save_changes", attributes) as span:
            # a failed flush rolls back before the except clause runs
            staged = self._staged.snapshot(self._sync_session) if scope is None else None
            try:
                await session.flush()
                affected = self._flushed_count
                if scope is None:
                    await session.commit()
            except (Exception, asyncio.CancelledError):
                if staged is not None and await self._rollback_after_failure():
                    await self._restage(staged)
                raise

            self._flushed_count = 0
            if span is not None:
                span.set_attribute(ATTR_AFFECTED_COUNT, affected)

        logger.debug(
            "Saved %d change(s)%s",
            affected,
            f" in transaction {scope.transaction_id}" if scope is not None else "",
        )
        return affected

    async def _rollback_after_failure(self) -> bool:
        try:
            await self._session.rollback()
        except Exception as e:
            # The original failure is re-raised by the caller
            logger.warning("Rollback after failed save also failed: %s", e, exc_info=True)
            return False
        return True

    async def _restage(self, staged: _StagedWork) -> None:
        try:
            await staged.restage(self._session)
        except Exception as e:
            logger.warning("Could not restage work after failed save: %s", e, exc_info=True)
        else:
            logger.debug("Restaged unsaved work after failed save")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def begin_transaction(self) -> SqlAlchemyTransactionScope:
        """
        Open an explicit transaction on this unit of work's connection.

        The connection is acquired eagerly so the scope is bound to it
        before any statement runs. Only one scope may be open at a time.

        Raises:
            DisposedError: If the unit of work has been disposed
            TransactionStateError: If a scope is already open
        """
        self._ensure_not_disposed()
        if self.current_transaction is not None:
            raise TransactionStateError(
                "A transaction is already open on this unit of work",
                transaction_id=self._transaction.transaction_id if self._transaction else None,
            )

        scope = SqlAlchemyTransactionScope(self._session, tracer=self._tracer)
        with self._tracer.span(
            "repokit.transaction.begin",
            {ATTR_TRANSACTION_ID: str(scope.transaction_id)},
        ):
            await self._session.connection()
        self._transaction = scope
        logger.debug("Began transaction %s", scope.transaction_id)
        return scope

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def dispose(self) -> None:
        """
        Release the session and invalidate every repository.

        An open transaction scope is rolled back first. Calling dispose()
        more than once is a no-op.
        """
        if self._disposed:
            return
        self._disposed = True
        self._handle.invalidate()
        self._repositories.clear()
        try:
            if self._transaction is not None:
                await self._transaction.dispose()
        finally:
            self._transaction = None
            event.remove(self._sync_session, "after_flush", self._after_flush)
            event.remove(self._sync_session, "after_rollback", self._after_rollback)
            event.remove(self._sync_session, "after_commit", self._after_commit)
            await self._session.close()
            logger.debug("Disposed %r", self)

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.dispose()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"SqlAlchemyUnitOfWork({state}, repositories={len(self._repositories)})"


__all__ = ["SqlAlchemyUnitOfWork", "RepositoryFactory"]
