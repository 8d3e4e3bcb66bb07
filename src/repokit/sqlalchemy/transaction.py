"""
Explicit transaction scope over a unit of work's session.

A scope is a small state machine::

    OPEN --commit()--> COMMITTED
    OPEN --rollback()--> ROLLED_BACK
    OPEN --dispose()--> ROLLED_BACK

Only OPEN accepts commit() or rollback(). A commit that fails leaves the
scope OPEN, so disposing it afterwards still rolls back.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from repokit.exceptions import DisposedError, InvalidArgumentError, TransactionStateError
from repokit.observability import Tracer, create_tracer
from repokit.observability.attributes import ATTR_TRANSACTION_ID
from repokit.protocols import TransactionState

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class SqlAlchemyTransactionScope:
    """
    TransactionScope bound to the session of one SqlAlchemyUnitOfWork.

    Created by SqlAlchemyUnitOfWork.begin_transaction(). Supports
    ``async with``; leaving the block without commit() rolls back.

    Example:
        >>> async with await uow.begin_transaction() as tx:
        ...     await uow.repository(Order).add(order)
        ...     await uow.save_changes()
        ...     await tx.commit()
    """

    def __init__(
        self,
        session: AsyncSession,
        transaction_id: UUID | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        if session is None:
            raise InvalidArgumentError("session")
        self._session = session
        self._transaction_id = transaction_id or uuid4()
        self._state = TransactionState.OPEN
        self._disposed = False
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def transaction_id(self) -> UUID:
        return self._transaction_id

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def is_active(self) -> bool:
        """True while the scope is OPEN and not disposed."""
        return not self._disposed and self._state is TransactionState.OPEN

    def _require_open(self, operation: str) -> None:
        if self._disposed:
            raise DisposedError(type(self).__name__)
        if self._state is not TransactionState.OPEN:
            raise TransactionStateError(
                f"Cannot {operation} transaction {self._transaction_id}: "
                f"it is already {self._state.value}",
                transaction_id=self._transaction_id,
            )

    def _attributes(self) -> dict[str, Any]:
        return {ATTR_TRANSACTION_ID: str(self._transaction_id)}

    async def commit(self) -> None:
        """
        Commit everything saved since the scope began.

        Raises:
            DisposedError: If the scope was disposed
            TransactionStateError: If the scope is not OPEN
        """
        self._require_open("commit")
        with self._tracer.span("repokit.transaction.commit", self._attributes()):
            await self._session.commit()
        self._state = TransactionState.COMMITTED
        logger.debug("Committed transaction %s", self._transaction_id)

    async def rollback(self) -> None:
        """
        Discard everything saved since the scope began.

        Raises:
            DisposedError: If the scope was disposed
            TransactionStateError: If the scope is not OPEN
        """
        self._require_open("roll back")
        with self._tracer.span("repokit.transaction.rollback", self._attributes()):
            await self._session.rollback()
        self._state = TransactionState.ROLLED_BACK
        logger.debug("Rolled back transaction %s", self._transaction_id)

    async def dispose(self) -> None:
        """
        Release the scope, rolling back if it is still OPEN.

        Calling dispose() more than once is a no-op.
        """
        if self._disposed:
            return
        self._disposed = True
        if self._state is not TransactionState.OPEN:
            return

        logger.info(
            "Transaction %s disposed without commit, rolling back",
            self._transaction_id,
        )
        try:
            with self._tracer.span("repokit.transaction.rollback", self._attributes()):
                await self._session.rollback()
        finally:
            self._state = TransactionState.ROLLED_BACK

    async def __aenter__(self) -> SqlAlchemyTransactionScope:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.dispose()

    def __repr__(self) -> str:
        return (
            f"SqlAlchemyTransactionScope(transaction_id={self._transaction_id}, "
            f"state={self._state.value}, disposed={self._disposed})"
        )


__all__ = ["SqlAlchemyTransactionScope"]
