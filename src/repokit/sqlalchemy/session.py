"""
Shared session handle for a unit of work and its repositories.

A unit of work owns exactly one AsyncSession. It hands its repositories a
SessionHandle rather than the session itself, so that disposing the unit
of work invalidates every repository obtained from it in one step.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from repokit.exceptions import DisposedError, InvalidArgumentError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class SessionHandle:
    """
    Guarded reference to a unit of work's session.

    Attributes:
        owner: Name reported in DisposedError once the handle is invalidated
    """

    def __init__(self, session: AsyncSession, owner: str) -> None:
        if session is None:
            raise InvalidArgumentError("session")
        self._session = session
        self.owner = owner
        self._invalidated = False

    @property
    def session(self) -> AsyncSession:
        """
        The underlying session.

        Raises:
            DisposedError: If the owning unit of work has been disposed
        """
        if self._invalidated:
            raise DisposedError(self.owner)
        return self._session

    def invalidate(self) -> None:
        self._invalidated = True

    def __repr__(self) -> str:
        state = "invalidated" if self._invalidated else "active"
        return f"SessionHandle(owner={self.owner!r}, {state})"


__all__ = ["SessionHandle"]
