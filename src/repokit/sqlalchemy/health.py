"""
Database health contributors.

Both contributors run ``SELECT 1`` when asked and report the outcome as a
HealthResult. They never raise for a failed check: connection errors and
timeouts become UNHEALTHY results, while cancellation of the calling task
propagates.

Names and result data identify the dialect and database name only. Hosts,
ports, credentials and URLs are never reported.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import text

from repokit.diagnostics.health import HealthResult
from repokit.exceptions import InvalidArgumentError
from repokit.observability import Tracer, create_tracer
from repokit.observability.attributes import (
    ATTR_HEALTH_CONTRIBUTOR,
    ATTR_HEALTH_STATUS,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import URL
    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_HEALTH_CHECK_TIMEOUT = 5.0

_PROBE = "SELECT 1"


def describe_url(url: URL) -> dict[str, Any]:
    """Return the non-sensitive parts of a database URL."""
    data: dict[str, Any] = {
        "dialect": url.get_backend_name(),
        "driver": url.get_driver_name(),
    }
    if url.database:
        data["database"] = url.database
    return data


class _ProbeHealthContributor:
    """Shared check, timeout and reporting logic."""

    def __init__(
        self,
        name: str,
        timeout: float | None,
        tracer: Tracer | None,
        enable_tracing: bool,
    ) -> None:
        self._name = name
        self._timeout = timeout
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def name(self) -> str:
        return self._name

    async def _run_check(self) -> dict[str, Any]:
        raise NotImplementedError

    async def check_health(self) -> HealthResult:
        """Probe the database once and report the outcome."""
        with self._tracer.span("repokit.health.check", {ATTR_HEALTH_CONTRIBUTOR: self._name}) as span:
            result = await self._check()
            if span is not None:
                span.set_attribute(ATTR_HEALTH_STATUS, result.status.value)
            return result

    async def _check(self) -> HealthResult:
        try:
            async with asyncio.timeout(self._timeout):
                data = await self._run_check()
        except TimeoutError:
            logger.warning("Health check %s timed out after %ss", self._name, self._timeout)
            return HealthResult.unhealthy(
                f"Database health check timed out after {self._timeout}s"
            )
        except Exception as e:
            logger.warning("Health check %s failed: %s", self._name, e, exc_info=True)
            return HealthResult.unhealthy(f"Database health check failed: {e}")
        return HealthResult.healthy("Database connection successful", data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"


class EngineHealthContributor(_ProbeHealthContributor):
    """
    Health contributor probing an engine with a fresh connection.

    Example:
        >>> contributor = EngineHealthContributor(engine)
        >>> contributor.name
        'Database:postgresql'
        >>> result = await contributor.check_health()
    """

    def __init__(
        self,
        engine: AsyncEngine,
        name: str | None = None,
        timeout: float | None = DEFAULT_HEALTH_CHECK_TIMEOUT,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the contributor.

        Args:
            engine: Engine to check
            name: Reported name (defaults to ``Database:<dialect>``)
            timeout: Seconds before the check is reported UNHEALTHY
                (None disables the timeout)
            tracer: Optional tracer (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        if engine is None:
            raise InvalidArgumentError("engine")
        self._engine = engine
        super().__init__(
            name or f"Database:{engine.dialect.name}",
            timeout,
            tracer,
            enable_tracing,
        )

    async def _run_check(self) -> dict[str, Any]:
        async with self._engine.connect() as connection:
            await _select_one(connection)
        return describe_url(self._engine.url)


class SessionHealthContributor(_ProbeHealthContributor):
    """
    Health contributor probing through a session factory.

    Each check opens and closes its own session, so the contributor never
    interferes with a unit of work in progress.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        label: str = "default",
        timeout: float | None = DEFAULT_HEALTH_CHECK_TIMEOUT,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        if session_factory is None:
            raise InvalidArgumentError("session_factory")
        self._session_factory = session_factory
        super().__init__(f"Session:{label}", timeout, tracer, enable_tracing)

    async def _run_check(self) -> dict[str, Any]:
        async with self._session_factory() as session:
            connection = await session.connection()
            await _select_one(connection)
            return describe_url(connection.engine.url)


async def _select_one(connection: AsyncConnection) -> None:
    await connection.execute(text(_PROBE))


__all__ = [
    "EngineHealthContributor",
    "SessionHealthContributor",
    "DEFAULT_HEALTH_CHECK_TIMEOUT",
    "describe_url",
]
