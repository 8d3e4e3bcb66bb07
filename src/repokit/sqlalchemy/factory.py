"""
Unit of work factories.

Background jobs and other work running outside a request need their own
unit of work, so they never share a session with the request that started
them. SqlAlchemyUnitOfWorkFactory mints one fresh session per unit of
work from an async_sessionmaker.

TenantUnitOfWorkFactory routes each unit of work to the current tenant's
database (or schema), as decided by a TenantResolutionStrategy.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from repokit.exceptions import InvalidArgumentError, TenantNotResolvedError
from repokit.observability import Tracer, create_tracer
from repokit.sqlalchemy.unit_of_work import RepositoryFactory, SqlAlchemyUnitOfWork
from repokit.tenancy import TenantAccessor, TenantId, TenantResolutionStrategy

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWorkFactory:
    """
    Creates independent SqlAlchemyUnitOfWork instances.

    The factory is safe to share between tasks; every unit of work it
    creates owns a new session and must be disposed by its caller.

    Example:
        >>> factory = SqlAlchemyUnitOfWorkFactory.from_engine(engine)
        >>> async with factory.create() as uow:
        ...     await uow.repository(Job).add(job)
        ...     await uow.save_changes()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        repository_factory: RepositoryFactory | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        if session_factory is None:
            raise InvalidArgumentError("session_factory")
        self._session_factory = session_factory
        self._repository_factory = repository_factory
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @classmethod
    def from_engine(
        cls,
        engine: AsyncEngine,
        expire_on_commit: bool = False,
        **kwargs: Any,
    ) -> SqlAlchemyUnitOfWorkFactory:
        """
        Build a factory whose sessions are bound to an engine.

        Args:
            engine: The engine sessions connect through
            expire_on_commit: Passed to async_sessionmaker (default False,
                so entities stay readable after save_changes())
            **kwargs: Forwarded to the factory constructor
        """
        if engine is None:
            raise InvalidArgumentError("engine")
        session_factory = async_sessionmaker(engine, expire_on_commit=expire_on_commit)
        return cls(session_factory, **kwargs)

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    def create(self) -> SqlAlchemyUnitOfWork:
        """Create a new unit of work with its own session."""
        return SqlAlchemyUnitOfWork(
            self._session_factory(),
            repository_factory=self._repository_factory,
            tracer=self._tracer,
        )


class TenantUnitOfWorkFactory:
    """
    Creates units of work connected to the current tenant's store.

    The tenant comes from a TenantAccessor and is translated into a
    connection URL (and optional schema) by a TenantResolutionStrategy.
    One engine is created per distinct URL and reused; call dispose() on
    shutdown to release their pools.

    Example:
        >>> factory = TenantUnitOfWorkFactory(
        ...     tenant_accessor=ContextTenantAccessor(context_accessor),
        ...     strategy=DatabasePerTenantStrategy(
        ...         url_template="postgresql+asyncpg://app@db/tenant_{tenant}"
        ...     ),
        ... )
        >>> async with await factory.create_for_current_tenant() as uow:
        ...     ...
    """

    def __init__(
        self,
        tenant_accessor: TenantAccessor,
        strategy: TenantResolutionStrategy,
        engine_factory: Callable[[str], AsyncEngine] | None = None,
        configure_engine: Callable[[AsyncEngine], None] | None = None,
        expire_on_commit: bool = False,
        repository_factory: RepositoryFactory | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the factory.

        Args:
            tenant_accessor: Reads the tenant bound to the current operation
            strategy: Maps a tenant to its connection URL and schema
            engine_factory: Creates an engine for a URL
                (defaults to create_async_engine)
            configure_engine: Called once on every engine the factory
                creates, e.g. to attach a correlation interceptor
            expire_on_commit: Passed to async_sessionmaker (default False)
            repository_factory: Forwarded to every unit of work
            tracer: Optional tracer (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        if tenant_accessor is None:
            raise InvalidArgumentError("tenant_accessor")
        if strategy is None:
            raise InvalidArgumentError("strategy")
        self._tenant_accessor = tenant_accessor
        self._strategy = strategy
        self._engine_factory = engine_factory or create_async_engine
        self._configure_engine = configure_engine
        self._expire_on_commit = expire_on_commit
        self._repository_factory = repository_factory
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._engines: dict[str, AsyncEngine] = {}
        self._lock = asyncio.Lock()

    @property
    def engines(self) -> dict[str, AsyncEngine]:
        """Engines created so far, keyed by URL."""
        return dict(self._engines)

    async def create_for_current_tenant(self) -> SqlAlchemyUnitOfWork:
        """
        Create a unit of work for the tenant bound to the current operation.

        Raises:
            TenantNotResolvedError: If no tenant is bound
        """
        tenant_id = self._tenant_accessor.get_current_tenant_id()
        if tenant_id.is_empty:
            raise TenantNotResolvedError("TenantUnitOfWorkFactory.create_for_current_tenant")
        return await self.create_for(tenant_id)

    async def create_for(self, tenant_id: TenantId) -> SqlAlchemyUnitOfWork:
        """Create a unit of work for an explicit tenant."""
        if tenant_id is None:
            raise InvalidArgumentError("tenant_id")
        url = await self._strategy.resolve_connection_string(tenant_id)
        schema = self._strategy.resolve_schema(tenant_id)
        engine = await self._get_engine(url)

        bind = engine
        if schema is not None:
            bind = engine.execution_options(schema_translate_map={None: schema})

        session_factory = async_sessionmaker(bind, expire_on_commit=self._expire_on_commit)
        logger.debug("Creating unit of work for tenant %s", tenant_id)
        return SqlAlchemyUnitOfWork(
            session_factory(),
            repository_factory=self._repository_factory,
            tracer=self._tracer,
        )

    async def _get_engine(self, url: str) -> AsyncEngine:
        engine = self._engines.get(url)
        if engine is not None:
            return engine
        async with self._lock:
            engine = self._engines.get(url)
            if engine is None:
                engine = self._engine_factory(url)
                if self._configure_engine is not None:
                    self._configure_engine(engine)
                self._engines[url] = engine
                logger.info("Created engine for dialect %s", engine.dialect.name)
            return engine

    async def dispose(self) -> None:
        """Dispose every engine this factory created."""
        async with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            await engine.dispose()


__all__ = ["SqlAlchemyUnitOfWorkFactory", "TenantUnitOfWorkFactory"]
