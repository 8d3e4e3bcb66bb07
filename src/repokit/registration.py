"""
Wiring for the repokit data layer.

create_data_layer() turns a database URL (or an existing engine) and a set
of DataOptions into a DataLayer: the engine, a session factory, a unit of
work factory, the tenant accessor and diagnostics context derived from the
host's OperationContextAccessor, the correlation interceptor and the
health contributors. validate_data_layer() checks the result and reports
every problem at once.

Example:
    >>> contexts = OperationContextAccessor()
    >>> layer = validate_data_layer(
    ...     create_data_layer(
    ...         "postgresql+asyncpg://app@db/orders",
    ...         DataOptions.from_env(),
    ...         context_accessor=contexts,
    ...     )
    ... )
    >>> async with layer.unit_of_work_factory.create() as uow:
    ...     ...
    >>> report = await layer.check_health()
    >>> await layer.dispose()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from repokit.config import DataOptions
from repokit.context import OperationContextSource
from repokit.diagnostics import (
    CorrelationCommandInterceptor,
    DiagnosticsContext,
    HealthContributor,
    HealthReport,
    OperationDiagnosticsContext,
    check_all,
)
from repokit.exceptions import ConfigurationError, InvalidArgumentError
from repokit.observability import Tracer
from repokit.sqlalchemy import (
    EngineHealthContributor,
    SessionHealthContributor,
    SqlAlchemyUnitOfWorkFactory,
)
from repokit.tenancy import ContextTenantAccessor, TenantAccessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataLayer:
    """
    Everything create_data_layer() built, ready to hand to application code.

    Attributes:
        engine: The engine all sessions connect through
        session_factory: Creates sessions bound to the engine
        unit_of_work_factory: Creates independent units of work
        options: The options the layer was built with
        tenant_accessor: Reads the tenant of the current operation, if configured
        diagnostics: Diagnostics context for the current operation, if configured
        interceptor: Correlation interceptor attached to the engine, if any
        health_contributors: Probes registered for the engine
        owns_engine: True when the engine was created from a URL and is
            disposed together with the layer
    """

    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    unit_of_work_factory: SqlAlchemyUnitOfWorkFactory
    options: DataOptions
    tenant_accessor: TenantAccessor | None = None
    diagnostics: DiagnosticsContext | None = None
    interceptor: CorrelationCommandInterceptor | None = None
    health_contributors: tuple[HealthContributor, ...] = field(default_factory=tuple)
    owns_engine: bool = True

    async def check_health(self) -> HealthReport:
        """Run every registered health contributor."""
        return await check_all(self.health_contributors)

    async def dispose(self) -> None:
        """Detach the interceptor and dispose the engine if the layer owns it."""
        if self.interceptor is not None:
            self.interceptor.detach(self.engine)
        if self.owns_engine:
            await self.engine.dispose()
        logger.debug("Data layer disposed (owns_engine=%s)", self.owns_engine)


def create_data_layer(
    url_or_engine: str | URL | AsyncEngine,
    options: DataOptions | None = None,
    *,
    context_accessor: OperationContextSource | None = None,
    tenant_accessor: TenantAccessor | None = None,
    diagnostics: DiagnosticsContext | None = None,
    engine_options: Mapping[str, Any] | None = None,
    health_label: str = "default",
    tracer: Tracer | None = None,
) -> DataLayer:
    """
    Build the data layer for one database.

    When a context_accessor is given, the tenant accessor and diagnostics
    context default to ones reading from it. Explicit tenant_accessor or
    diagnostics arguments take precedence.

    Args:
        url_or_engine: Database URL, or an engine owned by the caller
        options: Wiring options (defaults to DataOptions())
        context_accessor: Source of the current OperationContext
        tenant_accessor: Overrides the context-derived tenant accessor
        diagnostics: Overrides the context-derived diagnostics context
        engine_options: Extra create_async_engine() arguments; only valid
            with a URL
        health_label: Label of the session health contributor
        tracer: Tracer shared by all units of work (optional)

    Returns:
        The assembled DataLayer

    Raises:
        InvalidArgumentError: If url_or_engine is None
        ConfigurationError: If engine_options are combined with an engine
    """
    if url_or_engine is None:
        raise InvalidArgumentError("url_or_engine")
    options = options or DataOptions()

    if isinstance(url_or_engine, AsyncEngine):
        if engine_options:
            raise ConfigurationError(
                "engine_options can only be used when create_data_layer() creates the engine"
            )
        engine = url_or_engine
        owns_engine = False
    else:
        engine = create_async_engine(
            url_or_engine,
            echo=options.echo_sql,
            **dict(engine_options or {}),
        )
        owns_engine = True

    if context_accessor is not None:
        tenant_accessor = tenant_accessor or ContextTenantAccessor(context_accessor)
        diagnostics = diagnostics or OperationDiagnosticsContext(context_accessor)

    interceptor = None
    if options.enable_correlation_interceptor and diagnostics is not None:
        interceptor = CorrelationCommandInterceptor(diagnostics)
        interceptor.attach(engine)

    session_factory = async_sessionmaker(engine, expire_on_commit=options.expire_on_commit)
    unit_of_work_factory = SqlAlchemyUnitOfWorkFactory(
        session_factory,
        tracer=tracer,
        enable_tracing=options.enable_tracing,
    )

    contributors: tuple[HealthContributor, ...] = ()
    if options.register_health_contributors:
        contributors = (
            EngineHealthContributor(
                engine,
                timeout=options.health_check_timeout,
                enable_tracing=options.enable_tracing,
            ),
            SessionHealthContributor(
                session_factory,
                label=health_label,
                timeout=options.health_check_timeout,
                enable_tracing=options.enable_tracing,
            ),
        )

    logger.info(
        "Data layer created for dialect %s (correlation=%s, health=%d contributor(s))",
        engine.dialect.name,
        interceptor is not None,
        len(contributors),
    )
    return DataLayer(
        engine=engine,
        session_factory=session_factory,
        unit_of_work_factory=unit_of_work_factory,
        options=options,
        tenant_accessor=tenant_accessor,
        diagnostics=diagnostics,
        interceptor=interceptor,
        health_contributors=contributors,
        owns_engine=owns_engine,
    )


def validate_data_layer(layer: DataLayer) -> DataLayer:
    """
    Check that a data layer is completely wired.

    Returns:
        The same layer, so the call can wrap create_data_layer()

    Raises:
        InvalidArgumentError: If layer is None
        ConfigurationError: Listing every problem found
    """
    if layer is None:
        raise InvalidArgumentError("layer")

    errors: list[str] = []
    if layer.tenant_accessor is None:
        errors.append(
            "No TenantAccessor is configured. "
            "Pass context_accessor= or tenant_accessor= to create_data_layer()."
        )
    if layer.diagnostics is None:
        errors.append(
            "No DiagnosticsContext is configured. "
            "Pass context_accessor= or diagnostics= to create_data_layer()."
        )
    if layer.options.enable_correlation_interceptor:
        if layer.interceptor is None:
            errors.append(
                "The correlation interceptor is enabled but was not created "
                "because no DiagnosticsContext is available."
            )
        elif not layer.interceptor.is_attached(layer.engine):
            errors.append("The correlation interceptor is not attached to the engine.")
    if layer.options.register_health_contributors and not layer.health_contributors:
        errors.append("Health contributors are enabled but none are registered.")
    if layer.unit_of_work_factory.session_factory is not layer.session_factory:
        errors.append("The unit of work factory does not use the layer's session factory.")

    if errors:
        raise ConfigurationError(errors)
    return layer


__all__ = ["DataLayer", "create_data_layer", "validate_data_layer"]
