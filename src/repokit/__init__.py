"""
repokit - Repository and unit-of-work coordination for SQLAlchemy.

This library provides:
- Repository / ReadOnlyRepository contracts with a SQLAlchemy adapter
- Unit of work owning one AsyncSession and committing atomically
- Explicit transaction scopes with a strict state machine
- Tenant identity and tenant-to-database resolution strategies
- Correlation-id tagging of outgoing SQL
- Passive database health contributors
- Composition-based OpenTelemetry tracing
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("repokit")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from repokit.config import DataOptions, DataSettings
from repokit.context import OperationContext, OperationContextAccessor
from repokit.diagnostics import (
    CorrelationCommandInterceptor,
    DiagnosticsContext,
    HealthContributor,
    HealthReport,
    HealthResult,
    HealthStatus,
    OperationDiagnosticsContext,
    check_all,
    sanitize_correlation_id,
)
from repokit.exceptions import (
    ConfigurationError,
    DisposedError,
    InvalidArgumentError,
    RepoKitError,
    TenantNotResolvedError,
    TransactionStateError,
    UnknownTenantError,
)
from repokit.protocols import (
    ReadOnlyRepository,
    Repository,
    TransactionScope,
    TransactionState,
    UnitOfWork,
    UnitOfWorkFactory,
)
from repokit.registration import DataLayer, create_data_layer, validate_data_layer
from repokit.sqlalchemy import (
    EngineHealthContributor,
    SessionHealthContributor,
    SqlAlchemyRepository,
    SqlAlchemyTransactionScope,
    SqlAlchemyUnitOfWork,
    SqlAlchemyUnitOfWorkFactory,
    TenantUnitOfWorkFactory,
)
from repokit.tenancy import (
    ContextTenantAccessor,
    DatabasePerTenantStrategy,
    SchemaPerTenantStrategy,
    SharedDatabaseStrategy,
    StaticTenantAccessor,
    TenantAccessor,
    TenantId,
    TenantResolutionStrategy,
)

__all__ = [
    "__version__",
    # Contracts
    "ReadOnlyRepository",
    "Repository",
    "TransactionScope",
    "TransactionState",
    "UnitOfWork",
    "UnitOfWorkFactory",
    # SQLAlchemy adapters
    "SqlAlchemyRepository",
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyTransactionScope",
    "SqlAlchemyUnitOfWorkFactory",
    "TenantUnitOfWorkFactory",
    "EngineHealthContributor",
    "SessionHealthContributor",
    # Context
    "OperationContext",
    "OperationContextAccessor",
    # Tenancy
    "TenantId",
    "TenantAccessor",
    "ContextTenantAccessor",
    "StaticTenantAccessor",
    "TenantResolutionStrategy",
    "DatabasePerTenantStrategy",
    "SchemaPerTenantStrategy",
    "SharedDatabaseStrategy",
    # Diagnostics
    "DiagnosticsContext",
    "OperationDiagnosticsContext",
    "CorrelationCommandInterceptor",
    "sanitize_correlation_id",
    "HealthStatus",
    "HealthResult",
    "HealthContributor",
    "HealthReport",
    "check_all",
    # Configuration
    "DataOptions",
    "DataSettings",
    "DataLayer",
    "create_data_layer",
    "validate_data_layer",
    # Exceptions
    "RepoKitError",
    "InvalidArgumentError",
    "DisposedError",
    "TransactionStateError",
    "TenantNotResolvedError",
    "UnknownTenantError",
    "ConfigurationError",
]
