"""
SQLAlchemy adapters for the repokit contracts.

- SqlAlchemyRepository: Repository over one mapped class
- SqlAlchemyUnitOfWork: owns one AsyncSession, caches repositories and
  commits atomically
- SqlAlchemyTransactionScope: explicit transaction on that session
- SqlAlchemyUnitOfWorkFactory / TenantUnitOfWorkFactory: mint independent
  units of work
- EngineHealthContributor / SessionHealthContributor: ``SELECT 1`` checks
- Modeling conventions: snake_case table names and constraint naming
"""

from repokit.sqlalchemy.factory import SqlAlchemyUnitOfWorkFactory, TenantUnitOfWorkFactory
from repokit.sqlalchemy.health import (
    DEFAULT_HEALTH_CHECK_TIMEOUT,
    EngineHealthContributor,
    SessionHealthContributor,
)
from repokit.sqlalchemy.modeling import (
    NAMING_CONVENTION,
    SnakeCaseTableMixin,
    apply_default_numeric_precision,
    apply_default_string_length,
    create_metadata,
    to_snake_case,
)
from repokit.sqlalchemy.repository import SqlAlchemyRepository
from repokit.sqlalchemy.session import SessionHandle
from repokit.sqlalchemy.transaction import SqlAlchemyTransactionScope
from repokit.sqlalchemy.unit_of_work import RepositoryFactory, SqlAlchemyUnitOfWork

__all__ = [
    "SqlAlchemyRepository",
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyTransactionScope",
    "SqlAlchemyUnitOfWorkFactory",
    "TenantUnitOfWorkFactory",
    "RepositoryFactory",
    "SessionHandle",
    "EngineHealthContributor",
    "SessionHealthContributor",
    "DEFAULT_HEALTH_CHECK_TIMEOUT",
    "NAMING_CONVENTION",
    "SnakeCaseTableMixin",
    "apply_default_string_length",
    "apply_default_numeric_precision",
    "create_metadata",
    "to_snake_case",
]
