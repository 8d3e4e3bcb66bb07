"""
Test utilities for repokit.

Components:
    create_memory_engine / memory_database: private in-memory SQLite
        databases shared by every session of a test
    create_schema / clear_data / reset_database / detach_all: database
        and session reset helpers
    StaticDiagnosticsContext, StubHealthContributor and tenant accessor
        factories: test doubles for the collaborators units of work and
        interceptors depend on

Example:
    >>> from repokit.testing import create_diagnostics_context, memory_database
    >>>
    >>> async with memory_database(Base.metadata) as engine:
    ...     factory = SqlAlchemyUnitOfWorkFactory.from_engine(engine)

Note:
    This module is intended for test code only. It requires aiosqlite.
"""

from repokit.testing.database import (
    MEMORY_URL,
    clear_data,
    create_memory_engine,
    create_schema,
    detach_all,
    memory_database,
    reset_database,
)
from repokit.testing.doubles import (
    StaticDiagnosticsContext,
    StubHealthContributor,
    create_diagnostics_context,
    create_empty_tenant_accessor,
    create_tenant_accessor,
)

__all__ = [
    # Databases
    "MEMORY_URL",
    "create_memory_engine",
    "create_schema",
    "clear_data",
    "reset_database",
    "detach_all",
    "memory_database",
    # Doubles
    "StaticDiagnosticsContext",
    "StubHealthContributor",
    "create_tenant_accessor",
    "create_empty_tenant_accessor",
    "create_diagnostics_context",
]
