"""Library exceptions for the repokit package."""

from __future__ import annotations

from collections.abc import Sequence


class RepoKitError(Exception):
    """Base exception for repokit library."""

    pass


class InvalidArgumentError(RepoKitError, ValueError):
    """Raised when a required argument is missing, before any I/O happens."""

    def __init__(self, argument: str, message: str | None = None) -> None:
        self.argument = argument
        super().__init__(message or f"Argument '{argument}' must not be None")


class DisposedError(RepoKitError):
    """
    Raised when an operation is invoked on a disposed object.

    Units of work, repositories and transaction scopes all raise this
    error after disposal instead of silently doing nothing.

    Attributes:
        object_name: Name of the disposed object (e.g. "SqlAlchemyUnitOfWork")
    """

    def __init__(self, object_name: str) -> None:
        self.object_name = object_name
        super().__init__(f"Cannot access a disposed object: {object_name}")


class TransactionStateError(RepoKitError):
    """Raised when a transaction operation is not valid in the current state."""

    def __init__(self, message: str, transaction_id: object | None = None) -> None:
        self.transaction_id = transaction_id
        super().__init__(message)


class TenantNotResolvedError(RepoKitError):
    """
    Raised when an operation requires a tenant but none is bound.

    The tenant accessor itself never raises; components that need a
    tenant check TenantId.is_empty and raise this error.
    """

    def __init__(self, operation: str | None = None) -> None:
        self.operation = operation
        target = f" for {operation}" if operation else ""
        super().__init__(
            f"No tenant is bound to the current operation{target}. "
            "Bind a tenant on the OperationContext before using tenant-aware components."
        )


class UnknownTenantError(RepoKitError, LookupError):
    """Raised by a resolution strategy that has no mapping for a tenant."""

    def __init__(self, tenant_id: object, strategy: str) -> None:
        self.tenant_id = tenant_id
        self.strategy = strategy
        super().__init__(f"{strategy} has no connection target for tenant '{tenant_id}'")


class ConfigurationError(RepoKitError):
    """
    Raised when the data layer is configured incorrectly.

    Attributes:
        errors: Every problem found during validation
    """

    def __init__(self, errors: Sequence[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        details = "\n".join(f"  - {error}" for error in self.errors)
        super().__init__(f"repokit configuration validation failed:\n{details}")


__all__ = [
    "RepoKitError",
    "InvalidArgumentError",
    "DisposedError",
    "TransactionStateError",
    "TenantNotResolvedError",
    "UnknownTenantError",
    "ConfigurationError",
]
