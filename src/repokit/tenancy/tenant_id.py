"""Tenant identifier value type."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TenantId:
    """
    Opaque, comparable tenant identifier.

    Two TenantIds are equal iff their underlying values are equal. A
    TenantId whose value is None or blank is empty; accessors return an
    empty TenantId instead of raising when no tenant is bound.

    Example:
        >>> TenantId("acme") == TenantId.from_string("acme")
        True
        >>> TenantId.empty().is_empty
        True
        >>> TenantId("   ").is_empty
        True
    """

    value: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.value is None or not self.value.strip()

    @classmethod
    def from_string(cls, value: str | None) -> TenantId:
        return cls(value)

    @classmethod
    def empty(cls) -> TenantId:
        return cls(None)

    def __str__(self) -> str:
        return self.value or ""

    def __bool__(self) -> bool:
        return not self.is_empty


__all__ = ["TenantId"]
