"""
Passive health contribution protocol.

A health contributor reports whether the store behind it is reachable,
but only when asked. Contributors never poll, hold no locks, and turn a
failed check into an UNHEALTHY result instead of raising, so a host
iterating many contributors is never interrupted by one of them.

This module defines the result types, the contributor protocol and
check_all(), which runs a set of contributors concurrently and aggregates
their results into a HealthReport.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class HealthStatus(Enum):
    """
    Health status levels.

    Values are ordered from best to worst; see HealthStatus.severity.
    """

    HEALTHY = "healthy"
    """Store reachable and operating normally."""

    DEGRADED = "degraded"
    """Store reachable but impaired."""

    UNHEALTHY = "unhealthy"
    """Store unreachable or failing."""

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.DEGRADED: 1,
    HealthStatus.UNHEALTHY: 2,
}


@dataclass(frozen=True)
class HealthResult:
    """
    Immutable result of one health check.

    Attributes:
        status: Overall status reported by the contributor
        description: Human-readable explanation, if any
        data: Structured details (read-only), if any

    Example:
        >>> HealthResult.unhealthy("Cannot connect to database").status
        <HealthStatus.UNHEALTHY: 'unhealthy'>
    """

    status: HealthStatus
    description: str | None = None
    data: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.data is not None and not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def healthy(
        cls,
        description: str | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> HealthResult:
        return cls(HealthStatus.HEALTHY, description, data)

    @classmethod
    def degraded(cls, description: str, data: Mapping[str, Any] | None = None) -> HealthResult:
        return cls(HealthStatus.DEGRADED, description, data)

    @classmethod
    def unhealthy(cls, description: str, data: Mapping[str, Any] | None = None) -> HealthResult:
        return cls(HealthStatus.UNHEALTHY, description, data)

    @property
    def is_healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {"status": self.status.value}
        if self.description is not None:
            result["description"] = self.description
        if self.data is not None:
            result["data"] = dict(self.data)
        return result


@runtime_checkable
class HealthContributor(Protocol):
    """
    On-demand connectivity check.

    Implementations must:
    - return a stable, human-readable name without hostnames or
      connection strings
    - check only when check_health() is called
    - tolerate concurrent, frequent invocation without holding locks
    - let asyncio.CancelledError propagate rather than block
    - convert any check failure into an UNHEALTHY result
    """

    @property
    def name(self) -> str: ...

    async def check_health(self) -> HealthResult: ...


@dataclass(frozen=True)
class HealthReport:
    """
    Aggregated results from a set of contributors.

    The overall status is the worst status among the results; an empty
    report is HEALTHY.
    """

    status: HealthStatus
    results: Mapping[str, HealthResult] = field(default_factory=dict)
    checked_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value,
            "checked_at": self.checked_at.isoformat(),
            "contributors": {name: result.to_dict() for name, result in self.results.items()},
        }


def worst_status(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """Return the most severe status, or HEALTHY for an empty input."""
    return max(statuses, key=lambda status: status.severity, default=HealthStatus.HEALTHY)


async def _run_contributor(contributor: HealthContributor) -> HealthResult:
    try:
        return await contributor.check_health()
    except asyncio.CancelledError:
        raise
    except Exception as e:
        # Contributors should never raise; guard the aggregate anyway
        logger.warning(
            "Health contributor %s raised instead of reporting: %s",
            contributor.name,
            e,
            exc_info=True,
        )
        return HealthResult.unhealthy(f"Health contributor raised {type(e).__name__}: {e}")


async def check_all(contributors: Iterable[HealthContributor]) -> HealthReport:
    """
    Run contributors concurrently and aggregate their results.

    Contributors sharing a name are reported under ``name``, ``name#2``
    and so on, in the order given.

    Args:
        contributors: The contributors to invoke

    Returns:
        HealthReport with per-contributor results and the worst status
    """
    contributors = list(contributors)
    outcomes = await asyncio.gather(*(_run_contributor(c) for c in contributors))

    results: dict[str, HealthResult] = {}
    for contributor, outcome in zip(contributors, outcomes, strict=True):
        key = contributor.name
        suffix = 2
        while key in results:
            key = f"{contributor.name}#{suffix}"
            suffix += 1
        results[key] = outcome

    return HealthReport(
        status=worst_status(result.status for result in results.values()),
        results=MappingProxyType(results),
    )


__all__ = [
    "HealthStatus",
    "HealthResult",
    "HealthContributor",
    "HealthReport",
    "worst_status",
    "check_all",
]
