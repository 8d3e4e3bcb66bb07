"""
Standard span attributes for repokit.

Attribute names follow OpenTelemetry database semantic conventions where
one exists and use the ``repokit.`` prefix otherwise.

Example:
    >>> from repokit.observability.attributes import ATTR_DB_OPERATION, ATTR_ENTITY_TYPE
    >>> with tracer.span(
    ...     "repokit.repository.find",
    ...     {ATTR_ENTITY_TYPE: "Order", ATTR_DB_OPERATION: "find"},
    ... ):
    ...     pass
"""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_OPERATION = "db.operation"
"""Logical operation being performed (e.g., 'find', 'add', 'save_changes')."""

# =============================================================================
# Repository and Unit of Work Attributes
# =============================================================================

ATTR_ENTITY_TYPE = "repokit.entity.type"
"""Entity class name handled by a repository (string)."""

ATTR_ENTITY_COUNT = "repokit.entity.count"
"""Number of entities in a range operation (integer)."""

ATTR_AFFECTED_COUNT = "repokit.affected.count"
"""Number of entities written by a save (integer)."""

ATTR_TRANSACTION_ID = "db.transaction.id"
"""Identifier of an explicit transaction scope (UUID string)."""

# =============================================================================
# Health Attributes
# =============================================================================

ATTR_HEALTH_CONTRIBUTOR = "repokit.health.contributor"
"""Name of the health contributor being checked (string)."""

ATTR_HEALTH_STATUS = "repokit.health.status"
"""Resulting health status (string)."""


__all__ = [
    "ATTR_DB_OPERATION",
    "ATTR_ENTITY_TYPE",
    "ATTR_ENTITY_COUNT",
    "ATTR_AFFECTED_COUNT",
    "ATTR_TRANSACTION_ID",
    "ATTR_HEALTH_CONTRIBUTOR",
    "ATTR_HEALTH_STATUS",
]
