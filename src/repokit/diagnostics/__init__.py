"""
Diagnostics for repokit: correlation tagging and health contribution.

- **DiagnosticsContext**: read-only correlation/operation/node ids and tags
  for the current operation, computed from an explicit OperationContext
- **CorrelationCommandInterceptor**: prefixes outgoing SQL with a
  sanitized ``/* correlation:<id> */`` comment
- **HealthContributor**: on-demand checks returning HealthResult values;
  check_all() aggregates them into a HealthReport
"""

from repokit.diagnostics.context import (
    TAG_CORRELATION_ID,
    TAG_NODE_ID,
    TAG_OPERATION_ID,
    TAG_TENANT_ID,
    DiagnosticsContext,
    DiagnosticsSnapshot,
    OperationDiagnosticsContext,
)
from repokit.diagnostics.correlation import (
    CORRELATION_COMMENT_FORMAT,
    PERCENT_PARAMSTYLES,
    UNSAFE_COMMENT_SEQUENCES,
    CorrelationCommandInterceptor,
    format_correlation_comment,
    sanitize_correlation_id,
)
from repokit.diagnostics.health import (
    HealthContributor,
    HealthReport,
    HealthResult,
    HealthStatus,
    check_all,
    worst_status,
)

__all__ = [
    # Context
    "DiagnosticsContext",
    "DiagnosticsSnapshot",
    "OperationDiagnosticsContext",
    "TAG_CORRELATION_ID",
    "TAG_OPERATION_ID",
    "TAG_NODE_ID",
    "TAG_TENANT_ID",
    # Correlation
    "CorrelationCommandInterceptor",
    "sanitize_correlation_id",
    "format_correlation_comment",
    "UNSAFE_COMMENT_SEQUENCES",
    "CORRELATION_COMMENT_FORMAT",
    "PERCENT_PARAMSTYLES",
    # Health
    "HealthStatus",
    "HealthResult",
    "HealthContributor",
    "HealthReport",
    "check_all",
    "worst_status",
]
