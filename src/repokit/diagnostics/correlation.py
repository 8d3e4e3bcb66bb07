"""
Correlation tagging for outgoing SQL.

The CorrelationCommandInterceptor prefixes every statement sent to the
database with a comment naming the current correlation id::

    /* correlation:7f3c0c1e */
    SELECT ...

Tags live in the statement text so they show up in database logs and
slow-query traces without driver support for structured tagging. The
correlation id arrives from distributed trace propagation and is treated
as untrusted: anything that could close the comment, open a new one,
start a line comment or break the line is removed first.

Drivers with a format or pyformat paramstyle (psycopg, aiomysql) treat
``%`` as a placeholder marker, so for them ``%`` in the comment is doubled.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import event

from repokit.diagnostics.context import DiagnosticsContext
from repokit.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

# Sequences that could escape or terminate a SQL comment
UNSAFE_COMMENT_SEQUENCES: tuple[str, ...] = ("*/", "/*", "--", "\r", "\n")

CORRELATION_COMMENT_FORMAT = "/* correlation:{correlation_id} */"

PERCENT_PARAMSTYLES = frozenset({"format", "pyformat"})
"""DBAPI paramstyles whose drivers read a literal % as the start of a placeholder."""


def sanitize_correlation_id(value: str) -> str:
    """
    Remove comment-breaking sequences from a correlation id.

    Removal repeats until no unsafe sequence remains, because deleting one
    sequence can join its neighbours into another (``"*--/"`` becomes
    ``"*/"``). All other characters are left untouched, and the function
    is idempotent.

    Example:
        >>> sanitize_correlation_id("abc*/DROP TABLE x--\\n")
        'abcDROP TABLE x'
    """
    sanitized = value
    while True:
        previous = sanitized
        for sequence in UNSAFE_COMMENT_SEQUENCES:
            sanitized = sanitized.replace(sequence, "")
        if sanitized == previous:
            return sanitized


def format_correlation_comment(correlation_id: str) -> str:
    """Build the comment line for an already sanitized correlation id."""
    return CORRELATION_COMMENT_FORMAT.format(correlation_id=correlation_id)


class CorrelationCommandInterceptor:
    """
    Rewrites outgoing statements to carry the current correlation id.

    The interceptor is stateless apart from the diagnostics context it
    reads, so one instance can be attached to any number of engines.

    Example:
        >>> interceptor = CorrelationCommandInterceptor(diagnostics)
        >>> interceptor.attach(engine)
        >>> interceptor.apply("SELECT 1")
        '/* correlation:c-1 */\\nSELECT 1'
    """

    def __init__(self, diagnostics_context: DiagnosticsContext) -> None:
        if diagnostics_context is None:
            raise InvalidArgumentError("diagnostics_context")
        self._diagnostics_context = diagnostics_context

    @property
    def diagnostics_context(self) -> DiagnosticsContext:
        return self._diagnostics_context

    def apply(self, statement: str) -> str:
        """
        Rewrite one statement.

        Returns the statement unchanged when there is no usable
        correlation id.
        """
        comment = self._comment()
        if comment is None:
            return statement
        return f"{comment}\n{statement}"

    def _comment(self) -> str | None:
        correlation_id = self._diagnostics_context.correlation_id
        if correlation_id is None or not correlation_id.strip():
            return None

        sanitized = sanitize_correlation_id(correlation_id)
        if not sanitized.strip():
            return None
        return format_correlation_comment(sanitized)

    def attach(self, engine: AsyncEngine | Engine) -> None:
        """Register the interceptor on an engine's cursor execution hook."""
        target = _sync_engine(engine)
        if not event.contains(target, "before_cursor_execute", self._before_cursor_execute):
            event.listen(
                target,
                "before_cursor_execute",
                self._before_cursor_execute,
                retval=True,
            )
            logger.debug("Correlation interceptor attached to %s", target.dialect.name)

    def detach(self, engine: AsyncEngine | Engine) -> None:
        """Remove the interceptor from an engine."""
        target = _sync_engine(engine)
        if event.contains(target, "before_cursor_execute", self._before_cursor_execute):
            event.remove(target, "before_cursor_execute", self._before_cursor_execute)
            logger.debug("Correlation interceptor detached from %s", target.dialect.name)

    def is_attached(self, engine: AsyncEngine | Engine) -> bool:
        return event.contains(
            _sync_engine(engine), "before_cursor_execute", self._before_cursor_execute
        )

    def _before_cursor_execute(
        self,
        conn: Any,
        cursor: Any,
        statement: str,
        parameters: Any,
        context: Any,
        executemany: bool,
    ) -> tuple[str, Any]:
        comment = self._comment()
        if comment is None:
            return statement, parameters
        # The statement was escaped for the driver at compile time; the comment was not
        if conn.dialect.paramstyle in PERCENT_PARAMSTYLES:
            comment = comment.replace("%", "%%")
        return f"{comment}\n{statement}", parameters


def _sync_engine(engine: AsyncEngine | Engine) -> Engine:
    if engine is None:
        raise InvalidArgumentError("engine")
    # AsyncEngine proxies a synchronous Engine; events live on the latter
    return getattr(engine, "sync_engine", engine)


__all__ = [
    "CorrelationCommandInterceptor",
    "sanitize_correlation_id",
    "format_correlation_comment",
    "UNSAFE_COMMENT_SEQUENCES",
    "CORRELATION_COMMENT_FORMAT",
    "PERCENT_PARAMSTYLES",
]
