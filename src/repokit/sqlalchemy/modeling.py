"""
Modeling conventions for mapped entities.

Helpers that keep table, column and constraint names consistent across
services:

- to_snake_case(): CamelCase class names to snake_case table names
- NAMING_CONVENTION / create_metadata(): deterministic constraint names and,
  optionally, snake_case column names
- SnakeCaseTableMixin: derives __tablename__ from the class name
- apply_default_string_length(): gives unbounded String columns a length
- apply_default_numeric_precision(): gives bare Numeric columns a precision

Example:
    >>> from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
    >>>
    >>> class Base(DeclarativeBase):
    ...     metadata = create_metadata()
    >>>
    >>> class OrderLine(SnakeCaseTableMixin, Base):
    ...     id: Mapped[int] = mapped_column(primary_key=True)
    >>>
    >>> OrderLine.__tablename__
    'order_line'
"""

from __future__ import annotations

import re
from typing import Any

from sqlalchemy import Column, MetaData, Numeric, String, Table, event
from sqlalchemy.orm import declared_attr

DEFAULT_STRING_LENGTH = 256
DEFAULT_NUMERIC_PRECISION = 18
DEFAULT_NUMERIC_SCALE = 2

SNAKE_CASE_COLUMNS = "repokit.snake_case_columns"
"""MetaData.info flag set by create_metadata(snake_case_columns=True)."""

NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def to_snake_case(name: str) -> str:
    """
    Convert CamelCase to snake_case.

    Examples:
        >>> to_snake_case("OrderLine")
        'order_line'
        >>> to_snake_case("HTTPRequestLog")
        'http_request_log'
        >>> to_snake_case("order_line")
        'order_line'
    """
    if not name:
        return name
    # Split an acronym from a following capitalized word
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    # Split a lowercase letter or digit from a following capital
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def create_metadata(
    schema: str | None = None,
    naming_convention: dict[str, str] | None = None,
    snake_case_columns: bool = False,
) -> MetaData:
    """
    Create MetaData with the standard constraint naming convention.

    With ``snake_case_columns`` every column attached to a table of this
    MetaData gets a snake_case database name (``customerId`` becomes
    ``customer_id``). The column key, and so the mapped attribute name,
    is unchanged. Index and constraint names built from the naming
    convention follow the new column names.

    Args:
        schema: Default schema for tables, if any
        naming_convention: Overrides NAMING_CONVENTION
        snake_case_columns: Snake-case column names as they are attached
    """
    metadata = MetaData(
        schema=schema,
        naming_convention=naming_convention or NAMING_CONVENTION,
    )
    if snake_case_columns:
        metadata.info[SNAKE_CASE_COLUMNS] = True
    return metadata


@event.listens_for(Column, "before_parent_attach")
def _snake_case_column_name(column: Column[Any], parent: Any) -> None:
    if not isinstance(parent, Table) or not parent.metadata.info.get(SNAKE_CASE_COLUMNS):
        return
    if column.name:
        column.name = to_snake_case(column.name)


class SnakeCaseTableMixin:
    """Mixin deriving __tablename__ from the class name in snake_case."""

    @declared_attr.directive
    def __tablename__(cls) -> str:  # noqa: N805
        return to_snake_case(cls.__name__)


def apply_default_string_length(metadata: MetaData, length: int = DEFAULT_STRING_LENGTH) -> int:
    """
    Give every String column without a length a default one.

    Call after all models are declared and before creating tables.
    Text columns are left unbounded.

    Returns:
        Number of columns changed
    """
    if length <= 0:
        raise ValueError(f"length must be positive, got {length}")
    changed = 0
    for table in metadata.tables.values():
        for column in table.columns:
            column_type: Any = column.type
            if type(column_type) is String and column_type.length is None:
                # bare Mapped[str] columns share one String() instance
                column.type = String(length, collation=column_type.collation)
                changed += 1
    return changed


def apply_default_numeric_precision(
    metadata: MetaData,
    precision: int = DEFAULT_NUMERIC_PRECISION,
    scale: int = DEFAULT_NUMERIC_SCALE,
) -> int:
    """
    Give every Numeric column without a precision a default precision and scale.

    Columns typed through ``Mapped[Decimal]`` get a bare Numeric, which
    some backends store with a server-dependent precision. Float columns
    are left alone. Call after all models are declared and before
    creating tables.

    Example:
        >>> apply_default_numeric_precision(Base.metadata)  # NUMERIC(18, 2)
        3

    Returns:
        Number of columns changed

    Raises:
        ValueError: If precision is not positive or scale is outside 0..precision
    """
    if precision <= 0:
        raise ValueError(f"precision must be positive, got {precision}")
    if not 0 <= scale <= precision:
        raise ValueError(f"scale must be between 0 and {precision}, got {scale}")
    changed = 0
    for table in metadata.tables.values():
        for column in table.columns:
            column_type: Any = column.type
            if type(column_type) is Numeric and column_type.precision is None:
                column.type = Numeric(precision, scale, asdecimal=column_type.asdecimal)
                changed += 1
    return changed


__all__ = [
    "NAMING_CONVENTION",
    "DEFAULT_STRING_LENGTH",
    "DEFAULT_NUMERIC_PRECISION",
    "DEFAULT_NUMERIC_SCALE",
    "SNAKE_CASE_COLUMNS",
    "to_snake_case",
    "create_metadata",
    "SnakeCaseTableMixin",
    "apply_default_string_length",
    "apply_default_numeric_precision",
]
