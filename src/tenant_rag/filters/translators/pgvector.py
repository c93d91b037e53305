"""
PostgreSQL (pgvector) filter translation.

Filter trees compile to SQLAlchemy boolean expressions over the JSONB
`attributes` column of the vector table. Each field is read with `->>`:

- strings and booleans compare as text (`.as_string()`),
- numbers compare as floats (`.as_float()`),
- dates and datetimes compare as ISO 8601 text.

NE also matches rows where the field is missing, which is how every other
backend treats "not equal".
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import and_, column, not_, or_
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql.elements import ColumnElement

from ..algebra import FilterAnd, FilterNot, FilterOperator, FilterOr, FilterPredicate, VectorFilter
from ...core.errors import FilterTranslationError, UnsupportedFilterOperatorError

BACKEND = "pgvector"


def translate(filter: VectorFilter, attributes: Optional[ColumnElement] = None) -> ColumnElement:
    """
    Translate a filter tree into a SQLAlchemy WHERE clause.

    Parameters
    ----------
    filter : VectorFilter
        The filter tree.
    attributes : Optional[ColumnElement]
        The JSONB column holding the filterable attributes. Defaults to an
        unbound `attributes` column.
    """
    if attributes is None:
        attributes = column("attributes", JSONB)

    if isinstance(filter, FilterAnd):
        clauses = [translate(f, attributes) for f in filter.filters]
        return clauses[0] if len(clauses) == 1 else and_(*clauses)

    if isinstance(filter, FilterOr):
        clauses = [translate(f, attributes) for f in filter.filters]
        return clauses[0] if len(clauses) == 1 else or_(*clauses)

    if isinstance(filter, FilterNot):
        return not_(translate(filter.filter, attributes))

    if isinstance(filter, FilterPredicate):
        return _translate_predicate(filter, attributes)

    raise TypeError(f"Unknown filter type: {type(filter).__name__}")


def _translate_predicate(predicate: FilterPredicate, attributes: ColumnElement) -> ColumnElement:
    op = predicate.operator
    field = attributes[predicate.field]

    if op is FilterOperator.CONTAINS:
        return field.as_string().ilike(f"%{_like_literal(str(predicate.value))}%", escape="\\")

    if op is FilterOperator.RANGE:
        raise UnsupportedFilterOperatorError(op, BACKEND, "use GTE and LTE separately")

    target, value = _typed(field, predicate.value)

    if op is FilterOperator.EQ:
        return target == value
    if op is FilterOperator.NE:
        return or_(field.is_(None), target != value)
    if op is FilterOperator.GT:
        return target > value
    if op is FilterOperator.GTE:
        return target >= value
    if op is FilterOperator.LT:
        return target < value
    if op is FilterOperator.LTE:
        return target <= value

    raise UnsupportedFilterOperatorError(op, BACKEND)


def _like_literal(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _typed(field, value: Any):
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return field.as_string(), "true" if value else "false"
    if isinstance(value, (int, float)):
        return field.as_float(), float(value)
    if isinstance(value, (datetime, date)):
        return field.as_string(), value.isoformat()
    if isinstance(value, str):
        return field.as_string(), value
    raise FilterTranslationError(
        f"Cannot render value of type {type(value).__name__} for backend {BACKEND}"
    )
