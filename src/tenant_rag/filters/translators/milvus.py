"""
Milvus boolean expression translation.

The whole tree renders into a single expression string:

    AND -> (a && b)
    OR  -> (a || b)
    NOT -> !(a)

Predicates render as `field OP value`. Strings are double-quoted with
backslashes and quotes escaped, booleans render as `true`/`false`, and
numbers render as-is. CONTAINS renders as a `like "%value%"` pattern match.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from ..algebra import FilterAnd, FilterNot, FilterOperator, FilterOr, FilterPredicate, VectorFilter
from ...core.errors import FilterTranslationError, UnsupportedFilterOperatorError

BACKEND = "milvus"

_COMPARISONS = {
    FilterOperator.EQ: "==",
    FilterOperator.NE: "!=",
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
}


def translate(filter: VectorFilter) -> str:
    """Translate a filter tree into a Milvus `expr` string."""
    if isinstance(filter, FilterAnd):
        conditions = [translate(f) for f in filter.filters]
        if len(conditions) == 1:
            return conditions[0]
        return f"({' && '.join(conditions)})"

    if isinstance(filter, FilterOr):
        conditions = [translate(f) for f in filter.filters]
        if len(conditions) == 1:
            return conditions[0]
        return f"({' || '.join(conditions)})"

    if isinstance(filter, FilterNot):
        return f"!({translate(filter.filter)})"

    if isinstance(filter, FilterPredicate):
        return _translate_predicate(filter)

    raise TypeError(f"Unknown filter type: {type(filter).__name__}")


def _translate_predicate(predicate: FilterPredicate) -> str:
    op = predicate.operator

    if op in _COMPARISONS:
        return f"{predicate.field} {_COMPARISONS[op]} {render_value(predicate.value)}"

    if op is FilterOperator.CONTAINS:
        pattern = _escape(str(predicate.value).replace("%", "\\%").replace("_", "\\_"))
        return f'{predicate.field} like "%{pattern}%"'

    if op is FilterOperator.RANGE:
        raise UnsupportedFilterOperatorError(
            op, BACKEND, "express a range as two chained comparisons (GTE and LTE)"
        )

    raise UnsupportedFilterOperatorError(op, BACKEND)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def render_value(value: Any) -> str:
    """Render a Python value as a Milvus expression literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (datetime, date)):
        return f'"{value.isoformat()}"'
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise FilterTranslationError(
        f"Cannot render value of type {type(value).__name__} for backend {BACKEND}"
    )
