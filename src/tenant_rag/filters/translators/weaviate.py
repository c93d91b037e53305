"""
Weaviate `where` filter translation.

Predicates become `{"path": [field], "operator": ..., "value<Type>": value}`
objects, with the value key chosen from the Python type of the value.
AND/OR become `{"operator": "And"|"Or", "operands": [...]}`. NOT is pushed
down to the predicates, since the `where` filter has no negation operator.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict

from ..algebra import (
    FilterAnd,
    FilterNot,
    FilterOperator,
    FilterOr,
    FilterPredicate,
    VectorFilter,
    negate,
)
from ...core.errors import FilterTranslationError, UnsupportedFilterOperatorError

BACKEND = "weaviate"

_OPERATORS = {
    FilterOperator.EQ: "Equal",
    FilterOperator.NE: "NotEqual",
    FilterOperator.GT: "GreaterThan",
    FilterOperator.GTE: "GreaterThanEqual",
    FilterOperator.LT: "LessThan",
    FilterOperator.LTE: "LessThanEqual",
}


def translate(filter: VectorFilter) -> Dict[str, Any]:
    """Translate a filter tree into a Weaviate `where` object."""
    if isinstance(filter, (FilterAnd, FilterOr)):
        if len(filter.filters) == 1:
            return translate(filter.filters[0])
        return {
            "operator": "And" if isinstance(filter, FilterAnd) else "Or",
            "operands": [translate(f) for f in filter.filters],
        }

    if isinstance(filter, FilterNot):
        return translate(negate(filter.filter, BACKEND))

    if isinstance(filter, FilterPredicate):
        return _translate_predicate(filter)

    raise TypeError(f"Unknown filter type: {type(filter).__name__}")


def _translate_predicate(predicate: FilterPredicate) -> Dict[str, Any]:
    op = predicate.operator

    if op in _OPERATORS:
        key, value = value_entry(predicate.value)
        return {"path": [predicate.field], "operator": _OPERATORS[op], key: value}

    if op is FilterOperator.CONTAINS:
        return {
            "path": [predicate.field],
            "operator": "Like",
            "valueText": f"*{predicate.value}*",
        }

    if op is FilterOperator.RANGE:
        raise UnsupportedFilterOperatorError(op, BACKEND, "use GTE and LTE separately")

    raise UnsupportedFilterOperatorError(op, BACKEND)


def value_entry(value: Any):
    """Return the `(valueX, value)` pair Weaviate expects for a Python value."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "valueBoolean", value
    if isinstance(value, int):
        return "valueInt", value
    if isinstance(value, float):
        return "valueNumber", value
    if isinstance(value, (datetime, date)):
        return "valueDate", value.isoformat()
    if isinstance(value, str):
        return "valueText", value
    raise FilterTranslationError(
        f"Cannot render value of type {type(value).__name__} for backend {BACKEND}"
    )
