"""
In-process filter evaluation.

Compiles a filter tree into a predicate over a flat attribute mapping. Used by
the FAISS store, which has no metadata filtering of its own.
"""

from __future__ import annotations

import operator
from datetime import date, datetime
from typing import Any, Callable, Mapping

from ..algebra import FilterAnd, FilterNot, FilterOperator, FilterOr, FilterPredicate, VectorFilter
from ...core.errors import UnsupportedFilterOperatorError

BACKEND = "memory"

Predicate = Callable[[Mapping[str, Any]], bool]

_MISSING = object()

_ORDERINGS = {
    FilterOperator.GT: operator.gt,
    FilterOperator.GTE: operator.ge,
    FilterOperator.LT: operator.lt,
    FilterOperator.LTE: operator.le,
}


def translate(filter: VectorFilter) -> Predicate:
    """Compile a filter tree into a callable `attributes -> bool`."""
    if isinstance(filter, FilterAnd):
        children = [translate(f) for f in filter.filters]
        if len(children) == 1:
            return children[0]
        return lambda attrs: all(child(attrs) for child in children)

    if isinstance(filter, FilterOr):
        children = [translate(f) for f in filter.filters]
        if len(children) == 1:
            return children[0]
        return lambda attrs: any(child(attrs) for child in children)

    if isinstance(filter, FilterNot):
        child = translate(filter.filter)
        return lambda attrs: not child(attrs)

    if isinstance(filter, FilterPredicate):
        return _compile_predicate(filter)

    raise TypeError(f"Unknown filter type: {type(filter).__name__}")


def _normalize(value: Any) -> Any:
    # Attributes round-trip through JSON, so dates are compared as ISO text.
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _compile_predicate(predicate: FilterPredicate) -> Predicate:
    op = predicate.operator
    field = predicate.field
    expected = _normalize(predicate.value)

    if op is FilterOperator.EQ:
        return lambda attrs: _normalize(attrs.get(field, _MISSING)) == expected

    if op is FilterOperator.NE:
        return lambda attrs: _normalize(attrs.get(field, _MISSING)) != expected

    if op in _ORDERINGS:
        compare = _ORDERINGS[op]

        def ordered(attrs: Mapping[str, Any]) -> bool:
            actual = attrs.get(field, _MISSING)
            if actual is _MISSING or actual is None:
                return False
            try:
                return bool(compare(_normalize(actual), expected))
            except TypeError:
                return False

        return ordered

    if op is FilterOperator.CONTAINS:

        def contains(attrs: Mapping[str, Any]) -> bool:
            actual = attrs.get(field, _MISSING)
            if isinstance(actual, str):
                return str(expected) in actual
            if isinstance(actual, (list, tuple)):
                return expected in actual
            return False

        return contains

    if op is FilterOperator.RANGE:
        raise UnsupportedFilterOperatorError(op, BACKEND, "use GTE and LTE separately")

    raise UnsupportedFilterOperatorError(op, BACKEND)
