"""
Qdrant filter translation.

Qdrant expresses boolean structure as clause arrays on a filter object:

    AND -> {"must": [...]}
    OR  -> {"should": [...]}
    NOT -> {"must_not": [...]}

and each predicate as one field condition (`match` or `range`).
"""

from __future__ import annotations

from typing import Any, Dict

from ..algebra import FilterAnd, FilterNot, FilterOperator, FilterOr, FilterPredicate, VectorFilter
from ...core.errors import UnsupportedFilterOperatorError

BACKEND = "qdrant"

_RANGE_KEYS = {
    FilterOperator.GT: "gt",
    FilterOperator.GTE: "gte",
    FilterOperator.LT: "lt",
    FilterOperator.LTE: "lte",
}


def translate(filter: VectorFilter) -> Dict[str, Any]:
    """Translate a filter tree into a Qdrant `filter` object."""
    if isinstance(filter, FilterAnd):
        if len(filter.filters) == 1:
            return translate(filter.filters[0])
        return {"must": [translate(f) for f in filter.filters]}

    if isinstance(filter, FilterOr):
        if len(filter.filters) == 1:
            return translate(filter.filters[0])
        return {"should": [translate(f) for f in filter.filters]}

    if isinstance(filter, FilterNot):
        return {"must_not": [translate(filter.filter)]}

    if isinstance(filter, FilterPredicate):
        return _translate_predicate(filter)

    raise TypeError(f"Unknown filter type: {type(filter).__name__}")


def _translate_predicate(predicate: FilterPredicate) -> Dict[str, Any]:
    op = predicate.operator

    if op is FilterOperator.EQ:
        return {"key": predicate.field, "match": {"value": predicate.value}}

    if op is FilterOperator.NE:
        return {"key": predicate.field, "match": {"except": [predicate.value]}}

    if op in _RANGE_KEYS:
        return {"key": predicate.field, "range": {_RANGE_KEYS[op]: predicate.value}}

    if op is FilterOperator.CONTAINS:
        return {"key": predicate.field, "match": {"text": str(predicate.value)}}

    if op is FilterOperator.RANGE:
        raise UnsupportedFilterOperatorError(op, BACKEND, "use GTE and LTE separately")

    raise UnsupportedFilterOperatorError(op, BACKEND)
