"""
Pinecone metadata filter translation.

Predicates become `{field: {"$op": value}}` objects and AND/OR use the
`$and`/`$or` combinator keys. Pinecone has neither a NOT combinator nor a
substring operator, so:

- NOT is pushed down to the predicates (`negate`), which is exact for the
  comparison operators;
- CONTAINS is rejected.
"""

from __future__ import annotations

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
from ...core.errors import UnsupportedFilterOperatorError

BACKEND = "pinecone"

_OPERATORS = {
    FilterOperator.EQ: "$eq",
    FilterOperator.NE: "$ne",
    FilterOperator.GT: "$gt",
    FilterOperator.GTE: "$gte",
    FilterOperator.LT: "$lt",
    FilterOperator.LTE: "$lte",
}


def translate(filter: VectorFilter) -> Dict[str, Any]:
    """Translate a filter tree into a Pinecone `filter` dictionary."""
    if isinstance(filter, FilterAnd):
        conditions = [translate(f) for f in filter.filters]
        if len(conditions) == 1:
            return conditions[0]
        return {"$and": conditions}

    if isinstance(filter, FilterOr):
        conditions = [translate(f) for f in filter.filters]
        if len(conditions) == 1:
            return conditions[0]
        return {"$or": conditions}

    if isinstance(filter, FilterNot):
        return translate(negate(filter.filter, BACKEND))

    if isinstance(filter, FilterPredicate):
        op = _OPERATORS.get(filter.operator)
        if op is None:
            raise UnsupportedFilterOperatorError(filter.operator, BACKEND)
        return {filter.field: {op: filter.value}}

    raise TypeError(f"Unknown filter type: {type(filter).__name__}")
