"""
Vector Filter Algebra

A small, backend-agnostic boolean expression tree used to constrain vector
searches. The tree is a closed union of four immutable node types:

    VectorFilter = FilterPredicate | FilterAnd | FilterOr | FilterNot

Translators (see `tenant_rag.filters.translators`) dispatch over exactly these
four types, so adding a node or an operator means touching every translator.

Invariants
----------
- `FilterAnd` and `FilterOr` always hold at least one child.
- Nodes are frozen; a tree built for one request is never mutated.
- `FilterOperator.RANGE` is never emitted by the builder. A range is two
  predicates (`GTE`, `LTE`) grouped under one `FilterAnd`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Tuple, Union

from ..core.errors import UnsupportedFilterOperatorError


class FilterOperator(str, Enum):
    """Comparison operators for filter predicates."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    CONTAINS = "contains"
    # Present so translators can reject it explicitly; no backend here has a
    # native ternary range at the predicate level.
    RANGE = "range"


# ---------------------------------------------------------------------
# Filter Nodes
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class FilterPredicate:
    """A single `field <operator> value` comparison."""

    field: str
    operator: FilterOperator
    value: Any

    def __post_init__(self) -> None:
        if not self.field:
            raise ValueError("Filter predicate requires a field name.")
        if not isinstance(self.operator, FilterOperator):
            object.__setattr__(self, "operator", FilterOperator(self.operator))


@dataclass(frozen=True)
class FilterAnd:
    """All child filters must match."""

    filters: Tuple["VectorFilter", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", tuple(self.filters))
        if not self.filters:
            raise ValueError("FilterAnd requires at least one child filter.")


@dataclass(frozen=True)
class FilterOr:
    """At least one child filter must match."""

    filters: Tuple["VectorFilter", ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "filters", tuple(self.filters))
        if not self.filters:
            raise ValueError("FilterOr requires at least one child filter.")


@dataclass(frozen=True)
class FilterNot:
    """The child filter must not match."""

    filter: "VectorFilter"


VectorFilter = Union[FilterPredicate, FilterAnd, FilterOr, FilterNot]


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def eq(field: str, value: Any) -> FilterPredicate:
    return FilterPredicate(field, FilterOperator.EQ, value)


def iter_predicates(filter: VectorFilter):
    """Yield every predicate in the tree, depth first."""
    if isinstance(filter, FilterPredicate):
        yield filter
    elif isinstance(filter, (FilterAnd, FilterOr)):
        for child in filter.filters:
            yield from iter_predicates(child)
    elif isinstance(filter, FilterNot):
        yield from iter_predicates(filter.filter)
    else:
        raise TypeError(f"Unknown filter type: {type(filter).__name__}")


_COMPLEMENTS = {
    FilterOperator.EQ: FilterOperator.NE,
    FilterOperator.NE: FilterOperator.EQ,
    FilterOperator.GT: FilterOperator.LTE,
    FilterOperator.LTE: FilterOperator.GT,
    FilterOperator.GTE: FilterOperator.LT,
    FilterOperator.LT: FilterOperator.GTE,
}


def negate(filter: VectorFilter, backend: str) -> VectorFilter:
    """
    Push a negation down to the predicates.

    Used by translators whose backend has no native NOT combinator. Applies
    De Morgan's laws to AND/OR and replaces each comparison with its
    complement. `CONTAINS` has no complement and cannot be negated this way.

    Parameters
    ----------
    filter : VectorFilter
        The filter to negate.
    backend : str
        Backend identifier, used only for error reporting.

    Raises
    ------
    UnsupportedFilterOperatorError
        If the tree contains an operator without a complement.
    """
    if isinstance(filter, FilterPredicate):
        complement = _COMPLEMENTS.get(filter.operator)
        if complement is None:
            raise UnsupportedFilterOperatorError(
                filter.operator, backend, "operator cannot be negated"
            )
        return FilterPredicate(filter.field, complement, filter.value)

    if isinstance(filter, FilterAnd):
        return FilterOr(tuple(negate(f, backend) for f in filter.filters))

    if isinstance(filter, FilterOr):
        return FilterAnd(tuple(negate(f, backend) for f in filter.filters))

    if isinstance(filter, FilterNot):
        return filter.filter

    raise TypeError(f"Unknown filter type: {type(filter).__name__}")
