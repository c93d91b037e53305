"""
Fluent builder for `VectorFilter` trees.

Example
-------
    >>> f = (
    ...     VectorFilterBuilder.create()
    ...     .equal("tenant_id", "acme")
    ...     .or_group(lambda b: b.equal("status", "active").equal("status", "pending"))
    ...     .build()
    ... )

builds `tenant_id == acme AND (status == active OR status == pending)`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, List

from .algebra import (
    FilterAnd,
    FilterNot,
    FilterOperator,
    FilterOr,
    FilterPredicate,
    VectorFilter,
)


class VectorFilterBuilder:
    """
    Accumulates child filters and combines them with a terminal call.

    Terminal calls (`and_`, `or_`, `not_`, `build`) collapse a single child
    to that child instead of wrapping it in a one-element group.
    """

    def __init__(self) -> None:
        self._filters: List[VectorFilter] = []

    @classmethod
    def create(cls) -> "VectorFilterBuilder":
        return cls()

    def __len__(self) -> int:
        return len(self._filters)

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------

    def _predicate(self, field: str, operator: FilterOperator, value: Any) -> "VectorFilterBuilder":
        self._filters.append(FilterPredicate(field, operator, value))
        return self

    def equal(self, field: str, value: Any) -> "VectorFilterBuilder":
        return self._predicate(field, FilterOperator.EQ, value)

    def not_equal(self, field: str, value: Any) -> "VectorFilterBuilder":
        return self._predicate(field, FilterOperator.NE, value)

    def greater_than(self, field: str, value: Any) -> "VectorFilterBuilder":
        return self._predicate(field, FilterOperator.GT, value)

    def greater_than_or_equal(self, field: str, value: Any) -> "VectorFilterBuilder":
        return self._predicate(field, FilterOperator.GTE, value)

    def less_than(self, field: str, value: Any) -> "VectorFilterBuilder":
        return self._predicate(field, FilterOperator.LT, value)

    def less_than_or_equal(self, field: str, value: Any) -> "VectorFilterBuilder":
        return self._predicate(field, FilterOperator.LTE, value)

    def contains(self, field: str, value: str) -> "VectorFilterBuilder":
        return self._predicate(field, FilterOperator.CONTAINS, value)

    def range(self, field: str, min_value: Any, max_value: Any) -> "VectorFilterBuilder":
        """
        Add an inclusive range as one child: `field >= min AND field <= max`.

        The two bounds are grouped so they stay AND-ed whichever terminal
        combinator the caller picks.
        """
        self._filters.append(
            FilterAnd((
                FilterPredicate(field, FilterOperator.GTE, min_value),
                FilterPredicate(field, FilterOperator.LTE, max_value),
            ))
        )
        return self

    def date_range(self, field: str, min_date: datetime, max_date: datetime) -> "VectorFilterBuilder":
        return self.range(field, min_date, max_date)

    def numeric_range(self, field: str, min_value: float, max_value: float) -> "VectorFilterBuilder":
        return self.range(field, float(min_value), float(max_value))

    # ------------------------------------------------------------------
    # Nesting
    # ------------------------------------------------------------------

    def add(self, filter: VectorFilter) -> "VectorFilterBuilder":
        """Add an already-built filter as one child."""
        self._filters.append(filter)
        return self

    def and_group(self, configure: Callable[["VectorFilterBuilder"], Any]) -> "VectorFilterBuilder":
        nested = VectorFilterBuilder.create()
        configure(nested)
        return self.add(nested.and_())

    def or_group(self, configure: Callable[["VectorFilterBuilder"], Any]) -> "VectorFilterBuilder":
        nested = VectorFilterBuilder.create()
        configure(nested)
        return self.add(nested.or_())

    # ------------------------------------------------------------------
    # Terminals
    # ------------------------------------------------------------------

    def _require_filters(self) -> None:
        if not self._filters:
            raise ValueError("No filters added to builder")

    def and_(self) -> VectorFilter:
        self._require_filters()
        if len(self._filters) == 1:
            return self._filters[0]
        return FilterAnd(tuple(self._filters))

    def or_(self) -> VectorFilter:
        self._require_filters()
        if len(self._filters) == 1:
            return self._filters[0]
        return FilterOr(tuple(self._filters))

    def not_(self) -> VectorFilter:
        return FilterNot(self.and_())

    def build(self) -> VectorFilter:
        """Combine all children with AND."""
        return self.and_()
