"""
Filter Algebra and Builder Tests
"""

from datetime import datetime

import pytest

from tenant_rag.core.errors import UnsupportedFilterOperatorError
from tenant_rag.filters.algebra import (
    FilterAnd,
    FilterNot,
    FilterOperator,
    FilterOr,
    FilterPredicate,
    eq,
    iter_predicates,
    negate,
)
from tenant_rag.filters.builder import VectorFilterBuilder


class TestFilterNodes:
    def test_empty_groups_are_rejected(self):
        with pytest.raises(ValueError):
            FilterAnd(())
        with pytest.raises(ValueError):
            FilterOr([])

    def test_groups_store_tuples(self):
        group = FilterAnd([eq("a", 1)])
        assert group.filters == (eq("a", 1),)

    def test_predicate_requires_field(self):
        with pytest.raises(ValueError):
            FilterPredicate("", FilterOperator.EQ, 1)

    def test_predicate_coerces_operator(self):
        assert FilterPredicate("a", "gte", 1).operator is FilterOperator.GTE

    def test_nodes_are_frozen(self):
        predicate = eq("a", 1)
        with pytest.raises(AttributeError):
            predicate.value = 2

    def test_iter_predicates_walks_the_tree(self):
        tree = FilterAnd((eq("a", 1), FilterNot(FilterOr((eq("b", 2), eq("c", 3))))))
        assert [p.field for p in iter_predicates(tree)] == ["a", "b", "c"]


class TestBuilder:
    def test_and_of_two_predicates(self):
        result = VectorFilterBuilder.create().equal("a", 1).equal("b", 2).and_()

        assert isinstance(result, FilterAnd)
        assert result.filters == (eq("a", 1), eq("b", 2))

    def test_single_predicate_is_not_wrapped(self):
        assert VectorFilterBuilder.create().equal("a", 1).and_() == eq("a", 1)
        assert VectorFilterBuilder.create().equal("a", 1).or_() == eq("a", 1)

    @pytest.mark.parametrize("terminal", ["and_", "or_", "not_", "build"])
    def test_empty_builder_raises(self, terminal):
        with pytest.raises(ValueError, match="No filters added"):
            getattr(VectorFilterBuilder.create(), terminal)()

    def test_operators(self):
        result = (
            VectorFilterBuilder.create()
            .not_equal("a", 1)
            .greater_than("b", 2)
            .greater_than_or_equal("c", 3)
            .less_than("d", 4)
            .less_than_or_equal("e", 5)
            .contains("f", "x")
            .build()
        )
        assert [p.operator for p in result.filters] == [
            FilterOperator.NE,
            FilterOperator.GT,
            FilterOperator.GTE,
            FilterOperator.LT,
            FilterOperator.LTE,
            FilterOperator.CONTAINS,
        ]

    def test_range_is_one_atomic_child(self):
        builder = VectorFilterBuilder.create().range("year", 2000, 2010)
        assert len(builder) == 1

        result = builder.equal("lang", "en").or_()

        assert isinstance(result, FilterOr)
        bounds, other = result.filters
        assert bounds == FilterAnd((
            FilterPredicate("year", FilterOperator.GTE, 2000),
            FilterPredicate("year", FilterOperator.LTE, 2010),
        ))
        assert other == eq("lang", "en")

    def test_date_and_numeric_range(self):
        start, end = datetime(2024, 1, 1), datetime(2024, 12, 31)
        dates = VectorFilterBuilder.create().date_range("created", start, end).build()
        assert [p.value for p in dates.filters] == [start, end]

        numbers = VectorFilterBuilder.create().numeric_range("score", 1, 2).build()
        assert [p.value for p in numbers.filters] == [1.0, 2.0]
        assert all(isinstance(p.value, float) for p in numbers.filters)

    def test_nested_groups(self):
        result = (
            VectorFilterBuilder.create()
            .equal("tenant_id", "acme")
            .or_group(lambda b: b.equal("status", "active").equal("status", "pending"))
            .build()
        )
        assert result == FilterAnd((
            eq("tenant_id", "acme"),
            FilterOr((eq("status", "active"), eq("status", "pending"))),
        ))

    def test_and_group_inside_or(self):
        result = (
            VectorFilterBuilder.create()
            .and_group(lambda b: b.equal("a", 1).equal("b", 2))
            .equal("c", 3)
            .or_()
        )
        assert result == FilterOr((FilterAnd((eq("a", 1), eq("b", 2))), eq("c", 3)))

    def test_not_negates_the_conjunction(self):
        result = VectorFilterBuilder.create().equal("a", 1).equal("b", 2).not_()
        assert result == FilterNot(FilterAnd((eq("a", 1), eq("b", 2))))

    def test_add_prebuilt_filter(self):
        prebuilt = FilterNot(eq("x", 1))
        assert VectorFilterBuilder.create().add(prebuilt).build() is prebuilt


class TestNegate:
    def test_predicate_complements(self):
        pairs = {
            FilterOperator.EQ: FilterOperator.NE,
            FilterOperator.NE: FilterOperator.EQ,
            FilterOperator.GT: FilterOperator.LTE,
            FilterOperator.GTE: FilterOperator.LT,
            FilterOperator.LT: FilterOperator.GTE,
            FilterOperator.LTE: FilterOperator.GT,
        }
        for op, complement in pairs.items():
            assert negate(FilterPredicate("a", op, 1), "test").operator is complement

    def test_de_morgan(self):
        tree = FilterAnd((eq("a", 1), FilterOr((eq("b", 2), eq("c", 3)))))
        assert negate(tree, "test") == FilterOr((
            FilterPredicate("a", FilterOperator.NE, 1),
            FilterAnd((
                FilterPredicate("b", FilterOperator.NE, 2),
                FilterPredicate("c", FilterOperator.NE, 3),
            )),
        ))

    def test_double_negation(self):
        assert negate(FilterNot(eq("a", 1)), "test") == eq("a", 1)

    def test_contains_cannot_be_negated(self):
        with pytest.raises(UnsupportedFilterOperatorError) as excinfo:
            negate(FilterPredicate("a", FilterOperator.CONTAINS, "x"), "pinecone")
        assert excinfo.value.backend == "pinecone"
        assert excinfo.value.operator is FilterOperator.CONTAINS
