from __future__ import annotations

from typing import Any, Dict, List

import pytest

from query_builder.errors import ConfigError, UndefinedFilterError, UndefinedOperatorError
from query_builder.registry.filter_registry import FilterOperatorRegistry
from query_builder.registry.operator_catalog import default_operator_catalog


def _types(operators) -> List[str]:
    return [op.type for op in operators]


class TestCheckFilters:
    """Filter list checks and defaulting."""

    def test_defaults_are_applied(self, sample_filters: List[Dict[str, Any]]) -> None:
        registry = FilterOperatorRegistry(sample_filters)
        age = registry.get_filter_by_id("age")
        assert age.field == "age"
        assert age.input == "number"
        assert registry.get_filter_by_id("name").input == "text"

        bare = FilterOperatorRegistry([{"id": "x"}]).get_filter_by_id("x")
        assert bare.type == "string"
        assert bare.label == "x"

    def test_missing_list(self) -> None:
        with pytest.raises(ConfigError, match="Missing filters list"):
            FilterOperatorRegistry([])
        with pytest.raises(ConfigError):
            FilterOperatorRegistry(None)

    @pytest.mark.parametrize(
        "filters",
        [
            [{"id": "a"}, {"id": "a"}],
            [{"label": "no id"}],
            [{"id": "a", "type": "money"}],
            [{"id": "a", "input": "slider"}],
            [{"id": "a", "operators": ["equal", 3]}],
        ],
    )
    def test_invalid_filters(self, filters: List[Dict[str, Any]]) -> None:
        with pytest.raises(ConfigError):
            FilterOperatorRegistry(filters)

    def test_callable_input_is_accepted(self) -> None:
        registry = FilterOperatorRegistry([{"id": "a", "input": lambda rule: None}])
        assert registry.get_filter_by_id("a").input_name == "input"

    def test_sort_filters_by_label(self) -> None:
        registry = FilterOperatorRegistry(
            [
                {"id": "b", "label": "beta"},
                {"id": "a", "label": {"en": "Alpha", "fr": "Zeta"}},
                {"id": "c", "label": "Gamma"},
            ],
            sort_filters=True,
        )
        assert [f.id for f in registry.filters] == ["a", "b", "c"]

    def test_optgroups_recorded(self) -> None:
        registry = FilterOperatorRegistry(
            [{"id": "a", "optgroup": "core"}, {"id": "b"}]
        )
        assert registry.has_optgroup
        assert registry.optgroups == {"core": "core"}


class TestCheckOperators:
    """Operator list resolution against the catalog."""

    def test_defaults_to_full_catalog(self) -> None:
        registry = FilterOperatorRegistry([{"id": "a"}])
        assert _types(registry.operators) == default_operator_catalog().types()

    def test_string_entries_are_copies(self) -> None:
        registry = FilterOperatorRegistry([{"id": "a"}], ["equal"])
        catalog_equal = default_operator_catalog().get("equal")
        assert registry.operators[0] == catalog_equal
        assert registry.operators[0] is not catalog_equal

    def test_inline_entry_merges_over_catalog(self) -> None:
        registry = FilterOperatorRegistry(
            [{"id": "a"}], [{"type": "equal", "multiple": True}]
        )
        equal = registry.get_operator_by_type("equal")
        assert equal.multiple is True
        assert equal.nb_inputs == 1

    def test_custom_operator(self) -> None:
        registry = FilterOperatorRegistry(
            [{"id": "a"}],
            ["equal", {"type": "matches", "nb_inputs": 1, "apply_to": ["string"]}],
        )
        assert _types(registry.get_operators("a")) == ["equal", "matches"]

    def test_arity_is_accepted_for_nb_inputs(self) -> None:
        registry = FilterOperatorRegistry(
            [{"id": "a", "type": "integer"}],
            [
                {"type": "within", "arity": 2, "apply_to": ["number"]},
                {"type": "between", "arity": 3},
            ],
        )
        within = registry.get_operator_by_type("within")
        assert within.nb_inputs == 2
        assert within.arity == 2
        assert registry.get_operator_by_type("between").arity == 3

    @pytest.mark.parametrize(
        "operators",
        [
            ["unknown"],
            [{"nb_inputs": 1, "apply_to": ["string"]}],
            [{"type": "matches", "apply_to": ["string"]}],
            [{"type": "matches", "nb_inputs": 1}],
            ["equal", "equal"],
            [{"type": "matches", "nb_inputs": 1, "apply_to": ["colour"]}],
        ],
    )
    def test_invalid_operators(self, operators: List[Any]) -> None:
        with pytest.raises(ConfigError):
            FilterOperatorRegistry([{"id": "a"}], operators)

    def test_optgroup_sorting_gathers_members(self) -> None:
        registry = FilterOperatorRegistry(
            [{"id": "a"}],
            [
                {"type": "x1", "nb_inputs": 1, "apply_to": ["string"], "optgroup": "x"},
                "equal",
                {"type": "y1", "nb_inputs": 1, "apply_to": ["string"], "optgroup": "y"},
                {"type": "x2", "nb_inputs": 1, "apply_to": ["string"], "optgroup": "x"},
            ],
        )
        assert _types(registry.operators) == ["x1", "x2", "equal", "y1"]

    def test_isolated_catalog(self, catalog) -> None:
        catalog.register({"type": "near", "nb_inputs": 2, "apply_to": ["number"]})
        registry = FilterOperatorRegistry(
            [{"id": "n", "type": "double"}], catalog=catalog
        )
        assert "near" in _types(registry.get_operators("n"))
        assert "near" not in default_operator_catalog()


class TestLookups:
    """get_operators / get_filter_by_id / get_operator_by_type."""

    def test_allow_list_order_wins(self, sample_filters) -> None:
        registry = FilterOperatorRegistry(sample_filters)
        assert _types(registry.get_operators("category")) == ["not_equal", "equal"]

    def test_type_kind_match_keeps_catalog_order(self, sample_filters) -> None:
        registry = FilterOperatorRegistry(sample_filters)
        number_ops = _types(registry.get_operators("age"))
        assert "between" in number_ops
        assert "begins_with" not in number_ops
        assert number_ops.index("equal") < number_ops.index("between")

        string_ops = _types(registry.get_operators("name"))
        assert "begins_with" in string_ops
        assert "less" not in string_ops

        boolean_ops = _types(registry.get_operators("active"))
        assert boolean_ops == ["equal", "not_equal", "is_null", "is_not_null"]

    def test_no_selection_sentinel(self, sample_filters) -> None:
        registry = FilterOperatorRegistry(sample_filters)
        assert registry.get_filter_by_id("-1") is None
        assert registry.get_operator_by_type("-1") is None
        assert registry.get_operators(None) == []

    def test_do_throw(self, sample_filters) -> None:
        registry = FilterOperatorRegistry(sample_filters)
        with pytest.raises(UndefinedFilterError):
            registry.get_filter_by_id("nope")
        with pytest.raises(LookupError):
            registry.get_operator_by_type("nope")
        with pytest.raises(UndefinedOperatorError):
            registry.get_operator_by_type("nope")
        assert registry.get_filter_by_id("nope", do_throw=False) is None
        assert registry.get_operator_by_type("nope", do_throw=False) is None
