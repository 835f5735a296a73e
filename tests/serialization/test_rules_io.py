from __future__ import annotations

from typing import Any, Dict

import pytest

from query_builder.builder import QueryBuilder
from query_builder.errors import ConfigError, RulesParseError
from query_builder.model.node import Group, Rule
from query_builder.model.notifier import BuilderEvent
from query_builder.serialization.schemas import GroupData, RuleData


def _strip_valid(rules: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in rules.items() if k != "valid"}


class TestExport:
    """get_rules output shape."""

    def test_export_shape(self, make_builder, sample_rules) -> None:
        qb = make_builder(rules=sample_rules)
        out = qb.get_rules()

        assert out["valid"] is True
        assert out["condition"] == "OR"
        assert out["rules"][0] == {
            "id": "age",
            "field": "age",
            "type": "integer",
            "input": "number",
            "operator": "between",
            "value": [18, 65],
        }
        nested = out["rules"][2]
        assert nested["condition"] == "AND"
        assert [r["id"] for r in nested["rules"]] == ["category", "active"]
        assert nested["rules"][0]["input"] == "select"
        assert "flags" not in nested

    def test_no_root(self, builder: QueryBuilder) -> None:
        builder.clear()
        assert builder.get_rules() is None

    def test_invalid_tree(self, builder: QueryBuilder) -> None:
        assert builder.get_rules() is None

        out = builder.get_rules(allow_invalid=True)
        assert out["valid"] is False
        assert out["rules"] == [
            {
                "id": None,
                "field": None,
                "type": None,
                "input": None,
                "operator": None,
                "value": None,
            }
        ]

    def test_no_input_operator_exports_null_value(self, builder: QueryBuilder) -> None:
        rule = builder.model.root.rules[0]
        rule.filter = builder.get_filter_by_id("name")
        rule.operator = builder.get_operator_by_type("is_empty")

        out = builder.get_rules()
        assert out["rules"][0]["operator"] == "is_empty"
        assert out["rules"][0]["value"] is None

    def test_skip_empty(self, builder: QueryBuilder) -> None:
        root = builder.model.root
        filled = builder.add_rule(root)
        filled.filter = builder.get_filter_by_id("name")
        filled.value = "Ann"
        builder.add_group(root)

        out = builder.get_rules(skip_empty=True)
        assert out["valid"] is True
        assert [r["id"] for r in out["rules"]] == ["name"]

    def test_flags(self, make_builder) -> None:
        qb = make_builder(
            rules={
                "condition": "AND",
                "readonly": True,
                "rules": [
                    {
                        "id": "name",
                        "operator": "equal",
                        "value": "x",
                        "flags": {"no_delete": True},
                    }
                ],
            }
        )
        plain = qb.get_rules()
        assert "flags" not in plain
        assert "flags" not in plain["rules"][0]

        diff = qb.get_rules(get_flags=True)
        assert diff["flags"] == {
            "condition_readonly": True,
            "no_add_rule": True,
            "no_add_group": True,
            "no_delete": True,
        }
        assert diff["rules"][0]["flags"] == {"no_delete": True}

        full = qb.get_rules(get_flags="all")
        assert full["rules"][0]["flags"] == {
            "filter_readonly": False,
            "operator_readonly": False,
            "value_readonly": False,
            "no_delete": True,
        }

    def test_data_is_copied_and_merged(self, sample_filters) -> None:
        sample_filters[0]["data"] = {"source": "filter", "unit": "chars"}
        qb = QueryBuilder(sample_filters)
        rule = qb.model.root.rules[0]
        rule.filter = qb.get_filter_by_id("name")
        rule.value = "x"
        rule.data = {"source": "rule", "tags": ["a"]}

        out = qb.get_rules()
        exported = out["rules"][0]["data"]
        assert exported == {"source": "rule", "unit": "chars", "tags": ["a"]}

        exported["tags"].append("b")
        assert rule.data == {"source": "rule", "tags": ["a"]}

    def test_changers(self, make_builder, sample_rules) -> None:
        qb = make_builder(rules=sample_rules)

        def _tag_rule(event: BuilderEvent) -> None:
            event.value["seen"] = True

        def _wrap(event: BuilderEvent) -> None:
            event.value = {"query": event.value}

        qb.on("rule_to_json", _tag_rule)
        qb.on("get_rules", _wrap)
        out = qb.get_rules()

        assert out["query"]["rules"][0]["seen"] is True
        assert out["query"]["rules"][2]["rules"][1]["seen"] is True


class TestImport:
    """set_rules behaviour."""

    def test_round_trip(self, make_builder, sample_rules) -> None:
        first = make_builder(rules=sample_rules).get_rules()
        second = make_builder(rules=first).get_rules()
        assert second == first

    @pytest.mark.parametrize(
        "settings",
        [{}, {"default_filter": "name"}, {"display_empty_filter": False}],
    )
    def test_round_trip_keeps_data_and_flags(self, make_builder, settings) -> None:
        rules = {
            "condition": "OR",
            "data": {"saved": "v1"},
            "flags": {"no_add_group": True},
            "rules": [
                {"id": "age", "operator": "between", "value": [18, 65], "data": {"k": 1}},
                {
                    "id": "name",
                    "operator": "begins_with",
                    "value": "Jo",
                    "flags": {"no_delete": True, "value_readonly": True},
                },
                {
                    "condition": "AND",
                    "data": {"nested": [1, 2]},
                    "readonly": True,
                    "rules": [
                        {
                            "id": "category",
                            "operator": "equal",
                            "value": "books",
                            "data": {"source": "ui"},
                        },
                        {"id": "active", "operator": "is_null"},
                    ],
                },
            ],
        }

        first = make_builder(settings=settings, rules=rules).get_rules(get_flags=True)
        second = make_builder(settings=settings, rules=first).get_rules(get_flags=True)

        assert second == first
        assert first["data"] == {"saved": "v1"}
        assert first["flags"] == {"no_add_group": True}
        assert first["rules"][0]["data"] == {"k": 1}
        assert first["rules"][1]["flags"] == {"no_delete": True, "value_readonly": True}
        nested = first["rules"][2]
        assert nested["data"] == {"nested": [1, 2]}
        assert all(nested["flags"].values())
        assert nested["rules"][0]["data"] == {"source": "ui"}
        assert nested["rules"][1]["value"] is None

    def test_data_survives_default_filter(self, make_builder) -> None:
        qb = make_builder(settings={"default_filter": "name"})
        qb.set_rules(
            {
                "condition": "AND",
                "rules": [{"id": "age", "operator": "equal", "value": 30, "data": {"k": 1}}],
            }
        )

        rule = qb.model.root.rules[0]
        assert rule.filter.id == "age"
        assert rule.data == {"k": 1}
        assert qb.get_rules()["rules"][0]["data"] == {"k": 1}

    def test_tree_is_rebuilt(self, builder: QueryBuilder, sample_rules, recorder) -> None:
        recorder.watch(builder, "after_set_rules")
        builder.set_rules(sample_rules)

        root = builder.model.root
        assert root.condition == "OR"
        assert [type(n) for n in root.rules] == [Rule, Rule, Group]
        assert root.rules[0].value == [18, 65]
        assert root.rules[2].rules[0].filter.id == "category"
        assert recorder.names() == ["after_set_rules"]

    def test_bare_list_uses_default_condition(self, builder: QueryBuilder) -> None:
        builder.set_rules([{"id": "name", "operator": "equal", "value": "x"}])
        assert builder.model.root.condition == "AND"
        assert builder.model.root.rules[0].filter.id == "name"

    def test_missing_operator_defaults_to_equal(self, builder: QueryBuilder) -> None:
        builder.set_rules({"rules": [{"id": "age", "value": 3}]})
        rule = builder.model.root.rules[0]
        assert rule.operator.type == "equal"
        assert rule.value == 3

    def test_missing_value_uses_filter_default(self, sample_filters) -> None:
        sample_filters[0]["default_value"] = "n/a"
        qb = QueryBuilder(sample_filters)
        qb.set_rules({"rules": [{"id": "name", "operator": "equal"}]})
        assert qb.model.root.rules[0].value == "n/a"

    def test_empty_rule_entry(self, builder: QueryBuilder) -> None:
        builder.set_rules({"rules": [{"empty": True}]})
        rule = builder.model.root.rules[0]
        assert rule.filter is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"rules": [{"id": "unknown", "operator": "equal", "value": 1}]},
            {"rules": [{"id": "name", "operator": "nope", "value": 1}]},
            {"condition": "XOR", "rules": [{"id": "name", "value": "a"}]},
            {"rules": [{"operator": "equal", "value": "a"}]},
        ],
    )
    def test_strict_import_leaves_tree_untouched(
        self, builder: QueryBuilder, payload
    ) -> None:
        root = builder.model.root
        before = root.rules

        with pytest.raises(ConfigError):
            builder.set_rules(payload)

        assert builder.model.root is root
        assert root.rules == before

    def test_allow_invalid_fallbacks(self, builder: QueryBuilder) -> None:
        builder.set_rules(
            {
                "condition": "XOR",
                "rules": [
                    {"id": "unknown", "operator": "equal", "value": 1},
                    {"id": "category", "operator": "nope", "value": "books"},
                ],
            },
            allow_invalid=True,
        )
        root = builder.model.root
        assert root.condition == "AND"
        assert root.rules[0].filter is None
        assert root.rules[1].operator.type == "not_equal"
        assert root.rules[1].value == "books"

    def test_allow_groups(self, make_builder) -> None:
        qb = make_builder(settings={"allow_groups": 0})
        payload = {
            "rules": [
                {"id": "name", "value": "a"},
                {"rules": [{"id": "age", "value": 1}]},
            ]
        }
        with pytest.raises(ConfigError):
            qb.set_rules(payload)

        qb.set_rules(payload, allow_invalid=True)
        assert qb.model.root.length() == 1

    @pytest.mark.parametrize("payload", [{"condition": "AND"}, "rules", 42])
    def test_unparseable(self, builder: QueryBuilder, payload) -> None:
        with pytest.raises(RulesParseError):
            builder.set_rules(payload)

    def test_empty_rules(self, builder: QueryBuilder, make_builder) -> None:
        with pytest.raises(RulesParseError):
            builder.set_rules({"condition": "AND", "rules": []})

        permissive = make_builder(settings={"allow_empty": True})
        permissive.set_rules({"condition": "OR", "rules": []})
        assert permissive.model.root.length() == 0
        assert permissive.model.root.condition == "OR"

    def test_readonly_and_data(self, builder: QueryBuilder) -> None:
        builder.set_rules(
            {
                "data": {"origin": "saved"},
                "rules": [
                    {"id": "name", "value": "x", "readonly": True, "data": {"k": 1}},
                ],
            }
        )
        root = builder.model.root
        rule = root.rules[0]
        assert root.data == {"origin": "saved"}
        assert rule.data == {"k": 1}
        assert rule.flags["no_delete"] is True
        assert builder.delete_rule(rule) is False

    def test_rule_reference_swap_is_rejected(self, builder: QueryBuilder) -> None:
        def _swap(event: BuilderEvent) -> None:
            event.value = Rule("impostor")

        builder.on("json_to_rule", _swap)
        with pytest.raises(RulesParseError):
            builder.set_rules({"rules": [{"id": "name", "value": "x"}]})

    def test_set_rules_changer(self, builder: QueryBuilder) -> None:
        def _force_or(event: BuilderEvent) -> None:
            event.value = event.value.model_copy(update={"condition": "OR"})

        builder.on("set_rules", _force_or)
        builder.set_rules({"condition": "AND", "rules": [{"id": "name", "value": "x"}]})
        assert builder.model.root.condition == "OR"


class TestSchemas:
    """Interchange models."""

    def test_entries_are_discriminated(self, sample_rules) -> None:
        parsed = GroupData.model_validate(sample_rules)
        assert isinstance(parsed.rules[0], RuleData)
        assert isinstance(parsed.rules[2], GroupData)
        assert isinstance(parsed.rules[2].rules[0], RuleData)

    def test_explicit_null_value_is_kept(self) -> None:
        assert RuleData.model_validate({"id": "a", "value": None}).has_value()
        assert not RuleData.model_validate({"id": "a"}).has_value()
