from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from query_builder.model.node import Group, NodeKind, Rule
from query_builder.utils.common_helpers import is_empty_value

if TYPE_CHECKING:
    from query_builder.builder import QueryBuilder

FlagsMode = Union[bool, str]


def is_blank_rule(rule: Rule) -> bool:
    """A rule without filter, or whose value slots are all empty."""
    if rule.filter is None:
        return True
    if rule.operator is None or rule.operator.arity == 0:
        return False
    value = rule.value
    if isinstance(value, (list, tuple)) and value:
        return all(is_empty_value(item) for item in value)
    return is_empty_value(value)


def _merge_data(filter_data: Any, rule_data: Any) -> Any:
    if isinstance(filter_data, dict) and isinstance(rule_data, dict):
        return {**copy.deepcopy(filter_data), **copy.deepcopy(rule_data)}
    if rule_data is not None:
        return copy.deepcopy(rule_data)
    return copy.deepcopy(filter_data)


class RulesExporter:
    """
    Serializes the tree of a builder into the plain-data interchange form.
    """

    def __init__(self, builder: "QueryBuilder") -> None:
        self.builder = builder

    def export(
        self,
        get_flags: FlagsMode = False,
        allow_invalid: bool = False,
        skip_empty: bool = False,
    ) -> Optional[Dict[str, Any]]:
        builder = self.builder
        root = builder.model.root
        if root is None:
            return None

        valid = builder.validate(skip_empty=skip_empty)
        if not valid and not allow_invalid:
            return None

        out = self._group_to_json(root, get_flags, skip_empty)
        out["valid"] = valid
        return builder.change("get_rules", out)

    def _group_to_json(
        self, group: Group, get_flags: FlagsMode, skip_empty: bool
    ) -> Dict[str, Any]:
        builder = self.builder
        group_data: Dict[str, Any] = {"condition": group.condition, "rules": []}
        if group.data is not None:
            group_data["data"] = copy.deepcopy(group.data)
        if get_flags:
            flags = builder.get_group_flags(group.flags, get_flags == "all")
            if flags:
                group_data["flags"] = flags

        for child in group.rules:
            if child.kind is NodeKind.GROUP:
                sub = self._group_to_json(child, get_flags, skip_empty)
                if sub["rules"] or not skip_empty:
                    group_data["rules"].append(sub)
                continue
            if skip_empty and is_blank_rule(child):
                continue
            group_data["rules"].append(self._rule_to_json(child, get_flags))

        return builder.change("group_to_json", group_data, group=group)

    def _rule_to_json(self, rule: Rule, get_flags: FlagsMode) -> Dict[str, Any]:
        builder = self.builder
        filter_ = rule.filter
        operator = rule.operator
        value = None
        if operator is None or operator.arity != 0:
            value = copy.deepcopy(rule.value)

        rule_data: Dict[str, Any] = {
            "id": filter_.id if filter_ is not None else None,
            "field": filter_.field if filter_ is not None else None,
            "type": filter_.type if filter_ is not None else None,
            "input": filter_.input_name if filter_ is not None else None,
            "operator": operator.type if operator is not None else None,
            "value": value,
        }

        filter_data = filter_.data if filter_ is not None else None
        if filter_data is not None or rule.data is not None:
            rule_data["data"] = _merge_data(filter_data, rule.data)

        if get_flags:
            flags = builder.get_rule_flags(rule.flags, get_flags == "all")
            if flags:
                rule_data["flags"] = flags

        return builder.change("rule_to_json", rule_data, rule=rule)
