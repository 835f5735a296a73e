from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from query_builder.errors import BuilderLookupError, ConfigError, RulesParseError
from query_builder.model.node import Group, Rule
from query_builder.serialization.schemas import GroupData, RuleData

if TYPE_CHECKING:
    from query_builder.builder import QueryBuilder

_LOG = logging.getLogger(__name__)

RulesInput = Union[GroupData, Mapping[str, Any], Sequence[Any]]


class RulesImporter:
    """
    Rebuilds the tree of a builder from the plain-data interchange form.

    In strict mode every filter id, operator type, condition and group depth
    is resolved before the current tree is touched, so a failing import
    leaves the builder as it was.
    """

    def __init__(self, builder: "QueryBuilder") -> None:
        self.builder = builder

    def parse(self, data: RulesInput) -> GroupData:
        if isinstance(data, GroupData):
            return data
        settings = self.builder.settings
        if isinstance(data, (list, tuple)):
            data = {"condition": settings.default_condition, "rules": list(data)}
        if not isinstance(data, Mapping) or "rules" not in data:
            raise RulesParseError("Incorrect data object passed")
        try:
            return GroupData.model_validate(dict(data))
        except ValidationError as exc:
            raise RulesParseError(f"Invalid rules data: {exc}") from exc

    def import_rules(self, data: RulesInput, allow_invalid: bool = False) -> None:
        builder = self.builder
        parsed = self.parse(data)
        if not parsed.rules and not builder.settings.allow_empty:
            raise RulesParseError("Incorrect data object passed")

        if not allow_invalid:
            try:
                self._check_group(parsed, level=1)
            except BuilderLookupError as exc:
                raise ConfigError(str(exc)) from exc

        parsed = builder.change("set_rules", parsed, allow_invalid=allow_invalid)

        builder.clear()
        root = builder.set_root(
            False, data=parsed.data, flags=parsed.flags, readonly=parsed.readonly
        )
        self._add_group(parsed, root, allow_invalid)
        builder.trigger("after_set_rules")

    def _check_group(self, data: GroupData, level: int) -> None:
        builder = self.builder
        settings = builder.settings
        if data.condition is not None and data.condition not in settings.conditions:
            raise ConfigError(f'Invalid condition "{data.condition}"')
        for item in data.rules:
            if isinstance(item, GroupData):
                if settings.allow_groups != -1 and settings.allow_groups < level:
                    raise RulesParseError(
                        f"No more than {settings.allow_groups} groups are allowed"
                    )
                self._check_group(item, level + 1)
                continue
            if item.empty:
                continue
            if item.id is None:
                raise RulesParseError("Missing rule field id")
            builder.get_filter_by_id(item.id)
            builder.get_operator_by_type(item.operator or "equal")

    def _condition_for(self, data: GroupData) -> str:
        settings = self.builder.settings
        if data.condition is None:
            return settings.default_condition
        if data.condition not in settings.conditions:
            _LOG.warning(
                "Unknown condition %r, using %r", data.condition, settings.default_condition
            )
            return settings.default_condition
        return data.condition

    def _add_group(self, data: GroupData, group: Group, allow_invalid: bool) -> None:
        builder = self.builder
        settings = builder.settings
        group.condition = self._condition_for(data)

        for item in data.rules:
            if isinstance(item, GroupData):
                if settings.allow_groups != -1 and settings.allow_groups < group.level:
                    _LOG.warning(
                        "Skipping group beyond allow_groups=%s", settings.allow_groups
                    )
                    continue
                sub = builder.add_group(
                    group, False, data=item.data, flags=item.flags, readonly=item.readonly
                )
                if sub is None:
                    continue
                self._add_group(item, sub, allow_invalid)
            else:
                self._add_rule(item, group, allow_invalid)

        if builder.change("json_to_group", group, data=data) is not group:
            raise RulesParseError("Plugin tried to change group reference")

    def _add_rule(self, item: RuleData, group: Group, allow_invalid: bool) -> None:
        builder = self.builder
        rule: Optional[Rule] = builder.add_rule(
            group, data=item.data, flags=item.flags, readonly=item.readonly
        )
        if rule is None:
            return

        if not item.empty and item.id is not None:
            rule.filter = builder.get_filter_by_id(item.id, do_throw=not allow_invalid)
        elif not item.empty:
            _LOG.warning("Rule without filter id imported as empty rule")

        if rule.filter is not None:
            operator = builder.get_operator_by_type(
                item.operator or "equal", do_throw=not allow_invalid
            )
            if operator is None:
                operators: List[Any] = builder.get_operators(rule.filter)
                operator = operators[0] if operators else None
            rule.operator = operator

        if rule.operator is not None and rule.operator.arity != 0:
            if item.has_value():
                rule.value = item.value
            elif rule.filter.default_value is not None:
                rule.value = rule.filter.default_value

        # a filter change clears data, so it is applied last
        rule.data = item.data

        if builder.change("json_to_rule", rule, data=item) is not rule:
            raise RulesParseError("Plugin tried to change rule reference")
