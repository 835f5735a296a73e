from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from query_builder.config import MODIFIABLE_OPTIONS, BuilderSettings, merge_settings
from query_builder.errors import ConfigError, QueryBuilderError
from query_builder.flags import FlagResolver
from query_builder.model.model import Model
from query_builder.model.node import Group, Node, NodeKind, Rule
from query_builder.model.notifier import BuilderEvent, Listener, Notifier
from query_builder.model.traversal import each_child, walk
from query_builder.plugins import PluginRegistry, PluginsConfig, init_plugins
from query_builder.plugins import plugin_registry as default_plugin_registry
from query_builder.registry.descriptors import Filter, Operator
from query_builder.registry.filter_registry import FilterOperatorRegistry
from query_builder.registry.operator_catalog import OperatorCatalog
from query_builder.serialization.exporter import FlagsMode, RulesExporter, is_blank_rule
from query_builder.serialization.importer import RulesImporter, RulesInput
from query_builder.validation.value_validator import ValueValidator

logger = logging.getLogger(__name__)

UpdateHandler = Callable[[Node, Any, Any], None]


class QueryBuilder:
    """
    Controller tying one Model to a filter/operator registry.

    Structural operations publish cancellable ``before_*`` events and
    ``after_*`` notifications on `events`; listeners receive a BuilderEvent.
    Changer events (``get_operators``, ``validate_value``, ``rule_to_json``...)
    hand listeners a value they may replace through ``event.value``.
    """

    def __init__(
        self,
        filters: Iterable[Union[Filter, Mapping[str, Any]]],
        operators: Optional[Iterable[Any]] = None,
        *,
        settings: Union[BuilderSettings, Mapping[str, Any], None] = None,
        rules: Optional[RulesInput] = None,
        plugins: PluginsConfig = None,
        builder_id: Optional[str] = None,
        catalog: Optional[OperatorCatalog] = None,
        plugin_registry: Optional[PluginRegistry] = None,
    ) -> None:
        if isinstance(settings, BuilderSettings):
            self.settings = settings.model_copy(deep=True)
        else:
            self.settings = merge_settings(BuilderSettings(), dict(settings or {}))

        self.events = Notifier()
        self.registry = FilterOperatorRegistry(
            filters,
            operators,
            catalog=catalog,
            sort_filters=self.settings.sort_filters,
            lang_code=self.settings.lang_code,
        )
        self.settings.optgroups = {**self.registry.optgroups, **self.settings.optgroups}
        self.flag_resolver = FlagResolver(
            self.settings.default_rule_flags, self.settings.default_group_flags
        )
        self.validator = ValueValidator()
        self.exporter = RulesExporter(self)
        self.importer = RulesImporter(self)

        self.model = Model(builder_id)
        self._update_handlers: Dict[Tuple[NodeKind, str], UpdateHandler] = {
            (NodeKind.RULE, "filter"): self._update_rule_filter,
            (NodeKind.RULE, "operator"): self._update_rule_operator,
            (NodeKind.RULE, "value"): self._update_rule_value,
            (NodeKind.RULE, "flags"): self._apply_rule_flags,
            (NodeKind.GROUP, "condition"): self._update_group_condition,
            (NodeKind.GROUP, "flags"): self._apply_group_flags,
        }
        self.model.events.on("update", self._on_update)

        self._plugin_registry = (
            plugin_registry if plugin_registry is not None else default_plugin_registry
        )
        self.plugins: Dict[str, Dict[str, Any]] = {}
        self.plugins = init_plugins(self, plugins, self._plugin_registry)

        self.trigger("after_init")
        if rules:
            self.set_rules(rules)
        else:
            self.set_root(True)
        logger.debug("QueryBuilder %s initialised", self.id)

    @property
    def id(self) -> str:
        return self.model.id

    @property
    def filters(self):
        return self.registry.filters

    @property
    def operators(self):
        return self.registry.operators

    # events

    def on(self, event: str, listener: Listener) -> Listener:
        return self.events.on(event, listener)

    def off(self, event: str, listener: Optional[Listener] = None) -> None:
        self.events.off(event, listener)

    def once(self, event: str, listener: Listener) -> Listener:
        return self.events.once(event, listener)

    def trigger(self, name: str, /, **detail: Any) -> BuilderEvent:
        event = BuilderEvent(name, builder=self, detail=detail)
        self.events.emit(name, event)
        return event

    def change(self, name: str, value: Any, /, **detail: Any) -> Any:
        """Let listeners of `name` replace `value`; returns the final value."""
        event = BuilderEvent(name, builder=self, detail=detail, value=value)
        self.events.emit(name, event)
        return event.value

    # registry passthrough

    def get_filter_by_id(self, filter_id: str, do_throw: bool = True) -> Optional[Filter]:
        return self.registry.get_filter_by_id(filter_id, do_throw)

    def get_operator_by_type(
        self, operator_type: str, do_throw: bool = True
    ) -> Optional[Operator]:
        return self.registry.get_operator_by_type(operator_type, do_throw)

    def get_operators(self, filter_or_id: Union[Filter, str, None]):
        if isinstance(filter_or_id, str):
            filter_or_id = self.get_filter_by_id(filter_or_id)
        operators = self.registry.get_operators(filter_or_id)
        return self.change("get_operators", operators, filter=filter_or_id)

    # flags

    def parse_rule_flags(self, raw: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        flags = self.flag_resolver.parse_rule_flags(raw)
        return self.change("parse_rule_flags", flags, rule=raw)

    def parse_group_flags(self, raw: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        flags = self.flag_resolver.parse_group_flags(raw)
        return self.change("parse_group_flags", flags, group=raw)

    def get_rule_flags(self, flags: Mapping[str, Any], all_flags: bool = False):
        return self.flag_resolver.get_rule_flags(flags, all_flags)

    def get_group_flags(self, flags: Mapping[str, Any], all_flags: bool = False):
        return self.flag_resolver.get_group_flags(flags, all_flags)

    # options & plugins

    def set_options(self, **options: Any) -> None:
        for key, value in options.items():
            if key not in MODIFIABLE_OPTIONS:
                logger.debug("Option %s cannot be changed on a live builder", key)
                continue
            try:
                setattr(self.settings, key, value)
            except ValidationError as exc:
                raise ConfigError(f"Invalid value for option {key}: {exc}") from exc

    def get_plugin_options(self, name: str, prop: Optional[str] = None) -> Any:
        options = self.plugins.get(name)
        if options is None:
            definition = self._plugin_registry.get(name)
            options = definition.defaults if definition is not None else None
        if options is None:
            raise ConfigError(f'Unable to find plugin "{name}"')
        return options.get(prop) if prop is not None else options

    def get_model(self, target: Union[Node, str, None] = None) -> Optional[Node]:
        if target is None:
            return self.model.root
        if isinstance(target, Node):
            return target
        return self.model.get_node(target)

    # structure

    def set_root(
        self,
        add_rule: bool = True,
        data: Any = None,
        flags: Optional[Mapping[str, bool]] = None,
        readonly: bool = False,
    ) -> Group:
        root = self.model.create_root()
        root.data = data
        root.flags = self.parse_group_flags({"flags": flags, "readonly": readonly})
        root.condition = self.settings.default_condition
        self.trigger("after_add_group", group=root)
        if add_rule:
            self.add_rule(root)
        return root

    def add_group(
        self,
        parent: Group,
        add_rule: bool = True,
        data: Any = None,
        flags: Optional[Mapping[str, bool]] = None,
        readonly: bool = False,
    ) -> Optional[Group]:
        level = parent.level + 1
        allow_groups = self.settings.allow_groups
        if allow_groups != -1 and allow_groups < parent.level:
            logger.info(
                "Group %s cannot hold sub-groups (allow_groups=%s)", parent.id, allow_groups
            )
            return None

        event = self.trigger(
            "before_add_group", parent=parent, add_rule=add_rule, level=level
        )
        if event.is_default_prevented:
            logger.debug("Adding a group to %s was cancelled", parent.id)
            return None

        group = parent.add_group(self.model.next_group_id())
        group.data = data
        group.flags = self.parse_group_flags({"flags": flags, "readonly": readonly})
        group.condition = self.settings.default_condition

        self.trigger("after_add_group", group=group)
        self.trigger("rules_changed")
        if add_rule:
            self.add_rule(group)
        return group

    def add_rule(
        self,
        parent: Group,
        data: Any = None,
        flags: Optional[Mapping[str, bool]] = None,
        readonly: bool = False,
    ) -> Optional[Rule]:
        event = self.trigger("before_add_rule", parent=parent)
        if event.is_default_prevented:
            logger.debug("Adding a rule to %s was cancelled", parent.id)
            return None

        rule = parent.add_rule(self.model.next_rule_id())
        rule.data = data
        rule.flags = self.parse_rule_flags({"flags": flags, "readonly": readonly})

        self.trigger("after_add_rule", rule=rule)
        self.trigger("rules_changed")

        settings = self.settings
        if settings.default_filter or not settings.display_empty_filter:
            filter_id = settings.default_filter or self.filters[0].id
            rule.filter = self.change(
                "get_default_filter", self.get_filter_by_id(filter_id), rule=rule
            )
        return rule

    def delete_rule(self, rule: Rule) -> bool:
        if rule.flags.get("no_delete"):
            logger.info("Rule %s is flagged no_delete", rule.id)
            return False
        event = self.trigger("before_delete_rule", rule=rule)
        if event.is_default_prevented:
            return False

        rule.drop()
        self.trigger("after_delete_rule", rule=rule)
        self.trigger("rules_changed")
        return True

    def delete_group(self, group: Group) -> bool:
        """
        Delete a group and its content. Children flagged ``no_delete`` are
        kept, and so is every group on their path.
        """
        if group.is_root():
            return False
        if group.flags.get("no_delete"):
            logger.info("Group %s is flagged no_delete", group.id)
            return False
        event = self.trigger("before_delete_group", group=group)
        if event.is_default_prevented:
            return False

        results = []
        each_child(
            group,
            lambda rule: results.append(self.delete_rule(rule)),
            lambda sub: results.append(self.delete_group(sub)),
            reverse=True,
        )
        deleted = all(results)

        if deleted:
            group.drop()
            self.trigger("after_delete_group", group=group)
            self.trigger("rules_changed")
        return deleted

    def reset(self) -> bool:
        event = self.trigger("before_reset")
        if event.is_default_prevented:
            return False

        root = self.model.root
        if root is None:
            self.set_root(False)
            root = self.model.root
        root.empty()
        root.data = None
        root.flags = dict(self.settings.default_group_flags)
        root.condition = self.settings.default_condition
        self.add_rule(root)

        self.trigger("after_reset")
        self.trigger("rules_changed")
        return True

    def clear(self) -> bool:
        event = self.trigger("before_clear")
        if event.is_default_prevented:
            return False

        self.model.clear_root()

        self.trigger("after_clear")
        self.trigger("rules_changed")
        return True

    def destroy(self) -> None:
        self.trigger("before_destroy")
        self.clear()
        self.model.destroy()
        self.events.clear()

    # update handler

    def _on_update(self, node: Node, field: str, value: Any, previous: Any) -> None:
        handler = self._update_handlers.get((node.kind, field))
        if handler is not None:
            handler(node, value, previous)

    def _empty_value(self, rule: Rule) -> Any:
        operator = rule.operator
        if operator is None or operator.arity == 0:
            return None
        if rule.filter is not None and rule.filter.default_value is not None:
            return rule.filter.default_value
        if operator.arity == 1:
            return None
        return [None] * operator.arity

    def _update_rule_filter(
        self, rule: Rule, value: Optional[Filter], previous: Optional[Filter]
    ) -> None:
        operator = None
        if value is not None:
            operators = self.get_operators(value)
            if value.default_operator:
                operator = self.get_operator_by_type(
                    value.default_operator, do_throw=False
                )
            if operator is None and operators:
                operator = operators[0]
        rule.assign("operator", operator, notify=False)
        rule.assign("value", self._empty_value(rule), notify=False)

        if previous is not None and value is not None and previous.id != value.id:
            rule.data = None

        self.trigger("after_update_rule_filter", rule=rule, previous_filter=previous)
        self.trigger("rules_changed")

    def _update_rule_operator(
        self, rule: Rule, value: Optional[Operator], previous: Optional[Operator]
    ) -> None:
        if value is None or value.arity == 0:
            rule.assign("value", None, notify=False)
        elif (
            previous is None
            or value.arity != previous.arity
            or value.optgroup != previous.optgroup
        ):
            rule.assign("value", self._empty_value(rule), notify=False)

        self.trigger("after_update_rule_operator", rule=rule, previous_operator=previous)
        self.trigger("rules_changed")

    def _update_rule_value(self, rule: Rule, value: Any, previous: Any) -> None:
        self.trigger("after_update_rule_value", rule=rule, previous_value=previous)
        self.trigger("rules_changed")

    def _update_group_condition(self, group: Group, value: Any, previous: Any) -> None:
        self.trigger(
            "after_update_group_condition", group=group, previous_condition=previous
        )
        self.trigger("rules_changed")

    def _apply_rule_flags(self, rule: Rule, value: Any, previous: Any) -> None:
        self.trigger("after_apply_rule_flags", rule=rule)

    def _apply_group_flags(self, group: Group, value: Any, previous: Any) -> None:
        self.trigger("after_apply_group_flags", group=group)

    # validation

    def validate_value(self, rule: Rule, value: Any):
        result = self.validator.validate_value(rule, value)
        return self.change("validate_value", result, rule=rule, value=value)

    def clear_errors(self, node: Optional[Node] = None) -> None:
        node = node if node is not None else self.model.root
        if node is None:
            return

        def _clear(current: Node) -> None:
            if current.error is not None:
                current.error = None

        walk(node, _clear, _clear)

    def trigger_validation_error(self, node: Node, error: Any, value: Any = None) -> None:
        if not isinstance(error, tuple):
            error = tuple(error) if isinstance(error, list) else (error,)
        event = self.trigger("validation_error", node=node, error=error, value=value)
        if not event.is_default_prevented:
            node.error = error

    def validate(self, skip_empty: bool = False) -> bool:
        """
        Check every rule and group; failing nodes get their `error` set.
        With `skip_empty`, blank rules and groups left without content are
        ignored instead of reported.
        """
        self.clear_errors()
        root = self.model.root
        if root is None:
            return self.change("validate", False)
        valid = self._validate_group(root, skip_empty) is not False
        return self.change("validate", valid)

    def _validate_group(self, group: Group, skip_empty: bool) -> Optional[bool]:
        done = 0
        errors = 0
        for child in group.rules:
            if child.kind is NodeKind.GROUP:
                result = self._validate_group(child, skip_empty)
                if result is True:
                    done += 1
                elif result is False:
                    errors += 1
                continue

            if skip_empty and is_blank_rule(child):
                continue
            if child.filter is None:
                self.trigger_validation_error(child, "no_filter")
                errors += 1
                continue
            if child.operator is None:
                self.trigger_validation_error(child, "no_operator")
                errors += 1
                continue
            if child.operator.arity != 0:
                result = self.validate_value(child, child.value)
                if result is not True:
                    self.trigger_validation_error(child, result, child.value)
                    errors += 1
                    continue
            done += 1

        if errors:
            return False
        if done == 0 and not group.is_root() and skip_empty:
            return None
        if done == 0 and (not self.settings.allow_empty or not group.is_root()):
            self.trigger_validation_error(group, "empty_group")
            return False
        return True

    # serialization

    def get_rules(
        self,
        get_flags: FlagsMode = False,
        allow_invalid: bool = False,
        skip_empty: bool = False,
    ) -> Optional[Dict[str, Any]]:
        return self.exporter.export(
            get_flags=get_flags, allow_invalid=allow_invalid, skip_empty=skip_empty
        )

    def set_rules(self, data: RulesInput, allow_invalid: bool = False) -> None:
        try:
            self.importer.import_rules(data, allow_invalid=allow_invalid)
        except QueryBuilderError:
            logger.error("Could not import rules into builder %s", self.id)
            raise

    def __repr__(self) -> str:
        return f"QueryBuilder(id={self.id!r}, filters={len(self.filters)})"
