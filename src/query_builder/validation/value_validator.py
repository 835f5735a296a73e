from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List

from query_builder.registry.types import CHOICE_INPUTS
from query_builder.utils.common_helpers import is_empty_value
from query_builder.validation.type_checkers import (
    CheckResult,
    check_by_type,
    to_datetime,
    to_number,
)

if TYPE_CHECKING:
    from query_builder.model.node import Rule

_LOG = logging.getLogger(__name__)

_RANGE_OPERATORS = ("between", "not_between")


class ValueValidator:
    """
    Checks a candidate value against the filter and operator of a rule.

    Returns ``True`` or an error tuple ``(code, *args)``; nothing is raised
    and the rule is never modified.
    """

    def validate_value(self, rule: "Rule", value: Any) -> CheckResult:
        filter_ = rule.filter
        if filter_ is None or rule.operator is None:
            return True
        callback = filter_.validation.callback
        if callback is not None:
            return callback(value, rule)
        return self._validate_builtin(rule, value)

    def _validate_builtin(self, rule: "Rule", value: Any) -> CheckResult:
        filter_ = rule.filter
        operator = rule.operator
        validation = filter_.validation
        slots = self._slots(value, operator.arity)

        for slot in slots:
            if (
                not operator.multiple
                and isinstance(slot, (list, tuple))
                and len(slot) > 1
            ):
                return ("operator_not_multiple", operator.type)

            if filter_.input in CHOICE_INPUTS:
                is_placeholder = (
                    filter_.placeholder is not None
                    and slot == filter_.placeholder_value
                )
                is_blank = is_empty_value(slot) or is_placeholder
                if is_blank and not validation.allow_empty_value:
                    return (f"{filter_.input_name}_empty",)
                continue

            scalars = slot if isinstance(slot, (list, tuple)) else [slot]
            if not scalars:
                scalars = [None]
            for scalar in scalars:
                if is_empty_value(scalar):
                    if not validation.allow_empty_value:
                        return (f"{filter_.input_name}_empty",)
                    continue
                result = check_by_type(filter_, scalar, validation)
                if result is not True:
                    return result

        if operator.type in _RANGE_OPERATORS and len(slots) == 2:
            return self._check_range(rule, slots[0], slots[1])
        return True

    @staticmethod
    def _slots(value: Any, arity: int) -> List[Any]:
        if arity == 0:
            return []
        if arity == 1:
            return [value]
        slots = list(value) if isinstance(value, (list, tuple)) else [value]
        return slots + [None] * (arity - len(slots))

    @staticmethod
    def _check_range(rule: "Rule", lower: Any, upper: Any) -> CheckResult:
        filter_ = rule.filter
        if is_empty_value(lower) or is_empty_value(upper):
            return True
        if filter_.kind == "number":
            low, high = to_number(lower), to_number(upper)
        elif filter_.kind == "datetime":
            fmt = filter_.validation.format
            low, high = to_datetime(lower, fmt), to_datetime(upper, fmt)
        else:
            return True
        if low is None or high is None:
            return True
        if low > high:
            _LOG.debug("Rule %s: range %r..%r is inverted", rule.id, lower, upper)
            return (f"{filter_.type}_between_invalid", lower, upper)
        return True
