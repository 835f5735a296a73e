from __future__ import annotations

import re
from datetime import date, datetime, time
from typing import Any, Callable, Dict, Optional, Tuple, Union

from dateutil import parser as date_parser
from dateutil import tz

from query_builder.registry.descriptors import Filter, Validation

CheckResult = Union[bool, Tuple[Any, ...]]
TypeChecker = Callable[[Filter, Any, Validation], CheckResult]

# type kind -> checker for one scalar value
type_checkers: Dict[str, TypeChecker] = {}

_BOOLEAN_TOKENS = frozenset({"true", "false", "1", "0"})


def register_type_checker(*kinds: str):
    """
    Decorator to register the scalar checker of one or more type kinds.
    """

    def decorator(func: TypeChecker) -> TypeChecker:
        for kind in kinds:
            if not isinstance(kind, str) or not kind:
                raise ValueError("type kind must be a non-empty string")
            type_checkers[kind] = func
        return func

    return decorator


def check_by_type(filter_: Filter, value: Any, validation: Validation) -> CheckResult:
    checker = type_checkers.get(filter_.kind)
    if checker is None:
        return True
    return checker(filter_, value, validation)


@register_type_checker("string")
def check_string(filter_: Filter, value: Any, validation: Validation) -> CheckResult:
    text = str(value)
    if validation.min is not None and len(text) < int(validation.min):
        return ("string_exceed_min_length", validation.min)
    if validation.max is not None and len(text) > int(validation.max):
        return ("string_exceed_max_length", validation.max)
    if validation.format and re.search(validation.format, text) is None:
        return ("string_invalid_format", validation.format)
    return True


def to_number(value: Any) -> Optional[float]:
    """float() of the value, None when it is not a number."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:
        return None
    return number


@register_type_checker("number")
def check_number(filter_: Filter, value: Any, validation: Validation) -> CheckResult:
    number = to_number(value)
    if number is None:
        return ("number_nan",)
    if filter_.type == "integer" and not number.is_integer():
        return ("number_not_double",)
    if validation.min is not None and number < float(validation.min):
        return ("number_exceed_min", validation.min)
    if validation.max is not None and number > float(validation.max):
        return ("number_exceed_max", validation.max)
    return True


def _as_utc(moment: datetime) -> datetime:
    # naive values are taken as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz.UTC)
    return moment.astimezone(tz.UTC)


def to_datetime(value: Any, fmt: Optional[str] = None) -> Optional[datetime]:
    """
    Parse with the strftime pattern `fmt` when given, else with dateutil.
    The result is always offset-aware in UTC; None for unparseable input.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time())
    elif isinstance(value, time):
        moment = datetime.combine(date.min, value.replace(tzinfo=None))
    elif isinstance(value, str):
        try:
            if fmt:
                moment = datetime.strptime(value, fmt)
            else:
                moment = date_parser.parse(value)
        except (ValueError, OverflowError):
            return None
    else:
        return None
    try:
        return _as_utc(moment)
    except (ValueError, OverflowError):
        return None


@register_type_checker("datetime")
def check_datetime(filter_: Filter, value: Any, validation: Validation) -> CheckResult:
    moment = to_datetime(value, validation.format)
    if moment is None:
        return ("datetime_invalid", validation.format)
    if validation.min:
        lower = to_datetime(validation.min, validation.format)
        if lower is not None and moment < lower:
            return ("datetime_exceed_min", validation.min)
    if validation.max:
        upper = to_datetime(validation.max, validation.format)
        if upper is not None and moment > upper:
            return ("datetime_exceed_max", validation.max)
    return True


@register_type_checker("boolean")
def check_boolean(filter_: Filter, value: Any, validation: Validation) -> CheckResult:
    token = str(value).strip().lower()
    if token not in _BOOLEAN_TOKENS:
        return ("boolean_not_valid",)
    return True
