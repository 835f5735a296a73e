from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from query_builder.errors import ConfigError, UndefinedFilterError, UndefinedOperatorError
from query_builder.registry.descriptors import Filter, Operator
from query_builder.registry.operator_catalog import (
    OperatorCatalog,
    coerce_operator,
    default_operator_catalog,
)
from query_builder.registry.types import NO_SELECTION
from query_builder.utils.common_helpers import group_sort, translate_label

_LOG = logging.getLogger(__name__)

FilterLike = Union[Filter, Mapping[str, Any]]
OperatorLike = Union[str, Operator, Mapping[str, Any]]


def _validation_message(exc: ValidationError) -> str:
    return "; ".join(err.get("msg", "") for err in exc.errors())


class FilterOperatorRegistry:
    """
    Checked, read-only catalog of the filters and operators of one builder.

    Both lists are validated on construction; any problem raises ConfigError
    so a builder never starts with a half-checked configuration.
    """

    def __init__(
        self,
        filters: Optional[Iterable[FilterLike]],
        operators: Optional[Iterable[OperatorLike]] = None,
        *,
        catalog: Optional[OperatorCatalog] = None,
        sort_filters: bool = False,
        lang_code: str = "en",
    ) -> None:
        self._catalog = catalog if catalog is not None else default_operator_catalog()
        self._sort_filters = sort_filters
        self._lang_code = lang_code
        self.optgroups: Dict[str, str] = {}
        self.has_optgroup = False
        self.has_operator_optgroup = False

        self.filters: List[Filter] = self.check_filters(filters)
        if operators is None:
            operators = self._catalog.types()
        self.operators: List[Operator] = self.check_operators(operators)
        _LOG.debug(
            "Registry ready with %d filters and %d operators",
            len(self.filters),
            len(self.operators),
        )

    def check_filters(self, filters: Optional[Iterable[FilterLike]]) -> List[Filter]:
        raw_filters = list(filters or [])
        if not raw_filters:
            raise ConfigError("Missing filters list")

        checked: List[Filter] = []
        seen: set[str] = set()
        for index, raw in enumerate(raw_filters):
            filter_ = self._coerce_filter(index, raw)
            if filter_.id in seen:
                raise ConfigError(f'Filter "{filter_.id}" already defined')
            seen.add(filter_.id)

            if filter_.optgroup:
                self.has_optgroup = True
                self.optgroups.setdefault(filter_.optgroup, filter_.optgroup)
            checked.append(filter_)

        if self._sort_filters:
            checked.sort(
                key=lambda f: translate_label(f.label, self._lang_code).casefold()
            )
        return checked

    @staticmethod
    def _coerce_filter(index: int, raw: FilterLike) -> Filter:
        if isinstance(raw, Filter):
            return raw
        if not isinstance(raw, Mapping):
            raise ConfigError(f"Filter {index} must be a mapping")
        if not raw.get("id"):
            raise ConfigError(f"Missing filter {index} id")
        try:
            return Filter.model_validate(dict(raw))
        except ValidationError as exc:
            _LOG.error("Invalid filter %s: %s", raw.get("id"), exc)
            raise ConfigError(
                f'Invalid filter "{raw.get("id")}": {_validation_message(exc)}'
            ) from exc

    def check_operators(self, operators: Iterable[OperatorLike]) -> List[Operator]:
        checked: List[Operator] = []
        seen: set[str] = set()
        for index, raw in enumerate(operators):
            operator = self._resolve_operator(index, raw)
            if operator.type in seen:
                raise ConfigError(f'Operator "{operator.type}" already defined')
            seen.add(operator.type)

            if operator.optgroup:
                self.has_operator_optgroup = True
                self.optgroups.setdefault(operator.optgroup, operator.optgroup)
            checked.append(operator)

        if self.has_operator_optgroup:
            checked = group_sort(checked, key=lambda op: op.optgroup)
        return checked

    def _resolve_operator(self, index: int, raw: OperatorLike) -> Operator:
        if isinstance(raw, str):
            if raw not in self._catalog:
                raise ConfigError(f'Unknown operator "{raw}"')
            return self._catalog.copy_of(raw)

        if isinstance(raw, Operator):
            return raw.model_copy(deep=True)

        if not isinstance(raw, Mapping) or not raw.get("type"):
            raise ConfigError(f'Missing "type" for operator {index}')

        merged: Dict[str, Any] = dict(raw)
        if "arity" in merged:
            merged["nb_inputs"] = merged.pop("arity")
        base = self._catalog.get(merged["type"])
        if base is not None:
            merged = {**base.model_dump(), **merged}
        if merged.get("nb_inputs") is None or merged.get("apply_to") is None:
            raise ConfigError(
                f'Missing "nb_inputs" and/or "apply_to" for operator "{merged["type"]}"'
            )
        return coerce_operator(merged)

    def get_filter_by_id(self, filter_id: str, do_throw: bool = True) -> Optional[Filter]:
        if filter_id == NO_SELECTION:
            return None
        for filter_ in self.filters:
            if filter_.id == filter_id:
                return filter_
        if do_throw:
            raise UndefinedFilterError(f'Undefined filter "{filter_id}"')
        return None

    def get_operator_by_type(
        self, operator_type: str, do_throw: bool = True
    ) -> Optional[Operator]:
        if operator_type == NO_SELECTION:
            return None
        for operator in self.operators:
            if operator.type == operator_type:
                return operator
        if do_throw:
            raise UndefinedOperatorError(f'Undefined operator "{operator_type}"')
        return None

    def get_operators(self, filter_or_id: Union[Filter, str, None]) -> List[Operator]:
        """
        Operators usable with a filter. An explicit allow-list on the filter
        wins and fixes the order; otherwise operators are matched on the
        filter's type kind and keep the catalog order.
        """
        if isinstance(filter_or_id, str):
            filter_ = self.get_filter_by_id(filter_or_id)
        else:
            filter_ = filter_or_id
        if filter_ is None:
            return []

        if filter_.operators is not None:
            allowed = filter_.operators
            result = [op for op in self.operators if op.type in allowed]
            result.sort(key=lambda op: allowed.index(op.type))
            return result

        return [op for op in self.operators if filter_.kind in op.apply_to]
