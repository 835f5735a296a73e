from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError

from query_builder.errors import ConfigError
from query_builder.registry.descriptors import Operator

_LOG = logging.getLogger(__name__)

_ALL = ("string", "number", "datetime", "boolean")
_ORDERED = ("number", "datetime")

BUILTIN_OPERATORS: List[Dict[str, Any]] = [
    {"type": "equal", "nb_inputs": 1, "multiple": False, "apply_to": _ALL},
    {"type": "not_equal", "nb_inputs": 1, "multiple": False, "apply_to": _ALL},
    {"type": "in", "nb_inputs": 1, "multiple": True, "apply_to": _ALL[:3]},
    {"type": "not_in", "nb_inputs": 1, "multiple": True, "apply_to": _ALL[:3]},
    {"type": "less", "nb_inputs": 1, "multiple": False, "apply_to": _ORDERED},
    {"type": "less_or_equal", "nb_inputs": 1, "multiple": False, "apply_to": _ORDERED},
    {"type": "greater", "nb_inputs": 1, "multiple": False, "apply_to": _ORDERED},
    {"type": "greater_or_equal", "nb_inputs": 1, "multiple": False, "apply_to": _ORDERED},
    {"type": "between", "nb_inputs": 2, "multiple": False, "apply_to": _ORDERED},
    {"type": "not_between", "nb_inputs": 2, "multiple": False, "apply_to": _ORDERED},
    {"type": "begins_with", "nb_inputs": 1, "multiple": False, "apply_to": ("string",)},
    {"type": "not_begins_with", "nb_inputs": 1, "multiple": False, "apply_to": ("string",)},
    {"type": "contains", "nb_inputs": 1, "multiple": False, "apply_to": ("string",)},
    {"type": "not_contains", "nb_inputs": 1, "multiple": False, "apply_to": ("string",)},
    {"type": "ends_with", "nb_inputs": 1, "multiple": False, "apply_to": ("string",)},
    {"type": "not_ends_with", "nb_inputs": 1, "multiple": False, "apply_to": ("string",)},
    {"type": "is_empty", "nb_inputs": 0, "multiple": False, "apply_to": ("string",)},
    {"type": "is_not_empty", "nb_inputs": 0, "multiple": False, "apply_to": ("string",)},
    {"type": "is_null", "nb_inputs": 0, "multiple": False, "apply_to": _ALL},
    {"type": "is_not_null", "nb_inputs": 0, "multiple": False, "apply_to": _ALL},
]


def coerce_operator(raw: Union[Operator, Mapping[str, Any]]) -> Operator:
    if isinstance(raw, Operator):
        return raw
    try:
        return Operator.model_validate(dict(raw))
    except ValidationError as exc:
        raise ConfigError(f"Invalid operator {dict(raw).get('type')!r}: {exc}") from exc


class OperatorCatalog:
    """
    Global catalog of operator descriptors, keyed by type.

    Populated with `register`, then `freeze`d; a frozen catalog rejects
    further registrations. Builders copy entries out of it, they never hold
    the catalog's own instances.
    """

    def __init__(self, operators: Optional[List[Any]] = None) -> None:
        self._operators: Dict[str, Operator] = {}
        self._frozen = False
        for raw in operators or ():
            self.register(raw)

    def register(self, raw: Union[Operator, Mapping[str, Any]]) -> Operator:
        if self._frozen:
            raise ConfigError("Operator catalog is frozen")
        operator = coerce_operator(raw)
        if operator.type in self._operators:
            _LOG.debug("Replacing catalog operator %r", operator.type)
        self._operators[operator.type] = operator
        return operator

    def freeze(self) -> "OperatorCatalog":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, operator_type: str) -> Optional[Operator]:
        return self._operators.get(operator_type)

    def copy_of(self, operator_type: str) -> Operator:
        operator = self._operators.get(operator_type)
        if operator is None:
            raise ConfigError(f'Unknown operator "{operator_type}"')
        return operator.model_copy(deep=True)

    def types(self) -> List[str]:
        return list(self._operators)

    def __contains__(self, operator_type: object) -> bool:
        return operator_type in self._operators

    def __iter__(self) -> Iterator[Operator]:
        return iter(list(self._operators.values()))

    def __len__(self) -> int:
        return len(self._operators)


_default_catalog: Optional[OperatorCatalog] = None


def default_operator_catalog() -> OperatorCatalog:
    """Process-wide built-in catalog, populated and frozen on first use."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = OperatorCatalog(BUILTIN_OPERATORS).freeze()
    return _default_catalog
