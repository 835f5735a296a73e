from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from query_builder.registry.types import FILTER_TYPES, INPUTS, TYPE_KINDS


class Validation(BaseModel):
    """
    Validation policy of a filter.

    `callback(value, rule)` replaces the built-in checks entirely and must
    return ``True`` or an error tuple.
    """

    model_config = ConfigDict(extra="allow", frozen=True, arbitrary_types_allowed=True)

    min: Optional[Any] = None
    max: Optional[Any] = None
    step: Optional[Any] = None
    format: Optional[str] = None
    allow_empty_value: bool = False
    callback: Optional[Callable[..., Any]] = None
    messages: Dict[str, str] = Field(default_factory=dict)


class Filter(BaseModel):
    """
    One queryable field: its type, input kind and validation policy.
    """

    model_config = ConfigDict(extra="allow", frozen=True, arbitrary_types_allowed=True)

    id: str = Field(..., description="Unique key of the filter.")
    field: Optional[str] = Field(default=None, description="Defaults to id.")
    label: Optional[Union[str, Dict[str, str]]] = Field(
        default=None, description="Plain label or {lang_code: label}."
    )
    type: str = Field(default="string", description="One of FILTER_TYPES.")
    input: Optional[Union[str, Callable[..., Any]]] = None
    operators: Optional[List[str]] = Field(
        default=None, description="Ordered allow-list of operator types."
    )
    optgroup: Optional[str] = None
    validation: Validation = Field(default_factory=Validation)
    default_value: Any = None
    default_operator: Optional[str] = None
    values: Optional[Any] = None
    multiple: bool = False
    placeholder: Optional[str] = None
    placeholder_value: Any = "-1"
    value_separator: Optional[str] = None
    data: Any = None

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        values = dict(values)
        if not values.get("type"):
            values["type"] = "string"
        if not values.get("field"):
            values["field"] = values.get("id")
        if not values.get("label"):
            values["label"] = values["field"]
        if not values.get("input") and values["type"] in FILTER_TYPES:
            is_number = FILTER_TYPES[values["type"]] == "number"
            values["input"] = "number" if is_number else "text"
        if not values.get("optgroup"):
            values["optgroup"] = None
        return values

    @field_validator("id", mode="before")
    @classmethod
    def _validate_id(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Missing filter id")
        return value

    @field_validator("type")
    @classmethod
    def _validate_type(cls, value: str) -> str:
        if value not in FILTER_TYPES:
            raise ValueError(f'Invalid type "{value}"')
        return value

    @field_validator("input")
    @classmethod
    def _validate_input(cls, value: Any) -> Any:
        if value is None or callable(value) or value in INPUTS:
            return value
        raise ValueError(f'Invalid input "{value}"')

    @field_validator("operators", mode="before")
    @classmethod
    def _validate_operators(cls, value: Any) -> Any:
        if value is None:
            return value
        if any(not isinstance(op, str) for op in value):
            raise ValueError("Filter operators must be global operators types (string)")
        return list(value)

    @property
    def kind(self) -> str:
        """Type kind ('string', 'number', 'datetime', 'boolean')."""
        return FILTER_TYPES[self.type]

    @property
    def input_name(self) -> str:
        return self.input if isinstance(self.input, str) else "input"


class Operator(BaseModel):
    """
    One comparison kind: arity, multi-value policy and applicable type kinds.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    type: str = Field(..., description="Unique key of the operator.")
    nb_inputs: int = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("nb_inputs", "arity"),
        description="Number of value slots, also accepted as `arity`.",
    )
    multiple: bool = False
    apply_to: Tuple[str, ...] = Field(..., description="Compatible type kinds.")
    optgroup: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _validate_type(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Operator type must be a non-empty string")
        return value

    @field_validator("apply_to")
    @classmethod
    def _validate_apply_to(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        unknown = [kind for kind in value if kind not in TYPE_KINDS]
        if unknown:
            raise ValueError(f"unknown type kind(s) in apply_to: {unknown}")
        return value

    @property
    def arity(self) -> int:
        return self.nb_inputs
