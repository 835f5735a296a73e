from __future__ import annotations

from typing import Dict, Tuple

# filter type -> type kind consulted by operators and validators
FILTER_TYPES: Dict[str, str] = {
    "string": "string",
    "integer": "number",
    "double": "number",
    "date": "datetime",
    "time": "datetime",
    "datetime": "datetime",
    "boolean": "boolean",
}

TYPE_KINDS: Tuple[str, ...] = ("string", "number", "datetime", "boolean")

INPUTS: Tuple[str, ...] = ("text", "number", "textarea", "radio", "checkbox", "select")

# inputs whose value is a selection among fixed values
CHOICE_INPUTS: Tuple[str, ...] = ("radio", "checkbox", "select")

NO_SELECTION = "-1"


def type_kind(filter_type: str) -> str:
    return FILTER_TYPES[filter_type]
