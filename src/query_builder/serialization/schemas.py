from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


def _entry_kind(value: Any) -> str:
    """Entries holding a ``rules`` key are sub-groups, everything else is a rule."""
    if isinstance(value, dict):
        return "group" if "rules" in value else "rule"
    return "group" if isinstance(value, GroupData) else "rule"


class RuleData(BaseModel):
    """
    Plain-data form of one rule. `id` is the filter id, not the node id.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    field: Optional[str] = None
    type: Optional[str] = None
    input: Optional[str] = None
    operator: Optional[str] = None
    value: Any = None
    data: Any = None
    flags: Optional[Dict[str, bool]] = None
    readonly: bool = False
    empty: bool = False

    def has_value(self) -> bool:
        return "value" in self.model_fields_set


class GroupData(BaseModel):
    """
    Plain-data form of a group, as produced by `QueryBuilder.get_rules`.
    """

    model_config = ConfigDict(extra="allow")

    condition: Optional[str] = None
    rules: List[
        Annotated[
            Union[
                Annotated["GroupData", Tag("group")],
                Annotated[RuleData, Tag("rule")],
            ],
            Discriminator(_entry_kind),
        ]
    ] = Field(...)
    valid: Optional[bool] = None
    data: Any = None
    flags: Optional[Dict[str, bool]] = None
    readonly: bool = False


GroupData.model_rebuild()
