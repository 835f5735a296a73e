from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from starlette.config import Config

from query_builder.errors import ConfigError
from query_builder.flags import DEFAULT_GROUP_FLAGS, DEFAULT_RULE_FLAGS

logger = logging.getLogger(__name__)

# options that may change on a live builder
MODIFIABLE_OPTIONS = (
    "allow_groups",
    "allow_empty",
    "default_condition",
    "default_filter",
)


class BuilderSettings(BaseModel):
    """
    Behaviour switches of a QueryBuilder instance.
    """

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    sort_filters: bool = False
    allow_groups: int = Field(
        default=-1,
        ge=-1,
        description="Deepest level allowed to hold sub-groups, -1 for no limit.",
    )
    allow_empty: bool = False
    conditions: List[str] = Field(default_factory=lambda: ["AND", "OR"])
    default_condition: str = "AND"
    display_empty_filter: bool = True
    default_filter: Optional[str] = None
    optgroups: Dict[str, Any] = Field(default_factory=dict)
    default_rule_flags: Dict[str, bool] = Field(
        default_factory=lambda: dict(DEFAULT_RULE_FLAGS)
    )
    default_group_flags: Dict[str, bool] = Field(
        default_factory=lambda: dict(DEFAULT_GROUP_FLAGS)
    )
    lang_code: str = "en"

    @model_validator(mode="after")
    def _check_default_condition(self) -> "BuilderSettings":
        if not self.conditions:
            raise ValueError("at least one condition is required")
        if self.default_condition not in self.conditions:
            raise ValueError(
                f"default_condition {self.default_condition!r} "
                f"is not one of {self.conditions}"
            )
        return self


def load_settings(config: Config) -> BuilderSettings:
    """Build BuilderSettings from QB_* environment variables."""
    default_filter = config("QB_DEFAULT_FILTER", cast=str, default="")
    try:
        settings = BuilderSettings(
            default_condition=config("QB_DEFAULT_CONDITION", cast=str, default="AND"),
            allow_empty=config("QB_ALLOW_EMPTY", cast=bool, default=False),
            allow_groups=config("QB_ALLOW_GROUPS", cast=int, default=-1),
            sort_filters=config("QB_SORT_FILTERS", cast=bool, default=False),
            display_empty_filter=config(
                "QB_DISPLAY_EMPTY_FILTER", cast=bool, default=True
            ),
            default_filter=default_filter or None,
            lang_code=config("QB_LANG_CODE", cast=str, default="en"),
        )
    except ValidationError as exc:
        logger.error("Invalid query builder settings: %s", exc)
        raise ConfigError(f"Invalid query builder settings: {exc}") from exc

    logger.info(
        "Query builder configured with default_condition=%s and allow_groups=%s",
        settings.default_condition,
        settings.allow_groups,
    )
    return settings


def merge_settings(
    base: BuilderSettings, overrides: Optional[Dict[str, Any]]
) -> BuilderSettings:
    if not overrides:
        return base.model_copy(deep=True)
    try:
        return BuilderSettings.model_validate({**base.model_dump(), **overrides})
    except ValidationError as exc:
        raise ConfigError(f"Invalid query builder settings: {exc}") from exc


def load_builder_config(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a builder configuration file (JSON, or YAML for .yaml/.yml).

    The document holds ``filters`` and optionally ``operators``,
    ``settings``, ``plugins`` and ``rules``.
    """
    path = Path(path)
    try:
        with path.open("rt", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                document = yaml.safe_load(f)
            else:
                document = json.load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        logger.error("Could not parse %s: %s", path, exc)
        raise ConfigError(f"Could not parse config file {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    if "filters" not in document:
        raise ConfigError(f"Config file {path} has no 'filters' section")
    return document
