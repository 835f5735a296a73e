from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from query_builder.api.dependencies import get_builder_config, get_builder_settings
from query_builder.api.helpers import (
    _error_payload,
    _exc_meta,
    build_query_builder,
    collect_errors,
)
from query_builder.builder import QueryBuilder
from query_builder.config import BuilderSettings
from query_builder.errors import ConfigError

router = APIRouter(prefix="/rules", tags=["Rules"])


class RulesValidateRequest(BaseModel):
    rules: Union[Dict[str, Any], List[Any]]
    skip_empty: bool = False


class RulesNormalizeRequest(BaseModel):
    rules: Union[Dict[str, Any], List[Any]]
    get_flags: Union[bool, Literal["all"]] = False
    skip_empty: bool = False
    allow_invalid: bool = False


class RulesValidateResponse(BaseModel):
    valid: bool
    errors: List[Dict[str, Any]] = Field(default_factory=list)


def _builder_with_rules(
    document: Dict[str, Any], settings: BuilderSettings, rules: Any
) -> QueryBuilder:
    try:
        return build_query_builder(document, settings, rules=rules)
    except ConfigError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload(
                "RULES_INVALID",
                "Rules could not be loaded into the query builder.",
                reason=str(exc),
                **_exc_meta(exc),
            ),
        ) from exc


@router.post(
    "/validate",
    response_model=RulesValidateResponse,
    summary="Validate rules",
    description="Loads the rules into a fresh builder and reports node errors.",
)
def validate_rules(
    body: RulesValidateRequest,
    document: Annotated[Dict[str, Any], Depends(get_builder_config)],
    settings: Annotated[BuilderSettings, Depends(get_builder_settings)],
) -> RulesValidateResponse:
    builder = _builder_with_rules(document, settings, body.rules)
    valid = builder.validate(skip_empty=body.skip_empty)
    return RulesValidateResponse(valid=valid, errors=collect_errors(builder))


@router.post(
    "/normalize",
    summary="Normalize rules",
    description="Round-trips the rules through a builder and returns the export.",
)
def normalize_rules(
    body: RulesNormalizeRequest,
    document: Annotated[Dict[str, Any], Depends(get_builder_config)],
    settings: Annotated[BuilderSettings, Depends(get_builder_settings)],
) -> Dict[str, Any]:
    builder = _builder_with_rules(document, settings, body.rules)
    out = builder.get_rules(
        get_flags=body.get_flags,
        allow_invalid=body.allow_invalid,
        skip_empty=body.skip_empty,
    )
    if out is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload(
                "RULES_NOT_VALID",
                "Rules failed validation.",
                errors=collect_errors(builder),
            ),
        )
    return out
