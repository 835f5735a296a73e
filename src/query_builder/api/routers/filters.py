from __future__ import annotations

from typing import Annotated, Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, status

from query_builder.api.dependencies import get_builder_config, get_builder_settings
from query_builder.api.helpers import (
    _error_payload,
    _exc_meta,
    build_query_builder,
    describe_filter,
    describe_operator,
)
from query_builder.builder import QueryBuilder
from query_builder.config import BuilderSettings
from query_builder.errors import ConfigError, UndefinedFilterError

router = APIRouter(prefix="/filters", tags=["Filters"])


def _builder(document: Dict[str, Any], settings: BuilderSettings) -> QueryBuilder:
    try:
        return build_query_builder(document, settings)
    except ConfigError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload(
                "BUILDER_CONFIG_INVALID",
                "Query builder configuration is invalid.",
                reason=str(exc),
                **_exc_meta(exc),
            ),
        ) from exc


@router.get(
    "",
    summary="List filters",
    description="Returns every configured filter with its usable operators.",
)
def list_filters(
    document: Annotated[Dict[str, Any], Depends(get_builder_config)],
    settings: Annotated[BuilderSettings, Depends(get_builder_settings)],
) -> List[Dict[str, Any]]:
    builder = _builder(document, settings)
    return [describe_filter(builder, f) for f in builder.filters]


@router.get(
    "/{filter_id}/operators",
    summary="List operators of a filter",
)
def list_filter_operators(
    filter_id: str,
    document: Annotated[Dict[str, Any], Depends(get_builder_config)],
    settings: Annotated[BuilderSettings, Depends(get_builder_settings)],
) -> List[Dict[str, Any]]:
    builder = _builder(document, settings)
    try:
        operators = builder.get_operators(filter_id)
    except UndefinedFilterError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error_payload(
                "FILTER_NOT_FOUND",
                f"Filter '{filter_id}' not found.",
                filter_id=filter_id,
            ),
        ) from exc
    return [describe_operator(op) for op in operators]
