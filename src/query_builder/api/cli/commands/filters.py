from __future__ import annotations

import json

import typer

from query_builder.api.cli.commands._common import fail, open_builder
from query_builder.api.helpers import describe_filter, describe_operator
from query_builder.errors import UndefinedFilterError

filters_app = typer.Typer(help="Inspect configured filters and operators.")


@filters_app.command("list")
def list_filters(
    config: str = typer.Argument(..., help="Builder config file (JSON/YAML)."),
) -> None:
    builder = open_builder(config)
    typer.echo(json.dumps([describe_filter(builder, f) for f in builder.filters], indent=2))


@filters_app.command("operators")
def list_operators(
    config: str = typer.Argument(..., help="Builder config file (JSON/YAML)."),
    filter_id: str = typer.Argument(..., help="Filter id."),
) -> None:
    builder = open_builder(config)
    try:
        operators = builder.get_operators(filter_id)
    except UndefinedFilterError as exc:
        fail("FILTER_NOT_FOUND", exc)
    typer.echo(json.dumps([describe_operator(op) for op in operators], indent=2))
