from __future__ import annotations

import json

import typer

from query_builder.api.cli.commands._common import load_rules, open_builder
from query_builder.api.helpers import collect_errors

rules_app = typer.Typer(help="Validate and export rule trees.")


@rules_app.command("validate")
def validate(
    config: str = typer.Argument(..., help="Builder config file (JSON/YAML)."),
    rules: str = typer.Argument(..., help="Rules file (JSON/YAML)."),
    skip_empty: bool = typer.Option(False, help="Ignore blank rules and groups."),
) -> None:
    builder = open_builder(config, load_rules(rules))
    valid = builder.validate(skip_empty=skip_empty)
    typer.echo(json.dumps({"valid": valid, "errors": collect_errors(builder)}, indent=2))
    if not valid:
        raise typer.Exit(code=1)


@rules_app.command("export")
def export(
    config: str = typer.Argument(..., help="Builder config file (JSON/YAML)."),
    rules: str = typer.Argument(..., help="Rules file (JSON/YAML)."),
    flags: bool = typer.Option(False, "--flags", help="Include non-default flags."),
    all_flags: bool = typer.Option(False, "--all-flags", help="Include every flag."),
    skip_empty: bool = typer.Option(False, help="Drop blank rules and groups."),
    allow_invalid: bool = typer.Option(False, help="Export even when invalid."),
) -> None:
    builder = open_builder(config, load_rules(rules))
    get_flags = "all" if all_flags else flags
    out = builder.get_rules(
        get_flags=get_flags, allow_invalid=allow_invalid, skip_empty=skip_empty
    )
    if out is None:
        typer.echo(json.dumps({"valid": False, "errors": collect_errors(builder)}, indent=2))
        raise typer.Exit(code=1)
    typer.echo(json.dumps(out, indent=2, default=str))
