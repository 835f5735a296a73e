from __future__ import annotations

import typer

from query_builder.api.cli.commands.filters import filters_app
from query_builder.api.cli.commands.rules import rules_app

app = typer.Typer(
    help="Query builder CLI to inspect filters and validate or export rule trees."
)
app.add_typer(rules_app, name="rules")
app.add_typer(filters_app, name="filters")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
