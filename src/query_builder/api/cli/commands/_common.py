from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import yaml

from query_builder.api.helpers import _error_payload, build_query_builder
from query_builder.builder import QueryBuilder
from query_builder.config import load_builder_config
from query_builder.errors import BuilderLookupError, ConfigError
from query_builder.singletons import builder_settings

# exit code for configuration and lookup failures
CONFIG_EXIT_CODE = 2


def fail(code: str, exc: Exception) -> None:
    typer.echo(
        json.dumps(
            _error_payload(code, str(exc), type=exc.__class__.__name__), indent=2
        ),
        err=True,
    )
    raise typer.Exit(code=CONFIG_EXIT_CODE)


def load_rules(path: str) -> Any:
    rules_path = Path(path)
    try:
        with rules_path.open("rt", encoding="utf-8") as f:
            if rules_path.suffix.lower() in (".yaml", ".yml"):
                return yaml.safe_load(f)
            return json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        fail("RULES_FILE_INVALID", exc)


def open_builder(config_path: str, rules: Optional[Any] = None) -> QueryBuilder:
    try:
        document: Dict[str, Any] = load_builder_config(config_path)
        return build_query_builder(document, builder_settings(), rules=rules)
    except (ConfigError, BuilderLookupError) as exc:
        fail("CONFIG_INVALID", exc)
