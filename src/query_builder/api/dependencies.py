from typing import Any, Dict

from fastapi import Request

from query_builder.config import BuilderSettings
from query_builder.singletons import (
    builder_config as _config_singleton,
    builder_settings as _settings_singleton,
)


def get_builder_config(_: Request) -> Dict[str, Any]:
    return _config_singleton()


def get_builder_settings(_: Request) -> BuilderSettings:
    return _settings_singleton()
