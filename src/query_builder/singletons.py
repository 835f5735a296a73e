from __future__ import annotations

import os
from typing import Any, Dict, Optional

from starlette.config import Config

from query_builder.config import BuilderSettings, load_builder_config, load_settings
from query_builder.errors import ConfigError

_settings_singleton: Optional[BuilderSettings] = None
_builder_config_singleton: Optional[Dict[str, Any]] = None


def builder_settings() -> BuilderSettings:
    global _settings_singleton
    if _settings_singleton is None:
        env_path = os.environ.get("QB_ENV_FILE", ".env")
        _settings_singleton = load_settings(Config(env_path))
    return _settings_singleton


def builder_config() -> Dict[str, Any]:
    """Builder configuration document named by ``QB_CONFIG_PATH``."""
    global _builder_config_singleton
    if _builder_config_singleton is None:
        path = os.environ.get("QB_CONFIG_PATH")
        if not path:
            raise ConfigError("QB_CONFIG_PATH is not set")
        _builder_config_singleton = load_builder_config(path)
    return _builder_config_singleton


def reset() -> None:
    global _settings_singleton, _builder_config_singleton
    _settings_singleton = None
    _builder_config_singleton = None
