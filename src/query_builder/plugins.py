from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Mapping, Optional, Union

from query_builder.errors import ConfigError

if TYPE_CHECKING:
    from query_builder.builder import QueryBuilder

logger = logging.getLogger(__name__)

PluginInit = Callable[["QueryBuilder", Dict[str, Any]], Any]
PluginsConfig = Union[None, Iterable[str], Mapping[str, Optional[Mapping[str, Any]]]]


@dataclass(frozen=True)
class PluginDefinition:
    name: str
    init: PluginInit
    defaults: Dict[str, Any] = field(default_factory=dict)


class PluginRegistry:
    """
    Named plugin initializers with their default options.

    Filled with `define`, then optionally `freeze`d.
    """

    def __init__(self) -> None:
        self._plugins: Dict[str, PluginDefinition] = {}
        self._frozen = False

    def define(
        self, name: str, init: PluginInit, defaults: Optional[Mapping[str, Any]] = None
    ) -> PluginDefinition:
        if self._frozen:
            raise ConfigError("Plugin registry is frozen")
        if not isinstance(name, str) or not name:
            raise ValueError("plugin name must be a non-empty string")
        definition = PluginDefinition(name, init, dict(defaults or {}))
        self._plugins[name] = definition
        return definition

    def freeze(self) -> "PluginRegistry":
        self._frozen = True
        return self

    def get(self, name: str) -> Optional[PluginDefinition]:
        return self._plugins.get(name)

    def names(self) -> list[str]:
        return list(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins


plugin_registry = PluginRegistry()


def define_plugin(
    name: str,
    defaults: Optional[Mapping[str, Any]] = None,
    *,
    registry: Optional[PluginRegistry] = None,
):
    """
    Decorator to register a plugin initializer under `name`.
    """

    target = registry if registry is not None else plugin_registry

    def decorator(func: PluginInit) -> PluginInit:
        target.define(name, func, defaults)
        return func

    return decorator


def _normalize_config(config: PluginsConfig) -> Dict[str, Dict[str, Any]]:
    if not config:
        return {}
    if isinstance(config, Mapping):
        return {name: dict(options or {}) for name, options in config.items()}
    return {name: {} for name in config}


def init_plugins(
    builder: "QueryBuilder",
    config: PluginsConfig,
    registry: Optional[PluginRegistry] = None,
) -> Dict[str, Dict[str, Any]]:
    """
    Run every configured plugin once with ``defaults`` overlaid by the
    instance options. Returns the merged options keyed by plugin name.
    """
    registry = registry if registry is not None else plugin_registry
    merged: Dict[str, Dict[str, Any]] = {}
    for name, options in _normalize_config(config).items():
        definition = registry.get(name)
        if definition is None:
            logger.error("Plugin %s not found", name)
            raise ConfigError(f'Unable to find plugin "{name}"')
        opts = {**copy.deepcopy(definition.defaults), **options}
        definition.init(builder, opts)
        merged[name] = opts
        logger.debug("Plugin %s initialised", name)
    return merged
