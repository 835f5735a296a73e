from __future__ import annotations


class QueryBuilderError(Exception):
    """Base for all query builder exceptions."""


class ConfigError(QueryBuilderError):
    """Filter/operator/plugin configuration is malformed or unresolvable."""


class RulesParseError(ConfigError):
    """Rules data passed to the importer has an invalid shape."""


class BuilderLookupError(QueryBuilderError, LookupError):
    """A strict lookup did not find the requested filter or operator."""


class UndefinedFilterError(BuilderLookupError):
    """Unknown filter id."""


class UndefinedOperatorError(BuilderLookupError):
    """Unknown operator type."""


class BoundsError(QueryBuilderError, IndexError):
    """Insert/move index outside of the target group."""
