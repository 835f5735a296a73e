from query_builder.registry.descriptors import Filter, Operator, Validation
from query_builder.registry.filter_registry import FilterOperatorRegistry
from query_builder.registry.operator_catalog import (
    BUILTIN_OPERATORS,
    OperatorCatalog,
    default_operator_catalog,
)

__all__ = [
    "BUILTIN_OPERATORS",
    "Filter",
    "FilterOperatorRegistry",
    "Operator",
    "OperatorCatalog",
    "Validation",
    "default_operator_catalog",
]
