from query_builder.validation.type_checkers import register_type_checker, type_checkers
from query_builder.validation.value_validator import ValueValidator

__all__ = ["ValueValidator", "register_type_checker", "type_checkers"]
