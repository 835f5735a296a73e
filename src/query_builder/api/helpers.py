from typing import Any, Dict, List, Optional

from query_builder.builder import QueryBuilder
from query_builder.config import BuilderSettings, merge_settings
from query_builder.registry.descriptors import Filter, Operator
from query_builder.utils.common_helpers import translate_label


def _error_payload(code: str, message: str, **ctx: Any) -> Dict[str, Any]:
    """
    Create a consistent error body with a stable machine-readable code and
    optional context fields.
    """
    payload: Dict[str, Any] = {"code": code, "message": message}
    if ctx:
        payload["context"] = ctx
    return payload


def _exc_meta(exc: BaseException) -> Dict[str, Optional[str]]:
    """
    Best-effort, safe metadata from an exception (no stack traces).
    """
    return {
        "type": exc.__class__.__name__,
        "cause": str(exc.__cause__) if exc.__cause__ else None,
    }


def build_query_builder(
    document: Dict[str, Any],
    base_settings: BuilderSettings,
    rules: Any = None,
) -> QueryBuilder:
    """
    Instantiate a builder from a configuration document. Settings of the
    document override `base_settings`; `rules` overrides the document's rules.
    """
    settings = merge_settings(base_settings, document.get("settings"))
    return QueryBuilder(
        document["filters"],
        document.get("operators"),
        settings=settings,
        plugins=document.get("plugins"),
        rules=rules if rules is not None else document.get("rules"),
    )


def collect_errors(builder: QueryBuilder) -> List[Dict[str, Any]]:
    errors: List[Dict[str, Any]] = []
    for node in builder.model.nodes():
        if node.error is not None:
            errors.append(
                {"id": node.id, "kind": node.kind.value, "error": list(node.error)}
            )
    return errors


def describe_filter(builder: QueryBuilder, filter_: Filter) -> Dict[str, Any]:
    return {
        "id": filter_.id,
        "field": filter_.field,
        "label": translate_label(filter_.label, builder.settings.lang_code),
        "type": filter_.type,
        "input": filter_.input_name,
        "optgroup": filter_.optgroup,
        "operators": [op.type for op in builder.get_operators(filter_)],
    }


def describe_operator(operator: Operator) -> Dict[str, Any]:
    return {
        "type": operator.type,
        "nb_inputs": operator.nb_inputs,
        "multiple": operator.multiple,
        "apply_to": list(operator.apply_to),
        "optgroup": operator.optgroup,
    }
