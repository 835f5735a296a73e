from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List

import pytest

from query_builder.builder import QueryBuilder
from query_builder.model.notifier import BuilderEvent
from query_builder.registry.operator_catalog import BUILTIN_OPERATORS, OperatorCatalog

from tests.helpers import SAMPLE_FILTERS, SAMPLE_RULES


@pytest.fixture
def sample_filters() -> List[Dict[str, Any]]:
    return copy.deepcopy(SAMPLE_FILTERS)


@pytest.fixture
def sample_rules() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_RULES)


@pytest.fixture
def catalog() -> OperatorCatalog:
    """Private, unfrozen operator catalog."""
    return OperatorCatalog(BUILTIN_OPERATORS)


@pytest.fixture
def builder(sample_filters: List[Dict[str, Any]]) -> QueryBuilder:
    return QueryBuilder(sample_filters, builder_id="qb")


@pytest.fixture
def make_builder(
    sample_filters: List[Dict[str, Any]],
) -> Callable[..., QueryBuilder]:
    def _make(**kwargs: Any) -> QueryBuilder:
        kwargs.setdefault("builder_id", "qb")
        return QueryBuilder(copy.deepcopy(sample_filters), **kwargs)

    return _make


class EventRecorder:
    """Collects BuilderEvents by name."""

    def __init__(self) -> None:
        self.events: List[BuilderEvent] = []

    def __call__(self, event: BuilderEvent) -> None:
        self.events.append(event)

    def names(self) -> List[str]:
        return [event.name for event in self.events]

    def count(self, name: str) -> int:
        return self.names().count(name)

    def watch(self, builder: QueryBuilder, *names: str) -> "EventRecorder":
        for name in names:
            builder.on(name, self)
        return self


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()
