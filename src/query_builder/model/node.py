from __future__ import annotations

import logging
import weakref
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Optional, Tuple

from query_builder.errors import BoundsError
from query_builder.model.notifier import Notifier

if TYPE_CHECKING:
    from query_builder.model.model import Model
    from query_builder.registry.descriptors import Filter, Operator

_LOG = logging.getLogger(__name__)


class NodeKind(str, Enum):
    """
    Tag of the two node variants
    """

    GROUP = "group"
    RULE = "rule"


class Node:
    """
    Shared part of Group and Rule.

    Holds identity, flags, error and opaque data. Parent and model are
    non-owning back-references: a Group owns its children and the Model owns
    the root, never the other way round.

    Every assignment of a watched field emits
    ``update(node, field, value, previous)`` on the node and on its model.
    """

    kind: ClassVar[NodeKind]

    def __init__(
        self,
        node_id: str,
        parent: Optional["Group"] = None,
        model: Optional["Model"] = None,
    ) -> None:
        if not isinstance(node_id, str) or not node_id:
            raise ValueError("node id must be a non-empty string")
        self._id = node_id
        self._parent_ref: Optional[weakref.ref] = None
        self._model_ref: Optional[weakref.ref] = None
        if parent is not None:
            self._parent_ref = weakref.ref(parent)
            model = model if model is not None else parent.model
        if model is not None:
            self._model_ref = weakref.ref(model)

        self.events = Notifier()
        self.data: Any = None
        self._error: Optional[Tuple[Any, ...]] = None
        self._flags: Dict[str, bool] = {}

    @property
    def id(self) -> str:
        return self._id

    @property
    def parent(self) -> Optional["Group"]:
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def model(self) -> Optional["Model"]:
        return self._model_ref() if self._model_ref is not None else None

    @property
    def level(self) -> int:
        parent = self.parent
        return 1 if parent is None else parent.level + 1

    @property
    def error(self) -> Optional[Tuple[Any, ...]]:
        return self._error

    @error.setter
    def error(self, value: Optional[Tuple[Any, ...]]) -> None:
        self.assign("error", value)

    @property
    def flags(self) -> Dict[str, bool]:
        return self._flags

    @flags.setter
    def flags(self, value: Dict[str, bool]) -> None:
        self.assign("flags", dict(value))

    def is_root(self) -> bool:
        return self.parent is None

    def assign(self, field: str, value: Any, *, notify: bool = True) -> None:
        """
        Set a watched field. With ``notify=False`` the value is stored
        without any event, used when a change is a consequence of another one.
        """
        previous = getattr(self, f"_{field}")
        setattr(self, f"_{field}", value)
        if notify:
            self._notify("update", self, field, value, previous)

    def _notify(self, event: str, *args: Any) -> None:
        self.events.emit(event, *args)
        model = self.model
        if model is not None:
            model.events.emit(event, *args)

    def _attach(self, parent: "Group") -> None:
        self._parent_ref = weakref.ref(parent)
        if parent.model is not None:
            self._model_ref = weakref.ref(parent.model)

    def _detach(self) -> None:
        self._parent_ref = None

    def get_pos(self) -> int:
        parent = self.parent
        return parent.get_node_pos(self) if parent is not None else -1

    def has_ancestor(self, node: "Node") -> bool:
        current = self.parent
        while current is not None:
            if current is node:
                return True
            current = current.parent
        return False

    def drop(self) -> None:
        """
        Detach from the parent, emit ``drop`` and forget the model.
        """
        parent = self.parent
        if parent is not None:
            parent.remove_node(self)
        self._notify("drop", self)
        self._model_ref = None

    def move(self, target: "Group", index: int) -> bool:
        """
        Atomically move this node into `target` at `index` (position counted
        after the node has been removed from its current parent).
        Returns False without any change for the root, for detached nodes and
        when a group would end up inside its own subtree.
        """
        parent = self.parent
        if self.is_root() or parent is None:
            return False
        if target is self or target.has_ancestor(self):
            _LOG.debug("Refusing to move %s into its own subtree", self.id)
            return False

        limit = target.length() - (1 if parent is target else 0)
        if not 0 <= index <= limit:
            raise BoundsError(
                f"Cannot move {self.id!r} to index {index} of {target.id!r} "
                f"(allowed 0..{limit})"
            )

        parent.remove_node(self)
        target.insert_node(self, index, trigger=False)
        self._notify("move", self, target, index)
        return True

    def move_after(self, node: "Node") -> bool:
        target = node.parent
        if target is None:
            return False
        if self.parent is target and self.get_pos() < node.get_pos():
            index = node.get_pos()
        else:
            index = node.get_pos() + 1
        return self.move(target, index)

    def move_at_begin(self, target: Optional["Group"] = None) -> bool:
        target = target if target is not None else self.parent
        if target is None:
            return False
        return self.move(target, 0)

    def move_at_end(self, target: Optional["Group"] = None) -> bool:
        target = target if target is not None else self.parent
        if target is None:
            return False
        end = target.length() - (1 if self.parent is target else 0)
        return self.move(target, end)


class Group(Node):
    """
    Ordered collection of child nodes combined under one condition.
    Child order is the serialization order.
    """

    kind = NodeKind.GROUP

    def __init__(
        self,
        node_id: str,
        parent: Optional["Group"] = None,
        model: Optional["Model"] = None,
    ) -> None:
        super().__init__(node_id, parent, model)
        self._children: List[Node] = []
        self._condition: Optional[str] = None

    @property
    def condition(self) -> Optional[str]:
        return self._condition

    @condition.setter
    def condition(self, value: Optional[str]) -> None:
        self.assign("condition", value)

    @property
    def rules(self) -> Tuple[Node, ...]:
        return tuple(self._children)

    def length(self) -> int:
        return len(self._children)

    def __iter__(self):
        return iter(tuple(self._children))

    def insert_node(
        self, node: Node, index: Optional[int] = None, *, trigger: bool = True
    ) -> Node:
        current = node.parent
        length = len(self._children) - (1 if current is self else 0)
        if index is None:
            index = length
        if not 0 <= index <= length:
            raise BoundsError(
                f"Cannot insert into {self.id!r} at index {index} "
                f"(allowed 0..{length})"
            )
        # a node has a single parent
        if current is not None:
            current.remove_node(node)
        self._children.insert(index, node)
        node._attach(self)
        if trigger:
            self._notify("add", self, node, index)
        return node

    def add_group(self, node_id: str, index: Optional[int] = None) -> "Group":
        group = Group(node_id, model=self.model)
        self.insert_node(group, index)
        return group

    def add_rule(self, node_id: str, index: Optional[int] = None) -> "Rule":
        rule = Rule(node_id, model=self.model)
        self.insert_node(rule, index)
        return rule

    def remove_node(self, node: Node) -> None:
        index = self.get_node_pos(node)
        if index == -1:
            return
        del self._children[index]
        node._detach()

    def get_node_pos(self, node: Node) -> int:
        for index, child in enumerate(self._children):
            if child is node:
                return index
        return -1

    def contains(self, node: Node, recursive: bool = False) -> bool:
        if recursive:
            return node.has_ancestor(self)
        return self.get_node_pos(node) != -1

    def empty(self) -> None:
        """Drop every child, last first."""
        for child in reversed(list(self._children)):
            child.drop()

    def drop(self) -> None:
        self.empty()
        super().drop()

    def __repr__(self) -> str:
        return (
            f"Group(id={self.id!r}, condition={self.condition!r}, "
            f"rules={len(self._children)})"
        )


class Rule(Node):
    """
    Leaf node binding a filter, an operator and a value.
    """

    kind = NodeKind.RULE

    def __init__(
        self,
        node_id: str,
        parent: Optional[Group] = None,
        model: Optional["Model"] = None,
    ) -> None:
        super().__init__(node_id, parent, model)
        self._filter: Optional["Filter"] = None
        self._operator: Optional["Operator"] = None
        self._value: Any = None

    @property
    def filter(self) -> Optional["Filter"]:
        return self._filter

    @filter.setter
    def filter(self, value: Optional["Filter"]) -> None:
        self._clear_error()
        self.assign("filter", value)

    @property
    def operator(self) -> Optional["Operator"]:
        return self._operator

    @operator.setter
    def operator(self, value: Optional["Operator"]) -> None:
        self._clear_error()
        self.assign("operator", value)

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        self._clear_error()
        self.assign("value", value)

    def is_root(self) -> bool:
        return False

    def _clear_error(self) -> None:
        if self._error is not None:
            self.error = None

    def __repr__(self) -> str:
        filter_id = self.filter.id if self.filter is not None else None
        operator = self.operator.type if self.operator is not None else None
        return (
            f"Rule(id={self.id!r}, filter={filter_id!r}, "
            f"operator={operator!r}, value={self.value!r})"
        )
