from __future__ import annotations

import logging
from typing import Iterator, Optional
from uuid import uuid4

from query_builder.model.node import Group, Node
from query_builder.model.notifier import Notifier
from query_builder.model.traversal import Order, iter_nodes

_LOG = logging.getLogger(__name__)


class Model:
    """
    Owns the single root group of one builder instance.

    Tree events (`add`, `drop`, `move`, `update`) emitted by any attached node
    are re-emitted on `Model.events`.
    """

    def __init__(self, model_id: Optional[str] = None) -> None:
        self.id = model_id or f"qb_{uuid4().hex[:8]}"
        self.events = Notifier()
        self._root: Optional[Group] = None
        self._group_seq = 0
        self._rule_seq = 0

    @property
    def root(self) -> Optional[Group]:
        return self._root

    def next_group_id(self) -> str:
        node_id = f"{self.id}_group_{self._group_seq}"
        self._group_seq += 1
        return node_id

    def next_rule_id(self) -> str:
        node_id = f"{self.id}_rule_{self._rule_seq}"
        self._rule_seq += 1
        return node_id

    def create_root(self) -> Group:
        """
        Create a fresh root group, dropping the previous tree if any.
        """
        if self._root is not None:
            self.clear_root()
        self._root = Group(self.next_group_id(), model=self)
        _LOG.debug("Model %s: created root %s", self.id, self._root.id)
        return self._root

    def clear_root(self) -> None:
        root = self._root
        if root is None:
            return
        root.drop()
        self._root = None

    def nodes(self, order: Order = "pre") -> Iterator[Node]:
        if self._root is None:
            return iter(())
        return iter_nodes(self._root, order=order)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes():
            if node.id == node_id:
                return node
        return None

    def destroy(self) -> None:
        """Drop every node and release all subscribers."""
        self.clear_root()
        self.events.clear()
