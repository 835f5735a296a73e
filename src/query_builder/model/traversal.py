from __future__ import annotations

from typing import Callable, Iterator, Literal, Optional

from query_builder.model.node import Group, Node, NodeKind, Rule

RuleVisitor = Callable[[Rule], object]
GroupVisitor = Callable[[Group], object]
Order = Literal["pre", "post"]


def each_child(
    group: Group,
    on_rule: Optional[RuleVisitor] = None,
    on_group: Optional[GroupVisitor] = None,
    *,
    reverse: bool = False,
) -> None:
    """
    Visit the direct children of `group`. The child list is snapshotted
    first, so visitors may drop the node they receive.
    """
    visitors = {NodeKind.RULE: on_rule, NodeKind.GROUP: on_group}
    children = list(group.rules)
    if reverse:
        children.reverse()
    for child in children:
        visitor = visitors[child.kind]
        if visitor is not None:
            visitor(child)


def iter_nodes(node: Node, *, order: Order = "pre") -> Iterator[Node]:
    """
    Depth-first iteration. "pre" yields a group before its children,
    "post" yields every descendant before its group.
    """
    if order not in ("pre", "post"):
        raise ValueError(f"Unknown traversal order {order!r}")
    if order == "pre":
        yield node
    if node.kind is NodeKind.GROUP:
        for child in node.rules:
            yield from iter_nodes(child, order=order)
    if order == "post":
        yield node


def walk(
    node: Node,
    on_rule: Optional[RuleVisitor] = None,
    on_group: Optional[GroupVisitor] = None,
    *,
    order: Order = "pre",
) -> None:
    visitors = {NodeKind.RULE: on_rule, NodeKind.GROUP: on_group}
    for current in list(iter_nodes(node, order=order)):
        visitor = visitors[current.kind]
        if visitor is not None:
            visitor(current)
