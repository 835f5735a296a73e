from query_builder.model.model import Model
from query_builder.model.node import Group, Node, NodeKind, Rule
from query_builder.model.notifier import BuilderEvent, Notifier

__all__ = [
    "BuilderEvent",
    "Group",
    "Model",
    "Node",
    "NodeKind",
    "Notifier",
    "Rule",
]
