"""Graph entities: objects, nodes, edges, the root and walkers."""

from .edge import Edge
from .node import Node
from .object import Object
from .root import ROOT_ID, Root
from .walker import Walker, WalkerStatus

__all__ = [
    "Object",
    "Node",
    "Edge",
    "Root",
    "ROOT_ID",
    "Walker",
    "WalkerStatus",
]
