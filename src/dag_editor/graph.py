"""Graph model — nodes, edges and immutable snapshots of an editable DAG.

Every entity is a frozen dataclass. An edit produces a new value via
``dataclasses.replace`` so snapshots handed to the history engine can never be
changed after capture.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

import networkx as nx

DEFAULT_NODE_TYPE = "editableNode"


class Direction(str, Enum):
    """Layout direction: the axis along which ranks advance."""

    TB = "TB"  # top → bottom
    BT = "BT"  # bottom → top
    LR = "LR"  # left → right
    RL = "RL"  # right → left

    @property
    def is_horizontal(self) -> bool:
        return self in (Direction.LR, Direction.RL)

    @property
    def is_reversed(self) -> bool:
        return self in (Direction.BT, Direction.RL)


class HandlePosition(str, Enum):
    """Side of a node where connections attach."""

    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


# Direction → (target handle, source handle).
HANDLE_POSITIONS: dict[Direction, tuple[HandlePosition, HandlePosition]] = {
    Direction.TB: (HandlePosition.TOP, HandlePosition.BOTTOM),
    Direction.BT: (HandlePosition.BOTTOM, HandlePosition.TOP),
    Direction.LR: (HandlePosition.LEFT, HandlePosition.RIGHT),
    Direction.RL: (HandlePosition.RIGHT, HandlePosition.LEFT),
}


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class Node:
    """A graph vertex. Identity is ``id``; everything else is editable state.

    ``source_position``/``target_position`` are set by the layout engine and
    record which side of the node emits and receives connections.
    """

    id: str
    position: Position
    label: str = ""
    selected: bool = False
    type: str = DEFAULT_NODE_TYPE
    source_position: HandlePosition | None = None
    target_position: HandlePosition | None = None

    @property
    def display_label(self) -> str:
        """Label used in user-facing messages; falls back to the id."""
        return self.label or self.id


@dataclass(frozen=True)
class Edge:
    """A directed connection ``source → target`` between two node ids."""

    id: str
    source: str
    target: str
    selected: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.source, self.target)


@dataclass(frozen=True)
class GraphSnapshot:
    """The full node/edge state at one instant."""

    nodes: tuple[Node, ...] = field(default_factory=tuple)
    edges: tuple[Edge, ...] = field(default_factory=tuple)

    @classmethod
    def capture(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> GraphSnapshot:
        return cls(nodes=tuple(nodes), edges=tuple(edges))


def edge_id_for(source: str, target: str) -> str:
    """Conventional edge id derived from its endpoints."""
    return f"e{source}-{target}"


def build_digraph(nodes: Iterable[Node], edges: Iterable[Edge]) -> nx.DiGraph:
    """Build a networkx DiGraph from the model.

    Node insertion order follows ``nodes``. Edges whose endpoints are not both
    present, and self-loops, are left out. Each node keeps its model object
    under the ``data`` attribute.
    """
    g: nx.DiGraph = nx.DiGraph()
    for node in nodes:
        g.add_node(node.id, data=node)
    for edge in edges:
        if edge.source == edge.target:
            continue
        if edge.source in g and edge.target in g:
            g.add_edge(edge.source, edge.target, data=edge)
    return g
