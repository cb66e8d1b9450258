"""Layout module — hierarchical (Sugiyama-style) DAG layout.

Phases:
  1. Layer assignment (longest path from sources)
  2. Dummy node insertion (every edge spans exactly one layer)
  3. Crossing minimization (barycenter heuristic)
  4. Coordinate assignment (pixel positions along the requested direction)

Followed by an optional centering step (``center_layout``).

The layout assumes an acyclic graph. Callers gate layout requests behind
``validate_dag``; a cyclic graph raises ``CyclicGraphError``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

import networkx as nx

from dag_editor.errors import CyclicGraphError, InvalidDirectionError
from dag_editor.graph import HANDLE_POSITIONS, Direction, Edge, Node, Position, build_digraph

logger = logging.getLogger(__name__)

# Fixed node footprint (pixels) used for spacing and bounding boxes.
NODE_WIDTH: float = 172.0
NODE_HEIGHT: float = 60.0
LAYOUT_MARGIN: float = 20.0  # offset of the layout's top-left corner
CENTER_MARGIN: float = 50.0
MAX_CROSSING_PASSES: int = 24


@dataclass
class LayoutSpacing:
    """Gaps in pixels.

    Attributes:
        node: Between neighbouring nodes in the same layer.
        rank: Between consecutive layers.
        edge: Beside dummy nodes that carry long edges through a layer.
    """

    node: float = 50.0
    rank: float = 100.0
    edge: float = 10.0


def parse_direction(value: str | Direction) -> Direction:
    """Accept a Direction or one of "TB", "BT", "LR", "RL" (case-insensitive)."""
    if isinstance(value, Direction):
        return value
    try:
        return Direction(value.upper())
    except (ValueError, AttributeError):
        raise InvalidDirectionError(f"Unknown layout direction: {value!r}") from None


# ─── Layer Assignment ─────────────────────────────────────────────────────────


class LayerAssignment:
    """Result of layer assignment: each node is assigned a layer (rank).

    Layer 0 holds the sources (top for TB, left for LR).

    Attributes:
        layers: Maps node id → layer index.
        layer_count: Total number of layers.
    """

    def __init__(self, layers: dict[str, int], layer_count: int) -> None:
        self.layers = layers
        self.layer_count = layer_count

    @classmethod
    def assign(cls, dag: nx.DiGraph) -> LayerAssignment:
        """Longest-path layering: layer[v] = max(layer[u] + 1) over edges u → v.

        Nodes are relaxed in topological order, so a single pass suffices.
        """
        try:
            order = list(nx.topological_sort(dag))
        except nx.NetworkXUnfeasible:
            cycle = [src for src, _ in nx.find_cycle(dag)]
            raise CyclicGraphError(cycle) from None

        layers: dict[str, int] = {node_id: 0 for node_id in dag.nodes}
        for node_id in order:
            for succ in dag.successors(node_id):
                if layers[succ] < layers[node_id] + 1:
                    layers[succ] = layers[node_id] + 1

        layer_count = (max(layers.values()) + 1) if layers else 0
        return cls(layers=layers, layer_count=layer_count)


# ─── Dummy Node Insertion ──────────────────────────────────────────────────────

DUMMY_PREFIX = "__dummy_"


@dataclass
class AugmentedGraph:
    """A layered graph where every edge connects adjacent layers.

    Long edges of the input are replaced by chains of dummy nodes, one per
    intermediate layer. Dummy ids start with DUMMY_PREFIX and never collide
    with an input node id; ``dummies`` is the authoritative set, so an input
    node whose id happens to carry the prefix is still a real node.
    """

    graph: nx.DiGraph
    layers: dict[str, int]
    layer_count: int
    dummies: set[str] = field(default_factory=set)

    def is_dummy(self, node_id: str) -> bool:
        return node_id in self.dummies


def insert_dummy_nodes(dag: nx.DiGraph, la: LayerAssignment) -> AugmentedGraph:
    """Replace each edge u → v with layer[v] - layer[u] > 1 by u → d₁ → … → v."""
    g: nx.DiGraph = nx.DiGraph()
    g.add_nodes_from(dag.nodes(data=True))
    layers: dict[str, int] = dict(la.layers)

    dummies: set[str] = set()
    edge_counter = 0
    for src_id, tgt_id in list(dag.edges()):
        src_layer = layers[src_id]
        span = layers[tgt_id] - src_layer
        if span <= 1:
            g.add_edge(src_id, tgt_id)
            continue

        chain_prev = src_id
        for i in range(span - 1):
            dummy_id = f"{DUMMY_PREFIX}{edge_counter}_{i}"
            while dummy_id in g:
                dummy_id += "_"
            g.add_node(dummy_id)
            dummies.add(dummy_id)
            layers[dummy_id] = src_layer + i + 1
            g.add_edge(chain_prev, dummy_id)
            chain_prev = dummy_id
        g.add_edge(chain_prev, tgt_id)
        edge_counter += 1

    return AugmentedGraph(graph=g, layers=layers, layer_count=la.layer_count, dummies=dummies)


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────


def minimise_crossings(aug: AugmentedGraph) -> list[list[str]]:
    """Order each layer to reduce edge crossings.

    The initial order is graph insertion order (input node order, dummies
    last), which keeps the result deterministic. Top-down and bottom-up
    barycenter sweeps repeat until the crossing count stops improving; the
    best ordering seen is returned.
    """
    layer_count = aug.layer_count

    ordering: list[list[str]] = [[] for _ in range(layer_count)]
    for node_id in aug.graph.nodes:
        ordering[aug.layers[node_id]].append(node_id)

    best = count_crossings(ordering, aug.graph)
    best_ordering = [list(layer) for layer in ordering]

    for _pass in range(MAX_CROSSING_PASSES):
        if best == 0:
            break

        # Top-down sweep: predecessor positions as barycenter weights.
        for layer_idx in range(1, layer_count):
            prev = {nid: float(i) for i, nid in enumerate(ordering[layer_idx - 1])}
            ordering[layer_idx].sort(key=lambda a, p=prev: _barycenter(a, aug.graph, p, "incoming"))

        # Bottom-up sweep: successor positions as barycenter weights.
        for layer_idx in range(layer_count - 2, -1, -1):
            nxt = {nid: float(i) for i, nid in enumerate(ordering[layer_idx + 1])}
            ordering[layer_idx].sort(key=lambda a, n=nxt: _barycenter(a, aug.graph, n, "outgoing"))

        new = count_crossings(ordering, aug.graph)
        if new >= best:
            break
        best = new
        best_ordering = [list(layer) for layer in ordering]

    return best_ordering


def _barycenter(
    node_id: str,
    graph: nx.DiGraph,
    neighbor_pos: dict[str, float],
    direction: str,
) -> float:
    """Average position of a node's neighbours in the adjacent layer.

    direction: "incoming" to look at predecessors, "outgoing" for successors.
    Returns float('inf') if the node has no neighbours there, which moves it
    to the end of the layer (the sort is stable).
    """
    neighbors = graph.predecessors(node_id) if direction == "incoming" else graph.successors(node_id)
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return float("inf")
    return sum(positions) / len(positions)


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive layers (inversion count)."""
    total = 0
    for l_idx in range(len(ordering) - 1):
        tgt_pos = {nid: i for i, nid in enumerate(ordering[l_idx + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[l_idx]):
            for nb in graph.successors(src_id):
                if nb in tgt_pos:
                    edges.append((sp, tgt_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] - ej[0]) * (ei[1] - ej[1]) < 0:
                    total += 1
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


@dataclass
class LayoutNode:
    """A positioned node (real or dummy) in pixel coordinates, top-left corner."""

    id: str
    layer: int
    order: int
    x: float
    y: float
    width: float
    height: float


def assign_coordinates(
    ordering: list[list[str]],
    aug: AugmentedGraph,
    spacing: LayoutSpacing,
    direction: Direction = Direction.TB,
) -> list[LayoutNode]:
    """Assign pixel coordinates to every node of the augmented graph.

    Placement happens in a direction-neutral frame: ``rank`` runs along the
    layer axis and ``cross`` along the layer itself. Each layer is centred on
    the widest one, then nudged so nodes line up with their parents
    (top-down pass) and children (bottom-up pass). Finally the frame is
    mapped onto x/y: TB and BT put ranks on y, LR and RL on x, and BT/RL
    reverse the rank axis.
    """
    horizontal = direction.is_horizontal
    cross_size = NODE_HEIGHT if horizontal else NODE_WIDTH
    rank_size = NODE_WIDTH if horizontal else NODE_HEIGHT

    def extent(node_id: str) -> float:
        return 0.0 if aug.is_dummy(node_id) else cross_size

    def gap(left: str, right: str) -> float:
        if aug.is_dummy(left) or aug.is_dummy(right):
            return spacing.edge
        return spacing.node

    # Initial placement: each layer packed left to right, centred on the widest.
    cross: dict[str, float] = {}
    layer_widths: list[float] = []
    for layer_nodes in ordering:
        offset = 0.0
        for i, node_id in enumerate(layer_nodes):
            if i > 0:
                offset += gap(layer_nodes[i - 1], node_id)
            cross[node_id] = offset
            offset += extent(node_id)
        layer_widths.append(offset)

    max_width = max(layer_widths, default=0.0)
    for layer_idx, layer_nodes in enumerate(ordering):
        shift = (max_width - layer_widths[layer_idx]) / 2
        for node_id in layer_nodes:
            cross[node_id] += shift

    def center(node_id: str) -> float:
        return cross[node_id] + extent(node_id) / 2

    def align(layer_nodes: list[str], neighbours_of) -> None:
        """Shift a whole layer so its mean centre matches its neighbours' mean centre.

        Only small corrections (up to one node gap) are applied so layers keep
        their centred shape.
        """
        own: list[float] = []
        other: list[float] = []
        for node_id in layer_nodes:
            for nb in neighbours_of(node_id):
                own.append(center(node_id))
                other.append(center(nb))
        if not own:
            return
        shift = sum(other) / len(other) - sum(own) / len(own)
        if abs(shift) > spacing.node:
            return
        for node_id in layer_nodes:
            cross[node_id] += shift

    for layer_idx in range(1, len(ordering)):
        align(ordering[layer_idx], aug.graph.predecessors)
    for layer_idx in range(len(ordering) - 2, -1, -1):
        align(ordering[layer_idx], aug.graph.successors)

    # Normalize: the leftmost node starts at cross = 0.
    min_cross = min(cross.values(), default=0.0)

    last_layer = len(ordering) - 1
    nodes: list[LayoutNode] = []
    for layer_idx, layer_nodes in enumerate(ordering):
        rank_idx = last_layer - layer_idx if direction.is_reversed else layer_idx
        rank_pos = LAYOUT_MARGIN + rank_idx * (rank_size + spacing.rank)
        for order, node_id in enumerate(layer_nodes):
            cross_pos = LAYOUT_MARGIN + cross[node_id] - min_cross
            if horizontal:
                x, y = rank_pos, cross_pos
            else:
                x, y = cross_pos, rank_pos
            dummy = aug.is_dummy(node_id)
            nodes.append(
                LayoutNode(
                    id=node_id,
                    layer=layer_idx,
                    order=order,
                    x=x,
                    y=y,
                    width=0.0 if dummy else NODE_WIDTH,
                    height=0.0 if dummy else NODE_HEIGHT,
                )
            )

    return nodes


# ─── Full Layout Pipeline ──────────────────────────────────────────────────────


def compute_layout(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    direction: Direction | str = Direction.TB,
    spacing: LayoutSpacing | None = None,
) -> tuple[list[Node], list[Edge]]:
    """Position every node and return ``(positioned_nodes, edges)``.

    Node order and all non-positional fields are preserved; each node gains
    handle orientation for ``direction``. Edges are returned unchanged.
    Edges touching unknown nodes and self-loops do not influence placement.

    Raises:
        CyclicGraphError: If the graph contains a cycle.
        InvalidDirectionError: If ``direction`` is not a known direction.
    """
    direction = parse_direction(direction)
    if not nodes:
        return [], list(edges)
    spacing = spacing or LayoutSpacing()

    graph = build_digraph(nodes, edges)
    la = LayerAssignment.assign(graph)
    aug = insert_dummy_nodes(graph, la)
    ordering = minimise_crossings(aug)
    placed = {ln.id: ln for ln in assign_coordinates(ordering, aug, spacing, direction)}

    target_position, source_position = HANDLE_POSITIONS[direction]
    positioned = [
        replace(
            node,
            position=Position(x=placed[node.id].x, y=placed[node.id].y),
            target_position=target_position,
            source_position=source_position,
        )
        for node in nodes
    ]
    logger.debug(
        "Laid out %d nodes in %d layers (direction=%s)",
        len(positioned),
        la.layer_count,
        direction.value,
    )
    return positioned, list(edges)


# ─── Bounds & Centering ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LayoutBounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float
    width: float
    height: float


def get_layout_bounds(nodes: Sequence[Node]) -> LayoutBounds:
    """Bounding box of all nodes, each counted with the fixed node footprint."""
    if not nodes:
        return LayoutBounds(0.0, 0.0, 0.0, 0.0, 0.0, 0.0)

    min_x = min(n.position.x for n in nodes)
    min_y = min(n.position.y for n in nodes)
    max_x = max(n.position.x + NODE_WIDTH for n in nodes)
    max_y = max(n.position.y + NODE_HEIGHT for n in nodes)
    return LayoutBounds(
        min_x=min_x,
        min_y=min_y,
        max_x=max_x,
        max_y=max_y,
        width=max_x - min_x,
        height=max_y - min_y,
    )


def center_layout(nodes: Sequence[Node], edges: Sequence[Edge]) -> tuple[list[Node], list[Edge]]:
    """Translate all nodes so the bounding box sits around the origin.

    Each coordinate becomes ``p - min + CENTER_MARGIN - extent / 2``.
    """
    if not nodes:
        return list(nodes), list(edges)

    bounds = get_layout_bounds(nodes)
    dx = CENTER_MARGIN - bounds.min_x - bounds.width / 2
    dy = CENTER_MARGIN - bounds.min_y - bounds.height / 2
    centered = [
        replace(node, position=Position(x=node.position.x + dx, y=node.position.y + dy))
        for node in nodes
    ]
    return centered, list(edges)
