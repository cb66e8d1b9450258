"""Validation module — structural checks that keep an edited graph a DAG.

Two kinds of check live here:

  1. Gates, run before an edge is inserted (``validate_connection`` and a
     hypothetical ``detect_cycles``). A failed gate rejects the edit.
  2. Reports, run over the whole graph after any change (``validate_dag``).
     A report never blocks anything; it lists errors and warnings for display.

All functions are pure. Edges that reference node ids missing from the node
list are tolerated: their endpoints join the adjacency map as implicit nodes
and ``validate_dag`` lists them as dangling connections.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

from dag_editor.graph import Edge, Node

ARROW = " → "

# ─── Connection Gate ──────────────────────────────────────────────────────────


def validate_connection(source: str, target: str, edges: Sequence[Edge]) -> bool:
    """Return False for a self-loop or an already existing ``source → target`` edge."""
    if source == target:
        return False
    return not any(edge.source == source and edge.target == target for edge in edges)


# ─── Cycle Detection (iterative DFS) ──────────────────────────────────────────


def _adjacency(nodes: Sequence[Node], edges: Sequence[Edge]) -> dict[str, list[str]]:
    """Adjacency lists keyed by node id, in node-list order then edge order.

    Endpoints that only appear in edges are added as implicit nodes.
    """
    adjacency: dict[str, list[str]] = {node.id: [] for node in nodes}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
        adjacency.setdefault(edge.target, [])
    return adjacency


def _find_back_edge(
    adjacency: dict[str, list[str]],
) -> tuple[str, str, dict[str, str | None]] | None:
    """Depth-first search for the first back-edge.

    Uses an explicit stack of (node id, neighbour iterator) frames instead of
    recursion. ``on_stack`` holds the nodes on the current DFS path and
    ``visited`` every node ever entered; only an edge into ``on_stack`` closes
    a cycle, an edge into an already finished node does not.

    Returns ``(closing_node, cycle_start, parent)`` or None if acyclic.
    """
    visited: set[str] = set()
    on_stack: set[str] = set()
    parent: dict[str, str | None] = {}

    for root in adjacency:
        if root in visited:
            continue
        parent[root] = None
        visited.add(root)
        on_stack.add(root)
        stack: list[tuple[str, Iterator[str]]] = [(root, iter(adjacency[root]))]

        while stack:
            node_id, neighbours = stack[-1]
            for neighbour in neighbours:
                if neighbour in on_stack:
                    return node_id, neighbour, parent
                if neighbour not in visited:
                    visited.add(neighbour)
                    on_stack.add(neighbour)
                    parent[neighbour] = node_id
                    stack.append((neighbour, iter(adjacency[neighbour])))
                    break
            else:
                # Every neighbour explored: the node leaves the current path.
                on_stack.discard(node_id)
                stack.pop()

    return None


def detect_cycles(nodes: Sequence[Node], edges: Sequence[Edge]) -> bool:
    """True if the directed graph induced by ``edges`` contains a cycle."""
    if not nodes or not edges:
        return False
    return _find_back_edge(_adjacency(nodes, edges)) is not None


def find_cycle_path(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[str]:
    """Node ids of the first cycle found, in forward order.

    The back-edge ``closing → start`` closes the cycle; walking parent
    pointers from ``closing`` back to ``start`` and reversing gives the path.
    A self-loop yields a single-element path. Returns [] when acyclic.
    """
    if not nodes or not edges:
        return []

    found = _find_back_edge(_adjacency(nodes, edges))
    if found is None:
        return []
    closing, start, parent = found

    path = [closing]
    current: str | None = closing
    while current != start:
        current = parent.get(current)
        if current is None:
            return []
        path.append(current)
    path.reverse()
    return path


# ─── Connectivity ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class NodeConnections:
    incoming: int
    outgoing: int


def get_isolated_nodes(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[str]:
    """Ids of nodes that are neither the source nor the target of any edge.

    Ordered as in ``nodes``, without duplicates.
    """
    connected: set[str] = set()
    for edge in edges:
        connected.add(edge.source)
        connected.add(edge.target)

    isolated: list[str] = []
    for node in nodes:
        if node.id not in connected and node.id not in isolated:
            isolated.append(node.id)
    return isolated


def get_node_connections(node_id: str, edges: Sequence[Edge]) -> NodeConnections:
    incoming = sum(1 for edge in edges if edge.target == node_id)
    outgoing = sum(1 for edge in edges if edge.source == node_id)
    return NodeConnections(incoming=incoming, outgoing=outgoing)


# ─── Full-Graph Report ────────────────────────────────────────────────────────


@dataclass
class ValidationResult:
    """Outcome of ``validate_dag``. Warnings never affect ``is_valid``."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class GraphStats:
    node_count: int
    edge_count: int
    isolated_nodes: int
    has_cycles: bool


def _label_lookup(nodes: Sequence[Node]) -> dict[str, str]:
    labels: dict[str, str] = {}
    for node in nodes:
        labels.setdefault(node.id, node.display_label)
    return labels


def validate_dag(nodes: Sequence[Node], edges: Sequence[Edge]) -> ValidationResult:
    """Check the whole graph and report every structural problem found.

    Errors: cycles, isolated nodes, duplicate connections, dangling
    connections. Warnings: an empty graph, source-only and sink-only nodes.
    The graph is never modified and the result depends only on the input.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if not nodes:
        warnings.append("Graph is empty")
        return ValidationResult(is_valid=True, errors=errors, warnings=warnings)

    labels = _label_lookup(nodes)

    def label_of(node_id: str) -> str:
        return labels.get(node_id) or node_id

    # Cycles.
    if detect_cycles(nodes, edges):
        cycle_path = find_cycle_path(nodes, edges)
        if cycle_path:
            errors.append(f"Cycle detected: {ARROW.join(label_of(n) for n in cycle_path)}")
        else:
            errors.append("Cycle detected in graph")

    # Isolated nodes.
    isolated = get_isolated_nodes(nodes, edges)
    if len(isolated) == 1:
        errors.append(f"Isolated node: {label_of(isolated[0])} (must have at least 1 connection)")
    elif isolated:
        names = ", ".join(label_of(n) for n in isolated)
        errors.append(f"Isolated nodes: {names} (must have at least 1 connection each)")

    # Flow anomalies: one combined warning.
    flow_issues: list[str] = []
    for node in nodes:
        connections = get_node_connections(node.id, edges)
        if connections.incoming == 0 and connections.outgoing > 0:
            flow_issues.append(f"{node.display_label} (source only)")
        elif connections.outgoing == 0 and connections.incoming > 0:
            flow_issues.append(f"{node.display_label} (sink only)")
    if flow_issues:
        warnings.append(f"Potential flow issues: {', '.join(flow_issues)}")

    # Duplicate connections, e.g. after a bulk load that bypassed the gate.
    seen: set[tuple[str, str]] = set()
    duplicates: list[str] = []
    for edge in edges:
        if edge.key in seen:
            duplicates.append(f"{edge.source}->{edge.target}")
        else:
            seen.add(edge.key)
    if duplicates:
        errors.append(f"Duplicate connections: {', '.join(duplicates)}")

    # Dangling connections.
    dangling = [edge.id for edge in edges if edge.source not in labels or edge.target not in labels]
    if dangling:
        errors.append(f"Dangling connections: {', '.join(dangling)} (reference missing nodes)")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def get_graph_stats(nodes: Sequence[Node], edges: Sequence[Edge]) -> GraphStats:
    return GraphStats(
        node_count=len(nodes),
        edge_count=len(edges),
        isolated_nodes=len(get_isolated_nodes(nodes, edges)),
        has_cycles=detect_cycles(nodes, edges),
    )
