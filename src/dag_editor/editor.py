"""Editor — the composition root for interactive DAG editing.

Every edit follows the same sequence: gate it (validation), snapshot the
pre-edit state (history), then commit the new node/edge lists. A rejected
edit returns False/None and leaves both the graph and the history untouched,
so partial application is never observable.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import replace
from pathlib import Path

from dag_editor.document import GraphDocument
from dag_editor.graph import Direction, Edge, GraphSnapshot, Node, Position, edge_id_for
from dag_editor.history import UndoRedoHistory
from dag_editor.layout import LayoutSpacing, center_layout, compute_layout, parse_direction
from dag_editor.validation import (
    GraphStats,
    ValidationResult,
    detect_cycles,
    get_graph_stats,
    validate_connection,
    validate_dag,
)

logger = logging.getLogger(__name__)

DUPLICATE_OFFSET = 50.0
# New nodes land at a random spot in [NEW_NODE_MIN, NEW_NODE_MIN + NEW_NODE_SPREAD).
NEW_NODE_MIN = 100.0
NEW_NODE_SPREAD = 300.0


def _next_numeric_id(nodes: Iterable[Node]) -> int:
    """One past the largest numeric node id (non-numeric ids count as 0)."""
    highest = 0
    for node in nodes:
        if node.id.isdigit():
            highest = max(highest, int(node.id))
    return highest + 1


class DagEditor:
    """A single-session editor over an in-memory graph.

    Args:
        nodes: Initial nodes.
        edges: Initial edges.
        rng: Source of random placement for new nodes.
    """

    def __init__(
        self,
        nodes: Sequence[Node] = (),
        edges: Sequence[Edge] = (),
        rng: random.Random | None = None,
    ) -> None:
        self._nodes: list[Node] = list(nodes)
        self._edges: list[Edge] = list(edges)
        self._rng = rng or random.Random()
        self._next_id = _next_numeric_id(self._nodes)
        self.history = UndoRedoHistory(self._set_nodes, self._set_edges, self.snapshot)

    @classmethod
    def with_demo_graph(cls, rng: random.Random | None = None) -> DagEditor:
        """An editor preloaded with a start node feeding two processes."""
        nodes = [
            Node(id="1", position=Position(250, 25), label="Start Node"),
            Node(id="2", position=Position(100, 125), label="Process A"),
            Node(id="3", position=Position(400, 125), label="Process B"),
        ]
        edges = [
            Edge(id="e1-2", source="1", target="2"),
            Edge(id="e1-3", source="1", target="3"),
        ]
        return cls(nodes, edges, rng=rng)

    # ─── State ────────────────────────────────────────────────────────────────

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes)

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges)

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot.capture(self._nodes, self._edges)

    def get_node(self, node_id: str) -> Node | None:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    @property
    def validation(self) -> ValidationResult:
        """Full report for the current graph, recomputed on every access."""
        return validate_dag(self._nodes, self._edges)

    @property
    def stats(self) -> GraphStats:
        return get_graph_stats(self._nodes, self._edges)

    def _set_nodes(self, nodes: list[Node]) -> None:
        self._nodes = list(nodes)

    def _set_edges(self, edges: list[Edge]) -> None:
        self._edges = list(edges)

    def _commit(self, nodes: list[Node] | None = None, edges: list[Edge] | None = None) -> None:
        """Snapshot the current state, then replace nodes and/or edges."""
        self.history.take_snapshot(self._nodes, self._edges)
        if nodes is not None:
            self._nodes = nodes
        if edges is not None:
            self._edges = edges

    def _allocate_node_id(self) -> str:
        existing = {node.id for node in self._nodes}
        while str(self._next_id) in existing:
            self._next_id += 1
        node_id = str(self._next_id)
        self._next_id += 1
        return node_id

    def _allocate_edge_id(self, source: str, target: str) -> str:
        existing = {edge.id for edge in self._edges}
        base = edge_id_for(source, target)
        candidate = base
        suffix = 1
        while candidate in existing:
            candidate = f"{base}-{suffix}"
            suffix += 1
        return candidate

    # ─── Nodes ────────────────────────────────────────────────────────────────

    def add_node(self, label: str | None = None, position: Position | None = None) -> Node:
        node_id = self._allocate_node_id()
        if position is None:
            position = Position(
                x=self._rng.random() * NEW_NODE_SPREAD + NEW_NODE_MIN,
                y=self._rng.random() * NEW_NODE_SPREAD + NEW_NODE_MIN,
            )
        node = Node(id=node_id, position=position, label=label if label is not None else f"Node {node_id}")
        self._commit(nodes=[*self._nodes, node])
        logger.debug("Added node %s", node_id)
        return node

    def duplicate_node(self, node_id: str) -> Node | None:
        original = self.get_node(node_id)
        if original is None:
            return None
        copy = replace(
            original,
            id=self._allocate_node_id(),
            position=Position(
                x=original.position.x + DUPLICATE_OFFSET,
                y=original.position.y + DUPLICATE_OFFSET,
            ),
            label=f"{original.label} Copy",
            selected=False,
        )
        self._commit(nodes=[*self._nodes, copy])
        logger.debug("Duplicated node %s as %s", node_id, copy.id)
        return copy

    def update_label(self, node_id: str, label: str) -> bool:
        node = self.get_node(node_id)
        if node is None or node.label == label:
            return False
        self._commit(nodes=[replace(n, label=label) if n.id == node_id else n for n in self._nodes])
        return True

    def move_node(self, node_id: str, x: float, y: float) -> bool:
        node = self.get_node(node_id)
        if node is None or (node.position.x, node.position.y) == (x, y):
            return False
        position = Position(x=x, y=y)
        self._commit(nodes=[replace(n, position=position) if n.id == node_id else n for n in self._nodes])
        return True

    def delete_nodes(self, node_ids: Iterable[str]) -> bool:
        """Delete nodes and every edge touching them."""
        doomed = set(node_ids) & {node.id for node in self._nodes}
        if not doomed:
            return False
        self._commit(
            nodes=[n for n in self._nodes if n.id not in doomed],
            edges=[e for e in self._edges if e.source not in doomed and e.target not in doomed],
        )
        logger.debug("Deleted nodes %s", sorted(doomed))
        return True

    # ─── Edges ────────────────────────────────────────────────────────────────

    def connect(self, source: str, target: str) -> Edge | None:
        """Add ``source → target`` if it keeps the graph a DAG.

        Rejected: unknown endpoints, self-loops, duplicates, and edges that
        would close a cycle. Returns the new edge or None.
        """
        if self.get_node(source) is None or self.get_node(target) is None:
            logger.warning("Rejected connection %s -> %s: unknown node", source, target)
            return None
        if not validate_connection(source, target, self._edges):
            logger.warning("Rejected connection %s -> %s: self-loop or duplicate", source, target)
            return None

        edge = Edge(id=self._allocate_edge_id(source, target), source=source, target=target)
        candidate = [*self._edges, edge]
        if detect_cycles(self._nodes, candidate):
            logger.warning("Rejected connection %s -> %s: would create a cycle", source, target)
            return None

        self._commit(edges=candidate)
        logger.debug("Connected %s -> %s as %s", source, target, edge.id)
        return edge

    def delete_edges(self, edge_ids: Iterable[str]) -> bool:
        doomed = set(edge_ids) & {edge.id for edge in self._edges}
        if not doomed:
            return False
        self._commit(edges=[e for e in self._edges if e.id not in doomed])
        return True

    # ─── Selection ────────────────────────────────────────────────────────────

    def select(self, node_ids: Iterable[str] = (), edge_ids: Iterable[str] = ()) -> None:
        """Replace the current selection. Selection is not recorded in history."""
        node_ids, edge_ids = set(node_ids), set(edge_ids)
        self._nodes = [replace(n, selected=n.id in node_ids) for n in self._nodes]
        self._edges = [replace(e, selected=e.id in edge_ids) for e in self._edges]

    def delete_selected(self) -> bool:
        """Delete selected nodes (with their edges) and selected edges as one edit."""
        node_ids = {n.id for n in self._nodes if n.selected}
        edge_ids = {e.id for e in self._edges if e.selected}
        if not node_ids and not edge_ids:
            return False
        self._commit(
            nodes=[n for n in self._nodes if n.id not in node_ids],
            edges=[
                e
                for e in self._edges
                if e.id not in edge_ids and e.source not in node_ids and e.target not in node_ids
            ],
        )
        return True

    # ─── Whole Graph ──────────────────────────────────────────────────────────

    def clear(self) -> bool:
        if not self._nodes and not self._edges:
            return False
        self._commit(nodes=[], edges=[])
        logger.info("Cleared graph")
        return True

    def apply_layout(
        self,
        direction: Direction | str = Direction.TB,
        spacing: LayoutSpacing | None = None,
    ) -> bool:
        """Reflow and centre all nodes. Refused for an empty or cyclic graph."""
        direction = parse_direction(direction)
        if not self._nodes:
            logger.warning("Layout skipped: graph is empty")
            return False
        if detect_cycles(self._nodes, self._edges):
            logger.warning("Layout skipped: graph contains a cycle")
            return False

        laid_out, edges = compute_layout(self._nodes, self._edges, direction, spacing)
        centered, edges = center_layout(laid_out, edges)
        self._commit(nodes=centered, edges=edges)
        logger.info("Applied %s layout to %d nodes", direction.value, len(centered))
        return True

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    # ─── Persistence ──────────────────────────────────────────────────────────

    def to_document(
        self,
        name: str,
        description: str = "",
        tags: Sequence[str] = (),
        is_public: bool = False,
    ) -> GraphDocument:
        return GraphDocument.from_graph(name, self._nodes, self._edges, description, tags, is_public)

    def load_document(self, document: GraphDocument) -> None:
        """Replace the graph with a document's content as one undoable edit.

        The graph is loaded as-is, even if invalid; ``validation`` reports
        any problems.
        """
        nodes, edges = document.to_graph()
        self._commit(nodes=nodes, edges=edges)
        self._next_id = _next_numeric_id(nodes)
        logger.info("Loaded graph %r: %d nodes, %d edges", document.name, len(nodes), len(edges))

    def save(self, path: str | Path, name: str | None = None) -> Path:
        """Write the graph as a JSON document. The name defaults to the file stem."""
        path = Path(path)
        document = self.to_document(name or path.stem)
        path.write_text(document.to_json(), encoding="utf-8")
        logger.info("Saved graph to %s", path)
        return path

    def load(self, path: str | Path) -> GraphDocument:
        """Load a JSON document from disk.

        Plain exports holding only ``nodes`` and ``edges`` (plus ignored keys
        such as ``validation`` and ``timestamp``) are accepted and named after
        the file stem.

        Raises:
            GraphDocumentError: If the file is not a valid graph document.
        """
        path = Path(path)
        document = GraphDocument.from_json(path.read_bytes(), default_name=path.stem)
        self.load_document(document)
        return document
