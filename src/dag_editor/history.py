"""History module — snapshot-based undo/redo.

Two unbounded stacks of ``GraphSnapshot`` (oldest first). The caller takes a
snapshot of the pre-mutation state before every edit. ``undo`` and ``redo``
swap the live state with the top of the opposite stack, so redo restores
exactly the state that existed before the matching undo.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from dag_editor.graph import Edge, GraphSnapshot, Node


class UndoRedoHistory:
    """Undo/redo stacks bound to a live graph.

    Args:
        set_nodes: Replaces the live node list.
        set_edges: Replaces the live edge list.
        get_state: Returns the live state; read by ``undo``/``redo`` to keep
            the opposite stack in sync.
    """

    def __init__(
        self,
        set_nodes: Callable[[list[Node]], None],
        set_edges: Callable[[list[Edge]], None],
        get_state: Callable[[], GraphSnapshot],
    ) -> None:
        self._set_nodes = set_nodes
        self._set_edges = set_edges
        self._get_state = get_state
        self._past: list[GraphSnapshot] = []
        self._future: list[GraphSnapshot] = []

    @property
    def past(self) -> tuple[GraphSnapshot, ...]:
        return tuple(self._past)

    @property
    def future(self) -> tuple[GraphSnapshot, ...]:
        return tuple(self._future)

    @property
    def can_undo(self) -> bool:
        return len(self._past) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._future) > 0

    def take_snapshot(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> None:
        """Record the pre-mutation state. Invalidates the redo stack."""
        self._past.append(GraphSnapshot.capture(nodes, edges))
        self._future.clear()

    def undo(self) -> bool:
        """Restore the most recent snapshot. Returns False when there is none."""
        if not self._past:
            return False
        previous = self._past.pop()
        self._future.append(self._get_state())
        self._apply(previous)
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone state. Returns False when there is none."""
        if not self._future:
            return False
        following = self._future.pop()
        self._past.append(self._get_state())
        self._apply(following)
        return True

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    def _apply(self, snapshot: GraphSnapshot) -> None:
        self._set_nodes(list(snapshot.nodes))
        self._set_edges(list(snapshot.edges))
