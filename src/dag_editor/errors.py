"""Exception hierarchy.

Rejected edits (self-loops, duplicate or cycle-closing connections) are not
errors: the editor reports them as ``False``/``None``. These exceptions cover
misuse at the package boundaries only.
"""

from __future__ import annotations


class DagEditorError(Exception):
    """Base class for all dag_editor errors."""


class CyclicGraphError(DagEditorError):
    """Raised when a layout is requested for a graph that contains a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Cannot lay out a cyclic graph: {' -> '.join(cycle)}")


class InvalidDirectionError(DagEditorError, ValueError):
    """Raised when a layout direction string is not one of TB, BT, LR, RL."""


class GraphDocumentError(DagEditorError):
    """Raised when a persisted graph document cannot be parsed or validated."""


class GraphNotFoundError(DagEditorError, KeyError):
    """Raised by the document store for an unknown graph id."""

    def __init__(self, graph_id: str) -> None:
        self.graph_id = graph_id
        super().__init__(f"Graph not found: {graph_id}")
