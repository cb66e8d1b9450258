"""dag_editor — consistency, layout and history engines for an interactive DAG editor."""

from dag_editor.editor import DagEditor
from dag_editor.graph import Direction, Edge, GraphSnapshot, HandlePosition, Node, Position
from dag_editor.history import UndoRedoHistory
from dag_editor.layout import LayoutSpacing, center_layout, compute_layout
from dag_editor.validation import (
    ValidationResult,
    detect_cycles,
    find_cycle_path,
    get_isolated_nodes,
    get_node_connections,
    validate_connection,
    validate_dag,
)

__all__ = [
    "DagEditor",
    "Direction",
    "Edge",
    "GraphSnapshot",
    "HandlePosition",
    "LayoutSpacing",
    "Node",
    "Position",
    "UndoRedoHistory",
    "ValidationResult",
    "center_layout",
    "compute_layout",
    "detect_cycles",
    "find_cycle_path",
    "get_isolated_nodes",
    "get_node_connections",
    "validate_connection",
    "validate_dag",
]
