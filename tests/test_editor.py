"""Tests for editor.py — gated edits, cascading deletes, history wiring, layout and files."""

from __future__ import annotations

import json
import random

import pytest

from dag_editor.document import GraphDocument
from dag_editor.editor import DagEditor
from dag_editor.errors import GraphDocumentError
from dag_editor.graph import Direction, Edge, HandlePosition, Node, Position


@pytest.fixture
def editor() -> DagEditor:
    """Demo graph: Start Node (1) → Process A (2), Start Node (1) → Process B (3)."""
    return DagEditor.with_demo_graph(rng=random.Random(0))


# ─── Initial State ────────────────────────────────────────────────────────────


class TestDemoGraph:
    def test_demo_graph_is_valid(self, editor):
        assert [n.label for n in editor.nodes] == ["Start Node", "Process A", "Process B"]
        assert editor.validation.is_valid is True
        assert editor.can_undo is False

    def test_empty_editor(self):
        editor = DagEditor()
        assert editor.validation.warnings == ["Graph is empty"]
        assert editor.stats.node_count == 0


# ─── Connections ──────────────────────────────────────────────────────────────


class TestConnect:
    def test_connect_adds_edge_and_snapshot(self, editor):
        edge = editor.connect("2", "3")
        assert edge == Edge(id="e2-3", source="2", target="3")
        assert editor.edges[-1] == edge
        assert editor.can_undo is True

    def test_rejects_self_loop(self, editor):
        assert editor.connect("2", "2") is None
        assert len(editor.edges) == 2
        assert editor.can_undo is False

    def test_rejects_duplicate(self, editor):
        assert editor.connect("1", "2") is None
        assert editor.can_undo is False

    def test_rejects_cycle(self, editor):
        """3 → 1 would close 1 → 3 → 1."""
        assert editor.connect("3", "1") is None
        assert len(editor.edges) == 2
        assert editor.can_undo is False

    def test_rejects_longer_cycle(self, editor):
        editor.connect("2", "3")
        assert editor.connect("3", "1") is None
        assert editor.stats.has_cycles is False

    def test_rejects_unknown_endpoint(self, editor):
        assert editor.connect("1", "99") is None

    def test_edge_ids_stay_unique(self):
        """Edges 1-2 → 3 and 1 → 2-3 share the conventional id e1-2-3."""
        nodes = [Node(id=i, position=Position(0, 0)) for i in ("1-2", "3", "1", "2-3")]
        editor = DagEditor(nodes)
        first = editor.connect("1-2", "3")
        second = editor.connect("1", "2-3")
        assert first.id == "e1-2-3"
        assert second.id == "e1-2-3-1"


# ─── Nodes ────────────────────────────────────────────────────────────────────


class TestNodes:
    def test_add_node(self, editor):
        node = editor.add_node()
        assert node.id == "4"
        assert node.label == "Node 4"
        assert 100 <= node.position.x < 400
        assert 100 <= node.position.y < 400
        assert editor.nodes[-1] == node

    def test_add_node_with_label_and_position(self, editor):
        node = editor.add_node("Sink", Position(5, 6))
        assert (node.label, node.position) == ("Sink", Position(5, 6))

    def test_new_node_is_isolated_error(self, editor):
        editor.add_node()
        assert editor.validation.errors == ["Isolated node: Node 4 (must have at least 1 connection)"]

    def test_delete_node_cascades_edges(self, editor):
        assert editor.delete_nodes(["1"]) is True
        assert [n.id for n in editor.nodes] == ["2", "3"]
        assert editor.edges == []

    def test_delete_unknown_node(self, editor):
        assert editor.delete_nodes(["42"]) is False
        assert editor.can_undo is False

    def test_update_label(self, editor):
        assert editor.update_label("2", "Renamed") is True
        assert editor.get_node("2").label == "Renamed"
        assert editor.update_label("2", "Renamed") is False
        assert editor.update_label("42", "x") is False

    def test_move_node(self, editor):
        assert editor.move_node("1", 10, 20) is True
        assert editor.get_node("1").position == Position(10, 20)

    def test_duplicate_node(self, editor):
        copy = editor.duplicate_node("2")
        assert copy.id == "4"
        assert copy.label == "Process A Copy"
        assert copy.position == Position(150, 175)
        assert editor.duplicate_node("42") is None


# ─── Selection ────────────────────────────────────────────────────────────────


class TestSelection:
    def test_delete_selected(self, editor):
        editor.select(node_ids=["2"], edge_ids=["e1-3"])
        assert editor.get_node("2").selected is True
        assert editor.delete_selected() is True
        assert [n.id for n in editor.nodes] == ["1", "3"]
        assert editor.edges == []

    def test_delete_selected_with_nothing_selected(self, editor):
        assert editor.delete_selected() is False
        assert editor.can_undo is False

    def test_selection_is_not_an_edit(self, editor):
        editor.select(node_ids=["1"])
        assert editor.can_undo is False


# ─── History ──────────────────────────────────────────────────────────────────


class TestUndoRedo:
    def test_undo_connect(self, editor):
        editor.connect("2", "3")
        assert editor.undo() is True
        assert [e.id for e in editor.edges] == ["e1-2", "e1-3"]
        assert editor.can_redo is True

    def test_redo_connect(self, editor):
        editor.connect("2", "3")
        editor.undo()
        assert editor.redo() is True
        assert [e.id for e in editor.edges] == ["e1-2", "e1-3", "e2-3"]

    def test_undo_delete_restores_edges(self, editor):
        before = editor.snapshot()
        editor.delete_nodes(["1"])
        editor.undo()
        assert editor.snapshot() == before

    def test_edit_after_undo_clears_redo(self, editor):
        editor.add_node()
        editor.undo()
        editor.update_label("1", "Begin")
        assert editor.can_redo is False

    def test_clear_is_undoable(self, editor):
        before = editor.snapshot()
        assert editor.clear() is True
        assert editor.nodes == []
        editor.undo()
        assert editor.snapshot() == before

    def test_clear_empty_graph_is_noop(self):
        assert DagEditor().clear() is False


# ─── Layout ───────────────────────────────────────────────────────────────────


class TestApplyLayout:
    def test_layout_sets_handles_and_is_undoable(self, editor):
        before = editor.snapshot()
        assert editor.apply_layout(Direction.LR) is True
        assert all(n.target_position is HandlePosition.LEFT for n in editor.nodes)
        assert editor.edges == list(before.edges)
        editor.undo()
        assert editor.snapshot() == before

    def test_layout_accepts_direction_string(self, editor):
        assert editor.apply_layout("TB") is True
        start, a, b = editor.nodes
        assert start.position.y < a.position.y == b.position.y

    def test_layout_refused_on_empty_graph(self):
        editor = DagEditor()
        assert editor.apply_layout() is False
        assert editor.can_undo is False

    def test_layout_refused_on_cyclic_graph(self):
        nodes = [Node(id="1", position=Position(0, 0)), Node(id="2", position=Position(0, 0))]
        edges = [Edge(id="a", source="1", target="2"), Edge(id="b", source="2", target="1")]
        editor = DagEditor(nodes, edges)
        assert editor.apply_layout() is False


# ─── Persistence ──────────────────────────────────────────────────────────────


class TestDocuments:
    def test_save_and_load(self, editor, tmp_path):
        path = editor.save(tmp_path / "pipeline.json")
        data = json.loads(path.read_text())
        assert data["name"] == "pipeline"
        assert data["nodes"][0] == {
            "id": "1",
            "type": "editableNode",
            "position": {"x": 250.0, "y": 25.0},
            "data": {"label": "Start Node"},
            "selected": False,
        }

        other = DagEditor()
        other.load(path)
        assert other.nodes == editor.nodes
        assert other.edges == editor.edges
        assert other.can_undo is True

    def test_load_resets_id_counter(self):
        doc = GraphDocument.model_validate(
            {
                "name": "g",
                "nodes": [
                    {"id": "7", "position": {"x": 0, "y": 0}, "data": {"label": "Seven"}},
                    {"id": "x", "position": {"x": 0, "y": 0}, "data": {"label": "X"}},
                ],
                "edges": [],
            }
        )
        editor = DagEditor()
        editor.load_document(doc)
        assert editor.add_node().id == "8"

    def test_load_keeps_invalid_graph_and_reports_it(self):
        doc = GraphDocument.model_validate(
            {
                "name": "loop",
                "nodes": [
                    {"id": "1", "position": {"x": 0, "y": 0}, "data": {"label": "A"}},
                    {"id": "2", "position": {"x": 0, "y": 0}, "data": {"label": "B"}},
                ],
                "edges": [
                    {"id": "a", "source": "1", "target": "2"},
                    {"id": "b", "source": "2", "target": "1"},
                ],
            }
        )
        editor = DagEditor()
        editor.load_document(doc)
        assert editor.validation.errors == ["Cycle detected: A → B"]

    def test_load_bad_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(GraphDocumentError):
            DagEditor().load(path)

    def test_load_invalid_utf8(self, tmp_path):
        path = tmp_path / "binary.json"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(GraphDocumentError):
            DagEditor().load(path)

    def test_load_plain_export_without_name(self, tmp_path):
        """A bare nodes/edges export with validation and timestamp is named after the file."""
        export = {
            "nodes": [
                {
                    "id": "1",
                    "type": "editableNode",
                    "position": {"x": 250, "y": 25},
                    "data": {"label": "Start Node"},
                    "width": 150,
                    "height": 40,
                    "positionAbsolute": {"x": 250, "y": 25},
                },
                {
                    "id": "2",
                    "type": "editableNode",
                    "position": {"x": 100, "y": 125},
                    "data": {"label": "Process A"},
                },
            ],
            "edges": [{"id": "e1-2", "source": "1", "target": "2", "sourceHandle": None}],
            "validation": {"isValid": True, "errors": [], "warnings": []},
            "timestamp": "2024-01-01T00:00:00.000Z",
        }
        path = tmp_path / "dag-graph-2024-01-01.json"
        path.write_text(json.dumps(export))

        editor = DagEditor()
        document = editor.load(path)
        assert document.name == "dag-graph-2024-01-01"
        assert [n.label for n in editor.nodes] == ["Start Node", "Process A"]
        assert editor.edges == [Edge(id="e1-2", source="1", target="2")]
        assert editor.add_node().id == "3"
