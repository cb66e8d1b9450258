"""Persisted graph document.

The JSON shape exchanged with the persistence API and written to graph files::

    {
      "name": "...", "description": "...",
      "nodes": [{"id", "type", "position": {"x", "y"}, "data": {"label"}, "selected"}],
      "edges": [{"id", "source", "target", "selected"}],
      "tags": ["..."], "isPublic": false,
      "metadata": {"nodeCount", "edgeCount", "lastUpdated"}
    }

``metadata`` is optional and only written when present.

Pydantic models validate it; converters map it to and from the graph model.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, model_validator

from dag_editor.errors import GraphDocumentError
from dag_editor.graph import DEFAULT_NODE_TYPE, Edge, Node, Position

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class PositionModel(BaseModel):
    x: float
    y: float


class NodeDataModel(BaseModel):
    label: str


class NodeModel(BaseModel):
    id: str
    type: str = DEFAULT_NODE_TYPE
    position: PositionModel
    data: NodeDataModel
    selected: bool = False

    @classmethod
    def from_node(cls, node: Node) -> NodeModel:
        return cls(
            id=node.id,
            type=node.type,
            position=PositionModel(x=node.position.x, y=node.position.y),
            data=NodeDataModel(label=node.label),
            selected=node.selected,
        )

    def to_node(self) -> Node:
        return Node(
            id=self.id,
            type=self.type,
            position=Position(x=self.position.x, y=self.position.y),
            label=self.data.label,
            selected=self.selected,
        )


class EdgeModel(BaseModel):
    id: str
    source: str
    target: str
    selected: bool = False

    @classmethod
    def from_edge(cls, edge: Edge) -> EdgeModel:
        return cls(id=edge.id, source=edge.source, target=edge.target, selected=edge.selected)

    def to_edge(self) -> Edge:
        return Edge(id=self.id, source=self.source, target=self.target, selected=self.selected)


class GraphMetadata(BaseModel):
    """Optional bookkeeping stored alongside a graph. Every field may be absent."""

    model_config = ConfigDict(populate_by_name=True)

    node_count: int | None = Field(default=None, ge=0, alias="nodeCount")
    edge_count: int | None = Field(default=None, ge=0, alias="edgeCount")
    last_updated: datetime | None = Field(default=None, alias="lastUpdated")


class GraphDocument(BaseModel):
    """A named, persisted graph. Unknown keys in the input are ignored."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    nodes: list[NodeModel]
    edges: list[EdgeModel]
    tags: list[str] = Field(default_factory=list)
    is_public: bool = Field(default=False, alias="isPublic")
    metadata: GraphMetadata | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any, info: ValidationInfo) -> Any:
        """Fill a missing name from the ``default_name`` validation context."""
        default_name = (info.context or {}).get("default_name")
        if default_name and isinstance(data, dict) and "name" not in data:
            return {**data, "name": default_name}
        return data

    @model_validator(mode="after")
    def _unique_ids(self) -> GraphDocument:
        for kind, ids in (("node", [n.id for n in self.nodes]), ("edge", [e.id for e in self.edges])):
            seen: set[str] = set()
            for item_id in ids:
                if item_id in seen:
                    raise ValueError(f"duplicate {kind} id: {item_id}")
                seen.add(item_id)
        return self

    @classmethod
    def from_graph(
        cls,
        name: str,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        description: str = "",
        tags: Sequence[str] = (),
        is_public: bool = False,
    ) -> GraphDocument:
        """Build a document from the graph model.

        Raises:
            GraphDocumentError: If the result violates the document schema.
        """
        try:
            return cls(
                name=name,
                description=description,
                nodes=[NodeModel.from_node(n) for n in nodes],
                edges=[EdgeModel.from_edge(e) for e in edges],
                tags=list(tags),
                is_public=is_public,
            )
        except ValidationError as e:
            raise GraphDocumentError(f"Invalid graph document: {e}") from e

    @classmethod
    def from_json(cls, text: str | bytes, default_name: str | None = None) -> GraphDocument:
        """Parse and validate a JSON document.

        Args:
            text: JSON text, or raw UTF-8 bytes straight from a file.
            default_name: Name used when the document has none, as in a
                plain ``{nodes, edges}`` export.

        Raises:
            GraphDocumentError: On malformed JSON or UTF-8, or a schema violation.
        """
        try:
            return cls.model_validate_json(text, context={"default_name": default_name})
        except ValidationError as e:
            raise GraphDocumentError(f"Invalid graph document: {e}") from e

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_graph(self) -> tuple[list[Node], list[Edge]]:
        return [n.to_node() for n in self.nodes], [e.to_edge() for e in self.edges]
