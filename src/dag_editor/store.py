"""In-memory graph document store.

Create/read/update/delete/duplicate of ``GraphDocument`` records plus a
paginated listing. Single-record reads (``get``) go through a ``TTLCache``
owned by the store and writes invalidate the cached entry. The listing reads
the records directly, so it always reflects the latest writes.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import ValidationError

from dag_editor.cache import TTLCache
from dag_editor.document import GraphDocument
from dag_editor.errors import GraphDocumentError, GraphNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StoredGraph:
    id: str
    document: GraphDocument
    created_at: datetime
    updated_at: datetime
    revision: int


@dataclass(frozen=True)
class Page:
    graphs: list[StoredGraph] = field(default_factory=list)
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT
    total: int = 0

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)


class InMemoryGraphStore:
    """Graph documents keyed by generated id.

    Args:
        cache: Read-through cache for ``get``. A fresh ``TTLCache`` when None.
        now: Timestamp source for created/updated times.
        id_factory: Generates new record ids.
    """

    def __init__(
        self,
        cache: TTLCache[StoredGraph] | None = None,
        now: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self._cache: TTLCache[StoredGraph] = cache if cache is not None else TTLCache()
        self._now = now
        self._id_factory = id_factory
        self._records: dict[str, StoredGraph] = {}
        self._revision = 0

    @property
    def cache(self) -> TTLCache[StoredGraph]:
        return self._cache

    def create(self, document: GraphDocument) -> StoredGraph:
        now = self._now()
        record = StoredGraph(
            id=self._id_factory(),
            document=document.model_copy(deep=True),
            created_at=now,
            updated_at=now,
            revision=self._next_revision(),
        )
        self._records[record.id] = record
        logger.info("Created graph %s (%r)", record.id, document.name)
        return record

    def get(self, graph_id: str) -> StoredGraph:
        cached = self._cache.get(self._key(graph_id))
        if cached is not None:
            return cached
        record = self._records.get(graph_id)
        if record is None:
            raise GraphNotFoundError(graph_id)
        self._cache.set(self._key(graph_id), record)
        return record

    def update(self, graph_id: str, document: GraphDocument) -> StoredGraph:
        existing = self._records.get(graph_id)
        if existing is None:
            raise GraphNotFoundError(graph_id)
        record = StoredGraph(
            id=graph_id,
            document=document.model_copy(deep=True),
            created_at=existing.created_at,
            updated_at=self._now(),
            revision=self._next_revision(),
        )
        self._records[graph_id] = record
        self._cache.delete(self._key(graph_id))
        logger.info("Updated graph %s", graph_id)
        return record

    def delete(self, graph_id: str) -> None:
        if self._records.pop(graph_id, None) is None:
            raise GraphNotFoundError(graph_id)
        self._cache.delete(self._key(graph_id))
        logger.info("Deleted graph %s", graph_id)

    def duplicate(self, graph_id: str) -> StoredGraph:
        """Copy a stored graph under the name ``"<name> (Copy)"``.

        Raises:
            GraphNotFoundError: If ``graph_id`` is unknown.
            GraphDocumentError: If the new name exceeds the length limit.
        """
        data = self.get(graph_id).document.to_dict()
        data["name"] = f"{data['name']} (Copy)"
        try:
            copy = GraphDocument.model_validate(data)
        except ValidationError as e:
            raise GraphDocumentError(f"Cannot duplicate graph {graph_id}: {e}") from e
        return self.create(copy)

    def list_graphs(self, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> Page:
        """Most recently updated first. Not cached."""
        if page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")

        ordered = sorted(self._records.values(), key=lambda r: (r.updated_at, r.revision), reverse=True)
        start = (page - 1) * limit
        return Page(graphs=ordered[start : start + limit], page=page, limit=limit, total=len(ordered))

    def _next_revision(self) -> int:
        self._revision += 1
        return self._revision

    @staticmethod
    def _key(graph_id: str) -> str:
        return f"graph:{graph_id}"
