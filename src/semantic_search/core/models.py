"""Data models for records, index matches and query results."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator

from semantic_search.core.errors import IndexCorruptionError
from semantic_search.core.utils import generate_record_id, score_to_native


@dataclass
class VectorRecord:
    """A stored document together with its embedding.

    Attributes:
        id: Unique identifier (time-ordered UUIDv7 string by default)
        vector: Embedding of the payload, one float per dimension
        payload: The document text
        created_at: When the record was created
    """

    vector: list[float]
    payload: str
    id: str = field(default_factory=generate_record_id)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def dimension(self) -> int:
        return len(self.vector)

    def to_dict(self) -> dict[str, Any]:
        """Serialize record to dict for JSON storage."""
        return {
            "id": self.id,
            "vector": [float(x) for x in self.vector],
            "payload": self.payload,
            "created_at": self.created_at.isoformat(),
        }

    def to_json(self) -> str:
        """Serialize record to JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VectorRecord":
        """Deserialize record from dict."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = datetime.now()

        return cls(
            id=data["id"],
            vector=[float(x) for x in data["vector"]],
            payload=data["payload"],
            created_at=created_at,
        )

    @classmethod
    def from_json(cls, json_str: str) -> "VectorRecord":
        """Deserialize record from JSON string."""
        return cls.from_dict(json.loads(json_str))


@dataclass(frozen=True)
class CollectionInfo:
    """Catalog entry for a named collection."""

    name: str
    dimension: int
    metric: str = "cosine"
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "dimension": self.dimension,
            "metric": self.metric,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CollectionInfo":
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = datetime.now()
        return cls(
            name=data["name"],
            dimension=int(data["dimension"]),
            metric=data.get("metric", "cosine"),
            created_at=created_at,
        )


@dataclass(frozen=True)
class Neighbor:
    """A single index match.

    ``score`` is always better-is-higher: cosine similarity for cosine
    indexes and negated L2 distance for Euclidean ones.
    """

    id: str
    score: float


@dataclass
class IndexResult:
    """Ranked matches from a similarity index query."""

    neighbors: list[Neighbor] = field(default_factory=list)
    partial: bool = False

    def __iter__(self) -> Iterator[Neighbor]:
        return iter(self.neighbors)

    def __len__(self) -> int:
        return len(self.neighbors)

    def __getitem__(self, item: int) -> Neighbor:
        return self.neighbors[item]

    @property
    def ids(self) -> list[str]:
        return [n.id for n in self.neighbors]


@dataclass
class SearchHit:
    """A hydrated search match with its payload."""

    id: str
    score: float
    payload: str
    metric: str = "cosine"

    @property
    def value(self) -> float:
        """Score in the metric's own unit (similarity or distance)."""
        return score_to_native(self.score, self.metric)

    def to_dict(self) -> dict[str, Any]:
        """Serialize hit to dict."""
        key = "distance" if self.metric == "euclidean" else "similarity"
        return {"id": self.id, key: self.value, "payload": self.payload}


@dataclass
class QueryResult:
    """Ordered search hits for one query, best match first.

    Attributes:
        collection: Name of the queried collection
        hits: Matches after threshold filtering and top-k truncation
        partial: True when the search was cancelled before completing
        collection_found: False when the collection does not exist
        skipped_ids: Index ids whose records were missing from the store
    """

    collection: str
    hits: list[SearchHit] = field(default_factory=list)
    partial: bool = False
    collection_found: bool = True
    skipped_ids: list[str] = field(default_factory=list)

    def __iter__(self) -> Iterator[SearchHit]:
        return iter(self.hits)

    def __len__(self) -> int:
        return len(self.hits)

    @property
    def ids(self) -> list[str]:
        return [h.id for h in self.hits]

    def to_dict(self) -> dict[str, Any]:
        """Serialize result to dict."""
        data: dict[str, Any] = {
            "collection": self.collection,
            "matches": [h.to_dict() for h in self.hits],
        }
        if not self.collection_found:
            data["error"] = "collection not found"
        if self.partial:
            data["partial"] = True
        if self.skipped_ids:
            data["skipped_ids"] = list(self.skipped_ids)
        return data


@dataclass
class RebuildReport:
    """Outcome of replaying the record store into an index."""

    indexed: int = 0
    skipped_ids: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.skipped_ids

    def raise_for_skipped(self) -> None:
        """Raise IndexCorruptionError if any record was skipped."""
        if self.skipped_ids:
            raise IndexCorruptionError(
                f"{len(self.skipped_ids)} record(s) could not be indexed",
                skipped_ids=self.skipped_ids,
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "indexed": self.indexed,
            "skipped_ids": list(self.skipped_ids),
            "errors": dict(self.errors),
        }
