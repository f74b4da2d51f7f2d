"""Error kinds raised by the semantic search core."""

from __future__ import annotations


class SemanticSearchError(Exception):
    """Base class for all semantic search errors."""


class DimensionMismatchError(SemanticSearchError, ValueError):
    """A vector's length disagrees with the collection dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"vector has dimension {actual}, collection expects {expected}"
        )


class DuplicateIdError(SemanticSearchError):
    """A record with the same id already exists."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"record {record_id!r} already exists")


class RecordNotFoundError(SemanticSearchError, LookupError):
    """The requested record id is not present."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"record {record_id!r} not found")


class CollectionNotFoundError(SemanticSearchError, LookupError):
    """The requested collection does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"collection {name!r} not found")


class EmbeddingError(SemanticSearchError):
    """The embedding provider failed to load or to encode text."""


class PersistenceError(SemanticSearchError):
    """The durable record store could not be reached or written."""


class IndexCorruptionError(SemanticSearchError):
    """The index and the record store disagree.

    Attributes:
        skipped_ids: Record ids that could not be indexed, if known.
    """

    def __init__(self, message: str, skipped_ids: list[str] | None = None) -> None:
        self.skipped_ids = list(skipped_ids or [])
        super().__init__(message)
