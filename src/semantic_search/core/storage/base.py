"""Record store interface."""

from abc import ABC, abstractmethod
from typing import Iterator

from semantic_search.core.errors import DimensionMismatchError
from semantic_search.core.models import CollectionInfo, VectorRecord
from semantic_search.core.utils import as_vector, validate_metric


class RecordStore(ABC):
    """Abstract interface for durable record storage.

    The store is the source of truth: indexes are rebuilt from ``scan``.
    Records live in named collections registered in the store's catalog.
    """

    @abstractmethod
    def create_collection(
        self, name: str, dimension: int, metric: str = "cosine"
    ) -> CollectionInfo:
        """Register a collection if absent and return its catalog entry."""
        ...

    @abstractmethod
    def get_collection(self, name: str) -> CollectionInfo | None:
        ...

    @abstractmethod
    def list_collections(self) -> list[CollectionInfo]:
        ...

    @abstractmethod
    def insert(self, collection: str, record: VectorRecord) -> None:
        """Insert a new record.

        Raises:
            CollectionNotFoundError: If the collection is not registered
            DimensionMismatchError: If the vector length is wrong
            DuplicateIdError: If the id already exists
        """
        ...

    @abstractmethod
    def get(self, collection: str, record_id: str) -> VectorRecord | None:
        ...

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> None:
        """Delete a record; raises RecordNotFoundError if absent."""
        ...

    @abstractmethod
    def count(self, collection: str) -> int:
        ...

    @abstractmethod
    def scan(self, collection: str) -> Iterator[VectorRecord]:
        """Iterate over every record in insertion order.

        Each call starts a fresh iteration.
        """
        ...

    def close(self) -> None:
        """Clean up resources."""

    def __enter__(self) -> "RecordStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @staticmethod
    def _check_existing(
        existing: CollectionInfo, dimension: int, metric: str
    ) -> CollectionInfo:
        """Validate a create request against an existing catalog entry."""
        if existing.dimension != dimension:
            raise DimensionMismatchError(existing.dimension, dimension)
        if existing.metric != metric:
            raise ValueError(
                f"collection {existing.name!r} uses metric {existing.metric!r}, "
                f"not {metric!r}"
            )
        return existing

    @staticmethod
    def _check_new(name: str, dimension: int, metric: str) -> None:
        if not name:
            raise ValueError("collection name must not be empty")
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        validate_metric(metric)

    @staticmethod
    def _check_record(info: CollectionInfo, record: VectorRecord) -> None:
        as_vector(record.vector, info.dimension)
