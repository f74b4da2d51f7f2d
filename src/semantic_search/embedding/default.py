"""Default embedding implementation using sentence-transformers."""

import logging
from functools import cached_property

from semantic_search.core.errors import EmbeddingError
from semantic_search.embedding.base import EmbeddingFunction

logger = logging.getLogger(__name__)


class DefaultEmbedding(EmbeddingFunction):
    """
    Default embedding using sentence-transformers.

    Uses the all-MiniLM-L6-v2 model by default (384 dimensions). The model
    is loaded on first use; load and inference failures are raised as
    EmbeddingError.
    """

    def __init__(
        self, model_name: str = "all-MiniLM-L6-v2", batch_size: int = 256
    ) -> None:
        self._model_name = model_name
        self._batch_size = batch_size

    @property
    def model_name(self) -> str:
        return self._model_name

    @cached_property
    def _encoder(self):
        try:
            from sentence_transformers import SentenceTransformer

            logger.info("loading embedding model %s", self._model_name)
            return SentenceTransformer(self._model_name)
        except Exception as exc:
            raise EmbeddingError(
                f"failed to load embedding model {self._model_name!r}: {exc}"
            ) from exc

    @property
    def dimension(self) -> int:
        return self._encoder.get_sentence_embedding_dimension()

    def embed(self, text: str) -> list[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        encoder = self._encoder
        try:
            embeddings = encoder.encode(
                list(texts), batch_size=self._batch_size, convert_to_numpy=True
            )
        except Exception as exc:
            raise EmbeddingError(f"embedding inference failed: {exc}") from exc
        return embeddings.tolist()
