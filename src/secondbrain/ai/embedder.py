"""Embedding generator — text to a fixed-dimension vector.

The stored dimension is a hard invariant of the database: the cosine
distance used by the retrieval engine requires every vector to have the
same length, so backend output is truncated or zero-padded to fit.
"""

from __future__ import annotations

import structlog

from secondbrain.ai.backend import AIBackend
from secondbrain.db.vectors import fit_dimension

logger = structlog.get_logger(logger_name=__name__)

_MAX_INPUT_CHARS = 8_000


class EmbeddingGenerator:
    """Produce embeddings through an injected backend.

    Args:
        backend: AI capability used for the embedding call.
        dimensions: Length of every returned non-empty vector.
    """

    def __init__(self, backend: AIBackend, dimensions: int = 1536) -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {dimensions}")
        self._backend = backend
        self.dimensions = dimensions

    def embed(self, text: str) -> list[float]:
        """Return the embedding of *text*, or [] when none can be produced.

        [] means "no embedding" (blank input, offline backend, backend error);
        it is never an error for the caller.
        """
        content = text.strip()
        if not content or not self._backend.available:
            return []

        try:
            vector = self._backend.embed(content[:_MAX_INPUT_CHARS])
        except Exception as exc:
            logger.warning("embedding_failed", error=str(exc))
            return []

        if not vector:
            return []
        if len(vector) > self.dimensions:
            logger.warning(
                "embedding_truncated", length=len(vector), dimensions=self.dimensions
            )
        return fit_dimension(vector, self.dimensions)
