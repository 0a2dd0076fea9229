"""Hybrid retrieval: dense (sqlite-vec cosine distance) + keyword substring match.

Query search:
  - The query embedding (a network call) is computed on a worker thread
    while the keyword lookup runs on the caller's connection.
  - Vector lookup by ascending cosine distance, then merge: vector ids first,
    then keyword-only ids, deduplicated and truncated to the limit.
  - Similarity = clamp(1 - distance, 0, 1); None when the insight has no
    embedding or no query embedding could be produced.

Keyword hits carry no relevance order of their own; they only widen recall
when the vector channel misses literal matches.

Every lookup is scoped to the owner.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import structlog

from secondbrain.ai.embedder import EmbeddingGenerator
from secondbrain.db.models import Insight
from secondbrain.db.repository import Repository
from secondbrain.db.vectors import distance_to_similarity, from_json

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SEARCH_LIMIT = 20
DEFAULT_RELATED_LIMIT = 6


@dataclass
class SearchResult:
    """An insight together with its similarity to the query (None if unknown).

    Attributes:
        insight: The hydrated Insight, tags included.
        similarity: Score in [0, 1], higher is closer.
    """

    insight: Insight
    similarity: float | None = None


def merge_ids(vector_ids: list[str], keyword_ids: list[str], limit: int) -> list[str]:
    """Vector ids in order, then keyword-only ids, deduplicated and truncated."""
    merged: dict[str, None] = {}
    for insight_id in [*vector_ids, *keyword_ids]:
        merged.setdefault(insight_id, None)
    return list(merged)[: max(limit, 0)]


class RetrievalEngine:
    """Query search and related-insight lookup over persisted insights.

    Args:
        repo: Repository bound to the caller's connection.
        embedder: Embedding generator; must use the dimension the insights
            were embedded with.
        search_limit: Default result cap for ``search``.
        related_limit: Default result cap for ``find_related``.
    """

    def __init__(
        self,
        repo: Repository,
        embedder: EmbeddingGenerator,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        related_limit: int = DEFAULT_RELATED_LIMIT,
    ) -> None:
        self._repo = repo
        self._embedder = embedder
        self._search_limit = search_limit
        self._related_limit = related_limit

    def search(self, user_id: str, query: str, limit: int | None = None) -> list[SearchResult]:
        """Hybrid search of *user_id*'s insights. Blank queries return []."""
        query = query.strip()
        limit = self._search_limit if limit is None else limit
        if not query or limit < 1:
            return []

        with ThreadPoolExecutor(max_workers=1) as pool:
            embedding_future = pool.submit(self._embedder.embed, query)
            keyword_ids = self._repo.search_keyword(user_id, query, limit=limit)
            query_embedding = embedding_future.result()

        distances: dict[str, float] = {}
        vector_ids: list[str] = []
        if query_embedding:
            for insight_id, distance in self._repo.search_vec(user_id, query_embedding, limit=limit):
                vector_ids.append(insight_id)
                distances[insight_id] = distance
        else:
            logger.info("search_keyword_only", user_id=user_id)

        ids = merge_ids(vector_ids, keyword_ids, limit)
        keyword_only = [i for i in ids if i not in distances]
        if query_embedding and keyword_only:
            distances.update(self._repo.vector_distances(user_id, query_embedding, keyword_only))

        logger.debug(
            "search_done",
            user_id=user_id,
            vector_hits=len(vector_ids),
            keyword_hits=len(keyword_ids),
            results=len(ids),
        )
        return self._hydrate(ids, distances)

    def find_related(
        self, insight_id: str, user_id: str, limit: int | None = None
    ) -> list[SearchResult]:
        """Nearest neighbours of an owned insight, never including itself.

        Returns [] when the insight has no embedding (or is not the owner's).
        """
        limit = self._related_limit if limit is None else limit
        if limit < 1:
            return []
        embedding = from_json(self._repo.get_embedding(insight_id, user_id))
        if not embedding:
            return []

        neighbours = self._repo.search_vec(
            user_id, embedding, limit=limit + 1, exclude_id=insight_id
        )[:limit]
        distances = dict(neighbours)
        return self._hydrate([i for i, _ in neighbours], distances)

    def _hydrate(self, ids: list[str], distances: dict[str, float]) -> list[SearchResult]:
        return [
            SearchResult(insight=insight, similarity=distance_to_similarity(distances.get(insight.id)))
            for insight in self._repo.get_insights_by_ids(ids)
        ]
