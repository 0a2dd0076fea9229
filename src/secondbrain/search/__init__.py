"""Hybrid retrieval over persisted insights."""

from secondbrain.search.retriever import RetrievalEngine, SearchResult, merge_ids

__all__ = ["RetrievalEngine", "SearchResult", "merge_ids"]
