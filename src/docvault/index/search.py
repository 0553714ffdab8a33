"""Hybrid semantic + keyword search over the in-memory store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Collection, Dict, List

import numpy as np

from docvault.embedding.encoder import Embedder
from docvault.index.storage import InMemoryVectorStore
from docvault.models import Chunk, ScoredChunk

LOGGER = logging.getLogger(__name__)

MIN_TERM_LENGTH = 3


@dataclass(slots=True)
class SearchHit:
    chunk: Chunk
    score: float


def cosine_similarity(vec_a: np.ndarray, vec_b: np.ndarray) -> float:
    """Cosine of the angle between two vectors, 0.0 if either has zero norm."""
    a = np.asarray(vec_a, dtype="float64")
    b = np.asarray(vec_b, dtype="float64")
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def cosine_scores(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Row-wise cosine similarity of ``matrix`` against ``query``."""
    matrix = np.asarray(matrix, dtype="float64")
    query = np.asarray(query, dtype="float64")
    row_norms = np.linalg.norm(matrix, axis=1)
    query_norm = np.linalg.norm(query)
    denominators = row_norms * query_norm
    dots = matrix @ query
    scores = np.divide(dots, denominators, out=np.zeros_like(dots), where=denominators != 0)
    return np.clip(scores, -1.0, 1.0)


def keyword_score(text: str, terms: List[str]) -> float:
    """Occurrences of query terms in ``text`` divided by the number of terms.

    Terms shorter than three characters never match but still count towards
    the divisor.
    """
    if not terms:
        return 0.0
    haystack = text.lower()
    matches = sum(haystack.count(term) for term in terms if len(term) >= MIN_TERM_LENGTH)
    return matches / len(terms)


class Searcher:
    """High-level API to query the vector store."""

    def __init__(
        self,
        embedder: Embedder,
        store: InMemoryVectorStore,
        *,
        top_k: int = 5,
        semantic_weight: float = 0.7,
        keyword_weight: float = 0.3,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.top_k = top_k
        self.semantic_weight = semantic_weight
        self.keyword_weight = keyword_weight

    @property
    def candidate_limit(self) -> int:
        """Each search keeps twice ``top_k`` hits so fusion has room to reorder."""
        return self.top_k * 2

    def semantic_search(
        self, query_vector: np.ndarray, document_ids: Collection[str] | None = None
    ) -> List[SearchHit]:
        candidates = list(self.store.iter_chunks(document_ids))
        if not candidates:
            return []

        scores = cosine_scores(self.store.matrix(candidates), query_vector)
        order = np.argsort(-scores, kind="stable")[: self.candidate_limit]
        return [SearchHit(candidates[idx], float(scores[idx])) for idx in order]

    def keyword_search(
        self, query: str, document_ids: Collection[str] | None = None
    ) -> List[SearchHit]:
        terms = query.lower().split()
        hits = [
            SearchHit(chunk, keyword_score(chunk.text, terms))
            for chunk in self.store.iter_chunks(document_ids)
        ]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[: self.candidate_limit]

    def combine_results(
        self, semantic: List[SearchHit], keyword: List[SearchHit]
    ) -> List[ScoredChunk]:
        """Fuse both hit lists with a weighted sum, absent scores counting as 0."""
        chunks: Dict[str, Chunk] = {}
        for hit in (*semantic, *keyword):
            chunks.setdefault(hit.chunk.chunk_id, hit.chunk)

        semantic_map = {hit.chunk.chunk_id: hit.score for hit in semantic}
        keyword_map = {hit.chunk.chunk_id: hit.score for hit in keyword}

        combined: List[ScoredChunk] = []
        for chunk_id, chunk in chunks.items():
            semantic_score = semantic_map.get(chunk_id, 0.0)
            keyword_value = keyword_map.get(chunk_id, 0.0)
            combined.append(
                ScoredChunk(
                    chunk=chunk,
                    score=semantic_score * self.semantic_weight
                    + keyword_value * self.keyword_weight,
                    semantic_score=semantic_score,
                    keyword_score=keyword_value,
                )
            )

        combined.sort(key=lambda item: item.score, reverse=True)
        return combined

    @staticmethod
    def rerank(results: List[ScoredChunk]) -> List[ScoredChunk]:
        """Assign relevance and 1-based rank in the current order."""
        for position, result in enumerate(results, start=1):
            result.relevance = result.score
            result.rank = position
        return results

    def search(
        self, query: str, document_ids: Collection[str] | None = None
    ) -> List[ScoredChunk]:
        query_vector = self.embedder.embed_query(query)
        semantic = self.semantic_search(query_vector, document_ids)
        keyword = self.keyword_search(query, document_ids)
        combined = self.combine_results(semantic, keyword)
        LOGGER.debug(
            "Search %r: %d semantic, %d keyword, %d combined",
            query,
            len(semantic),
            len(keyword),
            len(combined),
        )
        return self.rerank(combined)
