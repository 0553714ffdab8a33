"""Retrieval-augmented generation service.

Ingestion: text -> sentence chunks -> embeddings -> in-memory store.
Inference: query -> embedding -> hybrid retrieval -> rerank -> augmented prompt.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Sequence

from docvault.config import AppConfig
from docvault.embedding.encoder import Embedder, build_embedder
from docvault.index.indexer import Indexer
from docvault.index.search import Searcher
from docvault.index.storage import InMemoryVectorStore
from docvault.models import Document, IngestResult, QueryResult, ScoredChunk

LOGGER = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Answer the question based on the context provided below.
If the context doesn't contain relevant information, say so.

Question: {query}

Context:
{context}

Answer:"""

CONTEXT_SEPARATOR = "\n\n---\n\n"


def format_context(results: Sequence[ScoredChunk]) -> str:
    return CONTEXT_SEPARATOR.join(
        f"[Document: {result.chunk.file_name} | Chunk: {position}]\n{result.chunk.text}"
        for position, result in enumerate(results, start=1)
    )


class RAGService:
    """Facade over the indexer, searcher and store."""

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        embedder: Embedder | None = None,
        store: InMemoryVectorStore | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.embedder = embedder or build_embedder(self.config)
        self.store = store or InMemoryVectorStore(dimension=self.embedder.dimension)
        self.indexer = Indexer(
            self.embedder,
            self.store,
            chunk_size=self.config.chunk_size,
            overlap=self.config.chunk_overlap,
        )
        self.searcher = Searcher(
            self.embedder,
            self.store,
            top_k=self.config.top_k,
            semantic_weight=self.config.semantic_weight,
            keyword_weight=self.config.keyword_weight,
        )

    @property
    def top_k(self) -> int:
        return self.config.top_k

    def process_document(self, document_id: str, file_name: str, content: Any) -> IngestResult:
        return self.indexer.process_document(document_id, file_name, content)

    def process_query(self, query: str, context_documents: Iterable[str] = ()) -> QueryResult:
        """Retrieve the best chunks for ``query`` and build the augmented prompt.

        ``context_documents`` restricts retrieval to those document ids; an
        empty collection searches everything.
        """
        document_ids = list(context_documents)
        LOGGER.info("Processing query: %s", query)
        ranked = self.searcher.search(query, document_ids)
        top = ranked[: self.top_k]
        return QueryResult(
            query=query,
            retrieved_chunks=top,
            augmented_prompt=self.augment_prompt(query, top),
            context_documents=document_ids,
        )

    def augment_prompt(self, query: str, results: Sequence[ScoredChunk]) -> str:
        return PROMPT_TEMPLATE.format(
            query=query, context=format_context(results[: self.top_k])
        )

    def get_document_info(self, document_id: str) -> Document | None:
        return self.store.get_document(document_id)

    def get_all_documents(self) -> List[Document]:
        return self.store.list_documents()

    def clear_data(self) -> None:
        self.store.clear()

    def get_stats(self) -> dict[str, int]:
        return self.store.get_stats()
