"""Tests for the RAG service facade."""

from __future__ import annotations

import pytest

from docvault.config import AppConfig
from docvault.embedding.encoder import HashEmbedder
from docvault.index.storage import InMemoryVectorStore
from docvault.rag import CONTEXT_SEPARATOR, RAGService, format_context

POLICY = (
    "Employees may work remotely on Fridays. Remote work requires manager approval. "
    "Expense reports are due at month end."
)
MENU = (
    "Soup of the day is tomato soup. The cafeteria serves soup, soup and more soup "
    "on Mondays. Dessert is available every day."
)
LONG = " ".join(f"Sentence number {i} talks about topics." for i in range(40))


class TestConstruction:
    """Test service wiring."""

    def test_defaults_build_hash_embedder(self) -> None:
        service = RAGService()

        assert isinstance(service.embedder, HashEmbedder)
        assert service.store.dimension == 128
        assert service.top_k == 5

    def test_injected_dependencies(self) -> None:
        embedder = HashEmbedder(8)
        store = InMemoryVectorStore(dimension=8)

        service = RAGService(AppConfig(top_k=2), embedder=embedder, store=store)

        assert service.embedder is embedder
        assert service.store is store
        assert service.searcher.top_k == 2
        assert service.indexer.chunk_size == 800


class TestIngestion:
    """Test document ingestion through the service."""

    def test_stats_match_ingested(self, service: RAGService) -> None:
        first = service.process_document("policy", "policy.txt", POLICY)
        second = service.process_document("menu", "menu.txt", MENU)

        stats = service.get_stats()
        assert stats["documents"] == 2
        assert stats["chunks"] == first.chunks + second.chunks
        assert stats["vectors"] == stats["chunks"]

    def test_document_info(self, service: RAGService) -> None:
        service.process_document("menu", "menu.txt", MENU)

        info = service.get_document_info("menu")
        assert info is not None
        assert info.file_name == "menu.txt"
        assert info.chunk_count >= 1
        assert service.get_document_info("missing") is None
        assert [doc.id for doc in service.get_all_documents()] == ["menu"]

    def test_clear_data(self, service: RAGService) -> None:
        service.process_document("menu", "menu.txt", MENU)

        service.clear_data()

        assert service.get_stats() == {"documents": 0, "chunks": 0, "vectors": 0}
        assert service.store.documents == {}
        assert service.store.vectors == {}
        assert service.store.chunks == []


class TestQuery:
    """Test query processing."""

    def test_keyword_match_ranks_first(self, service: RAGService) -> None:
        """Five keyword hits outweigh any semantic similarity."""
        service.process_document("policy", "policy.txt", POLICY)
        service.process_document("menu", "menu.txt", MENU)

        result = service.process_query("soup")

        assert result.query == "soup"
        assert result.retrieved_chunks
        assert result.retrieved_chunks[0].chunk.document_id == "menu"
        assert [item.rank for item in result.retrieved_chunks] == list(
            range(1, len(result.retrieved_chunks) + 1)
        )

    def test_retrieves_at_most_top_k(self, service: RAGService) -> None:
        service.process_document("long", "long.txt", LONG)

        result = service.process_query("topics")

        assert service.get_stats()["chunks"] > service.top_k
        assert len(result.retrieved_chunks) == service.top_k

    def test_context_documents_restrict_results(self, service: RAGService) -> None:
        service.process_document("policy", "policy.txt", POLICY)
        service.process_document("menu", "menu.txt", MENU)

        result = service.process_query("cafeteria soup", ["policy"])

        assert result.context_documents == ["policy"]
        assert {item.chunk.document_id for item in result.retrieved_chunks} == {"policy"}

    def test_empty_store(self, service: RAGService) -> None:
        result = service.process_query("anything")

        assert result.retrieved_chunks == []
        assert "Question: anything" in result.augmented_prompt

    def test_scores_sorted_descending(self, service: RAGService) -> None:
        service.process_document("policy", "policy.txt", POLICY)
        service.process_document("menu", "menu.txt", MENU)

        scores = [item.score for item in service.process_query("remote work").retrieved_chunks]

        assert scores == sorted(scores, reverse=True)


class TestPrompt:
    """Test prompt augmentation."""

    def test_prompt_layout(self, service: RAGService) -> None:
        service.process_document("menu", "menu.txt", MENU)

        result = service.process_query("soup")
        prompt = result.augmented_prompt

        assert prompt.startswith("Answer the question based on the context provided below.")
        assert "If the context doesn't contain relevant information, say so." in prompt
        assert "Question: soup\n\nContext:\n[Document: menu.txt | Chunk: 1]\n" in prompt
        assert prompt.endswith("Answer:")

    def test_format_context_numbers_and_separates(self, service: RAGService) -> None:
        service.process_document("long", "long.txt", LONG)
        results = service.process_query("topics").retrieved_chunks[:2]

        context = format_context(results)

        assert context.count(CONTEXT_SEPARATOR) == 1
        assert "| Chunk: 1]" in context
        assert "| Chunk: 2]" in context

    def test_query_braces_are_literal(self, service: RAGService) -> None:
        assert "Question: {weird}" in service.augment_prompt("{weird}", [])
