"""Shared fixtures."""

from __future__ import annotations

from typing import Callable

import numpy as np
import pytest

from docvault.config import AppConfig
from docvault.embedding.encoder import HashEmbedder
from docvault.index.storage import InMemoryVectorStore
from docvault.models import Chunk
from docvault.rag import RAGService


@pytest.fixture
def make_chunk() -> Callable[..., Chunk]:
    """Factory for chunks with explicit vectors."""

    def factory(
        document_id: str = "doc",
        index: int = 0,
        text: str = "text",
        vector: list[float] | None = None,
        file_name: str | None = None,
    ) -> Chunk:
        return Chunk(
            text=text,
            document_id=document_id,
            file_name=file_name or f"{document_id}.txt",
            chunk_index=index,
            tokens=len(text.split()),
            vector=np.asarray(vector if vector is not None else [1.0, 0.0, 0.0], dtype="float32"),
        )

    return factory


@pytest.fixture
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore(dimension=3)


@pytest.fixture
def service() -> RAGService:
    config = AppConfig(chunk_size=20, chunk_overlap=5, top_k=3)
    return RAGService(config, embedder=HashEmbedder(config.embedding_dimension))
