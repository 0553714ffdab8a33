"""Core DocVault data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np


@dataclass(slots=True)
class Document:
    """An ingested document as tracked by the vector store."""

    id: str
    file_name: str
    chunk_count: int
    created_at: int


@dataclass(slots=True)
class TextChunk:
    """Span of document text produced by the chunker, before embedding."""

    text: str
    file_name: str
    tokens: int
    chunk_index: int


@dataclass(frozen=True, slots=True)
class Chunk:
    """Embedded chunk of document text."""

    text: str
    document_id: str
    file_name: str
    chunk_index: int
    tokens: int
    vector: np.ndarray = field(repr=False, compare=False)
    timestamp: int = 0

    @property
    def chunk_id(self) -> str:
        return make_chunk_id(self.document_id, self.chunk_index)


def make_chunk_id(document_id: str, index: int) -> str:
    return f"{document_id}_chunk_{index}"


@dataclass(slots=True)
class ScoredChunk:
    """Retrieved chunk with its fused score and per-search components."""

    chunk: Chunk
    score: float
    semantic_score: float = 0.0
    keyword_score: float = 0.0
    relevance: float = 0.0
    rank: int = 0


@dataclass(slots=True)
class IngestResult:
    success: bool
    document_id: str
    file_name: str
    chunks: int = 0
    error: str | None = None


@dataclass(slots=True)
class QueryResult:
    query: str
    retrieved_chunks: List[ScoredChunk]
    augmented_prompt: str
    context_documents: List[str] = field(default_factory=list)
