"""In-memory vector store."""

from __future__ import annotations

import logging
import threading
import time
from typing import Collection, Dict, Iterator, List, Sequence

import numpy as np

from docvault.models import Chunk, Document

LOGGER = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class InMemoryVectorStore:
    """Holds documents and their embedded chunks for the lifetime of the process.

    Chunks are kept twice: keyed by chunk id for lookup, and in insertion
    order for linear scans. Writers and snapshot readers share one lock so
    uploads handled on worker threads never interleave.
    """

    def __init__(self, *, dimension: int) -> None:
        self.dimension = dimension
        self.documents: Dict[str, Document] = {}
        self.vectors: Dict[str, Chunk] = {}
        self.chunks: List[Chunk] = []
        self._lock = threading.Lock()

    def store(self, document_id: str, file_name: str, chunks: Sequence[Chunk]) -> Document:
        """Record a document and all of its chunks."""
        for chunk in chunks:
            if chunk.vector.shape != (self.dimension,):
                raise ValueError(
                    f"Chunk {chunk.chunk_id} has shape {chunk.vector.shape}, "
                    f"expected ({self.dimension},)"
                )

        document = Document(
            id=document_id,
            file_name=file_name,
            chunk_count=len(chunks),
            created_at=_now_ms(),
        )
        with self._lock:
            if document_id in self.documents:
                LOGGER.info("Replacing existing document %s", document_id)
                self._remove_chunks(document_id)
            self.documents[document_id] = document
            for chunk in chunks:
                self.vectors[chunk.chunk_id] = chunk
                self.chunks.append(chunk)

        LOGGER.info("Stored %d chunks for document %s", len(chunks), document_id)
        return document

    def _remove_chunks(self, document_id: str) -> None:
        # caller holds the lock
        self.chunks = [chunk for chunk in self.chunks if chunk.document_id != document_id]
        for chunk_id in [cid for cid, c in self.vectors.items() if c.document_id == document_id]:
            del self.vectors[chunk_id]

    def get_document(self, document_id: str) -> Document | None:
        with self._lock:
            return self.documents.get(document_id)

    def list_documents(self) -> List[Document]:
        with self._lock:
            return list(self.documents.values())

    def get_chunk(self, chunk_id: str) -> Chunk | None:
        with self._lock:
            return self.vectors.get(chunk_id)

    def iter_chunks(self, document_ids: Collection[str] | None = None) -> Iterator[Chunk]:
        """Yield chunks in insertion order, limited to ``document_ids`` when given.

        Iterates over a snapshot taken when the generator starts, so concurrent
        writes are not observed mid-scan.
        """
        with self._lock:
            snapshot = list(self.chunks)
        if not document_ids:
            yield from snapshot
            return
        wanted = set(document_ids)
        for chunk in snapshot:
            if chunk.document_id in wanted:
                yield chunk

    def matrix(self, chunks: Sequence[Chunk]) -> np.ndarray:
        """Stack chunk vectors into a ``(len(chunks), dimension)`` matrix."""
        if not chunks:
            return np.empty((0, self.dimension), dtype="float32")
        return np.vstack([chunk.vector for chunk in chunks])

    def clear(self) -> None:
        with self._lock:
            self.vectors.clear()
            self.documents.clear()
            self.chunks = []

    def get_stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "documents": len(self.documents),
                "chunks": len(self.chunks),
                "vectors": len(self.vectors),
            }
