"""Document ingestion pipeline."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, List, Mapping, Sequence

from docvault.embedding.encoder import Embedder
from docvault.index.storage import InMemoryVectorStore
from docvault.models import Chunk, IngestResult, TextChunk
from docvault.utils.text import semantic_chunking

LOGGER = logging.getLogger(__name__)

EMBED_BATCH_SIZE = 32


def extract_text_content(content: Any) -> str:
    """Coerce already-extracted content into plain text.

    Parsers hand back either a string or a mapping carrying ``extractedText``
    or ``readableText``; any other mapping or sequence is serialised as JSON.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, Mapping):
        for key in ("extractedText", "readableText"):
            if content.get(key):
                return str(content[key])
        return json.dumps(content, ensure_ascii=False, default=str)
    if isinstance(content, (list, tuple)):
        return json.dumps(content, ensure_ascii=False, default=str)
    if content is None:
        return ""
    return str(content)


class Indexer:
    """Coordinates chunking, embedding and storage of a document."""

    def __init__(
        self,
        embedder: Embedder,
        store: InMemoryVectorStore,
        *,
        chunk_size: int = 800,
        overlap: int = 100,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.chunk_size = chunk_size
        self.overlap = overlap

    def process_document(self, document_id: str, file_name: str, content: Any) -> IngestResult:
        """Run a document through the pipeline, reporting failures in the result."""
        try:
            LOGGER.info("Processing document: %s", file_name)
            text = extract_text_content(content)
            text_chunks = semantic_chunking(
                text, file_name, chunk_size=self.chunk_size, overlap=self.overlap
            )
            if not text_chunks:
                LOGGER.warning("No text extracted from %s", file_name)
            chunks = self.embed_chunks(text_chunks, document_id)
            self.store.store(document_id, file_name, chunks)
        except Exception as exc:
            LOGGER.error("Failed to process %s: %s", file_name, exc)
            return IngestResult(
                success=False,
                document_id=document_id,
                file_name=file_name,
                error=str(exc),
            )

        LOGGER.info("Processed %s into %d chunks", file_name, len(chunks))
        return IngestResult(
            success=True,
            document_id=document_id,
            file_name=file_name,
            chunks=len(chunks),
        )

    def embed_chunks(self, text_chunks: Sequence[TextChunk], document_id: str) -> List[Chunk]:
        """Attach vectors to chunks, embedding in fixed-size batches."""
        timestamp = int(time.time() * 1000)
        embedded: List[Chunk] = []
        for start in range(0, len(text_chunks), EMBED_BATCH_SIZE):
            batch = text_chunks[start : start + EMBED_BATCH_SIZE]
            vectors = self.embedder.embed([item.text for item in batch])
            if vectors.shape[0] != len(batch):
                raise ValueError("Embeddings and chunks length mismatch")
            for item, vector in zip(batch, vectors):
                embedded.append(
                    Chunk(
                        text=item.text,
                        document_id=document_id,
                        file_name=item.file_name,
                        chunk_index=item.chunk_index,
                        tokens=item.tokens,
                        vector=vector,
                        timestamp=timestamp,
                    )
                )
        return embedded
