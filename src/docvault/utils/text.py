"""Text helpers including sentence-aligned chunking."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List

from docvault.models import TextChunk

LOGGER = logging.getLogger(__name__)

# A run ending in terminal punctuation, or a trailing run without any.
_SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+|[^.!?]+")


def split_sentences(text: str) -> List[str]:
    """Split text into sentences, keeping trailing text without punctuation."""
    sentences = (match.group(0).strip() for match in _SENTENCE_RE.finditer(text))
    return [sentence for sentence in sentences if sentence]


def count_tokens(text: str) -> int:
    """Approximate token count as the number of whitespace-separated words."""
    return len(text.split())


def semantic_chunking(
    text: str,
    file_name: str,
    *,
    chunk_size: int = 800,
    overlap: int = 100,
) -> List[TextChunk]:
    """Group sentences into chunks of at most ``chunk_size`` tokens.

    Each new chunk starts with the last ``overlap`` words of the previous one.
    A sentence longer than ``chunk_size`` is never split and ends up as an
    oversized chunk of its own.
    """
    if overlap >= chunk_size:
        raise ValueError(
            f"Overlap ({overlap}) must be less than chunk size ({chunk_size})"
        )

    chunks: List[TextChunk] = []
    current = ""
    current_tokens = 0

    for sentence in split_sentences(text):
        sentence_tokens = count_tokens(sentence)

        if current_tokens + sentence_tokens > chunk_size and current:
            chunks.append(
                TextChunk(
                    text=current.strip(),
                    file_name=file_name,
                    tokens=current_tokens,
                    chunk_index=len(chunks),
                )
            )
            overlap_words = current.split()[-overlap:] if overlap > 0 else []
            current = " ".join([*overlap_words, sentence])
            current_tokens = len(overlap_words) + sentence_tokens
        else:
            current = f"{current} {sentence}" if current else sentence
            current_tokens += sentence_tokens

    if current.strip():
        chunks.append(
            TextChunk(
                text=current.strip(),
                file_name=file_name,
                tokens=current_tokens,
                chunk_index=len(chunks),
            )
        )

    LOGGER.debug("Created %d chunks for %s", len(chunks), file_name)
    return chunks


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())
