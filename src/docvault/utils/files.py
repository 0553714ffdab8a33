"""Utility helpers for working with files."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Collection, Iterable, Iterator

DOCUMENT_ID_LENGTH = 16


def iter_document_paths(inputs: Iterable[Path], extensions: Collection[str]) -> Iterator[Path]:
    """Yield the files in ``inputs``, descending into directories.

    Only files found inside a directory are filtered by ``extensions``; a file
    named directly is always yielded.
    """
    wanted = {ext.lower().lstrip(".") for ext in extensions}
    for item in inputs:
        if item.is_dir():
            for child in sorted(item.rglob("*")):
                if child.is_file() and child.suffix.lower().lstrip(".") in wanted:
                    yield child
        elif item.is_file():
            yield item


def compute_sha256(data: bytes) -> str:
    """Compute SHA256 hash for file contents."""
    sha = hashlib.sha256()
    view = memoryview(data)
    for start in range(0, len(view), 1 << 20):
        sha.update(view[start : start + (1 << 20)])
    return sha.hexdigest()


def content_document_id(data: bytes) -> str:
    """Content-derived document id, so re-uploading a file replaces it."""
    return compute_sha256(data)[:DOCUMENT_ID_LENGTH]
