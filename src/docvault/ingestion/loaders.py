"""Per-format text extraction and hand-off to the RAG pipeline."""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict

from docvault.errors import DocumentProcessingError, UnsupportedDocumentError
from docvault.models import IngestResult
from docvault.utils.files import content_document_id
from docvault.utils.text import normalize_whitespace

if TYPE_CHECKING:  # pragma: no cover
    from docvault.rag import RAGService

LOGGER = logging.getLogger(__name__)

CATEGORIES: Dict[str, str] = {
    "pdf": "document",
    "doc": "document",
    "docx": "document",
    "txt": "text",
    "md": "text",
    "csv": "data",
    "json": "data",
}


@dataclass(frozen=True, slots=True)
class FileType:
    category: str
    extension: str


def detect_file_type(file_name: str) -> FileType:
    extension = Path(file_name).suffix.lower().lstrip(".")
    return FileType(category=CATEGORIES.get(extension, "other"), extension=extension)


def decode_text(data: bytes) -> str:
    """Decode UTF-8 bytes, dropping a leading byte-order mark."""
    return data.decode("utf-8-sig")


def extract_text(file_name: str, data: bytes) -> str:
    return decode_text(data)


def extract_json(file_name: str, data: bytes) -> str:
    text = decode_text(data)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        LOGGER.warning("Invalid JSON in %s, returning raw text", file_name)
        return text
    return json.dumps(parsed, indent=2, ensure_ascii=False)


def extract_csv(file_name: str, data: bytes) -> str:
    reader = csv.reader(io.StringIO(decode_text(data)))
    return normalize_whitespace(", ".join(cell.strip() for cell in row) for row in reader)


def extract_word(file_name: str, data: bytes) -> str:
    # Word parsing is not implemented; the document is indexed by name only.
    LOGGER.info("Processing Word document %s (placeholder)", file_name)
    return f"Word document content from {file_name}"


def reject_pdf(file_name: str, data: bytes) -> str:
    raise UnsupportedDocumentError(
        f"PDF text extraction is not supported: {file_name}. "
        "Upload the extracted text instead."
    )


def extract_universal(file_name: str, data: bytes) -> str:
    """Fallback for unknown extensions: accept anything that decodes as UTF-8."""
    try:
        return decode_text(data)
    except UnicodeDecodeError as exc:
        raise UnsupportedDocumentError(
            f"Cannot read {file_name}: not a text file"
        ) from exc


Extractor = Callable[[str, bytes], str]

EXTRACTORS: Dict[str, Extractor] = {
    "pdf": reject_pdf,
    "doc": extract_word,
    "docx": extract_word,
    "txt": extract_text,
    "md": extract_text,
    "csv": extract_csv,
    "json": extract_json,
}

# Extensions that produce text; used when collecting files from directories.
TEXT_EXTENSIONS = frozenset(ext for ext, func in EXTRACTORS.items() if func is not reject_pdf)


class DocumentProcessor:
    """Dispatches uploads to a format-specific extractor and ingests the text."""

    def __init__(self, service: "RAGService") -> None:
        self.service = service
        self.extractors: Dict[str, Extractor] = dict(EXTRACTORS)

    def extract_content(self, file_name: str, data: bytes) -> str:
        file_type = detect_file_type(file_name)
        LOGGER.debug(
            "Detected file type for %s: %s.%s",
            file_name,
            file_type.category,
            file_type.extension,
        )
        extractor = self.extractors.get(file_type.extension, extract_universal)
        return extractor(file_name, data)

    def process_document(
        self, file_name: str, data: bytes, document_id: str | None = None
    ) -> IngestResult:
        """Extract ``data`` and ingest it under ``document_id``.

        Without an explicit id the document is keyed by a hash of its
        contents.
        """
        document_id = document_id or content_document_id(data)
        LOGGER.info("Processing document: %s", file_name)
        try:
            content = self.extract_content(file_name, data)
        except UnsupportedDocumentError:
            raise
        except Exception as exc:
            raise DocumentProcessingError(f"Failed to process document: {exc}") from exc
        return self.service.process_document(document_id, file_name, content)

    def process_path(self, path: Path) -> IngestResult:
        return self.process_document(path.name, path.read_bytes())

    def get_stats(self) -> dict[str, int]:
        return self.service.get_stats()

    def clear_data(self) -> None:
        self.service.clear_data()
