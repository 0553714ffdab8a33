"""Exception hierarchy shared across DocVault."""

from __future__ import annotations


class DocVaultError(Exception):
    """Base class for all DocVault errors."""


class UnsupportedDocumentError(DocVaultError):
    """Raised when no extractor can handle a file type."""


class DocumentProcessingError(DocVaultError):
    """Raised when a document cannot be turned into text."""


class GeminiError(DocVaultError):
    """Raised when the Gemini API fails or returns an unusable response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
