"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Mapping

from docvault.embedding.encoder import DEFAULT_BACKEND, DEFAULT_DIMENSION

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-flash-latest"
ENV_PREFIX = "DOCVAULT_"


@dataclass(slots=True)
class AppConfig:
    chunk_size: int = 800
    chunk_overlap: int = 100
    top_k: int = 5
    embedding_backend: str = DEFAULT_BACKEND
    embedding_dimension: int = DEFAULT_DIMENSION
    semantic_weight: float = 0.7
    keyword_weight: float = 0.3
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_base_url: str = GEMINI_BASE_URL

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )
        if self.top_k < 1:
            raise ValueError("top_k must be at least 1")
        if self.semantic_weight < 0 or self.keyword_weight < 0:
            raise ValueError("Search weights must be non-negative")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """Build a config from ``DOCVAULT_*`` environment variables.

        ``GEMINI_API_KEY`` is honoured as well, since that is the name the
        Gemini tooling uses.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}
        for item in fields(cls):
            raw = env.get(ENV_PREFIX + item.name.upper())
            if raw is None:
                continue
            default = item.default
            if isinstance(default, int):
                overrides[item.name] = int(raw)
            elif isinstance(default, float):
                overrides[item.name] = float(raw)
            else:
                overrides[item.name] = raw
        if "gemini_api_key" not in overrides and env.get("GEMINI_API_KEY"):
            overrides["gemini_api_key"] = env["GEMINI_API_KEY"]
        return cls(**overrides)
