"""Google Gemini REST client for file upload and content generation."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from docvault.config import AppConfig
from docvault.errors import GeminiError
from docvault.models import QueryResult

LOGGER = logging.getLogger(__name__)

PROVIDER = "Google Gemini"
DEFAULT_MIME_TYPE = "application/pdf"


@dataclass(slots=True)
class UploadedFile:
    uri: str
    mime_type: str
    display_name: str
    state: str


@dataclass(slots=True)
class GenerationResult:
    text: str
    provider: str
    model: str
    tokens: int = 0


class GeminiClient:
    """Synchronous client for the Gemini ``v1beta`` REST API.

    Args:
        api_key: Gemini API key, sent as the ``key`` query parameter.
        base_url: API root.
        model: Default model for generation.
        timeout: Per-request timeout in seconds.
        max_retries: Number of status polls while waiting for an upload.
        retry_delay: Seconds between status polls.
        client: Optional pre-built ``httpx.Client`` (used by tests).
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str,
        model: str,
        timeout: float = 60.0,
        max_retries: int = 30,
        retry_delay: float = 10.0,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key:
            raise GeminiError("No Gemini API key configured (set GEMINI_API_KEY)")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._client = client or httpx.Client(timeout=timeout)
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: AppConfig, **kwargs: Any) -> "GeminiClient":
        return cls(
            config.gemini_api_key,
            base_url=config.gemini_base_url,
            model=config.gemini_model,
            **kwargs,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GeminiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, url: str, action: str, **kwargs: Any) -> httpx.Response:
        params = kwargs.pop("params", None) or {}
        if url.startswith(self.base_url):
            params = {**params, "key": self.api_key}
        try:
            response = self._client.request(method, url, params=params, **kwargs)
        except httpx.HTTPError as exc:
            raise GeminiError(f"{action} failed: {exc}") from exc
        if response.is_error:
            raise GeminiError(
                f"{action} failed: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        return response

    def _file_url(self, file_uri: str) -> str:
        if file_uri.startswith(("http://", "https://")):
            return file_uri
        return f"{self.base_url}/{file_uri.lstrip('/')}"

    def upload_file(
        self, file_name: str, data: bytes, mime_type: str | None = None
    ) -> UploadedFile:
        """Upload file bytes and block until Gemini has processed them."""
        mime_type = mime_type or DEFAULT_MIME_TYPE
        LOGGER.info("Uploading %s to Gemini", file_name)

        initiated = self._request(
            "POST",
            f"{self.base_url}/files",
            "File upload initiation",
            json={"file": {"displayName": file_name, "mimeType": mime_type}},
        ).json()
        try:
            upload_url = initiated["uploadUrl"]
            file_uri = initiated["file"]["uri"]
        except (KeyError, TypeError) as exc:
            raise GeminiError("File upload initiation returned no upload URL") from exc

        LOGGER.debug("File upload initiated: %s -> %s", upload_url, file_uri)
        self._request(
            "PATCH",
            upload_url,
            "File content upload",
            content=data,
            headers={
                "Content-Type": mime_type,
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "upload",
            },
        )
        return self.wait_for_file_processing(file_uri)

    def wait_for_file_processing(self, file_uri: str) -> UploadedFile:
        """Poll the file until it is ``ACTIVE``; ``FAILED`` and timeouts raise."""
        for attempt in range(self.max_retries):
            payload = self._request("GET", self._file_url(file_uri), "File status check").json()
            state = payload.get("state")
            LOGGER.debug("File %s state %s (attempt %d)", file_uri, state, attempt + 1)

            if state == "ACTIVE":
                return UploadedFile(
                    uri=payload.get("uri", file_uri),
                    mime_type=payload.get("mimeType", ""),
                    display_name=payload.get("displayName", ""),
                    state=state,
                )
            if state == "FAILED":
                message = (payload.get("error") or {}).get("message", "Unknown error")
                raise GeminiError(f"File processing failed: {message}")

            if attempt + 1 < self.max_retries:
                self._sleep(self.retry_delay)

        raise GeminiError("File processing timed out")

    def generate_content(
        self,
        prompt: str,
        *,
        file_uri: str | None = None,
        mime_type: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> GenerationResult:
        model = model or self.model
        parts: list[dict[str, Any]] = [{"text": prompt}]
        if file_uri:
            parts.append(
                {"file_data": {"file_uri": file_uri, "mime_type": mime_type or DEFAULT_MIME_TYPE}}
            )

        data = self._request(
            "POST",
            f"{self.base_url}/models/{model}:generateContent",
            "Content generation",
            json={
                "contents": [{"parts": parts}],
                "generationConfig": {
                    "temperature": temperature,
                    "maxOutputTokens": max_tokens,
                },
            },
        ).json()

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise GeminiError("Google API returned incomplete response") from exc
        if not text or not text.strip():
            raise GeminiError("Google API returned empty response")

        usage = data.get("usageMetadata") or {}
        return GenerationResult(
            text=text,
            provider=PROVIDER,
            model=model,
            tokens=int(usage.get("totalTokenCount", 0)),
        )

    def process_file(
        self, file_name: str, data: bytes, prompt: str, *, mime_type: str | None = None, **options: Any
    ) -> GenerationResult:
        """Upload a file and ask Gemini about it in one step."""
        uploaded = self.upload_file(file_name, data, mime_type)
        LOGGER.info("File uploaded successfully: %s", uploaded.uri)
        return self.generate_content(
            prompt, file_uri=uploaded.uri, mime_type=uploaded.mime_type or mime_type, **options
        )

    def answer(self, result: QueryResult, **options: Any) -> GenerationResult:
        """Send a retrieval result's augmented prompt to the model."""
        return self.generate_content(result.augmented_prompt, **options)
