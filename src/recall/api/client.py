"""HTTP client for the Recall backend.

Wraps the transcription, extraction, summary and search endpoints.
Transport and HTTP failures are translated into NetworkError.
"""

import logging
import time
from pathlib import Path
from typing import Any

import httpx

from ..errors import NetworkError
from ..search.models import SearchRequest, SemanticSearchResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8787"
DEFAULT_TIMEOUT = 30.0  # seconds


class ApiClient:
    """Client for the Recall backend API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize API client.

        Args:
            base_url: Backend root URL.
            timeout: Request timeout in seconds.
            token: Bearer token sent with every request.
            transport: Optional httpx transport (used by tests).
        """
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        logger.info(f"API client initialized ({self._base_url})")

    @property
    def base_url(self) -> str:
        return self._base_url

    def transcribe(self, audio_path: str | Path, language: str | None = None) -> dict[str, Any]:
        """Upload an audio file for transcription.

        Returns:
            Response body with transcript, confidence and duration.
        """
        path = Path(audio_path)
        try:
            audio = path.read_bytes()
        except OSError as e:
            raise NetworkError(f"Cannot read audio file {path}: {e}") from e

        data = {"language": language} if language else None
        files = {"audio": (path.name, audio, "audio/m4a")}
        return self._post("/api/transcribe", files=files, data=data)

    def extract(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Ask the backend to extract facts from a transcript.

        Returns:
            The "extraction" object of the response.
        """
        body = self._post("/api/extract", json=payload)
        extraction = body.get("extraction")
        if not isinstance(extraction, dict):
            raise NetworkError("Malformed extraction response")
        return extraction

    def summarize(self, payload: dict[str, Any]) -> str:
        """Request a contact summary.

        Returns:
            The summary text.
        """
        body = self._post("/api/summary", json=payload)
        summary = body.get("summary")
        if not isinstance(summary, str):
            raise NetworkError("Malformed summary response")
        return summary

    def rank(self, request: SearchRequest) -> list[SemanticSearchResult]:
        """Rank local evidence against a query on the remote index."""
        body = self._post("/api/search", json=request.to_payload())
        try:
            return [SemanticSearchResult.from_dict(item) for item in body.get("results", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise NetworkError(f"Malformed search response: {e}") from e

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    def _post(self, path: str, **kwargs: Any) -> dict[str, Any]:
        start_time = time.time()
        try:
            response = self._client.post(path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise NetworkError(f"Request to {path} timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP error {e.response.status_code} from {path}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Request to {path} failed: {e}") from e

        elapsed_ms = int((time.time() - start_time) * 1000)
        logger.debug(f"POST {path} completed in {elapsed_ms}ms")

        try:
            body = response.json()
        except ValueError as e:
            raise NetworkError(f"Invalid JSON from {path}") from e
        if not isinstance(body, dict):
            raise NetworkError(f"Unexpected response body from {path}")
        return body


__all__ = ["ApiClient", "DEFAULT_BASE_URL", "DEFAULT_TIMEOUT"]
