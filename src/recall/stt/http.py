"""Transcription through the Recall backend."""

import logging

from ..api.client import ApiClient
from ..errors import NetworkError, TranscriptionError
from .transcriber import TranscriptionResult

logger = logging.getLogger(__name__)


class HttpTranscriber:
    """Transcriber that uploads audio to POST /api/transcribe."""

    def __init__(self, client: ApiClient, language: str | None = None) -> None:
        """Initialize transcriber.

        Args:
            client: Backend API client.
            language: Optional language hint sent with the audio.
        """
        self._client = client
        self._language = language

    def transcribe(self, audio_uri: str) -> TranscriptionResult:
        """Upload the audio file and return its transcript."""
        try:
            body = self._client.transcribe(audio_uri, language=self._language)
        except NetworkError as e:
            raise TranscriptionError(f"Transcription request failed: {e}") from e

        text = body.get("transcript")
        if not isinstance(text, str):
            raise TranscriptionError("Transcription response had no transcript")

        text = text.strip()
        if not text:
            raise TranscriptionError("No speech detected")

        result = TranscriptionResult(
            text=text,
            confidence=_number(body, "confidence"),
            duration_s=_number(body, "duration"),
        )
        logger.info(
            f"Transcribed {result.duration_s:.1f}s of audio "
            f"(confidence {result.confidence:.2f})"
        )
        return result


def _number(body: dict, key: str) -> float:
    value = body.get(key) or 0.0
    if not isinstance(value, bool) and isinstance(value, int | float | str):
        try:
            return float(value)
        except ValueError:
            pass
    raise TranscriptionError(f"Transcription response had an invalid {key}: {value!r}")


__all__ = ["HttpTranscriber"]
