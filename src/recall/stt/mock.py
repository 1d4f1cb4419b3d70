"""Mock transcriber for testing.

Provides a controllable mock implementation for unit and integration testing.
"""

from ..errors import TranscriptionError
from .transcriber import TranscriptionResult


class MockTranscriber:
    """Mock transcriber for testing.

    Allows setting predetermined responses for predictable testing.
    """

    def __init__(self, text: str = "", confidence: float = 0.95) -> None:
        """Initialize mock transcriber."""
        self._response_text = text
        self._response_confidence = confidence
        self._error_message: str | None = None
        self._call_count = 0
        self.last_audio_uri: str | None = None

    def set_response(self, text: str, confidence: float = 0.95) -> None:
        """Set the response to return on next transcription.

        Args:
            text: Text to return
            confidence: Confidence score to return
        """
        self._response_text = text
        self._response_confidence = confidence
        self._error_message = None

    def set_error(self, message: str) -> None:
        """Set an error to raise on next transcription.

        Args:
            message: Error message
        """
        self._error_message = message

    def transcribe(self, audio_uri: str) -> TranscriptionResult:
        """Return preset transcription result."""
        self._call_count += 1
        self.last_audio_uri = audio_uri

        if self._error_message:
            raise TranscriptionError(self._error_message)

        return TranscriptionResult(
            text=self._response_text,
            confidence=self._response_confidence,
            duration_s=0.0,
        )

    @property
    def call_count(self) -> int:
        """Get number of transcribe calls."""
        return self._call_count

    def reset(self) -> None:
        """Reset mock state."""
        self._response_text = ""
        self._response_confidence = 0.0
        self._call_count = 0
        self._error_message = None
        self.last_audio_uri = None


__all__ = ["MockTranscriber"]
