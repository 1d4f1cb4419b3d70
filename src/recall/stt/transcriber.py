"""Transcriber protocol and data classes.

Defines the interface for speech-to-text transcription of a captured
audio file.
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class TranscriptionResult:
    """Result of speech-to-text transcription.

    Attributes:
        text: Transcribed text
        confidence: Overall confidence score (0.0 to 1.0)
        duration_s: Duration of audio processed in seconds
    """

    text: str
    confidence: float = 0.0
    duration_s: float = 0.0


class Transcriber(Protocol):
    """Interface for speech-to-text transcription."""

    def transcribe(self, audio_uri: str) -> TranscriptionResult:
        """Transcribe an audio file.

        Args:
            audio_uri: Location of the captured audio.

        Returns:
            TranscriptionResult with transcribed text

        Raises:
            TranscriptionError: If transcription fails
        """
        ...


__all__ = ["Transcriber", "TranscriptionResult"]
