"""Speech-to-text module for Recall.

Provides transcription through the backend API or a mock implementation.
"""

from ..api.client import ApiClient
from .http import HttpTranscriber
from .mock import MockTranscriber
from .transcriber import Transcriber, TranscriptionResult


def create_transcriber(
    client: ApiClient | None = None,
    use_mock: bool = False,
) -> Transcriber:
    """Create a transcriber instance.

    Args:
        client: Backend API client
        use_mock: If True, return mock implementation for testing

    Returns:
        Transcriber implementation
    """
    if use_mock or client is None:
        return MockTranscriber()
    return HttpTranscriber(client)


__all__ = [
    "HttpTranscriber",
    "MockTranscriber",
    "Transcriber",
    "TranscriptionResult",
    "create_transcriber",
]
