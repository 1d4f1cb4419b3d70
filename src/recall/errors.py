"""Error types for Recall.

Custom exceptions shared by the capture pipeline, the local store and the
remote collaborator adapters.
"""


class RecallError(Exception):
    """Base exception for Recall errors."""

    pass


class InvalidStateTransition(RecallError):
    """Raised when the capture state machine is driven out of order."""

    def __init__(self, current: str, action: str) -> None:
        """Initialize transition error.

        Args:
            current: State the machine was in.
            action: Action that was attempted.
        """
        super().__init__(f"Cannot {action} while capture is {current}")
        self.current = current
        self.action = action


class TranscriptionError(RecallError):
    """Raised when the transcription service fails."""

    pass


class ExtractionError(RecallError):
    """Raised when fact extraction fails or returns unusable output."""

    pass


class PersistenceError(RecallError):
    """Raised when the local store cannot complete an operation."""

    pass


class NetworkError(RecallError):
    """Raised when a remote call fails at the transport or HTTP level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize network error.

        Args:
            message: Error message.
            status_code: HTTP status code if available.
        """
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "ExtractionError",
    "InvalidStateTransition",
    "NetworkError",
    "PersistenceError",
    "RecallError",
    "TranscriptionError",
]
