"""Mock extractor for testing."""

from ..errors import ExtractionError
from .extractor import ExtractionContext
from .models import ExtractionResult


class MockExtractor:
    """Extractor returning a preset result."""

    def __init__(self, result: ExtractionResult | None = None) -> None:
        self._result = result or ExtractionResult()
        self._error_message: str | None = None
        self.calls: list[tuple[str, ExtractionContext]] = []

    def set_result(self, result: ExtractionResult) -> None:
        """Set the result to return."""
        self._result = result
        self._error_message = None

    def set_error(self, message: str) -> None:
        """Make the next extractions fail."""
        self._error_message = message

    def extract(self, transcript: str, context: ExtractionContext) -> ExtractionResult:
        """Record the call and return the preset result."""
        self.calls.append((transcript, context))
        if self._error_message:
            raise ExtractionError(self._error_message)
        return self._result


__all__ = ["MockExtractor"]
