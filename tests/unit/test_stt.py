"""Unit tests for speech-to-text transcribers."""

from unittest.mock import MagicMock

import pytest

from recall.errors import NetworkError, TranscriptionError
from recall.stt import HttpTranscriber, MockTranscriber, create_transcriber


class TestHttpTranscriber:
    """Tests for backend transcription."""

    def test_returns_transcript(self) -> None:
        """Test a successful transcription."""
        client = MagicMock()
        client.transcribe.return_value = {
            "transcript": "  Alice got the job  ",
            "confidence": 0.9,
            "duration": 4.2,
        }
        transcriber = HttpTranscriber(client, language="en")

        result = transcriber.transcribe("/tmp/note.m4a")

        assert result.text == "Alice got the job"
        assert result.confidence == 0.9
        assert result.duration_s == 4.2
        client.transcribe.assert_called_once_with("/tmp/note.m4a", language="en")

    def test_network_error(self) -> None:
        """Test that transport failures become TranscriptionError."""
        client = MagicMock()
        client.transcribe.side_effect = NetworkError("offline")

        with pytest.raises(TranscriptionError):
            HttpTranscriber(client).transcribe("/tmp/note.m4a")

    def test_empty_transcript(self) -> None:
        """Test that silence is reported."""
        client = MagicMock()
        client.transcribe.return_value = {"transcript": "   "}

        with pytest.raises(TranscriptionError, match="No speech"):
            HttpTranscriber(client).transcribe("/tmp/note.m4a")

    def test_missing_transcript(self) -> None:
        """Test a malformed response."""
        client = MagicMock()
        client.transcribe.return_value = {}

        with pytest.raises(TranscriptionError):
            HttpTranscriber(client).transcribe("/tmp/note.m4a")

    def test_numeric_string_confidence(self) -> None:
        """Test that numbers sent as strings are accepted."""
        client = MagicMock()
        client.transcribe.return_value = {"transcript": "hi", "confidence": "0.8"}

        result = HttpTranscriber(client).transcribe("/tmp/note.m4a")

        assert result.confidence == 0.8
        assert result.duration_s == 0.0

    @pytest.mark.parametrize("field", ["confidence", "duration"])
    @pytest.mark.parametrize("value", ["high", [1], True])
    def test_invalid_number(self, field: str, value: object) -> None:
        """Test that non-numeric metadata is a transcription failure."""
        client = MagicMock()
        client.transcribe.return_value = {"transcript": "hi", field: value}

        with pytest.raises(TranscriptionError, match=field):
            HttpTranscriber(client).transcribe("/tmp/note.m4a")


class TestMockTranscriber:
    """Tests for the mock transcriber."""

    def test_preset_response(self) -> None:
        """Test returning the preset text."""
        transcriber = MockTranscriber()
        transcriber.set_response("hello world", confidence=0.8)

        result = transcriber.transcribe("mock://audio")

        assert result.text == "hello world"
        assert result.confidence == 0.8
        assert transcriber.call_count == 1
        assert transcriber.last_audio_uri == "mock://audio"

    def test_error(self) -> None:
        """Test raising a preset error."""
        transcriber = MockTranscriber()
        transcriber.set_error("boom")

        with pytest.raises(TranscriptionError, match="boom"):
            transcriber.transcribe("mock://audio")

    def test_reset(self) -> None:
        """Test clearing mock state."""
        transcriber = MockTranscriber(text="hi")
        transcriber.transcribe("mock://audio")

        transcriber.reset()

        assert transcriber.call_count == 0
        assert transcriber.last_audio_uri is None


class TestFactory:
    """Tests for create_transcriber."""

    def test_mock_without_client(self) -> None:
        """Test that no client means a mock."""
        assert isinstance(create_transcriber(), MockTranscriber)

    def test_http_with_client(self) -> None:
        """Test that a client selects the backend transcriber."""
        assert isinstance(create_transcriber(MagicMock()), HttpTranscriber)

    def test_forced_mock(self) -> None:
        """Test use_mock."""
        assert isinstance(create_transcriber(MagicMock(), use_mock=True), MockTranscriber)
