"""Unit tests for the backend API client."""

import json
from pathlib import Path

import httpx
import pytest

from recall.api import ApiClient
from recall.errors import NetworkError
from recall.search import SearchRequest, SourceType
from recall.search.models import FactInput


def make_client(handler, token: str | None = "tok") -> ApiClient:
    """Create a client whose requests are answered by handler."""
    return ApiClient(
        base_url="https://api.test/",
        token=token,
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    """Tests for request building and response parsing."""

    def test_bearer_token_sent(self) -> None:
        """Test that the token is sent as a bearer header."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"summary": "Nurse in Lyon"})

        client = make_client(handler)

        assert client.summarize({"contact": {"firstName": "Alice"}}) == "Nurse in Lyon"
        assert seen["auth"] == "Bearer tok"
        assert seen["url"] == "https://api.test/api/summary"

    def test_no_token(self) -> None:
        """Test that no header is sent without a token."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"summary": "x"})

        make_client(handler, token=None).summarize({})

        assert seen["auth"] is None

    def test_extract(self) -> None:
        """Test that the extraction object is unwrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["transcription"] == "Alice is a nurse"
            return httpx.Response(200, json={"extraction": {"facts": []}})

        client = make_client(handler)

        assert client.extract({"transcription": "Alice is a nurse"}) == {"facts": []}

    def test_transcribe_uploads_file(self, tmp_path: Path) -> None:
        """Test multipart upload of the audio file."""
        audio = tmp_path / "note.m4a"
        audio.write_bytes(b"fake-audio")

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/transcribe"
            assert b"fake-audio" in request.content
            assert b'name="audio"' in request.content
            return httpx.Response(200, json={"transcript": "hello", "duration": 2.5})

        body = make_client(handler).transcribe(audio)

        assert body["transcript"] == "hello"

    def test_transcribe_missing_file(self, tmp_path: Path) -> None:
        """Test that an unreadable file is reported."""
        client = make_client(lambda request: httpx.Response(200, json={}))

        with pytest.raises(NetworkError):
            client.transcribe(tmp_path / "missing.m4a")

    def test_rank(self) -> None:
        """Test that search results are parsed."""

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["query"] == "who is a nurse?"
            assert body["facts"][0]["factValue"] == "Nurse"
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "contactId": "c1",
                            "contactName": "Alice",
                            "answer": "Alice is a nurse",
                            "reference": "Job: Nurse",
                            "sourceType": "fact",
                            "sourceId": "f1",
                            "relevanceScore": 90,
                        }
                    ]
                },
            )

        request = SearchRequest(
            query="who is a nurse?",
            facts=[FactInput("f1", "c1", "Alice", "job", "Job", "Nurse")],
        )

        results = make_client(handler).rank(request)

        assert len(results) == 1
        assert results[0].source_type is SourceType.FACT
        assert results[0].relevance_score == 90.0


class TestErrors:
    """Tests for error translation."""

    def test_http_status_error(self) -> None:
        """Test that error statuses carry the status code."""
        client = make_client(lambda request: httpx.Response(503, json={"error": "down"}))

        with pytest.raises(NetworkError) as exc_info:
            client.summarize({})

        assert exc_info.value.status_code == 503

    def test_timeout(self) -> None:
        """Test that timeouts become NetworkError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(NetworkError, match="timed out"):
            make_client(handler).summarize({})

    def test_connection_error(self) -> None:
        """Test that connection failures become NetworkError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError) as exc_info:
            make_client(handler).summarize({})

        assert exc_info.value.status_code is None

    def test_invalid_json(self) -> None:
        """Test that non-JSON bodies are rejected."""
        client = make_client(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(NetworkError, match="Invalid JSON"):
            client.summarize({})

    def test_malformed_payloads(self) -> None:
        """Test that missing keys are rejected."""
        client = make_client(lambda request: httpx.Response(200, json={"results": [{}]}))

        with pytest.raises(NetworkError):
            client.summarize({})
        with pytest.raises(NetworkError):
            client.extract({})
        with pytest.raises(NetworkError):
            client.rank(SearchRequest(query="q"))
