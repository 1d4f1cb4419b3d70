"""Audio recorder interface and headless implementations.

A recorder hands out a capture target when started and returns its URI
when stopped.
"""

import logging
import uuid
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class Recorder(Protocol):
    """Interface for the audio capture collaborator."""

    @property
    def is_recording(self) -> bool:
        """True between start() and stop()/cancel()."""
        ...

    def start(self) -> None:
        """Begin capturing into a fresh target.

        Raises:
            RuntimeError: If capture cannot start
        """
        ...

    def stop(self) -> str:
        """Stop capturing and return the audio URI."""
        ...

    def cancel(self) -> None:
        """Stop capturing and discard the audio."""
        ...


class FileRecorder:
    """Recorder writing each capture to its own file.

    Audio is pushed with write(); nothing here talks to a microphone.
    """

    def __init__(self, recordings_dir: Path | str, extension: str = "m4a") -> None:
        """Initialize recorder.

        Args:
            recordings_dir: Directory that receives capture files.
            extension: File extension for captures.
        """
        self._dir = Path(recordings_dir).expanduser()
        self._extension = extension
        self._current: Path | None = None

    @property
    def is_recording(self) -> bool:
        return self._current is not None

    @property
    def current_path(self) -> Path | None:
        """File being written, if recording."""
        return self._current

    def start(self) -> None:
        """Create a fresh, empty capture file."""
        if self._current is not None:
            raise RuntimeError("Recorder already started")
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            path = self._dir / f"{uuid.uuid4()}.{self._extension}"
            path.touch()
        except OSError as e:
            raise RuntimeError(f"Cannot create capture file: {e}") from e
        self._current = path
        logger.debug(f"Recording to {path}")

    def write(self, chunk: bytes) -> None:
        """Append audio to the current capture."""
        if self._current is None:
            raise RuntimeError("Recorder not started")
        with open(self._current, "ab") as f:
            f.write(chunk)

    def stop(self) -> str:
        """Close the capture and return its path."""
        if self._current is None:
            raise RuntimeError("Recorder not started")
        path, self._current = self._current, None
        return str(path)

    def cancel(self) -> None:
        """Drop the current capture file."""
        if self._current is None:
            return
        path, self._current = self._current, None
        path.unlink(missing_ok=True)
        logger.debug(f"Discarded {path}")


class MockRecorder:
    """Recorder for tests that never touches the filesystem."""

    def __init__(self, audio_uri: str = "mock://audio/1.m4a") -> None:
        self._audio_uri = audio_uri
        self._recording = False
        self._error_message: str | None = None
        self.start_count = 0
        self.cancel_count = 0

    @property
    def is_recording(self) -> bool:
        return self._recording

    def set_error(self, message: str) -> None:
        """Make the next start() fail."""
        self._error_message = message

    def start(self) -> None:
        self.start_count += 1
        if self._error_message:
            raise RuntimeError(self._error_message)
        self._recording = True

    def stop(self) -> str:
        self._recording = False
        return self._audio_uri

    def cancel(self) -> None:
        self.cancel_count += 1
        self._recording = False


__all__ = ["FileRecorder", "MockRecorder", "Recorder"]
