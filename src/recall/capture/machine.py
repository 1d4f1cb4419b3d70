"""Capture state machine for one voice note.

IDLE -> RECORDING -> TRANSCRIBING -> EXTRACTING -> IDLE, with ERROR
reachable from every active state. Collaborator failures move the
machine to ERROR and are re-raised to the caller; reset() returns it to
a clean IDLE.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..errors import (
    ExtractionError,
    InvalidStateTransition,
    PersistenceError,
    TranscriptionError,
)
from ..notes.extractor import Extractor
from ..notes.models import ExtractionResult
from ..notes.service import CommitResult, NoteService
from ..stt.transcriber import Transcriber
from .recorder import Recorder

logger = logging.getLogger(__name__)


class CaptureState(Enum):
    """Lifecycle of a capture."""

    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    EXTRACTING = "extracting"
    ERROR = "error"


StateListener = Callable[[CaptureState, CaptureState], None]


@dataclass
class CaptureResult:
    """Outcome of a completed capture."""

    contact_id: str
    transcript: str
    audio_uri: str | None
    extraction: ExtractionResult
    commit: CommitResult


class CaptureMachine:
    """Drives one voice note from recording to a committed note.

    At most one capture is in flight per machine.
    """

    def __init__(
        self,
        recorder: Recorder,
        transcriber: Transcriber,
        extractor: Extractor,
        notes: NoteService,
        error_timeout: float | None = None,
        on_state_change: StateListener | None = None,
    ) -> None:
        """Initialize capture machine.

        Args:
            recorder: Audio capture collaborator
            transcriber: Speech-to-text collaborator
            extractor: Fact extraction collaborator
            notes: Service that commits extracted notes
            error_timeout: Seconds after which ERROR resets itself, or None
            on_state_change: Called with (old, new) after every transition
        """
        self._recorder = recorder
        self._transcriber = transcriber
        self._extractor = extractor
        self._notes = notes
        self._error_timeout = error_timeout
        self._listeners: list[StateListener] = []
        if on_state_change is not None:
            self._listeners.append(on_state_change)

        self._lock = threading.RLock()
        self._state = CaptureState.IDLE
        self._cycle = 0
        self._busy = False
        self._error: str | None = None
        self._error_timer: threading.Timer | None = None

        self._contact_id: str | None = None
        self._audio_uri: str | None = None
        self._audio_duration_ms: int | None = None
        self._transcript: str | None = None
        self._extraction: ExtractionResult | None = None

    @property
    def state(self) -> CaptureState:
        with self._lock:
            return self._state

    @property
    def error(self) -> str | None:
        """Reason for the ERROR state, if in it."""
        with self._lock:
            return self._error

    @property
    def contact_id(self) -> str | None:
        """Preselected contact for the current capture."""
        with self._lock:
            return self._contact_id

    @property
    def audio_uri(self) -> str | None:
        with self._lock:
            return self._audio_uri

    @property
    def transcript(self) -> str | None:
        with self._lock:
            return self._transcript

    @property
    def extraction(self) -> ExtractionResult | None:
        with self._lock:
            return self._extraction

    def add_listener(self, listener: StateListener) -> None:
        """Register a state change callback."""
        with self._lock:
            self._listeners.append(listener)

    def start(self, contact_id: str | None = None) -> None:
        """Start recording.

        Raises:
            InvalidStateTransition: If not IDLE.
            RuntimeError: If the recorder fails (machine moves to ERROR).
        """
        with self._lock:
            if self._state is not CaptureState.IDLE:
                raise InvalidStateTransition(self._state.value, "start")

            self._clear_cycle()
            self._contact_id = contact_id
            try:
                self._recorder.start()
            except RuntimeError as e:
                self._fail(f"Could not start recording: {e}")
                raise
            self._transition(CaptureState.RECORDING)

    def stop(self) -> str:
        """Stop recording and transcribe.

        Returns:
            The transcript.

        Raises:
            InvalidStateTransition: If not RECORDING.
            TranscriptionError: If transcription fails (machine moves to ERROR).
        """
        with self._lock:
            if self._state is not CaptureState.RECORDING:
                raise InvalidStateTransition(self._state.value, "stop")
            self._audio_uri = self._recorder.stop()
            self._transition(CaptureState.TRANSCRIBING)
            cycle = self._cycle
            audio_uri = self._audio_uri

        try:
            result = self._transcriber.transcribe(audio_uri)
            if not result.text.strip():
                raise TranscriptionError("No speech detected")
        except TranscriptionError as e:
            with self._lock:
                if self._is_current(cycle, CaptureState.TRANSCRIBING):
                    self._fail(str(e))
            raise
        except Exception as e:
            with self._lock:
                if self._is_current(cycle, CaptureState.TRANSCRIBING):
                    self._fail(f"Unexpected transcription failure: {e}")
            raise

        with self._lock:
            if not self._is_current(cycle, CaptureState.TRANSCRIBING):
                raise InvalidStateTransition(self._state.value, "finish transcription")
            self._transcript = result.text.strip()
            self._audio_duration_ms = int(result.duration_s * 1000) or None
            self._transition(CaptureState.EXTRACTING)
            return self._transcript

    def cancel(self) -> None:
        """Abandon the recording and discard its audio.

        A no-op when already IDLE.

        Raises:
            InvalidStateTransition: If processing or in ERROR.
        """
        with self._lock:
            if self._state is CaptureState.IDLE:
                return
            if self._state is not CaptureState.RECORDING:
                raise InvalidStateTransition(self._state.value, "cancel")
            self._recorder.cancel()
            self._clear_cycle()
            self._transition(CaptureState.IDLE)

    def extract(self, contact_id: str | None = None) -> CaptureResult:
        """Extract facts from the transcript and commit the note.

        Args:
            contact_id: Contact to attach to; defaults to the preselected one.

        Raises:
            InvalidStateTransition: If not EXTRACTING, already extracting,
                or no contact is known.
            ExtractionError: If extraction fails (machine moves to ERROR).
            PersistenceError: If the commit fails (machine moves to ERROR).
        """
        with self._lock:
            if self._state is not CaptureState.EXTRACTING or self._busy:
                raise InvalidStateTransition(self._state.value, "extract")
            target = contact_id or self._contact_id
            if not target:
                raise InvalidStateTransition(self._state.value, "extract without a contact")
            self._busy = True
            cycle = self._cycle
            transcript = self._transcript or ""
            audio_uri = self._audio_uri
            audio_duration_ms = self._audio_duration_ms

        try:
            context = self._notes.build_context(target)
            extraction = self._extractor.extract(transcript, context)
            with self._lock:
                if self._is_current(cycle, CaptureState.EXTRACTING):
                    self._extraction = extraction
            commit = self._notes.commit(
                contact_id=target,
                transcript=transcript,
                extraction=extraction,
                audio_uri=audio_uri,
                audio_duration_ms=audio_duration_ms,
            )
        except (ExtractionError, PersistenceError) as e:
            with self._lock:
                self._busy = False
                if self._is_current(cycle, CaptureState.EXTRACTING):
                    self._fail(str(e))
            raise
        except KeyError as e:
            with self._lock:
                self._busy = False
                if self._is_current(cycle, CaptureState.EXTRACTING):
                    self._fail(f"Contact not found: {target}")
            raise PersistenceError(f"Contact not found: {target}") from e
        except Exception as e:
            with self._lock:
                self._busy = False
                if self._is_current(cycle, CaptureState.EXTRACTING):
                    self._fail(f"Unexpected extraction failure: {e}")
            raise

        with self._lock:
            self._busy = False
            result = CaptureResult(
                contact_id=target,
                transcript=transcript,
                audio_uri=audio_uri,
                extraction=extraction,
                commit=commit,
            )
            if self._is_current(cycle, CaptureState.EXTRACTING):
                self._clear_cycle()
                self._transition(CaptureState.IDLE)
            return result

    def reset(self) -> None:
        """Discard everything and return to a clean IDLE.

        Accepted from any state. Work still in flight is ignored when it
        completes.
        """
        with self._lock:
            if self._recorder.is_recording:
                self._recorder.cancel()
            self._clear_cycle()
            self._contact_id = None
            self._busy = False
            if self._state is not CaptureState.IDLE:
                self._transition(CaptureState.IDLE)

    def _is_current(self, cycle: int, state: CaptureState) -> bool:
        return self._cycle == cycle and self._state is state

    def _clear_cycle(self) -> None:
        """Drop per-capture data and invalidate in-flight work (lock held)."""
        self._cycle += 1
        self._audio_uri = None
        self._audio_duration_ms = None
        self._transcript = None
        self._extraction = None
        self._error = None

    def _fail(self, reason: str) -> None:
        """Enter ERROR with a reason (lock held)."""
        if self._recorder.is_recording:
            self._recorder.cancel()
        self._error = reason
        logger.warning(f"Capture failed: {reason}")
        self._transition(CaptureState.ERROR)

        if self._error_timeout is not None:
            cycle = self._cycle
            timer = threading.Timer(self._error_timeout, self._auto_reset, args=(cycle,))
            timer.daemon = True
            self._error_timer = timer
            timer.start()

    def _auto_reset(self, cycle: int) -> None:
        with self._lock:
            if self._is_current(cycle, CaptureState.ERROR):
                logger.info("Error timeout elapsed, resetting capture")
                self.reset()

    def _transition(self, new_state: CaptureState) -> None:
        """Change state and notify listeners (lock held)."""
        old_state = self._state
        if old_state is CaptureState.ERROR and self._error_timer is not None:
            self._error_timer.cancel()
            self._error_timer = None

        self._state = new_state
        logger.info(f"Capture {old_state.value} -> {new_state.value}")

        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.warning(f"State change listener failed: {e}")


__all__ = ["CaptureMachine", "CaptureResult", "CaptureState", "StateListener"]
