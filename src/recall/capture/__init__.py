"""Voice note capture for Recall.

Provides the recorder collaborators and the capture state machine.
"""

from .machine import CaptureMachine, CaptureResult, CaptureState
from .recorder import FileRecorder, MockRecorder, Recorder

__all__ = [
    "CaptureMachine",
    "CaptureResult",
    "CaptureState",
    "FileRecorder",
    "MockRecorder",
    "Recorder",
]
