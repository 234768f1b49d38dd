"""Recognition capture: state machine over a restart-prone recognizer and a sped-up playback."""
from .loop import CaptureLoop
from .session import CaptureResult, CaptureSession, CaptureState

__all__ = ["CaptureLoop", "CaptureResult", "CaptureSession", "CaptureState"]
