"""
Error types for the voice assistant.

Adapters raise (or report) these; the conversation controller recovers
from all of them locally and never lets one reach the UI.
"""

from typing import Optional


class KrishiError(Exception):
    """Base class for assistant errors"""


class CaptureError(KrishiError):
    """Speech capture failed (device, permission, no speech, transcription)"""

    def __init__(self, code: str, message: str = ""):
        self.code = code
        super().__init__(message or f"Speech capture failed: {code}")


class BackendError(KrishiError):
    """
    Language backend query failed.

    kind is one of: "network", "status", "malformed", "timeout"
    """

    NETWORK = "network"
    STATUS = "status"
    MALFORMED = "malformed"
    TIMEOUT = "timeout"

    def __init__(self, message: str, kind: str = NETWORK, status: Optional[int] = None):
        self.kind = kind
        self.status = status
        super().__init__(message)


class MalformedResponse(BackendError):
    """Backend answered 2xx but the payload has no usable answer text"""

    def __init__(self, message: str = "Response has no answer text"):
        super().__init__(message, kind=BackendError.MALFORMED)


class OutputError(KrishiError):
    """Speech synthesis or playback failed"""
