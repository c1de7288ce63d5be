"""
Capture Error Types

Typed failures raised by the capture channels. Parsing failures are
recovered locally; acquisition and recognition failures are reported to
the operator and leave the triggering action retryable.
"""


class CaptureError(Exception):
    """Base class for all contact capture errors."""


class AcquisitionError(CaptureError):
    """Capture resource (camera, screen) unavailable or permission denied."""


class DecodeError(CaptureError):
    """QR/vCard payload could not be parsed into any contact field."""


class RecognitionError(CaptureError):
    """The OCR collaborator failed or timed out."""


class PersistenceError(CaptureError):
    """The durable key-value store could not be read or written."""
