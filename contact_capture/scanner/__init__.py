"""
Scanner Package - capture sources and the QR frame loop.

Public API:
    - CaptureSource: Abstract base for frame providers
    - CameraCapture / ScreenCapture / StillImageSource: Providers
    - decode_qr(): OpenCV decode primitive
    - QRFrameScanner: Self-rescheduling decode loop with ROI and debounce
"""

from .capture import CaptureSource, CameraCapture, ScreenCapture, StillImageSource
from .decode import decode_qr
from .qr_scanner import (
    QRFrameScanner,
    ScannerState,
    RegionOfInterest,
    map_roi_to_frame,
    DEBOUNCE_MS,
    FRAME_INTERVAL_SEC,
)

__all__ = [
    "CaptureSource",
    "CameraCapture",
    "ScreenCapture",
    "StillImageSource",
    "decode_qr",
    "QRFrameScanner",
    "ScannerState",
    "RegionOfInterest",
    "map_roi_to_frame",
    "DEBOUNCE_MS",
    "FRAME_INTERVAL_SEC",
]
