"""
OCR Module for Contact Capture

Pluggable recognition architecture for reading business card images.

Usage:
    from contact_capture.ocr import RecognitionWorker

    worker = RecognitionWorker("tesseract", lang="spa+eng")
    result = await worker.recognize(image)
    text = result.text

Example with a custom engine:
    register_engine("cloud", CloudEngine)
    worker = RecognitionWorker("cloud")
"""

# Public API - Result types
from .result import OCRResult

# Public API - Base class for custom engines
from .base import OCREngine

# Public API - Factory functions
from .factory import (
    create_engine,
    register_engine,
    available_engines,
)

# Public API - Async worker
from .worker import RecognitionWorker, DEFAULT_LANG, DEFAULT_TIMEOUT_SEC

# Debug utilities
from .debug import DEBUG_DIR, save_debug_image

__all__ = [
    # Result types
    "OCRResult",
    # Base class
    "OCREngine",
    # Factory
    "create_engine",
    "register_engine",
    "available_engines",
    # Worker
    "RecognitionWorker",
    "DEFAULT_LANG",
    "DEFAULT_TIMEOUT_SEC",
    # Debug
    "DEBUG_DIR",
    "save_debug_image",
]
