"""
OCR Result Dataclasses

Shared data structures for recognition engine results.
"""

from dataclasses import dataclass


@dataclass
class OCRResult:
    """Complete recognition result for one image."""
    text: str                  # Recognized free text
    confidence: float = 0.0    # Mean word confidence 0.0-1.0 (0.0 if unknown)
    lang: str = ""             # Language hint actually used, e.g. "spa+eng"
    processing_time_ms: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()
