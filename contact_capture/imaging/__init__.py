"""
Imaging Package - deterministic image conditioning for recognition.
"""

from .preprocess import (
    ImagePreprocessor,
    CARD_ASPECT_RATIO,
    CARD_MAX_WIDTH,
    MAX_WIDTH,
    CONTRAST,
    BRIGHTNESS,
    largest_centered_rect,
    fit_width,
    to_rgb_array,
)

__all__ = [
    "ImagePreprocessor",
    "CARD_ASPECT_RATIO",
    "CARD_MAX_WIDTH",
    "MAX_WIDTH",
    "CONTRAST",
    "BRIGHTNESS",
    "largest_centered_rect",
    "fit_width",
    "to_rgb_array",
]
