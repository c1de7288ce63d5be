"""
QR decode primitive built on OpenCV's QRCodeDetector.
"""

import logging
from typing import Optional, Union

import cv2
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

_detector: Optional[cv2.QRCodeDetector] = None


def _get_detector() -> cv2.QRCodeDetector:
    global _detector
    if _detector is None:
        _detector = cv2.QRCodeDetector()
    return _detector


def _detect(image: np.ndarray) -> Optional[str]:
    try:
        data, _, _ = _get_detector().detectAndDecode(image)
    except cv2.error as e:
        logger.debug(f"QR detector error: {e}")
        return None
    return data or None


def decode_qr(frame: Union[np.ndarray, Image.Image]) -> Optional[str]:
    """
    Decode the first QR code in a frame.

    Tries the frame as-is, then the inverted grayscale image
    (light-on-dark codes).

    Args:
        frame: RGB/grayscale array or PIL Image

    Returns:
        Decoded text, or None if no code was found
    """
    if isinstance(frame, Image.Image):
        frame = np.array(frame.convert("RGB"))
    if frame is None or frame.size == 0:
        return None

    text = _detect(frame)
    if text:
        return text

    gray = frame if frame.ndim == 2 else cv2.cvtColor(frame, cv2.COLOR_RGB2GRAY)
    return _detect(cv2.bitwise_not(gray))
