"""
Shared fixtures: synthetic QR images rendered with OpenCV's encoder.
"""

import cv2
import numpy as np
import pytest


def render_qr(text: str, scale: int = 8, border: int = 40) -> np.ndarray:
    """RGB frame with a crisp, upscaled QR code and a white quiet zone."""
    encoder = cv2.QRCodeEncoder.create()
    modules = encoder.encode(text)
    code = cv2.resize(modules, None, fx=scale, fy=scale, interpolation=cv2.INTER_NEAREST)
    code = cv2.copyMakeBorder(code, border, border, border, border, cv2.BORDER_CONSTANT, value=255)
    return cv2.cvtColor(code, cv2.COLOR_GRAY2RGB)


@pytest.fixture
def qr_frame():
    """Factory fixture: qr_frame(text) -> RGB ndarray."""
    return render_qr
