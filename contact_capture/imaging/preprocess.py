"""
Image Preprocessor

Conditions still images for text recognition: proportional downscale,
luma grayscale, contrast/brightness stretch and optional mean-threshold
binarization. Also crops camera frames to the business-card aspect ratio.

All transformations are pure and deterministic.
"""

import logging
from typing import Tuple

import cv2
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

# Widest image handed to the OCR engine (pixels)
MAX_WIDTH = 1200

# Contrast/brightness stretch (tuned empirically)
CONTRAST = 1.35
BRIGHTNESS = 8.0

# ISO/IEC 7810 ID-1 card: 85.60 x 53.98 mm
CARD_ASPECT_RATIO = 1.586
CARD_MAX_WIDTH = 1200

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


def to_rgb_array(image: Image.Image) -> np.ndarray:
    """Convert a PIL image to an RGB uint8 array."""
    if image.mode != "RGB":
        image = image.convert("RGB")
    return np.array(image, dtype=np.uint8)


def _resize(image: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Area-interpolated resize through OpenCV."""
    if image.mode not in ("L", "RGB", "RGBA"):
        image = image.convert("RGB")
    resized = cv2.resize(np.array(image), size, interpolation=cv2.INTER_AREA)
    return Image.fromarray(resized)


def fit_width(width: int, height: int, max_width: int) -> Tuple[int, int]:
    """Size scaled proportionally so width <= max_width; never upscales."""
    if width <= max_width:
        return width, height
    ratio = max_width / width
    return max_width, max(1, round(height * ratio))


def largest_centered_rect(width: int, height: int, ratio: float) -> Tuple[int, int, int, int]:
    """
    Largest centered rectangle of the given aspect ratio inside a frame.

    Returns:
        (x, y, width, height)
    """
    if width / height > ratio:
        crop_h = height
        crop_w = min(width, max(1, round(height * ratio)))
    else:
        crop_w = width
        crop_h = min(height, max(1, round(width / ratio)))
    x = (width - crop_w) // 2
    y = (height - crop_h) // 2
    return x, y, crop_w, crop_h


class ImagePreprocessor:
    """
    OCR preprocessing pipeline.

    Example:
        >>> pre = ImagePreprocessor()
        >>> card = pre.crop_to_aspect(frame)
        >>> ready = pre.preprocess(card)
    """

    def __init__(
        self,
        max_width: int = MAX_WIDTH,
        contrast: float = CONTRAST,
        brightness: float = BRIGHTNESS,
        binarize: bool = True,
    ):
        self.max_width = max_width
        self.contrast = contrast
        self.brightness = brightness
        self.binarize_enabled = binarize

    def preprocess(self, image: Image.Image) -> Image.Image:
        """
        Run the full pipeline.

        Args:
            image: Raw still image (any PIL mode)

        Returns:
            New 8-bit grayscale ("L") image
        """
        image = self.downscale(image)
        luma = self.grayscale(image)
        luma = self.adjust_contrast(luma)
        if self.binarize_enabled:
            luma = self.binarize(luma)
        logger.debug(f"Preprocessed image to {luma.shape[1]}x{luma.shape[0]}")
        return Image.fromarray(luma)

    def downscale(self, image: Image.Image) -> Image.Image:
        """Scale proportionally so width equals max_width; never upscale."""
        width, height = image.size
        new_size = fit_width(width, height, self.max_width)
        if new_size == (width, height):
            return image.copy()
        return _resize(image, new_size)

    @staticmethod
    def grayscale(image: Image.Image) -> np.ndarray:
        """Luma (0.299R + 0.587G + 0.114B) as a float32 array."""
        if image.mode == "L":
            return np.array(image, dtype=np.float32)
        rgb = to_rgb_array(image).astype(np.float32)
        r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
        wr, wg, wb = LUMA_WEIGHTS
        return wr * r + wg * g + wb * b

    def adjust_contrast(self, luma: np.ndarray) -> np.ndarray:
        """y' = clamp((y - 128) * contrast + 128 + brightness, 0, 255)."""
        stretched = (luma.astype(np.float32) - 128.0) * self.contrast + 128.0 + self.brightness
        return np.clip(np.rint(stretched), 0, 255).astype(np.uint8)

    @staticmethod
    def binarize(luma: np.ndarray) -> np.ndarray:
        """Full white above the mean luma, full black otherwise."""
        mean = float(luma.mean()) if luma.size else 0.0
        return np.where(luma > mean, 255, 0).astype(np.uint8)

    def crop_to_aspect(
        self,
        image: Image.Image,
        target_ratio: float = CARD_ASPECT_RATIO,
        max_width: int = CARD_MAX_WIDTH,
    ) -> Image.Image:
        """
        Crop the largest centered region of target_ratio and limit its width.

        Args:
            image: Source frame
            target_ratio: width / height of the region (business card ~1.586)
            max_width: Maximum output width

        Returns:
            New cropped (and possibly downscaled) image
        """
        if target_ratio <= 0:
            raise ValueError(f"Invalid aspect ratio: {target_ratio}")
        width, height = image.size
        x, y, crop_w, crop_h = largest_centered_rect(width, height, target_ratio)
        cropped = image.crop((x, y, x + crop_w, y + crop_h))

        out_size = fit_width(crop_w, crop_h, max_width)
        if out_size != (crop_w, crop_h):
            cropped = _resize(cropped, out_size)
        return cropped
