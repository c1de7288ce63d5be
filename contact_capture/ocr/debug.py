"""
OCR Debug Utilities

Functions for saving annotated debug images of card and scan frames.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

# Debug settings
DEBUG_DIR = Path("./debug")
MAX_DEBUG_IMAGES = 10


def save_debug_image(
    image: Image.Image,
    label: str,
    roi: Optional[Tuple[int, int, int, int]] = None,
    caption: Optional[str] = None,
    debug_dir: Optional[Path] = None,
) -> Path:
    """
    Save an annotated debug image.

    Annotations include:
    - Region of interest rectangle (scan frames)
    - Caption text (decoded payload, OCR summary)

    Args:
        image: PIL Image to save
        label: Short tag used in the file name ("card", "scan")
        roi: Optional (x, y, width, height) rectangle to outline
        caption: Optional text drawn in the top-left corner
        debug_dir: Output directory (default: DEBUG_DIR)

    Returns:
        Path of the written PNG
    """
    out_dir = debug_dir or DEBUG_DIR
    out_dir.mkdir(parents=True, exist_ok=True)

    debug_img = image.convert("RGB")
    draw = ImageDraw.Draw(debug_img)
    font = ImageFont.load_default()

    if roi:
        x, y, w, h = roi
        draw.rectangle([x, y, x + w - 1, y + h - 1], outline="lime", width=2)

    if caption:
        draw.text((10, 10), caption[:80], fill="red", font=font)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    path = out_dir / f"debug_{label}_{timestamp}.png"
    debug_img.save(path, "PNG")
    logger.debug(f"Debug image saved: {path}")

    _cleanup_debug_images(out_dir)
    return path


def _cleanup_debug_images(debug_dir: Path) -> None:
    """Remove old debug images, keeping only the most recent MAX_DEBUG_IMAGES."""
    debug_files = sorted(
        debug_dir.glob("debug_*.png"),
        key=lambda p: p.stat().st_mtime,
        reverse=True
    )

    for old_file in debug_files[MAX_DEBUG_IMAGES:]:
        try:
            old_file.unlink()
        except OSError as e:
            logger.debug(f"Could not remove {old_file}: {e}")
