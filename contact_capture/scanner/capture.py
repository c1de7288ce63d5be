"""
Capture Sources

Frame providers for the QR scanner and card capture: a camera via OpenCV,
a screen region via mss, and a fixed still image (uploads, tests).
Frames are numpy uint8 arrays (H x W x 3, or H x W for grayscale).
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, Union

import cv2
import mss
import mss.base
import mss.exception
import numpy as np
from PIL import Image

from ..errors import AcquisitionError

logger = logging.getLogger(__name__)


class CaptureSource(ABC):
    """
    A capture resource that must be opened before reading and released
    after use. release() is idempotent.
    """

    @abstractmethod
    def open(self) -> None:
        """
        Acquire the underlying resource.

        Raises:
            AcquisitionError: If the resource is unavailable
        """
        pass

    @abstractmethod
    def read_frame(self) -> Optional[np.ndarray]:
        """Current frame, or None if no frame is ready yet."""
        pass

    @abstractmethod
    def release(self) -> None:
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass

    def grab_image(self) -> Optional[Image.Image]:
        """Current frame as a PIL Image."""
        frame = self.read_frame()
        if frame is None:
            return None
        return Image.fromarray(frame)


class CameraCapture(CaptureSource):
    """
    Camera capture through cv2.VideoCapture.

    Example:
        >>> camera = CameraCapture(0)
        >>> camera.open()
        >>> frame = camera.read_frame()
        >>> camera.release()
    """

    def __init__(self, device_index: int = 0, resolution: Optional[Tuple[int, int]] = None):
        """
        Args:
            device_index: OpenCV camera index
            resolution: Optional requested (width, height)
        """
        self.device_index = device_index
        self.resolution = resolution
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def open(self) -> None:
        if self._capture is not None:
            return
        capture = cv2.VideoCapture(self.device_index)
        if not capture.isOpened():
            capture.release()
            raise AcquisitionError(
                f"Camera {self.device_index} unavailable. Check permissions or device index."
            )
        if self.resolution:
            width, height = self.resolution
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self._capture = capture
        logger.info(f"Camera {self.device_index} opened")

    def read_frame(self) -> Optional[np.ndarray]:
        if self._capture is None:
            return None
        ok, frame = self._capture.read()
        if not ok:
            return None
        # OpenCV delivers BGR; the pipeline works in RGB
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info(f"Camera {self.device_index} released")


class ScreenCapture(CaptureSource):
    """
    Screen region capture through mss (QR codes shown on screen).

    Args:
        region: Optional (left, top, width, height); default is the whole monitor
        monitor: mss monitor index (1 = primary)
    """

    def __init__(self, region: Optional[Tuple[int, int, int, int]] = None, monitor: int = 1):
        self.region = region
        self.monitor = monitor
        self._sct: Optional[mss.base.MSSBase] = None
        self._area: Optional[Dict[str, int]] = None

    @property
    def is_open(self) -> bool:
        return self._sct is not None

    def open(self) -> None:
        if self._sct is not None:
            return
        try:
            sct = mss.mss()
        except mss.exception.ScreenShotError as e:
            raise AcquisitionError(f"Screen capture unavailable: {e}") from e

        if self.region:
            left, top, width, height = self.region
            self._area = {"left": left, "top": top, "width": width, "height": height}
        else:
            if self.monitor >= len(sct.monitors):
                sct.close()
                raise AcquisitionError(f"Monitor {self.monitor} not found")
            self._area = dict(sct.monitors[self.monitor])
        self._sct = sct
        logger.info(f"Screen capture opened: {self._area}")

    def read_frame(self) -> Optional[np.ndarray]:
        if self._sct is None:
            return None
        try:
            screenshot = self._sct.grab(self._area)
        except mss.exception.ScreenShotError as e:
            logger.warning(f"Screen grab failed: {e}")
            return None
        img = Image.frombytes("RGB", (screenshot.width, screenshot.height), screenshot.rgb)
        return np.array(img)

    def release(self) -> None:
        if self._sct is not None:
            self._sct.close()
            self._sct = None
            logger.info("Screen capture released")


class StillImageSource(CaptureSource):
    """Serves the same still image on every read (uploaded files)."""

    def __init__(self, image: Union[Image.Image, np.ndarray]):
        if isinstance(image, Image.Image):
            image = np.array(image.convert("RGB"))
        self._frame = image
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True

    def read_frame(self) -> Optional[np.ndarray]:
        return self._frame if self._open else None

    def release(self) -> None:
        self._open = False
