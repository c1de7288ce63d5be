"""
QR Frame Scanner

Per-frame decode loop over a live capture source. Each tick reads one
frame, attempts one decode (inside the region of interest when layout
information is available) and reschedules itself on the event loop until
a code is accepted or the scan is stopped.

State Flow:
    IDLE -> SCANNING -> DECODED -> IDLE
                     -> STOPPED -> IDLE
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional, Tuple, Union

import numpy as np
from PIL import Image

from ..errors import AcquisitionError
from .capture import CaptureSource
from .decode import decode_qr

logger = logging.getLogger(__name__)


__all__ = [
    "ScannerState",
    "RegionOfInterest",
    "map_roi_to_frame",
    "QRFrameScanner",
]

# Minimum spacing between accepted decodes
DEBOUNCE_MS = 800

# ~30 fps display refresh
FRAME_INTERVAL_SEC = 1 / 30

Region = Tuple[int, int, int, int]  # (x, y, width, height) in frame pixels
Decoder = Callable[[np.ndarray], Optional[str]]


class ScannerState(Enum):
    """
    Scanner states.

    States:
        IDLE: No capture resource held
        SCANNING: Tick loop running against a source
        DECODED: A code was accepted (transient, cleans up to IDLE)
        STOPPED: Stopped by the caller (transient, cleans up to IDLE)
    """
    IDLE = auto()
    SCANNING = auto()
    DECODED = auto()
    STOPPED = auto()


@dataclass(frozen=True)
class RegionOfInterest:
    """Scan box in display coordinates."""
    x: float
    y: float
    width: float
    height: float


def map_roi_to_frame(
    roi: Optional[RegionOfInterest],
    display_size: Optional[Tuple[float, float]],
    frame_size: Tuple[int, int],
) -> Optional[Region]:
    """
    Convert a display-space ROI into a pixel rectangle of the source frame.

    Coordinates are scaled by frame resolution / display resolution and
    clamped to the frame.

    Args:
        roi: Scan box relative to the display area
        display_size: (width, height) of the display area
        frame_size: (width, height) of the source frame

    Returns:
        (x, y, width, height), or None when no layout information is
        available (decode the full frame instead)
    """
    if roi is None or not display_size:
        return None
    display_w, display_h = display_size
    frame_w, frame_h = frame_size
    if display_w <= 0 or display_h <= 0 or frame_w <= 0 or frame_h <= 0:
        return None

    sx = frame_w / display_w
    sy = frame_h / display_h

    x = max(0, math.floor(roi.x * sx))
    y = max(0, math.floor(roi.y * sy))
    w = min(frame_w - x, math.floor(roi.width * sx))
    h = min(frame_h - y, math.floor(roi.height * sy))
    if w <= 0 or h <= 0:
        return None
    return x, y, w, h


class QRFrameScanner:
    """
    Self-rescheduling QR decode loop.

    Single-shot by default: the first accepted decode stops the scan.
    With continuous=True every accepted decode is emitted until stop().

    Example:
        scanner = QRFrameScanner()
        done = scanner.start(CameraCapture(0), on_decoded=print)
        text = await done   # None if stopped before a decode
    """

    def __init__(
        self,
        decoder: Decoder = decode_qr,
        debounce_ms: float = DEBOUNCE_MS,
        frame_interval: float = FRAME_INTERVAL_SEC,
        continuous: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            decoder: Decode primitive, frame -> text or None
            debounce_ms: Minimum time between accepted decodes
            frame_interval: Seconds between ticks
            continuous: Keep scanning after an accepted decode
            clock: Monotonic time source in seconds
        """
        self.decoder = decoder
        self.debounce_ms = debounce_ms
        self.frame_interval = frame_interval
        self.continuous = continuous
        self._clock = clock

        self.roi: Optional[RegionOfInterest] = None
        self.display_size: Optional[Tuple[float, float]] = None
        self.on_decoded: Optional[Callable[[str], None]] = None
        # Called with (frame, region, text) for every accepted decode
        self.on_accepted_frame: Optional[Callable[[np.ndarray, Optional[Region], str], None]] = None

        self._state = ScannerState.IDLE
        self._last_outcome: Optional[ScannerState] = None
        self._source: Optional[CaptureSource] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.TimerHandle] = None
        self._done: Optional[asyncio.Future] = None
        self._last_accept_at: Optional[float] = None
        self._last_text: Optional[str] = None
        self.accepted_count = 0

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def last_outcome(self) -> Optional[ScannerState]:
        """DECODED or STOPPED for the most recent finished scan."""
        return self._last_outcome

    @property
    def is_scanning(self) -> bool:
        return self._state is ScannerState.SCANNING

    def start(
        self,
        source: CaptureSource,
        on_decoded: Optional[Callable[[str], None]] = None,
        roi: Optional[RegionOfInterest] = None,
        display_size: Optional[Tuple[float, float]] = None,
    ) -> asyncio.Future:
        """
        Acquire the source and begin the tick loop.

        Must be called from a running event loop. Any scan in progress is
        stopped first so only one capture resource is held.

        Returns:
            Future resolved with the last accepted text, or None if the
            scan was stopped without a decode

        Raises:
            AcquisitionError: If the source cannot be opened
        """
        loop = asyncio.get_running_loop()
        if self._state is not ScannerState.IDLE or self._source is not None:
            logger.info("Scan already active, stopping it first")
            self.stop()

        try:
            source.open()
        except AcquisitionError:
            logger.error("Could not acquire capture source for scanning")
            raise

        self._loop = loop
        self._source = source
        self.on_decoded = on_decoded
        self.roi = roi
        self.display_size = display_size
        self._last_text = None
        self._done = loop.create_future()
        self._state = ScannerState.SCANNING
        self._handle = loop.call_soon(self._tick)
        logger.info("QR scanning started")
        return self._done

    def stop(self) -> None:
        """Cancel the pending tick and release the source. Idempotent."""
        if self._state is ScannerState.SCANNING:
            self._finish(ScannerState.STOPPED)
        else:
            self._cleanup()

    def process_frame(self, frame: np.ndarray) -> Optional[str]:
        """
        One decode attempt on a frame, with ROI and debounce applied.

        Returns:
            Accepted text, or None
        """
        height, width = frame.shape[:2]
        region = map_roi_to_frame(self.roi, self.display_size, (width, height))
        if region:
            x, y, w, h = region
            target = frame[y:y + h, x:x + w]
        else:
            target = frame

        text = self.decoder(target)
        if not text:
            return None

        if not self.accept():
            logger.debug("Duplicate decode suppressed by debounce")
            return None

        self.accepted_count += 1
        self._last_text = text
        logger.info(f"QR decoded ({len(text)} chars)")

        if self.on_accepted_frame:
            self.on_accepted_frame(frame, region, text)
        if self.on_decoded:
            self.on_decoded(text)
        return text

    def accept(self, now: Optional[float] = None) -> bool:
        """Debounce gate: True if enough time passed since the last accepted decode."""
        now = self._clock() if now is None else now
        if self._last_accept_at is not None:
            elapsed_ms = (now - self._last_accept_at) * 1000
            if elapsed_ms < self.debounce_ms:
                return False
        self._last_accept_at = now
        return True

    def decode_image(self, image: Union[Image.Image, np.ndarray]) -> Optional[str]:
        """Single decode attempt on a still image (full frame, no debounce)."""
        if isinstance(image, Image.Image):
            image = np.array(image.convert("RGB"))
        return self.decoder(image)

    def _tick(self) -> None:
        self._handle = None
        if self._state is not ScannerState.SCANNING or self._source is None:
            return

        try:
            frame = self._source.read_frame()
            if frame is not None:
                text = self.process_frame(frame)
                if text is not None and not self.continuous:
                    self._finish(ScannerState.DECODED)
                    return
        except AcquisitionError as e:
            logger.error(f"Capture lost during scan: {e}")
            self._finish(ScannerState.STOPPED, error=e)
            return
        except Exception as e:
            logger.exception("Error in scan tick")
            self._finish(ScannerState.STOPPED, error=e)
            return

        if self._state is ScannerState.SCANNING and self._loop is not None:
            self._handle = self._loop.call_later(self.frame_interval, self._tick)

    def _finish(self, outcome: ScannerState, error: Optional[BaseException] = None) -> None:
        self._state = outcome
        self._last_outcome = outcome
        done = self._done
        self._cleanup()
        if done is not None and not done.done():
            if error is not None:
                done.set_exception(error)
            else:
                done.set_result(self._last_text)
        logger.info(f"QR scanning finished: {outcome.name}")

    def _cleanup(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._source is not None:
            self._source.release()
            self._source = None
        self._done = None
        self._state = ScannerState.IDLE
