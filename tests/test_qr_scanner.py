"""
Tests for the QR decode primitive and the frame scanner loop.

Usage:
    pytest tests/test_qr_scanner.py
"""

import asyncio
import sys
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from contact_capture.errors import AcquisitionError
from contact_capture.scanner import (
    QRFrameScanner,
    RegionOfInterest,
    ScannerState,
    StillImageSource,
    decode_qr,
    map_roi_to_frame,
)

BLANK = np.zeros((120, 160, 3), dtype=np.uint8)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class UnavailableSource(StillImageSource):
    """Source whose device is always busy."""

    def __init__(self):
        super().__init__(BLANK)

    def open(self):
        raise AcquisitionError("camera busy")


# ---------------------------------------------------------------------------
# ROI mapping
# ---------------------------------------------------------------------------

def test_roi_scaled_to_frame_resolution():
    roi = RegionOfInterest(100, 50, 200, 200)
    assert map_roi_to_frame(roi, (400, 300), (1280, 960)) == (320, 160, 640, 640)


def test_roi_clamped_to_frame():
    roi = RegionOfInterest(350, 250, 100, 100)
    assert map_roi_to_frame(roi, (400, 300), (400, 300)) == (350, 250, 50, 50)


def test_roi_without_layout_uses_full_frame():
    roi = RegionOfInterest(0, 0, 10, 10)
    assert map_roi_to_frame(None, (400, 300), (640, 480)) is None
    assert map_roi_to_frame(roi, None, (640, 480)) is None
    assert map_roi_to_frame(roi, (0, 300), (640, 480)) is None
    assert map_roi_to_frame(RegionOfInterest(500, 0, 10, 10), (400, 300), (400, 300)) is None


def test_process_frame_crops_to_roi():
    shapes = []

    def decoder(target):
        shapes.append(target.shape)
        return None

    scanner = QRFrameScanner(decoder=decoder)
    scanner.roi = RegionOfInterest(50, 25, 100, 75)
    scanner.display_size = (200, 150)
    scanner.process_frame(np.zeros((300, 400, 3), dtype=np.uint8))
    assert shapes == [(150, 200, 3)]


# ---------------------------------------------------------------------------
# Debounce
# ---------------------------------------------------------------------------

def test_debounce_suppresses_repeats_within_window():
    """Two decodes 500ms apart yield one event; a third at 900ms is accepted."""
    clock = FakeClock()
    events = []
    scanner = QRFrameScanner(decoder=lambda f: "PAYLOAD", continuous=True, clock=clock)
    scanner.on_decoded = events.append

    assert scanner.process_frame(BLANK) == "PAYLOAD"
    clock.now = 0.5
    assert scanner.process_frame(BLANK) is None
    clock.now = 0.9
    assert scanner.process_frame(BLANK) == "PAYLOAD"

    assert events == ["PAYLOAD", "PAYLOAD"]
    assert scanner.accepted_count == 2


def test_accept_gate():
    scanner = QRFrameScanner(debounce_ms=800)
    assert scanner.accept(10.0)
    assert not scanner.accept(10.799)
    assert scanner.accept(10.8)


def test_empty_decode_does_not_consume_debounce():
    results = iter([None, "A"])
    scanner = QRFrameScanner(decoder=lambda f: next(results), clock=FakeClock())
    assert scanner.process_frame(BLANK) is None
    assert scanner.process_frame(BLANK) == "A"


# ---------------------------------------------------------------------------
# Scan loop
# ---------------------------------------------------------------------------

def test_single_shot_scan_stops_after_decode():
    events = []
    source = StillImageSource(BLANK)
    scanner = QRFrameScanner(decoder=lambda f: "HELLO", frame_interval=0.001)

    async def run():
        done = scanner.start(source, on_decoded=events.append)
        assert scanner.is_scanning
        return await asyncio.wait_for(done, 2)

    assert asyncio.run(run()) == "HELLO"
    assert events == ["HELLO"]
    assert scanner.state is ScannerState.IDLE
    assert scanner.last_outcome is ScannerState.DECODED
    assert not source.is_open


def test_continuous_scan_debounces_repeated_frames():
    events = []
    source = StillImageSource(BLANK)
    scanner = QRFrameScanner(
        decoder=lambda f: "SAME", frame_interval=0.001, continuous=True, clock=lambda: 0.0
    )

    async def run():
        done = scanner.start(source, on_decoded=events.append)
        await asyncio.sleep(0.05)
        scanner.stop()
        return await done

    assert asyncio.run(run()) == "SAME"
    assert events == ["SAME"]
    assert scanner.last_outcome is ScannerState.STOPPED


def test_stop_releases_source_and_is_idempotent():
    source = StillImageSource(BLANK)
    scanner = QRFrameScanner(decoder=lambda f: None, frame_interval=0.001)

    async def run():
        done = scanner.start(source)
        await asyncio.sleep(0.02)
        assert source.is_open
        scanner.stop()
        scanner.stop()
        return await done

    assert asyncio.run(run()) is None
    assert scanner.state is ScannerState.IDLE
    assert scanner.last_outcome is ScannerState.STOPPED
    assert not source.is_open
    scanner.stop()


def test_start_stops_previous_scan():
    first = StillImageSource(BLANK)
    second = StillImageSource(BLANK)
    scanner = QRFrameScanner(decoder=lambda f: None, frame_interval=0.001)

    async def run():
        first_done = scanner.start(first)
        scanner.start(second)
        assert not first.is_open
        assert second.is_open
        result = await first_done
        scanner.stop()
        return result

    assert asyncio.run(run()) is None
    assert not second.is_open


def test_unavailable_source_raises():
    scanner = QRFrameScanner(decoder=lambda f: None)

    async def run():
        scanner.start(UnavailableSource())

    with pytest.raises(AcquisitionError):
        asyncio.run(run())
    assert scanner.state is ScannerState.IDLE


def test_decoder_error_ends_scan():
    def decoder(frame):
        raise RuntimeError("decoder crashed")

    source = StillImageSource(BLANK)
    scanner = QRFrameScanner(decoder=decoder, frame_interval=0.001)

    async def run():
        await scanner.start(source)

    with pytest.raises(RuntimeError):
        asyncio.run(run())
    assert scanner.last_outcome is ScannerState.STOPPED
    assert not source.is_open


# ---------------------------------------------------------------------------
# Real decoding
# ---------------------------------------------------------------------------

def test_decode_qr_from_array_and_image(qr_frame):
    frame = qr_frame("https://example.com")
    assert decode_qr(frame) == "https://example.com"
    assert decode_qr(Image.fromarray(frame)) == "https://example.com"


def test_decode_qr_inverted(qr_frame):
    frame = 255 - qr_frame("INVERTED-123")
    assert decode_qr(frame) == "INVERTED-123"


def test_decode_qr_nothing_found():
    assert decode_qr(np.full((200, 200, 3), 255, dtype=np.uint8)) is None
    assert decode_qr(np.zeros((0, 0, 3), dtype=np.uint8)) is None


def test_scan_loop_with_real_decoder(qr_frame):
    source = StillImageSource(qr_frame("SCAN-ME"))
    scanner = QRFrameScanner(frame_interval=0.001)

    async def run():
        return await asyncio.wait_for(scanner.start(source), 5)

    assert asyncio.run(run()) == "SCAN-ME"


def test_decode_image_ignores_debounce(qr_frame):
    scanner = QRFrameScanner()
    image = Image.fromarray(qr_frame("STILL"))
    assert scanner.decode_image(image) == "STILL"
    assert scanner.decode_image(image) == "STILL"
