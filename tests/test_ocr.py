#!/usr/bin/env python3
"""
Tests for the OCR layer: engine factory, Tesseract output assembly,
the async recognition worker and debug image output.

Usage:
    pytest tests/test_ocr.py
"""

import asyncio
import sys
import time
from pathlib import Path

import pytest
from PIL import Image

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from contact_capture.errors import RecognitionError
from contact_capture.ocr import (
    OCREngine,
    OCRResult,
    RecognitionWorker,
    available_engines,
    create_engine,
    register_engine,
    save_debug_image,
)
from contact_capture.ocr.debug import MAX_DEBUG_IMAGES
from contact_capture.ocr.tesseract_engine import TesseractOCREngine, _assemble_text

CARD = Image.new("L", (64, 32), 255)


class CountingEngine(OCREngine):
    """Engine with a slow initialize() that counts its calls."""

    init_calls = 0
    instances = 0

    def __init__(self):
        CountingEngine.instances += 1
        self.prefix = ""

    @property
    def name(self):
        return "counting"

    def configure(self, **kwargs):
        self.prefix = kwargs.get("prefix", self.prefix)

    def initialize(self):
        CountingEngine.init_calls += 1
        time.sleep(0.05)

    def recognize(self, image, lang):
        return OCRResult(text=f"{self.prefix}{lang}", confidence=0.9, lang=lang)


class FlakyEngine(OCREngine):
    """Fails its first initialization only."""

    attempts = 0

    @property
    def name(self):
        return "flaky"

    def initialize(self):
        FlakyEngine.attempts += 1
        if FlakyEngine.attempts == 1:
            raise RuntimeError("model download interrupted")

    def recognize(self, image, lang):
        return OCRResult(text="ok")


class SlowEngine(OCREngine):
    @property
    def name(self):
        return "slow"

    def recognize(self, image, lang):
        time.sleep(0.3)
        return OCRResult(text="late")


class CrashingEngine(OCREngine):
    @property
    def name(self):
        return "crashing"

    def recognize(self, image, lang):
        raise ValueError("unsupported image format")


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def test_factory_registry():
    """Tesseract is built in; custom engines can be registered."""
    assert "tesseract" in available_engines()
    register_engine("counting", CountingEngine)
    engine = create_engine("counting", prefix="x-")
    assert isinstance(engine, CountingEngine)
    assert engine.prefix == "x-"


def test_factory_rejects_unknown_and_invalid():
    with pytest.raises(ValueError):
        create_engine("does-not-exist")
    with pytest.raises(TypeError):
        register_engine("bogus", dict)


def test_tesseract_engine_created_lazily():
    engine = create_engine("tesseract", psm=4)
    assert isinstance(engine, TesseractOCREngine)
    assert engine.name == "tesseract"
    assert engine._psm == 4


# ---------------------------------------------------------------------------
# Tesseract helpers
# ---------------------------------------------------------------------------

def test_assemble_text_groups_lines():
    data = {
        "text": ["", "Maria", "Lopez", "", "Sales", "Manager", " "],
        "block_num": [1, 1, 1, 1, 1, 1, 1],
        "par_num": [1, 1, 1, 1, 1, 1, 1],
        "line_num": [0, 1, 1, 2, 2, 2, 2],
        "conf": ["-1", "90", "80", "-1", 70, 60.0, "-1"],
    }
    text, confidence = _assemble_text(data)
    assert text == "Maria Lopez\nSales Manager"
    assert confidence == pytest.approx(0.75)


def test_assemble_text_empty():
    assert _assemble_text({"text": []}) == ("", 0.0)


def test_resolve_lang_uses_installed_languages():
    engine = TesseractOCREngine()
    assert engine.resolve_lang("spa+eng") == "spa+eng"

    engine._installed_langs = ["eng", "osd"]
    assert engine.resolve_lang("spa+eng") == "eng"
    assert engine.resolve_lang("spa") == "eng"

    engine._installed_langs = ["deu"]
    with pytest.raises(RecognitionError):
        engine.resolve_lang("spa+eng")


# ---------------------------------------------------------------------------
# RecognitionWorker
# ---------------------------------------------------------------------------

def test_worker_initializes_once_for_concurrent_requests():
    """Requests arriving during initialization wait for the same engine."""
    register_engine("counting", CountingEngine)
    CountingEngine.init_calls = 0
    CountingEngine.instances = 0
    worker = RecognitionWorker("counting", lang="spa+eng")

    async def run():
        return await asyncio.gather(*(worker.recognize(CARD) for _ in range(3)))

    results = asyncio.run(run())
    assert [r.text for r in results] == ["spa+eng"] * 3
    assert CountingEngine.init_calls == 1
    assert CountingEngine.instances == 1
    assert worker.is_ready


def test_worker_retries_failed_initialization():
    register_engine("flaky", FlakyEngine)
    FlakyEngine.attempts = 0
    worker = RecognitionWorker("flaky")

    async def run():
        with pytest.raises(RecognitionError):
            await worker.recognize(CARD)
        assert not worker.is_ready
        return await worker.recognize(CARD)

    assert asyncio.run(run()).text == "ok"
    assert FlakyEngine.attempts == 2


def test_worker_timeout():
    register_engine("slow", SlowEngine)
    worker = RecognitionWorker("slow", timeout=0.05)

    async def run():
        await worker.recognize(CARD)

    with pytest.raises(RecognitionError, match="timed out"):
        asyncio.run(run())


def test_worker_wraps_engine_errors():
    register_engine("crashing", CrashingEngine)
    worker = RecognitionWorker("crashing")

    async def run():
        await worker.recognize(CARD)

    with pytest.raises(RecognitionError):
        asyncio.run(run())


def test_ocr_result_is_empty():
    assert OCRResult(text="  \n").is_empty
    assert not OCRResult(text="Jane").is_empty


# ---------------------------------------------------------------------------
# Debug images
# ---------------------------------------------------------------------------

def test_save_debug_image(tmp_path):
    path = save_debug_image(
        Image.new("L", (100, 60), 200), "scan", roi=(10, 10, 50, 30), caption="QR: hello",
        debug_dir=tmp_path,
    )
    assert path.exists()
    assert path.name.startswith("debug_scan_")
    with Image.open(path) as saved:
        assert saved.mode == "RGB"
        assert saved.getpixel((10, 20)) == (0, 255, 0)


def test_debug_images_are_pruned(tmp_path):
    for _ in range(MAX_DEBUG_IMAGES + 3):
        save_debug_image(CARD, "card", debug_dir=tmp_path)
    assert len(list(tmp_path.glob("debug_*.png"))) == MAX_DEBUG_IMAGES
