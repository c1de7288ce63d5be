"""
Capture Session

Wires every capture channel (QR/vCard payloads, live QR scanning, card
photos through OCR, dictation and manual edits) into one ContactStore.
Acquisition and recognition failures become status text and leave the
action retryable; nothing here terminates the hosting session.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional, Tuple, Union

import numpy as np
from PIL import Image

from .errors import AcquisitionError, RecognitionError
from .imaging import ImagePreprocessor
from .normalize import normalize_email, normalize_phone
from .ocr import OCRResult, RecognitionWorker, save_debug_image
from .parsing import TextFieldExtractor, VCardParser, patch_from_payload
from .record import ContactRecord, FIELDS, Patch
from .scanner import CaptureSource, QRFrameScanner, RegionOfInterest
from .settings import default_settings, merge_settings
from .store import ContactStore

logger = logging.getLogger(__name__)

# Frames to wait for a camera to deliver its first image
CARD_FRAME_ATTEMPTS = 30


class CaptureSession:
    """
    Channel orchestrator for one contact capture session.

    Example:
        store = ContactStore(JsonFileStorage("contact_store.json"))
        store.load()
        session = CaptureSession(store, on_status=print)
        await session.scan_qr(CameraCapture(0))
        card = await session.capture_card(CameraCapture(0))
        await session.process_card(card)
        session.ingest_dictation("Met at the trade fair, call back Monday")
    """

    def __init__(
        self,
        store: ContactStore,
        settings: Optional[Dict[str, Any]] = None,
        ocr_worker: Optional[RecognitionWorker] = None,
        scanner: Optional[QRFrameScanner] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            store: The single owner of the contact record
            settings: Overrides merged onto DEFAULT_SETTINGS
            ocr_worker: Recognition worker (default: built from settings)
            scanner: QR scanner (default: built from settings)
            on_status: Receives operator-facing status messages
        """
        self.store = store
        self.settings = default_settings()
        if settings:
            merge_settings(self.settings, settings)
        s = self.settings

        self.vcard_parser = VCardParser(s["preference_scores"])
        self.extractor = TextFieldExtractor(
            min_phone_digits=s["min_phone_digits"],
            name_min_length=s["name_min_length"],
            name_max_length=s["name_max_length"],
        )
        self.preprocessor = ImagePreprocessor(
            max_width=s["ocr_max_width"],
            contrast=s["contrast"],
            brightness=s["brightness"],
            binarize=s["binarize"],
        )
        self.frame_interval = s["frame_interval_ms"] / 1000
        self.scanner = scanner or QRFrameScanner(
            debounce_ms=s["debounce_ms"],
            frame_interval=self.frame_interval,
            continuous=s["continuous_scan"],
        )

        if ocr_worker is None:
            engine_config = {}
            if s.get("tesseract_cmd"):
                engine_config["tesseract_cmd"] = s["tesseract_cmd"]
            ocr_worker = RecognitionWorker(
                s["ocr_engine"],
                lang=s["ocr_lang"],
                timeout=s["ocr_timeout_sec"],
                **engine_config,
            )
        self.ocr_worker = ocr_worker

        self.debug_enabled = bool(s["debug_enabled"])
        if self.debug_enabled:
            self.scanner.on_accepted_frame = self._save_scan_debug

        self.on_status = on_status
        self.status = ""
        self.last_ocr_result: Optional[OCRResult] = None
        self._capture: Optional[CaptureSource] = None

    # ---------------------------------------------------------------- text

    def ingest_payload(self, text: str) -> ContactRecord:
        """Merge a decoded QR payload or pasted vCard/text into the record."""
        patch = patch_from_payload(text, self.vcard_parser)
        if not patch:
            self._set_status("Empty payload ignored.")
            return self.store.get()
        record = self.store.set(patch)
        self._set_status("QR imported.")
        return record

    def ingest_dictation(self, text: str) -> ContactRecord:
        """Append dictated speech to the notes."""
        text = (text or "").strip()
        if not text:
            return self.store.get()
        record = self.store.set({"notes": text})
        self._set_status("Voice notes saved.")
        return record

    def manual_edit(self, **fields: str) -> ContactRecord:
        """
        Explicit manual edit from the form: given fields replace stored values.

        Raises:
            ValueError: For unknown field names
        """
        unknown = set(fields) - set(FIELDS)
        if unknown:
            raise ValueError(f"Unknown contact fields: {', '.join(sorted(unknown))}")

        patch: Patch = {}
        for field, value in fields.items():
            value = value or ""
            if field == "phone":
                patch[field] = normalize_phone(value)
            elif field == "email":
                patch[field] = normalize_email(value)
            else:
                patch[field] = value.strip()

        record = self.store.edit(patch)
        self._set_status("Contact saved.")
        return record

    def reset(self) -> ContactRecord:
        """Stop any scan and clear the record and its persisted copy."""
        self.scanner.stop()
        record = self.store.reset()
        self._set_status("Ready to scan.")
        return record

    # ----------------------------------------------------------------- QR

    async def scan_qr(
        self,
        source: CaptureSource,
        roi: Optional[RegionOfInterest] = None,
        display_size: Optional[Tuple[float, float]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[ContactRecord]:
        """
        Scan a live source until a QR code is accepted.

        Returns:
            The updated record, or None if stopped or timed out

        Raises:
            AcquisitionError: If the source cannot be acquired (retry with a new call)
        """
        self._release_capture()
        try:
            done = self.scanner.start(
                source,
                on_decoded=self.ingest_payload,
                roi=roi,
                display_size=display_size,
            )
        except AcquisitionError as e:
            self._set_status(f"Could not access the camera: {e}")
            raise

        self._set_status("Scanning... center the code in the box.")
        try:
            text = await asyncio.wait_for(asyncio.shield(done), timeout)
        except asyncio.TimeoutError:
            self.scanner.stop()
            self._set_status("Scan timed out.")
            return None
        except asyncio.CancelledError:
            # done is still pending only while this call's scan holds the source
            if not done.done():
                self.scanner.stop()
                self._set_status("Scan stopped.")
            raise
        except AcquisitionError as e:
            self._set_status(f"Camera lost: {e}")
            raise

        if text is None:
            self._set_status("Scan stopped.")
            return None
        return self.store.get()

    def stop_scan(self) -> None:
        self.scanner.stop()
        self._set_status("Scan stopped.")

    def scan_qr_image(self, image: Union[Image.Image, np.ndarray]) -> Optional[ContactRecord]:
        """Decode an uploaded image once and merge its payload."""
        text = self.scanner.decode_image(image)
        if not text:
            self._set_status("Could not read a QR code from the image.")
            return None
        return self.ingest_payload(text)

    # ---------------------------------------------------------------- card

    async def capture_card(self, source: CaptureSource) -> Image.Image:
        """
        Grab one frame from a source and crop it to the business-card aspect.

        Any capture held by this session (scan or previous card capture)
        is released first.

        Raises:
            AcquisitionError: If the source cannot be opened or delivers no frame
        """
        self.scanner.stop()
        self._release_capture()

        try:
            source.open()
        except AcquisitionError as e:
            self._set_status(f"Could not access the camera: {e}")
            raise
        self._capture = source

        frame = None
        try:
            for _ in range(CARD_FRAME_ATTEMPTS):
                frame = source.read_frame()
                if frame is not None:
                    break
                await asyncio.sleep(self.frame_interval)
        finally:
            self._release_capture()

        if frame is None:
            self._set_status("Camera is not ready yet. Try again.")
            raise AcquisitionError("No frame delivered by the capture source")

        card = self.preprocessor.crop_to_aspect(
            Image.fromarray(frame),
            self.settings["card_aspect_ratio"],
            self.settings["card_max_width"],
        )
        self._set_status("Image captured. Ready for OCR.")
        return card

    async def process_card(self, image: Image.Image) -> Optional[ContactRecord]:
        """
        Preprocess, recognize and extract a card image, then merge the result.

        Returns:
            The updated record, or None if recognition failed or found no text
        """
        self._set_status("Recognizing text...")
        prepared = self.preprocessor.preprocess(image)
        if self.debug_enabled:
            save_debug_image(prepared, "card")

        try:
            result = await self.ocr_worker.recognize(prepared)
        except RecognitionError as e:
            logger.error(f"Recognition failed: {e}")
            self._set_status("OCR failed. Try again with a clearer photo.")
            return None

        self.last_ocr_result = result
        patch = self.extractor.extract(result.text)
        if not patch:
            self._set_status("No text recognized. Try again with a clearer photo.")
            return None

        record = self.store.set(patch)
        self._set_status("OCR complete. Review and save.")
        return record

    # ------------------------------------------------------------- cleanup

    async def close(self) -> None:
        """Stop scanning and release every capture resource."""
        self.scanner.stop()
        self._release_capture()

    def _release_capture(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def _set_status(self, message: str) -> None:
        self.status = message
        logger.info(f"Status: {message}")
        if self.on_status:
            self.on_status(message)

    def _save_scan_debug(self, frame: np.ndarray, region, text: str) -> None:
        save_debug_image(Image.fromarray(frame), "scan", roi=region, caption=text)
