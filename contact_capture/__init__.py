"""
Contact Capture - reconciliation engine for multi-channel contact capture.

Assembles a single contact record from typed input, scanned QR codes,
photographed business cards (OCR) and dictated notes.

Usage:
    from contact_capture import ContactStore, CaptureSession

    store = ContactStore()
    session = CaptureSession(store)
    session.ingest_payload("BEGIN:VCARD\\nFN:Jane Doe\\nEND:VCARD")
    print(store.get().name)
"""

from .record import ContactRecord, EMPTY_RECORD, FIELDS, Patch
from .merger import merge
from .store import ContactStore, JsonFileStorage, MemoryStorage
from .session import CaptureSession

__version__ = "1.0.0"

__all__ = [
    "ContactRecord",
    "EMPTY_RECORD",
    "FIELDS",
    "Patch",
    "merge",
    "ContactStore",
    "JsonFileStorage",
    "MemoryStorage",
    "CaptureSession",
    "__version__",
]
