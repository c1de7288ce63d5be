"""
QR payload dispatch: vCard payloads are parsed, anything else is kept
verbatim as a note.
"""

import logging
from typing import Optional

from ..errors import DecodeError
from ..record import Patch
from .vcard import VCardParser

logger = logging.getLogger(__name__)

VCARD_MARKER = "BEGIN:VCARD"
QR_NOTE_PREFIX = "QR: "


def parse_payload(text: str, parser: Optional[VCardParser] = None) -> Patch:
    """
    Parse a decoded payload into a patch.

    Raises:
        DecodeError: If the payload is not a vCard or yields no field
    """
    if not text.lstrip().upper().startswith(VCARD_MARKER):
        raise DecodeError("Payload is not a vCard")
    patch = (parser or VCardParser()).parse(text)
    if not patch:
        raise DecodeError("vCard payload produced no contact fields")
    return patch


def patch_from_payload(text: str, parser: Optional[VCardParser] = None) -> Patch:
    """
    Patch for a decoded QR/text payload, falling back to a raw note.

    Args:
        text: Decoded QR text or pasted vCard/text
        parser: Optional configured VCardParser

    Returns:
        Parsed patch, or {"notes": "QR: <payload>"} when nothing parses
    """
    if not text or not text.strip():
        return {}
    try:
        return parse_payload(text, parser)
    except DecodeError as e:
        logger.warning(f"Storing payload as note: {e}")
        return {"notes": QR_NOTE_PREFIX + text.strip()}
