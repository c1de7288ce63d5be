"""
Parsing Package - turns raw channel input into contact patches.

Public API:
    - VCardParser / parse_vcard(): vCard payloads
    - TextFieldExtractor / extract_fields(): OCR free text
    - patch_from_payload(): QR payload dispatch with note fallback
"""

from .vcard import VCardParser, parse_vcard, DEFAULT_PREFERENCE_SCORES
from .text_extractor import (
    TextFieldExtractor,
    extract_fields,
    OCR_SEPARATOR,
    MIN_PHONE_DIGITS,
    NAME_MIN_LENGTH,
    NAME_MAX_LENGTH,
)
from .payload import parse_payload, patch_from_payload, QR_NOTE_PREFIX

__all__ = [
    "VCardParser",
    "parse_vcard",
    "DEFAULT_PREFERENCE_SCORES",
    "TextFieldExtractor",
    "extract_fields",
    "OCR_SEPARATOR",
    "MIN_PHONE_DIGITS",
    "NAME_MIN_LENGTH",
    "NAME_MAX_LENGTH",
    "parse_payload",
    "patch_from_payload",
    "QR_NOTE_PREFIX",
]
