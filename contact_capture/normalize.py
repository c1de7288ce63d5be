"""
Field normalization shared by the OCR extractor and the manual-entry path.
"""

import re

_WHITESPACE_RE = re.compile(r"\s+")
_SEPARATOR_RE = re.compile(r"[|•·]+")
_NON_DIGIT_RE = re.compile(r"\D")


def clean_text(value: str) -> str:
    """Collapse whitespace runs, drop bullet/pipe separators and trim."""
    if not value:
        return ""
    value = _SEPARATOR_RE.sub("", value)
    return _WHITESPACE_RE.sub(" ", value).strip()


def normalize_phone(value: str) -> str:
    """
    Canonicalize a phone number to an optional leading '+' and digits.

    Example:
        >>> normalize_phone("+57 (300) 555-1212")
        '+573005551212'
    """
    if not value:
        return ""
    value = value.strip()
    prefix = "+" if value.startswith("+") else ""
    digits = _NON_DIGIT_RE.sub("", value)
    if not digits:
        return ""
    return prefix + digits


def normalize_email(value: str) -> str:
    """Remove whitespace and lower-case an email address."""
    if not value:
        return ""
    return _WHITESPACE_RE.sub("", value).lower()


def digit_count(value: str) -> int:
    return sum(1 for ch in value if ch.isdigit())
