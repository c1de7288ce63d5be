"""
Text Field Extractor

Heuristic extraction of contact fields from free text recognized on a
business card. Vocabulary is mixed Spanish/English. The full recognized
text is always kept as a trailing note block so nothing recognized is
lost when a heuristic misfires.
"""

import logging
import re
from typing import List, Optional, Tuple

from ..normalize import clean_text, digit_count, normalize_email, normalize_phone
from ..record import Patch

logger = logging.getLogger(__name__)

# Heuristic thresholds (empirical)
MIN_PHONE_DIGITS = 7
NAME_MIN_LENGTH = 4
NAME_MAX_LENGTH = 48

# Delimits the verbatim OCR dump inside notes
OCR_SEPARATOR = "---- OCR ----"

EMAIL_RE = re.compile(r"\b[\w.%+-]+@[\w.-]+\.[A-Za-z]{2,}\b")
PHONE_RE = re.compile(
    r"(?:\+\d{1,3}[ \t-]?)?\(?\d{2,4}\)?[ \t.-]?\d{2,4}[ \t.-]?\d{2,4}[ \t.-]?\d{0,4}"
)
URL_RE = re.compile(r"\bhttps?://[^\s]+", re.IGNORECASE)
URL_LINE_RE = re.compile(r"https?://|\bwww\.", re.IGNORECASE)

ROLE_RE = re.compile(
    r"\b(?:gerente|director[a]?|jefe|jefa|coordinador[a]?|analista|ingenier[oa]|"
    r"ventas|compras|marketing|mercadeo|fundador[a]?|"
    r"manager|coordinator|analyst|engineer|sales|purchasing|"
    r"ceo|cto|coo|cfo|founder|head|lead)\b",
    re.IGNORECASE,
)

COMPANY_RE = re.compile(
    r"\b(?:s\.?a\.?s|srl|ltda|corp|corporation|inc|company|compañ[ií]a|"
    r"industrias?|industrial|industries|manufactur\w*|fabric\w*|group|grupo)\b"
    r"|\bs\.\s?a\.?(?!\w)",
    re.IGNORECASE,
)

# (label, pattern) for social profiles; first match per platform
SOCIAL_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("Instagram", re.compile(r"\binstagram\.com/[^\s]+", re.IGNORECASE)),
    ("TikTok", re.compile(r"\btiktok\.com/@[^\s]+", re.IGNORECASE)),
    ("YouTube", re.compile(r"\byoutube\.com/[^\s]+|\byoutu\.be/[^\s]+", re.IGNORECASE)),
    ("Facebook", re.compile(r"\bfacebook\.com/[^\s]+", re.IGNORECASE)),
    ("LinkedIn", re.compile(r"\blinkedin\.com/in/[^\s]+", re.IGNORECASE)),
    ("Twitter", re.compile(r"\b(?:twitter|x)\.com/[^\s]+", re.IGNORECASE)),
    ("WhatsApp", re.compile(r"\bwa\.me/\d+", re.IGNORECASE)),
]


def lines_from(text: str) -> List[str]:
    """Non-empty, trimmed lines of text."""
    return [ln.strip() for ln in text.splitlines() if ln.strip()]


class TextFieldExtractor:
    """
    Ordered rule list turning OCR text into a contact patch.

    Args:
        min_phone_digits: Minimum digits for a phone-like match
        name_min_length: Minimum length of a candidate name line
        name_max_length: Maximum length of a candidate name line

    Example:
        >>> extractor = TextFieldExtractor()
        >>> patch = extractor.extract("Jane Doe\\njane@acme.com")
        >>> patch["email"]
        'jane@acme.com'
    """

    def __init__(
        self,
        min_phone_digits: int = MIN_PHONE_DIGITS,
        name_min_length: int = NAME_MIN_LENGTH,
        name_max_length: int = NAME_MAX_LENGTH,
    ):
        self.min_phone_digits = min_phone_digits
        self.name_min_length = name_min_length
        self.name_max_length = name_max_length

    def extract(self, recognized_text: str) -> Patch:
        """
        Extract contact fields from recognized text.

        Args:
            recognized_text: Raw OCR output

        Returns:
            Patch; never contains empty-string values
        """
        patch: Patch = {}
        if not recognized_text or not recognized_text.strip():
            return patch

        text = recognized_text
        lines = lines_from(text)
        notes: List[str] = []

        # 1. Emails
        emails = EMAIL_RE.findall(text)
        if emails:
            email = normalize_email(emails[0])
            if email:
                patch["email"] = email
            seen_emails = {email}
            for candidate in emails[1:]:
                extra = normalize_email(candidate)
                if extra and extra not in seen_emails:
                    seen_emails.add(extra)
                    notes.append(f"Email extra: {extra}")

        # 2. Phones
        phones = self.find_phones(text)
        primary_phone: Optional[str] = None
        if phones:
            primary_phone = phones[0]
            patch["phone"] = normalize_phone(primary_phone)
            seen = {patch["phone"]}
            for candidate in phones[1:]:
                normalized = normalize_phone(candidate)
                if normalized not in seen:
                    seen.add(normalized)
                    notes.append(f"Tel extra: {normalized}")

        # Lines already claimed by contact details are not reused as text fields
        def is_detail_line(line: str) -> bool:
            if any(e in line for e in emails):
                return True
            if primary_phone and primary_phone in line:
                return True
            return bool(URL_LINE_RE.search(line))

        # 3. Position
        role_line = self._first_line(lines, ROLE_RE, is_detail_line)
        if role_line:
            position = clean_text(role_line)
            if position:
                patch["position"] = position

        # 4. Company
        company_line = self._first_line(lines, COMPANY_RE, is_detail_line)
        if company_line:
            company = clean_text(company_line)
            if company:
                patch["company"] = company

        # 5. Name
        if "name" not in patch:
            for line in lines:
                if is_detail_line(line):
                    continue
                if self.name_min_length <= len(line) <= self.name_max_length:
                    name = clean_text(line)
                    if name:
                        patch["name"] = name
                        break

        # 6. URLs and social profiles
        for url in URL_RE.findall(text):
            notes.append(f"URL: {url}")
        for label, pattern in SOCIAL_PATTERNS:
            match = pattern.search(text)
            if match:
                link = re.sub(r"^https?://", "", match.group(0), flags=re.IGNORECASE)
                notes.append(f"{label}: https://{link}")

        # 7. Verbatim OCR dump
        notes.append(OCR_SEPARATOR)
        notes.append(text.strip())

        patch["notes"] = "\n".join(notes)
        logger.debug(f"Extracted fields: {sorted(k for k in patch if k != 'notes')}")
        return patch

    def find_phones(self, text: str) -> List[str]:
        """Phone-like substrings with enough digits, in order of appearance."""
        phones = []
        for match in PHONE_RE.finditer(text):
            candidate = match.group(0).strip(" \t.-")
            if digit_count(candidate) >= self.min_phone_digits:
                phones.append(candidate)
        return phones

    @staticmethod
    def _first_line(lines: List[str], pattern: re.Pattern, skip) -> Optional[str]:
        for line in lines:
            if skip(line):
                continue
            if pattern.search(line):
                return line
        return None


def extract_fields(recognized_text: str) -> Patch:
    """Extract with default thresholds."""
    return TextFieldExtractor().extract(recognized_text)
