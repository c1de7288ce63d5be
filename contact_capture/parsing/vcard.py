"""
vCard Parser

Turns a decoded vCard blob (BEGIN:VCARD ... END:VCARD) into a contact
patch. Handles line folding, grouped properties (item1.TEL), bare TYPE
parameters, quoted-printable values and text escaping. Never raises for
malformed input: lines that cannot be parsed are skipped, and every
unknown property is kept as a note line.
"""

import logging
import quopri
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from ..record import Patch

logger = logging.getLogger(__name__)

# Preference scores for picking the primary phone/email
DEFAULT_PREFERENCE_SCORES: Dict[str, int] = {
    "pref": 100,
    "mobile": 90,
    "work": 70,
    "home": 50,
    "other": 10,
    "internet_bonus": 1,
}

_MOBILE_RE = re.compile(r"cell|mobile|m[oó]vil", re.IGNORECASE)
_WORK_TYPES = {"work", "empresa"}
_HOME_TYPES = {"home", "personal"}

_FOLD_RE = re.compile(r"\n[ \t]")
_GROUP_RE = re.compile(r"^[A-Za-z0-9-]+\.(?=[A-Za-z0-9-]+[;:])")
_ESCAPE_RE = re.compile(r"\\([nN,;\\])")
_STRUCT_SPLIT_RE = re.compile(r"(?<!\\);")
_SPACES_RE = re.compile(r"\s+")

_PHONE_KEYS = {"TEL", "PHONE"}


@dataclass
class Candidate:
    """A phone or email value with its TYPE parameters and score."""
    value: str
    types: Set[str] = field(default_factory=set)
    score: int = 0


def unfold(text: str) -> str:
    """Normalize newlines and join folded continuation lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _FOLD_RE.sub("", text)


def unescape(value: str) -> str:
    r"""Undo vCard text escaping (\n, \,, \;, \\)."""
    def _replace(match: re.Match) -> str:
        ch = match.group(1)
        return "\n" if ch in "nN" else ch
    return _ESCAPE_RE.sub(_replace, value)


def split_structured(value: str) -> List[str]:
    """Split a structured value (N, ORG) on unescaped semicolons."""
    return [unescape(part).strip() for part in _STRUCT_SPLIT_RE.split(value)]


def parse_params(parts: List[str]) -> Dict[str, Set[str]]:
    """
    Parse property parameters into name -> set of lower-cased values.

    A bare token with no '=' (e.g. ;CELL;PREF) is an implicit TYPE value.
    """
    params: Dict[str, Set[str]] = {}
    for part in parts:
        part = part.strip()
        if not part:
            continue
        if "=" in part:
            name, _, raw = part.partition("=")
            values = {v.strip().strip('"').lower() for v in raw.split(",") if v.strip()}
            params.setdefault(name.strip().upper(), set()).update(values)
        else:
            params.setdefault("TYPE", set()).add(part.lower())
    return params


def is_quoted_printable(params: Dict[str, Set[str]]) -> bool:
    values = params.get("ENCODING", set()) | params.get("TYPE", set())
    return "quoted-printable" in values


def decode_quoted_printable(value: str, charset: str = "utf-8") -> str:
    """Decode =XX escapes and soft line breaks using the given charset."""
    raw = quopri.decodestring(value.encode("utf-8"))
    try:
        return raw.decode(charset, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


class VCardParser:
    """
    Parser for vCard 2.1/3.0/4.0 payloads.

    Args:
        preference_scores: Overrides for DEFAULT_PREFERENCE_SCORES

    Example:
        >>> VCardParser().parse("BEGIN:VCARD\\nFN:Jane Doe\\nEND:VCARD")
        {'name': 'Jane Doe'}
    """

    def __init__(self, preference_scores: Optional[Dict[str, int]] = None):
        self.scores = dict(DEFAULT_PREFERENCE_SCORES)
        if preference_scores:
            self.scores.update(preference_scores)

    def score(self, types: Set[str], is_email: bool = False) -> int:
        """Preference score for a candidate with the given TYPE values."""
        if "pref" in types:
            value = self.scores["pref"]
        elif any(_MOBILE_RE.search(t) for t in types):
            value = self.scores["mobile"]
        elif types & _WORK_TYPES:
            value = self.scores["work"]
        elif types & _HOME_TYPES:
            value = self.scores["home"]
        else:
            value = self.scores["other"]
        if is_email and "internet" in types:
            value += self.scores["internet_bonus"]
        return value

    def logical_lines(self, raw_text: str) -> List[str]:
        """Unfold and split into property lines, joining QP soft breaks."""
        lines = unfold(raw_text).split("\n")
        result: List[str] = []
        i = 0
        while i < len(lines):
            line = lines[i].strip()
            i += 1
            if not line:
                continue
            head = line.split(":", 1)[0].upper()
            # Quoted-printable soft line breaks continue on the next line
            if "QUOTED-PRINTABLE" in head:
                while line.endswith("=") and i < len(lines):
                    line = line[:-1] + lines[i].strip()
                    i += 1
            result.append(line)
        return result

    def split_line(self, line: str) -> Optional[Tuple[str, Dict[str, Set[str]], str]]:
        """Split a property line into (KEY, params, raw value)."""
        line = _GROUP_RE.sub("", line)
        left, sep, value = line.partition(":")
        if not sep:
            return None
        key_raw, *param_parts = left.split(";")
        key = key_raw.strip().upper()
        if not key:
            return None
        return key, parse_params(param_parts), value

    def parse(self, raw_text: str) -> Patch:
        """
        Parse a vCard blob into a contact patch.

        Args:
            raw_text: vCard text, possibly folded and quoted-printable encoded

        Returns:
            Patch with any of name, company, position, phone, email, notes
        """
        patch: Patch = {}
        if not raw_text:
            return patch

        formatted_name = ""
        structured_name = ""
        phones: List[Candidate] = []
        emails: List[Candidate] = []
        extra_notes: List[str] = []

        for line in self.logical_lines(raw_text):
            upper = line.upper()
            if upper.startswith("BEGIN:") or upper.startswith("END:"):
                continue

            parsed = self.split_line(line)
            if parsed is None:
                logger.debug(f"Skipping malformed vCard line: {line!r}")
                continue
            key, params, value = parsed

            if is_quoted_printable(params):
                charset = next(iter(params.get("CHARSET", {"utf-8"})))
                value = decode_quoted_printable(value, charset)

            if key == "N":
                if not structured_name:
                    structured_name = self._compose_name(value)
                continue
            if key == "ORG":
                company = split_structured(value)[0]
                if company and "company" not in patch:
                    patch["company"] = company
                continue

            value = unescape(value).strip()
            if not value:
                continue

            if key == "FN":
                formatted_name = formatted_name or value
            elif key in ("TITLE", "ROLE"):
                patch.setdefault("position", value)
            elif key == "NOTE":
                extra_notes.append(value)
            elif key in _PHONE_KEYS:
                types = params.get("TYPE", set())
                if "PREF" in params:
                    types = types | {"pref"}
                value = re.sub(r"^tel:", "", value, flags=re.IGNORECASE)
                phones.append(Candidate(value, types, self.score(types)))
            elif key == "EMAIL":
                types = params.get("TYPE", set())
                if "PREF" in params:
                    types = types | {"pref"}
                value = re.sub(r"^mailto:", "", value, flags=re.IGNORECASE)
                emails.append(Candidate(value, types, self.score(types, is_email=True)))
            else:
                extra_notes.append(f"{key}: {value}")

        name = formatted_name or structured_name
        if name:
            patch["name"] = name

        best_phone = self._select(phones)
        if best_phone:
            patch["phone"] = best_phone.value
        best_email = self._select(emails)
        if best_email:
            patch["email"] = best_email.value

        # Fall back to the email local-part for the name
        if "name" not in patch and "email" in patch:
            local_part = patch["email"].split("@", 1)[0].strip()
            if local_part:
                patch["name"] = local_part

        if extra_notes:
            patch["notes"] = "\n".join(extra_notes)

        return patch

    @staticmethod
    def _compose_name(value: str) -> str:
        """Compose 'prefix first middle last suffix' from an N value."""
        parts = split_structured(value) + [""] * 5
        last, first, middle, prefix, suffix = parts[:5]
        name = " ".join(p for p in (prefix, first, middle, last, suffix) if p)
        return _SPACES_RE.sub(" ", name).strip()

    @staticmethod
    def _select(candidates: List[Candidate]) -> Optional[Candidate]:
        """Highest score wins; sorted() is stable so ties keep line order."""
        if not candidates:
            return None
        return sorted(candidates, key=lambda c: c.score, reverse=True)[0]


def parse_vcard(raw_text: str) -> Patch:
    """Parse with default preference scores."""
    return VCardParser().parse(raw_text)
