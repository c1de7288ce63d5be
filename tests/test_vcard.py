"""
Tests for the vCard parser and QR payload dispatch.

Usage:
    pytest tests/test_vcard.py
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from contact_capture.parsing import VCardParser, parse_vcard, patch_from_payload


def vcard(*lines: str) -> str:
    return "\n".join(("BEGIN:VCARD",) + lines + ("END:VCARD",))


def test_basic_card():
    """Standard vCard maps onto the five main fields."""
    text = (
        "BEGIN:VCARD\nFN:Jane Doe\nORG:Acme Corp\nTITLE:Engineer\n"
        "TEL;TYPE=CELL,PREF:+1 555 0100\nEMAIL;TYPE=WORK,INTERNET:jane@acme.com\nEND:VCARD"
    )
    assert parse_vcard(text) == {
        "name": "Jane Doe",
        "company": "Acme Corp",
        "position": "Engineer",
        "phone": "+1 555 0100",
        "email": "jane@acme.com",
    }


def test_pref_phone_wins_regardless_of_order():
    """A PREF phone is selected whether it comes first or last."""
    plain_first = vcard("TEL:111 1111", "TEL;TYPE=PREF:222 2222")
    pref_first = vcard("TEL;TYPE=PREF:222 2222", "TEL:111 1111")
    assert parse_vcard(plain_first)["phone"] == "222 2222"
    assert parse_vcard(pref_first)["phone"] == "222 2222"


def test_ranking_order_and_ties():
    """Mobile beats work beats home; equal scores keep the first line."""
    card = vcard("TEL;TYPE=HOME:1", "TEL;TYPE=WORK:2", "TEL;TYPE=CELL:3")
    assert parse_vcard(card)["phone"] == "3"

    tie = vcard("TEL;TYPE=WORK:first", "TEL;TYPE=WORK:second")
    assert parse_vcard(tie)["phone"] == "first"


def test_bare_type_parameters():
    """;CELL style parameters are implicit TYPE values."""
    card = vcard("TEL;HOME:555-0001", "TEL;CELL:555-0002")
    assert parse_vcard(card)["phone"] == "555-0002"


def test_email_internet_bonus():
    """INTERNET adds one point to an email's score."""
    card = vcard("EMAIL;TYPE=WORK:a@work.com", "EMAIL;TYPE=WORK,INTERNET:b@work.com")
    assert parse_vcard(card)["email"] == "b@work.com"


def test_vcard4_pref_parameter():
    """PREF=1 parameter counts as preferred."""
    card = vcard("TEL;TYPE=cell:1111111", "TEL;PREF=1:2222222")
    assert parse_vcard(card)["phone"] == "2222222"


def test_uri_prefixes_removed():
    card = vcard("TEL;VALUE=uri;TYPE=cell:tel:+1-555-0100", "EMAIL:mailto:x@y.com")
    patch = parse_vcard(card)
    assert patch["phone"] == "+1-555-0100"
    assert patch["email"] == "x@y.com"


def test_line_folding():
    """Continuation lines starting with a space or tab are joined."""
    card = "BEGIN:VCARD\r\nFN:Jane\r\n  Doe\r\nNOTE:long\r\n\tnote\r\nEND:VCARD"
    patch = parse_vcard(card)
    assert patch["name"] == "Jane Doe"
    assert patch["notes"] == "longnote"


def test_quoted_printable():
    """QP values are decoded with their charset, including soft line breaks."""
    card = vcard(
        "FN;CHARSET=UTF-8;ENCODING=QUOTED-PRINTABLE:Jos=C3=A9 P=",
        "=C3=A9rez",
        "NOTE;ENCODING=QUOTED-PRINTABLE;CHARSET=UTF-8:Caf=C3=A9 con leche",
    )
    patch = parse_vcard(card)
    assert patch["name"] == "José Pérez"
    assert patch["notes"] == "Café con leche"


def test_text_unescaping():
    card = vcard(r"NOTE:Line one\nLine two\, with comma\; and semicolon")
    assert parse_vcard(card)["notes"] == "Line one\nLine two, with comma; and semicolon"


def test_structured_name_when_no_fn():
    """N is composed as prefix first middle last suffix."""
    card = vcard("N:Doe;John;Q.;Dr.;Jr.")
    assert parse_vcard(card)["name"] == "Dr. John Q. Doe Jr."

    sparse = vcard("N:Doe;John;;;")
    assert parse_vcard(sparse)["name"] == "John Doe"


def test_fn_wins_over_n_in_any_order():
    card = vcard("N:Doe;John;;;", "FN:Johnny Doe")
    assert parse_vcard(card)["name"] == "Johnny Doe"


def test_org_first_component_and_title_first_wins():
    card = vcard("ORG:Acme Corp;Engineering;R&D", "TITLE:CTO", "ROLE:Founder")
    patch = parse_vcard(card)
    assert patch["company"] == "Acme Corp"
    assert patch["position"] == "CTO"


def test_grouped_properties_and_unknown_keys_become_notes():
    """item1.TEL is a TEL; unknown keys are kept as KEY: value notes."""
    card = vcard(
        "VERSION:3.0",
        "item1.TEL;type=CELL:+57 300 000 0000",
        "item1.X-ABLabel:Mobile",
        "URL:https://acme.com",
    )
    patch = parse_vcard(card)
    assert patch["phone"] == "+57 300 000 0000"
    notes = patch["notes"].split("\n")
    assert "VERSION: 3.0" in notes
    assert "X-ABLABEL: Mobile" in notes
    assert "URL: https://acme.com" in notes


def test_name_from_email_local_part():
    card = vcard("EMAIL:jane.doe@acme.com")
    assert parse_vcard(card)["name"] == "jane.doe"


def test_malformed_input_never_raises():
    """Lines without a colon are skipped; leftovers end up as notes."""
    assert parse_vcard("") == {}
    assert parse_vcard("garbage without colon") == {}
    patch = parse_vcard("BEGIN:VCARD\nthis line is broken\nURL:http://x.io\nEND:VCARD")
    assert patch == {"notes": "URL: http://x.io"}


def test_custom_preference_scores():
    """Ranking constants are configurable."""
    parser = VCardParser({"home": 95})
    card = vcard("TEL;TYPE=CELL:cell", "TEL;TYPE=HOME:home")
    assert parser.parse(card)["phone"] == "home"


def test_payload_vcard_is_parsed():
    patch = patch_from_payload("  begin:vcard\nFN:Jane Doe\nEND:VCARD")
    assert patch == {"name": "Jane Doe"}


def test_payload_fallback_to_note():
    """Non-vCard payloads and empty vCards are stored as a raw note."""
    assert patch_from_payload("https://example.com") == {"notes": "QR: https://example.com"}
    assert patch_from_payload("BEGIN:VCARD\nEND:VCARD") == {"notes": "QR: BEGIN:VCARD\nEND:VCARD"}
    assert patch_from_payload("   ") == {}
