"""
Contact Merger

Folds a channel patch into the current record without losing data the
operator already has: the first writer of a field wins, and notes always
accumulate.
"""

from typing import Mapping

from .record import ContactRecord, FIELDS, NOTE_FIELD

NOTE_SEPARATOR = "\n"


def merge(existing: ContactRecord, incoming: Mapping[str, str]) -> ContactRecord:
    """
    Non-destructively merge a patch into a record.

    Args:
        existing: Current record
        incoming: Patch from one capture channel

    Returns:
        New record. Non-note fields keep their existing value when
        non-empty; notes are concatenated in order.
    """
    changes = {}
    for field in FIELDS:
        current = getattr(existing, field)
        value = incoming.get(field) or ""

        if field == NOTE_FIELD:
            if current and value:
                changes[field] = current + NOTE_SEPARATOR + value
            elif value:
                changes[field] = value
        elif not current and value:
            changes[field] = value

    if not changes:
        return existing
    return existing.with_fields(**changes)


def overwrite(existing: ContactRecord, incoming: Mapping[str, str]) -> ContactRecord:
    """
    Apply an explicit manual edit: every field present in the patch
    replaces the stored value.
    """
    changes = {
        field: incoming[field] for field in FIELDS
        if field in incoming and incoming[field] is not None
    }
    if not changes:
        return existing
    return existing.with_fields(**changes)
