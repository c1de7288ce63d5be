"""
Contact Record Dataclasses

The canonical contact record and the patch type contributed by each
capture channel.
"""

from dataclasses import dataclass, asdict, replace
from typing import Any, Dict, Mapping, Tuple

# Field order is also the display/export order
FIELDS: Tuple[str, ...] = ("name", "company", "position", "phone", "email", "notes")

# Append-only field: contributions accumulate instead of overwriting
NOTE_FIELD = "notes"

# A partial record: absent key means "no opinion"
Patch = Dict[str, str]


@dataclass(frozen=True)
class ContactRecord:
    """Immutable snapshot of the contact being assembled."""
    name: str = ""
    company: str = ""
    position: str = ""
    phone: str = ""
    email: str = ""
    notes: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    def is_empty(self) -> bool:
        """True if every field is the empty string."""
        return not any(getattr(self, f) for f in FIELDS)

    def with_fields(self, **changes: str) -> "ContactRecord":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContactRecord":
        """
        Build a record from a mapping, merged onto the empty record.

        Unknown keys and non-string values are ignored.
        """
        values = {
            f: data[f] for f in FIELDS
            if isinstance(data.get(f), str)
        }
        return cls(**values)


EMPTY_RECORD = ContactRecord()
