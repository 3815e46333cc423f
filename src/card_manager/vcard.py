"""vCard 3.0 text encoding and lenient contact decoding.

The encoder writes one ``TAG:value`` line per field without escaping, so
values containing ``;``, ``:`` or newlines do not survive a round trip.
The decoder accepts either such a vCard block or a JSON object and reports
the outcome as a :class:`Decoded` or :class:`DecodeFailed` value instead of
raising.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Union

from .models import CONTACT_FIELDS, WORK, Contact

VCARD_MARKER = "BEGIN:VCARD"
INVALID_FORMAT = "Invalid contact data format. Please check your input."
MISSING_FIELDS = "Contact data must include a name and an email."

# Address components are separated by ";"; only pairs are removed, so an odd
# run such as ";;;" leaves a single ";" behind.
_ADR_RUNS = re.compile(r";;")


def encode_vcard(contact: Contact) -> str:
    """Return ``contact`` as a vCard 3.0 block.

    Core fields are always written, empty when unset; ``URL`` and ``NOTE``
    only appear when the contact has a website or notes.
    """

    lines = [
        VCARD_MARKER,
        "VERSION:3.0",
        f"FN:{contact.name or ''}",
        f"ORG:{contact.company or ''}",
        f"TITLE:{contact.title or ''}",
        f"TEL:{contact.phone or ''}",
        f"EMAIL:{contact.email or ''}",
        f"ADR:;;{contact.address or ''};;;;",
    ]
    if contact.website:
        lines.append(f"URL:{contact.website}")
    if contact.notes:
        lines.append(f"NOTE:{contact.notes}")
    lines.append("END:VCARD")
    return "\n".join(lines)


def contact_json(contact: Contact) -> str:
    """Return the JSON payload used when copying a contact as text."""

    data = {
        "name": contact.name,
        "title": contact.title,
        "company": contact.company,
        "email": contact.email,
        "phone": contact.phone,
        "address": contact.address,
        "notes": contact.notes,
    }
    return json.dumps(data, indent=2)


def _empty_record() -> Dict[str, Any]:
    record: Dict[str, Any] = {name: "" for name in CONTACT_FIELDS}
    record["category"] = WORK
    record["emails"] = []
    record["phones"] = []
    return record


def parse_vcard(text: str) -> Dict[str, Any]:
    """Parse vCard lines into a contact-shaped mapping.

    Unknown tags are ignored.  Every ``EMAIL`` and ``TEL`` value is kept in the
    ``emails``/``phones`` lists and the first of each becomes the primary
    address or number.
    """

    record = _empty_record()
    for line in text.splitlines():
        if not line.strip() or ":" not in line:
            continue
        raw_key, value = line.split(":", 1)
        value = value.strip()
        if not value:
            continue
        key = raw_key.split(";", 1)[0].strip().upper()

        if key == "FN":
            record["name"] = value
        elif key == "N":
            if not record["name"].strip():
                parts = value.split(";")
                if len(parts) >= 2:
                    given = parts[1].strip()
                    family = parts[0].strip()
                    record["name"] = " ".join(part for part in (given, family) if part)
                else:
                    record["name"] = value
        elif key == "ORG":
            record["company"] = value
        elif key == "TITLE":
            record["title"] = value
        elif key == "EMAIL":
            record["emails"].append(value)
        elif key == "TEL":
            record["phones"].append(value)
        elif key == "NOTE":
            record["notes"] = value
        elif key == "URL":
            record["website"] = value
        elif key == "ADR":
            record["address"] = _ADR_RUNS.sub("", value).strip()

    if record["emails"]:
        record["email"] = record["emails"][0]
    if record["phones"]:
        record["phone"] = record["phones"][0]
    return record


@dataclass(frozen=True)
class Decoded:
    """Text decoded into an importable contact record."""

    record: Dict[str, str]

    def to_contact(self, **extra: Any) -> Contact:
        return Contact.from_record(self.record, **extra)


@dataclass(frozen=True)
class DecodeFailed:
    """Text could not be turned into a contact."""

    reason: str


DecodeResult = Union[Decoded, DecodeFailed]


def _has_required(record: Mapping[str, Any]) -> bool:
    return bool(record.get("name")) and bool(record.get("email"))


def _normalise(record: Mapping[str, Any]) -> Dict[str, str]:
    normalised = {}
    for name in CONTACT_FIELDS:
        value = record.get(name)
        normalised[name] = "" if value is None else str(value)
    normalised["category"] = str(record.get("category") or WORK)
    return normalised


def decode_contact(text: str) -> DecodeResult:
    """Decode scanned or pasted ``text`` into a contact record.

    vCard text is tried first; when it is not a vCard, or the vCard lacks a
    name or e-mail, the whole text is read as a JSON object instead.
    """

    if not isinstance(text, str) or not text.strip():
        return DecodeFailed(MISSING_FIELDS)

    if VCARD_MARKER in text:
        record = parse_vcard(text)
        if _has_required(record):
            return Decoded(_normalise(record))

    try:
        data = json.loads(text)
    except ValueError:
        return DecodeFailed(INVALID_FORMAT)

    if not isinstance(data, Mapping):
        return DecodeFailed(INVALID_FORMAT)
    if not _has_required(data):
        return DecodeFailed(MISSING_FIELDS)
    return Decoded(_normalise(data))


__all__ = [
    "Decoded",
    "DecodeFailed",
    "DecodeResult",
    "INVALID_FORMAT",
    "MISSING_FIELDS",
    "VCARD_MARKER",
    "contact_json",
    "decode_contact",
    "encode_vcard",
    "parse_vcard",
]
