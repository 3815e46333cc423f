from __future__ import annotations

import json

import pytest

from card_manager.models import Contact
from card_manager.vcard import (
    INVALID_FORMAT,
    MISSING_FIELDS,
    DecodeFailed,
    Decoded,
    contact_json,
    decode_contact,
    encode_vcard,
    parse_vcard,
)


@pytest.fixture()
def ada() -> Contact:
    return Contact(
        name="Ada Lovelace",
        company="Analytical Engines",
        title="Engineer",
        email="ada@example.com",
        phone="+1-555-0100",
        address="1 Babbage Rd",
    )


def test_encode_writes_expected_lines(ada: Contact):
    lines = encode_vcard(ada).split("\n")

    assert lines[0] == "BEGIN:VCARD"
    assert lines[1] == "VERSION:3.0"
    assert "FN:Ada Lovelace" in lines
    assert "ADR:;;1 Babbage Rd;;;;" in lines
    assert not any(line.startswith("URL:") for line in lines)
    assert not any(line.startswith("NOTE:") for line in lines)
    assert lines[-1] == "END:VCARD"


def test_encode_keeps_empty_core_fields():
    lines = encode_vcard(Contact(name="Solo")).split("\n")

    assert lines == [
        "BEGIN:VCARD",
        "VERSION:3.0",
        "FN:Solo",
        "ORG:",
        "TITLE:",
        "TEL:",
        "EMAIL:",
        "ADR:;;;;;;",
        "END:VCARD",
    ]


def test_encode_adds_url_and_note(ada: Contact):
    ada.website = "https://ada.example.com"
    ada.notes = "Met at the salon"
    lines = encode_vcard(ada).split("\n")

    assert lines[-3:] == ["URL:https://ada.example.com", "NOTE:Met at the salon", "END:VCARD"]


def test_round_trip_reproduces_fields(ada: Contact):
    ada.website = "ada.example.com"
    ada.notes = "Poetical science"

    result = decode_contact(encode_vcard(ada))

    assert isinstance(result, Decoded)
    for field in ("name", "company", "title", "phone", "email", "address", "website", "notes"):
        assert result.record[field] == getattr(ada, field)


def test_decode_minimal_vcard():
    text = "BEGIN:VCARD\nVERSION:3.0\nFN:Grace Hopper\nEMAIL:grace@example.com\nEND:VCARD"

    result = decode_contact(text)

    assert isinstance(result, Decoded)
    assert result.record["name"] == "Grace Hopper"
    assert result.record["email"] == "grace@example.com"
    for field in ("company", "title", "phone", "address", "notes", "website"):
        assert result.record[field] == ""
    assert result.record["category"] == "Work"


def test_structured_name_used_when_fn_missing():
    record = parse_vcard("BEGIN:VCARD\nN:Hopper;Grace;;;\nEND:VCARD")

    assert record["name"] == "Grace Hopper"


def test_fn_wins_over_structured_name():
    record = parse_vcard("BEGIN:VCARD\nFN:Amazing Grace\nN:Hopper;Grace\nEND:VCARD")

    assert record["name"] == "Amazing Grace"


def test_single_part_structured_name_is_used_raw():
    assert parse_vcard("N:Cher")["name"] == "Cher"


@pytest.mark.parametrize(
    "adr, address",
    [
        (";;1 Babbage Rd;;;;", "1 Babbage Rd"),
        (";;a;;;;", "a"),
        (";;;Main St", ";Main St"),
        ("Flat 2;Main St", "Flat 2;Main St"),
    ],
)
def test_address_separator_pairs_are_removed(adr, address):
    assert parse_vcard(f"ADR:{adr}")["address"] == address


def test_first_email_and_phone_are_primary():
    record = parse_vcard(
        "BEGIN:VCARD\n"
        "EMAIL;TYPE=WORK:first@example.com\n"
        "EMAIL;TYPE=HOME:second@example.com\n"
        "TEL;TYPE=CELL:+1 555 0001\n"
        "TEL:+1 555 0002\n"
        "END:VCARD"
    )

    assert record["email"] == "first@example.com"
    assert record["phone"] == "+1 555 0001"
    assert record["emails"] == ["first@example.com", "second@example.com"]


def test_unknown_tags_and_blank_lines_are_ignored():
    record = parse_vcard("BEGIN:VCARD\n\nX-SOCIAL:@ada\nnot a property\nFN:Ada\nEND:VCARD")

    assert record["name"] == "Ada"


def test_value_may_contain_colons():
    record = parse_vcard("URL:https://example.com:8080/ada")

    assert record["website"] == "https://example.com:8080/ada"


def test_delimiters_in_fields_do_not_survive(ada: Contact):
    ada.address = "Flat 2;; Babbage Rd"

    result = decode_contact(encode_vcard(ada))

    assert isinstance(result, Decoded)
    assert result.record["address"] != ada.address


def test_decode_json_object():
    text = json.dumps({"name": "Alan Turing", "email": "alan@example.com", "phone": 123})

    result = decode_contact(text)

    assert isinstance(result, Decoded)
    assert result.record["name"] == "Alan Turing"
    assert result.record["phone"] == "123"
    assert result.record["company"] == ""


def test_decode_copied_contact_json(ada: Contact):
    result = decode_contact(contact_json(ada))

    assert isinstance(result, Decoded)
    assert result.to_contact().email == "ada@example.com"


def test_vcard_missing_email_falls_back_to_json_and_fails():
    result = decode_contact("BEGIN:VCARD\nFN:Nobody\nEND:VCARD")

    assert result == DecodeFailed(INVALID_FORMAT)


@pytest.mark.parametrize(
    "text",
    [
        json.dumps({"name": "No Email"}),
        json.dumps({"email": "no-name@example.com"}),
        json.dumps({"name": "", "email": ""}),
        "   ",
        "",
    ],
)
def test_decode_requires_name_and_email(text):
    assert decode_contact(text) == DecodeFailed(MISSING_FIELDS)


@pytest.mark.parametrize("text", ["hello world", "[1, 2, 3]", '"just a string"', "{broken"])
def test_decode_rejects_unstructured_text(text):
    assert decode_contact(text) == DecodeFailed(INVALID_FORMAT)


def test_contact_json_shape(ada: Contact):
    data = json.loads(contact_json(ada))

    assert set(data) == {"name", "title", "company", "email", "phone", "address", "notes"}
    assert data["company"] == "Analytical Engines"
