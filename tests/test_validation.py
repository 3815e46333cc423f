from __future__ import annotations

import pytest

from card_manager.validation import (
    is_valid_email,
    normalize_website,
    validate_password_change,
    validate_profile,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("", ""),
        (None, ""),
        ("-", ""),
        ("  ", ""),
        (" example.com ", "example.com"),
    ],
)
def test_normalize_website(value, expected):
    assert normalize_website(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ("ada@example.com", True),
        ("ada@example", False),
        ("ada example.com", False),
        ("", False),
    ],
)
def test_is_valid_email(value, expected):
    assert is_valid_email(value) is expected


def test_valid_profile_without_password_change():
    assert validate_profile("Ada", "ada@example.com") == {}


def test_profile_requires_name_and_valid_email():
    assert validate_profile(" ", "") == {
        "name": "Name is required",
        "email": "Email is required",
    }
    assert validate_profile("Ada", "not-an-email") == {"email": "Email is invalid"}


def test_profile_password_rules():
    errors = validate_profile("Ada", "ada@example.com", "", "abc", "abd")

    assert errors == {
        "current_password": "Current password is required to change password",
        "new_password": "New password must be at least 6 characters",
        "confirm_password": "Passwords do not match",
    }


def test_profile_password_length_is_configurable():
    errors = validate_profile("Ada", "ada@example.com", "old", "abcdefgh", "abcdefgh", min_length=10)

    assert errors == {"new_password": "New password must be at least 10 characters"}


def test_password_change_ok():
    assert validate_password_change("oldpass", "newpass", "newpass") is None
