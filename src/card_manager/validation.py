"""Synchronous form checks run before anything is submitted."""
from __future__ import annotations

import re
from typing import Dict, Optional

MIN_PASSWORD_LENGTH = 6

_EMAIL = re.compile(r"\S+@\S+\.\S+")


def normalize_website(value: Optional[str]) -> str:
    trimmed = (value or "").strip()
    if not trimmed or trimmed == "-":
        return ""
    return trimmed


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL.search(value or ""))


def validate_profile(
    name: str,
    email: str,
    current_password: str = "",
    new_password: str = "",
    confirm_password: str = "",
    min_length: int = MIN_PASSWORD_LENGTH,
) -> Dict[str, str]:
    """Return per-field error messages; an empty mapping means valid.

    Password fields are only checked when a new password is given.
    """

    errors: Dict[str, str] = {}

    if not (name or "").strip():
        errors["name"] = "Name is required"

    if not (email or "").strip():
        errors["email"] = "Email is required"
    elif not is_valid_email(email):
        errors["email"] = "Email is invalid"

    if new_password:
        if not current_password:
            errors["current_password"] = "Current password is required to change password"
        if len(new_password) < min_length:
            errors["new_password"] = f"New password must be at least {min_length} characters"
        if new_password != confirm_password:
            errors["confirm_password"] = "Passwords do not match"

    return errors


def validate_password_change(
    current: str, new: str, confirm: str, min_length: int = MIN_PASSWORD_LENGTH
) -> Optional[str]:
    """Return the first problem with a password change, or ``None``."""

    if not current or not new or not confirm:
        return "All fields are required."
    if len(new) < min_length:
        return f"New password must be at least {min_length} characters."
    if new != confirm:
        return "Passwords do not match."
    if current == new:
        return "New password must be different from current password."
    return None


__all__ = [
    "MIN_PASSWORD_LENGTH",
    "is_valid_email",
    "normalize_website",
    "validate_password_change",
    "validate_profile",
]
