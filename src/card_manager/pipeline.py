"""Derive the ordered, grouped contact view from stored contacts.

The view is recomputed from scratch whenever the contact list or one of the
UI controls changes: visibility, search/filter, annotation, sorting and
grouping run as plain functions over in-memory lists and never raise.
"""
from __future__ import annotations

import unicodedata
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import MY_CARD, Contact, User, utcnow

ALL_CATEGORIES = "all"
UNCATEGORIZED = "Uncategorized"
ALL_CONTACTS = "All Contacts"

SORT_NAME = "name"
SORT_COMPANY = "company"
SORT_DATE_ADDED = "dateAdded"

GROUP_NONE = "none"
GROUP_CATEGORY = "category"


@dataclass(slots=True)
class ContactQuery:
    """The search, filter, sort and group controls of the contact list."""

    search: str = ""
    category: str = ALL_CATEGORIES
    sort_by: str = SORT_NAME
    group_by: str = GROUP_NONE


def _email(user: Optional[User]) -> Optional[str]:
    return user.email if user is not None else None


def collation_key(value: Optional[str]) -> tuple[str, str]:
    """Return a sort key approximating locale-aware comparison.

    Case and diacritics are ignored for the primary ordering; the raw
    text breaks ties so that the order is total.
    """

    text = value or ""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return stripped.casefold(), text


def is_visible(contact: Contact, user: Optional[User]) -> bool:
    """Hide other users' self-cards."""

    if contact.category != MY_CARD:
        return True
    email = _email(user)
    return email is not None and contact.email == email


def matches(contact: Contact, search: str, category: str = ALL_CATEGORIES) -> bool:
    needle = (search or "").lower()
    found = (
        needle in (contact.name or "").lower()
        or needle in (contact.company or "").lower()
        or needle in (contact.email or "").lower()
    )
    return found and (category == ALL_CATEGORIES or contact.category == category)


def annotate(contact: Contact, user: Optional[User]) -> Contact:
    """Return ``contact`` displayed as the user's own card when it is one.

    The stored record is left untouched; a copy carries the overrides.
    """

    email = _email(user)
    if email is not None and contact.email == email:
        return replace(contact, category=MY_CARD, pinned=True)
    return contact


def sort_contacts(
    contacts: Iterable[Contact], sort_by: str, now: Optional[datetime] = None
) -> List[Contact]:
    """Sort pinned contacts first, then by ``sort_by``.

    ``name`` and ``company`` sort ascending, ``dateAdded`` newest first and any
    other key keeps the incoming order within each partition.
    """

    items = list(contacts)
    if sort_by == SORT_NAME:
        return sorted(items, key=lambda c: (not c.pinned, collation_key(c.name)))
    if sort_by == SORT_COMPANY:
        return sorted(items, key=lambda c: (not c.pinned, collation_key(c.company)))
    if sort_by == SORT_DATE_ADDED:
        fallback = now or utcnow()
        return sorted(
            items,
            key=lambda c: (not c.pinned, -(c.date_added or fallback).timestamp()),
        )
    return sorted(items, key=lambda c: not c.pinned)


def group_contacts(contacts: Iterable[Contact], group_by: str) -> Dict[str, List[Contact]]:
    if group_by != GROUP_CATEGORY:
        return {ALL_CONTACTS: list(contacts)}

    groups: Dict[str, List[Contact]] = {}
    for contact in contacts:
        groups.setdefault(contact.category or UNCATEGORIZED, []).append(contact)
    return groups


def filter_contacts(
    contacts: Iterable[Contact], query: ContactQuery, user: Optional[User]
) -> List[Contact]:
    """Run the visibility, search and annotation steps."""

    return [
        annotate(contact, user)
        for contact in contacts
        if is_visible(contact, user) and matches(contact, query.search, query.category)
    ]


def build_view(
    contacts: Iterable[Contact],
    query: ContactQuery,
    user: Optional[User],
    now: Optional[datetime] = None,
) -> Dict[str, List[Contact]]:
    """Return the grouped contact view for ``query`` as seen by ``user``."""

    filtered = filter_contacts(contacts, query, user)
    return group_contacts(sort_contacts(filtered, query.sort_by, now), query.group_by)


def flatten(groups: Dict[str, List[Contact]]) -> List[Contact]:
    return [contact for bucket in groups.values() for contact in bucket]


def category_counts(contacts: Iterable[Contact]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for contact in contacts:
        key = contact.category or UNCATEGORIZED
        counts[key] = counts.get(key, 0) + 1
    return counts


__all__ = [
    "ContactQuery",
    "ALL_CATEGORIES",
    "ALL_CONTACTS",
    "UNCATEGORIZED",
    "SORT_NAME",
    "SORT_COMPANY",
    "SORT_DATE_ADDED",
    "GROUP_NONE",
    "GROUP_CATEGORY",
    "annotate",
    "build_view",
    "category_counts",
    "collation_key",
    "filter_contacts",
    "flatten",
    "group_contacts",
    "is_visible",
    "matches",
    "sort_contacts",
]
