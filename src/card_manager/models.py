"""Record types for contacts, users and notifications.

The document store keeps flat key/value documents with camelCase keys and
ISO-8601 date strings.  The ``from_document``/``to_document`` helpers convert
between that persisted shape and the dataclasses used everywhere else.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

WORK = "Work"
BUSINESS = "Business"
PERSONAL = "Personal"
MY_CARD = "My Card"
LEGACY_MY_CARD = "My Business Card"

CATEGORIES = (WORK, BUSINESS, PERSONAL, MY_CARD)

SUPERADMIN = "superadmin"
ADMIN = "admin"
EDITOR = "editor"
VIEWER = "viewer"

ROLES = (SUPERADMIN, ADMIN, EDITOR, VIEWER)
PRIVILEGED_ROLES = (SUPERADMIN, ADMIN)

CONTACT_FIELDS = ("name", "title", "company", "email", "phone", "notes", "website", "address")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    """Return ``value`` as an aware :class:`datetime` or ``default``.

    Accepts ISO-8601 strings (a trailing ``Z`` included) and ``datetime``
    instances; naive values are assumed to be UTC.
    """

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return default
    else:
        return default

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value)


@dataclass(slots=True)
class Contact:
    """One address-book entry."""

    id: str = ""
    name: str = ""
    title: str = ""
    company: str = ""
    email: str = ""
    phone: str = ""
    category: str = WORK
    notes: str = ""
    website: str = ""
    address: str = ""
    pinned: bool = False
    date_added: Optional[datetime] = None
    owner_id: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any], **extra: Any) -> "Contact":
        """Build a contact from a loosely-typed record such as a decoded scan."""

        values = {name: _text(record, name) for name in CONTACT_FIELDS}
        values["category"] = _text(record, "category") or WORK
        values.update(extra)
        return cls(**values)

    @classmethod
    def from_document(
        cls, doc_id: str, data: Mapping[str, Any], now: Optional[datetime] = None
    ) -> "Contact":
        category = _text(data, "category")
        if category == LEGACY_MY_CARD:
            category = MY_CARD
        return cls(
            id=doc_id,
            name=_text(data, "name"),
            title=_text(data, "title"),
            company=_text(data, "company"),
            email=_text(data, "email"),
            phone=_text(data, "phone"),
            category=category,
            notes=_text(data, "notes"),
            website=_text(data, "website"),
            address=_text(data, "address"),
            pinned=bool(data.get("pinned", False)),
            date_added=parse_timestamp(data.get("dateAdded"), now or utcnow()),
            owner_id=_text(data, "userId"),
        )

    def to_record(self) -> Dict[str, str]:
        """Return the editable fields, without identifier or timestamp."""

        record = {name: getattr(self, name) for name in CONTACT_FIELDS}
        record["category"] = self.category
        return record

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = self.to_record()
        document["pinned"] = self.pinned
        if self.owner_id:
            document["userId"] = self.owner_id
        if self.date_added is not None:
            document["dateAdded"] = format_timestamp(self.date_added)
        return document


@dataclass(slots=True)
class User:
    """An authenticated principal and its profile metadata."""

    id: str
    email: str
    name: str = ""
    role: str = VIEWER
    is_active: bool = True
    phone: str = ""
    website: str = ""
    address: str = ""
    company: str = ""
    title: str = ""
    cleared_notifications: List[str] = field(default_factory=list)
    date_added: Optional[datetime] = None

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def can_mutate(self) -> bool:
        return self.role != VIEWER

    @classmethod
    def from_document(
        cls,
        uid: str,
        data: Mapping[str, Any],
        admin_emails: tuple[str, ...] = (),
        now: Optional[datetime] = None,
    ) -> "User":
        email = _text(data, "email")
        role = _text(data, "role") or VIEWER
        if email and email in admin_emails:
            role = ADMIN
        return cls(
            id=uid,
            email=email,
            name=_text(data, "name") or email,
            role=role,
            is_active=data.get("isActive") is not False,
            phone=_text(data, "phone"),
            website=_text(data, "website"),
            address=_text(data, "address"),
            company=_text(data, "company"),
            title=_text(data, "title"),
            cleared_notifications=list(data.get("clearedNotifications") or []),
            date_added=parse_timestamp(data.get("dateAdded"), now or utcnow()),
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "role": self.role,
            "name": self.name,
            "dateAdded": format_timestamp(self.date_added or utcnow()),
            "isActive": self.is_active,
            "clearedNotifications": list(self.cleared_notifications),
            "phone": self.phone,
            "website": self.website,
            "address": self.address,
            "company": self.company,
            "title": self.title,
        }

    def as_contact(self) -> Contact:
        """Return the profile rendered as a business-card contact."""

        return Contact(
            id=self.id,
            name=self.name,
            title=self.title,
            company=self.company,
            email=self.email,
            phone=self.phone,
            category=MY_CARD,
            website=self.website,
            address=self.address,
            date_added=self.date_added,
            owner_id=self.id,
        )


@dataclass(slots=True)
class Notification:
    """A broadcast or targeted message.  Never mutated once created."""

    id: str
    message: str
    sender_id: str = ""
    sender_name: str = ""
    type: str = ""
    exclude_user_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "Notification":
        excluded = data.get("excludeUserIds")
        return cls(
            id=doc_id,
            message=_text(data, "message"),
            sender_id=_text(data, "senderId"),
            sender_name=_text(data, "senderName"),
            type=_text(data, "type"),
            exclude_user_ids=list(excluded) if isinstance(excluded, list) else [],
            created_at=parse_timestamp(data.get("createdAt")),
        )

    def to_document(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {
            "message": self.message,
            "senderId": self.sender_id,
            "senderName": self.sender_name,
            "type": self.type,
            "createdAt": format_timestamp(self.created_at or utcnow()),
        }
        if self.exclude_user_ids:
            document["excludeUserIds"] = list(self.exclude_user_ids)
        return document


__all__ = [
    "CATEGORIES",
    "ROLES",
    "PRIVILEGED_ROLES",
    "WORK",
    "BUSINESS",
    "PERSONAL",
    "MY_CARD",
    "SUPERADMIN",
    "ADMIN",
    "EDITOR",
    "VIEWER",
    "Contact",
    "User",
    "Notification",
    "parse_timestamp",
    "format_timestamp",
    "utcnow",
]
