"""Data access for contacts, presence and notifications."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .config import AppConfig
from .models import Contact, Notification, User, format_timestamp, utcnow
from .store import Document, DocumentStore, Subscription

logger = logging.getLogger(__name__)

CONTACTS = "contacts"
USERS = "users"
NOTIFICATIONS = "notifications"
PRESENCE = "presence"

_CONTACT_WRITABLE = (
    "name",
    "title",
    "company",
    "email",
    "phone",
    "category",
    "notes",
    "website",
    "address",
    "pinned",
)


@dataclass(frozen=True)
class OnlineUser:
    user_id: str
    last_active: Optional[str]


@dataclass(slots=True)
class ContactRepository:
    """Thin wrapper translating records to and from store documents."""

    store: DocumentStore
    config: AppConfig = field(default_factory=AppConfig)

    def add_contact(
        self, user_id: str, record: Mapping[str, Any], now: Optional[datetime] = None
    ) -> str:
        """Store a new contact owned by ``user_id`` and return its id."""

        data = {key: record[key] for key in _CONTACT_WRITABLE if key in record}
        data["userId"] = user_id
        data["dateAdded"] = format_timestamp(now or utcnow())
        doc_id = self.store.add(CONTACTS, data)
        logger.debug("Added contact %s for user %s", doc_id, user_id)
        return doc_id

    def update_contact(self, contact_id: str, changes: Mapping[str, Any]) -> None:
        data = {key: changes[key] for key in _CONTACT_WRITABLE if key in changes}
        self.store.update(CONTACTS, contact_id, data)

    def save_contact(self, contact: Contact) -> None:
        self.update_contact(contact.id, contact.to_record())

    def delete_contact(self, contact_id: str) -> None:
        self.store.delete(CONTACTS, contact_id)

    def sees_all_contacts(self, user: User) -> bool:
        return user.role in self.config.all_contacts_roles

    def get_contacts(self, user: User, now: Optional[datetime] = None) -> List[Contact]:
        """Return the contacts ``user`` may view.

        Roles listed in ``AppConfig.all_contacts_roles`` read the whole
        collection; any other role only reads its own contacts.
        """

        if self.sees_all_contacts(user):
            documents = self.store.query(CONTACTS)
        else:
            documents = self.store.query(CONTACTS, userId=user.id)
        return [Contact.from_document(doc.id, doc.data, now) for doc in documents]

    def get_user(self, uid: str) -> Optional[User]:
        data = self.store.get(USERS, uid)
        if data is None:
            return None
        return User.from_document(uid, data, self.config.admin_emails)

    def save_user(self, user: User) -> None:
        self.store.set(USERS, user.id, user.to_document())

    def update_user(self, uid: str, changes: Mapping[str, Any]) -> None:
        self.store.update(USERS, uid, dict(changes))

    def delete_user(self, uid: str) -> None:
        self.store.delete(USERS, uid)

    def list_users(self) -> List[User]:
        return [
            User.from_document(doc.id, doc.data, self.config.admin_emails)
            for doc in self.store.query(USERS)
        ]

    def set_user_online(self, uid: str) -> None:
        self._set_presence(uid, True)

    def set_user_offline(self, uid: str) -> None:
        self._set_presence(uid, False)

    def _set_presence(self, uid: str, online: bool) -> None:
        self.store.set(
            PRESENCE,
            uid,
            {"online": online, "lastActive": format_timestamp(utcnow())},
            merge=True,
        )

    def subscribe_online_users(
        self, callback: Callable[[List[OnlineUser]], None]
    ) -> Subscription:
        def deliver(documents: List[Document]) -> None:
            callback([OnlineUser(doc.id, doc.data.get("lastActive")) for doc in documents])

        return self.store.subscribe(PRESENCE, deliver, online=True)

    def add_notification(
        self,
        message: str,
        sender_id: str,
        sender_name: str,
        type: str,
        exclude_user_ids: Iterable[str] = (),
    ) -> str:
        notification = Notification(
            id="",
            message=message,
            sender_id=sender_id,
            sender_name=sender_name,
            type=type,
            exclude_user_ids=list(exclude_user_ids),
            created_at=utcnow(),
        )
        return self.store.add(NOTIFICATIONS, notification.to_document())

    def subscribe_notifications(
        self, callback: Callable[[List[Notification]], None]
    ) -> Subscription:
        """Deliver every notification, newest first, on each change."""

        def deliver(documents: List[Document]) -> None:
            notifications = [Notification.from_document(doc.id, doc.data) for doc in documents]
            notifications.sort(
                key=lambda n: n.created_at.timestamp() if n.created_at else 0.0,
                reverse=True,
            )
            callback(notifications)

        return self.store.subscribe(NOTIFICATIONS, deliver)


__all__ = [
    "CONTACTS",
    "NOTIFICATIONS",
    "PRESENCE",
    "USERS",
    "ContactRepository",
    "OnlineUser",
]
