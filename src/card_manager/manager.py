"""Contact list orchestration behind the main window.

Every mutation goes to the document store and is followed by a full refetch;
there is no local cache to invalidate.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import CATEGORIES, Contact
from .notifications import CONTACT_ADD, contact_added_message
from .pipeline import (
    ALL_CONTACTS,
    GROUP_NONE,
    ContactQuery,
    build_view,
    category_counts,
    flatten,
)
from .session import Session
from .state import VIEW_TABLE
from .validation import normalize_website

logger = logging.getLogger(__name__)


class ContactManager:
    """Holds the fetched contacts and the list controls of one session."""

    def __init__(self, session: Session, query: Optional[ContactQuery] = None):
        self._session = session
        self.query = query or ContactQuery()
        self.contacts: List[Contact] = []

    @property
    def session(self) -> Session:
        return self._session

    @property
    def can_mutate(self) -> bool:
        user = self._session.user
        return user is not None and user.can_mutate

    def refresh(self) -> bool:
        user = self._session.user
        if user is None:
            self.contacts = []
            return False
        try:
            self.contacts = self._session.repository.get_contacts(user)
        except Exception:
            logger.exception("Failed to fetch contacts for %s", user.id)
            return False
        return True

    def add_contact(self, record: Mapping[str, Any]) -> bool:
        """Store ``record``, refetch and tell the other users about it."""

        user = self._session.user
        if user is None or not self.can_mutate:
            return False

        data = dict(record)
        repository = self._session.repository
        data["website"] = normalize_website(data.get("website"))
        data["category"] = data.get("category") or repository.config.default_category
        try:
            repository.add_contact(user.id, data)
        except Exception:
            logger.exception("Failed to add contact for %s", user.id)
            return False

        self.refresh()
        try:
            repository.add_notification(
                contact_added_message(user),
                user.id,
                user.name,
                CONTACT_ADD,
                exclude_user_ids=[user.id],
            )
        except Exception:
            logger.exception("Failed to broadcast new contact")
        return True

    def import_scanned(self, record: Dict[str, str]) -> bool:
        return self.add_contact(record)

    def edit_contact(self, contact: Contact) -> bool:
        if not self.can_mutate:
            return False
        try:
            self._session.repository.save_contact(contact)
        except Exception:
            logger.exception("Failed to update contact %s", contact.id)
            return False
        self.refresh()
        return True

    def delete_contact(self, contact_id: str) -> bool:
        if not self.can_mutate:
            return False
        try:
            self._session.repository.delete_contact(contact_id)
        except Exception:
            logger.exception("Failed to delete contact %s", contact_id)
            return False
        self.refresh()
        return True

    def view(self, now: Optional[datetime] = None) -> Dict[str, List[Contact]]:
        return build_view(self.contacts, self.query, self._session.user, now)

    def flat_view(self, now: Optional[datetime] = None) -> List[Contact]:
        ungrouped = replace(self.query, group_by=GROUP_NONE)
        return flatten(build_view(self.contacts, ungrouped, self._session.user, now))

    def sections(
        self, view_type: str, now: Optional[datetime] = None
    ) -> Dict[str, List[Contact]]:
        """Return the groups to render for ``view_type``; the table view is never grouped."""

        if view_type == VIEW_TABLE:
            return {ALL_CONTACTS: self.flat_view(now)}
        return self.view(now)

    def counts(self) -> Dict[str, int]:
        return category_counts(self.contacts)

    def summary(self) -> List[Tuple[str, int]]:
        """Return ``(label, count)`` pairs for the stats strip, total first.

        Known categories keep their usual order; any others follow by name.
        """

        counts = self.counts()
        ordered = [name for name in CATEGORIES if name in counts]
        ordered += sorted(name for name in counts if name not in CATEGORIES)
        return [("Total", len(self.contacts))] + [(name, counts[name]) for name in ordered]


__all__ = ["ContactManager"]
