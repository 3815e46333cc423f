"""Notification visibility and the live notification feed."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from .models import Notification, User
from .repository import ContactRepository
from .store import Subscription

logger = logging.getLogger(__name__)

CONTACT_ADD = "contact_add"
ADMIN_CUSTOM = "admin_custom"


def is_visible(notification: Notification, user: User) -> bool:
    """A notification is visible unless the user is excluded or cleared it."""

    return (
        user.id not in notification.exclude_user_ids
        and notification.id not in user.cleared_notifications
    )


def visible_notifications(
    notifications: Iterable[Notification], user: User, limit: Optional[int] = 20
) -> List[Notification]:
    visible = [n for n in notifications if is_visible(n, user)]
    return visible if limit is None else visible[:limit]


def contact_added_message(user: User) -> str:
    return f"{user.name} added a new contact."


class NotificationFeed:
    """Keeps the visible notifications of one user current.

    The feed owns its subscription and must be closed; closing twice is
    harmless.
    """

    def __init__(
        self,
        repository: ContactRepository,
        user: User,
        on_change: Optional[Callable[[List[Notification]], None]] = None,
        limit: Optional[int] = None,
    ):
        self._repository = repository
        self._user = user
        self._on_change = on_change
        self._limit = limit if limit is not None else repository.config.notification_limit
        self._all: List[Notification] = []
        self.items: List[Notification] = []
        self._subscription: Optional[Subscription] = repository.subscribe_notifications(
            self._receive
        )

    @property
    def user(self) -> User:
        return self._user

    def set_user(self, user: User) -> None:
        """Re-filter after the user's cleared list changed."""

        self._user = user
        self._refresh()

    def _receive(self, notifications: List[Notification]) -> None:
        self._all = list(notifications)
        self._refresh()

    def _refresh(self) -> None:
        self.items = visible_notifications(self._all, self._user, self._limit)
        if self._on_change is not None:
            self._on_change(self.items)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None


__all__ = [
    "ADMIN_CUSTOM",
    "CONTACT_ADD",
    "NotificationFeed",
    "contact_added_message",
    "is_visible",
    "visible_notifications",
]
