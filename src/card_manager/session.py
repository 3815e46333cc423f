"""Explicit session object replacing ambient authentication state.

A :class:`Session` is created at start-up, follows the auth provider's
sign-in and sign-out events and is handed to every view that needs the
current user.  Operations that talk to external services return ``True`` or
``False`` and log failures instead of raising.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional

from .auth import LOCAL, SESSION, WRONG_PASSWORD, AuthError, AuthProvider, AuthUser
from .config import AppConfig
from .models import ADMIN, ROLES, SUPERADMIN, VIEWER, User, utcnow
from .notifications import ADMIN_CUSTOM
from .repository import ContactRepository
from .security import SecureString
from .store import Subscription
from .validation import validate_password_change

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = (
    "name",
    "email",
    "role",
    "isActive",
    "phone",
    "website",
    "address",
    "company",
    "title",
    "clearedNotifications",
)
_PRIVILEGED_FIELDS = ("role", "isActive")


class Session:
    """The signed-in user and the subscriptions tied to that sign-in."""

    def __init__(
        self,
        auth: AuthProvider,
        repository: ContactRepository,
        config: Optional[AppConfig] = None,
    ):
        self._auth = auth
        self._repository = repository
        self._config = config or repository.config
        self.user: Optional[User] = None
        self.last_error: Optional[str] = None
        self._auth_subscription: Optional[Subscription] = None
        self._owned: List[Subscription] = []
        self._listeners: List[Callable[[Optional[User]], None]] = []

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_privileged(self) -> bool:
        return self.user is not None and self.user.is_privileged

    @property
    def repository(self) -> ContactRepository:
        return self._repository

    def add_listener(self, callback: Callable[[Optional[User]], None]) -> None:
        self._listeners.append(callback)

    def own(self, subscription: Subscription) -> Subscription:
        """Tie ``subscription`` to the current sign-in; it is released on sign-out."""

        self._owned.append(subscription)
        return subscription

    def start(self) -> None:
        if self._auth_subscription is None:
            self._auth_subscription = self._auth.on_auth_state_changed(self._on_auth_state)

    def close(self) -> None:
        self._teardown()
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None

    def _on_auth_state(self, auth_user: Optional[AuthUser]) -> None:
        if auth_user is None:
            self._teardown()
        else:
            if self.user is not None and self.user.id != auth_user.uid:
                self._teardown()
            try:
                self.user = self._load_or_create(auth_user)
            except Exception:
                logger.exception("Failed to load profile for %s", auth_user.uid)
                self._teardown()
                self._auth.sign_out()
                return
            try:
                self._repository.set_user_online(self.user.id)
            except Exception:
                logger.exception("Failed to publish presence for %s", self.user.id)
        for callback in list(self._listeners):
            callback(self.user)

    def _load_or_create(self, auth_user: AuthUser) -> User:
        existing = self._repository.get_user(auth_user.uid)
        if existing is not None:
            return existing

        role = VIEWER
        if auth_user.email in self._config.admin_emails:
            role = ADMIN
        user = User(
            id=auth_user.uid,
            email=auth_user.email,
            name=auth_user.display_name or auth_user.email or "User",
            role=role,
            date_added=utcnow(),
        )
        self._repository.save_user(user)
        logger.info("Created profile for %s with role %s", user.id, role)
        return user

    def _teardown(self) -> None:
        owned, self._owned = self._owned, []
        for subscription in owned:
            subscription.unsubscribe()
        if self.user is not None:
            try:
                self._repository.set_user_offline(self.user.id)
            except Exception:
                logger.exception("Failed to clear presence for %s", self.user.id)
        self.user = None

    def login(self, email: str, password: SecureString | str, remember_me: bool = False) -> bool:
        try:
            self._auth.sign_in(email, password, LOCAL if remember_me else SESSION)
        except AuthError as exc:
            logger.info("Sign-in failed for %s: %s", email, exc.code)
            self.last_error = "Invalid email or password"
            return False
        except Exception:
            logger.exception("Sign-in failed for %s", email)
            self.last_error = "An error occurred. Please try again."
            return False
        if self._auth.current_user is None:
            self.last_error = "An error occurred. Please try again."
            return False
        self.last_error = None
        return True

    def logout(self) -> None:
        self._auth.sign_out()

    def reset_password(self, email: str) -> bool:
        try:
            self._auth.send_password_reset(email)
        except Exception:
            logger.exception("Password reset failed for %s", email)
            return False
        return True

    def change_password(self, current: str, new: str, confirm: str) -> bool:
        """Re-authenticate, set a new password and sign out.

        :attr:`last_error` carries the message to show when ``False`` is
        returned.
        """

        if self.user is None:
            return False

        problem = validate_password_change(
            current, new, confirm, self._config.min_password_length
        )
        if problem is not None:
            self.last_error = problem
            return False

        try:
            self._auth.reauthenticate(self.user.email, current)
            self._auth.update_password(self.user.id, new)
        except AuthError as exc:
            if exc.code == WRONG_PASSWORD:
                self.last_error = "Current password is incorrect."
            else:
                self.last_error = "Failed to change password. Please try again."
            return False
        except Exception:
            logger.exception("Password change failed for %s", self.user.id)
            self.last_error = "Failed to change password. Please try again."
            return False

        self.last_error = None
        self.logout()
        return True

    def add_user(
        self,
        email: str,
        password: SecureString | str,
        name: str,
        role: str = VIEWER,
        is_active: bool = True,
        **profile: str,
    ) -> bool:
        if not self.is_privileged:
            return False
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        try:
            created = self._auth.create_user(email, password, name)
            self._repository.save_user(
                User(
                    id=created.uid,
                    email=email,
                    name=name,
                    role=role,
                    is_active=is_active,
                    date_added=utcnow(),
                    **profile,
                )
            )
        except Exception:
            logger.exception("Failed to add user %s", email)
            return False
        return True

    def get_users(self) -> List[User]:
        if not self.is_privileged:
            return []
        return self._repository.list_users()

    def update_user(self, uid: str, changes: Mapping[str, Any]) -> bool:
        """Update a profile document.

        Admins may update anyone. Other users may update their own profile
        but not its ``role`` or ``isActive`` fields.
        """

        if self.user is None:
            return False
        if not self.is_privileged and (
            self.user.id != uid or any(key in changes for key in _PRIVILEGED_FIELDS)
        ):
            return False
        data = {key: value for key, value in changes.items() if key in _PROFILE_FIELDS}
        try:
            self._repository.update_user(uid, data)
            if uid == self.user.id:
                refreshed = self._repository.get_user(uid)
                if refreshed is not None:
                    self.user = refreshed
        except Exception:
            logger.exception("Failed to update user %s", uid)
            return False
        return True

    def delete_user(self, uid: str) -> bool:
        """Remove a profile document; the auth identity itself is kept."""

        if not self.is_privileged or self.user is None or uid == self.user.id:
            return False
        try:
            self._repository.delete_user(uid)
        except Exception:
            logger.exception("Failed to delete user %s", uid)
            return False
        return True

    def clear_notification(self, notification_id: str) -> bool:
        if self.user is None:
            return False
        if notification_id in self.user.cleared_notifications:
            return True
        cleared = self.user.cleared_notifications + [notification_id]
        return self.update_user(self.user.id, {"clearedNotifications": cleared})

    def send_notification(self, message: str) -> bool:
        """Broadcast a custom message to every user (admins only)."""

        if self.user is None or not self.user.is_privileged or not message.strip():
            return False
        try:
            self._repository.add_notification(
                message.strip(), self.user.id, self.user.name, ADMIN_CUSTOM
            )
        except Exception:
            logger.exception("Failed to send notification")
            return False
        return True


def bootstrap_superadmin(
    auth: AuthProvider,
    repository: ContactRepository,
    email: str,
    password: SecureString | str,
    name: str = "Super Admin User",
) -> Optional[User]:
    """Create the first superadmin account and profile.

    Returns ``None`` when an account with ``email`` already exists.
    """

    try:
        created = auth.create_user(email, password, name)
    except AuthError as exc:
        logger.info("Superadmin %s not created: %s", email, exc.code)
        return None

    user = User(id=created.uid, email=email, name=name, role=SUPERADMIN, date_added=utcnow())
    repository.save_user(user)
    return user


__all__ = ["Session", "bootstrap_superadmin"]
