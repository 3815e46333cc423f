"""Authentication provider port and a local, in-process provider."""
from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol

from .config import AppConfig
from .security import SecureString, password_context, plaintext
from .store import Subscription

logger = logging.getLogger(__name__)

LOCAL = "local"
SESSION = "session"

WRONG_PASSWORD = "auth/wrong-password"
USER_NOT_FOUND = "auth/user-not-found"
EMAIL_IN_USE = "auth/email-already-in-use"
USER_DISABLED = "auth/user-disabled"
WEAK_PASSWORD = "auth/weak-password"
INVALID_CODE = "auth/invalid-action-code"
NOT_SIGNED_IN = "auth/no-current-user"


class AuthError(Exception):
    """Raised by an auth provider; ``code`` identifies the failure."""

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or code)
        self.code = code


@dataclass(frozen=True)
class AuthUser:
    """The identity an auth provider reports for a signed-in principal."""

    uid: str
    email: str
    display_name: str = ""


AuthStateCallback = Callable[[Optional[AuthUser]], None]


class AuthProvider(Protocol):
    @property
    def current_user(self) -> Optional[AuthUser]:
        ...

    @property
    def persistence(self) -> str:
        ...

    def sign_in(
        self, email: str, password: SecureString | str, persistence: str = SESSION
    ) -> AuthUser:
        ...

    def sign_out(self) -> None:
        ...

    def create_user(
        self, email: str, password: SecureString | str, display_name: str = ""
    ) -> AuthUser:
        ...

    def send_password_reset(self, email: str) -> None:
        ...

    def confirm_password_reset(self, code: str, new_password: SecureString | str) -> None:
        ...

    def reauthenticate(self, email: str, password: SecureString | str) -> None:
        ...

    def update_password(self, uid: str, new_password: SecureString | str) -> None:
        ...

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Subscription:
        ...


@dataclass
class _Account:
    user: AuthUser
    password_hash: str
    disabled: bool = False


@dataclass
class LocalAuthProvider:
    """Accounts kept in memory with hashed passwords.

    Password-reset codes are not e-mailed; they are appended to
    :attr:`outbox` as ``(email, code)`` pairs for the caller to deliver.
    """

    config: AppConfig = field(default_factory=AppConfig)
    outbox: List[tuple[str, str]] = field(default_factory=list)
    _accounts: Dict[str, _Account] = field(default_factory=dict, init=False, repr=False)
    _reset_codes: Dict[str, str] = field(default_factory=dict, init=False, repr=False)
    _listeners: Dict[int, AuthStateCallback] = field(default_factory=dict, init=False, repr=False)
    _current: Optional[AuthUser] = field(default=None, init=False, repr=False)
    _persistence: str = field(default=SESSION, init=False, repr=False)
    _next_listener: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self._passwords = password_context(self.config)

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current

    @property
    def persistence(self) -> str:
        return self._persistence

    def _by_email(self, email: str) -> _Account:
        key = email.strip().lower()
        for account in self._accounts.values():
            if account.user.email.lower() == key:
                return account
        raise AuthError(USER_NOT_FOUND, f"No account for {email}")

    def _check_password(self, account: _Account, password: SecureString | str) -> None:
        valid, new_hash = self._passwords.verify_and_update(
            plaintext(password), account.password_hash
        )
        if not valid:
            raise AuthError(WRONG_PASSWORD, "Wrong password")
        if new_hash is not None:
            account.password_hash = new_hash

    def _check_strength(self, password: SecureString | str) -> None:
        length = len(plaintext(password))
        if length < self.config.min_password_length:
            raise AuthError(WEAK_PASSWORD, "Password is too short")

    def create_user(
        self, email: str, password: SecureString | str, display_name: str = ""
    ) -> AuthUser:
        try:
            self._by_email(email)
        except AuthError:
            pass
        else:
            raise AuthError(EMAIL_IN_USE, f"{email} is already registered")

        self._check_strength(password)
        user = AuthUser(uuid.uuid4().hex, email.strip(), display_name)
        self._accounts[user.uid] = _Account(user, self._passwords.hash(plaintext(password)))
        logger.info("Created auth account %s", user.uid)
        return user

    def disable_user(self, uid: str) -> None:
        self._accounts[uid].disabled = True

    def sign_in(
        self, email: str, password: SecureString | str, persistence: str = SESSION
    ) -> AuthUser:
        if persistence not in (LOCAL, SESSION):
            raise ValueError(f"Unknown persistence mode: {persistence}")
        account = self._by_email(email)
        if account.disabled:
            raise AuthError(USER_DISABLED, "Account is disabled")
        self._check_password(account, password)
        self._persistence = persistence
        self._current = account.user
        self._emit()
        return account.user

    def sign_out(self) -> None:
        if self._current is None:
            return
        self._current = None
        self._emit()

    def send_password_reset(self, email: str) -> None:
        account = self._by_email(email)
        code = secrets.token_urlsafe(16)
        self._reset_codes[code] = account.user.uid
        self.outbox.append((account.user.email, code))

    def verify_reset_code(self, code: str) -> str:
        """Return the e-mail a reset code belongs to."""

        uid = self._reset_codes.get(code)
        if uid is None:
            raise AuthError(INVALID_CODE, "Invalid or expired reset code")
        return self._accounts[uid].user.email

    def confirm_password_reset(self, code: str, new_password: SecureString | str) -> None:
        self.verify_reset_code(code)
        self._check_strength(new_password)
        uid = self._reset_codes.pop(code)
        self._accounts[uid].password_hash = self._passwords.hash(plaintext(new_password))

    def reauthenticate(self, email: str, password: SecureString | str) -> None:
        if self._current is None:
            raise AuthError(NOT_SIGNED_IN, "No user is signed in")
        account = self._by_email(email)
        if account.user.uid != self._current.uid:
            raise AuthError(WRONG_PASSWORD, "Credential does not match the signed-in user")
        self._check_password(account, password)

    def update_password(self, uid: str, new_password: SecureString | str) -> None:
        if uid not in self._accounts:
            raise AuthError(USER_NOT_FOUND, f"No account {uid}")
        self._check_strength(new_password)
        self._accounts[uid].password_hash = self._passwords.hash(plaintext(new_password))

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Subscription:
        key = self._next_listener
        self._next_listener += 1
        self._listeners[key] = callback
        subscription = Subscription(lambda: self._listeners.pop(key, None))
        try:
            callback(self._current)
        except BaseException:
            subscription.unsubscribe()
            raise
        return subscription

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _emit(self) -> None:
        for callback in list(self._listeners.values()):
            try:
                callback(self._current)
            except Exception:
                logger.exception("Auth state listener failed")


__all__ = [
    "AuthError",
    "AuthProvider",
    "AuthUser",
    "LocalAuthProvider",
    "LOCAL",
    "SESSION",
    "EMAIL_IN_USE",
    "INVALID_CODE",
    "USER_DISABLED",
    "USER_NOT_FOUND",
    "WEAK_PASSWORD",
    "WRONG_PASSWORD",
]
