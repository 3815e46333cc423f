from __future__ import annotations

import logging

import pytest

from card_manager.auth import (
    EMAIL_IN_USE,
    INVALID_CODE,
    LOCAL,
    SESSION,
    USER_DISABLED,
    USER_NOT_FOUND,
    WEAK_PASSWORD,
    WRONG_PASSWORD,
    AuthError,
)
from card_manager.security import SecureString


def test_sign_in_with_correct_password(auth):
    created = auth.create_user("ada@example.com", "secret1", "Ada")

    user = auth.sign_in("ADA@example.com", SecureString("secret1"), LOCAL)

    assert user == created
    assert auth.current_user == created
    assert auth.persistence == LOCAL


@pytest.mark.parametrize(
    "email, password, code",
    [
        ("ada@example.com", "wrong-pass", WRONG_PASSWORD),
        ("nobody@example.com", "secret1", USER_NOT_FOUND),
    ],
)
def test_sign_in_failures(auth, email, password, code):
    auth.create_user("ada@example.com", "secret1")

    with pytest.raises(AuthError) as excinfo:
        auth.sign_in(email, password)

    assert excinfo.value.code == code
    assert auth.current_user is None


def test_unknown_persistence_is_rejected(auth):
    auth.create_user("ada@example.com", "secret1")

    with pytest.raises(ValueError):
        auth.sign_in("ada@example.com", "secret1", "forever")


def test_duplicate_and_weak_accounts_are_rejected(auth):
    auth.create_user("ada@example.com", "secret1")

    with pytest.raises(AuthError) as duplicate:
        auth.create_user("Ada@Example.com", "secret2")
    with pytest.raises(AuthError) as weak:
        auth.create_user("bob@example.com", "123")

    assert duplicate.value.code == EMAIL_IN_USE
    assert weak.value.code == WEAK_PASSWORD


def test_disabled_accounts_cannot_sign_in(auth):
    created = auth.create_user("ada@example.com", "secret1")
    auth.disable_user(created.uid)

    with pytest.raises(AuthError) as excinfo:
        auth.sign_in("ada@example.com", "secret1")

    assert excinfo.value.code == USER_DISABLED


def test_auth_state_listeners(auth):
    events = []
    subscription = auth.on_auth_state_changed(events.append)
    created = auth.create_user("ada@example.com", "secret1")

    auth.sign_in("ada@example.com", "secret1")
    auth.sign_out()
    auth.sign_out()
    subscription.unsubscribe()
    auth.sign_in("ada@example.com", "secret1", SESSION)

    assert events == [None, created, None]


def test_auth_listener_released_when_first_delivery_fails(auth):
    def boom(_user):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        auth.on_auth_state_changed(boom)

    assert auth.listener_count == 0


def test_failing_auth_listener_does_not_skip_others(auth, caplog):
    events = []
    created = auth.create_user("ada@example.com", "secret1")

    def broken(user):
        if user is not None:
            raise RuntimeError("boom")

    auth.on_auth_state_changed(broken)
    auth.on_auth_state_changed(events.append)
    with caplog.at_level(logging.ERROR, logger="card_manager.auth"):
        auth.sign_in("ada@example.com", "secret1")

    assert events == [None, created]
    assert auth.current_user == created
    assert "Auth state listener failed" in caplog.text


def test_password_reset_flow(auth):
    auth.create_user("ada@example.com", "secret1")
    auth.send_password_reset("ada@example.com")
    (email, code), = auth.outbox

    assert auth.verify_reset_code(code) == "ada@example.com"
    auth.confirm_password_reset(code, "brand-new")

    assert auth.sign_in("ada@example.com", "brand-new").email == email
    with pytest.raises(AuthError) as excinfo:
        auth.confirm_password_reset(code, "again-new")
    assert excinfo.value.code == INVALID_CODE


def test_reauthenticate_checks_signed_in_user(auth):
    auth.create_user("ada@example.com", "secret1")
    auth.create_user("bob@example.com", "secret2")
    auth.sign_in("ada@example.com", "secret1")

    auth.reauthenticate("ada@example.com", "secret1")
    with pytest.raises(AuthError):
        auth.reauthenticate("ada@example.com", "nope-nope")
    with pytest.raises(AuthError):
        auth.reauthenticate("bob@example.com", "secret2")


def test_update_password(auth):
    created = auth.create_user("ada@example.com", "secret1")

    auth.update_password(created.uid, "secret2")

    assert auth.sign_in("ada@example.com", "secret2") == created
    with pytest.raises(AuthError):
        auth.update_password("ghost", "secret3")
