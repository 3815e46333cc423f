from __future__ import annotations

import pytest

from card_manager.auth import LocalAuthProvider
from card_manager.config import AppConfig
from card_manager.repository import ContactRepository
from card_manager.session import Session, bootstrap_superadmin
from card_manager.store import InMemoryDocumentStore

ADMIN_EMAIL = "root@example.com"
ADMIN_PASSWORD = "welcome123"


@pytest.fixture()
def fast_config() -> AppConfig:
    return AppConfig(password_kdf="pbkdf2", pbkdf2_iterations=1_000)


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def repository(store, fast_config) -> ContactRepository:
    return ContactRepository(store, fast_config)


@pytest.fixture()
def auth(fast_config) -> LocalAuthProvider:
    return LocalAuthProvider(fast_config)


@pytest.fixture()
def session(auth, repository, fast_config):
    bootstrap_superadmin(auth, repository, ADMIN_EMAIL, ADMIN_PASSWORD, name="Root")
    current = Session(auth, repository, fast_config)
    current.start()
    yield current
    current.close()
