from __future__ import annotations

from datetime import datetime, timezone

import pytest

from card_manager.config import AppConfig
from card_manager.models import ADMIN, EDITOR, VIEWER, User
from card_manager.repository import CONTACTS, ContactRepository
from card_manager.store import InMemoryDocumentStore

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def repository(store) -> ContactRepository:
    return ContactRepository(store, AppConfig())


def test_add_contact_stamps_owner_and_date(repository, store):
    doc_id = repository.add_contact("u1", {"name": "Ada", "email": "ada@example.com", "id": "x"}, NOW)

    data = store.get(CONTACTS, doc_id)
    assert data["userId"] == "u1"
    assert data["dateAdded"] == "2024-05-01T12:00:00Z"
    assert "id" not in data


def test_get_contacts_parses_documents(repository):
    repository.add_contact("u1", {"name": "Ada", "category": "My Business Card"}, NOW)

    (contact,) = repository.get_contacts(User(id="u1", email="a@example.com", role=ADMIN))

    assert contact.name == "Ada"
    assert contact.category == "My Card"
    assert contact.date_added == NOW
    assert contact.owner_id == "u1"


def test_restricted_roles_only_see_own_contacts(store):
    repository = ContactRepository(store, AppConfig(all_contacts_roles=("admin",)))
    repository.add_contact("u1", {"name": "Mine"})
    repository.add_contact("u2", {"name": "Theirs"})

    editor = User(id="u1", email="e@example.com", role=EDITOR)
    admin = User(id="u9", email="a@example.com", role=ADMIN)

    assert [c.name for c in repository.get_contacts(editor)] == ["Mine"]
    assert len(repository.get_contacts(admin)) == 2


def test_default_roles_see_every_contact(repository):
    repository.add_contact("u1", {"name": "Mine"})
    repository.add_contact("u2", {"name": "Theirs"})

    viewer = User(id="u3", email="v@example.com", role=VIEWER)

    assert len(repository.get_contacts(viewer)) == 2


def test_save_contact_updates_editable_fields(repository, store):
    doc_id = repository.add_contact("u1", {"name": "Ada"}, NOW)
    contact = repository.get_contacts(User(id="u1", email="x@example.com"))[0]
    contact.company = "Analytical Engines"

    repository.save_contact(contact)

    data = store.get(CONTACTS, doc_id)
    assert data["company"] == "Analytical Engines"
    assert data["userId"] == "u1"
    assert data["dateAdded"] == "2024-05-01T12:00:00Z"


def test_delete_contact(repository):
    doc_id = repository.add_contact("u1", {"name": "Ada"})
    repository.delete_contact(doc_id)

    assert repository.get_contacts(User(id="u1", email="x@example.com")) == []


def test_user_round_trip(repository):
    user = User(id="u1", email="ada@example.com", name="Ada", role=EDITOR, date_added=NOW)
    repository.save_user(user)

    assert repository.get_user("u1") == user
    assert repository.get_user("missing") is None


def test_admin_emails_are_promoted(store):
    repository = ContactRepository(store, AppConfig(admin_emails=("boss@example.com",)))
    repository.save_user(User(id="u1", email="boss@example.com", date_added=NOW))

    assert repository.get_user("u1").role == ADMIN
    assert [u.role for u in repository.list_users()] == [ADMIN]


def test_update_and_delete_user(repository):
    repository.save_user(User(id="u1", email="ada@example.com", date_added=NOW))

    repository.update_user("u1", {"name": "Countess"})
    assert repository.get_user("u1").name == "Countess"

    repository.delete_user("u1")
    assert repository.get_user("u1") is None


def test_presence_subscription_tracks_online_users(repository):
    snapshots = []
    subscription = repository.subscribe_online_users(snapshots.append)

    repository.set_user_online("u1")
    repository.set_user_online("u2")
    repository.set_user_offline("u1")

    assert [u.user_id for u in snapshots[-1]] == ["u2"]
    assert snapshots[-1][0].last_active is not None
    subscription.unsubscribe()


def test_notifications_arrive_newest_first(repository, store):
    received = []
    store.add("notifications", {"message": "old", "createdAt": "2024-01-01T00:00:00Z"})
    store.add("notifications", {"message": "new", "createdAt": "2024-02-01T00:00:00Z"})

    subscription = repository.subscribe_notifications(received.append)
    repository.add_notification("newest", "u1", "Ada", "admin_custom", ["u2"])

    messages = [n.message for n in received[-1]]
    assert messages == ["newest", "new", "old"]
    assert received[-1][0].exclude_user_ids == ["u2"]
    assert received[-1][0].sender_name == "Ada"
    subscription.unsubscribe()
