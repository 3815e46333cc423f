from __future__ import annotations

import pytest

from card_manager.manager import ContactManager
from card_manager.models import EDITOR, MY_CARD, VIEWER
from card_manager.pipeline import ALL_CONTACTS, GROUP_CATEGORY, ContactQuery
from card_manager.state import VIEW_CARDS, VIEW_GRID, VIEW_LIST, VIEW_TABLE, AppState
from card_manager.vcard import Decoded, decode_contact

ADMIN_EMAIL = "root@example.com"
ADMIN_PASSWORD = "welcome123"


@pytest.fixture()
def manager(session) -> ContactManager:
    assert session.login(ADMIN_EMAIL, ADMIN_PASSWORD)
    return ContactManager(session)


def test_add_contact_refetches_and_notifies(manager, store):
    assert manager.add_contact({"name": "Ada", "email": "ada@example.com", "website": "-"})

    (contact,) = manager.contacts
    assert contact.name == "Ada"
    assert contact.website == ""
    assert contact.owner_id == manager.session.user.id

    (notification,) = store.query("notifications")
    assert notification.data["message"] == "Root added a new contact."
    assert notification.data["type"] == "contact_add"
    assert notification.data["excludeUserIds"] == [manager.session.user.id]


def test_edit_and_delete_contact(manager):
    manager.add_contact({"name": "Ada", "email": "ada@example.com"})
    contact = manager.contacts[0]
    contact.title = "Countess"

    assert manager.edit_contact(contact)
    assert manager.contacts[0].title == "Countess"

    assert manager.delete_contact(contact.id)
    assert manager.contacts == []


def test_edit_missing_contact_fails(manager):
    manager.add_contact({"name": "Ada", "email": "ada@example.com"})
    contact = manager.contacts[0]
    manager.delete_contact(contact.id)

    assert not manager.edit_contact(contact)


def test_import_scanned_record(manager):
    result = decode_contact("BEGIN:VCARD\nFN:Grace Hopper\nEMAIL:grace@example.com\nEND:VCARD")
    assert isinstance(result, Decoded)

    assert manager.import_scanned(result.record)
    assert manager.contacts[0].email == "grace@example.com"


def test_view_pins_own_card(manager):
    manager.add_contact({"name": "Zed", "email": "zed@example.com"})
    manager.add_contact({"name": "Root", "email": ADMIN_EMAIL, "category": "Work"})

    view = manager.flat_view()

    assert view[0].email == ADMIN_EMAIL
    assert view[0].category == MY_CARD
    assert manager.counts() == {"Work": 2}


def test_flat_view_ignores_grouping(manager):
    manager.add_contact({"name": "Ada", "email": "ada@example.com", "category": "Personal"})
    manager.query = ContactQuery(group_by=GROUP_CATEGORY)

    assert list(manager.view()) == ["Personal"]
    assert [c.name for c in manager.flat_view()] == ["Ada"]
    assert manager.query.group_by == GROUP_CATEGORY


@pytest.mark.parametrize(
    "view_type, expected",
    [
        (VIEW_GRID, ["Personal", "Work"]),
        (VIEW_LIST, ["Personal", "Work"]),
        (VIEW_CARDS, ["Personal", "Work"]),
        (VIEW_TABLE, [ALL_CONTACTS]),
    ],
)
def test_sections_follow_view_type(manager, view_type, expected):
    manager.add_contact({"name": "Ada", "email": "ada@example.com", "category": "Personal"})
    manager.add_contact({"name": "Bob", "email": "bob@example.com"})
    manager.query = ContactQuery(group_by=GROUP_CATEGORY)

    sections = manager.sections(view_type)

    assert sorted(sections) == expected
    assert sum(len(contacts) for contacts in sections.values()) == 2


def test_summary_lists_total_then_categories(manager, repository):
    manager.add_contact({"name": "Ada", "email": "ada@example.com", "category": "Personal"})
    manager.add_contact({"name": "Bob", "email": "bob@example.com"})
    manager.add_contact({"name": "Cy", "email": "cy@example.com", "category": "Work"})
    repository.add_contact(manager.session.user.id, {"name": "Dee", "category": "Friends"})
    manager.refresh()

    assert manager.summary() == [("Total", 4), ("Work", 2), ("Personal", 1), ("Friends", 1)]


def test_summary_of_empty_list(manager):
    assert manager.summary() == [("Total", 0)]


def test_view_type_is_validated():
    state = AppState()
    state.set_view_type(VIEW_TABLE)

    assert state.view_type == VIEW_TABLE
    with pytest.raises(ValueError):
        state.set_view_type("carousel")
    assert state.view_type == VIEW_TABLE


def test_viewers_cannot_mutate(session, auth, repository):
    created = auth.create_user("viewer@example.com", "secret1", "Vera")
    session.login("viewer@example.com", "secret1")
    manager = ContactManager(session)

    assert session.user.role == VIEWER
    assert not manager.can_mutate
    assert not manager.add_contact({"name": "Nope", "email": "n@example.com"})
    assert not manager.delete_contact("anything")

    repository.update_user(created.uid, {"role": EDITOR})
    session.update_user(created.uid, {})
    assert manager.can_mutate


def test_signed_out_manager_has_no_contacts(session):
    manager = ContactManager(session)

    assert not manager.refresh()
    assert manager.contacts == []
    assert manager.view() == {ALL_CONTACTS: []}
