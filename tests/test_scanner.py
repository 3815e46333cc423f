from __future__ import annotations

import json

import pytest

from card_manager.config import AppConfig
from card_manager.scanner import (
    CAMERA,
    CAMERA_DENIED,
    CAMERA_NOT_FOUND,
    MANUAL,
    NOT_CONTACT_DATA,
    UPLOAD,
    ScanController,
)
from card_manager.vcard import INVALID_FORMAT

VCARD = "BEGIN:VCARD\nVERSION:3.0\nFN:Grace Hopper\nEMAIL:grace@example.com\nEND:VCARD"


@pytest.fixture()
def imported():
    return []


@pytest.fixture()
def controller(imported) -> ScanController:
    return ScanController(on_import=imported.append)


def test_initial_state(controller: ScanController):
    assert controller.mode == MANUAL
    assert not controller.camera_active
    assert controller.pending is None
    assert controller.buffer == ""
    assert not controller.can_submit


def test_submit_manual_vcard_imports_and_closes(controller, imported):
    controller.set_buffer(VCARD)

    record = controller.submit()

    assert record is not None
    assert imported == [record]
    assert record["name"] == "Grace Hopper"
    assert not controller.is_open
    assert controller.buffer == ""


def test_submit_invalid_text_keeps_dialog_open(controller, imported):
    controller.set_buffer("definitely not a contact")

    assert controller.submit() is None
    assert controller.error == INVALID_FORMAT
    assert controller.buffer == "definitely not a contact"
    assert controller.is_open
    assert imported == []


def test_editing_buffer_clears_error(controller):
    controller.set_buffer("nope")
    controller.submit()

    controller.set_buffer("nope!")

    assert controller.error is None


def test_blank_buffer_does_nothing(controller, imported):
    controller.set_buffer("   ")

    assert controller.submit() is None
    assert controller.error is None
    assert imported == []


def test_load_file_switches_to_upload_and_previews():
    controller = ScanController(on_import=lambda _record: None, config=AppConfig(upload_preview_chars=10))

    controller.load_file("x" * 25)

    assert controller.mode == UPLOAD
    assert controller.preview == "x" * 10 + "..."


def test_upload_json_file_imports(controller, imported):
    controller.select_mode(UPLOAD)
    controller.load_file(json.dumps({"name": "Alan", "email": "alan@example.com"}))

    assert controller.submit() is not None
    assert imported[0]["email"] == "alan@example.com"


def test_unknown_mode_is_rejected(controller):
    with pytest.raises(ValueError):
        controller.select_mode("telepathy")


def test_camera_start_requires_camera_mode(controller):
    with pytest.raises(ValueError):
        controller.start_camera()

    controller.select_mode(CAMERA)
    controller.start_camera()
    assert controller.camera_active


def test_leaving_camera_mode_turns_camera_off(controller):
    controller.select_mode(CAMERA)
    controller.start_camera()

    controller.select_mode(MANUAL)

    assert not controller.camera_active


def test_camera_decode_produces_pending_draft(controller, imported):
    controller.select_mode(CAMERA)
    controller.start_camera()

    controller.camera_decoded(VCARD)

    assert not controller.camera_active
    assert controller.pending is not None
    assert controller.pending["email"] == "grace@example.com"
    assert imported == []


def test_camera_mode_blocked_while_draft_pending(controller):
    controller.select_mode(CAMERA)
    controller.camera_decoded(VCARD)
    controller.select_mode(MANUAL)

    assert not controller.can_select_camera
    with pytest.raises(ValueError):
        controller.select_mode(CAMERA)


def test_confirm_imports_pending_draft(controller, imported):
    controller.select_mode(CAMERA)
    controller.camera_decoded(VCARD)

    record = controller.confirm()

    assert imported == [record]
    assert controller.pending is None
    assert not controller.is_open


def test_cancel_discards_draft(controller, imported):
    controller.select_mode(CAMERA)
    controller.camera_decoded(VCARD)

    controller.cancel()

    assert controller.pending is None
    assert controller.confirm() is None
    assert imported == []
    assert controller.can_select_camera


def test_undecodable_scan_goes_to_manual_buffer(controller):
    controller.select_mode(CAMERA)
    controller.start_camera()

    controller.camera_decoded("https://example.com")

    assert controller.mode == MANUAL
    assert controller.buffer == "https://example.com"
    assert controller.camera_error == NOT_CONTACT_DATA
    assert controller.pending is None


@pytest.mark.parametrize(
    "message, expected",
    [
        ("Permission denied by user", CAMERA_DENIED),
        ("Camera not found", CAMERA_NOT_FOUND),
        ("Unable to access camera", CAMERA_NOT_FOUND),
        ("Camera feed unavailable", "Camera feed unavailable"),
    ],
)
def test_camera_failures_are_explained(controller, message, expected):
    controller.select_mode(CAMERA)
    controller.start_camera()

    controller.camera_failed(message)

    assert not controller.camera_active
    assert controller.camera_error == expected


def test_close_resets_every_sub_state(controller):
    controller.select_mode(CAMERA)
    controller.start_camera()
    controller.camera_decoded(VCARD)
    controller.set_buffer("leftover")

    controller.close()

    assert controller.mode == MANUAL
    assert not controller.camera_active
    assert controller.pending is None
    assert controller.buffer == ""
    assert controller.error is None
    assert controller.camera_error is None
    assert not controller.is_open

    controller.open()
    assert controller.is_open
