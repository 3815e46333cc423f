"""State of the "Scan QR Code" dialog.

The dialog offers three mutually exclusive input modes.  Manual and upload
modes fill a text buffer that is decoded when the user presses "Add
Contact"; camera mode produces a draft that waits for an explicit "Create
Contact" or "Cancel".  The controller holds that state without any widget
code so the presentation layer only mirrors it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .config import AppConfig
from .vcard import Decoded, decode_contact

logger = logging.getLogger(__name__)

MANUAL = "manual"
UPLOAD = "upload"
CAMERA = "camera"

MODES = (MANUAL, UPLOAD, CAMERA)

NOT_CONTACT_DATA = "Scanned QR code is not valid contact data."
CAMERA_DENIED = "Camera access denied. Please allow camera permissions in your system settings."
CAMERA_NOT_FOUND = "No camera device found. Check that a camera is connected and not in use."

ImportCallback = Callable[[Dict[str, str]], object]


@dataclass(slots=True)
class ScanController:
    """Mode switching and the scan-to-import flow."""

    on_import: ImportCallback
    config: AppConfig = field(default_factory=AppConfig)
    mode: str = MANUAL
    camera_active: bool = False
    pending: Optional[Dict[str, str]] = None
    buffer: str = ""
    error: Optional[str] = None
    camera_error: Optional[str] = None
    is_open: bool = True

    @property
    def can_select_camera(self) -> bool:
        return self.pending is None

    @property
    def can_submit(self) -> bool:
        return bool(self.buffer.strip())

    @property
    def preview(self) -> str:
        limit = self.config.upload_preview_chars
        if len(self.buffer) > limit:
            return self.buffer[:limit] + "..."
        return self.buffer

    def select_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown scan mode: {mode}")
        if mode == CAMERA and not self.can_select_camera:
            raise ValueError("Confirm or cancel the scanned contact first")
        if mode != CAMERA:
            self.camera_active = False
            self.camera_error = None
        self.mode = mode

    def set_buffer(self, text: str) -> None:
        self.buffer = text
        self.error = None

    def load_file(self, text: str) -> None:
        """Place uploaded file content into the buffer for preview."""

        self.mode = UPLOAD
        self.set_buffer(text)

    def start_camera(self) -> None:
        if self.mode != CAMERA:
            raise ValueError("Camera can only be started in camera mode")
        self.camera_active = True
        self.camera_error = None

    def stop_camera(self) -> None:
        self.camera_active = False

    def camera_decoded(self, text: str) -> None:
        """Handle text read from the camera.

        A decodable payload becomes the pending draft.  Anything else is put
        into the manual buffer so that the user can correct it.
        """

        self.camera_active = False
        result = decode_contact(text)
        if isinstance(result, Decoded):
            self.pending = result.record
            self.camera_error = None
            return

        logger.info("Scanned payload rejected: %s", result.reason)
        self.mode = MANUAL
        self.buffer = text
        self.camera_error = NOT_CONTACT_DATA

    def camera_failed(self, message: str) -> None:
        self.camera_active = False
        lowered = message.lower()
        if "denied" in lowered:
            self.camera_error = CAMERA_DENIED
        elif "not found" in lowered or "unable to access" in lowered:
            self.camera_error = CAMERA_NOT_FOUND
        else:
            self.camera_error = message

    def submit(self) -> Optional[Dict[str, str]]:
        """Decode the buffer and import it ("Add Contact").

        Returns the imported record, or ``None`` when the buffer is blank or
        cannot be decoded; in the latter case :attr:`error` is set and the
        buffer is kept.
        """

        if not self.can_submit:
            return None

        result = decode_contact(self.buffer)
        if not isinstance(result, Decoded):
            self.error = result.reason
            return None

        self.on_import(result.record)
        self.close()
        return result.record

    def confirm(self) -> Optional[Dict[str, str]]:
        """Import the pending camera draft ("Create Contact")."""

        if self.pending is None:
            return None
        record = self.pending
        self.on_import(record)
        self.close()
        return record

    def cancel(self) -> None:
        self.pending = None

    def close(self) -> None:
        self.mode = MANUAL
        self.camera_active = False
        self.pending = None
        self.buffer = ""
        self.error = None
        self.camera_error = None
        self.is_open = False

    def open(self) -> None:
        self.close()
        self.is_open = True


__all__ = [
    "CAMERA",
    "MANUAL",
    "MODES",
    "NOT_CONTACT_DATA",
    "UPLOAD",
    "ScanController",
]
