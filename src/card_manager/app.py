"""PyQt5 user interface for the Card Manager."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from PyQt5.QtCore import QObject, QSize, QThread, QTimer, Qt, pyqtSignal
from PyQt5.QtGui import QFont, QImage, QPixmap
from PyQt5.QtWidgets import (
    QApplication,
    QCheckBox,
    QComboBox,
    QDialog,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStackedWidget,
    QTableWidget,
    QTableWidgetItem,
    QTextEdit,
    QTreeWidget,
    QTreeWidgetItem,
    QVBoxLayout,
    QWidget,
)

from .auth import LocalAuthProvider
from .config import AppConfig, CameraConfig, StyleConfig
from .export import card_png_bytes, initials, qr_filename, save_business_card
from .icon import create_icon
from .manager import ContactManager
from .models import CATEGORIES, MY_CARD, ROLES, Contact, Notification, User
from .network import is_online, status_text
from .notifications import NotificationFeed
from .pipeline import (
    ALL_CATEGORIES,
    GROUP_CATEGORY,
    GROUP_NONE,
    SORT_COMPANY,
    SORT_DATE_ADDED,
    SORT_NAME,
    flatten,
)
from .qr import QRCodeManager
from .repository import ContactRepository
from .scanner import CAMERA, MANUAL, UPLOAD, ScanController
from .session import Session, bootstrap_superadmin
from .state import VIEW_CARDS, VIEW_GRID, VIEW_LIST, VIEW_TABLE, AppState
from .store import InMemoryDocumentStore
from .validation import normalize_website, validate_profile
from .vcard import contact_json, encode_vcard

logger = logging.getLogger(__name__)

_IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".bmp"}
_CONTACT_COLUMNS = ["", "Name", "Title", "Company", "Email", "Phone", "Category"]


class SignInScreen(QWidget):  # pragma: no cover - requires Qt event loop

    def __init__(self, session: Session, config: AppConfig):
        super().__init__()
        self._session = session
        self._config = config
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setAlignment(Qt.AlignCenter)

        panel = QWidget()
        panel.setMaximumWidth(420)
        panel.setObjectName("CentralPanel")
        panel_layout = QVBoxLayout(panel)
        panel_layout.setSpacing(12)

        title = QLabel("Contact Manager")
        title.setObjectName("HeaderLabel")
        title.setAlignment(Qt.AlignCenter)

        info = QLabel("Manage your business cards and contacts with ease")
        info.setWordWrap(True)
        info.setAlignment(Qt.AlignCenter)
        info.setObjectName("SubtleLabel")

        self._email_input = QLineEdit()
        self._email_input.setPlaceholderText("Email")
        self._email_input.setMinimumHeight(38)

        self._password_input = QLineEdit()
        self._password_input.setEchoMode(QLineEdit.Password)
        self._password_input.setPlaceholderText("Password")
        self._password_input.setMinimumHeight(38)

        self._remember = QCheckBox("Remember me")

        self._error = QLabel()
        self._error.setObjectName("ErrorLabel")
        self._error.setWordWrap(True)
        self._error.hide()

        sign_in_btn = QPushButton("Sign In")
        sign_in_btn.setObjectName("AccentButton")
        sign_in_btn.setMinimumHeight(42)

        forgot_btn = QPushButton("Forgot password?")
        forgot_btn.setFlat(True)

        panel_layout.addWidget(title)
        panel_layout.addWidget(info)
        panel_layout.addWidget(self._email_input)
        panel_layout.addWidget(self._password_input)
        panel_layout.addWidget(self._remember)
        panel_layout.addWidget(self._error)
        panel_layout.addWidget(sign_in_btn)
        panel_layout.addWidget(forgot_btn)

        layout.addWidget(panel)

        sign_in_btn.clicked.connect(self._sign_in)
        forgot_btn.clicked.connect(self._forgot_password)
        self._password_input.returnPressed.connect(self._sign_in)

    def _sign_in(self) -> None:
        self._error.hide()
        ok = self._session.login(
            self._email_input.text().strip(),
            self._password_input.text(),
            self._remember.isChecked(),
        )
        self._password_input.clear()
        if not ok:
            self._error.setText(self._session.last_error or "Invalid email or password")
            self._error.show()

    def _forgot_password(self) -> None:
        email = self._email_input.text().strip()
        if not email:
            QMessageBox.warning(self, "Reset Password", "Enter your email address first.")
            return
        if self._session.reset_password(email):
            QMessageBox.information(self, "Reset Password", "Password reset email sent.")
        else:
            QMessageBox.critical(self, "Reset Password", "Failed to send password reset email.")


class CameraWorker(QObject):  # pragma: no cover - requires Qt event loop
    """Background worker that streams frames from the system camera."""

    frame_captured = pyqtSignal(object)
    decoded = pyqtSignal(str)
    status = pyqtSignal(str)
    failed = pyqtSignal(str)
    finished = pyqtSignal()

    def __init__(self, config: AppConfig, camera_config: CameraConfig):
        super().__init__()
        self._config = config
        self._camera_config = camera_config
        self._running = False
        self._cv2 = None
        self._pyzbar = None

    def stop(self) -> None:
        self._running = False

    def run(self) -> None:
        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore
        except Exception:
            self.failed.emit("Camera dependencies not installed")
            self.finished.emit()
            return

        self._cv2 = cv2
        self._pyzbar = pyzbar

        capture = self._open_capture()
        if capture is None:
            self.failed.emit("Camera not found")
            self.finished.emit()
            return

        self._running = True
        frame_skip = max(1, self._config.camera_frame_skip)
        frame_counter = 0

        self.status.emit("Camera active – align QR code")

        try:
            while self._running:
                success, frame = capture.read()
                if not success or frame is None:
                    self.failed.emit("Camera feed unavailable")
                    break

                frame = self._resize_frame(frame)
                self.frame_captured.emit(frame)

                frame_counter += 1
                if frame_counter % frame_skip:
                    continue

                text = QRCodeManager.decode_frame(frame, self._cv2, self._pyzbar)
                if text:
                    self.decoded.emit(text)
                    break
        finally:
            self._running = False
            capture.release()
            self.finished.emit()

    def _open_capture(self):
        assert self._cv2 is not None
        config = self._camera_config

        default_backend = getattr(self._cv2, "CAP_ANY", 0)
        for backend in config.get_backends() or [default_backend]:
            for index in config.get_indices():
                try:
                    capture = self._cv2.VideoCapture(index, backend)
                except TypeError:
                    capture = self._cv2.VideoCapture(index)
                if not capture or not capture.isOpened():
                    if capture:
                        capture.release()
                    continue

                capture.set(self._cv2.CAP_PROP_FRAME_WIDTH, config.width)
                capture.set(self._cv2.CAP_PROP_FRAME_HEIGHT, config.height)
                return capture
        return None

    def _resize_frame(self, frame):
        assert self._cv2 is not None
        max_dim = max(frame.shape[:2])
        limit = self._config.max_frame_size
        if max_dim <= limit:
            return frame

        scale = limit / float(max_dim)
        new_size = (int(frame.shape[1] * scale), int(frame.shape[0] * scale))
        return self._cv2.resize(frame, new_size)


class ScannerDialog(QDialog):  # pragma: no cover - requires Qt event loop
    """Mirrors a :class:`ScanController` in widgets."""

    def __init__(
        self,
        parent: QWidget,
        manager: ContactManager,
        config: AppConfig,
        camera_config: CameraConfig,
        state: AppState,
    ):
        super().__init__(parent)
        self._manager = manager
        self._config = config
        self._camera_config = camera_config
        self._state = state
        self._qr = QRCodeManager(config)
        self._controller = ScanController(on_import=self._import, config=config)
        self._camera_thread: QThread | None = None
        self._camera_worker: CameraWorker | None = None
        self._cv2_module = None
        self._syncing = False
        self._import_ok = True

        self.setWindowTitle("Scan QR Code")
        self.setMinimumWidth(460)
        self._setup_ui()
        self._sync()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        info = QLabel("Add a contact by scanning a QR code or entering contact data")
        info.setObjectName("SubtleLabel")
        info.setWordWrap(True)
        layout.addWidget(info)

        mode_row = QHBoxLayout()
        self._mode_buttons: Dict[str, QPushButton] = {}
        for mode, label in ((MANUAL, "Manual Input"), (UPLOAD, "Upload File"), (CAMERA, "Camera")):
            button = QPushButton(label)
            button.setCheckable(True)
            button.clicked.connect(lambda _checked, m=mode: self._select_mode(m))
            self._mode_buttons[mode] = button
            mode_row.addWidget(button)
        layout.addLayout(mode_row)

        self._manual_input = QTextEdit()
        self._manual_input.setPlaceholderText(
            "Paste vCard data or JSON contact information here..."
        )
        self._manual_input.setMinimumHeight(120)
        self._manual_input.textChanged.connect(self._on_text_changed)
        layout.addWidget(self._manual_input)

        self._upload_btn = QPushButton("Choose File (.vcf, .txt, .json or QR image)")
        self._upload_btn.clicked.connect(self._choose_file)
        layout.addWidget(self._upload_btn)

        self._preview = QLabel()
        self._preview.setWordWrap(True)
        self._preview.setFont(QFont(StyleConfig().font_mono, 9))
        layout.addWidget(self._preview)

        self._camera_group = QGroupBox("Camera")
        camera_layout = QVBoxLayout()
        self._camera_display = QLabel("Camera preview will appear here")
        self._camera_display.setObjectName("qrDisplayLabel")
        self._camera_display.setAlignment(Qt.AlignCenter)
        self._camera_display.setMinimumSize(320, 240)
        self._camera_status = QLabel("Camera idle")
        self._camera_status.setObjectName("SubtleLabel")
        camera_buttons = QHBoxLayout()
        self._camera_start_btn = QPushButton("Start Camera Scan")
        self._camera_stop_btn = QPushButton("Stop Camera")
        self._camera_start_btn.clicked.connect(self._start_camera)
        self._camera_stop_btn.clicked.connect(self._stop_camera)
        camera_buttons.addWidget(self._camera_start_btn)
        camera_buttons.addWidget(self._camera_stop_btn)
        camera_layout.addWidget(self._camera_display)
        camera_layout.addLayout(camera_buttons)
        camera_layout.addWidget(self._camera_status)
        self._camera_group.setLayout(camera_layout)
        layout.addWidget(self._camera_group)

        self._pending_group = QGroupBox("Scanned Contact")
        pending_layout = QVBoxLayout()
        self._pending_label = QLabel()
        self._pending_label.setWordWrap(True)
        pending_buttons = QHBoxLayout()
        create_btn = QPushButton("Create Contact")
        create_btn.setObjectName("AccentButton")
        cancel_pending_btn = QPushButton("Cancel")
        create_btn.clicked.connect(self._confirm)
        cancel_pending_btn.clicked.connect(self._cancel_pending)
        pending_buttons.addWidget(cancel_pending_btn)
        pending_buttons.addWidget(create_btn)
        pending_layout.addWidget(self._pending_label)
        pending_layout.addLayout(pending_buttons)
        self._pending_group.setLayout(pending_layout)
        layout.addWidget(self._pending_group)

        self._error = QLabel()
        self._error.setObjectName("ErrorLabel")
        self._error.setWordWrap(True)
        layout.addWidget(self._error)

        actions = QHBoxLayout()
        cancel_btn = QPushButton("Cancel")
        self._add_btn = QPushButton("Add Contact")
        self._add_btn.setObjectName("AccentButton")
        cancel_btn.clicked.connect(self.reject)
        self._add_btn.clicked.connect(self._submit)
        actions.addWidget(cancel_btn)
        actions.addWidget(self._add_btn)
        layout.addLayout(actions)

    def _sync(self) -> None:
        controller = self._controller
        self._syncing = True
        try:
            for mode, button in self._mode_buttons.items():
                button.setChecked(controller.mode == mode)
            self._mode_buttons[CAMERA].setEnabled(
                controller.can_select_camera and self._state.camera_available
            )

            self._manual_input.setVisible(controller.mode == MANUAL)
            if self._manual_input.toPlainText() != controller.buffer:
                self._manual_input.setPlainText(controller.buffer)
            self._upload_btn.setVisible(controller.mode == UPLOAD)
            self._preview.setVisible(controller.mode == UPLOAD and bool(controller.buffer))
            self._preview.setText(controller.preview)

            self._camera_group.setVisible(controller.mode == CAMERA)
            self._camera_start_btn.setEnabled(not controller.camera_active)
            self._camera_stop_btn.setEnabled(controller.camera_active)

            pending = controller.pending
            self._pending_group.setVisible(pending is not None)
            if pending is not None:
                self._pending_label.setText(
                    "\n".join(
                        f"{label}: {pending.get(key, '')}"
                        for key, label in (
                            ("name", "Name"),
                            ("company", "Company"),
                            ("title", "Title"),
                            ("email", "Email"),
                            ("phone", "Phone"),
                        )
                    )
                )

            message = controller.error or controller.camera_error or ""
            self._error.setText(message)
            self._error.setVisible(bool(message))
            self._add_btn.setEnabled(controller.can_submit and controller.mode != CAMERA)
        finally:
            self._syncing = False

    def _select_mode(self, mode: str) -> None:
        if mode != CAMERA:
            self._stop_camera()
        try:
            self._controller.select_mode(mode)
        except ValueError as exc:
            QMessageBox.warning(self, "Scan QR Code", str(exc))
        self._sync()

    def _on_text_changed(self) -> None:
        if self._syncing:
            return
        self._controller.set_buffer(self._manual_input.toPlainText())
        self._sync()

    def _choose_file(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Open Contact File",
            "",
            "Contact files (*.vcf *.txt *.json *.png *.jpg *.jpeg *.bmp)",
        )
        if not path:
            return

        if Path(path).suffix.lower() in _IMAGE_SUFFIXES:
            try:
                text = self._qr.read_from_file(path)
            except RuntimeError as exc:
                QMessageBox.critical(self, "Error", str(exc))
                return
            if not text:
                QMessageBox.critical(self, "Error", "Failed to read QR from image")
                return
        else:
            try:
                text = Path(path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                QMessageBox.critical(self, "Error", f"Load failed: {exc}")
                return

        self._controller.load_file(text)
        self._sync()

    def _import(self, record: Dict[str, str]) -> None:
        self._import_ok = self._manager.import_scanned(record)

    def _submit(self) -> None:
        if self._controller.submit() is None:
            self._sync()
            return
        self._finish()

    def _confirm(self) -> None:
        if self._controller.confirm() is not None:
            self._finish()

    def _finish(self) -> None:
        if not self._import_ok:
            QMessageBox.critical(self, "Error", "Failed to save contact. Please try again.")
        self.accept()

    def _cancel_pending(self) -> None:
        self._controller.cancel()
        self._sync()

    def _start_camera(self) -> None:
        if not self._state.camera_available or self._camera_thread:
            return
        try:
            import cv2  # type: ignore

            self._cv2_module = cv2
            self._controller.start_camera()
        except (ImportError, ValueError) as exc:
            self._controller.camera_failed(str(exc))
            self._sync()
            return

        self._camera_status.setText("Initialising camera…")
        worker = CameraWorker(self._config, self._camera_config)
        thread = QThread()
        worker.moveToThread(thread)

        thread.started.connect(worker.run)
        worker.frame_captured.connect(self._on_camera_frame)
        worker.decoded.connect(self._on_camera_decoded)
        worker.status.connect(self._camera_status.setText)
        worker.failed.connect(self._on_camera_failed)
        worker.finished.connect(self._on_camera_finished)
        thread.finished.connect(thread.deleteLater)

        self._camera_thread = thread
        self._camera_worker = worker
        thread.start()
        self._sync()

    def _stop_camera(self) -> None:
        if self._camera_worker:
            self._camera_worker.stop()
        if self._camera_thread and self._camera_thread.isRunning():
            self._camera_thread.quit()
            self._camera_thread.wait(1500)
        self._camera_thread = None
        self._camera_worker = None
        self._controller.stop_camera()

        self._camera_display.clear()
        self._camera_display.setText("Camera preview will appear here")
        self._sync()

    def _on_camera_frame(self, frame) -> None:
        if self._cv2_module is None:
            return

        rgb = self._cv2_module.cvtColor(frame, self._cv2_module.COLOR_BGR2RGB)
        height, width, channel = rgb.shape
        image = QImage(rgb.data, width, height, channel * width, QImage.Format_RGB888)
        pixmap = QPixmap.fromImage(image.copy())
        target_size = self._camera_display.size()
        if target_size.width() and target_size.height():
            pixmap = pixmap.scaled(target_size, Qt.KeepAspectRatio, Qt.SmoothTransformation)
        self._camera_display.setPixmap(pixmap)

    def _on_camera_decoded(self, text: str) -> None:
        self._camera_status.setText("QR detected")
        self._stop_camera()
        self._controller.camera_decoded(text)
        self._sync()

    def _on_camera_failed(self, message: str) -> None:
        self._controller.camera_failed(message)
        self._sync()

    def _on_camera_finished(self) -> None:
        if self._camera_thread and self._camera_thread.isRunning():
            self._camera_thread.quit()
            self._camera_thread.wait(1500)
        self._camera_thread = None
        self._camera_worker = None
        self._controller.stop_camera()
        self._sync()

    def done(self, result: int) -> None:  # type: ignore[override]
        self._stop_camera()
        self._controller.close()
        super().done(result)


class ContactDialog(QDialog):  # pragma: no cover - requires Qt event loop
    """Add or edit one contact."""

    _FIELDS = (
        ("name", "Name"),
        ("title", "Title"),
        ("company", "Organization"),
        ("email", "Email"),
        ("phone", "Phone"),
        ("website", "Website"),
        ("address", "Address"),
    )

    def __init__(self, parent: QWidget, contact: Optional[Contact] = None):
        super().__init__(parent)
        self._contact = contact
        self.setWindowTitle("Edit Contact" if contact else "Add New Contact")
        self.setMinimumWidth(420)

        layout = QVBoxLayout(self)
        form = QFormLayout()
        self._inputs: Dict[str, QLineEdit] = {}
        for key, label in self._FIELDS:
            field = QLineEdit(getattr(contact, key) if contact else "")
            self._inputs[key] = field
            form.addRow(label, field)

        self._category = QComboBox()
        for category in CATEGORIES:
            if category != MY_CARD:
                self._category.addItem(category)
        if contact and contact.category:
            index = self._category.findText(contact.category)
            if index >= 0:
                self._category.setCurrentIndex(index)
        form.addRow("Category", self._category)

        self._notes = QTextEdit(contact.notes if contact else "")
        self._notes.setMaximumHeight(80)
        form.addRow("Notes", self._notes)
        layout.addLayout(form)

        buttons = QHBoxLayout()
        cancel_btn = QPushButton("Cancel")
        save_btn = QPushButton("Save Changes" if contact else "Add Contact")
        save_btn.setObjectName("AccentButton")
        cancel_btn.clicked.connect(self.reject)
        save_btn.clicked.connect(self.accept)
        buttons.addWidget(cancel_btn)
        buttons.addWidget(save_btn)
        layout.addLayout(buttons)

    def record(self) -> Dict[str, str]:
        data = {key: field.text().strip() for key, field in self._inputs.items()}
        data["website"] = normalize_website(data["website"])
        data["notes"] = self._notes.toPlainText().strip()
        data["category"] = self._category.currentText()
        return data

    def contact(self) -> Contact:
        assert self._contact is not None
        return Contact.from_record(
            self.record(),
            id=self._contact.id,
            date_added=self._contact.date_added,
            owner_id=self._contact.owner_id,
        )


class QRCodeDialog(QDialog):  # pragma: no cover - requires Qt event loop
    """Share a contact as a QR code, business-card image or JSON text."""

    def __init__(self, parent: QWidget, contact: Contact, config: AppConfig, style: StyleConfig):
        super().__init__(parent)
        self._contact = contact
        self._config = config
        self._style = style
        self._qr = QRCodeManager(config)
        self._payload = encode_vcard(contact)

        self.setWindowTitle(f"Share {contact.name}")
        layout = QVBoxLayout(self)

        preview = QLabel()
        preview.setObjectName("qrDisplayLabel")
        preview.setAlignment(Qt.AlignCenter)
        preview.setMinimumSize(256, 256)
        if self._qr.is_available():
            try:
                pixmap = self._qr.to_qpixmap(self._payload)
            except RuntimeError as exc:
                preview.setText(f"QR preview failed: {exc}")
            else:
                preview.setPixmap(
                    pixmap.scaled(256, 256, Qt.KeepAspectRatio, Qt.SmoothTransformation)
                )
        else:
            preview.setText("Install 'segno' for QR support: pip install segno")
        layout.addWidget(preview)

        for label, slot in (
            ("Download QR Code", self._save_qr),
            ("Download Business Card", self._save_card),
            ("Copy Contact Data", self._copy_json),
            ("Copy QR Code Link", self._copy_link),
        ):
            button = QPushButton(label)
            button.clicked.connect(slot)
            layout.addWidget(button)

    def _save_qr(self) -> None:
        path, _ = QFileDialog.getSaveFileName(
            self, "Save QR Code", qr_filename(self._contact), "PNG Images (*.png)"
        )
        if not path:
            return
        try:
            self._qr.save_png(self._payload, path)
        except (OSError, RuntimeError) as exc:
            QMessageBox.critical(self, "Error", f"Save failed: {exc}")
        else:
            QMessageBox.information(self, "Success", "QR code saved successfully")

    def _save_card(self) -> None:
        directory = QFileDialog.getExistingDirectory(self, "Save Business Card")
        if not directory:
            return
        try:
            path = save_business_card(self._contact, self._qr, directory, self._config, self._style)
        except (OSError, RuntimeError) as exc:
            QMessageBox.critical(self, "Error", f"Export failed: {exc}")
        else:
            QMessageBox.information(self, "Success", f"Business card saved to {path.name}")

    def _copy_json(self) -> None:
        QApplication.clipboard().setText(contact_json(self._contact))

    def _copy_link(self) -> None:
        QApplication.clipboard().setText(self._qr.hosted_url(self._payload))


class NotificationDialog(QDialog):  # pragma: no cover - requires Qt event loop
    def __init__(self, parent: QWidget, session: Session):
        super().__init__(parent)
        self._session = session
        self.setWindowTitle("Notification Center")
        self.setMinimumWidth(440)

        layout = QVBoxLayout(self)
        if session.is_privileged:
            group = QGroupBox("Send Notification to All Users")
            group_layout = QVBoxLayout()
            self._message = QTextEdit()
            self._message.setPlaceholderText("Enter your notification message...")
            self._message.setMaximumHeight(70)
            send_btn = QPushButton("Send Notification")
            send_btn.clicked.connect(self._send)
            group_layout.addWidget(self._message)
            group_layout.addWidget(send_btn)
            group.setLayout(group_layout)
            layout.addWidget(group)

        self._list = QListWidget()
        layout.addWidget(self._list)
        clear_btn = QPushButton("Clear Selected")
        clear_btn.clicked.connect(self._clear_selected)
        layout.addWidget(clear_btn)

        assert session.user is not None
        self._feed = NotificationFeed(session.repository, session.user, self._render)

    def _render(self, notifications: List[Notification]) -> None:
        self._list.clear()
        if not notifications:
            self._list.addItem("No notifications")
            return
        for notification in notifications:
            stamp = (
                notification.created_at.astimezone().strftime("%Y-%m-%d %H:%M")
                if notification.created_at
                else ""
            )
            item = QListWidgetItem(f"{notification.message}\n{notification.sender_name} • {stamp}")
            item.setData(Qt.UserRole, notification.id)
            self._list.addItem(item)

    def _send(self) -> None:
        if self._session.send_notification(self._message.toPlainText()):
            self._message.clear()
            QMessageBox.information(self, "Notifications", "Notification sent!")

    def _clear_selected(self) -> None:
        item = self._list.currentItem()
        if item is None or item.data(Qt.UserRole) is None:
            return
        if self._session.clear_notification(item.data(Qt.UserRole)) and self._session.user:
            self._feed.set_user(self._session.user)

    def done(self, result: int) -> None:  # type: ignore[override]
        self._feed.close()
        super().done(result)


class ProfileDialog(QDialog):  # pragma: no cover - requires Qt event loop
    """Edit the signed-in user's profile and optionally change the password."""

    _FIELDS = (
        ("name", "Name"),
        ("email", "Email"),
        ("phone", "Phone"),
        ("website", "Website"),
        ("address", "Address"),
        ("company", "Company"),
        ("title", "Title"),
    )

    def __init__(self, parent: QWidget, session: Session, config: AppConfig, style: StyleConfig):
        super().__init__(parent)
        self._session = session
        self._config = config
        self._style = style
        assert session.user is not None
        user = session.user
        self.setWindowTitle("My Profile")

        layout = QVBoxLayout(self)
        form = QFormLayout()
        self._inputs: Dict[str, QLineEdit] = {}
        for key, label in self._FIELDS:
            field = QLineEdit(getattr(user, key))
            self._inputs[key] = field
            form.addRow(label, field)

        self._current = QLineEdit()
        self._new = QLineEdit()
        self._confirm = QLineEdit()
        for field, label in (
            (self._current, "Current password"),
            (self._new, "New password"),
            (self._confirm, "Confirm password"),
        ):
            field.setEchoMode(QLineEdit.Password)
            form.addRow(label, field)
        layout.addLayout(form)

        self._errors = QLabel()
        self._errors.setObjectName("ErrorLabel")
        self._errors.setWordWrap(True)
        self._errors.hide()
        layout.addWidget(self._errors)

        buttons = QHBoxLayout()
        card_btn = QPushButton("Save My Business Card")
        save_btn = QPushButton("Save")
        save_btn.setObjectName("AccentButton")
        card_btn.clicked.connect(self._save_card)
        save_btn.clicked.connect(self._save)
        buttons.addWidget(card_btn)
        buttons.addWidget(save_btn)
        layout.addLayout(buttons)

    def _show_errors(self, messages: List[str]) -> None:
        self._errors.setText("\n".join(messages))
        self._errors.setVisible(bool(messages))

    def _save(self) -> None:
        values = {key: field.text().strip() for key, field in self._inputs.items()}
        errors = validate_profile(
            values["name"],
            values["email"],
            self._current.text(),
            self._new.text(),
            self._confirm.text(),
            self._config.min_password_length,
        )
        if errors:
            self._show_errors(list(errors.values()))
            return

        user = self._session.user
        assert user is not None
        values["website"] = normalize_website(values["website"])
        if not self._session.update_user(user.id, values):
            self._show_errors(["Failed to save profile. Please try again."])
            return

        if self._new.text():
            if not self._session.change_password(
                self._current.text(), self._new.text(), self._confirm.text()
            ):
                self._show_errors([self._session.last_error or "Failed to change password."])
                return
            QMessageBox.information(
                self,
                "Password Changed",
                "Password changed successfully. Please sign in again with your new password.",
            )
        self.accept()

    def _save_card(self) -> None:
        user = self._session.user
        if user is None:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save Business Card", "", "PNG Images (*.png)")
        if not path:
            return
        try:
            data = card_png_bytes(user.as_contact(), QRCodeManager(self._config), self._config, self._style)
            Path(path).write_bytes(data)
        except (OSError, RuntimeError) as exc:
            QMessageBox.critical(self, "Error", f"Export failed: {exc}")


class UserManagementDialog(QDialog):  # pragma: no cover - requires Qt event loop
    def __init__(self, parent: QWidget, session: Session):
        super().__init__(parent)
        self._session = session
        self.setWindowTitle("User Management")
        self.setMinimumWidth(520)

        layout = QVBoxLayout(self)
        self._list = QListWidget()
        layout.addWidget(self._list)

        form_group = QGroupBox("Add User")
        form = QFormLayout()
        self._name = QLineEdit()
        self._email = QLineEdit()
        self._password = QLineEdit()
        self._password.setEchoMode(QLineEdit.Password)
        self._role = QComboBox()
        self._role.addItems(list(ROLES))
        self._role.setCurrentText("viewer")
        form.addRow("Name", self._name)
        form.addRow("Email", self._email)
        form.addRow("Password", self._password)
        form.addRow("Role", self._role)
        form_group.setLayout(form)
        layout.addWidget(form_group)

        buttons = QHBoxLayout()
        add_btn = QPushButton("Add User")
        add_btn.setObjectName("AccentButton")
        role_btn = QPushButton("Change Role")
        delete_btn = QPushButton("Delete Selected")
        add_btn.clicked.connect(self._add)
        role_btn.clicked.connect(self._change_role)
        delete_btn.clicked.connect(self._delete)
        buttons.addWidget(add_btn)
        buttons.addWidget(role_btn)
        buttons.addWidget(delete_btn)
        layout.addLayout(buttons)

        self._reload()

    def _reload(self) -> None:
        self._list.clear()
        for user in self._session.get_users():
            status = "active" if user.is_active else "inactive"
            item = QListWidgetItem(f"{user.name} <{user.email}> - {user.role} ({status})")
            item.setData(Qt.UserRole, user.id)
            self._list.addItem(item)

    def _selected_id(self) -> Optional[str]:
        item = self._list.currentItem()
        return item.data(Qt.UserRole) if item is not None else None

    def _add(self) -> None:
        ok = self._session.add_user(
            self._email.text().strip(),
            self._password.text(),
            self._name.text().strip(),
            self._role.currentText(),
        )
        self._password.clear()
        if not ok:
            QMessageBox.critical(self, "Error", "Failed to add user")
            return
        self._name.clear()
        self._email.clear()
        self._reload()

    def _change_role(self) -> None:
        uid = self._selected_id()
        if uid is None:
            return
        role, ok = QInputDialog.getItem(self, "Change Role", "Role", list(ROLES), 3, False)
        if ok and not self._session.update_user(uid, {"role": role}):
            QMessageBox.critical(self, "Error", "Failed to update user")
        self._reload()

    def _delete(self) -> None:
        uid = self._selected_id()
        if uid is None:
            return
        if not self._session.delete_user(uid):
            QMessageBox.critical(self, "Error", "Cannot delete this user")
        self._reload()


class MainWindow(QWidget):  # pragma: no cover - requires Qt event loop

    def __init__(
        self,
        config: AppConfig,
        state: AppState,
        style: StyleConfig,
        camera_config: CameraConfig,
    ):
        super().__init__()
        self._config = config
        self._state = state
        self._style = style
        self._camera_config = camera_config
        assert state.contacts is not None
        self._manager = state.contacts
        self._online_users: List[str] = []

        self._setup_ui()
        self._manager.refresh()
        self._render()

    @property
    def _session(self) -> Session:
        return self._manager.session

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        self._network_banner = QLabel()
        self._network_banner.setAlignment(Qt.AlignCenter)
        self._update_network_status()

        header = QHBoxLayout()
        title = QLabel("Contact Manager")
        title.setObjectName("HeaderLabel")
        user = self._session.user
        self._user_label = QLabel(f"{user.name} ({user.role})" if user else "")
        self._user_label.setObjectName("SubtleLabel")
        self._presence_label = QLabel()
        self._presence_label.setObjectName("SubtleLabel")
        header.addWidget(title)
        header.addStretch()
        header.addWidget(self._presence_label)
        header.addWidget(self._user_label)

        nav = QHBoxLayout()
        for label, slot, visible in (
            ("Notifications", self._open_notifications, True),
            ("Profile", self._open_profile, True),
            ("Users", self._open_users, self._session.is_privileged),
            ("Sign Out", self._sign_out, True),
        ):
            if not visible:
                continue
            button = QPushButton(label)
            button.clicked.connect(slot)
            nav.addWidget(button)
        header.addLayout(nav)

        controls = QHBoxLayout()
        self._search = QLineEdit()
        self._search.setPlaceholderText("Search contacts...")
        self._search.textChanged.connect(self._on_controls_changed)

        self._category = QComboBox()
        self._category.addItem("All Categories", ALL_CATEGORIES)
        for category in CATEGORIES:
            self._category.addItem(category, category)
        self._sort = QComboBox()
        for label, key in (
            ("Name (A-Z)", SORT_NAME),
            ("Company (A-Z)", SORT_COMPANY),
            ("Date Added (Newest)", SORT_DATE_ADDED),
        ):
            self._sort.addItem(label, key)
        self._group = QComboBox()
        self._group.addItem("No Grouping", GROUP_NONE)
        self._group.addItem("Group by Category", GROUP_CATEGORY)
        for combo in (self._category, self._sort, self._group):
            combo.currentIndexChanged.connect(self._on_controls_changed)
        self._view = QComboBox()
        for label, key in (
            ("Grid", VIEW_GRID),
            ("List", VIEW_LIST),
            ("Cards", VIEW_CARDS),
            ("Table", VIEW_TABLE),
        ):
            self._view.addItem(label, key)
        self._view.setCurrentIndex(self._view.findData(self._state.view_type))
        self._view.currentIndexChanged.connect(self._on_view_changed)

        controls.addWidget(self._search, 2)
        controls.addWidget(self._category)
        controls.addWidget(self._sort)
        controls.addWidget(self._group)
        controls.addWidget(self._view)

        actions = QHBoxLayout()
        self._mutating_buttons: List[QPushButton] = []
        for label, slot, mutating in (
            ("Add Contact", self._add_contact, True),
            ("Scan QR", self._scan, True),
            ("Share", self._share, False),
            ("Edit", self._edit, True),
            ("Delete", self._delete, True),
            ("Refresh", self._refresh, False),
        ):
            button = QPushButton(label)
            button.clicked.connect(slot)
            if label == "Add Contact":
                button.setObjectName("AccentButton")
            if mutating:
                self._mutating_buttons.append(button)
                button.setVisible(self._manager.can_mutate)
            actions.addWidget(button)

        self._cards = QListWidget()
        self._cards.setViewMode(QListWidget.IconMode)
        self._cards.setResizeMode(QListWidget.Adjust)
        self._cards.setMovement(QListWidget.Static)
        self._cards.setWordWrap(True)
        self._cards.setSpacing(8)
        self._cards.itemDoubleClicked.connect(lambda *_: self._share())

        self._tree = QTreeWidget()
        self._tree.setHeaderLabels(_CONTACT_COLUMNS)
        self._tree.itemDoubleClicked.connect(lambda *_: self._share())

        self._table = QTableWidget(0, len(_CONTACT_COLUMNS) + 1)
        self._table.setHorizontalHeaderLabels(_CONTACT_COLUMNS + ["Date Added"])
        self._table.setSelectionBehavior(QTableWidget.SelectRows)
        self._table.setEditTriggers(QTableWidget.NoEditTriggers)
        self._table.verticalHeader().setVisible(False)
        self._table.horizontalHeader().setStretchLastSection(True)
        self._table.itemDoubleClicked.connect(lambda *_: self._share())

        self._views = QStackedWidget()
        for widget in (self._cards, self._tree, self._table):
            self._views.addWidget(widget)

        self._counts = QLabel()
        self._counts.setObjectName("SubtleLabel")

        self._empty = QLabel()
        self._empty.setAlignment(Qt.AlignCenter)
        self._empty.setObjectName("SubtleLabel")

        layout.addWidget(self._network_banner)
        layout.addLayout(header)
        layout.addLayout(controls)
        layout.addLayout(actions)
        layout.addWidget(self._counts)
        layout.addWidget(self._views)
        layout.addWidget(self._empty)

        self._network_timer = QTimer()
        self._network_timer.timeout.connect(self._update_network_status)
        self._network_timer.start(self._config.network_check_interval_ms)

        self._session.own(
            self._session.repository.subscribe_online_users(self._on_online_users)
        )

    def _update_network_status(self) -> None:
        self._state.is_online = is_online(self._config)
        self._network_banner.setText(status_text(self._state.is_online))
        self._network_banner.setObjectName(
            "SuccessLabel" if self._state.is_online else "WarningLabel"
        )
        self._network_banner.style().polish(self._network_banner)

    def _on_online_users(self, users) -> None:
        self._online_users = [user.user_id for user in users]
        if hasattr(self, "_presence_label"):
            self._presence_label.setText(f"{len(self._online_users)} online")

    def _on_controls_changed(self, *_args) -> None:
        query = self._manager.query
        query.search = self._search.text()
        query.category = self._category.currentData()
        query.sort_by = self._sort.currentData()
        query.group_by = self._group.currentData()
        self._render()

    def _on_view_changed(self, *_args) -> None:
        self._state.set_view_type(self._view.currentData())
        self._render()

    @staticmethod
    def _columns(contact: Contact) -> List[str]:
        return [
            "📌" if contact.pinned else initials(contact.name),
            contact.name,
            contact.title,
            contact.company,
            contact.email,
            contact.phone,
            contact.category,
        ]

    def _render_cards(
        self, sections: Dict[str, List[Contact]], grouped: bool, large: bool
    ) -> int:
        self._cards.clear()
        self._cards.setGridSize(QSize(260, 130) if large else QSize(200, 90))
        total = 0
        for label, contacts in sections.items():
            if grouped:
                header = QListWidgetItem(f"{label} ({len(contacts)})")
                header.setFlags(Qt.NoItemFlags)
                self._cards.addItem(header)
            for contact in contacts:
                lines = [contact.name, contact.title, contact.company]
                if large:
                    lines += [contact.email, contact.phone]
                text = "\n".join(line for line in lines if line)
                item = QListWidgetItem(f"📌 {text}" if contact.pinned else text)
                item.setData(Qt.UserRole, contact)
                item.setToolTip(contact.email)
                self._cards.addItem(item)
                total += 1
        return total

    def _render_tree(self, sections: Dict[str, List[Contact]], grouped: bool) -> int:
        self._tree.clear()
        total = 0
        for label, contacts in sections.items():
            parent = self._tree.invisibleRootItem()
            if grouped:
                parent = QTreeWidgetItem([f"{label} ({len(contacts)})"])
                self._tree.addTopLevelItem(parent)
                parent.setFirstColumnSpanned(True)
            for contact in contacts:
                item = QTreeWidgetItem(self._columns(contact))
                item.setData(0, Qt.UserRole, contact)
                parent.addChild(item)
                total += 1
            if grouped:
                parent.setExpanded(True)
        return total

    def _render_table(self, sections: Dict[str, List[Contact]]) -> int:
        contacts = flatten(sections)
        self._table.clearContents()
        self._table.setRowCount(len(contacts))
        for row, contact in enumerate(contacts):
            added = contact.date_added.strftime("%Y-%m-%d") if contact.date_added else ""
            for column, value in enumerate(self._columns(contact) + [added]):
                item = QTableWidgetItem(value)
                item.setData(Qt.UserRole, contact)
                self._table.setItem(row, column, item)
        return len(contacts)

    def _render(self) -> None:
        view_type = self._state.view_type
        sections = self._manager.sections(view_type)
        grouped = self._manager.query.group_by != GROUP_NONE
        if view_type == VIEW_TABLE:
            total = self._render_table(sections)
            self._views.setCurrentWidget(self._table)
        elif view_type == VIEW_LIST:
            total = self._render_tree(sections, grouped)
            self._views.setCurrentWidget(self._tree)
        else:
            total = self._render_cards(sections, grouped, large=view_type == VIEW_CARDS)
            self._views.setCurrentWidget(self._cards)
        self._counts.setText(
            "   ".join(f"{label}: {count}" for label, count in self._manager.summary())
        )

        if total:
            self._empty.hide()
        else:
            self._empty.setText(
                "No contacts found\n"
                + (
                    "Try adjusting your search terms"
                    if self._manager.query.search
                    else "Get started by adding your first contact"
                )
            )
            self._empty.show()

    def _selected(self) -> Optional[Contact]:
        widget = self._views.currentWidget()
        item = widget.currentItem()
        if item is None:
            return None
        if widget is self._tree:
            contact = item.data(0, Qt.UserRole)
        else:
            contact = item.data(Qt.UserRole)
        return contact if isinstance(contact, Contact) else None

    def _stored(self, contact: Contact) -> Contact:
        """Return the stored record behind a displayed (possibly annotated) contact."""

        for stored in self._manager.contacts:
            if stored.id == contact.id:
                return stored
        return contact

    def _report(self, ok: bool, action: str) -> None:
        if not ok:
            QMessageBox.critical(self, "Error", f"Failed to {action}. Please try again.")
        self._render()

    def _add_contact(self) -> None:
        dialog = ContactDialog(self)
        if dialog.exec_() == QDialog.Accepted:
            self._report(self._manager.add_contact(dialog.record()), "add contact")

    def _scan(self) -> None:
        dialog = ScannerDialog(self, self._manager, self._config, self._camera_config, self._state)
        dialog.exec_()
        self._render()

    def _share(self) -> None:
        contact = self._selected()
        if contact is None:
            return
        self._state.selected_contact = contact
        QRCodeDialog(self, contact, self._config, self._style).exec_()

    def _edit(self) -> None:
        contact = self._selected()
        if contact is None:
            return
        dialog = ContactDialog(self, self._stored(contact))
        if dialog.exec_() == QDialog.Accepted:
            self._report(self._manager.edit_contact(dialog.contact()), "update contact")

    def _delete(self) -> None:
        contact = self._selected()
        if contact is None:
            return
        answer = QMessageBox.question(self, "Delete Contact", f"Delete {contact.name}?")
        if answer == QMessageBox.Yes:
            self._report(self._manager.delete_contact(contact.id), "delete contact")

    def _refresh(self) -> None:
        self._report(self._manager.refresh(), "refresh contacts")

    def _open_notifications(self) -> None:
        NotificationDialog(self, self._session).exec_()

    def _open_profile(self) -> None:
        ProfileDialog(self, self._session, self._config, self._style).exec_()
        user = self._session.user
        if user is None:
            return
        self._user_label.setText(f"{user.name} ({user.role})")
        self._render()

    def _open_users(self) -> None:
        UserManagementDialog(self, self._session).exec_()
        self._refresh()

    def _sign_out(self) -> None:
        self._session.logout()

    def shutdown(self) -> None:
        self._network_timer.stop()


class CardManagerApp(QMainWindow):  # pragma: no cover - requires Qt event loop
    def __init__(self, session: Session, config: AppConfig) -> None:
        super().__init__()

        self._config = config
        self._camera_config = CameraConfig()
        self._style = StyleConfig()
        self._state = AppState(session=session)
        self._state.qr_available = QRCodeManager(config).is_available()
        self._state.camera_available = self._detect_camera_support()
        self._session = session
        self._main_window: MainWindow | None = None

        self._setup_ui()
        session.add_listener(self._on_user_changed)
        session.start()

    @staticmethod
    def _detect_camera_support() -> bool:
        try:
            import cv2  # type: ignore  # noqa: F401
            from pyzbar import pyzbar  # type: ignore  # noqa: F401
        except Exception:
            return False
        return True

    def _setup_ui(self) -> None:
        self.setWindowTitle(f"{self._config.app_name} v{self._config.app_version}")
        self.setGeometry(100, 100, 1000, 720)
        self.setMinimumSize(760, 560)

        try:
            self.setWindowIcon(create_icon())
        except RuntimeError:
            pass

        self._apply_stylesheet()

        self._stack = QStackedWidget()
        self._sign_in = SignInScreen(self._session, self._config)
        self._stack.addWidget(self._sign_in)
        self.setCentralWidget(self._stack)

        self.show()

    def _apply_stylesheet(self) -> None:
        style = self._style
        self.setStyleSheet(
            f"""
            QMainWindow {{ background: {style.bg_secondary}; }}
            QWidget {{ color: {style.fg_primary}; font-family: {style.font_family}; font-size: {style.font_size}px; }}
            QGroupBox {{ font-weight: bold; border: 1px solid {style.border}; border-radius: 8px; margin-top: 1ex; padding: 12px; background: {style.bg_primary}; }}
            QLineEdit, QTextEdit, QComboBox {{ background: {style.bg_primary}; color: {style.fg_secondary}; border: 1px solid {style.border}; border-radius: 4px; padding: 8px; }}
            QLineEdit:focus, QTextEdit:focus {{ border: 1px solid {style.accent_primary}; }}
            QPushButton {{ background: {style.bg_primary}; color: {style.fg_secondary}; border: 1px solid {style.border}; padding: 8px 14px; border-radius: 4px; }}
            QPushButton#AccentButton {{ background: {style.accent_primary}; color: {style.bg_primary}; border: none; font-weight: bold; }}
            QPushButton:checked {{ background: {style.accent_primary}; color: {style.bg_primary}; }}
            QTreeWidget {{ background: {style.bg_primary}; border: 1px solid {style.border}; border-radius: 8px; }}
            #HeaderLabel {{ font-size: 24px; font-weight: bold; color: {style.fg_secondary}; }}
            #SubtleLabel {{ color: {style.fg_muted}; }}
            #ErrorLabel {{ color: {style.warning}; }}
            #WarningLabel {{ background: {style.warning}; color: {style.bg_primary}; padding: 6px; border-radius: 4px; }}
            #SuccessLabel {{ background: {style.success}; color: {style.bg_primary}; padding: 6px; border-radius: 4px; }}
            #CentralPanel {{ background: {style.bg_primary}; border-radius: 12px; padding: 20px; }}
            #qrDisplayLabel {{ border: 2px dashed {style.border}; background: {style.bg_primary}; border-radius: 4px; }}
            """
        )

    def _on_user_changed(self, user: Optional[User]) -> None:
        if user is None:
            self._close_main_window()
            self._state.reset()
            self._stack.setCurrentWidget(self._sign_in)
            return

        if self._main_window is not None:
            self._close_main_window()
        self._state.contacts = ContactManager(self._session)
        self._main_window = MainWindow(self._config, self._state, self._style, self._camera_config)
        self._stack.addWidget(self._main_window)
        self._stack.setCurrentWidget(self._main_window)

    def _close_main_window(self) -> None:
        if self._main_window is None:
            return
        self._main_window.shutdown()
        self._stack.removeWidget(self._main_window)
        self._main_window.deleteLater()
        self._main_window = None

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self._close_main_window()
        self._session.close()
        event.accept()


def build_session(config: AppConfig, admin_email: str, admin_password: str) -> Session:
    """Wire an in-process store and auth provider into a :class:`Session`."""

    auth = LocalAuthProvider(config)
    repository = ContactRepository(InMemoryDocumentStore(), config)
    bootstrap_superadmin(auth, repository, admin_email, admin_password)
    return Session(auth, repository, config)


def run() -> int:  # pragma: no cover - requires Qt event loop
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    config = AppConfig()
    session = build_session(
        config,
        os.environ.get("CARD_MANAGER_ADMIN_EMAIL", "admin@example.com"),
        os.environ.get("CARD_MANAGER_ADMIN_PASSWORD", "welcome123"),
    )

    app = QApplication.instance() or QApplication([])
    app.setApplicationName("Card Manager")
    window = CardManagerApp(session, config)
    return app.exec_()


__all__ = ["run", "build_session", "CardManagerApp"]
