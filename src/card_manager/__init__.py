"""Card Manager package."""
from __future__ import annotations

from .config import AppConfig, CameraConfig, StyleConfig
from .manager import ContactManager
from .models import Contact, Notification, User
from .network import is_online
from .pipeline import ContactQuery, build_view
from .qr import QRCodeManager
from .scanner import ScanController
from .security import SecureString, password_context
from .session import Session, bootstrap_superadmin
from .state import AppState
from .vcard import DecodeFailed, Decoded, decode_contact, encode_vcard

__all__ = [
    "AppConfig",
    "CameraConfig",
    "StyleConfig",
    "AppState",
    "Contact",
    "ContactManager",
    "ContactQuery",
    "Decoded",
    "DecodeFailed",
    "Notification",
    "User",
    "build_view",
    "bootstrap_superadmin",
    "decode_contact",
    "encode_vcard",
    "is_online",
    "password_context",
    "QRCodeManager",
    "ScanController",
    "SecureString",
    "Session",
]

__version__ = "1.0"
