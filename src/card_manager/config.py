"""Configuration data structures for the Card Manager."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(slots=True)
class AppConfig:
    """Static configuration options used across the application."""

    app_name: str = "CardManager"
    app_version: str = "1.0"
    min_password_length: int = 6
    password_kdf: str = "argon2id"
    pbkdf2_iterations: int = 600_000
    argon2_time_cost: int = 3
    argon2_memory_cost_kib: int = 65_536
    argon2_parallelism: int = 2
    salt_size_bytes: int = 16
    hash_size_bytes: int = 32
    admin_emails: Tuple[str, ...] = ()
    all_contacts_roles: Tuple[str, ...] = ("superadmin", "admin", "editor", "viewer")
    default_category: str = "Work"
    notification_limit: int = 20
    upload_preview_chars: int = 500
    connectivity_host: str = "1.1.1.1"
    connectivity_port: int = 53
    network_check_interval_ms: int = 5_000
    camera_frame_skip: int = 5
    max_frame_size: int = 1_920
    qr_error_correction: str = "M"
    qr_scale: int = 10
    qr_border: int = 4
    qr_hosted_endpoint: str = "https://api.qrserver.com/v1/create-qr-code/"
    qr_hosted_size: int = 200
    card_width: int = 326
    card_height: int = 202
    card_scale: int = 2
    card_padding: int = 18
    card_qr_size: int = 56


@dataclass(slots=True)
class CameraConfig:
    """Runtime camera configuration used by the optional camera worker."""

    width: int = 640
    height: int = 480
    indices: List[int] = field(default_factory=lambda: [0, 1, 2])

    def get_backends(self) -> List[int]:
        """Return a list of OpenCV backend identifiers to try.

        OpenCV is optional, so the import happens here rather than at module
        level and an empty list is returned when it is missing.
        """

        try:  # pragma: no cover - imported for type side effect only
            import cv2  # type: ignore
        except Exception:  # pragma: no cover - we simply fall back to an empty list
            return []

        try:
            return [cv2.CAP_DSHOW, cv2.CAP_MSMF, cv2.CAP_ANY]
        except AttributeError:  # pragma: no cover - depends on the OpenCV build
            return [0]

    def get_indices(self) -> List[int]:
        """Return candidate camera indices."""

        return list(self.indices)


@dataclass(slots=True)
class StyleConfig:
    """Simple grouping of UI styling constants."""

    bg_primary: str = "#FFFFFF"
    bg_secondary: str = "#E6F9F0"
    bg_tertiary: str = "#D1FAE5"
    fg_primary: str = "#1F2937"
    fg_secondary: str = "#111827"
    fg_muted: str = "#6B7280"
    accent_primary: str = "#16A34A"
    accent_secondary: str = "#059669"
    company: str = "#8CA0B3"
    warning: str = "#DC2626"
    success: str = "#16A34A"
    border: str = "#E5E7EB"
    font_family: str = "Segoe UI, sans-serif"
    font_size: int = 14
    font_mono: str = "Courier New, monospace"


__all__ = ["AppConfig", "CameraConfig", "StyleConfig"]
