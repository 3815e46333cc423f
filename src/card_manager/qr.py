"""QR code rendering and reading for contact payloads."""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from .config import AppConfig

logger = logging.getLogger(__name__)


def _as_text(data: bytes | bytearray | str) -> str:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    return data


@dataclass(slots=True)
class QRCodeManager:
    """Generate QR codes with :mod:`segno` and read them with OpenCV/pyzbar."""

    config: AppConfig

    def is_available(self) -> bool:
        try:
            import segno  # type: ignore  # pragma: no cover - optional dependency
        except Exception:
            return False
        return True

    def make(self, payload: str):
        try:
            import segno  # type: ignore  # pragma: no cover - optional dependency
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RuntimeError("QR generation requires segno; install segno") from exc

        return segno.make(payload, error=self.config.qr_error_correction)

    def hosted_url(self, payload: str, size: Optional[int] = None) -> str:
        """Return an image URL of the hosted QR API for ``payload``.

        The URL is only built here; nothing is fetched.
        """

        side = size or self.config.qr_hosted_size
        return f"{self.config.qr_hosted_endpoint}?size={side}x{side}&data={quote(payload, safe='')}"

    def save_png(self, payload: str, path: str, scale: Optional[int] = None) -> str:
        """Write a QR code representing ``payload`` to ``path`` and return the path."""

        qr = self.make(payload)
        qr.save(path, kind="png", scale=scale or self.config.qr_scale, border=self.config.qr_border)
        logger.debug("Saved QR code to %s", path)
        return path

    def to_png_bytes(self, payload: str, scale: Optional[int] = None, border: Optional[int] = None) -> bytes:
        qr = self.make(payload)
        buffer = io.BytesIO()
        qr.save(
            buffer,
            kind="png",
            scale=scale or self.config.qr_scale,
            border=self.config.qr_border if border is None else border,
        )
        return buffer.getvalue()

    def to_qpixmap(self, payload: str):  # pragma: no cover - requires PyQt at runtime
        """Return a ``QPixmap`` representing ``payload``.

        :mod:`PyQt5` is imported lazily to keep the module usable in headless
        test environments.
        """

        try:
            from PyQt5.QtGui import QImage, QPixmap
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RuntimeError("PyQt5 is required to generate a preview pixmap") from exc

        image = QImage()
        if not image.loadFromData(self.to_png_bytes(payload)):
            raise RuntimeError("Failed to load QR image into QImage")

        return QPixmap.fromImage(image)

    @staticmethod
    def decode_frame(frame, cv2, pyzbar) -> Optional[str]:
        """Return the text of the first QR code found in a BGR ``frame``."""

        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        for processed in (
            gray,
            cv2.GaussianBlur(gray, (5, 5), 0),
            cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)[1],
        ):
            decoded = pyzbar.decode(processed)
            if decoded:
                return _as_text(decoded[0].data)
        return None

    def read_from_file(self, path: str) -> Optional[str]:
        """Decode QR contents of an image file, or ``None`` when unreadable.

        Requires OpenCV and :mod:`pyzbar`; :class:`RuntimeError` is raised when
        they are missing.
        """

        try:
            import cv2  # type: ignore
            from pyzbar import pyzbar  # type: ignore
        except Exception as exc:
            raise RuntimeError("Reading QR images requires opencv-python and pyzbar") from exc

        image = cv2.imread(path)
        if image is None:
            logger.info("Could not load image %s", path)
            return None

        return self.decode_frame(image, cv2, pyzbar)


__all__ = ["QRCodeManager"]
