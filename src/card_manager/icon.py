"""Window icon: a small business card with a QR corner."""
from __future__ import annotations

from typing import Optional

from .config import StyleConfig

# 3x3 finder-like pattern drawn in the card's top-right corner
_QR_CELLS = ((0, 0), (1, 0), (2, 0), (0, 1), (2, 1), (0, 2), (1, 2), (2, 2))


def create_icon(size: int = 64, style: Optional[StyleConfig] = None):  # pragma: no cover - requires PyQt at runtime
    """Return a :class:`~PyQt5.QtGui.QIcon` drawn with the accent colours of ``style``."""

    try:
        from PyQt5.QtCore import QRectF, Qt
        from PyQt5.QtGui import QBrush, QColor, QIcon, QPainter, QPen, QPixmap
    except Exception as exc:  # pragma: no cover - depends on environment
        raise RuntimeError("PyQt5 is required to generate the application icon") from exc

    style = style or StyleConfig()
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing)

    card = QRectF(size * 0.06, size * 0.2, size * 0.88, size * 0.6)
    painter.setPen(QPen(QColor(style.accent_primary), max(1, size // 24)))
    painter.setBrush(QBrush(QColor(style.bg_primary)))
    painter.drawRoundedRect(card, size * 0.08, size * 0.08)

    cell = card.height() / 6
    left = card.right() - cell * 4
    top = card.top() + cell
    painter.setPen(Qt.NoPen)
    painter.setBrush(QBrush(QColor(style.fg_secondary)))
    for column, row in _QR_CELLS:
        painter.drawRect(QRectF(left + column * cell, top + row * cell, cell, cell))

    painter.setBrush(QBrush(QColor(style.accent_secondary)))
    line_height = max(2.0, cell * 0.7)
    for index, width in enumerate((0.4, 0.3, 0.5)):
        painter.drawRoundedRect(
            QRectF(
                card.left() + cell,
                card.top() + cell * (1.2 + index * 1.4),
                card.width() * width,
                line_height,
            ),
            line_height / 2,
            line_height / 2,
        )
    painter.end()

    return QIcon(pixmap)


__all__ = ["create_icon"]
