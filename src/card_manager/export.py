"""Business-card image export.

Cards are drawn with Pillow at ``card_scale`` times the on-screen size and
carry a vCard QR code in the top-right corner.
"""
from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .config import AppConfig, StyleConfig
from .models import Contact
from .qr import QRCodeManager
from .vcard import encode_vcard

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def _slug(name: str) -> str:
    return _WHITESPACE.sub("_", name.strip()) or "contact"


def card_filename(contact: Contact) -> str:
    return f"{_slug(contact.name)}_business_card.png"


def qr_filename(contact: Contact) -> str:
    return f"{_slug(contact.name)}-qr-code.png"


def initials(name: str) -> str:
    return "".join(part[0] for part in name.split() if part).upper()


def _font(size: int, bold: bool = False):
    candidates = ["DejaVuSans-Bold.ttf", "Arial Bold.ttf"] if bold else ["DejaVuSans.ttf", "Arial.ttf"]
    for candidate in candidates:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _fit(draw: ImageDraw.ImageDraw, text: str, font, width: int) -> str:
    """Trim ``text`` with an ellipsis so that it fits into ``width`` pixels."""

    if not text or draw.textlength(text, font=font) <= width:
        return text
    while text and draw.textlength(text + "...", font=font) > width:
        text = text[:-1]
    return text + "..."


def render_business_card(
    contact: Contact,
    qr: QRCodeManager,
    config: Optional[AppConfig] = None,
    style: Optional[StyleConfig] = None,
) -> Image.Image:
    config = config or qr.config
    style = style or StyleConfig()
    scale = config.card_scale

    def px(value: int) -> int:
        return value * scale

    width, height = px(config.card_width), px(config.card_height)
    image = Image.new("RGB", (width, height), style.bg_primary)
    draw = ImageDraw.Draw(image)
    draw.rounded_rectangle(
        (0, 0, width - 1, height - 1), radius=px(12), outline=style.border, width=px(1)
    )

    pad = px(config.card_padding)
    qr_side = px(config.card_qr_size)
    qr_image = Image.open(io.BytesIO(qr.to_png_bytes(encode_vcard(contact), scale=1, border=0)))
    qr_image = qr_image.convert("RGB").resize((qr_side, qr_side), Image.NEAREST)
    qr_left = width - pad - qr_side
    image.paste(qr_image, (qr_left, pad + px(2)))

    text_width = qr_left - pad - px(12)
    y = pad
    rows = [
        (contact.name, px(18), True, "#222222"),
        (contact.title, px(13), False, "#666666"),
        (contact.company, px(13), True, style.company),
    ]
    for text, size, bold, colour in rows:
        font = _font(size, bold)
        draw.text((pad, y), _fit(draw, text or "", font, text_width), font=font, fill=colour)
        y += size + px(4)

    y = max(y, pad + qr_side) + px(8)
    body_width = width - 2 * pad
    details = [
        (contact.email, style.accent_secondary),
        (contact.phone, style.accent_secondary),
        (contact.address, "#3B3B3B"),
    ]
    body_size = px(13)
    body_font = _font(body_size)
    for text, colour in details:
        if not text:
            continue
        draw.text((pad, y), _fit(draw, text, body_font, body_width), font=body_font, fill=colour)
        y += body_size + px(4)

    return image


def save_business_card(
    contact: Contact,
    qr: QRCodeManager,
    directory: str | Path,
    config: Optional[AppConfig] = None,
    style: Optional[StyleConfig] = None,
) -> Path:
    """Render ``contact`` and write it as a PNG into ``directory``."""

    path = Path(directory) / card_filename(contact)
    render_business_card(contact, qr, config, style).save(path, format="PNG")
    logger.info("Exported business card to %s", path)
    return path


def card_png_bytes(
    contact: Contact,
    qr: QRCodeManager,
    config: Optional[AppConfig] = None,
    style: Optional[StyleConfig] = None,
) -> bytes:
    buffer = io.BytesIO()
    render_business_card(contact, qr, config, style).save(buffer, format="PNG")
    return buffer.getvalue()


__all__ = [
    "card_filename",
    "card_png_bytes",
    "initials",
    "qr_filename",
    "render_business_card",
    "save_business_card",
]
